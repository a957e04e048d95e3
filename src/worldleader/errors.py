"""Domain exceptions shared by the ledger, ranking, and auth services.

Services raise these; routers translate them into HTTP responses
(see ``error_to_http``). Password strength errors live next to the
validator in ``worldleader.auth.password``.
"""

from __future__ import annotations


class WorldLeaderError(Exception):
    """Base class for domain errors."""


class InvalidAmountError(WorldLeaderError, ValueError):
    """Purchase amount is not a positive finite number within the cap."""


class UserNotFoundError(WorldLeaderError, LookupError):
    """The target user does not exist (or vanished mid-flow)."""


class DuplicateUserError(WorldLeaderError, ValueError):
    """Email or username already taken. Never says which one."""


class PersistenceFailure(WorldLeaderError, RuntimeError):
    """A storage transaction aborted; nothing from the unit was applied."""


class NotificationFailure(WorldLeaderError, RuntimeError):
    """A notification could not be delivered. Logged, never surfaced."""


def error_to_http(exc: Exception) -> tuple[int, str]:
    """Map a domain exception to ``(status_code, detail)``.

    Not-found is reported as 401 so callers cannot probe which accounts exist.
    """
    if isinstance(exc, InvalidAmountError):
        return 400, str(exc)
    if isinstance(exc, UserNotFoundError):
        return 401, "Not authenticated"
    if isinstance(exc, DuplicateUserError):
        return 409, "User with this email or username already exists"
    return 500, "Internal server error"
