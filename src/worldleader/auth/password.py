"""
Password hashing and strength scoring.

Hashes use argon2id. Strength is scored out of five (length, uppercase,
lowercase, digit, special character) with penalties for common prefixes
and repeated characters; a password needs a score of at least 3.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import argon2

from worldleader.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)

MIN_VALID_SCORE = 3

_SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_COMMON_PATTERNS = (
    re.compile(r"^123456"),
    re.compile(r"^password", re.IGNORECASE),
    re.compile(r"^qwerty", re.IGNORECASE),
    re.compile(r"^abc123", re.IGNORECASE),
    re.compile(r"^111111"),
    re.compile(r"^letmein", re.IGNORECASE),
)
_REPEATED = re.compile(r"(.)\1{2,}")


class PasswordStrengthError(ValueError):
    """Raised when a password does not meet strength requirements."""

    def __init__(self, message: str, feedback: list[str] | None = None) -> None:
        super().__init__(message)
        self.feedback = feedback or [message]


@dataclass
class PasswordStrength:
    """Outcome of scoring a password."""

    is_valid: bool
    score: int
    feedback: list[str] = field(default_factory=list)


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its argon2id hash.

    Returns True if the password matches. Never raises on mismatch.
    """
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """Check if the hash needs to be updated (parameters changed)."""
    return _hasher.check_needs_rehash(password_hash)


def evaluate_password_strength(password: str) -> PasswordStrength:
    """Score a password and collect feedback for the user."""
    settings = get_settings()
    feedback: list[str] = []

    if len(password) < settings.password_min_length:
        feedback.append(f"Password must be at least {settings.password_min_length} characters long")
        return PasswordStrength(is_valid=False, score=0, feedback=feedback)
    if len(password) > settings.password_max_length:
        feedback.append(f"Password must not exceed {settings.password_max_length} characters")
        return PasswordStrength(is_valid=False, score=0, feedback=feedback)

    score = 1
    if any(c.isupper() for c in password):
        score += 1
    else:
        feedback.append("Add at least one uppercase letter")
    if any(c.islower() for c in password):
        score += 1
    else:
        feedback.append("Add at least one lowercase letter")
    if any(c.isdigit() for c in password):
        score += 1
    else:
        feedback.append("Add at least one number")
    if _SPECIAL_CHARS.search(password):
        score += 1
    else:
        feedback.append("Add at least one special character (!@#$%^&* etc.)")

    if any(p.search(password) for p in _COMMON_PATTERNS):
        feedback.append("Avoid common password patterns")
        score = max(0, score - 2)
    if _REPEATED.search(password):
        feedback.append("Avoid repeating characters")
        score = max(0, score - 1)

    is_valid = score >= MIN_VALID_SCORE
    if is_valid and not feedback:
        feedback.append("Strong password!")
    return PasswordStrength(is_valid=is_valid, score=score, feedback=feedback)


def validate_password_strength(password: str) -> None:
    """Raise PasswordStrengthError (with feedback) if the password is too weak."""
    strength = evaluate_password_strength(password)
    if not strength.is_valid:
        msg = "Password does not meet security requirements"
        raise PasswordStrengthError(msg, strength.feedback)
