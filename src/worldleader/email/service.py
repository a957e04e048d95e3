"""
Email service with provider abstraction.

Supports SMTP, the Resend API, and a log-only provider (the default, used
when no real provider is configured). Provider is selected via configuration.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from collections.abc import Callable
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any

import aiosmtplib
import httpx
import structlog

from worldleader.config import get_settings
from worldleader.email.templates import overtaken_email, password_reset_email, welcome_email

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

# Template registry: kind -> (function, context keys in call order)
_TEMPLATE_REGISTRY: dict[str, tuple[Callable[..., tuple[str, str, str]], tuple[str, ...]]] = {
    "WELCOME": (welcome_email, ("username", "continent", "initial_rank", "leaderboard_url")),
    "OVERTAKEN": (
        overtaken_email,
        ("username", "overtaken_by", "continent", "new_rank", "positions_lost", "leaderboard_url"),
    ),
    "PASSWORD_RESET": (password_reset_email, ("username", "reset_url", "ttl_minutes")),
}


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    name = "base"

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


class LogProvider(BaseEmailProvider):
    """Write emails to the log instead of sending them."""

    name = "log"

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        logger.info("email_logged", to=to_email, subject=subject, body=text_body)
        return True


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send via SMTP."""
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            tls_context = ssl.create_default_context() if self.use_tls else None
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=tls_context,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


class ResendProvider(BaseEmailProvider):
    """Send emails via Resend API."""

    name = "resend"

    def __init__(self, api_key: str, from_address: str, from_name: str) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send via Resend HTTP API."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self.from_name} <{self.from_address}>",
                        "to": [to_email],
                        "subject": subject,
                        "html": html_body,
                        "text": text_body,
                    },
                    timeout=10.0,
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


def _create_provider() -> BaseEmailProvider:
    """Create email provider based on configuration."""
    settings = get_settings()
    provider_name = settings.email_provider.lower()

    if provider_name == "log":
        return LogProvider()
    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        if not settings.resend_api_key:
            logger.warning("email_provider_unconfigured", provider="resend", fallback="log")
            return LogProvider()
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


def render_template(template_kind: str, context: dict[str, Any]) -> tuple[str, str, str]:
    """
    Render a template by kind.

    Raises:
        ValueError: If the kind is unknown or a context key is missing.
    """
    entry = _TEMPLATE_REGISTRY.get(template_kind)
    if entry is None:
        msg = f"Unknown template: {template_kind}"
        raise ValueError(msg)
    template_func, keys = entry
    missing = [k for k in keys if k not in context]
    if missing:
        msg = f"Missing context for {template_kind}: {', '.join(missing)}"
        raise ValueError(msg)
    return template_func(*(context[k] for k in keys))


class EmailService:
    """
    High-level email service for WorldLeader.io.

    Handles per-recipient rate limiting and template rendering.
    """

    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
        rate_limit_max: int | None = None,
    ) -> None:
        self.provider = provider or _create_provider()
        self._redis = redis
        self.rate_limit_max = rate_limit_max or get_settings().email_rate_limit_per_hour

    async def _check_rate_limit(self, email: str) -> bool:
        """Check if we can send another email to this address."""
        if self._redis is None:
            return True
        key = f"email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= self.rate_limit_max

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """
        Send an email with rate limiting.

        Returns True if sent, False if rate limited or failed.
        """
        if not await self._check_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(
        self,
        to: str,
        template_kind: str,
        context: dict[str, Any],
    ) -> bool:
        """
        Render a template and send.

        Args:
            to: Recipient email.
            template_kind: WELCOME, OVERTAKEN or PASSWORD_RESET.
            context: Template arguments by name.

        Raises:
            ValueError: If the template kind is unknown.
        """
        subject, html_body, text_body = render_template(template_kind, context)
        return await self.send_email(to, subject, html_body, text_body)


# Module-level singleton
_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Get or create the email service singleton."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    """Reset the email service singleton (for testing)."""
    global _email_service  # noqa: PLW0603
    _email_service = None
