"""Redis-backed fixed window rate limiting, per client IP and route."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from worldleader.config import Settings
from worldleader.redis_client import get_optional_redis

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitRule:
    """At most ``limit`` requests per ``window_seconds`` for one method + path."""

    name: str
    method: str
    path: str
    limit: int
    window_seconds: int


def default_rules(settings: Settings) -> list[RateLimitRule]:
    """Limits for the abuse-prone endpoints; everything else is unlimited."""
    return [
        RateLimitRule(
            "register", "POST", "/api/v1/auth/register",
            settings.rate_limit_register, settings.rate_limit_register_window_seconds,
        ),
        RateLimitRule(
            "login", "POST", "/api/v1/auth/login",
            settings.rate_limit_login, settings.rate_limit_login_window_seconds,
        ),
        RateLimitRule(
            "forgot_password", "POST", "/api/v1/auth/forgot-password",
            settings.rate_limit_forgot_password, settings.rate_limit_forgot_password_window_seconds,
        ),
        RateLimitRule(
            "reset_password", "POST", "/api/v1/auth/reset-password",
            settings.rate_limit_reset_password, settings.rate_limit_reset_password_window_seconds,
        ),
        RateLimitRule(
            "purchase", "POST", "/api/v1/purchase",
            settings.rate_limit_purchase, settings.rate_limit_purchase_window_seconds,
        ),
    ]


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit matching requests using Redis counters. Lets traffic through when Redis is unavailable."""

    def __init__(self, app: Any, rules: list[RateLimitRule], enabled: bool = True) -> None:  # noqa: ANN401
        super().__init__(app)
        self.enabled = enabled
        self._rules = {(r.method, r.path.rstrip("/")): r for r in rules}

    def match(self, request: Request) -> RateLimitRule | None:
        return self._rules.get((request.method, request.url.path.rstrip("/")))

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit, return 429 if exceeded."""
        rule = self.match(request) if self.enabled else None
        redis = get_optional_redis() if rule else None
        if rule is None or redis is None:
            return await call_next(request)

        window = int(time.time()) // rule.window_seconds
        rate_key = f"ratelimit:{rule.name}:{client_ip(request)}:{window}"

        try:
            pipe = redis.pipeline()
            pipe.incr(rate_key)
            pipe.expire(rate_key, rule.window_seconds + 1)
            results: list[Any] = await pipe.execute()
        except RedisError:
            logger.warning("rate_limit_unavailable", rule=rule.name, exc_info=True)
            return await call_next(request)

        current_count: int = results[0]
        remaining = max(0, rule.limit - current_count)
        retry_after = rule.window_seconds - int(time.time()) % rule.window_seconds

        if current_count > rule.limit:
            logger.info("rate_limited", rule=rule.name, ip=client_ip(request))
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(rule.limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Limit"] = str(rule.limit)
        return response
