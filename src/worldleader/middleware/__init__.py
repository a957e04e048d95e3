"""Middleware registration."""

from fastapi import FastAPI

from worldleader.config import Settings
from worldleader.middleware.cors import setup_cors
from worldleader.middleware.error_handler import setup_error_handlers
from worldleader.middleware.logging import setup_logging
from worldleader.middleware.rate_limit import RateLimitMiddleware, default_rules
from worldleader.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        rules=default_rules(settings),
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
