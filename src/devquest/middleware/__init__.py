"""Middleware registration."""

from fastapi import FastAPI

from devquest.config import Settings
from devquest.middleware.cors import setup_cors
from devquest.middleware.error_handler import setup_error_handlers
from devquest.middleware.logging import AccessLogMiddleware, setup_logging
from devquest.middleware.rate_limit import RateLimitMiddleware
from devquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS stays outermost so 429 responses from the rate limiter carry CORS headers,
    and the request id is bound before the access log line is written.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        limited_paths=settings.rate_limit_paths,
    )
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
