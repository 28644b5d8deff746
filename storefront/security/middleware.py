"""Security middleware for FastAPI: CORS and rate limiting.

Middleware ordering (outermost first):
1. CORS -- handles OPTIONS preflight, single allowed origin
2. Rate limiting -- login attempts per client IP
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from storefront.config import Settings

logger = logging.getLogger(__name__)


def build_limiter() -> Limiter:
    """Per-app limiter keyed on client IP (in-memory storage)."""
    return Limiter(key_func=get_remote_address)


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    retry_after = getattr(exc, "retry_after", 60)
    logger.warning("Rate limit exceeded: %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": "Rate limit exceeded", "retry_after": retry_after},
        status_code=429,
        headers={"Retry-After": str(retry_after)},
    )


def install_security_middleware(app: FastAPI, limiter: Limiter, settings: Settings) -> None:
    """Install CORS and rate limiting on the FastAPI app.

    Middleware is added in reverse order (last added = outermost = runs first).
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
