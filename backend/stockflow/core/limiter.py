# path: backend/stockflow/core/limiter.py
"""
Rate limiting support.
- A module-level slowapi Limiter is exposed so routes can use @limiter.limit(...).
- apply_rate_limiting() wires the middleware and the 429 handler into the app.
- RATE_LIMIT_ENABLED=false keeps the decorators but turns enforcement off.
"""
from typing import Tuple

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from stockflow.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)


def apply_rate_limiting(app) -> Tuple[Limiter, bool]:
    """
    Attach the limiter, SlowAPI middleware and exception handler.
    Returns (limiter, enabled_flag).
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter, limiter.enabled
