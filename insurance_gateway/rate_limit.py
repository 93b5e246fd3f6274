# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiter — shared slowapi instance
# ─────────────────────────────────────────────────────────────────────────────
# Extracted to its own module to avoid circular imports between main.py
# (which imports route modules) and route modules (which need the limiter).
#
# Fixed 15-minute window per identity. The in-memory `limits` storage sets
# the window expiry on the first hit and serializes increments per key.
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from insurance_gateway.responses import error_response
from insurance_gateway.services import metrics

logger = structlog.get_logger(__name__)

WINDOW_SECONDS = 15 * 60
TOO_MANY_REQUESTS = "Too many requests"

# Both protected groups draw from one quota per identity
PROTECTED_SCOPE = "protected"

_limit_value = "10 per 15 minutes"


def rate_limit_identity(request: Request) -> str:
    """API key attached by APIKeyMiddleware, else the raw client address."""
    api_key = getattr(request.state, "api_key", None)
    if api_key:
        return str(api_key)
    return get_remote_address(request)


def configure_limit(rate_limit: str) -> None:
    """Set the per-window limit (`limits` notation). Called by create_app()."""
    global _limit_value  # noqa: PLW0603
    _limit_value = rate_limit


def current_limit() -> str:
    return _limit_value


limiter = Limiter(key_func=rate_limit_identity, storage_uri="memory://")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 envelope with Retry-After set to the window length."""
    logger.warning(
        "rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    metrics.record_rejection("rate_limit")
    return error_response(
        429,
        TOO_MANY_REQUESTS,
        headers={"Retry-After": str(WINDOW_SECONDS)},
    )
