# API key authentication middleware for the protected route groups.
# Constant-time comparison against every allowed key. Empty allow-list rejects all.


import secrets
from collections.abc import Iterable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from insurance_gateway.responses import error_response
from insurance_gateway.services import metrics

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "x-api-key"
FORBIDDEN_MESSAGE = "Forbidden: Invalid API key"

# Route groups behind the key check and the rate limiter
PROTECTED_PREFIXES: tuple[str, ...] = ("/recommendation", "/user")


def is_protected(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


def is_valid_key(provided: str, allowed: Iterable[str]) -> bool:
    if not provided:
        return False
    # No short-circuit: every key is compared so timing doesn't reveal position
    matched = False
    for key in allowed:
        matched |= secrets.compare_digest(provided.encode(), key.encode())
    return matched


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Validate x-api-key on protected paths; attach the key to request.state."""

    def __init__(self, app: Any, *, api_keys: frozenset[str]) -> None:
        super().__init__(app)
        self._api_keys = api_keys

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        if not is_protected(request.url.path):
            return await call_next(request)

        provided_key = request.headers.get(API_KEY_HEADER, "")

        if not is_valid_key(provided_key, self._api_keys):
            logger.warning(
                "auth_rejected",
                path=request.url.path,
                method=request.method,
                reason="missing_api_key" if not provided_key else "invalid_api_key",
            )
            metrics.record_rejection("auth")
            return error_response(403, FORBIDDEN_MESSAGE)

        request.state.api_key = provided_key
        return await call_next(request)
