# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from insurance_gateway.responses import (
    INTERNAL_SERVER_ERROR,
    bare_error_response,
    error_response,
)
from insurance_gateway.services import metrics

logger = structlog.get_logger(__name__)

MISSING_REQUIRED_FIELDS = "Missing required fields"


def _cors_headers(request: Request) -> dict[str, str] | None:
    """Allow-origin headers for the configured origin.

    The catch-all handler runs outside CORSMiddleware, so its 500 response
    would otherwise reach the browser without them.
    """
    origin = request.headers.get("origin")
    settings = getattr(request.app.state, "settings", None)
    if origin is None or settings is None or origin != settings.application_url:
        return None
    return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}


# ── Exception hierarchy ──────────────────────────────────────────────────────


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MissingFieldsError(GatewayError):
    """Raised when a required body field is absent or falsy."""

    def __init__(self) -> None:
        super().__init__(MISSING_REQUIRED_FIELDS, status_code=400)


class BackendError(GatewayError):
    """Raised when a backend procedure or table call fails."""

    def __init__(self, procedure: str, reason: str):
        self.procedure = procedure
        self.reason = reason
        super().__init__(f"Backend call '{procedure}' failed: {reason}", status_code=500)


class BackendNotConfiguredError(GatewayError):
    """Raised when a route needs the backend but SUPABASE_URL/KEY are unset."""

    def __init__(self) -> None:
        super().__init__("Backend client is not configured", status_code=500)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Routes raise GatewayError subclasses; these handlers turn them into
    responses so endpoints stay free of inline try/except.
    """

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
        """500 with the bare {"error": ...} body, not the envelope."""
        logger.error(
            "backend_call_failed",
            procedure=exc.procedure,
            error=exc.reason,
            path=request.url.path,
        )
        metrics.record_backend_failure(exc.procedure)
        return bare_error_response()

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("gateway_error", error=exc.message, error_type=type(exc).__name__)
            return error_response(exc.status_code, INTERNAL_SERVER_ERROR)
        logger.info("request_rejected", error=exc.message, path=request.url.path)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed JSON or wrongly-typed fields answer like missing fields."""
        logger.info("request_body_invalid", path=request.url.path, errors=len(exc.errors()))
        return error_response(400, MISSING_REQUIRED_FIELDS)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """404/405 and friends still carry the envelope."""
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=exc,
        )
        return error_response(500, INTERNAL_SERVER_ERROR, headers=_cors_headers(request))
