# ─────────────────────────────────────────────────────────────────────────────
# Request Middleware — request ID, timing, structured logging, metrics
# ─────────────────────────────────────────────────────────────────────────────


import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from insurance_gateway.services import metrics

logger = structlog.get_logger()


def _route_label(request: Request) -> str:
    """Full route template (bounded label set); "unmatched" for 404s and gate rejections.

    An included router's route may only know its path relative to the router
    prefix, so the prefix consumed on the way in (root_path beyond the app's
    own root) is put back in front of it.
    """
    scope = request.scope
    template = getattr(scope.get("route"), "path", None)
    if template is None:
        return "unmatched"

    root_path = scope.get("root_path", "")
    app_root_path = scope.get("app_root_path", root_path)
    template = root_path[len(app_root_path):] + template

    # A template without parameters must equal the app-relative request path.
    if "{" not in template:
        path = request.url.path
        if app_root_path and path.startswith(app_root_path):
            path = path[len(app_root_path):]
        return path
    return template


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Adds request ID, logs timing, records request metrics.

    Skips logging for /health (too noisy from liveness probes).
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()

        try:
            response: Response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        duration_s = time.perf_counter() - start
        duration_ms = duration_s * 1000
        metrics.record_request(request.method, _route_label(request), response.status_code, duration_s)

        if not request.url.path.startswith("/health"):
            logger.info(
                "request_completed",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path),
                status=response.status_code,
                duration_ms=round(duration_ms, 1),
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(round(duration_ms, 1))
        return response
