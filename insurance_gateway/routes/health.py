# ─────────────────────────────────────────────────────────────────────────────
# Operational Routes — liveness probe and Prometheus exposition
# ─────────────────────────────────────────────────────────────────────────────
# Neither route sits behind the API key or the rate limiter.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter
from fastapi.responses import Response

from insurance_gateway.schemas import LivenessResponse
from insurance_gateway.services import metrics

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe: is the process alive? No backend I/O."""
    return LivenessResponse(status="ok")


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus text exposition format metrics endpoint."""
    return Response(
        content=metrics.render_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
