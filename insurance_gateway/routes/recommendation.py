# ─────────────────────────────────────────────────────────────────────────────
# POST /recommendation/insurance_plans — forward to the recommendation procedure
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from insurance_gateway.dependencies import get_backend
from insurance_gateway.exceptions import MissingFieldsError
from insurance_gateway.rate_limit import PROTECTED_SCOPE, current_limit, limiter
from insurance_gateway.responses import success_response
from insurance_gateway.schemas import Envelope, RecommendationRequest, UserRequestRecord
from insurance_gateway.services import metrics
from insurance_gateway.services.backend import InsuranceBackend

logger = structlog.get_logger(__name__)

router = APIRouter()

RECOMMENDATION_GENERATED = "Recommendation generated successfully"


def resolve_client_ip(request: Request) -> str:
    """Forwarded-for header(s), then real-ip header, then the socket peer.

    Repeated forwarded-for headers are joined with ", " as a proxy chain.
    """
    forwarded = request.headers.getlist("x-forwarded-for")
    if forwarded:
        return ", ".join(forwarded)
    real_ip = request.headers.get("x-real-ip")
    if real_ip is not None:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@router.post("/insurance_plans", response_model=Envelope[Any])
@limiter.shared_limit(current_limit, scope=PROTECTED_SCOPE)
async def insurance_plans(
    request: Request,
    body: RecommendationRequest,
) -> JSONResponse:
    """Compute plan recommendations and record the request for auditing.

    Backend failure on the recommendation call answers with the bare
    {"error": ...} body (BackendError handler). A failed audit insert is
    logged and does not change the response.
    """
    if not body.age or not body.income or not body.risk:
        raise MissingFieldsError()

    backend: InsuranceBackend = get_backend(request)
    ip_address = resolve_client_ip(request)

    data = await backend.get_life_insurance_recommendation(
        age=body.age,
        income=body.income,
        dependents=body.dependents,
        risk_tolerance=body.risk.lower(),
    )

    record = UserRequestRecord(
        age=body.age,
        income=body.income,
        dependents=body.dependents,
        risk_tolerance=body.risk,
        ip_address=ip_address,
        recommendations=data,
    )
    try:
        await backend.insert_user_request(record)
    except Exception:
        logger.exception("audit_insert_failed", ip_address=ip_address)
        metrics.record_audit_insert_failure()

    return success_response(RECOMMENDATION_GENERATED, data)
