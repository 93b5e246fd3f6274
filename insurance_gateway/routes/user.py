# ─────────────────────────────────────────────────────────────────────────────
# GET /user/logs — every recorded recommendation request
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from insurance_gateway.dependencies import get_backend
from insurance_gateway.rate_limit import PROTECTED_SCOPE, current_limit, limiter
from insurance_gateway.responses import success_response
from insurance_gateway.schemas import Envelope
from insurance_gateway.services.backend import InsuranceBackend

router = APIRouter()

ALL_USER_REQUESTS = "All user requests"


@router.get("/logs", response_model=Envelope[Any])
@limiter.shared_limit(current_limit, scope=PROTECTED_SCOPE)
async def logs(request: Request) -> JSONResponse:
    """Return the audit history. Errors are exceptions; this endpoint is wiring."""
    backend: InsuranceBackend = get_backend(request)
    records = await backend.get_all_user_requests()
    return success_response(ALL_USER_REQUESTS, records)
