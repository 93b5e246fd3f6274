# Backend client: Supabase stored procedures + the user_inputs audit table.
# Failures surface as BackendError; routes never see postgrest/httpx types.


from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from opentelemetry import trace
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from insurance_gateway.config import Settings
from insurance_gateway.exceptions import BackendError
from insurance_gateway.schemas import UserRequestRecord

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

RECOMMENDATION_PROCEDURE = "get_life_insurance_recommendation"
USER_REQUESTS_PROCEDURE = "get_all_user_requests"
USER_INPUTS_TABLE = "user_inputs"


@runtime_checkable
class InsuranceBackend(Protocol):
    """Remote procedures the gateway forwards to."""

    async def get_life_insurance_recommendation(
        self,
        age: Any,
        income: Any,
        dependents: Any,
        risk_tolerance: str,
    ) -> Any: ...

    async def get_all_user_requests(self) -> Any: ...

    async def insert_user_request(self, record: UserRequestRecord) -> None: ...


class SupabaseBackend:
    """InsuranceBackend over the async supabase client."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseBackend":
        client = await acreate_client(
            settings.supabase_url, settings.supabase_key.get_secret_value()
        )
        logger.info("backend_connected", url=settings.supabase_url)
        return cls(client)

    async def get_life_insurance_recommendation(
        self,
        age: Any,
        income: Any,
        dependents: Any,
        risk_tolerance: str,
    ) -> Any:
        params = {
            "input_age": age,
            "input_income": income,
            "input_dependents": dependents,
            "input_risk_tolerance": risk_tolerance,
        }
        return await self._rpc(RECOMMENDATION_PROCEDURE, params)

    async def get_all_user_requests(self) -> Any:
        return await self._rpc(USER_REQUESTS_PROCEDURE, {})

    async def insert_user_request(self, record: UserRequestRecord) -> None:
        with tracer.start_as_current_span("backend.insert") as span:
            span.set_attribute("table", USER_INPUTS_TABLE)
            try:
                await self._client.table(USER_INPUTS_TABLE).insert(record.model_dump()).execute()
            except (APIError, httpx.HTTPError) as e:
                span.set_attribute("error", True)
                raise BackendError(USER_INPUTS_TABLE, _describe(e)) from e

    async def _rpc(self, procedure: str, params: dict[str, Any]) -> Any:
        with tracer.start_as_current_span("backend.rpc") as span:
            span.set_attribute("procedure", procedure)
            try:
                response = await self._client.rpc(procedure, params).execute()
            except (APIError, httpx.HTTPError) as e:
                span.set_attribute("error", True)
                raise BackendError(procedure, _describe(e)) from e
            return response.data


def _describe(exc: Exception) -> str:
    if isinstance(exc, APIError):
        return f"{exc.code}: {exc.message}"
    return f"{type(exc).__name__}: {exc}"
