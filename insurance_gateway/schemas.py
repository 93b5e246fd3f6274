# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, JsonValue

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform response body: {success, message, data}."""

    success: bool
    message: str
    data: T | None = None


class RecommendationRequest(BaseModel):
    """Body of POST /recommendation/insurance_plans.

    Fields are untyped JSON: the route only checks that age, income and risk
    are truthy, and values are forwarded to the backend as sent.
    """

    model_config = ConfigDict(extra="ignore")

    age: JsonValue = Field(None, description="Applicant age")
    income: JsonValue = Field(None, description="Annual income")
    dependents: JsonValue = Field(None, description="Number of dependents")
    risk: JsonValue = Field(None, description="Risk tolerance, case-insensitive")


class UserRequestRecord(BaseModel):
    """Audit row written to the user_inputs table after a recommendation."""

    age: JsonValue
    income: JsonValue
    dependents: JsonValue = None
    risk_tolerance: str
    ip_address: str
    recommendations: Any = None


class LivenessResponse(BaseModel):
    """Liveness probe: minimal, near-zero cost."""

    status: str = "ok"
