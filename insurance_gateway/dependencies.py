# ─────────────────────────────────────────────────────────────────────────────
# Request-scoped providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → routes look it up.
# Routes call these inside the handler body, after the rate limiter has
# counted the request.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from insurance_gateway.exceptions import BackendNotConfiguredError
from insurance_gateway.services.backend import InsuranceBackend


def get_backend(request: Request) -> InsuranceBackend:
    """Backend client from app.state; 500 envelope when it was never configured."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise BackendNotConfiguredError()
    return backend  # type: ignore[no-any-return]
