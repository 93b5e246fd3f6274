# ─────────────────────────────────────────────────────────────────────────────
# Response helpers — every body goes out as an Envelope
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse

from insurance_gateway.schemas import Envelope

INTERNAL_SERVER_ERROR = "Internal Server Error"


def send_response(
    status_code: int,
    payload: Envelope[Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Serialize an Envelope with the given status code."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload),
        headers=headers,
    )


def success_response(message: str, data: Any, status_code: int = 200) -> JSONResponse:
    return send_response(status_code, Envelope(success=True, message=message, data=data))


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return send_response(
        status_code, Envelope(success=False, message=message, data=None), headers=headers
    )


def bare_error_response() -> JSONResponse:
    """Backend-failure body. Deliberately not an Envelope (wire compatibility)."""
    return JSONResponse(status_code=500, content={"error": INTERNAL_SERVER_ERROR})
