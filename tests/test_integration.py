# ─────────────────────────────────────────────────────────────────────────────
# Integration tests — full gating pipeline over httpx.AsyncClient
# ─────────────────────────────────────────────────────────────────────────────
# ASGITransport doesn't run the lifespan; the backend is attached to app.state
# directly. Concurrent bursts check that the limiter never admits more than N.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import asyncio
from collections import Counter
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from insurance_gateway.config import Settings
from insurance_gateway.main import create_app
from insurance_gateway.services.backend import SupabaseBackend
from tests.conftest import SECOND_API_KEY, TEST_API_KEY

_LIMIT = 5
_BODY = {"age": 30, "income": 50000, "dependents": 2, "risk": "Medium"}


@pytest.fixture
def slow_backend() -> MagicMock:
    """Backend whose calls suspend, so concurrent requests interleave."""

    async def _recommend(**kwargs):
        await asyncio.sleep(0.01)
        return [{"plan": "X", "risk": kwargs["risk_tolerance"]}]

    async def _all_requests():
        await asyncio.sleep(0.01)
        return []

    backend = MagicMock(spec=SupabaseBackend)
    backend.get_life_insurance_recommendation = AsyncMock(side_effect=_recommend)
    backend.get_all_user_requests = AsyncMock(side_effect=_all_requests)
    backend.insert_user_request = AsyncMock(return_value=None)
    return backend


@pytest.fixture
async def client(slow_backend):
    settings = Settings(
        api_keys=f"{TEST_API_KEY},{SECOND_API_KEY}",
        max_request_per_15_minutes=_LIMIT,
        log_json=False,
    )
    app = create_app(settings)
    app.state.backend = slow_backend

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestConcurrentBursts:
    async def test_burst_from_one_key_admits_exactly_limit(self, client: AsyncClient) -> None:
        headers = {"x-api-key": TEST_API_KEY}
        responses = await asyncio.gather(
            *[client.get("/user/logs", headers=headers) for _ in range(_LIMIT * 4)]
        )
        statuses = Counter(r.status_code for r in responses)
        assert statuses == {200: _LIMIT, 429: _LIMIT * 3}

    async def test_bursts_from_two_keys_are_independent(self, client: AsyncClient) -> None:
        requests = [
            client.get("/user/logs", headers={"x-api-key": key})
            for key in (TEST_API_KEY, SECOND_API_KEY)
            for _ in range(_LIMIT + 2)
        ]
        responses = await asyncio.gather(*requests)
        assert sum(r.status_code == 200 for r in responses) == _LIMIT * 2
        assert sum(r.status_code == 429 for r in responses) == 4


class TestEndToEnd:
    async def test_recommendation_flow(self, client: AsyncClient, slow_backend) -> None:
        response = await client.post(
            "/recommendation/insurance_plans",
            json=_BODY,
            headers={"x-api-key": TEST_API_KEY, "x-real-ip": "198.51.100.4"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Recommendation generated successfully",
            "data": [{"plan": "X", "risk": "medium"}],
        }
        record = slow_backend.insert_user_request.await_args.args[0]
        assert record.ip_address == "198.51.100.4"
        assert record.risk_tolerance == "Medium"

    async def test_every_status_carries_json(self, client: AsyncClient) -> None:
        headers = {"x-api-key": TEST_API_KEY}
        responses = [
            await client.get("/user/logs"),
            await client.post("/recommendation/insurance_plans", json={}, headers=headers),
            await client.get("/user/logs", headers=headers),
        ]
        assert [r.status_code for r in responses] == [403, 400, 200]
        for response in responses:
            assert response.headers["content-type"] == "application/json"
            assert set(response.json()) == {"success", "message", "data"}
