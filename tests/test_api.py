"""Tests for the FastAPI endpoints."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from poolswap.config import Settings
from poolswap.factory import DRY_RUN_ACCOUNT, create_dry_run_ledger
from poolswap.web.app import create_app


@pytest.fixture
def settings():
    """Dry-run settings with fast receipt polling."""
    return Settings(
        environment="test",
        debug=True,
        dry_run=True,
        account_address=None,
        rpc_url="https://base-sepolia.g.alchemy.com/v2/abcdefghijklmnopqrstuvwxyz",
        receipt_poll_interval=0.001,
        receipt_timeout=0.2,
    )


@pytest.fixture
def ledger(settings):
    """Funded dry-run ledger."""
    return create_dry_run_ledger(settings)


@pytest.fixture
def test_app(settings, ledger):
    """Application wired to the dry-run ledger."""
    return create_app(settings=settings, ledger=ledger)


@pytest_asyncio.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test the basic health endpoint."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_detailed_health_redacts_rpc_key(self, client):
        """Test that detailed health hides the RPC key."""
        response = await client.get("/health/detailed")
        data = response.json()

        assert data["ledger"] == "dry_run"
        assert data["config"]["dry_run"] is True
        assert "abcdefghijklmnopqrstuvwxyz" not in data["config"]["rpc_url"]


class TestSwapEndpoints:
    """Tests for the swap form endpoints."""

    @pytest.mark.asyncio
    async def test_initial_state(self, client):
        """Test the form state before any input."""
        response = await client.get("/api/v1/swap")
        assert response.status_code == 200

        data = response.json()
        assert data["state"] == "idle"
        assert data["direction"] == "swap"
        assert data["from_token"]["symbol"] == "USDC"
        assert data["action_enabled"] is False

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client, ledger):
        """Test that a bad amount is rejected without ledger calls."""
        response = await client.post("/api/v1/swap/amount", json={"value": "abc"})
        data = response.json()

        assert response.status_code == 200
        assert data["state"] == "insufficient_input"
        assert data["last_error"]["type"] == "InputValidationError"
        assert ledger.total_calls == 0

    @pytest.mark.asyncio
    async def test_approve_swap_and_history(self, client, ledger):
        """Test approve, swap and the resulting history entry."""
        data = (await client.post("/api/v1/swap/amount", json={"value": "30"})).json()
        assert data["state"] == "needs_approval"
        assert data["computed_to_amount"] == "58.8"

        data = (await client.post("/api/v1/swap/action")).json()
        assert data["state"] == "ready"

        data = (await client.post("/api/v1/swap/action")).json()
        assert data["state"] == "idle"
        assert data["from_balance"] == "970"
        assert data["to_balance"] == "58.8"
        assert data["last_transaction"]["status"] == "confirmed"

        response = await client.get("/api/v1/transactions/history")
        history = response.json()
        assert history["success"] is True
        assert history["total"] == 1
        assert history["entries"][0]["action"] == "mint"
        assert history["entries"][0]["usdc_amount"] == "30"
        assert history["entries"][0]["bltm_amount"] == "58.8"

    @pytest.mark.asyncio
    async def test_max_switch_and_reset(self, client):
        """Test max, direction switch and reset."""
        data = (await client.post("/api/v1/swap/max")).json()
        assert data["from_amount"] == "1000"

        data = (await client.post("/api/v1/swap/switch")).json()
        assert data["direction"] == "redeem"
        assert data["from_amount"] == "2000"
        assert data["state"] == "insufficient_balance"

        data = (await client.post("/api/v1/swap/reset")).json()
        assert data["state"] == "idle"
        assert data["from_amount"] == ""


class TestHistoryEndpoints:
    """Tests for the history endpoint."""

    @pytest.mark.asyncio
    async def test_empty_history(self, client):
        """Test the history endpoint with no events."""
        response = await client.get("/api/v1/transactions/history")
        assert response.json() == {"success": True, "entries": [], "total": 0, "error": None}

    @pytest.mark.asyncio
    async def test_invalid_sort_key(self, client):
        """Test that an unknown sort key returns 400."""
        response = await client.get("/api/v1/transactions/history", params={"sort_by": "gas"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_fetch_failure(self, client, ledger):
        """Test that a failed fetch is reported as unsuccessful."""
        ledger.failing.add("get_events")

        response = await client.get("/api/v1/transactions/history")
        data = response.json()

        assert data["success"] is False
        assert data["error"]


def test_dry_run_account_is_used(test_app):
    """Test that dry-run mode drives the built-in account."""
    assert test_app.state.orchestrator.owner == DRY_RUN_ACCOUNT
