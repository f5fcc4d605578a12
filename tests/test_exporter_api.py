from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient

from wallet_exporter.entities import PingResultEntity, SnapshotEntity, WalletEntity, WalletKind
from wallet_exporter.metrics import MetricPublisher
from wallet_exporter.store import SnapshotStore

from tests.fakes import UNIT, make_address


@pytest_asyncio.fixture
async def populated(app_container) -> SnapshotEntity:
    """
    Publish a snapshot with one provider and one client wallet.

    Returns
    -------
    SnapshotEntity
        The published snapshot
    """
    snapshot = SnapshotEntity(
        wallets=(
            WalletEntity(
                address=make_address(1),
                name="sp-one",
                description="First provider",
                kind=WalletKind.PROVIDER,
                provider_id=1,
                is_active=True,
                is_approved=True,
                native_balance=12 * UNIT,
                token_balance=3 * UNIT,
                ping_result=PingResultEntity(success=True, duration_ms=42.0, service_url="https://sp1.example.com")
            ),
            WalletEntity(
                address=make_address(501),
                name="Client A",
                kind=WalletKind.CLIENT,
                native_balance=UNIT // 4
            ),
        ),
        captured_at=datetime.now(timezone.utc) - timedelta(seconds=75)
    )
    store = await app_container.get(SnapshotStore, component="wallets")
    publisher = await app_container.get(MetricPublisher, component="wallets")
    store.replace(snapshot)
    publisher.publish(snapshot)
    return snapshot


class TestExporterAPI:
    """
    Tests for the exporter HTTP surface.

    The application lifespan is not run, so the scheduler never starts and
    every test publishes the snapshot it needs.
    """

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        """
        Test root endpoint returns application information.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        """
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Dealbot Wallet Exporter"
        assert data["endpoints"]["metrics"] == "/metrics"
        assert data["endpoints"]["status"] == "/status"

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        """
        Test health check is ok before any scrape.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        """
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_metrics_content_type(self, client: AsyncClient):
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "dealbot_wallets_monitored 0.0" in response.text

    @pytest.mark.asyncio
    async def test_metrics_after_publish(self, client: AsyncClient, populated):
        """
        Test that published wallets appear in the exposition with their labels.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        populated : SnapshotEntity
            Published snapshot
        """
        response = await client.get("/metrics")
        text = response.text
        assert (
            f'dealbot_wallet_fil_balance{{address="{make_address(1)}",name="sp-one",type="provider",'
            f'provider_id="1",is_active="true",approved="true"}} 12.0'
        ) in text
        assert (
            f'dealbot_wallet_fil_balance{{address="{make_address(501)}",name="Client A",type="client",'
            f'provider_id="",is_active="",approved=""}} 0.25'
        ) in text
        assert 'service_url="https://sp1.example.com"' in text

    @pytest.mark.asyncio
    async def test_status_before_first_scrape(self, client: AsyncClient):
        response = await client.get("/status")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "Network: calibration" in response.text
        assert "Wallets monitored: 0" in response.text
        assert "Last scrape: never" in response.text

    @pytest.mark.asyncio
    async def test_status_lists_wallets(self, client: AsyncClient, populated):
        """
        Test the status page groups providers and client wallets.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        populated : SnapshotEntity
            Published snapshot
        """
        response = await client.get("/status")
        text = response.text
        assert "Wallets monitored: 2" in text
        assert "Time since last scrape: 1m1" in text
        assert "Storage Providers (1):" in text
        assert "  - ID: 1, Name: sp-one" in text
        assert "    FIL Balance: 12.000000 FIL" in text
        assert "    Approved: true" in text
        assert "    Ping: ok (42 ms) https://sp1.example.com" in text
        assert "Client Wallets (1):" in text
        assert "  - Name: Client A" in text
        assert "Other Wallets" not in text

    @pytest.mark.asyncio
    async def test_list_wallets(self, client: AsyncClient, populated):
        response = await client.get("/api/wallets")
        assert response.status_code == 200
        data = response.json()
        assert data["network"] == "calibration"
        assert data["total_wallets"] == 2
        assert [w["type"] for w in data["wallets"]] == ["provider", "client"]
        assert data["wallets"][0]["fil_balance_wei"] == 12 * UNIT
        assert data["wallets"][0]["ping"]["success"] is True
        assert data["wallets"][1]["provider_id"] is None
        assert data["wallets"][1]["approved"] is None

    @pytest.mark.asyncio
    async def test_list_wallets_before_first_scrape(self, client: AsyncClient):
        response = await client.get("/api/wallets")
        assert response.status_code == 200
        data = response.json()
        assert data["last_scrape"] is None
        assert data["wallets"] == []

    @pytest.mark.asyncio
    async def test_get_wallet(self, client: AsyncClient, populated):
        """
        Test single wallet lookup, case insensitive.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        populated : SnapshotEntity
            Published snapshot
        """
        response = await client.get(f"/api/wallets/{make_address(501)}")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Client A"
        assert data["fil_balance"] == 0.25

    @pytest.mark.asyncio
    async def test_get_wallet_invalid_address(self, client: AsyncClient):
        response = await client.get("/api/wallets/not-an-address")
        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "error.address.invalid"}

    @pytest.mark.asyncio
    async def test_get_wallet_not_found(self, client: AsyncClient, populated):
        response = await client.get(f"/api/wallets/{make_address(999)}")
        assert response.status_code == 404
        assert response.json()["message"] == "error.wallet.not_found"

    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/nope")
        assert response.status_code == 404
        assert response.json()["status"] == "error"
