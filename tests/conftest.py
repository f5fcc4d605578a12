import logging
import os

import aiohttp
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Set test environment variables before imports
os.environ['ENV_FILE'] = os.path.join(os.path.dirname(__file__), '.env.test-missing')
os.environ['NETWORK'] = 'calibration'
os.environ['METRICS_PREFIX'] = 'dealbot'

from core.environment.config import CustomWallet, Settings  # noqa: E402
from wallet_exporter.entities import SnapshotEntity  # noqa: E402

from tests.fakes import make_address  # noqa: E402


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("wallet_exporter.tests")


@pytest.fixture
def settings() -> Settings:
    return Settings(custom_wallets=[], max_concurrent_requests=10)


@pytest.fixture
def client_wallet() -> CustomWallet:
    return CustomWallet(address=make_address(501), name="Client A", type="client")


@pytest_asyncio.fixture
async def http_session():
    """Real aiohttp session for probe tests."""
    async with aiohttp.ClientSession() as session:
        yield session


@pytest_asyncio.fixture
async def app_container():
    """
    Application DI container with the snapshot reset after each test.

    Yields
    ------
    AsyncContainer
        The container used by the FastAPI app
    """
    from core.container import container
    from wallet_exporter.metrics import MetricPublisher
    from wallet_exporter.store import SnapshotStore

    yield container

    store = await container.get(SnapshotStore, component="wallets")
    store.replace(SnapshotEntity())
    publisher = await container.get(MetricPublisher, component="wallets")
    publisher.publish(SnapshotEntity())


@pytest_asyncio.fixture
async def client(app_container):
    """
    Fixture for async test client.

    The ASGI transport does not run the lifespan, so no RPC connection is
    made and the scheduler stays idle.

    Yields
    ------
    AsyncClient
        Async HTTP client for testing
    """
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
