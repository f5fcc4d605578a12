from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import AsyncWeb3

from core.exceptions import ContractResolutionException, RPCException
from wallet_exporter.services import ZERO_ADDRESS, ChainService

from tests.fakes import make_address


def contract_call(contract: MagicMock, function: str, result=None, error: Exception | None = None) -> None:
    call = AsyncMock(return_value=result, side_effect=error)
    getattr(contract.functions, function).return_value.call = call


@pytest.fixture
def chain(settings, logger) -> ChainService:
    """
    Chain service on an unreachable endpoint with mocked contracts.

    Returns
    -------
    ChainService
        Service whose contract calls are ``AsyncMock`` objects
    """
    web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://127.0.0.1:1"))
    service = ChainService(web3=web3, settings=settings, logger=logger)
    service.warm_storage = MagicMock()
    service.registry = MagicMock()
    service.view = MagicMock()
    service.payments = MagicMock()
    return service


class TestChainService:
    """
    Tests for decoding contract results, with the RPC layer mocked.
    """

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self, chain):
        chain.web3.is_connected = AsyncMock(return_value=False)

        with pytest.raises(RPCException):
            await chain.resolve_contracts()

    @pytest.mark.asyncio
    async def test_resolve_contracts(self, chain):
        chain.web3.is_connected = AsyncMock(return_value=True)
        contract_call(chain.warm_storage, "viewContractAddress", make_address(11))
        contract_call(chain.warm_storage, "serviceProviderRegistry", make_address(12))

        await chain.resolve_contracts()

        assert chain.view.address == make_address(11)
        assert chain.registry.address == make_address(12)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("view_address,error", [
        (ZERO_ADDRESS, None),
        (None, ValueError("execution reverted")),
    ])
    async def test_unresolvable_contracts(self, chain, view_address, error):
        """
        Test that a zero address or a reverted call aborts startup.
        """
        chain.web3.is_connected = AsyncMock(return_value=True)
        contract_call(chain.warm_storage, "viewContractAddress", view_address, error)
        contract_call(chain.warm_storage, "serviceProviderRegistry", make_address(12))

        with pytest.raises(ContractResolutionException):
            await chain.resolve_contracts()

    @pytest.mark.asyncio
    async def test_get_provider(self, chain):
        contract_call(chain.registry, "getProvider", (
            3,
            (make_address(3), make_address(4), "sp-three", "Third provider", True)
        ))

        provider = await chain.get_provider(3)

        assert provider.provider_id == 3
        assert provider.service_provider == make_address(3)
        assert provider.payee == make_address(4)
        assert provider.name == "sp-three"
        assert provider.is_active is True

    @pytest.mark.asyncio
    async def test_get_provider_product_decodes_capabilities(self, chain):
        """
        Test that capability values are decoded and kept in registry order.
        """
        contract_call(chain.registry, "getProviderWithProduct", (
            3,
            (make_address(3), make_address(4), "sp-three", "", False),
            (0, b"", ["serviceURL", "location", "serviceURL"], True),
            [b"https://a.example.com", b"eu-west", b"https://b.example.com"]
        ))

        product = await chain.get_provider_product(3)

        assert product.is_active is True
        assert product.provider_is_active is False
        assert product.capabilities == (
            ("serviceURL", "https://a.example.com"),
            ("location", "eu-west"),
            ("serviceURL", "https://b.example.com"),
        )
        assert product.capability("serviceURL") == "https://a.example.com"
        assert product.capability("missing") is None

    @pytest.mark.asyncio
    async def test_get_approved_provider_ids(self, chain):
        contract_call(chain.view, "getApprovedProviders", [4, 1, 4])

        assert await chain.get_approved_provider_ids() == frozenset({1, 4})

    @pytest.mark.asyncio
    async def test_get_payment_account(self, chain):
        contract_call(chain.payments, "getAccountInfoIfSettled", (5000, 30, 10, 2))

        account = await chain.get_payment_account(make_address(8))

        assert account.funded_until_epoch == 5000
        assert account.funds == 30
        assert account.available == 10

    @pytest.mark.asyncio
    async def test_no_payments_contract(self, chain):
        chain.payments = None

        assert await chain.get_payment_account(make_address(8)) is None
