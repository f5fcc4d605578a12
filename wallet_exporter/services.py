import logging

from web3 import AsyncWeb3

from core.environment.config import Settings
from core.exceptions import ContractResolutionException, RPCException
from wallet_exporter.abis import (
    ERC20_ABI,
    PAYMENTS_ABI,
    PDP_PRODUCT_TYPE,
    SERVICE_PROVIDER_REGISTRY_ABI,
    WARM_STORAGE_ABI,
    WARM_STORAGE_VIEW_ABI,
)
from wallet_exporter.entities import (
    PaymentAccountEntity,
    ProviderInfoEntity,
    ProviderProductEntity,
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ChainService:
    """
    Service for reading wallet and registry state from the chain.

    Contracts that depend on the warm storage service (state view and
    provider registry) are only available after ``resolve_contracts``.

    Parameters
    ----------
    web3 : AsyncWeb3
        Web3 client
    settings : Settings
        Exporter settings with contract addresses
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, web3: AsyncWeb3, settings: Settings, logger: logging.Logger):
        self.web3 = web3
        self.settings = settings
        self.logger = logger

        self.token_address = web3.to_checksum_address(settings.usdfc_token_address)
        self.warm_storage = web3.eth.contract(
            address=web3.to_checksum_address(settings.warm_storage_address),
            abi=WARM_STORAGE_ABI
        )
        self.token = web3.eth.contract(address=self.token_address, abi=ERC20_ABI)
        self.payments = None
        if settings.payments_address:
            self.payments = web3.eth.contract(
                address=web3.to_checksum_address(settings.payments_address),
                abi=PAYMENTS_ABI
            )

        self.view = None
        self.registry = None

    async def resolve_contracts(self) -> None:
        """
        Check connectivity and resolve the dependent contract addresses.

        Raises
        ------
        RPCException
            If the RPC endpoint cannot be reached
        ContractResolutionException
            If the view or registry address cannot be resolved
        """
        if not await self.web3.is_connected():
            raise RPCException(f"cannot reach RPC endpoint {self.settings.rpc_url}")

        try:
            view_address = await self.warm_storage.functions.viewContractAddress().call()
            registry_address = await self.warm_storage.functions.serviceProviderRegistry().call()
        except Exception as e:
            raise ContractResolutionException(
                f"failed to resolve contracts from warm storage {self.settings.warm_storage_address}: {e}"
            ) from e

        for label, address in (("view contract", view_address), ("provider registry", registry_address)):
            if not address or address == ZERO_ADDRESS:
                raise ContractResolutionException(f"warm storage returned no {label} address")

        self.view = self.web3.eth.contract(address=view_address, abi=WARM_STORAGE_VIEW_ABI)
        self.registry = self.web3.eth.contract(address=registry_address, abi=SERVICE_PROVIDER_REGISTRY_ABI)
        self.logger.info(f"Resolved view contract {view_address}, provider registry {registry_address}")

    def to_checksum_address(self, address: str) -> str:
        return self.web3.to_checksum_address(address)

    async def get_native_balance(self, address: str) -> int:
        """
        Get FIL balance at the latest block.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        int
            Balance in attoFIL
        """
        return int(await self.web3.eth.get_balance(self.web3.to_checksum_address(address)))

    async def get_token_balance(self, address: str) -> int:
        """
        Get USDFC balance.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        int
            Balance in token base units
        """
        return int(await self.token.functions.balanceOf(self.web3.to_checksum_address(address)).call())

    async def get_provider_count(self) -> int:
        return int(await self.registry.functions.getProviderCount().call())

    async def get_approved_provider_ids(self) -> frozenset[int]:
        # offset 0, limit 0 returns the whole set
        provider_ids = await self.view.functions.getApprovedProviders(0, 0).call()
        return frozenset(int(provider_id) for provider_id in provider_ids)

    async def get_provider(self, provider_id: int) -> ProviderInfoEntity:
        """
        Get a provider registry entry.

        Parameters
        ----------
        provider_id : int
            Registry identifier

        Returns
        -------
        ProviderInfoEntity
            Provider info
        """
        _, info = await self.registry.functions.getProvider(provider_id).call()
        service_provider, payee, name, description, is_active = info
        return ProviderInfoEntity(
            provider_id=provider_id,
            service_provider=service_provider,
            payee=payee,
            name=name,
            description=description,
            is_active=is_active
        )

    async def get_provider_product(self, provider_id: int) -> ProviderProductEntity:
        """
        Get the provider's PDP product with its capability list.

        Parameters
        ----------
        provider_id : int
            Registry identifier

        Returns
        -------
        ProviderProductEntity
            Product and provider active flags, capabilities in registry order
        """
        result = await self.registry.functions.getProviderWithProduct(provider_id, PDP_PRODUCT_TYPE).call()
        _, info, product, values = result
        _, _, keys, is_active = product
        provider_is_active = info[4]
        capabilities = tuple(
            (key, self._decode_capability(value)) for key, value in zip(keys, values)
        )
        return ProviderProductEntity(
            provider_id=provider_id,
            is_active=is_active,
            provider_is_active=provider_is_active,
            capabilities=capabilities
        )

    async def get_payment_account(self, address: str) -> PaymentAccountEntity | None:
        """
        Get the settled USDFC payment account of a wallet.

        Parameters
        ----------
        address : str
            Account owner

        Returns
        -------
        PaymentAccountEntity | None
            Account figures, None if no payments contract is configured
        """
        if self.payments is None:
            return None

        funded_until, funds, available, _ = await self.payments.functions.getAccountInfoIfSettled(
            self.token_address, self.web3.to_checksum_address(address)
        ).call()
        return PaymentAccountEntity(funds=funds, available=available, funded_until_epoch=funded_until)

    @staticmethod
    def _decode_capability(value: bytes | str) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return str(value)
