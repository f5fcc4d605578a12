import logging
from collections.abc import Awaitable
from typing import TypeVar

from core.environment.config import CustomWallet
from core.exceptions import EntityFetchException
from wallet_exporter.entities import (
    PaymentAccountEntity,
    ScrapeReport,
    WalletEntity,
    WalletKind,
)
from wallet_exporter.services import ChainService

T = TypeVar("T")


class EntityEnricher:
    """
    Builds one ``WalletEntity`` per provider ID or custom wallet.

    Provider info and native balance are foundational: if either fails the
    record fails with ``EntityFetchException``. Token balance and payment
    account are best effort and fall back to zero.

    Parameters
    ----------
    chain : ChainService
        Remote data source
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, chain: ChainService, logger: logging.Logger):
        self.chain = chain
        self.logger = logger

    async def enrich_provider(
        self,
        provider_id: int,
        approved_ids: frozenset[int],
        report: ScrapeReport
    ) -> WalletEntity:
        """
        Build the record of a registered storage provider.

        Parameters
        ----------
        provider_id : int
            Registry identifier
        approved_ids : frozenset[int]
            Provider IDs approved by the warm storage service
        report : ScrapeReport
            Cycle report, receives degraded field counts

        Returns
        -------
        WalletEntity
            Provider record

        Raises
        ------
        EntityFetchException
            If provider info or native balance cannot be fetched
        """
        identifier = f"provider {provider_id}"
        try:
            info = await self.chain.get_provider(provider_id)
            native_balance = await self.chain.get_native_balance(info.service_provider)
        except Exception as e:
            raise EntityFetchException(identifier, e) from e

        address = info.service_provider
        token_balance = await self._best_effort(identifier, "USDFC balance", self.chain.get_token_balance(address), 0, report)
        account = await self._payment_account(identifier, address, report)

        return WalletEntity(
            address=self.chain.to_checksum_address(address),
            name=info.name,
            description=info.description,
            kind=WalletKind.PROVIDER,
            provider_id=provider_id,
            is_active=info.is_active,
            is_approved=provider_id in approved_ids,
            native_balance=native_balance,
            token_balance=token_balance,
            payment_funds=account.funds,
            payment_available=account.available,
            payment_funded_until_epoch=account.funded_until_epoch
        )

    async def enrich_custom_wallet(self, wallet: CustomWallet, report: ScrapeReport) -> WalletEntity:
        """
        Build the record of a configured custom wallet.

        Parameters
        ----------
        wallet : CustomWallet
            Configuration entry
        report : ScrapeReport
            Cycle report, receives degraded field counts

        Returns
        -------
        WalletEntity
            Wallet record

        Raises
        ------
        EntityFetchException
            If the native balance cannot be fetched
        """
        identifier = f"custom wallet {wallet.address}"
        try:
            native_balance = await self.chain.get_native_balance(wallet.address)
        except Exception as e:
            raise EntityFetchException(identifier, e) from e

        token_balance = await self._best_effort(identifier, "USDFC balance", self.chain.get_token_balance(wallet.address), 0, report)
        account = await self._payment_account(identifier, wallet.address, report)

        return WalletEntity(
            address=self.chain.to_checksum_address(wallet.address),
            name=wallet.name,
            kind=WalletKind(wallet.type),
            native_balance=native_balance,
            token_balance=token_balance,
            payment_funds=account.funds,
            payment_available=account.available,
            payment_funded_until_epoch=account.funded_until_epoch
        )

    async def _payment_account(self, identifier: str, address: str, report: ScrapeReport) -> PaymentAccountEntity:
        account = await self._best_effort(
            identifier, "payment account", self.chain.get_payment_account(address), None, report
        )
        return account or PaymentAccountEntity()

    async def _best_effort(
        self,
        identifier: str,
        field: str,
        call: Awaitable[T],
        default: T,
        report: ScrapeReport
    ) -> T:
        try:
            return await call
        except Exception as e:
            self.logger.warning(f"Failed to get {field} for {identifier}, using default: {e}")
            report.field_errors += 1
            return default
