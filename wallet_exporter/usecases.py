import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

from core.environment.config import ADDRESS_PATTERN, Settings
from core.exceptions import EntityFetchException, InvalidAddressException, WalletNotFoundException
from wallet_exporter.enricher import EntityEnricher
from wallet_exporter.entities import ScrapeReport, SnapshotEntity, WalletEntity, WalletKind
from wallet_exporter.metrics import to_display_units
from wallet_exporter.pool import BoundedWorkerPool
from wallet_exporter.probe import ProviderProbe
from wallet_exporter.schemas import SnapshotResponse, WalletResponse
from wallet_exporter.services import ChainService
from wallet_exporter.store import SnapshotStore


class CollectWalletsUseCase:
    """
    Use case for collecting one complete snapshot.

    Provider enrichment, custom wallet enrichment and provider probes run
    concurrently on one bounded pool; pings are joined onto provider records
    before the snapshot is assembled.

    Parameters
    ----------
    chain : ChainService
        Remote data source
    enricher : EntityEnricher
        Builds wallet records
    probe : ProviderProbe
        Discovers and pings provider endpoints
    settings : Settings
        Exporter settings
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        chain: ChainService,
        enricher: EntityEnricher,
        probe: ProviderProbe,
        settings: Settings,
        logger: logging.Logger
    ):
        self.chain = chain
        self.enricher = enricher
        self.probe = probe
        self.settings = settings
        self.logger = logger

    async def __call__(self) -> tuple[SnapshotEntity, ScrapeReport]:
        """
        Execute use case.

        Returns
        -------
        tuple[SnapshotEntity, ScrapeReport]
            New snapshot and the report of the cycle
        """
        started = time.perf_counter()
        report = ScrapeReport()
        pool = BoundedWorkerPool(self.settings.max_concurrent_requests, self.logger)

        provider_ids, approved_ids = await self._enumerate_providers(report)

        providers, custom_wallets, probes = await asyncio.gather(
            pool.map(
                provider_ids,
                lambda provider_id: self.enricher.enrich_provider(provider_id, approved_ids, report),
                describe=lambda provider_id: f"provider {provider_id}"
            ),
            pool.map(
                self.settings.custom_wallets,
                lambda wallet: self.enricher.enrich_custom_wallet(wallet, report),
                describe=lambda wallet: f"custom wallet {wallet.address}"
            ),
            pool.map(
                provider_ids,
                self.probe.probe,
                describe=lambda provider_id: f"probe {provider_id}"
            ),
        )

        for error in providers.errors + custom_wallets.errors:
            self.logger.error(f"Dropping wallet from snapshot: {error}")
            report.entity_errors.append(error)
        for error in probes.errors:
            self.logger.debug(f"Probe failed: {error}")

        pings = {outcome.provider_id: outcome.ping for outcome in probes.results if outcome is not None}
        provider_wallets = [
            wallet.model_copy(update={"ping_result": pings[wallet.provider_id]})
            if wallet.provider_id in pings else wallet
            for wallet in providers.results
        ]

        self.logger.info(f"Found {len(provider_wallets)} storage providers")
        self.logger.info(f"Found {len(custom_wallets.results)} custom wallets")

        snapshot = SnapshotEntity(
            wallets=tuple(provider_wallets + custom_wallets.results),
            captured_at=datetime.now(timezone.utc)
        )
        report.duration_seconds = time.perf_counter() - started
        return snapshot, report

    async def _enumerate_providers(self, report: ScrapeReport) -> tuple[list[int], frozenset[int]]:
        try:
            count = await self.chain.get_provider_count()
        except Exception as e:
            error = EntityFetchException("provider count", e)
            self.logger.error(f"Skipping providers this cycle: {error}")
            report.entity_errors.append(error)
            return [], frozenset()

        try:
            approved_ids = await self.chain.get_approved_provider_ids()
        except Exception as e:
            self.logger.warning(f"Failed to get approved providers, treating none as approved: {e}")
            report.field_errors += 1
            approved_ids = frozenset()

        report.provider_count = count
        self.logger.info(f"Found {count} total providers, {len(approved_ids)} approved")
        return list(range(1, count + 1)), approved_ids


def format_elapsed(delta: timedelta) -> str:
    """
    Format a duration rounded to seconds, e.g. ``1h2m3s``.

    Parameters
    ----------
    delta : timedelta
        Duration

    Returns
    -------
    str
        Formatted duration
    """
    seconds = max(0, round(delta.total_seconds()))
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _amount(value: int) -> str:
    return f"{to_display_units(value):.6f}"


class RenderStatusUseCase:
    """
    Use case for the human readable status page.

    Parameters
    ----------
    store : SnapshotStore
        Snapshot store
    settings : Settings
        Exporter settings
    """

    def __init__(self, store: SnapshotStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def __call__(self, now: datetime | None = None) -> str:
        """
        Execute use case.

        Parameters
        ----------
        now : datetime | None
            Reference time for "time since last scrape"

        Returns
        -------
        str
            Plain text status page
        """
        snapshot = self.store.read()
        now = now or datetime.now(timezone.utc)

        lines = [
            "Dealbot Wallet Exporter Status",
            "==============================",
            "",
            f"Network: {self.settings.network}",
            f"Wallets monitored: {len(snapshot.wallets)}",
        ]
        if snapshot.captured_at is None:
            lines += ["Last scrape: never", ""]
        else:
            lines += [
                f"Last scrape: {snapshot.captured_at.isoformat(timespec='seconds')}",
                f"Time since last scrape: {format_elapsed(now - snapshot.captured_at)}",
                "",
            ]

        providers = snapshot.by_kind(WalletKind.PROVIDER)
        clients = snapshot.by_kind(WalletKind.CLIENT)
        others = snapshot.by_kind(WalletKind.OPERATOR, WalletKind.OTHER)

        if providers:
            lines.append(f"Storage Providers ({len(providers)}):")
            for wallet in providers:
                lines += [
                    f"  - ID: {wallet.provider_id}, Name: {wallet.name}",
                    *self._balance_lines(wallet),
                    f"    Active: {str(wallet.is_active).lower()}",
                    f"    Approved: {str(wallet.is_approved).lower()}",
                ]
                if wallet.ping_result is not None:
                    state = "ok" if wallet.ping_result.success else "failed"
                    lines.append(
                        f"    Ping: {state} ({wallet.ping_result.duration_ms:.0f} ms) {wallet.ping_result.service_url}"
                    )
                lines.append("")

        if clients:
            lines.append(f"Client Wallets ({len(clients)}):")
            for wallet in clients:
                lines += [f"  - Name: {wallet.name}", *self._balance_lines(wallet), ""]

        if others:
            lines.append(f"Other Wallets ({len(others)}):")
            for wallet in others:
                lines += [f"  - Name: {wallet.name} (Type: {wallet.kind.value})", *self._balance_lines(wallet), ""]

        return "\n".join(lines) + "\n"

    @staticmethod
    def _balance_lines(wallet: WalletEntity) -> list[str]:
        return [
            f"    Address: {wallet.address}",
            f"    FIL Balance: {_amount(wallet.native_balance)} FIL",
            f"    USDFC Balance: {_amount(wallet.token_balance)} USDFC",
        ]


class GetWalletsUseCase:
    """
    Use case for the JSON view of the current snapshot.

    Parameters
    ----------
    store : SnapshotStore
        Snapshot store
    settings : Settings
        Exporter settings
    """

    def __init__(self, store: SnapshotStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def __call__(self) -> SnapshotResponse:
        snapshot = self.store.read()
        return SnapshotResponse(
            network=self.settings.network,
            last_scrape=snapshot.captured_at,
            total_wallets=len(snapshot.wallets),
            wallets=[WalletResponse.from_entity(wallet) for wallet in snapshot.wallets]
        )


class GetWalletUseCase:
    """
    Use case for one wallet of the current snapshot.

    Parameters
    ----------
    store : SnapshotStore
        Snapshot store
    """

    def __init__(self, store: SnapshotStore):
        self.store = store

    async def __call__(self, address: str) -> WalletResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Wallet address, case insensitive

        Returns
        -------
        WalletResponse
            Wallet from the current snapshot

        Raises
        ------
        InvalidAddressException
            If the address is malformed
        WalletNotFoundException
            If the wallet is not in the current snapshot
        """
        if not ADDRESS_PATTERN.match(address):
            raise InvalidAddressException()

        wallet = self.store.read().find(address)
        if wallet is None:
            raise WalletNotFoundException()
        return WalletResponse.from_entity(wallet)
