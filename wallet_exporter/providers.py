import logging
from typing import Annotated, AsyncIterable

import aiohttp
from dishka import Provider, Scope, provide, FromComponent
from web3 import AsyncWeb3

from core.environment.config import Settings
from wallet_exporter.enricher import EntityEnricher
from wallet_exporter.metrics import MetricPublisher
from wallet_exporter.probe import ProviderProbe
from wallet_exporter.scheduler import ScrapeScheduler
from wallet_exporter.services import ChainService
from wallet_exporter.store import SnapshotStore
from wallet_exporter.usecases import (
    CollectWalletsUseCase,
    GetWalletUseCase,
    GetWalletsUseCase,
    RenderStatusUseCase,
)


class WalletsProvider(Provider):
    """
    Provider for wallet collection and publication dependencies.
    """

    component = "wallets"

    @provide(scope=Scope.APP)
    async def get_chain_service(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ChainService:
        """
        Provide the chain service with resolved contracts.

        Parameters
        ----------
        settings : Settings
            Exporter settings
        logger : logging.Logger
            Logger instance

        Returns
        -------
        ChainService
            Chain service instance

        Raises
        ------
        RPCException
            If the RPC endpoint is unreachable
        ContractResolutionException
            If dependent contracts cannot be resolved
        """
        web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))
        service = ChainService(web3=web3, settings=settings, logger=logger)
        await service.resolve_contracts()
        return service

    @provide(scope=Scope.APP)
    async def get_http_session(self) -> AsyncIterable[aiohttp.ClientSession]:
        """
        Provide the HTTP session used for provider pings.

        Yields
        ------
        aiohttp.ClientSession
            Shared session, closed with the container
        """
        session = aiohttp.ClientSession()
        try:
            yield session
        finally:
            await session.close()

    @provide(scope=Scope.APP)
    def get_enricher(
        self,
        chain: Annotated[ChainService, FromComponent("wallets")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> EntityEnricher:
        return EntityEnricher(chain=chain, logger=logger)

    @provide(scope=Scope.APP)
    def get_probe(
        self,
        chain: Annotated[ChainService, FromComponent("wallets")],
        session: Annotated[aiohttp.ClientSession, FromComponent("wallets")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ProviderProbe:
        return ProviderProbe(chain=chain, session=session, logger=logger)

    @provide(scope=Scope.APP)
    def get_snapshot_store(self) -> SnapshotStore:
        return SnapshotStore()

    @provide(scope=Scope.APP)
    def get_metric_publisher(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> MetricPublisher:
        """
        Provide the metric publisher.

        Parameters
        ----------
        settings : Settings
            Exporter settings with the metric prefix

        Returns
        -------
        MetricPublisher
            Publisher with its own registry
        """
        return MetricPublisher(prefix=settings.metrics_prefix)

    @provide(scope=Scope.APP)
    def get_collect_use_case(
        self,
        chain: Annotated[ChainService, FromComponent("wallets")],
        enricher: Annotated[EntityEnricher, FromComponent("wallets")],
        probe: Annotated[ProviderProbe, FromComponent("wallets")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> CollectWalletsUseCase:
        return CollectWalletsUseCase(
            chain=chain,
            enricher=enricher,
            probe=probe,
            settings=settings,
            logger=logger
        )

    @provide(scope=Scope.APP)
    def get_scheduler(
        self,
        collect: Annotated[CollectWalletsUseCase, FromComponent("wallets")],
        store: Annotated[SnapshotStore, FromComponent("wallets")],
        publisher: Annotated[MetricPublisher, FromComponent("wallets")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ScrapeScheduler:
        """
        Provide the scrape scheduler.

        Parameters
        ----------
        collect : CollectWalletsUseCase
            Collection use case
        store : SnapshotStore
            Snapshot store
        publisher : MetricPublisher
            Metric publisher
        settings : Settings
            Exporter settings with the scrape interval
        logger : logging.Logger
            Logger instance

        Returns
        -------
        ScrapeScheduler
            Scheduler, not started
        """
        return ScrapeScheduler(
            collect=collect,
            store=store,
            publisher=publisher,
            interval=settings.scrape_interval.total_seconds(),
            logger=logger
        )

    @provide(scope=Scope.REQUEST)
    def get_status_use_case(
        self,
        store: Annotated[SnapshotStore, FromComponent("wallets")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> RenderStatusUseCase:
        return RenderStatusUseCase(store=store, settings=settings)

    @provide(scope=Scope.REQUEST)
    def get_wallets_use_case(
        self,
        store: Annotated[SnapshotStore, FromComponent("wallets")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> GetWalletsUseCase:
        return GetWalletsUseCase(store=store, settings=settings)

    @provide(scope=Scope.REQUEST)
    def get_wallet_use_case(
        self,
        store: Annotated[SnapshotStore, FromComponent("wallets")]
    ) -> GetWalletUseCase:
        return GetWalletUseCase(store=store)
