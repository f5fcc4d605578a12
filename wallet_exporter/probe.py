import asyncio
import logging
import time
from typing import NamedTuple

import aiohttp

from wallet_exporter.entities import PingResultEntity
from wallet_exporter.services import ChainService

SERVICE_URL_CAPABILITY = "serviceURL"
HEALTH_PATH = "/pdp/ping"
PROBE_TIMEOUT_SECONDS = 5


class ProbeOutcome(NamedTuple):
    provider_id: int
    ping: PingResultEntity


class ProviderProbe:
    """
    Discovers a provider's service URL and pings its health endpoint.

    Every failure degrades to "no ping result" or ``success=False``; nothing
    raises into the worker pool.

    Parameters
    ----------
    chain : ChainService
        Remote data source for product metadata
    session : aiohttp.ClientSession
        Shared HTTP session
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, chain: ChainService, session: aiohttp.ClientSession, logger: logging.Logger):
        self.chain = chain
        self.session = session
        self.logger = logger
        self.timeout = aiohttp.ClientTimeout(total=PROBE_TIMEOUT_SECONDS)

    async def probe(self, provider_id: int) -> ProbeOutcome | None:
        """
        Probe one provider.

        Parameters
        ----------
        provider_id : int
            Registry identifier, 0 is skipped

        Returns
        -------
        ProbeOutcome | None
            Ping result, or None if the provider is inactive or has no active
            product or service URL
        """
        if provider_id == 0:
            return None

        try:
            product = await self.chain.get_provider_product(provider_id)
        except Exception as e:
            self.logger.debug(f"No product for provider {provider_id}: {e}")
            return None

        if not product.provider_is_active:
            self.logger.debug(f"Provider {provider_id} is inactive, skipping ping")
            return None

        if not product.is_active:
            self.logger.debug(f"Product of provider {provider_id} is inactive, skipping ping")
            return None

        service_url = product.capability(SERVICE_URL_CAPABILITY)
        if not service_url:
            self.logger.debug(f"Provider {provider_id} has no {SERVICE_URL_CAPABILITY} capability")
            return None

        return ProbeOutcome(provider_id, await self.ping(service_url))

    async def ping(self, service_url: str) -> PingResultEntity:
        """
        Issue one GET against the health path of a service URL.

        Parameters
        ----------
        service_url : str
            Provider service base URL

        Returns
        -------
        PingResultEntity
            Success flag and measured latency
        """
        url = f"{service_url.rstrip('/')}{HEALTH_PATH}"
        started = time.perf_counter()
        try:
            async with self.session.get(url, timeout=self.timeout) as response:
                success = 200 <= response.status < 300
                if not success:
                    self.logger.debug(f"Ping {url} returned status {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.debug(f"Ping {url} failed: {e!r}")
            success = False

        duration_ms = (time.perf_counter() - started) * 1000
        return PingResultEntity(success=success, duration_ms=duration_ms, service_url=service_url)
