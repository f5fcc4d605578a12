import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum

from wallet_exporter.entities import ScrapeReport, SnapshotEntity
from wallet_exporter.metrics import MetricPublisher
from wallet_exporter.store import SnapshotStore


class SchedulerState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    STOPPED = "stopped"


class ScrapeScheduler:
    """
    Runs one collection immediately and then one per interval until stopped.

    Cycles never overlap: the next cycle starts ``interval`` after the
    previous one started, or right after it if the cycle overran. Missed
    ticks are not replayed.

    Parameters
    ----------
    collect : Callable[[], Awaitable[tuple[SnapshotEntity, ScrapeReport]]]
        Collects one snapshot
    store : SnapshotStore
        Receives every new snapshot
    publisher : MetricPublisher
        Republishes every new snapshot
    interval : float
        Seconds between cycle starts
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        collect: Callable[[], Awaitable[tuple[SnapshotEntity, ScrapeReport]]],
        store: SnapshotStore,
        publisher: MetricPublisher,
        interval: float,
        logger: logging.Logger
    ):
        self.collect = collect
        self.store = store
        self.publisher = publisher
        self.interval = interval
        self.logger = logger
        self.state = SchedulerState.IDLE
        self.cycles = 0
        self._task: asyncio.Task | None = None

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="scrape-scheduler")
        return self._task

    async def stop(self) -> None:
        """
        Cancel the loop, including any in-flight collection, and wait for it.
        """
        try:
            if self._task is not None and not self._task.done():
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    # the caller itself is being cancelled
                    if asyncio.current_task().cancelling():
                        raise
        finally:
            self.state = SchedulerState.STOPPED

    async def run(self) -> None:
        self.logger.info(f"Starting wallet exporter with scrape interval: {self.interval}s")
        loop = asyncio.get_running_loop()
        try:
            while True:
                started = loop.time()
                await self.run_once()

                elapsed = loop.time() - started
                if elapsed >= self.interval:
                    self.logger.warning(
                        f"Scrape took {elapsed:.2f}s, longer than the {self.interval}s interval, starting next one now"
                    )
                await asyncio.sleep(max(0.0, self.interval - elapsed))
        except asyncio.CancelledError:
            self.logger.info("Stopping wallet exporter")
            raise
        finally:
            self.state = SchedulerState.STOPPED

    async def run_once(self) -> None:
        """
        Run one collection cycle and publish its result.

        Per-wallet failures are already folded into the report; anything
        else is logged and counted, the loop keeps running.
        """
        self.state = SchedulerState.COLLECTING
        self.logger.info("Starting scrape...")
        started = time.perf_counter()
        try:
            snapshot, report = await self.collect()
        except Exception as e:
            self.logger.exception(f"Scrape failed after {time.perf_counter() - started:.2f}s: {e}")
            self.publisher.record_failure()
            self.state = SchedulerState.IDLE
            return

        self.store.replace(snapshot)
        self.publisher.publish(snapshot)
        self.publisher.record_scrape(report)
        self.cycles += 1
        self.state = SchedulerState.IDLE

        level = logging.WARNING if report.has_errors else logging.INFO
        self.logger.log(
            level,
            f"Scrape completed in {report.duration_seconds:.2f}s: {len(snapshot.wallets)} wallets "
            f"from {report.provider_count} registered providers, "
            f"{len(report.entity_errors)} dropped, {report.field_errors} degraded fields"
        )
