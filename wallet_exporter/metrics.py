import threading
import time
from dataclasses import asdict, dataclass

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from web3 import AsyncWeb3

from wallet_exporter.entities import ScrapeReport, SnapshotEntity, WalletEntity

WALLET_LABELS = ("address", "name", "type", "provider_id", "is_active", "approved")
INFO_LABELS = ("address", "name", "type", "provider_id", "description", "is_active", "approved")
PING_LABELS = ("address", "name", "provider_id", "service_url")


def to_display_units(amount: int) -> float:
    """
    Convert an 18-decimal base unit amount (attoFIL, USDFC base units) to a float.

    Parameters
    ----------
    amount : int
        Amount in base units

    Returns
    -------
    float
        Amount in display units
    """
    return float(AsyncWeb3.from_wei(amount, "ether"))


def _render_flag(value: bool | None) -> str:
    if value is None:
        return ""
    return "true" if value else "false"


@dataclass(frozen=True)
class WalletLabels:
    """
    Label set shared by all per-wallet metric families.

    Provider-only labels are empty strings for other wallet kinds.
    """
    address: str
    name: str
    type: str
    provider_id: str
    is_active: str
    approved: str

    @classmethod
    def from_wallet(cls, wallet: WalletEntity) -> "WalletLabels":
        provider_id = str(wallet.provider_id) if wallet.is_provider else ""
        return cls(
            address=wallet.address,
            name=wallet.name,
            type=wallet.kind.value,
            provider_id=provider_id,
            is_active=_render_flag(wallet.is_active) if wallet.is_provider else "",
            approved=_render_flag(wallet.is_approved) if wallet.is_provider else "",
        )

    def as_dict(self) -> dict[str, str]:
        return asdict(self)

    def info(self, description: str) -> dict[str, str]:
        return {**self.as_dict(), "description": description}

    def ping(self, service_url: str) -> dict[str, str]:
        return {
            "address": self.address,
            "name": self.name,
            "provider_id": self.provider_id,
            "service_url": service_url,
        }


class MetricPublisher:
    """
    Publishes snapshots as Prometheus metrics on a private registry.

    ``publish`` and ``render`` share one lock, so an exposition never mixes
    two snapshots and never shows series of wallets that disappeared.

    Parameters
    ----------
    prefix : str
        Metric name prefix
    registry : CollectorRegistry | None
        Registry to register on, a new one by default
    """

    def __init__(self, prefix: str, registry: CollectorRegistry | None = None):
        self.prefix = prefix
        self.registry = registry or CollectorRegistry()
        self._lock = threading.Lock()

        self.fil_balance = self._gauge("wallet_fil_balance", "FIL (native token) balance for each wallet", WALLET_LABELS)
        self.usdfc_balance = self._gauge("wallet_usdfc_balance", "USDFC token balance for each wallet", WALLET_LABELS)
        self.wallet_info = self._gauge("wallet_info", "Wallet information (always 1)", INFO_LABELS)
        self.payment_funds = self._gauge("wallet_payment_funds", "USDFC funds deposited in the payments contract", WALLET_LABELS)
        self.payment_available = self._gauge("wallet_payment_available", "USDFC payment funds not locked up", WALLET_LABELS)
        self.payment_locked = self._gauge("wallet_payment_locked", "USDFC payment funds locked up", WALLET_LABELS)
        self.payment_funded_until = self._gauge(
            "wallet_payment_funded_until_epoch", "Epoch until which the payment account is funded", WALLET_LABELS
        )
        self.ping_success = self._gauge("provider_ping_success", "Whether the last provider ping succeeded (1/0)", PING_LABELS)
        self.ping_duration = self._gauge("provider_ping_duration_ms", "Duration of the last provider ping in milliseconds", PING_LABELS)

        self.scrape_duration = self._gauge("scrape_duration_seconds", "Duration of the last scrape in seconds")
        self.last_scrape = self._gauge("last_scrape_timestamp_seconds", "Unix time of the last completed scrape")
        self.wallets_monitored = self._gauge("wallets_monitored", "Number of wallets in the current snapshot")
        self.scrape_errors = Counter(
            f"{prefix}_scrape_errors", "Total number of wallets dropped from a scrape", registry=self.registry
        )
        self.field_errors = Counter(
            f"{prefix}_field_errors", "Total number of wallet fields that fell back to a default", registry=self.registry
        )

        self._wallet_families = (
            self.fil_balance,
            self.usdfc_balance,
            self.wallet_info,
            self.payment_funds,
            self.payment_available,
            self.payment_locked,
            self.payment_funded_until,
            self.ping_success,
            self.ping_duration,
        )

    def _gauge(self, name: str, documentation: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(f"{self.prefix}_{name}", documentation, labels, registry=self.registry)

    def publish(self, snapshot: SnapshotEntity) -> None:
        """
        Replace every per-wallet series with the content of a snapshot.

        Parameters
        ----------
        snapshot : SnapshotEntity
            Snapshot to publish
        """
        with self._lock:
            for family in self._wallet_families:
                family.clear()

            for wallet in snapshot.wallets:
                labels = WalletLabels.from_wallet(wallet)
                values = labels.as_dict()

                self.fil_balance.labels(**values).set(to_display_units(wallet.native_balance))
                self.usdfc_balance.labels(**values).set(to_display_units(wallet.token_balance))
                self.wallet_info.labels(**labels.info(wallet.description)).set(1)
                self.payment_funds.labels(**values).set(to_display_units(wallet.payment_funds))
                self.payment_available.labels(**values).set(to_display_units(wallet.payment_available))
                self.payment_locked.labels(**values).set(to_display_units(wallet.payment_locked))
                self.payment_funded_until.labels(**values).set(wallet.payment_funded_until_epoch)

                if wallet.ping_result is not None:
                    ping_labels = labels.ping(wallet.ping_result.service_url)
                    self.ping_success.labels(**ping_labels).set(1 if wallet.ping_result.success else 0)
                    self.ping_duration.labels(**ping_labels).set(wallet.ping_result.duration_ms)

            self.wallets_monitored.set(len(snapshot.wallets))

    def record_scrape(self, report: ScrapeReport) -> None:
        """
        Record cycle duration and error counts.

        Parameters
        ----------
        report : ScrapeReport
            Report of the finished cycle
        """
        with self._lock:
            self.scrape_duration.set(report.duration_seconds)
            self.last_scrape.set(time.time())
            if report.entity_errors:
                self.scrape_errors.inc(len(report.entity_errors))
            if report.field_errors:
                self.field_errors.inc(report.field_errors)

    def record_failure(self) -> None:
        with self._lock:
            self.scrape_errors.inc()

    def render(self) -> bytes:
        with self._lock:
            return generate_latest(self.registry)
