from datetime import datetime, timezone

import pytest
from prometheus_client import CollectorRegistry

from core.exceptions import EntityFetchException
from wallet_exporter.entities import (
    PingResultEntity,
    ScrapeReport,
    SnapshotEntity,
    WalletEntity,
    WalletKind,
)
from wallet_exporter.metrics import MetricPublisher, WalletLabels, to_display_units

from tests.fakes import UNIT, make_address


def provider_wallet(provider_id: int, **kwargs) -> WalletEntity:
    return WalletEntity(
        address=make_address(provider_id),
        name=f"provider-{provider_id}",
        description=f"Storage provider {provider_id}",
        kind=WalletKind.PROVIDER,
        provider_id=provider_id,
        is_active=True,
        is_approved=False,
        native_balance=provider_id * UNIT,
        **kwargs
    )


def operator_wallet() -> WalletEntity:
    return WalletEntity(address=make_address(700), name="ops", kind=WalletKind.OPERATOR, native_balance=UNIT)


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def publisher(registry):
    return MetricPublisher("dealbot", registry=registry)


class TestWalletLabels:
    """
    Tests for the single wallet to label mapping.
    """

    def test_provider_labels(self):
        labels = WalletLabels.from_wallet(provider_wallet(12))

        assert labels.as_dict() == {
            "address": make_address(12),
            "name": "provider-12",
            "type": "provider",
            "provider_id": "12",
            "is_active": "true",
            "approved": "false",
        }

    def test_non_provider_labels_are_empty(self):
        """
        Test that provider-only labels render as empty strings for other kinds.
        """
        labels = WalletLabels.from_wallet(operator_wallet())

        assert labels.type == "operator"
        assert labels.provider_id == ""
        assert labels.is_active == ""
        assert labels.approved == ""
        assert labels.info("")["description"] == ""


class TestMetricPublisher:
    """
    Tests for publishing snapshots into the registry.
    """

    def test_publish_sets_every_family(self, registry, publisher):
        wallet = provider_wallet(
            1,
            token_balance=3 * UNIT,
            payment_funds=10 * UNIT,
            payment_available=7 * UNIT,
            payment_funded_until_epoch=999
        )
        publisher.publish(SnapshotEntity(wallets=(wallet,)))

        labels = WalletLabels.from_wallet(wallet).as_dict()
        assert registry.get_sample_value("dealbot_wallet_fil_balance", labels) == 1.0
        assert registry.get_sample_value("dealbot_wallet_usdfc_balance", labels) == 3.0
        assert registry.get_sample_value("dealbot_wallet_payment_funds", labels) == 10.0
        assert registry.get_sample_value("dealbot_wallet_payment_available", labels) == 7.0
        assert registry.get_sample_value("dealbot_wallet_payment_locked", labels) == 3.0
        assert registry.get_sample_value("dealbot_wallet_payment_funded_until_epoch", labels) == 999
        assert registry.get_sample_value(
            "dealbot_wallet_info", {**labels, "description": "Storage provider 1"}
        ) == 1.0

    def test_stale_series_are_removed(self, registry, publisher):
        """
        Test that a wallet missing from the next snapshot has no series left.
        """
        first, second = provider_wallet(1), provider_wallet(2)
        publisher.publish(SnapshotEntity(wallets=(first, second)))
        publisher.publish(SnapshotEntity(wallets=(first,)))

        gone = WalletLabels.from_wallet(second).as_dict()
        assert registry.get_sample_value("dealbot_wallet_fil_balance", gone) is None
        assert registry.get_sample_value("dealbot_wallet_info", {**gone, "description": "Storage provider 2"}) is None
        assert registry.get_sample_value(
            "dealbot_wallet_fil_balance", WalletLabels.from_wallet(first).as_dict()
        ) == 1.0
        assert registry.get_sample_value("dealbot_wallets_monitored") == 1

    def test_label_change_replaces_series(self, registry, publisher):
        """
        Test that a provider flipping its approval is exported under the new labels only.
        """
        before = provider_wallet(1)
        after = before.model_copy(update={"is_approved": True})
        publisher.publish(SnapshotEntity(wallets=(before,)))
        publisher.publish(SnapshotEntity(wallets=(after,)))

        assert registry.get_sample_value("dealbot_wallet_fil_balance", WalletLabels.from_wallet(before).as_dict()) is None
        assert registry.get_sample_value("dealbot_wallet_fil_balance", WalletLabels.from_wallet(after).as_dict()) == 1.0

    def test_publishing_twice_is_identical(self, publisher):
        """
        Test that publishing the same snapshot twice renders the same exposition.
        """
        snapshot = SnapshotEntity(
            wallets=(provider_wallet(1), provider_wallet(2), operator_wallet()),
            captured_at=datetime(2026, 1, 1, tzinfo=timezone.utc)
        )

        publisher.publish(snapshot)
        first = publisher.render()
        publisher.publish(snapshot)

        assert publisher.render() == first

    def test_ping_series(self, registry, publisher):
        ping = PingResultEntity(success=False, duration_ms=5000.0, service_url="https://sp.example.com")
        publisher.publish(SnapshotEntity(wallets=(provider_wallet(1, ping_result=ping), provider_wallet(2))))

        labels = {
            "address": make_address(1),
            "name": "provider-1",
            "provider_id": "1",
            "service_url": "https://sp.example.com",
        }
        assert registry.get_sample_value("dealbot_provider_ping_success", labels) == 0.0
        assert registry.get_sample_value("dealbot_provider_ping_duration_ms", labels) == 5000.0
        samples = [s for m in registry.collect() if m.name == "dealbot_provider_ping_success" for s in m.samples]
        assert len(samples) == 1

    def test_error_counters(self, registry, publisher):
        """
        Test that dropped entities and degraded fields go to separate counters.
        """
        report = ScrapeReport(
            entity_errors=[EntityFetchException("provider 2"), EntityFetchException("provider 5")],
            field_errors=3,
            duration_seconds=1.5
        )

        publisher.record_scrape(report)
        publisher.record_failure()

        assert registry.get_sample_value("dealbot_scrape_errors_total") == 3
        assert registry.get_sample_value("dealbot_field_errors_total") == 3
        assert registry.get_sample_value("dealbot_scrape_duration_seconds") == 1.5
        assert registry.get_sample_value("dealbot_last_scrape_timestamp_seconds") > 0

    def test_render_uses_prefix(self):
        publisher = MetricPublisher("custom_prefix", registry=CollectorRegistry())
        publisher.publish(SnapshotEntity(wallets=(operator_wallet(),)))

        text = publisher.render().decode()

        assert "# TYPE custom_prefix_wallet_fil_balance gauge" in text
        assert "# TYPE custom_prefix_scrape_errors counter" in text
        assert "custom_prefix_scrape_errors_total 0.0" in text
        assert 'type="operator"' in text
        assert 'provider_id=""' in text


def test_to_display_units():
    assert to_display_units(0) == 0.0
    assert to_display_units(UNIT) == 1.0
    assert to_display_units(1234 * UNIT // 1000) == 1.234
