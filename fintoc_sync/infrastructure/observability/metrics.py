"""Prometheus metrics for sync volume, duplicates, and upstream API health"""

from pathlib import Path

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

from fintoc_sync.domain.models import AccountSyncReport

# Sync metrics
movements_fetched_counter = Counter(
    "fintoc_sync_movements_fetched_total",
    "Movements read from Fintoc",
    ["bank", "account"],
)

transactions_counter = Counter(
    "fintoc_sync_transactions_total",
    "Transactions posted to Lunch Money by outcome",
    ["outcome"],  # inserted | duplicate | failed
)

normalization_failures_counter = Counter(
    "fintoc_sync_normalization_failures_total",
    "Movements skipped because they could not be normalized",
)

asset_balance_gauge = Gauge(
    "fintoc_sync_asset_balance",
    "Last balance written to a Lunch Money asset",
    ["asset_id", "currency"],
)

# Upstream API metrics
api_latency_histogram = Histogram(
    "fintoc_sync_api_request_seconds",
    "Upstream API response time",
    ["service", "endpoint"],  # service: fintoc | lunchmoney
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

api_failures_counter = Counter(
    "fintoc_sync_api_failures_total",
    "Failed upstream API calls",
    ["service"],
)


def record_account_sync(report: AccountSyncReport, asset_id: int) -> None:
    """Record per-account sync results"""
    movements_fetched_counter.labels(bank=report.bank_name, account=report.account_name).inc(
        report.movements_fetched
    )
    transactions_counter.labels(outcome="inserted").inc(report.result.inserted_count)
    transactions_counter.labels(outcome="duplicate").inc(report.result.duplicate_count)
    transactions_counter.labels(outcome="failed").inc(report.result.failed_count)
    normalization_failures_counter.inc(report.normalization_failures)
    asset_balance_gauge.labels(asset_id=str(asset_id), currency=str(report.currency)).set(report.balance.value)


def write_metrics(path: str | Path) -> None:
    """Dump the registry for the node exporter textfile collector"""
    write_to_textfile(str(path), REGISTRY)
