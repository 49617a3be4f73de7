"""Sync orchestration - mirrors Fintoc accounts into Lunch Money assets"""

import logging
import operator
import time
from datetime import datetime, timedelta
from functools import reduce
from typing import Iterator, List, Protocol, Sequence, Tuple, TypeVar

from fintoc_sync.config import AccountConfig, BankConfig, Settings
from fintoc_sync.domain.models import (
    AccountCredentials,
    AccountSyncReport,
    BatchResult,
    SyncWindow,
    Transaction,
)
from fintoc_sync.domain.money import Amount, Currency
from fintoc_sync.domain.normalizer import normalize_movements
from fintoc_sync.infrastructure.clients.fintoc import FintocClient
from fintoc_sync.infrastructure.clients.lunchmoney import LunchMoneyClient
from fintoc_sync.infrastructure.observability.logging import log_sync_summary
from fintoc_sync.infrastructure.observability.metrics import record_account_sync
from fintoc_sync.utils.date_utils import parse_duration, resolve_sync_window

INSERT_BATCH_SIZE = 50

T = TypeVar("T")


class SyncReporter(Protocol):
    """Receives progress while an account syncs"""

    def account_started(self, bank: BankConfig, account: AccountConfig) -> None: ...

    def balance_fetched(self, balance: Amount, currency: Currency) -> None: ...

    def movements_fetched(self, count: int) -> None: ...

    def batch_inserted(self, processed: int, total: int) -> None: ...

    def movements_skipped(self, bank: BankConfig, account: AccountConfig) -> None: ...

    def balance_updated(self, balance: Amount, currency: Currency) -> None: ...

    def account_finished(self, report: AccountSyncReport) -> None: ...


class NullReporter:
    def account_started(self, bank: BankConfig, account: AccountConfig) -> None:
        pass

    def balance_fetched(self, balance: Amount, currency: Currency) -> None:
        pass

    def movements_fetched(self, count: int) -> None:
        pass

    def batch_inserted(self, processed: int, total: int) -> None:
        pass

    def movements_skipped(self, bank: BankConfig, account: AccountConfig) -> None:
        pass

    def balance_updated(self, balance: Amount, currency: Currency) -> None:
        pass

    def account_finished(self, report: AccountSyncReport) -> None:
        pass


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def select_accounts(
    banks: Sequence[BankConfig],
    bank_name: str = "",
    account_name: str = "",
) -> List[Tuple[BankConfig, AccountConfig]]:
    """Configured (bank, account) pairs, optionally filtered by name; empty names match everything"""
    return [
        (bank, account)
        for bank in banks
        if not bank_name or bank.name == bank_name
        for account in bank.accounts
        if not account_name or account.name == account_name
    ]


def credentials_for(secret_token: str, bank: BankConfig, account: AccountConfig) -> AccountCredentials:
    return AccountCredentials(
        secret_token=secret_token,
        link_token=bank.link_token,
        account_id=account.fintoc_account_id,
    )


def window_from_settings(
    settings: Settings,
    now: datetime | None = None,
    end_offset: timedelta | None = None,
) -> SyncWindow:
    lookback = parse_duration(settings.sync_settings.default_start_from)
    return resolve_sync_window(lookback, now=now, end_offset=end_offset)


async def fetch_transactions(
    fintoc: FintocClient,
    credentials: AccountCredentials,
    asset_id: int,
    window: SyncWindow,
) -> Tuple[List[Transaction], int, int]:
    """
    Fetch and normalize an account's movements for the window.

    Returns: (transactions, movements_fetched, normalization_failures)
    """
    movements = await fintoc.fetch_movements(credentials, window.start, window.end)
    transactions, skipped = normalize_movements(movements, asset_id)
    return transactions, len(movements), skipped


async def sync_account(
    fintoc: FintocClient,
    lunchmoney: LunchMoneyClient,
    secret_token: str,
    bank: BankConfig,
    account: AccountConfig,
    window: SyncWindow,
    reporter: SyncReporter | None = None,
) -> AccountSyncReport:
    """
    Sync one account end to end.

    Flow:
    1. Fetch balance from Fintoc (fatal on error)
    2. Unless skip_movements: fetch movements, normalize, insert in batches
    3. Update the Lunch Money asset balance (always)

    Raises:
        DomainException: Fetch failure, unsupported balance currency, or
            balance verification failure
    """
    reporter = reporter or NullReporter()
    credentials = credentials_for(secret_token, bank, account)
    log_extra = {"bank": bank.name, "account": account.name}

    reporter.account_started(bank, account)

    # 1. Balance
    balance, currency = await fintoc.fetch_balance(credentials, account.type)
    reporter.balance_fetched(balance, currency)
    logging.info(f"Fetched balance {balance} {currency}", extra={**log_extra, "step": "balance"})

    report = AccountSyncReport(
        bank_name=bank.name,
        account_name=account.name,
        balance=balance,
        currency=currency,
        movements_skipped=account.skip_movements,
    )

    # 2. Movements
    if account.skip_movements:
        reporter.movements_skipped(bank, account)
        logging.info("Skipping movements per configuration", extra={**log_extra, "step": "movements"})
    else:
        transactions, fetched, skipped = await fetch_transactions(
            fintoc, credentials, account.lunch_money_asset_id, window
        )
        report.movements_fetched = fetched
        report.normalization_failures = skipped
        reporter.movements_fetched(fetched)
        logging.info(
            f"Fetched {fetched} movements",
            extra={**log_extra, "step": "movements", "count": fetched, "skipped": skipped},
        )

        batch_results = []
        processed = 0
        for batch in chunked(transactions, INSERT_BATCH_SIZE):
            batch_results.append(await lunchmoney.insert_batch(batch))
            processed += len(batch)
            reporter.batch_inserted(processed, len(transactions))

        report.result = reduce(operator.add, batch_results, BatchResult())

    # 3. Balance update
    await lunchmoney.update_asset_balance(account.lunch_money_asset_id, balance, currency)
    reporter.balance_updated(balance, currency)

    return report


async def sync_accounts(
    settings: Settings,
    fintoc: FintocClient,
    lunchmoney: LunchMoneyClient,
    bank_name: str = "",
    account_name: str = "",
    reporter: SyncReporter | None = None,
    now: datetime | None = None,
    end_offset: timedelta | None = None,
) -> List[AccountSyncReport]:
    """
    Sync every selected account, one at a time.

    Each account is reported as soon as it finishes, so a fatal error in a
    later account still leaves the earlier summaries logged and recorded.
    """
    reporter = reporter or NullReporter()
    window = window_from_settings(settings, now=now, end_offset=end_offset)
    reports = []

    for bank, account in select_accounts(settings.banks, bank_name, account_name):
        start_time = time.time()
        report = await sync_account(
            fintoc,
            lunchmoney,
            settings.tokens.fintoc_secret_token,
            bank,
            account,
            window,
            reporter,
        )
        duration_ms = (time.time() - start_time) * 1000

        record_account_sync(report, account.lunch_money_asset_id)
        log_sync_summary(report, duration_ms)
        reporter.account_finished(report)
        reports.append(report)

    return reports
