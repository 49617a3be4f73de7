"""Console rendering for CLI commands"""

import typer

from fintoc_sync.config import AccountConfig, BankConfig
from fintoc_sync.domain.models import AccountSyncReport, Asset, FintocAccount, SyncWindow, Transaction
from fintoc_sync.domain.money import Amount, Currency, format_display


def format_transaction(transaction: Transaction) -> str:
    """e.g. "2024-03-01 - Supermarket: $12,990 (CLP)" with the amount green or red"""
    payee = transaction.payee or "Unknown"
    amount = format_display(transaction.amount, transaction.currency)
    color = typer.colors.GREEN if transaction.amount.value >= 0 else typer.colors.RED
    currency = (transaction.currency or "UNK").upper()
    return f"{transaction.date:%Y-%m-%d} - {payee}: {typer.style(amount, fg=color)} ({currency})"


def format_asset(asset: Asset) -> str:
    asset_id = typer.style(str(asset.id), fg=typer.colors.BLUE, bold=True)
    balance = typer.style(format_display(asset.balance, asset.currency), fg=typer.colors.GREEN)
    return f"{asset_id} - {asset.label}: {balance} ({asset.currency.upper()})"


def format_fintoc_account(account: FintocAccount) -> str:
    account_id = typer.style(account.id, fg=typer.colors.BLUE, bold=True)
    return (
        f"{account_id} - {account.name} ({account.type}, {account.currency}): "
        f"current {account.balance.current}, available {account.balance.available}, "
        f"limit {account.balance.limit}"
    )


def format_window(window: SyncWindow) -> str:
    return f"Time period: {window.start:%Y-%m-%d %H:%M:%S} UTC to {window.end:%Y-%m-%d %H:%M:%S} UTC"


def format_summary(report: AccountSyncReport) -> str:
    name = f"{report.bank_name} - {report.account_name}"
    if report.movements_skipped:
        return f"Finished sync for {name}."

    message = f"Finished sync for {name}: {report.result.inserted_count} new"
    if report.result.duplicate_count:
        message += f", {report.result.duplicate_count} existing"
    if report.result.failed_count:
        message += f", {report.result.failed_count} failed"
    if report.normalization_failures:
        message += f", {report.normalization_failures} unsupported"
    return message + " transactions."


class ConsoleReporter:
    """Prints sync progress as it happens"""

    def __init__(self) -> None:
        self._progress = None
        self._processed = 0

    def account_started(self, bank: BankConfig, account: AccountConfig) -> None:
        typer.secho(f"Syncing {bank.name} - {account.name}", bold=True)

    def balance_fetched(self, balance: Amount, currency: Currency) -> None:
        typer.secho(
            f"Found current account balance: {format_display(balance, currency.value)} {currency}",
            fg=typer.colors.BLUE,
        )

    def movements_fetched(self, count: int) -> None:
        typer.secho(f"Fetched a total of {count} movements.", fg=typer.colors.BLUE)

    def batch_inserted(self, processed: int, total: int) -> None:
        if self._progress is None:
            self._progress = typer.progressbar(length=total, label="Inserting transactions")
            self._processed = 0

        self._progress.update(processed - self._processed)
        self._processed = processed

        if processed >= total:
            self._progress.render_finish()
            self._progress = None

    def movements_skipped(self, bank: BankConfig, account: AccountConfig) -> None:
        typer.secho(
            f"Skipping movements sync for {bank.name} - {account.name} per configuration.",
            fg=typer.colors.YELLOW,
        )

    def balance_updated(self, balance: Amount, currency: Currency) -> None:
        typer.secho(
            f"Updated asset balance successfully to {format_display(balance, currency.value)} {currency}",
            fg=typer.colors.BLUE,
        )

    def account_finished(self, report: AccountSyncReport) -> None:
        typer.secho(format_summary(report), bold=True)
