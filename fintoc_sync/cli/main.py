"""fintoc-sync command line interface"""

import asyncio
import tomllib
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from fintoc_sync.cli import dependencies
from fintoc_sync.cli.reporting import (
    ConsoleReporter,
    format_asset,
    format_fintoc_account,
    format_transaction,
    format_window,
)
from fintoc_sync.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from fintoc_sync.domain.exceptions import DomainException
from fintoc_sync.infrastructure.observability.logging import setup_logging
from fintoc_sync.infrastructure.observability.metrics import write_metrics
from fintoc_sync.services.sync import (
    credentials_for,
    fetch_transactions,
    select_accounts,
    sync_accounts,
    window_from_settings,
)

app = typer.Typer(
    help="Sync Fintoc bank movements and balances into Lunch Money.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to the TOML configuration file"),
    debug: bool = typer.Option(False, "--debug", help="Log at DEBUG level"),
) -> None:
    """Store global options; settings load lazily so --help works without a config file."""
    ctx.obj = {"config": config, "debug": debug}


def _load(ctx: typer.Context) -> Settings:
    try:
        settings = load_settings(ctx.obj["config"])
    except (ValidationError, tomllib.TOMLDecodeError) as e:
        typer.secho(f"Invalid configuration in {ctx.obj['config']}:\n{e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    setup_logging("DEBUG" if ctx.obj["debug"] else settings.log_level, service_name=settings.service_name)
    return settings


def _run(coroutine) -> None:
    try:
        asyncio.run(coroutine)
    except DomainException as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


async def _accounts_impl(settings: Settings, bank_name: str) -> None:
    banks = [bank for bank in settings.banks if bank.name == bank_name]
    if not banks:
        typer.secho(f"No bank named {bank_name!r} in configuration", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    async with dependencies.create_http_client(settings) as http_client:
        fintoc = dependencies.get_fintoc_client(settings, http_client)
        accounts = await fintoc.list_accounts(settings.tokens.fintoc_secret_token, banks[0].link_token)

    for account in accounts:
        typer.echo(format_fintoc_account(account))


@app.command("accounts")
def accounts_cmd(
    ctx: typer.Context,
    bank_name: str = typer.Argument(..., help="Configured bank whose link token to use"),
) -> None:
    """List the Fintoc accounts reachable through a bank's link token."""
    _run(_accounts_impl(_load(ctx), bank_name))


async def _movements_impl(settings: Settings, bank_name: str, account_name: str) -> None:
    window = window_from_settings(settings)
    typer.secho(format_window(window), bold=True)

    async with dependencies.create_http_client(settings) as http_client:
        fintoc = dependencies.get_fintoc_client(settings, http_client)

        for bank, account in select_accounts(settings.banks, bank_name, account_name):
            typer.secho(f"Listing movements for {bank.name} - {account.name}", bold=True)
            credentials = credentials_for(settings.tokens.fintoc_secret_token, bank, account)
            transactions, _, _ = await fetch_transactions(
                fintoc, credentials, account.lunch_money_asset_id, window
            )
            for transaction in transactions:
                typer.echo(format_transaction(transaction))


@app.command("movements")
def movements_cmd(
    ctx: typer.Context,
    bank_name: str = typer.Argument("", help="Only this bank (default: all)"),
    account_name: str = typer.Argument("", help="Only this account (default: all)"),
) -> None:
    """Print the transactions a sync would post, without touching Lunch Money."""
    _run(_movements_impl(_load(ctx), bank_name, account_name))


async def _assets_impl(settings: Settings) -> None:
    async with dependencies.create_http_client(settings) as http_client:
        lunchmoney = dependencies.get_lunchmoney_client(settings, http_client)
        assets = await lunchmoney.list_assets()

    for asset in assets:
        typer.echo(format_asset(asset))


@app.command("assets")
def assets_cmd(ctx: typer.Context) -> None:
    """List Lunch Money assets and their balances."""
    _run(_assets_impl(_load(ctx)))


async def _sync_impl(
    settings: Settings,
    bank_name: str,
    account_name: str,
    metrics_file: Optional[Path],
) -> None:
    async with dependencies.create_http_client(settings) as http_client:
        fintoc = dependencies.get_fintoc_client(settings, http_client)
        lunchmoney = dependencies.get_lunchmoney_client(settings, http_client)
        try:
            await sync_accounts(
                settings,
                fintoc,
                lunchmoney,
                bank_name=bank_name,
                account_name=account_name,
                reporter=ConsoleReporter(),
            )
        finally:
            if metrics_file is not None:
                write_metrics(metrics_file)


@app.command("sync")
def sync_cmd(
    ctx: typer.Context,
    bank_name: str = typer.Argument("", help="Only this bank (default: all)"),
    account_name: str = typer.Argument("", help="Only this account (default: all)"),
    metrics_file: Optional[Path] = typer.Option(
        None, "--metrics-file", help="Write Prometheus metrics here when done"
    ),
) -> None:
    """Sync balances and movements into Lunch Money."""
    _run(_sync_impl(_load(ctx), bank_name, account_name, metrics_file))


if __name__ == "__main__":
    app()
