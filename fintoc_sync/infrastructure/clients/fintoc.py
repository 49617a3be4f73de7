"""Fintoc API HTTP client for fetching movements and account balances"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx

from fintoc_sync.config import DEFAULT_FINTOC_API_BASE, DEFAULT_HTTP_TIMEOUT_SECONDS
from fintoc_sync.domain.exceptions import FintocAPIError
from fintoc_sync.domain.models import (
    AccountBalance,
    AccountCredentials,
    AccountType,
    FintocAccount,
    Institution,
    Movement,
    MovementType,
    TransferAccount,
)
from fintoc_sync.domain.money import Amount, Currency
from fintoc_sync.infrastructure.observability.metrics import api_failures_counter, api_latency_histogram

MOVEMENTS_PAGE_SIZE = 300


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _require_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an integer, got {value!r}")
    return value


def _require_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{field} must be a boolean, got {value!r}")
    return value


def _transfer_account_from_payload(data: Optional[Dict[str, Any]]) -> Optional[TransferAccount]:
    if data is None:
        return None

    institution = data.get("institution")
    return TransferAccount(
        holder_id=data["holder_id"],
        holder_name=data["holder_name"],
        number=data.get("number"),
        institution=(
            Institution(id=institution["id"], name=institution["name"], country=institution["country"])
            if institution is not None
            else None
        ),
    )


def movement_from_payload(data: Dict[str, Any]) -> Movement:
    """Build a Movement from a Fintoc movement object"""
    transaction_date = data.get("transaction_date")
    return Movement(
        id=data["id"],
        amount=_require_int(data["amount"], "amount"),
        post_date=_parse_datetime(data["post_date"]),
        transaction_date=_parse_datetime(transaction_date) if transaction_date else None,
        description=data["description"],
        currency=data["currency"],
        reference_id=data.get("reference_id"),
        type=MovementType(data["type"]),
        pending=_require_bool(data["pending"], "pending"),
        sender_account=_transfer_account_from_payload(data.get("sender_account")),
        recipient_account=_transfer_account_from_payload(data.get("recipient_account")),
        comment=data.get("comment"),
    )


def balance_from_payload(data: Dict[str, Any]) -> AccountBalance:
    return AccountBalance(
        available=_require_int(data["available"], "available"),
        current=_require_int(data["current"], "current"),
        limit=_require_int(data["limit"], "limit"),
    )


def account_from_payload(data: Dict[str, Any]) -> FintocAccount:
    return FintocAccount(
        id=data["id"],
        name=data["name"],
        official_name=data.get("official_name") or data["name"],
        type=data["type"],
        currency=data["currency"],
        balance=balance_from_payload(data["balance"]),
        holder_name=data.get("holder_name") or "",
        number=data.get("number"),
    )


def balance_minor_units(balance: AccountBalance, account_type: AccountType) -> int:
    """
    Balance to mirror into the ledger, in minor units.

    Credit lines report how much of the limit is still available; the
    outstanding debt is limit - available, framed as a positive magnitude.
    """
    if account_type == AccountType.CREDIT:
        return balance.limit - balance.available
    return balance.current


class FintocClient:
    """Client for the Fintoc banking-data API"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_FINTOC_API_BASE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _get(self, path: str, secret_token: str, params: Dict[str, Any], endpoint: str) -> Any:
        """
        GET a Fintoc resource and decode its JSON body.

        Raises:
            FintocAPIError: On timeout, network failure, non-200 status, or invalid JSON
        """
        try:
            with api_latency_histogram.labels(service="fintoc", endpoint=endpoint).time():
                response = await self.http_client.get(
                    f"{self.base_url}{path}",
                    params=params,
                    headers={"Authorization": secret_token, "Content-Type": "application/json"},
                    timeout=self.timeout,
                )
        except httpx.TimeoutException as e:
            api_failures_counter.labels(service="fintoc").inc()
            raise FintocAPIError(f"Fintoc API timeout after {self.timeout}s on {endpoint}") from e
        except httpx.RequestError as e:
            api_failures_counter.labels(service="fintoc").inc()
            raise FintocAPIError(f"Fintoc API request failed on {endpoint}: {e}") from e

        if response.status_code != 200:
            api_failures_counter.labels(service="fintoc").inc()
            raise FintocAPIError(
                f"Failed to get Fintoc {endpoint}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FintocAPIError(
                f"Invalid JSON from Fintoc {endpoint}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def fetch_movements(
        self,
        credentials: AccountCredentials,
        start_date: datetime,
        end_date: datetime,
    ) -> List[Movement]:
        """
        Fetch every movement between start_date and end_date.

        Pages of MOVEMENTS_PAGE_SIZE are requested starting at page 1 until
        Fintoc returns an empty page. Any failing page aborts the whole fetch.

        Raises:
            FintocAPIError: On HTTP errors or a malformed page
        """
        movements: List[Movement] = []
        page = 1

        while True:
            data = await self._get(
                f"/accounts/{credentials.account_id}/movements",
                credentials.secret_token,
                params={
                    "link_token": credentials.link_token,
                    "since": start_date.strftime("%Y-%m-%d"),
                    "until": end_date.strftime("%Y-%m-%d"),
                    "per_page": MOVEMENTS_PAGE_SIZE,
                    "page": page,
                },
                endpoint="movements",
            )

            if not isinstance(data, list):
                raise FintocAPIError(f"Movements page {page} is not an array", body=str(data))

            if not data:
                break

            try:
                movements.extend(movement_from_payload(item) for item in data)
            except (KeyError, ValueError, TypeError) as e:
                raise FintocAPIError(f"Invalid movement data from Fintoc on page {page}: {e}") from e

            logging.debug(
                f"Fetched movements page {page}",
                extra={"account_id": credentials.account_id, "page": page, "count": len(data)},
            )
            page += 1

        return movements

    async def fetch_balance(
        self,
        credentials: AccountCredentials,
        account_type: AccountType,
    ) -> Tuple[Amount, Currency]:
        """
        Fetch the account balance scaled to major units.

        Raises:
            FintocAPIError: On HTTP errors or invalid account data
            UnsupportedCurrencyError: Account currency has no known scale
        """
        data = await self._get(
            f"/accounts/{credentials.account_id}",
            credentials.secret_token,
            params={"link_token": credentials.link_token},
            endpoint="account",
        )

        try:
            currency_code = data["currency"]
            balance = balance_from_payload(data["balance"])
        except (KeyError, ValueError, TypeError) as e:
            raise FintocAPIError(f"Invalid account data from Fintoc: {e}") from e

        raw = balance_minor_units(balance, account_type)
        amount = Amount.from_minor_units(raw, currency_code)
        return amount, Currency.from_code(currency_code)

    async def list_accounts(self, secret_token: str, link_token: str) -> List[FintocAccount]:
        """
        List the accounts reachable through a link token.

        Raises:
            FintocAPIError: On HTTP errors or invalid account data
        """
        data = await self._get(
            "/accounts",
            secret_token,
            params={"link_token": link_token},
            endpoint="accounts",
        )

        if not isinstance(data, list):
            raise FintocAPIError("Accounts response is not an array", body=str(data))

        try:
            return [account_from_payload(item) for item in data]
        except (KeyError, ValueError, TypeError) as e:
            raise FintocAPIError(f"Invalid account data from Fintoc: {e}") from e
