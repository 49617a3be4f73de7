"""Lunch Money API client: asset listing, idempotent inserts, balance updates"""

import logging
from typing import Any, Dict, Iterable, List

import httpx
from pydantic import BaseModel, ValidationError

from fintoc_sync.config import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_LUNCH_MONEY_API_BASE
from fintoc_sync.domain.exceptions import BalanceVerificationError, LunchMoneyAPIError
from fintoc_sync.domain.models import Asset, BatchResult, InsertOutcome, Transaction
from fintoc_sync.domain.money import Amount, Currency
from fintoc_sync.infrastructure.clients.schemas import (
    AssetSchema,
    AssetsResponse,
    InsertResponseShape,
    InsertTransactionsRequest,
    InsertTransactionsResponse,
    TransactionPayload,
    UpdateAssetRequest,
)
from fintoc_sync.infrastructure.observability.metrics import api_failures_counter, api_latency_histogram

DUPLICATE_ERROR_MARKER = "already exists"


def transaction_to_payload(transaction: Transaction) -> TransactionPayload:
    return TransactionPayload(
        date=transaction.date,
        amount=str(transaction.amount),
        payee=transaction.payee,
        currency=transaction.currency,
        asset_id=transaction.asset_id,
        status=transaction.status.value,
        external_id=transaction.external_id,
        notes=transaction.notes,
        original_name=transaction.original_name,
        is_pending=transaction.is_pending,
        category_id=transaction.category_id,
        tags=transaction.tags,
    )


def asset_from_schema(schema: AssetSchema) -> Asset:
    return Asset(
        id=schema.id,
        balance=Amount.parse(schema.balance),
        currency=schema.currency,
        name=schema.name,
        display_name=schema.display_name,
        type_name=schema.type_name,
        subtype_name=schema.subtype_name,
        institution_name=schema.institution_name,
        balance_as_of=schema.balance_as_of,
        closed_on=schema.closed_on,
        exclude_transactions=schema.exclude_transactions,
        created_at=schema.created_at,
    )


def interpret_insert_response(response: InsertTransactionsResponse, external_id: str | None = None) -> InsertOutcome:
    """
    Resolve an insert response to (inserted id, duplicate flag).

    - ids only: first id is the inserted one
    - ids with errors / errors only: an "already exists" error marks a
      duplicate; other errors are logged and the first id (if any) wins
    - empty: nothing inserted
    """
    shape = response.shape

    if shape == InsertResponseShape.EMPTY:
        return InsertOutcome()

    if shape in (InsertResponseShape.IDS_WITH_ERRORS, InsertResponseShape.ERRORS_ONLY):
        for error in response.error:
            if DUPLICATE_ERROR_MARKER in error:
                return InsertOutcome(duplicate=True)
            logging.warning(
                f"Lunch Money rejected transaction: {error}",
                extra={"external_id": external_id, "step": "insert"},
            )

    inserted_id = response.ids[0] if response.ids else None
    return InsertOutcome(inserted_id=inserted_id)


class LunchMoneyClient:
    """Client for the Lunch Money v1 API"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_token: str,
        base_url: str = DEFAULT_LUNCH_MONEY_API_BASE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.http_client = http_client
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        endpoint: str,
        body: BaseModel | None = None,
    ) -> Dict[str, Any]:
        """
        Send a request and decode the JSON object it returns.

        Raises:
            LunchMoneyAPIError: On timeout, network failure, non-200 status, or invalid JSON
        """
        headers = {"Authorization": f"Bearer {self.api_token}"}
        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if body is not None:
            headers["Content-Type"] = "application/json; charset=utf-8"
            kwargs["content"] = body.model_dump_json(exclude_none=True)

        try:
            with api_latency_histogram.labels(service="lunchmoney", endpoint=endpoint).time():
                response = await self.http_client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.TimeoutException as e:
            api_failures_counter.labels(service="lunchmoney").inc()
            raise LunchMoneyAPIError(f"Lunch Money API timeout after {self.timeout}s on {endpoint}") from e
        except httpx.RequestError as e:
            api_failures_counter.labels(service="lunchmoney").inc()
            raise LunchMoneyAPIError(f"Lunch Money API request failed on {endpoint}: {e}") from e

        if response.status_code != 200:
            api_failures_counter.labels(service="lunchmoney").inc()
            raise LunchMoneyAPIError(
                f"Lunch Money {endpoint} failed",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LunchMoneyAPIError(
                f"Invalid JSON from Lunch Money {endpoint}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(data, dict):
            raise LunchMoneyAPIError(f"Unexpected Lunch Money {endpoint} response", body=response.text)
        return data

    async def list_assets(self) -> List[Asset]:
        """
        Fetch every asset on the Lunch Money account.

        Raises:
            LunchMoneyAPIError: On HTTP errors or invalid asset data
        """
        data = await self._request("GET", "/assets", endpoint="assets")

        try:
            response = AssetsResponse.model_validate(data)
            return [asset_from_schema(asset) for asset in response.assets]
        except (ValidationError, ValueError) as e:
            raise LunchMoneyAPIError(f"Invalid asset data from Lunch Money: {e}") from e

    async def insert_one(self, transaction: Transaction) -> InsertOutcome:
        """
        Insert a single transaction.

        Lunch Money rejects a repeated external_id per asset with an
        "already exists" error, which is reported as a duplicate outcome.

        Raises:
            LunchMoneyAPIError: On HTTP errors or an unreadable response
        """
        request = InsertTransactionsRequest(
            transactions=[transaction_to_payload(transaction)],
            apply_rules=True,
            check_for_recurring=True,
            debit_as_negative=True,
        )
        data = await self._request("POST", "/transactions", endpoint="transactions", body=request)

        try:
            response = InsertTransactionsResponse.model_validate(data)
        except ValidationError as e:
            raise LunchMoneyAPIError(f"Invalid insert response from Lunch Money: {e}") from e

        return interpret_insert_response(response, transaction.external_id)

    async def insert_batch(self, transactions: Iterable[Transaction]) -> BatchResult:
        """
        Insert transactions one at a time, in order.

        A failing transaction is logged and counted; the rest of the batch
        still goes through.
        """
        result = BatchResult()

        for transaction in transactions:
            try:
                outcome = await self.insert_one(transaction)
            except LunchMoneyAPIError as e:
                logging.error(
                    f"Failed to insert transaction {transaction.external_id}: {e}",
                    extra={"external_id": transaction.external_id, "step": "insert"},
                )
                result += BatchResult(failed_count=1)
                continue

            result = result.record(outcome)

        return result

    async def update_asset_balance(self, asset_id: int, balance: Amount, currency: Currency) -> Asset:
        """
        Set an asset's balance and verify Lunch Money stored exactly that.

        Raises:
            LunchMoneyAPIError: On HTTP errors or an unreadable response
            BalanceVerificationError: Echoed balance or currency differs from the request
        """
        requested_currency = currency.value.lower()
        request = UpdateAssetRequest(balance=str(balance), currency=requested_currency)
        data = await self._request("PUT", f"/assets/{asset_id}", endpoint="asset_update", body=request)

        try:
            updated = asset_from_schema(AssetSchema.model_validate(data))
        except (ValidationError, ValueError) as e:
            raise LunchMoneyAPIError(f"Invalid asset data from Lunch Money: {e}") from e

        if updated.balance != balance:
            raise BalanceVerificationError(
                f"Failed to update Lunch Money asset {asset_id} balance, expected {balance}, got {updated.balance}"
            )
        if updated.currency != requested_currency:
            raise BalanceVerificationError(
                f"Failed to update Lunch Money asset {asset_id} currency, "
                f"expected {requested_currency}, got {updated.currency}"
            )

        return updated
