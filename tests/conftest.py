"""Pytest fixtures: in-process Fintoc and Lunch Money mocks behind one shared httpx client"""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi import Body, FastAPI, Header
from fastapi.responses import JSONResponse

from fintoc_sync.config import AccountConfig, BankConfig, Settings, SyncSettings, Tokens
from fintoc_sync.domain.models import Institution, Movement, MovementType, TransferAccount
from fintoc_sync.infrastructure.clients.fintoc import FintocClient
from fintoc_sync.infrastructure.clients.lunchmoney import LunchMoneyClient

FINTOC_BASE = "http://fintoc.test/v1"
LUNCH_MONEY_BASE = "http://lunchmoney.test/v1"
SECRET_TOKEN = "sk_test_secret"
LINK_TOKEN = "link_test_token"
LUNCH_MONEY_TOKEN = "lm_test_token"


class FintocState:
    """Accounts and movements served by the mock Fintoc API"""

    def __init__(self) -> None:
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.movements: Dict[str, List[Dict[str, Any]]] = {}
        # Raw page bodies by account, served instead of slicing self.movements
        self.pages: Dict[str, List[Any]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.fail_status: Optional[int] = None

    def add_account(
        self,
        account_id: str,
        currency: str = "CLP",
        available: int = 0,
        current: int = 0,
        limit: int = 0,
        account_type: str = "checking_account",
    ) -> None:
        self.accounts[account_id] = {
            "id": account_id,
            "object": "account",
            "name": f"Account {account_id}",
            "official_name": f"Cuenta {account_id}",
            "number": "123456789",
            "holder_id": "111111111",
            "holder_name": "Jane Doe",
            "type": account_type,
            "currency": currency,
            "balance": {"available": available, "current": current, "limit": limit},
            "refreshed_at": None,
        }
        self.movements.setdefault(account_id, [])


class LunchMoneyState:
    """Assets and transactions held by the mock Lunch Money API"""

    def __init__(self) -> None:
        self.assets: Dict[int, Dict[str, Any]] = {}
        self.transactions: List[Dict[str, Any]] = []
        self.insert_requests: List[Dict[str, Any]] = []
        self.next_id = 1000
        # Echo this currency on asset updates instead of the requested one
        self.echo_currency: Optional[str] = None
        # external_id -> HTTP status to fail with
        self.fail_external_ids: Dict[str, int] = {}
        # external_id -> non-duplicate error message
        self.reject_external_ids: Dict[str, str] = {}

    def add_asset(self, asset_id: int, currency: str = "clp", balance: str = "0.0000") -> None:
        self.assets[asset_id] = {
            "id": asset_id,
            "type_name": "cash",
            "subtype_name": "checking",
            "name": f"Asset {asset_id}",
            "display_name": None,
            "balance": balance,
            "balance_as_of": "2024-01-01T00:00:00.000Z",
            "closed_on": None,
            "currency": currency,
            "institution_name": "Banco Test",
            "exclude_transactions": False,
            "created_at": "2023-06-01T12:00:00.000Z",
        }


def create_fintoc_app(state: FintocState) -> FastAPI:
    app = FastAPI(title="Mock Fintoc API")

    def unauthorized(authorization: Optional[str], link_token: str) -> Optional[JSONResponse]:
        if authorization != SECRET_TOKEN or link_token != LINK_TOKEN:
            return JSONResponse(status_code=401, content={"error": {"type": "authentication_error"}})
        if state.fail_status is not None:
            return JSONResponse(status_code=state.fail_status, content={"error": {"type": "api_error"}})
        return None

    @app.get("/v1/accounts")
    def list_accounts(link_token: str, authorization: Optional[str] = Header(None)):
        state.requests.append({"endpoint": "accounts", "link_token": link_token})
        return unauthorized(authorization, link_token) or list(state.accounts.values())

    @app.get("/v1/accounts/{account_id}")
    def get_account(account_id: str, link_token: str, authorization: Optional[str] = Header(None)):
        state.requests.append({"endpoint": "account", "account_id": account_id})
        error = unauthorized(authorization, link_token)
        if error is not None:
            return error
        if account_id not in state.accounts:
            return JSONResponse(status_code=404, content={"error": {"type": "invalid_request_error"}})
        return state.accounts[account_id]

    @app.get("/v1/accounts/{account_id}/movements")
    def get_movements(
        account_id: str,
        link_token: str,
        since: str,
        until: str,
        per_page: int,
        page: int,
        authorization: Optional[str] = Header(None),
    ):
        state.requests.append(
            {
                "endpoint": "movements",
                "account_id": account_id,
                "since": since,
                "until": until,
                "per_page": per_page,
                "page": page,
            }
        )
        error = unauthorized(authorization, link_token)
        if error is not None:
            return error

        if account_id in state.pages:
            pages = state.pages[account_id]
            return JSONResponse(content=pages[page - 1] if page <= len(pages) else [])

        movements = state.movements.get(account_id, [])
        start = (page - 1) * per_page
        return movements[start:start + per_page]

    return app


def create_lunchmoney_app(state: LunchMoneyState) -> FastAPI:
    app = FastAPI(title="Mock Lunch Money API")

    def unauthorized(authorization: Optional[str]) -> Optional[JSONResponse]:
        if authorization != f"Bearer {LUNCH_MONEY_TOKEN}":
            return JSONResponse(status_code=401, content={"error": "Access token does not exist."})
        return None

    @app.get("/v1/assets")
    def get_assets(authorization: Optional[str] = Header(None)):
        return unauthorized(authorization) or {"assets": list(state.assets.values())}

    @app.post("/v1/transactions")
    def insert_transactions(body: Dict[str, Any] = Body(...), authorization: Optional[str] = Header(None)):
        error = unauthorized(authorization)
        if error is not None:
            return error
        state.insert_requests.append(body)

        ids = []
        errors = []
        for txn in body["transactions"]:
            external_id = txn.get("external_id")
            if external_id in state.fail_external_ids:
                return JSONResponse(status_code=state.fail_external_ids[external_id], content={"error": "boom"})
            if external_id in state.reject_external_ids:
                errors.append(state.reject_external_ids[external_id])
                continue
            exists = any(
                t["external_id"] == external_id and t["asset_id"] == txn.get("asset_id")
                for t in state.transactions
            )
            if exists:
                errors.append(f"Key (asset_id, external_id)=({txn.get('asset_id')}, {external_id}) already exists.")
                continue
            state.next_id += 1
            state.transactions.append({**txn, "id": state.next_id})
            ids.append(state.next_id)

        response: Dict[str, Any] = {}
        if ids:
            response["ids"] = ids
        if errors:
            response["error"] = errors
        return response

    @app.put("/v1/assets/{asset_id}")
    def update_asset(asset_id: int, body: Dict[str, Any] = Body(...), authorization: Optional[str] = Header(None)):
        error = unauthorized(authorization)
        if error is not None:
            return error
        if asset_id not in state.assets:
            return JSONResponse(status_code=404, content={"error": ["Asset not found"]})

        asset = state.assets[asset_id]
        asset["balance"] = f"{float(body['balance']):.4f}"
        asset["currency"] = state.echo_currency or body["currency"]
        return asset

    return app


class HostRouterTransport(httpx.AsyncBaseTransport):
    """Send each request to the in-process app registered for its host"""

    def __init__(self, apps: Dict[str, FastAPI]):
        self.transports = {host: httpx.ASGITransport(app=app) for host, app in apps.items()}

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.transports[request.url.host].handle_async_request(request)


def build_http_client(fintoc_state: FintocState, lunchmoney_state: LunchMoneyState) -> httpx.AsyncClient:
    transport = HostRouterTransport(
        {
            "fintoc.test": create_fintoc_app(fintoc_state),
            "lunchmoney.test": create_lunchmoney_app(lunchmoney_state),
        }
    )
    return httpx.AsyncClient(transport=transport)


@pytest.fixture
def fintoc_state() -> FintocState:
    return FintocState()


@pytest.fixture
def lunchmoney_state() -> LunchMoneyState:
    return LunchMoneyState()


@pytest.fixture
async def http_client(
    fintoc_state: FintocState, lunchmoney_state: LunchMoneyState
) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with build_http_client(fintoc_state, lunchmoney_state) as client:
        yield client


@pytest.fixture
def fintoc_client(http_client: httpx.AsyncClient) -> FintocClient:
    return FintocClient(http_client, base_url=FINTOC_BASE, timeout=5.0)


@pytest.fixture
def lunchmoney_client(http_client: httpx.AsyncClient) -> LunchMoneyClient:
    return LunchMoneyClient(http_client, api_token=LUNCH_MONEY_TOKEN, base_url=LUNCH_MONEY_BASE, timeout=5.0)


@pytest.fixture
def settings() -> Settings:
    """Two banks: a checking account with movements and a credit card synced balance-only"""
    return Settings(
        tokens=Tokens(fintoc_secret_token=SECRET_TOKEN, lunch_money_api_token=LUNCH_MONEY_TOKEN),
        banks=[
            BankConfig(
                name="Banco Test",
                link_token=LINK_TOKEN,
                accounts=[
                    AccountConfig(
                        name="Cuenta Corriente",
                        fintoc_account_id="acc_checking",
                        lunch_money_asset_id=501,
                        type="checking",
                    ),
                    AccountConfig(
                        name="Tarjeta",
                        fintoc_account_id="acc_credit",
                        lunch_money_asset_id=502,
                        type="credit",
                        skip_movements=True,
                    ),
                ],
            ),
        ],
        sync_settings=SyncSettings(default_start_from="30d"),
        fintoc_api_base=FINTOC_BASE,
        lunch_money_api_base=LUNCH_MONEY_BASE,
        http_timeout_seconds=5.0,
    )


@pytest.fixture
def movement_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for Fintoc movement JSON objects"""

    def make(
        movement_id: str,
        amount: int = -15000,
        currency: str = "CLP",
        description: str = "COMPRA NACIONAL SUPERMARKET X",
        movement_type: str = "other",
        post_date: str = "2024-03-01T00:00:00Z",
        transaction_date: Optional[str] = None,
        pending: bool = False,
        sender_account: Optional[Dict[str, Any]] = None,
        recipient_account: Optional[Dict[str, Any]] = None,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "id": movement_id,
            "object": "movement",
            "amount": amount,
            "post_date": post_date,
            "description": description,
            "transaction_date": transaction_date,
            "currency": currency,
            "reference_id": None,
            "type": movement_type,
            "pending": pending,
            "recipient_account": recipient_account,
            "sender_account": sender_account,
            "comment": comment,
        }

    return make


@pytest.fixture
def make_movement() -> Callable[..., Movement]:
    """Factory for domain Movement objects"""

    def make(
        movement_id: str = "mov_1",
        amount: int = -15000,
        currency: str = "CLP",
        description: str = "Cargo",
        movement_type: MovementType = MovementType.OTHER,
        sender: Optional[TransferAccount] = None,
        recipient: Optional[TransferAccount] = None,
        **kwargs: Any,
    ) -> Movement:
        return Movement(
            id=movement_id,
            amount=amount,
            post_date=kwargs.pop("post_date", datetime(2024, 3, 1, tzinfo=timezone.utc)),
            description=description,
            currency=currency,
            type=movement_type,
            pending=kwargs.pop("pending", False),
            sender_account=sender,
            recipient_account=recipient,
            **kwargs,
        )

    return make


@pytest.fixture
def institution() -> Institution:
    return Institution(id="cl_banco_de_chile", name="Banco de Chile", country="cl")
