"""Client construction shared by CLI commands"""

import httpx

from fintoc_sync.config import Settings
from fintoc_sync.infrastructure.clients.fintoc import FintocClient
from fintoc_sync.infrastructure.clients.lunchmoney import LunchMoneyClient


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """One connection pool per invocation, shared by both API clients"""
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def get_fintoc_client(settings: Settings, http_client: httpx.AsyncClient) -> FintocClient:
    """Provide Fintoc API client instance"""
    return FintocClient(
        http_client,
        base_url=settings.fintoc_api_base,
        timeout=settings.http_timeout_seconds,
    )


def get_lunchmoney_client(settings: Settings, http_client: httpx.AsyncClient) -> LunchMoneyClient:
    """Provide Lunch Money API client instance"""
    return LunchMoneyClient(
        http_client,
        api_token=settings.tokens.lunch_money_api_token,
        base_url=settings.lunch_money_api_base,
        timeout=settings.http_timeout_seconds,
    )
