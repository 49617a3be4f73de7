"""Configuration management using Pydantic Settings"""

from pathlib import Path
from typing import List, Tuple, Type

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from fintoc_sync.domain.models import AccountType

DEFAULT_CONFIG_PATH = Path("config.toml")
DEFAULT_FINTOC_API_BASE = "https://api.fintoc.com/v1"
DEFAULT_LUNCH_MONEY_API_BASE = "https://dev.lunchmoney.app/v1"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_SERVICE_NAME = "fintoc-sync"


class Tokens(BaseModel):
    fintoc_secret_token: str
    lunch_money_api_token: str


class AccountConfig(BaseModel):
    """One Fintoc account mirrored into one Lunch Money asset"""

    name: str
    fintoc_account_id: str
    lunch_money_asset_id: int
    type: AccountType
    skip_movements: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def _lowercase_type(cls, value):
        return value.lower() if isinstance(value, str) else value


class BankConfig(BaseModel):
    name: str
    link_token: str
    accounts: List[AccountConfig] = Field(default_factory=list)


class SyncSettings(BaseModel):
    # Lookback before now, e.g. "1d", "2w"
    default_start_from: str = "1d"


class Settings(BaseSettings):
    """Application configuration loaded from a TOML file and environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="FINTOC_SYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        toml_file=DEFAULT_CONFIG_PATH,
    )

    tokens: Tokens
    banks: List[BankConfig] = Field(default_factory=list)
    sync_settings: SyncSettings = Field(default_factory=SyncSettings)

    # External Services
    fintoc_api_base: str = DEFAULT_FINTOC_API_BASE
    lunch_money_api_base: str = DEFAULT_LUNCH_MONEY_API_BASE

    # Service
    service_name: str = DEFAULT_SERVICE_NAME
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings, reading the TOML file at config_path instead of ./config.toml"""
    if config_path is None:
        return Settings()

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=Path(config_path))

    return FileSettings()
