from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from bibledex.exceptions import ConfigError


class AppConfig(BaseModel):
    """Application-wide configuration values."""

    name: str = "bibledex"
    log_level: str = "INFO"


class StoreConfig(BaseModel):
    """Document store (Elasticsearch/OpenSearch) connection values."""

    host: str = "https://localhost:9200"
    username: Optional[str] = None
    password: Optional[str] = None
    index: str = "bible"
    verify_ssl: bool = True
    timeout: float = 30.0


class IngestConfig(BaseModel):
    """Bulk import configuration values."""

    file: Optional[str] = None
    workers: int = 4
    flush_bytes: int = 5_000_000
    flush_interval: float = 30.0
    # Defaults to twice the worker count when unset
    max_pending_jobs: Optional[int] = None


class SearchConfig(BaseModel):
    """Query configuration values."""

    text: Optional[str] = None
    max_results: int = 25


class Settings(BaseSettings):
    """Top-level settings.

    Values come from, highest priority first: environment variables, ``.env``,
    explicit init arguments (command-line flags), then the defaults above.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIBLEDEX_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    store: StoreConfig = StoreConfig()
    ingest: IngestConfig = IngestConfig()
    search: SearchConfig = SearchConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides flags
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def _prune(values: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Mapping):
            nested = _prune(value)
            if nested:
                out[key] = nested
        elif value is not None:
            out[key] = value
    return out


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Load settings, layering flag values under the environment.

    ``overrides`` is a nested mapping such as ``{"store": {"host": ...}}``;
    ``None`` leaves are dropped so unset flags fall through to defaults.
    """
    try:
        return Settings(**_prune(overrides or {}))  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
