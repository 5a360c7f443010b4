"""
Configuration settings for the DID registry indexer.

Uses Pydantic Settings to load environment variables (and an optional `.env`
file) for the RPC endpoint, registry address, batching and retry knobs, and
logging. `IndexerConfig` is the validated, immutable value the pipeline is
constructed with.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from eth_utils import is_address
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from did_indexer.errors import ConfigError


class Settings(BaseSettings):
    # Chain
    rpc_url: str = Field("http://localhost:8545", alias="RPC_URL")
    contract_address: str = Field("", alias="CONTRACT_ADDRESS")

    # Retrieval
    batch_size: int = Field(100, alias="BATCH_SIZE")
    concurrency: int = Field(5, alias="CONCURRENCY")
    retry_attempts: int = Field(3, alias="RETRY_ATTEMPTS")
    retry_backoff_seconds: float = Field(1.0, alias="RETRY_BACKOFF_SECONDS")
    request_timeout_seconds: Optional[float] = Field(30.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Application
    output_file: str = Field("domains.json", alias="OUTPUT_FILE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


class IndexerConfig(BaseModel):
    """
    Validated run configuration for one extraction.
    """

    endpoint: str = Field(..., min_length=1, description="JSON-RPC endpoint URL.")
    registry_address: str = Field(..., description="Registry contract address (hex).")
    batch_size: int = Field(100, ge=1, description="Encoded calls per aggregated call.")
    concurrency: int = Field(5, ge=1, description="Aggregated calls in flight at once.")
    retry_attempts: int = Field(3, ge=1, description="Attempts per aggregated call.")
    retry_backoff_seconds: float = Field(1.0, ge=0, description="Base of the linear backoff.")
    attempt_timeout_seconds: Optional[float] = Field(
        None, gt=0, description="Wall-clock bound per attempt; None disables it."
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("registry_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"'{value}' is not a valid contract address")
        return value

    @property
    def detail_batch_size(self) -> int:
        """Identifiers per details call; each one needs two encoded lookups."""
        return max(1, self.batch_size // 2)

    @classmethod
    def parse(cls, **values: Any) -> "IndexerConfig":
        """
        Build a config, converting pydantic validation errors into ConfigError.
        """
        try:
            return cls(**values)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigError(f"Invalid run configuration: {problems}") from exc

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, **overrides: Any
    ) -> "IndexerConfig":
        """
        Build a config from environment settings; non-None overrides win.
        """
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "endpoint": settings.rpc_url,
            "registry_address": settings.contract_address,
            "batch_size": settings.batch_size,
            "concurrency": settings.concurrency,
            "retry_attempts": settings.retry_attempts,
            "retry_backoff_seconds": settings.retry_backoff_seconds,
            "attempt_timeout_seconds": settings.request_timeout_seconds,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.parse(**values)


__all__ = ["Settings", "get_settings", "IndexerConfig"]
