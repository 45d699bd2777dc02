"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
Every field can be overridden with a ``RECALL_``-prefixed variable.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_STALE_POLICIES = {"retain", "delete"}


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="RECALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # Vault
    vault_path: str = "~/Research/vault"

    # Storage
    data_dir: str = "./data/recall"
    snapshot_name: str = "srs.db"
    tracking_file: str = "tracking.yaml"

    # Persistence timing (seconds)
    flush_delay: float = 2.0
    flush_max_wait: float = 30.0
    flush_retry_attempts: int = 3
    flush_retry_delay: float = 0.5

    # Indexing
    stale_card_policy: str = "retain"
    index_concurrency: int = 1

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_to_file: bool = False

    @field_validator("stale_card_policy")
    @classmethod
    def stale_policy_valid(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_STALE_POLICIES:
            raise ValueError(
                f"stale_card_policy must be one of {sorted(VALID_STALE_POLICIES)}, got '{v}'"
            )
        return v

    @field_validator("flush_delay", "flush_max_wait", "flush_retry_delay")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("timing values must be >= 0")
        return v

    @field_validator("flush_retry_attempts", "index_concurrency")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @property
    def vault_root(self) -> Path:
        return Path(self.vault_path).expanduser()

    @property
    def data_root(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def tracking_path(self) -> Path:
        return self.data_root / self.tracking_file


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
