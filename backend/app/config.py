"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - RPC_URL, PRIVATE_KEY and CONTRACT_ADDRESS are required: missing or malformed
      values raise on first get_settings() call, which happens at import of app.main
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - PRIVATE_KEY held as SecretStr: never rendered by repr() or logged
"""

import re
from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PRIVATE_KEY_RE = re.compile(r"0x[0-9a-fA-F]{64}")
_CONTRACT_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, hide_input_in_errors=True,
    )

    # Ledger endpoint
    rpc_url: str
    chain_id: int | None = None
    rpc_timeout_seconds: float = 30.0

    # Signing identity and token
    private_key: SecretStr
    contract_address: str

    # Confirmation
    confirmations: int = 1
    confirmation_timeout_seconds: float = 120.0
    confirmation_poll_seconds: float = 1.0

    # Pipeline
    allowance_precheck: bool = True

    # API
    host: str = "0.0.0.0"  # nosec B104
    port: int = 3000
    cors_origins: list[str] = ["*"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("rpc_url")
    @classmethod
    def require_rpc_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("RPC_URL must be an http(s) URL")
        return v

    @field_validator("private_key", mode="before")
    @classmethod
    def check_private_key(cls, v):
        raw = v.get_secret_value() if isinstance(v, SecretStr) else v
        if not isinstance(raw, str) or not _PRIVATE_KEY_RE.fullmatch(raw):
            # ADR: never echo the value back (signing credential)
            raise ValueError(
                "PRIVATE_KEY must be a valid 64-character hex string (with 0x prefix)",
            )
        return v

    @field_validator("contract_address")
    @classmethod
    def check_contract_address(cls, v: str) -> str:
        if not _CONTRACT_ADDRESS_RE.fullmatch(v):
            raise ValueError(
                "CONTRACT_ADDRESS must be a valid 40-character hex string (with 0x prefix)",
            )
        return v

    @field_validator("confirmations")
    @classmethod
    def check_confirmations(cls, v: int) -> int:
        if v < 1:
            raise ValueError("CONFIRMATIONS must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
