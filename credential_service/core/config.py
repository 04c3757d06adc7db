from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
LedgerBackend = Literal["solana", "memory"]

_MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
_DEVNET_RPC_URL = "https://api.devnet.solana.com"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    ledger_backend: LedgerBackend = "solana"
    solana_rpc_url: str = _DEVNET_RPC_URL
    # Never shown in reprs or logs; only the key manager reads it.
    solana_private_key: str | None = field(default=None, repr=False)
    min_fee_lamports: int = 5000
    ledger_timeout_seconds: float = 30.0
    jwt_public_key: str | None = field(default=None, repr=False)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 900

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def ledger_network(self) -> str:
        """Human label for the cluster behind solana_rpc_url."""
        if self.ledger_backend == "memory":
            return "memory"
        if "mainnet" in self.solana_rpc_url:
            return "mainnet"
        if "testnet" in self.solana_rpc_url:
            return "testnet"
        if "devnet" in self.solana_rpc_url:
            return "devnet"
        return "custom"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    default_backend = "memory" if app_env_raw == "test" else "solana"
    ledger_backend_raw = _getenv("LEDGER_BACKEND", default_backend).lower()
    if ledger_backend_raw not in ("solana", "memory"):
        raise ValueError(
            f"LEDGER_BACKEND must be solana|memory (got {ledger_backend_raw!r})"
        )

    default_rpc = _MAINNET_RPC_URL if app_env_raw == "prod" else _DEVNET_RPC_URL
    solana_rpc_url = _getenv("SOLANA_RPC_URL", "") or default_rpc

    timeout_raw = _getenv("LEDGER_TIMEOUT_SECONDS", "30")
    try:
        ledger_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"LEDGER_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if ledger_timeout <= 0:
        raise ValueError(
            f"LEDGER_TIMEOUT_SECONDS must be positive (got {ledger_timeout})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        ledger_backend=ledger_backend_raw,
        solana_rpc_url=solana_rpc_url,
        solana_private_key=_getenv("SOLANA_PRIVATE_KEY", "") or None,
        min_fee_lamports=_getenv_int("MIN_FEE_LAMPORTS", 5000),
        ledger_timeout_seconds=ledger_timeout,
        jwt_public_key=_getenv("JWT_PUBLIC_KEY", "") or None,
        rate_limit_max_requests=_getenv_int("RATE_LIMIT_MAX_REQUESTS", 100, minimum=1),
        rate_limit_window_seconds=_getenv_int(
            "RATE_LIMIT_WINDOW_SECONDS", 900, minimum=1
        ),
    )


SETTINGS = load_settings()
