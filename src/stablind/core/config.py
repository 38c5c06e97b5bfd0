from __future__ import annotations

from dataclasses import dataclass

from stablind.constants import SSS_TOKEN_PROGRAM_ID

DEFAULT_WS_URL = "wss://api.devnet.solana.com"
DEFAULT_DB_PATH = "stablind.duckdb"


@dataclass(frozen=True)
class ListenerConfig:
    """Configuration for the program-logs listener."""

    ws_url: str = DEFAULT_WS_URL
    program_id: str = SSS_TOKEN_PROGRAM_ID
    commitment: str = "confirmed"
    open_timeout_s: float = 10.0
    ping_interval_s: float = 20.0


@dataclass(frozen=True)
class DispatcherConfig:
    """Configuration for webhook delivery."""

    timeout_s: float = 10.0
    concurrency: int = 8
    user_agent: str = "stablind-webhooks/0.1"


@dataclass(frozen=True)
class IndexerConfig:
    """Configuration for the `listen` supervisor (listener + store + webhooks)."""

    listener: ListenerConfig
    dispatcher: DispatcherConfig
    db_path: str = DEFAULT_DB_PATH
    # restart backoff after a transport failure
    backoff_initial_s: float = 1.0
    backoff_max_s: float = 60.0
    max_restarts: int | None = None  # None = restart forever
