from __future__ import annotations

import os
from dataclasses import dataclass

from feed_core.discriminator import PROGRAM_ID
from feed_core.tracker import DEDUP_CAP
from feed_relay.errors import ConfigError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        raw = os.getenv(name)
        if raw is not None and raw.strip():
            return raw.strip()
    return default


RECONCILE_MODES = ("idle", "active", "off")

SIGNATURE_COMMITMENT = "finalized"
TRANSACTION_COMMITMENT = "confirmed"
MAX_SUPPORTED_TRANSACTION_VERSION = 0


@dataclass(frozen=True)
class FeedSettings:
    rpc_url: str
    catalog_base_url: str = "https://player-markets.vercel.app/api"
    catalog_token: str = ""
    program_id: str = PROGRAM_ID
    poll_interval_s: float = 10.0
    query_delay_s: float = 1.0
    dedup_cap: int = DEDUP_CAP
    stop_timeout_s: float = 30.0
    dead_threshold_s: float = 300.0
    monitor_interval_s: float = 60.0
    restart_cooldown_s: float = 5.0
    reconcile_on: str = "idle"
    ws_host: str = "0.0.0.0"
    ws_port: int = 1234
    metrics_port: int = 9090
    health_host: str = "0.0.0.0"
    health_port: int = 8080
    rpc_timeout_s: float = 30.0
    catalog_timeout_s: float = 10.0
    log_level: str = "INFO"
    log_to_file: bool = True

    @classmethod
    def from_env(cls) -> "FeedSettings":
        # Read at call time so tests and launchers can override via the environment.
        rpc_url = _env_str("RPC_URL", "NEXT_PUBLIC_RPC_URL")
        if not rpc_url:
            raise ConfigError("RPC_URL environment variable is required (e.g. RPC_URL=https://api.mainnet-beta.solana.com).")
        reconcile_on = _env_str("FEED_RECONCILE_ON", default="idle").lower()
        if reconcile_on not in RECONCILE_MODES:
            raise ConfigError(f"FEED_RECONCILE_ON must be one of {', '.join(RECONCILE_MODES)} (got {reconcile_on!r}).")
        return cls(
            rpc_url=rpc_url,
            catalog_base_url=_env_str("CATALOG_BASE_URL", default=cls.catalog_base_url).rstrip("/"),
            catalog_token=_env_str("CATALOG_TOKEN", "CRON_SECRET"),
            program_id=_env_str("PROGRAM_ID", default=PROGRAM_ID),
            poll_interval_s=_env_float("FEED_POLL_INTERVAL_S", 10.0),
            query_delay_s=_env_float("FEED_QUERY_DELAY_S", 1.0),
            dedup_cap=max(1, _env_int("FEED_DEDUP_CAP", DEDUP_CAP)),
            stop_timeout_s=_env_float("FEED_STOP_TIMEOUT_S", 30.0),
            dead_threshold_s=_env_float("FEED_DEAD_THRESHOLD_S", 300.0),
            monitor_interval_s=_env_float("FEED_MONITOR_INTERVAL_S", 60.0),
            restart_cooldown_s=_env_float("FEED_RESTART_COOLDOWN_S", 5.0),
            reconcile_on=reconcile_on,
            ws_host=_env_str("FEED_WS_HOST", default="0.0.0.0"),
            ws_port=_env_int("FEED_WS_PORT", 1234),
            metrics_port=_env_int("METRICS_PORT", 9090),
            health_host=_env_str("HEALTH_HOST", default="0.0.0.0"),
            health_port=_env_int("HEALTH_PORT", 8080),
            rpc_timeout_s=_env_float("RPC_TIMEOUT_S", 30.0),
            catalog_timeout_s=_env_float("CATALOG_TIMEOUT_S", 10.0),
            log_level=_env_str("LOG_LEVEL", default="INFO"),
            log_to_file=_env_bool("LOG_TO_FILE", True),
        )
