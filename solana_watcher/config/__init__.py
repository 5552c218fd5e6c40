"""Config package"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from ..constants import JUPITER_PRICE_API, PRICE_CACHE_TTL_SECONDS
from .watch_config import (
    WatchConfig,
    WatchConfigManager,
    TrackedWallet,
    RiskThresholds,
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# ============================================
# SETTINGS
# ============================================
@dataclass
class Settings:
    """Runtime settings, read from the environment (and .env) at creation."""

    # Ledger RPC
    RPC_URL: Optional[str] = field(default_factory=lambda: os.getenv("RPC_URL"))
    RPC_COMMITMENT: str = field(default_factory=lambda: os.getenv("RPC_COMMITMENT", "confirmed"))
    RPC_TIMEOUT_SEC: float = field(default_factory=lambda: float(os.getenv("RPC_TIMEOUT_SEC", "10")))
    RPC_MAX_ATTEMPTS: int = field(default_factory=lambda: int(os.getenv("RPC_MAX_ATTEMPTS", "3")))
    RPC_RETRY_DELAY_SEC: float = field(default_factory=lambda: float(os.getenv("RPC_RETRY_DELAY_SEC", "0.5")))

    # Price service / off-chain metadata
    PRICE_API_URL: str = field(default_factory=lambda: os.getenv("PRICE_API_URL", JUPITER_PRICE_API))
    PRICE_CACHE_TTL_SEC: float = field(
        default_factory=lambda: float(os.getenv("PRICE_CACHE_TTL_SEC", str(PRICE_CACHE_TTL_SECONDS)))
    )
    API_TIMEOUT_SEC: float = field(default_factory=lambda: float(os.getenv("API_TIMEOUT_SEC", "8")))
    SOL_PRICE_FALLBACK_USD: float = field(
        default_factory=lambda: float(os.getenv("SOL_PRICE_FALLBACK_USD", "170"))
    )

    # Caches (0 = unbounded / no expiry)
    METADATA_CACHE_MAXSIZE: int = field(default_factory=lambda: int(os.getenv("METADATA_CACHE_MAXSIZE", "5000")))
    METADATA_CACHE_TTL_SEC: float = field(default_factory=lambda: float(os.getenv("METADATA_CACHE_TTL_SEC", "0")))
    POSITION_CACHE_MAXSIZE: int = field(default_factory=lambda: int(os.getenv("POSITION_CACHE_MAXSIZE", "0")))

    # Pipeline behaviour
    MAX_CONCURRENT_RUNS: int = field(default_factory=lambda: int(os.getenv("MAX_CONCURRENT_RUNS", "0")))
    DEDUP_SIGNATURES: bool = field(default_factory=lambda: _env_bool("DEDUP_SIGNATURES", "True"))
    DEDUP_TTL_SEC: float = field(default_factory=lambda: float(os.getenv("DEDUP_TTL_SEC", "300")))
    BALANCE_TRACKING_PER_ADDRESS: bool = field(
        default_factory=lambda: _env_bool("BALANCE_TRACKING_PER_ADDRESS", "True")
    )

    # Output
    LOG_DIR: str = field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    OUTPUT_JSON: bool = field(default_factory=lambda: _env_bool("OUTPUT_JSON", "False"))
    WATCH_CONFIG_PATH: str = field(
        default_factory=lambda: os.getenv("WATCH_CONFIG_PATH", "config/watch.yaml")
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide Settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


__all__ = [
    "Settings",
    "get_settings",
    "WatchConfig",
    "WatchConfigManager",
    "TrackedWallet",
    "RiskThresholds",
]
