"""
Watch Configuration Manager

Holds the monitored wallet list and the risk thresholds used when enriching
transactions. Stored as YAML (or JSON) next to the process.
"""

import json
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)


@dataclass
class TrackedWallet:
    """A wallet whose account updates are processed"""
    address: str
    alias: str = ""
    enabled: bool = True


@dataclass
class RiskThresholds:
    """Risk scoring and pattern thresholds"""
    high_value_usd: float = 10_000.0    # +3
    medium_value_usd: float = 1_000.0   # +2
    low_value_usd: float = 100.0        # +1
    multi_token_count: int = 2          # +1 when more token txs than this
    high_score: int = 4
    medium_score: int = 2
    large_sol_spend: float = 1.0        # LARGE_SOL_SPEND when delta < -this


def _known_fields(cls, data: Dict[str, Any], section: str) -> Dict[str, Any]:
    """Keep only keys the dataclass declares, warning about the rest"""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {section} keys in watch config: {', '.join(map(str, unknown))}")
    return {k: v for k, v in data.items() if k in known}


@dataclass
class WatchConfig:
    """Complete watch configuration"""
    version: str = "1.0"
    wallets: List[TrackedWallet] = field(default_factory=list)
    risk: RiskThresholds = field(default_factory=RiskThresholds)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatchConfig":
        wallets = []
        for item in data.get("wallets") or []:
            if isinstance(item, str):
                wallets.append(TrackedWallet(address=item))
            elif isinstance(item, dict) and item.get("address"):
                wallets.append(TrackedWallet(**_known_fields(TrackedWallet, item, "wallet")))
            else:
                logger.warning(f"Skipping malformed wallet entry: {item!r}")
        return cls(
            version=str(data.get("version", "1.0")),
            wallets=wallets,
            risk=RiskThresholds(**_known_fields(RiskThresholds, data.get("risk") or {}, "risk")),
        )

    def active_addresses(self) -> set[str]:
        return {w.address for w in self.wallets if w.enabled}


class WatchConfigManager:
    """
    Loads, saves and validates the watch configuration.

    Usage:
        manager = WatchConfigManager("config/watch.yaml")
        config = manager.get_config()
        tracked = config.active_addresses()
    """

    DEFAULT_CONFIG_PATH = "config/watch.yaml"

    def __init__(self, config_path: Optional[str] = None, create_missing: bool = True):
        self.config_path = Path(config_path or self.DEFAULT_CONFIG_PATH)
        self._config: Optional[WatchConfig] = None
        self._create_missing = create_missing
        self._load_or_create()

    def _load_or_create(self):
        """Load existing config or create default"""
        if self.config_path.exists():
            self._config = self._load_from_file()
            logger.info(f"Watch config loaded from {self.config_path}")
        else:
            self._config = WatchConfig()
            if self._create_missing:
                self.save_config(self._config)
                logger.info(f"Default watch config created at {self.config_path}")

    def _load_from_file(self) -> WatchConfig:
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                if self.config_path.suffix in [".yaml", ".yml"]:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
            return WatchConfig.from_dict(data or {})

        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Error loading watch config: {e}")
            return WatchConfig()

    def save_config(self, config: Optional[WatchConfig] = None):
        config = config or self.get_config()

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            data = config.to_dict()

            with open(self.config_path, "w", encoding="utf-8") as f:
                if self.config_path.suffix in [".yaml", ".yml"]:
                    yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
                else:
                    json.dump(data, f, indent=2, ensure_ascii=False)

            logger.info(f"Watch config saved to {self.config_path}")

        except OSError as e:
            logger.error(f"Error saving watch config: {e}")

    def get_config(self) -> WatchConfig:
        if self._config is None:
            self._config = WatchConfig()
        return self._config

    def reload(self) -> bool:
        if self.config_path.exists():
            self._config = self._load_from_file()
            logger.info("Watch config reloaded")
            return True
        return False

    def validate(self) -> List[str]:
        """Validate current config, return list of errors"""
        errors = []
        config = self.get_config()

        for wallet in config.wallets:
            try:
                Pubkey.from_string(wallet.address)
            except ValueError:
                errors.append(f"invalid wallet address: {wallet.address}")

        risk = config.risk
        if not (risk.high_value_usd > risk.medium_value_usd > risk.low_value_usd >= 0):
            errors.append("risk value bands must be strictly decreasing")

        if risk.medium_score <= 0 or risk.high_score <= risk.medium_score:
            errors.append("high_score must be > medium_score > 0")

        return errors
