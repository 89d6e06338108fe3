"""
Configuration Management for Arca Vault Metrics
Environment-based configuration for the read-path aggregator

Features:
- Environment-based config (dev/staging/prod)
- .env loading via python-dotenv
- Polling and staleness windows in one place
- Dynamic reload
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict
from enum import Enum

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("Config")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class PriceFeedConfig:
    """External USD price feed"""
    coingecko_url: str = "https://api.coingecko.com/api/v3"
    asset_id: str = "sonic-3"

    # Staleness windows (seconds)
    fresh_seconds: float = 15.0
    refresh_interval_seconds: float = 30.0

    request_timeout: float = 15.0


@dataclass
class PollingConfig:
    """Poll cadences for on-chain reads and derived displays"""
    balance_poll_seconds: float = 10.0
    range_poll_seconds: float = 10.0
    elapsed_tick_seconds: float = 60.0


@dataclass
class StorageConfig:
    """Persistent local key-value store"""
    sqlite_path: str = "arca_cache.db"


@dataclass
class YieldsConfig:
    """DeFi Llama yields API"""
    defillama_url: str = "https://yields.llama.fi/pools"
    cache_seconds: float = 120.0
    request_timeout: float = 30.0


@dataclass
class BlockchainConfig:
    """Sonic chain RPC"""
    rpc_url: str = "https://rpc.soniclabs.com"
    chain_id: int = 146
    chain_name: str = "Sonic"
    request_timeout: int = 10


@dataclass
class MonitoringConfig:
    """Logging configuration"""
    log_level: str = "INFO"


@dataclass
class ArcaConfig:
    """Main application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    price_feed: PriceFeedConfig = field(default_factory=PriceFeedConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    yields: YieldsConfig = field(default_factory=YieldsConfig)
    blockchain: BlockchainConfig = field(default_factory=BlockchainConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls) -> "ArcaConfig":
        """Create configuration from environment variables"""
        env = os.environ.get("ARCA_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            debug=os.environ.get("DEBUG", "true").lower() == "true",
        )

        config.price_feed = PriceFeedConfig(
            coingecko_url=os.environ.get("COINGECKO_API_URL", "https://api.coingecko.com/api/v3"),
            asset_id=os.environ.get("PRICE_ASSET_ID", "sonic-3"),
            fresh_seconds=float(os.environ.get("PRICE_FRESH_SECONDS", "15")),
            refresh_interval_seconds=float(os.environ.get("PRICE_REFRESH_SECONDS", "30")),
        )

        config.polling = PollingConfig(
            balance_poll_seconds=float(os.environ.get("BALANCE_POLL_SECONDS", "10")),
        )

        config.storage = StorageConfig(
            sqlite_path=os.environ.get("ARCA_STORAGE_PATH", "arca_cache.db"),
        )

        config.blockchain = BlockchainConfig(
            rpc_url=os.environ.get("SONIC_RPC_URL", "https://rpc.soniclabs.com"),
        )

        config.monitoring = MonitoringConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

        if config.environment == Environment.PRODUCTION:
            config.debug = False
            config.monitoring.log_level = "WARNING"

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {k: sanitize(v) for k, v in obj.items() if "password" not in k.lower() and "secret" not in k.lower()}
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return sanitize(self)


def configure_logging(level: str = None):
    """Apply the configured log level to the root logger"""
    logging.basicConfig(
        level=getattr(logging, (level or config.monitoring.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================
# GLOBAL INSTANCE
# ============================================

config = ArcaConfig.from_env()

logger.info(f"Configuration loaded for environment: {config.environment.value}")


def get_config() -> ArcaConfig:
    """Get the global configuration"""
    return config


def reload_config() -> ArcaConfig:
    """Reload configuration from environment"""
    global config
    config = ArcaConfig.from_env()
    logger.info("Configuration reloaded")
    return config
