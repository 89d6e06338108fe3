"""
Arca Infrastructure Module
Configuration, errors, request coalescing, RPC and local storage
"""

from .errors import (
    ArcaError,
    ExternalAPIError,
    BlockchainError,
    StorageError,
    AbiShapeError,
    ConfigurationError,
    ErrorCode,
    ErrorTracker,
    error_tracker,
)

from .config import (
    ArcaConfig,
    Environment,
    PriceFeedConfig,
    PollingConfig,
    StorageConfig,
    config,
    configure_logging,
    get_config,
    reload_config,
)

from .request_coalescer import RequestCoalescer
from .local_storage import LocalStorage, get_storage

__all__ = [
    # Errors
    "ArcaError",
    "ExternalAPIError",
    "BlockchainError",
    "StorageError",
    "AbiShapeError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorTracker",
    "error_tracker",

    # Config
    "ArcaConfig",
    "Environment",
    "PriceFeedConfig",
    "PollingConfig",
    "StorageConfig",
    "config",
    "configure_logging",
    "get_config",
    "reload_config",

    # Coalescing / storage
    "RequestCoalescer",
    "LocalStorage",
    "get_storage",
]
