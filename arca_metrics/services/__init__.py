"""
Core services: price feed, readers, range adapters, valuation and cache management
"""

from .price_feed import PriceFeed
from .balance_reader import BalanceReader, BalancePoller
from .range_adapters import (
    ProtocolAdapter,
    MetropolisRangeAdapter,
    ShadowRangeAdapter,
    UnsupportedRangeAdapter,
    adapter_for,
)
from .range_evaluator import evaluate
from .tvl_calculator import TvlCalculator
from .cache_manager import CacheManager
from .first_deposit import FirstDepositClock, format_time_since
from .rewards_cache import ClaimableReward, RewardEventCache, RewardsAggregator
from .vault_metrics import VaultMetrics, VaultMetricsService, VaultMonitor
from .admin import CacheAdmin

__all__ = [
    "PriceFeed",
    "BalanceReader",
    "BalancePoller",
    "ProtocolAdapter",
    "MetropolisRangeAdapter",
    "ShadowRangeAdapter",
    "UnsupportedRangeAdapter",
    "adapter_for",
    "evaluate",
    "TvlCalculator",
    "CacheManager",
    "FirstDepositClock",
    "format_time_since",
    "ClaimableReward",
    "RewardEventCache",
    "RewardsAggregator",
    "VaultMetrics",
    "VaultMetricsService",
    "VaultMonitor",
    "CacheAdmin",
]
