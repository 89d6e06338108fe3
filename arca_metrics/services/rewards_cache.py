"""
Rewards Cache
Persists the rewards aggregator's intermediate scan results so historical
log scans are incremental rather than repeated from scratch.

The aggregator itself is an external black box; the core only consumes its
normalized ClaimableReward list and stores scan history under
shadow_claims_<strategy> / metro_transfers_<strategy>.
"""
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Protocol

from ..data_sources.vault_registry import RangeProtocol, VaultIdentity
from ..infrastructure.errors import StorageError, error_tracker
from ..infrastructure.local_storage import LocalStorage
from ..normalization import normalize_address, now_ms, round_usd
from .cache_manager import METRO_TRANSFERS_PREFIX, SHADOW_CLAIMS_PREFIX

logger = logging.getLogger("RewardsCache")

ONE_YEAR_MS = 365 * 24 * 60 * 60 * 1000
BLOCKS_PER_DAY = 86400


@dataclass(frozen=True)
class ClaimableReward:
    symbol: str
    amount_raw: int
    value_usd: float


class RewardsAggregator(Protocol):
    """Anything that can list a user's claimable rewards for a vault"""

    async def get_claimable_rewards(
        self, identity: VaultIdentity, user_address: Optional[str]
    ) -> List[ClaimableReward]:
        ...


def total_rewards_usd(rewards: List[ClaimableReward]) -> float:
    return round_usd(sum(r.value_usd for r in rewards))


@dataclass
class RewardEvent:
    block_number: int
    amount: int
    timestamp: int                   # ms
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        data = asdict(self)
        # Big ints travel as strings
        data["block_number"] = str(self.block_number)
        data["amount"] = str(self.amount)
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "RewardEvent":
        return cls(
            block_number=int(data["block_number"]),
            amount=int(data["amount"]),
            timestamp=int(data["timestamp"]),
            extra=dict(data.get("extra") or {}),
        )


@dataclass
class ScanHistory:
    events: List[RewardEvent] = field(default_factory=list)
    first_event_timestamp: Optional[int] = None
    last_fetch: Optional[int] = None

    @property
    def last_block(self) -> Optional[int]:
        return self.events[-1].block_number if self.events else None


class RewardEventCache:
    """Scan history for one key family, keyed by strategy address"""

    def __init__(self, storage: LocalStorage, prefix: str, retention_ms: int = ONE_YEAR_MS):
        self.storage = storage
        self.prefix = prefix
        self.retention_ms = retention_ms

    def key(self, strategy_address: str) -> str:
        return f"{self.prefix}{normalize_address(strategy_address)}"

    def load(self, strategy_address: str, now: Optional[int] = None) -> ScanHistory:
        """Cached events inside the retention window; empty on any failure"""
        now = now_ms() if now is None else now
        key = self.key(strategy_address)
        try:
            raw = self.storage.get_item(key)
        except StorageError as e:
            error_tracker.track(e, f"rewards:{key}")
            logger.warning(f"Failed to load cached scan {key}: {e}")
            return ScanHistory()

        if not raw:
            return ScanHistory()

        try:
            parsed = json.loads(raw)
            cutoff = now - self.retention_ms
            events = [RewardEvent.from_json(e) for e in parsed.get("events", [])]
            return ScanHistory(
                events=[e for e in events if e.timestamp >= cutoff],
                first_event_timestamp=parsed.get("firstEventTimestamp"),
                last_fetch=parsed.get("lastFetch"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable cached scan {key}: {e}")
            return ScanHistory()

    @staticmethod
    def next_from_block(history: ScanHistory, current_block: int, lookback_blocks: int = BLOCKS_PER_DAY) -> int:
        """Resume after the last cached block, or look back one day on a cold cache"""
        if history.last_block is not None:
            return history.last_block + 1
        return max(0, current_block - lookback_blocks)

    def merge(
        self,
        strategy_address: str,
        new_events: List[RewardEvent],
        now: Optional[int] = None,
    ) -> ScanHistory:
        """Append newly scanned events (deduplicated by block) and persist"""
        now = now_ms() if now is None else now
        history = self.load(strategy_address, now)

        seen_blocks = {e.block_number for e in history.events}
        unique = [e for e in new_events if e.block_number not in seen_blocks]
        events = sorted(history.events + unique, key=lambda e: e.block_number)

        first_ts = history.first_event_timestamp
        if first_ts is None and events:
            first_ts = min(e.timestamp for e in events)

        merged = ScanHistory(events=events, first_event_timestamp=first_ts, last_fetch=now)

        try:
            self.storage.set_item(self.key(strategy_address), json.dumps({
                "events": [e.to_json() for e in merged.events],
                "firstEventTimestamp": merged.first_event_timestamp,
                "lastFetch": merged.last_fetch,
            }))
        except StorageError as e:
            error_tracker.track(e, f"rewards:{self.key(strategy_address)}")
            logger.warning(f"Failed to cache scan for {strategy_address}: {e}")

        if unique:
            logger.info(f"Cached {len(unique)} new events for {strategy_address[:10]}... ({len(events)} total)")
        return merged


def cache_for(storage: LocalStorage, identity: VaultIdentity) -> Optional[RewardEventCache]:
    """The scan-history cache matching a vault's protocol"""
    if identity.protocol == RangeProtocol.SHADOW:
        return RewardEventCache(storage, SHADOW_CLAIMS_PREFIX)
    if identity.protocol == RangeProtocol.METROPOLIS:
        return RewardEventCache(storage, METRO_TRANSFERS_PREFIX)
    return None
