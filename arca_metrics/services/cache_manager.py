"""
Cache Manager - prefix-based invalidation over the persistent local store

Key families:
- shadow_claims_<strategy>       Shadow ClaimRewards scan history
- metro_transfers_<strategy>     Metropolis reward transfer scan history
- defi_llama_apy_cache           DeFi Llama pool APY snapshot
- first_deposit_<address>        first deposit time (ms, decimal string)

Nothing here expires on its own; entries go away only through the clear_*
calls. Storage failures are logged and reported as 0 removed / None stats.
"""

import logging
from typing import Dict, Iterable, Optional

from ..infrastructure.errors import StorageError, error_tracker
from ..infrastructure.local_storage import LocalStorage
from ..normalization import normalize_address, now_ms

logger = logging.getLogger("CacheManager")

SHADOW_CLAIMS_PREFIX = "shadow_claims_"
METRO_TRANSFERS_PREFIX = "metro_transfers_"
DEFI_LLAMA_PREFIX = "defi_llama_apy_cache"
FIRST_DEPOSIT_PREFIX = "first_deposit_"

SHADOW_PREFIXES = (SHADOW_CLAIMS_PREFIX, DEFI_LLAMA_PREFIX)
METRO_PREFIXES = (METRO_TRANSFERS_PREFIX,)

# Classification order for get_stats(); first match wins
STAT_CATEGORIES = (
    ("shadow_claims", SHADOW_CLAIMS_PREFIX),
    ("metro_transfers", METRO_TRANSFERS_PREFIX),
    ("defi_llama", DEFI_LLAMA_PREFIX),
)


def first_deposit_key(address: str) -> str:
    return f"{FIRST_DEPOSIT_PREFIX}{normalize_address(address)}"


class CacheManager:
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    # ==========================================
    # INVALIDATION
    # ==========================================

    def _clear_prefixes(self, prefixes: Iterable[str], label: str) -> int:
        prefixes = tuple(prefixes)
        try:
            keys_to_remove = [key for key in self.storage.keys() if key.startswith(prefixes)]
            for key in keys_to_remove:
                self.storage.remove_item(key)
        except StorageError as e:
            error_tracker.track(e, f"cache:{label}")
            logger.warning(f"Failed to clear {label} caches: {e}")
            return 0

        logger.info(f"✅ Cleared {len(keys_to_remove)} {label} cache entries")
        return len(keys_to_remove)

    def clear_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix and return how many went"""
        return self._clear_prefixes((prefix,), prefix)

    def clear_shadow_caches(self) -> int:
        return self._clear_prefixes(SHADOW_PREFIXES, "Shadow APY")

    def clear_metro_caches(self) -> int:
        return self._clear_prefixes(METRO_PREFIXES, "Metro APY")

    def clear_all_caches(self) -> int:
        """Shadow + Metro caches. First-deposit markers are left alone."""
        shadow_count = self.clear_shadow_caches()
        metro_count = self.clear_metro_caches()

        logger.info(f"✅ Total cleared: {shadow_count + metro_count} cache entries")
        return shadow_count + metro_count

    # ==========================================
    # STATISTICS
    # ==========================================

    def get_stats(self) -> Optional[Dict[str, int]]:
        """Per-category key counts in one pass, or None if storage fails"""
        stats = {name: 0 for name, _ in STAT_CATEGORIES}
        stats["other"] = 0

        try:
            keys = self.storage.keys()
        except StorageError as e:
            error_tracker.track(e, "cache:stats")
            logger.error(f"❌ Failed to get cache stats: {e}")
            return None

        for key in keys:
            for name, prefix in STAT_CATEGORIES:
                if key.startswith(prefix):
                    stats[name] += 1
                    break
            else:
                stats["other"] += 1

        stats["total"] = len(keys)
        return stats

    # ==========================================
    # FIRST DEPOSIT TRACKING
    # ==========================================

    def get_or_init_first_deposit_timestamp(
        self,
        address: Optional[str],
        has_deposits: bool,
        now: Optional[int] = None,
    ) -> Optional[int]:
        """
        Write-once first deposit time in ms.

        Stored value wins. With nothing stored and has_deposits, "now" is
        written and returned. Otherwise None and nothing is written.
        """
        if not address:
            return None

        key = first_deposit_key(address)
        try:
            stored = self.storage.get_item(key)
            if stored:
                try:
                    return int(stored, 10)
                except ValueError:
                    logger.warning(f"Ignoring unreadable first deposit value for {key}: {stored!r}")

            if has_deposits:
                timestamp = now_ms() if now is None else int(now)
                self.storage.set_item(key, str(timestamp))
                logger.info(f"First deposit recorded for {normalize_address(address)[:10]}...")
                return timestamp
        except StorageError as e:
            error_tracker.track(e, "cache:first_deposit")
            logger.warning(f"Failed to load first deposit date: {e}")

        return None
