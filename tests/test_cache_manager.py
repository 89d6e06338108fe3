"""
Cache Manager Tests
Prefix invalidation, statistics and the write-once first deposit marker

Run: python -m pytest tests/test_cache_manager.py -v
"""

import pytest
from unittest.mock import MagicMock

from arca_metrics.infrastructure.errors import StorageError
from arca_metrics.services.cache_manager import CacheManager, first_deposit_key
from arca_metrics.services.first_deposit import FirstDepositClock, format_time_since

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


@pytest.fixture
def populated(storage):
    storage.set_item("shadow_claims_0xaaa", "{}")
    storage.set_item("shadow_claims_0xbbb", "{}")
    storage.set_item("defi_llama_apy_cache", "{}")
    storage.set_item("metro_transfers_0xccc", "{}")
    storage.set_item("first_deposit_0xuser", "1700000000000")
    storage.set_item("theme", "dark")
    return storage


@pytest.fixture
def broken_storage():
    storage = MagicMock()
    storage.keys.side_effect = StorageError("disk I/O error")
    storage.get_item.side_effect = StorageError("disk I/O error")
    return storage


# =============================================================================
# TEST: Invalidation
# =============================================================================

class TestInvalidation:

    def test_clear_shadow(self, populated):
        manager = CacheManager(populated)

        assert manager.clear_shadow_caches() == 3
        assert populated.keys() == ["first_deposit_0xuser", "metro_transfers_0xccc", "theme"]

    def test_clear_metro(self, populated):
        manager = CacheManager(populated)

        assert manager.clear_metro_caches() == 1
        assert populated.get_item("metro_transfers_0xccc") is None
        assert populated.get_item("shadow_claims_0xaaa") == "{}"

    def test_clear_all_twice(self, populated):
        manager = CacheManager(populated)

        assert manager.clear_all_caches() == 4
        assert manager.clear_all_caches() == 0

    def test_clear_all_keeps_first_deposit_and_foreign_keys(self, populated):
        CacheManager(populated).clear_all_caches()
        assert populated.keys() == ["first_deposit_0xuser", "theme"]

    def test_clear_by_prefix(self, populated):
        assert CacheManager(populated).clear_by_prefix("shadow_claims_") == 2
        assert populated.length() == 4

    def test_storage_failure_reports_zero(self, broken_storage):
        manager = CacheManager(broken_storage)
        assert manager.clear_shadow_caches() == 0
        assert manager.clear_all_caches() == 0


# =============================================================================
# TEST: Statistics
# =============================================================================

class TestStats:

    def test_category_counts(self, populated):
        stats = CacheManager(populated).get_stats()
        assert stats == {
            "shadow_claims": 2,
            "metro_transfers": 1,
            "defi_llama": 1,
            "other": 2,
            "total": 6,
        }

    def test_counts_add_up(self, populated):
        stats = CacheManager(populated).get_stats()
        categories = stats["shadow_claims"] + stats["metro_transfers"] + stats["defi_llama"] + stats["other"]
        assert categories == stats["total"]

    def test_empty_store(self, cache_manager):
        assert cache_manager.get_stats()["total"] == 0

    def test_storage_failure_returns_none(self, broken_storage):
        assert CacheManager(broken_storage).get_stats() is None


# =============================================================================
# TEST: First Deposit
# =============================================================================

class TestFirstDeposit:

    def test_write_once_sequence(self, cache_manager, test_addresses):
        user = test_addresses["user"]

        assert cache_manager.get_or_init_first_deposit_timestamp(user, False, now=1_000) is None
        assert cache_manager.get_or_init_first_deposit_timestamp(user, True, now=2_000) == 2_000
        assert cache_manager.get_or_init_first_deposit_timestamp(user, True, now=3_000) == 2_000
        assert cache_manager.get_or_init_first_deposit_timestamp(user, False, now=4_000) == 2_000

    def test_key_is_lowercased(self, cache_manager, storage, test_addresses):
        user = test_addresses["user"]
        cache_manager.get_or_init_first_deposit_timestamp(user, True, now=5_000)

        assert storage.get_item(f"first_deposit_{user.lower()}") == "5000"
        assert first_deposit_key(user.upper().replace("0X", "0x")) == first_deposit_key(user)

    def test_no_address(self, cache_manager, storage):
        assert cache_manager.get_or_init_first_deposit_timestamp(None, True, now=1) is None
        assert cache_manager.get_or_init_first_deposit_timestamp("", True, now=1) is None
        assert storage.length() == 0

    def test_unreadable_value_is_replaced(self, cache_manager, storage, test_addresses):
        user = test_addresses["user"]
        storage.set_item(first_deposit_key(user), "not-a-number")

        assert cache_manager.get_or_init_first_deposit_timestamp(user, True, now=7_000) == 7_000

    def test_storage_failure_returns_none(self, broken_storage, test_addresses):
        manager = CacheManager(broken_storage)
        assert manager.get_or_init_first_deposit_timestamp(test_addresses["user"], True, now=1) is None


class TestTimeSince:

    @pytest.mark.parametrize("elapsed_ms,expected", [
        (0, "just now"),
        (59 * 1000, "just now"),
        (MINUTE_MS, "1 minute"),
        (45 * MINUTE_MS, "45 minutes"),
        (60 * MINUTE_MS, "1 hour"),
        (3 * DAY_MS, "3 days"),
        (14 * DAY_MS, "2 weeks"),
        (31 * DAY_MS, "1 month"),
        (400 * DAY_MS, "1 year"),
        (800 * DAY_MS, "2 years"),
    ])
    def test_buckets(self, elapsed_ms, expected):
        start = 1_700_000_000_000
        assert format_time_since(start, start + elapsed_ms) == expected

    def test_empty_without_timestamp(self):
        assert format_time_since(None, 1_000) == ""
        assert format_time_since(0, 1_000) == ""


class TestFirstDepositClock:

    def test_records_and_renders(self, cache_manager, test_addresses):
        now = [1_700_000_000_000]
        clock = FirstDepositClock(cache_manager, test_addresses["user"], clock=lambda: now[0])

        assert clock.update(has_deposits=True) == now[0]
        assert clock.time_since == "just now"

        now[0] += 2 * DAY_MS
        assert clock.render() == "2 days"

    def test_without_user(self, cache_manager):
        clock = FirstDepositClock(cache_manager, None, clock=lambda: 1_000)
        assert clock.update(has_deposits=True) is None
        assert clock.time_since == ""

    @pytest.mark.asyncio
    async def test_start_stop(self, cache_manager, test_addresses):
        clock = FirstDepositClock(cache_manager, test_addresses["user"], tick_seconds=60)
        clock.start()
        await clock.stop()
        assert not clock._poller.is_running
