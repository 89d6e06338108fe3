"""
Range Tests
Range evaluation and the per-protocol range adapters (Metropolis bins, Shadow ticks)

Run: python -m pytest tests/test_range.py -v
"""

import pytest
from decimal import Decimal

from arca_metrics.data_sources.contracts import CL_POOL_ABI, LB_BOOK_ABI, METRO_VAULT_ABI, SHADOW_STRAT_ABI
from arca_metrics.data_sources.vault_registry import VaultIdentity
from arca_metrics.infrastructure.errors import BlockchainError, error_tracker
from arca_metrics.models import EMPTY_RANGE, RangeState
from arca_metrics.services.range_adapters import (
    MetropolisRangeAdapter,
    ShadowRangeAdapter,
    UnsupportedRangeAdapter,
    adapter_for,
)
from arca_metrics.services.range_evaluator import evaluate


def fake_chain(responses):
    """Build a reader.call side effect answering by function name"""
    async def call(address, abi, function_name, *args):
        result = responses[function_name]
        if isinstance(result, Exception):
            raise result
        return result
    return call


SLOT0 = (79228162514264337593543950336, -200, 5, 10, 10, 0, True)


# =============================================================================
# TEST: Range Evaluation
# =============================================================================

class TestRangeEvaluator:

    def test_empty_state_is_loading(self):
        assert evaluate(EMPTY_RANGE) is None

    def test_partial_state_is_loading(self):
        assert evaluate(RangeState(active_position=5, lower_bound=1)) is None
        assert evaluate(RangeState(lower_bound=1, upper_bound=10)) is None

    def test_none_state(self):
        assert evaluate(None) is None

    def test_bounds_are_inclusive(self):
        assert evaluate(RangeState(100, 100, 200)) is True
        assert evaluate(RangeState(200, 100, 200)) is True
        assert evaluate(RangeState(150, 100, 200)) is True

    def test_outside_range(self):
        assert evaluate(RangeState(99, 100, 200)) is False
        assert evaluate(RangeState(201, 100, 200)) is False

    def test_negative_ticks(self):
        assert evaluate(RangeState(-200, -300, -100)) is True
        assert evaluate(RangeState(-50, -300, -100)) is False

    def test_zero_is_a_loaded_value(self):
        assert evaluate(RangeState(0, 0, 0)) is True

    def test_mixed_numeric_widths(self):
        """uint24 bin ids may arrive as Decimal or hex strings"""
        state = RangeState(Decimal("8388608"), 8388600, 8388700)
        assert evaluate(state) is True

        state = EMPTY_RANGE.with_active("0x800000").with_bounds(8388600, 8388700)
        assert state.active_position == 8388608
        assert evaluate(state) is True


# =============================================================================
# TEST: Adapter Dispatch
# =============================================================================

class TestAdapterDispatch:

    def test_metropolis(self, metro_vault, mock_reader):
        assert isinstance(adapter_for(metro_vault, mock_reader), MetropolisRangeAdapter)

    def test_shadow(self, shadow_vault, mock_reader):
        assert isinstance(adapter_for(shadow_vault, mock_reader), ShadowRangeAdapter)

    def test_unsupported(self, unsupported_vault, mock_reader):
        assert isinstance(adapter_for(unsupported_vault, mock_reader), UnsupportedRangeAdapter)

    def test_protocol_reads_are_exclusive(self, metro_vault, shadow_vault, mock_reader):
        assert adapter_for(metro_vault, mock_reader).enabled_reads == {"active_id": True, "range": True}
        assert adapter_for(shadow_vault, mock_reader).enabled_reads == {"active_tick": True, "range": True}

    def test_missing_address_disables_read(self, test_addresses, mock_reader):
        vault = VaultIdentity.create(
            name="wS • USDC | Shadow",
            vault_address=test_addresses["shadow_vault"],
            strategy_address=test_addresses["shadow_strategy"],
        )
        adapter = adapter_for(vault, mock_reader)
        assert adapter.enabled_reads == {"active_tick": False, "range": True}


# =============================================================================
# TEST: Adapter Refresh
# =============================================================================

class TestMetropolisAdapter:

    @pytest.mark.asyncio
    async def test_refresh_reads_book_and_vault(self, metro_vault, mock_reader, test_addresses):
        mock_reader.call.side_effect = fake_chain({
            "getActiveId": 8388608,
            "getRange": (8388600, 8388700),
        })
        adapter = adapter_for(metro_vault, mock_reader)

        state = await adapter.refresh()

        assert state == RangeState(8388608, 8388600, 8388700)
        assert evaluate(state) is True
        mock_reader.call.assert_any_await(test_addresses["metro_book"], LB_BOOK_ABI, "getActiveId")
        mock_reader.call.assert_any_await(test_addresses["metro_vault"], METRO_VAULT_ABI, "getRange")
        assert mock_reader.call.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_read_keeps_other_result(self, metro_vault, mock_reader):
        mock_reader.call.side_effect = fake_chain({
            "getActiveId": BlockchainError("0xbook", "getActiveId"),
            "getRange": (10, 20),
        })
        adapter = adapter_for(metro_vault, mock_reader)

        state = await adapter.refresh()

        assert state.active_position is None
        assert (state.lower_bound, state.upper_bound) == (10, 20)
        assert evaluate(state) is None
        assert error_tracker.get_stats()["error_counts"] == {"BLOCKCHAIN_ERROR": 1}

    @pytest.mark.asyncio
    async def test_state_survives_later_failure(self, metro_vault, mock_reader):
        mock_reader.call.side_effect = fake_chain({"getActiveId": 15, "getRange": (10, 20)})
        adapter = adapter_for(metro_vault, mock_reader)
        await adapter.refresh()

        mock_reader.call.side_effect = fake_chain({
            "getActiveId": 25,
            "getRange": BlockchainError("0xvault", "getRange"),
        })
        state = await adapter.refresh()

        assert state == RangeState(25, 10, 20)
        assert evaluate(state) is False


class TestShadowAdapter:

    @pytest.mark.asyncio
    async def test_refresh_reads_pool_and_strategy(self, shadow_vault, mock_reader, test_addresses):
        mock_reader.call.side_effect = fake_chain({
            "slot0": SLOT0,
            "getRange": (-300, -100),
        })
        adapter = adapter_for(shadow_vault, mock_reader)

        state = await adapter.refresh()

        assert state == RangeState(-200, -300, -100)
        assert evaluate(state) is True
        mock_reader.call.assert_any_await(test_addresses["shadow_pool"], CL_POOL_ABI, "slot0")
        mock_reader.call.assert_any_await(test_addresses["shadow_strategy"], SHADOW_STRAT_ABI, "getRange")

    @pytest.mark.asyncio
    async def test_unexpected_slot0_shape(self, shadow_vault, mock_reader):
        mock_reader.call.side_effect = fake_chain({
            "slot0": SLOT0[:6],
            "getRange": (-300, -100),
        })
        adapter = adapter_for(shadow_vault, mock_reader)

        state = await adapter.refresh()

        assert state.active_position is None
        assert evaluate(state) is None
        assert error_tracker.get_stats()["error_counts"] == {"ABI_SHAPE_ERROR": 1}

    @pytest.mark.asyncio
    async def test_disabled_read_is_never_called(self, test_addresses, mock_reader):
        vault = VaultIdentity.create(
            name="wS • USDC | Shadow",
            vault_address=test_addresses["shadow_vault"],
            strategy_address=test_addresses["shadow_strategy"],
        )
        mock_reader.call.side_effect = fake_chain({"getRange": (-300, -100)})

        state = await adapter_for(vault, mock_reader).refresh()

        assert mock_reader.call.await_count == 1
        assert state == RangeState(None, -300, -100)


class TestUnsupportedAdapter:

    @pytest.mark.asyncio
    async def test_never_reads_and_stays_empty(self, unsupported_vault, mock_reader):
        adapter = adapter_for(unsupported_vault, mock_reader)

        state = await adapter.refresh()

        assert state == EMPTY_RANGE
        assert evaluate(state) is None
        assert adapter.enabled_reads == {}
        mock_reader.call.assert_not_awaited()
