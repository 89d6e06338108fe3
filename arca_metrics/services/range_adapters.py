"""
Protocol Range Adapters
Normalize two AMM families into one (active, lower, upper) RangeState.

- Metropolis (active-bin): getActiveId() on the LB book, getRange() on the vault
- Shadow (tick): slot0() on the CL pool (tick at index 1), getRange() on the strategy
- Unsupported: no reads at all, state stays all-None

Only the reads of the vault's own protocol exist on an adapter; a read whose
address is missing is disabled. The two reads of a refresh are independent
and each updates the state as soon as it lands.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from ..data_sources.contracts import (
    CL_POOL_ABI,
    LB_BOOK_ABI,
    METRO_VAULT_ABI,
    SHADOW_STRAT_ABI,
    ContractReader,
    decode_range,
    decode_slot0_v1,
)
from ..data_sources.vault_registry import RangeProtocol, VaultIdentity
from ..infrastructure.errors import error_tracker
from ..models import EMPTY_RANGE, RangeState
from ..normalization import to_int

logger = logging.getLogger("RangeAdapter")


@dataclass(frozen=True)
class ContractRead:
    """One view call and how its result folds into the RangeState"""
    name: str
    address: Optional[str]
    abi: List[dict]
    function_name: str
    apply: Callable[[RangeState, Any], RangeState]

    @property
    def enabled(self) -> bool:
        return bool(self.address)


def _apply_active_id(state: RangeState, raw: Any) -> RangeState:
    return state.with_active(to_int(raw))


def _apply_slot0_tick(state: RangeState, raw: Any) -> RangeState:
    return state.with_active(decode_slot0_v1(raw).tick)


def _apply_range(state: RangeState, raw: Any) -> RangeState:
    lower, upper = decode_range(raw)
    return state.with_bounds(lower, upper)


class ProtocolAdapter(ABC):
    protocol: RangeProtocol = RangeProtocol.UNSUPPORTED

    def __init__(self, identity: VaultIdentity, reader: Optional[ContractReader] = None):
        self.identity = identity
        self.reader = reader or ContractReader()
        self._state: RangeState = EMPTY_RANGE

    @abstractmethod
    def reads(self) -> List[ContractRead]:
        """All reads this protocol knows about, enabled or not"""

    @property
    def enabled_reads(self) -> Dict[str, bool]:
        return {read.name: read.enabled for read in self.reads()}

    @property
    def state(self) -> RangeState:
        return self._state

    async def refresh(self) -> RangeState:
        """Run every enabled read concurrently and return the merged state"""
        enabled = [read for read in self.reads() if read.enabled]
        if enabled:
            await asyncio.gather(*(self._run(read) for read in enabled))
        return self._state

    async def _run(self, read: ContractRead):
        try:
            raw = await self.reader.call(read.address, read.abi, read.function_name)
            self._state = read.apply(self._state, raw)
        except Exception as e:
            error_tracker.track(e, f"range:{self.identity.name}:{read.name}")
            logger.warning(f"{read.name} read failed for {self.identity.name}: {e}")


class MetropolisRangeAdapter(ProtocolAdapter):
    protocol = RangeProtocol.METROPOLIS

    def reads(self) -> List[ContractRead]:
        return [
            ContractRead("active_id", self.identity.book_address, LB_BOOK_ABI, "getActiveId", _apply_active_id),
            ContractRead("range", self.identity.vault_address, METRO_VAULT_ABI, "getRange", _apply_range),
        ]


class ShadowRangeAdapter(ProtocolAdapter):
    protocol = RangeProtocol.SHADOW

    def reads(self) -> List[ContractRead]:
        return [
            ContractRead("active_tick", self.identity.pool_address, CL_POOL_ABI, "slot0", _apply_slot0_tick),
            ContractRead("range", self.identity.strategy_address, SHADOW_STRAT_ABI, "getRange", _apply_range),
        ]


class UnsupportedRangeAdapter(ProtocolAdapter):
    protocol = RangeProtocol.UNSUPPORTED

    def reads(self) -> List[ContractRead]:
        return []


ADAPTERS: Dict[RangeProtocol, Type[ProtocolAdapter]] = {
    RangeProtocol.METROPOLIS: MetropolisRangeAdapter,
    RangeProtocol.SHADOW: ShadowRangeAdapter,
    RangeProtocol.UNSUPPORTED: UnsupportedRangeAdapter,
}


def adapter_for(identity: VaultIdentity, reader: Optional[ContractReader] = None) -> ProtocolAdapter:
    """Pick the adapter from the vault's protocol tag"""
    adapter_cls = ADAPTERS.get(identity.protocol, UnsupportedRangeAdapter)
    return adapter_cls(identity, reader)
