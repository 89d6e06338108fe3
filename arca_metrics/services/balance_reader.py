"""
Balance Reader
Reads getBalances() from a vault's strategy contract.

No freshness is assumed beyond the poll: every call goes to the chain
(joining an in-flight read for the same vault if there is one). Unknown vault
addresses and failed reads come back as BALANCES_UNAVAILABLE; nothing is
retried outside the regular poll cadence.
"""
import logging
from typing import Optional

from ..data_sources.contracts import ContractReader, STRATEGY_ABI, decode_balances
from ..data_sources.vault_registry import VaultRegistry
from ..infrastructure.config import get_config
from ..infrastructure.errors import error_tracker
from ..infrastructure.request_coalescer import RequestCoalescer
from ..models import BalancePair, BALANCES_UNAVAILABLE
from ..normalization import normalize_address
from .poller import PollingTask

logger = logging.getLogger("BalanceReader")


class BalanceReader:
    def __init__(self, registry: VaultRegistry, reader: Optional[ContractReader] = None):
        self.registry = registry
        self.reader = reader or ContractReader()
        self._coalescer = RequestCoalescer()

    async def get_balances(self, vault_address: str) -> BalancePair:
        identity = self.registry.get_by_address(vault_address)
        if identity is None:
            logger.debug(f"Vault {vault_address} not in registry, balances unavailable")
            return BALANCES_UNAVAILABLE

        async def fetch():
            raw = await self.reader.call(identity.strategy_address, STRATEGY_ABI, "getBalances")
            return decode_balances(raw)

        try:
            return await self._coalescer.execute(normalize_address(vault_address), fetch)
        except Exception as e:
            error_tracker.track(e, f"balances:{identity.name}")
            logger.warning(f"Balance read failed for {identity.name}: {e}")
            return BALANCES_UNAVAILABLE


class BalancePoller:
    """
    Keeps the latest BalancePair for one vault, re-read every poll interval.
    A failed tick leaves the previous value in place.
    """

    def __init__(self, balance_reader: BalanceReader, vault_address: str, interval: Optional[float] = None):
        self.balance_reader = balance_reader
        self.vault_address = vault_address
        self.latest: BalancePair = BALANCES_UNAVAILABLE
        self._poller = PollingTask(
            f"Balances:{vault_address[:10]}",
            interval or get_config().polling.balance_poll_seconds,
            self.poll,
        )

    async def poll(self):
        balances = await self.balance_reader.get_balances(self.vault_address)
        if balances.available:
            self.latest = balances

    async def refresh(self) -> bool:
        """Immediate tick (mount / focus); skipped if one is outstanding"""
        return await self._poller.run_once()

    def start(self):
        self._poller.start()

    async def stop(self):
        await self._poller.stop()
