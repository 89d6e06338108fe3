"""
Vault Metrics
Combines range, balances, price and rewards into one per-vault view.

- VaultMetricsService.snapshot(): one-shot async read of everything
- VaultMonitor: live polling of every registered vault; metrics(address)
  builds the view from whatever has loaded so far, with timers cleared on stop()
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..data_sources.contracts import ContractReader
from ..data_sources.vault_registry import RangeProtocol, VaultIdentity, VaultRegistry
from ..infrastructure.config import get_config
from ..infrastructure.errors import error_tracker
from ..models import BalancePair, PricePoint, RangeState
from ..normalization import normalize_address
from .balance_reader import BalancePoller, BalanceReader
from .poller import PollingTask
from .price_feed import PriceFeed
from .range_adapters import ProtocolAdapter, adapter_for
from .range_evaluator import evaluate
from .rewards_cache import ClaimableReward, RewardsAggregator, total_rewards_usd
from .tvl_calculator import TvlCalculator

logger = logging.getLogger("VaultMetrics")


@dataclass
class VaultMetrics:
    name: str
    vault_address: str
    protocol: RangeProtocol
    in_range: Optional[bool]
    range_state: RangeState
    balances: BalancePair
    price: PricePoint
    tvl_usd: float
    deposited_value_usd: float = 0.0
    share_percentage: float = 0.0
    pending_rewards: List[ClaimableReward] = field(default_factory=list)
    pending_rewards_usd: float = 0.0

    @property
    def is_loading(self) -> bool:
        return self.in_range is None or not self.balances.available or not self.price.available


class VaultMetricsService:
    def __init__(
        self,
        registry: VaultRegistry,
        price_feed: PriceFeed,
        balance_reader: Optional[BalanceReader] = None,
        reader: Optional[ContractReader] = None,
        rewards: Optional[RewardsAggregator] = None,
        calculator: Optional[TvlCalculator] = None,
    ):
        self.registry = registry
        self.price_feed = price_feed
        self.reader = reader or ContractReader()
        self.balance_reader = balance_reader or BalanceReader(registry, self.reader)
        self.rewards = rewards
        self.calculator = calculator or TvlCalculator()
        self._adapters: Dict[str, ProtocolAdapter] = {}

    def adapter(self, identity: VaultIdentity) -> ProtocolAdapter:
        key = normalize_address(identity.vault_address)
        if key not in self._adapters:
            self._adapters[key] = adapter_for(identity, self.reader)
        return self._adapters[key]

    def build(
        self,
        identity: VaultIdentity,
        range_state: RangeState,
        balances: BalancePair,
        price: PricePoint,
        user_shares=None,
        total_supply=None,
        rewards: Optional[List[ClaimableReward]] = None,
    ) -> VaultMetrics:
        tvl = self.calculator.calculate(balances, identity.decimals_x, identity.decimals_y, price)
        rewards = rewards or []
        return VaultMetrics(
            name=identity.name,
            vault_address=identity.vault_address,
            protocol=identity.protocol,
            in_range=evaluate(range_state),
            range_state=range_state,
            balances=balances,
            price=price,
            tvl_usd=tvl,
            deposited_value_usd=self.calculator.deposited_value_usd(tvl, user_shares, total_supply),
            share_percentage=self.calculator.share_percentage(user_shares, total_supply),
            pending_rewards=rewards,
            pending_rewards_usd=total_rewards_usd(rewards),
        )

    async def pending_rewards(self, identity: VaultIdentity, user_address: Optional[str]) -> List[ClaimableReward]:
        if self.rewards is None or not user_address:
            return []
        try:
            return list(await self.rewards.get_claimable_rewards(identity, user_address))
        except Exception as e:
            error_tracker.track(e, f"rewards:{identity.name}")
            logger.warning(f"Rewards unavailable for {identity.name}: {e}")
            return []

    async def snapshot(
        self,
        identity: VaultIdentity,
        user_address: Optional[str] = None,
        user_shares=None,
        total_supply=None,
    ) -> VaultMetrics:
        range_state, balances, price, rewards = await asyncio.gather(
            self.adapter(identity).refresh(),
            self.balance_reader.get_balances(identity.vault_address),
            self.price_feed.get_price(),
            self.pending_rewards(identity, user_address),
        )
        return self.build(identity, range_state, balances, price, user_shares, total_supply, rewards)


class VaultMonitor:
    """Polls every registered vault until stopped"""

    def __init__(self, service: VaultMetricsService, interval: Optional[float] = None):
        self.service = service
        polling = get_config().polling
        self.balance_interval = interval or polling.balance_poll_seconds
        self.range_interval = interval or polling.range_poll_seconds
        self._balances: Dict[str, BalancePoller] = {}
        self._range_pollers: Dict[str, PollingTask] = {}
        self._focus_tasks: set = set()

        for identity in service.registry:
            key = normalize_address(identity.vault_address)
            self._balances[key] = BalancePoller(service.balance_reader, identity.vault_address, self.balance_interval)
            adapter = service.adapter(identity)
            self._range_pollers[key] = PollingTask(f"Range:{identity.name}", self.range_interval, adapter.refresh)

    def metrics(self, vault_address: str, user_shares=None, total_supply=None) -> Optional[VaultMetrics]:
        identity = self.service.registry.get_by_address(vault_address)
        if identity is None:
            return None
        key = normalize_address(vault_address)
        return self.service.build(
            identity,
            self.service.adapter(identity).state,
            self._balances[key].latest,
            self.service.price_feed.latest(),
            user_shares,
            total_supply,
        )

    def all_metrics(self) -> List[VaultMetrics]:
        return [self.metrics(v.vault_address) for v in self.service.registry]

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._focus_tasks.add(task)
        task.add_done_callback(self._focus_tasks.discard)

    def on_focus(self):
        """Focus regained: refresh price and re-read every vault's balances and range"""
        self.service.price_feed.on_focus()
        for poller in self._balances.values():
            self._spawn(poller.refresh())
        for poller in self._range_pollers.values():
            self._spawn(poller.run_once())

    def start(self):
        self.service.price_feed.start()
        for poller in self._balances.values():
            poller.start()
        for poller in self._range_pollers.values():
            poller.start()
        logger.info(f"Monitoring {len(self._balances)} vaults")

    async def stop(self):
        await asyncio.gather(
            self.service.price_feed.stop(),
            *(p.stop() for p in self._balances.values()),
            *(p.stop() for p in self._range_pollers.values()),
        )
        for task in list(self._focus_tasks):
            task.cancel()
        if self._focus_tasks:
            await asyncio.gather(*self._focus_tasks, return_exceptions=True)
        self._focus_tasks.clear()
        logger.info("Vault monitor stopped")
