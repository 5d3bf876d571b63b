import time
from typing import Dict, Any, Optional

from config import Config
from infra.venues import VenueSet
from strategies import Strategy
from strategies.deployment import DeploymentEngine
from strategies.errors import StrategyShutdown
from strategies.harvest import HarvestEngine, HarvestOutcome
from strategies.params import PoolLayout, StrategyParams, SwapRoute
from strategies.redemption import RedemptionEngine
from strategies.tend import TendDecision
from strategies.valuation import ValuationOracle
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


class LpCompounder(Strategy):
    def __init__(
        self,
        venues: VenueSet,
        params: Optional[StrategyParams] = None,
        layout: Optional[PoolLayout] = None,
        strategy_name: Optional[str] = None,
    ):
        self._name = strategy_name or Config.STRATEGY_NAME
        self.venues = venues
        self.account = venues.account
        self.params = params or StrategyParams.from_config()
        self.layout = layout or PoolLayout.from_config()

        self.events = StrategyEventLogger(f"strategy.{self._name}")
        self.params.events = self.events

        self.is_shutdown = False
        self.last_outcome: Optional[HarvestOutcome] = None
        self._last_report_time: float = 0.0

        self.oracle = ValuationOracle(
            self.account, venues.deposit_token, venues.pool, venues.staking, self.layout
        )
        self.deployment = DeploymentEngine(
            venues.pool, venues.staking, self.params, self.layout, self.events
        )
        self.redemption = RedemptionEngine(
            self.account, venues.pool, venues.staking, self.params, self.layout, self.events
        )

        reward_idx = venues.swap_reward_index
        mid_idx = venues.swap_intermediate_index
        counter_idx = venues.counter_swap_index
        self.harvester = HarvestEngine(
            self.account,
            venues.pool,
            venues.staking,
            venues.primary_reward,
            venues.counter_token,
            SwapRoute(venues.primary_swap, reward_idx, counter_idx),
            self.layout,
            self.deployment,
            self.oracle,
            self.events,
        )
        self.tender = TendDecision(
            self.account,
            venues.secondary_reward,
            (
                SwapRoute(venues.secondary_swap, reward_idx, mid_idx),
                SwapRoute(venues.primary_swap, mid_idx, reward_idx),
            ),
            self.params,
            self.deployment,
            self.events,
        )

        logger.info(f"[{self._name}] Initialized for account {self.account} (slippage={self.params.slippage_bps}bps)")

    def name(self) -> str:
        return self._name

    @property
    def slippage_bps(self) -> int:
        return self.params.slippage_bps

    @property
    def min_reward_to_harvest(self) -> int:
        return self.params.min_reward_to_harvest

    @property
    def min_idle_to_deploy(self) -> int:
        return self.params.min_idle_to_deploy

    def deploy(self, amount: int) -> int:
        return self.deployment.deploy(amount)

    def redeem(self, amount: int) -> int:
        return self.redemption.redeem(amount)

    def harvest_and_report(self, caller: Optional[str] = None) -> int:
        self.params.require_keeper(caller)
        outcome = self.harvester.harvest_and_report(active=not self.is_shutdown)
        self.last_outcome = outcome
        self._last_report_time = time.time()
        return outcome.total_assets

    def should_tend(self) -> bool:
        if self.is_shutdown:
            return False
        return self.tender.should_tend()

    def tend(self, idle_amount: int, caller: Optional[str] = None) -> Dict[str, int]:
        self.params.require_keeper(caller)
        return self.tender.tend(idle_amount, active=not self.is_shutdown)

    def total_assets(self) -> int:
        return self.oracle.total_assets()

    def set_tolerance(self, new_bps: int, caller: str):
        self.params.set_tolerance(new_bps, caller)

    def set_min_reward_to_harvest(self, value: int, caller: str):
        self.params.set_min_reward_to_harvest(value, caller)

    def set_min_idle_to_deploy(self, value: int, caller: str):
        self.params.set_min_idle_to_deploy(value, caller)

    def shutdown(self, caller: str):
        self.params.require_management(caller)
        if not self.is_shutdown:
            self.is_shutdown = True
            logger.warning(f"[{self._name}] Shut down by {caller}")

    def emergency_withdraw(self, amount: int, caller: str) -> int:
        self.params.require_management(caller)
        if not self.is_shutdown:
            raise StrategyShutdown("Emergency withdraw requires the strategy to be shut down")
        logger.warning(f"[{self._name}] Emergency withdraw of {amount}")
        return self.redemption.redeem(amount)

    def get_status(self) -> Dict[str, Any]:
        position = self.oracle.position()
        return {
            "name": self._name,
            "account": self.account,
            "is_shutdown": self.is_shutdown,
            "position": position.to_dict(),
            "total_assets": self.oracle.staked_value(position.staked_shares) + position.idle_balance,
            "params": self.params.to_dict(),
            "layout": {
                "pool_id": self.layout.pool_id,
                "deposit_index": self.layout.deposit_index,
                "counter_index": self.layout.counter_index,
            },
            "should_tend": self.should_tend(),
            "last_harvest": self.last_outcome.to_dict() if self.last_outcome else None,
            "last_report_time": self._last_report_time,
        }
