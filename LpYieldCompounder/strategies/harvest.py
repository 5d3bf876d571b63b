from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from infra.venues import LiquidityPool, StakingVault, Token
from strategies.deployment import DeploymentEngine
from strategies.errors import NoRewardsClaimed
from strategies.params import PoolLayout, SwapRoute
from strategies.valuation import ValuationOracle
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


@dataclass
class HarvestOutcome:
    rewards_claimed: int = 0
    converted: int = 0
    shares_staked: int = 0
    total_assets: int = 0
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HarvestEngine:
    def __init__(
        self,
        account: str,
        pool: LiquidityPool,
        staking: StakingVault,
        primary_reward: Token,
        counter_token: Token,
        harvest_route: SwapRoute,
        layout: PoolLayout,
        deployment: DeploymentEngine,
        oracle: ValuationOracle,
        events: Optional[StrategyEventLogger] = None,
    ):
        self.account = account
        self.pool = pool
        self.staking = staking
        self.primary_reward = primary_reward
        self.counter_token = counter_token
        self.harvest_route = harvest_route
        self.layout = layout
        self.deployment = deployment
        self.oracle = oracle
        self.events = events

    def _claim(self) -> int:
        if not self.staking.claim_rewards():
            raise NoRewardsClaimed()
        return self.primary_reward.balance_of(self.account)

    def _convert(self, reward_amount: int) -> int:
        if reward_amount == 0:
            logger.debug("No primary reward to convert")
            return 0
        route = self.harvest_route
        logger.debug(f"Swapping {reward_amount} primary reward with zero floor")
        route.venue.swap(route.from_index, route.to_index, reward_amount, 0)
        return self.counter_token.balance_of(self.account)

    def _reinvest(self, counter_amount: int) -> int:
        if counter_amount == 0:
            logger.debug("No counter asset to reinvest")
            return 0
        amounts = self.layout.amounts(self.layout.counter_index, counter_amount)
        minted = self.pool.provide(amounts, 0)
        return self.deployment.stake(minted)

    def harvest_and_report(self, active: bool = True) -> HarvestOutcome:
        """Claim, convert and restake rewards, then value the position.

        With ``active`` False (strategy shut down) only the valuation runs.
        """
        outcome = HarvestOutcome(skipped=not active)

        if active:
            outcome.rewards_claimed = self._claim()
            outcome.converted = self._convert(outcome.rewards_claimed)
            outcome.shares_staked = self._reinvest(outcome.converted)
        else:
            logger.info("Strategy shut down, skipping reward claim and reinvestment")

        outcome.total_assets = self.oracle.total_assets()

        if self.events:
            self.events.log_harvest(outcome.to_dict())
        return outcome
