from typing import Optional

from infra.venues import LiquidityPool, StakingVault
from strategies.params import PoolLayout, StrategyParams
from strategies.slippage_guard import bound
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


class DeploymentEngine:
    def __init__(
        self,
        pool: LiquidityPool,
        staking: StakingVault,
        params: StrategyParams,
        layout: PoolLayout,
        events: Optional[StrategyEventLogger] = None,
    ):
        self.pool = pool
        self.staking = staking
        self.params = params
        self.layout = layout
        self.events = events

    def deploy(self, amount: int) -> int:
        """Provide ``amount`` of the deposit token to the pool and stake the shares.

        Returns the number of pool shares staked. A provision that would
        mint less than the slippage floor reverts inside the pool and the
        error propagates before anything is staked.
        """
        if amount < 0:
            raise ValueError(f"deploy amount must be non-negative, got {amount}")
        if amount == 0:
            logger.debug("Nothing to deploy")
            return 0

        tolerance = self.params.slippage_bps
        amounts = self.layout.amounts(self.layout.deposit_index, amount)

        expected = self.pool.estimate_provision(amounts, True)
        min_out = bound(expected, tolerance)

        minted = self.pool.provide(amounts, min_out)
        staked = self.stake(minted)

        if self.events:
            self.events.log_deploy(amount, expected, min_out, staked)
        return staked

    def stake(self, shares: int) -> int:
        if shares == 0:
            return 0
        self.staking.deposit(self.layout.pool_id, shares, True)
        return shares
