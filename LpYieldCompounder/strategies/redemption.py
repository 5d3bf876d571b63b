from typing import Optional

from infra.venues import LiquidityPool, StakingVault
from strategies.errors import ZeroLP
from strategies.params import PoolLayout, StrategyParams
from strategies.slippage_guard import bound
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


class RedemptionEngine:
    def __init__(
        self,
        account: str,
        pool: LiquidityPool,
        staking: StakingVault,
        params: StrategyParams,
        layout: PoolLayout,
        events: Optional[StrategyEventLogger] = None,
    ):
        self.account = account
        self.pool = pool
        self.staking = staking
        self.params = params
        self.layout = layout
        self.events = events

    def shares_to_unstake(self, amount: int) -> int:
        amounts = self.layout.amounts(self.layout.deposit_index, amount)
        needed = self.pool.estimate_provision(amounts, False)
        held = self.staking.staked_balance_of(self.account)
        shares = min(needed, held)
        if shares == 0:
            raise ZeroLP(amount, held)
        return shares

    def redeem(self, amount: int) -> int:
        """Free ``amount`` of the deposit token from the staked position.

        Returns what the pool actually paid out. Any shortfall against
        ``amount`` is left for the caller to book as a loss. Rewards stay
        in the staking vault for the next harvest.
        """
        if amount < 0:
            raise ValueError(f"redeem amount must be non-negative, got {amount}")

        tolerance = self.params.slippage_bps
        shares = self.shares_to_unstake(amount)

        self.staking.withdraw_and_unstake(shares, False)

        min_out = bound(amount, tolerance)
        freed = self.pool.withdraw_one_sided(shares, self.layout.deposit_index, min_out)

        if self.events:
            self.events.log_redeem(amount, shares, min_out, freed)
        if freed < amount:
            logger.warning(f"Redeemed {freed} of {amount} requested, shortfall {amount - freed}")
        return freed
