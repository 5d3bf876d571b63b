from dataclasses import dataclass
from typing import Dict

from infra.venues import LiquidityPool, StakingVault, Token
from strategies.params import PoolLayout
from utils.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Position:
    idle_balance: int
    staked_shares: int
    pending_reward_estimate: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "idle_balance": self.idle_balance,
            "staked_shares": self.staked_shares,
            "pending_reward_estimate": self.pending_reward_estimate,
        }


class ValuationOracle:
    """Values the strategy's holdings in deposit-token units.

    Nothing is cached: every call re-reads the staking vault and the
    deposit token so the figure matches what is redeemable right now.
    Pending rewards are not counted until harvested and reinvested.
    """

    def __init__(
        self,
        account: str,
        deposit_token: Token,
        pool: LiquidityPool,
        staking: StakingVault,
        layout: PoolLayout,
    ):
        self.account = account
        self.deposit_token = deposit_token
        self.pool = pool
        self.staking = staking
        self.layout = layout

    def idle_balance(self) -> int:
        return self.deposit_token.balance_of(self.account)

    def staked_shares(self) -> int:
        return self.staking.staked_balance_of(self.account)

    def staked_value(self, staked: int) -> int:
        # Some pools revert on a zero burn amount, so never ask for one.
        if staked == 0:
            return 0
        return self.pool.estimate_withdraw_one_sided(staked, self.layout.deposit_index)

    def total_assets(self) -> int:
        staked = self.staked_shares()
        idle = self.idle_balance()
        return self.staked_value(staked) + idle

    def position(self) -> Position:
        return Position(
            idle_balance=self.idle_balance(),
            staked_shares=self.staked_shares(),
            pending_reward_estimate=self.staking.earned(self.account),
        )
