from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class Token(ABC):
    @property
    @abstractmethod
    def symbol(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def balance_of(self, owner: str) -> int:
        raise NotImplementedError


class LiquidityPool(ABC):
    """Two-asset pool the strategy provides single-sided liquidity to.

    Amount lists are indexed by pool coin; calls act on behalf of the
    account the pool adapter is connected to.
    """

    @abstractmethod
    def estimate_provision(self, amounts: List[int], is_deposit: bool) -> int:
        raise NotImplementedError

    @abstractmethod
    def provide(self, amounts: List[int], min_share_out: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def withdraw_one_sided(self, share_amount: int, asset_index: int, min_asset_out: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def estimate_withdraw_one_sided(self, share_amount: int, asset_index: int) -> int:
        raise NotImplementedError


class StakingVault(ABC):
    @abstractmethod
    def deposit(self, pool_id: int, share_amount: int, auto_stake: bool) -> bool:
        raise NotImplementedError

    @abstractmethod
    def staked_balance_of(self, owner: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def claim_rewards(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def withdraw_and_unstake(self, share_amount: int, claim_rewards: bool) -> int:
        raise NotImplementedError

    @abstractmethod
    def earned(self, owner: str) -> int:
        raise NotImplementedError


class SwapVenue(ABC):
    @abstractmethod
    def quote(self, from_index: int, to_index: int, amount_in: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def swap(
        self,
        from_index: int,
        to_index: int,
        amount_in: int,
        min_amount_out: int,
        receiver: Optional[str] = None,
    ) -> int:
        raise NotImplementedError


@dataclass
class VenueSet:
    """Collaborators for one strategy account.

    Both reward-swap venues hold the intermediate asset at
    ``swap_intermediate_index`` and their reward token at ``swap_reward_index``.
    The primary venue also holds the pool counter asset at
    ``swap_counter_index``; left as None it is the intermediate asset.
    """
    account: str
    deposit_token: Token
    counter_token: Token
    primary_reward: Token
    secondary_reward: Token
    pool: LiquidityPool
    staking: StakingVault
    primary_swap: SwapVenue
    secondary_swap: SwapVenue
    swap_intermediate_index: int = 0
    swap_reward_index: int = 1
    swap_counter_index: Optional[int] = None

    @property
    def counter_swap_index(self) -> int:
        if self.swap_counter_index is None:
            return self.swap_intermediate_index
        return self.swap_counter_index
