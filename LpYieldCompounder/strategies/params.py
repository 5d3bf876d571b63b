from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Set

from config import Config
from infra.venues import SwapVenue
from strategies.errors import NotManagement, NotKeeper
from strategies.slippage_guard import validate_tolerance
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SwapRoute:
    venue: SwapVenue
    from_index: int
    to_index: int


@dataclass(frozen=True)
class PoolLayout:
    pool_id: int = 0
    deposit_index: int = 0
    counter_index: int = 1
    n_coins: int = 2

    def amounts(self, index: int, amount: int) -> list:
        legs = [0] * self.n_coins
        legs[index] = amount
        return legs

    @classmethod
    def from_config(cls) -> "PoolLayout":
        return cls(
            pool_id=Config.POOL_ID,
            deposit_index=Config.DEPOSIT_ASSET_INDEX,
            counter_index=Config.COUNTER_ASSET_INDEX,
        )


@dataclass
class StrategyParams:
    """Mutable strategy parameters.

    Only ``management`` may change them; every engine reads them by
    reference so an update applies to the next operation.
    """
    management: str
    slippage_bps: int = 9_900
    min_reward_to_harvest: int = 0
    min_idle_to_deploy: int = 0
    keepers: Set[str] = field(default_factory=set)
    events: Optional[StrategyEventLogger] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        validate_tolerance(self.slippage_bps)
        if self.min_reward_to_harvest < 0 or self.min_idle_to_deploy < 0:
            raise ValueError("thresholds must be non-negative")

    def require_management(self, caller: str):
        if caller != self.management:
            raise NotManagement(caller)

    def require_keeper(self, caller: Optional[str]):
        if not self.keepers:
            return
        if caller != self.management and caller not in self.keepers:
            raise NotKeeper(str(caller))

    def _set(self, key: str, value: int, caller: str):
        old_value = getattr(self, key)
        setattr(self, key, value)
        if self.events:
            self.events.log_config(key, old_value, value, caller)
        else:
            logger.info(f"{key} updated: {old_value} -> {value} (by {caller})")

    def set_tolerance(self, new_bps: int, caller: str):
        self.require_management(caller)
        validate_tolerance(new_bps)
        self._set("slippage_bps", new_bps, caller)

    def set_min_reward_to_harvest(self, value: int, caller: str):
        self.require_management(caller)
        if value < 0:
            raise ValueError(f"min_reward_to_harvest must be non-negative, got {value}")
        self._set("min_reward_to_harvest", value, caller)

    def set_min_idle_to_deploy(self, value: int, caller: str):
        self.require_management(caller)
        if value < 0:
            raise ValueError(f"min_idle_to_deploy must be non-negative, got {value}")
        self._set("min_idle_to_deploy", value, caller)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "management": self.management,
            "slippage_bps": self.slippage_bps,
            "min_reward_to_harvest": self.min_reward_to_harvest,
            "min_idle_to_deploy": self.min_idle_to_deploy,
            "keepers": sorted(self.keepers),
        }

    @classmethod
    def from_config(cls) -> "StrategyParams":
        return cls(
            management=Config.MANAGEMENT_ADDRESS,
            slippage_bps=Config.SLIPPAGE_BPS,
            min_reward_to_harvest=Config.MIN_REWARD_TO_HARVEST,
            min_idle_to_deploy=Config.MIN_IDLE_TO_DEPLOY,
            keepers=Config.get_keepers(),
        )

    @classmethod
    def from_profile(cls, profile_name: str, management: Optional[str] = None) -> "StrategyParams":
        profile = Config.get_strategy_profile(profile_name)
        return cls(
            management=management or Config.MANAGEMENT_ADDRESS,
            slippage_bps=profile["slippage_bps"],
            min_reward_to_harvest=profile["min_reward_to_harvest"],
            min_idle_to_deploy=profile["min_idle_to_deploy"],
            keepers=Config.get_keepers(),
        )
