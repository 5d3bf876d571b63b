from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

class Strategy(ABC):
    """Hooks an external vault framework calls on a yield strategy."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def deploy(self, amount: int) -> int:
        pass

    @abstractmethod
    def redeem(self, amount: int) -> int:
        pass

    @abstractmethod
    def harvest_and_report(self, caller: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def should_tend(self) -> bool:
        pass

    @abstractmethod
    def tend(self, idle_amount: int, caller: Optional[str] = None) -> Dict[str, int]:
        pass

    @abstractmethod
    def total_assets(self) -> int:
        pass

    @abstractmethod
    def get_status(self) -> Dict[str, Any]:
        pass

from .errors import (
    StrategyError,
    InvalidTolerance,
    ZeroLP,
    NoRewardsClaimed,
    InsufficientOutput,
    NotManagement,
    NotKeeper,
    StrategyShutdown,
)
from .lp_compounder import LpCompounder

__all__ = [
    "Strategy",
    "LpCompounder",
    "StrategyError",
    "InvalidTolerance",
    "ZeroLP",
    "NoRewardsClaimed",
    "InsufficientOutput",
    "NotManagement",
    "NotKeeper",
    "StrategyShutdown",
]
