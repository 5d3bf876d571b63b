import time
from typing import Dict, Any, List, Optional, Callable
from dataclasses import dataclass, field, asdict

from config import Config
from infra.redis_client import RedisCache, is_redis_available
from strategies.errors import StrategyShutdown, ZeroLP
from strategies.lp_compounder import LpCompounder
from utils.logging_utils import get_logger

logger = get_logger(__name__)

MAX_HISTORY = 200


@dataclass
class AllocationRequest:
    kind: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VaultState:
    total_deposited: int = 0
    total_withdrawn: int = 0
    last_total_assets: int = 0
    total_profit: int = 0
    total_loss: int = 0
    report_count: int = 0
    last_report: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_deposited": self.total_deposited,
            "total_withdrawn": self.total_withdrawn,
            "last_total_assets": self.last_total_assets,
            "total_profit": self.total_profit,
            "total_loss": self.total_loss,
            "net_pnl": self.total_profit - self.total_loss,
            "report_count": self.report_count,
            "last_report": self.last_report,
        }


class VaultManager:
    """Drives one strategy the way a tokenized vault would.

    ``funds_in`` moves deposited assets into the strategy account before
    deployment; ``funds_out`` moves freed assets out to the withdrawer.
    """

    def __init__(
        self,
        strategy: LpCompounder,
        funds_in: Optional[Callable[[int], None]] = None,
        funds_out: Optional[Callable[[int], None]] = None,
    ):
        self.strategy = strategy
        self.funds_in = funds_in
        self.funds_out = funds_out
        self.state = VaultState(last_total_assets=strategy.total_assets())
        self._history: List[AllocationRequest] = []
        self._reports: List[Dict[str, Any]] = []

    def _record(self, kind: str, amount: int) -> AllocationRequest:
        request = AllocationRequest(kind=kind, amount=amount)
        self._history.append(request)
        if len(self._history) > MAX_HISTORY:
            self._history = self._history[-MAX_HISTORY:]
        return request

    def deposit(self, amount: int) -> Dict[str, Any]:
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")
        if self.strategy.is_shutdown:
            raise StrategyShutdown("Deposits are closed: strategy is shut down")

        if self.funds_in is not None:
            self.funds_in(amount)
        self._record("deploy", amount)

        staked = self.strategy.deploy(amount)

        self.state.total_deposited += amount
        self.state.last_total_assets += amount
        logger.info(f"Deposited {amount}, staked {staked} shares")

        return {"deposited": amount, "staked": staked}

    def withdraw(self, amount: int) -> Dict[str, Any]:
        if amount <= 0:
            raise ValueError(f"Withdraw amount must be positive, got {amount}")

        idle = self.strategy.oracle.idle_balance()
        freed = 0
        if idle < amount:
            shortfall = amount - idle
            self._record("free", shortfall)
            try:
                freed = self.strategy.redeem(shortfall)
            except ZeroLP as e:
                logger.warning(f"Nothing to free for withdrawal: {e}")

        available = min(amount, self.strategy.oracle.idle_balance())
        if available > 0 and self.funds_out is not None:
            self.funds_out(available)

        loss = amount - available
        self.state.total_withdrawn += available
        self.state.last_total_assets = max(0, self.state.last_total_assets - amount)
        if loss > 0:
            self.state.total_loss += loss
            logger.warning(f"Withdrawal of {amount} realised a loss of {loss}")
        else:
            logger.info(f"Withdrew {available} (freed {freed} from the pool)")

        return {"requested": amount, "withdrawn": available, "freed": freed, "loss": loss}

    def report(self, caller: Optional[str] = None) -> Dict[str, Any]:
        previous = self.state.last_total_assets
        total_assets = self.strategy.harvest_and_report(caller)

        profit = max(0, total_assets - previous)
        loss = max(0, previous - total_assets)
        self.state.total_profit += profit
        self.state.total_loss += loss
        self.state.last_total_assets = total_assets
        self.state.report_count += 1
        self.state.last_report = time.time()

        outcome = self.strategy.last_outcome
        report = {
            "strategy": self.strategy.name(),
            "timestamp": self.state.last_report,
            "total_assets": total_assets,
            "previous_total_assets": previous,
            "profit": profit,
            "loss": loss,
            "harvest": outcome.to_dict() if outcome else None,
        }
        self._reports.append(report)
        if len(self._reports) > MAX_HISTORY:
            self._reports = self._reports[-MAX_HISTORY:]
        RedisCache.add_report(self.strategy.name(), report)

        logger.info(f"Report #{self.state.report_count}: total_assets={total_assets} profit={profit} loss={loss}")
        return report

    def tend_trigger(self) -> bool:
        return self.strategy.should_tend()

    def tend(self, caller: Optional[str] = None) -> Dict[str, int]:
        idle = self.strategy.oracle.idle_balance()
        return self.strategy.tend(idle, caller)

    def get_reports(self, limit: int = 50) -> List[Dict[str, Any]]:
        stored = RedisCache.get_reports(self.strategy.name(), limit)
        if stored:
            return stored
        return list(reversed(self._reports[-limit:]))

    def get_history(self, limit: int = 20) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._history[-limit:]]

    def get_status(self) -> Dict[str, Any]:
        status = {
            "vault_state": self.state.to_dict(),
            "strategy": self.strategy.get_status(),
            "history": self.get_history(),
            "redis_available": is_redis_available(),
            "mode": Config.MODE,
        }
        RedisCache.set_status(self.strategy.name(), status)
        return status
