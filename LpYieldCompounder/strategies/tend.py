from typing import Dict, Optional, Sequence

from infra.venues import Token
from strategies.deployment import DeploymentEngine
from strategies.params import StrategyParams, SwapRoute
from utils.logging_utils import get_logger, StrategyEventLogger

logger = get_logger(__name__)


class TendDecision:
    def __init__(
        self,
        account: str,
        secondary_reward: Token,
        routes: Sequence[SwapRoute],
        params: StrategyParams,
        deployment: DeploymentEngine,
        events: Optional[StrategyEventLogger] = None,
    ):
        if not routes:
            raise ValueError("tend needs at least one swap route")
        self.account = account
        self.secondary_reward = secondary_reward
        self.routes = tuple(routes)
        self.params = params
        self.deployment = deployment
        self.events = events

    def simulate(self, amount_in: int) -> int:
        amount = amount_in
        for route in self.routes:
            amount = route.venue.quote(route.from_index, route.to_index, amount)
        return amount

    def should_tend(self) -> bool:
        balance = self.secondary_reward.balance_of(self.account)
        if balance == 0:
            return False
        return self.simulate(balance) > self.params.min_reward_to_harvest

    def _compound(self) -> Dict[str, int]:
        swapped = self.secondary_reward.balance_of(self.account)
        amount = swapped
        for route in self.routes:
            amount = route.venue.swap(route.from_index, route.to_index, amount, 0)
        return {"swapped": swapped, "received": amount}

    def tend(self, idle_amount: int, active: bool = True) -> Dict[str, int]:
        """Compound secondary rewards and deploy idle funds between harvests.

        Leaves the reported valuation untouched until the next harvest. With
        ``active`` False (strategy shut down) nothing is swapped or deployed.
        """
        result = {"swapped": 0, "received": 0, "deployed": 0}

        if not active:
            logger.info("Strategy shut down, skipping tend")
            return result

        if self.should_tend():
            result.update(self._compound())

        if idle_amount > self.params.min_idle_to_deploy:
            self.deployment.deploy(idle_amount)
            result["deployed"] = idle_amount

        if self.events:
            self.events.log_tend(result["swapped"], result["received"], result["deployed"])
        return result
