#!/usr/bin/env python3
import time
import argparse
from typing import Dict, Any, List, Optional
import json

import pandas as pd
import numpy as np

from config import Config
from infra.paper_venues import RATE_SCALE, PaperEnvironment, build_paper_environment
from strategies.errors import StrategyError
from strategies.lp_compounder import LpCompounder
from strategies.params import StrategyParams
from vault.vault_manager import VaultManager
from utils.logging_utils import get_logger

logger = get_logger(__name__)

HOURS_PER_YEAR = 24 * 365
DEPOSITOR = "depositor"


class Simulator:
    """Hourly paper-trading loop over a single compounding strategy.

    Rewards accrue with lognormal noise around the configured APRs, the
    counter-asset price drifts as a random walk, and depositors add or pull
    funds at random. The vault reports every ``report_every`` steps and
    tends whenever the tend trigger fires.
    """

    def __init__(
        self,
        initial_deposit: int = Config.SIM_INITIAL_DEPOSIT,
        profile: str = "balanced",
        seed: int = Config.SIM_SEED,
        report_every: int = Config.SIM_REPORT_EVERY,
        primary_apr: float = 0.08,
        secondary_apr: float = 0.03,
        price_vol: float = 0.004,
        flow_probability: float = 0.05,
    ):
        self.initial_deposit = initial_deposit
        self.profile = profile
        self.seed = seed
        self.report_every = max(1, report_every)
        self.primary_apr = primary_apr
        self.secondary_apr = secondary_apr
        self.price_vol = price_vol
        self.flow_probability = flow_probability

        self.rng = np.random.default_rng(seed)
        self.env: PaperEnvironment = build_paper_environment()
        self.strategy = LpCompounder(
            self.env.venues,
            params=StrategyParams.from_profile(profile, management=Config.MANAGEMENT_ADDRESS),
        )
        self.vault = VaultManager(self.strategy, funds_in=self.env.fund, funds_out=self._pay_out)

        self._nav_history: List[Dict[str, Any]] = []
        self._flow_history: List[Dict[str, Any]] = []
        self._errors: List[Dict[str, Any]] = []
        self._tend_count = 0
        self._rewards_claimed = 0
        self._current_step = 0
        self._step_flow = 0

    def _pay_out(self, amount: int):
        symbol = self.env.venues.deposit_token.symbol
        self.env.ledger.transfer(symbol, self.strategy.account, DEPOSITOR, amount)

    def _accrue_rewards(self):
        staked_value = self.strategy.oracle.staked_value(self.strategy.oracle.staked_shares())
        if staked_value == 0:
            return

        rates = self.env.metadata["rates"]
        noise = self.rng.lognormal(mean=0.0, sigma=0.3, size=2)
        primary_value = int(staked_value * self.primary_apr / HOURS_PER_YEAR * noise[0])
        secondary_value = int(staked_value * self.secondary_apr / HOURS_PER_YEAR * noise[1])

        self.env.accrue_rewards(
            primary_value * RATE_SCALE // rates["CRV"],
            secondary_value * RATE_SCALE // rates["CVX"],
        )

    def _drift_prices(self):
        shock = self.rng.normal(0, self.price_vol)
        rate = max(1, int(self.env.pool.rates[1] * float(np.exp(shock))))
        self.env.pool.set_rate(1, rate)
        for venue in (self.env.primary_swap, self.env.secondary_swap):
            venue.set_rate(0, rate)

    def _random_flow(self):
        if self.rng.random() >= self.flow_probability:
            return

        size = int(self.initial_deposit * self.rng.uniform(0.01, 0.1))
        if size == 0:
            return

        if self.rng.random() < 0.6:
            result = self.vault.deposit(size)
            self._step_flow += size
            flow = {"step": self._current_step, "kind": "deposit", **result}
        else:
            result = self.vault.withdraw(size)
            self._step_flow -= result["withdrawn"]
            flow = {"step": self._current_step, "kind": "withdraw", **result}
        self._flow_history.append(flow)

    def run_step(self) -> Dict[str, Any]:
        self._step_flow = 0
        report = None
        tended = None

        self._drift_prices()
        self._accrue_rewards()

        try:
            self._random_flow()

            if self.vault.tend_trigger():
                tended = self.vault.tend(Config.MANAGEMENT_ADDRESS)
                self._tend_count += 1

            if (self._current_step + 1) % self.report_every == 0:
                report = self.vault.report(Config.MANAGEMENT_ADDRESS)
                if report["harvest"]:
                    self._rewards_claimed += report["harvest"]["rewards_claimed"]
        except StrategyError as e:
            logger.warning(f"Step {self._current_step} failed: {e}")
            self._errors.append({"step": self._current_step, "error": str(e), "kind": type(e).__name__})

        position = self.strategy.oracle.position()
        total_assets = self.strategy.total_assets()
        self._nav_history.append({
            "step": self._current_step,
            "timestamp": time.time(),
            "total_assets": total_assets,
            "idle": position.idle_balance,
            "staked_shares": position.staked_shares,
            "pending_rewards": position.pending_reward_estimate,
            "net_flow": self._step_flow,
            "reported": report is not None,
        })

        self._current_step += 1
        return {
            "step": self._current_step,
            "total_assets": total_assets,
            "report": report,
            "tend": tended,
        }

    def run_simulation(self, num_steps: int = Config.SIM_STEPS) -> Dict[str, Any]:
        logger.info(f"Starting simulation: {num_steps} steps, initial deposit {self.initial_deposit}, profile {self.profile}")
        start_time = time.time()

        if self._current_step == 0 and self.initial_deposit > 0:
            self.vault.deposit(self.initial_deposit)

        for step in range(num_steps):
            self.run_step()

            if (step + 1) % 24 == 0:
                latest = self._nav_history[-1]
                logger.info(f"Step {step + 1}/{num_steps}: total_assets={latest['total_assets']}")

        elapsed = time.time() - start_time

        results = self.get_simulation_results()
        results["elapsed_time"] = elapsed

        logger.info(f"Simulation complete: {num_steps} steps in {elapsed:.2f}s")
        logger.info(f"Final total assets: {results['final_total_assets']}, APY: {results['apy_pct']:.2f}%")

        return results

    def get_nav_dataframe(self) -> pd.DataFrame:
        if not self._nav_history:
            return pd.DataFrame()

        df = pd.DataFrame(self._nav_history)
        df["datetime"] = pd.to_datetime(df["timestamp"], unit="s")

        # Flow-adjusted hourly return, so deposits and withdrawals are not counted as yield.
        previous = df["total_assets"].shift(1)
        df["return"] = ((df["total_assets"] - df["net_flow"]) / previous - 1).where(previous > 0, 0.0)
        df["index"] = (1 + df["return"].fillna(0.0)).cumprod()
        df["drawdown"] = 1 - df["index"] / df["index"].cummax()
        return df

    def get_simulation_results(self) -> Dict[str, Any]:
        if not self._nav_history:
            return {
                "error": "No simulation data available",
                "steps": 0
            }

        df = self.get_nav_dataframe()
        growth = float(df["index"].iloc[-1])
        steps = len(df)
        apy = float(np.power(growth, HOURS_PER_YEAR / steps)) - 1 if growth > 0 else -1.0

        vault_state = self.vault.state.to_dict()

        return {
            "steps": self._current_step,
            "profile": self.profile,
            "seed": self.seed,
            "initial_deposit": self.initial_deposit,
            "final_total_assets": int(df["total_assets"].iloc[-1]),
            "period_return_pct": (growth - 1) * 100,
            "apy_pct": apy * 100,
            "max_drawdown_pct": float(df["drawdown"].max()) * 100,
            "reports": vault_state["report_count"],
            "total_profit": vault_state["total_profit"],
            "total_loss": vault_state["total_loss"],
            "total_rewards_claimed": self._rewards_claimed,
            "tends": self._tend_count,
            "flows": len(self._flow_history),
            "errors": self._errors[-20:],
            "nav_history": self._nav_history[-100:],
            "flow_history": self._flow_history[-50:],
        }

    def export_results(self, filepath: str = "simulation_results.json", results: Optional[Dict[str, Any]] = None):
        results = results or self.get_simulation_results()

        with open(filepath, "w") as f:
            json.dump(results, f, indent=2, default=str)

        logger.info(f"Results exported to {filepath}")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="LP Yield Compounder Simulator")
    parser.add_argument("--deposit", type=int, default=Config.SIM_INITIAL_DEPOSIT, help="Initial deposit in deposit-token base units")
    parser.add_argument("--steps", type=int, default=Config.SIM_STEPS, help="Number of hourly steps")
    parser.add_argument("--profile", type=str, default="balanced", choices=sorted(Config.STRATEGY_PROFILES), help="Strategy profile")
    parser.add_argument("--report-every", type=int, default=Config.SIM_REPORT_EVERY, help="Steps between harvest reports")
    parser.add_argument("--seed", type=int, default=Config.SIM_SEED, help="Random seed")
    parser.add_argument("--output", type=str, default="simulation_results.json", help="Output file path")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    if args.verbose:
        import logging
        logging.getLogger().setLevel(logging.DEBUG)

    simulator = Simulator(
        initial_deposit=args.deposit,
        profile=args.profile,
        seed=args.seed,
        report_every=args.report_every,
    )
    results = simulator.run_simulation(num_steps=args.steps)
    simulator.export_results(args.output, results)

    print("\n" + "="*50)
    print("SIMULATION RESULTS")
    print("="*50)
    print(f"Steps:              {results['steps']}")
    print(f"Profile:            {results['profile']}")
    print(f"Initial Deposit:    {results['initial_deposit']:,}")
    print(f"Final Total Assets: {results['final_total_assets']:,}")
    print(f"Period Return:      {results['period_return_pct']:.4f}%")
    print(f"APY:                {results['apy_pct']:.2f}%")
    print(f"Max Drawdown:       {results['max_drawdown_pct']:.4f}%")
    print(f"Reports:            {results['reports']}")
    print(f"Tends:              {results['tends']}")
    print("="*50)

    return results


if __name__ == "__main__":
    main()
