"""
Pytest configuration and shared fixtures.

Engine tests run against MagicMock collaborators when they need to assert
exact calls, and against the paper venues when they need real balances.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from hypothesis import settings

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Config reads the environment at import time
os.environ["MODE"] = "simulation"
os.environ["REDIS_URL"] = ""
os.environ["KEEPER_ADDRESSES"] = ""
os.environ["STRATEGY_ADDRESS"] = "strategy"
os.environ["MANAGEMENT_ADDRESS"] = "management"

from infra.paper_venues import build_paper_environment
from infra.redis_client import reset_redis
from infra.venues import LiquidityPool, StakingVault, SwapVenue, Token, VenueSet
from strategies.lp_compounder import LpCompounder
from strategies.params import PoolLayout, StrategyParams


settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile("ci", max_examples=1000, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

MANAGEMENT = "management"
ACCOUNT = "strategy"
USDC = 10**6
TOKEN = 10**18


@pytest.fixture(autouse=True)
def clean_cache():
    reset_redis()
    yield
    reset_redis()


@pytest.fixture
def params():
    return StrategyParams(
        management=MANAGEMENT,
        slippage_bps=9_900,
        min_reward_to_harvest=TOKEN,
        min_idle_to_deploy=USDC,
    )


@pytest.fixture
def layout():
    return PoolLayout(pool_id=7, deposit_index=0, counter_index=1)


@pytest.fixture
def paper_env():
    return build_paper_environment(account=ACCOUNT)


@pytest.fixture
def compounder(paper_env, params):
    return LpCompounder(paper_env.venues, params=params, layout=PoolLayout(), strategy_name="test_compounder")


@pytest.fixture
def funded_compounder(paper_env, compounder):
    """A compounder with 1,000 USDC already deployed and staked."""
    paper_env.fund(1_000 * USDC)
    compounder.deploy(1_000 * USDC)
    return compounder


@pytest.fixture
def mock_venues():
    deposit_token = MagicMock(spec=Token)
    deposit_token.balance_of.return_value = 0
    counter_token = MagicMock(spec=Token)
    counter_token.balance_of.return_value = 0
    primary_reward = MagicMock(spec=Token)
    primary_reward.balance_of.return_value = 0
    secondary_reward = MagicMock(spec=Token)
    secondary_reward.balance_of.return_value = 0

    staking = MagicMock(spec=StakingVault)
    staking.staked_balance_of.return_value = 0
    staking.earned.return_value = 0
    staking.claim_rewards.return_value = True
    staking.deposit.return_value = True

    return VenueSet(
        account=ACCOUNT,
        deposit_token=deposit_token,
        counter_token=counter_token,
        primary_reward=primary_reward,
        secondary_reward=secondary_reward,
        pool=MagicMock(spec=LiquidityPool),
        staking=staking,
        primary_swap=MagicMock(spec=SwapVenue),
        secondary_swap=MagicMock(spec=SwapVenue),
    )


@pytest.fixture
def mock_compounder(mock_venues, params):
    return LpCompounder(mock_venues, params=params, layout=PoolLayout(), strategy_name="mock_compounder")
