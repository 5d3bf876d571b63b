from unittest.mock import MagicMock

import pytest
from hypothesis import given, strategies as st

from infra.venues import LiquidityPool, StakingVault
from strategies.errors import InsufficientOutput, ZeroLP
from strategies.params import PoolLayout, StrategyParams
from strategies.redemption import RedemptionEngine


def make_engine(needed=700, held=500, paid_out=600, bps=9_900):
    pool = MagicMock(spec=LiquidityPool)
    pool.estimate_provision.return_value = needed
    pool.withdraw_one_sided.return_value = paid_out
    staking = MagicMock(spec=StakingVault)
    staking.staked_balance_of.return_value = held
    staking.withdraw_and_unstake.side_effect = lambda shares, claim: shares
    params = StrategyParams(management="management", slippage_bps=bps)
    engine = RedemptionEngine("strategy", pool, staking, params, PoolLayout())
    return engine, pool, staking


def test_unstakes_at_most_what_is_held():
    engine, pool, staking = make_engine(needed=700, held=500)
    freed = engine.redeem(600)

    pool.estimate_provision.assert_called_once_with([600, 0], False)
    staking.withdraw_and_unstake.assert_called_once_with(500, False)
    pool.withdraw_one_sided.assert_called_once_with(500, 0, 594)
    assert freed == 600


def test_unstakes_only_what_is_needed():
    engine, _, staking = make_engine(needed=300, held=500)
    engine.redeem(290)
    staking.withdraw_and_unstake.assert_called_once_with(300, False)


def test_zero_held_raises_zero_lp_without_touching_venues():
    engine, pool, staking = make_engine(needed=700, held=0)
    with pytest.raises(ZeroLP) as exc_info:
        engine.redeem(600)
    assert exc_info.value.amount == 600
    assert exc_info.value.held == 0
    staking.withdraw_and_unstake.assert_not_called()
    pool.withdraw_one_sided.assert_not_called()


def test_zero_needed_raises_zero_lp():
    engine, _, _ = make_engine(needed=0, held=500)
    with pytest.raises(ZeroLP):
        engine.redeem(0)


def test_shortfall_is_returned_not_raised():
    engine, _, _ = make_engine(needed=700, held=500, paid_out=450)
    assert engine.redeem(600) == 450


def test_floor_miss_propagates():
    engine, pool, _ = make_engine()
    pool.withdraw_one_sided.side_effect = InsufficientOutput("withdraw_one_sided", 594, 100)
    with pytest.raises(InsufficientOutput):
        engine.redeem(600)


def test_negative_amount_rejected():
    engine, _, _ = make_engine()
    with pytest.raises(ValueError):
        engine.redeem(-10)


@given(
    needed=st.integers(min_value=0, max_value=10**24),
    held=st.integers(min_value=0, max_value=10**24),
)
def test_shares_to_unstake_never_exceeds_held(needed, held):
    engine, _, _ = make_engine(needed=needed, held=held)
    if min(needed, held) == 0:
        with pytest.raises(ZeroLP):
            engine.shares_to_unstake(1_000)
    else:
        shares = engine.shares_to_unstake(1_000)
        assert shares == min(needed, held)
        assert shares <= held


def test_paper_redeem_frees_requested_amount(paper_env, funded_compounder):
    before = funded_compounder.oracle.idle_balance()
    freed = funded_compounder.redeem(500 * 10**6)

    assert 495 * 10**6 <= freed <= 500 * 10**6
    assert funded_compounder.oracle.idle_balance() == before + freed
    assert paper_env.staking.staked_balance_of("strategy") > 0


def test_paper_redeem_more_than_held_is_capped(paper_env, funded_compounder):
    held = paper_env.staking.staked_balance_of("strategy")
    funded_compounder.set_tolerance(0, "management")
    freed = funded_compounder.redeem(5_000 * 10**6)

    assert paper_env.staking.staked_balance_of("strategy") == 0
    assert 0 < freed < 1_000 * 10**6
    assert held > 0


def test_paper_redeem_with_nothing_staked(compounder):
    with pytest.raises(ZeroLP):
        compounder.redeem(10 * 10**6)
