from unittest.mock import MagicMock

from infra.venues import LiquidityPool, StakingVault, Token
from strategies.params import PoolLayout
from strategies.valuation import ValuationOracle


def make_oracle(idle=0, staked=0, staked_value=0, earned=0, layout=None):
    token = MagicMock(spec=Token)
    token.balance_of.return_value = idle
    pool = MagicMock(spec=LiquidityPool)
    pool.estimate_withdraw_one_sided.return_value = staked_value
    staking = MagicMock(spec=StakingVault)
    staking.staked_balance_of.return_value = staked
    staking.earned.return_value = earned
    oracle = ValuationOracle("strategy", token, pool, staking, layout or PoolLayout())
    return oracle, token, pool, staking


def test_zero_stake_values_idle_only_without_estimate():
    oracle, _, pool, _ = make_oracle(idle=4_200)
    assert oracle.total_assets() == 4_200
    pool.estimate_withdraw_one_sided.assert_not_called()


def test_staked_shares_valued_through_one_sided_withdrawal():
    oracle, token, pool, staking = make_oracle(
        idle=100, staked=900, staked_value=880, layout=PoolLayout(deposit_index=1, counter_index=0)
    )
    assert oracle.total_assets() == 980
    pool.estimate_withdraw_one_sided.assert_called_once_with(900, 1)
    staking.staked_balance_of.assert_called_with("strategy")
    token.balance_of.assert_called_with("strategy")


def test_total_assets_is_idempotent():
    oracle, _, _, _ = make_oracle(idle=10, staked=50, staked_value=49)
    assert oracle.total_assets() == oracle.total_assets() == 59


def test_position_reports_pending_rewards():
    oracle, _, _, staking = make_oracle(idle=3, staked=4, earned=5)
    position = oracle.position()
    assert position.idle_balance == 3
    assert position.staked_shares == 4
    assert position.pending_reward_estimate == 5
    staking.earned.assert_called_once_with("strategy")
    assert position.to_dict() == {"idle_balance": 3, "staked_shares": 4, "pending_reward_estimate": 5}


def test_paper_valuation_tracks_deployment(paper_env, compounder):
    paper_env.fund(1_000 * 10**6)
    assert compounder.total_assets() == 1_000 * 10**6

    compounder.deploy(600 * 10**6)
    total = compounder.total_assets()
    # Pool fees on the way in and out are a few bps of the deployed leg.
    assert 999 * 10**6 < total < 1_000 * 10**6
    assert compounder.total_assets() == total
    assert compounder.oracle.idle_balance() == 400 * 10**6
