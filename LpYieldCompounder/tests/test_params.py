import pytest
from hypothesis import given, strategies as st

from config import Config
from strategies.errors import InvalidTolerance, NotKeeper, NotManagement
from strategies.params import PoolLayout, StrategyParams
from utils.logging_utils import StrategyEventLogger


def make_params(**overrides):
    values = {"management": "management", "slippage_bps": 9_900}
    values.update(overrides)
    return StrategyParams(**values)


@given(bps=st.integers(min_value=0, max_value=10_000))
def test_set_tolerance_within_range_is_reflected(bps):
    params = make_params()
    params.set_tolerance(bps, "management")
    assert params.slippage_bps == bps


@given(bps=st.integers(min_value=10_001, max_value=10**9))
def test_set_tolerance_above_range_fails_and_keeps_value(bps):
    params = make_params()
    with pytest.raises(InvalidTolerance):
        params.set_tolerance(bps, "management")
    assert params.slippage_bps == 9_900


def test_setters_require_management():
    params = make_params()
    with pytest.raises(NotManagement):
        params.set_tolerance(9_000, "someone")
    with pytest.raises(NotManagement):
        params.set_min_reward_to_harvest(5, "someone")
    with pytest.raises(NotManagement):
        params.set_min_idle_to_deploy(5, "someone")
    assert params.slippage_bps == 9_900


def test_threshold_setters():
    params = make_params()
    params.set_min_reward_to_harvest(10**18, "management")
    params.set_min_idle_to_deploy(10**6, "management")
    assert params.min_reward_to_harvest == 10**18
    assert params.min_idle_to_deploy == 10**6

    with pytest.raises(ValueError):
        params.set_min_reward_to_harvest(-1, "management")
    with pytest.raises(ValueError):
        params.set_min_idle_to_deploy(-1, "management")


def test_construction_validates():
    with pytest.raises(InvalidTolerance):
        make_params(slippage_bps=10_001)
    with pytest.raises(ValueError):
        make_params(min_idle_to_deploy=-5)


def test_config_changes_are_logged_as_events():
    events = StrategyEventLogger("test.params")
    params = make_params(events=events)
    params.set_tolerance(9_800, "management")

    recorded = events.get_events("config")
    assert len(recorded) == 1
    assert recorded[0]["key"] == "slippage_bps"
    assert recorded[0]["old_value"] == 9_900
    assert recorded[0]["new_value"] == 9_800
    assert recorded[0]["caller"] == "management"


class TestKeeperCheck:
    def test_open_when_no_keepers(self):
        make_params().require_keeper("anyone")
        make_params().require_keeper(None)

    def test_restricted_when_keepers_configured(self):
        params = make_params(keepers={"keeper-1"})
        params.require_keeper("keeper-1")
        params.require_keeper("management")
        with pytest.raises(NotKeeper):
            params.require_keeper("stranger")
        with pytest.raises(NotKeeper):
            params.require_keeper(None)


class TestProfiles:
    def test_profile_values(self):
        params = StrategyParams.from_profile("conservative", management="ops")
        profile = Config.STRATEGY_PROFILES["conservative"]
        assert params.management == "ops"
        assert params.slippage_bps == profile["slippage_bps"]
        assert params.min_reward_to_harvest == profile["min_reward_to_harvest"]
        assert params.min_idle_to_deploy == profile["min_idle_to_deploy"]

    def test_unknown_profile_falls_back_to_balanced(self):
        params = StrategyParams.from_profile("does-not-exist")
        assert params.slippage_bps == Config.STRATEGY_PROFILES["balanced"]["slippage_bps"]

    def test_from_config(self):
        params = StrategyParams.from_config()
        assert params.management == Config.MANAGEMENT_ADDRESS
        assert params.slippage_bps == Config.SLIPPAGE_BPS


def test_pool_layout_amounts():
    layout = PoolLayout(deposit_index=1, counter_index=0)
    assert layout.amounts(layout.deposit_index, 500) == [0, 500]
    assert layout.amounts(layout.counter_index, 7) == [7, 0]
