import pytest

from infra.redis_client import RedisCache
from strategies.errors import StrategyShutdown
from vault.vault_manager import AllocationRequest, VaultManager

USDC = 10**6
CRV = 10**18


@pytest.fixture
def vault(paper_env, compounder):
    def pay_out(amount):
        paper_env.ledger.transfer("USDC", "strategy", "user", amount)

    return VaultManager(compounder, funds_in=paper_env.fund, funds_out=pay_out)


def test_deposit_deploys_funds(paper_env, vault):
    result = vault.deposit(1_000 * USDC)

    assert result["deposited"] == 1_000 * USDC
    assert result["staked"] == paper_env.staking.staked_balance_of("strategy")
    assert vault.strategy.oracle.idle_balance() == 0
    assert vault.state.total_deposited == 1_000 * USDC
    assert vault.state.last_total_assets == 1_000 * USDC
    assert [r["kind"] for r in vault.get_history()] == ["deploy"]


def test_deposit_validation(vault):
    with pytest.raises(ValueError):
        vault.deposit(0)

    vault.strategy.shutdown("management")
    with pytest.raises(StrategyShutdown):
        vault.deposit(10 * USDC)


def test_withdraw_from_idle_does_not_touch_pool(paper_env, vault):
    vault.deposit(1_000 * USDC)
    staked = paper_env.staking.staked_balance_of("strategy")
    paper_env.fund(100 * USDC)

    result = vault.withdraw(50 * USDC)

    assert result == {"requested": 50 * USDC, "withdrawn": 50 * USDC, "freed": 0, "loss": 0}
    assert paper_env.staking.staked_balance_of("strategy") == staked
    assert paper_env.ledger.balance_of("USDC", "user") == 50 * USDC


def test_withdraw_frees_shortfall(paper_env, vault):
    vault.deposit(1_000 * USDC)

    result = vault.withdraw(400 * USDC)

    assert result["freed"] > 0
    assert result["withdrawn"] + result["loss"] == 400 * USDC
    assert result["loss"] < USDC
    assert paper_env.ledger.balance_of("USDC", "user") == result["withdrawn"]
    assert [r["kind"] for r in vault.get_history()] == ["deploy", "free"]
    assert vault.state.total_withdrawn == result["withdrawn"]


def test_withdraw_with_nothing_staked_books_full_loss(vault):
    result = vault.withdraw(10 * USDC)
    assert result["withdrawn"] == 0
    assert result["loss"] == 10 * USDC
    assert vault.state.total_loss == 10 * USDC


def test_report_recognises_profit(paper_env, vault):
    vault.deposit(1_000 * USDC)
    vault.report()

    paper_env.accrue_rewards(100 * CRV)
    report = vault.report()

    assert report["profit"] > 49 * USDC
    assert report["loss"] == 0
    assert report["harvest"]["rewards_claimed"] == 100 * CRV
    assert vault.state.last_total_assets == report["total_assets"]
    assert vault.state.report_count == 2

    stored = RedisCache.get_reports(vault.strategy.name())
    assert len(stored) == 2
    assert stored[0]["profit"] == report["profit"]
    assert RedisCache.get_latest_report(vault.strategy.name()) == report
    assert vault.get_reports()[0] == report


def test_report_recognises_loss(paper_env, vault):
    vault.deposit(1_000 * USDC)
    vault.report()

    paper_env.pool.set_rate(1, paper_env.pool.rates[1] // 2)
    report = vault.report()

    assert report["loss"] > 0
    assert report["profit"] == 0
    assert vault.state.total_loss >= report["loss"]


def test_tend_uses_idle_balance(paper_env, vault):
    vault.deposit(1_000 * USDC)
    assert vault.tend_trigger() is False

    paper_env.ledger.mint("CVX", "strategy", 100 * CRV)
    paper_env.fund(20 * USDC)
    assert vault.tend_trigger() is True

    result = vault.tend()
    assert result["swapped"] == 100 * CRV
    assert result["deployed"] == 20 * USDC
    assert vault.strategy.oracle.idle_balance() == 0


def test_status(vault):
    vault.deposit(10 * USDC)
    status = vault.get_status()

    assert status["vault_state"]["total_deposited"] == 10 * USDC
    assert status["strategy"]["name"] == "test_compounder"
    assert status["redis_available"] is False
    assert status["mode"] == "simulation"
    assert len(status["history"]) == 1
    assert RedisCache.get_status("test_compounder")["vault_state"]["total_deposited"] == 10 * USDC


def test_allocation_request_serialises():
    request = AllocationRequest(kind="free", amount=5, timestamp=1.0)
    assert request.to_dict() == {"kind": "free", "amount": 5, "timestamp": 1.0}
