import pytest

from strategies.errors import NoRewardsClaimed

USDC = 10**6
CRV = 10**18


class TestHarvestWithMocks:
    def test_claim_convert_and_restake(self, mock_compounder, mock_venues):
        mock_venues.primary_reward.balance_of.return_value = 500
        mock_venues.counter_token.balance_of.return_value = 40
        mock_venues.pool.provide.return_value = 30

        mock_compounder.harvest_and_report()

        mock_venues.staking.claim_rewards.assert_called_once_with()
        mock_venues.primary_swap.swap.assert_called_once_with(1, 0, 500, 0)
        mock_venues.pool.provide.assert_called_once_with([0, 40], 0)
        mock_venues.staking.deposit.assert_called_once_with(0, 30, True)

        outcome = mock_compounder.last_outcome
        assert outcome.rewards_claimed == 500
        assert outcome.converted == 40
        assert outcome.shares_staked == 30
        assert outcome.skipped is False

    def test_nothing_claimed_skips_swap_and_provision(self, mock_compounder, mock_venues):
        mock_venues.deposit_token.balance_of.return_value = 77

        total = mock_compounder.harvest_and_report()

        assert total == 77
        mock_venues.primary_swap.swap.assert_not_called()
        mock_venues.pool.provide.assert_not_called()
        mock_venues.staking.deposit.assert_not_called()

    def test_failed_claim_raises(self, mock_compounder, mock_venues):
        mock_venues.staking.claim_rewards.return_value = False
        with pytest.raises(NoRewardsClaimed):
            mock_compounder.harvest_and_report()
        mock_venues.primary_swap.swap.assert_not_called()
        assert mock_compounder.last_outcome is None

    def test_shut_down_strategy_only_values(self, mock_compounder, mock_venues):
        mock_venues.deposit_token.balance_of.return_value = 10
        mock_compounder.shutdown("management")

        total = mock_compounder.harvest_and_report()

        assert total == 10
        mock_venues.staking.claim_rewards.assert_not_called()
        assert mock_compounder.last_outcome.skipped is True


class TestHarvestOnPaper:
    def test_rewards_are_compounded_into_the_position(self, paper_env, funded_compounder):
        before = funded_compounder.total_assets()
        staked_before = paper_env.staking.staked_balance_of("strategy")
        paper_env.accrue_rewards(100 * CRV)

        total = funded_compounder.harvest_and_report()
        outcome = funded_compounder.last_outcome

        assert outcome.rewards_claimed == 100 * CRV
        assert outcome.converted > 0
        assert outcome.shares_staked > 0
        assert paper_env.staking.staked_balance_of("strategy") == staked_before + outcome.shares_staked
        # 100 CRV at 0.50 USDC, less swap and pool fees
        assert before + 49 * USDC < total < before + 50 * USDC
        assert total == funded_compounder.total_assets()

    def test_claim_failure_leaves_rewards_pending(self, paper_env, funded_compounder):
        paper_env.accrue_rewards(10 * CRV)
        paper_env.staking.fail_claims = True

        with pytest.raises(NoRewardsClaimed):
            funded_compounder.harvest_and_report()
        assert paper_env.staking.earned("strategy") == 10 * CRV

    def test_harvest_events_are_recorded(self, paper_env, funded_compounder):
        paper_env.accrue_rewards(CRV)
        funded_compounder.harvest_and_report()
        events = funded_compounder.events.get_events("harvest")
        assert len(events) == 1
        assert events[0]["rewards_claimed"] == CRV
