import math

import pytest

from meeet_sim import (
    DAYS_IN_QUARTER,
    AggregatorState,
    InvalidInput,
    QuarterAggregator,
    SimulationParameters,
    partition_windows,
    summarize,
)


class TestPartitionWindows:

    def test_exact_multiple_gives_full_windows(self):
        assert partition_windows(182) == [(0, 90), (91, 181)]

    def test_last_window_holds_the_remainder(self):
        windows = partition_windows(200)
        assert len(windows) == 3
        start, end = windows[-1]
        assert end - start + 1 == 200 % DAYS_IN_QUARTER

    def test_short_horizon_is_a_single_window(self):
        assert partition_windows(1) == [(0, 0)]
        assert partition_windows(90) == [(0, 89)]

    @pytest.mark.parametrize("n_days", [1, 91, 92, 364, 730])
    def test_windows_cover_every_position_once(self, n_days):
        windows = partition_windows(n_days)
        assert len(windows) == math.ceil(n_days / DAYS_IN_QUARTER)
        covered = [pos for start, end in windows for pos in range(start, end + 1)]
        assert covered == list(range(n_days))

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            partition_windows(10, window_size=0)


def test_quarter_count_and_day_ranges(growing_records, params):
    quarters = summarize(growing_records, params).quarterly
    assert [q.quarter for q in quarters] == [1, 2, 3]
    assert [(q.day_start, q.day_end) for q in quarters] == [(1, 91), (92, 182), (183, 200)]


def test_first_window_issuance_has_no_baseline(two_quarter_records, params):
    q1 = summarize(two_quarter_records, params).quarterly[0]
    assert (q1.new_silver, q1.new_gold, q1.new_platinum) == (10, 2, 1)
    assert q1.nft_revenue == 10 * 100 + 2 * 1000 + 1 * 10000


def test_revenue_uses_configured_tier_prices(two_quarter_records):
    params = SimulationParameters(silver_price=50, gold_price=700, platinum_price=9000)
    q1 = summarize(two_quarter_records, params).quarterly[0]
    assert (q1.silver_revenue, q1.gold_revenue, q1.platinum_revenue) == (500, 1400, 9000)
    assert q1.nft_revenue == 500 + 1400 + 9000


def test_issuance_is_measured_from_the_day_before_the_window(records_builder, params):
    # Silver jumps on the first day of Q2; the baseline must be Q1's last day
    records = records_builder(
        182,
        counts=lambda i: (10, 2, 1) if i < DAYS_IN_QUARTER else (15, 2, 1),
    )
    q2 = summarize(records, params).quarterly[1]
    assert (q2.new_silver, q2.new_gold, q2.new_platinum) == (5, 0, 0)
    assert q2.nft_revenue == 500
    assert q2.silver_revenue == 500


def test_zero_revenue_window(two_quarter_records):
    params = SimulationParameters(buyback_percentage=20, user_rewards_percentage=30)
    assert params.company_profit_percentage == 50

    q2 = summarize(two_quarter_records, params).quarterly[1]
    assert q2.nft_revenue == 0
    assert q2.buyback_amount == 0
    assert q2.user_rewards_amount == 0
    assert q2.gross_profit_amount == 0
    assert q2.net_profit_margin == 0
    assert not math.isnan(q2.net_profit_margin)


@pytest.mark.parametrize("buyback, rewards", [(20, 30), (33.3, 33.3), (0, 0), (100, 0), (12.5, 87.5)])
def test_revenue_split_sums_to_revenue(growing_records, buyback, rewards):
    params = SimulationParameters(buyback_percentage=buyback, user_rewards_percentage=rewards)
    for q in summarize(growing_records, params).quarterly:
        total = q.buyback_amount + q.user_rewards_amount + q.gross_profit_amount
        assert total == pytest.approx(q.nft_revenue, rel=1e-12, abs=1e-9)


def test_costs_and_profit(records_builder):
    params = SimulationParameters(
        operational_costs_base=50_000, operational_costs_per_user=2, marketing_percentage=10
    )
    # Active users: 10 silver on the first day, 20 silver and 4 gold on the last day of Q1
    def active(i):
        if i == 0:
            return (10, 0, 0)
        if i == DAYS_IN_QUARTER - 1:
            return (20, 4, 0)
        return (1000, 1000, 1000)

    records = records_builder(DAYS_IN_QUARTER, counts=lambda i: (100, 0, 0), active=active)
    q1 = summarize(records, params).quarterly[0]

    revenue = 100 * 100
    assert q1.nft_revenue == revenue
    assert q1.marketing_costs == pytest.approx(revenue * 0.10)
    avg_active = (10 + 20) / 2 + (0 + 4) / 2
    assert q1.operational_costs == pytest.approx(50_000 + avg_active * 2 * DAYS_IN_QUARTER)
    expected_net = q1.gross_profit_amount - q1.marketing_costs - q1.operational_costs
    assert q1.net_profit == pytest.approx(expected_net)
    assert q1.net_profit_margin == pytest.approx(expected_net / revenue * 100)


def test_short_last_window_uses_its_own_day_count(growing_records):
    params = SimulationParameters(operational_costs_base=0, operational_costs_per_user=1)
    q3 = summarize(growing_records, params).quarterly[2]
    start, end = growing_records[182], growing_records[199]
    avg_active = sum((s + e) / 2 for s, e in zip(start.active_counts(), end.active_counts()))
    assert q3.operational_costs == pytest.approx(avg_active * 18)


def test_token_metrics(two_quarter_records, params):
    q1 = summarize(two_quarter_records, params).quarterly[0]
    assert q1.actual_token_price == 0.01
    assert q1.tokens_bought_back == pytest.approx(2600 / 0.01)
    assert q1.tokens_distributed == pytest.approx(3900 / 0.01)
    assert q1.circulating_supply == 300_000_000
    assert q1.market_cap == pytest.approx(300_000_000 * 0.01)
    assert q1.reward_pool == 700_000_000


def test_liquidity_accumulates_half_of_all_buyback(records_builder, params):
    records = records_builder(
        182,
        counts=lambda i: (10, 2, 1) if i < DAYS_IN_QUARTER else (15, 2, 1),
    )
    q1, q2 = summarize(records, params).quarterly
    assert q1.buyback_amount == pytest.approx(2600)
    assert q2.buyback_amount == pytest.approx(100)
    assert q1.estimated_liquidity == pytest.approx(50_000 + 0.5 * 2600)
    assert q2.estimated_liquidity == pytest.approx(50_000 + 0.5 * 2700)


def test_price_effect_coefficients(two_quarter_records):
    params = SimulationParameters(market_sentiment=-4)
    q1 = summarize(two_quarter_records, params).quarterly[0]

    liquidity = 50_000 + 0.5 * 2600
    assert q1.buyback_price_effect == pytest.approx(2600 / liquidity * 0.15)
    assert q1.distribution_price_effect == pytest.approx(-(390_000 / 300_000_000) * 0.08)
    assert q1.sentiment_effect == pytest.approx(-0.04)
    assert q1.total_price_effect == pytest.approx(
        q1.buyback_price_effect + q1.distribution_price_effect - 0.04
    )


def test_activity_totals(two_quarter_records, params):
    q1 = summarize(two_quarter_records, params).quarterly[0]
    assert q1.meetings == 4 * DAYS_IN_QUARTER
    assert q1.meetings_per_day == pytest.approx(4)
    assert q1.total_nfts == 13
    assert q1.active_total_nfts == 7


def test_process_window_threads_the_accumulator(two_quarter_records, params):
    aggregator = QuarterAggregator(params)
    q1, state = aggregator.process_window(two_quarter_records, 0, 0, 90, AggregatorState())

    assert state.cumulative_buyback == pytest.approx(q1.buyback_amount)
    assert state.previous_tier_counts == (10, 2, 1)
    assert state.previous_modeled_price == q1.modeled_token_price

    q2, state = aggregator.process_window(two_quarter_records, 1, 91, 181, state)
    assert q2.quarter == 2
    assert q2.nft_revenue == 0
    assert state.cumulative_buyback == pytest.approx(q1.buyback_amount)


def test_aggregate_rejects_empty_input(params):
    with pytest.raises(InvalidInput):
        QuarterAggregator(params).aggregate([])


def test_zero_circulating_supply_at_window_end_is_rejected(records_builder):
    params = SimulationParameters(total_token_supply=1_000_000, initial_reward_pool=500_000)
    records = records_builder(
        DAYS_IN_QUARTER,
        counts=lambda i: (1, 0, 0),
        reward_pool=lambda i: 500_000 if i < DAYS_IN_QUARTER - 1 else 1_000_000,
    )
    with pytest.raises(InvalidInput, match="Circulating supply"):
        summarize(records, params)


def test_zero_liquidity_is_rejected(records_builder):
    params = SimulationParameters(initial_liquidity=0)
    records = records_builder(10)  # no NFTs, so no buyback either
    with pytest.raises(InvalidInput, match="liquidity"):
        summarize(records, params)


def test_zero_initial_liquidity_with_buyback_is_usable(two_quarter_records):
    params = SimulationParameters(initial_liquidity=0)
    q1 = summarize(two_quarter_records, params).quarterly[0]
    assert q1.estimated_liquidity == pytest.approx(1300)
    assert q1.buyback_price_effect == pytest.approx(2600 / 1300 * 0.15)
