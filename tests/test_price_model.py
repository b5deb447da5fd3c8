import pytest

from meeet_sim import DAYS_IN_QUARTER, InvalidInput, PriceModel, SimulationParameters, summarize


@pytest.fixture
def bullish_params():
    return SimulationParameters(market_sentiment=5, buyback_percentage=40, user_rewards_percentage=10)


def test_first_quarter_is_seeded_with_the_actual_price(growing_records, bullish_params):
    q1 = summarize(growing_records, bullish_params).quarterly[0]
    assert q1.modeled_token_price == q1.actual_token_price
    assert q1.modeled_token_price == growing_records[90].token_price


def test_quarter_chain_compounds_each_quarters_own_effects(growing_records, bullish_params):
    q1, q2, q3 = summarize(growing_records, bullish_params).quarterly
    assert q2.modeled_token_price == pytest.approx(
        q1.modeled_token_price
        * (1 + q2.buyback_price_effect + q2.distribution_price_effect + q2.sentiment_effect)
    )
    assert q3.modeled_token_price == pytest.approx(q2.modeled_token_price * (1 + q3.total_price_effect))


def test_quarter_chain_can_be_rebuilt_from_stored_coefficients(growing_records, bullish_params):
    quarters = summarize(growing_records, bullish_params).quarterly
    assert PriceModel().quarter_chain(quarters) == [q.modeled_token_price for q in quarters]


def test_quarter_price_seed_and_step():
    assert PriceModel.quarter_price(None, 0.02, 0.5, -0.1, 0.05) == 0.02
    assert PriceModel.quarter_price(0.01, 0.02, 0.1, -0.05, 0.05) == pytest.approx(0.011)


def test_daily_series_has_one_entry_per_day(growing_records, params):
    daily = summarize(growing_records, params).daily
    assert len(daily) == len(growing_records)
    assert [d.day for d in daily] == [r.day for r in growing_records]
    for d, r in zip(daily, growing_records):
        assert d.actual_token_price == r.token_price
        assert d.reward_pool == r.reward_pool_tokens
        assert d.circulating_supply == params.total_token_supply - r.reward_pool_tokens


def test_daily_model_rebases_to_actual_price_every_quarter(growing_records, bullish_params):
    daily = summarize(growing_records, bullish_params).daily
    for start in (0, 91, 182):
        assert daily[start].modeled_token_price == growing_records[start].token_price


def test_daily_model_compounds_within_a_quarter(growing_records, bullish_params):
    result = summarize(growing_records, bullish_params)
    q2 = result.quarterly[1]
    growth = (
        1
        + q2.buyback_price_effect / DAYS_IN_QUARTER
        + q2.distribution_price_effect / DAYS_IN_QUARTER
        + q2.sentiment_effect / DAYS_IN_QUARTER
    )
    base = growing_records[91].token_price
    for offset in (1, 30, 90):
        assert result.daily[91 + offset].modeled_token_price == pytest.approx(base * growth ** offset)


def test_flat_effects_keep_daily_model_at_quarter_open(records_builder):
    params = SimulationParameters(buyback_percentage=0, user_rewards_percentage=0, market_sentiment=0)
    records = records_builder(120, counts=lambda i: (i, 0, 0), price=lambda i: 0.01 + i * 0.001)
    daily = summarize(records, params).daily
    assert all(d.modeled_token_price == pytest.approx(records[0].token_price) for d in daily[:91])
    assert all(d.modeled_token_price == pytest.approx(records[91].token_price) for d in daily[91:])


def test_daily_series_rejects_mismatched_quarters(growing_records, params):
    quarters = summarize(growing_records, params).quarterly
    with pytest.raises(InvalidInput):
        PriceModel().daily_series(growing_records, quarters[:2], params.total_token_supply)
