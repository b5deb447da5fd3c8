"""Shared builders for synthetic MEEET simulation output"""

import pytest

from meeet_sim import DailyRecord, SimulationParameters


def _constant(value):
    return lambda i: value


def build_records(n_days, counts=None, active=None, price=None, reward_pool=None,
                  meetings=None, start_day=1):
    """
    Build a consecutive run of daily records

    Each keyword takes a function of the 0-based position returning the value
    for that day; tier-valued keywords return a (silver, gold, platinum) tuple.
    """
    counts = counts or _constant((0, 0, 0))
    active = active or _constant((0, 0, 0))
    price = price or _constant(0.01)
    reward_pool = reward_pool or _constant(700_000_000)
    meetings = meetings or _constant(0)

    records = []
    for i in range(n_days):
        silver, gold, platinum = counts(i)
        active_silver, active_gold, active_platinum = active(i)
        records.append(DailyRecord(
            day=start_day + i,
            silver_nfts=silver,
            gold_nfts=gold,
            platinum_nfts=platinum,
            active_silver_nfts=active_silver,
            active_gold_nfts=active_gold,
            active_platinum_nfts=active_platinum,
            token_price=price(i),
            reward_pool_tokens=reward_pool(i),
            meetings=meetings(i),
        ))
    return records


@pytest.fixture
def records_builder():
    return build_records


@pytest.fixture
def params():
    return SimulationParameters()


@pytest.fixture
def two_quarter_records():
    """182 days, 13 NFTs minted in Q1 and nothing new in Q2, constant price"""
    return build_records(
        182,
        counts=_constant((10, 2, 1)),
        active=_constant((5, 1, 1)),
        meetings=_constant(4),
    )


@pytest.fixture
def growing_records():
    """200 days (3 windows) with growing holders and a drifting price"""
    return build_records(
        200,
        counts=lambda i: (10 + i, 2 + i // 10, 1 + i // 50),
        active=lambda i: (5 + i // 2, 1 + i // 20, 1),
        price=lambda i: 0.01 * (1 + 0.002 * i),
        reward_pool=lambda i: 700_000_000 - 100_000 * i,
        meetings=lambda i: 3 + i % 5,
    )
