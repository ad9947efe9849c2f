import itertools

import pytest

from auction_config import AuctionConfig
from auction_engine import AuctionEngine


TEAMS = [
    {"id": "T1", "name": "Team Alpha", "total_budget": 1000, "slot_capacity": 3},
    {"id": "T2", "name": "Team Bravo", "total_budget": 1000, "slot_capacity": 3},
]

PLAYERS = [
    {"id": "P1", "name": "Arjun Mehta", "role": "batsman", "base_price": 100},
    {"id": "P2", "name": "Ravi Kumar", "role": "bowler", "base_price": 80},
    {"id": "P3", "name": "Karan Shah", "role": "allRounder", "base_price": 120},
    {"id": "P4", "name": "Dev Patel", "role": "wicketKeeper", "base_price": 60},
]


@pytest.fixture
def clock():
    counter = itertools.count(1)
    return lambda: 1_700_000_000.0 + next(counter)


@pytest.fixture
def make_engine(clock):
    """Engine factory; players stay in the order given unless a policy is passed."""
    def factory(teams=None, players=None, lobby=None, **config_overrides):
        config_overrides.setdefault("ordering_policy", "as_given")
        config = AuctionConfig(**config_overrides)
        return AuctionEngine([dict(t) for t in (teams or TEAMS)], [dict(p) for p in (players or PLAYERS)],
                             config, auction_name="Test League", clock=clock, lobby=lobby)
    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()


def expire(engine):
    """Ticks until the open player resolves and returns that LotResult."""
    for _ in range(engine.config.timer_duration_seconds):
        result = engine.tick()
        if result is not None:
            return result
    raise AssertionError("countdown never expired")
