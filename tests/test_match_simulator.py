"""
Match simulator tests
=====================

Seeded matches are checked for scorecard consistency; scripted matches pin down
strike rotation, bowling changes and results.
"""

import random

import pytest

from auction_errors import InitializationError, LifecycleError
from auction_models import Role
from match_simulator import BALLS_PER_OVER, MatchSimulator, MatchStatus

XI_ROLES = ["bowler", "batsman", "batsman", "wicketKeeper", "allRounder", "batsman",
            "allRounder", "bowler", "batsman", "allRounder", "bowler"]


def team(team_id, name, roles=XI_ROLES):
    return {"id": team_id, "name": name,
            "players": [{"id": f"{team_id}-{n}", "name": f"{name} {n}", "role": role, "base_price": 100}
                        for n, role in enumerate(roles, 1)]}


class ScriptedMatch(MatchSimulator):
    """Bowls the given (kind, runs) outcomes in order, then dot balls."""

    def __init__(self, *args, script=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.script = list(script)

    def _draw_outcome(self):
        return self.script.pop(0) if self.script else ("dot", 0)


DOT, SINGLE, WIDE, WICKET = ("dot", 0), ("single", 1), ("wide", 1), ("wicket", 0)


# ═══════════════════════════════════════════════════════════════
# SEEDED MATCHES
# ═══════════════════════════════════════════════════════════════

class TestSeededMatches:
    @pytest.mark.parametrize("seed", [1, 7, 42, 2024])
    def test_scorecards_add_up(self, seed):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"), overs=5, rng=random.Random(seed))
        match.start("A", "bat")
        result = match.play_out()
        assert match.status is MatchStatus.COMPLETED
        assert result["method"] in ("chased", "defended", "tie")
        first, second = match.innings
        assert second.target == first.runs + 1
        for inn in match.innings:
            assert inn.runs == sum(b.runs for b in inn.batters) + inn.extras
            assert inn.legal_balls <= 5 * BALLS_PER_OVER
            assert inn.wickets <= inn.max_wickets
            assert sum(b.legal_balls for b in inn.bowlers) == inn.legal_balls
        if result["method"] == "chased":
            assert result["winner"] == "B" and second.runs >= second.target
        elif result["method"] == "defended":
            assert result["winner"] == "A" and second.runs < first.runs

    def test_reproducible(self):
        def play(seed):
            match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"), overs=3, rng=random.Random(seed))
            match.start("B", "bowl")
            match.play_out()
            return match.to_dict()
        assert play(5) == play(5)

    def test_openers_and_attack(self):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"), rng=random.Random(3))
        inn = match.start("A", "bat")
        assert all(b.player.role in (Role.BATSMAN, Role.ALL_ROUNDER) for b in inn.batters)
        assert all(b.player.role.traits.can_bowl for b in inn.bowlers)
        assert len(inn.bowlers) == 6

    def test_bowl_first_decision(self):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"), rng=random.Random(3))
        assert match.start("A", "bowl").batting_team_id == "B"

    def test_tick_drives_play(self):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"), overs=1, rng=random.Random(8))
        assert match.tick() is None
        match.start("A", "bat")
        while match.status is MatchStatus.LIVE:
            assert match.tick() is not None
        assert match.tick() is None


class TestMatchErrors:
    def test_ball_before_start(self):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"))
        with pytest.raises(LifecycleError):
            match.simulate_next_ball()

    def test_start_twice(self):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"))
        match.start("A", "bat")
        with pytest.raises(LifecycleError):
            match.start("A", "bat")

    @pytest.mark.parametrize("winner,decision", [("C", "bat"), ("A", "field")])
    def test_bad_toss(self, winner, decision):
        match = MatchSimulator(team("A", "Alpha"), team("B", "Bravo"))
        with pytest.raises(InitializationError):
            match.start(winner, decision)

    def test_team_too_small(self):
        with pytest.raises(InitializationError):
            MatchSimulator(team("A", "Alpha", ["batsman"]), team("B", "Bravo"))

    def test_same_team_twice(self):
        with pytest.raises(InitializationError):
            MatchSimulator(team("A", "Alpha"), team("A", "Alpha"))


# ═══════════════════════════════════════════════════════════════
# SCRIPTED BALLS
# ═══════════════════════════════════════════════════════════════

class TestScriptedBalls:
    def _start(self, script, overs=20, roles=XI_ROLES):
        match = ScriptedMatch(team("A", "Alpha", roles), team("B", "Bravo", roles), overs=overs,
                              rng=random.Random(0), script=script)
        match.start("A", "bat")
        return match

    def test_single_rotates_strike(self):
        match = self._start([SINGLE, DOT])
        inn = match.current_innings
        match.simulate_next_ball()
        assert (inn.striker, inn.non_striker) == (1, 0)
        match.simulate_next_ball()
        assert inn.striker == 1
        assert inn.batters[0].runs == 1

    def test_over_end_swaps_strike_and_bowler(self):
        match = self._start([SINGLE] + [DOT] * 5)
        inn = match.current_innings
        for _ in range(6):
            match.simulate_next_ball()
        assert inn.overs == "1.0"
        assert inn.striker == 0
        assert inn.bowler == 1
        assert inn.bowlers[0].legal_balls == 6

    def test_wide_is_not_a_legal_ball(self):
        match = self._start([WIDE] + [DOT] * 5)
        inn = match.current_innings
        for _ in range(6):
            match.simulate_next_ball()
        assert inn.overs == "0.5"
        assert inn.extras == 1
        assert inn.batters[0].balls == 5
        assert inn.bowler == 0

    def test_wicket_brings_next_batter(self):
        match = self._start([WICKET])
        inn = match.current_innings
        opener = inn.batters[0].player
        ball = match.simulate_next_ball()
        assert ball.kind == "wicket"
        assert inn.wickets == 1
        assert inn.fall_of_wickets[0]["player_id"] == opener.id
        assert len(inn.batters) == 3
        assert inn.striker == 2

    def test_all_out_ends_innings(self):
        match = self._start([WICKET, WICKET], roles=["batsman", "batsman", "bowler"])
        match.simulate_next_ball()
        match.simulate_next_ball()
        assert len(match.innings) == 2
        assert match.innings[0].wickets == 2
        assert match.current_innings.target == 1

    def test_chase(self):
        match = self._start([DOT] * 6 + [SINGLE], overs=1, roles=["batsman", "batsman", "bowler"])
        result = match.play_out()
        assert result == {"winner": "B", "margin": "2 wickets", "method": "chased"}

    def test_defended(self):
        match = self._start([SINGLE, SINGLE] + [DOT] * 10, overs=1)
        result = match.play_out()
        assert result == {"winner": "A", "margin": "2 runs", "method": "defended"}

    def test_tie(self):
        match = self._start([SINGLE] + [DOT] * 5 + [SINGLE] + [DOT] * 5, overs=1)
        result = match.play_out()
        assert result["method"] == "tie"
        assert result["winner"] is None
        assert match.to_dict()["status"] == "completed"
