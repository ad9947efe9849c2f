# --- match_simulator.py ---
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from auction_errors import InitializationError, LifecycleError
from auction_models import Player, Role

logger = logging.getLogger(__name__)

BALLS_PER_OVER = 6
MAX_WICKETS = 10

# (kind, runs, probability); six takes whatever probability is left
BALL_OUTCOMES = (
    ("wide", 1, 0.04),
    ("no_ball", 1, 0.02),
    ("wicket", 0, 0.06),
    ("dot", 0, 0.35),
    ("single", 1, 0.30),
    ("double", 2, 0.12),
    ("triple", 3, 0.01),
    ("four", 4, 0.08),
)

COMMENTARY = {
    "wicket": ["BOWLED! The stumps go flying!", "CAUGHT! Taken cleanly in the deep.", "OUT LBW! Plumb in front.",
               "RUN OUT! Direct hit at the stumps.", "CAUGHT BEHIND! Edged and taken by the keeper."],
    "four": ["FOUR! Beautifully timed through the covers.", "FOUR! Swept fine to the boundary.",
             "FOUR! Cut away past point."],
    "six": ["SIX! That sails into the crowd.", "SIX! Launched over long-on.", "MAXIMUM! Cleared the rope with ease."],
    "run": ["Pushed into the gap for {runs}.", "Good running, {runs} taken.", "Worked away for {runs}."],
    "dot": ["Defended solidly, no run.", "Beaten outside off!", "Straight to the fielder, dot ball."],
    "wide": ["Wide ball, straying down the leg side.", "Too wide, the umpire signals it."],
    "no_ball": ["No ball! Overstepped.", "No ball called for height."],
}


class MatchStatus(Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"


def _overs_display(legal_balls):
    return f"{legal_balls // BALLS_PER_OVER}.{legal_balls % BALLS_PER_OVER}"


@dataclass
class BatterCard:
    player: Player
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    out: bool = False

    @property
    def strike_rate(self):
        return round(self.runs * 100 / self.balls, 2) if self.balls else 0.0

    def to_dict(self):
        return {"player_id": self.player.id, "name": self.player.name, "runs": self.runs, "balls": self.balls,
                "fours": self.fours, "sixes": self.sixes, "strike_rate": self.strike_rate, "out": self.out}


@dataclass
class BowlerCard:
    player: Player
    legal_balls: int = 0
    runs: int = 0
    wickets: int = 0

    @property
    def economy(self):
        return round(self.runs * BALLS_PER_OVER / self.legal_balls, 2) if self.legal_balls else 0.0

    def to_dict(self):
        return {"player_id": self.player.id, "name": self.player.name, "overs": _overs_display(self.legal_balls),
                "runs": self.runs, "wickets": self.wickets, "economy": self.economy}


@dataclass
class Innings:
    batting_team_id: str
    bowling_team_id: str
    batting_order: List[Player]
    bowling_attack: List[Player]
    target: Optional[int] = None
    runs: int = 0
    wickets: int = 0
    extras: int = 0
    legal_balls: int = 0
    batters: List[BatterCard] = field(default_factory=list)
    bowlers: List[BowlerCard] = field(default_factory=list)
    fall_of_wickets: List[dict] = field(default_factory=list)
    striker: int = 0
    non_striker: int = 1
    bowler: int = 0

    def __post_init__(self):
        if not self.batters:
            self.batters = [BatterCard(self.batting_order[0]), BatterCard(self.batting_order[1])]
        if not self.bowlers:
            self.bowlers = [BowlerCard(p) for p in self.bowling_attack]

    @property
    def max_wickets(self):
        return min(MAX_WICKETS, len(self.batting_order) - 1)

    @property
    def overs(self):
        return _overs_display(self.legal_balls)

    @property
    def run_rate(self):
        return round(self.runs * BALLS_PER_OVER / self.legal_balls, 2) if self.legal_balls else 0.0

    def required_run_rate(self, total_overs):
        if self.target is None:
            return None
        balls_left = total_overs * BALLS_PER_OVER - self.legal_balls
        needed = self.target - self.runs
        if balls_left <= 0 or needed <= 0:
            return 0.0
        return round(needed * BALLS_PER_OVER / balls_left, 2)

    def to_dict(self, total_overs):
        return {
            "batting_team_id": self.batting_team_id, "bowling_team_id": self.bowling_team_id,
            "runs": self.runs, "wickets": self.wickets, "extras": self.extras, "overs": self.overs,
            "run_rate": self.run_rate, "target": self.target,
            "required_run_rate": self.required_run_rate(total_overs),
            "batters": [b.to_dict() for b in self.batters], "bowlers": [b.to_dict() for b in self.bowlers],
            "fall_of_wickets": list(self.fall_of_wickets),
        }


@dataclass(frozen=True)
class BallResult:
    kind: str
    runs: int
    legal: bool
    commentary: str
    innings_number: int
    over: str


def _as_player(entry):
    return entry if isinstance(entry, Player) else Player.from_dict(entry)


class MatchSimulator:
    """Ball-by-ball simulation of a limited-overs match between two playing XIs.

    ``tick()`` plays one ball, so a ``Ticker`` can drive a match the same way it drives
    the auction countdown. Pass a seeded ``random.Random`` for a reproducible match.
    """

    def __init__(self, team_a, team_b, overs=20, rng=None):
        self.teams = {}
        for team in (team_a, team_b):
            players = [_as_player(p) for p in team["players"]]
            if len(players) < 2:
                raise InitializationError(f"Team '{team['name']}' needs at least two players to bat.")
            self.teams[team["id"]] = {"id": team["id"], "name": team["name"], "players": players}
        if len(self.teams) != 2:
            raise InitializationError("A match needs two different teams.")
        if overs < 1:
            raise InitializationError(f"Overs must be at least 1, got {overs}.")
        self.overs = overs
        self.rng = rng or random.Random()
        self.status = MatchStatus.SCHEDULED
        self.innings = []
        self.commentary = []
        self.result = None

    # --- setup ---
    def _other(self, team_id):
        return next(tid for tid in self.teams if tid != team_id)

    def _batting_order(self, team_id):
        players = self.teams[team_id]["players"]
        openers = [p for p in players if p.role in (Role.BATSMAN, Role.ALL_ROUNDER)][:2]
        if len(openers) < 2:
            openers = (openers + [p for p in players if p not in openers])[:2]
        return openers + [p for p in players if p not in openers]

    def _bowling_attack(self, team_id):
        players = self.teams[team_id]["players"]
        return [p for p in players if p.role.traits.can_bowl] or list(players)

    def _new_innings(self, batting_team_id, target=None):
        bowling_team_id = self._other(batting_team_id)
        innings = Innings(batting_team_id, bowling_team_id, self._batting_order(batting_team_id),
                          self._bowling_attack(bowling_team_id), target=target)
        self.innings.append(innings)
        self._comment(f"{self.teams[batting_team_id]['name']} innings: openers "
                      f"{innings.batters[0].player.name} and {innings.batters[1].player.name}. "
                      f"{innings.bowlers[0].player.name} to open the bowling.")
        return innings

    def start(self, toss_winner_id, decision):
        if self.status is not MatchStatus.SCHEDULED:
            raise LifecycleError("Match already started or completed.")
        if toss_winner_id not in self.teams:
            raise InitializationError(f"Toss winner '{toss_winner_id}' is not playing this match.")
        if decision not in ("bat", "bowl"):
            raise InitializationError(f"Toss decision must be 'bat' or 'bowl', got {decision!r}.")
        first_batting = toss_winner_id if decision == "bat" else self._other(toss_winner_id)
        self.status = MatchStatus.LIVE
        self._comment(f"{self.teams[toss_winner_id]['name']} won the toss and chose to {decision} first.")
        self._new_innings(first_batting)
        logger.info("Match started: %s vs %s, %d overs", *[t["name"] for t in self.teams.values()], self.overs)
        return self.current_innings

    @property
    def current_innings(self):
        return self.innings[-1] if self.innings else None

    # --- play ---
    def _draw_outcome(self):
        roll = self.rng.random()
        cumulative = 0.0
        for kind, runs, probability in BALL_OUTCOMES:
            cumulative += probability
            if roll < cumulative:
                return kind, runs
        return "six", 6

    def _comment(self, text, kind="regular"):
        over = self.current_innings.overs if self.innings else "0.0"
        self.commentary.append({"text": text, "type": kind, "over": over})

    def _commentary_for(self, kind, runs, striker, bowler):
        if kind in ("single", "double", "triple"):
            line = self.rng.choice(COMMENTARY["run"]).format(runs=runs)
        else:
            line = self.rng.choice(COMMENTARY[kind])
        return f"{bowler.player.name} to {striker.player.name}: {line}"

    def tick(self):
        if self.status is not MatchStatus.LIVE:
            return None
        return self.simulate_next_ball()

    def simulate_next_ball(self):
        if self.status is not MatchStatus.LIVE:
            raise LifecycleError(f"Match is {self.status.value}; no ball to bowl.")
        inn = self.current_innings
        kind, runs = self._draw_outcome()
        striker = inn.batters[inn.striker]
        bowler = inn.bowlers[inn.bowler]
        legal = kind not in ("wide", "no_ball")

        inn.runs += runs
        bowler.runs += runs
        if not legal:
            inn.extras += runs
        if kind != "wide":
            striker.balls += 1
        if legal:
            inn.legal_balls += 1
            bowler.legal_balls += 1
            striker.runs += runs
            if kind == "four":
                striker.fours += 1
            elif kind == "six":
                striker.sixes += 1

        text = self._commentary_for(kind, runs, striker, bowler)
        self._comment(text, "wicket" if kind == "wicket" else "boundary" if kind in ("four", "six") else "regular")

        if kind == "wicket":
            self._fall_of_wicket(inn, striker, bowler)
        elif legal and runs % 2 == 1:
            inn.striker, inn.non_striker = inn.non_striker, inn.striker

        over_complete = legal and inn.legal_balls % BALLS_PER_OVER == 0
        if over_complete:
            inn.striker, inn.non_striker = inn.non_striker, inn.striker
            inn.bowler = (inn.bowler + 1) % len(inn.bowlers)
            self._comment(f"End of over {inn.legal_balls // BALLS_PER_OVER}: "
                          f"{self.teams[inn.batting_team_id]['name']} {inn.runs}/{inn.wickets}")

        result = BallResult(kind, runs, legal, text, len(self.innings), inn.overs)
        self._check_innings_end(inn)
        return result

    def _fall_of_wicket(self, inn, striker, bowler):
        striker.out = True
        bowler.wickets += 1
        inn.wickets += 1
        inn.fall_of_wickets.append({"runs": inn.runs, "wickets": inn.wickets, "overs": inn.overs,
                                    "player_id": striker.player.id})
        next_index = len(inn.batters)
        if inn.wickets < inn.max_wickets and next_index < len(inn.batting_order):
            inn.batters.append(BatterCard(inn.batting_order[next_index]))
            inn.striker = next_index
            self._comment(f"{inn.batting_order[next_index].name} walks out to bat.")

    def _check_innings_end(self, inn):
        all_out = inn.wickets >= inn.max_wickets
        overs_done = inn.legal_balls >= self.overs * BALLS_PER_OVER
        chased = inn.target is not None and inn.runs >= inn.target
        if not (all_out or overs_done or chased):
            return
        if len(self.innings) == 1:
            self._comment(f"Innings complete: {self.teams[inn.batting_team_id]['name']} "
                          f"{inn.runs}/{inn.wickets} in {inn.overs} overs. Target {inn.runs + 1}.")
            self._new_innings(inn.bowling_team_id, target=inn.runs + 1)
        else:
            self._finish(inn)

    def _finish(self, inn):
        if inn.runs >= inn.target:
            self.result = {"winner": inn.batting_team_id, "margin": f"{inn.max_wickets - inn.wickets} wickets",
                           "method": "chased"}
        elif inn.runs < inn.target - 1:
            self.result = {"winner": inn.bowling_team_id, "margin": f"{inn.target - 1 - inn.runs} runs",
                           "method": "defended"}
        else:
            self.result = {"winner": None, "margin": None, "method": "tie"}
        self.status = MatchStatus.COMPLETED
        if self.result["winner"]:
            self._comment(f"Match complete! {self.teams[self.result['winner']]['name']} win by {self.result['margin']}!")
        else:
            self._comment("Match tied!")
        logger.info("Match completed: %s", self.result)

    def play_out(self, max_balls=10_000):
        """Simulates until the match completes."""
        balls = 0
        while self.status is MatchStatus.LIVE and balls < max_balls:
            self.simulate_next_ball()
            balls += 1
        return self.result

    def to_dict(self):
        return {
            "status": self.status.value,
            "overs": self.overs,
            "teams": {tid: {"id": t["id"], "name": t["name"]} for tid, t in self.teams.items()},
            "innings": [inn.to_dict(self.overs) for inn in self.innings],
            "result": self.result,
            "commentary": list(self.commentary),
        }
