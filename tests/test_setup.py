"""
Setup input tests
=================

Setup CSV and Excel loaders, the template generator and the synthetic player pool.
"""

import random
from collections import Counter

import pytest
from openpyxl import Workbook

from auction_errors import InitializationError, SetupFileError
from auction_models import AuctionStatus, Role
from auction_setup import (
    generate_player_pool, generate_template_csv_content, load_setup_csv, load_setup_excel,
)


def _write(tmp_path, text, name="setup.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


# ═══════════════════════════════════════════════════════════════
# CSV
# ═══════════════════════════════════════════════════════════════

class TestSetupCsv:
    def test_template_loads(self, tmp_path):
        setup = load_setup_csv(_write(tmp_path, generate_template_csv_content()))
        assert setup.auction_name == "My New Auction"
        assert [t["name"] for t in setup.teams] == ["Team Alpha", "Team Bravo", "Team Charlie"]
        assert len(setup.players) == 6
        assert setup.players[2]["role"] == Role.WICKET_KEEPER.value
        assert setup.config.timer_duration_seconds == 15
        assert setup.config.ordering_policy == "role_priority"

    def test_engine_from_setup(self, tmp_path):
        engine = load_setup_csv(_write(tmp_path, generate_template_csv_content())).create_engine()
        assert engine.status is AuctionStatus.WAITING
        assert engine.start().role is Role.BATSMAN

    def test_config_and_comments(self, tmp_path):
        path = _write(tmp_path, "\n".join([
            "[CONFIG]",
            "AuctionName,Weekend Cup",
            "TimerDurationSeconds,30",
            "MaxUnsoldPasses,1",
            "# comment",
            "",
            "[TEAMS_INITIAL]",
            "Team name,Team budget,Slot capacity",
            "Falcons,5000,5",
            "[PLAYERS_INITIAL]",
            "Player name,Role,Base price",
            "# keepers last",
            "Sam,WK,100",
        ]))
        setup = load_setup_csv(path)
        assert setup.auction_name == "Weekend Cup"
        assert setup.config.timer_duration_seconds == 30
        assert setup.config.max_unsold_passes == 1
        assert setup.teams == [{"id": "T1", "name": "Falcons", "total_budget": 5000, "slot_capacity": 5}]
        assert setup.players[0]["role"] == "wicketKeeper"

    def test_wrong_team_header(self, tmp_path):
        path = _write(tmp_path, "[TEAMS_INITIAL]\nTeam name,Team starting money\nA,100\n")
        with pytest.raises(SetupFileError) as excinfo:
            load_setup_csv(path)
        assert excinfo.value.line_number == 2

    def test_bad_budget_reports_line(self, tmp_path):
        path = _write(tmp_path, "[TEAMS_INITIAL]\nTeam name,Team budget,Slot capacity\nA,lots,3\n")
        with pytest.raises(SetupFileError, match=r"\(L3\)"):
            load_setup_csv(path)

    def test_bad_role(self, tmp_path):
        path = _write(tmp_path, "[TEAMS_INITIAL]\nTeam name,Team budget,Slot capacity\nA,100,3\n"
                                "[PLAYERS_INITIAL]\nPlayer name,Role,Base price\nBob,Umpire,10\n")
        with pytest.raises(SetupFileError, match="Unknown role"):
            load_setup_csv(path)

    def test_no_players(self, tmp_path):
        path = _write(tmp_path, "[TEAMS_INITIAL]\nTeam name,Team budget,Slot capacity\nA,100,3\n")
        with pytest.raises(SetupFileError, match="No player data"):
            load_setup_csv(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SetupFileError):
            load_setup_csv(str(tmp_path / "missing.csv"))

    def test_setup_errors_are_initialization_errors(self):
        assert issubclass(SetupFileError, InitializationError)


# ═══════════════════════════════════════════════════════════════
# EXCEL
# ═══════════════════════════════════════════════════════════════

class TestSetupExcel:
    def _workbook(self, tmp_path, rows):
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(row)
        path = tmp_path / "setup.xlsx"
        wb.save(path)
        return str(path)

    def test_teams_blank_row_players(self, tmp_path):
        path = self._workbook(tmp_path, [
            ["Team name", "Team budget", "Slot capacity"],
            ["Falcons", 5000, 4],
            ["Hawks", 4500, 4],
            [None, None, None],
            ["Player name", "Role", "Base price"],
            ["Sam", "Batsman", 200],
            ["Lee", "All-Rounder", 250],
        ])
        setup = load_setup_excel(path, auction_name="Sheet Cup")
        assert [t["name"] for t in setup.teams] == ["Falcons", "Hawks"]
        assert setup.teams[1]["total_budget"] == 4500
        assert [(p["name"], p["role"], p["base_price"]) for p in setup.players] == [
            ("Sam", "batsman", 200), ("Lee", "allRounder", 250)]
        assert setup.auction_name == "Sheet Cup"

    def test_missing_cells(self, tmp_path):
        path = self._workbook(tmp_path, [
            ["Team name", "Team budget", "Slot capacity"],
            ["Falcons", None, 4],
            [None, None, None],
            ["Player name", "Role", "Base price"],
            ["Sam", "Batsman", 200],
        ])
        with pytest.raises(SetupFileError, match="missing values"):
            load_setup_excel(path)


# ═══════════════════════════════════════════════════════════════
# GENERATED POOL
# ═══════════════════════════════════════════════════════════════

class TestGeneratePlayerPool:
    def test_counts_and_rounding_go_to_batsmen(self):
        players = generate_player_pool(3, 11, 1_000_000, rng=random.Random(1))
        assert len(players) == 33
        counts = Counter(p["role"] for p in players)
        # 33 * (0.35, 0.35, 0.2, 0.1) floors to 11, 11, 6, 3; the two left over are batsmen
        assert counts == {"batsman": 13, "bowler": 11, "allRounder": 6, "wicketKeeper": 3}

    def test_base_prices_near_five_percent(self):
        players = generate_player_pool(2, 10, 1_000_000, rng=random.Random(2))
        for p in players:
            factor = Role.parse(p["role"]).traits.price_factor
            assert 0.8 * 50_000 * factor - 1 <= p["base_price"] <= 1.2 * 50_000 * factor + 1

    def test_reproducible(self):
        first = generate_player_pool(2, 5, 10_000, rng=random.Random(9))
        second = generate_player_pool(2, 5, 10_000, rng=random.Random(9))
        assert first == second

    def test_unique_ids(self):
        players = generate_player_pool(4, 11, 100_000, rng=random.Random(3))
        assert len({p["id"] for p in players}) == len(players)

    def test_custom_distribution(self):
        players = generate_player_pool(1, 4, 1000, role_distribution={"bowler": 0.5, "batsman": 0.5},
                                       rng=random.Random(4))
        assert Counter(p["role"] for p in players) == {"batsman": 2, "bowler": 2}

    def test_stats_follow_role(self):
        players = generate_player_pool(1, 10, 1000, rng=random.Random(5))
        for p in players:
            role = Role.parse(p["role"])
            assert ("economy" in p["stats"]) == role.traits.can_bowl

    def test_invalid_inputs(self):
        with pytest.raises(InitializationError):
            generate_player_pool(0, 11, 1000)
