# --- auction_setup.py ---
import argparse
import csv
import logging
import random
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from auction_config import AuctionConfig
from auction_engine import AuctionEngine
from auction_errors import SetupFileError, InitializationError
from auction_models import Role

logger = logging.getLogger(__name__)

LOG_SECTION_CONFIG = "[CONFIG]"
LOG_SECTION_TEAMS_INITIAL = "[TEAMS_INITIAL]"
LOG_SECTION_PLAYERS_INITIAL = "[PLAYERS_INITIAL]"
LOG_KEY_AUCTION_NAME = "AuctionName"
CSV_DELIMITER = ','

TEAM_HEADER = ("team name", "team budget", "slot capacity")
PLAYER_HEADER = ("player name", "role", "base price")

DEFAULT_ROLE_DISTRIBUTION = {
    Role.BATSMAN: 0.35,
    Role.BOWLER: 0.35,
    Role.ALL_ROUNDER: 0.2,
    Role.WICKET_KEEPER: 0.1,
}
BASE_PRICE_BUDGET_SHARE = 0.05


@dataclass
class AuctionSetup:
    auction_name: str
    config: AuctionConfig
    teams: List[dict] = field(default_factory=list)
    players: List[dict] = field(default_factory=list)

    def create_engine(self, lobby=None, **kwargs):
        return AuctionEngine(self.teams, self.players, self.config, self.auction_name, lobby=lobby, **kwargs)


def _parse_int(value, what, name, line_num):
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    # spreadsheets hand back whole numbers as floats
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is None or not number.is_integer():
        raise SetupFileError(f"Invalid {what} for '{name}': '{value}'", line_num)
    return int(number)


def _parse_role(value, name, line_num):
    try:
        return Role.parse(value)
    except ValueError:
        raise SetupFileError(f"Unknown role for '{name}': '{value}'", line_num)


def _check_header(row, expected, section, line_num):
    got = [h.strip().lower() for h in row]
    if tuple(got[:len(expected)]) != expected:
        raise SetupFileError(f"Invalid {section} header. Expected '{','.join(h.capitalize() for h in expected)}'. "
                             f"Got: {', '.join(row)}", line_num)


def load_setup_csv(file_path, default_auction_name="My New Auction"):
    """Reads a setup CSV with [CONFIG], [TEAMS_INITIAL] and [PLAYERS_INITIAL] sections."""
    config_values = {}
    teams, players = [], []
    section = None
    parsed_header = False
    try:
        with open(file_path, 'r', newline='', encoding='utf-8-sig') as f:
            for line_num, row in enumerate(csv.reader(f), 1):
                if not any(cell.strip() for cell in row):
                    continue
                first_cell = row[0].strip()
                if first_cell.lower() in (LOG_SECTION_CONFIG.lower(), LOG_SECTION_TEAMS_INITIAL.lower(),
                                          LOG_SECTION_PLAYERS_INITIAL.lower()):
                    section = first_cell.upper()
                    parsed_header = False
                    continue
                if first_cell.startswith('#'):
                    continue

                if section == LOG_SECTION_CONFIG:
                    if len(row) < 2:
                        logger.warning("Setup (L%d): config line without a value skipped: %s", line_num, row)
                        continue
                    config_values[first_cell] = row[1].strip()
                elif section == LOG_SECTION_TEAMS_INITIAL:
                    if not parsed_header:
                        _check_header(row, TEAM_HEADER, "team", line_num)
                        parsed_header = True
                        continue
                    if len(row) < 3:
                        raise SetupFileError("Malformed team data.", line_num)
                    if not first_cell:
                        raise SetupFileError("Team name empty.", line_num)
                    teams.append({
                        "id": f"T{len(teams) + 1}",
                        "name": first_cell,
                        "total_budget": _parse_int(row[1], "budget", first_cell, line_num),
                        "slot_capacity": _parse_int(row[2], "slot capacity", first_cell, line_num),
                    })
                elif section == LOG_SECTION_PLAYERS_INITIAL:
                    if not parsed_header:
                        _check_header(row, PLAYER_HEADER, "player", line_num)
                        parsed_header = True
                        continue
                    if len(row) < 3:
                        raise SetupFileError("Malformed player data.", line_num)
                    if not first_cell:
                        raise SetupFileError("Player name empty.", line_num)
                    players.append({
                        "id": f"P{101 + len(players)}",
                        "name": first_cell,
                        "role": _parse_role(row[1], first_cell, line_num).value,
                        "base_price": _parse_int(row[2], "base price", first_cell, line_num),
                    })
                else:
                    logger.warning("Setup (L%d): line outside any section skipped: %s", line_num, row)
    except FileNotFoundError:
        raise SetupFileError(f"File not found: {file_path}")

    if not teams:
        raise SetupFileError("No team data parsed.")
    if not players:
        raise SetupFileError("No player data parsed.")
    auction_name = config_values.get(LOG_KEY_AUCTION_NAME, "").strip() or default_auction_name
    config = AuctionConfig.from_mapping(config_values)
    logger.info("Loaded setup '%s' from %s: %d teams, %d players", auction_name, file_path, len(teams), len(players))
    return AuctionSetup(auction_name, config, teams, players)


def load_setup_excel(file_path, auction_name="My New Auction", config=None):
    """First sheet: teams block (with header row), one blank row, then a players block with its own header."""
    try:
        sheet = list(pd.read_excel(file_path, sheet_name=None).values())[0]
    except FileNotFoundError:
        raise SetupFileError(f"File not found: {file_path}")
    blank_rows = sheet[sheet.isnull().all(axis=1)].index
    if not len(blank_rows):
        raise SetupFileError("Expected a blank row between the teams and players blocks.")
    blank_idx = blank_rows[0]
    teams_df = sheet.iloc[:blank_idx, :3].copy()
    players_df = sheet.iloc[blank_idx + 2:, :3].copy()
    teams_df.columns = ["Team name", "Team budget", "Slot capacity"]
    players_df.columns = ["Player name", "Role", "Base price"]
    if teams_df.isnull().any().any() or players_df.isnull().any().any():
        raise SetupFileError("File contains missing values. Please fill all cells.")

    # spreadsheet rows are 1-based and the header takes row 1
    teams = []
    for idx, row in teams_df.iterrows():
        name = str(row["Team name"]).strip()
        teams.append({"id": f"T{len(teams) + 1}", "name": name,
                      "total_budget": _parse_int(row["Team budget"], "budget", name, idx + 2),
                      "slot_capacity": _parse_int(row["Slot capacity"], "slot capacity", name, idx + 2)})
    players = []
    for idx, row in players_df.iterrows():
        name = str(row["Player name"]).strip()
        players.append({"id": f"P{101 + len(players)}", "name": name,
                        "role": _parse_role(row["Role"], name, idx + 2).value,
                        "base_price": _parse_int(row["Base price"], "base price", name, idx + 2)})
    if not teams or not players:
        raise SetupFileError("Both a teams block and a players block are required.")
    logger.info("Loaded Excel setup from %s: %d teams, %d players", file_path, len(teams), len(players))
    return AuctionSetup(auction_name, config or AuctionConfig(), teams, players)


def _generated_stats(role, rng):
    stats = {"matches": rng.randint(5, 120)}
    if role.traits.can_open_batting:
        stats["runs"] = rng.randint(50, 4000)
        stats["battingAverage"] = round(rng.uniform(12, 48), 1)
        stats["strikeRate"] = round(rng.uniform(105, 175), 1)
    if role.traits.can_bowl:
        stats["wickets"] = rng.randint(3, 160)
        stats["economy"] = round(rng.uniform(6.0, 9.5), 1)
    if role is Role.WICKET_KEEPER:
        stats["dismissals"] = rng.randint(2, 120)
    return stats


def generate_player_pool(team_count, players_per_team, budget_per_team, role_distribution=None, rng=None):
    """Builds ``team_count * players_per_team`` synthetic players.

    Base prices sit around 5% of a team budget, scaled by the role's price factor and a
    random 0.8-1.2 adjustment. Players lost to rounding the role shares become batsmen.
    """
    if team_count <= 0 or players_per_team <= 0 or budget_per_team <= 0:
        raise InitializationError("Team count, players per team and budget must all be positive.")
    rng = rng or random.Random()
    distribution = {Role.parse(k): v for k, v in (role_distribution or DEFAULT_ROLE_DISTRIBUTION).items()}
    total = team_count * players_per_team
    counts = {role: int(total * distribution.get(role, 0)) for role in Role}
    counts[Role.BATSMAN] += total - sum(counts.values())

    base_price = budget_per_team * BASE_PRICE_BUDGET_SHARE
    players = []
    for role in Role:
        for n in range(1, counts[role] + 1):
            price = round(base_price * role.traits.price_factor * (0.8 + rng.random() * 0.4))
            players.append({
                "id": f"P{101 + len(players)}",
                "name": f"{role.label} {n}",
                "role": role.value,
                "base_price": max(price, 1),
                "stats": _generated_stats(role, rng),
            })
    logger.info("Generated %d players for %d teams", len(players), team_count)
    return players


def generate_template_csv_content():
    """Template setup CSV that ``load_setup_csv`` reads as-is."""
    return f"""{LOG_SECTION_CONFIG}
{LOG_KEY_AUCTION_NAME},My New Auction
TimerDurationSeconds,15
BidIncrementRate,0.05
MaxUnsoldPasses,2
OrderingPolicy,role_priority
# Each config should be on a new line: Key{CSV_DELIMITER}Value

{LOG_SECTION_TEAMS_INITIAL}
Team name,Team budget,Slot capacity
# ^ This line above is the REQUIRED header for the section. Do not change its format.
# Add your team data below, one team per line:
Team Alpha,10000000,11
Team Bravo,10000000,11
Team Charlie,10000000,11

{LOG_SECTION_PLAYERS_INITIAL}
Player name,Role,Base price
# ^ This line above is the REQUIRED header for the section. Do not change its format.
# Role is one of: Batsman, Bowler, All-Rounder, Wicket-Keeper
Player One,Batsman,500000
Player Two,Bowler,450000
Player Three,Wicket-Keeper,400000
Player Four,Batsman,550000
Player Five,Bowler,480000
Player Six,All-Rounder,600000
"""


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Auction setup utility. Can generate a template CSV for auction setup."
    )
    parser.add_argument("--generate-template", metavar="FILENAME", nargs="?", const="auction_setup_template.csv",
                        help="Write a template setup CSV (default: auction_setup_template.csv).")
    args = parser.parse_args()
    if args.generate_template:
        with open(args.generate_template, "w", newline="", encoding="utf-8") as f:
            f.write(generate_template_csv_content())
        print(f"Template CSV written to {args.generate_template}")
    else:
        parser.print_help()
