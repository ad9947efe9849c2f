# --- auction_export.py ---
import io
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from auction_models import AuctionStatus


@dataclass(frozen=True)
class AuctionSummary:
    """Read-only picture of an auction for dashboards, leaderboards and downloads."""
    auction_name: str
    status: str
    current_player: Optional[dict]
    current_bid_amount: Optional[int]
    current_bidder_team_id: Optional[str]
    min_next_bid: Optional[int]
    timer_seconds_remaining: int
    teams: List[dict] = field(default_factory=list)
    sold_players: List[dict] = field(default_factory=list)
    unsold_players: List[dict] = field(default_factory=list)
    remaining_players: List[dict] = field(default_factory=list)
    history: List[dict] = field(default_factory=list)
    up_next: List[dict] = field(default_factory=list)
    bidding_display: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "auction_name": self.auction_name,
            "status": self.status,
            "current_player": self.current_player,
            "current_bid_amount": self.current_bid_amount,
            "current_bidder_team_id": self.current_bidder_team_id,
            "min_next_bid": self.min_next_bid,
            "timer_seconds_remaining": self.timer_seconds_remaining,
            "teams": self.teams,
            "sold_players": self.sold_players,
            "unsold_players": self.unsold_players,
            "remaining_players": self.remaining_players,
            "history": self.history,
            "up_next": self.up_next,
            "bidding_display": self.bidding_display,
        }

    def leaderboard(self):
        """Teams ranked by players bought, then by money spent."""
        return sorted(self.teams, key=lambda t: (-len(t["roster"]), -t["spent"], t["name"]))


def build_summary(engine):
    state = engine.state
    current = state.current_player
    return AuctionSummary(
        auction_name=engine.auction_name,
        status=state.status.value,
        current_player=current.to_dict() if current else None,
        current_bid_amount=state.current_bid_amount if current else None,
        current_bidder_team_id=state.current_bidder_team_id,
        min_next_bid=engine.get_next_potential_bid_amount(),
        timer_seconds_remaining=state.timer_seconds_remaining,
        teams=[v.to_dict() for v in engine.ledger.views()],
        sold_players=[p.to_dict() for p in state.sold_players],
        unsold_players=[p.to_dict() for p in state.unsold_players],
        remaining_players=[p.to_dict() for p in state.remaining_players],
        history=state.history.flattened(
            {pid: p.name for pid, p in engine.players_by_id().items()}, engine.team_names()),
        up_next=[p.to_dict() for p in state.pool.upcoming()] if state.status is AuctionStatus.ACTIVE else [],
        bidding_display=engine.get_current_bidding_status_display(),
    )


def export_json(summary, indent=2):
    return json.dumps(summary.to_dict(), indent=indent, ensure_ascii=False)


def _write_rows(ws, start_row, header, rows):
    for col, title in enumerate(header, start=1):
        cell = ws.cell(row=start_row, column=col, value=title)
        cell.font = Font(bold=True)
    for r, row in enumerate(rows, start=start_row + 1):
        for col, value in enumerate(row, start=1):
            ws.cell(row=r, column=col, value=value)
    return start_row + len(rows) + 1


def _autosize(ws):
    for col_cells in ws.columns:
        width = max(len(str(c.value)) if c.value is not None else 0 for c in col_cells)
        ws.column_dimensions[get_column_letter(col_cells[0].column)].width = min(max(width + 2, 10), 50)


def export_excel(summary, target=None):
    """Writes a workbook with Summary, Teams, Players and BidLog sheets.

    ``target`` may be a path or a binary file object; with no target the bytes are returned.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"
    ws["A1"] = "Auction Name"
    ws["B1"] = summary.auction_name
    ws["A2"] = "Exported"
    ws["B2"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    ws["A3"] = "Status"
    ws["B3"] = summary.status
    ws["A4"] = "Players Sold"
    ws["B4"] = len(summary.sold_players)
    ws["A5"] = "Players Unsold"
    ws["B5"] = len(summary.unsold_players)
    for cell in ("A1", "A2", "A3", "A4", "A5"):
        ws[cell].font = Font(bold=True)
    _write_rows(ws, 7, ["Rank", "Team Name", "Players", "Spent", "Remaining Budget"],
                [[i, t["name"], len(t["roster"]), t["spent"], t["remaining_budget"]]
                 for i, t in enumerate(summary.leaderboard(), start=1)])
    _autosize(ws)

    ws = wb.create_sheet("Teams")
    rows = []
    for t in summary.teams:
        for entry in t["roster"] or [None]:
            rows.append([t["id"], t["name"], t["total_budget"], t["remaining_budget"], t["slots_remaining"],
                         entry["player_name"] if entry else "", entry["role"] if entry else "",
                         entry["price"] if entry else ""])
    _write_rows(ws, 1, ["TeamID", "Team Name", "Total Budget", "Remaining Budget", "Slots Left",
                        "Player", "Role", "Price"], rows)
    _autosize(ws)

    ws = wb.create_sheet("Players")
    players = summary.sold_players + summary.unsold_players + summary.remaining_players
    _write_rows(ws, 1, ["PlayerID", "Player Name", "Role", "Base Price", "State", "Sold Price", "Team ID"],
                [[p["id"], p["name"], p["role"], p["base_price"], p["sale_state"], p["sold_price"], p["owner_team_id"]]
                 for p in players])
    _autosize(ws)

    ws = wb.create_sheet("BidLog")
    _write_rows(ws, 1, ["Timestamp", "PlayerID", "Player Name", "TeamID", "Team Name", "Bid Amount"],
                [[datetime.fromtimestamp(b["timestamp"]).strftime("%Y-%m-%d %H:%M:%S"), b["player_id"], b["player"],
                  b["team_id"], b["team"], b["amount"]] for b in summary.history])
    _autosize(ws)

    if target is None:
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
    wb.save(target)
    return target
