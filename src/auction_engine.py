# --- auction_engine.py ---
import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional

from auction_config import AuctionConfig
from auction_errors import (
    AuctionError, InitializationError, LifecycleError, PoolError, LedgerError, LogFileError,
)
from auction_models import AuctionStatus, SaleState, Player, Bid
from auction_timer import Countdown
from bid_history import BidHistory
from bid_validator import BidRejection, validate, min_next_bid
from player_pool import PlayerPool
from team_ledger import TeamLedger

logger = logging.getLogger(__name__)

__all__ = [
    "AuctionEngine", "AuctionState", "BidResult", "LotResult",
    "AuctionError", "InitializationError", "LifecycleError", "PoolError", "LedgerError", "LogFileError",
]

SNAPSHOT_VERSION = 1


@dataclass
class AuctionState:
    status: AuctionStatus
    pool: PlayerPool
    countdown: Countdown
    history: BidHistory
    current_bid_amount: int = 0
    current_bidder_team_id: Optional[str] = None
    sold_players: List[Player] = field(default_factory=list)
    unsold_players: List[Player] = field(default_factory=list)

    @property
    def current_player(self):
        if self.status is not AuctionStatus.ACTIVE:
            return None
        return self.pool.peek_current()

    @property
    def current_player_index(self):
        return self.pool.cursor

    @property
    def timer_seconds_remaining(self):
        return self.countdown.remaining

    @property
    def remaining_players(self):
        return self.pool.remaining() if self.status is not AuctionStatus.COMPLETED else []


@dataclass(frozen=True)
class BidResult:
    ok: bool
    bid: Optional[Bid] = None
    reason: Optional[BidRejection] = None
    message: str = ""
    min_next_bid: Optional[int] = None

    def to_dict(self):
        return {"ok": self.ok, "bid": self.bid.to_dict() if self.bid else None,
                "reason": self.reason.value if self.reason else None,
                "message": self.message, "min_next_bid": self.min_next_bid}


@dataclass(frozen=True)
class LotResult:
    """How one offer of a player ended."""
    player: Player
    outcome: SaleState
    team_id: Optional[str] = None
    price: Optional[int] = None
    requeued: bool = False
    next_player: Optional[Player] = None
    status: AuctionStatus = AuctionStatus.ACTIVE

    def to_dict(self):
        return {"player_id": self.player.id, "player_name": self.player.name, "outcome": self.outcome.value,
                "team_id": self.team_id, "price": self.price, "requeued": self.requeued,
                "next_player_id": self.next_player.id if self.next_player else None,
                "status": self.status.value}


def _coerce_player(entry, position):
    if isinstance(entry, Player):
        return entry
    data = dict(entry)
    if "base_price" not in data and "basePrice" in data:
        data["base_price"] = data["basePrice"]
    data.setdefault("id", f"P{101 + position}")
    try:
        player = Player.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise InitializationError(f"Invalid player entry {position + 1}: {e}")
    if not player.name.strip():
        raise InitializationError(f"Player name cannot be empty (from input data for player {position + 1}).")
    if player.base_price < 0:
        raise InitializationError(f"Player '{player.name}' has a negative base price.")
    return player


def _coerce_team(entry, position):
    if not isinstance(entry, dict):
        return entry
    data = dict(entry)
    if "total_budget" not in data:
        data["total_budget"] = data.get("totalBudget", data.get("budget"))
    if "slot_capacity" not in data:
        data["slot_capacity"] = data.get("slotCapacity", data.get("slots"))
    data.setdefault("id", f"T{position + 1}")
    if data["total_budget"] is None or data["slot_capacity"] is None:
        raise InitializationError(f"Team entry {position + 1} needs a budget and a slot capacity.")
    return data


def _as_amount(amount):
    if isinstance(amount, bool):
        raise TypeError("Bid amount must be a number.")
    if isinstance(amount, int):
        return amount
    if isinstance(amount, str):
        text = amount.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            amount = float(text)
        except ValueError:
            raise ValueError(f"Bid amount must be a number, got {amount!r}.")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValueError(f"Bid amount must be a finite number, got {amount!r}.")
    as_int = int(amount)
    if as_int != amount:
        raise ValueError(f"Bid amount must be a whole number, got {amount!r}.")
    return as_int


class AuctionEngine:
    """Timed, budget-capped sequential bidding over a pool of players.

    waiting -> active (one player open at a time) -> completed. Every accepted bid
    resets the countdown; expiry sells to the standing bidder or passes the player.
    Validation failures come back as ``BidResult``; misuse raises ``LifecycleError``.
    """

    def __init__(self, teams, players, config=None, auction_name="Untitled Auction", clock=time.time, lobby=None):
        self.config = config or AuctionConfig()
        self.auction_name = auction_name
        self.clock = clock
        self.lobby = lobby

        self.ledger = TeamLedger(_coerce_team(t, i) for i, t in enumerate(teams))
        if not len(self.ledger):
            raise InitializationError("No teams provided for the new auction.")
        players = [_coerce_player(p, i) for i, p in enumerate(players)]
        if not players:
            raise InitializationError("No players provided for the new auction.")

        pool = PlayerPool()
        pool.initialize(players, self.config.ordering_policy, self.config.shuffle_seed)
        self.state = AuctionState(
            status=AuctionStatus.WAITING,
            pool=pool,
            countdown=Countdown(self.config.timer_duration_seconds),
            history=BidHistory(),
        )
        logger.info("Auction '%s' set up: %d teams, %d players", auction_name, len(self.ledger), len(players))

    # --- lifecycle ---
    @property
    def status(self):
        return self.state.status

    def start(self):
        if self.state.status is not AuctionStatus.WAITING:
            raise LifecycleError(f"Auction already {self.state.status.value}; start() is only valid while waiting.")
        if self.config.require_captains:
            if self.lobby is None or not self.lobby.all_captains_joined():
                raise LifecycleError("Every team captain must join before the auction can start.")
        self.state.status = AuctionStatus.ACTIVE
        self._open_current_lot()
        logger.info("Auction '%s' started", self.auction_name)
        return self.state.current_player

    def _open_current_lot(self):
        player = self.state.pool.peek_current()
        player.times_offered += 1
        player.sale_state = SaleState.PENDING
        self.state.current_bid_amount = player.base_price
        self.state.current_bidder_team_id = None
        self.state.countdown.reset()
        logger.info("Now on offer: %s (%s) at base ₹%s, pass %d",
                    player.name, player.role.label, f"{player.base_price:,}", player.times_offered)

    def _require_active(self, operation):
        if self.state.status is not AuctionStatus.ACTIVE:
            raise LifecycleError(f"{operation}() is only valid while the auction is active (status: {self.state.status.value}).")

    # --- bidding ---
    def validate_bid(self, team_id, amount, player_id=None):
        connected = None
        if self.config.require_captains and self.lobby is not None:
            connected = self.lobby.connected_team_ids()
        return validate(team_id, amount, self.state, self.ledger, self.config.bid_increment_rate,
                        player_id=player_id, connected_teams=connected)

    def place_bid(self, team_id, amount, player_id=None):
        if self.state.status is AuctionStatus.WAITING:
            raise LifecycleError("place_bid() called before the auction started.")
        amount = _as_amount(amount)
        check = self.validate_bid(team_id, amount, player_id)
        if not check.ok:
            logger.debug("Bid rejected (%s): %s", check.reason.value, check.message)
            return BidResult(False, None, check.reason, check.message, check.min_next_bid)

        player = self.state.current_player
        bid = self.state.history.record(Bid(team_id, player.id, amount, self.clock()))
        self.state.current_bid_amount = amount
        self.state.current_bidder_team_id = team_id
        self.state.countdown.reset()
        logger.debug("BID: %s for %s at %s", team_id, player.name, amount)
        return BidResult(True, bid, None, "", self.get_next_potential_bid_amount())

    # --- resolution ---
    def tick(self):
        """One wall-clock second. Paused unless active; returns a LotResult on the expiring tick."""
        if self.state.status is not AuctionStatus.ACTIVE:
            return None
        if self.state.countdown.tick():
            return self._resolve_current(SaleState.UNSOLD, allow_sale=True)
        return None

    def on_timer_expired(self, player_id=None):
        self._require_active("on_timer_expired")
        self._require_current(player_id)
        return self._resolve_current(SaleState.UNSOLD, allow_sale=True)

    def skip(self, player_id=None):
        self._require_active("skip")
        self._require_current(player_id)
        return self._resolve_current(SaleState.SKIPPED, allow_sale=False)

    def _require_current(self, player_id):
        current = self.state.current_player
        if player_id is not None and (current is None or current.id != player_id):
            raise LifecycleError(f"Player '{player_id}' is no longer on offer; it has already been resolved.")

    def _resolve_current(self, no_bid_state, allow_sale):
        state = self.state
        player = state.current_player
        bidder = state.current_bidder_team_id
        requeued = False

        if allow_sale and bidder is not None:
            price = state.current_bid_amount
            self.ledger.settle(bidder, player, price)  # raises before any mutation
            state.pool.mark_resolved()
            player.sale_state = SaleState.SOLD
            player.sold_price = price
            player.owner_team_id = bidder
            state.sold_players.append(player)
            outcome, team_id = SaleState.SOLD, bidder
            logger.info("SOLD: %s to %s for ₹%s", player.name, self.ledger.account(bidder).name, f"{price:,}")
        else:
            state.pool.mark_resolved()
            player.sale_state = no_bid_state
            outcome, team_id, price = no_bid_state, None, None
            if player.times_offered < self.config.max_unsold_passes:
                state.pool.reinsert_at_end(player)
                requeued = True
            else:
                state.unsold_players.append(player)
            logger.info("%s: %s (%s)", no_bid_state.value.upper(), player.name,
                        "requeued" if requeued else "no passes left")

        next_player = state.pool.advance()
        if next_player is not None:
            self._open_current_lot()
        else:
            self._finish()
        return LotResult(player, outcome, team_id, price, requeued, next_player, state.status)

    def _finish(self):
        self.state.status = AuctionStatus.COMPLETED
        self.state.current_bid_amount = 0
        self.state.current_bidder_team_id = None
        self.state.countdown.remaining = 0
        logger.info("Auction '%s' completed: %d sold, %d unsold", self.auction_name,
                    len(self.state.sold_players), len(self.state.unsold_players))

    def complete_auction(self):
        """Ends the auction now. Everything still queued, the open player included, goes unsold."""
        if self.state.status is AuctionStatus.COMPLETED:
            return []
        discarded = self.state.pool.drain()
        for player in discarded:
            player.sale_state = SaleState.UNSOLD
            self.state.unsold_players.append(player)
        logger.info("Auction '%s' force-completed; %d players left unsold", self.auction_name, len(discarded))
        self._finish()
        return discarded

    # --- read side ---
    def players_by_id(self):
        return {p.id: p for p in self.state.pool.all_players()}

    def team_names(self):
        return {a.id: a.name for a in self.ledger}

    def get_next_potential_bid_amount(self):
        if self.state.current_player is None:
            return None
        return min_next_bid(self.state.current_bid_amount, self.config.bid_increment_rate)

    def get_current_bidding_status_display(self):
        player = self.state.current_player
        if player is None:
            return {"item_display_name": "-- NONE SELECTED --", "status_text": self.state.status.value.upper(),
                    "timer": 0, "next_potential_bid": None}
        bidder = self.state.current_bidder_team_id
        if bidder:
            status_text = f"₹{self.state.current_bid_amount:,} by {self.ledger.account(bidder).name.upper()}"
        else:
            status_text = f"OPENING AT ₹{self.state.current_bid_amount:,}"
        return {
            "item_display_name": f"{player.role.icon} {player.name.upper()} (Base: ₹{player.base_price:,})",
            "status_text": status_text,
            "timer": self.state.timer_seconds_remaining,
            "next_potential_bid": self.get_next_potential_bid_amount(),
        }

    # --- snapshots ---
    def to_snapshot(self):
        s = self.state
        return {
            "version": SNAPSHOT_VERSION,
            "auction_name": self.auction_name,
            "config": self.config.to_dict(),
            "status": s.status.value,
            "teams": self.ledger.to_dict(),
            "players": [p.to_dict() for p in s.pool.all_players()],
            "pool": s.pool.to_dict(),
            "current_bid_amount": s.current_bid_amount,
            "current_bidder_team_id": s.current_bidder_team_id,
            "countdown": s.countdown.to_dict(),
            "history": s.history.to_list(),
            "sold_player_ids": [p.id for p in s.sold_players],
            "unsold_player_ids": [p.id for p in s.unsold_players],
        }

    @classmethod
    def from_snapshot(cls, snapshot, clock=time.time, lobby=None):
        if snapshot.get("version") != SNAPSHOT_VERSION:
            raise LogFileError(f"Unsupported snapshot version: {snapshot.get('version')!r}")
        engine = cls.__new__(cls)
        engine.config = AuctionConfig.from_dict(snapshot.get("config"))
        engine.auction_name = snapshot.get("auction_name", "Untitled Auction")
        engine.clock = clock
        engine.lobby = lobby
        engine.ledger = TeamLedger.from_dict(snapshot["teams"])

        players = {p.id: p for p in (Player.from_dict(d) for d in snapshot["players"])}
        try:
            sold = [players[pid] for pid in snapshot.get("sold_player_ids", [])]
            unsold = [players[pid] for pid in snapshot.get("unsold_player_ids", [])]
        except KeyError as e:
            raise LogFileError(f"Snapshot references unknown player {e}.")
        engine.state = AuctionState(
            status=AuctionStatus(snapshot["status"]),
            pool=PlayerPool.from_dict(snapshot["pool"], players),
            countdown=Countdown.from_dict(snapshot["countdown"]),
            history=BidHistory.from_list(snapshot.get("history", [])),
            current_bid_amount=int(snapshot.get("current_bid_amount", 0)),
            current_bidder_team_id=snapshot.get("current_bidder_team_id"),
            sold_players=sold,
            unsold_players=unsold,
        )
        return engine
