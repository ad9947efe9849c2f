# --- bid_validator.py ---
"""Pure bid checks. Nothing in here mutates auction or ledger state."""
import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from auction_models import AuctionStatus

DEFAULT_INCREMENT_RATE = 0.05


class BidRejection(Enum):
    AUCTION_NOT_ACTIVE = "AuctionNotActive"
    NOT_CURRENT_PLAYER = "NotCurrentPlayer"
    UNKNOWN_TEAM = "UnknownTeam"
    TEAM_NOT_CONNECTED = "TeamNotConnected"
    NO_SLOT_AVAILABLE = "NoSlotAvailable"
    SELF_OUTBID = "SelfOutbid"
    BID_TOO_LOW = "BidTooLow"
    INSUFFICIENT_BUDGET = "InsufficientBudget"


@dataclass(frozen=True)
class BidValidation:
    ok: bool
    reason: Optional[BidRejection] = None
    message: str = ""
    min_next_bid: Optional[int] = None

    def __bool__(self):
        return self.ok


def min_next_bid(current_bid, increment_rate=DEFAULT_INCREMENT_RATE):
    """Smallest acceptable raise over ``current_bid``: ceil(current * (1 + rate)), at least current + 1."""
    # str() first so 0.05 stays 0.05 and 100 * 1.05 lands on 105, not 105.00000000000001
    raised = Decimal(int(current_bid)) * (Decimal(1) + Decimal(str(increment_rate)))
    return max(math.ceil(raised), int(current_bid) + 1)


def validate(team_id, proposed_amount, auction_state, ledger, increment_rate=DEFAULT_INCREMENT_RATE,
             player_id=None, connected_teams=None):
    """Decides whether ``team_id`` may bid ``proposed_amount`` on the player currently on offer.

    ``player_id`` pins the bid to the player the bidder saw; a bid for anyone else is
    stale. ``connected_teams`` is only checked when given (captains-required auctions).
    """
    current_player = auction_state.current_player
    if auction_state.status is not AuctionStatus.ACTIVE or current_player is None:
        return BidValidation(False, BidRejection.AUCTION_NOT_ACTIVE, "No player is open for bidding.")
    if player_id is not None and player_id != current_player.id:
        return BidValidation(False, BidRejection.NOT_CURRENT_PLAYER,
                             f"Bidding for that player has closed; {current_player.name} is now on offer.")
    if team_id not in ledger:
        return BidValidation(False, BidRejection.UNKNOWN_TEAM, f"Team '{team_id}' not recognized.")
    name = ledger.account(team_id).name
    if connected_teams is not None and team_id not in connected_teams:
        return BidValidation(False, BidRejection.TEAM_NOT_CONNECTED, f"{name}'s captain has not joined the auction.")
    if not ledger.has_slot(team_id):
        return BidValidation(False, BidRejection.NO_SLOT_AVAILABLE, f"{name} has no roster slots left.")
    if team_id == auction_state.current_bidder_team_id:
        return BidValidation(False, BidRejection.SELF_OUTBID, f"{name} is already the highest bidder.")

    minimum = min_next_bid(auction_state.current_bid_amount, increment_rate)
    if proposed_amount < minimum:
        return BidValidation(False, BidRejection.BID_TOO_LOW,
                             f"Bid ₹{proposed_amount:,} is too low; minimum is ₹{minimum:,}.", minimum)
    if not ledger.can_afford(team_id, proposed_amount):
        return BidValidation(False, BidRejection.INSUFFICIENT_BUDGET,
                             f"{name} has ₹{ledger.remaining_budget(team_id):,}, needs ₹{proposed_amount:,}.", minimum)
    return BidValidation(True, None, "", minimum)
