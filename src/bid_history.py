# --- bid_history.py ---
from collections import OrderedDict

from auction_models import Bid


class BidHistory:
    """Append-only record of accepted bids. Entries are never edited or removed."""

    def __init__(self, bids=()):
        self._bids = list(bids)

    def record(self, bid):
        if not isinstance(bid, Bid):
            raise TypeError(f"Expected Bid, got {type(bid).__name__}")
        self._bids.append(bid)
        return bid

    def __len__(self):
        return len(self._bids)

    def __iter__(self):
        return iter(tuple(self._bids))

    def entries(self):
        return tuple(self._bids)

    def by_player(self):
        grouped = OrderedDict()
        for bid in self._bids:
            grouped.setdefault(bid.player_id, []).append(bid)
        return grouped

    def by_team(self):
        grouped = OrderedDict()
        for bid in self._bids:
            grouped.setdefault(bid.team_id, []).append(bid)
        return grouped

    def flattened(self, player_names=None, team_names=None):
        """Rows of (player, team, amount, timestamp) for exports; ids fall back when no name is known."""
        player_names = player_names or {}
        team_names = team_names or {}
        return [
            {
                "player_id": b.player_id,
                "player": player_names.get(b.player_id, b.player_id),
                "team_id": b.team_id,
                "team": team_names.get(b.team_id, b.team_id),
                "amount": b.amount,
                "timestamp": b.timestamp,
            }
            for b in self._bids
        ]

    def to_list(self):
        return [b.to_dict() for b in self._bids]

    @classmethod
    def from_list(cls, rows):
        return cls(Bid.from_dict(r) for r in rows)
