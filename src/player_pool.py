# --- player_pool.py ---
import logging
import random

from auction_errors import PoolError, InitializationError

logger = logging.getLogger(__name__)


def order_players(players, policy="role_priority", seed=None):
    """Returns a new list in auction order. Same input, policy and seed give the same order."""
    indexed = list(enumerate(players))
    if policy == "as_given":
        ordered = indexed
    elif policy == "role_priority":
        ordered = sorted(indexed, key=lambda ip: (ip[1].role.auction_priority, -ip[1].base_price, ip[0]))
    elif policy == "base_price_desc":
        ordered = sorted(indexed, key=lambda ip: (-ip[1].base_price, ip[0]))
    elif policy == "shuffled":
        ordered = list(indexed)
        random.Random(seed).shuffle(ordered)
    else:
        raise InitializationError(f"Unknown ordering policy '{policy}'.")
    return [player for _, player in ordered]


class PlayerPool:
    """Ordered queue of players awaiting the hammer.

    Entries before the cursor have been resolved; the entry at the cursor is the
    player currently (or next) on offer. Unsold players go to the back of the queue.
    """

    def __init__(self):
        self._queue = []
        self._cursor = 0
        self._resolved = False
        self._players_by_id = {}

    def initialize(self, players, ordering_policy="role_priority", seed=None):
        ids = [p.id for p in players]
        if len(ids) != len(set(ids)):
            raise InitializationError("Duplicate player ids in pool input.")
        self._queue = order_players(players, ordering_policy, seed)
        self._players_by_id = {p.id: p for p in self._queue}
        self._cursor = 0
        self._resolved = False
        logger.info("Player pool initialised with %d players (%s)", len(self._queue), ordering_policy)
        return list(self._queue)

    @property
    def cursor(self):
        return self._cursor

    def __len__(self):
        return len(self._queue) - self._cursor

    def get(self, player_id):
        try:
            return self._players_by_id[player_id]
        except KeyError:
            raise PoolError(f"Player '{player_id}' is not in this pool.")

    def all_players(self):
        return list(self._players_by_id.values())

    def peek_current(self):
        if self._cursor < len(self._queue):
            return self._queue[self._cursor]
        return None

    def remaining(self):
        return list(self._queue[self._cursor:])

    def upcoming(self):
        return list(self._queue[self._cursor + 1:])

    def mark_resolved(self):
        if self.peek_current() is None:
            raise PoolError("No current player to resolve; pool is exhausted.")
        self._resolved = True

    def advance(self):
        if not self._resolved:
            raise PoolError("advance() called before the current player was resolved.")
        self._cursor += 1
        self._resolved = False
        return self.peek_current()

    def reinsert_at_end(self, player):
        if player.id not in self._players_by_id:
            raise PoolError(f"Player '{player.id}' is not in this pool.")
        if any(p.id == player.id for p in self._queue[self._cursor + 1:]):
            raise PoolError(f"Player '{player.id}' is already queued.")
        self._queue.append(player)
        logger.info("Requeued %s at position %d", player.name, len(self._queue) - 1)

    def drain(self):
        """Removes and returns every unresolved entry; used by forced completion."""
        rest = self._queue[self._cursor:]
        self._cursor = len(self._queue)
        self._resolved = False
        return rest

    # --- snapshot support ---
    def to_dict(self):
        return {"queue": [p.id for p in self._queue], "cursor": self._cursor, "resolved": self._resolved}

    @classmethod
    def from_dict(cls, data, players_by_id):
        pool = cls()
        try:
            pool._queue = [players_by_id[pid] for pid in data["queue"]]
        except KeyError as e:
            raise InitializationError(f"Snapshot queue references unknown player {e}.")
        pool._players_by_id = dict(players_by_id)
        pool._cursor = int(data.get("cursor", 0))
        pool._resolved = bool(data.get("resolved", False))
        return pool
