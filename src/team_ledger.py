# --- team_ledger.py ---
import logging
from dataclasses import dataclass, field
from typing import List

from auction_errors import LedgerError, InitializationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterEntry:
    player_id: str
    player_name: str
    role: str
    price: int


@dataclass
class TeamAccount:
    id: str
    name: str
    total_budget: int
    slot_capacity: int
    remaining_budget: int = None
    slots_remaining: int = None
    roster: List[RosterEntry] = field(default_factory=list)

    def __post_init__(self):
        if self.remaining_budget is None:
            self.remaining_budget = self.total_budget
        if self.slots_remaining is None:
            self.slots_remaining = self.slot_capacity

    @property
    def spent(self):
        return sum(entry.price for entry in self.roster)


@dataclass(frozen=True)
class TeamLedgerView:
    """Read-only projection of one team for dashboards and exports."""
    id: str
    name: str
    total_budget: int
    remaining_budget: int
    spent: int
    slot_capacity: int
    slots_remaining: int
    can_bid: bool
    roster: tuple

    def to_dict(self):
        return {
            "id": self.id, "name": self.name,
            "total_budget": self.total_budget, "remaining_budget": self.remaining_budget, "spent": self.spent,
            "slot_capacity": self.slot_capacity, "slots_remaining": self.slots_remaining,
            "can_bid": self.can_bid,
            "roster": [{"player_id": e.player_id, "player_name": e.player_name, "role": e.role, "price": e.price}
                       for e in self.roster],
        }


class TeamLedger:
    """Single source of truth for team budgets, slots and rosters.

    ``settle`` is the only code path that spends money or fills a slot, and it
    re-checks both preconditions before touching anything.
    """

    def __init__(self, teams=()):
        self._accounts = {}
        for team in teams:
            self.add_team(team)

    def add_team(self, team):
        if isinstance(team, dict):
            team = TeamAccount(id=str(team["id"]), name=team["name"],
                               total_budget=int(team["total_budget"]), slot_capacity=int(team["slot_capacity"]))
        if not team.name.strip():
            raise InitializationError(f"Team name cannot be empty (team id '{team.id}').")
        if team.id in self._accounts:
            raise InitializationError(f"Duplicate team id '{team.id}'.")
        if team.total_budget <= 0:
            raise InitializationError(f"Team '{team.name}' needs a positive budget, got {team.total_budget}.")
        if team.slot_capacity <= 0:
            raise InitializationError(f"Team '{team.name}' needs at least one slot, got {team.slot_capacity}.")
        self._accounts[team.id] = team
        return team

    def __contains__(self, team_id):
        return team_id in self._accounts

    def __iter__(self):
        return iter(self._accounts.values())

    def __len__(self):
        return len(self._accounts)

    def team_ids(self):
        return list(self._accounts)

    def account(self, team_id):
        try:
            return self._accounts[team_id]
        except KeyError:
            raise LedgerError(f"Team '{team_id}' not recognized.")

    def remaining_budget(self, team_id):
        return self.account(team_id).remaining_budget

    def slots_remaining(self, team_id):
        return self.account(team_id).slots_remaining

    def can_afford(self, team_id, amount):
        return amount <= self.account(team_id).remaining_budget

    def has_slot(self, team_id):
        return self.account(team_id).slots_remaining > 0

    def settle(self, team_id, player, price):
        account = self.account(team_id)
        if price < 0:
            raise LedgerError(f"Refusing to settle {player.name} at negative price {price}.")
        if not self.has_slot(team_id):
            raise LedgerError(f"{account.name} has no slot left for {player.name}.")
        if not self.can_afford(team_id, price):
            raise LedgerError(f"{account.name} has ₹{account.remaining_budget:,}, cannot pay ₹{price:,} for {player.name}.")

        account.remaining_budget -= price
        account.slots_remaining -= 1
        account.roster.append(RosterEntry(player.id, player.name, player.role.value, price))
        self.check_invariants(team_id)
        logger.info("%s settled %s for %s", account.name, player.name, price)
        return account

    def check_invariants(self, team_id=None):
        ids = [team_id] if team_id is not None else list(self._accounts)
        for tid in ids:
            a = self._accounts[tid]
            if a.remaining_budget + a.spent != a.total_budget:
                raise LedgerError(f"Budget conservation broken for {a.name}.")
            if a.slots_remaining + len(a.roster) != a.slot_capacity:
                raise LedgerError(f"Slot conservation broken for {a.name}.")
            if a.remaining_budget < 0 or a.slots_remaining < 0:
                raise LedgerError(f"Negative balance for {a.name}.")

    def view(self, team_id):
        a = self.account(team_id)
        return TeamLedgerView(a.id, a.name, a.total_budget, a.remaining_budget, a.spent,
                              a.slot_capacity, a.slots_remaining, a.slots_remaining > 0 and a.remaining_budget > 0,
                              tuple(a.roster))

    def views(self):
        return [self.view(tid) for tid in self._accounts]

    # --- snapshot support ---
    def to_dict(self):
        return {tid: {"id": a.id, "name": a.name, "total_budget": a.total_budget, "slot_capacity": a.slot_capacity,
                      "roster": [{"player_id": e.player_id, "player_name": e.player_name, "role": e.role, "price": e.price}
                                 for e in a.roster]}
                for tid, a in self._accounts.items()}

    @classmethod
    def from_dict(cls, data):
        """Rebuilds balances from rosters, so a snapshot can never carry an inconsistent budget."""
        ledger = cls()
        for team_data in data.values():
            roster = [RosterEntry(e["player_id"], e["player_name"], e["role"], int(e["price"])) for e in team_data.get("roster", [])]
            account = TeamAccount(id=str(team_data["id"]), name=team_data["name"],
                                  total_budget=int(team_data["total_budget"]), slot_capacity=int(team_data["slot_capacity"]))
            account.roster = roster
            account.remaining_budget = account.total_budget - sum(e.price for e in roster)
            account.slots_remaining = account.slot_capacity - len(roster)
            ledger.add_team(account)
            ledger.check_invariants(account.id)
        return ledger
