# --- auction_models.py ---
"""Value types shared by the auction core: roles, sale states, players and bids."""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AuctionStatus(Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"


class SaleState(Enum):
    PENDING = "pending"
    SOLD = "sold"
    UNSOLD = "unsold"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RoleTraits:
    label: str
    icon: str
    auction_priority: int  # lower goes under the hammer first
    price_factor: float    # multiplier on the generated base price
    can_open_batting: bool
    can_bowl: bool


class Role(Enum):
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALL_ROUNDER = "allRounder"
    WICKET_KEEPER = "wicketKeeper"

    @property
    def traits(self):
        return ROLE_TRAITS[self]

    @property
    def label(self):
        return ROLE_TRAITS[self].label

    @property
    def icon(self):
        return ROLE_TRAITS[self].icon

    @property
    def auction_priority(self):
        return ROLE_TRAITS[self].auction_priority

    @classmethod
    def parse(cls, value):
        """Accepts enum members, canonical values and the labels used in setup sheets."""
        if isinstance(value, Role):
            return value
        key = re.sub(r"[^a-z]", "", str(value or "").lower())
        role = _ROLE_ALIASES.get(key)
        if role is None:
            raise ValueError(f"Unknown player role: {value!r}")
        return role


ROLE_TRAITS = {
    Role.BATSMAN: RoleTraits("Batsman", "🏏", 1, 1.0, True, False),
    Role.BOWLER: RoleTraits("Bowler", "🎯", 2, 1.0, False, True),
    Role.ALL_ROUNDER: RoleTraits("All-Rounder", "⭐", 3, 1.1, True, True),
    Role.WICKET_KEEPER: RoleTraits("Wicket-Keeper", "🧤", 4, 0.9, True, False),
}

_ROLE_ALIASES = {
    "batsman": Role.BATSMAN, "batter": Role.BATSMAN, "bat": Role.BATSMAN,
    "bowler": Role.BOWLER, "bowl": Role.BOWLER,
    "allrounder": Role.ALL_ROUNDER, "all": Role.ALL_ROUNDER, "ar": Role.ALL_ROUNDER,
    "wicketkeeper": Role.WICKET_KEEPER, "keeper": Role.WICKET_KEEPER, "wk": Role.WICKET_KEEPER,
}


@dataclass
class Player:
    id: str
    name: str
    role: Role
    base_price: int
    stats: dict = field(default_factory=dict)
    sale_state: SaleState = SaleState.PENDING
    sold_price: Optional[int] = None
    owner_team_id: Optional[str] = None
    times_offered: int = 0

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "base_price": self.base_price,
            "stats": dict(self.stats),
            "sale_state": self.sale_state.value,
            "sold_price": self.sold_price,
            "owner_team_id": self.owner_team_id,
            "times_offered": self.times_offered,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            name=data["name"],
            role=Role.parse(data["role"]),
            base_price=int(data["base_price"]),
            stats=dict(data.get("stats") or {}),
            sale_state=SaleState(data.get("sale_state", SaleState.PENDING.value)),
            sold_price=data.get("sold_price"),
            owner_team_id=data.get("owner_team_id"),
            times_offered=int(data.get("times_offered", 0)),
        )


@dataclass(frozen=True)
class Bid:
    team_id: str
    player_id: str
    amount: int
    timestamp: float

    def to_dict(self):
        return {"team_id": self.team_id, "player_id": self.player_id,
                "amount": self.amount, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data):
        return cls(str(data["team_id"]), str(data["player_id"]), int(data["amount"]), float(data["timestamp"]))
