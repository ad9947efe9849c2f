# --- auction_config.py ---
import logging
from dataclasses import dataclass, asdict, replace
from typing import Optional

from auction_errors import InitializationError

logger = logging.getLogger(__name__)

ORDERING_POLICIES = ("as_given", "role_priority", "base_price_desc", "shuffled")

# Keys recognised in the [CONFIG] section of a setup CSV
CONFIG_KEYS = {
    "TimerDurationSeconds": ("timer_duration_seconds", int),
    "BidIncrementRate": ("bid_increment_rate", float),
    "MaxUnsoldPasses": ("max_unsold_passes", int),
    "TickIntervalSeconds": ("tick_interval_seconds", float),
    "RequireCaptains": ("require_captains", lambda v: str(v).strip().lower() in ("1", "true", "yes", "y")),
    "OrderingPolicy": ("ordering_policy", lambda v: str(v).strip().lower()),
    "ShuffleSeed": ("shuffle_seed", int),
}


@dataclass(frozen=True)
class AuctionConfig:
    timer_duration_seconds: int = 15
    bid_increment_rate: float = 0.05
    max_unsold_passes: int = 2
    tick_interval_seconds: float = 1.0
    require_captains: bool = False
    ordering_policy: str = "role_priority"
    shuffle_seed: Optional[int] = None

    def __post_init__(self):
        if self.timer_duration_seconds < 1:
            raise InitializationError(f"timer_duration_seconds must be >= 1, got {self.timer_duration_seconds}")
        if not 0 <= self.bid_increment_rate < 1:
            raise InitializationError(f"bid_increment_rate must be in [0, 1), got {self.bid_increment_rate}")
        if self.max_unsold_passes < 1:
            raise InitializationError(f"max_unsold_passes must be >= 1, got {self.max_unsold_passes}")
        if self.tick_interval_seconds <= 0:
            raise InitializationError(f"tick_interval_seconds must be > 0, got {self.tick_interval_seconds}")
        if self.ordering_policy not in ORDERING_POLICIES:
            raise InitializationError(f"Unknown ordering policy '{self.ordering_policy}'. Use one of {', '.join(ORDERING_POLICIES)}.")

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        known = {k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_mapping(cls, mapping, base=None):
        """Builds a config from setup-file keys (``TimerDurationSeconds`` etc.)."""
        overrides = {}
        for key, raw_value in mapping.items():
            if key not in CONFIG_KEYS:
                if key != "AuctionName":
                    logger.warning("Ignoring unknown config key '%s'", key)
                continue
            field_name, convert = CONFIG_KEYS[key]
            try:
                overrides[field_name] = convert(raw_value)
            except (TypeError, ValueError):
                raise InitializationError(f"Invalid value for {key}: {raw_value!r}")
        return replace(base or cls(), **overrides)
