"""Bribe manager state."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.assets import Asset, AssetInfo
from ..storage.backend import StorageBackend
from ..storage.maps import Bound, Item, Map, model_codec
from .buckets import BribeBuckets


@dataclass
class BribeConfig:
    """Accepted bribe assets and the flat fee charged per deposit."""

    whitelist: List[AssetInfo] = field(default_factory=list)
    allow_any: bool = False
    fee: Optional[Asset] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "whitelist": [str(a) for a in self.whitelist],
            "allow_any": self.allow_any,
            "fee": None if self.fee is None else self.fee.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BribeConfig":
        return cls(
            whitelist=[AssetInfo.from_str(a) for a in data["whitelist"]],
            allow_any=data["allow_any"],
            fee=None if data["fee"] is None else Asset.from_dict(data["fee"]),
        )


CONFIG = Item("bribe_config", model_codec(BribeConfig))

BUCKETS = model_codec(BribeBuckets)

# period -> rewards still to be claimed
BRIBE_AVAILABLE = Map("bribe_available", (int,), BUCKETS)

# period -> rewards frozen when the period is first claimed
BRIBE_TOTAL = Map("bribe_totals", (int,), BUCKETS)

# (creator, period) -> deposits
BRIBE_CREATOR = Map("bribe_creator", (str, int), BUCKETS)

# (user, period) -> claimed rewards; presence marks the period as claimed
BRIBE_CLAIMED = Map("bribe_claimed", (str, int), BUCKETS)


def fetch_last_claimed(store: StorageBackend, user: str, period: int) -> Optional[Tuple[int, BribeBuckets]]:
    """Latest claim of ``user`` at or before ``period``."""
    for key, buckets in BRIBE_CLAIMED.range(store, (user,), max=Bound.inclusive_of(period), descending=True):
        return key[1], buckets
    return None
