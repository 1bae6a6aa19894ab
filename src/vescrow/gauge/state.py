"""
Asset gauge state.

Gauge settings, the last lock snapshot pushed by the escrow per token,
versioned user votes and the two families of weighted period indexes: one
per voter and one per gauge keyed by vote target.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.assets import AssetInfo
from ..core.bps import BasicPoints
from ..storage.backend import StorageBackend
from ..storage.maps import Item, Map, model_codec
from ..storage.period_map import PeriodMap
from ..escrow.state import LockInfo
from .period_index import PeriodIndex


@dataclass
class GaugeConfig:
    """A named gauge and the targets it accepts votes for."""

    name: str
    assets: List[AssetInfo] = field(default_factory=list)

    def is_whitelisted(self, target: str) -> bool:
        return target in {str(asset) for asset in self.assets}

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "assets": [str(a) for a in self.assets]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GaugeConfig":
        return cls(name=data["name"], assets=[AssetInfo.from_str(a) for a in data["assets"]])


@dataclass
class GaugesConfig:
    gauges: List[GaugeConfig] = field(default_factory=list)

    def get(self, name: str) -> Optional[GaugeConfig]:
        for gauge in self.gauges:
            if gauge.name == name:
                return gauge
        return None

    def names(self) -> List[str]:
        return [gauge.name for gauge in self.gauges]

    def to_dict(self) -> Dict[str, Any]:
        return {"gauges": [g.to_dict() for g in self.gauges]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GaugesConfig":
        return cls(gauges=[GaugeConfig.from_dict(g) for g in data["gauges"]])


@dataclass
class UserVotes:
    """A voter's split of voting power across the targets of one gauge.

    ``period`` is the first period the split applies to.
    """

    period: int = 0
    votes: List[Tuple[str, BasicPoints]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"period": self.period, "votes": [[target, bps.value] for target, bps in self.votes]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserVotes":
        return cls(
            period=data.get("period", 0),
            votes=[(target, BasicPoints(bps)) for target, bps in data["votes"]],
        )


@dataclass(frozen=True)
class UserShare:
    """A voter's weight on one gauge target in one period."""

    gauge: str
    asset: AssetInfo
    period: int
    vp: int
    total_vp: int


CONFIG = Item("gauge_config", model_codec(GaugesConfig))

# token_id -> last lock info pushed by the escrow
LOCK_INFO = Map("gauge_lock_info", (str,), model_codec(LockInfo))

# (gauge, user) -> period -> votes
GAUGE_VOTE = PeriodMap("gauge_votes", (str, str), model_codec(UserVotes))


def user_idx(store: StorageBackend) -> PeriodIndex:
    """Voting power per voter, at full weight."""
    return PeriodIndex(store, "user")


def asset_idx(store: StorageBackend, gauge: str) -> PeriodIndex:
    """Voted power per target of ``gauge``."""
    return PeriodIndex(store, f"asset_votes__{gauge}")
