"""
Voting escrow state.

Locks, voting-power checkpoints and the global slope schedule, plus the
storage layout the escrow engine persists them in.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.assets import Asset, AssetInfo
from ..core.math import FixedDecimal
from ..storage.maps import BOOL, INT, STR, Codec, Item, Map, model_codec
from ..storage.period_map import PeriodMap

# Total voting power checkpoints are stored under this reserved token id.
TOTAL_VP_TOKEN_ID = "0"


@dataclass(frozen=True)
class End:
    """Lock expiry: a period, or permanent when ``value`` is None."""

    value: Optional[int] = None

    @classmethod
    def period(cls, period: int) -> "End":
        return cls(period)

    @classmethod
    def permanent(cls) -> "End":
        return cls(None)

    @property
    def is_permanent(self) -> bool:
        return self.value is None

    def __str__(self) -> str:
        return "permanent" if self.value is None else str(self.value)


@dataclass
class Point:
    """Voting power checkpoint.

    As of ``start`` the decaying component is ``power`` and drops by
    ``slope`` every period until ``end``; ``fixed`` never decays. ``end`` is
    None for permanent locks.
    """

    power: int = 0
    start: int = 0
    end: Optional[int] = None
    slope: int = 0
    fixed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "power": str(self.power),
            "start": self.start,
            "end": self.end,
            "slope": str(self.slope),
            "fixed": str(self.fixed),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        return cls(
            power=int(data["power"]),
            start=data["start"],
            end=data["end"],
            slope=int(data["slope"]),
            fixed=int(data["fixed"]),
        )


@dataclass
class Lock:
    """Escrow position addressed by ``token_id``."""

    token_id: str
    owner: str
    asset: Asset
    start: int
    end: End
    last_extend_period: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "owner": self.owner,
            "asset": self.asset.to_dict(),
            "start": self.start,
            "end": self.end.value,
            "last_extend_period": self.last_extend_period,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lock":
        return cls(
            token_id=data["token_id"],
            owner=data["owner"],
            asset=Asset.from_dict(data["asset"]),
            start=data["start"],
            end=End(data["end"]),
            last_extend_period=data["last_extend_period"],
        )


@dataclass
class LockInfo:
    """Snapshot of a lock and its voting power at ``period``."""

    token_id: str
    owner: str
    period: int
    asset: Asset
    coefficient: FixedDecimal
    start: int
    end: End
    slope: int = 0
    fixed_amount: int = 0
    # Decaying component only.
    voting_power: int = 0

    def has_vp(self) -> bool:
        return self.voting_power > 0 or self.fixed_amount > 0

    def total_vp(self) -> int:
        return self.voting_power + self.fixed_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "owner": self.owner,
            "period": self.period,
            "asset": self.asset.to_dict(),
            "coefficient": self.coefficient.to_string(),
            "start": self.start,
            "end": self.end.value,
            "slope": str(self.slope),
            "fixed_amount": str(self.fixed_amount),
            "voting_power": str(self.voting_power),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LockInfo":
        return cls(
            token_id=data["token_id"],
            owner=data["owner"],
            period=data["period"],
            asset=Asset.from_dict(data["asset"]),
            coefficient=FixedDecimal.from_string(data["coefficient"]),
            start=data["start"],
            end=End(data["end"]),
            slope=int(data["slope"]),
            fixed_amount=int(data["fixed_amount"]),
            voting_power=int(data["voting_power"]),
        )


@dataclass
class EscrowConfig:
    """Escrow settings."""

    deposit_assets: List[AssetInfo] = field(default_factory=list)
    push_update_contracts: List[str] = field(default_factory=list)
    decommissioned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deposit_assets": [str(a) for a in self.deposit_assets],
            "push_update_contracts": list(self.push_update_contracts),
            "decommissioned": self.decommissioned,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EscrowConfig":
        return cls(
            deposit_assets=[AssetInfo.from_str(a) for a in data["deposit_assets"]],
            push_update_contracts=list(data["push_update_contracts"]),
            decommissioned=data["decommissioned"],
        )


CONFIG = Item("ve_config", model_codec(EscrowConfig))

LOCKED = Map("ve_locked", (str,), model_codec(Lock))

# token_id -> period -> Point, total supply under TOTAL_VP_TOKEN_ID
HISTORY = PeriodMap("ve_history", (str,), model_codec(Point))

# period -> slope scheduled to stop decaying the total at that period
SLOPE_CHANGES = Map("ve_slope_changes", (int,), INT)

LAST_SLOPE_CHANGE = Item("ve_last_slope_change", INT)

BLACKLIST = Item("ve_blacklist", Codec(list, list))

TOKEN_ID = Item("ve_token_id", INT)

# (owner, token_id) -> present
OWNER_TOKENS = Map("ve_owner_tokens", (str, int), BOOL)

# (owner, token_id) -> present, for every lock the owner ever held
OWNER_HISTORY = Map("ve_owner_history", (str, int), BOOL)

# token_id -> period -> owner
LOCK_OWNER = PeriodMap("ve_lock_owner", (str,), STR)
