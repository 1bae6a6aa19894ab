"""
Asset types.

``AssetInfo`` identifies a token (a native denom or a cw20 contract),
``Asset`` pairs it with an amount, and ``Assets`` is a small collection that
merges amounts per token and never holds negative balances.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..errors.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from .math import assert_uint128, checked_add, multiply_ratio


class AssetKind(Enum):
    NATIVE = "native"
    CW20 = "cw20"


@dataclass(frozen=True)
class AssetInfo:
    """Identifies a token."""

    kind: AssetKind
    id: str

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Asset id must not be empty", field="id")

    @classmethod
    def native(cls, denom: str) -> "AssetInfo":
        return cls(AssetKind.NATIVE, denom)

    @classmethod
    def cw20(cls, address: str) -> "AssetInfo":
        return cls(AssetKind.CW20, address)

    @classmethod
    def from_str(cls, value: str) -> "AssetInfo":
        """Parse ``native:<denom>`` or ``cw20:<address>``."""
        kind, sep, ident = value.partition(":")
        if not sep:
            raise ValidationError(f"Invalid asset info: {value}", field="asset_info", value=value)
        try:
            return cls(AssetKind(kind), ident)
        except ValueError as e:
            raise ValidationError(f"Invalid asset kind: {kind}", field="asset_info", value=value, cause=e)

    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    def with_balance(self, amount: int) -> "Asset":
        return Asset(self, amount)

    def __lt__(self, other):
        if not isinstance(other, AssetInfo):
            return NotImplemented
        return str(self) < str(other)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass
class Asset:
    """Amount of a token."""

    info: AssetInfo
    amount: int

    def __post_init__(self):
        assert_uint128(self.amount, "amount")

    @classmethod
    def native(cls, denom: str, amount: int) -> "Asset":
        return cls(AssetInfo.native(denom), amount)

    @classmethod
    def cw20(cls, address: str, amount: int) -> "Asset":
        return cls(AssetInfo.cw20(address), amount)

    def is_zero(self) -> bool:
        return self.amount == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"info": str(self.info), "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(AssetInfo.from_str(data["info"]), int(data["amount"]))

    def __str__(self) -> str:
        return f"{self.amount}{self.info}"


class Assets:
    """Collection of assets keyed by token, in insertion order."""

    def __init__(self, assets: Optional[Iterable[Asset]] = None):
        self._assets: List[Asset] = []
        for asset in assets or []:
            self.add(asset)

    def add(self, asset: Asset) -> None:
        for existing in self._assets:
            if existing.info == asset.info:
                existing.amount = checked_add(existing.amount, asset.amount)
                return
        self._assets.append(Asset(asset.info, asset.amount))

    def add_multi(self, assets: Iterable[Asset]) -> None:
        for asset in assets:
            self.add(asset)

    def remove(self, asset: Asset) -> None:
        """Subtract ``asset``; zero balances are dropped."""
        for existing in self._assets:
            if existing.info == asset.info:
                if existing.amount < asset.amount:
                    raise InsufficientBalanceError(f"existing: {existing} withdrawing: {asset}")
                existing.amount -= asset.amount
                if existing.amount == 0:
                    self._assets = [a for a in self._assets if a.amount != 0]
                return
        raise NotFoundError(f"asset {asset.info}")

    def amount_of(self, info: AssetInfo) -> int:
        for existing in self._assets:
            if existing.info == info:
                return existing.amount
        return 0

    def calc_share_amounts(self, vp: int, total_vp: int) -> List[Asset]:
        """Return ``amount * vp / total_vp`` of every asset, omitting zero shares."""
        if total_vp == 0:
            return []
        shares = []
        for asset in self._assets:
            amount = multiply_ratio(asset.amount, vp, total_vp)
            if amount:
                shares.append(Asset(asset.info, amount))
        return shares

    def is_empty(self) -> bool:
        return not self._assets

    def copy(self) -> "Assets":
        return Assets(self._assets)

    def to_list(self) -> List[Dict[str, Any]]:
        return [asset.to_dict() for asset in self._assets]

    @classmethod
    def from_list(cls, data: Iterable[Dict[str, Any]]) -> "Assets":
        return cls(Asset.from_dict(item) for item in data)

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self._assets))

    def __len__(self) -> int:
        return len(self._assets)

    def __eq__(self, other) -> bool:
        if isinstance(other, Assets):
            return self._assets == other._assets
        if isinstance(other, list):
            return self._assets == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"Assets({', '.join(str(a) for a in self._assets)})"
