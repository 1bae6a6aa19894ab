"""Reward buckets keyed by ``(gauge, asset)``."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from ..core.assets import Asset, AssetInfo, Assets


@dataclass
class BribeBucket:
    """Rewards for voters of ``asset`` in ``gauge``."""

    gauge: str
    asset: AssetInfo
    assets: Assets = field(default_factory=Assets)

    def is_empty(self) -> bool:
        return self.assets.is_empty()

    def to_dict(self) -> Dict[str, Any]:
        return {"gauge": self.gauge, "asset": str(self.asset), "assets": self.assets.to_list()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BribeBucket":
        return cls(
            gauge=data["gauge"],
            asset=AssetInfo.from_str(data["asset"]),
            assets=Assets.from_list(data["assets"]),
        )


@dataclass
class BribeBuckets:
    buckets: List[BribeBucket] = field(default_factory=list)

    def find(self, gauge: str, asset: AssetInfo) -> Optional[BribeBucket]:
        for bucket in self.buckets:
            if bucket.gauge == gauge and bucket.asset == asset:
                return bucket
        return None

    def get(self, gauge: str, asset: AssetInfo) -> BribeBucket:
        """Bucket for ``(gauge, asset)``, created empty when missing."""
        bucket = self.find(gauge, asset)
        if bucket is None:
            bucket = BribeBucket(gauge, asset)
            self.buckets.append(bucket)
        return bucket

    def add(self, gauge: str, asset: AssetInfo, bribe: Asset) -> None:
        self.get(gauge, asset).assets.add(bribe)

    def remove(self, gauge: str, asset: AssetInfo, bribe: Asset) -> None:
        """Take ``bribe`` out of a bucket; emptied buckets are dropped."""
        bucket = self.get(gauge, asset)
        try:
            bucket.assets.remove(bribe)
        finally:
            if bucket.is_empty():
                self.buckets.remove(bucket)

    def is_empty(self) -> bool:
        return all(bucket.is_empty() for bucket in self.buckets)

    def total(self) -> Assets:
        """All rewards merged per token."""
        together = Assets()
        for bucket in self.buckets:
            together.add_multi(bucket.assets)
        return together

    def copy(self) -> "BribeBuckets":
        return BribeBuckets([BribeBucket(b.gauge, b.asset, b.assets.copy()) for b in self.buckets])

    def __iter__(self) -> Iterator[BribeBucket]:
        return iter(list(self.buckets))

    def __len__(self) -> int:
        return len(self.buckets)

    def to_dict(self) -> Dict[str, Any]:
        return {"buckets": [b.to_dict() for b in self.buckets if not b.is_empty()]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BribeBuckets":
        return cls(buckets=[BribeBucket.from_dict(b) for b in data["buckets"]])
