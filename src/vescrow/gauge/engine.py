"""
Asset gauge.

Voters split their escrowed voting power across the targets of named
gauges. The escrow pushes every lock change here through
:meth:`AssetGauge.update_vote`, which re-applies the owner's current votes to
the period indexes; votes and lock updates both take effect from the next
period. The bribe manager reads the resulting per-period shares.
"""

import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..core.assets import AssetInfo
from ..core.bps import BasicPoints
from ..core.period import Env, Time, resolve_period
from ..directory.global_config import AT_VOTING_ESCROW, GlobalConfig
from ..errors.exceptions import (
    DuplicatedVotesError,
    InvalidAssetError,
    NotFoundError,
    ValidationError,
    ZeroVotingPowerError,
)
from ..escrow.state import LockInfo
from ..storage.backend import StorageBackend
from .period_index import Data, Line
from .state import (
    CONFIG,
    GAUGE_VOTE,
    LOCK_INFO,
    GaugeConfig,
    GaugesConfig,
    UserShare,
    UserVotes,
    asset_idx,
    user_idx,
)

logger = logging.getLogger(__name__)


class GaugeSharesProvider(Protocol):
    """Source of per-period voting shares consumed by the bribe manager."""

    def query_user_shares(self, user: str, periods: Sequence[int]) -> List[UserShare]:
        ...

    def query_first_participation(self, user: str) -> Optional[int]:
        ...


class BlacklistProvider(Protocol):
    """Answers whether an address is currently blacklisted."""

    def is_blacklisted(self, address: str) -> bool:
        ...


class AssetGauge:
    """Vote aggregation over escrowed voting power."""

    def __init__(
        self,
        store: StorageBackend,
        directory: GlobalConfig,
        env: Env,
        gauges: Optional[Sequence[GaugeConfig]] = None,
        address: str = "asset_gauge",
        escrow: Optional[BlacklistProvider] = None,
    ):
        self.store = store
        self.directory = directory
        self.env = env
        self.address = address
        self.escrow = escrow

        if not CONFIG.exists(store):
            CONFIG.save(store, GaugesConfig(gauges=list(gauges or [])))
            logger.info(f"Asset gauge {address} initialized with gauges {[g.name for g in gauges or []]}")

    def _gauge(self, gauge: str) -> GaugeConfig:
        config = CONFIG.load(self.store).get(gauge)
        if config is None:
            raise NotFoundError(f"gauge {gauge}", field="gauge", value=gauge)
        return config

    # Votes

    def vote(self, sender: str, gauge: str, votes: Sequence[Tuple[str, int]]) -> UserVotes:
        """Replace the sender's split on ``gauge``, effective next period.

        ``votes`` pairs a target (``str(AssetInfo)``) with basic points; the
        sum may not exceed 100%. An empty list removes the sender's votes.
        """
        gauge_config = self._gauge(gauge)
        period = self.env.block_period + 1
        users = user_idx(self.store)

        current = users.get_latest_data(period, sender)
        if not current.has_vp():
            raise ZeroVotingPowerError(sender, period)

        old_votes = GAUGE_VOTE.get_latest_data(self.store, (gauge, sender), period, UserVotes())

        # target -> [old bps, new bps]
        changes: Dict[str, List[BasicPoints]] = {
            target: [bps, BasicPoints.zero()] for target, bps in old_votes.votes
        }
        new_votes: List[Tuple[str, BasicPoints]] = []
        total = BasicPoints.zero()
        seen = set()
        for target, value in votes:
            if target in seen:
                raise DuplicatedVotesError()
            seen.add(target)
            if not gauge_config.is_whitelisted(target):
                raise InvalidAssetError(target)
            bps = BasicPoints(value)
            total = total.checked_add(bps)
            changes.setdefault(target, [BasicPoints.zero(), BasicPoints.zero()])[1] = bps
            new_votes.append((target, bps))

        with self.store.transaction():
            slopes = users.fetch_future_slope_changes(sender, period)
            assets = asset_idx(self.store, gauge)
            for target, (old_bps, new_bps) in changes.items():
                assets.change_weights(period, target, old_bps, new_bps, current, slopes)
            result = UserVotes(period=period, votes=new_votes)
            GAUGE_VOTE.save(self.store, (gauge, sender), period, result)

        logger.info(f"{sender} voted on {gauge} for period {period}: {[(t, b.value) for t, b in new_votes]}")
        return result

    def update_vote(self, sender: str, token_id: str, lock_info: LockInfo) -> None:
        """Apply a lock change pushed by the escrow to the owner's votes."""
        self.directory.assert_has_access(sender, AT_VOTING_ESCROW)
        period = self.env.block_period + 1

        with self.store.transaction():
            old = LOCK_INFO.may_load(self.store, token_id)
            LOCK_INFO.save(self.store, token_id, lock_info)

            if old is not None and old.has_vp():
                self._remove_votes_of_user(period, old)
            if lock_info.has_vp():
                self._apply_votes_of_user(period, lock_info)

        logger.debug(f"Lock {token_id} of {lock_info.owner} applied to gauges for period {period}")

    def _remove_votes_of_user(self, period: int, lock_info: LockInfo) -> None:
        line = Line.from_lock_info(lock_info)
        user_idx(self.store).remove_line(period, lock_info.owner, BasicPoints.max(), line)
        for gauge in CONFIG.load(self.store).names():
            votes = GAUGE_VOTE.get_latest_data(self.store, (gauge, lock_info.owner), period)
            if votes is None:
                continue
            assets = asset_idx(self.store, gauge)
            for target, bps in votes.votes:
                assets.remove_line(period, target, bps, line)

    def _apply_votes_of_user(self, period: int, lock_info: LockInfo) -> None:
        line = Line.from_lock_info(lock_info)
        user_idx(self.store).add_line(period, lock_info.owner, BasicPoints.max(), line)
        for gauge in CONFIG.load(self.store).names():
            votes = GAUGE_VOTE.get_latest_data(self.store, (gauge, lock_info.owner), period)
            if votes is None:
                continue
            assets = asset_idx(self.store, gauge)
            for target, bps in votes.votes:
                assets.add_line(period, target, bps, line)

    # Administration

    def update_config(
        self,
        sender: str,
        update_gauge: Optional[GaugeConfig] = None,
        remove_gauge: Optional[str] = None,
    ) -> GaugesConfig:
        """Owner-only: add or replace a gauge, or drop one."""
        self.directory.assert_owner(sender)
        with self.store.transaction():
            config = CONFIG.load(self.store)
            if update_gauge is not None:
                if not update_gauge.name:
                    raise ValidationError("Gauge name must not be empty", field="name")
                config.gauges = [g for g in config.gauges if g.name != update_gauge.name] + [update_gauge]
            if remove_gauge is not None:
                if config.get(remove_gauge) is None:
                    raise NotFoundError(f"gauge {remove_gauge}", field="gauge", value=remove_gauge)
                config.gauges = [g for g in config.gauges if g.name != remove_gauge]
            CONFIG.save(self.store, config)
        logger.info(f"Gauge config updated: {config.names()}")
        return config

    # Queries

    def gauges(self) -> List[GaugeConfig]:
        return list(CONFIG.load(self.store).gauges)

    def user_votes(self, gauge: str, user: str, time: Optional[Time] = None) -> UserVotes:
        self._gauge(gauge)
        period = resolve_period(time, self.env)
        return GAUGE_VOTE.get_latest_data(self.store, (gauge, user), period, UserVotes())

    def user_info(self, user: str, time: Optional[Time] = None) -> Data:
        """Voting power of ``user`` as seen by the gauge."""
        return user_idx(self.store).get_latest_data(resolve_period(time, self.env), user)

    def asset_info(self, gauge: str, asset: AssetInfo, time: Optional[Time] = None) -> Data:
        """Voting power directed at ``asset`` within ``gauge``."""
        self._gauge(gauge)
        return asset_idx(self.store, gauge).get_latest_data(resolve_period(time, self.env), str(asset))

    def voted_assets(self, gauge: str) -> List[str]:
        """Targets of ``gauge`` currently holding voting power."""
        self._gauge(gauge)
        return asset_idx(self.store, gauge).keys()

    def query_user_shares(self, user: str, periods: Sequence[int]) -> List[UserShare]:
        """Per period, the user's weight on every voted target and the target's total.

        A currently blacklisted user has no shares, including in periods
        recorded before the blacklisting.
        """
        if self.escrow is not None and self.escrow.is_blacklisted(user):
            logger.debug(f"{user} is blacklisted, no shares")
            return []
        config = CONFIG.load(self.store)
        users = user_idx(self.store)
        shares: List[UserShare] = []
        for period in sorted(periods):
            data = users.get_latest_data(period, user)
            if not data.has_vp():
                continue
            for gauge in config.names():
                votes = GAUGE_VOTE.get_latest_data(self.store, (gauge, user), period)
                if votes is None:
                    continue
                assets = asset_idx(self.store, gauge)
                for target, bps in votes.votes:
                    vp = bps.mul_uint(data.voting_power) + bps.mul_uint(data.fixed_amount)
                    total_vp = assets.get_latest_data(period, target).total_vp()
                    shares.append(
                        UserShare(
                            gauge=gauge,
                            asset=AssetInfo.from_str(target),
                            period=period,
                            vp=min(vp, total_vp),
                            total_vp=total_vp,
                        )
                    )
        return shares

    def query_first_participation(self, user: str) -> Optional[int]:
        """Earliest period any of the user's votes took effect."""
        first = None
        for gauge in CONFIG.load(self.store).names():
            entry = GAUGE_VOTE.fetch_first(self.store, (gauge, user))
            if entry is not None and (first is None or entry[0] < first):
                first = entry[0]
        return first
