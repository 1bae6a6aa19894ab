"""
Bribe manager.

Holds bribe deposits for gauge targets, spreads them over future periods
and pays voters out of the per-period buckets through the claim engine.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import VescrowConfig, get_global_config
from ..core.assets import Asset, AssetInfo, Assets
from ..core.bank import Bank
from ..core.period import Env, Time, resolve_period
from ..directory.global_config import (
    AT_BRIBE_WHITELIST_CONTROLLER,
    AT_FEE_COLLECTOR,
    AT_FREE_BRIBES,
    GlobalConfig,
)
from ..errors.exceptions import (
    AssetNotWhitelistedError,
    BribeDistributionError,
    BribesAlreadyDistributingError,
    NoBribesError,
    NoPeriodsValidError,
    RequiresAmountError,
    ValidationError,
)
from ..gauge.engine import GaugeSharesProvider
from ..storage.backend import StorageBackend
from .buckets import BribeBuckets
from .claims import ClaimEngine, ClaimResult
from .distribution import BribeDistribution, create_distribution
from .state import BRIBE_AVAILABLE, BRIBE_CREATOR, BRIBE_TOTAL, CONFIG, BribeConfig

logger = logging.getLogger(__name__)


class BribeManager:
    """Bribe deposits, withdrawals and claims over a storage backend."""

    def __init__(
        self,
        store: StorageBackend,
        bank: Bank,
        directory: GlobalConfig,
        env: Env,
        gauge: GaugeSharesProvider,
        whitelist: Optional[Iterable[AssetInfo]] = None,
        fee: Optional[Asset] = None,
        address: str = "bribe_manager",
        config: Optional[VescrowConfig] = None,
    ):
        self.store = store
        self.bank = bank
        self.directory = directory
        self.env = env
        self.address = address
        self.config = config or get_global_config()
        self.claims = ClaimEngine(store, gauge, env, self.config)

        if not CONFIG.exists(store):
            if fee is not None and not fee.info.is_native():
                raise ValidationError("Bribe fee must be a native asset", field="fee", value=str(fee))
            CONFIG.save(store, BribeConfig(whitelist=list(whitelist or []), fee=fee))
            logger.info(f"Bribe manager {address} initialized")

    def _assert_whitelisted(self, bribe_config: BribeConfig, info: AssetInfo) -> None:
        if not bribe_config.allow_any and info not in bribe_config.whitelist:
            raise AssetNotWhitelistedError(str(info))

    # Deposits

    def add_bribe(
        self,
        sender: str,
        bribe: Asset,
        gauge: str,
        for_info: AssetInfo,
        distribution: BribeDistribution,
    ) -> List[Tuple[int, int]]:
        """Deposit ``bribe`` for voters of ``for_info`` in ``gauge``.

        The deposit is spread by ``distribution`` over future periods. Unless
        the sender is exempt, the configured fee is charged on top and sent
        to the fee collector. Returns the resulting schedule.
        """
        if bribe.is_zero():
            raise RequiresAmountError("Bribes required")

        bribe_config = CONFIG.load(self.store)
        self._assert_whitelisted(bribe_config, bribe.info)

        block_period = self.env.block_period
        schedule = create_distribution(block_period, bribe.amount, distribution)
        if sum(amount for _, amount in schedule) != bribe.amount:
            raise BribeDistributionError("sum not equal to deposit")
        if any(period <= block_period for period, _ in schedule):
            raise BribesAlreadyDistributingError()

        fee = bribe_config.fee
        has_fee = fee is not None and not fee.is_zero() and not self.directory.is_in_list(AT_FREE_BRIBES, sender)

        with self.store.transaction():
            self.bank.transfer(sender, self.address, bribe)
            if has_fee:
                self.bank.transfer(sender, self.directory.get_address(AT_FEE_COLLECTOR), fee)

            for period, amount in schedule:
                if amount == 0:
                    continue
                split = Asset(bribe.info, amount)
                available = BRIBE_AVAILABLE.may_load(self.store, period) or BribeBuckets()
                created = BRIBE_CREATOR.may_load(self.store, (sender, period)) or BribeBuckets()
                available.add(gauge, for_info, split)
                created.add(gauge, for_info, split)
                BRIBE_AVAILABLE.save(self.store, period, available)
                BRIBE_CREATOR.save(self.store, (sender, period), created)

        logger.info(
            f"{sender} added bribe {bribe} for {for_info} in {gauge} "
            f"over periods {schedule[0][0]}..{schedule[-1][0]}"
        )
        return schedule

    def withdraw_bribes(self, sender: str, period: int) -> Assets:
        """Take back the sender's deposits for a period that has not started."""
        if period <= self.env.block_period:
            raise BribesAlreadyDistributingError()

        with self.store.transaction():
            created = BRIBE_CREATOR.may_load(self.store, (sender, period))
            if created is None or created.is_empty():
                raise NoBribesError()

            available = BRIBE_AVAILABLE.load(self.store, period)
            together = Assets()
            for bucket in created:
                for bribe in bucket.assets:
                    available.remove(bucket.gauge, bucket.asset, bribe)
                    together.add(bribe)

            if available.is_empty():
                BRIBE_AVAILABLE.remove(self.store, period)
            else:
                BRIBE_AVAILABLE.save(self.store, period, available)
            BRIBE_CREATOR.remove(self.store, (sender, period))

            self.bank.transfer_many(self.address, sender, together)

        logger.info(f"{sender} withdrew bribes {together} of period {period}")
        return together

    # Claims

    def claim_bribes(self, sender: str, periods: Optional[Sequence[int]] = None) -> ClaimResult:
        """Pay the sender's share of the bribes of ``periods``.

        Without periods the next batch after the last claim is used.
        """
        claim_periods = self.claims.claim_periods(sender, periods)
        if not claim_periods:
            logger.warning(f"Claim by {sender} rejected: no valid periods in {periods}")
            raise NoPeriodsValidError()

        with self.store.transaction():
            result = self.claims.run(sender, claim_periods, record=True)
            self.bank.transfer_many(self.address, sender, result.rewards)

        logger.info(f"{sender} claimed {result.rewards} for periods {result.periods}")
        return result

    # Administration

    def whitelist_assets(self, sender: str, assets: Sequence[AssetInfo]) -> BribeConfig:
        self.directory.assert_has_access(sender, AT_BRIBE_WHITELIST_CONTROLLER)
        if not assets:
            raise ValidationError("Requires asset infos", field="assets")
        with self.store.transaction():
            bribe_config = CONFIG.load(self.store)
            for info in assets:
                if info not in bribe_config.whitelist:
                    bribe_config.whitelist.append(info)
            CONFIG.save(self.store, bribe_config)
        logger.info(f"Bribe assets whitelisted: {', '.join(str(a) for a in assets)}")
        return bribe_config

    def remove_assets(self, sender: str, assets: Sequence[AssetInfo]) -> BribeConfig:
        self.directory.assert_has_access(sender, AT_BRIBE_WHITELIST_CONTROLLER)
        if not assets:
            raise ValidationError("Requires asset infos", field="assets")
        with self.store.transaction():
            bribe_config = CONFIG.load(self.store)
            bribe_config.whitelist = [a for a in bribe_config.whitelist if a not in assets]
            CONFIG.save(self.store, bribe_config)
        logger.info(f"Bribe assets removed: {', '.join(str(a) for a in assets)}")
        return bribe_config

    def update_config(
        self, sender: str, fee: Optional[Asset] = None, allow_any: Optional[bool] = None
    ) -> BribeConfig:
        self.directory.assert_owner(sender)
        with self.store.transaction():
            bribe_config = CONFIG.load(self.store)
            if fee is not None:
                if not fee.info.is_native():
                    raise ValidationError("Bribe fee must be a native asset", field="fee", value=str(fee))
                bribe_config.fee = fee
            if allow_any is not None:
                bribe_config.allow_any = allow_any
            CONFIG.save(self.store, bribe_config)
        logger.info(f"Bribe config updated: {bribe_config.to_dict()}")
        return bribe_config

    # Queries

    def bribe_config(self) -> BribeConfig:
        return CONFIG.load(self.store)

    def bribes(self, time: Optional[Time] = None) -> BribeBuckets:
        """Bribes of a period: frozen totals once claimed from, else what is available."""
        period = resolve_period(time, self.env)
        totals = BRIBE_TOTAL.may_load(self.store, period)
        if totals is not None:
            return totals
        return BRIBE_AVAILABLE.may_load(self.store, period) or BribeBuckets()

    def creator_bribes(self, creator: str, period: int) -> BribeBuckets:
        return BRIBE_CREATOR.may_load(self.store, (creator, period)) or BribeBuckets()

    def user_claimable(self, user: str, periods: Optional[Sequence[int]] = None) -> ClaimResult:
        """What :meth:`claim_bribes` would pay, without writing anything."""
        return self.claims.run(user, self.claims.claim_periods(user, periods))

    def next_claim_period(self, user: str) -> int:
        return self.claims.next_claim_period(user)
