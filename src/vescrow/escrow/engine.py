"""
Voting escrow engine.

Owns the lock lifecycle (create, deposit, extend, permanent, withdraw,
transfer), the holder blacklist and the voting power queries. Every
mutation is checkpointed through :class:`CheckpointLedger` and the resulting
:class:`LockInfo` is pushed to the registered listeners (the asset gauge).
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from ..config import VescrowConfig, get_global_config
from ..core.assets import Asset, AssetInfo
from ..core.bank import Bank
from ..core.math import checked_add
from ..core.period import Env, Time, resolve_period
from ..directory.global_config import AT_VE_GUARDIAN, GlobalConfig
from ..errors.exceptions import (
    AddressBlacklistDuplicatedError,
    AddressBlacklistedError,
    AddressBlacklistEmptyError,
    AddressNotBlacklistedError,
    AuthorizationError,
    ConfigurationError,
    DecommissionedError,
    LockDoesNotExistError,
    LockHasNotExpiredError,
    LockIsNotPermanentError,
    LockIsPermanentError,
    LockPeriodsError,
    LockTimeLimitsError,
    RequiresAmountError,
    WrongAssetError,
)
from ..storage.backend import StorageBackend
from .checkpoint import CheckpointLedger, calc_voting_power
from .state import (
    BLACKLIST,
    CONFIG,
    LOCK_OWNER,
    LOCKED,
    OWNER_HISTORY,
    OWNER_TOKENS,
    TOKEN_ID,
    End,
    EscrowConfig,
    Lock,
    LockInfo,
)

logger = logging.getLogger(__name__)


class LockListener(Protocol):
    """Receives lock updates pushed by the escrow."""

    address: str

    def update_vote(self, sender: str, token_id: str, lock_info: LockInfo) -> None:
        ...


class VotingEscrow:
    """Vote-escrow ledger over a storage backend."""

    def __init__(
        self,
        store: StorageBackend,
        bank: Bank,
        directory: GlobalConfig,
        env: Env,
        deposit_assets: Optional[Iterable[AssetInfo]] = None,
        address: str = "voting_escrow",
        config: Optional[VescrowConfig] = None,
    ):
        self.store = store
        self.bank = bank
        self.directory = directory
        self.env = env
        self.address = address
        self.config = config or get_global_config()
        self.ledger = CheckpointLedger(store, self.config.max_lock_periods)
        self._listeners: Dict[str, LockListener] = {}

        if not CONFIG.exists(store):
            with store.transaction():
                CONFIG.save(store, EscrowConfig(deposit_assets=list(deposit_assets or [])))
                BLACKLIST.save(store, [])
                TOKEN_ID.save(store, 0)
                self.ledger.ensure_total(env.block_period)
            logger.info(f"Voting escrow {address} initialized at period {env.block_period}")

    # Validation

    def _assert_time_limits(self, time: int) -> None:
        if not self.config.week_seconds <= time <= self.config.max_lock_time:
            raise LockTimeLimitsError(value=time)

    def _assert_periods_remaining(self, periods: int) -> None:
        if not self.config.min_lock_periods <= periods <= self.config.max_lock_periods:
            raise LockPeriodsError(value=periods)

    def _assert_not_decommissioned(self, escrow_config: EscrowConfig) -> None:
        if escrow_config.decommissioned:
            raise DecommissionedError()

    def _assert_asset_allowed(self, escrow_config: EscrowConfig, asset: Asset) -> None:
        if asset.is_zero():
            raise RequiresAmountError()
        if asset.info not in escrow_config.deposit_assets:
            raise WrongAssetError(str(asset.info))

    def _assert_not_blacklisted(self, *addresses: str) -> None:
        blacklist = BLACKLIST.load(self.store)
        for address in addresses:
            if address in blacklist:
                raise AddressBlacklistedError(address)

    def _load_lock(self, token_id: str) -> Lock:
        lock = LOCKED.may_load(self.store, token_id)
        if lock is None or lock.asset.is_zero():
            raise LockDoesNotExistError(token_id)
        return lock

    def _assert_lock_owner(self, sender: str, lock: Lock) -> None:
        if lock.owner != sender:
            raise AuthorizationError(
                f"{sender} is not the owner of lock {lock.token_id}", sender=sender, right="lock_owner"
            )

    def _next_token_id(self) -> str:
        token_id = TOKEN_ID.load(self.store) + 1
        TOKEN_ID.save(self.store, token_id)
        return str(token_id)

    def _record_owner(self, token_id: str, owner: str, period: int) -> None:
        OWNER_TOKENS.save(self.store, (owner, int(token_id)), True)
        OWNER_HISTORY.save(self.store, (owner, int(token_id)), True)
        LOCK_OWNER.save(self.store, token_id, period, owner)

    # Listeners

    def register_listener(self, listener: LockListener) -> None:
        """Make ``listener`` addressable from ``push_update_contracts``."""
        self._listeners[listener.address] = listener

    def _push_update(self, token_id: str) -> None:
        escrow_config = CONFIG.load(self.store)
        if not escrow_config.push_update_contracts:
            return
        lock_info = self._lock_info(token_id, self.env.block_period)
        for contract in escrow_config.push_update_contracts:
            listener = self._listeners.get(contract)
            if listener is None:
                raise ConfigurationError(f"No listener registered for {contract}", config_key="push_update_contracts")
            listener.update_vote(self.address, token_id, lock_info)

    # Lock lifecycle

    def create_lock(
        self, sender: str, asset: Asset, time: Optional[int], recipient: Optional[str] = None
    ) -> str:
        """Lock ``asset`` for ``time`` seconds; ``time=None`` creates a permanent lock.

        Returns the token id of the new lock.
        """
        owner = recipient or sender
        with self.store.transaction():
            escrow_config = CONFIG.load(self.store)
            self._assert_not_decommissioned(escrow_config)
            self._assert_asset_allowed(escrow_config, asset)
            self._assert_not_blacklisted(sender, owner)

            period = self.env.block_period
            if time is None:
                end = End.permanent()
            else:
                self._assert_time_limits(time)
                periods = self.env.clock.periods_count(time)
                self._assert_periods_remaining(periods)
                end = End.period(period + periods)

            self.bank.transfer(sender, self.address, asset)

            token_id = self._next_token_id()
            lock = Lock(
                token_id=token_id,
                owner=owner,
                asset=Asset(asset.info, asset.amount),
                start=period,
                end=end,
                last_extend_period=period,
            )
            LOCKED.save(self.store, token_id, lock)
            self._record_owner(token_id, owner, period)

            if end.is_permanent:
                self.ledger.make_permanent(period, token_id, asset.amount)
            else:
                self.ledger.create_or_extend(period, token_id, asset.amount, asset.amount, end.value)

            self._push_update(token_id)

        logger.info(f"Created lock {token_id} for {owner}: {asset} until {end}")
        return token_id

    def extend_lock_amount(self, sender: str, token_id: str, asset: Asset) -> None:
        """Deposit more into a lock; a lock ending too soon is pushed out to the minimum."""
        with self.store.transaction():
            escrow_config = CONFIG.load(self.store)
            self._assert_not_decommissioned(escrow_config)
            self._assert_asset_allowed(escrow_config, asset)
            lock = self._load_lock(token_id)
            if asset.info != lock.asset.info:
                raise WrongAssetError(str(asset.info))
            self._assert_not_blacklisted(sender, lock.owner)

            period = self.env.block_period
            new_end = None
            if not lock.end.is_permanent:
                min_end = period + self.config.min_lock_periods
                if lock.end.value < min_end:
                    lock.end = End.period(min_end)
                    lock.last_extend_period = period
                    new_end = min_end

            self.bank.transfer(sender, self.address, asset)
            lock.asset.amount = checked_add(lock.asset.amount, asset.amount)
            LOCKED.save(self.store, token_id, lock)

            if lock.end.is_permanent:
                self.ledger.make_permanent(period, token_id, lock.asset.amount)
            else:
                self.ledger.create_or_extend(period, token_id, lock.asset.amount, asset.amount, new_end)

            self._push_update(token_id)

        logger.info(f"Deposited {asset} into lock {token_id} by {sender}")

    def extend_lock_time(self, sender: str, token_id: str, time: int) -> None:
        """Move the lock end out by ``time`` seconds.

        An expired lock is restarted from the current period.
        """
        with self.store.transaction():
            escrow_config = CONFIG.load(self.store)
            self._assert_not_decommissioned(escrow_config)
            lock = self._load_lock(token_id)
            self._assert_lock_owner(sender, lock)
            self._assert_not_blacklisted(sender)
            if lock.end.is_permanent:
                raise LockIsPermanentError()

            self._assert_time_limits(time)

            period = self.env.block_period
            end = max(lock.end.value, period) + self.env.clock.periods_count(time)
            # The new end must stay within the maximum lock time from now,
            # counted both in periods and in seconds.
            self._assert_time_limits(self.env.clock.period_start(end) - self.env.block_time)
            self._assert_periods_remaining(end - period)

            lock.end = End.period(end)
            lock.last_extend_period = period
            LOCKED.save(self.store, token_id, lock)

            self.ledger.create_or_extend(period, token_id, lock.asset.amount, 0, end)
            self._push_update(token_id)

        logger.info(f"Extended lock {token_id} until period {end}")

    def lock_permanent(self, sender: str, token_id: str) -> None:
        """Turn a decaying lock into a permanent one."""
        with self.store.transaction():
            escrow_config = CONFIG.load(self.store)
            self._assert_not_decommissioned(escrow_config)
            lock = self._load_lock(token_id)
            self._assert_lock_owner(sender, lock)
            self._assert_not_blacklisted(sender)
            if lock.end.is_permanent:
                raise LockIsPermanentError()

            period = self.env.block_period
            lock.end = End.permanent()
            lock.last_extend_period = period
            LOCKED.save(self.store, token_id, lock)

            self.ledger.make_permanent(period, token_id, lock.asset.amount)
            self._push_update(token_id)

        logger.info(f"Lock {token_id} made permanent")

    def unlock_permanent(self, sender: str, token_id: str) -> None:
        """Start the maximum-length decay of a permanent lock."""
        with self.store.transaction():
            lock = self._load_lock(token_id)
            self._assert_lock_owner(sender, lock)
            self._assert_not_blacklisted(sender)
            if not lock.end.is_permanent:
                raise LockIsNotPermanentError()

            period = self.env.block_period
            end = period + self.config.max_lock_periods
            lock.end = End.period(end)
            lock.last_extend_period = period
            LOCKED.save(self.store, token_id, lock)

            self.ledger.restart_decaying(period, token_id, lock.asset.amount, end)
            self._push_update(token_id)

        logger.info(f"Lock {token_id} unlocked, decaying until period {end}")

    def withdraw(self, sender: str, token_id: str) -> Asset:
        """Return the locked asset once the lock expired, or early when decommissioned."""
        with self.store.transaction():
            lock = self._load_lock(token_id)
            self._assert_lock_owner(sender, lock)
            if lock.end.is_permanent:
                raise LockIsPermanentError()

            escrow_config = CONFIG.load(self.store)
            period = self.env.block_period
            if lock.end.value > period and not escrow_config.decommissioned:
                raise LockHasNotExpiredError()

            amount = Asset(lock.asset.info, lock.asset.amount)
            self.ledger.zero_out(period, token_id)

            # The lock is kept for history with a zero amount.
            lock.asset.amount = 0
            LOCKED.save(self.store, token_id, lock)
            OWNER_TOKENS.remove(self.store, (lock.owner, int(token_id)))

            self.bank.transfer(self.address, sender, amount)
            self._push_update(token_id)

        logger.info(f"Withdrew {amount} from lock {token_id}")
        return amount

    def transfer_lock(self, sender: str, token_id: str, recipient: str) -> None:
        """Hand a lock over to ``recipient``; its voting power follows it."""
        with self.store.transaction():
            lock = self._load_lock(token_id)
            self._assert_lock_owner(sender, lock)
            self._assert_not_blacklisted(sender, recipient)

            OWNER_TOKENS.remove(self.store, (lock.owner, int(token_id)))
            lock.owner = recipient
            LOCKED.save(self.store, token_id, lock)
            self._record_owner(token_id, recipient, self.env.block_period)

            self._push_update(token_id)

        logger.info(f"Transferred lock {token_id} from {sender} to {recipient}")

    # Administration

    def update_blacklist(
        self,
        sender: str,
        append_addrs: Optional[List[str]] = None,
        remove_addrs: Optional[List[str]] = None,
    ) -> None:
        """Blacklist or restore holders.

        Blacklisting zeroes every lock of the holder and removes it from the
        total; restoring re-checkpoints each lock from its amount and end.
        """
        self.directory.assert_owner_or_address_type(sender, AT_VE_GUARDIAN)
        append_addrs = append_addrs or []
        remove_addrs = remove_addrs or []

        used = set()
        for address in append_addrs + remove_addrs:
            if address in used:
                raise AddressBlacklistDuplicatedError(address)
            used.add(address)

        with self.store.transaction():
            blacklist = BLACKLIST.load(self.store)
            append = [a for a in append_addrs if a not in blacklist]
            remove = [a for a in remove_addrs if a in blacklist]
            if not append and not remove:
                raise AddressBlacklistEmptyError()

            period = self.env.block_period
            BLACKLIST.save(self.store, [a for a in blacklist if a not in remove] + append)

            for address in append:
                for token_id in self.tokens(address):
                    self.ledger.zero_out(period, token_id)

            for address in remove:
                for token_id in self.tokens(address):
                    lock = self._load_lock(token_id)
                    if lock.end.is_permanent:
                        self.ledger.make_permanent(period, token_id, lock.asset.amount)
                    else:
                        self.ledger.create_or_extend(
                            period, token_id, lock.asset.amount, lock.asset.amount, lock.end.value
                        )

            for address in append + remove:
                for token_id in self.tokens(address):
                    self._push_update(token_id)

        logger.info(f"Blacklist updated by {sender}: added {append}, removed {remove}")

    def update_config(
        self,
        sender: str,
        append_deposit_assets: Optional[List[AssetInfo]] = None,
        push_update_contracts: Optional[List[str]] = None,
        decommissioned: Optional[bool] = None,
    ) -> EscrowConfig:
        """Owner-only settings update. Decommissioning cannot be undone."""
        self.directory.assert_owner(sender)
        with self.store.transaction():
            escrow_config = CONFIG.load(self.store)
            for info in append_deposit_assets or []:
                if info not in escrow_config.deposit_assets:
                    escrow_config.deposit_assets.append(info)
            if push_update_contracts is not None:
                escrow_config.push_update_contracts = list(push_update_contracts)
            if decommissioned:
                escrow_config.decommissioned = True
            CONFIG.save(self.store, escrow_config)
        logger.info(f"Escrow config updated: {escrow_config.to_dict()}")
        return escrow_config

    # Queries

    def escrow_config(self) -> EscrowConfig:
        return CONFIG.load(self.store)

    def lock(self, token_id: str) -> Lock:
        lock = LOCKED.may_load(self.store, token_id)
        if lock is None:
            raise LockDoesNotExistError(token_id)
        return lock

    def tokens(self, owner: str) -> List[str]:
        """Token ids of the open locks held by ``owner``."""
        return [str(token_id) for token_id in OWNER_TOKENS.prefix_keys(self.store, (owner,))]

    def _lock_info(self, token_id: str, period: int) -> LockInfo:
        lock = self.lock(token_id)
        point = self.ledger.fetch_last_checkpoint(token_id, period)
        voting_power = slope = fixed_amount = 0
        if point is not None:
            slope = point.slope
            fixed_amount = point.fixed
            voting_power = point.power if point.start == period else calc_voting_power(point, period)

        if lock.end.is_permanent:
            coefficient = self.ledger.coefficient(self.config.max_lock_periods)
        else:
            coefficient = self.ledger.coefficient(lock.end.value - lock.last_extend_period)

        return LockInfo(
            token_id=token_id,
            owner=lock.owner,
            period=period,
            asset=Asset(lock.asset.info, lock.asset.amount),
            coefficient=coefficient,
            start=lock.start,
            end=lock.end,
            slope=slope,
            fixed_amount=fixed_amount,
            voting_power=voting_power,
        )

    def lock_info(self, token_id: str, time: Optional[Time] = None) -> LockInfo:
        return self._lock_info(token_id, resolve_period(time, self.env))

    def is_blacklisted(self, address: str) -> bool:
        return address in BLACKLIST.load(self.store)

    def lock_voting_power(self, token_id: str, time: Optional[Time] = None) -> int:
        """Voting power of a lock; zero while its owner is blacklisted."""
        lock = LOCKED.may_load(self.store, token_id)
        if lock is None or self.is_blacklisted(lock.owner):
            return 0
        return self.ledger.voting_power(token_id, resolve_period(time, self.env))

    def owner_voting_power(self, owner: str, time: Optional[Time] = None) -> int:
        """Voting power of the locks ``owner`` held at the queried period."""
        if self.is_blacklisted(owner):
            return 0
        period = resolve_period(time, self.env)
        total = 0
        for token_id in OWNER_HISTORY.prefix_keys(self.store, (owner,)):
            token_id = str(token_id)
            if LOCK_OWNER.get_latest_data(self.store, token_id, period) == owner:
                total += self.ledger.voting_power(token_id, period)
        return total

    def total_voting_power(self, time: Optional[Time] = None) -> int:
        return self.ledger.total_voting_power(resolve_period(time, self.env))

    def blacklisted_voters(self, start_after: Optional[str] = None, limit: Optional[int] = None) -> List[str]:
        """Sorted page of blacklisted addresses."""
        limit = min(limit or self.config.default_query_limit, self.config.max_query_limit)
        blacklist = sorted(BLACKLIST.load(self.store))
        start = 0
        if start_after is not None:
            if start_after not in blacklist:
                raise AddressNotBlacklistedError(start_after)
            start = blacklist.index(start_after) + 1
        return blacklist[start:start + limit]
