"""
Asset transfer primitive.

Engines move deposits, bribes and rewards through a :class:`Bank`. The
store-backed implementation keeps balances in the same storage as the
ledgers, so transfers made during a failed operation are rolled back with it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from ..errors.exceptions import InsufficientBalanceError
from ..storage.backend import StorageBackend
from ..storage.maps import INT, Map
from .assets import Asset, AssetInfo
from .math import checked_add

logger = logging.getLogger(__name__)


class Bank(ABC):
    """Balance and transfer interface."""

    @abstractmethod
    def balance(self, address: str, info: AssetInfo) -> int:
        pass

    @abstractmethod
    def transfer(self, sender: str, recipient: str, asset: Asset) -> None:
        """Move ``asset`` from ``sender`` to ``recipient``."""
        pass

    def transfer_many(self, sender: str, recipient: str, assets: Iterable[Asset]) -> None:
        for asset in assets:
            self.transfer(sender, recipient, asset)


BALANCES = Map("bank_balances", (str, str), INT)


class StoreBank(Bank):
    """Bank keeping balances in a :class:`StorageBackend`."""

    def __init__(self, store: StorageBackend):
        self.store = store

    def balance(self, address: str, info: AssetInfo) -> int:
        return BALANCES.may_load(self.store, (address, str(info))) or 0

    def mint(self, address: str, asset: Asset) -> None:
        with self.store.transaction():
            BALANCES.update(
                self.store, (address, str(asset.info)), lambda b: checked_add(b or 0, asset.amount)
            )
        logger.debug(f"Minted {asset} to {address}")

    def transfer(self, sender: str, recipient: str, asset: Asset) -> None:
        if asset.is_zero():
            return
        with self.store.transaction():
            available = self.balance(sender, asset.info)
            if available < asset.amount:
                raise InsufficientBalanceError(f"{sender} holds {available}{asset.info}, needs {asset}")
            BALANCES.save(self.store, (sender, str(asset.info)), available - asset.amount)
            BALANCES.update(
                self.store, (recipient, str(asset.info)), lambda b: checked_add(b or 0, asset.amount)
            )
        logger.debug(f"Transferred {asset} from {sender} to {recipient}")
