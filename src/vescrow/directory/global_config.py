"""
Address directory.

Holds the owner and the role addresses that every engine consults for
access control: which address is the voting escrow, who may guard the
blacklist, who collects bribe fees, and so on.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..errors.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..storage.backend import StorageBackend
from ..storage.maps import STR, Codec, Item, Map

logger = logging.getLogger(__name__)

AT_VE_GUARDIAN = "VE_GUARDIAN"
AT_VOTING_ESCROW = "VOTING_ESCROW"
AT_ASSET_GAUGE = "ASSET_GAUGE"
AT_BRIBE_MANAGER = "BRIBE_MANAGER"
AT_BRIBE_WHITELIST_CONTROLLER = "BRIBE_WHITELIST_CONTROLLER"
AT_FEE_COLLECTOR = "FEE_COLLECTOR"
AT_FREE_BRIBES = "FREE_BRIBES"

OWNER = Item("directory_owner", STR)
ADDRESSES = Map("directory_addresses", (str,), STR)
ADDRESS_LISTS = Map("directory_address_lists", (str,), Codec(list, list))


class GlobalConfig:
    """Store-backed owner and role registry."""

    def __init__(self, store: StorageBackend, owner: Optional[str] = None):
        self.store = store
        if owner is not None and not OWNER.exists(store):
            OWNER.save(store, owner)
            logger.info(f"Directory owner set to {owner}")

    @property
    def owner(self) -> str:
        return OWNER.load(self.store)

    def assert_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise AuthorizationError(f"{sender} is not the owner", sender=sender, right="owner")

    def set_owner(self, sender: str, new_owner: str) -> None:
        self.assert_owner(sender)
        with self.store.transaction():
            OWNER.save(self.store, new_owner)
        logger.info(f"Directory owner changed from {sender} to {new_owner}")

    def set_addresses(self, sender: str, addresses: Dict[str, str]) -> None:
        """Assign single addresses to address types."""
        self.assert_owner(sender)
        with self.store.transaction():
            for address_type, address in addresses.items():
                ADDRESSES.save(self.store, address_type, address)

    def set_address_list(self, sender: str, address_type: str, addresses: Iterable[str]) -> None:
        self.assert_owner(sender)
        addresses = list(addresses)
        if len(set(addresses)) != len(addresses):
            raise ValidationError(f"Duplicated addresses for {address_type}", field=address_type)
        with self.store.transaction():
            ADDRESS_LISTS.save(self.store, address_type, addresses)

    def get_address(self, address_type: str) -> str:
        address = ADDRESSES.may_load(self.store, address_type)
        if address is None:
            raise NotFoundError(f"address type {address_type}")
        return address

    def get_address_list(self, address_type: str) -> List[str]:
        return ADDRESS_LISTS.may_load(self.store, address_type) or []

    def is_in_list(self, address_type: str, address: str) -> bool:
        return address in self.get_address_list(address_type)

    def has_access(self, sender: str, address_type: str) -> bool:
        if ADDRESSES.may_load(self.store, address_type) == sender:
            return True
        return self.is_in_list(address_type, sender)

    def assert_has_access(self, sender: str, address_type: str) -> None:
        if not self.has_access(sender, address_type):
            raise AuthorizationError(
                f"{sender} does not hold {address_type}", sender=sender, right=address_type
            )

    def assert_owner_or_address_type(self, sender: str, address_type: str) -> None:
        if sender == self.owner:
            return
        self.assert_has_access(sender, address_type)
