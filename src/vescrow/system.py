"""
System assembly.

Wires the voting escrow, the asset gauge and the bribe manager over one
storage backend, one bank and one directory, so that a lock change in the
escrow reaches the gauge inside the same transaction.
"""

import logging
from typing import Iterable, Optional

from .config import VescrowConfig, get_global_config
from .core.assets import Asset, AssetInfo
from .core.bank import StoreBank
from .core.period import Env
from .directory.global_config import (
    AT_ASSET_GAUGE,
    AT_BRIBE_MANAGER,
    AT_VOTING_ESCROW,
    GlobalConfig,
)
from .escrow.engine import VotingEscrow
from .gauge.engine import AssetGauge
from .gauge.state import GaugeConfig
from .bribes.manager import BribeManager
from .storage.backend import StorageBackend, create_backend

logger = logging.getLogger(__name__)


class VeSystem:
    """Escrow, gauge and bribe manager sharing state."""

    def __init__(
        self,
        owner: str,
        env: Env,
        deposit_assets: Iterable[AssetInfo] = (),
        gauges: Iterable[GaugeConfig] = (),
        bribe_whitelist: Iterable[AssetInfo] = (),
        bribe_fee: Optional[Asset] = None,
        store: Optional[StorageBackend] = None,
        config: Optional[VescrowConfig] = None,
    ):
        self.config = config or get_global_config()
        self.store = store if store is not None else create_backend(self.config)
        self.env = env
        self.bank = StoreBank(self.store)
        self.directory = GlobalConfig(self.store, owner=owner)

        self.escrow = VotingEscrow(
            self.store, self.bank, self.directory, env, deposit_assets=deposit_assets, config=self.config
        )
        self.gauge = AssetGauge(self.store, self.directory, env, gauges=list(gauges), escrow=self.escrow)
        self.bribes = BribeManager(
            self.store,
            self.bank,
            self.directory,
            env,
            self.gauge,
            whitelist=bribe_whitelist,
            fee=bribe_fee,
            config=self.config,
        )

        self.escrow.register_listener(self.gauge)
        if owner == self.directory.owner:
            self._register_addresses(owner)

    def _register_addresses(self, owner: str) -> None:
        self.directory.set_addresses(
            owner,
            {
                AT_VOTING_ESCROW: self.escrow.address,
                AT_ASSET_GAUGE: self.gauge.address,
                AT_BRIBE_MANAGER: self.bribes.address,
            },
        )
        escrow_config = self.escrow.escrow_config()
        if self.gauge.address not in escrow_config.push_update_contracts:
            self.escrow.update_config(
                owner, push_update_contracts=escrow_config.push_update_contracts + [self.gauge.address]
            )
        logger.info(f"System wired: escrow -> {self.gauge.address}")

    def close(self) -> None:
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
