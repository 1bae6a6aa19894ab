"""Owner and role address directory."""

from .global_config import (
    AT_ASSET_GAUGE,
    AT_BRIBE_MANAGER,
    AT_BRIBE_WHITELIST_CONTROLLER,
    AT_FEE_COLLECTOR,
    AT_FREE_BRIBES,
    AT_VE_GUARDIAN,
    AT_VOTING_ESCROW,
    GlobalConfig,
)

__all__ = [
    "GlobalConfig",
    "AT_VE_GUARDIAN",
    "AT_VOTING_ESCROW",
    "AT_ASSET_GAUGE",
    "AT_BRIBE_MANAGER",
    "AT_BRIBE_WHITELIST_CONTROLLER",
    "AT_FEE_COLLECTOR",
    "AT_FREE_BRIBES",
]
