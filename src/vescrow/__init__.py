"""
vescrow: vote-escrow voting power, gauge voting and bribe distribution.

Holders lock an asset for voting power that decays toward the lock's end,
direct that power at gauge targets and collect bribes paid to the targets'
voters in proportion to their share of each period.
"""

__version__ = "0.1.0"

from .config import VescrowConfig, get_global_config, set_global_config
from .system import VeSystem

__all__ = [
    "__version__",
    "VescrowConfig",
    "get_global_config",
    "set_global_config",
    "VeSystem",
]
