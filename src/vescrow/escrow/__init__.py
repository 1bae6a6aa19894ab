"""Vote-escrow locks and the checkpointed voting power ledger."""

from .checkpoint import (
    CheckpointLedger,
    adjust_vp_and_slope,
    calc_coefficient,
    calc_voting_power,
    point_voting_power,
)
from .engine import LockListener, VotingEscrow
from .state import TOTAL_VP_TOKEN_ID, End, EscrowConfig, Lock, LockInfo, Point

__all__ = [
    "CheckpointLedger",
    "adjust_vp_and_slope",
    "calc_coefficient",
    "calc_voting_power",
    "point_voting_power",
    "LockListener",
    "VotingEscrow",
    "TOTAL_VP_TOKEN_ID",
    "End",
    "EscrowConfig",
    "Lock",
    "LockInfo",
    "Point",
]
