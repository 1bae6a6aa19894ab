"""vescrow error handling.

Structured exceptions shared by the escrow ledger, the gauge and the bribe
manager.
"""

from .exceptions import (
    AddressBlacklistDuplicatedError,
    AddressBlacklistedError,
    AddressBlacklistEmptyError,
    AddressNotBlacklistedError,
    AssetNotWhitelistedError,
    AuthorizationError,
    BasicPointsError,
    BribeDistributionError,
    BribesAlreadyDistributingError,
    ConfigurationError,
    DecommissionedError,
    DuplicatedVotesError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InsufficientBalanceError,
    InvalidAssetError,
    LockDoesNotExistError,
    LockHasNotExpiredError,
    LockIsNotPermanentError,
    LockIsPermanentError,
    LockPeriodsError,
    LockTimeLimitsError,
    MathError,
    NoBribesError,
    NoPeriodsValidError,
    NotFoundError,
    RequiresAmountError,
    StateError,
    StorageError,
    ValidationError,
    VescrowError,
    WrongAssetError,
    WrongDepositError,
    ZeroVotingPowerError,
)

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "VescrowError",
    "ValidationError",
    "AuthorizationError",
    "MathError",
    "StateError",
    "StorageError",
    "ConfigurationError",
    "NotFoundError",
    "InsufficientBalanceError",
    "BasicPointsError",
    # Voting escrow
    "LockTimeLimitsError",
    "LockPeriodsError",
    "LockDoesNotExistError",
    "LockHasNotExpiredError",
    "LockIsPermanentError",
    "LockIsNotPermanentError",
    "DecommissionedError",
    "WrongAssetError",
    "RequiresAmountError",
    "AddressBlacklistedError",
    "AddressBlacklistEmptyError",
    "AddressBlacklistDuplicatedError",
    "AddressNotBlacklistedError",
    # Gauge
    "ZeroVotingPowerError",
    "DuplicatedVotesError",
    "InvalidAssetError",
    # Bribes
    "BribeDistributionError",
    "BribesAlreadyDistributingError",
    "NoBribesError",
    "AssetNotWhitelistedError",
    "NoPeriodsValidError",
    "WrongDepositError",
]
