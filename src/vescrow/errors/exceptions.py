"""Exception hierarchy for vescrow.

This module defines the structured exceptions raised by the vote-escrow
ledger, the gauge and the bribe manager. Every error carries a severity, a
category and an optional context so callers can report failures uniformly.

Absent data is never an error: the claim engine skips periods without
bribes or with an existing claim marker instead of raising.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    ARITHMETIC = "arithmetic"
    STATE = "state"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    sender: Optional[str] = None
    period: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "sender": self.sender,
            "period": self.period,
            "metadata": self.metadata,
        }


class VescrowError(Exception):
    """Base exception for all vescrow errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        return " | ".join(parts)


class ValidationError(VescrowError):
    """Validation error."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class AuthorizationError(VescrowError):
    """Sender lacks the right to perform an operation."""

    def __init__(
        self,
        message: str,
        sender: Optional[str] = None,
        right: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.AUTHORIZATION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.sender = sender
        self.right = right

    def to_dict(self) -> Dict[str, Any]:
        """Convert authorization error to dictionary."""
        data = super().to_dict()
        data.update({"sender": self.sender, "right": self.right})
        return data


class MathError(VescrowError):
    """Overflow, underflow or division by zero in checked arithmetic."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.ARITHMETIC)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        return data


class StateError(VescrowError):
    """Operation is not allowed in the current ledger state."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.STATE)
        super().__init__(message, **kwargs)


class StorageError(VescrowError):
    """Storage error."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.STORAGE)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.key = key

    def to_dict(self) -> Dict[str, Any]:
        """Convert storage error to dictionary."""
        data = super().to_dict()
        data["key"] = self.key
        return data


class ConfigurationError(VescrowError):
    """Configuration error."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.config_key = config_key

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data


class NotFoundError(ValidationError):
    """A referenced entity does not exist."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", "NOT_FOUND")
        super().__init__(f"Not found: {message}", **kwargs)


class InsufficientBalanceError(ValidationError):
    """Removing more than a collection holds."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", "INSUFFICIENT_BALANCE")
        super().__init__(f"Insufficient balance: {message}", **kwargs)


class BasicPointsError(ValidationError):
    """Basic points outside of [0, 10000]."""

    def __init__(self, message: str = "Basic points sum exceeds limit", **kwargs):
        kwargs.setdefault("error_code", "BASIC_POINTS")
        super().__init__(message, **kwargs)


# Voting escrow


class LockTimeLimitsError(ValidationError):
    """Lock time must be within [week, max lock time]."""

    def __init__(self, message: str = "Lock time must be within limits (week <-> max lock time)", **kwargs):
        super().__init__(message, error_code="LOCK_TIME_LIMITS", **kwargs)


class LockPeriodsError(ValidationError):
    """Remaining lock periods outside [min lock periods, max lock periods]."""

    def __init__(self, message: str = "Lock periods must be within limits (min <-> max lock periods)", **kwargs):
        super().__init__(message, error_code="LOCK_PERIODS", **kwargs)


class LockDoesNotExistError(NotFoundError):
    """Lock does not exist."""

    def __init__(self, token_id: str, **kwargs):
        super().__init__(f"lock {token_id}", field="token_id", value=token_id, **kwargs)
        self.token_id = token_id


class LockHasNotExpiredError(StateError):
    """The lock has not expired yet."""

    def __init__(self, message: str = "The lock has not expired yet", **kwargs):
        super().__init__(message, error_code="LOCK_NOT_EXPIRED", **kwargs)


class LockIsPermanentError(StateError):
    """Permanent locks cannot be withdrawn or extended in time."""

    def __init__(self, message: str = "The lock is permanent", **kwargs):
        super().__init__(message, error_code="LOCK_PERMANENT", **kwargs)


class LockIsNotPermanentError(StateError):
    """Only permanent locks can be unlocked."""

    def __init__(self, message: str = "The lock is not permanent", **kwargs):
        super().__init__(message, error_code="LOCK_NOT_PERMANENT", **kwargs)


class DecommissionedError(StateError):
    """The escrow is decommissioned."""

    def __init__(self, message: str = "The contract has been decommissioned", **kwargs):
        super().__init__(message, error_code="DECOMMISSIONED", **kwargs)


class WrongAssetError(ValidationError):
    """Asset is not accepted as a deposit."""

    def __init__(self, asset: str, **kwargs):
        super().__init__(f"Wrong asset: {asset}", error_code="WRONG_ASSET", value=asset, **kwargs)


class RequiresAmountError(ValidationError):
    """Deposit amount must be positive."""

    def __init__(self, message: str = "Amount must be greater than zero", **kwargs):
        super().__init__(message, error_code="REQUIRES_AMOUNT", **kwargs)


class AddressBlacklistedError(AuthorizationError):
    """The address is blacklisted."""

    def __init__(self, address: str, **kwargs):
        super().__init__(f"The {address} address is blacklisted", sender=address, error_code="BLACKLISTED", **kwargs)


class AddressBlacklistEmptyError(ValidationError):
    """Blacklist update without any effective change."""

    def __init__(self, message: str = "Append and remove arrays are empty", **kwargs):
        super().__init__(message, error_code="BLACKLIST_EMPTY", **kwargs)


class AddressBlacklistDuplicatedError(ValidationError):
    """An address is listed twice in a blacklist update."""

    def __init__(self, address: str, **kwargs):
        super().__init__(
            f"Address {address} is duplicated in the blacklist update",
            error_code="BLACKLIST_DUPLICATED",
            value=address,
            **kwargs,
        )


class AddressNotBlacklistedError(ValidationError):
    """Pagination cursor is not in the blacklist."""

    def __init__(self, address: str, **kwargs):
        super().__init__(f"The {address} address is not blacklisted", error_code="NOT_BLACKLISTED", value=address, **kwargs)


# Gauge


class ZeroVotingPowerError(ValidationError):
    """User has no voting power to vote with."""

    def __init__(self, user: str, period: int, **kwargs):
        super().__init__(
            f"User {user} has zero voting power in period {period}",
            error_code="ZERO_VOTING_POWER",
            value=user,
            **kwargs,
        )


class DuplicatedVotesError(ValidationError):
    """The same target appears twice in a vote."""

    def __init__(self, message: str = "Votes contain duplicated values", **kwargs):
        super().__init__(message, error_code="DUPLICATED_VOTES", **kwargs)


class InvalidAssetError(ValidationError):
    """Voted target is not whitelisted in the gauge."""

    def __init__(self, asset: str, **kwargs):
        super().__init__(f"Invalid asset voted: {asset}", error_code="INVALID_ASSET", value=asset, **kwargs)


# Bribes


class BribeDistributionError(ValidationError):
    """Malformed bribe distribution."""

    def __init__(self, message: str, **kwargs):
        super().__init__(f"Bribe distribution: {message}", error_code="BRIBE_DISTRIBUTION", **kwargs)


class BribesAlreadyDistributingError(StateError):
    """Bribes of the period already started distributing."""

    def __init__(self, message: str = "Bribes are already being distributed", **kwargs):
        super().__init__(message, error_code="BRIBES_DISTRIBUTING", **kwargs)


class NoBribesError(ValidationError):
    """Nothing to withdraw."""

    def __init__(self, message: str = "No bribes to withdraw", **kwargs):
        super().__init__(message, error_code="NO_BRIBES", **kwargs)


class AssetNotWhitelistedError(ValidationError):
    """Bribe asset is not whitelisted."""

    def __init__(self, asset: str, **kwargs):
        super().__init__(f"Asset not whitelisted: {asset}", error_code="ASSET_NOT_WHITELISTED", value=asset, **kwargs)


class NoPeriodsValidError(ValidationError):
    """No claimable period remains after filtering."""

    def __init__(self, message: str = "No periods are valid for claiming", **kwargs):
        super().__init__(message, error_code="NO_PERIODS_VALID", **kwargs)


class WrongDepositError(ValidationError):
    """Sent funds do not match the expected deposit."""

    def __init__(self, message: str, **kwargs):
        super().__init__(f"Wrong deposit: {message}", error_code="WRONG_DEPOSIT", **kwargs)
