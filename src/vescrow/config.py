"""
Configuration for vescrow.

This module holds the protocol constants (epoch, period length, lock bounds)
and runtime settings (query limits, storage backend) shared by every engine.
Values can be overridden through ``VESCROW_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Monday, October 31, 2022 00:00:00 UTC
EPOCH_START = 1667174400
WEEK = 7 * 86400
# 2 years (104 weeks)
MAX_LOCK_TIME = 2 * 365 * 86400
MIN_LOCK_PERIODS = 1
MAX_LOCK_PERIODS = MAX_LOCK_TIME // WEEK

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
CLAIM_BATCH_PERIODS = 100


@dataclass
class VescrowConfig:
    """Protocol and runtime configuration."""

    # Period clock
    epoch_start: int = EPOCH_START
    week_seconds: int = WEEK

    # Lock bounds
    max_lock_time: int = MAX_LOCK_TIME
    min_lock_periods: int = MIN_LOCK_PERIODS

    # Claims and queries
    claim_batch_periods: int = CLAIM_BATCH_PERIODS
    default_query_limit: int = DEFAULT_LIMIT
    max_query_limit: int = MAX_LIMIT

    # Storage
    storage_backend: str = "memory"  # memory, sqlite
    database_path: str = "vescrow.db"

    environment_overrides: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Apply environment overrides and validate."""
        self._apply_environment_overrides()
        self.validate()

    def _apply_environment_overrides(self):
        """Apply environment variable overrides."""
        env_mappings = {
            "VESCROW_EPOCH_START": ("epoch_start", int),
            "VESCROW_WEEK_SECONDS": ("week_seconds", int),
            "VESCROW_MAX_LOCK_TIME": ("max_lock_time", int),
            "VESCROW_MIN_LOCK_PERIODS": ("min_lock_periods", int),
            "VESCROW_CLAIM_BATCH_PERIODS": ("claim_batch_periods", int),
            "VESCROW_DEFAULT_QUERY_LIMIT": ("default_query_limit", int),
            "VESCROW_MAX_QUERY_LIMIT": ("max_query_limit", int),
            "VESCROW_STORAGE_BACKEND": ("storage_backend", str),
            "VESCROW_DATABASE_PATH": ("database_path", str),
        }

        for env_var, (attr_name, attr_type) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    value = attr_type(env_value)
                    setattr(self, attr_name, value)
                    self.environment_overrides[env_var] = value
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid environment variable {env_var}={env_value}: {e}")

    def validate(self) -> None:
        """Validate configuration."""
        if self.epoch_start < 0:
            raise ConfigurationError("Epoch start must not be negative", config_key="epoch_start")

        if self.week_seconds <= 0:
            raise ConfigurationError("Period length must be positive", config_key="week_seconds")

        if self.max_lock_time < self.week_seconds:
            raise ConfigurationError("Max lock time must cover at least one period", config_key="max_lock_time")

        if not 1 <= self.min_lock_periods <= self.max_lock_periods:
            raise ConfigurationError(
                "Min lock periods must be within [1, max lock periods]", config_key="min_lock_periods"
            )

        if self.claim_batch_periods <= 0:
            raise ConfigurationError("Claim batch must be positive", config_key="claim_batch_periods")

        if not 0 < self.default_query_limit <= self.max_query_limit:
            raise ConfigurationError(
                "Default query limit must be within (0, max query limit]", config_key="default_query_limit"
            )

        if self.storage_backend not in ("memory", "sqlite"):
            raise ConfigurationError(
                f"Unknown storage backend: {self.storage_backend}", config_key="storage_backend"
            )

    @property
    def max_lock_periods(self) -> int:
        """Longest lock expressed in periods."""
        return self.max_lock_time // self.week_seconds

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "epoch_start": self.epoch_start,
            "week_seconds": self.week_seconds,
            "max_lock_time": self.max_lock_time,
            "min_lock_periods": self.min_lock_periods,
            "claim_batch_periods": self.claim_batch_periods,
            "default_query_limit": self.default_query_limit,
            "max_query_limit": self.max_query_limit,
            "storage_backend": self.storage_backend,
            "database_path": self.database_path,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "VescrowConfig":
        """Create configuration from dictionary."""
        return cls(**config_dict)

    def __str__(self) -> str:
        return (
            f"VescrowConfig(epoch_start={self.epoch_start}, week_seconds={self.week_seconds}, "
            f"max_lock_periods={self.max_lock_periods}, storage_backend={self.storage_backend})"
        )


_global_config: Optional[VescrowConfig] = None


def get_global_config() -> VescrowConfig:
    """Get the global configuration."""
    global _global_config
    if _global_config is None:
        _global_config = VescrowConfig()
    return _global_config


def set_global_config(config: VescrowConfig) -> None:
    """Replace the global configuration."""
    global _global_config
    config.validate()
    _global_config = config
