"""Configuration exceptions: invalid settings and unusable thresholds."""

from typing import Any

from .base import FlowscopeError


class ConfigurationError(FlowscopeError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class ThresholdConfigError(ConfigurationError):
    """Raised when an alert threshold cannot be used (zero or negative)."""

    def __init__(self, metric: str, threshold: Any):
        super().__init__(
            f"Threshold for {metric} must be positive, got {threshold}",
            details={"metric": metric, "threshold": str(threshold)},
        )
        self.metric = metric
        self.threshold = threshold
