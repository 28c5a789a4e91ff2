"""Exception hierarchy for flowscope."""

from .analysis import (
    AnalysisError,
    CollectorError,
    InputError,
    PartialScanError,
)
from .base import FlowscopeError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    ThresholdConfigError,
)
from .persistence import PersistenceError

__all__ = [
    "FlowscopeError",
    "AnalysisError",
    "InputError",
    "CollectorError",
    "PartialScanError",
    "ConfigurationError",
    "InvalidConfigError",
    "ThresholdConfigError",
    "PersistenceError",
]
