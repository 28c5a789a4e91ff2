"""Configuration loading and management for flowscope.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalyzerConfig)
    2. Global config (~/.flowscope.toml)
    3. Project config (./flowscope.toml)
    4. Explicit config file
    5. Environment variables (FLOWSCOPE_* prefix)
    6. CLI overrides (passed as kwargs)

The settings store (see ``flowscope.persistence.settings``) holds the same
values under the dashboard's camelCase keys; ``AnalyzerConfig.from_settings``
maps them across.

Example:
    >>> config = load_config(detection_level=3)
    >>> config.detection_level
    3
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, get_origin, get_type_hints

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .exceptions import FlowscopeError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "FLOWSCOPE_"

# Settings-store key -> AnalyzerConfig field
SETTINGS_KEY_MAP: dict[str, str] = {
    "codeAnalysis": "code_analysis",
    "scanInterval": "scan_interval",
    "detectionLevel": "detection_level",
    "performanceMonitoring": "performance_monitoring",
    "performanceInterval": "performance_interval",
    "cpuThreshold": "cpu_threshold",
    "memoryThreshold": "memory_threshold",
    "eventLoopThreshold": "event_loop_threshold",
    "sustainedAlertDuration": "sustained_alert_duration",
    "alertCooldown": "alert_cooldown",
    "dbRetentionDays": "db_retention_days",
}


@dataclass(frozen=True)
class AnalyzerConfig:
    """Configuration consumed by the scan pass and the performance monitor.

    Attributes:
        Code analysis:
            code_analysis: Enable scan passes at all
            detection_level: Issue catalog width (1 = critical only, 3 = everything)
            scan_interval: Seconds between scheduled passes (0 = on demand only)

        Performance monitoring:
            performance_monitoring: Start the sampler with the service
            performance_interval: Seconds between samples (<= 0 disables sampling)
            cpu_threshold: CPU percent considered unhealthy
            memory_threshold: Memory percent considered unhealthy
            event_loop_threshold: Event-loop lag in milliseconds considered unhealthy
            sustained_alert_duration: Seconds a condition must hold before alerting
            alert_cooldown: Minimum seconds between two alerts for the same metric
            db_retention_days: Samples and alerts older than this are pruned

        Storage / output:
            db_path: SQLite database file
            verbosity: Logging verbosity level

    Thresholds and the sampling interval are not validated here. The
    monitor degrades on out-of-range values (see ``PerformanceMonitor``).
    """

    # Code analysis
    code_analysis: bool = True
    detection_level: int = 1
    scan_interval: float = 0.0

    # Performance monitoring
    performance_monitoring: bool = False
    performance_interval: float = 10.0
    cpu_threshold: float = 75.0
    memory_threshold: float = 80.0
    event_loop_threshold: float = 20.0
    sustained_alert_duration: float = 300.0
    alert_cooldown: float = 1800.0
    db_retention_days: int = 7

    # Storage / output
    db_path: str = "flowscope.db"
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate structural configuration."""
        if not 1 <= self.detection_level <= 3:
            raise InvalidConfigError(
                "detection_level", self.detection_level, "must be between 1 and 3"
            )
        if self.scan_interval < 0:
            raise InvalidConfigError("scan_interval", self.scan_interval, "must be non-negative")
        if self.sustained_alert_duration < 0:
            raise InvalidConfigError(
                "sustained_alert_duration", self.sustained_alert_duration, "must be non-negative"
            )
        if self.alert_cooldown < 0:
            raise InvalidConfigError("alert_cooldown", self.alert_cooldown, "must be non-negative")
        if self.db_retention_days < 1:
            raise InvalidConfigError(
                "db_retention_days", self.db_retention_days, "must be at least 1"
            )
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "must be quiet, normal or verbose")

    @property
    def sampling_enabled(self) -> bool:
        """Sampling runs only with a positive interval."""
        return self.performance_interval > 0

    @property
    def sustained_alert_duration_ms(self) -> int:
        return int(self.sustained_alert_duration * 1000)

    @property
    def thresholds(self) -> dict[str, float]:
        """Alert thresholds keyed by metric type."""
        return {
            "cpu": self.cpu_threshold,
            "memory": self.memory_threshold,
            "eventLoop": self.event_loop_threshold,
        }

    @classmethod
    def from_settings(
        cls, settings: Mapping[str, Any], base: Optional["AnalyzerConfig"] = None
    ) -> "AnalyzerConfig":
        """Build a config from settings-store values layered on *base*.

        Unknown keys are ignored; the settings table also carries dashboard
        preferences that have no meaning for the core.
        """
        base = base or cls()
        changes: dict[str, Any] = {}
        for key, field_name in SETTINGS_KEY_MAP.items():
            if key in settings and settings[key] is not None:
                changes[field_name] = settings[key]
        if "detection_level" in changes:
            changes["detection_level"] = int(changes["detection_level"])
        if "db_retention_days" in changes:
            changes["db_retention_days"] = int(changes["db_retention_days"])
        return replace(base, **changes)


DEFAULT_CONFIG = AnalyzerConfig()


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalyzerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are skipped so unset CLI options keep lower layers.

    Returns:
        Validated AnalyzerConfig instance

    Raises:
        FlowscopeError: If a config file is invalid or missing
        InvalidConfigError: If a merged value fails validation
    """
    merged: dict[str, Any] = {}

    discovered = [
        ("global config", Path.home() / ".flowscope.toml"),
        ("project config", Path.cwd() / "flowscope.toml"),
    ]
    for label, path in discovered:
        if path.exists():
            merged.update(_read_toml(path, label))

    if config_file is not None:
        if not config_file.exists():
            raise FlowscopeError(f"Config file not found: {config_file}")
        merged.update(_read_toml(config_file, "config file"))

    merged.update(_load_env_vars())
    merged.update(_cli_overrides(overrides))

    known = {f.name for f in fields(AnalyzerConfig)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise FlowscopeError(f"Invalid configuration: unknown key(s) {', '.join(unknown)}")

    return AnalyzerConfig(**merged)


def _cli_overrides(overrides: dict[str, Any]) -> dict[str, Any]:
    """Fold --verbose/--quiet into ``verbosity`` and drop unset options."""
    result = {k: v for k, v in overrides.items() if k not in ("verbose", "quiet") and v is not None}
    if overrides.get("quiet"):
        result["verbosity"] = "quiet"
    elif overrides.get("verbose"):
        result["verbosity"] = "verbose"
    return result


def _load_env_vars() -> dict[str, Any]:
    """Collect FLOWSCOPE_* environment variables.

    Every AnalyzerConfig field can be set, e.g. FLOWSCOPE_DETECTION_LEVEL=3
    or FLOWSCOPE_PERFORMANCE_MONITORING=true.
    """
    hints = get_type_hints(AnalyzerConfig)
    result: dict[str, Any] = {}

    for f in fields(AnalyzerConfig):
        env_key = f"{ENV_PREFIX}{f.name.upper()}"
        raw = os.environ.get(env_key)
        if raw is None:
            continue
        try:
            parsed = _parse_env_value(raw, hints[f.name])
        except ValueError as e:
            raise FlowscopeError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[f.name] = parsed

    return result


_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Coerce an environment string to the field's declared type."""
    if type_hint is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"expected true/false, got '{value}'")
    if type_hint is int:
        return int(value)
    if type_hint is float:
        return float(value)
    if type_hint is str or get_origin(type_hint) is Literal:
        return value
    return None


def _read_toml(path: Path, label: str) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise FlowscopeError(f"Invalid {label} '{path}': {e}")
