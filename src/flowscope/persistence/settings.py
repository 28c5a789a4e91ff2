"""Typed key/value settings store backing the dashboard's settings page.

Values are stored as text with a declared type and coerced on the way in
and out. Unlike every other table, rows here are updated in place.
"""

import sqlite3
from dataclasses import dataclass
from typing import Any

from ..exceptions import InvalidConfigError, PersistenceError


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    default: str
    type: str  # "boolean" | "number" | "string"
    category: str
    description: str


DEFAULT_SETTINGS: tuple[SettingDefinition, ...] = (
    # Code analysis
    SettingDefinition("codeAnalysis", "true", "boolean", "analysis", "Enable code analysis scanning"),
    SettingDefinition("scanInterval", "0", "number", "analysis", "Scan interval in seconds (0 = on demand)"),
    SettingDefinition("detectionLevel", "1", "number", "analysis", "Detection level (1-3)"),
    # Performance monitoring
    SettingDefinition("performanceMonitoring", "false", "boolean", "performance", "Enable performance monitoring"),
    SettingDefinition("performanceInterval", "10", "number", "performance", "Performance check interval in seconds"),
    SettingDefinition("cpuThreshold", "75", "number", "performance", "CPU usage threshold percentage"),
    SettingDefinition("memoryThreshold", "80", "number", "performance", "Memory usage threshold percentage"),
    SettingDefinition("eventLoopThreshold", "20", "number", "performance", "Event loop lag threshold in ms"),
    SettingDefinition("sustainedAlertDuration", "300", "number", "performance", "Sustained alert duration in seconds"),
    SettingDefinition("alertCooldown", "1800", "number", "performance", "Alert cooldown period in seconds"),
    SettingDefinition("dbRetentionDays", "7", "number", "performance", "Database retention in days"),
)

_DEFINITIONS = {d.key: d for d in DEFAULT_SETTINGS}


def seed_defaults(conn: sqlite3.Connection) -> None:
    """Insert any missing default settings; existing values are kept."""
    conn.executemany(
        """
        INSERT OR IGNORE INTO settings (key, value, type, category, description)
        VALUES (?, ?, ?, ?, ?)
        """,
        [(d.key, d.default, d.type, d.category, d.description) for d in DEFAULT_SETTINGS],
    )
    conn.commit()


def get_settings(conn: sqlite3.Connection) -> dict[str, Any]:
    """All settings as typed values keyed by name."""
    rows = conn.execute("SELECT key, value, type FROM settings ORDER BY key").fetchall()
    return {r["key"]: _decode(r["value"], r["type"]) for r in rows}


def describe_settings(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Every setting with its type, category and description, ordered by category."""
    rows = conn.execute(
        "SELECT key, value, type, category, description FROM settings ORDER BY category, key"
    ).fetchall()
    return [
        {
            "key": r["key"],
            "value": _decode(r["value"], r["type"]),
            "type": r["type"],
            "category": r["category"],
            "description": r["description"],
        }
        for r in rows
    ]


def get_setting(conn: sqlite3.Connection, key: str) -> Any:
    """Typed value of *key*.

    Raises:
        KeyError: if the setting does not exist
    """
    row = conn.execute("SELECT value, type FROM settings WHERE key = ?", (key,)).fetchone()
    if row is None:
        raise KeyError(key)
    return _decode(row["value"], row["type"])


def update_setting(conn: sqlite3.Connection, key: str, value: Any) -> Any:
    """Store *value* for a known setting and return it decoded.

    Raises:
        InvalidConfigError: for an unknown key or a value of the wrong type
    """
    definition = _DEFINITIONS.get(key)
    if definition is None:
        raise InvalidConfigError(key, value, "unknown setting")
    encoded = _encode(key, value, definition.type)
    try:
        conn.execute("UPDATE settings SET value = ? WHERE key = ?", (encoded, key))
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError("update_setting", str(e), table="settings") from e
    return _decode(encoded, definition.type)


def update_settings(conn: sqlite3.Connection, values: dict[str, Any]) -> dict[str, Any]:
    """Validate every value first, then store them all."""
    encoded = {}
    for key, value in values.items():
        definition = _DEFINITIONS.get(key)
        if definition is None:
            raise InvalidConfigError(key, value, "unknown setting")
        encoded[key] = _encode(key, value, definition.type)
    try:
        conn.executemany(
            "UPDATE settings SET value = ? WHERE key = ?",
            [(v, k) for k, v in encoded.items()],
        )
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError("update_settings", str(e), table="settings") from e
    return {k: _decode(v, _DEFINITIONS[k].type) for k, v in encoded.items()}


def reset_settings(conn: sqlite3.Connection) -> dict[str, Any]:
    """Restore every default value."""
    conn.executemany(
        "UPDATE settings SET value = ? WHERE key = ?",
        [(d.default, d.key) for d in DEFAULT_SETTINGS],
    )
    conn.commit()
    return get_settings(conn)


def _decode(value: str, type_name: str) -> Any:
    if type_name == "boolean":
        return value == "true"
    if type_name == "number":
        number = float(value)
        return int(number) if number.is_integer() else number
    return value


def _encode(key: str, value: Any, type_name: str) -> str:
    if type_name == "boolean":
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower()
        raise InvalidConfigError(key, value, "expected a boolean")
    if type_name == "number":
        if isinstance(value, bool):
            raise InvalidConfigError(key, value, "expected a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidConfigError(key, value, "expected a number")
        return str(int(number)) if number.is_integer() else repr(number)
    return str(value)
