"""Dashboard API server for flowscope.

Requires optional ``[serve]`` dependencies::

    pip install flowscope[serve]
"""

from __future__ import annotations

import importlib.util

SERVE_DEPENDENCIES = ("starlette", "uvicorn")


def _check_deps() -> None:
    """Raise a clear error if [serve] dependencies are missing."""
    missing = [name for name in SERVE_DEPENDENCIES if importlib.util.find_spec(name) is None]
    if missing:
        raise ImportError(
            f"Missing serve dependencies: {', '.join(missing)}. "
            "Install with: pip install flowscope[serve]"
        )
