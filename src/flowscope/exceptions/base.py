"""Base exception for flowscope."""

from typing import Any, Dict, Optional


class FlowscopeError(Exception):
    """Base exception for all flowscope errors.

    ``details`` carries the structured context (keys such as ``operation``
    or ``reason``) that the API returns alongside the message.
    """

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": type(self).__name__, "message": self.message, **self.details}
