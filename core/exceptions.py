"""
Exception hierarchy for the notification parser.
Only ConfigurationError is allowed to stop the process; the others are
recovered inside a single pipeline invocation.
"""
from typing import Any, Dict, Optional


class FinMailError(Exception):
    """Base exception carrying a message and structured details for logging."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FinMailError):
    """Invalid settings or institution registry."""
    pass


class LLMError(FinMailError):
    """Classifier call failed, missed its deadline or answered outside the closed set."""
    pass


class DeliveryError(FinMailError):
    """Posting to the ledger backend failed."""

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of the rejected post, None for transport failures."""
        return self.details.get("status_code")
