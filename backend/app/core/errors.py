from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
    """
    Base class for failures the relay reports back to the caller.

    Carries the HTTP status, a short machine-readable ``error`` label and a
    human-readable ``details`` string.
    """

    status_code: int = 500
    error: str = "Relay Error"

    def __init__(self, details: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(details)
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, "details": self.details}


class ConfigurationError(RelayError):
    """The server-held credential (or other required setting) is missing."""

    status_code = 500
    error = "Configuration Error"


class ValidationError(RelayError):
    """The request body could not be parsed or used."""

    status_code = 400
    error = "Invalid JSON"


class UpstreamError(RelayError):
    """The completion API could not be reached or replied with non-JSON."""

    status_code = 500
    error = "Request Failed"
