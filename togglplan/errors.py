"""Exception hierarchy for the Toggl Plan client.

Each error carries ``result``, a short human-readable summary of what the
failed call produced (for example ``"Unauthorized"`` or ``"404"``).
"""

from __future__ import annotations


class TogglPlanError(RuntimeError):
    """Base class for every error raised by this package."""

    default_result = "Error"

    def __init__(self, message: str, result: str | None = None) -> None:
        super().__init__(message)
        self.result = self.default_result if result is None else result


class ConfigError(TogglPlanError):
    """Raised when required configuration values are missing."""

    default_result = "Missing configuration"


class AuthError(TogglPlanError):
    """Raised when a bearer token could not be acquired."""

    default_result = "Couldn't authenticate"


class TransportError(TogglPlanError):
    """Raised when the request never produced a response, even after retries."""

    default_result = "Error running request"


class ResponseReadError(TogglPlanError):
    default_result = "Error reading response"


class HTTPStatusError(TogglPlanError):
    """Raised for a terminal non-2xx response."""

    def __init__(self, status_code: int, reason: str = "", url: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(reason or str(status_code), result=str(status_code))


class UnauthorizedError(HTTPStatusError):
    """Raised for a 401 response. Never retried."""

    def __init__(self, url: str = "") -> None:
        super().__init__(401, "Unauthorized", url)
        self.result = "Unauthorized"
