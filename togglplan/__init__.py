"""Minimal authenticated client for the Toggl Plan REST API.

This package provides:
- OAuth2 password-grant token acquisition with an in-memory token cache
- Authenticated requests with bounded retry on transient failures

Example:
    >>> import togglplan
    >>> client = togglplan.new(username, password, client_id, client_secret)
    >>> body = client.request("https://api.plan.toggl.com/api/v5/me")
    >>> togglplan.get_token(client)  # persist for the next run
"""

from togglplan.auth import AuthDetails
from togglplan.client import TogglPlanClient, get_token, merge_headers, new, request
from togglplan.errors import (
    AuthError,
    ConfigError,
    HTTPStatusError,
    ResponseReadError,
    TogglPlanError,
    TransportError,
    UnauthorizedError,
)

__all__ = [
    "AuthDetails",
    "AuthError",
    "ConfigError",
    "HTTPStatusError",
    "ResponseReadError",
    "TogglPlanClient",
    "TogglPlanError",
    "TransportError",
    "UnauthorizedError",
    "get_token",
    "merge_headers",
    "new",
    "request",
]
