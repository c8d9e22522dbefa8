from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from togglplan.errors import AuthError, TogglPlanError

if TYPE_CHECKING:
    from togglplan.client import TogglPlanClient

API_URL = "https://api.plan.toggl.com/api/v5"
TOKEN_URL = f"{API_URL}/authenticate/token"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthDetails:
    """Authorization scheme and credential for a single request."""

    type: str  # "Basic" or "Bearer"
    credential: str

    @classmethod
    def bearer(cls, token: str) -> AuthDetails:
        return cls("Bearer", token)

    @classmethod
    def basic(cls, user: str, secret: str) -> AuthDetails:
        raw = f"{user}:{secret}".encode()
        return cls("Basic", base64.b64encode(raw).decode("ascii"))

    @property
    def header_value(self) -> str:
        return f"{self.type} {self.credential}"


def build_auth_headers(auth: AuthDetails) -> dict[str, str]:
    return {"Authorization": auth.header_value}


def get_token(client: TogglPlanClient) -> str:
    """Fetch a new bearer token using the OAuth2 password grant.

    POSTs the client's username/password as a form to ``client.token_url``,
    authenticated with HTTP Basic built from the client id and secret, and
    extracts ``access_token`` from the JSON response.

    The token is returned, not cached; caching is up to the caller.

    Raises AuthError if the request fails, the body is not JSON, or the
    token is missing.
    """
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    form = {
        "grant_type": "password",
        "username": client.username,
        "password": client.password,
    }
    auth = AuthDetails.basic(client.client_id, client.client_secret)

    logger.info(f"Requesting bearer token from {client.token_url}")
    try:
        text = client._do_request(client.token_url, "POST", form, headers, auth)
    except TogglPlanError as e:
        raise AuthError(f"Couldn't request for a new bearer token: {e}") from e

    try:
        data = json.loads(text)
    except ValueError as e:
        raise AuthError("Couldn't parse authentication attempt response") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token or not isinstance(token, str):
        raise AuthError("access_token not found in response")

    logger.info(f"Acquired bearer token ({len(token)} chars)")
    return token
