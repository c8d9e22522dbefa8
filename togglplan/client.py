from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

from togglplan.auth import API_URL, TOKEN_URL, AuthDetails, build_auth_headers
from togglplan.auth import get_token as fetch_token
from togglplan.errors import (
    HTTPStatusError,
    ResponseReadError,
    TogglPlanError,
    TransportError,
    UnauthorizedError,
)
from togglplan.retry import MAX_ATTEMPTS, RETRY_WAIT_MAX, RETRY_WAIT_MIN, session_with_retries
from togglplan.utils.env import ENV_PREFIX, load_credentials

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}

Body = bytes | str | Mapping[str, Any] | None


def merge_headers(defaults: Mapping[str, str], overrides: Mapping[str, str]) -> dict[str, str]:
    """Return ``defaults`` updated with ``overrides``; names compare case-insensitively."""
    merged = CaseInsensitiveDict(defaults)
    merged.update(overrides)
    return dict(merged)


def _status_text(res: requests.Response) -> str:
    try:
        return HTTPStatus(res.status_code).phrase
    except ValueError:
        return res.reason or ""


def _decode_body(res: requests.Response, content: bytes) -> str:
    # Only trust a charset the server declared; requests guesses ISO-8859-1 for text/*.
    declared = "charset=" in res.headers.get("Content-Type", "").lower()
    encoding = (res.encoding if declared else None) or "utf-8"
    try:
        return content.decode(encoding, errors="replace")
    except LookupError:
        logger.debug(f"Unknown response charset {encoding!r}, decoding as UTF-8")
        return content.decode("utf-8", errors="replace")


@dataclass
class TogglPlanClient:
    """Stateful Toggl Plan API client.

    Holds the account credentials and a cached bearer token. The token is
    fetched on first use and reused until cleared; a 401 leaves it in place
    unless ``refresh_on_unauthorized`` is set.

    Transient failures are retried with waits between ``retry_wait_min`` and
    ``retry_wait_max``; a server Retry-After is honoured up to ``retry_wait_max``.

    Not safe for concurrent use; give each thread its own client.
    """

    username: str
    password: str = field(repr=False)
    client_id: str
    client_secret: str = field(repr=False)
    bearer_token: str = field(default="", repr=False)
    api_url: str = API_URL
    token_url: str = TOKEN_URL
    timeout: float = 30.0
    max_attempts: int = MAX_ATTEMPTS
    retry_wait_min: float = RETRY_WAIT_MIN
    retry_wait_max: float = RETRY_WAIT_MAX
    refresh_on_unauthorized: bool = False

    def __post_init__(self) -> None:
        self.session = session_with_retries(
            self.max_attempts, self.retry_wait_min, self.retry_wait_max
        )

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, dotenv: bool = True, **overrides
    ) -> TogglPlanClient:
        settings: dict[str, Any] = dict(load_credentials(prefix, dotenv=dotenv))
        settings.update(overrides)
        return cls(**settings)

    def __enter__(self) -> TogglPlanClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def get_token(self) -> str:
        """Return the cached bearer token ("" if none) so it can be stored elsewhere."""
        return self.bearer_token

    def clear_token(self) -> None:
        self.bearer_token = ""

    def request(
        self,
        url: str,
        method: str = "GET",
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Send an authenticated request and return the response body as text.

        Args:
            url: Absolute URL, or a path starting with "/" relative to ``api_url``
            method: HTTP method (GET, POST, ...)
            body: Request body; bytes/str are sent as-is, a mapping is form-encoded
            headers: Extra headers, overriding the default JSON Content-Type

        Raises:
            AuthError: No token was cached and one could not be fetched
            UnauthorizedError: The API answered 401
            HTTPStatusError: Any other non-2xx response after retries
            TransportError: No response after retries
        """
        fetched = False
        if not self.bearer_token:
            self.bearer_token = fetch_token(self)
            fetched = True

        final_headers = merge_headers(DEFAULT_HEADERS, headers or {})
        target = self._resolve(url)

        try:
            return self._do_request(
                target, method, body, final_headers, AuthDetails.bearer(self.bearer_token)
            )
        except UnauthorizedError:
            if fetched or not self.refresh_on_unauthorized:
                raise
            logger.info("Cached bearer token rejected, fetching a new one")
            self.clear_token()
            self.bearer_token = fetch_token(self)
            return self._do_request(
                target, method, body, final_headers, AuthDetails.bearer(self.bearer_token)
            )

    def _resolve(self, url: str) -> str:
        if url.startswith("/"):
            return f"{self.api_url.rstrip('/')}{url}"
        return url

    def _do_request(
        self,
        url: str,
        method: str,
        body: Body,
        headers: Mapping[str, str],
        auth: AuthDetails | None = None,
    ) -> str:
        """Send one logical request through the retrying session.

        Retries (network errors, 429, 5xx except 501) happen inside the
        session's adapter; whatever comes back here is terminal.
        """
        method = method.upper()
        req_headers = dict(headers)
        if auth is not None:
            req_headers.update(build_auth_headers(auth))
        if isinstance(body, str):
            body = body.encode("utf-8")

        try:
            res = self.session.request(
                method,
                url,
                data=body or None,
                headers=req_headers,
                timeout=self.timeout,
                stream=True,
            )
        except (
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidURL,
            requests.exceptions.InvalidHeader,
        ) as e:
            raise TogglPlanError(
                f"Invalid request {method} {url}: {e}", "Error building request"
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed after {self.max_attempts} attempts: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        with res:
            logger.debug(f"{method} {url} -> {res.status_code}")
            if res.status_code == 401:
                raise UnauthorizedError(url)
            if not 200 <= res.status_code < 300:
                logger.warning(f"{method} {url} returned {res.status_code}")
                raise HTTPStatusError(res.status_code, _status_text(res), url)
            try:
                content = res.content
            except requests.exceptions.RequestException as e:
                raise ResponseReadError(f"Reading response from {url} failed: {e}") from e
        return _decode_body(res, content)


def new(
    username: str,
    password: str,
    client_id: str,
    client_secret: str,
    bearer_token: str = "",
    **options,
) -> TogglPlanClient:
    """Create a client; pass an empty ``bearer_token`` to fetch one on first use."""
    return TogglPlanClient(username, password, client_id, client_secret, bearer_token, **options)


def request(
    client: TogglPlanClient,
    url: str,
    method: str = "GET",
    body: Body = b"",
    headers: Mapping[str, str] | None = None,
) -> str:
    return client.request(url, method, body, headers)


def get_token(client: TogglPlanClient) -> str:
    return client.get_token()
