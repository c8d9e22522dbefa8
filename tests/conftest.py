from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from togglplan.client import TogglPlanClient


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str]  # lower-cased names
    body: bytes


class FakeTogglPlan(ThreadingHTTPServer):
    """Local HTTP server replaying scripted responses per path.

    Each path holds a list of ``(status, body)`` or ``(status, body, headers)``
    tuples; responses are consumed in order and the last one repeats.
    """

    daemon_threads = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _Handler)
        self.routes: dict[str, list[tuple]] = {}
        self.received: list[RecordedRequest] = []
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    def add(self, path: str, *responses: tuple) -> None:
        self.routes[path] = list(responses)

    def calls(self, path: str | None = None) -> list[RecordedRequest]:
        with self._lock:
            return [r for r in self.received if path is None or r.path == path]

    def record_and_reply(self, req: RecordedRequest) -> tuple[int, str, dict[str, str]]:
        with self._lock:
            self.received.append(req)
            script = self.routes.get(req.path)
            if not script:
                return 404, "", {}
            entry = script.pop(0) if len(script) > 1 else script[0]
        status, body, *rest = entry
        return status, body, (rest[0] if rest else {})


class _Handler(BaseHTTPRequestHandler):
    server: FakeTogglPlan

    def _handle(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        req = RecordedRequest(
            method=self.command,
            path=self.path.split("?", 1)[0],
            headers={k.lower(): v for k, v in self.headers.items()},
            body=body,
        )
        status, payload, headers = self.server.record_and_reply(req)
        data = payload.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        for key, value in headers.items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _handle

    def log_message(self, format, *args):  # noqa: A002
        pass


@pytest.fixture
def api_server():
    """Throwaway Toggl Plan stand-in on a random local port."""
    server = FakeTogglPlan()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def make_client(api_server):
    """Build clients pointed at ``api_server`` with zero backoff."""
    created: list[TogglPlanClient] = []

    def _make(**options) -> TogglPlanClient:
        settings = {
            "api_url": api_server.url,
            "token_url": f"{api_server.url}/authenticate/token",
            "timeout": 5.0,
            "retry_wait_min": 0.0,
            "retry_wait_max": 0.0,
        }
        credentials = [
            options.pop("username", "user@example.com"),
            options.pop("password", "s3cret"),
            options.pop("client_id", "app-key"),
            options.pop("client_secret", "app-secret"),
        ]
        settings.update(options)
        client = TogglPlanClient(*credentials, **settings)
        # ignore HTTP(S)_PROXY so loopback traffic reaches the fake server
        client.session.trust_env = False
        created.append(client)
        return client

    yield _make
    for client in created:
        client.close()


@pytest.fixture
def unused_url():
    """URL of a local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove any TOGGL_PLAN_* variables so tests see a blank environment."""
    for key in (
        "TOGGL_PLAN_USERNAME",
        "TOGGL_PLAN_PASSWORD",
        "TOGGL_PLAN_CLIENT_ID",
        "TOGGL_PLAN_CLIENT_SECRET",
        "TOGGL_PLAN_BEARER_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
