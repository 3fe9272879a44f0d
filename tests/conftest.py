"""
Shared fixtures: an app wired to an in-memory fake of the sales API.

FakeApi stands in for the `requests` module. Routes are keyed by
(method, path) and hold either a response tuple or a callable.
"""

import json
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import requests

from tractor_sales import create_app

API_URL = "http://api.test"

ADMIN_USER = {"id": "u-admin", "username": "admin", "email": "admin@example.com", "role": "admin"}
MANAGER_USER = {"id": "u-mgr", "username": "meena", "email": "meena@example.com", "role": "sales_manager"}


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeApi:
    """Records every call; unknown routes answer 404."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def on(self, method: str, path: str, status: int = 200, body: Any = None, handler: Optional[Callable] = None):
        self.routes[(method.upper(), path)] = handler or (status, body)
        return self

    def fail(self, method: str, path: str):
        """Simulate a transport failure (no response at all)."""
        def boom(**_kwargs):
            raise requests.ConnectionError("connection refused")
        return self.on(method, path, handler=boom)

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(API_URL):] if url.startswith(API_URL) else url
        call = {"method": method, "path": path, "params": params, "json": json, "headers": headers or {}}
        with self._lock:
            self.calls.append(call)

        route = self.routes.get((method.upper(), path))
        if route is None:
            return FakeResponse(404, {"message": "Not found"})
        if callable(route):
            result = route(**call)
            if isinstance(result, FakeResponse):
                return result
            status, body = result
            return FakeResponse(status, body)
        status, body = route
        return FakeResponse(status, body)

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method and c["path"] == path]


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def app(api):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "RATELIMIT_ENABLED": False,
            "API_BASE_URL": API_URL,
            "DASHBOARD_FETCH_WORKERS": 2,
        },
        api_http=api,
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def sign_in(client, user: Dict[str, Any], token: str = "tok-123") -> None:
    """Put a token + user snapshot in the session cookie, as a successful login would."""
    with client.session_transaction() as sess:
        sess["token"] = token
        sess["user"] = json.dumps(user)


@pytest.fixture
def admin_client(client):
    sign_in(client, ADMIN_USER)
    return client


@pytest.fixture
def manager_client(client):
    sign_in(client, MANAGER_USER)
    return client


@pytest.fixture
def flashes(client):
    """Pending (category, message) pairs not yet rendered."""
    def read() -> List[Tuple[str, str]]:
        with client.session_transaction() as sess:
            return [tuple(f) for f in sess.get("_flashes", [])]
    return read


@pytest.fixture
def session_of(client):
    def read() -> Dict[str, Any]:
        with client.session_transaction() as sess:
            return dict(sess)
    return read
