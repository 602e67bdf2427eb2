"""Pytest configuration and fixtures for SVI tests."""

import json
from types import SimpleNamespace

import pytest
from requests.structures import CaseInsensitiveDict

from app import create_app


class FakeResponse:
    """The slice of requests.Response the proxies use."""

    def __init__(self, status_code=200, json_data=None, content=None, headers=None):
        self.status_code = status_code
        if content is None:
            content = json.dumps(json_data).encode() if json_data is not None else b""
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")

    def json(self):
        return json.loads(self.content)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeHttp:
    """Scripted stand-in for requests.Session: routes are (method, url) -> response."""

    def __init__(self):
        self.calls = []
        self.routes = {}

    def add(self, method, url, response):
        """``response`` is a FakeResponse, a list of them (consumed in order) or a callable."""
        self.routes[(method, url)] = response

    def request(self, method, url, **kwargs):
        call = SimpleNamespace(method=method, url=url, **kwargs)
        self.calls.append(call)
        route = self.routes.get((method, url))
        if route is None:
            raise AssertionError(f"unexpected request {method} {url}")
        if isinstance(route, list):
            return route.pop(0) if len(route) > 1 else route[0]
        if callable(route):
            return route(call)
        return route


class FlaskHttp:
    """requests-like adapter that sends SviClient calls to a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def request(self, method, url, params=None, json=None, data=None, headers=None):
        path = url.split("://", 1)[-1]
        path = "/" + path.split("/", 1)[1] if "/" in path else "/"
        self.calls.append((method, path))
        resp = self.test_client.open(
            path, method=method, query_string=params, json=json, data=data, headers=headers
        )
        return FakeResponse(resp.status_code, content=resp.data, headers=dict(resp.headers))


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def time(self):
        return self.now

    def monotonic(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def app(tmp_path, http):
    app = create_app(
        {
            "TESTING": True,
            "RECORDS_BACKEND": "sql",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "DATA_DIR": str(tmp_path / "data"),
            "VIDEOS_DIR": str(tmp_path / "videos"),
            "LOG_DIR": str(tmp_path / "logs"),
            "COOKIE_SECURE": False,
            "DRIVE_API_URL": "https://drive.test/drive/v3",
            "DRIVE_UPLOAD_URL": "https://drive.test/upload/drive/v3/files",
        },
        http=http,
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def authed_client(client):
    client.set_cookie("drive_token", "tok-123")
    return client


@pytest.fixture
def store(app):
    return app.extensions["svi"].records


@pytest.fixture
def clock():
    return FakeClock()


def local_entry(session_id="session-1", items=None, ext="webm"):
    return {
        "sessionId": session_id,
        "items": items if items is not None else [
            {"name": "Widget A", "addedAt": 1000, "remarks": [{"text": "scratch on side", "ts": 2500}]},
        ],
        "videoSource": "local",
        "videoExt": ext,
    }


def drive_entry(session_id="session-2", file_id="file-1", link="https://drive.test/view/file-1"):
    return {
        "sessionId": session_id,
        "items": [{"name": "Housing", "addedAt": 0, "remarks": []}],
        "videoSource": "drive",
        "driveFileId": file_id,
        "driveWebViewLink": link,
    }
