"""Shared test fixtures and HTTP doubles."""

import json
from datetime import datetime, timezone

import pytest
import requests

from collectors.base import ClientConfig, FetchClient
from models import Plugin, Repository

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def make_response(status=200, body=None, headers=None, url="https://example.test"):
    """Build a real requests.Response with the given status and body."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.headers.update(headers or {})
    if body is None:
        content = b""
    elif isinstance(body, (bytes, str)):
        content = body.encode() if isinstance(body, str) else body
    else:
        content = json.dumps(body).encode()
    response._content = content
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Session double that answers GETs from a URL -> response table.

    Values may be a response, a list of responses (served in order, the
    last one repeating), or an exception instance to raise. Unknown URLs
    return 404. Query parameters are ignored when matching.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        route = self.routes.get(url)
        if route is None:
            return make_response(404, url=url)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        return route

    def urls(self):
        return [call["url"] for call in self.calls]


class FakeClock:
    """Virtual clock whose sleep advances time instead of blocking."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def repo_data(**overrides):
    """Raw GitHub API repository JSON."""
    data = {
        "id": 101,
        "name": "payload-plugin-cool",
        "full_name": "alice/payload-plugin-cool",
        "owner": {"login": "alice", "avatar_url": "https://avatars.test/alice"},
        "description": "A cool plugin",
        "stargazers_count": 42,
        "forks_count": 3,
        "created_at": "2023-01-01T00:00:00Z",
        "pushed_at": "2025-05-20T00:00:00Z",
        "updated_at": "2025-05-21T00:00:00Z",
        "html_url": "https://github.com/alice/payload-plugin-cool",
        "topics": ["payload-plugin"],
        "default_branch": "main",
        "license": {"spdx_id": "MIT", "name": "MIT License"},
        "open_issues_count": 1,
        "archived": False,
    }
    data.update(overrides)
    return data


def raw(repo, path, owner="alice", branch="main"):
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{path}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client(clock):
    """Factory for a FetchClient over a FakeSession with a virtual clock."""

    def factory(routes=None, token=None):
        session = FakeSession(routes)
        client = FetchClient(
            ClientConfig(token=token),
            session=session,
            sleep=clock.sleep,
            clock=clock.time,
        )
        return client, session

    return factory


@pytest.fixture
def sample_repo():
    return Repository.model_validate(repo_data())


@pytest.fixture
def make_plugin():
    """Factory for a plugin with neutral defaults that score 0."""

    def factory(**overrides):
        fields = {
            "id": "1-root",
            "name": "sample",
            "description": "Sample plugin",
            "stars": 0,
            "forks": 0,
            "last_update": datetime(2020, 1, 1, tzinfo=timezone.utc),
            "created_at": datetime(2019, 1, 1, tzinfo=timezone.utc),
            "owner": "alice",
            "url": "https://github.com/alice/sample",
            "payload_version_major": [0],
            "open_issues": 1,
        }
        fields.update(overrides)
        return Plugin(**fields)

    return factory
