"""
Test doubles for the GitHub transport and the package datastore.
"""

import json
import threading
from datetime import datetime, timedelta, timezone


NOW = datetime(2016, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    return value.strftime('%Y-%m-%dT%H:%M:%SZ')


def repo_body(created_at=None, updated_at=None, fork=False) -> dict:
    created_at = created_at or datetime(2010, 8, 3, 21, 56, 23, tzinfo=timezone.utc)
    updated_at = updated_at or NOW
    return {
        "created_at": iso(created_at),
        "updated_at": iso(updated_at),
        "fork": fork,
        "forks_count": 194,
        "stargazers_count": 1133,
    }


def commits_body(*dates) -> list:
    return [{"commit": {"author": {"date": iso(d)}}} for d in dates]


class FakeResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code=200, body=None, headers=None, from_cache=None, text=None):
        self.status_code = status_code
        self.headers = headers or {}
        if text is not None:
            self.text = text
        else:
            self.text = json.dumps(body) if body is not None else ""
        if from_cache is not None:
            self.from_cache = from_cache
        self.closed = False

    def json(self):
        return json.loads(self.text)

    def close(self):
        self.closed = True


class FakeTransport:
    """
    Transport answering from a handler function.

    The handler receives the URL and returns a FakeResponse or raises.
    Requested URLs are recorded in order.
    """

    def __init__(self, handler):
        self.handler = handler
        self.urls = []
        self._lock = threading.Lock()

    def get(self, url, **kwargs):
        with self._lock:
            self.urls.append(url)
        return self.handler(url)

    @property
    def calls(self) -> int:
        return len(self.urls)


def routes(mapping, default=None):
    """Build a handler answering by URL; unknown URLs get a 400."""
    def handler(url):
        if url in mapping:
            answer = mapping[url]
            return answer() if callable(answer) else answer
        if default is not None:
            return default(url) if callable(default) else default
        return FakeResponse(400)
    return handler


class FailingStore:
    """Package datastore that always fails."""

    def __init__(self, error=None):
        self.error = error or RuntimeError("i'm a crazy error")

    def importer_count(self, path):
        raise self.error


class NoopLimiter:
    """Limiter that never blocks and counts acquisitions."""

    def __init__(self):
        self.acquired = 0
        self._lock = threading.Lock()

    def acquire(self):
        with self._lock:
            self.acquired += 1
        return 0.0


def days_ago(days, now=NOW):
    return now - timedelta(days=days)
