"""
Tests for the GitHub API client.

Tests cover:
- Path normalization and URL construction (with and without credentials)
- Outcome classification (transport failure, 403, 404, other status, bad JSON)
- The single retry on 403, with and without a rate limit reset hint
- Cache-hit reporting through the injected predicate
"""

import time
from datetime import datetime, timezone

import pytest
import requests

from pkgsweep.errors import (
    NonGithubPath,
    TransportFailure,
    Forbidden,
    NotFound,
    UnexpectedStatus,
    ParseFailure,
)
from pkgsweep.infra.github_client import (
    GitHubClient,
    GitHubAuth,
    normalize_path,
    is_github_path,
    response_from_cache,
)

from tests.fakes import FakeResponse, FakeTransport, routes, repo_body, commits_body

PATH = "github.com/rafaeljusto/gddoexp"
REPO_URL = "https://api.github.com/repos/rafaeljusto/gddoexp"
AUTH = GitHubAuth("exampleuser", "abc123")
CREATED = datetime(2010, 8, 3, 21, 56, 23, tzinfo=timezone.utc)


class Sleeper:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def make_client(handler, **kwargs):
    transport = FakeTransport(handler)
    kwargs.setdefault('sleep', Sleeper())
    return GitHubClient(transport=transport, **kwargs), transport


class TestNormalizePath:

    def test_repository_root(self):
        assert normalize_path("github.com/rafaeljusto/gddoexp") == "rafaeljusto/gddoexp"

    def test_subpackage_truncated(self):
        assert normalize_path("github.com/golang/gddo/database/stringutil") == "golang/gddo"

    def test_non_github(self):
        with pytest.raises(NonGithubPath) as exc:
            normalize_path("bitbucket.org/rafaeljusto/gddoexp")
        assert exc.value.cache_hit
        assert exc.value.path == "bitbucket.org/rafaeljusto/gddoexp"

    def test_prefix_must_be_exact(self):
        assert not is_github_path("golang.org/x/net")
        assert not is_github_path("gopkg.in/github.com/x")
        assert is_github_path("github.com/a/b")


class TestUrls:

    def test_repository_url(self):
        client = GitHubClient(transport=FakeTransport(lambda url: None))
        assert client.repository_url(PATH + "/sub") == REPO_URL

    def test_repository_url_authenticated(self):
        client = GitHubClient(transport=FakeTransport(lambda url: None), auth=AUTH)
        assert client.repository_url(PATH) == REPO_URL + "?client_id=exampleuser&client_secret=abc123"
        assert client.authenticated

    def test_commits_url_since_creation(self):
        client = GitHubClient(transport=FakeTransport(lambda url: None), auth=AUTH)
        assert client.commits_url(PATH, since=CREATED) == (
            REPO_URL + "/commits?since=2010-08-03T21%3A56%3A23Z"
            "&client_id=exampleuser&client_secret=abc123"
        )

    def test_commits_url_without_since(self):
        client = GitHubClient(transport=FakeTransport(lambda url: None))
        assert client.commits_url(PATH) == REPO_URL + "/commits"

    def test_custom_api_url(self):
        client = GitHubClient(transport=FakeTransport(lambda url: None), api_url="http://localhost:8080/")
        assert client.repository_url(PATH) == "http://localhost:8080/repos/rafaeljusto/gddoexp"

    def test_default_transport_is_session(self):
        client = GitHubClient()
        assert isinstance(client.transport, requests.Session)
        assert client.transport.headers['User-Agent'] == 'pkgsweep'


class TestGetRepository:

    def test_success(self):
        client, transport = make_client(routes({REPO_URL: FakeResponse(200, repo_body(fork=True))}))
        info, cache_hit = client.get_repository(PATH)
        assert info.created_at == CREATED
        assert info.is_fork
        assert cache_hit is False
        assert transport.urls == [REPO_URL]

    def test_subpackage_hits_repository(self):
        client, transport = make_client(routes({REPO_URL: FakeResponse(200, repo_body())}))
        client.get_repository(PATH + "/internal/thing")
        assert transport.urls == [REPO_URL]

    def test_non_github_makes_no_request(self):
        client, transport = make_client(routes({}))
        with pytest.raises(NonGithubPath):
            client.get_repository("bitbucket.org/rafaeljusto/gddoexp")
        assert transport.calls == 0

    def test_transport_failure(self):
        def handler(url):
            raise requests.ConnectionError("i'm a crazy error")

        client, _ = make_client(handler)
        with pytest.raises(TransportFailure) as exc:
            client.get_repository(PATH)
        assert str(exc.value) == f"[{PATH}] error retrieving information from Github: i'm a crazy error"
        assert not exc.value.cache_hit

    def test_os_error_is_transport_failure(self):
        def handler(url):
            raise OSError("connection reset")

        client, _ = make_client(handler)
        with pytest.raises(TransportFailure):
            client.get_repository(PATH)

    def test_not_found(self):
        client, transport = make_client(routes({}, default=FakeResponse(404)))
        with pytest.raises(NotFound) as exc:
            client.get_repository(PATH)
        assert exc.value.status_code == 404
        assert transport.calls == 1

    @pytest.mark.parametrize("status", [400, 500, 502, 301])
    def test_unexpected_status(self, status):
        client, transport = make_client(routes({}, default=FakeResponse(status)))
        with pytest.raises(UnexpectedStatus) as exc:
            client.get_repository(PATH)
        assert exc.value.status_code == status
        assert transport.calls == 1

    def test_invalid_json(self):
        client, _ = make_client(routes({REPO_URL: FakeResponse(200, text='{"created_at": ')}))
        with pytest.raises(ParseFailure) as exc:
            client.get_repository(PATH)
        assert exc.value.cause is not None

    def test_invalid_shape(self):
        client, _ = make_client(routes({REPO_URL: FakeResponse(200, body={"created_at": "never"})}))
        with pytest.raises(ParseFailure):
            client.get_repository(PATH)

    def test_responses_closed(self):
        response = FakeResponse(200, repo_body())
        client, _ = make_client(routes({REPO_URL: response}))
        client.get_repository(PATH)
        assert response.closed


class TestForbiddenRetry:

    def sequence(self, *responses):
        answers = list(responses)

        def handler(url):
            return answers.pop(0)
        return handler

    def test_retry_after_reset_hint(self):
        sleeper = Sleeper()
        handler = self.sequence(
            FakeResponse(403, headers={'X-RateLimit-Reset': '1030'}),
            FakeResponse(200, repo_body()),
        )
        client, transport = make_client(handler, sleep=sleeper, clock=lambda: 1000.0)

        info, _ = client.get_repository(PATH)
        assert info.created_at == CREATED
        assert sleeper.calls == [30.0]
        assert transport.urls == [REPO_URL, REPO_URL]

    def test_reset_in_the_past_does_not_sleep_negative(self):
        sleeper = Sleeper()
        handler = self.sequence(
            FakeResponse(403, headers={'X-RateLimit-Reset': '900'}),
            FakeResponse(200, repo_body()),
        )
        client, _ = make_client(handler, sleep=sleeper, clock=lambda: 1000.0)
        client.get_repository(PATH)
        assert sleeper.calls == [0.0]

    def test_fixed_backoff_without_hint(self):
        sleeper = Sleeper()
        handler = self.sequence(FakeResponse(403), FakeResponse(200, repo_body()))
        client, _ = make_client(handler, sleep=sleeper, forbidden_backoff=5.0)
        client.get_repository(PATH)
        assert sleeper.calls == [5.0]

    def test_invalid_hint_uses_backoff(self):
        sleeper = Sleeper()
        handler = self.sequence(
            FakeResponse(403, headers={'X-RateLimit-Reset': 'soon'}),
            FakeResponse(200, repo_body()),
        )
        client, _ = make_client(handler, sleep=sleeper, forbidden_backoff=7.0)
        client.get_repository(PATH)
        assert sleeper.calls == [7.0]

    def test_retried_only_once(self):
        sleeper = Sleeper()
        client, transport = make_client(routes({}, default=FakeResponse(403)), sleep=sleeper, forbidden_backoff=1.0)
        with pytest.raises(Forbidden) as exc:
            client.get_repository(PATH)
        assert transport.calls == 2
        assert sleeper.calls == [1.0]
        assert str(exc.value) == f"[{PATH}] ratelimit reached in Github API"

    def test_retry_returns_other_outcome(self):
        handler = self.sequence(FakeResponse(403), FakeResponse(404))
        client, _ = make_client(handler, forbidden_backoff=0)
        with pytest.raises(NotFound):
            client.get_repository(PATH)

    def test_each_request_gets_its_own_retry(self):
        sleeper = Sleeper()
        commits_url = REPO_URL + "/commits?since=2010-08-03T21%3A56%3A23Z"
        handler = self.sequence(
            FakeResponse(403),
            FakeResponse(200, repo_body(fork=True)),
            FakeResponse(403),
            FakeResponse(200, commits_body(CREATED)),
        )
        client, transport = make_client(handler, sleep=sleeper, forbidden_backoff=1.0)
        info, _ = client.get_repository(PATH)
        commits, _ = client.get_commits(PATH, since=info.created_at)
        assert len(commits) == 1
        assert sleeper.calls == [1.0, 1.0]
        assert transport.urls == [REPO_URL, REPO_URL, commits_url, commits_url]

    def test_real_wait_for_reset(self):
        """A 403 with a reset 50ms ahead succeeds on retry after the wait."""
        reset = time.time() + 0.05
        handler = self.sequence(
            FakeResponse(403, headers={'X-RateLimit-Reset': str(reset)}),
            FakeResponse(200, repo_body()),
        )
        client = GitHubClient(transport=FakeTransport(handler))

        start = time.monotonic()
        info, _ = client.get_repository(PATH)
        elapsed = time.monotonic() - start

        assert info.created_at == CREATED
        assert elapsed >= 0.04


class TestGetCommits:

    def test_success(self):
        url = REPO_URL + "/commits?since=2010-08-03T21%3A56%3A23Z"
        client, transport = make_client(routes({url: FakeResponse(200, commits_body(CREATED, CREATED))}))
        commits, cache_hit = client.get_commits(PATH, since=CREATED)
        assert len(commits) == 2
        assert cache_hit is False
        assert transport.urls == [url]

    def test_invalid_shape(self):
        client, _ = make_client(routes({}, default=FakeResponse(200, body={"message": "Git Repository is empty."})))
        with pytest.raises(ParseFailure):
            client.get_commits(PATH)


class TestCacheHit:

    def test_predicate_true(self):
        response = FakeResponse(200, repo_body(), headers={'Cache': 'HIT'})
        client, _ = make_client(
            routes({REPO_URL: response}),
            is_cached=lambda r: r.headers.get('Cache') == 'HIT',
        )
        _, cache_hit = client.get_repository(PATH)
        assert cache_hit is True

    def test_no_predicate_never_cached(self):
        response = FakeResponse(200, repo_body(), from_cache=True)
        client, _ = make_client(routes({REPO_URL: response}))
        _, cache_hit = client.get_repository(PATH)
        assert cache_hit is False

    def test_response_from_cache(self):
        assert response_from_cache(FakeResponse(200, from_cache=True))
        assert not response_from_cache(FakeResponse(200, from_cache=False))
        assert not response_from_cache(FakeResponse(200))

    def test_response_from_cache_with_client(self):
        response = FakeResponse(200, repo_body(), from_cache=True)
        client, _ = make_client(routes({REPO_URL: response}), is_cached=response_from_cache)
        _, cache_hit = client.get_repository(PATH)
        assert cache_hit is True
