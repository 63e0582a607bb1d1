"""
GitHub API client infrastructure for pkgsweep.

Fetches repository metadata and commit history for package paths:
- Normalizes "github.com/owner/repo/sub/pkg" paths to "owner/repo"
- Attaches OAuth application credentials for the higher rate limit
- Classifies HTTP outcomes into PackageError kinds
- Retries once on 403, waiting for the rate limit reset
- Reports whether a response came from a local HTTP cache
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any, Callable, Tuple
from urllib.parse import urlencode

import requests

from ..domain.package import RepositoryInfo, CommitRecord, format_timestamp
from ..errors import (
    NonGithubPath,
    TransportFailure,
    Forbidden,
    NotFound,
    UnexpectedStatus,
    ParseFailure,
)

logger = logging.getLogger(__name__)

GITHUB_PREFIX = "github.com/"

GITHUB_API_URL = "https://api.github.com"

# Wait before retrying a 403 that carries no X-RateLimit-Reset header
DEFAULT_FORBIDDEN_BACKOFF = 60.0

# Remaining quota below which a warning is logged
LOW_RATE_LIMIT = 10


@dataclass(frozen=True)
class GitHubAuth:
    """
    OAuth application credentials.

    Authenticated requests can make up to 5000 requests per hour, otherwise
    the client is limited to 60 requests per hour.
    """
    client_id: str
    client_secret: str

    def to_query(self) -> Dict[str, str]:
        return {'client_id': self.client_id, 'client_secret': self.client_secret}


def is_github_path(path: str) -> bool:
    return path.startswith(GITHUB_PREFIX)


def normalize_path(path: str) -> str:
    """
    Normalize a package path to the GitHub "owner/repo" identity.

    Sub-packages of one repository map to the same identity:
        github.com/owner/repo/sub/pkg -> owner/repo

    Raises:
        NonGithubPath: If the path is not hosted on github.com
    """
    if not is_github_path(path):
        raise NonGithubPath(path)

    return "/".join(path[len(GITHUB_PREFIX):].split("/")[:2])


def response_from_cache(response: Any) -> bool:
    """
    Cache-hit predicate for responses served by a requests cache layer.

    requests-cache and CacheControl both flag cached responses with a
    `from_cache` attribute.
    """
    return bool(getattr(response, 'from_cache', False))


class GitHubClient:
    """
    GitHub API client for package evaluation.

    The transport is any object with a requests-like `get(url, **kwargs)`
    (a requests.Session by default), so a disk-backed cache session or a
    test fake can be plugged in. The client is safe to share between
    threads as long as the transport is.

    Example:
        client = GitHubClient(auth=GitHubAuth("id", "secret"))
        info, cache_hit = client.get_repository("github.com/owner/repo/pkg")
        if info.is_fork:
            commits, _ = client.get_commits("github.com/owner/repo/pkg", info.created_at)
    """

    def __init__(
        self,
        transport: Optional[Any] = None,
        auth: Optional[GitHubAuth] = None,
        is_cached: Optional[Callable[[Any], bool]] = None,
        api_url: str = GITHUB_API_URL,
        forbidden_backoff: float = DEFAULT_FORBIDDEN_BACKOFF,
        timeout: float = 30,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize GitHubClient.

        Args:
            transport: HTTP transport (defaults to a new requests.Session)
            auth: Optional OAuth application credentials
            is_cached: Predicate telling whether a response came from a cache
            api_url: GitHub API base URL
            forbidden_backoff: Seconds to wait before retrying a 403 without reset hint
            timeout: HTTP request timeout in seconds
            sleep: Sleep function, replaceable in tests
            clock: Wall clock returning unix seconds, replaceable in tests
        """
        if transport is None:
            transport = requests.Session()
            transport.headers.update({
                'Accept': 'application/vnd.github.v3+json',
                'User-Agent': 'pkgsweep',
            })

        self.transport = transport
        self.auth = auth
        self.is_cached = is_cached
        self.api_url = api_url.rstrip('/')
        self.forbidden_backoff = forbidden_backoff
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    @property
    def authenticated(self) -> bool:
        return self.auth is not None

    def _build_url(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> str:
        query = dict(params or {})
        if self.auth is not None:
            query.update(self.auth.to_query())

        url = f"{self.api_url}/{endpoint}"
        if query:
            url += "?" + urlencode(query)
        return url

    def repository_url(self, path: str) -> str:
        return self._build_url(f"repos/{normalize_path(path)}")

    def commits_url(self, path: str, since: Optional[datetime] = None) -> str:
        params = {'since': format_timestamp(since)} if since is not None else None
        return self._build_url(f"repos/{normalize_path(path)}/commits", params)

    def _forbidden_wait(self, response: Any) -> float:
        reset = response.headers.get('X-RateLimit-Reset')
        if reset is None:
            return self.forbidden_backoff
        try:
            return max(0.0, float(reset) - self._clock())
        except (TypeError, ValueError):
            return self.forbidden_backoff

    def _check_remaining(self, response: Any) -> None:
        remaining = response.headers.get('X-RateLimit-Remaining')
        if remaining is None:
            return
        try:
            remaining = int(remaining)
        except (TypeError, ValueError):
            return
        if remaining < LOW_RATE_LIMIT:
            logger.warning(f"GitHub API rate limit low: {remaining} requests remaining")

    def _request(self, path: str, url: str) -> Any:
        """
        GET a URL, retrying once on 403.

        Returns:
            The 200 response
        """
        for attempt in range(2):
            logger.debug(f"GET {url}")
            try:
                response = self.transport.get(url, timeout=self.timeout)
            except (requests.RequestException, OSError) as e:
                raise TransportFailure(path, e) from e

            self._check_remaining(response)
            status = response.status_code

            if status == 200:
                return response

            _close(response)

            if status == 403:
                if attempt == 0:
                    wait = self._forbidden_wait(response)
                    logger.info(f"Rate limited on {path}, waiting {wait:.2f}s before retrying")
                    self._sleep(wait)
                    continue
                raise Forbidden(path, status_code=status)

            if status == 404:
                raise NotFound(path, status_code=status)

            raise UnexpectedStatus(path, status_code=status)

        # range(2) always returns or raises on the second attempt
        raise Forbidden(path, status_code=403)

    def _fetch(self, path: str, url: str) -> Tuple[Any, bool]:
        """
        GET a URL and decode its JSON body.

        Returns:
            Tuple of (decoded body, cache hit)
        """
        response = self._request(path, url)
        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailure(path, e) from e
        finally:
            _close(response)

        cache_hit = bool(self.is_cached(response)) if self.is_cached is not None else False
        return data, cache_hit

    def get_repository(self, path: str) -> Tuple[RepositoryInfo, bool]:
        """
        Get repository metadata for a package path.

        Args:
            path: Package path, e.g. "github.com/owner/repo/sub"

        Returns:
            Tuple of (RepositoryInfo, cache hit)

        Raises:
            PackageError: On any failure
        """
        data, cache_hit = self._fetch(path, self.repository_url(path))
        try:
            return RepositoryInfo.from_api_response(data), cache_hit
        except ValueError as e:
            raise ParseFailure(path, e) from e

    def get_commits(self, path: str, since: Optional[datetime] = None) -> Tuple[List[CommitRecord], bool]:
        """
        Get the commits of a package's repository.

        Args:
            path: Package path
            since: Only list commits after this date (the repository creation)

        Returns:
            Tuple of (commits, cache hit)

        Raises:
            PackageError: On any failure
        """
        data, cache_hit = self._fetch(path, self.commits_url(path, since))
        try:
            return CommitRecord.list_from_api_response(data), cache_hit
        except ValueError as e:
            raise ParseFailure(path, e) from e


def _close(response: Any) -> None:
    close = getattr(response, 'close', None)
    if close is not None:
        close()
