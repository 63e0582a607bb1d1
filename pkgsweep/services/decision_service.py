"""
Per-package decision workflows for pkgsweep.

Combines importer counts from the package datastore with GitHub metadata
to answer three questions about a package:
- should it be archived (nobody imports it and it was not updated in 2 years)
- is it a fast fork (a fork that only existed to send a pull request)
- should it be suppressed from the index (either of the above)

Each workflow returns a (decision, cache_hit) pair and raises PackageError
on failure. The error's cache_hit tells whether a rate-limited call was
spent before the failure.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from ..domain.package import RepositoryInfo
from ..domain.rules import is_archive_eligible, is_fast_fork
from ..errors import PackageError, LocalLookupFailure, NonGithubPath
from ..infra.github_client import GitHubClient, is_github_path
from ..infra.package_store import PackageStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DecisionService:
    """
    Evaluates single packages against the decision rules.

    Example:
        service = DecisionService(client, store)
        archive, cache_hit = service.should_archive("github.com/owner/repo")
    """

    def __init__(
        self,
        client: GitHubClient,
        store: Optional[PackageStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize DecisionService.

        Args:
            client: GitHub client used for metadata and commits
            store: Package datastore for importer counts (required for
                archive and suppress decisions)
            clock: Returns the current time as an aware datetime
        """
        self.client = client
        self.store = store
        self.clock = clock

    def _importer_count(self, path: str) -> int:
        if self.store is None:
            raise LocalLookupFailure(path, RuntimeError("no package datastore configured"))
        try:
            return self.store.importer_count(path)
        except Exception as e:
            raise LocalLookupFailure(path, e) from e

    def _fast_fork(self, path: str, info: RepositoryInfo, cache_hit: bool) -> Tuple[bool, bool]:
        if not info.is_fork:
            return False, cache_hit

        try:
            commits, commits_cache_hit = self.client.get_commits(path, since=info.created_at)
        except PackageError as e:
            e.cache_hit = e.cache_hit and cache_hit
            raise

        return is_fast_fork(info, commits), cache_hit and commits_cache_hit

    def should_archive(self, path: str) -> Tuple[bool, bool]:
        """
        Decide if a package should be archived.

        A package is archived when no other package imports it and its
        repository had no update in the last 730 days.

        Returns:
            Tuple of (archive, cache hit)
        """
        if self._importer_count(path) > 0:
            return False, True

        info, cache_hit = self.client.get_repository(path)
        return is_archive_eligible(info, self.clock()), cache_hit

    def is_fast_fork(self, path: str) -> Tuple[bool, bool]:
        """
        Decide if a package lives in a fast fork.

        Commits are only fetched for forks.

        Returns:
            Tuple of (fast fork, cache hit)
        """
        info, cache_hit = self.client.get_repository(path)
        return self._fast_fork(path, info, cache_hit)

    def should_suppress(self, path: str) -> Tuple[bool, bool]:
        """
        Decide if a package should be suppressed from the index.

        Non GitHub paths are rejected before touching the datastore or the
        network. The fast fork check reuses the repository metadata fetched
        for the archive check.

        Returns:
            Tuple of (suppress, cache hit)
        """
        if not is_github_path(path):
            raise NonGithubPath(path)

        if self._importer_count(path) > 0:
            return False, True

        info, cache_hit = self.client.get_repository(path)
        if is_archive_eligible(info, self.clock()):
            return True, cache_hit

        return self._fast_fork(path, info, cache_hit)
