"""
Decision rules for pkgsweep.

Pure functions over already-fetched repository metadata. No I/O happens
here; the decision service fetches what these rules need.
"""

from datetime import datetime, timedelta
from typing import Iterable

from .package import RepositoryInfo, CommitRecord

# Time without updates after which a repository is considered unused.
UNUSED_AFTER = timedelta(days=730)

# A fast fork has all of its commits within this window after creation.
FAST_FORK_WINDOW = timedelta(days=7)

# Maximum number of commits after creation for a fast fork.
FAST_FORK_MAX_COMMITS = 2


def is_archive_eligible(info: RepositoryInfo, now: datetime) -> bool:
    """True if the repository was not updated in the last 730 days."""
    return now - info.updated_at >= UNUSED_AFTER


def is_fast_fork(info: RepositoryInfo, commits: Iterable[CommitRecord]) -> bool:
    """
    Detect a fork that only exists to send a pull request.

    A fork is fast when no commit happened after the first week of the
    fork's life and at most two commits happened after it was created.
    """
    if not info.is_fork:
        return False

    window_end = info.created_at + FAST_FORK_WINDOW
    after_creation = 0
    for commit in commits:
        if commit.author_date > window_end:
            return False
        if commit.author_date > info.created_at:
            after_creation += 1

    return after_creation <= FAST_FORK_MAX_COMMITS
