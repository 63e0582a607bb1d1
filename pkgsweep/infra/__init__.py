"""
Infrastructure layer for pkgsweep.

Contains abstractions for external systems:
- GitHubClient: GitHub API access
- TokenBucket: Shared rate limiter for GitHub calls
- PackageStore: Importer counts from the package datastore

These provide clean interfaces that can be faked for testing.
"""

from .github_client import (
    GitHubClient,
    GitHubAuth,
    normalize_path,
    is_github_path,
    response_from_cache,
)
from .rate_limiter import TokenBucket, RateLimitTier, limiter_for, tier_for
from .package_store import PackageStore, InMemoryPackageStore, read_packages

__all__ = [
    'GitHubClient',
    'GitHubAuth',
    'normalize_path',
    'is_github_path',
    'response_from_cache',
    'TokenBucket',
    'RateLimitTier',
    'limiter_for',
    'tier_for',
    'PackageStore',
    'InMemoryPackageStore',
    'read_packages',
]
