"""
pkgsweep - Find packages to archive or suppress from a documentation index.

Evaluates large package lists against the GitHub API with a bounded worker
pool sharing one rate limiter.

Quick Start:
    from pkgsweep import BatchEvaluator, GitHubAuth, Package, load_config

    packages = [
        Package("github.com/owner/repo", importer_count=0),
        Package("github.com/owner/repo/sub", importer_count=3),
    ]

    evaluator = BatchEvaluator.from_config(load_config(), auth=GitHubAuth("id", "secret"))
    for result in evaluator.should_suppress_packages(packages):
        if result.error:
            print(result.error)
        elif result.decision:
            print(result.path)

Domain Objects:
    Package - A tracked import path and its importer count
    RepositoryInfo - GitHub repository metadata
    CommitRecord - A commit author date
    EvaluationResult - Decision, cache hit and error for one package

Services:
    DecisionService - Single package decisions
    BatchEvaluator - Concurrent batch decisions
"""

__version__ = "0.1.0"

from .domain import (
    Package,
    RepositoryInfo,
    CommitRecord,
    EvaluationResult,
    is_archive_eligible,
    is_fast_fork,
)

from .errors import (
    ErrorKind,
    PackageError,
    NonGithubPath,
    LocalLookupFailure,
    TransportFailure,
    Forbidden,
    NotFound,
    UnexpectedStatus,
    ParseFailure,
)

from .infra import (
    GitHubClient,
    GitHubAuth,
    TokenBucket,
    RateLimitTier,
    InMemoryPackageStore,
    read_packages,
    response_from_cache,
)

from .services import DecisionService, BatchEvaluator

from .config import load_config, save_config

__all__ = [
    "__version__",
    # Domain objects
    "Package",
    "RepositoryInfo",
    "CommitRecord",
    "EvaluationResult",
    "is_archive_eligible",
    "is_fast_fork",
    # Errors
    "ErrorKind",
    "PackageError",
    "NonGithubPath",
    "LocalLookupFailure",
    "TransportFailure",
    "Forbidden",
    "NotFound",
    "UnexpectedStatus",
    "ParseFailure",
    # Infrastructure
    "GitHubClient",
    "GitHubAuth",
    "TokenBucket",
    "RateLimitTier",
    "InMemoryPackageStore",
    "read_packages",
    "response_from_cache",
    # Services
    "DecisionService",
    "BatchEvaluator",
    # Configuration
    "load_config",
    "save_config",
]
