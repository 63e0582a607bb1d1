"""
Package domain objects for pkgsweep.

Package is one tracked import path. RepositoryInfo and CommitRecord hold the
GitHub metadata the decision rules work on, and EvaluationResult is the
single answer the batch evaluator emits per package. All of them are
immutable once built.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from ..errors import PackageError


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a GitHub API timestamp (RFC 3339, e.g. "2010-08-03T21:56:23Z").

    Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a timestamp string
    """
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way the GitHub API expects it in queries."""
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


@dataclass(frozen=True)
class Package:
    """A tracked package, identified by its import path."""
    path: str
    importer_count: Optional[int] = None


@dataclass(frozen=True)
class RepositoryInfo:
    """GitHub repository metadata relevant to archiving decisions."""
    created_at: datetime
    updated_at: datetime
    is_fork: bool = False

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'RepositoryInfo':
        """
        Create from a GET /repos/{owner}/{repo} response body.

        Raises:
            ValueError: If the body is not an object or timestamps are invalid
        """
        if not isinstance(data, dict):
            raise ValueError("repository response is not a JSON object")
        return cls(
            created_at=parse_timestamp(data.get('created_at')),
            updated_at=parse_timestamp(data.get('updated_at')),
            is_fork=bool(data.get('fork', False)),
        )


@dataclass(frozen=True)
class CommitRecord:
    """A single commit; only the author date matters."""
    author_date: datetime

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'CommitRecord':
        """Create from one element of a GET /repos/{owner}/{repo}/commits response."""
        try:
            date = data['commit']['author']['date']
        except (KeyError, TypeError) as e:
            raise ValueError(f"commit without author date: {e}") from e
        return cls(author_date=parse_timestamp(date))

    @classmethod
    def list_from_api_response(cls, data: Any) -> List['CommitRecord']:
        if not isinstance(data, list):
            raise ValueError("commits response is not a JSON array")
        return [cls.from_api_response(item) for item in data]


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of evaluating one package.

    `decision` is only meaningful when `error` is None.
    """
    path: str
    decision: bool = False
    cache_hit: bool = False
    error: Optional[PackageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'decision': self.decision,
            'cache_hit': self.cache_hit,
            'error': self.error.to_dict() if self.error else None,
        }
