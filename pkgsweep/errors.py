"""
Error taxonomy for pkgsweep.

Every failure that can happen while evaluating a single package is a
PackageError. The error carries the package path that originated it, the
kind of failure, and the low level cause when there is one. Errors never
abort a batch: the batch evaluator attaches them to the package result.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of per-package failures."""
    NON_GITHUB_PATH = "non_github_path"
    LOCAL_LOOKUP_FAILURE = "local_lookup_failure"
    TRANSPORT_FAILURE = "transport_failure"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNEXPECTED_STATUS = "unexpected_status"
    PARSE_FAILURE = "parse_failure"


ERROR_MESSAGES = {
    ErrorKind.NON_GITHUB_PATH: "not a Github project",
    ErrorKind.LOCAL_LOOKUP_FAILURE: "error retrieving import counts",
    ErrorKind.TRANSPORT_FAILURE: "error retrieving information from Github",
    ErrorKind.FORBIDDEN: "ratelimit reached in Github API",
    ErrorKind.NOT_FOUND: "not found in Github",
    ErrorKind.UNEXPECTED_STATUS: "unexpected status code from Github",
    ErrorKind.PARSE_FAILURE: "error decoding Github response",
}


class PackageError(Exception):
    """
    Failure evaluating one package.

    Attributes:
        path: Package path that originated the error
        kind: ErrorKind of the failure
        cause: Wrapped low level exception, if any
        cache_hit: True when no rate-limited network call was spent
            before the failure
        status_code: HTTP status code for status-based failures
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED_STATUS

    def __init__(
        self,
        path: str,
        cause: Optional[BaseException] = None,
        cache_hit: bool = False,
        status_code: Optional[int] = None,
    ):
        self.path = path
        self.cause = cause
        self.cache_hit = cache_hit
        self.status_code = status_code
        super().__init__(self._format())

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.kind]

    def _format(self) -> str:
        if self.cause is None:
            return f"[{self.path}] {self.message}"
        return f"[{self.path}] {self.message}: {self.cause}"

    def __eq__(self, other):
        if not isinstance(other, PackageError):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.path == other.path
            and str(self.cause) == str(other.cause)
        )

    def __hash__(self):
        return hash((self.kind, self.path))

    def to_dict(self):
        return {
            'path': self.path,
            'kind': self.kind.value,
            'message': str(self),
            'status_code': self.status_code,
        }


class NonGithubPath(PackageError):
    """Package path is not hosted on github.com."""
    kind = ErrorKind.NON_GITHUB_PATH

    def __init__(self, path: str, cause: Optional[BaseException] = None, **kwargs):
        kwargs.setdefault('cache_hit', True)
        super().__init__(path, cause, **kwargs)


class LocalLookupFailure(PackageError):
    """The package datastore could not provide the importer count."""
    kind = ErrorKind.LOCAL_LOOKUP_FAILURE

    def __init__(self, path: str, cause: Optional[BaseException] = None, **kwargs):
        kwargs.setdefault('cache_hit', True)
        super().__init__(path, cause, **kwargs)


class TransportFailure(PackageError):
    """Network level failure talking to the GitHub API."""
    kind = ErrorKind.TRANSPORT_FAILURE


class Forbidden(PackageError):
    """GitHub answered 403, usually because the rate limit was reached."""
    kind = ErrorKind.FORBIDDEN


class NotFound(PackageError):
    """GitHub answered 404."""
    kind = ErrorKind.NOT_FOUND


class UnexpectedStatus(PackageError):
    """GitHub answered with a status other than 200, 403 or 404."""
    kind = ErrorKind.UNEXPECTED_STATUS


class ParseFailure(PackageError):
    """GitHub answered 200 but the body could not be decoded."""
    kind = ErrorKind.PARSE_FAILURE
