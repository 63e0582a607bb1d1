"""
Package sources for pkgsweep.

The documentation index owns the real package datastore; pkgsweep only
needs importer counts from it. This module defines that interface and the
simple file based sources used by the command line:

    github.com/owner/repo            # importer count unknown
    github.com/owner/repo/sub 12     # 12 packages import it

Blank lines and lines starting with '#' are ignored.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, TextIO, Union

from ..domain.package import Package

logger = logging.getLogger(__name__)


class PackageStore(Protocol):
    """Datastore able to tell how many packages import a path."""

    def importer_count(self, path: str) -> int:
        """Return the importer count; raise on lookup failure."""
        ...


class InMemoryPackageStore:
    """
    Importer counts held in memory.

    Paths without a known count raise KeyError, which the decision
    service reports as a local lookup failure.
    """

    def __init__(self, counts: Optional[Dict[str, int]] = None, default: Optional[int] = None):
        """
        Initialize InMemoryPackageStore.

        Args:
            counts: Mapping of package path to importer count
            default: Count returned for unknown paths (None = raise KeyError)
        """
        self.counts = dict(counts or {})
        self.default = default

    @classmethod
    def from_packages(cls, packages: Iterable[Package], default: Optional[int] = None) -> 'InMemoryPackageStore':
        counts = {p.path: p.importer_count for p in packages if p.importer_count is not None}
        return cls(counts, default=default)

    def importer_count(self, path: str) -> int:
        if path in self.counts:
            return self.counts[path]
        if self.default is not None:
            return self.default
        raise KeyError(f"no importer count for {path}")


def parse_package_line(line: str) -> Optional[Package]:
    """
    Parse one package list line.

    Returns:
        Package, or None for blank and comment lines

    Raises:
        ValueError: If the importer count is not a non-negative integer
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None

    parts = line.split()
    if len(parts) == 1:
        return Package(path=parts[0])
    if len(parts) == 2:
        count = int(parts[1])
        if count < 0:
            raise ValueError(f"negative importer count in line: {line!r}")
        return Package(path=parts[0], importer_count=count)

    raise ValueError(f"invalid package line: {line!r}")


def read_packages(source: Union[str, Path, TextIO]) -> List[Package]:
    """
    Read a package list from a file path or an open text stream.

    Duplicate paths are kept once, first occurrence wins.
    """
    if isinstance(source, (str, Path)):
        with open(Path(source).expanduser(), 'r') as f:
            return read_packages(f)

    packages: List[Package] = []
    seen = set()
    for lineno, line in enumerate(source, start=1):
        try:
            package = parse_package_line(line)
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
        if package is None:
            continue
        if package.path in seen:
            logger.debug(f"Skipping duplicate package {package.path}")
            continue
        seen.add(package.path)
        packages.append(package)

    return packages
