"""
Domain layer for pkgsweep.

Contains pure domain objects and rules with no I/O or side effects:
- Package: A tracked import path and its importer count
- RepositoryInfo / CommitRecord: GitHub metadata used by the rules
- EvaluationResult: The per-package answer of a batch
- rules: archive and fast-fork eligibility
"""

from .package import (
    Package,
    RepositoryInfo,
    CommitRecord,
    EvaluationResult,
    parse_timestamp,
    format_timestamp,
)
from .rules import is_archive_eligible, is_fast_fork

__all__ = [
    'Package',
    'RepositoryInfo',
    'CommitRecord',
    'EvaluationResult',
    'parse_timestamp',
    'format_timestamp',
    'is_archive_eligible',
    'is_fast_fork',
]
