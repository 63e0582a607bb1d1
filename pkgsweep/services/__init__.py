"""
Service layer for pkgsweep.

Services orchestrate domain rules and infrastructure:
- DecisionService: archive / fast fork / suppress decisions for one package
- BatchEvaluator: concurrent evaluation of a whole package list
"""

from .decision_service import DecisionService
from .batch_service import BatchEvaluator

__all__ = [
    'DecisionService',
    'BatchEvaluator',
]
