"""
Search criteria and predicate composition.

    - criteria: Criteria values and FilterSet-backed cleaning
    - composer: PredicateComposer folding present criteria into one Q
"""

from .composer import Criterion, PredicateComposer, criteria_from_filterset
from .criteria import Criteria, is_blank

__all__ = [
    "Criteria",
    "Criterion",
    "PredicateComposer",
    "criteria_from_filterset",
    "is_blank",
]
