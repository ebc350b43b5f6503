"""
Predicate composer.

Turns a ``Criteria`` value into a single Django ``Q`` predicate. Each
recognized criterion yields one sub-predicate or nothing; the produced
sub-predicates are folded with ``&`` starting from the empty ``Q()``, which
matches every row.
"""

import logging
import operator
from dataclasses import dataclass
from functools import reduce
from typing import Any, List, Optional, Tuple, Type

from django.core.exceptions import ImproperlyConfigured
from django.db.models import Q
from django_filters import FilterSet

from ..queries.ordering import find_to_many_segment
from .criteria import Criteria, is_blank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Criterion:
    """A recognized criterion: which field it constrains and how."""

    name: str
    field_name: str
    lookup_expr: str = "exact"
    exclude: bool = False

    @property
    def lookup(self) -> str:
        if self.lookup_expr == "exact":
            return self.field_name
        return f"{self.field_name}__{self.lookup_expr}"

    def to_q(self, value: Any) -> Optional[Q]:
        """Build the sub-predicate for ``value``, or None when it is blank."""
        if is_blank(value):
            return None
        if isinstance(value, slice):
            # RangeFilter values: either bound may be open.
            q = Q()
            if value.start is not None:
                q &= Q(**{f"{self.field_name}__gte": value.start})
            if value.stop is not None:
                q &= Q(**{f"{self.field_name}__lte": value.stop})
            if not q:
                return None
        else:
            q = Q(**{self.lookup: value})
        return ~q if self.exclude else q


def criteria_from_filterset(filterset_class: Type[FilterSet]) -> List[Criterion]:
    """
    Read criterion declarations from a FilterSet class.

    Raises:
        ImproperlyConfigured: If a filter uses a custom ``method``, which
            filters a queryset instead of describing a comparison, or if its
            field path crosses a to-many relation, which would repeat parents.
    """
    model = filterset_class._meta.model
    declared = []
    for name, flt in filterset_class.base_filters.items():
        if getattr(flt, "method", None):
            raise ImproperlyConfigured(
                f"Filter '{name}' on {filterset_class.__name__} uses a custom method "
                "and cannot be composed into a predicate"
            )
        field_name = flt.field_name or name
        to_many = find_to_many_segment(model, field_name) if model is not None else None
        if to_many:
            raise ImproperlyConfigured(
                f"Filter '{name}' on {filterset_class.__name__} crosses the to-many "
                f"relation '{to_many}' and cannot be composed into a parent predicate"
            )
        declared.append(
            Criterion(
                name=name,
                field_name=field_name,
                lookup_expr=flt.lookup_expr or "exact",
                exclude=bool(getattr(flt, "exclude", False)),
            )
        )
    return declared


class PredicateComposer:
    """Composes Criteria into a conjunctive ``Q`` predicate."""

    def __init__(self, criteria: List[Criterion]):
        self.criteria = list(criteria)
        self._by_name = {criterion.name: criterion for criterion in self.criteria}

    @classmethod
    def for_filterset(cls, filterset_class: Type[FilterSet]) -> "PredicateComposer":
        return cls(criteria_from_filterset(filterset_class))

    def sub_predicates(self, criteria: Criteria) -> List[Tuple[str, Q]]:
        """Return ``(criterion name, Q)`` for every criterion carrying a value."""
        unknown = [name for name in criteria if name not in self._by_name]
        if unknown:
            logger.debug(f"Ignoring unrecognized criteria: {unknown}")

        produced = []
        for criterion in self.criteria:
            q = criterion.to_q(criteria.get(criterion.name))
            if q is not None:
                produced.append((criterion.name, q))
        return produced

    def compose(self, criteria: Optional[Criteria]) -> Q:
        """Fold all present sub-predicates with AND; ``Q()`` when none are set."""
        if criteria is None:
            return Q()
        return reduce(
            operator.and_, (q for _, q in self.sub_predicates(criteria)), Q()
        )
