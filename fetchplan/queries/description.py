"""
Query descriptions and the shapes they project.

A ``QueryDescription`` is everything the executor needs to run one query:
the model, the ``.values()`` columns, the filter, ordering and slicing. It is
built by ``QueryPlanBuilder`` and evaluated by ``DjangoQueryExecutor``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union

from django.db import models
from django.db.models import Q


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortTerm:
    """One ``(field, direction)`` sort term."""

    field: str
    direction: Direction = Direction.ASC

    @classmethod
    def parse(cls, spec: Union[str, "SortTerm"]) -> "SortTerm":
        """Parse ``"age"`` / ``"-age"``; ``SortTerm`` instances pass through."""
        if isinstance(spec, SortTerm):
            return spec
        spec = spec.strip()
        if spec.startswith("-"):
            return cls(spec[1:], Direction.DESC)
        return cls(spec.lstrip("+"), Direction.ASC)

    @property
    def descending(self) -> bool:
        return self.direction == Direction.DESC

    def to_order_by(self, path: Optional[str] = None) -> str:
        path = path or self.field
        return f"-{path}" if self.descending else path


def parse_sort(specs) -> Tuple[SortTerm, ...]:
    """Normalize None, a single spec or an iterable of specs into sort terms."""
    if not specs:
        return ()
    if isinstance(specs, (str, SortTerm)):
        specs = [specs]
    return tuple(SortTerm.parse(spec) for spec in specs if spec)


@dataclass(frozen=True)
class Projection:
    """
    Output fields of a record mapped onto ORM lookup paths.

    ``fields`` maps output name -> lookup path relative to the projected
    model, e.g. ``{"order_id": "id", "name": "member__name"}``. ``key`` is the
    output name of the identity field.
    """

    key: str
    fields: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.fields, (list, tuple)):
            object.__setattr__(self, "fields", {path: path for path in self.fields})
        if self.key not in self.fields:
            raise ValueError(
                f"Projection key '{self.key}' must be one of its fields {list(self.fields)}"
            )

    @property
    def key_path(self) -> str:
        return self.fields[self.key]

    def columns(self, prefix: str = "") -> Tuple[str, ...]:
        """Row columns of this projection, optionally behind a relation prefix."""
        return tuple(f"{prefix}{path}" for path in self.fields.values())

    def column_map(self, prefix: str = "") -> Dict[str, str]:
        return {name: f"{prefix}{path}" for name, path in self.fields.items()}


@dataclass(frozen=True)
class Association:
    """
    A one-to-many association loaded alongside its parent.

    ``name`` is the reverse accessor on the parent model (the related_name of
    the child's foreign key).
    """

    name: str
    projection: Projection
    order_by: Tuple[SortTerm, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "order_by", parse_sort(self.order_by))

    @property
    def prefix(self) -> str:
        return f"{self.name}__"


@dataclass(frozen=True)
class QueryDescription:
    """An executable query: model, projected columns, filter, order and slice."""

    model: Type[models.Model]
    columns: Tuple[str, ...] = ()
    filter: Q = field(default_factory=Q)
    order_by: Tuple[str, ...] = ()
    offset: Optional[int] = None
    limit: Optional[int] = None
    joins: Tuple[str, ...] = ()
    count: bool = False

    def as_count(self) -> "QueryDescription":
        """Same filter and joins, projecting a count; no order, offset or limit."""
        return replace(
            self, columns=(), order_by=(), offset=None, limit=None, count=True
        )

    def with_slice(self, offset: Optional[int], limit: Optional[int]) -> "QueryDescription":
        return replace(self, offset=offset, limit=limit)

    def describe(self) -> Dict[str, Any]:
        """Loggable summary of the description."""
        return {
            "model": self.model.__name__,
            "count": self.count,
            "columns": list(self.columns),
            "filter": str(self.filter),
            "order_by": list(self.order_by),
            "offset": self.offset,
            "limit": self.limit,
            "joins": list(self.joins),
        }
