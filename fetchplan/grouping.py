"""
Flat-to-tree grouping.

A join between a parent and its one-to-many children returns one flat row
per (parent, child) pair. ``group_flat_rows`` folds those rows back into one
``GroupedResult`` per parent, keeping parents and children in the order they
first appear in the input and dropping duplicated child identities.

Parent order is first-appearance order, so callers that need a stable output
order must sort the underlying query.
"""

import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChildShape:
    """Row columns that carry one association's child payload."""

    name: str
    key: str
    fields: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.fields, (list, tuple)):
            object.__setattr__(self, "fields", {column: column for column in self.fields})
        if self.key not in self.fields.values():
            raise ValueError(f"Child key column '{self.key}' of '{self.name}' must be projected")

    def extract(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: row.get(column) for name, column in self.fields.items()}


@dataclass(frozen=True)
class RowShape:
    """
    How to read a flat row.

    ``key`` is the parent identity column, ``fields`` maps parent output
    names to columns, ``children`` describes each joined association.
    """

    key: str
    fields: Dict[str, str] = field(default_factory=dict)
    children: Tuple[ChildShape, ...] = ()

    def __post_init__(self):
        if isinstance(self.fields, (list, tuple)):
            object.__setattr__(self, "fields", {column: column for column in self.fields})
        object.__setattr__(self, "children", tuple(self.children))

    def extract(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: row.get(column) for name, column in self.fields.items()}

    def child(self, name: str) -> ChildShape:
        for child in self.children:
            if child.name == name:
                return child
        raise KeyError(name)


@dataclass
class GroupedResult:
    """One parent with its nested child lists, keyed by association name."""

    key: Any
    fields: Dict[str, Any]
    children: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]


class _Accumulator:
    __slots__ = ("key", "fields", "children", "seen")

    def __init__(self, key: Any, fields: Dict[str, Any], child_names: Iterable[str]):
        self.key = key
        self.fields = fields
        self.children: Dict[str, List[Dict[str, Any]]] = {name: [] for name in child_names}
        self.seen: Dict[str, set] = {name: set() for name in self.children}

    def add(self, child: ChildShape, row: Mapping[str, Any]) -> None:
        identity = row.get(child.key)
        # LEFT JOIN padding: the parent has no child for this association.
        if identity is None:
            return
        if identity in self.seen[child.name]:
            return
        self.seen[child.name].add(identity)
        self.children[child.name].append(child.extract(row))

    def materialize(self) -> GroupedResult:
        return GroupedResult(key=self.key, fields=self.fields, children=self.children)


def group_flat_rows(rows: Iterable[Mapping[str, Any]], shape: RowShape) -> List[GroupedResult]:
    """
    Regroup flat (parent, child) rows into one result per parent.

    Args:
        rows: Flat rows in query order
        shape: Which columns hold the parent key/fields and each child payload

    Returns:
        One GroupedResult per distinct parent key, in first-seen order, with
        children in first-seen order and without duplicated identities
    """
    accumulators: "OrderedDict[Any, _Accumulator]" = OrderedDict()
    child_names = [child.name for child in shape.children]
    row_count = 0

    for row in rows:
        row_count += 1
        parent_key = row.get(shape.key)
        accumulator = accumulators.get(parent_key)
        if accumulator is None:
            accumulator = _Accumulator(parent_key, shape.extract(row), child_names)
            accumulators[parent_key] = accumulator
        for child in shape.children:
            accumulator.add(child, row)

    logger.debug(f"Grouped {row_count} flat rows into {len(accumulators)} results")
    return [accumulator.materialize() for accumulator in accumulators.values()]


def flatten_grouped(results: Iterable[GroupedResult], shape: RowShape) -> List[Dict[str, Any]]:
    """
    Inverse of ``group_flat_rows``.

    Emits the cartesian product of each parent's child lists, one row per
    combination; a parent without children for an association gets null
    child columns, as a LEFT JOIN would produce.
    """
    rows: List[Dict[str, Any]] = []
    for result in results:
        parent_columns = {column: result.fields.get(name) for name, column in shape.fields.items()}
        parent_columns[shape.key] = result.key
        per_child = []
        for child in shape.children:
            children = result.children.get(child.name) or [None]
            per_child.append([(child, payload) for payload in children])

        for combination in itertools.product(*per_child):
            row = dict(parent_columns)
            for child, payload in combination:
                for name, column in child.fields.items():
                    row[column] = payload.get(name) if payload is not None else None
                if payload is None:
                    row[child.key] = None
            rows.append(row)
    return rows
