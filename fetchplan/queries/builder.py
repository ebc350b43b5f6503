"""
Query plan builder.

Assembles predicates, sort terms and association declarations into
``QueryDescription`` objects for the selected loading strategy. The builder
never touches the database: every validation error it raises happens before
the first query of a plan is executed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Sequence, Tuple, Type

from django.db import models
from django.db.models import Q

from ..core.exceptions import (
    AssociationError,
    InvalidPaginationRequest,
    UnsupportedStrategyCombination,
)
from ..core.settings import get_fetchplan_settings
from ..grouping import ChildShape, RowShape
from .description import Association, Projection, QueryDescription, SortTerm
from .ordering import resolve_order_by

if TYPE_CHECKING:
    from ..core.settings import FetchPlanSettings
    from ..loading.base import LoadingStrategy
    from ..pagination import PageRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAssociation:
    """An association bound to its child model and foreign key."""

    association: Association
    child_model: Type[models.Model]
    fk_name: str

    @property
    def name(self) -> str:
        return self.association.name


@dataclass
class QueryPlan:
    """Descriptions for one strategy, ready for a loader to execute."""

    strategy: "LoadingStrategy"
    content: QueryDescription
    count: QueryDescription
    associations: Tuple[ResolvedAssociation, ...]
    shape: RowShape
    page_request: Optional["PageRequest"] = None


def resolve_association(
    model: Type[models.Model], association: Association
) -> ResolvedAssociation:
    """
    Bind an association to the reverse foreign key it names.

    Raises:
        AssociationError: If ``association.name`` is not a reverse
            one-to-many accessor of ``model``
    """
    relation = None
    for rel in model._meta.related_objects:
        if rel.get_accessor_name() == association.name:
            relation = rel
            break

    if relation is None or not relation.one_to_many:
        raise AssociationError(
            f"'{association.name}' is not a one-to-many association of {model.__name__}",
            model_name=model.__name__,
            association=association.name,
        )
    query_name = relation.field.related_query_name()
    if query_name != association.name:
        raise AssociationError(
            f"'{association.name}' must match the related query name "
            f"'{query_name}' to be joined",
            model_name=model.__name__,
            association=association.name,
        )
    return ResolvedAssociation(
        association=association,
        child_model=relation.related_model,
        fk_name=relation.field.name,
    )


def chunked(keys: Iterable[Any], size: int) -> List[List[Any]]:
    """Split keys into consecutive chunks of at most ``size``, duplicates removed."""
    unique = list(dict.fromkeys(keys))
    return [unique[index:index + size] for index in range(0, len(unique), size)]


class QueryPlanBuilder:
    """Builds query descriptions for a parent model and its associations."""

    def __init__(
        self,
        model: Type[models.Model],
        projection: Projection,
        associations: Sequence[Association] = (),
        settings: Optional["FetchPlanSettings"] = None,
    ):
        self.model = model
        self.projection = projection
        self.associations = tuple(resolve_association(model, a) for a in associations)
        self._settings = settings
        self._validate_key()

    @property
    def settings(self) -> "FetchPlanSettings":
        return self._settings or get_fetchplan_settings()

    def _validate_key(self) -> None:
        key_path = self.projection.key_path
        if key_path not in ("pk", self.model._meta.pk.name, self.model._meta.pk.attname):
            raise AssociationError(
                f"Projection key of {self.model.__name__} must be its primary key, got '{key_path}'",
                model_name=self.model.__name__,
            )

    def association(self, name: str) -> ResolvedAssociation:
        for resolved in self.associations:
            if resolved.name == name:
                return resolved
        raise AssociationError(
            f"Unknown association '{name}' for {self.model.__name__}",
            model_name=self.model.__name__,
            association=name,
        )

    # -- Shapes ------------------------------------------------------------

    def parent_shape(self) -> RowShape:
        """Shape of parent-only rows (no child columns)."""
        return RowShape(
            key=self.projection.key_path,
            fields=self.projection.column_map(),
        )

    def joined_shape(self, associations: Optional[Sequence[ResolvedAssociation]] = None) -> RowShape:
        """Shape of rows joining the parent with each association."""
        associations = self.associations if associations is None else associations
        children = tuple(
            ChildShape(
                name=resolved.name,
                key=f"{resolved.association.prefix}{resolved.association.projection.key_path}",
                fields=resolved.association.projection.column_map(resolved.association.prefix),
            )
            for resolved in associations
        )
        return RowShape(
            key=self.projection.key_path,
            fields=self.projection.column_map(),
            children=children,
        )

    def child_shape(self, resolved: ResolvedAssociation) -> ChildShape:
        """Shape of rows returned by a child follow-up query."""
        projection = resolved.association.projection
        return ChildShape(
            name=resolved.name,
            key=projection.key_path,
            fields=projection.column_map(),
        )

    # -- Descriptions ------------------------------------------------------

    def content_description(
        self,
        predicate: Q,
        sort: Sequence[SortTerm] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> QueryDescription:
        """Parent-only query; the only shape that can be sliced at SQL level."""
        return QueryDescription(
            model=self.model,
            columns=self.projection.columns(),
            filter=predicate,
            order_by=tuple(resolve_order_by(self.model, self.projection, sort)),
            offset=offset,
            limit=limit,
        )

    def count_description(self, predicate: Q) -> QueryDescription:
        return self.content_description(predicate).as_count()

    def joined_description(
        self,
        predicate: Q,
        sort: Sequence[SortTerm] = (),
        associations: Optional[Sequence[ResolvedAssociation]] = None,
    ) -> QueryDescription:
        """
        One row per (parent, child) combination across ``associations``.

        Ordered by the parent sort, then each association's child order, so
        first-seen grouping reproduces the same order as follow-up loading.
        """
        associations = self.associations if associations is None else associations
        columns = list(self.projection.columns())
        order_by = resolve_order_by(self.model, self.projection, sort)
        for resolved in associations:
            association = resolved.association
            columns.extend(association.projection.columns(association.prefix))
            order_by.extend(
                resolve_order_by(
                    resolved.child_model,
                    association.projection,
                    association.order_by,
                    prefix=association.prefix,
                )
            )
        return QueryDescription(
            model=self.model,
            columns=tuple(columns),
            filter=predicate,
            order_by=tuple(order_by),
            joins=tuple(resolved.name for resolved in associations),
        )

    def children_description(
        self, resolved: ResolvedAssociation, parent_keys: Sequence[Any]
    ) -> QueryDescription:
        """Children of the given parents; a single key yields ``fk = key``."""
        projection = resolved.association.projection
        if len(parent_keys) == 1:
            key_filter = Q(**{resolved.fk_name: parent_keys[0]})
        else:
            key_filter = Q(**{f"{resolved.fk_name}__in": list(parent_keys)})
        order_by = [resolved.fk_name] if len(parent_keys) > 1 else []
        order_by.extend(
            resolve_order_by(resolved.child_model, projection, resolved.association.order_by)
        )
        return QueryDescription(
            model=resolved.child_model,
            columns=(resolved.fk_name, *projection.columns()),
            filter=key_filter,
            order_by=tuple(order_by),
        )

    def batch_descriptions(
        self,
        resolved: ResolvedAssociation,
        parent_keys: Iterable[Any],
        batch_size: Optional[int] = None,
    ) -> List[QueryDescription]:
        """One ``fk IN (...)`` description per chunk of at most ``batch_size`` keys."""
        batch_size = batch_size or self.settings.loading.batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        return [
            self.children_description(resolved, chunk)
            for chunk in chunked(parent_keys, batch_size)
        ]

    # -- Plans -------------------------------------------------------------

    def validate(
        self,
        strategy: "LoadingStrategy",
        page_request: Optional["PageRequest"] = None,
    ) -> None:
        """
        Reject strategy/pagination combinations before any query runs.

        Raises:
            InvalidPaginationRequest: If the limit exceeds ``max_page_size``
            UnsupportedStrategyCombination: If a join strategy is paginated or
                eager-join is asked for more than one association
        """
        from ..loading import get_loader_class

        loader_class = get_loader_class(strategy)
        names = [resolved.name for resolved in self.associations]

        if page_request is not None:
            max_page_size = self.settings.pagination.max_page_size
            if page_request.limit > max_page_size:
                raise InvalidPaginationRequest(
                    f"limit {page_request.limit} exceeds the maximum page size {max_page_size}",
                    offset=page_request.offset,
                    limit=page_request.limit,
                    max_page_size=max_page_size,
                )
            if not loader_class.supports_pagination:
                raise UnsupportedStrategyCombination(
                    f"{strategy.value} loading cannot paginate {self.model.__name__}: "
                    "joined rows do not map one-to-one onto parents; use batched loading",
                    strategy=strategy.value,
                    associations=names,
                    model_name=self.model.__name__,
                )

        max_associations = loader_class.max_associations
        if max_associations is not None and len(names) > max_associations:
            raise UnsupportedStrategyCombination(
                f"{strategy.value} loading joins at most {max_associations} one-to-many "
                f"association per query, got {names}",
                strategy=strategy.value,
                associations=names,
                model_name=self.model.__name__,
            )

    def plan(
        self,
        strategy: "LoadingStrategy",
        predicate: Q,
        sort: Sequence[SortTerm] = (),
        page_request: Optional["PageRequest"] = None,
    ) -> QueryPlan:
        """Validate and assemble the descriptions ``strategy`` needs."""
        from ..loading import get_loader_class

        self.validate(strategy, page_request)
        if page_request is not None and page_request.sort:
            sort = page_request.sort

        if get_loader_class(strategy).joins_collections and self.associations:
            content = self.joined_description(predicate, sort)
            shape = self.joined_shape()
        else:
            offset = page_request.offset if page_request is not None else None
            limit = page_request.limit if page_request is not None else None
            content = self.content_description(predicate, sort, offset, limit)
            shape = self.parent_shape()

        plan = QueryPlan(
            strategy=strategy,
            content=content,
            count=self.count_description(predicate),
            associations=self.associations,
            shape=shape,
            page_request=page_request,
        )
        logger.debug(
            f"Planned {strategy.value} load of {self.model.__name__}: {content.describe()}"
        )
        return plan
