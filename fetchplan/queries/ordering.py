"""
Ordering helpers for query planning.
"""

from typing import List, Optional, Sequence, Type

from django.core.exceptions import FieldDoesNotExist
from django.db import models

from ..core.exceptions import UnsupportedOrdering
from .description import Projection, SortTerm


def resolve_to_one_path(model: Type[models.Model], path: str) -> Optional[models.Field]:
    """
    Walk a lookup path and return its final field.

    Returns None when a segment is unknown or crosses a to-many relation,
    since ordering on such a path multiplies parent rows.
    """
    current_model = model
    final_field = None
    segments = path.split("__")
    for index, segment in enumerate(segments):
        if segment == "pk":
            final_field = current_model._meta.pk
        else:
            try:
                final_field = current_model._meta.get_field(segment)
            except FieldDoesNotExist:
                return None
        if final_field.is_relation:
            if final_field.many_to_many or final_field.one_to_many:
                return None
            if index < len(segments) - 1:
                current_model = final_field.related_model
        elif index < len(segments) - 1:
            return None
    return final_field


def find_to_many_segment(model: Type[models.Model], path: str) -> Optional[str]:
    """
    Return the prefix of ``path`` that crosses a to-many relation, if any.

    Segments past a non-relation field (transforms such as ``__year``) and
    unknown segments are left for the ORM to validate.
    """
    current_model = model
    segments = path.split("__")
    for index, segment in enumerate(segments):
        try:
            field = current_model._meta.get_field(segment)
        except FieldDoesNotExist:
            return None
        if not field.is_relation:
            return None
        if field.many_to_many or field.one_to_many:
            return "__".join(segments[: index + 1])
        current_model = field.related_model
    return None


def resolve_order_by(
    model: Type[models.Model],
    projection: Projection,
    sort: Sequence[SortTerm],
    prefix: str = "",
) -> List[str]:
    """
    Translate sort terms into ``order_by`` specs, parent key appended last.

    Sort fields may be projection output names or to-one lookup paths.

    Raises:
        UnsupportedOrdering: If a field is unknown or crosses a to-many relation
    """
    order_by: List[str] = []
    invalid: List[str] = []
    seen_paths = set()
    for term in sort:
        path = projection.fields.get(term.field, term.field)
        if resolve_to_one_path(model, path) is None:
            invalid.append(term.field)
            continue
        seen_paths.add(path)
        order_by.append(term.to_order_by(f"{prefix}{path}"))

    if invalid:
        raise UnsupportedOrdering(
            f"Unsupported ordering fields for {model.__name__}: {', '.join(invalid)}",
            model_name=model.__name__,
            fields=invalid,
        )

    # Stable tiebreaker so offset pagination and first-seen grouping are deterministic.
    key_path = projection.key_path
    if key_path not in seen_paths and not (
        key_path in ("pk", model._meta.pk.name) and seen_paths & {"pk", model._meta.pk.name}
    ):
        order_by.append(f"{prefix}{key_path}")
    return order_by

