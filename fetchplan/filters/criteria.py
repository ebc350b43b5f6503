"""
Search criteria.

Criteria are declared with a django-filter ``FilterSet``: each declared filter
names the model field it constrains (``field_name``) and the comparison
(``lookup_expr``). A ``Criteria`` value holds the per-request values for those
filters; absent or blank values impose no constraint.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional, Type

from django_filters import FilterSet
from django_filters.constants import EMPTY_VALUES

from ..core.exceptions import InvalidCriteria

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """Return True when a criterion value should impose no constraint."""
    if value in EMPTY_VALUES:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class Criteria(Mapping):
    """
    Immutable mapping from criterion name to an optional value.

    Example:
        >>> criteria = Criteria(username="member1", age_goe=10)
        >>> criteria.present()
        {'username': 'member1', 'age_goe': 10}
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping] = None, **kwargs: Any):
        data = dict(values or {})
        data.update(kwargs)
        self._values = MappingProxyType(data)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Criteria({dict(self._values)!r})"

    def present(self) -> Dict[str, Any]:
        """Return only the criteria that carry a value."""
        return {k: v for k, v in self._values.items() if not is_blank(v)}

    def is_empty(self) -> bool:
        return not self.present()

    @classmethod
    def from_data(
        cls, filterset_class: Type[FilterSet], data: Optional[Mapping]
    ) -> "Criteria":
        """
        Clean raw request data through the FilterSet form.

        Args:
            filterset_class: FilterSet declaring the recognized criteria
            data: Raw values, typically a request QueryDict, handed to the form as is

        Returns:
            Criteria holding the cleaned values of every declared filter

        Raises:
            InvalidCriteria: If the form rejects a value
        """
        model = filterset_class._meta.model
        filterset = filterset_class(
            data=data if data is not None else {}, queryset=model._default_manager.none()
        )
        if not filterset.is_valid():
            errors = {name: list(messages) for name, messages in filterset.errors.items()}
            logger.debug(f"Rejected criteria for {model.__name__}: {errors}")
            raise InvalidCriteria(
                f"Invalid search criteria: {', '.join(sorted(errors))}",
                errors=errors,
                model_name=model.__name__,
            )
        return cls(filterset.form.cleaned_data)

    @classmethod
    def coerce(
        cls, value: Any, filterset_class: Optional[Type[FilterSet]] = None
    ) -> "Criteria":
        """Accept a Criteria, a raw mapping or None."""
        if value is None:
            return cls()
        if isinstance(value, Criteria):
            return value
        if filterset_class is not None:
            return cls.from_data(filterset_class, value)
        return cls(value)
