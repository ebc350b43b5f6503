"""
Query execution backed by the Django ORM.

The executor is the only component that talks to the database. It evaluates
one ``QueryDescription`` per call and counts the round trips it makes, which
is what the monitor and the tests use to check a plan's query cost.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Union

from django.db.models import QuerySet

from .description import QueryDescription

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class QueryExecutor(Protocol):
    """Runs a description: rows for content queries, an int for counts."""

    query_count: int

    def execute(self, description: QueryDescription) -> Union[List[Row], int]:
        ...


class DjangoQueryExecutor:
    """Evaluates query descriptions as ``.values()`` / ``.count()`` querysets."""

    def __init__(self, using: Optional[str] = None):
        self.using = using
        self.query_count = 0
        self.row_count = 0

    def build_queryset(self, description: QueryDescription) -> QuerySet:
        """Translate a description into an unevaluated queryset."""
        manager = description.model._default_manager
        queryset = manager.using(self.using) if self.using else manager.all()
        queryset = queryset.filter(description.filter)
        if description.count:
            return queryset

        if description.order_by:
            queryset = queryset.order_by(*description.order_by)
        queryset = queryset.values(*description.columns)

        if description.offset is not None or description.limit is not None:
            start = description.offset or 0
            stop = start + description.limit if description.limit is not None else None
            queryset = queryset[start:stop]
        return queryset

    def execute(self, description: QueryDescription) -> Union[List[Row], int]:
        queryset = self.build_queryset(description)
        started = time.monotonic()
        if description.count:
            result: Union[List[Row], int] = queryset.count()
        else:
            result = list(queryset)
            self.row_count += len(result)
        self.query_count += 1
        logger.debug(
            "Executed %s query on %s in %.4fs (%s)",
            "count" if description.count else "content",
            description.model.__name__,
            time.monotonic() - started,
            f"{result} rows counted" if description.count else f"{len(result)} rows",
        )
        return result

