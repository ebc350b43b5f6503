"""
Query descriptions, ordering, planning and execution.
"""

from .builder import QueryPlan, QueryPlanBuilder, ResolvedAssociation, chunked, resolve_association
from .description import Association, Direction, Projection, QueryDescription, SortTerm, parse_sort
from .executor import DjangoQueryExecutor, QueryExecutor, Row

__all__ = [
    "Association",
    "Direction",
    "DjangoQueryExecutor",
    "Projection",
    "QueryDescription",
    "QueryExecutor",
    "QueryPlan",
    "QueryPlanBuilder",
    "ResolvedAssociation",
    "Row",
    "SortTerm",
    "chunked",
    "parse_sort",
    "resolve_association",
]
