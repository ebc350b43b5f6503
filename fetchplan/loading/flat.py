"""
Flat single-query loading.

Every association is joined into one query that returns a flat row per
(parent, child, ...) combination; nothing is deduplicated by the database.
The rows are regrouped by ``group_flat_rows``, which also drops the
duplicates produced when several associations are joined at once. Reserved
for bounded, unpaginated result sets.
"""

import logging
from typing import List

from ..grouping import GroupedResult, group_flat_rows
from .base import CollectionLoader, LoadingStrategy

logger = logging.getLogger(__name__)


class FlatLoader(CollectionLoader):
    strategy = LoadingStrategy.FLAT
    supports_pagination = False
    joins_collections = True

    def load(self, plan) -> List[GroupedResult]:
        rows = self.executor.execute(plan.content)
        if len(plan.associations) > 1:
            logger.debug(
                f"Flat load of {self.builder.model.__name__} joined "
                f"{len(plan.associations)} associations into {len(rows)} rows"
            )
        return group_flat_rows(rows, plan.shape)
