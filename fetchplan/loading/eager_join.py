"""
Eager-join loading: one LEFT JOIN query, deduplicated in memory.

The join returns one row per (parent, child) pair, so parent rows repeat once
per child. Only one one-to-many association may be joined (two would multiply
rows combinatorially) and offset/limit cannot be applied, because SQL would
page over joined rows rather than parents.
"""

import logging
from typing import List

from ..grouping import GroupedResult, group_flat_rows
from .base import CollectionLoader, LoadingStrategy

logger = logging.getLogger(__name__)


class EagerJoinLoader(CollectionLoader):
    strategy = LoadingStrategy.EAGER_JOIN
    supports_pagination = False
    joins_collections = True
    max_associations = 1

    def load(self, plan) -> List[GroupedResult]:
        rows = self.executor.execute(plan.content)
        results = group_flat_rows(rows, plan.shape)
        if len(rows) != len(results):
            logger.debug(
                f"Eager join on {self.builder.model.__name__} collapsed "
                f"{len(rows)} rows into {len(results)} parents"
            )
        return results
