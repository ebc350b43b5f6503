"""
Naive per-parent loading: one follow-up query per parent and association.

Issues ``1 + N*A`` queries. Kept as the correctness baseline the other
strategies are compared against.
"""

import logging
from typing import List

from ..grouping import GroupedResult
from .base import CollectionLoader, LoadingStrategy

logger = logging.getLogger(__name__)


class NaiveLoader(CollectionLoader):
    strategy = LoadingStrategy.NAIVE

    def load(self, plan) -> List[GroupedResult]:
        results = self.load_parents(plan)
        if plan.associations and results and self.settings.loading.warn_on_naive_strategy:
            logger.warning(
                f"Naive loading of {self.builder.model.__name__} will issue "
                f"{1 + len(results) * len(plan.associations)} queries; "
                "use batched loading outside of tests"
            )

        for result in results:
            for resolved in plan.associations:
                shape = self.builder.child_shape(resolved)
                rows = self.executor.execute(
                    self.builder.children_description(resolved, [result.key])
                )
                result.children[resolved.name] = [shape.extract(row) for row in rows]
        return results
