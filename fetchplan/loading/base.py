"""
Collection loading strategies.

Every strategy resolves the same operation, "load a set of parents with their
one-to-many children", and returns the same ``GroupedResult`` list. They
differ only in how many queries they issue and which plans they accept.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from ..grouping import GroupedResult

if TYPE_CHECKING:
    from ..core.settings import FetchPlanSettings
    from ..queries.builder import QueryPlan, QueryPlanBuilder
    from ..queries.executor import QueryExecutor

logger = logging.getLogger(__name__)


class LoadingStrategy(str, Enum):
    NAIVE = "naive"
    EAGER_JOIN = "eager_join"
    BATCHED = "batched"
    FLAT = "flat"


class CollectionLoader(ABC):
    """
    Loads parents and attaches their collections according to a QueryPlan.

    Class attributes describe which plans the strategy can run; the plan
    builder checks them before anything executes.
    """

    strategy: LoadingStrategy
    # Offset/limit can be applied to the parent query.
    supports_pagination: bool = True
    # Collections are fetched in the parent query itself.
    joins_collections: bool = False
    # None means unbounded.
    max_associations: Optional[int] = None

    def __init__(
        self,
        builder: "QueryPlanBuilder",
        executor: "QueryExecutor",
        settings: Optional["FetchPlanSettings"] = None,
    ):
        self.builder = builder
        self.executor = executor
        self._settings = settings

    @property
    def settings(self) -> "FetchPlanSettings":
        return self._settings or self.builder.settings

    @abstractmethod
    def load(self, plan: "QueryPlan") -> List[GroupedResult]:
        """Execute ``plan`` and return one result per parent, in query order."""

    def load_parents(self, plan: "QueryPlan") -> List[GroupedResult]:
        """Run the parent-only content query; children start out empty."""
        shape = plan.shape
        names = [resolved.name for resolved in plan.associations]
        return [
            GroupedResult(
                key=row[shape.key],
                fields=shape.extract(row),
                children={name: [] for name in names},
            )
            for row in self.executor.execute(plan.content)
        ]
