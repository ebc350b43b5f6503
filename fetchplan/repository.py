"""
Search repository.

``SearchRepository`` is the entry point callers use: it composes criteria
into a predicate, asks the plan builder for the descriptions of the selected
loading strategy, runs them through the executor and hands the grouped
results to the decoder.

Example:
    repository = SearchRepository(
        Order,
        Projection(key="order_id", fields={"order_id": "id", "name": "member__name"}),
        filterset_class=OrderSearchFilterSet,
        associations=[Association("order_items", item_projection)],
        decoder=OrderDto.from_grouped,
    )
    page = repository.search_page({"member_name": "userA"}, PageRequest(0, 10))
"""

import logging
from dataclasses import replace
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from django.db import models
from django_filters import FilterSet

from .core.exceptions import AmbiguousSingleResult, UnsupportedStrategyCombination
from .core.settings import FetchPlanSettings, get_fetchplan_settings
from .filters.composer import PredicateComposer
from .filters.criteria import Criteria
from .grouping import GroupedResult, group_flat_rows
from .loading import CollectionLoader, LoadingStrategy, get_loader_class
from .loading.batched import BatchedLoader
from .monitor import PlanMonitor
from .pagination import PageRequest, PageResult, Slice, resolve_page
from .queries.builder import QueryPlan, QueryPlanBuilder
from .queries.description import Association, Projection, parse_sort
from .queries.executor import DjangoQueryExecutor, QueryExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")

CriteriaInput = Union[Criteria, Mapping[str, Any], None]
StrategyInput = Union[LoadingStrategy, str, None]


def _identity(result: GroupedResult) -> Any:
    return result


class SearchRepository(Generic[T]):
    """Criteria-driven search over one model and its one-to-many associations."""

    def __init__(
        self,
        model: Type[models.Model],
        projection: Projection,
        filterset_class: Optional[Type[FilterSet]] = None,
        associations: Sequence[Association] = (),
        decoder: Optional[Callable[[GroupedResult], T]] = None,
        executor: Optional[QueryExecutor] = None,
        default_sort: Sequence = (),
        settings: Optional[FetchPlanSettings] = None,
    ):
        self.model = model
        self.filterset_class = filterset_class
        self.composer = (
            PredicateComposer.for_filterset(filterset_class)
            if filterset_class is not None
            else PredicateComposer([])
        )
        self.builder = QueryPlanBuilder(model, projection, associations, settings=settings)
        self.decoder = decoder or _identity
        self.executor = executor or DjangoQueryExecutor()
        self.default_sort = parse_sort(default_sort)
        self._settings = settings
        self.monitor = PlanMonitor(self.settings.monitoring)

    @property
    def settings(self) -> FetchPlanSettings:
        return self._settings or get_fetchplan_settings()

    # -- Helpers -----------------------------------------------------------

    def criteria(self, criteria: CriteriaInput) -> Criteria:
        return Criteria.coerce(criteria, self.filterset_class)

    def _strategy(self, strategy: StrategyInput) -> LoadingStrategy:
        strategy = strategy or self.settings.loading.default_strategy
        try:
            return LoadingStrategy(strategy)
        except ValueError:
            raise UnsupportedStrategyCombination(
                f"Unknown loading strategy {strategy!r}; expected one of "
                f"{[choice.value for choice in LoadingStrategy]}",
                strategy=str(strategy),
                associations=[resolved.name for resolved in self.builder.associations],
                model_name=self.model.__name__,
            )

    def _loader(self, strategy: LoadingStrategy) -> CollectionLoader:
        return get_loader_class(strategy)(self.builder, self.executor, self._settings)

    def _plan(
        self,
        strategy: LoadingStrategy,
        criteria: CriteriaInput,
        sort: Sequence = (),
        page_request: Optional[PageRequest] = None,
    ) -> QueryPlan:
        predicate = self.composer.compose(self.criteria(criteria))
        sort = parse_sort(sort) or self.default_sort
        return self.builder.plan(strategy, predicate, sort, page_request)

    def _decode(self, results: Iterable[GroupedResult]) -> List[T]:
        return [self.decoder(result) for result in results]

    def page_request(self, page: int = 1, per_page: Optional[int] = None, sort: Sequence = ()) -> PageRequest:
        """Build a 1-based page request using the configured default page size."""
        per_page = per_page or self.settings.pagination.default_page_size
        return PageRequest.of_page(page, per_page, sort or self.default_sort)

    # -- Operations --------------------------------------------------------

    def search(
        self,
        criteria: CriteriaInput = None,
        sort: Sequence = (),
        strategy: StrategyInput = None,
    ) -> List[T]:
        """Return every matching record, unpaginated."""
        strategy = self._strategy(strategy)
        plan = self._plan(strategy, criteria, sort)
        with self.monitor.track(self.executor, "search", strategy.value):
            results = self._loader(strategy).load(plan)
        return self._decode(results)

    def search_page(
        self,
        criteria: CriteriaInput,
        page_request: PageRequest,
        strategy: StrategyInput = None,
        always_count: bool = False,
    ) -> PageResult[T]:
        """
        Return one page of matching records with its total.

        The count query only runs when the fetched page cannot prove the
        total (or when ``always_count`` is set).

        Raises:
            InvalidPaginationRequest: If the limit exceeds ``max_page_size``
            UnsupportedStrategyCombination: If the strategy cannot paginate
        """
        strategy = self._strategy(strategy)
        plan = self._plan(strategy, criteria, page_request=page_request)
        with self.monitor.track(self.executor, "search_page", strategy.value):
            results = self._loader(strategy).load(plan)
            page = resolve_page(
                self._decode(results),
                page_request,
                lambda: self.executor.execute(plan.count),
                always_count=always_count,
            )
        return page

    def search_slice(
        self,
        criteria: CriteriaInput,
        page_request: PageRequest,
        strategy: StrategyInput = None,
    ) -> Slice[T]:
        """Return one page and whether another follows, by fetching ``limit + 1``."""
        strategy = self._strategy(strategy)
        plan = self._plan(strategy, criteria, page_request=page_request)
        # One extra row tells whether another page follows.
        plan = replace(
            plan, content=plan.content.with_slice(page_request.offset, page_request.limit + 1)
        )
        with self.monitor.track(self.executor, "search_slice", strategy.value):
            results = self._loader(strategy).load(plan)
        has_next = len(results) > page_request.limit
        return Slice(
            content=self._decode(results[: page_request.limit]),
            offset=page_request.offset,
            limit=page_request.limit,
            has_next=has_next,
        )

    def fetch_one(self, criteria: CriteriaInput, strategy: StrategyInput = None) -> Optional[T]:
        """
        Return the single matching record, or None when nothing matches.

        Raises:
            AmbiguousSingleResult: If more than one record matches
        """
        strategy = self._strategy(strategy)
        probe = PageRequest(0, 2) if get_loader_class(strategy).supports_pagination else None
        plan = self._plan(strategy, criteria, page_request=probe)
        with self.monitor.track(self.executor, "fetch_one", strategy.value):
            results = self._loader(strategy).load(plan)
        if len(results) > 1:
            raise AmbiguousSingleResult(
                f"Expected at most one {self.model.__name__}, found several",
                model_name=self.model.__name__,
                keys=[result.key for result in results],
            )
        return self.decoder(results[0]) if results else None

    def fetch_first(
        self,
        criteria: CriteriaInput = None,
        sort: Sequence = (),
        strategy: StrategyInput = None,
    ) -> Optional[T]:
        """Return the first matching record in sort order, or None."""
        strategy = self._strategy(strategy)
        if not get_loader_class(strategy).supports_pagination:
            records = self.search(criteria, sort, strategy)
            return records[0] if records else None
        probe = PageRequest(0, 1, parse_sort(sort) or self.default_sort)
        page = self.search_slice(criteria, probe, strategy)
        return page.content[0] if page.content else None

    def count(self, criteria: CriteriaInput = None) -> int:
        """Count matching parents."""
        predicate = self.composer.compose(self.criteria(criteria))
        with self.monitor.track(self.executor, "count"):
            return self.executor.execute(self.builder.count_description(predicate))

    def load_children(
        self,
        parent_keys: Iterable[Any],
        association: str,
        batch_size: Optional[int] = None,
    ) -> Dict[Any, List[Dict[str, Any]]]:
        """Load one association for known parent keys in ``IN`` batches."""
        resolved = self.builder.association(association)
        loader = BatchedLoader(self.builder, self.executor, self._settings)
        with self.monitor.track(self.executor, "load_children", LoadingStrategy.BATCHED.value):
            return loader.load_children(parent_keys, resolved, batch_size)

    def group_flat_rows(self, rows: Iterable[Mapping[str, Any]]) -> List[GroupedResult]:
        """Regroup rows shaped like this repository's joined query."""
        return group_flat_rows(rows, self.builder.joined_shape())
