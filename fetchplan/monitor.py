"""
Plan monitor for tracking the query cost of repository operations.
"""

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from .core.settings import MonitoringSettings

logger = logging.getLogger(__name__)


@dataclass
class PlanMetrics:
    """Metrics for one repository operation."""

    operation: str = ""
    strategy: str = ""
    execution_time: float = 0.0
    query_count: int = 0
    row_count: int = 0


class PlanMonitor:
    """Counts the queries and rows each operation sends through an executor."""

    def __init__(self, config: Optional[MonitoringSettings] = None):
        self.config = config or MonitoringSettings()
        self.metrics: Dict[str, List[PlanMetrics]] = defaultdict(list)

    @contextmanager
    def track(self, executor: Any, operation: str, strategy: str = "") -> Iterator[PlanMetrics]:
        """
        Measure the block as one operation.

        The yielded PlanMetrics is filled in when the block exits, including
        when it raises.
        """
        metrics = PlanMetrics(operation=operation, strategy=strategy)
        if not self.config.enable_query_monitoring:
            yield metrics
            return

        start_time = time.monotonic()
        initial_query_count = getattr(executor, "query_count", 0)
        initial_row_count = getattr(executor, "row_count", 0)
        try:
            yield metrics
        finally:
            metrics.execution_time = time.monotonic() - start_time
            metrics.query_count = getattr(executor, "query_count", 0) - initial_query_count
            metrics.row_count = getattr(executor, "row_count", 0) - initial_row_count
            self.record(metrics)

    def record(self, metrics: PlanMetrics) -> None:
        self.metrics[metrics.operation].append(metrics)

        if metrics.query_count > self.config.max_queries_warning:
            logger.warning(
                f"{metrics.operation} ({metrics.strategy}) issued {metrics.query_count} "
                f"database queries (threshold {self.config.max_queries_warning})"
            )
        if metrics.execution_time > self.config.slow_plan_threshold:
            logger.warning(
                f"Slow plan detected: {metrics.operation} ({metrics.strategy}) took "
                f"{metrics.execution_time:.2f}s with {metrics.query_count} database queries"
            )
        logger.debug(
            f"{metrics.operation} ({metrics.strategy}): {metrics.query_count} queries, "
            f"{metrics.row_count} rows, {metrics.execution_time:.4f}s"
        )

    def last(self, operation: str) -> Optional[PlanMetrics]:
        history = self.metrics.get(operation)
        return history[-1] if history else None

    def get_stats(self, operation: str) -> Dict[str, Any]:
        """Aggregate statistics for one operation."""
        history = self.metrics.get(operation, [])
        if not history:
            return {}
        return {
            "operation": operation,
            "total_executions": len(history),
            "avg_execution_time": sum(m.execution_time for m in history) / len(history),
            "avg_query_count": sum(m.query_count for m in history) / len(history),
            "max_query_count": max(m.query_count for m in history),
        }
