"""Orchestrator wiring planning, scouts, aggregation and the result cache."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, TYPE_CHECKING

from .aggregator import Aggregator
from .models import AnalysisResult, Query, QueryPriority, QueryStatus
from .planner import DeploymentPlanner
from .scout_pool import ScoutPool

if TYPE_CHECKING:
    from ..config.loader import PriorityBudgets
    from ..document_store.protocols import DocumentStore
    from .result_cache import ResultCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[QueryStatus], None]


class SearchOrchestrator:
    """
    Runs one classified query through the pipeline.

    cache check -> plan -> scouts (concurrent) -> aggregate -> cache write

    The cache is injected and shared across queries; everything else
    is per-query. Results produced under a timeout are returned but
    never cached.

    Usage:
        orchestrator = SearchOrchestrator(store, cache=ResultCache())
        result, cache_hit = await orchestrator.execute(query)
    """

    def __init__(
        self,
        store: DocumentStore,
        planner: DeploymentPlanner | None = None,
        pool: ScoutPool | None = None,
        aggregator: Aggregator | None = None,
        cache: ResultCache | None = None,
        budgets: PriorityBudgets | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Document store queried by planning and scouts
            planner: Deployment planner. If None, uses defaults.
            pool: Scout pool. If None, builds one over ``store``.
            aggregator: Aggregator. If None, uses defaults.
            cache: Result cache. If None, caching is disabled.
            budgets: Per-priority time budgets. If None, uses defaults.
        """
        if budgets is None:
            from ..config.loader import PriorityBudgets
            budgets = PriorityBudgets()
        self.store = store
        self.planner = planner or DeploymentPlanner()
        self.pool = pool or ScoutPool(store)
        self.aggregator = aggregator or Aggregator()
        self.cache = cache
        self.budgets = budgets

    def budget_ms(self, query: Query) -> int | None:
        """Time budget for a query: its explicit limit, else its priority's."""
        if query.time_budget_ms is not None:
            return query.time_budget_ms
        return {
            QueryPriority.URGENT: self.budgets.urgent,
            QueryPriority.HIGH: self.budgets.high,
            QueryPriority.NORMAL: self.budgets.normal,
            QueryPriority.BACKGROUND: self.budgets.background,
        }[query.priority]

    async def execute(
        self,
        query: Query,
        query_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> tuple[AnalysisResult, bool]:
        """
        Execute a query, serving it from the cache when possible.

        Args:
            query: The classified query
            query_id: Identifier for the run. Generated when omitted.
            on_progress: Called on each pipeline stage change

        Returns:
            Tuple of (result, cache_hit)

        Raises:
            OrchestrationError: If no scout could be started
        """
        def progress(status: QueryStatus) -> None:
            if on_progress is not None:
                on_progress(status)

        if self.cache is not None:
            cached = await self.cache.get(query.original_query)
            if cached is not None:
                logger.info(f"Cache hit for '{query.original_query}'")
                return cached, True
            logger.info(f"Cache miss for '{query.original_query}'")

        query_id = query_id or str(uuid.uuid4())
        start = time.monotonic()
        budget_ms = self.budget_ms(query)

        def remaining_ms() -> int | None:
            if budget_ms is None:
                return None
            elapsed_ms = int((time.monotonic() - start) * 1000)
            # Never zero: the pool treats a missing deadline as unbounded
            return max(1, budget_ms - elapsed_ms)

        progress(QueryStatus.DEPLOYING_SCOUTS)
        planning_ms = remaining_ms()
        plan = await self.planner.plan(
            query,
            self.store,
            timeout=planning_ms / 1000 if planning_ms is not None else None,
        )

        progress(QueryStatus.GATHERING)
        pool_result = await self.pool.run(query, plan, deadline_ms=remaining_ms())

        progress(QueryStatus.ANALYZING)
        result = self.aggregator.aggregate(
            query,
            plan,
            pool_result.workers,
            query_id=query_id,
            timed_out=pool_result.timed_out,
        )
        result.processing_time_ms = int((time.monotonic() - start) * 1000)

        if self.cache is not None:
            if result.partial:
                logger.info(f"Not caching partial result for '{query.original_query}'")
            else:
                await self.cache.put(query.original_query, result)

        logger.info(
            f"Query {query_id} complete: {result.finding_count} findings, "
            f"{result.dead_ends} dead ends, {result.processing_time_ms}ms"
            + (" (partial)" if result.partial else "")
        )
        return result, False
