"""Concurrent scout execution with partial-failure tolerance."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import ScoutDeploymentError
from .models import DeploymentPlan, Finding, Query, ScoutStatus, ScoutWorker
from .strategies import StrategyRegistry

if TYPE_CHECKING:
    from ..config.loader import ScoutConfig
    from ..document_store.protocols import DocumentStore
    from .protocols import ScoutStrategy

logger = logging.getLogger(__name__)


@dataclass
class PoolResult:
    """Workers as they ended one pool run."""

    workers: list[ScoutWorker] = field(default_factory=list)
    timed_out: bool = False

    @property
    def findings(self) -> list[Finding]:
        return [f for w in self.workers for f in w.findings]

    @property
    def dead_ends(self) -> int:
        return sum(w.dead_end_count for w in self.workers)

    @property
    def failed(self) -> list[ScoutWorker]:
        return [w for w in self.workers if w.status == ScoutStatus.FAILED]


class ScoutPool:
    """
    Runs the scouts of a deployment plan concurrently.

    Each scout queries the store once per pattern. A pattern with no
    hits, or one whose store call raises, is a dead end for that scout
    only. A scout that cannot start is marked Failed. The run as a whole
    fails only when no scout can be started at all.

    Usage:
        pool = ScoutPool(store)
        result = await pool.run(query, plan, deadline_ms=1000)
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: StrategyRegistry | None = None,
        config: ScoutConfig | None = None,
    ):
        """
        Initialize the pool.

        Args:
            store: Document store shared by every scout (read-only)
            registry: Strategy registry. If None, uses every built-in strategy.
            config: Scout configuration. If None, uses defaults.
        """
        if config is None:
            from ..config.loader import ScoutConfig
            config = ScoutConfig()
        self.store = store
        self.registry = registry or StrategyRegistry.default()
        self.config = config

    def deploy(
        self, query: Query, plan: DeploymentPlan
    ) -> list[tuple[ScoutWorker, ScoutStrategy | None]]:
        """
        Instantiate one worker per planned kind.

        Workers whose strategy is missing or cannot derive patterns are
        returned already Failed, paired with no strategy.
        """
        deployed = []
        variants: dict = {}

        for index, kind in enumerate(plan.worker_kinds):
            variant = variants.get(kind, 0)
            variants[kind] = variant + 1
            worker_id = f"{kind.value}-{index}"

            try:
                strategy = self.registry.get(kind)
                patterns = [p for p in strategy.derive_patterns(query, variant) if p]
            except Exception as e:
                worker = ScoutWorker(id=worker_id, kind=kind, search_patterns=[], variant=variant)
                worker.fail(f"startup failed: {e}")
                logger.warning(f"Scout {worker_id} could not start: {e}")
                deployed.append((worker, None))
                continue

            if not patterns:
                patterns = [query.original_query.strip()]

            worker = ScoutWorker(
                id=worker_id,
                kind=kind,
                search_patterns=patterns,
                variant=variant,
            )
            deployed.append((worker, strategy))

        return deployed

    async def run(
        self,
        query: Query,
        plan: DeploymentPlan,
        deadline_ms: int | None = None,
    ) -> PoolResult:
        """
        Run every planned scout and wait for all of them or the deadline.

        On timeout, unfinished scouts are cancelled (which cancels their
        in-flight store calls), marked Failed, and charged a dead end for
        every pattern they never reported.

        Args:
            query: The classified query
            plan: The deployment plan
            deadline_ms: Wall-clock budget. None waits for every scout.

        Returns:
            PoolResult with every worker in a terminal status

        Raises:
            ScoutDeploymentError: If no scout could be started
        """
        deployed = self.deploy(query, plan)
        runnable = [(w, s) for w, s in deployed if s is not None]
        workers = [w for w, _ in deployed]

        if not runnable:
            failures = [e for w in workers for e in w.errors]
            raise ScoutDeploymentError(
                f"None of {len(workers)} planned scouts could be started", failures
            )

        logger.info(f"Deploying {len(runnable)} scouts for '{query.original_query}'")

        semaphore = asyncio.Semaphore(self.config.max_concurrent_scouts)

        async def run_scout(worker: ScoutWorker, strategy: ScoutStrategy) -> None:
            async with semaphore:
                await self._execute(worker, strategy, query)

        tasks = {
            asyncio.create_task(run_scout(worker, strategy), name=worker.id): worker
            for worker, strategy in runnable
        }
        timeout = deadline_ms / 1000 if deadline_ms else None

        try:
            done, pending = await asyncio.wait(tasks, timeout=timeout)
        finally:
            # Cancel anything still running, including when run() itself is cancelled
            unfinished = [t for t in tasks if not t.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        for task in done:
            worker = tasks[task]
            if task.cancelled():
                worker.fail("cancelled")
            elif task.exception() is not None:
                worker.fail(f"scout crashed: {task.exception()}")
                logger.warning(f"Scout {worker.id} crashed: {task.exception()}")

        for task in pending:
            worker = tasks[task]
            worker.fail("timed out before reporting")
            logger.warning(
                f"Scout {worker.id} timed out after {deadline_ms}ms, "
                f"{worker.dead_end_count} dead ends charged"
            )

        return PoolResult(workers=workers, timed_out=bool(pending))

    async def _execute(self, worker: ScoutWorker, strategy: ScoutStrategy, query: Query) -> None:
        """Run every pattern of one scout, recording leads and dead ends."""
        worker.start()
        limit = self.config.per_pattern_limit

        for pattern in worker.search_patterns:
            try:
                findings = await strategy.produce_findings(query, pattern, self.store, limit)
            except Exception as e:
                logger.warning(f"Scout {worker.id} pattern '{pattern}' failed: {e}")
                worker.record_dead_end(pattern, error=f"{pattern}: {e}")
                continue

            if findings:
                worker.record_lead(findings)
                logger.debug(f"Scout {worker.id} '{pattern}': {len(findings)} findings")
            else:
                worker.record_dead_end(pattern)
                logger.debug(f"Scout {worker.id} '{pattern}': dead end")

        worker.finish()
        if worker.status == ScoutStatus.FAILED:
            logger.warning(f"Scout {worker.id} failed on all {worker.pattern_count} patterns")
        else:
            logger.info(
                f"Scout {worker.id} completed: {len(worker.findings)} findings, "
                f"{worker.dead_end_count} dead ends, {worker.processing_time_ms}ms"
            )
