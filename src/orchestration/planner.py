"""Deployment planning: how many scouts of which kinds to run.

The policy table:
- Exhaustive scope at Background priority deploys every scout kind.
- Focused scope at Urgent priority deploys a fixed trio.
- Everything else takes the adaptive path, picking kinds from the
  keyword triggers present in the query.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..document_store.models import CorpusStats
from .classifier import triggered_intents
from .models import (
    DeploymentPlan,
    Query,
    QueryIntent,
    QueryPriority,
    QueryScope,
    ScoutKind,
)

if TYPE_CHECKING:
    from ..config.loader import PlannerConfig
    from ..document_store.protocols import DocumentStore

logger = logging.getLogger(__name__)

EXHAUSTIVE_KINDS: tuple[ScoutKind, ...] = (
    ScoutKind.KEYWORD_HUNTER,
    ScoutKind.PATTERN_DETECTOR,
    ScoutKind.RELATIONSHIP_MAPPER,
    ScoutKind.ENTITY_EXTRACTOR,
    ScoutKind.TIMELINE_BUILDER,
    ScoutKind.ANOMALY_SPOTTER,
    ScoutKind.COMPLIANCE_CHECKER,
    ScoutKind.SENTIMENT_ANALYZER,
)

URGENT_FOCUSED_KINDS: tuple[ScoutKind, ...] = (
    ScoutKind.KEYWORD_HUNTER,
    ScoutKind.ENTITY_EXTRACTOR,
    ScoutKind.RELATIONSHIP_MAPPER,
)

# Adaptive additions, in priority order, keyed by the intent whose
# triggers select them.
ADAPTIVE_KINDS: list[tuple[QueryIntent, ScoutKind]] = [
    (QueryIntent.ENTITY_EXTRACTION, ScoutKind.ENTITY_EXTRACTOR),
    (QueryIntent.TIMELINE_ANALYSIS, ScoutKind.TIMELINE_BUILDER),
    (QueryIntent.RELATIONSHIP_MAPPING, ScoutKind.RELATIONSHIP_MAPPER),
    (QueryIntent.COMPLIANCE_AUDIT, ScoutKind.COMPLIANCE_CHECKER),
    (QueryIntent.ANOMALY_DETECTION, ScoutKind.ANOMALY_SPOTTER),
]


class DeploymentPlanner:
    """
    Decides the scout deployment for a classified query.

    Planning makes at most one metadata round-trip to the store and
    degrades to an empty corpus when that call fails or times out.
    """

    def __init__(self, config: PlannerConfig | None = None):
        """
        Initialize the planner.

        Args:
            config: Planner configuration. If None, uses defaults.
        """
        if config is None:
            from ..config.loader import PlannerConfig
            config = PlannerConfig()
        self.config = config

    async def plan(
        self, query: Query, store: DocumentStore, timeout: float | None = None
    ) -> DeploymentPlan:
        """
        Gather corpus statistics and build a plan.

        Args:
            query: The classified query
            store: Document store used for the metadata call
            timeout: Seconds left in the query's budget. The metadata call
                waits for the smaller of this and the configured timeout.

        Returns:
            The deployment plan
        """
        stats = await self.corpus_stats(store, timeout=timeout)
        plan = self.plan_for_stats(query, stats)
        logger.info(
            f"Plan '{plan.strategy}': {plan.worker_count} scouts "
            f"({', '.join(k.value for k in plan.worker_kinds)}), "
            f"{plan.target_clusters} clusters, allowance {plan.dead_end_allowance}"
        )
        return plan

    async def corpus_stats(
        self, store: DocumentStore, timeout: float | None = None
    ) -> CorpusStats:
        """Fetch document count and type distribution, or a degraded empty view.

        Stores exposing ``corpus_stats()`` answer in one call; others get
        their two metadata methods gathered.
        """
        limit = self.config.stats_timeout_seconds
        if timeout is not None:
            limit = max(0.0, min(limit, timeout))

        try:
            return await asyncio.wait_for(self._fetch_stats(store), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning("Corpus statistics timed out, planning for an empty corpus")
            return CorpusStats(degraded=True)
        except Exception as e:
            logger.warning(f"Corpus statistics unavailable ({e}), planning for an empty corpus")
            return CorpusStats(degraded=True)

    @staticmethod
    async def _fetch_stats(store: DocumentStore) -> CorpusStats:
        combined = getattr(store, "corpus_stats", None)
        if combined is not None:
            stats = await combined()
            stats.document_count = max(0, stats.document_count)
            return stats
        count, distribution = await asyncio.gather(
            store.document_count(), store.document_type_distribution()
        )
        return CorpusStats(document_count=max(0, count), type_distribution=distribution)

    def plan_for_stats(self, query: Query, stats: CorpusStats) -> DeploymentPlan:
        """Apply the policy table to a query and known corpus statistics."""
        total = stats.document_count

        if query.scope == QueryScope.EXHAUSTIVE and query.priority == QueryPriority.BACKGROUND:
            return DeploymentPlan(
                worker_kinds=EXHAUSTIVE_KINDS,
                target_clusters=max(1, total // self.config.exhaustive_cluster_divisor),
                dead_end_allowance=2,
                strategy="exhaustive",
                document_count=total,
            )

        if query.scope == QueryScope.FOCUSED and query.priority == QueryPriority.URGENT:
            return DeploymentPlan(
                worker_kinds=URGENT_FOCUSED_KINDS,
                target_clusters=1,
                dead_end_allowance=0,
                strategy="urgent_focused",
                document_count=total,
            )

        clusters = total // self.config.adaptive_cluster_divisor
        clusters = min(max(clusters, 1), self.config.max_adaptive_clusters)
        return DeploymentPlan(
            worker_kinds=self.adaptive_kinds(query),
            target_clusters=clusters,
            dead_end_allowance=1,
            strategy="adaptive",
            document_count=total,
        )

    def adaptive_kinds(self, query: Query) -> tuple[ScoutKind, ...]:
        """
        Content-driven kind selection.

        Always starts with a KeywordHunter, adds triggered specialists in
        priority order, then pads with KeywordHunter variants.
        """
        target = self.config.adaptive_worker_target
        triggered = set(triggered_intents(query.original_query))

        kinds = [ScoutKind.KEYWORD_HUNTER]
        for intent, kind in ADAPTIVE_KINDS:
            if len(kinds) >= target:
                break
            if intent in triggered:
                kinds.append(kind)

        while len(kinds) < target:
            kinds.append(ScoutKind.KEYWORD_HUNTER)

        return tuple(kinds)
