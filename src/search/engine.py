"""Search engine: the surface exposed to the calling layer."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..orchestration.classifier import QueryClassifier
from ..orchestration.errors import OrchestrationError
from ..orchestration.history import HistoryEntry, QueryHistory
from ..orchestration.models import QueryStatus
from .errors import InvalidQueryError, OrchestrationFailedError
from .models import IntelligentSearchResponse, SearchQuery
from .responses import build_response

if TYPE_CHECKING:
    from ..orchestration.orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ActiveQuery:
    """An in-flight query and the pipeline stage it has reached."""

    query_id: str
    query: str
    status: QueryStatus = QueryStatus.INITIALIZING
    started_at: datetime = field(default_factory=datetime.now)


class IntelligentSearchEngine:
    """
    Runs searches end to end and keeps per-engine state.

    The engine owns the classifier, the query history and the map of
    in-flight queries. The orchestrator (and its injected result cache)
    does the actual work. Callers get either a response, possibly empty
    or partial, or a SearchError.

    Usage:
        engine = create_search_engine()
        response = await engine.search(SearchQuery(query="TechCorp acquisition"))
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        classifier: QueryClassifier | None = None,
        history: QueryHistory | None = None,
    ):
        """
        Initialize the engine.

        Args:
            orchestrator: Orchestrator running the query pipeline
            classifier: Query classifier. If None, uses defaults.
            history: Query history. If None, an in-memory history is created.
        """
        self.orchestrator = orchestrator
        self.classifier = classifier or QueryClassifier()
        self.history = history if history is not None else QueryHistory()
        self._active: dict[str, ActiveQuery] = {}
        self._active_lock = asyncio.Lock()

    async def search(self, request: SearchQuery | dict) -> IntelligentSearchResponse:
        """
        Run one search.

        Args:
            request: The search request, as a model or a raw dict

        Returns:
            The search response

        Raises:
            InvalidQueryError: If the request fails validation
            OrchestrationFailedError: If the pipeline could not run at all
        """
        request = self._validate(request)
        query_id = str(uuid.uuid4())
        active = ActiveQuery(query_id=query_id, query=request.query)

        async with self._active_lock:
            self._active[query_id] = active

        def on_progress(status: QueryStatus) -> None:
            active.status = status

        try:
            query = self.classifier.classify(
                request.query,
                intent_hint=request.intent_hint,
                scope_hint=request.scope_hint,
                priority_hint=request.priority_hint,
                context=request.context,
                relationship_depth=request.relationship_depth,
                time_limit_ms=request.time_limit_ms,
            )
            try:
                result, cache_hit = await self.orchestrator.execute(
                    query, query_id=query_id, on_progress=on_progress
                )
            except OrchestrationError as e:
                active.status = QueryStatus.FAILED
                logger.error(f"Query {query_id} failed: {e}")
                raise OrchestrationFailedError(str(e)) from e

            active.status = QueryStatus.BUILDING_RESPONSE
            response = build_response(result, cache_hit=cache_hit)
            active.status = QueryStatus.COMPLETED
        finally:
            async with self._active_lock:
                self._active.pop(query_id, None)

        await self.history.record(HistoryEntry(
            query_id=result.query_id,
            query=request.query,
            processing_time_ms=result.processing_time_ms,
            result_count=len(response.direct_matches),
            cache_hit=cache_hit,
            user_id=request.user_id,
        ))
        return response

    def _validate(self, request: SearchQuery | dict) -> SearchQuery:
        if not isinstance(request, SearchQuery):
            try:
                request = SearchQuery.model_validate(request)
            except ValidationError as e:
                raise InvalidQueryError(f"Invalid search request: {e}") from e
        if not request.query.strip():
            raise InvalidQueryError("Query must not be blank")
        return request

    async def active_queries(self) -> list[ActiveQuery]:
        """Snapshot of in-flight queries, oldest first."""
        async with self._active_lock:
            return sorted(self._active.values(), key=lambda a: a.started_at)

    async def status(self) -> dict:
        """
        Engine status: corpus size, in-flight queries, cache and history stats.

        A store failure is reported as an unknown document count rather
        than raised.
        """
        try:
            total_documents = await self.orchestrator.store.document_count()
        except Exception as e:
            logger.warning(f"Could not read document count: {e}")
            total_documents = None

        cache = self.orchestrator.cache
        return {
            "total_documents": total_documents,
            "active_queries": len(await self.active_queries()),
            "cache": cache.stats() if cache is not None else None,
            "history": self.history.stats(),
        }
