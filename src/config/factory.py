"""Factory functions to create engine components from configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..document_store.protocols import DocumentStore
    from ..orchestration.history import QueryHistory
    from ..orchestration.orchestrator import SearchOrchestrator
    from ..orchestration.result_cache import ResultCache
    from ..search.engine import IntelligentSearchEngine
    from .loader import CacheConfig, HistoryConfig, ProfileConfig, StoreConfig

logger = logging.getLogger(__name__)


def create_store(config: StoreConfig, corpus_path: Path | None = None) -> DocumentStore:
    """Create a document store from configuration.

    The HTTP store must be entered with ``async with`` before use.

    Args:
        config: Store configuration
        corpus_path: Corpus file overriding ``config.corpus_path``

    Returns:
        DocumentStore instance (in-memory or HTTP)

    Raises:
        ValueError: If backend type is not supported or required fields are missing
    """
    if config.backend == "memory":
        from ..document_store import InMemoryDocumentStore

        path = corpus_path or (Path(config.corpus_path) if config.corpus_path else None)
        if path is None:
            logger.warning("No corpus configured, using an empty in-memory store")
            return InMemoryDocumentStore()
        return InMemoryDocumentStore.from_json(path)

    elif config.backend == "http":
        from ..document_store import HTTPDocumentStore

        if not config.base_url:
            raise ValueError("HTTP store backend requires 'base_url' in config")

        return HTTPDocumentStore(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")


def create_cache(config: CacheConfig) -> ResultCache | None:
    """Create the result cache, or None when caching is disabled."""
    if not config.enabled:
        return None

    from ..orchestration.result_cache import ResultCache

    return ResultCache(
        max_entries=config.max_entries,
        ttl_seconds=config.ttl_seconds,
        normalize_keys=config.normalize_keys,
    )


def create_history(config: HistoryConfig) -> QueryHistory:
    """Create the query history."""
    from ..orchestration.history import QueryHistory

    return QueryHistory(
        max_entries=config.max_entries,
        persist_path=Path(config.persist_path) if config.persist_path else None,
    )


def create_orchestrator(
    store: DocumentStore,
    profile: ProfileConfig,
    cache: ResultCache | None = None,
) -> SearchOrchestrator:
    """Create the orchestrator and its per-query components.

    Args:
        store: Document store shared by planner and scouts
        profile: Profile configuration
        cache: Result cache injected into the orchestrator

    Returns:
        SearchOrchestrator instance
    """
    from ..orchestration.aggregator import Aggregator
    from ..orchestration.orchestrator import SearchOrchestrator
    from ..orchestration.planner import DeploymentPlanner
    from ..orchestration.scout_pool import ScoutPool

    return SearchOrchestrator(
        store=store,
        planner=DeploymentPlanner(profile.planner),
        pool=ScoutPool(store, config=profile.scouts),
        aggregator=Aggregator(profile.aggregator),
        cache=cache,
        budgets=profile.scouts.budgets_ms,
    )


def create_search_engine(
    profile: ProfileConfig,
    store: DocumentStore | None = None,
    corpus_path: Path | None = None,
) -> IntelligentSearchEngine:
    """Create a complete search engine from a profile.

    This is the main factory function. Cache and history are created
    here, once per engine, and passed down by reference.

    Args:
        profile: Profile configuration
        store: Existing store to use instead of building one from the profile
        corpus_path: Corpus file for the in-memory store

    Returns:
        IntelligentSearchEngine instance

    Raises:
        ValueError: If the store configuration is invalid
    """
    from ..orchestration.classifier import QueryClassifier
    from ..search.engine import IntelligentSearchEngine

    if store is None:
        store = create_store(profile.store, corpus_path=corpus_path)

    orchestrator = create_orchestrator(store, profile, cache=create_cache(profile.cache))
    return IntelligentSearchEngine(
        orchestrator=orchestrator,
        classifier=QueryClassifier(profile.classifier),
        history=create_history(profile.history),
    )
