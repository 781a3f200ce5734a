"""Protocol definitions for scout strategies."""

from __future__ import annotations

from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from ..document_store.protocols import DocumentStore
    from .models import Finding, Query, ScoutKind


@runtime_checkable
class ScoutStrategy(Protocol):
    """
    Protocol for a scout's search strategy.

    The scout pool depends only on this capability. A strategy derives
    the search patterns for one scout and turns the store's answer to
    each pattern into findings. New strategies are added by registering
    them, without touching the pool or the planner.
    """

    kind: ScoutKind

    def derive_patterns(self, query: Query, variant: int = 0) -> list[str]:
        """
        Search patterns for one scout of this kind.

        Args:
            query: The classified query
            variant: Index of this scout among scouts of the same kind

        Returns:
            Non-empty list of patterns
        """
        ...

    async def produce_findings(
        self,
        query: Query,
        pattern: str,
        store: DocumentStore,
        limit: int = 50,
    ) -> list[Finding]:
        """
        Search the store for one pattern and convert hits to findings.

        An empty list marks the pattern as a dead end. Exceptions are
        recorded by the pool as a failed pattern.

        Args:
            query: The classified query
            pattern: One of this scout's patterns
            store: The document store
            limit: Maximum store hits for the pattern

        Returns:
            Findings tagged with this strategy's native finding types
        """
        ...
