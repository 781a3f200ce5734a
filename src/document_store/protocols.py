"""Protocol definitions for document stores."""

from typing import Protocol, runtime_checkable

from .models import StoreHit, SearchFilters


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for keyword-searchable document stores.

    Implementations must tolerate concurrent reads from several scouts
    without external locking.
    """

    async def search(
        self,
        pattern: str,
        limit: int = 50,
        filters: SearchFilters | None = None,
    ) -> list[StoreHit]:
        """
        Search documents matching a keyword pattern.

        Args:
            pattern: Keyword or phrase to search for
            limit: Maximum number of hits to return
            filters: Optional store-side filters

        Returns:
            Hits ordered by descending relevance
        """
        ...

    async def document_count(self) -> int:
        """Return the number of documents in the corpus."""
        ...

    async def document_type_distribution(self) -> dict[str, int]:
        """Return document counts keyed by document type."""
        ...
