"""Document store boundary: models, protocol and adapters."""

from .models import CorpusStats, SearchFilters, StoredDocument, StoreHit
from .protocols import DocumentStore
from .errors import DocumentStoreError
from .memory import InMemoryDocumentStore
from .http import HTTPDocumentStore

__all__ = [
    # Models
    "CorpusStats",
    "SearchFilters",
    "StoredDocument",
    "StoreHit",
    # Protocols
    "DocumentStore",
    # Errors
    "DocumentStoreError",
    # Adapters
    "InMemoryDocumentStore",
    "HTTPDocumentStore",
]
