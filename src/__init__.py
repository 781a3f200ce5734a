"""Scout-based document search engine source package."""

from .search import IntelligentSearchEngine, SearchQuery, IntelligentSearchResponse
from .config import load_config, create_search_engine

__all__ = [
    "IntelligentSearchEngine",
    "SearchQuery",
    "IntelligentSearchResponse",
    "load_config",
    "create_search_engine",
]
