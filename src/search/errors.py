"""Errors surfaced by the search engine to its callers."""


class SearchError(Exception):
    """Base class for search failures. Never raised for empty results."""


class InvalidQueryError(SearchError):
    """The request was rejected before any search ran."""


class OrchestrationFailedError(SearchError):
    """The engine could not run the query at all."""
