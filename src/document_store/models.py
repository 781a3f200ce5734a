"""Pydantic models for the document store boundary."""

from datetime import datetime

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """A document held by the in-memory store."""

    document_id: str = Field(..., alias="id")
    title: str | None = None
    text: str = ""
    document_type: str = "PlainText"
    author: str | None = None
    created_at: datetime | None = None

    model_config = {"populate_by_name": True}


class StoreHit(BaseModel):
    """One ranked excerpt returned by a keyword search."""

    document_id: str
    excerpt: str
    context: str | None = None
    relevance_score: float = Field(0.0, ge=0.0, le=1.0)
    title: str | None = None
    document_type: str | None = None


class SearchFilters(BaseModel):
    """Optional filters applied by the store."""

    document_type: str | None = None
    author: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def matches(self, document: StoredDocument) -> bool:
        """Check whether a document passes every filter that is set."""
        if self.document_type and document.document_type.lower() != self.document_type.lower():
            return False
        if self.author and (document.author or "").lower() != self.author.lower():
            return False
        if self.start_date or self.end_date:
            if document.created_at is None:
                return False
            created = document.created_at.replace(tzinfo=None)
            if self.start_date and created < self.start_date.replace(tzinfo=None):
                return False
            if self.end_date and created > self.end_date.replace(tzinfo=None):
                return False
        return True

    def to_payload(self) -> dict:
        """Convert filters to the remote store's JSON shape."""
        payload: dict = {}
        if self.document_type:
            payload["document_type"] = self.document_type
        if self.author:
            payload["author"] = self.author
        if self.start_date or self.end_date:
            payload["date_range"] = {
                "start": self.start_date.isoformat() if self.start_date else None,
                "end": self.end_date.isoformat() if self.end_date else None,
            }
        return payload


class CorpusStats(BaseModel):
    """Coarse corpus statistics used for deployment planning."""

    document_count: int = 0
    type_distribution: dict[str, int] = Field(default_factory=dict)
    degraded: bool = False
