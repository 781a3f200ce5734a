"""In-memory keyword document store."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from pathlib import Path

from ..text import content_terms, tokenize
from .models import CorpusStats, SearchFilters, StoredDocument, StoreHit

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """
    Keyword search over documents held in memory.

    Documents are tokenized once on insert. Searches score each document
    by the fraction of pattern terms it contains, weighted by how often
    they occur, and return an excerpt around the first matching term.

    Usage:
        store = InMemoryDocumentStore.from_json(Path("corpus.json"))
        hits = await store.search("acquisition", limit=10)
    """

    def __init__(
        self,
        documents: list[StoredDocument] | None = None,
        latency: float = 0.0,
    ):
        """
        Initialize the store.

        Args:
            documents: Initial documents
            latency: Artificial delay per search call in seconds
        """
        self._documents: dict[str, StoredDocument] = {}
        self._tokens: dict[str, list[str]] = {}
        self._counts: dict[str, Counter] = {}
        self.latency = latency

        for document in documents or []:
            self.add_document(document)

    @classmethod
    def from_json(cls, path: Path, latency: float = 0.0) -> InMemoryDocumentStore:
        """
        Load a corpus from a JSON file.

        The file holds either a list of documents or an object with a
        ``documents`` list. Each document needs at least ``id`` and ``text``.
        """
        with open(path) as f:
            data = json.load(f)

        raw_documents = data.get("documents", []) if isinstance(data, dict) else data
        documents = [StoredDocument.model_validate(d) for d in raw_documents]
        logger.info(f"Loaded {len(documents)} documents from {path}")
        return cls(documents, latency=latency)

    def add_document(self, document: StoredDocument) -> None:
        """Add or replace a document."""
        tokens = tokenize(document.text)
        self._documents[document.document_id] = document
        self._tokens[document.document_id] = tokens
        self._counts[document.document_id] = Counter(tokens)

    def __len__(self) -> int:
        return len(self._documents)

    async def search(
        self,
        pattern: str,
        limit: int = 50,
        filters: SearchFilters | None = None,
    ) -> list[StoreHit]:
        """Search documents for the terms in ``pattern``."""
        if self.latency:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)

        terms = content_terms(pattern)
        if not terms or limit <= 0:
            return []

        scored: list[tuple[float, str, list[str]]] = []
        for document_id, document in list(self._documents.items()):
            if filters and not filters.matches(document):
                continue

            counts = self._counts[document_id]
            matched = [t for t in terms if counts[t] > 0]
            if not matched:
                continue

            coverage = len(matched) / len(terms)
            occurrences = sum(counts[t] for t in matched)
            frequency = min(1.0, occurrences / (3 * len(matched)))
            score = round(0.75 * coverage + 0.25 * frequency, 4)
            scored.append((score, document_id, matched))

        scored.sort(key=lambda item: (-item[0], item[1]))

        hits = []
        for score, document_id, matched in scored[:limit]:
            document = self._documents[document_id]
            excerpt, context = self._extract_excerpt(document.text, set(matched))
            hits.append(
                StoreHit(
                    document_id=document_id,
                    excerpt=excerpt,
                    context=context,
                    relevance_score=score,
                    title=document.title,
                    document_type=document.document_type,
                )
            )

        logger.debug(f"Store search '{pattern}': {len(hits)} hits")
        return hits

    async def document_count(self) -> int:
        return len(self._documents)

    async def document_type_distribution(self) -> dict[str, int]:
        distribution = Counter(d.document_type for d in self._documents.values())
        return dict(distribution)

    async def corpus_stats(self) -> CorpusStats:
        """Return document count and type distribution together."""
        return CorpusStats(
            document_count=await self.document_count(),
            type_distribution=await self.document_type_distribution(),
        )

    @staticmethod
    def _extract_excerpt(text: str, matched: set[str]) -> tuple[str, str]:
        """Return (excerpt, context) windows around the first matching word."""
        words = text.split()
        for i, word in enumerate(words):
            if any(token in matched for token in tokenize(word)):
                excerpt = " ".join(words[max(0, i - 5): i + 15])
                context = " ".join(words[max(0, i - 40): i + 60])
                return excerpt, context
        return " ".join(words[:20]), " ".join(words[:100])
