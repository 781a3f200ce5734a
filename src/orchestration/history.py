"""Append-only log of executed queries."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """One executed query."""

    query_id: str
    query: str
    processing_time_ms: int
    result_count: int
    cache_hit: bool = False
    user_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> HistoryEntry:
        return cls(
            query_id=data["query_id"],
            query=data["query"],
            processing_time_ms=data.get("processing_time_ms", 0),
            result_count=data.get("result_count", 0),
            cache_hit=data.get("cache_hit", False),
            user_id=data.get("user_id"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class QueryHistory:
    """
    Bounded query history with optional JSONL persistence.

    Entries are only ever appended. The in-memory window keeps the most
    recent ``max_entries``; the JSONL file, when configured, keeps all.
    Not on the critical path: a failed disk write is logged and the
    entry stays in memory.
    """

    def __init__(self, max_entries: int = 1000, persist_path: Path | None = None):
        """
        Initialize the history.

        Args:
            max_entries: Size of the in-memory window
            persist_path: Optional JSONL file to append entries to
        """
        self.max_entries = max_entries
        self.persist_path = Path(persist_path) if persist_path else None
        self._entries: deque[HistoryEntry] = deque(maxlen=max_entries)
        self._lock = asyncio.Lock()
        self.total_recorded = 0

        if self.persist_path and self.persist_path.exists():
            self._load_from_disk()

    async def record(self, entry: HistoryEntry) -> None:
        """Append an entry."""
        async with self._lock:
            self._entries.append(entry)
            self.total_recorded += 1
            if self.persist_path:
                self._append_to_disk(entry)
        logger.debug(f"Recorded query {entry.query_id} in history")

    def entries(self) -> list[HistoryEntry]:
        """All entries in the in-memory window, oldest first."""
        return list(self._entries)

    def recent(self, n: int = 10) -> list[HistoryEntry]:
        """The ``n`` most recent entries, newest first."""
        if n <= 0:
            return []
        return list(reversed(self._entries))[:n]

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        """Summary statistics over the in-memory window."""
        entries = list(self._entries)
        if not entries:
            return {
                "entries": 0,
                "total_recorded": self.total_recorded,
                "cache_hit_rate": 0.0,
                "avg_processing_time_ms": 0.0,
                "top_queries": [],
            }

        counts = Counter(e.query for e in entries)
        return {
            "entries": len(entries),
            "total_recorded": self.total_recorded,
            "cache_hit_rate": round(sum(e.cache_hit for e in entries) / len(entries), 4),
            "avg_processing_time_ms": round(
                sum(e.processing_time_ms for e in entries) / len(entries), 2
            ),
            "top_queries": [q for q, _ in counts.most_common(5)],
        }

    def _append_to_disk(self, entry: HistoryEntry) -> None:
        try:
            self.persist_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.persist_path, "a") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        except OSError as e:
            logger.error(f"Failed to persist history entry: {e}")

    def _load_from_disk(self) -> None:
        with open(self.persist_path) as f:
            for line_number, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    self._entries.append(HistoryEntry.from_dict(json.loads(line)))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping history line {line_number}: {e}")
                    continue
                self.total_recorded += 1
        logger.info(f"Loaded {len(self._entries)} history entries from {self.persist_path}")
