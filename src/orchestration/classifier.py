"""Heuristic query classification.

Turns a raw query string plus optional hints into a structured Query.
This is a cheap keyword layer, not NLP. Downstream components only see
the resulting Query, so the classifier can be swapped out freely.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from ..text import strip_word, tokenize
from .models import MAX_RELATIONSHIP_DEPTH, Query, QueryIntent, QueryPriority, QueryScope

if TYPE_CHECKING:
    from ..config.loader import ClassifierConfig

logger = logging.getLogger(__name__)

# Keyword triggers per intent, in inference priority order. The planner
# reuses these to pick worker kinds for adaptive plans.
INTENT_TRIGGERS: list[tuple[QueryIntent, frozenset[str]]] = [
    (QueryIntent.ENTITY_EXTRACTION, frozenset({
        "who", "whom", "person", "persons", "people", "individual", "individuals",
    })),
    (QueryIntent.TIMELINE_ANALYSIS, frozenset({
        "when", "timeline", "timelines", "chronological", "chronology", "date", "dates",
    })),
    (QueryIntent.RELATIONSHIP_MAPPING, frozenset({
        "relationship", "relationships", "connected", "connection", "connections",
        "link", "links", "linked",
    })),
    (QueryIntent.RISK_ASSESSMENT, frozenset({
        "risk", "risks", "risky", "danger", "dangerous", "threat", "threats",
    })),
    (QueryIntent.COMPLIANCE_AUDIT, frozenset({
        "compliance", "compliant", "regulation", "regulations", "regulatory", "legal",
    })),
    (QueryIntent.ANOMALY_DETECTION, frozenset({
        "unusual", "anomaly", "anomalies", "anomalous", "strange", "suspicious",
    })),
    (QueryIntent.DOCUMENT_CLASSIFICATION, frozenset({
        "type", "types", "category", "categories", "categorize", "classify",
        "classification",
    })),
]

_INTENT_SYNONYMS = {
    "fact": QueryIntent.FACT_FINDING,
    "facts": QueryIntent.FACT_FINDING,
    "relationship": QueryIntent.RELATIONSHIP_MAPPING,
    "connections": QueryIntent.RELATIONSHIP_MAPPING,
    "timeline": QueryIntent.TIMELINE_ANALYSIS,
    "chronology": QueryIntent.TIMELINE_ANALYSIS,
    "risk": QueryIntent.RISK_ASSESSMENT,
    "risks": QueryIntent.RISK_ASSESSMENT,
    "entities": QueryIntent.ENTITY_EXTRACTION,
    "people": QueryIntent.ENTITY_EXTRACTION,
    "companies": QueryIntent.ENTITY_EXTRACTION,
    "classify": QueryIntent.DOCUMENT_CLASSIFICATION,
    "categorize": QueryIntent.DOCUMENT_CLASSIFICATION,
    "anomaly": QueryIntent.ANOMALY_DETECTION,
    "unusual": QueryIntent.ANOMALY_DETECTION,
    "compliance": QueryIntent.COMPLIANCE_AUDIT,
    "regulatory": QueryIntent.COMPLIANCE_AUDIT,
}

_PRIORITY_SYNONYMS = {
    "critical": QueryPriority.URGENT,
    "immediate": QueryPriority.URGENT,
    "low": QueryPriority.BACKGROUND,
}


def triggered_intents(text: str) -> list[QueryIntent]:
    """Intents whose trigger words appear in ``text``, in priority order."""
    tokens = set(tokenize(text))
    return [intent for intent, words in INTENT_TRIGGERS if tokens & words]


def infer_intent(text: str) -> QueryIntent:
    """Infer intent from keyword presence, defaulting to fact finding."""
    intents = triggered_intents(text)
    return intents[0] if intents else QueryIntent.FACT_FINDING


def extract_context_hints(text: str, limit: int = 5) -> list[str]:
    """The ``limit`` longest distinct words over four characters.

    Ties keep the order in which words appear in the query.
    """
    words = []
    for raw in text.split():
        word = strip_word(raw).lower()
        if len(word) > 4 and word not in words:
            words.append(word)
    return sorted(words, key=len, reverse=True)[:limit]


def _hint_key(hint: str) -> str:
    return re.sub(r"[^a-z]", "", hint.lower())


def _match_enum(hint: str | None, enum_cls, synonyms: dict | None = None):
    """Case-insensitive match of a hint against an enum's vocabulary.

    Accepts the enum value ("fact_finding"), its camel-case name
    ("FactFinding"), spaced forms and listed synonyms.
    """
    if not hint:
        return None
    key = _hint_key(hint)
    if not key:
        return None
    for member in enum_cls:
        if key == _hint_key(member.value):
            return member
    if synonyms:
        return synonyms.get(key)
    return None


class QueryClassifier:
    """
    Turns raw query text and optional hints into a Query.

    Classification is total: any hint that does not match falls back to
    inference (intent) or the defaults (Focused scope, Normal priority).

    Usage:
        classifier = QueryClassifier()
        query = classifier.classify("who signed the TechCorp contract")
    """

    def __init__(self, config: ClassifierConfig | None = None):
        """
        Initialize the classifier.

        Args:
            config: Classifier configuration. If None, uses defaults.
        """
        if config is None:
            from ..config.loader import ClassifierConfig
            config = ClassifierConfig()
        self.config = config

    def classify(
        self,
        raw_query: str,
        intent_hint: str | None = None,
        scope_hint: str | None = None,
        priority_hint: str | None = None,
        context: str | None = None,
        relationship_depth: int | None = None,
        time_limit_ms: int | None = None,
    ) -> Query:
        """
        Classify a raw query.

        Args:
            raw_query: The query text as typed by the caller
            intent_hint: Optional intent name, e.g. "timeline"
            scope_hint: Optional scope name, e.g. "exhaustive"
            priority_hint: Optional priority name, e.g. "urgent"
            context: Optional free-text context. Replaces the derived hints.
            relationship_depth: Desired relationship traversal depth
            time_limit_ms: Optional wall-clock budget overriding the priority's

        Returns:
            The classified Query
        """
        intent = _match_enum(intent_hint, QueryIntent, _INTENT_SYNONYMS)
        if intent is None:
            if intent_hint:
                logger.debug(f"Intent hint '{intent_hint}' not recognized, inferring")
            intent = infer_intent(raw_query)

        scope = _match_enum(scope_hint, QueryScope) or QueryScope.FOCUSED
        priority = (
            _match_enum(priority_hint, QueryPriority, _PRIORITY_SYNONYMS)
            or QueryPriority.NORMAL
        )

        if context and context.strip():
            hints = (context.strip(),)
        else:
            hints = tuple(extract_context_hints(raw_query, self.config.max_context_hints))

        if relationship_depth is None or relationship_depth < 0:
            relationship_depth = self.config.default_relationship_depth
        relationship_depth = min(relationship_depth, MAX_RELATIONSHIP_DEPTH)

        if time_limit_ms is not None and time_limit_ms <= 0:
            time_limit_ms = None

        query = Query(
            original_query=raw_query,
            intent=intent,
            scope=scope,
            priority=priority,
            context_hints=hints,
            relationship_depth=relationship_depth,
            time_budget_ms=time_limit_ms,
        )
        logger.debug(
            f"Classified '{raw_query}' as {intent.value}/{scope.value}/{priority.value}"
        )
        return query
