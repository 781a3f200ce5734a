"""Scout strategy plug-ins.

Each strategy turns store hits into findings of its native types:

- KeywordHunter: direct matches for query keywords
- PatternDetector: recurring themes near the query terms
- RelationshipMapper: entities co-occurring in one hit
- TimelineBuilder: dated events
- EntityExtractor: people, companies, amounts and dates
- AnomalySpotter: irregularity vocabulary and outlier amounts
- ComplianceChecker: regulations and legal terms
- SentimentAnalyzer: tone, reported as risk when negative
"""

from __future__ import annotations

import logging
import re
import statistics
import time
from collections import Counter
from typing import TYPE_CHECKING

from ..text import (
    STOP_WORDS,
    content_terms,
    content_tokens,
    normalize_whitespace,
    strip_word,
    truncate,
)
from .extraction import (
    extract_amount_value,
    extract_dates,
    extract_entities,
    extract_money,
)
from .models import EntityType, Finding, FindingType, Query, ScoutKind

if TYPE_CHECKING:
    from ..document_store.models import StoreHit
    from ..document_store.protocols import DocumentStore
    from .protocols import ScoutStrategy

logger = logging.getLogger(__name__)

_ENTITY_FINDING = {
    EntityType.PERSON: FindingType.PERSON_MENTION,
    EntityType.COMPANY: FindingType.COMPANY_REFERENCE,
    EntityType.AMOUNT: FindingType.MONETARY_AMOUNT,
    EntityType.DATE: FindingType.DATE_REFERENCE,
}

# Base confidence of a regex match per entity type
_ENTITY_CONFIDENCE = {
    EntityType.PERSON: 0.7,
    EntityType.COMPANY: 0.75,
    EntityType.AMOUNT: 0.9,
    EntityType.DATE: 0.85,
}

_SENTENCE_RE = re.compile(r"[^.!?\n]+[.!?]?")


def _hit_text(hit: StoreHit) -> str:
    return hit.context or hit.excerpt


def _sentence_around(text: str, fragment: str) -> str:
    """The sentence of ``text`` containing ``fragment``."""
    for sentence in _SENTENCE_RE.findall(text):
        if fragment in sentence:
            return normalize_whitespace(sentence)
    return truncate(normalize_whitespace(text))


class StoreStrategy:
    """
    Shared plumbing for strategies backed by a keyword store search.

    Subclasses set ``kind`` and implement ``findings_for_hits``. The
    default pattern is the raw query.
    """

    kind: ScoutKind

    def derive_patterns(self, query: Query, variant: int = 0) -> list[str]:
        return [query.original_query.strip()]

    async def produce_findings(
        self,
        query: Query,
        pattern: str,
        store: DocumentStore,
        limit: int = 50,
    ) -> list[Finding]:
        start = time.monotonic()
        hits = await store.search(pattern, limit=limit)
        findings = self.findings_for_hits(query, pattern, hits)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        for finding in findings:
            finding.processing_time_ms = elapsed_ms
            finding.metadata.setdefault("scout", self.kind.value)
            finding.metadata.setdefault("pattern", pattern)
        return findings

    def findings_for_hits(
        self, query: Query, pattern: str, hits: list[StoreHit]
    ) -> list[Finding]:
        raise NotImplementedError


class KeywordHunter(StoreStrategy):
    """Direct keyword matches.

    Variants let several hunters share one plan: 0 searches single
    keywords, 1 adjacent keyword pairs, 2 the context hints, and any
    later variant the whole query.
    """

    kind = ScoutKind.KEYWORD_HUNTER

    @staticmethod
    def keywords(text: str) -> list[str]:
        words = [strip_word(w).lower() for w in text.split()]
        return list(dict.fromkeys(w for w in words if len(w) > 3))

    def derive_patterns(self, query: Query, variant: int = 0) -> list[str]:
        whole = [query.original_query.strip()]
        keywords = self.keywords(query.original_query)

        if variant == 0:
            return keywords or whole
        if variant == 1:
            pairs = [f"{a} {b}" for a, b in zip(keywords, keywords[1:])]
            return pairs or whole
        if variant == 2:
            return list(query.context_hints) or keywords or whole
        return whole

    def findings_for_hits(self, query, pattern, hits):
        return [
            Finding(
                document_id=hit.document_id,
                finding_type=FindingType.DIRECT_MATCH,
                confidence=hit.relevance_score,
                excerpt=hit.excerpt,
                context=hit.context or "",
                metadata={"title": hit.title or ""},
            )
            for hit in hits
        ]


class PatternDetector(StoreStrategy):
    """Themes that recur in a hit's context beyond the query's own terms."""

    kind = ScoutKind.PATTERN_DETECTOR
    min_occurrences = 2

    def findings_for_hits(self, query, pattern, hits):
        query_terms = set(content_terms(query.original_query))
        findings = []
        for hit in hits:
            counts = Counter(
                t for t in content_tokens(_hit_text(hit))
                if t not in query_terms and len(t) > 3 and not t.isdigit()
            )
            recurring = [
                term for term, count in sorted(counts.items(), key=lambda i: (-i[1], i[0]))
                if count >= self.min_occurrences
            ]
            if not recurring:
                continue
            findings.append(
                Finding(
                    document_id=hit.document_id,
                    finding_type=FindingType.RELATED_CONCEPT,
                    confidence=round(hit.relevance_score * 0.8, 4),
                    excerpt=hit.excerpt,
                    context=hit.context or "",
                    metadata={"theme": recurring[0], "concepts": ",".join(recurring[:5])},
                )
            )
        return findings


class RelationshipMapper(StoreStrategy):
    """Entities that appear together in a single hit."""

    kind = ScoutKind.RELATIONSHIP_MAPPER

    def derive_patterns(self, query: Query, variant: int = 0) -> list[str]:
        patterns = [query.original_query.strip()]
        for word in query.original_query.split():
            word = strip_word(word)
            if (
                len(word) > 1
                and word[0].isupper()
                and word.lower() not in STOP_WORDS
                and word not in patterns
            ):
                patterns.append(word)
        return patterns

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        for hit in hits:
            entities = [
                m for m in extract_entities(_hit_text(hit))
                if m.entity_type in (EntityType.PERSON, EntityType.COMPANY)
            ]
            if len(entities) < 2:
                continue
            findings.append(
                Finding(
                    document_id=hit.document_id,
                    finding_type=FindingType.RELATED_CONCEPT,
                    confidence=hit.relevance_score,
                    excerpt=hit.excerpt,
                    context=hit.context or "",
                    related_entities=[m.text for m in entities],
                    metadata={
                        "entity_types": ",".join(m.entity_type.value for m in entities),
                    },
                )
            )
        return findings


class TimelineBuilder(StoreStrategy):
    """Dated events, tagged with a coarse event type."""

    kind = ScoutKind.TIMELINE_BUILDER

    EVENT_TYPES = [
        ("agreement", ("signed", "agreement", "contract", "executed")),
        ("meeting", ("meeting", "met", "call", "conference")),
        ("filing", ("filed", "filing", "submitted", "registered")),
        ("payment", ("paid", "payment", "invoice", "transfer", "wire")),
        ("communication", ("email", "letter", "memo", "sent", "wrote")),
        ("announcement", ("announced", "press", "disclosed")),
    ]

    def event_type(self, sentence: str) -> str:
        words = set(content_terms(sentence))
        for event_type, triggers in self.EVENT_TYPES:
            if words & set(triggers):
                return event_type
        return "mention"

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        for hit in hits:
            text = _hit_text(hit)
            for date in extract_dates(text):
                sentence = _sentence_around(text, date.text)
                involved = [
                    m.text for m in extract_entities(sentence)
                    if m.entity_type in (EntityType.PERSON, EntityType.COMPANY)
                ]
                findings.append(
                    Finding(
                        document_id=hit.document_id,
                        finding_type=FindingType.DATE_REFERENCE,
                        confidence=round(0.6 + 0.4 * hit.relevance_score, 4),
                        excerpt=sentence,
                        context=hit.excerpt,
                        related_entities=involved,
                        metadata={"date": date.text, "event_type": self.event_type(sentence)},
                    )
                )
        return findings


class EntityExtractor(StoreStrategy):
    """People, companies, amounts and dates found by regex classes."""

    kind = ScoutKind.ENTITY_EXTRACTOR

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        for hit in hits:
            for match in extract_entities(_hit_text(hit)):
                base = _ENTITY_CONFIDENCE[match.entity_type]
                metadata = {"entity": match.text, "entity_type": match.entity_type.value}
                if match.entity_type == EntityType.DATE:
                    metadata["date"] = match.text
                findings.append(
                    Finding(
                        document_id=hit.document_id,
                        finding_type=_ENTITY_FINDING[match.entity_type],
                        confidence=round(base * (0.5 + 0.5 * hit.relevance_score), 4),
                        excerpt=match.text,
                        context=hit.excerpt,
                        related_entities=[match.text],
                        metadata=metadata,
                    )
                )
        return findings


class AnomalySpotter(StoreStrategy):
    """Irregularity vocabulary, and amounts far above the hits' median."""

    kind = ScoutKind.ANOMALY_SPOTTER

    IRREGULARITY_TERMS = frozenset({
        "unusual", "irregular", "irregularity", "discrepancy", "discrepancies",
        "unexplained", "suspicious", "anomaly", "anomalous", "unauthorized",
        "backdated", "duplicate", "offshore", "overdue", "deviation", "missing",
    })
    outlier_factor = 10.0
    min_amounts_for_outliers = 3

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        amounts: list[tuple[float, str, StoreHit]] = []

        for hit in hits:
            text = _hit_text(hit)
            indicators = sorted(set(content_terms(text)) & self.IRREGULARITY_TERMS)
            if indicators:
                findings.append(
                    Finding(
                        document_id=hit.document_id,
                        finding_type=FindingType.ANOMALY,
                        confidence=round(min(0.95, 0.5 + 0.15 * len(indicators)), 4),
                        excerpt=hit.excerpt,
                        context=hit.context or "",
                        metadata={
                            "anomaly_type": "irregularity",
                            "indicators": ",".join(indicators),
                        },
                    )
                )
            for money in extract_money(text):
                value = extract_amount_value(money.text)
                if value:
                    amounts.append((value, money.text, hit))

        if len(amounts) >= self.min_amounts_for_outliers:
            median = statistics.median(v for v, _, _ in amounts)
            for value, text, hit in amounts:
                if median > 0 and value > self.outlier_factor * median:
                    findings.append(
                        Finding(
                            document_id=hit.document_id,
                            finding_type=FindingType.ANOMALY,
                            confidence=0.7,
                            excerpt=_sentence_around(_hit_text(hit), text),
                            context=hit.excerpt,
                            metadata={
                                "anomaly_type": "outlier_amount",
                                "amount": text,
                                "median": f"{median:.2f}",
                            },
                        )
                    )
        return findings


class ComplianceChecker(StoreStrategy):
    """Regulation references and legal terms."""

    kind = ScoutKind.COMPLIANCE_CHECKER

    REGULATION_RE = re.compile(
        r"\b(GDPR|HIPAA|SOX|Sarbanes-Oxley|SEC|FCPA|AML|KYC|PCI(?:[- ]DSS)?|FINRA|CCPA)\b"
        r"|\b(anti-money laundering|insider trading|data protection)\b",
        re.IGNORECASE,
    )
    _ACRONYMS = frozenset({"gdpr", "hipaa", "sox", "sec", "fcpa", "aml", "kyc", "finra", "ccpa"})
    LEGAL_TERMS = frozenset({
        "contract", "agreement", "liability", "indemnification", "breach",
        "lawsuit", "litigation", "settlement", "subpoena", "clause",
        "confidentiality", "nda", "warranty", "arbitration", "injunction",
    })

    def _regulations(self, text: str) -> list[str]:
        found = []
        for match in self.REGULATION_RE.finditer(text):
            value = match.group(0)
            # Acronyms only count when written in capitals
            if value.lower() in self._ACRONYMS and not value.isupper():
                continue
            if value.upper() not in found:
                found.append(value.upper())
        return found

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        for hit in hits:
            text = _hit_text(hit)
            for regulation in self._regulations(text):
                findings.append(
                    Finding(
                        document_id=hit.document_id,
                        finding_type=FindingType.COMPLIANCE_FLAG,
                        confidence=round(0.6 + 0.3 * hit.relevance_score, 4),
                        excerpt=hit.excerpt,
                        context=hit.context or "",
                        metadata={"regulation": regulation},
                    )
                )
            terms = sorted(set(content_terms(text)) & self.LEGAL_TERMS)
            if terms:
                findings.append(
                    Finding(
                        document_id=hit.document_id,
                        finding_type=FindingType.LEGAL_TERM,
                        confidence=round(0.5 + 0.4 * hit.relevance_score, 4),
                        excerpt=hit.excerpt,
                        context=hit.context or "",
                        metadata={"terms": ",".join(terms)},
                    )
                )
        return findings


class SentimentAnalyzer(StoreStrategy):
    """Lexicon tone score per hit."""

    kind = ScoutKind.SENTIMENT_ANALYZER

    NEGATIVE = frozenset({
        "concern", "concerns", "concerned", "risk", "problem", "problems", "dispute",
        "failed", "failure", "loss", "losses", "violation", "penalty", "threat",
        "complaint", "delay", "delayed", "breach", "fraud", "angry", "terminate",
        "terminated", "warning", "urgent", "critical", "decline", "damage",
    })
    POSITIVE = frozenset({
        "success", "successful", "agreed", "approved", "growth", "profit",
        "pleased", "excellent", "resolved", "completed", "benefit", "strong",
        "positive", "improved", "welcome", "opportunity",
    })
    negative_threshold = -0.2

    def tone(self, text: str) -> tuple[float, list[str]]:
        """Tone in [-1, 1] and the negative words that drove it."""
        words = content_tokens(text)
        negative = [w for w in words if w in self.NEGATIVE]
        positive = [w for w in words if w in self.POSITIVE]
        total = len(negative) + len(positive)
        if total == 0:
            return 0.0, []
        return (len(positive) - len(negative)) / total, sorted(set(negative))

    def findings_for_hits(self, query, pattern, hits):
        findings = []
        for hit in hits:
            tone, negative_words = self.tone(_hit_text(hit))
            metadata = {"tone": f"{tone:.2f}"}
            if tone <= self.negative_threshold:
                metadata["risk_level"] = "high" if tone <= -0.6 else "medium"
                metadata["indicators"] = ",".join(negative_words)
                finding_type = FindingType.RISK_INDICATOR
                confidence = round(min(0.95, 0.5 + 0.4 * abs(tone)), 4)
            else:
                finding_type = FindingType.RELATED_CONCEPT
                confidence = round(0.3 + 0.4 * hit.relevance_score, 4)
            findings.append(
                Finding(
                    document_id=hit.document_id,
                    finding_type=finding_type,
                    confidence=confidence,
                    excerpt=hit.excerpt,
                    context=hit.context or "",
                    metadata=metadata,
                )
            )
        return findings


class StrategyRegistry:
    """
    Maps scout kinds to their strategies.

    Usage:
        registry = StrategyRegistry.default()
        registry.register(MyStrategy())  # replaces the strategy for its kind
    """

    def __init__(self, strategies: list[ScoutStrategy] | None = None):
        self._strategies: dict[ScoutKind, ScoutStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    @classmethod
    def default(cls) -> StrategyRegistry:
        """Registry holding one strategy for every scout kind."""
        return cls([
            KeywordHunter(),
            PatternDetector(),
            RelationshipMapper(),
            TimelineBuilder(),
            EntityExtractor(),
            AnomalySpotter(),
            ComplianceChecker(),
            SentimentAnalyzer(),
        ])

    def register(self, strategy: ScoutStrategy) -> None:
        self._strategies[strategy.kind] = strategy
        logger.debug(f"Registered strategy for {strategy.kind.value}")

    def get(self, kind: ScoutKind) -> ScoutStrategy:
        """
        Look up the strategy for a kind.

        Raises:
            KeyError: If no strategy is registered for the kind
        """
        return self._strategies[kind]

    def __contains__(self, kind: ScoutKind) -> bool:
        return kind in self._strategies

    @property
    def kinds(self) -> list[ScoutKind]:
        return list(self._strategies)
