"""Aggregation of scout findings into one AnalysisResult.

Aggregation is a pure transformation over whatever findings exist. It
never performs I/O and never fails on empty input. Findings are sorted
before any merge so the result depends only on the multiset of findings,
not on the order scouts reported in.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import Counter, defaultdict, deque
from typing import TYPE_CHECKING

from ..text import STOP_WORDS, content_terms, content_tokens, truncate
from .extraction import normalize_entity_name, parse_date
from .models import (
    ENTITY_FINDING_TYPES,
    AnalysisResult,
    DeploymentPlan,
    DocumentCluster,
    Entity,
    EntityType,
    Finding,
    FindingType,
    Query,
    Recommendation,
    RecommendationKind,
    Relationship,
    RelationshipType,
    ScoutKind,
    ScoutStatus,
    ScoutWorker,
    TimelineEvent,
)

if TYPE_CHECKING:
    from ..config.loader import AggregatorConfig

logger = logging.getLogger(__name__)

_ID_NAMESPACE = uuid.UUID("6f1c2f4e-7a3b-4d5e-9c8a-1b2d3e4f5a6b")

# Lexical rules for typing a relationship, most specific first
RELATIONSHIP_RULES: list[tuple[RelationshipType, re.Pattern]] = [
    (RelationshipType.REPORTS_TO, re.compile(r"\breports? (?:directly )?to\b|\bmanager of\b", re.I)),
    (RelationshipType.WORKS_FOR, re.compile(
        r"\bworks? (?:for|at)\b|\bemployed by\b|\bemployee of\b|\b(?:ceo|cfo|cto|coo|director|counsel|president) (?:of|at)\b",
        re.I,
    )),
    (RelationshipType.NEGOTIATES, re.compile(r"\bnegotiat\w*", re.I)),
    (RelationshipType.OWNS, re.compile(r"\bowns?\b|\bacquir\w*|\bsubsidiary\b|\bparent company\b|\bstake in\b", re.I)),
    (RelationshipType.CONTRACTS_WITH, re.compile(
        r"\bcontract\w*|\bagreement\b|\bsigned with\b|\bvendor\b|\bsupplier\b", re.I
    )),
    (RelationshipType.LEGAL, re.compile(r"\blawsuit\b|\bsued\b|\bsues\b|\blitigation\b|\bcourt\b", re.I)),
    (RelationshipType.REGULATORY, re.compile(r"\bregulat\w*|\bfiled with\b|\binvestigat\w*|\baudit\w*", re.I)),
    (RelationshipType.FINANCIAL, re.compile(
        r"\bpaid\b|\bpayments?\b|\binvoice\w*|\bloans?\b|\binvest\w*|\bfunding\b|\btransfer\w*", re.I
    )),
    (RelationshipType.COMPETES, re.compile(r"\bcompet\w*|\brivals?\b", re.I)),
    (RelationshipType.COMMUNICATES, re.compile(
        r"\be-?mail\w*|\bmet with\b|\bcall with\b|\bspoke\b|\bwrote to\b|\bcommunicat\w*|\bmeeting\b", re.I
    )),
]

# Types that read the same in both directions, keyed by sorted name pair
SYMMETRIC_RELATIONSHIPS = frozenset({
    RelationshipType.CONTRACTS_WITH,
    RelationshipType.COMMUNICATES,
    RelationshipType.COMPETES,
    RelationshipType.NEGOTIATES,
})

# Characters of text kept on each side of the span between two names
_PROXIMITY_MARGIN = 40

_PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}

# Entity types that never take part in relationships
_UNLINKABLE = {EntityType.DATE, EntityType.AMOUNT}


def _stable_id(*parts: str) -> str:
    return str(uuid.uuid5(_ID_NAMESPACE, "|".join(parts)))


def classify_relationship(text: str, first: str, second: str) -> RelationshipType | None:
    """
    Type the link between two names from the words near them.

    Looks at the span between the two names (plus a margin) when both
    occur in the text, otherwise at the whole text. Returns None when
    no rule matches.
    """
    lowered = text.lower()
    a, b = lowered.find(first.lower()), lowered.find(second.lower())
    if a >= 0 and b >= 0:
        start = max(0, min(a, b) - _PROXIMITY_MARGIN)
        end = max(a + len(first), b + len(second)) + _PROXIMITY_MARGIN
        text = text[start:end]

    for relationship_type, pattern in RELATIONSHIP_RULES:
        if pattern.search(text):
            return relationship_type
    return None


class Aggregator:
    """
    Merges findings from every scout into a knowledge graph.

    Each step is a public method so it can be exercised on its own:
    flatten, derive_entities, derive_relationships, derive_timeline,
    derive_clusters, confidence_score and recommend.
    """

    def __init__(self, config: AggregatorConfig | None = None):
        """
        Initialize the aggregator.

        Args:
            config: Aggregator configuration. If None, uses defaults.
        """
        if config is None:
            from ..config.loader import AggregatorConfig
            config = AggregatorConfig()
        self.config = config

    def aggregate(
        self,
        query: Query,
        plan: DeploymentPlan,
        workers: list[ScoutWorker],
        query_id: str | None = None,
        timed_out: bool = False,
        processing_time_ms: int = 0,
    ) -> AnalysisResult:
        """
        Build the result for one orchestration run.

        Args:
            query: The classified query
            plan: The plan the workers were deployed under
            workers: Every deployed worker, in a terminal status
            query_id: Identifier for the run. Generated when omitted.
            timed_out: Whether the pool hit its deadline
            processing_time_ms: Elapsed time so far

        Returns:
            The AnalysisResult. Empty but valid when there are no findings.
        """
        findings = self.flatten(workers)
        documents = {f.document_id for f in findings}

        entities = self.derive_entities(findings)
        relationships = self.derive_relationships(findings, entities)
        timeline = self.derive_timeline(findings, entities)
        clusters = self.derive_clusters(findings, query, plan.target_clusters)
        confidence = self.confidence_score(findings)

        dead_ends = sum(w.dead_end_count for w in workers)
        dead_end_paths = [
            f"{w.kind.value}: {pattern}"
            for w in sorted(workers, key=lambda w: w.id)
            for pattern in w.dead_end_patterns
        ]
        failed = [w for w in workers if w.status == ScoutStatus.FAILED]

        recommendations, suggestions = self.recommend(
            query=query,
            plan=plan,
            findings=findings,
            entities=entities,
            relationships=relationships,
            clusters=clusters,
            dead_ends=dead_ends,
            failed=failed,
            timed_out=timed_out,
            confidence=confidence,
        )

        result = AnalysisResult(
            query_id=query_id or str(uuid.uuid4()),
            original_query=query.original_query,
            processing_time_ms=processing_time_ms,
            scouts_deployed=plan.worker_count,
            documents_analyzed=len(documents),
            findings=findings,
            relationships=relationships,
            entities=entities,
            timeline=timeline,
            document_clusters=clusters,
            confidence_score=confidence,
            recommendations=recommendations,
            dead_ends=dead_ends,
            expansion_suggestions=suggestions,
            dead_end_paths=dead_end_paths,
            search_depth=self.search_depth(findings, relationships, query.relationship_depth),
            failed_scouts=len(failed),
            partial=timed_out,
        )
        logger.info(
            f"Aggregated {len(findings)} findings from {len(documents)} documents: "
            f"{len(entities)} entities, {len(relationships)} relationships, "
            f"{len(timeline)} events, {len(clusters)} clusters, {dead_ends} dead ends"
        )
        return result

    def flatten(self, workers: list[ScoutWorker]) -> list[Finding]:
        """All findings of every worker, in a stable order."""
        findings = [f for w in workers for f in w.findings]
        return sorted(findings, key=Finding.sort_key)

    def derive_entities(self, findings: list[Finding]) -> list[Entity]:
        """
        Merge entity mentions by normalized name.

        Sources are entity-typed findings (people, companies, amounts,
        dates) outside the timeline builder, plus the co-occurring names
        reported by the relationship mapper. Merging keeps the maximum
        confidence, unions document references and aliases, and lets the
        last finding in sorted order win on metadata.
        """
        merged: dict[str, Entity] = {}

        def add(name: str, entity_type: EntityType, finding: Finding) -> None:
            name = " ".join(name.split()).strip(".,;:")
            key = normalize_entity_name(name)
            if not key:
                return
            entity = merged.get(key)
            if entity is None:
                entity = Entity(name=name, entity_type=entity_type, confidence=finding.confidence)
                merged[key] = entity
            entity.confidence = max(entity.confidence, finding.confidence)
            if finding.document_id not in entity.document_references:
                entity.document_references.append(finding.document_id)
            if name != entity.name and name not in entity.aliases:
                entity.aliases.append(name)
            entity.metadata.update(
                {k: v for k, v in finding.metadata.items() if k != "pattern"}
            )

        for finding in findings:
            if (
                finding.finding_type in ENTITY_FINDING_TYPES
                and finding.scout != ScoutKind.TIMELINE_BUILDER.value
            ):
                name = finding.metadata.get("entity") or finding.excerpt
                add(name, ENTITY_FINDING_TYPES[finding.finding_type], finding)
            elif finding.scout == ScoutKind.RELATIONSHIP_MAPPER.value:
                types = finding.metadata.get("entity_types", "").split(",")
                for i, name in enumerate(finding.related_entities):
                    try:
                        entity_type = EntityType(types[i])
                    except (IndexError, ValueError):
                        entity_type = EntityType.OTHER
                    add(name, entity_type, finding)

        for entity in merged.values():
            entity.document_references.sort()
            entity.aliases.sort()
            if entity.entity_type == EntityType.OTHER:
                entity.type_tag = entity.metadata.get("type_tag", "unknown")

        return sorted(
            merged.values(),
            key=lambda e: (-len(e.document_references), -e.confidence, normalize_entity_name(e.name)),
        )

    def derive_relationships(
        self, findings: list[Finding], entities: list[Entity]
    ) -> list[Relationship]:
        """
        Link entities that co-occur in one finding's related-entity set.

        A pair is linked only when a lexical rule types it. Confidence is
        the mean confidence of the findings supporting the link.
        """
        known = {normalize_entity_name(e.name): e for e in entities}
        for entity in entities:
            for alias in entity.aliases:
                known.setdefault(normalize_entity_name(alias), entity)

        evidence: dict[tuple[str, str, RelationshipType], dict] = {}

        for finding in findings:
            names = []
            for raw in finding.related_entities:
                entity = known.get(normalize_entity_name(raw))
                if entity is not None and entity not in names:
                    names.append(entity)
            if len(names) < 2:
                continue

            text = finding.context or finding.excerpt
            for i, first in enumerate(names):
                for second in names[i + 1:]:
                    if {first.entity_type, second.entity_type} & _UNLINKABLE:
                        continue
                    relationship_type = classify_relationship(text, first.name, second.name)
                    if relationship_type is None:
                        continue
                    pair = (first.name, second.name)
                    if relationship_type in SYMMETRIC_RELATIONSHIPS:
                        pair = tuple(sorted(pair))
                    key = (*pair, relationship_type)
                    entry = evidence.setdefault(
                        key, {"confidences": [], "documents": set(), "context": ""}
                    )
                    entry["confidences"].append(finding.confidence)
                    entry["documents"].add(finding.document_id)
                    if not entry["context"]:
                        entry["context"] = truncate(finding.excerpt)

        relationships = [
            Relationship(
                from_entity=from_name,
                to_entity=to_name,
                relationship_type=relationship_type,
                confidence=round(sum(e["confidences"]) / len(e["confidences"]), 4),
                supporting_documents=sorted(e["documents"]),
                context=e["context"],
            )
            for (from_name, to_name, relationship_type), e in evidence.items()
        ]
        return sorted(
            relationships,
            key=lambda r: (-r.confidence, r.from_entity, r.to_entity, r.relationship_type.value),
        )

    def derive_timeline(
        self, findings: list[Finding], entities: list[Entity]
    ) -> list[TimelineEvent]:
        """
        One event per (date, document) from DateReference findings.

        Findings whose date does not parse are dropped. The most
        important events are kept when over the configured maximum, and
        the result is sorted ascending by timestamp.
        """
        known = {normalize_entity_name(e.name): e.name for e in entities}
        for entity in entities:
            for alias in entity.aliases:
                known.setdefault(normalize_entity_name(alias), entity.name)

        events: dict[tuple, TimelineEvent] = {}
        support: Counter = Counter()

        for finding in findings:
            if finding.finding_type != FindingType.DATE_REFERENCE:
                continue
            timestamp = parse_date(finding.metadata.get("date") or finding.excerpt)
            if timestamp is None:
                continue

            key = (timestamp, finding.document_id)
            involved = [
                known[n] for n in (normalize_entity_name(r) for r in finding.related_entities)
                if n in known
            ]
            event_type = finding.metadata.get("event_type", "mention")
            event = events.get(key)
            if event is None:
                event = TimelineEvent(
                    event_id=_stable_id(finding.document_id, timestamp.isoformat()),
                    timestamp=timestamp,
                    event_type=event_type,
                    description=truncate(self._event_description(finding)),
                    source_documents=[finding.document_id],
                    importance_score=finding.confidence,
                )
                events[key] = event
            elif event.event_type == "mention" and event_type != "mention":
                event.event_type = event_type
                event.description = truncate(finding.excerpt)

            for name in involved:
                if name not in event.involved_entities:
                    event.involved_entities.append(name)
            event.importance_score = max(event.importance_score, finding.confidence)
            support[key] += 1

        for key, event in events.items():
            # Corroborated dates rank higher
            event.importance_score = round(min(1.0, event.importance_score + 0.05 * (support[key] - 1)), 4)
            event.involved_entities.sort()

        selected = sorted(
            events.values(), key=lambda e: (-e.importance_score, e.timestamp, e.event_id)
        )[: self.config.max_timeline_events]
        return sorted(selected, key=lambda e: (e.timestamp, e.event_id))

    @staticmethod
    def _event_description(finding: Finding) -> str:
        # Extractor findings carry only the date itself as excerpt
        if finding.scout == ScoutKind.ENTITY_EXTRACTOR.value:
            return finding.context or finding.excerpt
        return finding.excerpt

    def derive_clusters(
        self, findings: list[Finding], query: Query, target_clusters: int
    ) -> list[DocumentCluster]:
        """
        Bucket documents by their dominant theme.

        A document's theme is the pattern detector's theme when one was
        reported, otherwise its most frequent non-query term across its
        findings. Buckets smaller than the minimum size are discarded.
        """
        query_terms = set(content_terms(query.original_query))
        by_document: dict[str, list[Finding]] = defaultdict(list)
        for finding in findings:
            by_document[finding.document_id].append(finding)

        terms_by_document: dict[str, Counter] = {}
        buckets: dict[str, list[str]] = defaultdict(list)

        for document_id in sorted(by_document):
            document_findings = by_document[document_id]
            counts = Counter()
            for finding in document_findings:
                counts.update(
                    t for t in content_tokens(f"{finding.excerpt} {finding.context}")
                    if t not in query_terms and t not in STOP_WORDS and len(t) > 3 and not t.isdigit()
                )
            terms_by_document[document_id] = counts

            themes = Counter(
                f.metadata["theme"] for f in document_findings if f.metadata.get("theme")
            )
            if themes:
                theme = min(themes, key=lambda t: (-themes[t], t))
            elif counts:
                theme = min(counts, key=lambda t: (-counts[t], t))
            else:
                continue
            buckets[theme].append(document_id)

        best_confidence = {
            doc: max(f.confidence for f in doc_findings)
            for doc, doc_findings in by_document.items()
        }

        clusters = []
        for theme, document_ids in buckets.items():
            if len(document_ids) < self.config.min_cluster_size:
                continue
            concepts = Counter()
            for doc in document_ids:
                concepts.update(terms_by_document[doc])
            key_concepts = [t for t, _ in sorted(concepts.items(), key=lambda i: (-i[1], i[0]))[:5]]

            dates = [
                d for d in (
                    parse_date(f.metadata.get("date") or f.excerpt)
                    for doc in document_ids
                    for f in by_document[doc]
                    if f.finding_type == FindingType.DATE_REFERENCE
                )
                if d is not None
            ]
            relevance = sum(best_confidence[d] for d in document_ids) / len(document_ids)
            clusters.append(
                DocumentCluster(
                    cluster_id=_stable_id(theme, *document_ids),
                    theme=theme,
                    document_ids=document_ids,
                    key_concepts=key_concepts,
                    time_range=(min(dates), max(dates)) if dates else None,
                    relevance_score=round(relevance, 4),
                )
            )

        clusters.sort(key=lambda c: (-c.relevance_score, -len(c.document_ids), c.theme))
        return clusters[: max(1, target_clusters)]

    def confidence_score(self, findings: list[Finding]) -> float:
        """Mean finding confidence, 0 with no findings."""
        if not findings:
            return 0.0
        return round(sum(f.confidence for f in findings) / len(findings), 4)

    def recommend(
        self,
        query: Query,
        plan: DeploymentPlan,
        findings: list[Finding],
        entities: list[Entity],
        relationships: list[Relationship],
        clusters: list[DocumentCluster],
        dead_ends: int,
        failed: list[ScoutWorker],
        timed_out: bool,
        confidence: float,
    ) -> tuple[list[Recommendation], list[str]]:
        """Rule-based recommendations and query expansion suggestions."""
        recommendations: list[Recommendation] = []
        suggestions: list[str] = []
        original = query.original_query.strip()
        by_type = Counter(f.finding_type for f in findings)

        if dead_ends > plan.dead_end_allowance:
            recommendations.append(Recommendation(
                f"Broaden the query scope: {dead_ends} dead ends exceeded the "
                f"allowance of {plan.dead_end_allowance}",
                RecommendationKind.QUERY_REFINEMENT,
                "high",
            ))
            keywords = content_terms(original)
            if len(keywords) > 1:
                suggestions.extend(keywords[:3])

        if not findings:
            recommendations.append(Recommendation(
                "No evidence found. Try alternative terms or a broader scope",
                RecommendationKind.QUERY_REFINEMENT,
                "high",
            ))

        mapped = any(f.scout == ScoutKind.RELATIONSHIP_MAPPER.value for f in findings)
        people_or_companies = [
            e for e in entities if e.entity_type in (EntityType.PERSON, EntityType.COMPANY)
        ]
        if people_or_companies and not mapped:
            names = [e.name for e in people_or_companies[:2]]
            recommendations.append(Recommendation(
                f"Run a relationship-focused follow-up for {' and '.join(names)}",
                RecommendationKind.ADDITIONAL_SEARCH,
                "medium",
            ))
            suggestions.append(f"relationships between {' and '.join(names)}")

        if timed_out:
            recommendations.append(Recommendation(
                "Results are partial because the time budget ran out. "
                "Rerun at background priority for full coverage",
                RecommendationKind.ADDITIONAL_SEARCH,
                "medium",
            ))

        if failed:
            kinds = ", ".join(sorted({w.kind.value for w in failed}))
            recommendations.append(Recommendation(
                f"{len(failed)} scouts failed ({kinds}). Check document store availability",
                RecommendationKind.INVESTIGATION_REQUIRED,
                "medium",
            ))

        if by_type[FindingType.COMPLIANCE_FLAG]:
            regulations = sorted({
                f.metadata["regulation"] for f in findings
                if f.finding_type == FindingType.COMPLIANCE_FLAG and f.metadata.get("regulation")
            })
            recommendations.append(Recommendation(
                f"Review compliance exposure ({', '.join(regulations) or 'unspecified'}) "
                f"across {by_type[FindingType.COMPLIANCE_FLAG]} flagged passages",
                RecommendationKind.COMPLIANCE_ACTION,
                "high",
            ))

        if by_type[FindingType.ANOMALY]:
            recommendations.append(Recommendation(
                f"Investigate {by_type[FindingType.ANOMALY]} anomalies",
                RecommendationKind.INVESTIGATION_REQUIRED,
                "high",
            ))

        if by_type[FindingType.RISK_INDICATOR]:
            recommendations.append(Recommendation(
                f"Assess {by_type[FindingType.RISK_INDICATOR]} risk indicators",
                RecommendationKind.RISK_MITIGATION,
                "medium",
            ))

        if findings and confidence < self.config.low_confidence_threshold:
            recommendations.append(Recommendation(
                f"Overall confidence is low ({confidence:.2f}). Review top documents manually",
                RecommendationKind.DOCUMENT_REVIEW,
                "low",
            ))

        for cluster in clusters[:3]:
            suggestions.append(f"{original} {cluster.theme}")
        if relationships and query.relationship_depth > 1:
            top = relationships[0]
            suggestions.append(f"{top.from_entity} {top.to_entity}")

        recommendations.sort(key=lambda r: _PRIORITY_ORDER.get(r.priority, 99))
        unique_suggestions = [s for s in dict.fromkeys(suggestions) if s.lower() != original.lower()]
        return recommendations[: self.config.max_recommendations], unique_suggestions[:5]

    def search_depth(
        self, findings: list[Finding], relationships: list[Relationship], max_depth: int
    ) -> int:
        """
        How deep the evidence reaches.

        0 with no findings, else 1 plus the greatest shortest-path distance
        between two connected entities, capped at the requested relationship
        depth. Each breadth-first walk stops at the cap, so the cost stays
        bounded by entities times relationships.
        """
        if not findings:
            return 0
        cap = max(1, max_depth)

        graph: dict[str, set[str]] = defaultdict(set)
        for r in relationships:
            if r.from_entity != r.to_entity:
                graph[r.from_entity].add(r.to_entity)
                graph[r.to_entity].add(r.from_entity)

        limit = cap - 1
        longest = 0

        for start in sorted(graph):
            if longest >= limit:
                break
            distances = {start: 0}
            frontier = deque([start])
            while frontier:
                node = frontier.popleft()
                if distances[node] >= limit:
                    continue
                for neighbor in graph[node]:
                    if neighbor not in distances:
                        distances[neighbor] = distances[node] + 1
                        frontier.append(neighbor)
            longest = max(longest, max(distances.values()))

        return min(1 + longest, cap)
