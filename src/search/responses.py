"""Translate an AnalysisResult into the external search response.

The insight, risk, compliance, anomaly and recommendation lists are
derived views. Any of them may be empty when no detector fired.
"""

from __future__ import annotations

from ..orchestration.models import (
    AnalysisResult,
    Finding,
    FindingType,
    RecommendationKind,
)
from ..text import truncate
from .models import (
    Anomaly,
    ClusterModel,
    ComplianceFlag,
    DirectMatch,
    DiscoveredRelationship,
    ExtractedEntity,
    FindingModel,
    Insight,
    IntelligentSearchResponse,
    RecommendationModel,
    RelatedConcept,
    RiskIndicator,
    TimelineEventModel,
)

MATCH_TYPES = {
    FindingType.DIRECT_MATCH: "keyword",
    FindingType.PERSON_MENTION: "entity",
    FindingType.COMPANY_REFERENCE: "entity",
    FindingType.DATE_REFERENCE: "temporal",
    FindingType.MONETARY_AMOUNT: "financial",
}

EFFORT = {
    RecommendationKind.QUERY_REFINEMENT: "low",
    RecommendationKind.ADDITIONAL_SEARCH: "low",
    RecommendationKind.DOCUMENT_REVIEW: "medium",
    RecommendationKind.INVESTIGATION_REQUIRED: "medium",
    RecommendationKind.COMPLIANCE_ACTION: "high",
    RecommendationKind.RISK_MITIGATION: "high",
}

MAX_DIRECT_MATCHES = 50
MAX_RELATED_QUERIES = 5


def _split(value: str) -> list[str]:
    return [v for v in value.split(",") if v]


def direct_matches(findings: list[Finding]) -> list[DirectMatch]:
    """Matches ranked by confidence, one per (document, excerpt)."""
    seen = set()
    matches = []
    for f in sorted(findings, key=lambda f: (-f.confidence, f.document_id, f.excerpt)):
        match_type = MATCH_TYPES.get(f.finding_type)
        if match_type is None or (f.document_id, f.excerpt) in seen:
            continue
        seen.add((f.document_id, f.excerpt))
        matches.append(DirectMatch(
            document_id=f.document_id,
            excerpt=f.excerpt,
            context=f.context,
            relevance_score=f.confidence,
            match_type=match_type,
            scout=f.scout,
        ))
    return matches[:MAX_DIRECT_MATCHES]


def related_concepts(findings: list[Finding]) -> list[RelatedConcept]:
    concepts = []
    for f in findings:
        if f.finding_type != FindingType.RELATED_CONCEPT:
            continue
        concept = f.metadata.get("theme")
        if concept is None and f.related_entities:
            concept = " / ".join(f.related_entities[:3])
        if concept is None:
            continue
        concepts.append(RelatedConcept(
            concept=concept,
            document_id=f.document_id,
            relevance_score=f.confidence,
            excerpt=f.excerpt,
        ))
    return concepts


def risk_indicators(findings: list[Finding]) -> list[RiskIndicator]:
    return [
        RiskIndicator(
            document_id=f.document_id,
            risk_level=f.metadata.get("risk_level", "medium"),
            description=truncate(f.excerpt),
            indicators=_split(f.metadata.get("indicators", "")),
            confidence=f.confidence,
        )
        for f in findings
        if f.finding_type == FindingType.RISK_INDICATOR
    ]


def compliance_flags(findings: list[Finding]) -> list[ComplianceFlag]:
    flags = []
    for f in findings:
        if f.finding_type == FindingType.COMPLIANCE_FLAG:
            regulation = f.metadata.get("regulation", "unspecified")
            flags.append(ComplianceFlag(
                document_id=f.document_id,
                flag_type="regulation",
                reference=regulation,
                description=f"References {regulation}: {truncate(f.excerpt, 120)}",
                severity="high",
                confidence=f.confidence,
            ))
        elif f.finding_type == FindingType.LEGAL_TERM:
            terms = f.metadata.get("terms", "")
            flags.append(ComplianceFlag(
                document_id=f.document_id,
                flag_type="legal_term",
                reference=terms,
                description=f"Legal language ({terms.replace(',', ', ')})",
                severity="medium",
                confidence=f.confidence,
            ))
    return flags


def anomalies(findings: list[Finding]) -> list[Anomaly]:
    results = []
    for f in findings:
        if f.finding_type != FindingType.ANOMALY:
            continue
        anomaly_type = f.metadata.get("anomaly_type", "irregularity")
        if anomaly_type == "outlier_amount":
            description = (
                f"Amount {f.metadata.get('amount')} is far above the median "
                f"{f.metadata.get('median')}"
            )
        else:
            indicators = f.metadata.get("indicators", "").replace(",", ", ")
            description = f"Irregularity terms ({indicators}): {truncate(f.excerpt, 120)}"
        results.append(Anomaly(
            document_id=f.document_id,
            anomaly_type=anomaly_type,
            description=description,
            confidence=f.confidence,
        ))
    return results


def insights(result: AnalysisResult) -> list[Insight]:
    """Whole-result observations: patterns, trends, anomalies, risk, compliance, links."""
    found = []

    for cluster in result.document_clusters:
        found.append(Insight(
            insight_type="pattern_discovery",
            title=f"Theme: {cluster.theme}",
            description=f"{len(cluster.document_ids)} documents share the theme '{cluster.theme}'",
            confidence=cluster.relevance_score,
            supporting_documents=cluster.document_ids,
        ))

    if len(result.timeline) >= 2:
        first, last = result.timeline[0], result.timeline[-1]
        documents = sorted({d for e in result.timeline for d in e.source_documents})
        found.append(Insight(
            insight_type="trend_analysis",
            title="Activity over time",
            description=(
                f"{len(result.timeline)} dated events between "
                f"{first.timestamp.date().isoformat()} and {last.timestamp.date().isoformat()}"
            ),
            confidence=round(sum(e.importance_score for e in result.timeline) / len(result.timeline), 4),
            supporting_documents=documents,
        ))

    for finding_type, insight_type, label in (
        (FindingType.ANOMALY, "anomaly_detection", "anomalies"),
        (FindingType.RISK_INDICATOR, "risk_assessment", "risk indicators"),
        (FindingType.COMPLIANCE_FLAG, "compliance_gap", "compliance references"),
    ):
        matching = [f for f in result.findings if f.finding_type == finding_type]
        if not matching:
            continue
        found.append(Insight(
            insight_type=insight_type,
            title=label.capitalize(),
            description=f"{len(matching)} {label} across {len({f.document_id for f in matching})} documents",
            confidence=round(max(f.confidence for f in matching), 4),
            supporting_documents=sorted({f.document_id for f in matching}),
        ))

    if result.relationships:
        top = result.relationships[0]
        names = {r.from_entity for r in result.relationships} | {r.to_entity for r in result.relationships}
        found.append(Insight(
            insight_type="relationship_mapping",
            title="Entity relationships",
            description=(
                f"{len(result.relationships)} relationships among {len(names)} entities; "
                f"strongest: {top.from_entity} {top.relationship_type.value} {top.to_entity}"
            ),
            confidence=top.confidence,
            supporting_documents=sorted({d for r in result.relationships for d in r.supporting_documents}),
        ))

    return found


def related_queries(result: AnalysisResult) -> list[str]:
    """Follow-up queries built around the strongest entities and links."""
    original = result.original_query.lower()
    queries = []
    for relationship in result.relationships[:2]:
        queries.append(f"{relationship.from_entity} and {relationship.to_entity}")
    for entity in result.entities:
        if entity.name.lower() not in original:
            queries.append(f"documents mentioning {entity.name}")
        if len(queries) >= MAX_RELATED_QUERIES:
            break
    return list(dict.fromkeys(queries))[:MAX_RELATED_QUERIES]


def build_response(result: AnalysisResult, cache_hit: bool = False) -> IntelligentSearchResponse:
    """Build the response for a result, cached or fresh."""
    return IntelligentSearchResponse(
        query_id=result.query_id,
        original_query=result.original_query,
        processing_time_ms=result.processing_time_ms,
        scouts_deployed=result.scouts_deployed,
        documents_analyzed=result.documents_analyzed,
        confidence_score=result.confidence_score,
        findings=[
            FindingModel(
                document_id=f.document_id,
                finding_type=f.finding_type.value,
                confidence=f.confidence,
                excerpt=f.excerpt,
                context=f.context,
                related_entities=f.related_entities,
                metadata=f.metadata,
                processing_time_ms=f.processing_time_ms,
            )
            for f in result.findings
        ],
        direct_matches=direct_matches(result.findings),
        related_concepts=related_concepts(result.findings),
        entities=[
            ExtractedEntity(
                name=e.name,
                entity_type=e.entity_type.value,
                type_tag=e.type_tag,
                confidence=e.confidence,
                document_references=e.document_references,
                aliases=e.aliases,
                metadata=e.metadata,
            )
            for e in result.entities
        ],
        relationships=[
            DiscoveredRelationship(
                from_entity=r.from_entity,
                to_entity=r.to_entity,
                relationship_type=r.relationship_type.value,
                type_tag=r.type_tag,
                confidence=r.confidence,
                supporting_documents=r.supporting_documents,
                context=r.context,
            )
            for r in result.relationships
        ],
        timeline=[
            TimelineEventModel(
                event_id=e.event_id,
                timestamp=e.timestamp,
                event_type=e.event_type,
                description=e.description,
                involved_entities=e.involved_entities,
                source_documents=e.source_documents,
                importance_score=e.importance_score,
            )
            for e in result.timeline
        ],
        clusters=[
            ClusterModel(
                cluster_id=c.cluster_id,
                theme=c.theme,
                document_ids=c.document_ids,
                key_concepts=c.key_concepts,
                start=c.time_range[0] if c.time_range else None,
                end=c.time_range[1] if c.time_range else None,
                relevance_score=c.relevance_score,
            )
            for c in result.document_clusters
        ],
        insights=insights(result),
        risk_indicators=risk_indicators(result.findings),
        compliance_flags=compliance_flags(result.findings),
        anomalies=anomalies(result.findings),
        recommendations=[
            RecommendationModel(
                recommendation_type=r.kind.value,
                description=r.description,
                priority=r.priority,
                effort=EFFORT[r.kind],
            )
            for r in result.recommendations
        ],
        expansion_suggestions=result.expansion_suggestions,
        related_queries=related_queries(result),
        dead_end_paths=result.dead_end_paths,
        cache_hit=cache_hit,
        dead_ends_encountered=result.dead_ends,
        search_depth_achieved=result.search_depth,
        failed_scouts=result.failed_scouts,
        partial=result.partial,
    )
