"""Pydantic models for the search request and response."""

from datetime import datetime

from pydantic import BaseModel, Field


class SearchQuery(BaseModel):
    """A search request from the calling layer."""

    query: str = Field(..., min_length=1)
    context: str | None = None
    intent_hint: str | None = Field(None, alias="intentHint")
    scope_hint: str | None = Field(None, alias="scopeHint")
    priority_hint: str | None = Field(None, alias="priorityHint")
    relationship_depth: int | None = Field(None, alias="relationshipDepth", ge=0, le=10)
    time_limit_ms: int | None = Field(None, alias="timeLimitMs", gt=0)
    user_id: str | None = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


class WireModel(BaseModel):
    """Base for response models: snake_case in Python, camelCase on the wire."""

    model_config = {"populate_by_name": True}


class FindingModel(WireModel):
    """One finding as produced by a scout."""

    document_id: str = Field(..., alias="documentId")
    finding_type: str = Field(..., alias="findingType")
    confidence: float
    excerpt: str
    context: str = ""
    related_entities: list[str] = Field(default_factory=list, alias="relatedEntities")
    metadata: dict[str, str] = Field(default_factory=dict)
    processing_time_ms: int = Field(0, alias="processingTimeMs")


class DirectMatch(WireModel):
    """A passage that directly answers the query."""

    document_id: str = Field(..., alias="documentId")
    excerpt: str
    context: str = ""
    relevance_score: float = Field(..., alias="relevanceScore")
    match_type: str = Field(..., alias="matchType")  # keyword, entity, temporal, financial
    scout: str | None = None


class RelatedConcept(WireModel):
    """A theme or concept found near the query terms."""

    concept: str
    document_id: str = Field(..., alias="documentId")
    relevance_score: float = Field(..., alias="relevanceScore")
    excerpt: str = ""


class ExtractedEntity(WireModel):
    """A merged entity."""

    name: str
    entity_type: str = Field(..., alias="entityType")
    type_tag: str | None = Field(None, alias="typeTag")
    confidence: float
    document_references: list[str] = Field(default_factory=list, alias="documentReferences")
    aliases: list[str] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)


class DiscoveredRelationship(WireModel):
    """A typed link between two entities."""

    from_entity: str = Field(..., alias="fromEntity")
    to_entity: str = Field(..., alias="toEntity")
    relationship_type: str = Field(..., alias="relationshipType")
    type_tag: str | None = Field(None, alias="typeTag")
    confidence: float
    supporting_documents: list[str] = Field(default_factory=list, alias="supportingDocuments")
    context: str = ""


class TimelineEventModel(WireModel):
    """A dated event."""

    event_id: str = Field(..., alias="eventId")
    timestamp: datetime
    event_type: str = Field(..., alias="eventType")
    description: str
    involved_entities: list[str] = Field(default_factory=list, alias="involvedEntities")
    source_documents: list[str] = Field(default_factory=list, alias="sourceDocuments")
    importance_score: float = Field(0.0, alias="importanceScore")


class ClusterModel(WireModel):
    """Documents sharing a theme."""

    cluster_id: str = Field(..., alias="clusterId")
    theme: str
    document_ids: list[str] = Field(default_factory=list, alias="documentIds")
    key_concepts: list[str] = Field(default_factory=list, alias="keyConcepts")
    start: datetime | None = None
    end: datetime | None = None
    relevance_score: float = Field(0.0, alias="relevanceScore")


class Insight(WireModel):
    """A derived observation over the whole result."""

    insight_type: str = Field(..., alias="insightType")
    title: str
    description: str
    confidence: float
    supporting_documents: list[str] = Field(default_factory=list, alias="supportingDocuments")


class RiskIndicator(WireModel):
    """A passage whose tone or content signals risk."""

    document_id: str = Field(..., alias="documentId")
    risk_level: str = Field(..., alias="riskLevel")
    description: str
    indicators: list[str] = Field(default_factory=list)
    confidence: float


class ComplianceFlag(WireModel):
    """A regulation reference or legal term."""

    document_id: str = Field(..., alias="documentId")
    flag_type: str = Field(..., alias="flagType")  # regulation, legal_term
    reference: str
    description: str
    severity: str
    confidence: float


class Anomaly(WireModel):
    """An irregularity or outlier."""

    document_id: str = Field(..., alias="documentId")
    anomaly_type: str = Field(..., alias="anomalyType")
    description: str
    confidence: float


class RecommendationModel(WireModel):
    """A structured follow-up."""

    recommendation_type: str = Field(..., alias="recommendationType")
    description: str
    priority: str
    effort: str


class IntelligentSearchResponse(WireModel):
    """Everything one search produced, plus derived views."""

    query_id: str = Field(..., alias="queryId")
    original_query: str = Field(..., alias="originalQuery")
    processing_time_ms: int = Field(..., alias="processingTimeMs")
    scouts_deployed: int = Field(..., alias="scoutsDeployed")
    documents_analyzed: int = Field(..., alias="documentsAnalyzed")
    confidence_score: float = Field(..., alias="confidenceScore")

    findings: list[FindingModel] = Field(default_factory=list)
    direct_matches: list[DirectMatch] = Field(default_factory=list, alias="directMatches")
    related_concepts: list[RelatedConcept] = Field(default_factory=list, alias="relatedConcepts")
    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[DiscoveredRelationship] = Field(default_factory=list)
    timeline: list[TimelineEventModel] = Field(default_factory=list)
    clusters: list[ClusterModel] = Field(default_factory=list)

    insights: list[Insight] = Field(default_factory=list)
    risk_indicators: list[RiskIndicator] = Field(default_factory=list, alias="riskIndicators")
    compliance_flags: list[ComplianceFlag] = Field(default_factory=list, alias="complianceFlags")
    anomalies: list[Anomaly] = Field(default_factory=list)
    recommendations: list[RecommendationModel] = Field(default_factory=list)

    expansion_suggestions: list[str] = Field(default_factory=list, alias="expansionSuggestions")
    related_queries: list[str] = Field(default_factory=list, alias="relatedQueries")
    dead_end_paths: list[str] = Field(default_factory=list, alias="deadEndPaths")

    cache_hit: bool = Field(False, alias="cacheHit")
    dead_ends_encountered: int = Field(0, alias="deadEndsEncountered")
    search_depth_achieved: int = Field(0, alias="searchDepthAchieved")
    failed_scouts: int = Field(0, alias="failedScouts")
    partial: bool = False
