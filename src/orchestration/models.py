"""Data models for scout orchestration and result aggregation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class QueryIntent(str, Enum):
    """What the caller wants to learn from the corpus."""

    FACT_FINDING = "fact_finding"
    RELATIONSHIP_MAPPING = "relationship_mapping"
    TIMELINE_ANALYSIS = "timeline_analysis"
    RISK_ASSESSMENT = "risk_assessment"
    ENTITY_EXTRACTION = "entity_extraction"
    DOCUMENT_CLASSIFICATION = "document_classification"
    ANOMALY_DETECTION = "anomaly_detection"
    COMPLIANCE_AUDIT = "compliance_audit"


class QueryScope(str, Enum):
    """How much of the corpus a query may touch."""

    NARROW = "narrow"  # Single document type
    FOCUSED = "focused"  # Related document cluster
    BROAD = "broad"  # Cross-domain search
    EXHAUSTIVE = "exhaustive"  # Full corpus analysis


class QueryPriority(str, Enum):
    """Latency class governing the query's time budget."""

    URGENT = "urgent"  # <1s
    HIGH = "high"  # <5s
    NORMAL = "normal"  # <30s
    BACKGROUND = "background"  # no strict bound


class ScoutKind(str, Enum):
    """Search strategy a scout applies."""

    KEYWORD_HUNTER = "keyword_hunter"
    PATTERN_DETECTOR = "pattern_detector"
    RELATIONSHIP_MAPPER = "relationship_mapper"
    TIMELINE_BUILDER = "timeline_builder"
    ENTITY_EXTRACTOR = "entity_extractor"
    ANOMALY_SPOTTER = "anomaly_spotter"
    COMPLIANCE_CHECKER = "compliance_checker"
    SENTIMENT_ANALYZER = "sentiment_analyzer"


class ScoutStatus(str, Enum):
    """Lifecycle of a scout within one query."""

    DEPLOYED = "deployed"
    SEARCHING = "searching"
    FOUND_LEAD = "found_lead"
    DEAD_END = "dead_end"
    REPORTING_BACK = "reporting_back"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScoutStatus.COMPLETED, ScoutStatus.FAILED)


class QueryStatus(str, Enum):
    """Progress of one in-flight query."""

    INITIALIZING = "initializing"
    DEPLOYING_SCOUTS = "deploying_scouts"
    GATHERING = "gathering"
    ANALYZING = "analyzing"
    BUILDING_RESPONSE = "building_response"
    COMPLETED = "completed"
    FAILED = "failed"


class FindingType(str, Enum):
    """Kind of evidence a finding carries."""

    DIRECT_MATCH = "direct_match"
    RELATED_CONCEPT = "related_concept"
    PERSON_MENTION = "person_mention"
    COMPANY_REFERENCE = "company_reference"
    DATE_REFERENCE = "date_reference"
    MONETARY_AMOUNT = "monetary_amount"
    LEGAL_TERM = "legal_term"
    RISK_INDICATOR = "risk_indicator"
    COMPLIANCE_FLAG = "compliance_flag"
    ANOMALY = "anomaly"


class EntityType(str, Enum):
    """Entity categories. OTHER carries a free-form tag on the entity."""

    PERSON = "person"
    COMPANY = "company"
    LOCATION = "location"
    DATE = "date"
    AMOUNT = "amount"
    CONTRACT = "contract"
    LEGAL = "legal"
    PRODUCT = "product"
    DEPARTMENT = "department"
    OTHER = "other"


class RelationshipType(str, Enum):
    """Relationship categories. OTHER carries a free-form tag."""

    WORKS_FOR = "works_for"
    CONTRACTS_WITH = "contracts_with"
    REPORTS_TO = "reports_to"
    OWNS = "owns"
    NEGOTIATES = "negotiates"
    COMMUNICATES = "communicates"
    COMPETES = "competes"
    REGULATORY = "regulatory"
    FINANCIAL = "financial"
    LEGAL = "legal"
    OTHER = "other"


class RecommendationKind(str, Enum):
    """Category of a generated recommendation."""

    QUERY_REFINEMENT = "query_refinement"
    ADDITIONAL_SEARCH = "additional_search"
    DOCUMENT_REVIEW = "document_review"
    COMPLIANCE_ACTION = "compliance_action"
    RISK_MITIGATION = "risk_mitigation"
    INVESTIGATION_REQUIRED = "investigation_required"


# Deepest relationship traversal a query may request
MAX_RELATIONSHIP_DEPTH = 10

ENTITY_FINDING_TYPES: dict[FindingType, EntityType] = {
    FindingType.PERSON_MENTION: EntityType.PERSON,
    FindingType.COMPANY_REFERENCE: EntityType.COMPANY,
    FindingType.DATE_REFERENCE: EntityType.DATE,
    FindingType.MONETARY_AMOUNT: EntityType.AMOUNT,
}


@dataclass(frozen=True)
class Query:
    """A classified query. Immutable once created."""

    original_query: str
    intent: QueryIntent = QueryIntent.FACT_FINDING
    scope: QueryScope = QueryScope.FOCUSED
    priority: QueryPriority = QueryPriority.NORMAL
    context_hints: tuple[str, ...] = ()
    relationship_depth: int = 2
    time_budget_ms: int | None = None

    def __post_init__(self):
        if not 0 <= self.relationship_depth <= MAX_RELATIONSHIP_DEPTH:
            raise ValueError(f"Relationship depth must be between 0 and {MAX_RELATIONSHIP_DEPTH}")
        if self.time_budget_ms is not None and self.time_budget_ms <= 0:
            raise ValueError("Time budget must be positive")


@dataclass(frozen=True)
class DeploymentPlan:
    """How many scouts of which kinds to run for one query."""

    worker_kinds: tuple[ScoutKind, ...]
    target_clusters: int
    dead_end_allowance: int
    strategy: str = "adaptive"
    parallel: bool = True
    document_count: int = 0

    @property
    def worker_count(self) -> int:
        """Number of scouts to deploy (one per planned kind)."""
        return len(self.worker_kinds)

    def to_dict(self) -> dict:
        """Convert plan to dictionary for serialization."""
        return {
            "strategy": self.strategy,
            "worker_count": self.worker_count,
            "worker_kinds": [k.value for k in self.worker_kinds],
            "target_clusters": self.target_clusters,
            "dead_end_allowance": self.dead_end_allowance,
            "parallel": self.parallel,
            "document_count": self.document_count,
        }


@dataclass
class Finding:
    """One atomic piece of evidence a scout extracted from a document."""

    document_id: str
    finding_type: FindingType
    confidence: float
    excerpt: str
    context: str = ""
    related_entities: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    processing_time_ms: int = 0

    def __post_init__(self):
        if not 0 <= self.confidence <= 1:
            raise ValueError("Confidence must be between 0 and 1")

    @property
    def scout(self) -> str | None:
        """Kind of the scout that produced this finding."""
        return self.metadata.get("scout")

    def sort_key(self) -> tuple:
        """Stable ordering key independent of arrival order."""
        return (
            self.document_id,
            self.finding_type.value,
            self.metadata.get("scout", ""),
            self.excerpt,
            -self.confidence,
            tuple(self.related_entities),
            tuple(sorted(self.metadata.items())),
        )


@dataclass
class ScoutWorker:
    """A single scout executing one strategy for one query."""

    id: str
    kind: ScoutKind
    search_patterns: list[str]
    variant: int = 0
    status: ScoutStatus = ScoutStatus.DEPLOYED
    findings: list[Finding] = field(default_factory=list)
    processing_time_ms: int = 0
    dead_end_count: int = 0
    patterns_completed: int = 0
    errors: list[str] = field(default_factory=list)
    dead_end_patterns: list[str] = field(default_factory=list)
    started_at: float | None = None

    @property
    def pattern_count(self) -> int:
        return len(self.search_patterns)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def start(self) -> None:
        """Mark the scout as searching."""
        self.status = ScoutStatus.SEARCHING
        self.started_at = time.monotonic()

    def record_lead(self, findings: list[Finding]) -> None:
        """Record findings produced by one pattern."""
        self.findings.extend(findings)
        self.patterns_completed += 1
        self.status = ScoutStatus.FOUND_LEAD

    def record_dead_end(self, pattern: str, error: str | None = None) -> None:
        """Record a pattern that produced no usable evidence."""
        self.dead_end_count += 1
        self.patterns_completed += 1
        self.dead_end_patterns.append(pattern)
        if error:
            self.errors.append(error)
        self.status = ScoutStatus.DEAD_END

    def finish(self) -> None:
        """Move to a terminal status after all patterns ran."""
        self.status = ScoutStatus.REPORTING_BACK
        self._stamp_elapsed()
        if self.pattern_count and self.error_count >= self.pattern_count:
            self.findings = []
            self.status = ScoutStatus.FAILED
        else:
            self.status = ScoutStatus.COMPLETED

    def fail(self, reason: str) -> None:
        """Terminate the scout without a report.

        Patterns that never ran count as dead ends, with a minimum of one.
        """
        remaining = max(1, self.pattern_count - self.patterns_completed)
        self.dead_end_count += remaining
        self.dead_end_patterns.extend(self.search_patterns[self.patterns_completed:])
        self.errors.append(reason)
        self.findings = []
        self._stamp_elapsed()
        self.status = ScoutStatus.FAILED

    def _stamp_elapsed(self) -> None:
        if self.started_at is not None:
            self.processing_time_ms = int((time.monotonic() - self.started_at) * 1000)


@dataclass
class Entity:
    """A merged entity, addressed by its normalized name."""

    name: str
    entity_type: EntityType
    confidence: float
    document_references: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    type_tag: str | None = None  # Set when entity_type is OTHER


@dataclass
class Relationship:
    """A typed link between two entities, held by name."""

    from_entity: str
    to_entity: str
    relationship_type: RelationshipType
    confidence: float
    supporting_documents: list[str] = field(default_factory=list)
    context: str = ""
    type_tag: str | None = None  # Set when relationship_type is OTHER


@dataclass
class TimelineEvent:
    """A dated event discovered in the corpus."""

    event_id: str
    timestamp: datetime
    event_type: str
    description: str
    involved_entities: list[str] = field(default_factory=list)
    source_documents: list[str] = field(default_factory=list)
    importance_score: float = 0.0


@dataclass
class DocumentCluster:
    """Documents sharing a dominant theme."""

    cluster_id: str
    theme: str
    document_ids: list[str]
    key_concepts: list[str] = field(default_factory=list)
    time_range: tuple[datetime, datetime] | None = None
    relevance_score: float = 0.0


@dataclass
class Recommendation:
    """A human-readable follow-up generated from gaps in the result."""

    description: str
    kind: RecommendationKind
    priority: str = "medium"  # urgent, high, medium, low


@dataclass
class AnalysisResult:
    """Output of one orchestration run. Cached by query text."""

    query_id: str
    original_query: str
    processing_time_ms: int
    scouts_deployed: int
    documents_analyzed: int
    findings: list[Finding] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    entities: list[Entity] = field(default_factory=list)
    timeline: list[TimelineEvent] = field(default_factory=list)
    document_clusters: list[DocumentCluster] = field(default_factory=list)
    confidence_score: float = 0.0
    recommendations: list[Recommendation] = field(default_factory=list)
    dead_ends: int = 0
    expansion_suggestions: list[str] = field(default_factory=list)
    dead_end_paths: list[str] = field(default_factory=list)
    search_depth: int = 0
    failed_scouts: int = 0
    partial: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def finding_count(self) -> int:
        return len(self.findings)

    @property
    def document_ids(self) -> set[str]:
        """Distinct documents referenced by findings."""
        return {f.document_id for f in self.findings}

    @property
    def entity_names(self) -> set[str]:
        return {e.name for e in self.entities}
