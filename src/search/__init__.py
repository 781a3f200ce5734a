"""Search surface: request/response models and the search engine."""

from .models import (
    SearchQuery,
    IntelligentSearchResponse,
    FindingModel,
    DirectMatch,
    RelatedConcept,
    ExtractedEntity,
    DiscoveredRelationship,
    TimelineEventModel,
    ClusterModel,
    Insight,
    RiskIndicator,
    ComplianceFlag,
    Anomaly,
    RecommendationModel,
)
from .errors import SearchError, InvalidQueryError, OrchestrationFailedError
from .responses import build_response
from .engine import IntelligentSearchEngine, ActiveQuery

__all__ = [
    # Request / response
    "SearchQuery",
    "IntelligentSearchResponse",
    "FindingModel",
    "DirectMatch",
    "RelatedConcept",
    "ExtractedEntity",
    "DiscoveredRelationship",
    "TimelineEventModel",
    "ClusterModel",
    "Insight",
    "RiskIndicator",
    "ComplianceFlag",
    "Anomaly",
    "RecommendationModel",
    # Errors
    "SearchError",
    "InvalidQueryError",
    "OrchestrationFailedError",
    # Engine
    "build_response",
    "IntelligentSearchEngine",
    "ActiveQuery",
]
