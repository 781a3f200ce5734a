"""Orchestration core for scout-based document search.

This module provides the query pipeline:
- QueryClassifier: raw text and hints to a structured Query
- DeploymentPlanner: which scouts to run, given scope and priority
- ScoutPool: concurrent scouts over the document store
- Aggregator: findings to entities, relationships, timeline and clusters
- ResultCache / QueryHistory: injected, lifecycle-scoped shared state
- SearchOrchestrator: wires the pipeline for one query
"""

from .models import (
    QueryIntent,
    QueryScope,
    QueryPriority,
    QueryStatus,
    ScoutKind,
    ScoutStatus,
    FindingType,
    EntityType,
    RelationshipType,
    RecommendationKind,
    Query,
    DeploymentPlan,
    Finding,
    ScoutWorker,
    Entity,
    Relationship,
    TimelineEvent,
    DocumentCluster,
    Recommendation,
    AnalysisResult,
)
from .errors import OrchestrationError, ScoutDeploymentError
from .protocols import ScoutStrategy
from .classifier import QueryClassifier, infer_intent, extract_context_hints
from .planner import DeploymentPlanner
from .strategies import (
    StoreStrategy,
    KeywordHunter,
    PatternDetector,
    RelationshipMapper,
    TimelineBuilder,
    EntityExtractor,
    AnomalySpotter,
    ComplianceChecker,
    SentimentAnalyzer,
    StrategyRegistry,
)
from .scout_pool import ScoutPool, PoolResult
from .aggregator import Aggregator, classify_relationship
from .result_cache import ResultCache
from .history import QueryHistory, HistoryEntry
from .orchestrator import SearchOrchestrator

__all__ = [
    # Enums
    "QueryIntent",
    "QueryScope",
    "QueryPriority",
    "QueryStatus",
    "ScoutKind",
    "ScoutStatus",
    "FindingType",
    "EntityType",
    "RelationshipType",
    "RecommendationKind",
    # Models
    "Query",
    "DeploymentPlan",
    "Finding",
    "ScoutWorker",
    "Entity",
    "Relationship",
    "TimelineEvent",
    "DocumentCluster",
    "Recommendation",
    "AnalysisResult",
    # Errors
    "OrchestrationError",
    "ScoutDeploymentError",
    # Classification and planning
    "QueryClassifier",
    "infer_intent",
    "extract_context_hints",
    "DeploymentPlanner",
    # Strategies
    "ScoutStrategy",
    "StoreStrategy",
    "KeywordHunter",
    "PatternDetector",
    "RelationshipMapper",
    "TimelineBuilder",
    "EntityExtractor",
    "AnomalySpotter",
    "ComplianceChecker",
    "SentimentAnalyzer",
    "StrategyRegistry",
    # Execution
    "ScoutPool",
    "PoolResult",
    "Aggregator",
    "classify_relationship",
    "ResultCache",
    "QueryHistory",
    "HistoryEntry",
    "SearchOrchestrator",
]
