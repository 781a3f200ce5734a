"""Configuration system for the document search engine."""

from .loader import (
    load_config,
    load_config_from_yaml,
    load_config_from_env,
    load_profiles,
    ProfileConfig,
    StoreConfig,
    ClassifierConfig,
    PlannerConfig,
    PriorityBudgets,
    ScoutConfig,
    AggregatorConfig,
    CacheConfig,
    HistoryConfig,
)
from .factory import (
    create_store,
    create_cache,
    create_history,
    create_orchestrator,
    create_search_engine,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_yaml",
    "load_config_from_env",
    "load_profiles",
    "ProfileConfig",
    "StoreConfig",
    "ClassifierConfig",
    "PlannerConfig",
    "PriorityBudgets",
    "ScoutConfig",
    "AggregatorConfig",
    "CacheConfig",
    "HistoryConfig",
    # Factory
    "create_store",
    "create_cache",
    "create_history",
    "create_orchestrator",
    "create_search_engine",
]
