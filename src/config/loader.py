"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"


class StoreConfig(BaseModel):
    """Configuration for the document store backend."""

    backend: Literal["memory", "http"] = "memory"
    corpus_path: str | None = None  # JSON corpus for the memory backend
    base_url: str | None = None  # For HTTP backend
    api_key: str | None = None
    timeout_seconds: float = 10.0
    max_retries: int = 3


class ClassifierConfig(BaseModel):
    """Configuration for query classification."""

    default_relationship_depth: int = Field(2, ge=0, le=10)
    max_context_hints: int = Field(5, ge=0)


class PlannerConfig(BaseModel):
    """Configuration for deployment planning."""

    stats_timeout_seconds: float = 2.0  # Budget for the corpus metadata call
    adaptive_worker_target: int = Field(5, ge=1)
    exhaustive_cluster_divisor: int = Field(100, ge=1)
    adaptive_cluster_divisor: int = Field(50, ge=1)
    max_adaptive_clusters: int = Field(10, ge=1)


class PriorityBudgets(BaseModel):
    """Wall-clock budgets per priority, in milliseconds. None means unbounded."""

    urgent: int | None = 1000
    high: int | None = 5000
    normal: int | None = 30000
    background: int | None = None


class ScoutConfig(BaseModel):
    """Configuration for the scout pool."""

    per_pattern_limit: int = Field(50, ge=1)
    max_concurrent_scouts: int = Field(8, ge=1)
    budgets_ms: PriorityBudgets = PriorityBudgets()


class AggregatorConfig(BaseModel):
    """Configuration for result aggregation."""

    min_cluster_size: int = Field(2, ge=1)
    max_timeline_events: int = Field(50, ge=1)
    max_recommendations: int = Field(10, ge=1)
    low_confidence_threshold: float = 0.4


class CacheConfig(BaseModel):
    """Configuration for the result cache."""

    enabled: bool = True
    max_entries: int = Field(256, ge=1)
    ttl_seconds: float | None = 3600  # None disables expiry
    normalize_keys: bool = True  # Trim, collapse whitespace and casefold


class HistoryConfig(BaseModel):
    """Configuration for query history."""

    max_entries: int = Field(1000, ge=1)
    persist_path: str | None = None  # Optional JSONL file


class ProfileConfig(BaseModel):
    """Configuration profile for one deployment of the search engine."""

    store: StoreConfig = StoreConfig()
    classifier: ClassifierConfig = ClassifierConfig()
    planner: PlannerConfig = PlannerConfig()
    scouts: ScoutConfig = ScoutConfig()
    aggregator: AggregatorConfig = AggregatorConfig()
    cache: CacheConfig = CacheConfig()
    history: HistoryConfig = HistoryConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Unset variables are left as written.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _drop_unexpanded(data):
    """Replace values still holding an unset ${VAR} reference with None."""
    if isinstance(data, dict):
        return {k: _drop_unexpanded(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_drop_unexpanded(item) for item in data]
    elif isinstance(data, str) and re.fullmatch(r"\$\{[^}]+\}", data):
        return None
    return data


def load_profiles(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, ProfileConfig]:
    """Load and validate every profile in a YAML config file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = _drop_unexpanded(expand_env_vars_recursive(raw_data))
    config_file = ConfigFile(**expanded_data)
    return config_file.profiles


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    profiles = load_profiles(config_path)

    if profile_name not in profiles:
        available = ", ".join(profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Uses the HTTP store when DOCUMENT_STORE_BASE_URL is set and no
    corpus file is configured, otherwise the in-memory store.
    """
    corpus_path = os.environ.get("CORPUS_PATH")
    base_url = os.environ.get("DOCUMENT_STORE_BASE_URL")

    store = StoreConfig(
        backend="http" if base_url and not corpus_path else "memory",
        corpus_path=corpus_path,
        base_url=base_url,
        api_key=os.environ.get("DOCUMENT_STORE_API_KEY"),
        max_retries=int(os.environ.get("DOCUMENT_STORE_MAX_RETRIES", "3")),
    )

    history = HistoryConfig(persist_path=os.environ.get("SEARCH_HISTORY_PATH"))

    return ProfileConfig(store=store, history=history)


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    This is the main entry point for loading configuration. It tries to load
    from a YAML config file first, and falls back to environment variables
    if the file doesn't exist or cannot be parsed.

    Args:
        profile: Profile name to load. If None, uses SEARCH_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the profiles.yaml
                    shipped next to this module.

    Returns:
        ProfileConfig for the selected profile

    Raises:
        KeyError: If requested profile doesn't exist in a valid config file
    """
    if profile is None:
        profile = os.environ.get("SEARCH_PROFILE", "dev")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.info(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()

    try:
        profiles = load_profiles(config_path)
    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Falling back to environment variables")
        return load_config_from_env()

    if profile not in profiles:
        available = ", ".join(profiles.keys())
        raise KeyError(f"Profile '{profile}' not found. Available profiles: {available}")

    return profiles[profile]
