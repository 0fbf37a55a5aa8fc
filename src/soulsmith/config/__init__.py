"""Application configuration helpers."""

from __future__ import annotations

from .classifier import ClassifierConfig, ClassifierProvider, get_classifier_config
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .ledger import LedgerConfig, get_ledger_config
from .logging import configure_logging
from .pipeline import PipelineConfig, get_pipeline_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ClassifierConfig",
    "ClassifierProvider",
    "ConfigurationError",
    "DatabaseConfig",
    "LedgerConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_classifier_config",
    "get_database_config",
    "get_ledger_config",
    "get_pipeline_config",
    "get_storage_config",
    "require_env_vars",
]
