"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    CacheConfig,
    IngestionConfig,
    PublisherConfig,
    RetryConfig,
    SourceApiConfig,
    WorkerConfig,
    parse_duration,
)

__all__ = [
    "CacheConfig",
    "ConfigLocator",
    "ConfigRepository",
    "IngestionConfig",
    "PublisherConfig",
    "RetryConfig",
    "SourceApiConfig",
    "WorkerConfig",
    "apply_env_overrides",
    "parse_duration",
]
