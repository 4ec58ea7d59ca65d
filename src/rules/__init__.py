"""Configuration and validation rules for ngbundle."""

from rules.config import (
    BundleConfig,
    ConfigError,
    SourceDirConfig,
    load_config,
)
from rules.injects import ProviderCollisionError, build_provider_index, validate_injects

__all__ = [
    "BundleConfig",
    "ConfigError",
    "ProviderCollisionError",
    "SourceDirConfig",
    "build_provider_index",
    "load_config",
    "validate_injects",
]
