"""Configuration loading and validation."""

from .models import (
    PROMOTION_FIELDS,
    # Detection
    NormalizationConfig,
    SimilarityConfig,
    MaterialityConfig,
    DetectionConfig,
    # Targets
    TargetConfig,
    is_safe_target_url,
    is_safe_selector,
    # Collaborators
    FetchConfig,
    StorageConfig,
    NotificationConfig,
    LoggingConfig,
    AppConfig,
)
from .loader import ConfigError, load_app_config, validate_config_file

__all__ = [
    "PROMOTION_FIELDS",
    # Detection
    "NormalizationConfig",
    "SimilarityConfig",
    "MaterialityConfig",
    "DetectionConfig",
    # Targets
    "TargetConfig",
    "is_safe_target_url",
    "is_safe_selector",
    # Collaborators
    "FetchConfig",
    "StorageConfig",
    "NotificationConfig",
    "LoggingConfig",
    "AppConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_config_file",
]
