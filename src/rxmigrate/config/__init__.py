"""Config module exports."""

from rxmigrate.config.loader import load_config
from rxmigrate.config.models import (
    ClassifierThresholds,
    GenerationConfig,
    LoggingConfig,
    MigrationConfig,
    ValidationConfig,
)

__all__ = [
    "load_config",
    "ClassifierThresholds",
    "GenerationConfig",
    "LoggingConfig",
    "MigrationConfig",
    "ValidationConfig",
]
