"""
settings_loader.py

Settings for the clustering engine and its CLI.

A YAML file is optional: every field has a default matching the engine's
built-in behaviour. String values may reference the environment as
``${VAR}`` or ``${VAR:fallback}``; substitution happens before pydantic
validation, so numeric fields can be driven by environment variables.

Lookup order when no explicit path is given:
1. ``$VECTOR_CLUSTERING_CONFIG``
2. ``config/settings.yaml`` relative to the working directory
3. built-in defaults
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from vector_clustering.core.base_clustering import (
    KMEANS_MAX_ITER,
    LARGE_DATASET_CUTOFF,
    PARTITION_SIZE,
)
from vector_clustering.schemas.data_models import LinkageMethod
from vector_clustering.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VECTOR_CLUSTERING_CONFIG"
DEFAULT_CONFIG_PATH = Path("config") / "settings.yaml"

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<fallback>[^}]*))?\}")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "console")


# =============================================================================
# Settings models
# =============================================================================

class ServiceSettings(BaseModel):
    """Identity stamped on log events."""
    name: str = Field(default="vector-clustering", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="production", description="Deployment environment")


class ClusteringSettings(BaseModel):
    """Engine parameters; see ClusteringEngine for their meaning."""
    threshold: float = Field(default=0.5, ge=0.0, le=1.0, description="Similarity/distance threshold")
    linkage: LinkageMethod = Field(default=LinkageMethod.COMPLETE, description="single, complete or average")
    large_dataset_cutoff: int = Field(default=LARGE_DATASET_CUTOFF, ge=1, description="Batches above this size use K-means pre-clustering")
    partition_size: int = Field(default=PARTITION_SIZE, ge=1, description="Target K-means partition size and hierarchical chunk size")
    kmeans_max_iter: int = Field(default=KMEANS_MAX_ITER, ge=1, description="K-means iteration cap")
    random_state: Optional[int] = Field(default=None, description="K-means seed (null = random)")

    @field_validator("linkage", mode="before")
    @classmethod
    def normalize_linkage(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="json or console")
    file: Optional[str] = Field(default=None, description="Optional rotating log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        if value not in LOG_FORMATS:
            raise ValueError(f"Log format must be one of {LOG_FORMATS}, got: {value}")
        return value


class Settings(BaseModel):
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Environment substitution
# =============================================================================

def substitute_env_vars(value: Any) -> Any:
    """
    Expand ``${VAR}`` / ``${VAR:fallback}`` references in every string of
    a parsed YAML document. Unset variables without a fallback expand to
    an empty string.
    """
    if isinstance(value, dict):
        return {key: substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    if not isinstance(value, str):
        return value

    def expand(match: "re.Match[str]") -> str:
        return os.environ.get(match.group("name"), match.group("fallback") or "")

    return _ENV_REFERENCE.sub(expand, value)


# =============================================================================
# Configuration manager
# =============================================================================

class ConfigManager:
    """
    Loads settings once and hands out the cached instance.

    ``reload_config`` drops the cache, which the CLI does on every run so
    that ``--config`` always takes effect.
    """

    _settings: Optional[Settings] = None

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Return cached settings, loading them on first use.

        Args:
            config_path: Explicit YAML file. When omitted the default
                locations are searched and defaults are used if none exists.

        Raises:
            FileNotFoundError: If ``config_path`` is given but missing
            ConfigurationError: If the file is not valid YAML or fails validation
        """
        if cls._settings is not None:
            return cls._settings

        path = cls._resolve_path(config_path)
        if path is None:
            logger.warning(
                f"No configuration file found (${CONFIG_ENV_VAR} unset or missing, "
                f"no {DEFAULT_CONFIG_PATH}); using defaults"
            )
            cls._settings = Settings()
            return cls._settings

        logger.info(f"Loading configuration from: {path}")
        document = substitute_env_vars(cls._read_yaml(path))

        try:
            cls._settings = Settings(**document)
        except ValueError as e:
            logger.error(f"Configuration validation failed for {path}: {e}")
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"path": str(path)},
            ) from e

        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        if cls._settings is None:
            return cls.load_config()
        return cls._settings

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """Drop the cached settings and load again."""
        cls._settings = None
        return cls.load_config(config_path)

    @staticmethod
    def _resolve_path(config_path: Optional[str]) -> Optional[Path]:
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return path

        candidates = []
        from_env = os.environ.get(CONFIG_ENV_VAR)
        if from_env:
            candidates.append(Path(from_env))
        candidates.append(DEFAULT_CONFIG_PATH)

        return next((candidate for candidate in candidates if candidate.exists()), None)

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r") as f:
                document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML configuration {path}: {e}")
            raise ConfigurationError(
                f"Invalid YAML configuration: {e}",
                details={"path": str(path)},
            ) from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                details={"path": str(path), "type": type(document).__name__},
            )
        return document


def get_settings() -> Settings:
    """Module-level shortcut for ConfigManager.get_settings()."""
    return ConfigManager.get_settings()
