"""
Configuration loader for the Entity Consistency Engine.

This module provides Pydantic models for type-safe configuration loading
from YAML files and environment variables.
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from consistency_engine.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONSISTENCY_ENGINE_CONFIG"
DEFAULT_CONFIG_PATH = Path("config") / "settings.yaml"

# Defaults for score bands; see ThresholdConfig
DEFAULT_ACCEPT_MIN = 90
DEFAULT_REVIEW_MIN = 75
DEFAULT_DRIFT_REPORT_BELOW = 90
DEFAULT_DRIFT_LOW_MIN = 75
DEFAULT_DRIFT_MEDIUM_MIN = 60


class ThresholdConfig(BaseModel):
    """Score thresholds for recommendations and drift severity.

    Attributes:
        accept_min: Lowest overall score recommended for acceptance.
        review_min: Lowest overall score recommended for review.
        drift_report_below: Entities scoring below this report drift.
        drift_low_min: Lowest entity score whose drift is "low".
        drift_medium_min: Lowest entity score whose drift is "medium";
            anything below is "high".
    """

    accept_min: int = Field(default=DEFAULT_ACCEPT_MIN, ge=0, le=100)
    review_min: int = Field(default=DEFAULT_REVIEW_MIN, ge=0, le=100)
    drift_report_below: int = Field(default=DEFAULT_DRIFT_REPORT_BELOW, ge=0, le=101)
    drift_low_min: int = Field(default=DEFAULT_DRIFT_LOW_MIN, ge=0, le=100)
    drift_medium_min: int = Field(default=DEFAULT_DRIFT_MEDIUM_MIN, ge=0, le=100)

    @model_validator(mode="after")
    def validate_ordering(self) -> "ThresholdConfig":
        """Ensure bands do not overlap."""
        if self.review_min > self.accept_min:
            raise ValueError("review_min must not exceed accept_min")
        if not (
            self.drift_medium_min <= self.drift_low_min <= self.drift_report_below
        ):
            raise ValueError(
                "Expected drift_medium_min <= drift_low_min <= drift_report_below"
            )
        return self


class RetryConfig(BaseModel):
    """Exponential-backoff settings for external calls.

    Attributes:
        max_attempts: Total attempts including the first call.
        base_delay: Seconds before the first retry.
        multiplier: Backoff growth factor.
        max_delay: Cap on the exponential delay in seconds.
        jitter: Upper bound of random seconds added per retry.
    """

    max_attempts: int = Field(default=3, ge=1, le=10)
    base_delay: float = Field(default=1.0, ge=0.0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay: float = Field(default=10.0, ge=0.0)
    jitter: float = Field(default=0.0, ge=0.0)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI API integration.

    Attributes:
        model: Vision-capable model used to describe generated content.
        embedding_model: Model used to embed descriptions.
        temperature: Temperature setting (0 for deterministic).
        seed: Random seed for reproducibility.
        max_retries: SDK-level retries; backoff is owned by RetryPolicy.
        timeout: Request timeout in seconds.
        fake_mode: Use deterministic fake embeddings instead of the API.
        dimensions: Optional embedding dimensionality override.
    """

    model: str = Field(default="gpt-4o", description="Model for descriptions")
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Model for embeddings"
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Temperature (0 for deterministic)"
    )
    seed: int = Field(default=42, description="Random seed for reproducibility")
    max_retries: int = Field(default=0, ge=0, description="SDK retry attempts")
    timeout: float = Field(default=30.0, gt=0.0)
    fake_mode: bool = Field(default=False)
    dimensions: int | None = Field(default=None, ge=1)


class CacheConfig(BaseModel):
    """In-memory cache for extracted content embeddings."""

    max_size: int = Field(default=1000, ge=1)
    ttl_seconds: float = Field(default=1800.0, gt=0.0)


class ReferenceConfig(BaseModel):
    """Reference embedding storage and weighting.

    Attributes:
        store_dir: Directory holding the reference vector store.
        visual_weight: Weight of image embeddings in the combined vector.
        semantic_weight: Weight of the description embedding.
    """

    store_dir: Path = Field(default=Path("./cache/references"))
    visual_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    semantic_weight: float = Field(default=0.4, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_weights(self) -> "ReferenceConfig":
        """At least one modality must carry weight."""
        if self.visual_weight + self.semantic_weight <= 0:
            raise ValueError("visual_weight and semantic_weight cannot both be 0")
        return self


class DataConfig(BaseModel):
    """Location of the entity/generation catalog."""

    catalog_path: Path = Field(default=Path("./data/catalog.json"))


class OutputConfig(BaseModel):
    """Configuration for output handling.

    Attributes:
        directory: Path to output directory.
        format: Output format (json, yaml).
        include_metadata: Whether to include execution metadata.
    """

    directory: Path = Field(
        default=Path("./output"),
        description="Output directory path"
    )
    format: str = Field(default="json", pattern="^(json|yaml)$")
    include_metadata: bool = Field(
        default=True,
        description="Include execution metadata in output"
    )


class LoggingConfig(BaseModel):
    """Logging level for the application."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


class Settings(BaseModel):
    """Root configuration model for the Entity Consistency Engine.

    Every section has defaults, so ``Settings()`` is a valid configuration.
    """

    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    references: ReferenceConfig = Field(default_factory=ReferenceConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("true", "1", "yes")


def apply_env_overrides(raw_config: dict) -> dict:
    """Overlay environment variables on the raw configuration."""
    openai_section = dict(raw_config.get("openai") or {})

    if os.getenv("OPENAI_MODEL"):
        openai_section["model"] = os.environ["OPENAI_MODEL"]
    if os.getenv("OPENAI_EMBEDDING_MODEL"):
        openai_section["embedding_model"] = os.environ["OPENAI_EMBEDDING_MODEL"]
    fake = _env_flag("FAKE_OPENAI_RESULT")
    if fake is not None:
        openai_section["fake_mode"] = fake

    if openai_section:
        raw_config = {**raw_config, "openai": openai_section}
    return raw_config


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load and validate settings from YAML configuration file.

    This function loads environment variables from .env file, then loads
    and validates the settings.yaml configuration.

    Args:
        config_path: Optional path to settings.yaml. Defaults to the
            CONSISTENCY_ENGINE_CONFIG environment variable, then to
            ./config/settings.yaml.

    Returns:
        Validated Settings object.

    Raises:
        ConfigurationError: If the configuration file cannot be loaded
            or validation fails.
    """
    load_dotenv()

    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH

    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            details={"path": str(config_path)}
        )

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "Failed to parse YAML configuration",
            details={"path": str(config_path), "error": str(e)}
        ) from e

    if raw_config is None:
        raise ConfigurationError(
            "Configuration file is empty",
            details={"path": str(config_path)}
        )
    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            "Configuration root must be a mapping",
            details={"path": str(config_path)}
        )

    try:
        settings = Settings(**apply_env_overrides(raw_config))
    except ValidationError as e:
        raise ConfigurationError(
            "Configuration validation failed",
            details={"path": str(config_path), "error": str(e)}
        ) from e

    logger.info("Configuration loaded successfully from %s", config_path)
    return settings
