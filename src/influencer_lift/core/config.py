"""Configuration management for influencer-lift."""

import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from influencer_lift.core.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogFormat(str, Enum):
    """Log format options."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: LogFormat = LogFormat.TEXT
    log_file: Path | None = Field(
        default=None, description="Optional file that receives a copy of all logs"
    )


class DetectionConfig(BaseModel):
    """Detection window sizing.

    Response latency depends on the content type: stories burn out within
    hours while reels and videos keep converting for days.
    """

    model_config = {"frozen": True}

    pre_post_hours: float = Field(
        default=1.0,
        ge=0.0,
        le=24.0,
        description="Hours before the post included in its window",
    )
    post_hours: float = Field(
        default=24.0, gt=0.0, le=168.0, description="Response hours for feed posts"
    )
    reel_hours: float = Field(default=36.0, gt=0.0, le=168.0)
    story_hours: float = Field(default=12.0, gt=0.0, le=168.0)
    video_hours: float = Field(default=48.0, gt=0.0, le=168.0)

    def response_hours(self, content_type: str) -> float:
        """Hours after a post of the given content type that stay in its window."""
        return {
            "post": self.post_hours,
            "reel": self.reel_hours,
            "story": self.story_hours,
            "video": self.video_hours,
        }.get(content_type, self.post_hours)


class CausalConfig(BaseModel):
    """Causal cross-checks run on every measured window.

    Difference-in-differences, an interrupted time series and a cumulative
    causal-impact test each score the window in [0, 1]; their weighted
    agreement is blended into the confidence score.
    """

    model_config = {"frozen": True}

    enabled: bool = True
    pre_days: float = Field(
        default=7.0,
        gt=0.0,
        le=28.0,
        description="Days before the window used as the comparison period",
    )
    alpha: float = Field(default=0.05, gt=0.0, lt=0.5)
    did_weight: float = Field(default=0.30, ge=0.0, le=1.0)
    its_weight: float = Field(default=0.35, ge=0.0, le=1.0)
    impact_weight: float = Field(default=0.35, ge=0.0, le=1.0)
    its_max_score: float = Field(
        default=0.75, gt=0.0, le=1.0, description="Cap on the time-series score alone"
    )
    confidence_weight: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Share of the confidence score"
    )

    @model_validator(mode="after")
    def validate_weights(self) -> "CausalConfig":
        if abs(self.did_weight + self.its_weight + self.impact_weight - 1.0) > 1e-9:
            raise ValueError("causal method weights must sum to 1")
        return self


class EngineThresholds(BaseModel):
    """Tunable constants of the attribution engine.

    Every run receives one of these explicitly; the engine never reads
    process-wide settings.
    """

    model_config = {"frozen": True}

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    causal: CausalConfig = Field(default_factory=CausalConfig)

    # Baseline
    min_history_days: int = Field(
        default=14, ge=1, description="Lookback days needed for a seasonal baseline"
    )
    full_history_days: int = Field(
        default=28, ge=1, description="Lookback days that count as complete history"
    )
    min_trend_days: int = Field(default=14, ge=8)
    max_daily_trend: float = Field(
        default=0.05, gt=0.0, le=0.5, description="Clamp on the daily log growth rate"
    )
    trim_fraction: float = Field(default=0.2, ge=0.0, lt=0.5)

    # Promotion response: scale * discount ** exponent
    promo_response_scale: float = Field(default=0.752, ge=0.0)
    promo_response_exponent: float = Field(default=0.7, gt=0.0, le=1.0)
    promo_global_code_bonus: float = Field(default=0.05, ge=0.0)
    promo_bundles_bonus: float = Field(default=0.04, ge=0.0)
    promo_free_shipping_bonus: float = Field(default=0.03, ge=0.0)

    # Paid media
    paid_elasticity: float = Field(default=0.25, ge=0.0, le=2.0)
    paid_spend_share: float = Field(default=0.7, ge=0.0, le=1.0)
    paid_min_multiplier: float = Field(default=0.5, gt=0.0, le=1.0)
    paid_max_multiplier: float = Field(default=3.0, ge=1.0)

    # Significance
    significance_z: float = Field(default=2.0, gt=0.0)
    min_lift_pct: float = Field(
        default=5.0, ge=0.0, description="Smallest lift (percent) treated as signal"
    )
    strong_signal_z: float = Field(default=6.0, gt=0.0)
    noise_floor_pct: float = Field(
        default=1.0,
        gt=0.0,
        description="Smallest window noise, in percent of expected revenue",
    )

    # Attribution weights
    audience_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    recency_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    recency_decay_per_hour: float = Field(default=0.15, ge=0.0)
    engagement_floor: float = Field(default=0.5, gt=0.0)
    engagement_cap: float = Field(default=1.5, gt=0.0)

    # Confidence grading
    overlap_penalty: float = Field(default=0.25, ge=0.0)
    missing_context_penalty: float = Field(default=0.15, ge=0.0, le=1.0)
    high_threshold: float = Field(default=0.75, gt=0.0, le=1.0)
    medium_threshold: float = Field(default=0.5, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_threshold_combinations(self) -> "EngineThresholds":
        """Validate threshold combinations make sense."""
        if self.medium_threshold >= self.high_threshold:
            raise ValueError("medium_threshold must be lower than high_threshold")

        if abs(self.audience_weight + self.recency_weight - 1.0) > 1e-9:
            raise ValueError("audience_weight and recency_weight must sum to 1")

        if self.engagement_floor > self.engagement_cap:
            raise ValueError("engagement_floor must not exceed engagement_cap")

        if self.full_history_days < self.min_history_days:
            raise ValueError("full_history_days must be >= min_history_days")

        if self.strong_signal_z < self.significance_z:
            raise ValueError("strong_signal_z must be >= significance_z")

        return self


class Settings(BaseSettings):
    """Application settings.

    Environment Variables:
        ILIFT_ENVIRONMENT=production
        ILIFT_LOGGING__LEVEL=DEBUG
        ILIFT_LOGGING__FORMAT=json
        ILIFT_ENGINE__MIN_HISTORY_DAYS=21
        ILIFT_ENGINE__DETECTION__STORY_HOURS=8
        ILIFT_SCENARIO_SEED=7
    """

    model_config = SettingsConfigDict(
        env_prefix="ILIFT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    environment: Environment = Environment.DEVELOPMENT
    scenario_seed: int = Field(
        default=42, description="Seed used when scenarios are requested without one"
    )

    engine: EngineThresholds = Field(default_factory=EngineThresholds)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        """Load settings from environment, reading a .env file first if present."""
        if env_file:
            load_dotenv(env_file)
        else:
            default_env = Path.cwd() / ".env"
            if default_env.exists():
                load_dotenv(default_env)

        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings.from_env()
    except (ValidationError, ValueError) as e:
        logging.error(f"Configuration error: {e}")
        raise ConfigurationError(str(e)) from e


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper())

    if settings.logging.format == LogFormat.JSON:
        import json

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                log_data = {
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
                if record.exc_info:
                    log_data["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_data)

        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.logging.log_file:
        settings.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.logging.log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
