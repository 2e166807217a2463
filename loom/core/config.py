"""
Engine settings management.

Process-level settings are loaded from environment variables with .env file
support. Engine tunables (LoomConfig) are loaded from YAML. All configuration
is validated using Pydantic.
"""

from pathlib import Path
from typing import Dict, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loom.core.exceptions import ConfigurationError
from loom.domain.models.thread import ThreadCategory

log = structlog.get_logger(__name__)


class Settings(BaseSettings):
    """
    Process settings loaded from environment.

    Environment variables (prefix LOOM_) take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOOM_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    config_file: str = Field(
        default="loom_config.yaml", description="Engine tunables file name"
    )
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")

    # ==========================================================================
    # Logging
    # ==========================================================================

    debug: bool = Field(default=False, description="Enable debug mode")
    log_to_file: bool = Field(
        default=False, description="Write a per-session log file under log_dir"
    )
    log_sessions_to_keep: int = Field(
        default=5, ge=1, le=100, description="Number of session log files to retain"
    )


# ============================================================================
# Engine Configuration (from YAML)
# ============================================================================


class PayoffWindow(BaseModel):
    """Ideal resolution window, in chapters since introduction."""

    model_config = ConfigDict(frozen=True)

    min_age: int = Field(ge=0, description="Earliest age at which payoff is due")
    max_age: int = Field(ge=0, description="Age after which payoff is overdue")


def _default_urgency_weights() -> Dict[ThreadCategory, float]:
    return {
        ThreadCategory.SOVEREIGN: 2.0,
        ThreadCategory.MAJOR: 1.5,
        ThreadCategory.MINOR: 1.0,
        ThreadCategory.SEED: 0.5,
    }


def _default_aggregate_weights() -> Dict[ThreadCategory, float]:
    return {
        ThreadCategory.SOVEREIGN: 4.0,
        ThreadCategory.MAJOR: 3.0,
        ThreadCategory.MINOR: 1.5,
        ThreadCategory.SEED: 1.0,
    }


def _default_payoff_windows() -> Dict[ThreadCategory, PayoffWindow]:
    return {
        ThreadCategory.SOVEREIGN: PayoffWindow(min_age=50, max_age=200),
        ThreadCategory.MAJOR: PayoffWindow(min_age=15, max_age=50),
        ThreadCategory.MINOR: PayoffWindow(min_age=3, max_age=15),
        ThreadCategory.SEED: PayoffWindow(min_age=1, max_age=10),
    }


class LoomConfig(BaseModel):
    """
    Complete engine configuration loaded from loom_config.yaml.

    Immutable: one instance governs a whole evaluation pass.
    """

    model_config = ConfigDict(frozen=True)

    # ==========================================================================
    # Selection caps
    # ==========================================================================

    max_primary_threads: int = Field(
        default=3, ge=0, le=50, description="Soft cap on mandatory threads per chapter"
    )
    max_secondary_threads: int = Field(
        default=5, ge=0, le=100, description="Cap on optional threads per chapter"
    )

    # ==========================================================================
    # Lifecycle thresholds
    # ==========================================================================

    stall_threshold_chapters: int = Field(
        default=10, ge=1, description="Silence after which a thread is stalled"
    )
    active_progress_threshold: int = Field(
        default=2, ge=1, description="Progress events for OPEN -> ACTIVE"
    )

    # ==========================================================================
    # Urgency bands
    # ==========================================================================

    urgency_watch_threshold: float = Field(default=100.0, ge=0)
    urgency_urgent_threshold: float = Field(default=300.0, ge=0)
    urgency_critical_threshold: float = Field(default=500.0, ge=0)
    max_urgency: float = Field(default=1000.0, gt=0)

    # ==========================================================================
    # Payoff bands
    # ==========================================================================

    bloom_debt_threshold: float = Field(
        default=30.0, ge=0, description="Debt at which payoff becomes due"
    )
    bloom_gravity_threshold: float = Field(
        default=150.0, ge=0, description="Gravity at which payoff becomes due"
    )
    overdue_debt_threshold: float = Field(
        default=80.0, ge=0, description="Debt past which payoff is overdue"
    )
    overdue_distance_chapters: int = Field(
        default=30, ge=1, description="Silence past which payoff is overdue"
    )
    payoff_windows: Dict[ThreadCategory, PayoffWindow] = Field(
        default_factory=_default_payoff_windows
    )

    # ==========================================================================
    # Physics constants
    # ==========================================================================

    velocity_window_chapters: int = Field(default=10, ge=1)
    velocity_scale: float = Field(default=10.0, gt=0)
    max_velocity: float = Field(default=10.0, gt=0)
    entropy_per_silent_chapter: float = Field(default=2.0, ge=0)
    entropy_noise_rate: float = Field(
        default=5.0, ge=0, description="Entropy per unit of mention/progress excess"
    )
    entropy_noise_cap: float = Field(default=40.0, ge=0, le=100)
    gravity_distance_scale: float = Field(default=10.0, gt=0)
    entropy_urgency_weight: float = Field(default=1.0, ge=0)
    payoff_debt_multiplier: float = Field(default=1.0, ge=0)
    category_urgency_weights: Dict[ThreadCategory, float] = Field(
        default_factory=_default_urgency_weights
    )
    force_attention_multiplier: float = Field(default=1.5, ge=1.0)

    # ==========================================================================
    # Debt accounting (chapter cycle)
    # ==========================================================================

    mention_debt_divisor: float = Field(
        default=10.0, gt=0, description="Mention without progress adds karma / divisor"
    )
    progress_relief_divisor: float = Field(
        default=5.0, gt=0, description="Progression removes karma / divisor"
    )
    silence_debt_per_chapter: float = Field(
        default=1.0, ge=0, description="Debt per silent chapter at karma 100"
    )
    silence_grace_chapters: int = Field(default=3, ge=0)
    progress_history_limit: int = Field(default=50, ge=1)

    # ==========================================================================
    # Health
    # ==========================================================================

    crack_entropy_threshold: float = Field(default=60.0, ge=0, le=100)
    entropy_health_weight: float = Field(default=0.5, ge=0)
    distance_health_weight: float = Field(default=1.5, ge=0)
    velocity_health_bonus: float = Field(default=2.0, ge=0)
    aggregate_category_weights: Dict[ThreadCategory, float] = Field(
        default_factory=_default_aggregate_weights
    )

    @model_validator(mode="after")
    def check_bands(self) -> "LoomConfig":
        """Validate that bands are ordered and every category is covered."""
        if not (
            self.urgency_watch_threshold
            < self.urgency_urgent_threshold
            < self.urgency_critical_threshold
            <= self.max_urgency
        ):
            raise ValueError(
                "urgency bands must satisfy watch < urgent < critical <= max_urgency"
            )
        if self.bloom_debt_threshold >= self.overdue_debt_threshold:
            raise ValueError("bloom_debt_threshold must be below overdue_debt_threshold")
        if self.velocity_window_chapters > self.progress_history_limit:
            raise ValueError(
                "progress_history_limit must cover velocity_window_chapters"
            )

        for name in (
            "payoff_windows",
            "category_urgency_weights",
            "aggregate_category_weights",
        ):
            missing = [c.value for c in ThreadCategory if c not in getattr(self, name)]
            if missing:
                raise ValueError(f"{name} missing categories: {missing}")

        for category, window in self.payoff_windows.items():
            if window.min_age > window.max_age:
                raise ValueError(
                    f"payoff window for {category.value} has min_age > max_age"
                )
        return self

    def payoff_window(self, category: ThreadCategory) -> PayoffWindow:
        return self.payoff_windows[category]


def load_loom_config(config_path: Optional[Path] = None) -> LoomConfig:
    """
    Load engine configuration from YAML file.

    Args:
        config_path: Path to loom_config.yaml. If None, looks in the project
            config directory, then the working directory.

    Returns:
        LoomConfig with validated settings (defaults if no file is found)

    Raises:
        ConfigurationError: If the file exists but its content is invalid
    """
    if config_path is None:
        settings = Settings()
        candidates = [
            Path(__file__).resolve().parent.parent.parent
            / "config"
            / settings.config_file,
            settings.config_dir / settings.config_file,
        ]
        for candidate in candidates:
            if candidate.exists():
                config_path = candidate
                break
        else:
            log.info("loom_config_not_found_using_defaults")
            return LoomConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        log.warning("loom_config_not_found_using_defaults", path=str(config_path))
        return LoomConfig()

    try:
        with open(str(config_path)) as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not config_data:
        return LoomConfig()

    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Expected a mapping in {config_path}")

    try:
        config = LoomConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid loom configuration in {config_path}: {e}") from e

    log.info("loom_config_loaded", path=str(config_path))
    return config


# Global settings instance
settings = Settings()
