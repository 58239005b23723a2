"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
Nested sections use ``__`` as the delimiter, e.g.
``SLOTFLOW_TIMINGS__REMOVAL_MS=300``.
"""

from enum import Enum
from functools import lru_cache
from typing import Dict, Literal, Tuple

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TriggerPolicy(str, Enum):
    """Milestone that unlocks the win presentation."""

    RESULT = "RESULT"
    SEQUENCE_END = "SEQUENCE_END"
    FEATURE_END = "FEATURE_END"
    RESULT_DATA_FINALIZED = "RESULT_DATA_FINALIZED"


# (min, max) per timing; out-of-range values are clamped, not rejected
TIMING_BOUNDS: Dict[str, Tuple[float, float]] = {
    "result_win_display_ms": (0, 10_000),
    "payline_step_ms": (0, 10_000),
    "removal_ms": (0, 5_000),
    "drop_ms": (0, 5_000),
    "refill_ms": (0, 5_000),
    "refill_stagger_ms": (0, 1_000),
    "cascade_win_display_ms": (0, 5_000),
    "count_up_ms": (0, 30_000),
    "post_win_delay_ms": (0, 5_000),
    "turbo_speed_multiplier": (1, 10),
}


def clamp_timing(name: str, value: float) -> float:
    low, high = TIMING_BOUNDS[name]
    return float(min(max(value, low), high))


class StepTimings(BaseSettings):
    """Cascade step animation timings (ms)."""

    model_config = SettingsConfigDict(env_prefix="SLOTFLOW_TIMINGS_", extra="ignore")

    # RESULT step hold: max(result_win_display_ms, payline_step_ms * wins)
    result_win_display_ms: float = 2000
    payline_step_ms: float = 1500

    # CASCADE phases
    removal_ms: float = 350
    drop_ms: float = 400
    refill_ms: float = 350
    refill_stagger_ms: float = 60
    cascade_win_display_ms: float = 1500

    @field_validator("*", mode="after")
    @classmethod
    def _clamp(cls, value: float, info: ValidationInfo) -> float:
        return clamp_timing(info.field_name, value)

    def scaled(self, speed: float) -> "StepTimings":
        """Copy with every duration divided by ``speed`` (turbo)."""
        speed = max(1.0, speed)
        return self.model_copy(
            update={name: getattr(self, name) / speed for name in type(self).model_fields}
        )


class PresentationSettings(BaseSettings):
    """Result flow settings."""

    model_config = SettingsConfigDict(env_prefix="SLOTFLOW_PRESENTATION_", extra="ignore")

    win_presentation_trigger: TriggerPolicy = TriggerPolicy.SEQUENCE_END

    # Wallet count-up, waited out after the win presentation
    count_up_ms: float = 1000
    post_win_delay_ms: float = 500

    # Win presentation hold per tier
    hold_normal_ms: float = 1500
    hold_big_ms: float = 3000
    hold_mega_ms: float = 4000
    hold_epic_ms: float = 5000

    turbo: bool = False
    turbo_speed_multiplier: float = 2

    @field_validator("count_up_ms", "post_win_delay_ms", "turbo_speed_multiplier", mode="after")
    @classmethod
    def _clamp(cls, value: float, info: ValidationInfo) -> float:
        return clamp_timing(info.field_name, value)

    @field_validator("hold_normal_ms", "hold_big_ms", "hold_mega_ms", "hold_epic_ms", mode="after")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        return max(0.0, float(value))

    @property
    def speed(self) -> float:
        return self.turbo_speed_multiplier if self.turbo else 1.0

    def hold_ms(self) -> Dict[str, float]:
        """Tier name -> hold duration, scaled for turbo."""
        return {
            "none": 0.0,
            "normal": self.hold_normal_ms / self.speed,
            "big": self.hold_big_ms / self.speed,
            "mega": self.hold_mega_ms / self.speed,
            "epic": self.hold_epic_ms / self.speed,
        }


class GridSettings(BaseSettings):
    """Logical grid and symbol geometry."""

    model_config = SettingsConfigDict(env_prefix="SLOTFLOW_GRID_", extra="ignore")

    rows: int = Field(default=4, ge=1, le=12)
    cols: int = Field(default=5, ge=1, le=12)
    cell_width: float = 120
    cell_height: float = 120
    spacing: float = 8
    symbol_scale: float = Field(default=0.82, gt=0.0, le=2.0)
    spares_per_column: int = Field(default=2, ge=1)

    # Frame interval for the tween driver
    frame_ms: float = Field(default=16, gt=0)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLOTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    env: Literal["simulator", "headless"] = "simulator"
    debug: bool = False

    # Simulator window
    simulator_window_width: int = 1100
    simulator_window_height: int = 720
    simulator_fps: int = 60

    # Nested settings
    timings: StepTimings = Field(default_factory=StepTimings)
    presentation: PresentationSettings = Field(default_factory=PresentationSettings)
    grid: GridSettings = Field(default_factory=GridSettings)

    @property
    def is_simulator(self) -> bool:
        """Check if running with the pygame window."""
        return self.env == "simulator"

    @property
    def effective_timings(self) -> StepTimings:
        """Step timings with turbo applied."""
        return self.timings.scaled(self.presentation.speed)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
