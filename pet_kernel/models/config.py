"""Decay and validation configuration."""

from pydantic import BaseModel, Field


class DecayConfig(BaseModel):
    """Intervals and bounds for offline decay and data validation."""

    energy_decay_interval_seconds: int = Field(gt=0, default=648)    # 1 energy point per interval
    satiety_decay_interval_seconds: int = Field(gt=0, default=432)   # 1 satiety point per interval
    bored_reset_interval_seconds: int = Field(gt=0, default=600)     # Boredom clears after this
    clock_skew_tolerance_seconds: int = Field(ge=0, default=60)      # Allowed future drift of a baseline
    max_energy: int = Field(ge=0, default=1000)
    max_satiety: int = Field(ge=0, default=1000)
    max_age_in_days: int = Field(ge=0, default=10000)
    offline_age_in_days: int = Field(ge=0, default=1)                # Placeholder age for offline states
    refresh_interval_seconds: int = Field(gt=0, default=60)          # Periodic trigger cadence
