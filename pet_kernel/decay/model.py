"""
Decay Model: projects a baseline's stats forward in wall-clock time.

Behavioral Contract:
- Pure: no I/O, no state, identical output for identical (baseline, now)
- Energy and satiety each lose one point per configured interval, floored at 0
- Boredom set at baseline clears after the reset interval and never returns
  from elapsed time alone; only a new live baseline can set it again
- Negative elapsed time (clock skew) means zero decay
"""

import logging
from datetime import datetime
from typing import Optional

from pet_kernel.models.config import DecayConfig
from pet_kernel.models.pet import DEFAULT_INTRODUCTION, BaselineSnapshot, PetState
from pet_kernel.models.timestamps import to_utc

logger = logging.getLogger(__name__)


def elapsed_seconds(since: datetime, now: datetime) -> int:
    """Whole seconds from `since` to `now`, clamped at zero."""
    elapsed = int((to_utc(now) - to_utc(since)).total_seconds())
    if elapsed < 0:
        logger.warning(
            "Negative elapsed time (%ss) since baseline; treating as zero", elapsed
        )
        return 0
    return elapsed


def decay_stat(base_value: int, elapsed: int, interval_seconds: int) -> int:
    """One point lost per full interval, never below zero."""
    return max(0, base_value - elapsed // interval_seconds)


def bored_status(base_is_bored: bool, elapsed: int, reset_interval_seconds: int) -> bool:
    if not base_is_bored:
        return False
    return elapsed < reset_interval_seconds


class DecayModel:
    """Stateless projection of stats from a baseline plus elapsed time."""

    def __init__(self, config: Optional[DecayConfig] = None):
        self.config = config or DecayConfig()

    def compute_current_stats(self, baseline: BaselineSnapshot, now: datetime) -> PetState:
        """Compute the pet's current stats at `now` from `baseline`."""
        elapsed = elapsed_seconds(baseline.base_timestamp, now)

        return PetState(
            pet_id=baseline.pet_id,
            pet_name=baseline.pet_name,
            prefab_name=baseline.prefab_name,
            energy=decay_stat(
                baseline.base_energy, elapsed, self.config.energy_decay_interval_seconds
            ),
            satiety=decay_stat(
                baseline.base_satiety, elapsed, self.config.satiety_decay_interval_seconds
            ),
            is_bored=bored_status(
                baseline.base_is_bored, elapsed, self.config.bored_reset_interval_seconds
            ),
            purchase_date="",
            # Age is not projected offline
            age_in_days=self.config.offline_age_in_days,
            introduction=DEFAULT_INTRODUCTION,
            last_update_time=to_utc(now),
        )
