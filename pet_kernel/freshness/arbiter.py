"""
Freshness Arbiter: decides which data source a user sees.

Behavioral Contract:
- Validates live snapshots and baselines independently
- Compares a live snapshot's capture instant against the baseline's capture
  instant; only a strictly later live snapshot wins, ties go offline
- Source ordering:
    no live, no baseline          -> DEFAULT
    no live, valid baseline       -> OFFLINE
    live, no baseline             -> LIVE
    live fresher than baseline    -> LIVE
    otherwise                     -> OFFLINE if the baseline is valid, else DEFAULT
- Never raises for bad data; it only answers questions
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from pet_kernel.models.config import DecayConfig
from pet_kernel.models.pet import BaselineSnapshot, DataSource, PetState
from pet_kernel.models.timestamps import EPOCH, to_utc

logger = logging.getLogger(__name__)


def _capture_instant(state: PetState) -> datetime:
    return state.last_update_time or EPOCH


class FreshnessArbiter:
    """Pure source selection and validity checks."""

    def __init__(self, config: Optional[DecayConfig] = None):
        self.config = config or DecayConfig()

    def is_valid_state(self, state: Optional[PetState]) -> bool:
        """A live snapshot is usable only if identified and within bounds."""
        if state is None:
            return False

        cfg = self.config
        if not state.pet_id:
            logger.warning("Rejecting pet state: empty pet_id")
            return False
        if not state.pet_name:
            logger.warning("Rejecting pet state %s: empty pet_name", state.pet_id)
            return False
        if not state.prefab_name:
            logger.warning("Rejecting pet state %s: empty prefab_name", state.pet_id)
            return False
        if not 0 <= state.energy <= cfg.max_energy:
            logger.warning("Rejecting pet state %s: energy out of range (%s)", state.pet_id, state.energy)
            return False
        if not 0 <= state.satiety <= cfg.max_satiety:
            logger.warning("Rejecting pet state %s: satiety out of range (%s)", state.pet_id, state.satiety)
            return False
        if not 0 <= state.age_in_days <= cfg.max_age_in_days:
            logger.warning("Rejecting pet state %s: age out of range (%s)", state.pet_id, state.age_in_days)
            return False
        return True

    def is_valid_baseline(self, baseline: Optional[BaselineSnapshot], now: datetime) -> bool:
        """A baseline is usable if its instants are sane and its stats in range."""
        if baseline is None:
            return False

        cfg = self.config
        if baseline.base_timestamp <= EPOCH or baseline.last_calculation_time <= EPOCH:
            logger.warning("Rejecting baseline: non-positive timestamp")
            return False

        latest_allowed = to_utc(now) + timedelta(seconds=cfg.clock_skew_tolerance_seconds)
        if baseline.base_timestamp > latest_allowed:
            logger.warning(
                "Rejecting baseline: captured in the future (%s > %s)",
                baseline.base_timestamp.isoformat(),
                latest_allowed.isoformat(),
            )
            return False

        if not 0 <= baseline.base_energy <= cfg.max_energy:
            logger.warning("Rejecting baseline: energy out of range (%s)", baseline.base_energy)
            return False
        if not 0 <= baseline.base_satiety <= cfg.max_satiety:
            logger.warning("Rejecting baseline: satiety out of range (%s)", baseline.base_satiety)
            return False
        return True

    def is_live_fresher_than(
        self,
        live: Optional[PetState],
        baseline: Optional[BaselineSnapshot],
    ) -> bool:
        if live is None:
            return False
        if baseline is None:
            return True
        return _capture_instant(live) > baseline.base_timestamp

    def choose_source(
        self,
        live: Optional[PetState],
        baseline: Optional[BaselineSnapshot],
        now: datetime,
    ) -> DataSource:
        """Pick the authoritative source. `live` is expected pre-validated."""
        if live is None and baseline is None:
            return DataSource.DEFAULT
        if live is not None and baseline is None:
            return DataSource.LIVE
        if self.is_live_fresher_than(live, baseline):
            return DataSource.LIVE
        if self.is_valid_baseline(baseline, now):
            return DataSource.OFFLINE
        return DataSource.DEFAULT

    def state_age(self, state: Optional[PetState], now: datetime) -> Optional[timedelta]:
        """How long ago a live snapshot was captured."""
        if state is None or state.last_update_time is None:
            return None
        return to_utc(now) - state.last_update_time

    def baseline_age(self, baseline: Optional[BaselineSnapshot], now: datetime) -> Optional[timedelta]:
        """How long ago offline stats were last recomputed."""
        if baseline is None:
            return None
        return to_utc(now) - baseline.last_calculation_time
