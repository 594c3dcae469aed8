"""
Reconciliation Service: the single entry point for renderers and triggers.

Each resolve:
  1. reads the live snapshot (invalid snapshots count as absent)
  2. loads the baseline
  3. asks the arbiter for the authoritative source
  4. LIVE    -> re-anchors the baseline to the live snapshot, returns it
     OFFLINE -> projects the baseline to now, records the recomputation
     DEFAULT -> returns the placeholder pet, touches no storage

Bad data never raises; it falls through to OFFLINE or DEFAULT. StorageError
from either store propagates so the caller can retry or show stale data.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pet_kernel.baseline.store import BaselineStore
from pet_kernel.decay.model import DecayModel
from pet_kernel.freshness.arbiter import FreshnessArbiter
from pet_kernel.live.store import LiveSnapshotStore
from pet_kernel.models.config import DecayConfig
from pet_kernel.models.pet import (
    DataSource,
    PetState,
    Resolution,
    WidgetPayload,
    default_pet_state,
)
from pet_kernel.models.timestamps import to_utc

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateRenderer(ABC):
    """
    Receives every resolution for display. Must not call back into the service.
    Exceptions raised by render() are logged and do not fail the resolve.
    """

    @abstractmethod
    def render(self, resolution: Resolution) -> None:
        pass


class ReconciliationService:
    """Chooses between live and offline pet state and keeps the baseline current."""

    def __init__(
        self,
        live_store: LiveSnapshotStore,
        baseline_store: BaselineStore,
        config: Optional[DecayConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        renderers: Optional[List[StateRenderer]] = None,
    ):
        self.live_store = live_store
        self.baseline_store = baseline_store
        self.config = config or DecayConfig()
        self.arbiter = FreshnessArbiter(self.config)
        self.decay_model = DecayModel(self.config)
        self._clock = clock or _utcnow
        self._renderers: List[StateRenderer] = list(renderers or [])

    def now(self) -> datetime:
        """Current instant from the injected clock, as aware UTC."""
        return to_utc(self._clock())

    def add_renderer(self, renderer: StateRenderer) -> None:
        """Register a renderer; it receives every later resolution."""
        self._renderers.append(renderer)

    def resolve(self) -> Resolution:
        """Resolve the current pet state and report which source produced it."""
        now = self.now()

        live = self.live_store.get()
        baseline = self.baseline_store.load()

        if live is not None and not self.arbiter.is_valid_state(live):
            logger.warning("Ignoring invalid live snapshot for pet %r", live.pet_id)
            live = None

        source = self.arbiter.choose_source(live, baseline, now)
        logger.debug("Resolved source %s at %s", source.value, now.isoformat())

        if source == DataSource.LIVE:
            self.baseline_store.save(live, now)
            logger.info("Re-anchored baseline to live snapshot of pet %r", live.pet_id)
            state = live
        elif source == DataSource.OFFLINE:
            state = self.decay_model.compute_current_stats(baseline, now)
            self.baseline_store.update_recomputation_instant(now)
        else:
            state = default_pet_state(now)

        resolution = Resolution(state=state, source=source, resolved_at=now)
        for renderer in self._renderers:
            try:
                renderer.render(resolution)
            except Exception:
                logger.exception("Renderer %s failed", type(renderer).__name__)
        return resolution

    def resolve_current_state(self) -> PetState:
        return self.resolve().state

    def periodic_reconcile(self) -> PetState:
        """Entry point for time-driven triggers; same behavior as resolve_current_state."""
        return self.resolve_current_state()

    async def resolve_async(self, timeout: Optional[float] = None) -> Resolution:
        """
        Resolve in a worker thread so event-loop callers can bound storage I/O.
        Raises asyncio.TimeoutError if `timeout` elapses first.
        """
        return await asyncio.wait_for(asyncio.to_thread(self.resolve), timeout=timeout)

    def refresh_offline(self) -> PetState:
        """
        Manual refresh: recompute from the baseline, ignoring live data.
        Falls back to the default pet when there is no valid baseline.
        """
        now = self.now()
        baseline = self.baseline_store.load()
        if not self.arbiter.is_valid_baseline(baseline, now):
            logger.warning("No valid baseline to refresh from; using default pet")
            return default_pet_state(now)

        state = self.decay_model.compute_current_stats(baseline, now)
        self.baseline_store.update_recomputation_instant(now)
        return state

    def on_live_update(self, state: PetState) -> bool:
        """
        Accept a snapshot pushed by the game.
        Returns False, without writing anything, if the snapshot is invalid.
        """
        if not self.arbiter.is_valid_state(state):
            logger.warning("Discarding invalid live update for pet %r", state.pet_id)
            return False

        now = self.now()
        self.live_store.put(state)
        self.baseline_store.save(state, now)
        logger.info("Stored live update for pet %r (%s)", state.pet_id, state.pet_type)
        return True

    def ingest_payload(self, payload: WidgetPayload) -> bool:
        """
        Forward the selected pet from a widget payload as a live update.
        Payloads sent while the widget is disabled are ignored.
        """
        if not payload.widget_enabled:
            logger.info("Widget disabled; ignoring payload for pet %r", payload.selected_pet_id)
            return False
        if payload.selected_pet_data is None:
            logger.warning("Widget payload carries no pet data")
            return False
        return self.on_live_update(payload.selected_pet_data)

    def reset(self) -> None:
        """Clear both stores; resolves return the default pet until new live data arrives."""
        self.baseline_store.clear()
        self.live_store.clear()
        logger.info("Cleared baseline and live snapshot")
