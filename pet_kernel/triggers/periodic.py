"""
Periodic trigger: keeps the baseline bookkeeping current while the game is closed.

The reconciliation service has no timer of its own; this drives
periodic_reconcile() at the configured cadence until stopped.
"""

import asyncio
import logging
from typing import Optional

from pet_kernel.baseline.store import StorageError
from pet_kernel.models.pet import PetState
from pet_kernel.reconciler.service import ReconciliationService

logger = logging.getLogger(__name__)


class PeriodicTrigger:
    """Calls periodic_reconcile() once per interval on an asyncio loop."""

    def __init__(
        self,
        service: ReconciliationService,
        interval_seconds: Optional[float] = None,
    ):
        self.service = service
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else service.config.refresh_interval_seconds
        )
        self._running = False
        self.last_state: Optional[PetState] = None
        self.failures = 0

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    def tick(self) -> Optional[PetState]:
        """Run one reconcile. Storage failures are logged and counted, not raised."""
        try:
            self.last_state = self.service.periodic_reconcile()
        except StorageError as exc:
            self.failures += 1
            logger.error("Periodic reconcile failed: %s", exc)
            return None
        return self.last_state

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run until `stop_event` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                await asyncio.to_thread(self.tick)
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
