"""
Pet Kernel API: FastAPI endpoints.

Exposes the reconciliation service to the game bridge and the widget host:
- Pet state resolution
- Live snapshot ingestion
- Manual and periodic refresh
- Data reset
- Freshness and configuration inspection
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pet_kernel.baseline.store import BaselineStore, SQLiteBaselineStore, StorageError
from pet_kernel.config import Settings, load_decay_config
from pet_kernel.live.store import LiveSnapshotStore, SQLiteLiveSnapshotStore
from pet_kernel.models.config import DecayConfig
from pet_kernel.models.pet import PetState, WidgetPayload
from pet_kernel.reconciler.service import ReconciliationService


# --- Request/Response Models ---

class LiveUpdateResponse(BaseModel):
    accepted: bool
    pet_id: str
    pet_type: str


class FreshnessResponse(BaseModel):
    source: str
    live_age_seconds: Optional[float] = None
    baseline_age_seconds: Optional[float] = None
    live_valid: bool
    baseline_valid: bool


# --- Application Factory ---

def create_app(
    live_store: Optional[LiveSnapshotStore] = None,
    baseline_store: Optional[BaselineStore] = None,
    decay_config: Optional[DecayConfig] = None,
    service: Optional[ReconciliationService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Pet Kernel API",
        description="Live / offline pet state reconciliation for home-screen widgets",
        version="0.1.0",
    )

    if service is None:
        service = ReconciliationService(
            live_store=live_store or SQLiteLiveSnapshotStore(Settings.PET_DB_PATH),
            baseline_store=baseline_store or SQLiteBaselineStore(Settings.PET_DB_PATH),
            config=decay_config or load_decay_config(),
        )

    app.state.service = service

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        return JSONResponse(
            status_code=503,
            content={"detail": "Unable to refresh pet state", "error": str(exc)},
        )

    # === PET STATE ===

    @app.get("/pet/state")
    def get_pet_state():
        """Resolve the current pet state and its source."""
        return service.resolve().model_dump(mode="json", by_alias=True)

    @app.post("/pet/live", response_model=LiveUpdateResponse)
    def post_live_update(state: PetState):
        """Live snapshot pushed by the game."""
        accepted = service.on_live_update(state)
        return LiveUpdateResponse(
            accepted=accepted, pet_id=state.pet_id, pet_type=state.pet_type
        )

    @app.post("/widget/data", response_model=LiveUpdateResponse)
    def post_widget_data(payload: WidgetPayload):
        """Full widget payload pushed by the game."""
        if payload.selected_pet_data is None:
            raise HTTPException(422, "Widget payload has no selectedPetData")
        pet = payload.selected_pet_data
        accepted = service.ingest_payload(payload)
        return LiveUpdateResponse(
            accepted=accepted, pet_id=pet.pet_id, pet_type=pet.pet_type
        )

    @app.post("/pet/refresh")
    def refresh_pet_state():
        """Manual refresh from the offline baseline."""
        return service.refresh_offline().to_wire()

    @app.post("/pet/reconcile")
    def reconcile_pet_state():
        """Time-driven reconcile."""
        return service.periodic_reconcile().to_wire()

    @app.delete("/pet/data")
    def reset_pet_data():
        """Clear all stored pet data."""
        service.reset()
        return {"status": "reset"}

    # === INSPECTION ===

    @app.get("/pet/freshness", response_model=FreshnessResponse)
    def get_freshness():
        """Ages of both sources and the source a resolve would choose. Read-only."""
        now = service.now()
        arbiter = service.arbiter
        live = service.live_store.get()
        baseline = service.baseline_store.load()

        live_valid = arbiter.is_valid_state(live)
        baseline_valid = arbiter.is_valid_baseline(baseline, now)
        source = arbiter.choose_source(live if live_valid else None, baseline, now)

        live_age = arbiter.state_age(live, now)
        baseline_age = arbiter.baseline_age(baseline, now)
        return FreshnessResponse(
            source=source.value,
            live_age_seconds=live_age.total_seconds() if live_age is not None else None,
            baseline_age_seconds=(
                baseline_age.total_seconds() if baseline_age is not None else None
            ),
            live_valid=live_valid,
            baseline_valid=baseline_valid,
        )

    @app.get("/config/decay")
    def get_decay_config():
        """Current decay configuration."""
        return service.config.model_dump()

    return app


# Default application instance
app = create_app()
