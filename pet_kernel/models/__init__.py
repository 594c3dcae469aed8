"""Pet kernel data models."""

from pet_kernel.models.config import DecayConfig
from pet_kernel.models.pet import (
    BaselineSnapshot,
    DataSource,
    PetState,
    Resolution,
    WidgetPayload,
    default_pet_state,
)

__all__ = [
    "BaselineSnapshot",
    "DataSource",
    "DecayConfig",
    "PetState",
    "Resolution",
    "WidgetPayload",
    "default_pet_state",
]
