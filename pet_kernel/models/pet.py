"""Pet state models: live snapshots, offline baselines and resolutions."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pet_kernel.models.timestamps import parse_capture_instant, to_utc

DEFAULT_PET_NAME = "我的宠物"
DEFAULT_PREFAB_NAME = "Pet_CatBrown"
DEFAULT_INTRODUCTION = "可爱的宠物"

PET_TYPES = ("Pet_CatBlack", "Pet_CatBrown", "Pet_CatGrey", "Pet_CatWhite")


class DataSource(str, Enum):
    LIVE = "live"         # Snapshot pushed by the running game
    OFFLINE = "offline"   # Projected from the stored baseline
    DEFAULT = "default"   # Nothing usable; fixed placeholder pet


class PetState(BaseModel):
    """
    A pet's stats at one capture instant.

    Bounds are not enforced here: corrupt or partial data from the game must
    still be representable so the arbiter can reject it.
    """

    model_config = ConfigDict(populate_by_name=True)

    pet_id: str = Field(default="", alias="petId")
    pet_name: str = Field(default=DEFAULT_PET_NAME, alias="petName")
    prefab_name: str = Field(default=DEFAULT_PREFAB_NAME, alias="prefabName")
    energy: int = 80
    satiety: int = 70
    is_bored: bool = Field(default=False, alias="isBored")
    purchase_date: str = Field(default="", alias="purchaseDate")
    age_in_days: int = Field(default=1, alias="ageInDays")
    introduction: str = DEFAULT_INTRODUCTION
    last_update_time: Optional[datetime] = Field(default=None, alias="lastUpdateTime")

    @field_validator("last_update_time", mode="before")
    @classmethod
    def _parse_last_update_time(cls, value):
        return parse_capture_instant(value)

    @property
    def pet_type(self) -> str:
        """Visual family of the pet, derived from its prefab name."""
        for pet_type in PET_TYPES:
            if pet_type.removeprefix("Pet_") in self.prefab_name:
                return pet_type
        return DEFAULT_PREFAB_NAME

    def to_wire(self) -> dict:
        """Serialize with the camelCase keys the game and widget host use."""
        return self.model_dump(mode="json", by_alias=True)


class BaselineSnapshot(BaseModel):
    """The last authoritative stats plus the instant they were captured."""

    pet_id: str = ""
    pet_name: str = DEFAULT_PET_NAME
    prefab_name: str = DEFAULT_PREFAB_NAME
    base_energy: int = 100
    base_satiety: int = 100
    base_is_bored: bool = False
    base_timestamp: datetime                # Baseline-capture instant
    last_calculation_time: datetime         # Last offline recomputation

    @field_validator("base_timestamp", "last_calculation_time")
    @classmethod
    def _normalise_instant(cls, value: datetime) -> datetime:
        return to_utc(value)

    @classmethod
    def from_state(cls, state: PetState, at: datetime) -> "BaselineSnapshot":
        """Anchor a baseline to a state, using `at` for both instants."""
        return cls(
            pet_id=state.pet_id,
            pet_name=state.pet_name,
            prefab_name=state.prefab_name,
            base_energy=state.energy,
            base_satiety=state.satiety,
            base_is_bored=state.is_bored,
            base_timestamp=at,
            last_calculation_time=at,
        )


class Resolution(BaseModel):
    """A resolved pet state and the source it came from, for renderers."""

    state: PetState
    source: DataSource
    resolved_at: datetime


class WidgetPayload(BaseModel):
    """Envelope the game pushes whenever the selected pet's stats change."""

    model_config = ConfigDict(populate_by_name=True)

    widget_enabled: bool = Field(default=True, alias="widgetEnabled")
    selected_pet_id: str = Field(default="", alias="selectedPetId")
    selected_pet_data: Optional[PetState] = Field(default=None, alias="selectedPetData")
    last_update_time: str = Field(default="", alias="lastUpdateTime")


def default_pet_state(now: datetime) -> PetState:
    """The fixed placeholder shown when neither source is usable."""
    return PetState(
        pet_id="",
        pet_name=DEFAULT_PET_NAME,
        prefab_name=DEFAULT_PREFAB_NAME,
        energy=100,
        satiety=100,
        is_bored=False,
        purchase_date="",
        age_in_days=1,
        introduction=DEFAULT_INTRODUCTION,
        last_update_time=now,
    )
