"""
Pet kernel configuration.

Loads settings from environment variables (and a .env file, if present) with
defaults matching the game's decay rules.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from pet_kernel.models.config import DecayConfig

load_dotenv()

_DECAY_ENV_VARS = {
    "energy_decay_interval_seconds": "PET_ENERGY_DECAY_INTERVAL",
    "satiety_decay_interval_seconds": "PET_SATIETY_DECAY_INTERVAL",
    "bored_reset_interval_seconds": "PET_BORED_RESET_INTERVAL",
    "clock_skew_tolerance_seconds": "PET_CLOCK_SKEW_TOLERANCE",
    "max_energy": "PET_MAX_ENERGY",
    "max_satiety": "PET_MAX_SATIETY",
    "max_age_in_days": "PET_MAX_AGE_IN_DAYS",
    "offline_age_in_days": "PET_OFFLINE_AGE_IN_DAYS",
    "refresh_interval_seconds": "PET_REFRESH_INTERVAL",
}


class Settings:
    """Process-level settings loaded from environment variables."""

    # Storage
    PET_DB_PATH: str = os.getenv("PET_DB_PATH", ":memory:")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        config = load_decay_config()
        lines = [
            "Pet Kernel Configuration:",
            f"  Database: {cls.PET_DB_PATH}",
            f"  Log Level: {cls.LOG_LEVEL}",
            f"  Energy Decay: 1 / {config.energy_decay_interval_seconds}s",
            f"  Satiety Decay: 1 / {config.satiety_decay_interval_seconds}s",
            f"  Bored Reset: {config.bored_reset_interval_seconds}s",
            f"  Refresh Interval: {config.refresh_interval_seconds}s",
        ]
        return "\n".join(lines)


def load_decay_config(environ: Optional[dict] = None) -> DecayConfig:
    """
    Build a DecayConfig from PET_* environment variables.
    Unset variables keep their defaults; malformed ones raise ValueError.
    """
    env = os.environ if environ is None else environ
    overrides = {}
    for field, var in _DECAY_ENV_VARS.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            overrides[field] = int(raw)
        except ValueError as exc:
            raise ValueError(f"{var} must be an integer, got {raw!r}") from exc
    return DecayConfig(**overrides)


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for the kernel."""
    logging.basicConfig(
        level=(level or Settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
