"""Capture-instant helpers shared by the models, the arbiter and the decay model."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to timezone-aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def to_epoch_millis(value: datetime) -> int:
    return (to_utc(value) - EPOCH) // timedelta(milliseconds=1)


def _millis_or_none(millis: int) -> Optional[datetime]:
    try:
        return from_epoch_millis(millis)
    except OverflowError:
        logger.warning("Capture instant out of range: %s ms", millis)
        return None


def parse_capture_instant(value: Any) -> Optional[datetime]:
    """
    Parse a capture instant as the game sends it.

    Accepted forms:
      - datetime objects
      - epoch milliseconds, as an int or a string of digits
      - ISO-8601 strings
      - the game's "YYYY-MM-DD HH:MM:SS" wall-clock format (local time)

    Empty values and anything unparseable yield None, which compares as the
    oldest possible instant.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, bool):
        logger.warning("Ignoring boolean capture instant: %r", value)
        return None
    if isinstance(value, (int, float)):
        try:
            millis = int(value)
        except (ValueError, OverflowError):
            logger.warning("Ignoring non-finite capture instant: %r", value)
            return None
        return _millis_or_none(millis)
    if not isinstance(value, str):
        logger.warning("Ignoring capture instant of type %s", type(value).__name__)
        return None

    text = value.strip()
    if not text:
        return None
    if text.isascii() and text.lstrip("-").isdigit():
        return _millis_or_none(int(text))

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable capture instant: %r", value)
        return None

    # Wall-clock strings from the game carry no zone; astimezone reads them as local time
    return parsed.astimezone(timezone.utc)
