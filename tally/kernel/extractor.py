"""Extract numbers from event data. Never raises."""

from __future__ import annotations

import logging
import math

from tally.kernel.errors import ConversionError
from tally.kernel.models import Event
from tally.kernel.units import convert_many

logger = logging.getLogger(__name__)


def extract_value(event: Event) -> float | None:
    """Numeric value of an already-normalized event.

    Blank data counts as 0 (todo/protocol entries). Anything that is not a
    finite number returns None so callers can leave it out of sums.
    """
    text = event.data.strip()
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        logger.debug("Event %s has non-numeric data %r", event.id, event.data)
        return None
    if not math.isfinite(value):
        return None
    return value


def extract_quantity(event: Event, unit: str) -> float | None:
    """Free-text measurement ("2,5 l", "1h 30min") expressed in `unit`."""
    try:
        return convert_many(event.data, unit)
    except ConversionError:
        logger.debug("Event %s data %r is not a %s quantity", event.id, event.data, unit)
        return None
