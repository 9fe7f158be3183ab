"""
Measurement input validation.

Messages are user-facing and therefore German, matching the app's audience.
"""

from __future__ import annotations

from typing import Literal

from tally.kernel.errors import ConversionError
from tally.kernel.units import parse_quantity

UNIT_EXAMPLES: dict[str, str] = {
    "volume": "ml, l, cl, dl",
    "time": "s, min, h, d, ms",
    "mass": "g, kg, mg",
}


def validate_measurement(value: str | None, measure_type: str | None = None) -> Literal[True] | str:
    """Return True for acceptable input, otherwise an error message.

    Empty input is accepted; required-ness is the form's concern.
    """
    if not value or not value.strip():
        return True

    try:
        _, kind = parse_quantity(value)
    except ConversionError:
        units = UNIT_EXAMPLES.get(measure_type or "", "")
        if units:
            return f"Ungültige Eingabe. Gültige Einheiten: {units}"
        return "Ungültige Eingabe"

    if measure_type in UNIT_EXAMPLES and kind != measure_type:
        return f"Falscher Einheitentyp. Erwartet: {UNIT_EXAMPLES[measure_type]}"
    return True


def validate_duration(value: str | None) -> Literal[True] | str:
    return validate_measurement(value, "time")
