"""
Unit table and conversions for measured categories.

Every measured category stores its values as integers in one base unit
(volume -> ml, time -> s, mass -> g) so that sums are plain arithmetic.
Conversion to a "best" unit only happens for display.

Each entry in UNITS maps a lower-cased unit name to:
  - symbol: how the unit is printed
  - kind:   the measure kind it belongs to
  - factor: size of one unit expressed in the kind's base unit

BEST_UNITS lists, smallest first, the units to_best() may pick for a kind.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from fractions import Fraction

from tally.config import settings
from tally.kernel.errors import InvalidFormat, WrongUnitKind
from tally.kernel.models import Category


@dataclass(frozen=True, slots=True)
class UnitDef:
    symbol: str
    kind: str
    factor: Fraction


UNITS: dict[str, UnitDef] = {
    # volume, base ml
    "ml": UnitDef(symbol="mL", kind="volume", factor=Fraction(1)),
    "cl": UnitDef(symbol="cL", kind="volume", factor=Fraction(10)),
    "dl": UnitDef(symbol="dL", kind="volume", factor=Fraction(100)),
    "l": UnitDef(symbol="L", kind="volume", factor=Fraction(1000)),
    # time, base s
    "ms": UnitDef(symbol="ms", kind="time", factor=Fraction(1, 1000)),
    "s": UnitDef(symbol="s", kind="time", factor=Fraction(1)),
    "sec": UnitDef(symbol="s", kind="time", factor=Fraction(1)),
    "min": UnitDef(symbol="min", kind="time", factor=Fraction(60)),
    "h": UnitDef(symbol="h", kind="time", factor=Fraction(3600)),
    "d": UnitDef(symbol="d", kind="time", factor=Fraction(86400)),
    # mass, base g
    "mg": UnitDef(symbol="mg", kind="mass", factor=Fraction(1, 1000)),
    "g": UnitDef(symbol="g", kind="mass", factor=Fraction(1)),
    "kg": UnitDef(symbol="kg", kind="mass", factor=Fraction(1000)),
}

BASE_UNITS: dict[str, str] = {
    "volume": "ml",
    "time": "s",
    "mass": "g",
}

BEST_UNITS: dict[str, tuple[str, ...]] = {
    "volume": ("ml", "l"),
    "time": ("ms", "s", "min", "h", "d"),
    "mass": ("mg", "g", "kg"),
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_QUANTITY = re.compile(r"\s*([+-]?(?:\d+(?:\.\d+)?|\.\d+))\s*([^\W\d_]+)\s*")


def get_unit(name: str) -> UnitDef:
    """Look up a unit by name or symbol. Raises InvalidFormat if unknown."""
    unit = UNITS.get(name.strip().lower())
    if unit is None:
        raise InvalidFormat(f"Unknown unit: {name!r}")
    return unit


def get_default_unit(category: Category) -> str | None:
    """Base unit for the category's measure kind, None for unmeasured configs."""
    return BASE_UNITS.get(category.config)


def parse_int(value: str | int | float) -> int | None:
    """Leading integer of `value`; "1.5" -> 1, "12 ml" -> 12, "abc" -> None."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def convert(quantity: Fraction | int | float, from_unit: str, to_unit: str) -> Fraction:
    src = get_unit(from_unit)
    dst = get_unit(to_unit)
    if src.kind != dst.kind:
        raise WrongUnitKind(expected=dst.kind, actual=src.kind)
    return Fraction(quantity) * src.factor / dst.factor


def best_unit(quantity: Fraction | int | float, base_unit: str) -> tuple[str, Fraction]:
    """Largest unit of the base unit's kind in which |quantity| is at least 1.

    Zero (or anything below the smallest unit) stays in the base unit.
    """
    kind = get_unit(base_unit).kind
    amount = Fraction(quantity)
    chosen, chosen_qty = base_unit, amount
    for name in BEST_UNITS[kind]:
        converted = convert(amount, base_unit, name)
        if abs(converted) >= 1:
            chosen, chosen_qty = name, converted
    return chosen, chosen_qty


def format_number(quantity: Fraction | float) -> str:
    """Up to three decimals, trailing zeros dropped, locale decimal separator."""
    rounded = round(float(quantity), 3)
    if rounded == int(rounded):
        return str(int(rounded))
    text = f"{rounded:.3f}".rstrip("0").rstrip(".")
    return text.replace(".", settings.decimal_separator)


def to_default(category: Category, source_unit: str, value: str | int | float) -> int:
    """Convert `value` given in `source_unit` into the category's base unit.

    The value is read as an integer first ("1.5" becomes 1), the converted
    result is floored.
    """
    base = get_default_unit(category)
    if base is None:
        raise InvalidFormat(f"Category config {category.config!r} has no base unit")
    amount = parse_int(value)
    if amount is None:
        raise InvalidFormat(f"Not a number: {value!r}")
    return math.floor(convert(amount, source_unit, base))


def to_best(category: Category, value: str | int | float) -> str:
    """Human readable rendering of a base-unit value.

    Time values are decomposed into whole leading components until the rest
    is exact in its own best unit: 5400 -> "1h 30 min".
    """
    amount = parse_int(value)
    base = get_default_unit(category)
    if not category.config or amount is None or base is None:
        return ""

    parts: list[str] = []
    remaining = amount
    while True:
        unit, quantity = best_unit(remaining, base)
        symbol = UNITS[unit].symbol
        whole = int(quantity)
        if base != "s" or whole == quantity:
            parts.append(f"{format_number(quantity)} {symbol}")
            break
        parts.append(f"{whole}{symbol}")
        remaining -= to_default(category, unit, whole)
    return " ".join(parts)


def parse_quantity(text: str) -> tuple[Fraction, str]:
    """Parse free text such as "500ml", "2,5 l" or "1h 30min".

    Returns (amount in the kind's base unit, kind). A comma is read as the
    decimal separator. Every part needs a unit and all parts must share one
    measure kind.
    """
    normalized = text.replace(",", ".").strip()
    if not normalized:
        raise InvalidFormat("Empty quantity")

    parts: list[tuple[Fraction, UnitDef]] = []
    pos = 0
    while pos < len(normalized):
        match = _QUANTITY.match(normalized, pos)
        if match is None:
            raise InvalidFormat(f"Cannot parse quantity: {text!r}")
        parts.append((Fraction(match.group(1)), get_unit(match.group(2))))
        pos = match.end()

    kinds = {unit.kind for _, unit in parts}
    if len(kinds) > 1:
        raise InvalidFormat(f"Mixed measure kinds in {text!r}")
    return sum(amount * unit.factor for amount, unit in parts), kinds.pop()


def convert_many(text: str, to_unit: str) -> float:
    """Parse `text` and express it in `to_unit`."""
    amount, kind = parse_quantity(text)
    target = get_unit(to_unit)
    if target.kind != kind:
        raise WrongUnitKind(expected=target.kind, actual=kind)
    return float(amount / target.factor)


def best_unit_of(text: str) -> str:
    """Best display unit for a free-text quantity (used for graph limits)."""
    amount, kind = parse_quantity(text)
    unit, _ = best_unit(amount, BASE_UNITS[kind])
    return unit
