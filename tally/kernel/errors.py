"""Conversion failures raised by the unit helper."""

from __future__ import annotations


class ConversionError(ValueError):
    """A quantity could not be converted."""


class InvalidFormat(ConversionError):
    """No number, an unknown unit, or leftover text."""


class WrongUnitKind(ConversionError):
    """The unit belongs to another measure kind than the one expected."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Expected a {expected} unit, got {actual}")
        self.expected = expected
        self.actual = actual
