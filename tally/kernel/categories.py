"""Category semantics shared by the evaluator, the shaper and the API."""

from __future__ import annotations

from tally.kernel.models import Category


def requires_input(category_type: str | None) -> bool:
    """Every type except todo needs a value when an event is logged."""
    return category_type != "todo"


def requires_measure(category_type: str | None) -> bool:
    return category_type in ("value", "valueAccumulative")


def category_ids(category: Category) -> set[str]:
    """Ids whose events count for `category` (itself plus its children)."""
    return {category.id, *category.children}


def possible_children(
    categories: list[Category],
    category_type: str,
    config: str,
    exclude_id: str | None = None,
) -> list[Category]:
    """Categories that may be grouped under a composite of the given kind."""
    return [
        c
        for c in categories
        if c.type == category_type and c.config == config and c.id != exclude_id
    ]
