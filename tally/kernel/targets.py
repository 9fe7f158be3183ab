"""Target evaluation - progress, expected value and status colour.

Pure functions over records handed in by the caller. Degrades instead of
raising: a target whose category is gone or of an unknown type still gets a
neutral status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from tally.kernel import extractor
from tally.kernel.categories import category_ids
from tally.kernel.models import AggregationMode, Boundaries, Category, Event, Target, TargetStatus
from tally.kernel.periods import get_boundaries
from tally.kernel.provider import DataProvider
from tally.kernel.recurrence import count_occurrences, schedule_anchor
from tally.kernel.units import to_best

logger = logging.getLogger(__name__)

COLOR_STOPS: tuple[str, str, str] = ("red", "yellow", "green")
NEUTRAL_COLOR = "grey"


# ---------------------------------------------------------------------------
# Colour
# ---------------------------------------------------------------------------

def _css_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def color_for(category: Category, percentage: float) -> str:
    """CSS colour on a three-stop gradient (red, yellow, green).

    Inverted categories run green, yellow, red. 0, 50 and 100 land exactly
    on the stops.
    """
    low, mid, high = reversed(COLOR_STOPS) if category.inverted else COLOR_STOPS
    if percentage <= 50:
        return f"color-mix(in srgb, {low}, {mid} {_css_number(percentage * 2)}%)"
    return f"color-mix(in srgb, {mid}, {high} {_css_number((percentage - 50) * 2)}%)"


# ---------------------------------------------------------------------------
# Periods & filtering
# ---------------------------------------------------------------------------

def target_period(target: Target, selected: int, tz_name: str | None = None) -> Boundaries:
    """Evaluation window of `target` around `selected`.

    Custom periods are anchored on the schedule's DTSTART day.
    """
    anchor = None
    if target.period_type is AggregationMode.custom:
        anchor = schedule_anchor(target.schedule, tz_name)
    return get_boundaries(
        target.period_type,
        target.week_start_day,
        target.period_days,
        selected,
        anchor,
        tz_name,
    )


def targets_for_date(targets: list[Target], start: int, end: int, tz_name: str | None = None) -> list[Target]:
    """Targets to show for the day [start, end).

    Daily targets need an occurrence on that day. Longer targets stay visible
    for their whole period as long as the period has any occurrence.
    """
    result: list[Target] = []
    for target in targets:
        if target.period_type is AggregationMode.daily:
            if count_occurrences(target, start, end, tz_name) >= 1:
                result.append(target)
            continue
        period = target_period(target, start, tz_name)
        if count_occurrences(target, period.from_ms, period.to_ms, tz_name) >= 1:
            result.append(target)
    return result


# ---------------------------------------------------------------------------
# Progress per category type
# ---------------------------------------------------------------------------

def _percentage(actual: float, expected: float | None) -> float:
    """actual / expected as 0-100. No usable expectation means 0."""
    if not expected or expected <= 0:
        return 0.0
    return max(0.0, min(actual / expected * 100.0, 100.0))


def _goal_value(config: str) -> float | None:
    try:
        return float(config.replace(",", "."))
    except ValueError:
        return None


Progress = tuple[int | str, float, int | str]


def _count_progress(
    target: Target, category: Category, events: list[Event], period: Boundaries, tz_name: str | None
) -> Progress:
    """Entries logged vs occurrences scheduled in the period."""
    expected = count_occurrences(target, period.from_ms, period.to_ms, tz_name)
    return len(events), _percentage(len(events), expected), expected


def _accumulated_progress(
    target: Target, category: Category, events: list[Event], period: Boundaries, tz_name: str | None
) -> Progress:
    """Sum of the period's values vs the target's configured amount."""
    total = sum(v for v in (extractor.extract_value(e) for e in events) if v is not None)
    goal = _goal_value(target.config)
    percentage = _percentage(total, goal)
    if category.inverted and goal and goal > 0 and percentage < 100:
        percentage = 100.0 - percentage
    return to_best(category, total), percentage, to_best(category, target.config)


PROGRESS_BY_TYPE: dict[str, Callable[..., Progress]] = {
    "todo": _count_progress,
    "value": _count_progress,
    "protocol": _count_progress,
    "valueAccumulative": _accumulated_progress,
}


def _neutral_status(period: Boundaries) -> TargetStatus:
    return TargetStatus(
        value="",
        percentage=0.0,
        expected="0",
        color=NEUTRAL_COLOR,
        period_from=period.from_ms,
        period_to=period.to_ms,
    )


def evaluate_target(
    target: Target,
    category: Category,
    events: list[Event],
    period: Boundaries,
    tz_name: str | None = None,
) -> TargetStatus:
    """Status of `target` given the events of its category inside `period`."""
    progress = PROGRESS_BY_TYPE.get(category.type)
    if progress is None:
        logger.warning("Target %s: unknown category type %r", target.id, category.type)
        return _neutral_status(period)

    value, percentage, expected = progress(target, category, events, period, tz_name)
    return TargetStatus(
        value=value,
        percentage=percentage,
        expected=expected,
        color=color_for(category, percentage),
        period_from=period.from_ms,
        period_to=period.to_ms,
    )


def target_status(
    target: Target,
    selected: int,
    provider: DataProvider,
    tz_name: str | None = None,
) -> TargetStatus:
    """Look up the category and period events, then evaluate."""
    period = target_period(target, selected, tz_name)
    category = provider.find_category(target.category)
    if category is None:
        logger.warning("Target %s: category %s not found", target.id, target.category)
        return _neutral_status(period)
    events = provider.find_events_in_range(category_ids(category), period.from_ms, period.to_ms)
    return evaluate_target(target, category, events, period, tz_name)
