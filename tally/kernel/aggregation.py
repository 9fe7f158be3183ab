"""Event aggregation into period series and chart data. Pure, never raises on bad data."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tally.kernel import extractor
from tally.kernel.errors import ConversionError
from tally.kernel.models import (
    AggregationConfig,
    AggregationMode,
    Category,
    ChartData,
    Event,
    Graph,
    SeriesPoint,
)
from tally.kernel.periods import boundaries_for, from_ms, iter_boundaries, local_tz, start_of_day
from tally.kernel.units import best_unit, best_unit_of, convert, convert_many, get_default_unit, get_unit, parse_int

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_RANGE_SECONDS = 7 * 86400
DAY_MS = 86400 * 1000


def _compatible_unit(unit: str | None, base: str) -> str | None:
    if not unit:
        return None
    try:
        if get_unit(unit).kind == get_unit(base).kind:
            return unit
    except ConversionError:
        pass
    logger.warning("Ignoring display unit %r for base unit %s", unit, base)
    return None


def choose_display_unit(
    values: Iterable[float],
    category: Category,
    target_unit: str | None = None,
) -> str | None:
    """One display unit for a whole series.

    An explicit compatible `target_unit` wins; otherwise the best unit of the
    largest value. None for categories without a base unit.
    """
    base = get_default_unit(category)
    if base is None:
        return None
    explicit = _compatible_unit(target_unit, base)
    if explicit is not None:
        return explicit
    max_value = max(values, default=0)
    if max_value > 0:
        return best_unit(max_value, base)[0]
    return base


def _period_totals(
    events: list[Event],
    config: AggregationConfig,
    range_from: int,
    range_to: int,
    tz_name: str | None,
) -> dict[int, float]:
    totals: dict[int, float] = {b.from_ms: 0.0 for b in iter_boundaries(config, range_from, range_to, tz_name)}
    for event in events:
        period_start = boundaries_for(config, event.timestamp, tz_name).from_ms
        if period_start not in totals:
            continue
        value = extractor.extract_value(event)
        if value is not None:
            totals[period_start] += value
    return totals


def aggregate_series(
    events: list[Event],
    config: AggregationConfig,
    range_from: int,
    range_to: int,
    category: Category,
    target_unit: str | None = None,
    tz_name: str | None = None,
) -> tuple[str | None, list[SeriesPoint]]:
    """Sum events per period; returns (display unit, points ascending by period)."""
    totals = _period_totals(events, config, range_from, range_to, tz_name)
    base = get_default_unit(category)
    unit = choose_display_unit(totals.values(), category, target_unit)
    tz = local_tz(tz_name)

    points: list[SeriesPoint] = []
    for period_start in sorted(totals):
        total = totals[period_start]
        y = float(convert(total, base, unit)) if base and unit else total
        points.append(SeriesPoint(x=from_ms(period_start, tz), y=y))
    return unit, points


def aggregate_events_by_period(
    events: list[Event],
    mode: AggregationMode | str,
    week_start_day: int,
    aggregation_days: int | None,
    range_from: int,
    range_to: int,
    category: Category,
    anchor_start_date: int | None = None,
    target_unit: str | None = None,
    tz_name: str | None = None,
) -> list[SeriesPoint]:
    """Zero-filled per-period totals for [range_from, range_to].

    Event data must already be in the category's base unit; non-numeric
    data is left out of the sums.
    """
    config = AggregationConfig(
        mode=mode,
        week_start_day=week_start_day,
        aggregation_days=aggregation_days,
        anchor_start_date=anchor_start_date,
    )
    _, points = aggregate_series(events, config, range_from, range_to, category, target_unit, tz_name)
    return points


def event_series(
    events: list[Event],
    category: Category,
    target_unit: str | None = None,
    tz_name: str | None = None,
) -> tuple[str | None, list[SeriesPoint]]:
    """One point per event for single-measurement categories.

    Free-text measurements are converted to one shared unit; data that
    cannot be read plots as 0.
    """
    tz = local_tz(tz_name)
    base = get_default_unit(category)
    if base is None:
        return None, [
            SeriesPoint(x=from_ms(e.timestamp, tz), y=extractor.extract_value(e) or 0.0) for e in events
        ]

    base_values = [extractor.extract_quantity(e, base) or 0.0 for e in events]
    unit = choose_display_unit(base_values, category, target_unit)
    return unit, [
        SeriesPoint(x=from_ms(e.timestamp, tz), y=float(convert(v, base, unit)))
        for e, v in zip(events, base_values)
    ]


def graph_window(graph: Graph, selected: int, tz_name: str | None = None) -> tuple[int, int]:
    """[selected day - graph range, end of selected day] in epoch ms."""
    seconds = parse_int(graph.range) if graph.range else None
    if not seconds or seconds < 0:
        seconds = DEFAULT_GRAPH_RANGE_SECONDS
    day = start_of_day(selected, tz_name)
    return day - seconds * 1000, day + DAY_MS - 1


def _limit_in_unit(limit: str | None, unit: str | None) -> float | None:
    if not limit:
        return None
    try:
        if unit is None:
            return float(limit.replace(",", "."))
        return convert_many(limit, unit)
    except (ConversionError, ValueError):
        logger.debug("Unreadable graph limit %r", limit)
        return None


def _limit_unit(graph: Graph) -> str | None:
    for limit in (graph.config.upper_limit, graph.config.lower_limit):
        if limit:
            try:
                return best_unit_of(limit)
            except ConversionError:
                continue
    return None


def build_chart_data(
    graph: Graph,
    category: Category,
    events: list[Event],
    selected: int,
    tz_name: str | None = None,
) -> ChartData:
    """Chart series for a bar/line graph plus its limit lines.

    Accumulative categories are summed per period; the others plot each
    event. A configured limit fixes the display unit.
    """
    range_from, range_to = graph_window(graph, selected, tz_name)
    target_unit = _limit_unit(graph)

    if category.type == "valueAccumulative":
        unit, points = aggregate_series(
            events, graph.config.aggregation(), range_from, range_to, category, target_unit, tz_name
        )
    else:
        unit, points = event_series(events, category, target_unit, tz_name)

    return ChartData(
        unit=unit,
        points=points,
        upper_limit=_limit_in_unit(graph.config.upper_limit, unit),
        lower_limit=_limit_in_unit(graph.config.lower_limit, unit),
    )
