"""Async builders - load a snapshot through the connector, then run the engine.

The engine functions are synchronous and storage-agnostic; everything here
only gathers the records they need into a MemoryProvider. Missing targets,
graphs or categories come back as None so the router can answer 404.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from tally.config import settings
from tally.kernel import connector
from tally.kernel.aggregation import build_chart_data, graph_window
from tally.kernel.categories import category_ids
from tally.kernel.models import Category, ChartData, Event, Graph, TableData, Target, TargetCard
from tally.kernel.periods import build_periods, day_start_ms, local_tz
from tally.kernel.provider import MemoryProvider
from tally.kernel.table_data import shape_table
from tally.kernel.targets import target_period, target_status, targets_for_date

logger = logging.getLogger(__name__)


def _day_range(day: date, tz_name: str) -> tuple[int, int]:
    tz = local_tz(tz_name)
    return day_start_ms(day, tz), day_start_ms(day + timedelta(days=1), tz)


async def _target_snapshot(
    session: AsyncSession,
    targets: list[Target],
    selected: int,
    tz_name: str,
) -> MemoryProvider:
    """Categories of `targets` plus the events of each target's period."""
    categories = await connector.fetch_categories(session, sorted({t.category for t in targets}))
    by_id = {c.id: c for c in categories}

    events: dict[str, Event] = {}
    for target in targets:
        category = by_id.get(target.category)
        if category is None:
            continue
        period = target_period(target, selected, tz_name)
        for event in await connector.fetch_events_in_range(
            session, category_ids(category), period.from_ms, period.to_ms
        ):
            events[event.id] = event

    return MemoryProvider(categories=categories, events=list(events.values()), targets=targets)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


async def build_targets_for_date(
    session: AsyncSession,
    day: date,
    tz_name: str = settings.default_tz,
) -> list[TargetCard]:
    start, end = _day_range(day, tz_name)
    due = targets_for_date(await connector.fetch_targets(session), start, end, tz_name)
    if not due:
        return []

    provider = await _target_snapshot(session, due, start, tz_name)
    return [
        TargetCard(target=t, status=target_status(t, start, provider, tz_name))
        for t in provider.list_targets()
    ]


async def build_target_status(
    session: AsyncSession,
    target_id: str,
    day: date,
    tz_name: str = settings.default_tz,
) -> TargetCard | None:
    target = await connector.fetch_target(session, target_id)
    if target is None:
        return None

    start, _ = _day_range(day, tz_name)
    provider = await _target_snapshot(session, [target], start, tz_name)
    return TargetCard(target=target, status=target_status(target, start, provider, tz_name))


# ---------------------------------------------------------------------------
# Graphs
# ---------------------------------------------------------------------------


async def _graph_with_category(
    session: AsyncSession,
    graph_id: str,
) -> tuple[Graph, Category] | None:
    graph = await connector.fetch_graph(session, graph_id)
    if graph is None:
        return None
    category = await connector.fetch_category(session, graph.category)
    if category is None:
        logger.warning("Graph %s: category %s not found", graph.id, graph.category)
        return None
    return graph, category


async def build_chart(
    session: AsyncSession,
    graph_id: str,
    day: date,
    tz_name: str = settings.default_tz,
) -> ChartData | None:
    found = await _graph_with_category(session, graph_id)
    if found is None:
        return None
    graph, category = found

    selected, _ = _day_range(day, tz_name)
    range_from, range_to = graph_window(graph, selected, tz_name)
    events = await connector.fetch_events_in_range(session, category_ids(category), range_from, range_to + 1)
    return build_chart_data(graph, category, events, selected, tz_name)


async def build_table(
    session: AsyncSession,
    graph_id: str,
    day: date,
    tz_name: str = settings.default_tz,
) -> TableData | None:
    found = await _graph_with_category(session, graph_id)
    if found is None:
        return None
    graph, category = found

    selected, _ = _day_range(day, tz_name)
    range_from, range_to = graph_window(graph, selected, tz_name)
    config = graph.config.aggregation()
    periods = build_periods(config, range_from, range_to, tz_name)

    children = await connector.fetch_categories(session, category.children)
    events = await connector.fetch_events_in_range(
        session, category_ids(category), periods[0].from_ms, periods[-1].to_ms
    )
    return shape_table(events, category, children, periods, config, tz_name)
