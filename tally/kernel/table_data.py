"""Shape period buckets into table rows.

Which shape comes out depends on the data, not only on the category type:

1. category has children        -> withChildren (per-child breakdown)
2. "value" with >1 event in any period -> simpleValueMultiple (every entry)
3. "value" otherwise            -> simpleValueSingle
4. "protocol"                   -> protocol (count per period)
5. anything else                -> accumulated (sum per period)

Single measurements ("value") are never added up for display; two blood
pressure readings on one day are two rows.
"""

from __future__ import annotations

from collections import defaultdict

from tally.kernel import extractor
from tally.kernel.errors import ConversionError
from tally.kernel.models import (
    AccumulatedPeriodData,
    AccumulatedTable,
    AggregationConfig,
    Category,
    ChildValue,
    Event,
    EventEntry,
    Period,
    ProtocolTable,
    SimpleValueMultipleTable,
    SimpleValuePeriodData,
    SimpleValueSingleTable,
    TableData,
    WithChildrenPeriodData,
    WithChildrenTable,
)
from tally.kernel.periods import boundaries_for, from_ms, local_tz
from tally.kernel.units import convert_many, get_default_unit, to_best


def _period_key(config: AggregationConfig, event: Event, tz_name: str | None) -> str:
    return str(boundaries_for(config, event.timestamp, tz_name).from_ms)


def _display_name(category: Category) -> str:
    return f"{category.icon} {category.name}".strip()


def _event_entry(event: Event, category: Category, tz_name: str | None) -> EventEntry:
    raw_value = 0.0
    display_value = event.data
    base = get_default_unit(category)
    if base is not None:
        try:
            raw_value = float(round(convert_many(event.data, base)))
            display_value = to_best(category, int(raw_value))
        except ConversionError:
            display_value = event.data
    return EventEntry(
        time=from_ms(event.timestamp, local_tz(tz_name)).strftime("%H:%M"),
        display_value=display_value,
        raw_value=raw_value,
    )


def _simple_value_table(
    events: list[Event],
    category: Category,
    periods: list[Period],
    config: AggregationConfig,
    tz_name: str | None,
) -> TableData:
    per_period: dict[str, list[EventEntry]] = {p.key: [] for p in periods}
    for event in events:
        entries = per_period.get(_period_key(config, event, tz_name))
        if entries is not None:
            entries.append(_event_entry(event, category, tz_name))

    if any(len(entries) > 1 for entries in per_period.values()):
        return SimpleValueMultipleTable(
            periods=[
                SimpleValuePeriodData(
                    label=p.label,
                    key=p.key,
                    events=per_period[p.key],
                    sum=sum(e.raw_value for e in per_period[p.key]),
                )
                for p in periods
            ]
        )

    return SimpleValueSingleTable(
        periods=[
            AccumulatedPeriodData(
                label=p.label,
                key=p.key,
                sum=per_period[p.key][0].raw_value if per_period[p.key] else 0,
            )
            for p in periods
        ]
    )


def _totals_by_category(
    events: list[Event],
    category: Category,
    periods: list[Period],
    config: AggregationConfig,
    tz_name: str | None,
) -> dict[str, dict[str, float]]:
    """period key -> category id -> sum (or count for protocol)."""
    totals: dict[str, dict[str, float]] = {p.key: defaultdict(float) for p in periods}
    counting = category.type == "protocol"
    for event in events:
        bucket = totals.get(_period_key(config, event, tz_name))
        if bucket is None:
            continue
        if counting:
            bucket[event.category] += 1
            continue
        value = extractor.extract_value(event)
        if value is not None:
            bucket[event.category] += value
    return totals


def shape_table(
    events: list[Event],
    category: Category,
    child_categories: list[Category],
    periods: list[Period],
    config: AggregationConfig,
    tz_name: str | None = None,
) -> TableData:
    """Table rows for `periods`, one of the five TableData variants."""
    if category.type == "value" and not category.has_children:
        return _simple_value_table(events, category, periods, config, tz_name)

    totals = _totals_by_category(events, category, periods, config, tz_name)

    if category.has_children:
        members = [category, *child_categories]
        rows: list[WithChildrenPeriodData] = []
        for p in periods:
            bucket = totals[p.key]
            children = [
                ChildValue(name=_display_name(member), value=bucket[member.id])
                for member in members
                if bucket.get(member.id, 0) > 0
            ]
            rows.append(
                WithChildrenPeriodData(
                    label=p.label,
                    key=p.key,
                    children=children,
                    sum=sum(c.value for c in children),
                )
            )
        return WithChildrenTable(periods=rows)

    flat = [
        AccumulatedPeriodData(label=p.label, key=p.key, sum=totals[p.key].get(category.id, 0))
        for p in periods
    ]
    if category.type == "protocol":
        return ProtocolTable(periods=flat)
    return AccumulatedTable(periods=flat)
