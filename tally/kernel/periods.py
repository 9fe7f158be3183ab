"""Period boundaries - pure local-time calendar arithmetic.

All timestamps are epoch milliseconds. "Local" means settings.default_tz
unless a tz_name is passed. Every interval is half-open: [from, to).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from tally.config import settings
from tally.kernel.models import AggregationConfig, AggregationMode, Boundaries, Period

logger = logging.getLogger(__name__)


def local_tz(tz_name: str | None = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.default_tz)


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def from_ms(ms: int, tz: ZoneInfo) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz)


def local_date(ms: int, tz: ZoneInfo) -> date:
    return from_ms(ms, tz).date()


def day_start_ms(day: date, tz: ZoneInfo) -> int:
    """First instant of a local calendar day."""
    return to_ms(datetime.combine(day, time.min, tzinfo=tz))


def start_of_day(ms: int, tz_name: str | None = None) -> int:
    tz = local_tz(tz_name)
    return day_start_ms(local_date(ms, tz), tz)


def _js_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def _daily(day: date, tz: ZoneInfo) -> Boundaries:
    return Boundaries(day_start_ms(day, tz), day_start_ms(day + timedelta(days=1), tz))


def get_boundaries(
    mode: AggregationMode | str,
    week_start_day: int,
    aggregation_days: int | None,
    reference: int,
    anchor_start_date: int | None = None,
    tz_name: str | None = None,
) -> Boundaries:
    """Return the period of `mode` that contains `reference`.

    - daily: the local day.
    - weekly: seven days starting on `week_start_day` (0=Sunday).
    - monthly: the calendar month.
    - custom: blocks of `aggregation_days` days counted from the anchor's
      local day, in both directions. Without days or anchor, daily.
    """
    tz = local_tz(tz_name)
    day = local_date(reference, tz)
    mode = AggregationMode(mode)

    if mode is AggregationMode.weekly:
        offset = (_js_weekday(day) - week_start_day + 7) % 7
        week_start = day - timedelta(days=offset)
        return Boundaries(day_start_ms(week_start, tz), day_start_ms(week_start + timedelta(days=7), tz))

    if mode is AggregationMode.monthly:
        first = day.replace(day=1)
        return Boundaries(day_start_ms(first, tz), day_start_ms(_first_of_next_month(first), tz))

    if mode is AggregationMode.custom:
        if not aggregation_days or aggregation_days < 1 or anchor_start_date is None:
            logger.debug("Custom period without days/anchor, falling back to daily")
            return _daily(day, tz)
        anchor = local_date(anchor_start_date, tz)
        period_index = (day - anchor).days // aggregation_days
        period_start = anchor + timedelta(days=period_index * aggregation_days)
        period_end = period_start + timedelta(days=aggregation_days)
        return Boundaries(day_start_ms(period_start, tz), day_start_ms(period_end, tz))

    return _daily(day, tz)


def boundaries_for(config: AggregationConfig, reference: int, tz_name: str | None = None) -> Boundaries:
    return get_boundaries(
        config.mode,
        config.week_start_day,
        config.aggregation_days,
        reference,
        config.anchor_start_date,
        tz_name,
    )


def iter_boundaries(
    config: AggregationConfig,
    range_from: int,
    range_to: int,
    tz_name: str | None = None,
) -> list[Boundaries]:
    """Contiguous periods covering [range_from, range_to], ascending.

    Starts with the period containing range_from's day and keeps going while
    the next period starts on or before range_to's day.
    """
    end_day = start_of_day(range_to, tz_name)
    first = boundaries_for(config, start_of_day(range_from, tz_name), tz_name)
    result = [first]
    current = first.to_ms
    while current <= end_day:
        boundaries = boundaries_for(config, current, tz_name)
        if boundaries.from_ms != result[-1].from_ms:
            result.append(boundaries)
        current = boundaries.to_ms
    return result


def period_label(mode: AggregationMode | str, boundaries: Boundaries, tz_name: str | None = None) -> str:
    """Short German-style label: "15.01.", "15.01. - 21.01.", "01.2024"."""
    tz = local_tz(tz_name)
    start = local_date(boundaries.from_ms, tz)
    mode = AggregationMode(mode)
    if mode is AggregationMode.monthly:
        return start.strftime("%m.%Y")
    last = local_date(boundaries.to_ms, tz) - timedelta(days=1)
    if last == start:
        return start.strftime("%d.%m.")
    return f"{start:%d.%m.} - {last:%d.%m.}"


def build_periods(
    config: AggregationConfig,
    range_from: int,
    range_to: int,
    tz_name: str | None = None,
) -> list[Period]:
    return [
        Period(
            from_ms=b.from_ms,
            to_ms=b.to_ms,
            key=str(b.from_ms),
            label=period_label(config.mode, b, tz_name),
        )
        for b in iter_boundaries(config, range_from, range_to, tz_name)
    ]
