"""Recurrence counting for target schedules.

Schedules are RFC 5545 snippets ("DTSTART:20240101T000000Z\\nRRULE:...").
They are authored against UTC, while callers ask about local days. The rule
is therefore evaluated in floating time: the UTC marker of DTSTART/UNTIL
is dropped and the query bounds are the local wall-clock readings, which
is the same as reading local wall-clock time as if it were UTC.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from dateutil.rrule import rrule, rruleset, rrulestr

from tally.kernel.models import Target
from tally.kernel.periods import day_start_ms, from_ms, local_tz

logger = logging.getLogger(__name__)

_DTSTART = re.compile(r"DTSTART(?:;[^:]*)?:(\d{8})(?:T(\d{6}))?Z?", re.IGNORECASE)


def parse_schedule(schedule: str) -> rrule | rruleset | None:
    """Parse a schedule string; None (and a warning) when it is unusable."""
    try:
        return rrulestr(schedule, ignoretz=True)
    except (ValueError, TypeError) as exc:
        logger.warning("Unparseable schedule %r: %s", schedule, exc)
        return None


def schedule_anchor(schedule: str, tz_name: str | None = None) -> int | None:
    """Local midnight of the DTSTART calendar day, epoch ms. None if absent."""
    match = _DTSTART.search(schedule)
    if match is None:
        return None
    try:
        day = datetime.strptime(match.group(1), "%Y%m%d").date()
    except ValueError:
        return None
    return day_start_ms(day, local_tz(tz_name))


def _floating(ms: int, tz_name: str | None) -> datetime:
    """Local wall-clock reading of `ms` without a zone."""
    return from_ms(ms, local_tz(tz_name)).replace(tzinfo=None)


def count_occurrences(target: Target, start: int, end: int, tz_name: str | None = None) -> int:
    """Scheduled occurrences in [start, end), epoch ms.

    The rule query excludes both ends, so the lower bound is moved back one
    second to make `start` itself count.
    """
    rule = parse_schedule(target.schedule)
    if rule is None:
        return 0
    after = _floating(start, tz_name) - timedelta(seconds=1)
    before = _floating(end, tz_name)
    if before <= after:
        return 0
    return len(rule.between(after, before, inc=False))
