"""Database connector - async access to categories, events, targets and graphs.

Tables:
  categories (id, name, icon, type, config, children JSONB, inverted)
  events     (id, category, timestamp BIGINT epoch ms, data)
  targets    (id, name, category, schedule, config, period_type, period_days, week_start_day)
  graphs     (id, name, type, category, range, config JSONB, "order")

Lookups return None / empty lists when nothing is found - never raise for
missing rows.
"""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from tally.config import settings
from tally.kernel.models import Category, Event, Graph, Target


async def _fetch_dicts(session: AsyncSession, stmt, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    result = await session.execute(stmt, params or {})
    columns = list(result.keys())
    return [dict(zip(columns, r)) for r in result.fetchall()]


def _json(value: Any, empty: Any) -> Any:
    """JSONB columns come back as text through raw asyncpg queries."""
    if value is None:
        return empty
    if isinstance(value, str):
        return json.loads(value) if value.strip() else empty
    return value


def _present(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in row.items() if v is not None}


def _category(row: dict[str, Any]) -> Category:
    return Category.model_validate({**_present(row), "children": _json(row.get("children"), [])})


def _target(row: dict[str, Any]) -> Target:
    cleaned = _present(row)
    cleaned.setdefault("period_type", settings.default_target_period)
    cleaned.setdefault("week_start_day", settings.default_week_start_day)
    return Target.model_validate(cleaned)


def _graph(row: dict[str, Any]) -> Graph:
    config = {"week_start_day": settings.default_week_start_day, **_json(row.get("config"), {})}
    return Graph.model_validate({**_present(row), "config": config})


async def fetch_events_in_range(
    session: AsyncSession,
    category_ids: set[str],
    start: int,
    end: int,
) -> list[Event]:
    """Events of any of `category_ids` with start <= timestamp < end, oldest first."""
    if not category_ids:
        return []
    stmt = text(
        "SELECT id, category, timestamp, data FROM events "
        "WHERE category IN :ids AND timestamp >= :start AND timestamp < :end "
        "ORDER BY timestamp"
    ).bindparams(bindparam("ids", expanding=True))
    rows = await _fetch_dicts(session, stmt, {"ids": sorted(category_ids), "start": start, "end": end})
    return [Event.model_validate(r) for r in rows]


async def fetch_category(session: AsyncSession, category_id: str) -> Category | None:
    rows = await _fetch_dicts(
        session,
        text("SELECT id, name, icon, type, config, children, inverted FROM categories WHERE id = :id"),
        {"id": category_id},
    )
    return _category(rows[0]) if rows else None


async def fetch_categories(session: AsyncSession, category_ids: list[str]) -> list[Category]:
    if not category_ids:
        return []
    stmt = text(
        "SELECT id, name, icon, type, config, children, inverted FROM categories WHERE id IN :ids"
    ).bindparams(bindparam("ids", expanding=True))
    rows = await _fetch_dicts(session, stmt, {"ids": list(category_ids)})
    return [_category(r) for r in rows]


async def fetch_targets(session: AsyncSession) -> list[Target]:
    rows = await _fetch_dicts(
        session,
        text(
            "SELECT id, name, category, schedule, config, period_type, period_days, week_start_day "
            "FROM targets ORDER BY name"
        ),
    )
    return [_target(r) for r in rows]


async def fetch_target(session: AsyncSession, target_id: str) -> Target | None:
    rows = await _fetch_dicts(
        session,
        text(
            "SELECT id, name, category, schedule, config, period_type, period_days, week_start_day "
            "FROM targets WHERE id = :id"
        ),
        {"id": target_id},
    )
    return _target(rows[0]) if rows else None


async def fetch_graph(session: AsyncSession, graph_id: str) -> Graph | None:
    rows = await _fetch_dicts(
        session,
        text('SELECT id, name, type, category, range, config, "order" FROM graphs WHERE id = :id'),
        {"id": graph_id},
    )
    return _graph(rows[0]) if rows else None


async def insert_event(session: AsyncSession, event: Event) -> None:
    await session.execute(
        text("INSERT INTO events (id, category, timestamp, data) VALUES (:id, :category, :timestamp, :data)"),
        event.model_dump(),
    )
    await session.commit()


async def delete_event(session: AsyncSession, event_id: str) -> bool:
    result = await session.execute(text("DELETE FROM events WHERE id = :id"), {"id": event_id})
    await session.commit()
    return (result.rowcount or 0) > 0
