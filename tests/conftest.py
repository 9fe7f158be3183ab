"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from tally.config import settings
from tally.db import get_session
from tally.kernel.models import Category, Event, Target
from tally.main import app


def ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """Epoch ms of a local wall-clock time in the default zone."""
    dt = datetime(year, month, day, hour, minute, tzinfo=ZoneInfo(settings.default_tz))
    return int(dt.timestamp() * 1000)


def make_event(category: str, timestamp: int, data: str = "", event_id: str | None = None) -> Event:
    return Event(id=event_id or f"{category}-{timestamp}", category=category, timestamp=timestamp, data=data)


def make_category(
    category_id: str = "water",
    category_type: str = "valueAccumulative",
    config: str = "volume",
    **kwargs: Any,
) -> Category:
    return Category(id=category_id, name=kwargs.pop("name", category_id), type=category_type, config=config, **kwargs)


def make_target(
    schedule: str = "DTSTART:20240101T000000Z\nRRULE:FREQ=DAILY",
    category: str = "water",
    **kwargs: Any,
) -> Target:
    return Target(id=kwargs.pop("id", "t1"), name=kwargs.pop("name", "Goal"), category=category, schedule=schedule, **kwargs)


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession used in endpoint tests."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, rowcount: int = 0):
        self._rows = rows or []
        self.rowcount = rowcount
        self.executed: list[tuple[Any, Any]] = []
        self.commits = 0

    async def execute(self, stmt, params=None):
        self.executed.append((stmt, params))
        return FakeResult(self._rows, self.rowcount)

    async def commit(self):
        self.commits += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]], rowcount: int = 0):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []
        self.rowcount = rowcount

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (override _rows in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependency so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def water():
    return make_category("water", "valueAccumulative", "volume", icon="💧", name="Wasser")


@pytest.fixture()
def pressure():
    return make_category("bp", "value", "", name="Blutdruck")
