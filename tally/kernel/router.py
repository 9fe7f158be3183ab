"""Kernel HTTP router - periods, targets, graphs, events."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tally.auth import verify_api_key
from tally.config import settings
from tally.db import get_session
from tally.kernel import builders, connector
from tally.kernel.errors import ConversionError
from tally.kernel.models import (
    AggregationMode,
    Category,
    ChartData,
    Event,
    EventCreate,
    PeriodInfo,
    TableData,
    TargetCard,
    ValidationResult,
)
from tally.kernel.periods import day_start_ms, get_boundaries, local_tz, period_label
from tally.kernel.units import convert_many, get_default_unit, to_default
from tally.kernel.validation import UNIT_EXAMPLES, validate_measurement

router = APIRouter(prefix="/kernel", tags=["kernel"], dependencies=[Depends(verify_api_key)])


def _parse_date(value: str | None, name: str, tz_name: str) -> date:
    if value is None:
        return datetime.now(local_tz(tz_name)).date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date for '{name}': {value}")


def _tz_name(tz: str | None) -> str:
    tz_name = tz or settings.default_tz
    try:
        local_tz(tz_name)
    except (KeyError, ValueError):
        raise HTTPException(status_code=422, detail=f"Unknown timezone: {tz_name}")
    return tz_name


def _day_and_tz(date_str: str | None, tz: str | None) -> tuple[date, str]:
    tz_name = _tz_name(tz)
    return _parse_date(date_str, "date", tz_name), tz_name


# ---------------------------------------------------------------------------
# /kernel/periods
# ---------------------------------------------------------------------------


@router.get("/periods", response_model=PeriodInfo)
async def get_period(
    mode: AggregationMode = Query(default=AggregationMode.daily),
    date_str: str | None = Query(default=None, alias="date", description="Reference day (YYYY-MM-DD)"),
    week_start_day: int = Query(default=settings.default_week_start_day, ge=0, le=6),
    aggregation_days: int | None = Query(default=None, ge=1),
    anchor: str | None = Query(default=None, description="Custom period anchor day (YYYY-MM-DD)"),
    tz: str | None = Query(default=None, description="Timezone (e.g. Europe/Berlin)"),
) -> PeriodInfo:
    tz_name = _tz_name(tz)
    local = local_tz(tz_name)
    reference = day_start_ms(_parse_date(date_str, "date", tz_name), local)
    anchor_ms = day_start_ms(_parse_date(anchor, "anchor", tz_name), local) if anchor else None

    boundaries = get_boundaries(mode, week_start_day, aggregation_days, reference, anchor_ms, tz_name)
    return PeriodInfo(
        mode=mode,
        from_ms=boundaries.from_ms,
        to_ms=boundaries.to_ms,
        label=period_label(mode, boundaries, tz_name),
    )


# ---------------------------------------------------------------------------
# /kernel/targets
# ---------------------------------------------------------------------------


@router.get("/targets", response_model=list[TargetCard])
async def list_targets_for_date(
    session: AsyncSession = Depends(get_session),
    date_str: str | None = Query(default=None, alias="date", description="Day (YYYY-MM-DD)"),
    tz: str | None = Query(default=None),
) -> list[TargetCard]:
    return await builders.build_targets_for_date(session, *_day_and_tz(date_str, tz))


@router.get("/targets/{target_id}/status", response_model=TargetCard)
async def get_target_status(
    target_id: str,
    session: AsyncSession = Depends(get_session),
    date_str: str | None = Query(default=None, alias="date"),
    tz: str | None = Query(default=None),
) -> TargetCard:
    card = await builders.build_target_status(session, target_id, *_day_and_tz(date_str, tz))
    if card is None:
        raise HTTPException(status_code=404, detail=f"Unknown target: {target_id}")
    return card


# ---------------------------------------------------------------------------
# /kernel/graphs
# ---------------------------------------------------------------------------


@router.get("/graphs/{graph_id}/chart", response_model=ChartData)
async def get_graph_chart(
    graph_id: str,
    session: AsyncSession = Depends(get_session),
    date_str: str | None = Query(default=None, alias="date"),
    tz: str | None = Query(default=None),
) -> ChartData:
    chart = await builders.build_chart(session, graph_id, *_day_and_tz(date_str, tz))
    if chart is None:
        raise HTTPException(status_code=404, detail=f"Unknown graph or category: {graph_id}")
    return chart


@router.get("/graphs/{graph_id}/table", response_model=TableData)
async def get_graph_table(
    graph_id: str,
    session: AsyncSession = Depends(get_session),
    date_str: str | None = Query(default=None, alias="date"),
    tz: str | None = Query(default=None),
):
    table = await builders.build_table(session, graph_id, *_day_and_tz(date_str, tz))
    if table is None:
        raise HTTPException(status_code=404, detail=f"Unknown graph or category: {graph_id}")
    return table


# ---------------------------------------------------------------------------
# /kernel/events
# ---------------------------------------------------------------------------


def _to_base_unit(body: EventCreate, category: Category, base: str) -> str:
    """Accumulated values are stored as whole base-unit numbers."""
    if not body.data.strip():
        return body.data
    try:
        if body.unit:
            return str(to_default(category, body.unit, body.data))
        return str(math.floor(convert_many(body.data, base)))
    except ConversionError as exc:
        message = validate_measurement(body.data, category.config)
        raise HTTPException(status_code=422, detail=message if message is not True else str(exc))


@router.post("/events", response_model=Event, status_code=201)
async def create_event(
    body: EventCreate,
    session: AsyncSession = Depends(get_session),
) -> Event:
    category = await connector.fetch_category(session, body.category)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Unknown category: {body.category}")

    base = get_default_unit(category)
    if category.type == "valueAccumulative" and base is not None:
        data = _to_base_unit(body, category, base)
    elif category.type == "value" and category.config in UNIT_EXAMPLES:
        # single measurements stay free text with their unit
        data = f"{body.data} {body.unit}" if body.unit else body.data
        result = validate_measurement(data, category.config)
        if result is not True:
            raise HTTPException(status_code=422, detail=result)
    else:
        data = body.data

    event = Event(id=str(uuid.uuid4()), category=category.id, timestamp=body.timestamp, data=data)
    await connector.insert_event(session, event)
    return event


@router.delete("/events/{event_id}", status_code=204)
async def remove_event(
    event_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await connector.delete_event(session, event_id):
        raise HTTPException(status_code=404, detail=f"Unknown event: {event_id}")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# /kernel/validate
# ---------------------------------------------------------------------------


@router.get("/validate", response_model=ValidationResult)
async def validate_value(
    value: str = Query(default=""),
    measure: str | None = Query(default=None, description="volume | time | mass"),
) -> ValidationResult:
    result = validate_measurement(value, measure)
    if result is True:
        return ValidationResult(valid=True)
    return ValidationResult(valid=False, message=result)
