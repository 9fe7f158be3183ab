"""Tracking records and engine result contracts - Pydantic v2 models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

# Category value-kinds with their display labels
CATEGORY_TYPES: dict[str, str] = {
    "todo": "Aufgabe",
    "value": "Mit einfachem Messwert",
    "valueAccumulative": "Mit summiertem Messwert",
    "protocol": "Protokoll",
}


class AggregationMode(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    custom = "custom"


# Targets frame their evaluation window with the same four granularities
PeriodType = AggregationMode


# ---------------------------------------------------------------------------
# Stored records (current-version shape only)
# ---------------------------------------------------------------------------


class Category(BaseModel):
    id: str
    name: str = ""
    icon: str = ""
    type: str  # one of CATEGORY_TYPES; unknown values are tolerated
    config: str = ""  # "volume" | "time" | "mass" or a free label
    children: list[str] = Field(default_factory=list)
    inverted: bool = False

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


class Event(BaseModel):
    id: str
    category: str
    timestamp: int  # epoch milliseconds
    data: str = ""


class Target(BaseModel):
    id: str
    name: str = ""
    category: str
    schedule: str  # "DTSTART:...\nRRULE:..."
    config: str = ""  # expected sum in the base unit (valueAccumulative only)
    period_type: PeriodType = PeriodType.daily
    period_days: int | None = None
    week_start_day: int = 1


class AggregationConfig(BaseModel):
    mode: AggregationMode = AggregationMode.daily
    week_start_day: int = 1
    aggregation_days: int | None = None
    anchor_start_date: int | None = None  # epoch milliseconds


class GraphConfig(BaseModel):
    upper_limit: str | None = None
    lower_limit: str | None = None
    aggregation_mode: AggregationMode = AggregationMode.daily
    week_start_day: int = 1
    aggregation_days: int | None = None
    start_date: int | None = None

    def aggregation(self) -> AggregationConfig:
        return AggregationConfig(
            mode=self.aggregation_mode,
            week_start_day=self.week_start_day,
            aggregation_days=self.aggregation_days,
            anchor_start_date=self.start_date,
        )


class Graph(BaseModel):
    id: str
    name: str = ""
    type: Literal["bar", "line", "table"] = "line"
    category: str
    range: str = ""  # default span in seconds
    config: GraphConfig = Field(default_factory=GraphConfig)
    order: int = 0


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Boundaries:
    from_ms: int
    to_ms: int  # exclusive


class Period(BaseModel):
    from_ms: int
    to_ms: int
    key: str
    label: str


class SeriesPoint(BaseModel):
    x: datetime
    y: float


class ChartData(BaseModel):
    unit: str | None = None
    points: list[SeriesPoint] = Field(default_factory=list)
    upper_limit: float | None = None
    lower_limit: float | None = None


class TargetStatus(BaseModel):
    value: int | str
    percentage: float  # 0-100
    expected: int | str
    color: str
    period_from: int
    period_to: int


# ---------------------------------------------------------------------------
# Table shapes
# ---------------------------------------------------------------------------


class EventEntry(BaseModel):
    time: str  # "HH:MM" local
    display_value: str
    raw_value: float


class SimpleValuePeriodData(BaseModel):
    label: str
    key: str
    events: list[EventEntry] = Field(default_factory=list)
    sum: float = 0


class AccumulatedPeriodData(BaseModel):
    label: str
    key: str
    sum: float = 0


class ChildValue(BaseModel):
    name: str
    value: float


class WithChildrenPeriodData(BaseModel):
    label: str
    key: str
    children: list[ChildValue] = Field(default_factory=list)
    sum: float = 0


class SimpleValueMultipleTable(BaseModel):
    type: Literal["simpleValueMultiple"] = "simpleValueMultiple"
    periods: list[SimpleValuePeriodData]


class SimpleValueSingleTable(BaseModel):
    type: Literal["simpleValueSingle"] = "simpleValueSingle"
    periods: list[AccumulatedPeriodData]


class AccumulatedTable(BaseModel):
    type: Literal["accumulated"] = "accumulated"
    periods: list[AccumulatedPeriodData]


class WithChildrenTable(BaseModel):
    type: Literal["withChildren"] = "withChildren"
    periods: list[WithChildrenPeriodData]


class ProtocolTable(BaseModel):
    type: Literal["protocol"] = "protocol"
    periods: list[AccumulatedPeriodData]


TableData = Annotated[
    Union[
        SimpleValueMultipleTable,
        SimpleValueSingleTable,
        AccumulatedTable,
        WithChildrenTable,
        ProtocolTable,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------


class TargetCard(BaseModel):
    target: Target
    status: TargetStatus


class PeriodInfo(BaseModel):
    mode: AggregationMode
    from_ms: int
    to_ms: int
    label: str


class EventCreate(BaseModel):
    category: str
    timestamp: int
    data: str = ""
    unit: str | None = None  # when set, data is converted into the category's base unit


class ValidationResult(BaseModel):
    valid: bool
    message: str | None = None
