"""Tests for table shaping."""

from __future__ import annotations

from pydantic import TypeAdapter

from tally.kernel.models import AggregationConfig, TableData
from tally.kernel.periods import build_periods
from tally.kernel.table_data import shape_table

from tests.conftest import make_category, make_event, ms

DAILY = AggregationConfig(mode="daily")


def _periods(config: AggregationConfig = DAILY):
    return build_periods(config, ms(2024, 1, 15), ms(2024, 1, 17))


class TestValueCategories:
    def test_two_events_in_one_period_are_kept_apart(self):
        category = make_category("sleep", "value", "time")
        events = [
            make_event("sleep", ms(2024, 1, 15, 7, 5), "1h 30min"),
            make_event("sleep", ms(2024, 1, 15, 14, 40), "20 min"),
        ]
        table = shape_table(events, category, [], _periods(), DAILY)

        assert table.type == "simpleValueMultiple"
        first = table.periods[0]
        assert [e.time for e in first.events] == ["07:05", "14:40"]
        assert [e.display_value for e in first.events] == ["1h 30 min", "20 min"]
        assert first.sum == 6600
        assert table.periods[1].events == []

    def test_one_event_per_period_is_single(self):
        category = make_category("sleep", "value", "time")
        events = [
            make_event("sleep", ms(2024, 1, 15, 7), "8 h"),
            make_event("sleep", ms(2024, 1, 17, 7), "7 h"),
        ]
        table = shape_table(events, category, [], _periods(), DAILY)

        assert table.type == "simpleValueSingle"
        assert [p.sum for p in table.periods] == [28800, 0, 25200]
        assert [p.label for p in table.periods] == ["15.01.", "16.01.", "17.01."]

    def test_free_label_values_shown_as_entered(self, pressure):
        events = [
            make_event("bp", ms(2024, 1, 15, 7), "120/80"),
            make_event("bp", ms(2024, 1, 15, 19), "130/85"),
        ]
        table = shape_table(events, pressure, [], _periods(), DAILY)
        assert [e.display_value for e in table.periods[0].events] == ["120/80", "130/85"]
        assert table.periods[0].sum == 0


class TestAccumulatedCategories:
    def test_always_summed(self, water):
        events = [
            make_event("water", ms(2024, 1, 15, 8), "500"),
            make_event("water", ms(2024, 1, 15, 9), "250"),
            make_event("water", ms(2024, 1, 16, 9), "1000"),
        ]
        table = shape_table(events, water, [], _periods(), DAILY)
        assert table.type == "accumulated"
        assert [p.sum for p in table.periods] == [750, 1000, 0]

    def test_weekly_buckets(self, water):
        config = AggregationConfig(mode="weekly", week_start_day=1)
        periods = build_periods(config, ms(2024, 1, 15), ms(2024, 1, 28))
        events = [make_event("water", ms(2024, 1, 21, 23, 59), "100"), make_event("water", ms(2024, 1, 22), "200")]
        table = shape_table(events, water, [], periods, config)
        assert [p.sum for p in table.periods] == [100, 200]

    def test_protocol_counts(self):
        category = make_category("pill", "protocol", "Tabletten")
        events = [
            make_event("pill", ms(2024, 1, 16, 8), "Ibuprofen"),
            make_event("pill", ms(2024, 1, 16, 20), "Ibuprofen"),
        ]
        table = shape_table(events, category, [], _periods(), DAILY)
        assert table.type == "protocol"
        assert [p.sum for p in table.periods] == [0, 2, 0]


class TestWithChildren:
    def test_breakdown_per_member(self):
        drinks = make_category("drinks", "valueAccumulative", "volume", name="Getränke", children=["tea", "juice"])
        tea = make_category("tea", "valueAccumulative", "volume", name="Tee", icon="🍵")
        juice = make_category("juice", "valueAccumulative", "volume", name="Saft")
        events = [
            make_event("drinks", ms(2024, 1, 15, 8), "100"),
            make_event("tea", ms(2024, 1, 15, 9), "250"),
            make_event("tea", ms(2024, 1, 15, 15), "250"),
            make_event("juice", ms(2024, 1, 16, 9), "200"),
        ]
        table = shape_table(events, drinks, [tea, juice], _periods(), DAILY)

        assert table.type == "withChildren"
        first = table.periods[0]
        assert [(c.name, c.value) for c in first.children] == [("Getränke", 100), ("🍵 Tee", 500)]
        assert first.sum == 600
        assert [(c.name, c.value) for c in table.periods[1].children] == [("Saft", 200)]
        assert table.periods[2].children == []
        assert table.periods[2].sum == 0

    def test_children_override_value_type(self):
        parent = make_category("sports", "protocol", "Sport", children=["run"])
        run = make_category("run", "protocol", "Sport", name="Laufen")
        events = [make_event("run", ms(2024, 1, 15, 8)), make_event("run", ms(2024, 1, 15, 18))]
        table = shape_table(events, parent, [run], _periods(), DAILY)
        assert table.type == "withChildren"
        assert table.periods[0].children[0].value == 2


def test_serialises_with_type_tag(water):
    table = shape_table([], water, [], _periods(), DAILY)
    payload = TypeAdapter(TableData).dump_python(table, mode="json")
    assert payload["type"] == "accumulated"
    assert TypeAdapter(TableData).validate_python(payload) == table
