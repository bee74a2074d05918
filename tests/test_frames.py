from datetime import datetime, timedelta, timezone

from azurecosts.aggregator import aggregate
from azurecosts.frames import (
    build_frame,
    build_split_frame,
    build_total_frame,
    day_axis,
)
from azurecosts.models import LineItem, SubscriptionWindow

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 3, tzinfo=timezone.utc)


def _item(rg: "str", day: "int", cost: "float") -> "LineItem":
    ts = datetime(2024, 1, day, tzinfo=timezone.utc)
    return LineItem(
        subscription_guid="guid-1",
        instance_id=f"/subscriptions/sub-1/resourceGroups/{rg}/providers/p/r",
        usage_start=ts,
        usage_end=ts,
        pretax_cost=cost,
    )


def _window() -> "SubscriptionWindow":
    return aggregate(
        "sub-1",
        START,
        END,
        [_item("a", 1, 2.0), _item("b", 1, 3.0), _item("a", 2, 4.0)],
    )


class TestDayAxis:
    def test_half_open(self) -> "None":
        days = day_axis(START, END)
        assert days == [START, START + timedelta(days=1)]

    def test_empty_when_equal(self) -> "None":
        assert day_axis(START, START) == []

    def test_steps_by_24h(self) -> "None":
        days = day_axis(START, START + timedelta(days=40))
        assert len(days) == 40
        for prev, nxt in zip(days, days[1:]):
            assert nxt - prev == timedelta(hours=24)


class TestBuildSplitFrame:
    def test_one_column_per_resource_group(self) -> "None":
        frame = build_split_frame(_window())
        assert frame.name == "response"
        assert sorted(frame.field_names) == ["a", "b", "time"]
        assert frame.field_names[-1] == "time"
        assert frame.get_field("a").values == [2.0, 4.0]
        assert frame.get_field("b").values == [3.0, 0.0]
        assert frame.get_field("time").values == [START, START + timedelta(days=1)]

    def test_columns_share_length(self) -> "None":
        frame = build_split_frame(_window())
        lengths = {len(f.values) for f in frame.fields}
        assert lengths == {2}

    def test_empty_window_has_only_time(self) -> "None":
        window = SubscriptionWindow("sub-1", START, START + timedelta(days=3))
        frame = build_split_frame(window)
        assert frame.field_names == ["time"]
        assert len(frame.get_field("time").values) == 3


class TestBuildTotalFrame:
    def test_sums_across_resource_groups(self) -> "None":
        frame = build_total_frame(_window())
        assert frame.name == "response"
        assert frame.field_names == ["time", "subscription"]
        assert frame.get_field("subscription").values == [5.0, 4.0]

    def test_empty_window_is_zero_filled(self) -> "None":
        window = SubscriptionWindow("sub-1", START, START + timedelta(days=3))
        frame = build_total_frame(window)
        assert len(frame.get_field("time").values) == 3
        assert frame.get_field("subscription").values == [0.0, 0.0, 0.0]

    def test_total_equals_sum_of_split(self) -> "None":
        window = _window()
        split = build_split_frame(window)
        total = build_total_frame(window)
        for i, amount in enumerate(total.get_field("subscription").values):
            expected = sum(f.values[i] for f in split.fields if f.name != "time")
            assert amount == expected


class TestBuildFrame:
    def test_dispatches_on_mode(self) -> "None":
        window = _window()
        assert "subscription" in build_frame(window, split=False).field_names
        assert "a" in build_frame(window, split=True).field_names

    def test_to_dict_renders_iso_timestamps(self) -> "None":
        data = build_total_frame(_window()).to_dict()
        assert data["name"] == "response"
        assert data["fields"][0]["values"][0] == "2024-01-01T00:00:00+00:00"
