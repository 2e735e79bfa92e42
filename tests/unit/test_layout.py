"""
Unit tests for overlap detection and column layout.

Covers the layout guarantees the calendar relies on:
- events with the same local cluster never share horizontal space
- every column fits in the day (left + width <= 1, width = 1/concurrency)
- results depend on ids only, never on input order
- the pairwise (non-transitive) cluster rule, including its known gap
"""

import itertools
from datetime import datetime

import pytest

from academy_calendar.core.scheduling.layout import assign_layout, local_cluster
from academy_calendar.core.scheduling.models import ScheduledEvent, TimeInterval
from academy_calendar.core.scheduling.overlap import detect_overlaps


def event(event_id: str, start: str, end: str) -> ScheduledEvent:
    """Event on 2026-03-02 from 'HH:MM' to 'HH:MM'."""
    def parse(hhmm: str) -> datetime:
        hour, minute = hhmm.split(":")
        return datetime(2026, 3, 2, int(hour), int(minute))

    return ScheduledEvent(id=event_id, interval=TimeInterval(parse(start), parse(end)))


def layout(events: list[ScheduledEvent]):
    return assign_layout(events, detect_overlaps(events))


def ranges_intersect(a, b) -> bool:
    return a.left_fraction < b.right_fraction and b.left_fraction < a.right_fraction


@pytest.fixture
def busy_day() -> list[ScheduledEvent]:
    """A realistic Saturday: a few stacks of overlapping classes."""
    return [
        event("s-07", "08:00", "09:00"),
        event("s-03", "08:30", "09:30"),
        event("s-11", "08:45", "09:15"),
        event("s-01", "10:00", "11:00"),
        event("s-05", "10:00", "10:45"),
        event("s-09", "12:00", "13:30"),
        event("s-02", "12:30", "13:00"),
        event("s-04", "13:15", "14:00"),
        event("s-08", "17:00", "18:00"),
    ]


# ---------------------------------------------------------------------------
# Overlap Detector
# ---------------------------------------------------------------------------

class TestDetectOverlaps:
    """Tests for pairwise overlap detection."""

    def test_empty_input(self):
        assert detect_overlaps([]) == {}

    def test_isolated_event_has_empty_list(self):
        assert detect_overlaps([event("a", "09:00", "10:00")]) == {"a": []}

    def test_event_never_overlaps_itself(self, busy_day):
        overlaps = detect_overlaps(busy_day)
        for event_id, others in overlaps.items():
            assert event_id not in [other.id for other in others]

    def test_overlap_is_symmetric(self, busy_day):
        overlaps = detect_overlaps(busy_day)
        for event_id, others in overlaps.items():
            for other in others:
                assert event_id in [ev.id for ev in overlaps[other.id]]

    def test_touching_events_do_not_overlap(self):
        overlaps = detect_overlaps([
            event("a", "09:00", "10:00"),
            event("b", "10:00", "11:00"),
        ])
        assert overlaps == {"a": [], "b": []}

    def test_lists_are_sorted_by_id(self):
        overlaps = detect_overlaps([
            event("c", "09:00", "10:00"),
            event("a", "09:00", "10:00"),
            event("b", "09:00", "10:00"),
        ])
        assert [ev.id for ev in overlaps["c"]] == ["a", "b"]
        assert [ev.id for ev in overlaps["b"]] == ["a", "c"]


# ---------------------------------------------------------------------------
# Concrete Scenarios
# ---------------------------------------------------------------------------

class TestLayoutScenarios:
    """The reference scenarios for the calendar layout."""

    def test_boundary_events_each_get_full_width(self):
        """[09:00,10:00) and [10:00,11:00) don't overlap under half-open rules."""
        positions = layout([
            event("a", "09:00", "10:00"),
            event("b", "10:00", "11:00"),
        ])

        for event_id in ("a", "b"):
            assert positions[event_id].width_fraction == 1.0
            assert positions[event_id].left_fraction == 0

    def test_two_overlapping_events_split_the_column(self):
        positions = layout([
            event("b2", "09:30", "10:30"),
            event("a1", "09:00", "10:00"),
        ])

        assert positions["a1"].width_fraction == 0.5
        assert positions["a1"].left_fraction == 0
        assert positions["b2"].width_fraction == 0.5
        assert positions["b2"].left_fraction == 0.5

    def test_overlap_chain_is_not_coordinated_transitively(self):
        """
        A–B and B–C overlap, A–C do not.

        Each event only sees its direct overlaps, so B's cluster is {A,B,C}
        while A sees {A,B} and C sees {B,C}. B gets the middle third of the
        column, A the left half and C the right half, so B collides on
        screen with both of its neighbours. This is the known gap of the
        pairwise rule.
        """
        a = event("a", "09:00", "10:00")
        b = event("b", "09:30", "10:30")
        c = event("c", "10:15", "11:00")
        overlaps = detect_overlaps([a, b, c])
        positions = assign_layout([a, b, c], overlaps)

        assert [ev.id for ev in local_cluster(a, overlaps)] == ["a", "b"]
        assert [ev.id for ev in local_cluster(b, overlaps)] == ["a", "b", "c"]
        assert [ev.id for ev in local_cluster(c, overlaps)] == ["b", "c"]

        assert positions["a"].width_fraction == 0.5
        assert positions["a"].left_fraction == 0
        assert positions["b"].width_fraction == pytest.approx(1 / 3)
        assert positions["b"].left_fraction == pytest.approx(1 / 3)
        assert positions["c"].width_fraction == 0.5
        assert positions["c"].left_fraction == 0.5

        assert ranges_intersect(positions["a"], positions["b"])
        assert ranges_intersect(positions["b"], positions["c"])

    def test_isolated_event_unaffected_by_busy_neighbours(self, busy_day):
        positions = layout(busy_day)

        assert positions["s-08"].width_fraction == 1.0
        assert positions["s-08"].left_fraction == 0
        assert positions["s-08"].concurrency == 1


# ---------------------------------------------------------------------------
# Layout Properties
# ---------------------------------------------------------------------------

class TestLayoutProperties:
    """Properties that must hold for any day."""

    def test_same_cluster_overlapping_events_never_collide(self, busy_day):
        overlaps = detect_overlaps(busy_day)
        positions = assign_layout(busy_day, overlaps)
        by_id = {ev.id: ev for ev in busy_day}

        for first, second in itertools.combinations(busy_day, 2):
            if not first.interval.overlaps(second.interval):
                continue
            first_cluster = [ev.id for ev in local_cluster(by_id[first.id], overlaps)]
            second_cluster = [ev.id for ev in local_cluster(by_id[second.id], overlaps)]
            if first_cluster != second_cluster:
                continue
            assert not ranges_intersect(positions[first.id], positions[second.id])

    def test_columns_partition_the_day(self, busy_day):
        overlaps = detect_overlaps(busy_day)
        positions = assign_layout(busy_day, overlaps)

        for ev in busy_day:
            position = positions[ev.id]
            concurrency = len(overlaps[ev.id]) + 1
            assert position.concurrency == concurrency
            assert position.width_fraction == pytest.approx(1 / concurrency)
            assert position.right_fraction <= 1 + 1e-9

    def test_layout_ignores_input_order(self, busy_day):
        expected = layout(busy_day)

        for shuffled in (list(reversed(busy_day)), busy_day[3:] + busy_day[:3]):
            assert layout(shuffled) == expected

    def test_layout_is_idempotent(self, busy_day):
        first = layout(busy_day)
        second = layout(busy_day)

        assert first == second
        assert list(first) == list(second)

    def test_every_event_gets_a_position(self, busy_day):
        assert set(layout(busy_day)) == {ev.id for ev in busy_day}
