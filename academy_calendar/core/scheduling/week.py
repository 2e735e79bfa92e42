"""
Filtering and bucketing events into the seven day columns of a week.

Weeks start on Monday. An event belongs to the day its start falls on;
a class running past midnight stays in its start day's column.
"""

from datetime import date, timedelta
from typing import Iterable

from .models import EventFilters, ScheduledEvent


DAYS_PER_WEEK = 7


def week_start_for(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def filter_events(
    events: Iterable[ScheduledEvent],
    filters: EventFilters,
) -> list[ScheduledEvent]:
    """Keep only events matching every selected program / coach / location."""
    return [event for event in events if filters.matches(event)]


def assemble_week(
    all_events: Iterable[ScheduledEvent],
    filters: EventFilters,
    week_start: date,
) -> dict[int, list[ScheduledEvent]]:
    """
    Bucket the filtered events into day indexes 0..6.

    All seven keys are always present. Events starting outside the week are
    dropped. Within a day, events are ordered by start time, then id.
    """
    days: dict[int, list[ScheduledEvent]] = {i: [] for i in range(DAYS_PER_WEEK)}

    for event in filter_events(all_events, filters):
        day_index = (event.start_date - week_start).days
        if 0 <= day_index < DAYS_PER_WEEK:
            days[day_index].append(event)

    for bucket in days.values():
        bucket.sort(key=lambda ev: (ev.interval.start, ev.id))

    return days
