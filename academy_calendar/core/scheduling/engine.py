"""
Week layout engine.

Composes the calendar pieces into one pure call:

    events + view context + grid window -> positioned, classified events per day

Nothing here holds state between calls, so a stale or superseded event set
can be laid out safely; the caller just discards the result.
"""

import logging
from typing import Iterable, Optional

from .capacity import classify
from .grid import map_to_geometry
from .layout import assign_layout
from .models import (
    DayColumn,
    GridWindow,
    PositionedEvent,
    RejectedRecord,
    ScheduledEvent,
    ViewContext,
    WeekLayout,
)
from .overlap import detect_overlaps
from .week import assemble_week

logger = logging.getLogger(__name__)


def layout_day(
    events: Iterable[ScheduledEvent],
    window: GridWindow,
) -> list[PositionedEvent]:
    """
    Position one day's events.

    Output is ordered by start time, then id, whatever the input order.
    """
    day_events = sorted(events, key=lambda ev: (ev.interval.start, ev.id))
    overlaps = detect_overlaps(day_events)
    positions = assign_layout(day_events, overlaps)

    return [
        PositionedEvent(
            event=event,
            geometry=map_to_geometry(event.interval, window),
            layout=positions[event.id],
            status=classify(event.enrollment_count, event.min_viable_enrollment),
        )
        for event in day_events
    ]


def layout_week(
    events: Iterable[ScheduledEvent],
    view: ViewContext,
    window: Optional[GridWindow] = None,
    rejected: Optional[list[RejectedRecord]] = None,
) -> WeekLayout:
    """
    Build the render model for the week containing `view.view_date`.

    `rejected` is passed through untouched so records skipped upstream
    still reach the UI alongside the week they belong to.
    """
    window = window or GridWindow()
    buckets = assemble_week(events, view.filters, view.week_start)

    days = [
        DayColumn(index=index, date=day, events=layout_day(buckets[index], window))
        for index, day in enumerate(view.week_days)
    ]

    week = WeekLayout(
        week_start=view.week_start,
        window=window,
        days=days,
        rejected=list(rejected or []),
    )

    logger.info(
        "Laid out calendar week",
        extra={
            "week_start": view.week_start.isoformat(),
            "event_count": week.event_count,
            "rejected_count": len(week.rejected),
        }
    )

    return week
