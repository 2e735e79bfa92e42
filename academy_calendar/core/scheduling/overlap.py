"""
Overlap detection for one day's events.

Overlap rule (half-open intervals):
    start < other_end AND other_start < end

An event ending at 10:00 does not overlap one starting at 10:00.
Two events starting at the same instant always overlap.
"""

import logging
from typing import Iterable

from .models import ScheduledEvent

logger = logging.getLogger(__name__)


def detect_overlaps(events: Iterable[ScheduledEvent]) -> dict[str, list[ScheduledEvent]]:
    """
    Map each event id to the other events it directly intersects.

    Every input id is a key, with an empty list when nothing overlaps it.
    An event never appears in its own list. Lists are ordered by id so the
    result does not depend on input order.
    """
    ordered = sorted(events, key=lambda ev: ev.id)
    overlaps: dict[str, list[ScheduledEvent]] = {ev.id: [] for ev in ordered}

    # O(n^2) is fine for a single day's classes.
    # Walking in id order keeps every list id-sorted as it is built.
    for i, event in enumerate(ordered):
        for other in ordered[i + 1:]:
            if event.interval.overlaps(other.interval):
                overlaps[event.id].append(other)
                overlaps[other.id].append(event)

    logger.debug(
        "Detected overlaps",
        extra={
            "event_count": len(ordered),
            "overlapping_events": sum(1 for others in overlaps.values() if others),
        }
    )

    return overlaps
