"""
Column layout for concurrent events.

Each event is laid out against its *local* cluster: itself plus the events
it directly overlaps. The cluster is sorted by id, the event takes the
column matching its position, and every column is 1/len(cluster) wide.

This is pairwise rather than transitive. Events whose local
clusters are the same set always get disjoint columns. In an overlap chain
(A–B and B–C overlap, A–C do not) the clusters differ: A and C see two
events, B sees three, so B's middle third runs into the half-width
columns A and C were given. Callers that need a fully consistent layout
must group by connected component first.

The left offset is computed as index / concurrency rather than
index * width. The two can differ in the last bit (3/5 is 0.6 while
3 * (1/5) is 0.6000000000000001), so compare offsets with a tolerance.
"""

import logging
from typing import Iterable, Mapping

from .models import LayoutPosition, ScheduledEvent

logger = logging.getLogger(__name__)


def local_cluster(
    event: ScheduledEvent,
    overlaps: Mapping[str, list[ScheduledEvent]],
) -> list[ScheduledEvent]:
    """The event plus its direct overlaps, sorted by id."""
    cluster = {event.id: event}
    for other in overlaps.get(event.id, []):
        cluster.setdefault(other.id, other)
    return [cluster[event_id] for event_id in sorted(cluster)]


def assign_layout(
    events: Iterable[ScheduledEvent],
    overlaps: Mapping[str, list[ScheduledEvent]],
) -> dict[str, LayoutPosition]:
    """
    Compute the horizontal position of every event.

    Depends only on ids and the overlap map, so the same event set always
    lands in the same columns regardless of fetch order.
    """
    positions: dict[str, LayoutPosition] = {}

    for event in sorted(events, key=lambda ev: ev.id):
        cluster = local_cluster(event, overlaps)
        concurrency = len(cluster)
        my_index = [member.id for member in cluster].index(event.id)

        positions[event.id] = LayoutPosition(
            width_fraction=1 / concurrency,
            left_fraction=my_index / concurrency,
            concurrency=concurrency,
        )

    logger.debug(
        "Assigned layout",
        extra={
            "event_count": len(positions),
            "max_concurrency": max((p.concurrency for p in positions.values()), default=0),
        }
    )

    return positions
