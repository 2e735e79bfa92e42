"""
Weekly calendar layout.

Overlap detection, column layout, time-grid mapping, capacity status and
week assembly for the academy class calendar.
"""

from .capacity import classify
from .engine import layout_day, layout_week
from .grid import is_visible, map_to_geometry
from .layout import assign_layout, local_cluster
from .models import (
    ALL,
    CapacityStatus,
    DayColumn,
    EventFilters,
    EventSet,
    FetchError,
    FetchResult,
    FilterOption,
    FilterOptions,
    GridWindow,
    LayoutPosition,
    PixelGeometry,
    PositionedEvent,
    RejectedRecord,
    ScheduledEvent,
    TimeInterval,
    ViewContext,
    WeekLayout,
)
from .overlap import detect_overlaps
from .records import InvalidEventRecord, normalize_record, normalize_records
from .week import assemble_week, filter_events, week_start_for

__all__ = [
    "ALL",
    "CapacityStatus",
    "DayColumn",
    "EventFilters",
    "EventSet",
    "FetchError",
    "FetchResult",
    "FilterOption",
    "FilterOptions",
    "GridWindow",
    "InvalidEventRecord",
    "LayoutPosition",
    "PixelGeometry",
    "PositionedEvent",
    "RejectedRecord",
    "ScheduledEvent",
    "TimeInterval",
    "ViewContext",
    "WeekLayout",
    "assemble_week",
    "assign_layout",
    "classify",
    "detect_overlaps",
    "filter_events",
    "is_visible",
    "layout_day",
    "layout_week",
    "local_cluster",
    "map_to_geometry",
    "normalize_record",
    "normalize_records",
    "week_start_for",
]
