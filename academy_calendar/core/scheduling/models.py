"""
Domain models for the weekly class calendar.

These models represent the calendar concepts the layout engine works with.
They have no dependencies on FastAPI, Snowflake, or the shape of the rows
the backend returns. The record adapter translates those into the strict
ScheduledEvent shape before anything here sees them.

Everything in this module is a value: recomputed on every data refresh and
every filter change, never persisted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional


ALL = "all"
DEFAULT_GROUP_COLOR = "#3b82f6"


class CapacityStatus(Enum):
    """
    Health of a class relative to its minimum viable enrollment.

    Rendered as the small traffic-light dot on each calendar block.
    """
    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TimeInterval:
    """
    A half-open span of time: [start, end).

    Frozen because intervals are values. Zero and negative durations are
    rejected here so nothing downstream ever renders a negative height.
    """
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Interval end must be after start (start={self.start.isoformat()}, "
                f"end={self.end.isoformat()})"
            )

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    @property
    def start_minutes_since_midnight(self) -> float:
        return self.start.hour * 60 + self.start.minute + self.start.second / 60

    def overlaps(self, other: "TimeInterval") -> bool:
        """
        Half-open intersection test.

        Touching intervals (one ends exactly when the other begins) do not
        overlap; intervals starting at the same instant do.
        """
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class ScheduledEvent:
    """
    One class session as the calendar sees it.

    `id` doubles as the deterministic tie-breaker for column assignment,
    so it must be stable across fetches of the same data.
    """
    id: str
    interval: TimeInterval
    group_color: str = DEFAULT_GROUP_COLOR
    title: str = ""
    location_label: str = ""
    primary_assignee_label: str = ""
    program_id: Optional[str] = None
    coach_id: Optional[str] = None
    location_id: Optional[str] = None
    enrollment_count: int = 0
    capacity: int = 0
    min_viable_enrollment: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Event id cannot be empty")
        for name in ("enrollment_count", "capacity", "min_viable_enrollment"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def start_date(self) -> date:
        return self.interval.start.date()


@dataclass(frozen=True)
class LayoutPosition:
    """Horizontal placement of an event inside its day column, as fractions."""
    width_fraction: float
    left_fraction: float
    concurrency: int = 1

    def __post_init__(self) -> None:
        if not 0 < self.width_fraction <= 1:
            raise ValueError("width_fraction must be in (0, 1]")
        if not 0 <= self.left_fraction < 1:
            raise ValueError("left_fraction must be in [0, 1)")

    @property
    def right_fraction(self) -> float:
        return self.left_fraction + self.width_fraction


@dataclass(frozen=True)
class GridWindow:
    """
    The visible band of the day grid.

    Defaults match the academy calendar: 08:00 to 21:00 at 80px per hour,
    with blocks never shorter than 40px so they stay clickable.
    """
    start_hour: int = 8
    end_hour: int = 21
    pixels_per_hour: float = 80
    min_height_px: float = 40

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"Grid window needs 0 <= start_hour < end_hour <= 24 "
                f"(got {self.start_hour}..{self.end_hour})"
            )
        if self.pixels_per_hour <= 0:
            raise ValueError("pixels_per_hour must be positive")
        if self.min_height_px < 0:
            raise ValueError("min_height_px cannot be negative")

    @property
    def hours(self) -> list[int]:
        """Hour labels drawn down the time column, both ends included."""
        return list(range(self.start_hour, self.end_hour + 1))

    @property
    def total_height_px(self) -> float:
        return (self.end_hour - self.start_hour) * self.pixels_per_hour


@dataclass(frozen=True)
class PixelGeometry:
    """Vertical placement of an event: offset from the top of the grid and height."""
    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class EventFilters:
    """
    Program / coach / location selections from the filter bar.

    Each is either "all" (or None) or the id to match.
    """
    program: Optional[str] = ALL
    coach: Optional[str] = ALL
    location: Optional[str] = ALL

    def matches(self, event: ScheduledEvent) -> bool:
        """Conjunctive: every criterion that is set must match."""
        return (
            _criterion_matches(self.program, event.program_id)
            and _criterion_matches(self.coach, event.coach_id)
            and _criterion_matches(self.location, event.location_id)
        )


def _criterion_matches(selected: Optional[str], value: Optional[str]) -> bool:
    if selected is None or selected == ALL:
        return True
    return value == selected


@dataclass(frozen=True)
class ViewContext:
    """
    The calendar's view state, passed in explicitly.

    `view_date` may be any day of the wanted week; weeks start on Monday.
    """
    view_date: date
    filters: EventFilters = field(default_factory=EventFilters)

    @property
    def week_start(self) -> date:
        return self.view_date - timedelta(days=self.view_date.weekday())

    @property
    def week_days(self) -> list[date]:
        return [self.week_start + timedelta(days=i) for i in range(7)]


@dataclass(frozen=True)
class PositionedEvent:
    """Everything the renderer needs to draw one block and open its details."""
    event: ScheduledEvent
    geometry: PixelGeometry
    layout: LayoutPosition
    status: CapacityStatus


@dataclass(frozen=True)
class RejectedRecord:
    """A raw record that could not become a ScheduledEvent, and why."""
    record_id: Optional[str]
    reason: str


@dataclass
class DayColumn:
    """One day of the visible week with its positioned events."""
    index: int
    date: date
    events: list[PositionedEvent] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.events


@dataclass
class WeekLayout:
    """
    The complete render model for one week.

    `rejected` carries the records that were skipped so the UI can flag
    them without losing the rest of the week.
    """
    week_start: date
    window: GridWindow
    days: list[DayColumn] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)

    @property
    def event_count(self) -> int:
        return sum(len(day.events) for day in self.days)


@dataclass(frozen=True)
class EventSet:
    """A successfully fetched week of events."""
    week_start: date
    events: list[ScheduledEvent]
    rejected: list[RejectedRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.events


@dataclass(frozen=True)
class FetchError:
    """
    A failed fetch.

    Kept distinct from an empty EventSet so "no classes this week" and
    "could not load classes" never look the same to the caller.
    """
    message: str
    retryable: bool = True


FetchResult = EventSet | FetchError


@dataclass(frozen=True)
class FilterOption:
    """One entry in a filter bar dropdown."""
    id: str
    label: str
    color: Optional[str] = None


@dataclass(frozen=True)
class FilterOptions:
    """The choices offered for each filter criterion of an academy."""
    programs: list[FilterOption] = field(default_factory=list)
    coaches: list[FilterOption] = field(default_factory=list)
    locations: list[FilterOption] = field(default_factory=list)
