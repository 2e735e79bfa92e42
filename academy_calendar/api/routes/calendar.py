"""
Calendar API endpoints.

Serves the positioned week to the calendar screen. Every block in the
response carries its pixel geometry, its column within the day, and its
capacity status, plus the session id the screen needs to open the detail
drawer on click.

Two ways in:
- GET /week lays out the sessions stored for an academy
- POST /layout lays out records the caller already has

GET /filters lists the choices for the filter bar.
"""

import logging
from datetime import date
from typing import Annotated, Any, NoReturn, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...config.settings import Settings
from ...core.scheduling import (
    ALL,
    EventFilters,
    FetchError,
    FilterOptions,
    GridWindow,
    ViewContext,
    WeekLayout,
    layout_week,
    normalize_records,
)
from ..dependencies import (
    AuthenticatedUser,
    SessionRepositoryDep,
    SettingsDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class FilterSelection(BaseModel):
    """Filter bar selections. "all" disables a criterion."""
    program: str = Field(ALL, description="Program id or 'all'")
    coach: str = Field(ALL, description="Coach profile id or 'all'")
    location: str = Field(ALL, description="Location id or 'all'")


class GridWindowOverride(BaseModel):
    """Optional per-request grid window; unset fields fall back to settings."""
    start_hour: Optional[int] = Field(None, ge=0, le=23)
    end_hour: Optional[int] = Field(None, ge=1, le=24)
    pixels_per_hour: Optional[float] = Field(None, gt=0)


class LayoutRequest(BaseModel):
    """Raw session records to lay out, with the view to lay them out in."""
    records: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Class session records as returned by the data backend",
    )
    view_date: date = Field(description="Any day of the week to show")
    filters: FilterSelection = Field(default_factory=FilterSelection)
    window: Optional[GridWindowOverride] = None


class GridWindowItem(BaseModel):
    start_hour: int
    end_hour: int
    pixels_per_hour: float
    min_height_px: float
    hours: list[int] = Field(description="Hour labels for the time column")
    total_height_px: float


class PositionedEventItem(BaseModel):
    """One renderable calendar block."""
    id: str = Field(description="Session id, carried by the click handler")
    title: str
    group_color: str
    location_label: str
    primary_assignee_label: str
    start_time: str = Field(description="Wall-clock start (ISO format)")
    end_time: str = Field(description="Wall-clock end (ISO format)")
    enrollment_count: int
    capacity: int
    min_viable_enrollment: int
    capacity_status: str = Field(description="healthy, at_risk or critical")
    top: float = Field(description="Pixels from the top of the grid")
    height: float = Field(description="Block height in pixels")
    left_fraction: float = Field(description="Left offset as a fraction of the day column")
    width_fraction: float = Field(description="Width as a fraction of the day column")
    concurrency: int = Field(description="Events sharing this block's local cluster")


class DayColumnItem(BaseModel):
    index: int = Field(description="0 = Monday")
    date: date
    events: list[PositionedEventItem]


class RejectedRecordItem(BaseModel):
    record_id: Optional[str]
    reason: str


class FilterOptionItem(BaseModel):
    id: str
    label: str
    color: Optional[str] = None


class FilterOptionsResponse(BaseModel):
    """Dropdown choices for the filter bar. "all" is implied for each."""
    programs: list[FilterOptionItem]
    coaches: list[FilterOptionItem]
    locations: list[FilterOptionItem]


class WeekLayoutResponse(BaseModel):
    """The positioned week."""
    week_start: date
    window: GridWindowItem
    event_count: int
    days: list[DayColumnItem]
    rejected: list[RejectedRecordItem] = Field(
        description="Records skipped because they could not be laid out",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/week",
    response_model=WeekLayoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the positioned calendar week",
    description="Fetch an academy's class sessions for one week and lay them out for rendering",
    responses={
        502: {"description": "Session data could not be loaded"},
        503: {"description": "Session data source temporarily unavailable"},
    },
)
async def get_week(
    academy_id: Annotated[str, Query(min_length=1, description="Academy to show")],
    settings: SettingsDep,
    repository: SessionRepositoryDep,
    api_key: AuthenticatedUser,
    view_date: Annotated[Optional[date], Query(alias="date", description="Any day of the week; defaults to today")] = None,
    program: Annotated[str, Query(description="Program id or 'all'")] = ALL,
    coach: Annotated[str, Query(description="Coach profile id or 'all'")] = ALL,
    location: Annotated[str, Query(description="Location id or 'all'")] = ALL,
    start_hour: Annotated[Optional[int], Query(ge=0, le=23)] = None,
    end_hour: Annotated[Optional[int], Query(ge=1, le=24)] = None,
    pixels_per_hour: Annotated[Optional[float], Query(gt=0)] = None,
) -> WeekLayoutResponse:
    """
    Lay out one week of an academy's classes.

    An empty week is a normal 200 with seven empty days. A failed fetch is
    never reported as an empty week: it maps to 503 when retrying may help
    and 502 otherwise.
    """
    window = _build_window(settings, start_hour, end_hour, pixels_per_hour)
    view = ViewContext(
        view_date=view_date or date.today(),
        filters=EventFilters(program=program, coach=coach, location=location),
    )

    logger.info(
        "Fetching calendar week",
        extra={
            "academy_id": academy_id,
            "week_start": view.week_start.isoformat(),
            "filters": {"program": program, "coach": coach, "location": location},
        }
    )

    result = repository.fetch_week(
        academy_id,
        view.week_start,
        display_tz=settings.display_timezone,
    )

    if isinstance(result, FetchError):
        _raise_fetch_error(result)

    week = layout_week(result.events, view, window=window, rejected=result.rejected)
    return _to_response(week)


@router.get(
    "/filters",
    response_model=FilterOptionsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get filter bar choices",
    description="List an academy's programs, coaches and locations for the calendar filters",
    responses={
        502: {"description": "Filter options could not be loaded"},
        503: {"description": "Session data source temporarily unavailable"},
    },
)
async def get_filter_options(
    academy_id: Annotated[str, Query(min_length=1, description="Academy to list choices for")],
    repository: SessionRepositoryDep,
    api_key: AuthenticatedUser,
) -> FilterOptionsResponse:
    """The ids returned here are the values the week endpoint filters on."""
    result = repository.fetch_filter_options(academy_id)

    if isinstance(result, FetchError):
        _raise_fetch_error(result)

    return _to_filter_response(result)


@router.post(
    "/layout",
    response_model=WeekLayoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Lay out caller-supplied sessions",
    description="Position raw class session records without touching the database",
)
async def layout_records(
    request: LayoutRequest,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
) -> WeekLayoutResponse:
    """
    Pure transform: records + view + window -> positioned week.

    Invalid records are skipped and listed under `rejected`; they never
    fail the request.
    """
    override = request.window or GridWindowOverride()
    window = _build_window(
        settings,
        override.start_hour,
        override.end_hour,
        override.pixels_per_hour,
    )

    events, rejected = normalize_records(request.records, display_tz=settings.display_timezone)
    view = ViewContext(
        view_date=request.view_date,
        filters=EventFilters(
            program=request.filters.program,
            coach=request.filters.coach,
            location=request.filters.location,
        ),
    )

    week = layout_week(events, view, window=window, rejected=rejected)
    return _to_response(week)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_window(
    settings: Settings,
    start_hour: Optional[int],
    end_hour: Optional[int],
    pixels_per_hour: Optional[float],
) -> GridWindow:
    try:
        return settings.grid_window(
            start_hour=start_hour,
            end_hour=end_hour,
            pixels_per_hour=pixels_per_hour,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )


def _raise_fetch_error(error: FetchError) -> NoReturn:
    # A failed load is never reported as an empty result
    raise HTTPException(
        status_code=(
            status.HTTP_503_SERVICE_UNAVAILABLE if error.retryable
            else status.HTTP_502_BAD_GATEWAY
        ),
        detail=error.message,
    )


def _to_filter_response(options: FilterOptions) -> FilterOptionsResponse:
    def items(choices):
        return [
            FilterOptionItem(id=choice.id, label=choice.label, color=choice.color)
            for choice in choices
        ]

    return FilterOptionsResponse(
        programs=items(options.programs),
        coaches=items(options.coaches),
        locations=items(options.locations),
    )


def _to_response(week: WeekLayout) -> WeekLayoutResponse:
    window = week.window

    return WeekLayoutResponse(
        week_start=week.week_start,
        window=GridWindowItem(
            start_hour=window.start_hour,
            end_hour=window.end_hour,
            pixels_per_hour=window.pixels_per_hour,
            min_height_px=window.min_height_px,
            hours=window.hours,
            total_height_px=window.total_height_px,
        ),
        event_count=week.event_count,
        days=[
            DayColumnItem(
                index=day.index,
                date=day.date,
                events=[
                    PositionedEventItem(
                        id=positioned.event.id,
                        title=positioned.event.title,
                        group_color=positioned.event.group_color,
                        location_label=positioned.event.location_label,
                        primary_assignee_label=positioned.event.primary_assignee_label,
                        start_time=positioned.event.interval.start.isoformat(),
                        end_time=positioned.event.interval.end.isoformat(),
                        enrollment_count=positioned.event.enrollment_count,
                        capacity=positioned.event.capacity,
                        min_viable_enrollment=positioned.event.min_viable_enrollment,
                        capacity_status=positioned.status.value,
                        top=positioned.geometry.top,
                        height=positioned.geometry.height,
                        left_fraction=positioned.layout.left_fraction,
                        width_fraction=positioned.layout.width_fraction,
                        concurrency=positioned.layout.concurrency,
                    )
                    for positioned in day.events
                ],
            )
            for day in week.days
        ],
        rejected=[
            RejectedRecordItem(record_id=record.record_id, reason=record.reason)
            for record in week.rejected
        ],
    )
