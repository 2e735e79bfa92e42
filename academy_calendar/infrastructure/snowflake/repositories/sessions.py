"""
Snowflake repository for class sessions.

This module implements the repository pattern for calendar data access.
The repository:
1. Encapsulates the SQL for a week of class sessions and the filter bar options
2. Translates the flat joined rows into the nested record shape
3. Hands the records to the record adapter and returns a typed result

The application code never writes SQL directly; it asks the repository
for what it needs and gets back a typed result or a FetchError.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Protocol

from academy_calendar.core.scheduling.models import (
    EventSet,
    FetchError,
    FetchResult,
    FilterOption,
    FilterOptions,
)
from academy_calendar.core.scheduling.records import normalize_records


logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "ACADEMY"
    schema: str = "SCHEDULING"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


# Column order of WEEK_SESSIONS_QUERY; the mock cursor builds rows in the same order
SESSION_COLUMNS = (
    "session_id",
    "start_time",
    "end_time",
    "batch_id",
    "batch_name",
    "capacity",
    "min_capacity_for_profit",
    "program_id",
    "program_name",
    "program_color",
    "location_id",
    "location_name",
    "coach_id",
    "coach_first_name",
    "coach_last_name",
    "enrollment_count",
)

WEEK_SESSIONS_QUERY = """
    SELECT
        cs.session_id,
        cs.start_time,
        cs.end_time,
        b.batch_id,
        b.name AS batch_name,
        b.capacity,
        b.min_capacity_for_profit,
        p.program_id,
        p.name AS program_name,
        p.color AS program_color,
        l.location_id,
        l.name AS location_name,
        c.profile_id AS coach_id,
        c.first_name AS coach_first_name,
        c.last_name AS coach_last_name,
        e.enrollment_count
    FROM class_sessions cs
    LEFT JOIN batches b ON cs.batch_id = b.batch_id
    LEFT JOIN programs p ON b.program_id = p.program_id
    LEFT JOIN locations l ON b.location_id = l.location_id
    LEFT JOIN profiles c ON cs.coach_id = c.profile_id
    LEFT JOIN session_enrollment_counts e ON e.session_id = cs.session_id
    WHERE cs.academy_id = %s
      AND cs.start_time >= %s
      AND cs.start_time < %s
    ORDER BY cs.start_time, cs.session_id
"""

# Filter bar option lists
PROGRAMS_QUERY = """
    SELECT program_id, name, color
    FROM programs
    WHERE academy_id = %s
    ORDER BY name, program_id
"""

COACHES_QUERY = """
    SELECT profile_id, first_name, last_name
    FROM profiles
    WHERE academy_id = %s
      AND role IN ('coach', 'head_coach')
    ORDER BY first_name, last_name, profile_id
"""

LOCATIONS_QUERY = """
    SELECT location_id, name
    FROM locations
    WHERE academy_id = %s
    ORDER BY name, location_id
"""


class SessionRepository:
    """
    Read-only repository for the class sessions shown on the calendar.

    Writing sessions belongs to the scheduling screens, not the calendar,
    so the use cases here are fetching a week and the filter bar choices.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def fetch_week(
        self,
        academy_id: str,
        week_start: date,
        display_tz: Optional[tzinfo] = None,
    ) -> FetchResult:
        """
        Fetch and normalize the class sessions starting in one week.

        Database failures come back as a FetchError rather than an empty
        EventSet so the caller can tell "nothing scheduled" from "failed to
        load". Invalid rows are skipped and listed in EventSet.rejected.
        """
        range_start = datetime.combine(week_start, time.min, tzinfo=display_tz)
        range_end = range_start + timedelta(days=7)

        try:
            rows = self._select(WEEK_SESSIONS_QUERY, (academy_id, range_start, range_end))
        except Exception as e:
            logger.error(
                "Failed to fetch class sessions",
                extra={
                    "academy_id": academy_id,
                    "week_start": week_start.isoformat(),
                    "error": str(e),
                }
            )
            return FetchError(
                message=f"Failed to load class sessions: {e}",
                retryable=_is_transient(e),
            )

        records = [self._build_record_from_row(row) for row in rows]
        events, rejected = normalize_records(records, display_tz=display_tz)

        logger.info(
            "Fetched class sessions",
            extra={
                "academy_id": academy_id,
                "week_start": week_start.isoformat(),
                "row_count": len(rows),
                "event_count": len(events),
                "rejected_count": len(rejected),
            }
        )

        return EventSet(week_start=week_start, events=events, rejected=rejected)

    def fetch_filter_options(self, academy_id: str) -> FilterOptions | FetchError:
        """
        Fetch the academy's programs, coaches and locations for the filter bar.

        Only profiles with the coach or head_coach role are offered as coaches.
        """
        try:
            program_rows = self._select(PROGRAMS_QUERY, (academy_id,))
            coach_rows = self._select(COACHES_QUERY, (academy_id,))
            location_rows = self._select(LOCATIONS_QUERY, (academy_id,))
        except Exception as e:
            logger.error(
                "Failed to fetch filter options",
                extra={"academy_id": academy_id, "error": str(e)}
            )
            return FetchError(
                message=f"Failed to load filter options: {e}",
                retryable=_is_transient(e),
            )

        options = FilterOptions(
            programs=[
                FilterOption(id=str(program_id), label=name or "", color=color)
                for program_id, name, color in program_rows
            ],
            coaches=[
                FilterOption(
                    id=str(profile_id),
                    label=" ".join(part for part in (first_name, last_name) if part) or str(profile_id),
                )
                for profile_id, first_name, last_name in coach_rows
            ],
            locations=[
                FilterOption(id=str(location_id), label=name or "")
                for location_id, name in location_rows
            ],
        )

        logger.debug(
            "Fetched filter options",
            extra={
                "academy_id": academy_id,
                "programs": len(options.programs),
                "coaches": len(options.coaches),
                "locations": len(options.locations),
            }
        )

        return options

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _select(self, query: str, params: tuple) -> list[tuple]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return list(cursor.fetchall())
        finally:
            cursor.close()

    def _build_record_from_row(self, row: tuple) -> dict[str, Any]:
        """Nest a flat joined row into the record shape the adapter expects."""
        values = dict(zip(SESSION_COLUMNS, row))

        batch = None
        if values["batch_id"]:
            batch = {
                "id": values["batch_id"],
                "name": values["batch_name"],
                "capacity": values["capacity"],
                "min_capacity_for_profit": values["min_capacity_for_profit"],
                "program": {
                    "id": values["program_id"],
                    "name": values["program_name"],
                    "color": values["program_color"],
                } if values["program_id"] else None,
                "location": {
                    "id": values["location_id"],
                    "name": values["location_name"],
                } if values["location_id"] else None,
            }

        coach = None
        if values["coach_id"]:
            coach = {
                "id": values["coach_id"],
                "first_name": values["coach_first_name"],
                "last_name": values["coach_last_name"],
            }

        return {
            "id": values["session_id"],
            "start_time": values["start_time"],
            "end_time": values["end_time"],
            "enrollment_count": values["enrollment_count"],
            "batch": batch,
            "coach": coach,
        }


def _is_transient(error: Exception) -> bool:
    """
    Whether retrying the same query might succeed.

    Errors in the query itself (bad SQL, missing objects, privileges) or in
    the data will fail the same way again. Everything else, such as dropped
    connections or a suspended warehouse, is treated as temporary.
    """
    from snowflake.connector import errors

    permanent = (
        errors.ProgrammingError,
        errors.DataError,
        errors.IntegrityError,
        errors.NotSupportedError,
    )
    return not isinstance(error, permanent)
