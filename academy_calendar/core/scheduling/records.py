"""
Record adapter: raw class-session records to ScheduledEvent.

The backend returns class sessions joined with their batch, program,
location and coach. Any of those relations can be missing or partially
filled, so this is the one place that copes with that. Layout code only
ever sees fully-formed ScheduledEvents.

Expected record shape (extra keys are ignored):

    {
        "id": "...",
        "start_time": "2026-03-02T09:00:00+00:00",
        "end_time": "2026-03-02T10:00:00+00:00",
        "enrollment_count": 7,
        "batch": {
            "name": "U10 Gymnastics",
            "capacity": 15,
            "min_capacity_for_profit": 10,
            "program": {"id": "...", "name": "...", "color": "#f97316"},
            "location": {"id": "...", "name": "Main Hall"},
        },
        "coach": {"id": "...", "first_name": "Sarah", "last_name": "Lee"},
    }
"""

import logging
from datetime import datetime, tzinfo
from typing import Any, Iterable, Mapping, Optional

from .models import DEFAULT_GROUP_COLOR, RejectedRecord, ScheduledEvent, TimeInterval

logger = logging.getLogger(__name__)


# Minimum head count assumed when a batch has none configured
DEFAULT_MIN_VIABLE_ENROLLMENT = 4


class InvalidEventRecord(ValueError):
    """Raised when a raw record cannot become a ScheduledEvent."""

    def __init__(self, record_id: Optional[str], reason: str) -> None:
        super().__init__(f"Invalid event record {record_id!r}: {reason}")
        self.record_id = record_id
        self.reason = reason


def normalize_record(
    record: Mapping[str, Any],
    display_tz: Optional[tzinfo] = None,
) -> ScheduledEvent:
    """
    Build a ScheduledEvent from one raw record.

    Timezone-aware timestamps are converted to `display_tz` (when given)
    and made naive, so minutes-since-midnight are wall-clock minutes on the
    calendar. Naive timestamps are taken as already local.
    """
    raw_id = record.get("id")
    record_id = str(raw_id) if raw_id not in (None, "") else None
    if record_id is None:
        raise InvalidEventRecord(None, "missing id")

    start = _parse_timestamp(record_id, "start_time", record.get("start_time"), display_tz)
    end = _parse_timestamp(record_id, "end_time", record.get("end_time"), display_tz)

    batch = _relation(record, "batch")
    program = _relation(batch, "program")
    location = _relation(batch, "location")
    coach = _relation(record, "coach")

    try:
        return ScheduledEvent(
            id=record_id,
            interval=TimeInterval(start=start, end=end),
            group_color=program.get("color") or DEFAULT_GROUP_COLOR,
            title=batch.get("name") or "",
            location_label=location.get("name") or "",
            primary_assignee_label=_coach_label(coach),
            program_id=_optional_id(program.get("id")),
            coach_id=_optional_id(coach.get("id")),
            location_id=_optional_id(location.get("id")),
            enrollment_count=_count(record_id, "enrollment_count", record.get("enrollment_count"), 0),
            capacity=_count(record_id, "capacity", batch.get("capacity"), 0),
            min_viable_enrollment=_count(
                record_id,
                "min_capacity_for_profit",
                batch.get("min_capacity_for_profit"),
                DEFAULT_MIN_VIABLE_ENROLLMENT,
            ),
        )
    except ValueError as e:
        raise InvalidEventRecord(record_id, str(e)) from e


def normalize_records(
    records: Iterable[Mapping[str, Any]],
    display_tz: Optional[tzinfo] = None,
) -> tuple[list[ScheduledEvent], list[RejectedRecord]]:
    """
    Normalize a batch of records, skipping the bad ones.

    One malformed record never costs the rest of the week: it is logged,
    reported in the rejected list, and processing continues. A repeated id
    keeps its first occurrence.
    """
    events: list[ScheduledEvent] = []
    rejected: list[RejectedRecord] = []
    seen_ids: set[str] = set()

    for record in records:
        try:
            if not isinstance(record, Mapping):
                raise InvalidEventRecord(None, "record is not an object")
            event = normalize_record(record, display_tz=display_tz)
            if event.id in seen_ids:
                raise InvalidEventRecord(event.id, "duplicate id")
        except InvalidEventRecord as e:
            logger.warning(
                "Skipping invalid event record",
                extra={"record_id": e.record_id, "reason": e.reason}
            )
            rejected.append(RejectedRecord(record_id=e.record_id, reason=e.reason))
            continue

        seen_ids.add(event.id)
        events.append(event)

    return events, rejected


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _relation(parent: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    # Joins come back as None, a dict, or occasionally a one-element list
    value = parent.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, Mapping) else {}


def _parse_timestamp(
    record_id: str,
    field_name: str,
    value: Any,
    display_tz: Optional[tzinfo],
) -> datetime:
    if value is None or value == "":
        raise InvalidEventRecord(record_id, f"missing {field_name}")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidEventRecord(record_id, f"unparseable {field_name}: {value!r}")
    else:
        raise InvalidEventRecord(record_id, f"unsupported {field_name} type: {type(value).__name__}")

    if parsed.tzinfo is not None:
        if display_tz is not None:
            parsed = parsed.astimezone(display_tz)
        parsed = parsed.replace(tzinfo=None)

    return parsed


def _count(record_id: str, field_name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidEventRecord(record_id, f"{field_name} is not a number: {value!r}")
    if count < 0:
        raise InvalidEventRecord(record_id, f"{field_name} cannot be negative")
    return count


def _optional_id(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _coach_label(coach: Mapping[str, Any]) -> str:
    if coach.get("full_name"):
        return str(coach["full_name"])
    parts = [coach.get("first_name"), coach.get("last_name")]
    return " ".join(str(part) for part in parts if part)
