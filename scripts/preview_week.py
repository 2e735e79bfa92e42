#!/usr/bin/env python3
"""
Print the laid-out calendar week for a JSON export of class sessions.

Handy for checking how a week will render (columns, heights, capacity
status) without running the API.

Usage:
    python scripts/preview_week.py sessions.json 2026-03-04 [--coach ID]

Requires:
    - A JSON file holding a list of class session records
    - Optional .env file with CALENDAR_* settings
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from academy_calendar.config.settings import get_settings
from academy_calendar.core.scheduling import (
    EventFilters,
    ViewContext,
    layout_week,
    normalize_records,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Preview a calendar week")
    parser.add_argument("records", help="JSON file with a list of class session records")
    parser.add_argument("view_date", help="Any day of the week to show (YYYY-MM-DD)")
    parser.add_argument("--program", default="all")
    parser.add_argument("--coach", default="all")
    parser.add_argument("--location", default="all")
    args = parser.parse_args()

    settings = get_settings()

    with open(args.records, "r", encoding="utf-8") as f:
        records = json.load(f)

    events, rejected = normalize_records(records, display_tz=settings.display_timezone)
    view = ViewContext(
        view_date=date.fromisoformat(args.view_date),
        filters=EventFilters(program=args.program, coach=args.coach, location=args.location),
    )
    week = layout_week(events, view, window=settings.grid_window(), rejected=rejected)

    for day in week.days:
        print(f"{day.date:%a %d %b}")
        for positioned in day.events:
            event = positioned.event
            print(
                f"  {event.interval.start:%H:%M}-{event.interval.end:%H:%M}  "
                f"{event.title or event.id:<24} "
                f"top={positioned.geometry.top:>6.1f} h={positioned.geometry.height:>5.1f} "
                f"col={positioned.layout.left_fraction:.2f}+{positioned.layout.width_fraction:.2f} "
                f"{positioned.status.value}"
            )

    for record in week.rejected:
        print(f"skipped {record.record_id}: {record.reason}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
