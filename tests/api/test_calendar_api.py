"""
API tests for the calendar and health endpoints.

Uses FastAPI's TestClient with dependency overrides: settings point at
mock mode and the repository runs on an in-memory connection.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from academy_calendar.api.dependencies import get_session_repository
from academy_calendar.config.settings import Settings, get_settings
from academy_calendar.infrastructure.snowflake.client import MockSnowflakeConnection
from academy_calendar.infrastructure.snowflake.repositories.sessions import SessionRepository
from academy_calendar.main import create_app


API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


def seed(conn: MockSnowflakeConnection, session_id: str, start: datetime, end: datetime, **overrides) -> None:
    row = {
        "session_id": session_id,
        "start_time": start,
        "end_time": end,
        "batch_id": "batch-1",
        "batch_name": "U10 Gymnastics",
        "capacity": 15,
        "min_capacity_for_profit": 10,
        "program_id": "gym",
        "program_color": "#f97316",
        "location_id": "hall",
        "location_name": "Main Gym Hall",
        "coach_id": "coach-1",
        "coach_first_name": "Sarah",
        "coach_last_name": "Lee",
        "enrollment_count": 10,
    }
    row.update(overrides)
    conn._add_session("academy-1", row)


class BrokenCursor:
    def __init__(self, error: Exception) -> None:
        self._error = error

    def execute(self, query, params=None):
        raise self._error

    def close(self):
        pass


class BrokenConnection:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error or RuntimeError("connection reset")

    def cursor(self):
        return BrokenCursor(self._error)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_keys=API_KEY,
        snowflake_mock_mode=True,
        calendar_timezone="UTC",
        _env_file=None,
    )


@pytest.fixture
def connection() -> MockSnowflakeConnection:
    conn = MockSnowflakeConnection()
    seed(conn, "a1", datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 0))
    seed(conn, "b2", datetime(2026, 3, 2, 9, 30), datetime(2026, 3, 2, 10, 30),
         program_id="dance", coach_id="coach-2", coach_first_name="Mike",
         coach_last_name=None, enrollment_count=7)
    seed(conn, "c3", datetime(2026, 3, 4, 17, 0), datetime(2026, 3, 4, 17, 15),
         enrollment_count=2)
    conn._add_program("academy-1", "gym", "Gymnastics", "#f97316")
    conn._add_program("academy-1", "dance", "Dance", "#ec4899")
    conn._add_profile("academy-1", "coach-1", "Sarah", "Lee")
    conn._add_profile("academy-1", "coach-2", "Mike", role="head_coach")
    conn._add_profile("academy-1", "admin-1", "Alex", "Kim", role="admin")
    conn._add_location("academy-1", "hall", "Main Gym Hall")
    return conn


@pytest.fixture
def client(settings, connection) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_repository] = lambda: SessionRepository(connection)
    return TestClient(app)


class TestAuthentication:

    def test_missing_key_is_forbidden(self, client):
        response = client.get("/api/v1/calendar/week", params={"academy_id": "academy-1"})
        assert response.status_code == 403

    def test_wrong_key_is_forbidden(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1"},
            headers={"X-API-Key": "nope"},
        )
        assert response.status_code == 403


class TestGetWeek:
    """Tests for GET /api/v1/calendar/week."""

    def test_positions_overlapping_sessions(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-04"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["week_start"] == "2026-03-02"
        assert body["event_count"] == 3
        assert len(body["days"]) == 7

        monday = body["days"][0]["events"]
        assert [ev["id"] for ev in monday] == ["a1", "b2"]
        a1, b2 = monday
        assert (a1["left_fraction"], a1["width_fraction"]) == (0, 0.5)
        assert (b2["left_fraction"], b2["width_fraction"]) == (0.5, 0.5)
        assert (a1["top"], a1["height"]) == (80, 80)
        assert a1["capacity_status"] == "healthy"
        assert b2["capacity_status"] == "at_risk"
        assert b2["primary_assignee_label"] == "Mike"

    def test_short_session_is_clamped_and_flagged(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02"},
            headers=HEADERS,
        )

        (wednesday,) = response.json()["days"][2]["events"]
        assert wednesday["height"] == 40
        assert wednesday["capacity_status"] == "critical"

    def test_filters_apply(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02", "program": "dance"},
            headers=HEADERS,
        )

        body = response.json()
        assert body["event_count"] == 1
        (only,) = body["days"][0]["events"]
        assert only["id"] == "b2"
        assert only["width_fraction"] == 1.0

    def test_empty_week_is_ok(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-05-01"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["event_count"] == 0

    def test_window_override(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02", "start_hour": 9, "pixels_per_hour": 60},
            headers=HEADERS,
        )

        body = response.json()
        assert body["window"]["start_hour"] == 9
        assert body["window"]["hours"][0] == 9
        assert body["days"][0]["events"][0]["top"] == 0

    def test_inverted_window_is_rejected(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "start_hour": 20, "end_hour": 9},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_non_positive_scale_is_rejected(self, client):
        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "pixels_per_hour": 0},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_academy_id_is_required(self, client):
        response = client.get("/api/v1/calendar/week", headers=HEADERS)
        assert response.status_code == 422

    def test_fetch_failure_is_not_an_empty_week(self, client):
        client.app.dependency_overrides[get_session_repository] = (
            lambda: SessionRepository(BrokenConnection())
        )

        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02"},
            headers=HEADERS,
        )

        assert response.status_code == 503
        assert "connection reset" in response.json()["detail"]

    def test_query_error_is_a_bad_gateway(self, client):
        from snowflake.connector.errors import ProgrammingError

        client.app.dependency_overrides[get_session_repository] = (
            lambda: SessionRepository(BrokenConnection(ProgrammingError("invalid identifier")))
        )

        response = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02"},
            headers=HEADERS,
        )

        assert response.status_code == 502


class TestFilterOptions:
    """Tests for GET /api/v1/calendar/filters."""

    def test_lists_filter_choices(self, client):
        response = client.get(
            "/api/v1/calendar/filters",
            params={"academy_id": "academy-1"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert [(p["id"], p["label"], p["color"]) for p in body["programs"]] == [
            ("dance", "Dance", "#ec4899"),
            ("gym", "Gymnastics", "#f97316"),
        ]
        assert [c["id"] for c in body["coaches"]] == ["coach-2", "coach-1"]
        assert [loc["label"] for loc in body["locations"]] == ["Main Gym Hall"]

    def test_choice_ids_filter_the_week(self, client):
        filters = client.get(
            "/api/v1/calendar/filters",
            params={"academy_id": "academy-1"},
            headers=HEADERS,
        ).json()
        coach_id = filters["coaches"][0]["id"]

        week = client.get(
            "/api/v1/calendar/week",
            params={"academy_id": "academy-1", "date": "2026-03-02", "coach": coach_id},
            headers=HEADERS,
        ).json()

        assert [ev["id"] for day in week["days"] for ev in day["events"]] == ["b2"]

    def test_requires_api_key(self, client):
        response = client.get("/api/v1/calendar/filters", params={"academy_id": "academy-1"})
        assert response.status_code == 403

    def test_fetch_failure_is_unavailable(self, client):
        client.app.dependency_overrides[get_session_repository] = (
            lambda: SessionRepository(BrokenConnection())
        )

        response = client.get(
            "/api/v1/calendar/filters",
            params={"academy_id": "academy-1"},
            headers=HEADERS,
        )

        assert response.status_code == 503


class TestLayoutRecords:
    """Tests for POST /api/v1/calendar/layout."""

    def test_lays_out_supplied_records(self, client):
        response = client.post(
            "/api/v1/calendar/layout",
            headers=HEADERS,
            json={
                "view_date": "2026-03-02",
                "records": [
                    {"id": "a1", "start_time": "2026-03-02T09:00:00", "end_time": "2026-03-02T10:00:00"},
                    {"id": "b2", "start_time": "2026-03-02T09:30:00", "end_time": "2026-03-02T10:30:00"},
                    {"id": "bad", "start_time": "2026-03-02T11:00:00", "end_time": "2026-03-02T11:00:00"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert [ev["id"] for ev in body["days"][0]["events"]] == ["a1", "b2"]
        assert body["rejected"][0]["record_id"] == "bad"
        assert body["days"][0]["events"][0]["group_color"] == "#3b82f6"

    def test_infinite_enrollment_does_not_fail_the_week(self, client):
        body = (
            '{"view_date": "2026-03-02", "records": ['
            '{"id": "a1", "start_time": "2026-03-02T09:00:00", "end_time": "2026-03-02T10:00:00"},'
            '{"id": "inf", "start_time": "2026-03-02T11:00:00", "end_time": "2026-03-02T12:00:00",'
            ' "enrollment_count": Infinity}]}'
        )

        response = client.post(
            "/api/v1/calendar/layout",
            headers={**HEADERS, "Content-Type": "application/json"},
            content=body,
        )

        assert response.status_code == 200
        result = response.json()
        assert [ev["id"] for ev in result["days"][0]["events"]] == ["a1"]
        assert [r["record_id"] for r in result["rejected"]] == ["inf"]

    def test_window_override_in_body(self, client):
        response = client.post(
            "/api/v1/calendar/layout",
            headers=HEADERS,
            json={
                "view_date": "2026-03-02",
                "records": [
                    {"id": "a1", "start_time": "2026-03-02T09:30:00", "end_time": "2026-03-02T10:15:00"},
                ],
                "window": {"start_hour": 8, "pixels_per_hour": 80},
            },
        )

        (event,) = response.json()["days"][0]["events"]
        assert (event["top"], event["height"]) == (120, 60)

    def test_filters_in_body(self, client):
        response = client.post(
            "/api/v1/calendar/layout",
            headers=HEADERS,
            json={
                "view_date": "2026-03-02",
                "filters": {"coach": "coach-9"},
                "records": [
                    {
                        "id": "a1",
                        "start_time": "2026-03-02T09:00:00",
                        "end_time": "2026-03-02T10:00:00",
                        "coach": {"id": "coach-1", "first_name": "Sarah"},
                    },
                ],
            },
        )

        assert response.json()["event_count"] == 0


class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        checks = {check["name"]: check for check in body["checks"]}
        assert checks["database"]["error"] == "mock mode"

    def test_readiness_fails_without_credentials(self, client):
        client.app.dependency_overrides[get_settings] = lambda: Settings(
            api_keys=API_KEY,
            snowflake_mock_mode=False,
            _env_file=None,
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
