"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through SessionRepository which handles the translation
between database rows and calendar records.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, Optional

from .repositories.sessions import SESSION_COLUMNS, SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str):
    """
    Load private key from file for key-pair authentication.

    Snowflake requires the private key as a bytes object, not a file path.
    This function reads the key file and returns it in the format
    snowflake-connector expects.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    with open(key_path, 'rb') as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,
            backend=default_backend()
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If private_key_path is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
    """
    import snowflake.connector

    conn = None
    try:
        connect_params = {
            'account': config.account,
            'user': config.user,
            'database': config.database,
            'schema': config.schema,
            'warehouse': config.warehouse,
            'role': config.role,
            'client_session_keep_alive': True,
        }

        if config.private_key_path:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = _load_private_key(config.private_key_path)
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or private_key_path must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

    except SnowflakeConnectionError:
        raise

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    SessionRepository without a real database: the week query and the
    filter option queries are answered from in-memory rows.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        """
        Execute a query against mock storage.

        Only the repository's SELECTs are understood; anything else
        yields no rows.
        """
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        query_upper = query.upper().strip()

        if not (query_upper.startswith('SELECT') and params):
            self._results = []
        elif 'FROM CLASS_SESSIONS' in query_upper:
            self._handle_week_select(params)
        elif 'FROM PROGRAMS' in query_upper:
            self._handle_options_select(
                'programs', params, ('program_id', 'name', 'color'), ('name', 'program_id'),
            )
        elif 'FROM PROFILES' in query_upper:
            self._handle_options_select(
                'profiles', params, ('profile_id', 'first_name', 'last_name'),
                ('first_name', 'last_name', 'profile_id'),
                roles=('coach', 'head_coach'),
            )
        elif 'FROM LOCATIONS' in query_upper:
            self._handle_options_select(
                'locations', params, ('location_id', 'name'), ('name', 'location_id'),
            )
        else:
            self._results = []

        return self

    def _handle_week_select(self, params: tuple) -> None:
        academy_id, range_start, range_end = params
        # Naive rows are wall-clock times, like TIMESTAMP_NTZ columns
        tz = range_start.tzinfo
        range_start = range_start.replace(tzinfo=None)
        range_end = range_end.replace(tzinfo=None)

        def wall_clock(value: datetime) -> datetime:
            if value.tzinfo is not None and tz is not None:
                value = value.astimezone(tz)
            return value.replace(tzinfo=None)

        matching = [
            row for row in self._storage['class_sessions'].values()
            if row.get('academy_id') == academy_id
            and row.get('start_time') is not None
            and range_start <= wall_clock(row['start_time']) < range_end
        ]
        matching.sort(key=lambda row: (wall_clock(row['start_time']), str(row['session_id'])))
        self._results = [
            tuple(row.get(column) for column in SESSION_COLUMNS)
            for row in matching
        ]

    def _handle_options_select(
        self,
        table: str,
        params: tuple,
        columns: tuple[str, ...],
        order_by: tuple[str, ...],
        roles: Optional[tuple[str, ...]] = None,
    ) -> None:
        (academy_id,) = params
        matching = [
            row for row in self._storage[table].values()
            if row.get('academy_id') == academy_id
            and (roles is None or row.get('role') in roles)
        ]
        # NULLs sort last, as in Snowflake's default ascending order
        matching.sort(key=lambda row: tuple(
            (row.get(column) is None, str(row.get(column) or '')) for column in order_by
        ))
        self._results = [
            tuple(row.get(column) for column in columns)
            for row in matching
        ]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores denormalized class session rows in memory, keyed by session id.
    Each row is a dict with an `academy_id` plus the SESSION_COLUMNS keys;
    missing keys read as NULL, the way a LEFT JOIN without a match would.
    Programs, profiles and locations for the filter bar are kept alongside.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        self._storage: dict[str, dict[str, dict]] = {
            'class_sessions': {},
            'programs': {},
            'profiles': {},
            'locations': {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage)

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing and local seeding
    def _add_session(self, academy_id: str, row: dict[str, Any]) -> None:
        """Add a class session row to mock storage."""
        stored = dict(row, academy_id=academy_id)
        self._storage['class_sessions'][str(row['session_id'])] = stored

    def _add_program(self, academy_id: str, program_id: str, name: str, color: Optional[str] = None) -> None:
        self._storage['programs'][program_id] = {
            'academy_id': academy_id, 'program_id': program_id, 'name': name, 'color': color,
        }

    def _add_profile(
        self,
        academy_id: str,
        profile_id: str,
        first_name: Optional[str],
        last_name: Optional[str] = None,
        role: str = 'coach',
    ) -> None:
        self._storage['profiles'][profile_id] = {
            'academy_id': academy_id,
            'profile_id': profile_id,
            'first_name': first_name,
            'last_name': last_name,
            'role': role,
        }

    def _add_location(self, academy_id: str, location_id: str, name: str) -> None:
        self._storage['locations'][location_id] = {
            'academy_id': academy_id, 'location_id': location_id, 'name': name,
        }

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


@contextmanager
def get_mock_snowflake_connection() -> Generator[MockSnowflakeConnection, None, None]:
    """
    Provide mock Snowflake connection for local development.

    Returns a connection that stores data in memory.
    """
    conn = MockSnowflakeConnection()
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Factory function that returns either a real or mock connection
    depending on mock_mode flag.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return mock connection for testing

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        with get_mock_snowflake_connection() as conn:
            yield conn
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
