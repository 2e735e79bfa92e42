"""
FastAPI dependency injection.

Dependencies provide instances of repositories and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized
- Connection lifecycle is managed properly

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories.sessions import (
    SessionRepository,
    SnowflakeConfig,
)

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Shared mock connection so seeded sessions persist across requests
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Repository Dependencies
# ---------------------------------------------------------------------------

def get_mock_connection() -> MockSnowflakeConnection:
    """Return the process-wide mock connection, creating it on first use."""
    global _mock_snowflake_connection

    if _mock_snowflake_connection is None:
        _mock_snowflake_connection = MockSnowflakeConnection()
        logger.info("Created shared mock Snowflake connection")

    return _mock_snowflake_connection


def get_session_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SessionRepository, None, None]:
    """
    Provide SessionRepository with database connection.

    This is a generator function (yields instead of returns) because
    we need to manage the connection lifecycle:
    1. Create connection
    2. Create repository
    3. Yield repository (FastAPI injects it)
    4. Close connection (cleanup after request)

    In mock mode, we reuse the same connection across requests
    so that seeded sessions persist.
    """
    if settings.snowflake_mock_mode:
        yield SessionRepository(get_mock_connection())
        return

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        with create_snowflake_connection(config=config) as conn:
            logger.debug("Created SessionRepository with Snowflake connection")
            yield SessionRepository(conn)
    except SnowflakeConnectionError as e:
        logger.error(
            "Calendar data source unavailable",
            extra={"error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Calendar data source unavailable. Try again shortly.",
        )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
SessionRepositoryDep = Annotated[SessionRepository, Depends(get_session_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
