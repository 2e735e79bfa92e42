"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .sessions import SessionRepository

__all__ = ["SessionRepository"]
