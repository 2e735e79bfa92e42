"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Class session data (read-only)

These wrappers translate between external formats and our domain models.
"""
