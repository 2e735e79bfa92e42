"""
Academy Calendar - weekly class calendar layout service.

This package contains the complete application:
- core: Framework-agnostic calendar layout logic
- infrastructure: Session data access (Snowflake)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
