"""
Database Module
===============

Async SQLAlchemy engine and session management.

Usage:
    from shared.database import db_session

    async with db_session() as session:
        repos = sql_repositories(session)
        ...
"""

from shared.database.postgres import (
    Base,
    DatabaseClient,
    db_session,
)


__all__ = [
    "Base",
    "DatabaseClient",
    "db_session",
]
