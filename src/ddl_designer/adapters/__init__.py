"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and ``AsyncSqlAlchemyClient``,
an implementation over SQLAlchemy's async engine for PostgreSQL
(asyncpg), MySQL (aiomysql) and SQLite (aiosqlite).

Usage:
    from ddl_designer.adapters import DatabaseClient, AsyncSqlAlchemyClient
"""

from ddl_designer.adapters.base import DatabaseClient
from ddl_designer.adapters.sqlalchemy_client import AsyncSqlAlchemyClient

__all__ = [
    "DatabaseClient",
    "AsyncSqlAlchemyClient",
]
