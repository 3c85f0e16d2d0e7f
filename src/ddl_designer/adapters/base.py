"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the designer uses to reach a
database.  All methods are ``async def`` -- the designer awaits each call
in turn and never issues two statements concurrently.

Usage:
    from ddl_designer.adapters.base import DatabaseClient

    async def apply(client: DatabaseClient, statements: list[str]) -> None:
        for sql in statements:
            await client.execute(sql)
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Execution collaborator for one connection/database.

    The connection reference is bound when the client is built, so each
    call only carries the SQL text.
    """

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> int | None:
        """Execute one statement (DDL or other non-query operation).

        Args:
            sql: Statement text, submitted exactly as given.
            params: Optional dict of named parameters.

        Returns:
            Rows affected, or ``None`` when the driver does not report it.

        Raises:
            Exception: Whatever the driver raises; callers treat it as an
                opaque execution failure.

        Example:
            await client.execute("ALTER TABLE users ADD COLUMN email VARCHAR(255);")
        """
        ...

    async def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return every row as a dict keyed by column label.

        Example:
            rows = await client.fetch_all(
                "SELECT name FROM pragma_table_info(:table)", {"table": "users"}
            )
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        ...
