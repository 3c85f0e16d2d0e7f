"""DDL statement value objects.

Synthesizers return ``DdlStatement`` objects rather than bare strings so
callers can tell executable DDL from explanatory notes.  A note is a SQL
comment describing an operation the target dialect cannot express; it is
shown in previews but never submitted for execution.

Usage:
    from ddl_designer.schema.statements import DdlStatement, render_script

    statements = [DdlStatement.unsupported("SQLite: manual migration required")]
    render_script(statements)
    # '-- SQLite: manual migration required'
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class StatementKind(str, Enum):
    CREATE_TABLE = "create_table"
    DROP_COLUMN = "drop_column"
    ADD_COLUMN = "add_column"
    RENAME_COLUMN = "rename_column"
    ALTER_COLUMN = "alter_column"
    MODIFY_COLUMN = "modify_column"
    COMMENT = "comment"
    DROP_INDEX = "drop_index"
    CREATE_INDEX = "create_index"
    DROP_FOREIGN_KEY = "drop_foreign_key"
    ADD_FOREIGN_KEY = "add_foreign_key"
    TABLE_OPTIONS = "table_options"
    NOTE = "note"


@dataclass(frozen=True)
class DdlStatement:
    """One independent DDL statement.

    Example:
        stmt = DdlStatement(StatementKind.DROP_COLUMN, "ALTER TABLE t DROP COLUMN c;")
        stmt.to_sql()
        # 'ALTER TABLE t DROP COLUMN c;'
    """

    kind: StatementKind
    sql: str

    @classmethod
    def unsupported(cls, message: str) -> "DdlStatement":
        """Build a note for an operation with no lowering in the dialect."""
        return cls(StatementKind.NOTE, f"-- {message}")

    @property
    def executable(self) -> bool:
        """False for notes, which are never sent to the database."""
        return self.kind is not StatementKind.NOTE

    def to_sql(self) -> str:
        return self.sql


def render_script(statements: Iterable[DdlStatement]) -> str:
    """Join statements into the preview text, one statement per line."""
    return "\n".join(statement.sql for statement in statements)
