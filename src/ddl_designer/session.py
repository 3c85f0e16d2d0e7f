"""Designer session: edit one table definition, preview its DDL, save it.

A session holds two snapshots of a single table:

- ``original``: the definition as fetched from the database.  Absent for
  a new table and never edited.
- ``working``: the copy the caller edits through the session methods.

New-table sessions preview and save one CREATE TABLE statement.  Editing
sessions preview and save the ALTER sequence produced by diffing
``original`` against ``working``.  The preview text is exactly what gets
executed: statements are submitted one by one, in order, byte for byte.
Notes (SQL comments for unsupported operations) appear in the preview but
are not submitted.

Usage:
    from ddl_designer.session import DesignerSession

    session = await DesignerSession.open_table(client, Dialect.POSTGRES, "users")
    email = session.find_column_by_name("email")
    session.update_column(email.id, name="email_address")
    print(session.preview())
    result = await session.save()
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from ddl_designer.errors import ExecutionFailureError, SessionClosedError
from ddl_designer.schema.create import generate_create_table_sql, validate_definition
from ddl_designer.schema.dialects import Dialect
from ddl_designer.schema.differ import plan_alter_table
from ddl_designer.schema.introspector import fetch_structure
from ddl_designer.schema.models import (
    ColumnDefinition,
    ConstraintStatus,
    DesignerRow,
    ForeignKeyDefinition,
    IndexDefinition,
    RowId,
    RowStatus,
    TableDefinitionSnapshot,
    TableOptions,
)
from ddl_designer.schema.statements import DdlStatement, StatementKind, render_script

if TYPE_CHECKING:
    from ddl_designer.adapters.base import DatabaseClient

logger = logging.getLogger(__name__)

StructureFetcher = Callable[["DatabaseClient", str, Dialect], Awaitable[TableDefinitionSnapshot]]

DEFAULT_TABLE_NAME = "new_table"


class SessionMode(str, Enum):
    NEW = "new"
    EDITING = "editing"


class SaveResult(BaseModel):
    """Result of saving a designer session.

    Attributes:
        success: True if every executable statement ran.
        nothing_to_save: True if the diff was empty and nothing was sent.
        executed: Statements submitted, in order.
        skipped: Notes that were previewed but not submitted.
    """

    success: bool = False
    nothing_to_save: bool = False
    executed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


def default_identity_column() -> ColumnDefinition:
    """The column a new table starts with: ``id INT`` primary key, auto-increment."""
    return ColumnDefinition(
        status=RowStatus.ADDED,
        name="id",
        data_type="INT",
        is_primary_key=True,
        is_not_null=True,
        is_auto_increment=True,
    )


class DesignerSession:
    """Editing session for one table's definition.

    Build with ``DesignerSession(...)`` for a new table, or with
    ``open_table()`` / ``from_snapshot()`` to edit an existing one.

    Args:
        client: Execution collaborator used by ``save()``.
        dialect: Target dialect.
        table_name: Initial name of the new table.
        options: Initial table options (MySQL only).
        available_tables: Names of other tables that foreign keys may
            reference.  Reference data only; never validated against.
    """

    def __init__(
        self,
        client: "DatabaseClient",
        dialect: Dialect,
        table_name: str = DEFAULT_TABLE_NAME,
        options: TableOptions | None = None,
        available_tables: Iterable[str] = (),
    ) -> None:
        self._client = client
        self._dialect = Dialect(dialect)
        self._original: TableDefinitionSnapshot | None = None
        self._working = TableDefinitionSnapshot(
            name=table_name,
            columns=[default_identity_column()],
            options=options.model_copy() if options else TableOptions(),
        )
        self._available_tables: tuple[str, ...] = tuple(available_tables)
        self._closed = False

    @classmethod
    def from_snapshot(
        cls,
        client: "DatabaseClient",
        dialect: Dialect,
        snapshot: TableDefinitionSnapshot,
        available_tables: Iterable[str] = (),
        working: TableDefinitionSnapshot | None = None,
    ) -> "DesignerSession":
        """Start an editing session from an already fetched snapshot.

        Args:
            working: Edited definition to start from.  Rows match the
                snapshot's rows by id.  Defaults to a copy of *snapshot*.
        """
        session = cls(client, dialect, snapshot.name, available_tables=available_tables)
        session._original = snapshot.model_copy(deep=True)
        session._working = (working or snapshot).model_copy(deep=True)
        return session

    @classmethod
    def from_definition(
        cls,
        client: "DatabaseClient",
        dialect: Dialect,
        definition: TableDefinitionSnapshot,
        available_tables: Iterable[str] = (),
    ) -> "DesignerSession":
        """Start a new-table session whose working copy is *definition*."""
        session = cls(client, dialect, definition.name, available_tables=available_tables)
        session._working = definition.model_copy(deep=True)
        return session

    @classmethod
    async def open_table(
        cls,
        client: "DatabaseClient",
        dialect: Dialect,
        table_name: str,
        available_tables: Iterable[str] = (),
        fetch: StructureFetcher | None = None,
    ) -> "DesignerSession":
        """Fetch *table_name* and start an editing session on it.

        Args:
            client: Database client; used for the fetch and for ``save()``.
            dialect: Target dialect.
            table_name: Existing table to edit.
            available_tables: Foreign-key target names for the caller's UI.
            fetch: Structure fetcher, defaults to
                ``ddl_designer.schema.introspector.fetch_structure``.
        """
        fetcher = fetch or fetch_structure
        snapshot = await fetcher(client, table_name, Dialect(dialect))
        logger.debug("Opened %s for editing with %d columns", table_name, len(snapshot.columns))
        return cls.from_snapshot(client, dialect, snapshot, available_tables)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def mode(self) -> SessionMode:
        return SessionMode.NEW if self._original is None else SessionMode.EDITING

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def original(self) -> TableDefinitionSnapshot | None:
        """A copy of the fetched definition; ``None`` for a new table."""
        return self._original.model_copy(deep=True) if self._original else None

    @property
    def working(self) -> TableDefinitionSnapshot:
        """The working definition.  Edit it through the session methods."""
        return self._working

    @property
    def available_tables(self) -> tuple[str, ...]:
        return self._available_tables

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Discard the session.  Nothing has been sent to the database."""
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Designer session is closed")

    # ------------------------------------------------------------------
    # Table-level edits
    # ------------------------------------------------------------------

    def rename_table(self, name: str) -> None:
        """Set the name of a new table.

        Raises:
            ValueError: When editing an existing table.
        """
        self._ensure_open()
        if self.mode is SessionMode.EDITING:
            raise ValueError("Existing tables cannot be renamed in the designer")
        self._working.name = name

    def set_options(self, **changes: Any) -> None:
        """Change table options (charset, collation, engine, auto_increment, comment)."""
        self._ensure_open()
        unknown = set(changes) - set(TableOptions.model_fields)
        if unknown:
            raise ValueError(f"Unknown table option(s): {', '.join(sorted(unknown))}")
        for option, value in changes.items():
            setattr(self._working.options, option, value)

    # ------------------------------------------------------------------
    # Row lifecycle (shared by columns, indexes and foreign keys)
    # ------------------------------------------------------------------

    def _find(self, rows: list, row_id: RowId) -> DesignerRow:
        for row in rows:
            if row.id == row_id:
                return row
        raise KeyError(f"No row with id {row_id!r}")

    def _original_rows(self, rows: list) -> list:
        if self._original is None:
            return []
        if rows is self._working.columns:
            return self._original.columns
        if rows is self._working.indexes:
            return self._original.indexes
        return self._original.foreign_keys

    def _update(self, rows: list, row_id: RowId, changes: dict[str, Any]) -> DesignerRow:
        self._ensure_open()
        row = self._find(rows, row_id)
        row.apply_changes(**changes)
        return row

    def _delete(self, rows: list, row_id: RowId) -> None:
        """Remove a new row outright; mark any other row deleted."""
        self._ensure_open()
        row = self._find(rows, row_id)
        if row.is_new:
            rows.remove(row)
        else:
            row.status = row.DELETED_STATUS

    def _undo_delete(self, rows: list, row_id: RowId) -> DesignerRow:
        """Restore a deleted row to clean, dropping edits made before the delete."""
        self._ensure_open()
        row = self._find(rows, row_id)
        if not row.is_deleted:
            raise ValueError(f"Row {row_id!r} is not deleted")
        for original in self._original_rows(rows):
            if original.id == row_id:
                restored = original.model_copy(deep=True)
                rows[rows.index(row)] = restored
                restored.status = restored.CLEAN_STATUS
                return restored
        row.status = row.CLEAN_STATUS
        return row

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def add_column(self, **fields: Any) -> ColumnDefinition:
        """Append a new column; unspecified fields take designer defaults.

        Example:
            col = session.add_column(name="email", length="320")
            col.status  # RowStatus.ADDED
        """
        self._ensure_open()
        values: dict[str, Any] = {
            "name": f"column_{len(self._working.columns) + 1}",
            "data_type": "VARCHAR",
            "length": "255",
        }
        values.update(fields)
        column = ColumnDefinition(**values)
        column.status = RowStatus.ADDED
        column.original_name = None
        self._working.columns.append(column)
        return column

    def update_column(self, column_id: RowId, **changes: Any) -> ColumnDefinition:
        """Edit a column in place; a clean column becomes modified."""
        return self._update(self._working.columns, column_id, changes)

    def delete_column(self, column_id: RowId) -> None:
        self._delete(self._working.columns, column_id)

    def undo_delete_column(self, column_id: RowId) -> ColumnDefinition:
        return self._undo_delete(self._working.columns, column_id)

    def find_column_by_name(self, name: str) -> ColumnDefinition:
        """Return the live working column called *name*.

        Raises:
            KeyError: If no live column has that name.
        """
        for column in self._working.live_columns():
            if column.name == name:
                return column
        raise KeyError(f"No column named {name!r}")

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def add_index(self, **fields: Any) -> IndexDefinition:
        self._ensure_open()
        values: dict[str, Any] = {"name": f"idx_new_{len(self._working.indexes) + 1}"}
        values.update(fields)
        index = IndexDefinition(**values)
        index.status = ConstraintStatus.NEW
        self._working.indexes.append(index)
        return index

    def update_index(self, index_id: RowId, **changes: Any) -> IndexDefinition:
        return self._update(self._working.indexes, index_id, changes)

    def toggle_index_column(self, index_id: RowId, column_name: str) -> IndexDefinition:
        """Add *column_name* to the end of the index, or remove it if present."""
        self._ensure_open()
        index = self._find(self._working.indexes, index_id)
        columns = list(index.columns)
        if column_name in columns:
            columns.remove(column_name)
        else:
            columns.append(column_name)
        return self._update(self._working.indexes, index_id, {"columns": columns})

    def delete_index(self, index_id: RowId) -> None:
        self._delete(self._working.indexes, index_id)

    def undo_delete_index(self, index_id: RowId) -> IndexDefinition:
        return self._undo_delete(self._working.indexes, index_id)

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def add_foreign_key(self, **fields: Any) -> ForeignKeyDefinition:
        self._ensure_open()
        values: dict[str, Any] = {"name": f"fk_new_{len(self._working.foreign_keys) + 1}"}
        values.update(fields)
        fk = ForeignKeyDefinition(**values)
        fk.status = ConstraintStatus.NEW
        self._working.foreign_keys.append(fk)
        return fk

    def update_foreign_key(self, fk_id: RowId, **changes: Any) -> ForeignKeyDefinition:
        return self._update(self._working.foreign_keys, fk_id, changes)

    def delete_foreign_key(self, fk_id: RowId) -> None:
        self._delete(self._working.foreign_keys, fk_id)

    def undo_delete_foreign_key(self, fk_id: RowId) -> ForeignKeyDefinition:
        return self._undo_delete(self._working.foreign_keys, fk_id)

    # ------------------------------------------------------------------
    # Preview and save
    # ------------------------------------------------------------------

    def statements(self) -> list[DdlStatement]:
        """Statements that ``save()`` would run, notes included.

        Raises:
            InvalidDefinitionError: The working definition cannot be synthesized
                (empty names, no columns left, an index without columns, an
                incomplete foreign key).
        """
        self._ensure_open()
        if self._original is None:
            sql = generate_create_table_sql(self._working, self._dialect)
            return [DdlStatement(StatementKind.CREATE_TABLE, sql)]
        validate_definition(self._working)
        return plan_alter_table(self._original, self._working, self._dialect).statements

    def preview(self) -> str:
        """SQL text shown for confirmation; empty when there is nothing to do."""
        return render_script(self.statements())

    async def save(self) -> SaveResult:
        """Submit the statements one at a time, in order, then close.

        An empty ALTER sequence makes no call and reports
        ``nothing_to_save``.

        Raises:
            InvalidDefinitionError: Before anything is sent.
            ExecutionFailureError: A statement failed.  The statements after
                it were not attempted; the ones before it stay applied.
        """
        statements = self.statements()
        result = SaveResult()

        if not statements:
            logger.info("No changes to save for %s", self._working.name)
            result.success = True
            result.nothing_to_save = True
            self.close()
            return result

        for position, statement in enumerate(statements):
            if not statement.executable:
                result.skipped.append(statement.sql)
                continue
            logger.debug("Executing statement %d/%d: %s", position + 1, len(statements), statement.sql)
            try:
                await self._client.execute(statement.sql)
            except Exception as e:
                logger.warning(
                    "Statement %d/%d failed for %s: %s",
                    position + 1,
                    len(statements),
                    self._working.name,
                    e,
                )
                raise ExecutionFailureError(
                    statement=statement.sql,
                    index=position,
                    error=e,
                    executed=result.executed,
                    not_attempted=[s.sql for s in statements[position + 1:] if s.executable],
                ) from e
            result.executed.append(statement.sql)

        if not result.executed:
            logger.info("Nothing executable to save for %s", self._working.name)
        else:
            logger.info("Saved %s: %d statement(s) executed", self._working.name, len(result.executed))
        result.success = True
        self.close()
        return result
