"""Tests for the designer session orchestrator.

The execution collaborator is an ``AsyncMock``; every test checks what
would be sent to the database and in which order.
"""

from unittest.mock import AsyncMock, call

import pytest

from ddl_designer.errors import ExecutionFailureError, InvalidDefinitionError, SessionClosedError
from ddl_designer.schema.dialects import Dialect
from ddl_designer.schema.models import (
    ColumnDefinition,
    ConstraintStatus,
    ForeignKeyAction,
    IndexDefinition,
    IndexKind,
    RowStatus,
    TableDefinitionSnapshot,
    TableOptions,
)
from ddl_designer.session import DesignerSession, SessionMode


def _fetched_users() -> TableDefinitionSnapshot:
    return TableDefinitionSnapshot(
        name="users",
        columns=[
            ColumnDefinition(id="pk", name="id", data_type="INT", is_primary_key=True,
                             is_auto_increment=True, original_name="id"),
            ColumnDefinition(id="a", name="email", data_type="VARCHAR", length="255", original_name="email"),
            ColumnDefinition(id="b", name="legacy", data_type="TEXT", original_name="legacy"),
        ],
        indexes=[IndexDefinition(id="i1", name="idx_email", kind=IndexKind.UNIQUE, columns=["email"])],
    )


def _editing(dialect: Dialect = Dialect.MYSQL, client: AsyncMock | None = None) -> DesignerSession:
    return DesignerSession.from_snapshot(client or AsyncMock(), dialect, _fetched_users())


# ============================================================================
# Test: New-table mode
# ============================================================================


class TestNewTableSession:
    """Verify the starting state and CREATE preview of a new table."""

    def test_starts_with_identity_column(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.MYSQL)
        assert session.mode is SessionMode.NEW
        assert session.original is None
        (col,) = session.working.columns
        assert (col.name, col.data_type) == ("id", "INT")
        assert col.is_primary_key and col.is_not_null and col.is_auto_increment
        assert col.status is RowStatus.ADDED

    def test_preview_is_create_table(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.MYSQL)
        assert session.preview() == (
            "CREATE TABLE new_table (\n"
            "  id INT PRIMARY KEY NOT NULL AUTO_INCREMENT\n"
            ");"
        )

    def test_postgres_preview_uses_serial(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.POSTGRES, table_name="accounts")
        assert "id SERIAL PRIMARY KEY NOT NULL" in session.preview()

    def test_initial_options(self) -> None:
        options = TableOptions(engine="InnoDB", charset="utf8mb4")
        session = DesignerSession(AsyncMock(), Dialect.MYSQL, options=options)
        session.set_options(comment="Accounts")
        assert session.preview().endswith(") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COMMENT='Accounts';")
        assert options.comment == ""

    def test_rename_table(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.MYSQL)
        session.rename_table("accounts")
        assert session.preview().startswith("CREATE TABLE accounts (")

    @pytest.mark.asyncio
    async def test_save_executes_single_create(self) -> None:
        client = AsyncMock()
        session = DesignerSession(client, Dialect.MYSQL)
        session.add_column(name="email", is_not_null=True)
        preview = session.preview()

        result = await session.save()

        client.execute.assert_awaited_once_with(preview)
        assert result.success
        assert result.executed == [preview]
        assert not result.nothing_to_save

    @pytest.mark.asyncio
    async def test_invalid_definition_sends_nothing(self) -> None:
        client = AsyncMock()
        session = DesignerSession(client, Dialect.MYSQL)
        session.delete_column(session.working.columns[0].id)
        assert session.working.columns == []

        with pytest.raises(InvalidDefinitionError):
            await session.save()
        client.execute.assert_not_awaited()

    def test_from_definition(self) -> None:
        definition = TableDefinitionSnapshot(
            name="tags", columns=[ColumnDefinition(name="label", data_type="TEXT")]
        )
        session = DesignerSession.from_definition(AsyncMock(), Dialect.SQLITE, definition)
        assert session.mode is SessionMode.NEW
        assert session.preview() == "CREATE TABLE tags (\n  label TEXT\n);"


# ============================================================================
# Test: Row editing
# ============================================================================


class TestColumnEditing:
    """Verify the column lifecycle through the session."""

    def test_add_column_defaults(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.MYSQL)
        col = session.add_column()
        assert col.name == "column_2"
        assert col.type_sql == "VARCHAR(255)"
        assert col.status is RowStatus.ADDED
        assert not col.is_not_null
        assert col.original_name is None

    def test_add_column_overrides(self) -> None:
        session = DesignerSession(AsyncMock(), Dialect.MYSQL)
        col = session.add_column(name="age", data_type="INT", length="")
        assert col.type_sql == "INT"

    def test_update_promotes_clean(self) -> None:
        session = _editing()
        col = session.update_column("a", name="email_address")
        assert col.status is RowStatus.MODIFIED
        assert session.original.columns[1].name == "email"

    def test_delete_added_removes_row(self) -> None:
        session = _editing()
        col = session.add_column()
        session.delete_column(col.id)
        assert col.id not in [c.id for c in session.working.columns]

    def test_delete_clean_marks_deleted(self) -> None:
        session = _editing()
        session.delete_column("b")
        assert session.working.columns[2].status is RowStatus.DELETED
        assert session.working.columns[2].name == "legacy"

    def test_undo_delete_discards_edits(self) -> None:
        session = _editing()
        session.update_column("b", name="old_stuff", comment="to go")
        session.delete_column("b")
        restored = session.undo_delete_column("b")
        assert restored.status is RowStatus.CLEAN
        assert restored.name == "legacy"
        assert restored.comment == ""
        assert session.preview() == ""

    def test_undo_delete_requires_deleted_row(self) -> None:
        with pytest.raises(ValueError):
            _editing().undo_delete_column("a")

    def test_edit_deleted_row_rejected(self) -> None:
        session = _editing()
        session.delete_column("b")
        with pytest.raises(ValueError):
            session.update_column("b", name="x")

    def test_unknown_id(self) -> None:
        with pytest.raises(KeyError):
            _editing().update_column("nope", name="x")

    def test_find_column_by_name(self) -> None:
        session = _editing()
        assert session.find_column_by_name("email").id == "a"
        with pytest.raises(KeyError):
            session.find_column_by_name("missing")

    def test_existing_table_cannot_be_renamed(self) -> None:
        with pytest.raises(ValueError):
            _editing().rename_table("people")

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValueError, match="colour"):
            _editing().set_options(colour="blue")


class TestConstraintEditing:
    """Verify index and foreign-key templates and lifecycle."""

    def test_add_index_defaults(self) -> None:
        session = _editing()
        index = session.add_index()
        assert index.name == "idx_new_2"
        assert index.kind is IndexKind.NORMAL
        assert index.columns == []
        assert index.status is ConstraintStatus.NEW

    def test_toggle_index_column(self) -> None:
        session = _editing()
        session.toggle_index_column("i1", "id")
        assert session.working.indexes[0].columns == ["email", "id"]
        session.toggle_index_column("i1", "email")
        assert session.working.indexes[0].columns == ["id"]
        assert session.working.indexes[0].status is ConstraintStatus.MODIFIED

    def test_add_foreign_key_defaults(self) -> None:
        session = _editing()
        fk = session.add_foreign_key(source_column="org_id", ref_table="orgs")
        assert fk.name == "fk_new_1"
        assert fk.ref_column == "id"
        assert fk.on_delete is ForeignKeyAction.RESTRICT
        assert fk.on_update is ForeignKeyAction.RESTRICT
        assert fk.status is ConstraintStatus.NEW

    def test_delete_and_undo_index(self) -> None:
        session = _editing()
        session.delete_index("i1")
        assert session.preview() == "DROP INDEX idx_email ON users;"
        session.undo_delete_index("i1")
        assert session.working.indexes[0].status is ConstraintStatus.CLEAN
        assert session.preview() == ""

    def test_delete_new_foreign_key_removes_it(self) -> None:
        session = _editing()
        fk = session.add_foreign_key()
        session.delete_foreign_key(fk.id)
        assert session.working.foreign_keys == []

    def test_update_foreign_key(self) -> None:
        session = _editing()
        fk = session.add_foreign_key(source_column="org_id", ref_table="orgs")
        session.update_foreign_key(fk.id, on_delete=ForeignKeyAction.CASCADE)
        assert "ON DELETE CASCADE" in session.preview()

    def test_available_tables_are_reference_data(self) -> None:
        session = DesignerSession.from_snapshot(
            AsyncMock(), Dialect.MYSQL, _fetched_users(), available_tables=["orgs", "teams"]
        )
        assert session.available_tables == ("orgs", "teams")


class TestEditingValidation:
    """Verify the working copy is checked before ALTER synthesis."""

    def test_unnamed_column_rejected(self) -> None:
        session = _editing()
        session.add_column(name="")
        with pytest.raises(InvalidDefinitionError, match="has no name"):
            session.preview()

    def test_index_without_columns_rejected(self) -> None:
        session = _editing()
        session.add_index()
        with pytest.raises(InvalidDefinitionError, match="covers no columns"):
            session.preview()

    def test_incomplete_foreign_key_rejected(self) -> None:
        session = _editing()
        session.add_foreign_key()
        with pytest.raises(InvalidDefinitionError, match="fk_new_1"):
            session.preview()

    @pytest.mark.asyncio
    async def test_deleting_every_column_sends_nothing(self) -> None:
        client = AsyncMock()
        session = _editing(client=client)
        for column in list(session.working.columns):
            session.delete_column(column.id)

        with pytest.raises(InvalidDefinitionError, match="at least one column"):
            await session.save()
        client.execute.assert_not_awaited()
        assert not session.closed

    def test_fixed_row_previews_again(self) -> None:
        session = _editing()
        index = session.add_index()
        with pytest.raises(InvalidDefinitionError):
            session.preview()
        session.toggle_index_column(index.id, "email")
        assert session.preview() == "CREATE INDEX idx_new_2 ON users (email);"


# ============================================================================
# Test: Editing mode save
# ============================================================================


class TestEditingSave:
    """Verify statement-by-statement execution of the ALTER sequence."""

    @pytest.mark.asyncio
    async def test_open_table_uses_fetcher(self) -> None:
        client = AsyncMock()
        fetch = AsyncMock(return_value=_fetched_users())
        session = await DesignerSession.open_table(client, Dialect.POSTGRES, "users", fetch=fetch)
        fetch.assert_awaited_once_with(client, "users", Dialect.POSTGRES)
        assert session.mode is SessionMode.EDITING
        assert session.preview() == ""

    @pytest.mark.asyncio
    async def test_nothing_to_save_makes_no_call(self) -> None:
        client = AsyncMock()
        session = _editing(client=client)
        result = await session.save()
        assert result.nothing_to_save
        assert result.success
        client.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_statements_sent_in_preview_order(self) -> None:
        client = AsyncMock()
        session = _editing(client=client)
        session.update_column("a", name="email_address")
        session.delete_column("b")
        session.add_column(name="nickname", data_type="TEXT", length="")
        preview = session.preview()

        result = await session.save()

        assert preview.split("\n") == [
            "ALTER TABLE users DROP COLUMN legacy;",
            "ALTER TABLE users ADD COLUMN nickname TEXT;",
            "ALTER TABLE users RENAME COLUMN email TO email_address;",
        ]
        assert client.execute.await_args_list == [call(sql) for sql in preview.split("\n")]
        assert result.executed == preview.split("\n")

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_statements(self) -> None:
        client = AsyncMock()
        boom = RuntimeError("column nickname already exists")
        client.execute.side_effect = [None, boom, None]
        session = _editing(client=client)
        session.update_column("a", name="email_address")
        session.delete_column("b")
        session.add_column(name="nickname", data_type="TEXT", length="")

        with pytest.raises(ExecutionFailureError) as exc_info:
            await session.save()

        err = exc_info.value
        assert client.execute.await_count == 2
        assert err.index == 1
        assert err.statement == "ALTER TABLE users ADD COLUMN nickname TEXT;"
        assert err.executed == ["ALTER TABLE users DROP COLUMN legacy;"]
        assert err.not_attempted == ["ALTER TABLE users RENAME COLUMN email TO email_address;"]
        assert str(err) == "column nickname already exists"
        assert err.error is boom
        assert err.__cause__ is boom
        assert "Statement 2 failed" in err.format_report()

    @pytest.mark.asyncio
    async def test_notes_are_previewed_not_executed(self) -> None:
        client = AsyncMock()
        session = _editing(Dialect.SQLITE, client)
        session.update_column("a", length="320")
        preview = session.preview()
        assert preview.startswith("-- SQLite: in-place column alteration is not supported")

        result = await session.save()

        client.execute.assert_not_awaited()
        assert result.skipped == [preview]
        assert result.executed == []
        assert not result.nothing_to_save

    @pytest.mark.asyncio
    async def test_session_closed_after_save(self) -> None:
        session = _editing()
        session.update_column("a", comment="Login")
        await session.save()
        assert session.closed
        with pytest.raises(SessionClosedError):
            session.preview()
        with pytest.raises(SessionClosedError):
            session.add_column()

    def test_close_discards_session(self) -> None:
        client = AsyncMock()
        session = _editing(client=client)
        session.update_column("a", name="email_address")
        session.close()
        with pytest.raises(SessionClosedError):
            session.update_column("a", name="mail")
        client.execute.assert_not_called()
