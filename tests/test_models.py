"""Tests for the designer data model.

Covers literal tagging of defaults, the row edit lifecycle, referential
action parsing, and the closed dialect variant.
"""

import pytest
from pydantic import ValidationError

from ddl_designer.schema.dialects import Dialect, dialect_from_url, get_rules
from ddl_designer.schema.models import (
    ColumnDefinition,
    ConstraintStatus,
    DefaultKind,
    DefaultValue,
    ForeignKeyAction,
    ForeignKeyDefinition,
    IndexDefinition,
    RowStatus,
    TableDefinitionSnapshot,
    new_row_id,
    quote_literal,
)


# ============================================================================
# Test: Default value literal tags
# ============================================================================


class TestDefaultValue:
    """Verify each literal kind lowers to the right SQL text."""

    def test_string_is_quoted(self) -> None:
        assert DefaultValue.string("active").to_sql() == "'active'"

    def test_string_doubles_embedded_quotes(self) -> None:
        assert DefaultValue.string("O'Brien").to_sql() == "'O''Brien'"

    def test_number_emitted_as_is(self) -> None:
        assert DefaultValue.number(42).to_sql() == "42"
        assert DefaultValue.number("-1.5").to_sql() == "-1.5"

    def test_number_rejects_non_numeric(self) -> None:
        with pytest.raises(ValidationError):
            DefaultValue.number("1; DROP TABLE users")

    def test_expression_verbatim(self) -> None:
        assert DefaultValue.expression("CURRENT_TIMESTAMP").to_sql() == "CURRENT_TIMESTAMP"

    def test_is_frozen(self) -> None:
        value = DefaultValue.string("x")
        with pytest.raises(ValidationError):
            value.value = "y"


class TestColumnDefaultCoercion:
    """Plain values assigned to default_value get a literal tag."""

    def test_plain_string_is_expression(self) -> None:
        col = ColumnDefinition(name="created_at", data_type="DATETIME", default_value="now()")
        assert col.default_value == DefaultValue.expression("now()")

    def test_int_is_number(self) -> None:
        col = ColumnDefinition(name="qty", data_type="INT", default_value=0)
        assert col.default_value.kind is DefaultKind.NUMBER
        assert col.default_value.to_sql() == "0"

    def test_empty_string_is_no_default(self) -> None:
        col = ColumnDefinition(name="note", data_type="TEXT", default_value="")
        assert col.default_value is None

    def test_bool_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ColumnDefinition(name="flag", data_type="BOOLEAN", default_value=True)

    def test_tagged_dict_accepted(self) -> None:
        col = ColumnDefinition(
            name="status",
            data_type="VARCHAR",
            length="16",
            default_value={"kind": "string", "value": "new"},
        )
        assert col.default_value.to_sql() == "'new'"


# ============================================================================
# Test: Column shape helpers
# ============================================================================


class TestColumnDefinition:
    """Verify identity and rendering helpers on ColumnDefinition."""

    def test_type_sql_upper_cases_and_appends_length(self) -> None:
        col = ColumnDefinition(name="email", data_type="varchar", length="255")
        assert col.type_sql == "VARCHAR(255)"

    def test_type_sql_without_length(self) -> None:
        assert ColumnDefinition(name="bio", data_type="text").type_sql == "TEXT"

    def test_primary_key_implies_not_null(self) -> None:
        col = ColumnDefinition(name="id", data_type="INT", is_primary_key=True, is_not_null=False)
        assert col.effective_not_null is True

    def test_ids_are_unique_and_opaque(self) -> None:
        a = ColumnDefinition(name="email", data_type="TEXT")
        b = ColumnDefinition(name="email", data_type="TEXT")
        assert a.id != b.id
        assert "email" not in a.id

    def test_new_row_id_prefix(self) -> None:
        assert new_row_id("idx").startswith("idx_")

    def test_definition_excludes_bookkeeping(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT", original_name="mail")
        definition = col.definition()
        assert "id" not in definition
        assert "status" not in definition
        assert "original_name" not in definition
        assert definition["name"] == "email"

    def test_same_definition_ignores_status(self) -> None:
        a = ColumnDefinition(id="c1", name="email", data_type="TEXT", status=RowStatus.MODIFIED)
        b = ColumnDefinition(id="c1", name="email", data_type="TEXT")
        assert a.same_definition(b)


def test_quote_literal() -> None:
    assert quote_literal("it's") == "'it''s'"


# ============================================================================
# Test: Row lifecycle
# ============================================================================


class TestApplyChanges:
    """Verify status promotion and guards in apply_changes()."""

    def test_clean_becomes_modified(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT")
        col.apply_changes(name="email_address")
        assert col.status is RowStatus.MODIFIED
        assert col.name == "email_address"

    def test_added_stays_added(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT", status=RowStatus.ADDED)
        col.apply_changes(is_not_null=True)
        assert col.status is RowStatus.ADDED

    def test_modified_stays_modified(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT", status=RowStatus.MODIFIED)
        col.apply_changes(comment="Login")
        assert col.status is RowStatus.MODIFIED

    def test_deleted_row_cannot_be_edited(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT", status=RowStatus.DELETED)
        with pytest.raises(ValueError, match="deleted"):
            col.apply_changes(name="x")

    def test_unknown_field_rejected(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT")
        with pytest.raises(ValueError, match="colour"):
            col.apply_changes(colour="red")
        assert col.status is RowStatus.CLEAN

    def test_id_is_not_editable(self) -> None:
        col = ColumnDefinition(name="email", data_type="TEXT")
        with pytest.raises(ValueError):
            col.apply_changes(id="other")

    def test_index_lifecycle_uses_constraint_status(self) -> None:
        index = IndexDefinition(name="idx_email", columns=["email"])
        index.apply_changes(columns=["email", "tenant_id"])
        assert index.status is ConstraintStatus.MODIFIED

    def test_new_foreign_key_stays_new(self) -> None:
        fk = ForeignKeyDefinition(name="fk_new_1", status=ConstraintStatus.NEW)
        fk.apply_changes(source_column="user_id", ref_table="users")
        assert fk.status is ConstraintStatus.NEW
        assert fk.is_new


# ============================================================================
# Test: Referential actions
# ============================================================================


class TestForeignKeyAction:
    """Verify catalog spellings parse and SQL spellings render."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("SET NULL", ForeignKeyAction.SET_NULL),
            ("set-null", ForeignKeyAction.SET_NULL),
            ("NO ACTION", ForeignKeyAction.NO_ACTION),
            ("CASCADE", ForeignKeyAction.CASCADE),
            ("restrict", ForeignKeyAction.RESTRICT),
        ],
    )
    def test_parse(self, raw: str, expected: ForeignKeyAction) -> None:
        assert ForeignKeyAction(raw) is expected

    def test_sql_spelling(self) -> None:
        assert ForeignKeyAction.SET_NULL.sql == "SET NULL"
        assert ForeignKeyAction.NO_ACTION.sql == "NO ACTION"

    def test_unknown_action_rejected(self) -> None:
        with pytest.raises(ValueError):
            ForeignKeyAction("SET DEFAULT")

    def test_foreign_key_defaults(self) -> None:
        fk = ForeignKeyDefinition()
        assert fk.ref_column == "id"
        assert fk.on_delete is ForeignKeyAction.RESTRICT
        assert fk.on_update is ForeignKeyAction.RESTRICT


# ============================================================================
# Test: Dialects and snapshots
# ============================================================================


class TestDialect:
    """Verify the closed dialect variant and its rule tables."""

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("postgres", Dialect.POSTGRES),
            ("postgresql", Dialect.POSTGRES),
            ("mysql", Dialect.MYSQL),
            ("mariadb", Dialect.MYSQL),
            ("sqlite", Dialect.SQLITE),
        ],
    )
    def test_aliases(self, alias: str, expected: Dialect) -> None:
        assert Dialect(alias) is expected

    def test_unsupported_dialect(self) -> None:
        with pytest.raises(ValueError):
            Dialect("oracle")

    def test_every_dialect_has_rules(self) -> None:
        for dialect in Dialect:
            assert get_rules(dialect).dialect is dialect

    @pytest.mark.parametrize(
        "data_type, expected",
        [("INT", "SERIAL"), ("integer", "SERIAL"), ("BIGINT", "BIGSERIAL"), ("VARCHAR", None)],
    )
    def test_serial_type(self, data_type: str, expected: str | None) -> None:
        assert get_rules(Dialect.POSTGRES).serial_type(data_type) == expected

    def test_mariadb_shares_mysql_rename(self) -> None:
        rules = get_rules("mariadb")
        assert rules is get_rules(Dialect.MYSQL)
        assert rules.rename_column == "ALTER TABLE {table} RENAME COLUMN {old} TO {new};"

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("mariadb://u@h/db", Dialect.MYSQL),
            ("postgresql+asyncpg://u@h/db", Dialect.POSTGRES),
            ("SQLITE:///app.db", Dialect.SQLITE),
        ],
    )
    def test_dialect_from_url(self, url: str, expected: Dialect) -> None:
        assert dialect_from_url(url) is expected


class TestTableDefinitionSnapshot:
    """Verify live-row filtering."""

    def test_live_rows_exclude_deleted(self) -> None:
        snapshot = TableDefinitionSnapshot(
            name="users",
            columns=[
                ColumnDefinition(name="id", data_type="INT"),
                ColumnDefinition(name="legacy", data_type="TEXT", status=RowStatus.DELETED),
            ],
            indexes=[IndexDefinition(name="idx_old", columns=["legacy"], status=ConstraintStatus.DELETED)],
            foreign_keys=[ForeignKeyDefinition(name="fk_org", source_column="org_id", ref_table="orgs")],
        )
        assert [c.name for c in snapshot.live_columns()] == ["id"]
        assert snapshot.live_indexes() == []
        assert [fk.name for fk in snapshot.live_foreign_keys()] == ["fk_org"]
