"""ALTER TABLE synthesis by structural diff.

Compares an original table definition with an edited one and produces
the ordered statements that migrate the first into the second.  Pure
logic -- neither input is mutated and nothing is executed.

Rows are matched by ``id``.  The per-row ``status`` is not consulted
except that a row marked deleted in the working copy counts as absent.

Statement order:

1. index drops, foreign-key drops
2. column drops
3. column adds
4. column modifications (rename first, then property changes)
5. index creates, foreign-key adds
6. table option changes

Usage:
    from ddl_designer.schema.differ import plan_alter_table

    plan = plan_alter_table(original_snapshot, working_snapshot, Dialect.POSTGRES)
    if plan.has_changes:
        print(plan.to_sql())
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from ddl_designer.schema.create import (
    TABLE_OPTION_FIELDS,
    render_column_clause,
    render_foreign_key_clause,
    render_table_options,
)
from ddl_designer.schema.dialects import AlterGranularity, Dialect, DialectRules, get_rules
from ddl_designer.schema.models import (
    ColumnDefinition,
    DesignerRow,
    ForeignKeyDefinition,
    IndexDefinition,
    IndexKind,
    TableDefinitionSnapshot,
    TableOptions,
    quote_literal,
)
from ddl_designer.schema.statements import DdlStatement, StatementKind, render_script

RowT = TypeVar("RowT", bound=DesignerRow)

# Column fields a MySQL MODIFY COLUMN restates
_RESTATED_PROPERTIES = ("type_sql", "effective_not_null", "default_value", "comment", "is_auto_increment")


@dataclass
class AlterPlan:
    """Ordered ALTER statements for one table.

    Attributes:
        table: Table the statements apply to.
        dialect: Target dialect.
        statements: Statements in execution order, notes included.
    """

    table: str
    dialect: Dialect
    statements: list[DdlStatement] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """True if the diff produced any statement."""
        return bool(self.statements)

    @property
    def executable_statements(self) -> list[DdlStatement]:
        return [s for s in self.statements if s.executable]

    @property
    def notes(self) -> list[DdlStatement]:
        return [s for s in self.statements if not s.executable]

    def to_sql(self) -> str:
        """Preview text: one statement per line."""
        return render_script(self.statements)


# ------------------------------------------------------------------
# Matching
# ------------------------------------------------------------------


def _match_rows(
    original: Sequence[RowT],
    working: Sequence[RowT],
) -> tuple[list[RowT], list[RowT], list[tuple[RowT, RowT]]]:
    """Split rows into (removed, added, changed pairs) by id."""
    live_working = [row for row in working if not row.is_deleted]
    original_by_id = {row.id: row for row in original}
    working_by_id = {row.id: row for row in live_working}

    removed = [row for row in original if row.id not in working_by_id]
    added = [row for row in live_working if row.id not in original_by_id]
    changed = [
        (original_by_id[row.id], row)
        for row in live_working
        if row.id in original_by_id and not row.same_definition(original_by_id[row.id])
    ]
    return removed, added, changed


# ------------------------------------------------------------------
# Columns
# ------------------------------------------------------------------


def _alter_column_per_property(
    table: str,
    before: ColumnDefinition,
    after: ColumnDefinition,
    rules: DialectRules,
) -> list[DdlStatement]:
    statements: list[DdlStatement] = []
    prefix = f"ALTER TABLE {table} ALTER COLUMN {after.name}"

    if before.type_sql != after.type_sql:
        statements.append(
            DdlStatement(StatementKind.ALTER_COLUMN, f"{prefix} TYPE {after.type_sql};")
        )
    if before.effective_not_null != after.effective_not_null:
        action = "SET" if after.effective_not_null else "DROP"
        statements.append(
            DdlStatement(StatementKind.ALTER_COLUMN, f"{prefix} {action} NOT NULL;")
        )
    if before.default_value != after.default_value:
        if after.default_value is not None:
            sql = f"{prefix} SET DEFAULT {after.default_value.to_sql()};"
        else:
            sql = f"{prefix} DROP DEFAULT;"
        statements.append(DdlStatement(StatementKind.ALTER_COLUMN, sql))
    if before.comment != after.comment and rules.column_comment:
        comment = quote_literal(after.comment) if after.comment else "NULL"
        statements.append(
            DdlStatement(
                StatementKind.COMMENT,
                rules.column_comment.format(table=table, column=after.name, comment=comment),
            )
        )
    return statements


def _modify_column_restated(
    table: str,
    before: ColumnDefinition,
    after: ColumnDefinition,
    dialect: Dialect,
) -> list[DdlStatement]:
    if all(getattr(before, prop) == getattr(after, prop) for prop in _RESTATED_PROPERTIES):
        return []
    clause = render_column_clause(after, dialect, include_primary_key=False)
    return [DdlStatement(StatementKind.MODIFY_COLUMN, f"ALTER TABLE {table} MODIFY COLUMN {clause};")]


def _key_change_notes(
    before: ColumnDefinition,
    after: ColumnDefinition,
    rules: DialectRules,
) -> list[DdlStatement]:
    notes: list[DdlStatement] = []
    if before.is_primary_key != after.is_primary_key:
        notes.append(
            DdlStatement.unsupported(
                f"{rules.label}: primary key change on column {after.name} requires a manual migration"
            )
        )
    if before.is_auto_increment != after.is_auto_increment and rules.alter_granularity is AlterGranularity.PER_PROPERTY:
        notes.append(
            DdlStatement.unsupported(
                f"{rules.label}: auto-increment change on column {after.name} requires a manual migration"
            )
        )
    return notes


def _describe_column_change(before: ColumnDefinition, after: ColumnDefinition) -> str:
    if before.name != after.name:
        return f"{before.name} -> {after.name}"
    return after.name


def diff_columns(
    table_name: str,
    original: Sequence[ColumnDefinition],
    working: Sequence[ColumnDefinition],
    dialect: Dialect,
) -> list[DdlStatement]:
    """Diff two column collections into ordered ALTER statements.

    Drops come first, then adds, then modifications.  A column whose id
    appears in both collections with a different name is renamed, never
    dropped and re-added.  The old name always comes from the original
    row.

    Args:
        table_name: Table the statements apply to.
        original: Columns as last persisted.
        working: Edited columns; rows marked deleted count as absent.
        dialect: Target dialect.

    Returns:
        Statements in execution order.  Empty when nothing changed.

    Example:
        >>> before = [ColumnDefinition(id="a", name="email", data_type="VARCHAR", length="255")]
        >>> after = [ColumnDefinition(id="a", name="email_address", data_type="VARCHAR", length="255")]
        >>> [s.sql for s in diff_columns("users", before, after, Dialect.MYSQL)]
        ['ALTER TABLE users RENAME COLUMN email TO email_address;']
    """
    rules = get_rules(dialect)
    dropped, added, modified = _match_rows(original, working)
    statements: list[DdlStatement] = []

    for column in dropped:
        statements.append(
            DdlStatement(StatementKind.DROP_COLUMN, f"ALTER TABLE {table_name} DROP COLUMN {column.name};")
        )

    for column in added:
        clause = render_column_clause(column, dialect, statements)
        statements.append(
            DdlStatement(StatementKind.ADD_COLUMN, f"ALTER TABLE {table_name} ADD COLUMN {clause};")
        )

    if not modified:
        return statements

    if rules.alter_granularity is AlterGranularity.UNSUPPORTED:
        changed = ", ".join(_describe_column_change(before, after) for before, after in modified)
        statements.append(
            DdlStatement.unsupported(
                f"{rules.label}: in-place column alteration is not supported ({changed}); "
                "a manual migration is required"
            )
        )
        return statements

    for before, after in modified:
        if before.name != after.name and rules.rename_column:
            statements.append(
                DdlStatement(
                    StatementKind.RENAME_COLUMN,
                    rules.rename_column.format(table=table_name, old=before.name, new=after.name),
                )
            )
        if rules.alter_granularity is AlterGranularity.PER_PROPERTY:
            statements.extend(_alter_column_per_property(table_name, before, after, rules))
        else:
            statements.extend(_modify_column_restated(table_name, before, after, dialect))
        statements.extend(_key_change_notes(before, after, rules))

    return statements


def generate_alter_table_sql(
    table_name: str,
    original: Sequence[ColumnDefinition],
    working: Sequence[ColumnDefinition],
    dialect: Dialect,
) -> list[str]:
    """SQL text of ``diff_columns``, one string per statement."""
    return [statement.sql for statement in diff_columns(table_name, original, working, dialect)]


# ------------------------------------------------------------------
# Indexes and foreign keys
# ------------------------------------------------------------------


def diff_indexes(
    table_name: str,
    original: Sequence[IndexDefinition],
    working: Sequence[IndexDefinition],
    dialect: Dialect,
) -> tuple[list[DdlStatement], list[DdlStatement]]:
    """Return (drops, creates); a changed index is dropped and recreated."""
    rules = get_rules(dialect)
    removed, added, changed = _match_rows(original, working)

    drops = [
        DdlStatement(StatementKind.DROP_INDEX, rules.drop_index.format(index=index.name, table=table_name))
        for index in removed + [before for before, _ in changed]
    ]

    creates: list[DdlStatement] = []
    for index in added + [after for _, after in changed]:
        if index.kind is IndexKind.FULLTEXT:
            creates.append(
                DdlStatement.unsupported(f"{rules.label}: FULLTEXT index {index.name} is not synthesized")
            )
            continue
        unique = "UNIQUE " if index.kind is IndexKind.UNIQUE else ""
        creates.append(
            DdlStatement(
                StatementKind.CREATE_INDEX,
                f"CREATE {unique}INDEX {index.name} ON {table_name} ({', '.join(index.columns)});",
            )
        )
    return drops, creates


def diff_foreign_keys(
    table_name: str,
    original: Sequence[ForeignKeyDefinition],
    working: Sequence[ForeignKeyDefinition],
    dialect: Dialect,
) -> tuple[list[DdlStatement], list[DdlStatement]]:
    """Return (drops, adds); a changed foreign key is dropped and re-added."""
    rules = get_rules(dialect)
    removed, added, changed = _match_rows(original, working)

    drops: list[DdlStatement] = []
    for fk in removed + [before for before, _ in changed]:
        if rules.drop_foreign_key is None:
            drops.append(
                DdlStatement.unsupported(
                    f"{rules.label}: dropping foreign key on {fk.source_column} requires rebuilding the table"
                )
            )
        elif not fk.name:
            drops.append(
                DdlStatement.unsupported(
                    f"{rules.label}: unnamed foreign key on {fk.source_column} cannot be dropped by name"
                )
            )
        else:
            drops.append(
                DdlStatement(
                    StatementKind.DROP_FOREIGN_KEY,
                    rules.drop_foreign_key.format(table=table_name, name=fk.name),
                )
            )

    adds: list[DdlStatement] = []
    for fk in added + [after for _, after in changed]:
        if not rules.add_foreign_key:
            adds.append(
                DdlStatement.unsupported(
                    f"{rules.label}: adding foreign key on {fk.source_column} requires rebuilding the table"
                )
            )
        else:
            adds.append(
                DdlStatement(
                    StatementKind.ADD_FOREIGN_KEY,
                    f"ALTER TABLE {table_name} ADD {render_foreign_key_clause(fk)};",
                )
            )
    return drops, adds


# ------------------------------------------------------------------
# Table options
# ------------------------------------------------------------------


def diff_table_options(
    table_name: str,
    original: TableOptions,
    working: TableOptions,
    dialect: Dialect,
) -> list[DdlStatement]:
    """Statements restating changed table options.

    MySQL restates the changed options in one ALTER TABLE.  Dialects with
    a standalone comment statement only track the table comment; other
    options have no meaning there and are ignored.
    """
    rules = get_rules(dialect)
    changed = tuple(
        name for name in TABLE_OPTION_FIELDS if getattr(original, name) != getattr(working, name)
    )
    if not changed:
        return []

    if rules.table_options:
        tokens = render_table_options(working, changed)
        if "comment" in changed and not working.comment:
            tokens = f"{tokens} COMMENT=''".strip()
        if not tokens:
            return []
        return [DdlStatement(StatementKind.TABLE_OPTIONS, f"ALTER TABLE {table_name} {tokens};")]

    if rules.table_comment and "comment" in changed:
        comment = quote_literal(working.comment) if working.comment else "NULL"
        return [
            DdlStatement(StatementKind.COMMENT, rules.table_comment.format(table=table_name, comment=comment))
        ]
    return []


# ------------------------------------------------------------------
# Whole table
# ------------------------------------------------------------------


def plan_alter_table(
    original: TableDefinitionSnapshot,
    working: TableDefinitionSnapshot,
    dialect: Dialect,
) -> AlterPlan:
    """Diff two snapshots of the same table into an ``AlterPlan``.

    Statements are addressed to ``original.name``; table renames are not
    synthesized.

    Example:
        plan = plan_alter_table(session.original, session.working, Dialect.MYSQL)
        for statement in plan.executable_statements:
            await client.execute(statement.sql)
    """
    table = original.name
    index_drops, index_creates = diff_indexes(table, original.indexes, working.indexes, dialect)
    fk_drops, fk_adds = diff_foreign_keys(table, original.foreign_keys, working.foreign_keys, dialect)

    statements = (
        index_drops
        + fk_drops
        + diff_columns(table, original.columns, working.columns, dialect)
        + index_creates
        + fk_adds
        + diff_table_options(table, original.options, working.options, dialect)
    )
    return AlterPlan(table=table, dialect=dialect, statements=statements)
