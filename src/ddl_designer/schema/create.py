"""CREATE TABLE synthesis.

Turns a ``TableDefinitionSnapshot`` into a single CREATE TABLE statement
for one dialect.  Pure logic -- no I/O, nothing is executed.

Rows marked deleted are ignored.  Lowerings the dialect does not support
(SQLite auto-increment, fulltext indexes) are reported as ``--`` comment
lines placed ahead of the statement, so the output is still one
statement ending in ``;``.

Usage:
    from ddl_designer.schema.create import generate_create_table_sql
    from ddl_designer.schema.dialects import Dialect

    sql = generate_create_table_sql(snapshot, Dialect.MYSQL)
"""

from ddl_designer.errors import InvalidDefinitionError
from ddl_designer.schema.dialects import AutoIncrementStyle, Dialect, get_rules
from ddl_designer.schema.models import (
    ColumnDefinition,
    ForeignKeyDefinition,
    IndexKind,
    TableDefinitionSnapshot,
    TableOptions,
    quote_literal,
)
from ddl_designer.schema.statements import DdlStatement

# Table option rendering order
TABLE_OPTION_FIELDS = ("engine", "charset", "collation", "auto_increment", "comment")


def validate_definition(snapshot: TableDefinitionSnapshot) -> None:
    """Check that *snapshot* can be synthesized.

    Raises:
        InvalidDefinitionError: If the table name is empty, no live columns
            remain, a column lacks a name or type, an index covers no
            columns, or a foreign key lacks its source column or table.
    """
    if not snapshot.name.strip():
        raise InvalidDefinitionError("Table name is required")

    columns = snapshot.live_columns()
    if not columns:
        raise InvalidDefinitionError(
            f"Table '{snapshot.name}' needs at least one column"
        )

    for column in columns:
        if not column.name.strip():
            raise InvalidDefinitionError(f"Column {column.id} has no name")
        if not column.data_type.strip():
            raise InvalidDefinitionError(f"Column '{column.name}' has no data type")

    for index in snapshot.live_indexes():
        if not index.columns:
            raise InvalidDefinitionError(f"Index '{index.name}' covers no columns")

    for fk in snapshot.live_foreign_keys():
        if not fk.source_column or not fk.ref_table or not fk.ref_column:
            raise InvalidDefinitionError(
                f"Foreign key '{fk.name or fk.id}' needs a source column and a referenced table/column"
            )


def render_column_clause(
    column: ColumnDefinition,
    dialect: Dialect,
    notes: list[DdlStatement] | None = None,
    include_primary_key: bool = True,
) -> str:
    """Render ``name TYPE[(length)]`` followed by the column constraints.

    Constraint order is fixed: PRIMARY KEY, NOT NULL, auto-increment
    keyword, DEFAULT, COMMENT.  NOT NULL is always present for primary key
    columns.

    Args:
        column: Column to render.
        dialect: Target dialect.
        notes: Optional list collecting notes for unsupported lowerings.
        include_primary_key: False when restating a column in an ALTER,
            where re-declaring the key would fail.

    Example:
        >>> col = ColumnDefinition(name="id", data_type="INT", is_primary_key=True,
        ...                        is_auto_increment=True)
        >>> render_column_clause(col, Dialect.POSTGRES)
        'id SERIAL PRIMARY KEY NOT NULL'
    """
    rules = get_rules(dialect)
    type_sql = column.type_sql
    keyword: str | None = None

    if column.is_auto_increment:
        if rules.auto_increment is AutoIncrementStyle.KEYWORD:
            keyword = rules.auto_increment_keyword
        elif rules.auto_increment is AutoIncrementStyle.SERIAL_TYPE:
            serial = rules.serial_type(column.data_type)
            if serial is not None:
                type_sql = serial
            elif notes is not None:
                notes.append(
                    DdlStatement.unsupported(
                        f"{rules.label}: auto-increment on column {column.name} "
                        f"requires an integer type, {type_sql} kept as declared"
                    )
                )
        elif notes is not None:
            notes.append(
                DdlStatement.unsupported(
                    f"{rules.label}: auto-increment on column {column.name} is not synthesized"
                )
            )

    parts = [column.name, type_sql]
    if include_primary_key and column.is_primary_key:
        parts.append("PRIMARY KEY")
    if column.effective_not_null:
        parts.append("NOT NULL")
    if keyword:
        parts.append(keyword)
    if column.default_value is not None:
        parts.append(f"DEFAULT {column.default_value.to_sql()}")
    if column.comment and rules.inline_column_comments:
        parts.append(f"COMMENT {quote_literal(column.comment)}")

    return " ".join(parts)


def render_foreign_key_clause(fk: ForeignKeyDefinition) -> str:
    """Render a FOREIGN KEY clause, named when the key has a name.

    Example:
        >>> fk = ForeignKeyDefinition(source_column="user_id", ref_table="users")
        >>> render_foreign_key_clause(fk)
        'FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE RESTRICT ON UPDATE RESTRICT'
    """
    prefix = f"CONSTRAINT {fk.name} " if fk.name else ""
    return (
        f"{prefix}FOREIGN KEY ({fk.source_column}) "
        f"REFERENCES {fk.ref_table}({fk.ref_column}) "
        f"ON DELETE {fk.on_delete.sql} ON UPDATE {fk.on_update.sql}"
    )


def render_table_options(
    options: TableOptions,
    fields: tuple[str, ...] = TABLE_OPTION_FIELDS,
) -> str:
    """Render MySQL table options as space-separated ``KEY=value`` tokens.

    Only options that are set are rendered; the starting auto-increment
    value only when greater than 1.

    Example:
        >>> render_table_options(TableOptions(engine="InnoDB", charset="utf8mb4"))
        'ENGINE=InnoDB DEFAULT CHARSET=utf8mb4'
    """
    tokens: list[str] = []
    if "engine" in fields and options.engine:
        tokens.append(f"ENGINE={options.engine}")
    if "charset" in fields and options.charset:
        tokens.append(f"DEFAULT CHARSET={options.charset}")
    if "collation" in fields and options.collation:
        tokens.append(f"COLLATE={options.collation}")
    if "auto_increment" in fields and options.auto_increment > 1:
        tokens.append(f"AUTO_INCREMENT={options.auto_increment}")
    if "comment" in fields and options.comment:
        tokens.append(f"COMMENT={quote_literal(options.comment)}")
    return " ".join(tokens)


def generate_create_table_sql(
    snapshot: TableDefinitionSnapshot,
    dialect: Dialect,
) -> str:
    """Generate the CREATE TABLE statement for *snapshot*.

    Column clauses come first, then inline index clauses (normal and
    unique), then foreign keys.  Table options follow the closing
    parenthesis for dialects that have them.

    Args:
        snapshot: Table definition; deleted rows are skipped.
        dialect: Target dialect.

    Returns:
        One statement ending in ``;``, possibly preceded by ``--`` note
        lines.

    Raises:
        InvalidDefinitionError: See ``validate_definition``.

    Example:
        sql = generate_create_table_sql(snapshot, Dialect.MYSQL)
        # CREATE TABLE users (
        #   id INT PRIMARY KEY NOT NULL AUTO_INCREMENT,
        #   email VARCHAR(255) NOT NULL
        # ) ENGINE=InnoDB;
    """
    validate_definition(snapshot)
    rules = get_rules(dialect)
    notes: list[DdlStatement] = []

    clauses = [
        f"  {render_column_clause(column, dialect, notes)}"
        for column in snapshot.live_columns()
    ]

    for index in snapshot.live_indexes():
        columns = ", ".join(index.columns)
        if index.kind is IndexKind.NORMAL:
            clauses.append(f"  INDEX {index.name} ({columns})")
        elif index.kind is IndexKind.UNIQUE:
            clauses.append(f"  UNIQUE INDEX {index.name} ({columns})")
        else:
            notes.append(
                DdlStatement.unsupported(
                    f"{rules.label}: FULLTEXT index {index.name} is not synthesized"
                )
            )

    for fk in snapshot.live_foreign_keys():
        clauses.append(f"  {render_foreign_key_clause(fk)}")

    sql = f"CREATE TABLE {snapshot.name} (\n" + ",\n".join(clauses) + "\n)"

    if rules.table_options:
        table_options = render_table_options(snapshot.options)
        if table_options:
            sql += f" {table_options}"

    sql += ";"

    if notes:
        sql = "\n".join(note.sql for note in notes) + "\n" + sql

    return sql
