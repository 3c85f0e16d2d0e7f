"""Live table structure introspection.

Reads one table's columns, indexes, foreign keys and (MySQL) table
options through a ``DatabaseClient`` and builds a ``clean``
``TableDefinitionSnapshot`` ready to seed a designer session:

- PostgreSQL: information_schema + pg_catalog
- MySQL: information_schema
- SQLite: ``pragma_*`` table-valued functions

Every row gets a fresh opaque id and ``original_name`` set to its current
name.

Usage:
    from ddl_designer.schema.introspector import fetch_structure

    snapshot = await fetch_structure(client, "users", Dialect.POSTGRES)
"""

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ddl_designer.schema.dialects import Dialect
from ddl_designer.schema.models import (
    ColumnDefinition,
    ConstraintStatus,
    DefaultValue,
    ForeignKeyAction,
    ForeignKeyDefinition,
    IndexDefinition,
    IndexKind,
    RowStatus,
    TableDefinitionSnapshot,
    TableOptions,
)

if TYPE_CHECKING:
    from ddl_designer.adapters.base import DatabaseClient

logger = logging.getLogger(__name__)


# ============================================================================
# Catalog queries
# ============================================================================

_POSTGRES_COLUMNS = """
SELECT
    c.column_name AS name,
    c.data_type AS data_type,
    c.character_maximum_length AS max_length,
    c.numeric_precision AS numeric_precision,
    c.numeric_scale AS numeric_scale,
    c.is_nullable AS is_nullable,
    c.column_default AS column_default,
    c.is_identity AS is_identity,
    EXISTS (
        SELECT 1
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
            ON tc.constraint_name = kcu.constraint_name
            AND tc.table_schema = kcu.table_schema
        WHERE tc.constraint_type = 'PRIMARY KEY'
            AND tc.table_schema = c.table_schema
            AND tc.table_name = c.table_name
            AND kcu.column_name = c.column_name
    ) AS is_primary_key,
    col_description(
        format('%I.%I', c.table_schema, c.table_name)::regclass,
        c.ordinal_position
    ) AS comment
FROM information_schema.columns c
WHERE c.table_schema = :schema AND c.table_name = :table
ORDER BY c.ordinal_position
"""

_POSTGRES_INDEXES = """
SELECT
    i.relname AS index_name,
    ix.indisunique AS is_unique,
    a.attname AS column_name
FROM pg_class t
JOIN pg_namespace n ON n.oid = t.relnamespace
JOIN pg_index ix ON ix.indrelid = t.oid
JOIN pg_class i ON i.oid = ix.indexrelid
CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
WHERE n.nspname = :schema AND t.relname = :table AND NOT ix.indisprimary
ORDER BY i.relname, k.ord
"""

_POSTGRES_FOREIGN_KEYS = """
SELECT
    tc.constraint_name AS name,
    kcu.column_name AS source_column,
    ccu.table_name AS ref_table,
    ccu.column_name AS ref_column,
    rc.delete_rule AS on_delete,
    rc.update_rule AS on_update
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
    ON tc.constraint_name = kcu.constraint_name
    AND tc.table_schema = kcu.table_schema
JOIN information_schema.referential_constraints rc
    ON rc.constraint_name = tc.constraint_name
    AND rc.constraint_schema = tc.table_schema
JOIN information_schema.constraint_column_usage ccu
    ON ccu.constraint_name = tc.constraint_name
    AND ccu.constraint_schema = tc.table_schema
WHERE tc.constraint_type = 'FOREIGN KEY'
    AND tc.table_schema = :schema
    AND tc.table_name = :table
ORDER BY tc.constraint_name, kcu.ordinal_position
"""

_MYSQL_COLUMNS = """
SELECT
    COLUMN_NAME AS name,
    DATA_TYPE AS data_type,
    COLUMN_TYPE AS column_type,
    CHARACTER_MAXIMUM_LENGTH AS max_length,
    IS_NULLABLE AS is_nullable,
    COLUMN_DEFAULT AS column_default,
    EXTRA AS extra,
    COLUMN_KEY AS column_key,
    COLUMN_COMMENT AS comment
FROM information_schema.columns
WHERE TABLE_SCHEMA = COALESCE(:schema, DATABASE()) AND TABLE_NAME = :table
ORDER BY ORDINAL_POSITION
"""

_MYSQL_INDEXES = """
SELECT
    INDEX_NAME AS index_name,
    NON_UNIQUE AS non_unique,
    INDEX_TYPE AS index_type,
    COLUMN_NAME AS column_name
FROM information_schema.statistics
WHERE TABLE_SCHEMA = COALESCE(:schema, DATABASE())
    AND TABLE_NAME = :table
    AND INDEX_NAME <> 'PRIMARY'
ORDER BY INDEX_NAME, SEQ_IN_INDEX
"""

_MYSQL_FOREIGN_KEYS = """
SELECT
    kcu.CONSTRAINT_NAME AS name,
    kcu.COLUMN_NAME AS source_column,
    kcu.REFERENCED_TABLE_NAME AS ref_table,
    kcu.REFERENCED_COLUMN_NAME AS ref_column,
    rc.DELETE_RULE AS on_delete,
    rc.UPDATE_RULE AS on_update
FROM information_schema.key_column_usage kcu
JOIN information_schema.referential_constraints rc
    ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
    AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
WHERE kcu.TABLE_SCHEMA = COALESCE(:schema, DATABASE())
    AND kcu.TABLE_NAME = :table
    AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

_MYSQL_TABLE_OPTIONS = """
SELECT
    ENGINE AS engine,
    TABLE_COLLATION AS collation,
    AUTO_INCREMENT AS auto_increment,
    TABLE_COMMENT AS comment
FROM information_schema.tables
WHERE TABLE_SCHEMA = COALESCE(:schema, DATABASE()) AND TABLE_NAME = :table
"""

_SQLITE_COLUMNS = """
SELECT name, type AS data_type, "notnull" AS not_null, dflt_value AS column_default, pk
FROM pragma_table_info(:table)
ORDER BY cid
"""

_SQLITE_INDEXES = """
SELECT il.name AS index_name, il."unique" AS is_unique, ii.name AS column_name
FROM pragma_index_list(:table) AS il
JOIN pragma_index_info(il.name) AS ii
WHERE il.origin = 'c'
ORDER BY il.name, ii.seqno
"""

_SQLITE_FOREIGN_KEYS = """
SELECT "from" AS source_column, "table" AS ref_table, "to" AS ref_column, on_delete, on_update
FROM pragma_foreign_key_list(:table)
ORDER BY id, seq
"""

_SQLITE_AUTOINCREMENT = """
SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :table
"""

# Types whose catalog length is a meaningful size qualifier
_SIZED_TYPE_PATTERN = re.compile(r"char|binary", re.IGNORECASE)
_EXACT_NUMERIC_PATTERN = re.compile(r"numeric|decimal", re.IGNORECASE)
_SQLITE_TYPE_PATTERN = re.compile(r"^\s*(?P<type>[^(]+?)\s*\((?P<length>[^)]*)\)\s*$")
_NUMBER_PATTERN = re.compile(r"^[+-]?\d+(\.\d+)?$")


# ============================================================================
# Row conversion
# ============================================================================


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in ("YES", "TRUE", "1", "T")
    return bool(value)


def _fk_action(value: Any) -> ForeignKeyAction:
    if not value:
        return ForeignKeyAction.NO_ACTION
    try:
        return ForeignKeyAction(str(value))
    except ValueError:
        logger.warning("Unsupported referential action %r read as NO ACTION", value)
        return ForeignKeyAction.NO_ACTION


def _length_for(data_type: str, max_length: Any) -> str:
    if max_length is None or not _SIZED_TYPE_PATTERN.search(data_type):
        return ""
    return str(max_length)


def _postgres_length(row: dict[str, Any]) -> str:
    data_type = str(row["data_type"])
    precision = row.get("numeric_precision")
    if _EXACT_NUMERIC_PATTERN.fullmatch(data_type) and precision is not None:
        return f"{precision},{row.get('numeric_scale') or 0}"
    return _length_for(data_type, row.get("max_length"))


def split_column_type(column_type: str) -> tuple[str, str]:
    """Split a full MySQL ``COLUMN_TYPE`` into ``(data_type, length)``.

    The parenthesized part becomes the length.  Types carrying a trailing
    modifier (``unsigned``, ``zerofill``) keep the whole text as the data
    type, since the modifier must follow the length.

    Example:
        >>> split_column_type("decimal(10,2)")
        ('decimal', '10,2')
        >>> split_column_type("enum('new','paid')")
        ('enum', "'new','paid'")
        >>> split_column_type("int(10) unsigned")
        ('int(10) unsigned', '')
    """
    text = column_type.strip()
    start = text.find("(")
    end = text.rfind(")")
    if start == -1 or end < start:
        return text, ""
    if text[end + 1:].strip():
        return text, ""
    return text[:start].strip(), text[start + 1:end]


def _new_column(**fields: Any) -> ColumnDefinition:
    return ColumnDefinition(status=RowStatus.CLEAN, original_name=fields["name"], **fields)


def _postgres_column(row: dict[str, Any]) -> ColumnDefinition:
    default = row.get("column_default")
    is_serial = bool(default) and str(default).startswith("nextval(")
    return _new_column(
        name=row["name"],
        data_type=str(row["data_type"]),
        length=_postgres_length(row),
        is_primary_key=_as_bool(row.get("is_primary_key")),
        is_not_null=not _as_bool(row.get("is_nullable")),
        is_auto_increment=is_serial or _as_bool(row.get("is_identity")),
        # Catalog defaults are SQL expressions already
        default_value=None if is_serial or default is None else DefaultValue.expression(str(default)),
        comment=row.get("comment") or "",
    )


def _mysql_default(value: Any, extra: str) -> DefaultValue | None:
    if value is None:
        return None
    text = str(value)
    if "DEFAULT_GENERATED" in extra.upper():
        return DefaultValue.expression(text)
    if _NUMBER_PATTERN.match(text):
        return DefaultValue.number(text)
    return DefaultValue.string(text)


def _mysql_column(row: dict[str, Any]) -> ColumnDefinition:
    extra = str(row.get("extra") or "")
    # COLUMN_TYPE keeps precision, scale, enum values and unsigned
    if row.get("column_type"):
        data_type, length = split_column_type(str(row["column_type"]))
    else:
        data_type = str(row["data_type"])
        length = _length_for(data_type, row.get("max_length"))
    return _new_column(
        name=row["name"],
        data_type=data_type,
        length=length,
        is_primary_key=row.get("column_key") == "PRI",
        is_not_null=not _as_bool(row.get("is_nullable")),
        is_auto_increment="auto_increment" in extra.lower(),
        default_value=_mysql_default(row.get("column_default"), extra),
        comment=row.get("comment") or "",
    )


def _sqlite_column(row: dict[str, Any]) -> ColumnDefinition:
    declared = str(row.get("data_type") or "")
    match = _SQLITE_TYPE_PATTERN.match(declared)
    data_type, length = (match.group("type"), match.group("length")) if match else (declared, "")
    default = row.get("column_default")
    return _new_column(
        name=row["name"],
        data_type=data_type,
        length=length,
        is_primary_key=bool(row.get("pk")),
        is_not_null=_as_bool(row.get("not_null")),
        default_value=None if default is None else DefaultValue.expression(str(default)),
    )


_COLUMN_CONVERTERS = {
    Dialect.POSTGRES: _postgres_column,
    Dialect.MYSQL: _mysql_column,
    Dialect.SQLITE: _sqlite_column,
}


def columns_from_rows(dialect: Dialect, rows: Iterable[dict[str, Any]]) -> list[ColumnDefinition]:
    """Convert catalog column rows into clean ``ColumnDefinition`` rows."""
    convert = _COLUMN_CONVERTERS[Dialect(dialect)]
    return [convert(row) for row in rows]


def indexes_from_rows(rows: Iterable[dict[str, Any]]) -> list[IndexDefinition]:
    """Group per-column index rows (ordered by index, position) into indexes.

    Example:
        >>> rows = [
        ...     {"index_name": "idx_ab", "is_unique": False, "column_name": "a"},
        ...     {"index_name": "idx_ab", "is_unique": False, "column_name": "b"},
        ... ]
        >>> [(i.name, i.columns) for i in indexes_from_rows(rows)]
        [('idx_ab', ['a', 'b'])]
    """
    indexes: dict[str, IndexDefinition] = {}
    for row in rows:
        name = row["index_name"]
        index = indexes.get(name)
        if index is None:
            if str(row.get("index_type") or "").upper() == "FULLTEXT":
                kind = IndexKind.FULLTEXT
            elif "non_unique" in row:
                kind = IndexKind.NORMAL if _as_bool(row["non_unique"]) else IndexKind.UNIQUE
            else:
                kind = IndexKind.UNIQUE if _as_bool(row.get("is_unique")) else IndexKind.NORMAL
            index = IndexDefinition(name=name, kind=kind, status=ConstraintStatus.CLEAN)
            indexes[name] = index
        index.columns.append(row["column_name"])
    return list(indexes.values())


def foreign_keys_from_rows(rows: Iterable[dict[str, Any]]) -> list[ForeignKeyDefinition]:
    """Convert catalog foreign key rows into clean ``ForeignKeyDefinition`` rows."""
    return [
        ForeignKeyDefinition(
            status=ConstraintStatus.CLEAN,
            name=row.get("name") or "",
            source_column=row["source_column"],
            ref_table=row["ref_table"],
            ref_column=row.get("ref_column") or "id",
            on_delete=_fk_action(row.get("on_delete")),
            on_update=_fk_action(row.get("on_update")),
        )
        for row in rows
    ]


def table_options_from_row(row: dict[str, Any] | None) -> TableOptions:
    """Build MySQL ``TableOptions`` from an information_schema.tables row."""
    if not row:
        return TableOptions()
    collation = row.get("collation")
    return TableOptions(
        engine=row.get("engine"),
        collation=collation,
        charset=collation.split("_")[0] if collation else None,
        auto_increment=int(row.get("auto_increment") or 1),
        comment=row.get("comment") or "",
    )


# ============================================================================
# Fetch
# ============================================================================


async def fetch_structure(
    client: "DatabaseClient",
    table_name: str,
    dialect: Dialect,
    schema: str | None = None,
) -> TableDefinitionSnapshot:
    """Read the live definition of *table_name*.

    Args:
        client: Database client for the connection holding the table.
        table_name: Table to read.
        dialect: Dialect of the connection.
        schema: Schema (PostgreSQL, default ``public``) or database
            (MySQL, default the current database).  Ignored for SQLite.

    Returns:
        Clean snapshot of the table.

    Raises:
        LookupError: If the table has no columns (does not exist).

    Example:
        snapshot = await fetch_structure(client, "users", Dialect.MYSQL)
    """
    dialect = Dialect(dialect)
    options = TableOptions()

    if dialect is Dialect.POSTGRES:
        params = {"schema": schema or "public", "table": table_name}
        column_rows = await client.fetch_all(_POSTGRES_COLUMNS, params)
        index_rows = await client.fetch_all(_POSTGRES_INDEXES, params)
        fk_rows = await client.fetch_all(_POSTGRES_FOREIGN_KEYS, params)
    elif dialect is Dialect.MYSQL:
        params = {"schema": schema, "table": table_name}
        column_rows = await client.fetch_all(_MYSQL_COLUMNS, params)
        index_rows = await client.fetch_all(_MYSQL_INDEXES, params)
        fk_rows = await client.fetch_all(_MYSQL_FOREIGN_KEYS, params)
        option_rows = await client.fetch_all(_MYSQL_TABLE_OPTIONS, params)
        options = table_options_from_row(option_rows[0] if option_rows else None)
    else:
        params = {"table": table_name}
        column_rows = await client.fetch_all(_SQLITE_COLUMNS, params)
        index_rows = await client.fetch_all(_SQLITE_INDEXES, params)
        fk_rows = await client.fetch_all(_SQLITE_FOREIGN_KEYS, params)

    if not column_rows:
        raise LookupError(f"Table '{table_name}' not found or has no columns")

    columns = columns_from_rows(dialect, column_rows)

    if dialect is Dialect.SQLITE:
        # AUTOINCREMENT is only visible in the stored CREATE statement
        master_rows = await client.fetch_all(_SQLITE_AUTOINCREMENT, params)
        create_sql = str(master_rows[0].get("sql") or "") if master_rows else ""
        if "AUTOINCREMENT" in create_sql.upper():
            for column in columns:
                if column.is_primary_key:
                    column.is_auto_increment = True

    logger.debug(
        "Fetched structure of %s: %d columns, %d index rows, %d foreign key rows",
        table_name,
        len(columns),
        len(index_rows),
        len(fk_rows),
    )

    return TableDefinitionSnapshot(
        name=table_name,
        columns=columns,
        indexes=indexes_from_rows(index_rows),
        foreign_keys=foreign_keys_from_rows(fk_rows),
        options=options,
    )
