"""Dialect tags and their DDL rendering rules.

Each supported dialect is described by one ``DialectRules`` table.  The
synthesizers look up the table and follow it; they never branch on the
dialect tag directly.  Supporting another dialect means adding a member to
``Dialect`` and one entry to ``_RULES``.

The MySQL table also serves MariaDB.  Its column rename uses
``RENAME COLUMN``, so renames target MySQL 8.0+ or MariaDB 10.5+; older
servers only accept ``CHANGE COLUMN`` with the full definition restated.

Usage:
    from ddl_designer.schema.dialects import Dialect, get_rules

    rules = get_rules(Dialect.MYSQL)
    rules.alter_granularity  # AlterGranularity.RESTATE
"""

from dataclasses import dataclass
from enum import Enum


class Dialect(str, Enum):
    """Closed set of target SQL dialects."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def _missing_(cls, value: object) -> "Dialect | None":
        if isinstance(value, str):
            aliases = {"postgresql": cls.POSTGRES, "mariadb": cls.MYSQL, "sqlite3": cls.SQLITE}
            lowered = value.strip().lower()
            if lowered in aliases:
                return aliases[lowered]
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class AutoIncrementStyle(str, Enum):
    """How an auto-increment column is expressed."""

    KEYWORD = "keyword"  # extra keyword on the column clause
    SERIAL_TYPE = "serial_type"  # declared type replaced by a serial type
    UNSUPPORTED = "unsupported"


class AlterGranularity(str, Enum):
    """How in-place column changes are expressed in ALTER statements."""

    PER_PROPERTY = "per_property"  # one ALTER COLUMN per changed property
    RESTATE = "restate"  # one MODIFY COLUMN restating the whole column
    UNSUPPORTED = "unsupported"  # a single explanatory note


@dataclass(frozen=True)
class DialectRules:
    """Rendering rules for one dialect.

    Templates use ``str.format`` fields: ``{table}``, ``{column}``,
    ``{old}``, ``{new}``, ``{index}``, ``{name}``.  A ``None`` template
    means the operation has no lowering and becomes a note.
    """

    dialect: Dialect
    label: str
    auto_increment: AutoIncrementStyle
    auto_increment_keyword: str | None
    alter_granularity: AlterGranularity
    inline_column_comments: bool
    table_options: bool
    rename_column: str | None
    drop_index: str
    drop_foreign_key: str | None
    add_foreign_key: bool
    column_comment: str | None  # standalone COMMENT statement for a column
    table_comment: str | None  # standalone COMMENT statement for the table

    def serial_type(self, data_type: str) -> str | None:
        """Serial type replacing an integer *data_type*, or None if not integer.

        Example:
            >>> get_rules(Dialect.POSTGRES).serial_type("bigint")
            'BIGSERIAL'
        """
        type_name = data_type.upper()
        if "INT" not in type_name:
            return None
        return "BIGSERIAL" if "BIG" in type_name else "SERIAL"


_RULES: dict[Dialect, DialectRules] = {
    Dialect.POSTGRES: DialectRules(
        dialect=Dialect.POSTGRES,
        label="PostgreSQL",
        auto_increment=AutoIncrementStyle.SERIAL_TYPE,
        auto_increment_keyword=None,
        alter_granularity=AlterGranularity.PER_PROPERTY,
        inline_column_comments=False,
        table_options=False,
        rename_column="ALTER TABLE {table} RENAME COLUMN {old} TO {new};",
        drop_index="DROP INDEX {index};",
        drop_foreign_key="ALTER TABLE {table} DROP CONSTRAINT {name};",
        add_foreign_key=True,
        column_comment="COMMENT ON COLUMN {table}.{column} IS {comment};",
        table_comment="COMMENT ON TABLE {table} IS {comment};",
    ),
    Dialect.MYSQL: DialectRules(
        dialect=Dialect.MYSQL,
        label="MySQL",
        auto_increment=AutoIncrementStyle.KEYWORD,
        auto_increment_keyword="AUTO_INCREMENT",
        alter_granularity=AlterGranularity.RESTATE,
        inline_column_comments=True,
        table_options=True,
        # RENAME COLUMN needs MySQL 8.0 or MariaDB 10.5 and later
        rename_column="ALTER TABLE {table} RENAME COLUMN {old} TO {new};",
        drop_index="DROP INDEX {index} ON {table};",
        drop_foreign_key="ALTER TABLE {table} DROP FOREIGN KEY {name};",
        add_foreign_key=True,
        column_comment=None,  # restated through MODIFY COLUMN
        table_comment=None,  # part of the table options
    ),
    Dialect.SQLITE: DialectRules(
        dialect=Dialect.SQLITE,
        label="SQLite",
        auto_increment=AutoIncrementStyle.UNSUPPORTED,
        auto_increment_keyword=None,
        alter_granularity=AlterGranularity.UNSUPPORTED,
        inline_column_comments=False,
        table_options=False,
        rename_column=None,
        drop_index="DROP INDEX {index};",
        drop_foreign_key=None,
        add_foreign_key=False,
        column_comment=None,
        table_comment=None,
    ),
}


def get_rules(dialect: Dialect | str) -> DialectRules:
    """Return the rule table for *dialect*.

    Raises:
        ValueError: If *dialect* is not one of the supported dialects.
    """
    return _RULES[Dialect(dialect)]


def dialect_from_url(database_url: str) -> Dialect:
    """Infer the designer dialect from a database URL scheme.

    Raises:
        ValueError: If the scheme names no supported dialect.

    Example:
        >>> dialect_from_url("mysql+aiomysql://u@h/db")
        <Dialect.MYSQL: 'mysql'>
    """
    scheme = database_url.split("://", 1)[0].split("+", 1)[0].lower()
    return Dialect(scheme)
