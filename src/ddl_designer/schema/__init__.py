"""Dialect-neutral table model, CREATE synthesis, and ALTER diffing.

Provides the designer row models, the per-dialect rule tables,
CREATE TABLE synthesis (``generate_create_table_sql``), the ALTER differ
(``plan_alter_table``, ``generate_alter_table_sql``), and live structure
fetching (``fetch_structure``).

Usage:
    from ddl_designer.schema import Dialect, TableDefinitionSnapshot
    from ddl_designer.schema import generate_create_table_sql, plan_alter_table
"""

from ddl_designer.schema.create import generate_create_table_sql, validate_definition
from ddl_designer.schema.dialects import Dialect, DialectRules, get_rules
from ddl_designer.schema.differ import (
    AlterPlan,
    diff_columns,
    diff_foreign_keys,
    diff_indexes,
    diff_table_options,
    generate_alter_table_sql,
    plan_alter_table,
)
from ddl_designer.schema.introspector import fetch_structure
from ddl_designer.schema.models import (
    ColumnDefinition,
    ConstraintStatus,
    DefaultKind,
    DefaultValue,
    ForeignKeyAction,
    ForeignKeyDefinition,
    IndexDefinition,
    IndexKind,
    RowId,
    RowStatus,
    TableDefinitionSnapshot,
    TableOptions,
)
from ddl_designer.schema.statements import DdlStatement, StatementKind, render_script

__all__ = [
    "Dialect",
    "DialectRules",
    "get_rules",
    "ColumnDefinition",
    "IndexDefinition",
    "ForeignKeyDefinition",
    "TableDefinitionSnapshot",
    "TableOptions",
    "DefaultValue",
    "DefaultKind",
    "RowId",
    "RowStatus",
    "ConstraintStatus",
    "IndexKind",
    "ForeignKeyAction",
    "DdlStatement",
    "StatementKind",
    "render_script",
    "validate_definition",
    "generate_create_table_sql",
    "AlterPlan",
    "plan_alter_table",
    "generate_alter_table_sql",
    "diff_columns",
    "diff_indexes",
    "diff_foreign_keys",
    "diff_table_options",
    "fetch_structure",
]
