"""ddl-designer: Dialect-aware CREATE/ALTER TABLE synthesis for a table designer.

Edits one table definition in a designer session, previews the DDL that
creates it (new table) or migrates it from its fetched definition
(existing table), and executes that DDL statement by statement.
PostgreSQL, MySQL and SQLite are supported.

Usage:
    from ddl_designer import DesignerSession, Dialect, get_client
    from ddl_designer import generate_create_table_sql, plan_alter_table
    from ddl_designer import ColumnDefinition, TableDefinitionSnapshot
"""

__version__ = "0.1.0"

# Adapters
from ddl_designer.adapters.base import DatabaseClient
from ddl_designer.adapters.sqlalchemy_client import AsyncSqlAlchemyClient

# Config
from ddl_designer.config.loader import load_db_config
from ddl_designer.config.models import DatabaseConfig, DatabaseProfile

# Errors
from ddl_designer.errors import (
    DdlDesignerError,
    ExecutionFailureError,
    InvalidDefinitionError,
    SessionClosedError,
)

# Factory
from ddl_designer.factory import ProfileNotFoundError, get_client, resolve_url

# Schema
from ddl_designer.schema.create import generate_create_table_sql
from ddl_designer.schema.dialects import Dialect
from ddl_designer.schema.differ import generate_alter_table_sql, plan_alter_table
from ddl_designer.schema.introspector import fetch_structure
from ddl_designer.schema.models import (
    ColumnDefinition,
    DefaultValue,
    ForeignKeyDefinition,
    IndexDefinition,
    TableDefinitionSnapshot,
    TableOptions,
)

# Session
from ddl_designer.session import DesignerSession, SaveResult

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncSqlAlchemyClient",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Errors
    "DdlDesignerError",
    "InvalidDefinitionError",
    "ExecutionFailureError",
    "SessionClosedError",
    # Factory
    "get_client",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "Dialect",
    "ColumnDefinition",
    "IndexDefinition",
    "ForeignKeyDefinition",
    "TableDefinitionSnapshot",
    "TableOptions",
    "DefaultValue",
    "generate_create_table_sql",
    "plan_alter_table",
    "generate_alter_table_sql",
    "fetch_structure",
    # Session
    "DesignerSession",
    "SaveResult",
]
