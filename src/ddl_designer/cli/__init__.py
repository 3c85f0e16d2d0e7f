"""CLI module for previewing and applying table DDL.

Provides commands to preview CREATE TABLE and ALTER TABLE DDL from JSON
table definitions, to apply an edited definition to a live table, and to
list configured profiles.

Usage:
    ddl-designer create --definition users.json --dialect mysql
    ddl-designer diff --original before.json --working after.json --dialect postgres
    DB_PROFILE=local ddl-designer alter --table users --working after.json
    DB_PROFILE=local ddl-designer alter --table users --working after.json --confirm
    ddl-designer profiles

Commands:
    create    - Preview (or with --confirm, execute) CREATE TABLE
    diff      - Preview the ALTER sequence between two definitions
    alter     - Diff a live table against an edited definition and apply it
    profiles  - List available profiles

Definition files hold one table as JSON::

    {
      "name": "users",
      "columns": [
        {"name": "id", "data_type": "INT", "is_primary_key": true, "is_auto_increment": true},
        {"name": "email_address", "original_name": "email", "data_type": "VARCHAR", "length": "255"}
      ],
      "indexes": [{"name": "idx_email", "kind": "unique", "columns": ["email_address"]}],
      "foreign_keys": [],
      "options": {"engine": "InnoDB"}
    }

Rows without an ``id`` are matched to the original definition by name:
columns through ``original_name`` (or ``name`` when it is absent), indexes
and foreign keys through ``name``.  Unmatched rows are additions.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ddl_designer.config.loader import load_db_config
from ddl_designer.config.models import DesignerSettings
from ddl_designer.errors import ExecutionFailureError, InvalidDefinitionError
from ddl_designer.factory import ProfileNotFoundError, get_active_profile_name, get_client
from ddl_designer.schema.dialects import Dialect
from ddl_designer.schema.introspector import fetch_structure
from ddl_designer.schema.models import TableDefinitionSnapshot
from ddl_designer.schema.statements import render_script
from ddl_designer.session import DesignerSession

console = Console()


# ============================================================================
# Definition file helpers
# ============================================================================


def _read_json(path: str | Path) -> dict[str, Any]:
    """Read a JSON object from *path*.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object.
    """
    definition_path = Path(path)
    if not definition_path.exists():
        raise FileNotFoundError(f"Definition file not found: {definition_path}")
    data = json.loads(definition_path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{definition_path.name} must contain a JSON object")
    return data


def _adopt_identities(
    original: TableDefinitionSnapshot,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Give id-less rows in *data* the id of their counterpart in *original*.

    Columns are matched through ``original_name`` (falling back to
    ``name``); indexes and foreign keys through ``name``.  Rows that
    already carry an ``id`` are left alone.

    Example:
        data = {"name": "users", "columns": [
            {"name": "email_address", "original_name": "email", "data_type": "TEXT"}]}
        _adopt_identities(original, data)["columns"][0]["id"]
        # id of the original "email" column
    """
    adopted = dict(data)

    columns_by_name = {c.name: c.id for c in original.columns}
    columns = []
    for raw in data.get("columns", []):
        row = dict(raw)
        # An explicit "original_name": null marks a new column
        source = row.get("original_name", row.get("name"))
        if "id" not in row and source in columns_by_name:
            row["id"] = columns_by_name[source]
            row.setdefault("original_name", source)
        columns.append(row)
    adopted["columns"] = columns

    for key, rows in (("indexes", original.indexes), ("foreign_keys", original.foreign_keys)):
        by_name = {r.name: r.id for r in rows if r.name}
        matched = []
        for raw in data.get(key, []):
            row = dict(raw)
            if "id" not in row and row.get("name") in by_name:
                row["id"] = by_name[row["name"]]
            matched.append(row)
        adopted[key] = matched

    return adopted


def _load_original(path: str | Path) -> TableDefinitionSnapshot:
    """Load an original definition; every column remembers its name."""
    data = _read_json(path)
    for column in data.get("columns", []):
        column.setdefault("original_name", column.get("name"))
    return TableDefinitionSnapshot.model_validate(data)


def _load_definition(path: str | Path, config_path: Path | None = None) -> TableDefinitionSnapshot:
    """Load a new-table definition, filling gaps from the ``[designer]`` config.

    A missing ``name`` becomes ``default_table_name`` and missing
    ``options`` become ``mysql_options``.  Without a config file the
    built-in defaults apply.
    """
    data = _read_json(path)
    try:
        settings = load_db_config(config_path).designer
    except FileNotFoundError:
        settings = DesignerSettings()
    data.setdefault("name", settings.default_table_name)
    data.setdefault("options", settings.mysql_options.model_dump())
    return TableDefinitionSnapshot.model_validate(data)


def _print_sql(sql: str) -> None:
    console.print(sql, markup=False, highlight=False, soft_wrap=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_error(message: str) -> None:
    console.print(f"[bold red]x[/bold red] {escape(message)}", highlight=False)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_create(args: argparse.Namespace) -> int:
    """Async implementation for create with ``--confirm``.

    Args:
        args: Parsed arguments with definition, profile, env_prefix.

    Returns:
        0 on success, 1 on failure.
    """
    definition = _load_definition(args.definition, args.config)
    client, dialect = get_client(args.profile, args.env_prefix, config_path=args.config)
    try:
        session = DesignerSession.from_definition(client, dialect, definition)
        _print_sql(session.preview())
        result = await session.save()
    except ExecutionFailureError as e:
        _print_error(e.format_report())
        return 1
    finally:
        await client.close()

    console.print(
        f"[bold green]v[/bold green] Created table [bold cyan]{definition.name}[/bold cyan] "
        f"({len(result.executed)} statement executed)"
    )
    return 0


async def _async_alter(args: argparse.Namespace) -> int:
    """Async implementation for alter command.

    Fetches the live table, diffs it against the working definition, and
    executes the ALTER sequence when ``--confirm`` is given.

    Args:
        args: Parsed arguments with table, working, confirm, profile,
            env_prefix.

    Returns:
        0 on success (or preview), 1 on failure.
    """
    raw_working = _read_json(args.working)
    client, dialect = get_client(args.profile, args.env_prefix, config_path=args.config)
    try:
        console.print(f"Reading structure of [bold]{args.table}[/bold]...", style="dim")
        original = await fetch_structure(client, args.table, dialect, schema=args.schema)

        raw_working.setdefault("name", original.name)
        working = TableDefinitionSnapshot.model_validate(_adopt_identities(original, raw_working))
        session = DesignerSession.from_snapshot(client, dialect, original, working=working)

        preview = session.preview()
        if not preview:
            console.print("[green]No changes to save.[/green]")
            return 0

        console.print(f"\n[bold]{dialect.value} ALTER sequence:[/bold]")
        _print_sql(preview)

        if not args.confirm:
            console.print("\n[dim]Preview only. Run with[/dim] [cyan]--confirm[/cyan] [dim]to apply.[/dim]")
            return 0

        result = await session.save()
    except ExecutionFailureError as e:
        _print_error("ALTER sequence aborted")
        console.print(e.format_report(), highlight=False, markup=False)
        return 1
    finally:
        await client.close()

    console.print(
        f"\n[bold green]v[/bold green] Applied {len(result.executed)} statement(s) "
        f"to [bold cyan]{args.table}[/bold cyan]"
    )
    if result.skipped:
        console.print(f"  [yellow]{len(result.skipped)} note(s) need manual follow-up[/yellow]")
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_create(args: argparse.Namespace) -> int:
    """Preview CREATE TABLE for a JSON definition; execute it with ``--confirm``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        if args.confirm:
            return asyncio.run(_async_create(args))

        if args.dialect is None:
            _print_error("--dialect is required for a preview")
            return 1

        definition = _load_definition(args.definition, args.config)
        session = DesignerSession.from_definition(None, Dialect(args.dialect), definition)
        _print_sql(session.preview())
        return 0
    except (FileNotFoundError, ValueError, InvalidDefinitionError, ProfileNotFoundError) as e:
        _print_error(str(e))
        return 1


def cmd_diff(args: argparse.Namespace) -> int:
    """Preview the ALTER sequence between two JSON definitions.

    Reads only local files -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        original = _load_original(args.original)
        working = TableDefinitionSnapshot.model_validate(
            _adopt_identities(original, _read_json(args.working))
        )
        session = DesignerSession.from_snapshot(None, Dialect(args.dialect), original, working=working)
        statements = session.statements()
    except (FileNotFoundError, ValueError, InvalidDefinitionError) as e:
        _print_error(str(e))
        return 1

    if not statements:
        console.print("[green]No changes.[/green]")
        return 0

    _print_sql(render_script(statements))
    return 0


def cmd_alter(args: argparse.Namespace) -> int:
    """Apply an edited definition to a live table.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        return asyncio.run(_async_alter(args))
    except (FileNotFoundError, ValueError, LookupError, InvalidDefinitionError, ProfileNotFoundError) as e:
        _print_error(str(e))
        return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from ddl-designer.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if the config file is not found.
    """
    try:
        config = load_db_config(args.config)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(args.env_prefix)
    except ProfileNotFoundError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Dialect")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        try:
            dialect = profile.resolved_dialect.value
        except ValueError:
            dialect = "[red]unknown[/red]"
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            dialect,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``ddl-designer`` command."""
    dialects = [d.value for d in Dialect]

    parser = argparse.ArgumentParser(
        prog="ddl-designer",
        description="Preview and apply dialect-specific table DDL",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile from ddl-designer.toml (default: $DB_PROFILE)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the config file (default: ./ddl-designer.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every statement sent to the database",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # create command
    p_create = subparsers.add_parser(
        "create",
        help="Preview CREATE TABLE for a JSON definition",
    )
    p_create.add_argument("--definition", required=True, help="Path to the JSON table definition")
    p_create.add_argument("--dialect", choices=dialects, default=None, help="Target dialect")
    p_create.add_argument(
        "--confirm",
        action="store_true",
        help="Execute the statement against the active profile",
    )
    p_create.set_defaults(func=cmd_create)

    # diff command
    p_diff = subparsers.add_parser(
        "diff",
        help="Preview the ALTER sequence between two JSON definitions",
    )
    p_diff.add_argument("--original", required=True, help="Path to the original JSON definition")
    p_diff.add_argument("--working", required=True, help="Path to the edited JSON definition")
    p_diff.add_argument("--dialect", choices=dialects, required=True, help="Target dialect")
    p_diff.set_defaults(func=cmd_diff)

    # alter command
    p_alter = subparsers.add_parser(
        "alter",
        help="Diff a live table against an edited definition and apply it",
    )
    p_alter.add_argument("--table", required=True, help="Existing table to alter")
    p_alter.add_argument("--working", required=True, help="Path to the edited JSON definition")
    p_alter.add_argument("--schema", default=None, help="Schema or database holding the table")
    p_alter.add_argument(
        "--confirm",
        action="store_true",
        help="Execute the ALTER sequence",
    )
    p_alter.set_defaults(func=cmd_alter)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
