"""CLI module for cross-database dumps.

Provides commands for profile listing, schema inspection, dependency order,
dump generation and dump loading.

Usage:
    DB_PROFILE=local sqlport inspect
    sqlport profiles
    sqlport order --profile local --tables v4_projects,v4_tasks --drop
    sqlport dump --profile local --to postgresql --output dump.sql
    sqlport dump --profile local --to mysql --on-conflict replace --max-statements 500 --output dump.sql
    sqlport load --profile pg dump-part1.sql dump-part2.sql

Commands:
    profiles  - List available profiles
    inspect   - Show tables, keys and indexes of a profile's database
    order     - Print table create (or drop) order
    dump      - Generate a SQL dump for a target dialect
    load      - Execute dump files against a profile's database
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from sqlport.adapters import SqlAlchemyAdapter
from sqlport.config import DatabaseConfig, load_db_config
from sqlport.dump import DumpOptions, dump_database, write_parts
from sqlport.errors import DumpError, ProfileNotFoundError
from sqlport.factory import get_active_profile_name, get_adapter
from sqlport.loader import load_dump
from sqlport.schema.dependencies import resolve_order
from sqlport.schema.introspector import SchemaIntrospector

console = Console()

# Errors a command reports as "x <message>" with exit code 1
HANDLED_ERRORS = (DumpError, FileNotFoundError, ValueError, ProfileNotFoundError, SQLAlchemyError)


# ============================================================================
# Helpers
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config) if getattr(args, "config", None) else None


def _parse_tables(value: str | None) -> list[str] | None:
    """Parse a comma-separated ``--tables`` value (None means naming convention)."""
    if not value:
        return None
    return [t.strip() for t in value.split(",") if t.strip()]


def _load_config(args: argparse.Namespace) -> DatabaseConfig:
    return load_db_config(_config_path(args))


def _adapter_for(args: argparse.Namespace) -> SqlAlchemyAdapter:
    return get_adapter(
        profile_name=getattr(args, "profile", None),
        env_prefix=getattr(args, "env_prefix", ""),
        config_path=_config_path(args),
    )


def _fail(error: Exception) -> int:
    console.print(f"[bold red]x[/bold red] {escape(str(error))}")
    return 1


# ============================================================================
# Commands
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found or invalid.
    """
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        return _fail(e)

    try:
        current = get_active_profile_name(env_prefix=args.env_prefix)
    except ProfileNotFoundError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print(f"\n[bold green]*[/bold green] = active profile ({args.env_prefix}DB_PROFILE)")

    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Show the tables a dump would cover, with key and index counts.

    Args:
        args: Parsed CLI arguments with profile and tables.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        adapter = _adapter_for(args)
        try:
            with adapter.connect() as conn:
                introspector = SchemaIntrospector(conn)
                snapshot = introspector.introspect(
                    tables=_parse_tables(args.tables),
                    table_prefix=config.dump.table_prefix,
                )
        finally:
            adapter.close()
    except HANDLED_ERRORS as e:
        return _fail(e)

    table = Table(
        title=f"Schema ({snapshot.source_dialect})", show_header=True, header_style="bold"
    )
    table.add_column("Table")
    table.add_column("Columns", justify="right")
    table.add_column("Primary key")
    table.add_column("FKs", justify="right")
    table.add_column("Indexes", justify="right")

    for t in snapshot.tables:
        table.add_row(
            t.name,
            str(len(t.columns)),
            ", ".join(t.primary_key) or "[yellow]none[/yellow]",
            str(len(t.foreign_keys)),
            str(len(snapshot.indexes_for(t.name))),
        )

    console.print(table)
    if snapshot.views:
        console.print(f"[dim]Views:[/dim] {', '.join(v.name for v in snapshot.views)}")
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    """Print the create (or drop) order of the selected tables.

    Args:
        args: Parsed CLI arguments with profile, tables, drop and allow_cycles.

    Returns:
        0 on success, 1 on failure (including FK cycles).
    """
    try:
        config = _load_config(args)
        adapter = _adapter_for(args)
        try:
            with adapter.connect() as conn:
                snapshot = SchemaIntrospector(conn).introspect(
                    tables=_parse_tables(args.tables),
                    views=[],
                    table_prefix=config.dump.table_prefix,
                )
        finally:
            adapter.close()
        order = resolve_order(snapshot.tables, allow_cycles=args.allow_cycles)
    except HANDLED_ERRORS as e:
        return _fail(e)

    names = order.drop_order if args.drop else order.create_order
    for position, name in enumerate(names, start=1):
        console.print(f"  {position}. {name}")
    for table_name, referenced in sorted(order.deferred_edges):
        console.print(f"[yellow]deferred FK:[/yellow] {table_name} -> {referenced}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """Generate a dump for a target dialect.

    Options not given on the command line fall back to the ``[dump]`` table
    of db.toml. The SQL goes to ``--output`` (split into part files with
    ``--max-statements``) or to stdout.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        defaults = config.dump

        target = args.to or defaults.target
        if not target:
            raise ValueError("No target dialect: pass --to or set [dump] target in db.toml")
        conflict_mode = args.on_conflict or defaults.conflict_mode
        if conflict_mode is None:
            conflict_mode = "ignore" if target.startswith(("mysql", "mariadb")) else "error"
        max_statements = (
            args.max_statements if args.max_statements is not None else defaults.max_statements
        )
        if max_statements < 0:
            raise ValueError("--max-statements must be >= 0")
        if max_statements and not args.output:
            raise ValueError("--max-statements requires --output")

        options = DumpOptions(
            target_dialect=target,
            include_header=defaults.include_header and not args.no_header,
            include_schema=defaults.include_schema and not args.exclude_schema,
            chunk_size=args.chunk_size if args.chunk_size is not None else defaults.chunk_size,
            conflict_mode=conflict_mode,
            tables=_parse_tables(args.tables),
            table_prefix=args.table_prefix or defaults.table_prefix,
            cycle_policy="defer" if args.allow_cycles else "error",
        )

        adapter = _adapter_for(args)
        try:
            document = dump_database(adapter.engine, options)
        finally:
            adapter.close()

        if not args.output:
            sys.stdout.write(document.render())
            return 0

        paths = write_parts(document, Path(args.output), max_statements)
    except HANDLED_ERRORS as e:
        return _fail(e)

    console.print(
        f"[bold green]v[/bold green] Wrote {document.statement_count} statements "
        f"({document.source_dialect} -> {document.target_dialect})"
    )
    for path in paths:
        console.print(f"  [cyan]{path}[/cyan]")
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    """Execute dump files, in the order given, against a profile's database.

    Args:
        args: Parsed CLI arguments with profile and files.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        adapter = _adapter_for(args)
        try:
            total = 0
            for file in args.files:
                path = Path(file)
                if not path.exists():
                    raise FileNotFoundError(f"Dump file not found: {path}")
                count = load_dump(adapter, path.read_text(encoding="utf-8"))
                console.print(f"  {path}: {count} statements")
                total += count
        finally:
            adapter.close()
    except HANDLED_ERRORS as e:
        return _fail(e)

    console.print(f"[bold green]v[/bold green] Loaded {total} statements into {adapter.dialect}")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlport",
        description="Cross-database schema and data dumps for SQLite, MySQL and PostgreSQL",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument("--config", help="Path to db.toml (default: ./db.toml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # inspect command
    p_inspect = subparsers.add_parser("inspect", help="Show tables, keys and indexes")
    p_inspect.add_argument("--profile", "-p", help="Profile name from db.toml")
    p_inspect.add_argument("--tables", help="Comma-separated list of tables")
    p_inspect.set_defaults(func=cmd_inspect)

    # order command
    p_order = subparsers.add_parser("order", help="Print table create order")
    p_order.add_argument("--profile", "-p", help="Profile name from db.toml")
    p_order.add_argument("--tables", help="Comma-separated list of tables")
    p_order.add_argument("--drop", action="store_true", help="Print drop order instead")
    p_order.add_argument(
        "--allow-cycles",
        action="store_true",
        help="Break FK cycles instead of failing",
    )
    p_order.set_defaults(func=cmd_order)

    # dump command
    p_dump = subparsers.add_parser("dump", help="Generate a SQL dump")
    p_dump.add_argument("--profile", "-p", help="Profile name from db.toml")
    p_dump.add_argument(
        "--to",
        choices=["sqlite", "mysql", "postgresql"],
        help="Target dialect (default: [dump] target in db.toml)",
    )
    p_dump.add_argument("--tables", help="Comma-separated list of tables")
    p_dump.add_argument(
        "--chunk-size",
        type=int,
        help="Rows per INSERT statement; 0 dumps schema only (default: 100)",
    )
    p_dump.add_argument(
        "--on-conflict",
        choices=["error", "ignore", "replace"],
        help="Conflict mode (default: ignore for mysql, error otherwise)",
    )
    p_dump.add_argument("--exclude-schema", action="store_true", help="Data only")
    p_dump.add_argument("--no-header", action="store_true", help="Omit the header comment")
    p_dump.add_argument("--table-prefix", help="Naming-convention prefix (default: v4_)")
    p_dump.add_argument(
        "--allow-cycles",
        action="store_true",
        help="Defer cyclic foreign keys instead of failing",
    )
    p_dump.add_argument(
        "--max-statements",
        type=int,
        help="Split output into part files of at most N statements",
    )
    p_dump.add_argument("--output", "-o", help="Output file (default: stdout)")
    p_dump.set_defaults(func=cmd_dump)

    # load command
    p_load = subparsers.add_parser("load", help="Execute dump files against a profile")
    p_load.add_argument("--profile", "-p", help="Profile name from db.toml")
    p_load.add_argument("files", nargs="+", help="Dump file(s), in load order")
    p_load.set_defaults(func=cmd_load)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
