"""CLI for previewing, validating and running backup restores.

Usage:
    db-restore plan backups/backup-2026-01-15.json --tables products,categories
    db-restore validate backups/backup-2026-01-15.json
    DB_PROFILE=staging db-restore restore backups/backup-2026-01-15.json --clear-existing
    db-restore restore backups/backup.json --resume --yes
    db-restore counts --profile staging
    db-restore unlock --profile staging

Commands:
    plan      - Show restore and clearing order for a backup file (no store access)
    validate  - Check a backup file against the table catalog
    restore   - Restore a backup file into the target store
    counts    - Show current row counts per table (re-verify after a timeout)
    unlock    - Remove a stale restore lock left by a crashed run
"""

import argparse
import asyncio
import getpass
import json
import math
import sys

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from db_restore.auth import AdminPolicy, Principal
from db_restore.cli.rich_logging import configure_rich_logging
from db_restore.config.loader import get_settings
from db_restore.exceptions import BackupValidationError, ProfileNotFoundError
from db_restore.factory import get_adapter, resolve_profile
from db_restore.restore.catalog import MARKETPLACE_CATALOG, IdPolicy
from db_restore.restore.checkpoint import CheckpointStore
from db_restore.restore.lock import RestoreLock
from db_restore.restore.models import BackupDocument
from db_restore.restore.plan import build_restore_plan
from db_restore.restore.service import handle_restore_request
from db_restore.restore.validation import validate_backup

console = Console()


def _split_tables(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [t.strip() for t in value.split(",") if t.strip()]


# ============================================================================
# Local commands (no store access)
# ============================================================================


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the restore plan for a backup file.

    Returns:
        0 on success, 1 if the file is not a backup document.
    """
    try:
        document = BackupDocument.from_file(args.backup_path)
    except BackupValidationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    settings = get_settings()
    catalog = MARKETPLACE_CATALOG
    plan = build_restore_plan(catalog, document, _split_tables(args.tables))
    keys = document.table_keys(catalog)

    table = Table(title="Restore Plan", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Records", justify="right")
    table.add_column("Batches", justify="right")
    table.add_column("IDs")

    for step, name in enumerate(plan, 1):
        count = len(document.records(keys[name]))
        policy = catalog.get(name).id_policy
        table.add_row(
            str(step),
            name,
            str(count),
            str(math.ceil(count / settings.batch_size)),
            "[cyan]preserve[/cyan]" if policy is IdPolicy.PRESERVE else "regenerate",
        )

    console.print(table)

    if not plan:
        console.print("[yellow]Nothing to restore.[/yellow]")
    elif args.clear_existing:
        console.print(
            f"\n[bold]Clearing order:[/bold] {' -> '.join(reversed(plan))}"
        )
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup file.

    Returns:
        0 if valid (possibly with warnings), 1 otherwise.
    """
    try:
        with open(args.backup_path, "r") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading {args.backup_path}: {e}[/red]")
        return 1

    report = validate_backup(payload, MARKETPLACE_CATALOG)

    console.print(f"Validating: [bold]{args.backup_path}[/bold]")
    if report.table_counts:
        counts = Table(show_header=True, header_style="bold")
        counts.add_column("Table")
        counts.add_column("Records", justify="right")
        for name, count in report.table_counts.items():
            counts.add_row(name, str(count))
        console.print(counts)

    if report.errors:
        console.print(f"\n[bold red]x[/bold red] {len(report.errors)} errors:")
        for error in report.errors:
            console.print(f"   - {error}")

    if report.warnings:
        console.print(f"\n[yellow]{len(report.warnings)} warnings:[/yellow]")
        for warning in report.warnings:
            console.print(f"   - {warning}")

    if report.valid:
        console.print("\n[bold green]v[/bold green] Backup is valid")
        return 0
    console.print("\n[bold red]x[/bold red] Backup is invalid")
    return 1


def cmd_unlock(args: argparse.Namespace) -> int:
    """Remove a stale lock file for a target."""
    settings = get_settings()
    try:
        _, target = resolve_profile(profile_name=args.profile, settings=settings)
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    lock = RestoreLock(target, settings.state_dir)
    if lock.break_lock():
        console.print(f"Removed restore lock for [bold cyan]{target}[/bold cyan]")
    else:
        console.print(f"[dim]No restore lock for {target}[/dim]")
    return 0


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 when every table restored (possibly partially), 1 otherwise.
    """
    settings = get_settings()

    try:
        with open(args.backup_path, "r") as f:
            backup_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading {args.backup_path}: {e}[/red]")
        return 1

    try:
        store, target = get_adapter(profile_name=args.profile, settings=settings)
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if not args.yes:
        console.print(f"This will restore data from: [bold]{args.backup_path}[/bold]")
        console.print(f"   Target: [bold cyan]{target}[/bold cyan]")
        if args.clear_existing:
            console.print("   [bold yellow]WARNING: existing rows will be deleted![/bold yellow]")
        if not Confirm.ask("Continue?", default=False):
            console.print("Cancelled.")
            await store.close()
            return 0

    payload = {
        "backupData": backup_data,
        "options": {
            "clearExisting": args.clear_existing,
            "restoreTables": _split_tables(args.tables),
            "resume": args.resume,
        },
    }
    # Whoever runs the CLI already holds the store credentials
    principal = Principal(user_id=f"cli:{getpass.getuser()}", role="owner")

    try:
        status, body = await handle_restore_request(
            payload,
            principal=principal,
            policy=AdminPolicy.from_settings(settings),
            store=store,
            lock=RestoreLock(target, settings.state_dir),
            batch_size=settings.batch_size,
            checkpoints=CheckpointStore(settings.state_dir),
        )
    finally:
        await store.close()

    if status != 200:
        console.print(f"\n[bold red]x[/bold red] Restore failed ({status}): {body['error']}")
        return 1

    results = Table(title="Restore Results", show_header=True, header_style="bold")
    results.add_column("Table")
    results.add_column("Rows", justify="right")
    results.add_column("Status")
    results.add_column("Error", style="dim")
    for name, result in body["results"].items():
        if not result["success"]:
            status_text = "[red]FAILED[/red]"
        elif "error" in result:
            status_text = "[yellow]PARTIAL[/yellow]"
        else:
            status_text = "[green]OK[/green]"
        results.add_row(name, str(result["count"]), status_text, result.get("error", ""))

    console.print()
    console.print(results)
    console.print(body["message"])

    if body["success"]:
        console.print("[bold green]v[/bold green] Restore complete.")
        return 0
    console.print(
        f"[bold red]x[/bold red] Failed tables: {', '.join(body['failedTables'])}"
    )
    return 1


async def _async_counts(args: argparse.Namespace) -> int:
    """Async implementation for counts command."""
    try:
        store, target = get_adapter(profile_name=args.profile)
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    names = _split_tables(args.tables)
    wanted = (
        None if names is None
        else {MARKETPLACE_CATALOG.resolve(name) for name in names} - {None}
    )
    tables = [
        name for name in MARKETPLACE_CATALOG.master_order()
        if wanted is None or name in wanted
    ]

    table = Table(title=f"Row Counts ({target})", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Rows", justify="right")

    exit_code = 0
    try:
        for name in tables:
            try:
                table.add_row(name, str(await store.count(name)))
            except Exception as e:
                table.add_row(name, f"[red]error: {e}[/red]")
                exit_code = 1
    finally:
        await store.close()

    console.print(table)
    return exit_code


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a backup file.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_restore(args))


def cmd_counts(args: argparse.Namespace) -> int:
    """Show row counts.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_counts(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-restore",
        description="Restore marketplace backups into a target store",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: DB_RESTORE_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # plan command
    p_plan = subparsers.add_parser("plan", help="Show restore order for a backup file")
    p_plan.add_argument("backup_path", help="Path to backup JSON file")
    p_plan.add_argument("--tables", help="Comma-separated subset of tables to restore")
    p_plan.add_argument(
        "--clear-existing",
        action="store_true",
        help="Also show the clearing order",
    )
    p_plan.set_defaults(func=cmd_plan)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Validate a backup file")
    p_validate.add_argument("backup_path", help="Path to backup JSON file")
    p_validate.set_defaults(func=cmd_validate)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore a backup file")
    p_restore.add_argument("backup_path", help="Path to backup JSON file")
    p_restore.add_argument("--profile", "-p", help="Target profile from db.toml")
    p_restore.add_argument("--tables", help="Comma-separated subset of tables to restore")
    p_restore.add_argument(
        "--clear-existing",
        action="store_true",
        help="Delete existing rows (reverse dependency order) before inserting",
    )
    p_restore.add_argument(
        "--resume",
        action="store_true",
        help="Continue an interrupted restore of the same backup from its checkpoint",
    )
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_restore.set_defaults(func=cmd_restore)

    # counts command
    p_counts = subparsers.add_parser("counts", help="Show row counts per table")
    p_counts.add_argument("--profile", "-p", help="Target profile from db.toml")
    p_counts.add_argument("--tables", help="Comma-separated subset of tables")
    p_counts.set_defaults(func=cmd_counts)

    # unlock command
    p_unlock = subparsers.add_parser("unlock", help="Remove a stale restore lock")
    p_unlock.add_argument("--profile", "-p", help="Target profile from db.toml")
    p_unlock.set_defaults(func=cmd_unlock)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_rich_logging(args.log_level or get_settings().log_level.upper())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
