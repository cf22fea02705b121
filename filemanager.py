#!/usr/bin/env python3
"""
File Manager - batch filesystem operations

Main entry point for the File Manager CLI application.
"""

import json
import sys
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from core import AuditLogger, FileManagerError, Settings, load_settings
from modules.file_manager import (
    ArchiveOperator,
    BatchRunner,
    InvocationItem,
    Operation,
    OperationOutcome,
    ParameterResolver,
)


console = Console()


def get_settings(config_path: str) -> Settings:
    """Load settings from the given config file."""
    return load_settings(config_path)


def get_runner(settings: Settings) -> BatchRunner:
    """Get a runner wired to the configured archiver and audit log."""
    logger = AuditLogger(log_path=settings.audit_log) if settings.audit else None
    archives = ArchiveOperator(command=settings.archiver_command, timeout=settings.archiver_timeout)
    return BatchRunner(archive_operator=archives, logger=logger)


def load_batch(path: str) -> Tuple[List[InvocationItem], List[Dict[str, Any]]]:
    """
    Load a batch file (YAML or JSON).

    Each entry is either a flat parameter mapping or a mapping with
    `params` and an optional `json` record.
    """
    with open(path, "r", encoding="utf-8") as f:
        document = yaml.safe_load(f) or []

    if isinstance(document, dict):
        document = document.get("items", [])
    if not isinstance(document, list):
        raise click.BadParameter("batch file must contain a list of items", param_hint="BATCH_FILE")

    items = []
    params = []
    for entry in document:
        if not isinstance(entry, dict):
            raise click.BadParameter(f"batch entry is not a mapping: {entry!r}", param_hint="BATCH_FILE")
        if "params" in entry:
            params.append(dict(entry["params"] or {}))
            items.append(InvocationItem(json=dict(entry.get("json") or {})))
        else:
            params.append(dict(entry))
            items.append(InvocationItem())
    return items, params


def print_outcomes(outcomes: List[OperationOutcome], as_json: bool) -> None:
    """Print outcomes as a table, or as JSON for scripting."""
    if as_json:
        click.echo(json.dumps([o.to_dict() for o in outcomes], indent=2, ensure_ascii=False, default=str))
        return

    table = Table(title="Results")
    table.add_column("#", style="dim")
    table.add_column("Operation")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Details")

    for index, outcome in enumerate(outcomes):
        record = outcome.json
        path = record.get("targetPath") or record.get("sourcePath") or ""
        if record.get("destinationPath"):
            path = f"{path} → {record['destinationPath']}"

        if outcome.success:
            status = "[green]ok[/green]"
            details = _details(record)
        else:
            status = "[red]failed[/red]"
            details = outcome.error.message

        table.add_row(str(index), escape(str(record.get("operation", "—"))), escape(path), status, escape(details))

    console.print(table)


def _details(record: Dict[str, Any]) -> str:
    if "exists" in record:
        return str(record["exists"])
    if "list" in record:
        return ", ".join(record["list"])
    if "size" in record:
        kind = "dir" if record.get("isDirectory") else "file" if record.get("isFile") else "other"
        return f"{kind}, {record['size']} bytes, modified {record['mtime']}"
    if "data" in record and record.get("operation") == Operation.READ.value:
        data = str(record["data"])
        return data[:50] + "..." if len(data) > 50 else data
    if "mode" in record and record.get("operation") == Operation.CHMOD.value:
        return oct(record["mode"])
    return ""


def execute(
    settings: Settings,
    items: List[InvocationItem],
    params: List[Dict[str, Any]],
    continue_on_fail: bool,
    as_json: bool
) -> None:
    runner = get_runner(settings)
    resolver = ParameterResolver(params, defaults=settings.parameter_defaults())

    try:
        outcomes = runner.run(items, resolver, continue_on_fail=continue_on_fail)
    except FileManagerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    print_outcomes(outcomes, as_json)


@click.group()
@click.version_option(version="0.1.0", prog_name="filemanager")
@click.option("--config", "config_path", default="config.yaml", show_default=True,
              help="YAML configuration file.")
@click.pass_context
def filemanager(ctx, config_path: str):
    """
    File Manager - batch filesystem operations

    Create, copy, move, read, write, archive and inspect files and
    directories, one item at a time.
    """
    ctx.obj = get_settings(config_path)


@filemanager.command()
@click.argument("batch_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--continue-on-fail/--fail-fast", default=None,
              help="Record failed items and keep going instead of aborting.")
@click.option("--json", "as_json", is_flag=True, help="Print outcomes as JSON.")
@click.pass_obj
def run(settings: Settings, batch_file: str, continue_on_fail: Optional[bool], as_json: bool):
    """Run every item in a YAML or JSON batch file."""
    items, params = load_batch(batch_file)
    if continue_on_fail is None:
        continue_on_fail = settings.continue_on_fail
    execute(settings, items, params, continue_on_fail, as_json)


@filemanager.command()
@click.argument("operation", type=click.Choice(Operation.values()))
@click.option("--source", "source_path", help="Source path (create, remove, copy, move, rename, compress, extract).")
@click.option("--destination", "destination_path", help="Destination path (copy, move, rename, compress, extract).")
@click.option("--target", "target_path", help="Target path (read, write, append, list, exists, metadata, chmod).")
@click.option("--data", help="Content for write and append.")
@click.option("--encoding", help="Text encoding for read, write and append.")
@click.option("--mode", help="Octal permission bits for chmod, e.g. 755.")
@click.option("--recursive/--no-recursive", default=None, help="Remove directories recursively.")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON.")
@click.pass_obj
def op(settings: Settings, operation: str, as_json: bool, **options):
    """Run a single operation."""
    names = {
        "source_path": "sourcePath",
        "destination_path": "destinationPath",
        "target_path": "targetPath",
    }
    params = {"operation": operation}
    for key, value in options.items():
        if value is not None:
            params[names.get(key, key)] = value

    execute(settings, [InvocationItem()], [params], False, as_json)


@filemanager.command()
@click.option("--limit", default=20, show_default=True, help="Number of entries to show.")
@click.option("--failed", is_flag=True, help="Only show failed items.")
@click.option("--operation", "operation", type=click.Choice(Operation.values()), help="Only show one operation.")
@click.pass_obj
def audit(settings: Settings, limit: int, failed: bool, operation: Optional[str]):
    """View the audit log."""
    logger = AuditLogger(log_path=settings.audit_log)
    if failed:
        entries = logger.get_failed(limit=limit)
    elif operation:
        entries = logger.get_by_operation(operation, limit=limit)
    else:
        entries = logger.get_recent(limit=limit)

    if not entries:
        console.print("[dim]No audit entries found.[/dim]")
        return

    table = Table(title="Recent Audit Log")
    table.add_column("Time", style="dim")
    table.add_column("Operation")
    table.add_column("Item")
    table.add_column("Status")
    table.add_column("Result")

    for entry in entries:
        time_str = entry.timestamp.split("T")[1].split(".")[0] if "T" in entry.timestamp else entry.timestamp

        status_str = entry.status
        if entry.status == "executed":
            status_str = f"[green]{entry.status}[/green]"
        elif entry.status in ("failed", "tolerated"):
            status_str = f"[red]{entry.status}[/red]"

        result = entry.result or ""
        table.add_row(
            time_str,
            escape(entry.operation),
            "—" if entry.item_index is None else str(entry.item_index),
            status_str,
            escape(result[:50] + "..." if len(result) > 50 else result)
        )

    console.print(table)


if __name__ == "__main__":
    filemanager()
