"""Output formatting utilities for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, NoReturn

import rich_click as click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from storyflow.core.types import LogLevel, NodeStatus

if TYPE_CHECKING:
    from storyflow.core.engine.events import LogEntry
    from storyflow.core.graph.model import Workflow

THEME = Theme(
    {
        "log.info": "white",
        "log.success": "bold green",
        "log.warning": "bold yellow",
        "log.error": "bold red",
        "status.idle": "dim",
        "status.running": "yellow",
        "status.success": "green",
        "status.error": "red",
        "timestamp": "dim cyan",
    }
)

LEVEL_MARKERS: dict[LogLevel, str] = {
    LogLevel.INFO: "·",
    LogLevel.SUCCESS: "✔",
    LogLevel.WARNING: "!",
    LogLevel.ERROR: "✖",
}


def make_console(**kwargs: Any) -> Console:
    """Console with the storyflow theme applied."""
    return Console(theme=THEME, highlight=False, **kwargs)


def format_log_line(message: str, level: LogLevel, timestamp: str) -> str:
    """Rich markup for one execution log line."""
    marker = LEVEL_MARKERS[level]
    return f"[timestamp]{timestamp}[/] [log.{level.value}]{marker} {escape(message)}[/]"


def print_log_entry(console: Console, entry: LogEntry) -> None:
    stamp = entry.timestamp.astimezone().strftime("%H:%M:%S")
    console.print(format_log_line(entry.message, entry.level, stamp), soft_wrap=True)


def print_node_table(console: Console, workflow: Workflow, title: str | None = None) -> None:
    """Print one row per node with its type, status and error."""
    table = Table(title=title, show_lines=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Sub-nodes", justify="right")
    table.add_column("Error")

    for node in workflow.nodes:
        status = NodeStatus(node.status)
        sub_nodes = str(len(node.children.nodes)) if node.children else ""
        table.add_row(
            node.id,
            node.type,
            escape(node.title),
            f"[status.{status.value}]{status.value}[/]",
            sub_nodes,
            escape(node.error or ""),
        )
    console.print(table)


def print_connection_table(console: Console, workflow: Workflow) -> None:
    table = Table(title="Connections")
    table.add_column("ID", no_wrap=True)
    table.add_column("From")
    table.add_column("To")
    for conn in workflow.connections:
        table.add_row(conn.id, conn.from_id, conn.to_id)
    console.print(table)


def output_json(data: Any, indent: int = 2) -> None:
    """Output data as formatted JSON."""
    click.echo(json.dumps(data, indent=indent, default=str))


def error_exit(message: str, code: int = 1) -> NoReturn:
    """Print error message and exit with code."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)
