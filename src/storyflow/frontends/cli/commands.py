"""Workflow commands - run, inspect, reset and validate workflow files."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import rich_click as click
from rich.markup import escape

from storyflow.config import EngineSettings
from storyflow.core.engine import ExecutionEvent, LogEntry, RunState, WorkflowRun
from storyflow.core.executor import HttpApiExecutor
from storyflow.core.graph import Workflow, level_exists, reset_workflow, resolve_level
from storyflow.core.logging_config import configure_logging
from storyflow.core.types import LogLevel
from storyflow.core.validation import validate_workflow
from storyflow.frontends.cli.output import (
    error_exit,
    make_console,
    output_json,
    print_connection_table,
    print_log_entry,
    print_node_table,
)

# ============================================================================
# Workflow File Loading Helpers
# ============================================================================


def load_workflow_file(filepath: str) -> tuple[Workflow, dict[str, Any] | None]:
    """Load a workflow from a JSON file.

    The file holds either a bare ``{"nodes": [...], "connections": [...]}``
    object or a saved project whose ``workflow`` key holds one.

    Returns:
        The root workflow and the enclosing project dict (None for a bare
        workflow file).

    Raises:
        ValueError: If the file is not valid JSON or not a JSON object.
    """
    try:
        data = json.loads(Path(filepath).read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"{filepath} is not valid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise ValueError(f"{filepath} must contain a JSON object")

    if isinstance(data.get("workflow"), Mapping):
        return Workflow.from_dict(data["workflow"]), dict(data)
    return Workflow.from_dict(data), None


def _load_or_exit(filepath: str) -> tuple[Workflow, dict[str, Any] | None]:
    try:
        return load_workflow_file(filepath)
    except (OSError, ValueError) as e:
        error_exit(str(e))


def _resolve_or_exit(root: Workflow, levels: tuple[str, ...]) -> Workflow:
    if not level_exists(root, levels):
        error_exit(f"Level not found: {' / '.join(levels)}")
    return resolve_level(root, levels)


async def _execute(
    root: Workflow,
    levels: tuple[str, ...],
    settings: EngineSettings,
    live_http: bool,
    stream_log: bool,
) -> WorkflowRun:
    console = make_console()

    async def on_event(event: ExecutionEvent) -> None:
        if event.event_type != "log":
            return
        entry = LogEntry(
            message=event.data["message"],
            level=LogLevel(event.data["level"]),
            timestamp=event.timestamp,
        )
        print_log_entry(console, entry)

    executor = HttpApiExecutor(settings=settings) if live_http else None
    try:
        run = WorkflowRun(
            root,
            executor=executor,
            settings=settings,
            path=levels,
            event_callback=on_event if stream_log else None,
        )
        await run.start()
        await run.wait()
    finally:
        if executor is not None:
            await executor.close()
    return run


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(package_name="storyflow")
def cli() -> None:
    """Storyflow - run hierarchical workflow graphs.

    Commands operate on a workflow JSON file: either a bare object with
    `nodes` and `connections`, or a saved project with a `workflow` key.

    **Commands:**

        storyflow run         Execute a workflow level

        storyflow show        List the nodes and connections of a level

        storyflow validate    Check a level for structural problems

        storyflow reset       Write the workflow back with every node idle
    """
    pass


@cli.command("run")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--level",
    "-l",
    "levels",
    multiple=True,
    help="Node id to descend into (repeat for deeper levels)",
)
@click.option("--max-parallel", "-p", type=int, default=None, help="Max nodes running at once")
@click.option("--timeout", "-t", type=float, default=None, help="Per-node timeout in seconds")
@click.option("--seed", type=int, default=None, help="Seed for simulated latency and failures")
@click.option("--no-latency", is_flag=True, help="Disable simulated latency")
@click.option("--no-failures", is_flag=True, help="Disable simulated failures")
@click.option("--live-http", is_flag=True, help="Send real HTTP requests for api nodes")
@click.option("--json", "-j", "json_output", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def run_command(
    file: str,
    levels: tuple[str, ...],
    max_parallel: int | None,
    timeout: float | None,
    seed: int | None,
    no_latency: bool,
    no_failures: bool,
    live_http: bool,
    json_output: bool,
    verbose: bool,
) -> None:
    """Execute one level of a workflow.

    Runs from the level's start node, printing the execution log as it
    happens and a status table at the end. Exits with code 1 when any
    node failed or the run was aborted.

    **Examples:**

        storyflow run project.json

        storyflow run project.json --level phase-1 --no-latency

        storyflow run project.json --max-parallel 4 --timeout 5 --json
    """
    if verbose:
        configure_logging(level="DEBUG")

    root, _ = _load_or_exit(file)
    level = _resolve_or_exit(root, levels)

    try:
        settings = EngineSettings.from_env(
            max_parallel=max_parallel,
            node_timeout=timeout,
            seed=seed,
        )
    except ValueError as e:
        error_exit(str(e))
    if no_latency:
        settings = settings.without_latency()
    if no_failures:
        settings = settings.without_failures()

    run = asyncio.run(_execute(root, levels, settings, live_http, stream_log=not json_output))

    if json_output:
        output_json(run.to_info().to_dict())
    else:
        console = make_console()
        console.print()
        title = f"{' / '.join(levels) or 'root'} ({len(level.nodes)} nodes)"
        print_node_table(console, run.workflow, title=title)

    if run.state != RunState.COMPLETED:
        raise SystemExit(1)


@cli.command("show")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--level",
    "-l",
    "levels",
    multiple=True,
    help="Node id to descend into (repeat for deeper levels)",
)
@click.option("--json", "-j", "json_output", is_flag=True, help="Output as JSON")
def show_command(file: str, levels: tuple[str, ...], json_output: bool) -> None:
    """List the nodes and connections of a workflow level.

    **Examples:**

        storyflow show project.json

        storyflow show project.json --level phase-1 --json
    """
    root, _ = _load_or_exit(file)
    level = _resolve_or_exit(root, levels)

    if json_output:
        output_json(level.to_dict())
        return

    console = make_console()
    print_node_table(console, level, title=" / ".join(levels) or "root")
    if level.connections:
        print_connection_table(console, level)


@cli.command("validate")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--level",
    "-l",
    "levels",
    multiple=True,
    help="Node id to descend into (repeat for deeper levels)",
)
def validate_command(file: str, levels: tuple[str, ...]) -> None:
    """Check a workflow level for structural problems.

    Reports a missing start node, connections to unknown nodes,
    self-connections, duplicate connections and cycles reachable from
    the start node. Exits with code 1 if any problem is found.
    """
    root, _ = _load_or_exit(file)
    level = _resolve_or_exit(root, levels)

    console = make_console()
    errors = validate_workflow(level)
    if not errors:
        console.print("[log.success]Workflow is valid.[/]")
        return

    for error in errors:
        console.print(f"[log.error]✖ {escape(error)}[/]", soft_wrap=True)
    raise SystemExit(1)


@cli.command("reset")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write here instead of stdout",
)
def reset_command(file: str, output_path: str | None) -> None:
    """Write the workflow back with every root node idle and error-free.

    Project files keep all of their other fields.
    """
    root, project = _load_or_exit(file)
    data = reset_workflow(root).to_dict()
    if project is not None:
        data = {**project, "workflow": data}

    if output_path is None:
        output_json(data)
        return

    Path(output_path).write_text(json.dumps(data, indent=2) + "\n")
    click.echo(f"Wrote {output_path}")
