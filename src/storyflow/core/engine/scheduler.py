"""Workflow execution scheduler.

Runs one flat workflow level from its start node:

- A node becomes ready once every parent connection's source has
  succeeded (a per-node pending-parent counter reaching zero).
- Ready nodes are dispatched FIFO, up to ``max_parallel`` at a time.
- A node's input is the merge of its parents' results in connection
  declaration order; later parents overwrite same-named fields.
- A failed node cascades: its direct children are failed with
  "Parent node failed", deeper descendants with "Upstream failure".
  The cascade completes before anything else is dispatched, so no
  descendant of a failure ever starts.
- A cycle reachable from the start node aborts the run before any
  dispatch.

All callbacks and log lines are emitted from the single coordinating
coroutine; executor tasks only compute outcomes.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from storyflow.config import EngineSettings
from storyflow.core.engine.cancellation import CancellationToken
from storyflow.core.executor.base import NodeExecutor, NodeFailure
from storyflow.core.executor.builtin import BuiltinExecutor
from storyflow.core.graph.model import Connection, Node
from storyflow.core.graph.topology import (
    downstream_of,
    find_cycle,
    reachable_from,
    resolved_connections,
)
from storyflow.core.logging_config import mirror_execution_line
from storyflow.core.types import LogLevel, NodeStatus, NodeType

logger = logging.getLogger(__name__)

PARENT_FAILED = "Parent node failed"
UPSTREAM_FAILED = "Upstream failure"


@dataclass
class ExecutionCallbacks:
    """Observer hooks for a run. Every hook is optional.

    Attributes:
        on_node_start: Called with the node id when it enters running.
        on_node_complete: Called with the node id and its result.
        on_node_error: Called with the node id and the error message,
            for executor failures and cascaded failures alike.
        on_log: Called with each execution log line and its level.
    """

    on_node_start: Callable[[str], None] | None = None
    on_node_complete: Callable[[str, dict[str, Any]], None] | None = None
    on_node_error: Callable[[str, str], None] | None = None
    on_log: Callable[[str, LogLevel], None] | None = None


@dataclass
class ExecutionResult:
    """Outcome of one run.

    Attributes:
        executed: Ids of nodes that succeeded.
        failed: Ids of nodes that failed or were cascaded.
        skipped: Ids of nodes left idle.
        cancelled: Whether the run stopped on its cancellation token.
        aborted: Whether the run was refused (no start node, cycle) before
            dispatching.
        results: Result per executed node.
        inputs: Merged input each dispatched node received.
        errors: Error message per failed node.
        order: Node ids in the order they were dispatched.
    """

    executed: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)
    skipped: set[str] = field(default_factory=set)
    cancelled: bool = False
    aborted: bool = False
    results: dict[str, dict[str, Any]] = field(default_factory=dict)
    inputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when nothing failed and the run was neither aborted nor cancelled."""
        return not self.failed and not self.aborted and not self.cancelled

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "executed": sorted(self.executed),
            "failed": sorted(self.failed),
            "skipped": sorted(self.skipped),
            "cancelled": self.cancelled,
            "aborted": self.aborted,
            "success": self.success,
            "results": self.results,
            "errors": self.errors,
            "order": self.order,
        }


@dataclass
class _Outcome:
    result: dict[str, Any] | None = None
    error: str | None = None


class WorkflowScheduler:
    """Executes one flat workflow level.

    A scheduler is single-use: create a new one per run.

    Args:
        nodes: Nodes of the level to run.
        connections: Connections of that level. Connections whose
            endpoints are missing are ignored.
        executor: Node executor. Defaults to BuiltinExecutor(settings).
        settings: Engine settings (parallelism, timeout, simulation).
        callbacks: Observer hooks.
        cancellation: Optional token checked before every dispatch.

    Example:
        >>> scheduler = WorkflowScheduler(workflow.nodes, workflow.connections)
        >>> result = await scheduler.run()
        >>> result.executed, result.failed
    """

    def __init__(
        self,
        nodes: Sequence[Node],
        connections: Sequence[Connection],
        executor: NodeExecutor | None = None,
        settings: EngineSettings | None = None,
        callbacks: ExecutionCallbacks | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._nodes = list(nodes)
        self._by_id = {node.id: node for node in self._nodes}
        self._connections = resolved_connections(connections, self._nodes)
        self._settings = settings or EngineSettings()
        self._executor = executor or BuiltinExecutor(self._settings)
        self._callbacks = callbacks or ExecutionCallbacks()
        self._cancellation = cancellation

        self._result = ExecutionResult()
        self._statuses: dict[str, NodeStatus] = {node.id: NodeStatus.IDLE for node in self._nodes}
        self._pending: dict[str, int] = {node.id: 0 for node in self._nodes}
        self._ready: deque[str] = deque()
        self._started = False

    @property
    def statuses(self) -> Mapping[str, NodeStatus]:
        """Current status per node id."""
        return self._statuses

    async def run(self) -> ExecutionResult:
        """Execute the workflow and return the outcome.

        Never raises for graph or node problems; they are reported through
        callbacks and the execution log.

        Raises:
            RuntimeError: If this scheduler already ran.
        """
        if self._started:
            raise RuntimeError("Scheduler already ran; create a new one per run")
        self._started = True

        self._log("Starting workflow execution...", LogLevel.INFO)

        start = next((n for n in self._nodes if n.type == NodeType.START.value), None)
        if start is None:
            self._log("No start node found in workflow.", LogLevel.ERROR)
            self._result.aborted = True
            self._result.skipped = set(self._by_id)
            return self._result

        reachable = reachable_from(start.id, self._connections, self._nodes)
        cycle = find_cycle(reachable, self._connections)
        if cycle is not None:
            path = " -> ".join(self._by_id[node_id].label for node_id in cycle)
            self._log(
                f"Workflow aborted: possible circular dependency detected ({path}).",
                LogLevel.ERROR,
            )
            self._result.aborted = True
            self._result.skipped = set(self._by_id)
            return self._result

        for conn in self._connections:
            self._pending[conn.to_id] += 1
        if self._pending[start.id] == 0:
            self._ready.append(start.id)

        logger.debug(
            "scheduler_started: nodes=%d, connections=%d, max_parallel=%d",
            len(self._nodes),
            len(self._connections),
            self._settings.max_parallel,
        )

        await self._drain()

        self._result.skipped = {
            node_id for node_id, status in self._statuses.items() if status == NodeStatus.IDLE
        }
        self._report_stuck(reachable)
        self._summarize()
        return self._result

    async def _drain(self) -> None:
        in_flight: dict[asyncio.Task[_Outcome], tuple[int, Node]] = {}
        sequence = itertools.count()

        try:
            while True:
                while self._ready and len(in_flight) < self._settings.max_parallel:
                    if self._check_cancelled():
                        break
                    node = self._by_id[self._ready.popleft()]
                    if node.id in self._result.executed or node.id in self._result.failed:
                        continue
                    merged = self._merge_inputs(node.id)
                    self._mark_running(node, merged)
                    task = asyncio.create_task(self._invoke(node, merged))
                    in_flight[task] = (next(sequence), node)

                if not in_flight:
                    return

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=lambda t: in_flight[t][0]):
                    _, node = in_flight.pop(task)
                    outcome = task.result()
                    if outcome.error is None:
                        self._complete(node, outcome.result or {})
                    else:
                        self._fail(node, outcome.error)
        finally:
            for task in in_flight:
                task.cancel()

    def _check_cancelled(self) -> bool:
        if self._cancellation is None or not self._cancellation.is_cancelled:
            return False
        self._result.cancelled = True
        return True

    def _merge_inputs(self, node_id: str) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for conn in self._connections:
            if conn.to_id != node_id:
                continue
            parent_result = self._result.results.get(conn.from_id)
            if not parent_result:
                continue
            overwritten = merged.keys() & parent_result.keys()
            if overwritten:
                logger.debug(
                    "merge_overwrite: node_id=%s, parent=%s, keys=%s",
                    node_id,
                    conn.from_id,
                    sorted(overwritten),
                )
            merged.update(parent_result)
        return merged

    async def _invoke(self, node: Node, merged: dict[str, Any]) -> _Outcome:
        timeout = self._settings.node_timeout
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                result = await self._executor.execute(node, merged)
        except NodeFailure as e:
            return _Outcome(error=e.message)
        except Exception as e:
            if isinstance(e, TimeoutError) and deadline.expired():
                return _Outcome(error=f"Node timed out after {timeout:g}s")
            logger.exception("node_executor_crashed: node_id=%s, type=%s", node.id, node.type)
            return _Outcome(error=str(e) or type(e).__name__)

        if result is None:
            return _Outcome(result={})
        if not isinstance(result, Mapping):
            return _Outcome(error=f"Executor returned {type(result).__name__}, expected a mapping")
        return _Outcome(result=dict(result))

    def _mark_running(self, node: Node, merged: dict[str, Any]) -> None:
        self._statuses[node.id] = NodeStatus.RUNNING
        self._result.inputs[node.id] = merged
        self._result.order.append(node.id)
        logger.debug("node_dispatched: node_id=%s, type=%s", node.id, node.type)
        self._notify(self._callbacks.on_node_start, node.id)
        self._log(f"Executing node: {node.label} ({node.type})", LogLevel.INFO)

    def _complete(self, node: Node, result: dict[str, Any]) -> None:
        self._statuses[node.id] = NodeStatus.SUCCESS
        self._result.results[node.id] = result
        self._result.executed.add(node.id)
        self._notify(self._callbacks.on_node_complete, node.id, result)
        self._log(f"{node.label} completed successfully", LogLevel.SUCCESS)

        for conn in self._connections:
            if conn.from_id != node.id:
                continue
            self._pending[conn.to_id] -= 1
            if self._pending[conn.to_id] == 0 and self._statuses[conn.to_id] == NodeStatus.IDLE:
                self._ready.append(conn.to_id)

    def _fail(self, node: Node, message: str) -> None:
        self._mark_failed(node, message)
        self._log(f"{node.label} failed: {message}", LogLevel.ERROR)
        self._cascade(node.id)

    def _mark_failed(self, node: Node, message: str) -> None:
        self._statuses[node.id] = NodeStatus.ERROR
        self._result.failed.add(node.id)
        self._result.errors[node.id] = message
        self._notify(self._callbacks.on_node_error, node.id, message)

    def _cascade(self, failed_id: str) -> None:
        """Fail every not-yet-decided descendant, depth-first."""
        stack = [
            (child.id, True)
            for child in reversed(downstream_of(failed_id, self._connections, self._nodes))
        ]
        while stack:
            node_id, direct = stack.pop()
            if self._statuses[node_id] != NodeStatus.IDLE:
                continue
            node = self._by_id[node_id]
            self._mark_failed(node, PARENT_FAILED if direct else UPSTREAM_FAILED)
            self._log(f"{node.label} skipped due to upstream failure", LogLevel.WARNING)
            for child in reversed(downstream_of(node_id, self._connections, self._nodes)):
                stack.append((child.id, False))

    def _report_stuck(self, reachable: set[str]) -> None:
        if self._result.cancelled:
            return
        stuck = [n for n in self._nodes if n.id in reachable and self._statuses[n.id] == NodeStatus.IDLE]
        if stuck:
            names = ", ".join(n.label for n in stuck)
            self._log(f"{len(stuck)} node(s) never became ready: {names}", LogLevel.WARNING)

    def _summarize(self) -> None:
        failed = len(self._result.failed)
        if self._result.cancelled:
            self._log(
                f"Workflow cancelled: {len(self._result.skipped)} node(s) left idle.",
                LogLevel.WARNING,
            )
        elif failed:
            plural = "s" if failed > 1 else ""
            self._log(f"Workflow completed with {failed} failure{plural}.", LogLevel.ERROR)
        else:
            self._log("Workflow completed successfully.", LogLevel.SUCCESS)

    def _log(self, message: str, level: LogLevel) -> None:
        mirror_execution_line(logger, message, level)
        self._notify(self._callbacks.on_log, message, level)

    def _notify(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("callback_failed: callback=%s", getattr(callback, "__name__", callback))


async def execute_workflow(
    nodes: Sequence[Node],
    connections: Sequence[Connection],
    callbacks: ExecutionCallbacks | None = None,
    *,
    executor: NodeExecutor | None = None,
    settings: EngineSettings | None = None,
    cancellation: CancellationToken | None = None,
) -> ExecutionResult:
    """Run a flat workflow level from its start node.

    Args:
        nodes: Nodes of the level.
        connections: Connections of the level.
        callbacks: Observer hooks.
        executor: Node executor. Defaults to BuiltinExecutor(settings).
        settings: Engine settings.
        cancellation: Optional cancellation token.

    Returns:
        The run's ExecutionResult.
    """
    scheduler = WorkflowScheduler(
        nodes,
        connections,
        executor=executor,
        settings=settings,
        callbacks=callbacks,
        cancellation=cancellation,
    )
    return await scheduler.run()
