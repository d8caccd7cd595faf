"""WorkflowRun - execution tracker for one run of a workflow level.

A run resolves the level to execute, resets it, and keeps a working copy
whose node statuses and errors are annotated as the scheduler reports
progress. It records the timestamped execution log and an event history,
and can forward events to an async observer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from storyflow.config import EngineSettings
from storyflow.core.engine.cancellation import CancellationToken
from storyflow.core.engine.events import ExecutionEvent, LogEntry
from storyflow.core.engine.scheduler import ExecutionCallbacks, ExecutionResult, WorkflowScheduler
from storyflow.core.executor.base import NodeExecutor
from storyflow.core.graph.levels import PathEntry, normalize_path, replace_level, resolve_level
from storyflow.core.graph.model import Node, Workflow, reset_workflow
from storyflow.core.types import LogLevel, NodeStatus

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Run lifecycle states."""

    PENDING = "pending"  # Created but not started
    RUNNING = "running"  # Scheduler is executing
    COMPLETED = "completed"  # Finished with no node failures
    FAILED = "failed"  # Finished with node failures, or aborted
    CANCELLED = "cancelled"  # Stopped by cancel()


@dataclass
class WorkflowRunInfo:
    """Serializable run metadata."""

    run_id: str
    state: RunState
    path: list[str]
    started_at: datetime | None
    completed_at: datetime | None
    executed: list[str]
    failed: list[str]
    nodes: list[dict[str, Any]]
    log: list[dict[str, Any]] = field(default_factory=list)
    events: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "path": self.path,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "executed": self.executed,
            "failed": self.failed,
            "nodes": self.nodes,
            "log": self.log,
            "events": self.events,
        }


# Type alias for event callback
EventCallback = Callable[[ExecutionEvent], Awaitable[None]]


class WorkflowRun:
    """A single execution of one workflow level.

    Nested sub-workflows are not executed; only the level addressed by
    ``path`` (the root by default) runs.

    Lifecycle:
        1. Created in PENDING state
        2. start() transitions to RUNNING
        3. Completes as COMPLETED, FAILED or CANCELLED

    Example:
        >>> run = WorkflowRun(root, settings=EngineSettings(latency_min=0, latency_max=0))
        >>> await run.start()
        >>> result = await run.wait()
        >>> updated_root = run.apply_to(root)
    """

    def __init__(
        self,
        workflow: Workflow,
        executor: NodeExecutor | None = None,
        settings: EngineSettings | None = None,
        path: Iterable[PathEntry] = (),
        event_callback: EventCallback | None = None,
    ) -> None:
        """Create a new run.

        Args:
            workflow: Root workflow.
            executor: Node executor (defaults to the simulated one).
            settings: Engine settings.
            path: View stack addressing the level to run.
            event_callback: Optional async callback for every event.
        """
        self._run_id = str(uuid4())
        self._path = normalize_path(path)
        self._level = reset_workflow(resolve_level(workflow, self._path))
        self._executor = executor
        self._settings = settings
        self._event_callback = event_callback
        self._cancellation = CancellationToken()

        self._state = RunState.PENDING
        self._started_at: datetime | None = None
        self._completed_at: datetime | None = None
        self._result: ExecutionResult | None = None
        self._task: asyncio.Task[None] | None = None

        self._log: list[LogEntry] = []
        self._events: list[ExecutionEvent] = []
        self._callback_tasks: set[asyncio.Task[None]] = set()

        logger.debug("workflow_run_created: run_id=%s, path=%s", self._run_id, self._path)

    @property
    def run_id(self) -> str:
        """Unique run identifier."""
        return self._run_id

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def path(self) -> list[str]:
        return list(self._path)

    @property
    def workflow(self) -> Workflow:
        """The executed level with node statuses and errors annotated."""
        return self._level

    @property
    def result(self) -> ExecutionResult | None:
        """Scheduler outcome, once the run finished."""
        return self._result

    @property
    def log(self) -> list[LogEntry]:
        """Execution log entries in emission order."""
        return list(self._log)

    @property
    def events(self) -> list[ExecutionEvent]:
        return list(self._events)

    @property
    def is_complete(self) -> bool:
        return self._state in (RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED)

    async def start(self) -> None:
        """Start execution in a background task.

        Returns immediately; use wait() to block until complete.

        Raises:
            RuntimeError: If already started.
        """
        if self._state != RunState.PENDING:
            raise RuntimeError(f"Cannot start run in state {self._state}")

        self._state = RunState.RUNNING
        self._started_at = datetime.now(UTC)
        logger.debug("workflow_run_started: run_id=%s, nodes=%d", self._run_id, len(self._level.nodes))
        self._emit_event("run_started", data={"path": self._path})

        self._task = asyncio.create_task(self._execute())

    async def _execute(self) -> None:
        callbacks = ExecutionCallbacks(
            on_node_start=self._on_node_start,
            on_node_complete=self._on_node_complete,
            on_node_error=self._on_node_error,
            on_log=self._on_log,
        )
        scheduler = WorkflowScheduler(
            self._level.nodes,
            self._level.connections,
            executor=self._executor,
            settings=self._settings,
            callbacks=callbacks,
            cancellation=self._cancellation,
        )

        try:
            result = await scheduler.run()
        except Exception as e:
            self._state = RunState.FAILED
            self._completed_at = datetime.now(UTC)
            logger.exception("workflow_run_failed: run_id=%s, error=%s", self._run_id, e)
            self._emit_event("run_failed", data={"error": str(e)})
            return

        self._result = result
        self._completed_at = datetime.now(UTC)
        if result.cancelled:
            self._state = RunState.CANCELLED
            self._emit_event("run_cancelled", data={"skipped": sorted(result.skipped)})
        else:
            self._state = RunState.COMPLETED if result.success else RunState.FAILED
            self._emit_event("run_completed", data=result.to_dict())

        logger.debug(
            "workflow_run_finished: run_id=%s, state=%s, executed=%d, failed=%d",
            self._run_id,
            self._state.value,
            len(result.executed),
            len(result.failed),
        )

    async def wait(self) -> ExecutionResult:
        """Wait for the run to finish.

        Returns:
            The scheduler's ExecutionResult.

        Raises:
            RuntimeError: If the run was not started, or crashed before
                producing a result.
        """
        if self._task is None:
            raise RuntimeError("Run not started")

        await self._task
        if self._callback_tasks:
            await asyncio.gather(*self._callback_tasks, return_exceptions=True)

        if self._result is None:
            raise RuntimeError(f"Run {self._run_id} failed before producing a result")
        return self._result

    async def cancel(self) -> None:
        """Stop dispatching new nodes and wait for in-flight ones to finish."""
        self._cancellation.cancel()
        if self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    def reset(self) -> Workflow:
        """Return the executed level reset to idle, and clear the log."""
        self._log.clear()
        self._level = reset_workflow(self._level)
        return self._level

    def apply_to(self, root: Workflow) -> Workflow:
        """Write the annotated level back into ``root`` at this run's path."""
        return replace_level(root, self._path, self._level)

    def _set_node(self, node_id: str, status: NodeStatus, error: str | None) -> None:
        nodes: list[Node] = []
        for node in self._level.nodes:
            if node.id == node_id:
                node = replace(node, status=status, error=error)
            nodes.append(node)
        self._level = replace(self._level, nodes=nodes)

    def _on_node_start(self, node_id: str) -> None:
        self._set_node(node_id, NodeStatus.RUNNING, None)
        self._emit_event("node_started", node_id)

    def _on_node_complete(self, node_id: str, result: dict[str, Any]) -> None:
        self._set_node(node_id, NodeStatus.SUCCESS, None)
        self._emit_event("node_completed", node_id, {"result": result})

    def _on_node_error(self, node_id: str, message: str) -> None:
        self._set_node(node_id, NodeStatus.ERROR, message)
        self._emit_event("node_error", node_id, {"error": message})

    def _on_log(self, message: str, level: LogLevel) -> None:
        entry = LogEntry(message=message, level=LogLevel(level))
        self._log.append(entry)
        self._emit_event("log", data={"message": message, "level": entry.level.value})

    def _emit_event(
        self,
        event_type: str,
        node_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Store event in history and forward it to the callback."""
        event = ExecutionEvent(
            run_id=self._run_id,
            event_type=event_type,
            node_id=node_id,
            data=data or {},
        )
        self._events.append(event)

        if self._event_callback is None:
            return

        # Fire and forget callback
        task: asyncio.Task[None] = asyncio.create_task(self._event_callback(event))  # type: ignore[arg-type]
        self._callback_tasks.add(task)

        def _handle_callback_done(t: asyncio.Task[None]) -> None:
            self._callback_tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    "Event callback failed: run_id=%s, event_type=%s, error=%s",
                    self._run_id,
                    event_type,
                    exc,
                )

        task.add_done_callback(_handle_callback_done)

    def to_info(self) -> WorkflowRunInfo:
        """Get serializable run info."""
        return WorkflowRunInfo(
            run_id=self._run_id,
            state=self._state,
            path=list(self._path),
            started_at=self._started_at,
            completed_at=self._completed_at,
            executed=sorted(self._result.executed) if self._result else [],
            failed=sorted(self._result.failed) if self._result else [],
            nodes=[
                {"id": n.id, "title": n.title, "status": n.status.value, "error": n.error}
                for n in self._level.nodes
            ],
            log=[entry.to_dict() for entry in self._log],
            events=[e.to_dict() for e in self._events],
        )

    def __repr__(self) -> str:
        return f"WorkflowRun(run_id='{self._run_id}', state={self._state.value})"
