"""Workflow execution engine.

Classes:
    WorkflowScheduler: Runs one flat workflow level from its start node.
    ExecutionCallbacks: Observer hooks (node start/complete/error, log).
    ExecutionResult: Outcome of a run (executed/failed/skipped node ids).
    WorkflowRun: Run tracker that annotates a working copy of the level.
    CancellationToken: Cooperative cancellation checked before dispatch.

Example:
    >>> from storyflow.core.engine import ExecutionCallbacks, execute_workflow
    >>>
    >>> callbacks = ExecutionCallbacks(on_log=lambda msg, level: print(level.value, msg))
    >>> result = await execute_workflow(workflow.nodes, workflow.connections, callbacks)
    >>> print(result.executed, result.failed)
"""

from storyflow.core.engine.cancellation import CancellationToken, RunCancelledError
from storyflow.core.engine.events import ExecutionEvent, LogEntry
from storyflow.core.engine.run import RunState, WorkflowRun, WorkflowRunInfo
from storyflow.core.engine.scheduler import (
    PARENT_FAILED,
    UPSTREAM_FAILED,
    ExecutionCallbacks,
    ExecutionResult,
    WorkflowScheduler,
    execute_workflow,
)

__all__ = [
    # Scheduler
    "WorkflowScheduler",
    "ExecutionCallbacks",
    "ExecutionResult",
    "execute_workflow",
    "PARENT_FAILED",
    "UPSTREAM_FAILED",
    # Run tracking
    "WorkflowRun",
    "WorkflowRunInfo",
    "RunState",
    # Events
    "ExecutionEvent",
    "LogEntry",
    # Cancellation
    "CancellationToken",
    "RunCancelledError",
]
