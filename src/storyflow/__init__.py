"""storyflow - hierarchical workflow graphs and their execution engine.

A workflow is a directed graph of typed nodes. Any node may own a nested
sub-workflow. The engine runs one level at a time from its start node,
merging parent results into each node's input and cascading failures to
every descendant of a failed node.

Layers:
    core/       Graph model, executors, scheduler
    frontends/  Command-line interface
    config      Engine settings

Quick Start:
    >>> from storyflow import Workflow, execute_workflow
    >>>
    >>> workflow = Workflow.from_dict(data)
    >>> result = await execute_workflow(workflow.nodes, workflow.connections)
    >>> print(result.executed, result.failed)
"""

from storyflow.config import EngineSettings
from storyflow.core.engine import (
    CancellationToken,
    ExecutionCallbacks,
    ExecutionResult,
    WorkflowRun,
    WorkflowScheduler,
    execute_workflow,
)
from storyflow.core.executor import BuiltinExecutor, NodeExecutor, NodeFailure
from storyflow.core.graph import Connection, Node, Workflow, replace_level, reset_workflow, resolve_level
from storyflow.core.types import LogLevel, NodeStatus, NodeType

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "Node",
    "Connection",
    "Workflow",
    "resolve_level",
    "replace_level",
    "reset_workflow",
    "NodeExecutor",
    "NodeFailure",
    "BuiltinExecutor",
    "WorkflowScheduler",
    "ExecutionCallbacks",
    "ExecutionResult",
    "WorkflowRun",
    "CancellationToken",
    "execute_workflow",
    "NodeType",
    "NodeStatus",
    "LogLevel",
]
