"""Core - pure workflow graph and execution logic.

No knowledge of the CLI or of how results are displayed.

Architecture:
    graph/      Data model, level addressing, topology queries, editing
    executor/   Node executors (simulated, HTTP)
    engine/     Scheduler, run tracking, cancellation, events
    types       Shared enums
"""

from storyflow.core.types import LogLevel, NodeStatus, NodeType

__all__ = ["NodeType", "NodeStatus", "LogLevel"]
