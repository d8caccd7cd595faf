"""Pure data types for storyflow.core.

Enums shared by the graph model, the executors and the scheduler.
Values match the editor's JSON representation so they serialize as-is.
"""

from enum import Enum


class NodeType(str, Enum):
    """Built-in workflow node types.

    The set is open: a node's ``type`` is stored as a plain string and
    unrecognized types pass their input through unchanged.
    """

    START = "start"
    END = "end"
    PHASE = "phase"
    TASK = "task"
    MILESTONE = "milestone"
    DECISION = "decision"
    API = "api"
    DATABASE = "database"
    CODE = "code"

    @property
    def label(self) -> str:
        """Default display title for a freshly added node."""
        return NODE_LABELS[self]


NODE_LABELS: dict[NodeType, str] = {
    NodeType.START: "Start",
    NodeType.END: "End",
    NodeType.PHASE: "Phase",
    NodeType.TASK: "Task",
    NodeType.MILESTONE: "Milestone",
    NodeType.DECISION: "Decision",
    NodeType.API: "API Call",
    NodeType.DATABASE: "Database",
    NodeType.CODE: "Code Logic",
}


class NodeStatus(str, Enum):
    """Node execution states.

    Transitions within one run are one-way:
    idle -> running -> success | error, or idle -> error when cascaded.
    """

    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (NodeStatus.SUCCESS, NodeStatus.ERROR)


class LogLevel(str, Enum):
    """Severity of a user-facing execution log line."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
