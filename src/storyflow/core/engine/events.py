"""Execution events and log entries.

Events are emitted during a run and can be streamed to observers for
real-time visibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from storyflow.core.types import LogLevel


def _utc_now() -> datetime:
    """Return current UTC time (helper for default_factory)."""
    return datetime.now(UTC)


@dataclass
class LogEntry:
    """One line of a run's execution log."""

    message: str
    level: LogLevel
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "level": self.level.value,
        }


@dataclass
class ExecutionEvent:
    """Event emitted during a workflow run.

    Standard event types:
        Run lifecycle:
        - run_started: Run began
        - run_completed: Run finished (data carries executed/failed ids)
        - run_cancelled: Run stopped by its cancellation token
        - run_failed: Run crashed outside node execution

        Node execution:
        - node_started: Node entered running
        - node_completed: Node finished (data carries the result)
        - node_error: Node failed or was cascaded (data carries the error)

        Log:
        - log: One execution log line (data carries message and level)
    """

    run_id: str
    event_type: str
    node_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "run_id": self.run_id,
            "event_type": self.event_type,
            "node_id": self.node_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
