"""Workflow graph data model.

A Workflow is one nesting level: a list of nodes plus the directed
connections between them. A node may own a nested Workflow in
``children``; that sub-graph is self-contained and never shared.

The JSON shape matches what the editor stores::

    {
        "nodes": [
            {"id": "n1", "type": "start", "title": "Start", "status": "idle",
             "config": {}, "error": null, "children": {"nodes": [...], "connections": [...]}}
        ],
        "connections": [{"id": "c1", "from": "n1", "to": "n2"}]
    }
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from storyflow.core.types import NodeStatus

_NODE_FIELDS = frozenset(
    {"id", "type", "title", "config", "status", "error", "children", "description", "x", "y"}
)


@dataclass(frozen=True)
class Connection:
    """Directed edge from a producer node to a consumer node.

    Attributes:
        id: Unique connection identifier.
        from_id: Producer node id (``from`` in JSON).
        to_id: Consumer node id (``to`` in JSON).
    """

    id: str
    from_id: str
    to_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "from": self.from_id, "to": self.to_id}


def normalize_connection(raw: Any) -> Connection | None:
    """Normalize a raw connection mapping.

    Accepts ``{id, from, to}`` and the legacy ``{id, source, target}``
    shape. Extra keys are dropped.

    Returns:
        The Connection, or None when the input is not a mapping or lacks
        an id, a source or a target.
    """
    if isinstance(raw, Connection):
        return raw
    if not isinstance(raw, Mapping):
        return None

    conn_id = raw.get("id")
    from_id = raw.get("from") or raw.get("source")
    to_id = raw.get("to") or raw.get("target")
    if not conn_id or not from_id or not to_id:
        return None
    return Connection(id=str(conn_id), from_id=str(from_id), to_id=str(to_id))


def validate_connections(raw: Any) -> list[Connection]:
    """Normalize a list of raw connections, dropping invalid entries.

    Non-list input yields an empty list. Order is preserved.
    """
    if not isinstance(raw, list | tuple):
        return []
    connections = []
    for item in raw:
        conn = normalize_connection(item)
        if conn is not None:
            connections.append(conn)
    return connections


@dataclass
class Node:
    """A typed unit of work in the workflow graph.

    Attributes:
        id: Unique, stable node identifier.
        type: Node type (see NodeType); unknown types are allowed.
        title: Display label, also used in execution log lines.
        config: Type-specific parameters (e.g. ``url`` for api nodes).
        status: Execution status, annotated by runs.
        error: Last failure message, if any.
        children: Optional nested sub-workflow owned by this node.
        description: Free-form editor text.
        x: Canvas x position (editor only).
        y: Canvas y position (editor only).
        extra: Any other editor fields, preserved on round trip.
    """

    id: str
    type: str
    title: str = ""
    config: dict[str, Any] = field(default_factory=dict)
    status: NodeStatus = NodeStatus.IDLE
    error: str | None = None
    children: Workflow | None = None
    description: str = ""
    x: float = 0
    y: float = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def has_children(self) -> bool:
        """Whether this node owns a non-empty sub-workflow."""
        return self.children is not None and bool(self.children.nodes)

    @property
    def label(self) -> str:
        """Title for log lines, falling back to the id."""
        return self.title or self.id

    def reset(self) -> Node:
        """Copy of this node back at idle with no error."""
        if self.status == NodeStatus.IDLE and self.error is None:
            return self
        return replace(self, status=NodeStatus.IDLE, error=None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        children = data.get("children")
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "")),
            title=data.get("title") or "",
            config=dict(data.get("config") or {}),
            status=NodeStatus(data.get("status") or NodeStatus.IDLE),
            error=data.get("error"),
            children=Workflow.from_dict(children) if isinstance(children, Mapping) else None,
            description=data.get("description") or "",
            x=data.get("x", 0),
            y=data.get("y", 0),
            extra={k: v for k, v in data.items() if k not in _NODE_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            **self.extra,
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "x": self.x,
            "y": self.y,
            "status": self.status.value,
            "config": self.config,
            "description": self.description,
            "error": self.error,
        }
        if self.children is not None:
            data["children"] = self.children.to_dict()
        return data


@dataclass
class Workflow:
    """One nesting level of the graph.

    Attributes:
        nodes: Nodes at this level, unique by id.
        connections: Edges between nodes of this same level.
        extra: Other root-level fields, preserved when the level is rewritten.
    """

    nodes: list[Node] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.connections

    def get_node(self, node_id: str) -> Node | None:
        """Look up a node at this level by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Workflow:
        """Build a Workflow from editor JSON.

        Missing ``nodes``/``connections`` keys become empty lists and
        malformed connections are dropped (see validate_connections).
        """
        return cls(
            nodes=[Node.from_dict(n) for n in data.get("nodes") or []],
            connections=validate_connections(data.get("connections") or []),
            extra={k: v for k, v in data.items() if k not in ("nodes", "connections")},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
        }


def reset_workflow(workflow: Workflow) -> Workflow:
    """Return an equivalent Workflow with every node idle and error cleared.

    Only the given level is reset; nested children keep their fields.
    """
    return replace(workflow, nodes=[node.reset() for node in workflow.nodes])
