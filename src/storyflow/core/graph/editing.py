"""Pure graph-editing operations.

Each function returns a new Workflow and leaves its input untouched.
Invalid edits raise ValueError.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any
from uuid import uuid4

from storyflow.core.graph.model import Connection, Node, Workflow
from storyflow.core.types import NodeStatus, NodeType

DUPLICATE_OFFSET = 40


def generate_id() -> str:
    """Generate a unique node or connection id."""
    return uuid4().hex[:12]


def _require_node(workflow: Workflow, node_id: str) -> Node:
    node = workflow.get_node(node_id)
    if node is None:
        raise ValueError(f"Unknown node '{node_id}'")
    return node


def _default_title(node_type: str) -> str:
    try:
        return NodeType(node_type).label
    except ValueError:
        return node_type.capitalize()


def add_node(
    workflow: Workflow,
    node_type: NodeType | str,
    title: str | None = None,
    config: dict[str, Any] | None = None,
    node_id: str | None = None,
    x: float = 0,
    y: float = 0,
) -> Workflow:
    """Append a new idle node. The title defaults to the type's label."""
    node_type = node_type.value if isinstance(node_type, NodeType) else str(node_type)
    node_id = node_id or generate_id()
    if workflow.get_node(node_id) is not None:
        raise ValueError(f"Node '{node_id}' already exists")

    node = Node(
        id=node_id,
        type=node_type,
        title=title if title is not None else _default_title(node_type),
        config=dict(config or {}),
        x=x,
        y=y,
    )
    return replace(workflow, nodes=[*workflow.nodes, node])


def update_node(workflow: Workflow, node_id: str, **changes: Any) -> Workflow:
    """Apply field changes to one node. The id cannot be changed."""
    _require_node(workflow, node_id)
    if "id" in changes and changes["id"] != node_id:
        raise ValueError("Node id cannot be changed")
    nodes = [replace(n, **changes) if n.id == node_id else n for n in workflow.nodes]
    return replace(workflow, nodes=nodes)


def delete_node(workflow: Workflow, node_id: str) -> Workflow:
    """Remove a node together with every connection touching it."""
    _require_node(workflow, node_id)
    return replace(
        workflow,
        nodes=[n for n in workflow.nodes if n.id != node_id],
        connections=[c for c in workflow.connections if node_id not in (c.from_id, c.to_id)],
    )


def duplicate_node(workflow: Workflow, node_id: str) -> Workflow:
    """Copy a node next to the original.

    The copy gets a fresh id, a " (copy)" title suffix, idle status and
    no sub-workflow. Connections are not copied.
    """
    original = _require_node(workflow, node_id)
    copy = replace(
        original,
        id=generate_id(),
        title=f"{original.title} (copy)",
        x=original.x + DUPLICATE_OFFSET,
        y=original.y + DUPLICATE_OFFSET,
        status=NodeStatus.IDLE,
        error=None,
        children=None,
        config=dict(original.config),
    )
    return replace(workflow, nodes=[*workflow.nodes, copy])


def add_connection(
    workflow: Workflow,
    from_id: str,
    to_id: str,
    connection_id: str | None = None,
) -> Workflow:
    """Connect two nodes of this level.

    Raises:
        ValueError: On a self-loop, an unknown endpoint or an existing
            connection between the same pair.
    """
    if from_id == to_id:
        raise ValueError(f"Node '{from_id}' cannot connect to itself")
    _require_node(workflow, from_id)
    _require_node(workflow, to_id)
    if any(c.from_id == from_id and c.to_id == to_id for c in workflow.connections):
        raise ValueError(f"Connection '{from_id}' -> '{to_id}' already exists")

    conn = Connection(id=connection_id or generate_id(), from_id=from_id, to_id=to_id)
    return replace(workflow, connections=[*workflow.connections, conn])


def delete_connection(workflow: Workflow, connection_id: str) -> Workflow:
    """Remove a connection by id. Unknown ids are ignored."""
    return replace(
        workflow,
        connections=[c for c in workflow.connections if c.id != connection_id],
    )


def add_children(workflow: Workflow, node_id: str) -> Workflow:
    """Give a node a new sub-workflow seeded with ``Start -> End``.

    No-op when the node already owns a non-empty sub-workflow.
    """
    node = _require_node(workflow, node_id)
    if node.has_children:
        return workflow

    start = Node(id=generate_id(), type=NodeType.START.value, title="Start", x=100, y=200)
    end = Node(id=generate_id(), type=NodeType.END.value, title="End", x=500, y=200)
    children = Workflow(
        nodes=[start, end],
        connections=[Connection(id=generate_id(), from_id=start.id, to_id=end.id)],
    )
    return update_node(workflow, node_id, children=children)
