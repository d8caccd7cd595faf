"""Structural validation for a workflow level.

The scheduler tolerates most of these problems at run time (dangling
connections are ignored, a missing start node or a cycle aborts the
run). validate_workflow reports them up front so editors and the CLI can
surface them before anything executes.
"""

from __future__ import annotations

from collections import Counter

from storyflow.core.graph.model import Workflow
from storyflow.core.graph.topology import (
    dangling_connections,
    find_cycle,
    reachable_from,
    resolved_connections,
)
from storyflow.core.types import NodeType


def validate_workflow(workflow: Workflow) -> list[str]:
    """Validate one workflow level.

    Checks for:
    - Duplicate node ids
    - Missing or multiple start nodes
    - Connections referencing unknown nodes
    - Self-connections and duplicate connections
    - Cycles reachable from the start node

    Returns:
        List of error messages (empty if valid).
    """
    errors: list[str] = []

    id_counts = Counter(node.id for node in workflow.nodes)
    for node_id, count in id_counts.items():
        if count > 1:
            errors.append(f"Node id '{node_id}' is used by {count} nodes")

    starts = [n for n in workflow.nodes if n.type == NodeType.START.value]
    if not starts:
        errors.append("No start node found")
    elif len(starts) > 1:
        ids = ", ".join(n.id for n in starts)
        errors.append(f"Multiple start nodes ({ids}); only the first one runs")

    for conn in dangling_connections(workflow.connections, workflow.nodes):
        errors.append(
            f"Connection '{conn.id}' references unknown node ('{conn.from_id}' -> '{conn.to_id}')"
        )

    seen_pairs: set[tuple[str, str]] = set()
    for conn in workflow.connections:
        if conn.from_id == conn.to_id:
            errors.append(f"Connection '{conn.id}' connects node '{conn.from_id}' to itself")
            continue
        pair = (conn.from_id, conn.to_id)
        if pair in seen_pairs:
            errors.append(f"Duplicate connection '{conn.from_id}' -> '{conn.to_id}'")
        seen_pairs.add(pair)

    # Cycles only matter where the scheduler can reach them
    if starts:
        connections = resolved_connections(workflow.connections, workflow.nodes)
        reachable = reachable_from(starts[0].id, connections, workflow.nodes)
        cycle = find_cycle(reachable, connections)
        if cycle is not None:
            errors.append(f"Cycle detected: {' -> '.join(cycle)}")

    return errors
