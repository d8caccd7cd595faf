"""Topology queries over one flat workflow level.

Connections whose endpoints do not resolve to a node in the given node
collection are ignored, as if absent.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from graphlib import CycleError, TopologicalSorter

from storyflow.core.graph.model import Connection, Node


def _index(nodes: Iterable[Node]) -> dict[str, Node]:
    return {node.id: node for node in nodes}


def downstream_of(node_id: str, connections: Sequence[Connection], nodes: Iterable[Node]) -> list[Node]:
    """Immediate children of a node, in connection order, deduplicated."""
    by_id = _index(nodes)
    result: list[Node] = []
    seen: set[str] = set()
    for conn in connections:
        if conn.from_id != node_id or conn.to_id in seen:
            continue
        target = by_id.get(conn.to_id)
        if target is not None:
            seen.add(target.id)
            result.append(target)
    return result


def upstream_of(node_id: str, connections: Sequence[Connection], nodes: Iterable[Node]) -> list[Node]:
    """Immediate parents of a node, in connection order, deduplicated."""
    by_id = _index(nodes)
    result: list[Node] = []
    seen: set[str] = set()
    for conn in connections:
        if conn.to_id != node_id or conn.from_id in seen:
            continue
        source = by_id.get(conn.from_id)
        if source is not None:
            seen.add(source.id)
            result.append(source)
    return result


def resolved_connections(connections: Sequence[Connection], nodes: Iterable[Node]) -> list[Connection]:
    """Connections whose both endpoints exist in ``nodes``, order preserved."""
    ids = set(_index(nodes))
    return [c for c in connections if c.from_id in ids and c.to_id in ids]


def dangling_connections(connections: Sequence[Connection], nodes: Iterable[Node]) -> list[Connection]:
    """Connections with at least one endpoint missing from ``nodes``."""
    ids = set(_index(nodes))
    return [c for c in connections if c.from_id not in ids or c.to_id not in ids]


def reachable_from(node_id: str, connections: Sequence[Connection], nodes: Iterable[Node]) -> set[str]:
    """Ids reachable from ``node_id`` by following connections, inclusive."""
    nodes = list(nodes)
    if node_id not in _index(nodes):
        return set()
    adjacency: dict[str, list[str]] = {}
    for conn in resolved_connections(connections, nodes):
        adjacency.setdefault(conn.from_id, []).append(conn.to_id)

    seen = {node_id}
    stack = [node_id]
    while stack:
        for child in adjacency.get(stack.pop(), []):
            if child not in seen:
                seen.add(child)
                stack.append(child)
    return seen


def descendants_of(node_id: str, connections: Sequence[Connection], nodes: Iterable[Node]) -> list[Node]:
    """All transitive descendants of a node, depth-first pre-order."""
    nodes = list(nodes)
    result: list[Node] = []
    seen = {node_id}

    def visit(current: str) -> None:
        for child in downstream_of(current, connections, nodes):
            if child.id in seen:
                continue
            seen.add(child.id)
            result.append(child)
            visit(child.id)

    visit(node_id)
    return result


def find_cycle(node_ids: Iterable[str], connections: Sequence[Connection]) -> list[str] | None:
    """Find a cycle among ``node_ids``.

    Only connections with both endpoints in ``node_ids`` are considered.

    Returns:
        The cycle as a node id list whose first and last entries are the
        same node, or None when the subgraph is acyclic.
    """
    ids = set(node_ids)
    graph: dict[str, set[str]] = {node_id: set() for node_id in ids}
    for conn in connections:
        if conn.from_id in ids and conn.to_id in ids:
            graph[conn.to_id].add(conn.from_id)

    try:
        TopologicalSorter(graph).prepare()
    except CycleError as e:
        # Each entry is a predecessor of the next, i.e. connection order.
        return list(e.args[1])
    return None
