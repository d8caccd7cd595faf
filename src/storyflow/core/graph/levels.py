"""Level addressing for nested workflows.

A view stack (path) is an ordered list of node ids describing a descent
from the root Workflow through successive ``children``. Entries may be
plain id strings, ViewEntry objects or editor mappings with a ``nodeId``
key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Union

from storyflow.core.graph.model import Workflow


@dataclass(frozen=True)
class ViewEntry:
    """One step of a view stack."""

    node_id: str
    title: str = ""


PathEntry = Union[str, ViewEntry, Mapping[str, Any]]


def entry_node_id(entry: PathEntry) -> str:
    """Extract the node id from any accepted path entry form."""
    if isinstance(entry, ViewEntry):
        return entry.node_id
    if isinstance(entry, Mapping):
        node_id = entry.get("nodeId", entry.get("node_id"))
        if node_id is None:
            raise ValueError(f"Path entry has no nodeId: {dict(entry)!r}")
        return str(node_id)
    return str(entry)


def normalize_path(path: Iterable[PathEntry]) -> list[str]:
    """Convert a view stack into a list of node ids."""
    return [entry_node_id(entry) for entry in path]


def resolve_level(root: Workflow, path: Iterable[PathEntry]) -> Workflow:
    """Return the Workflow at the nesting depth addressed by ``path``.

    An empty path returns the root itself. If any step references a
    missing node or a node without children, an empty Workflow is
    returned: callers that need to tell "no such level" from "empty
    level" must check the path separately (see level_exists).
    """
    current = root
    for node_id in normalize_path(path):
        node = current.get_node(node_id)
        if node is None or node.children is None:
            return Workflow()
        current = node.children
    return current


def level_exists(root: Workflow, path: Iterable[PathEntry]) -> bool:
    """Whether every step of ``path`` resolves to a node with children."""
    current = root
    for node_id in normalize_path(path):
        node = current.get_node(node_id)
        if node is None or node.children is None:
            return False
        current = node.children
    return True


def replace_level(root: Workflow, path: Iterable[PathEntry], new_level: Workflow) -> Workflow:
    """Return a new root with the Workflow at ``path`` replaced.

    Every ancestor along the path is rebuilt; untouched sibling nodes are
    shared with the input, which is never mutated. With an empty path the
    root's nodes and connections are replaced and its other fields kept.

    A step into a node without children descends into a fresh empty
    level; a step into a missing node leaves that level unchanged.
    """
    return _replace(root, normalize_path(path), new_level)


def _replace(level: Workflow, path: Sequence[str], new_level: Workflow) -> Workflow:
    if not path:
        return Workflow(
            nodes=list(new_level.nodes),
            connections=list(new_level.connections),
            extra={**level.extra, **new_level.extra},
        )

    head, rest = path[0], path[1:]
    nodes = []
    for node in level.nodes:
        if node.id != head:
            nodes.append(node)
            continue
        children = _replace(node.children or Workflow(), rest, new_level)
        nodes.append(replace(node, children=children))
    return replace(level, nodes=nodes, connections=list(level.connections))
