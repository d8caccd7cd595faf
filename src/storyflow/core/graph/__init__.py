"""Hierarchical workflow graph.

Classes:
    Node: A typed unit of work, optionally owning a nested sub-workflow.
    Connection: A directed edge between two nodes of the same level.
    Workflow: One nesting level (nodes + connections).
    ViewEntry: One step of a view stack into nested levels.

Example:
    >>> from storyflow.core.graph import Workflow, resolve_level, replace_level
    >>>
    >>> root = Workflow.from_dict(data)
    >>> level = resolve_level(root, ["phase-1"])
    >>> root = replace_level(root, ["phase-1"], edited_level)
"""

from storyflow.core.graph.editing import (
    add_children,
    add_connection,
    add_node,
    delete_connection,
    delete_node,
    duplicate_node,
    generate_id,
    update_node,
)
from storyflow.core.graph.levels import (
    ViewEntry,
    level_exists,
    normalize_path,
    replace_level,
    resolve_level,
)
from storyflow.core.graph.model import (
    Connection,
    Node,
    Workflow,
    normalize_connection,
    reset_workflow,
    validate_connections,
)
from storyflow.core.graph.topology import (
    dangling_connections,
    descendants_of,
    downstream_of,
    find_cycle,
    reachable_from,
    resolved_connections,
    upstream_of,
)

__all__ = [
    # Model
    "Node",
    "Connection",
    "Workflow",
    "normalize_connection",
    "validate_connections",
    "reset_workflow",
    # Levels
    "ViewEntry",
    "resolve_level",
    "replace_level",
    "level_exists",
    "normalize_path",
    # Topology
    "downstream_of",
    "upstream_of",
    "descendants_of",
    "reachable_from",
    "resolved_connections",
    "dangling_connections",
    "find_cycle",
    # Editing
    "generate_id",
    "add_node",
    "update_node",
    "delete_node",
    "duplicate_node",
    "add_connection",
    "delete_connection",
    "add_children",
]
