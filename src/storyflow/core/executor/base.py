"""Node executor protocol.

An executor performs one node's work: given the node and its merged
input it either returns a result dict or raises NodeFailure. The
scheduler treats it as an opaque async unit and never interprets the
result.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from storyflow.core.graph.model import Node


class NodeFailure(Exception):
    """Raised by an executor when a node's work fails.

    The message becomes the node's ``error``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@runtime_checkable
class NodeExecutor(Protocol):
    """Protocol for node executors.

    Implementations must accept an empty ``merged_input`` (first node of a
    run, or a start node).
    """

    async def execute(self, node: Node, merged_input: dict[str, Any]) -> dict[str, Any]:
        """Run the node and return its result.

        Raises:
            NodeFailure: If the node's work fails.
        """
        ...


# Per-type behavior: async (node, input) -> result
NodeHandler = Callable[["Node", dict[str, Any]], Awaitable[dict[str, Any]]]


class FunctionExecutor:
    """Executor backed by a single async function.

    Handy for tests and embedding, where every node type shares one
    behavior.

    Example:
        >>> async def run(node, data):
        ...     return {**data, node.id: True}
        >>> executor = FunctionExecutor(run)
    """

    def __init__(self, fn: NodeHandler) -> None:
        self._fn = fn

    async def execute(self, node: Node, merged_input: dict[str, Any]) -> dict[str, Any]:
        return await self._fn(node, merged_input)

    def __repr__(self) -> str:
        return f"FunctionExecutor({getattr(self._fn, '__name__', self._fn)!r})"
