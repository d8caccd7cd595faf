"""Node executors.

Classes:
    NodeExecutor: Protocol every executor implements.
    NodeFailure: Raised by an executor when a node's work fails.
    FunctionExecutor: Executor backed by one async function.
    BuiltinExecutor: Simulated behaviors for the built-in node types.
    HttpApiExecutor: Real HTTP requests for api nodes (aiohttp).
"""

from storyflow.core.executor.base import FunctionExecutor, NodeExecutor, NodeFailure, NodeHandler
from storyflow.core.executor.builtin import BuiltinExecutor
from storyflow.core.executor.http import HttpApiExecutor

__all__ = [
    "NodeExecutor",
    "NodeFailure",
    "NodeHandler",
    "FunctionExecutor",
    "BuiltinExecutor",
    "HttpApiExecutor",
]
