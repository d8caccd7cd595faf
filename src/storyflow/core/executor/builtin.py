"""Built-in node behaviors.

BuiltinExecutor simulates each node type: it waits a random latency,
may fail with the type's configured probability, and otherwise returns
a result with a fixed structure per type (e.g. a database node's result
always carries ``dbResult``). Unknown types pass their input through.

Randomness comes from one ``random.Random`` so a seeded executor is
fully reproducible.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from storyflow.config import EngineSettings
from storyflow.core.executor.base import NodeFailure, NodeHandler
from storyflow.core.types import NodeType

if TYPE_CHECKING:
    from storyflow.core.graph.model import Node

logger = logging.getLogger(__name__)

SAMPLE_USERS = ["Alice", "Bob", "Charlie"]


class BuiltinExecutor:
    """Simulated executor for the built-in node types.

    Args:
        settings: Latency bounds, failure rates and seed. Defaults to
            EngineSettings().
        rng: Random generator. Defaults to one seeded from settings.seed.

    Example:
        >>> executor = BuiltinExecutor(EngineSettings(latency_min=0, latency_max=0, failure_rates={}))
        >>> await executor.execute(node, {})
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._rng = rng or random.Random(self._settings.seed)
        self._handlers: dict[str, NodeHandler] = {
            NodeType.START.value: self._start,
            NodeType.API.value: self._api,
            NodeType.DATABASE.value: self._database,
            NodeType.CODE.value: self._code,
            NodeType.DECISION.value: self._decision,
            NodeType.PHASE.value: self._phase,
            NodeType.TASK.value: self._task,
            NodeType.MILESTONE.value: self._milestone,
            NodeType.END.value: self._end,
        }

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def register(self, node_type: NodeType | str, handler: NodeHandler) -> None:
        """Install or replace the behavior for a node type."""
        key = node_type.value if isinstance(node_type, NodeType) else node_type
        self._handlers[key] = handler

    def handles(self, node_type: str) -> bool:
        return node_type in self._handlers

    async def execute(self, node: Node, merged_input: dict[str, Any]) -> dict[str, Any]:
        await self._simulate_latency()
        handler = self._handlers.get(node.type)
        if handler is None:
            logger.debug("node_passthrough: node_id=%s, type=%s", node.id, node.type)
            return dict(merged_input)
        return await handler(node, merged_input)

    async def _simulate_latency(self) -> None:
        low, high = self._settings.latency_min, self._settings.latency_max
        if high <= 0:
            return
        await asyncio.sleep(self._rng.uniform(low, high))

    def _should_fail(self, node: Node) -> bool:
        rate = self._settings.failure_rate(node.type)
        return rate > 0 and self._rng.random() < rate

    async def _start(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        return {"initiated": True, "timestamp": int(time.time() * 1000)}

    async def _api(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        if self._should_fail(node):
            raise NodeFailure(f"API call failed: {node.config.get('url') or 'No URL configured'}")
        return {
            **data,
            "apiData": {"users": list(SAMPLE_USERS), "count": len(SAMPLE_USERS)},
            "statusCode": 200,
        }

    async def _database(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        if self._should_fail(node):
            raise NodeFailure("Database connection timeout")
        return {**data, "dbResult": {"inserted": True, "id": self._rng.randrange(1000)}}

    async def _code(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        api_data = data.get("apiData")
        count = api_data.get("count") if isinstance(api_data, Mapping) else None
        if api_data and node.config.get("errorOnEmpty") and count == 0:
            raise NodeFailure("Empty data set not allowed")
        return {**data, "transformed": True, "processedCount": count or 0}

    async def _decision(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        branch = "true" if (data.get("count") or 0) > 0 else "false"
        return {**data, "branchTaken": branch}

    async def _phase(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "phaseStarted": True, "phaseName": node.title}

    async def _task(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        if self._should_fail(node):
            raise NodeFailure(f'Task "{node.title}" failed unexpectedly')
        return {**data, "taskCompleted": True, "taskName": node.title}

    async def _milestone(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "milestoneReached": True, "milestoneName": node.title}

    async def _end(self, node: Node, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "completed": True}
