"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import pytest

from storyflow.config import EngineSettings
from storyflow.core.executor import NodeFailure
from storyflow.core.graph import Connection, Node, Workflow


def make_workflow(
    nodes: Mapping[str, str],
    edges: Iterable[tuple[str, str]] = (),
) -> Workflow:
    """Build a flat workflow from ``{id: type}`` and ``(from, to)`` pairs.

    Node titles equal their ids; connection ids are ``c1``, ``c2``, ...
    """
    return Workflow(
        nodes=[Node(id=node_id, type=node_type, title=node_id) for node_id, node_type in nodes.items()],
        connections=[
            Connection(id=f"c{i}", from_id=src, to_id=dst) for i, (src, dst) in enumerate(edges, 1)
        ],
    )


class ScriptedExecutor:
    """Deterministic executor for scheduler tests.

    Each node returns its input plus ``{node_id: True}``, unless scripted
    otherwise through ``results``, ``failures`` or ``delays``.
    """

    def __init__(
        self,
        results: dict[str, dict[str, Any]] | None = None,
        failures: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.results = results or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: list[str] = []
        self.inputs: dict[str, dict[str, Any]] = {}
        self.running = 0
        self.max_running = 0

    async def execute(self, node: Node, merged_input: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(node.id)
        self.inputs[node.id] = dict(merged_input)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            delay = self.delays.get(node.id, 0)
            if delay:
                await asyncio.sleep(delay)
            if node.id in self.failures:
                raise NodeFailure(self.failures[node.id])
            if node.id in self.results:
                return dict(self.results[node.id])
            return {**merged_input, node.id: True}
        finally:
            self.running -= 1


@pytest.fixture
def fast_settings():
    """Settings without simulated latency or failures."""
    return EngineSettings(latency_min=0, latency_max=0, failure_rates={}, seed=7)


@pytest.fixture
def executor():
    """Scripted executor with no failures."""
    return ScriptedExecutor()


@pytest.fixture
def build_workflow():
    """Factory for flat test workflows (see make_workflow)."""
    return make_workflow


@pytest.fixture
def nested_root():
    """Root workflow with a phase node owning a two-level sub-workflow."""
    inner = make_workflow({"i-start": "start", "i-end": "end"}, [("i-start", "i-end")])
    sub = make_workflow(
        {"s-start": "start", "s-task": "task", "s-end": "end"},
        [("s-start", "s-task"), ("s-task", "s-end")],
    )
    sub.nodes[1].children = inner
    root = make_workflow(
        {"start": "start", "phase": "phase", "end": "end"},
        [("start", "phase"), ("phase", "end")],
    )
    root.nodes[1].children = sub
    root.extra = {"name": "Launch plan"}
    return root


@pytest.fixture
def scripted_executor():
    """Factory for ScriptedExecutor with scripted results, failures or delays."""
    return ScriptedExecutor
