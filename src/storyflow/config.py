"""Engine configuration.

EngineSettings collects the knobs of the scheduler and the simulated
executor. Values come from keyword arguments or, via from_env(), from
STORYFLOW_* environment variables.

Environment Variables:
    STORYFLOW_MAX_PARALLEL: Max concurrently running nodes (default 1)
    STORYFLOW_NODE_TIMEOUT: Per-node timeout in seconds (default: none)
    STORYFLOW_LATENCY_MIN: Min simulated latency in seconds (default 1.0)
    STORYFLOW_LATENCY_MAX: Max simulated latency in seconds (default 2.0)
    STORYFLOW_SEED: Seed for simulated latency/failures (default: random)
    STORYFLOW_SIMULATE_FAILURES: "0" disables simulated failures
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any

from storyflow.core.types import NodeType

DEFAULT_FAILURE_RATES: dict[str, float] = {
    NodeType.API.value: 0.2,
    NodeType.DATABASE.value: 0.15,
    NodeType.TASK.value: 0.1,
}


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class EngineSettings:
    """Scheduler and simulation settings.

    Attributes:
        max_parallel: Maximum nodes running at once. 1 reproduces the
            sequential one-node-at-a-time behavior.
        node_timeout: Seconds before a running node is failed with a
            timeout. None means no timeout.
        latency_min: Lower bound of simulated node latency in seconds.
        latency_max: Upper bound of simulated node latency in seconds.
        failure_rates: Probability of a simulated failure per node type.
        seed: Seed for the simulation's random generator.
    """

    max_parallel: int = 1
    node_timeout: float | None = None
    latency_min: float = 1.0
    latency_max: float = 2.0
    failure_rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FAILURE_RATES))
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")

        if self.node_timeout is not None and self.node_timeout <= 0:
            raise ValueError("node_timeout must be > 0")

        if self.latency_min < 0:
            raise ValueError("latency_min cannot be negative")

        if self.latency_max < self.latency_min:
            raise ValueError("latency_max must be >= latency_min")

        for node_type, rate in self.failure_rates.items():
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"failure rate for '{node_type}' must be within [0, 1]")

    @classmethod
    def from_env(cls, **overrides: Any) -> EngineSettings:
        """Build settings from STORYFLOW_* environment variables.

        Keyword overrides win over the environment; None overrides are
        ignored.
        """
        values: dict[str, Any] = {}

        max_parallel = _env_int("STORYFLOW_MAX_PARALLEL")
        if max_parallel is not None:
            values["max_parallel"] = max_parallel

        node_timeout = _env_float("STORYFLOW_NODE_TIMEOUT")
        if node_timeout is not None:
            values["node_timeout"] = node_timeout

        latency_min = _env_float("STORYFLOW_LATENCY_MIN")
        if latency_min is not None:
            values["latency_min"] = latency_min

        latency_max = _env_float("STORYFLOW_LATENCY_MAX")
        if latency_max is not None:
            values["latency_max"] = latency_max

        seed = _env_int("STORYFLOW_SEED")
        if seed is not None:
            values["seed"] = seed

        if os.environ.get("STORYFLOW_SIMULATE_FAILURES", "1").strip() == "0":
            values["failure_rates"] = {}

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def without_latency(self) -> EngineSettings:
        """Copy with simulated latency disabled."""
        return replace(self, latency_min=0.0, latency_max=0.0)

    def without_failures(self) -> EngineSettings:
        """Copy with simulated failures disabled."""
        return replace(self, failure_rates={})

    def failure_rate(self, node_type: str) -> float:
        return self.failure_rates.get(node_type, 0.0)
