"""Tests for topology queries."""

from __future__ import annotations

from storyflow.core.graph import (
    Connection,
    dangling_connections,
    descendants_of,
    downstream_of,
    find_cycle,
    reachable_from,
    resolved_connections,
    upstream_of,
)


def ids(nodes):
    return [n.id for n in nodes]


class TestDownstreamUpstream:
    """Tests for downstream_of and upstream_of."""

    def test_connection_order(self, build_workflow):
        wf = build_workflow(
            {"start": "start", "a": "task", "b": "task", "end": "end"},
            [("start", "b"), ("start", "a"), ("a", "end"), ("b", "end")],
        )
        assert ids(downstream_of("start", wf.connections, wf.nodes)) == ["b", "a"]
        assert ids(upstream_of("end", wf.connections, wf.nodes)) == ["a", "b"]

    def test_duplicates_collapsed(self, build_workflow):
        wf = build_workflow({"start": "start", "a": "task"}, [("start", "a"), ("start", "a")])
        assert ids(downstream_of("start", wf.connections, wf.nodes)) == ["a"]
        assert ids(upstream_of("a", wf.connections, wf.nodes)) == ["start"]

    def test_missing_endpoints_ignored(self, build_workflow):
        wf = build_workflow({"start": "start"}, [("start", "ghost"), ("ghost", "start")])
        assert downstream_of("start", wf.connections, wf.nodes) == []
        assert upstream_of("start", wf.connections, wf.nodes) == []

    def test_unknown_node(self, build_workflow):
        wf = build_workflow({"start": "start"})
        assert downstream_of("nope", wf.connections, wf.nodes) == []


class TestResolvedConnections:
    def test_split(self, build_workflow):
        wf = build_workflow({"a": "start", "b": "end"}, [("a", "b"), ("a", "ghost")])
        assert [c.id for c in resolved_connections(wf.connections, wf.nodes)] == ["c1"]
        assert [c.id for c in dangling_connections(wf.connections, wf.nodes)] == ["c2"]


class TestReachability:
    """Tests for reachable_from and descendants_of."""

    def test_reachable_is_inclusive(self, build_workflow):
        wf = build_workflow(
            {"start": "start", "a": "task", "b": "task", "island": "task"},
            [("start", "a"), ("a", "b")],
        )
        assert reachable_from("start", wf.connections, wf.nodes) == {"start", "a", "b"}
        assert reachable_from("nope", wf.connections, wf.nodes) == set()

    def test_descendants_depth_first(self, build_workflow):
        wf = build_workflow(
            {"start": "start", "a": "task", "b": "task", "a1": "task", "end": "end"},
            [("start", "a"), ("start", "b"), ("a", "a1"), ("a1", "end"), ("b", "end")],
        )
        assert ids(descendants_of("start", wf.connections, wf.nodes)) == ["a", "a1", "end", "b"]

    def test_descendants_terminates_on_cycle(self, build_workflow):
        wf = build_workflow({"a": "start", "b": "task"}, [("a", "b"), ("b", "a")])
        assert ids(descendants_of("a", wf.connections, wf.nodes)) == ["b"]


class TestFindCycle:
    """Tests for find_cycle."""

    def test_acyclic(self, build_workflow):
        wf = build_workflow({"a": "start", "b": "task", "c": "end"}, [("a", "b"), ("b", "c"), ("a", "c")])
        assert find_cycle(wf.node_ids(), wf.connections) is None

    def test_two_node_cycle(self):
        conns = [Connection("c1", "start", "a"), Connection("c2", "a", "start")]
        cycle = find_cycle(["start", "a"], conns)
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"start", "a"}

    def test_self_loop(self):
        assert find_cycle(["a"], [Connection("c1", "a", "a")]) == ["a", "a"]

    def test_cycle_outside_subset_ignored(self):
        conns = [Connection("c1", "x", "y"), Connection("c2", "y", "x")]
        assert find_cycle(["a", "x"], conns) is None

    def test_cycle_follows_connection_direction(self):
        """Consecutive entries are connected from -> to."""
        conns = [
            Connection("c1", "a", "b"),
            Connection("c2", "b", "c"),
            Connection("c3", "c", "a"),
        ]
        cycle = find_cycle(["a", "b", "c"], conns)
        pairs = {(c.from_id, c.to_id) for c in conns}
        assert all((cycle[i], cycle[i + 1]) in pairs for i in range(len(cycle) - 1))
