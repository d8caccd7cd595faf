"""Tests for the workflow graph data model."""

from __future__ import annotations

from storyflow.core.graph import (
    Connection,
    Node,
    Workflow,
    normalize_connection,
    reset_workflow,
    validate_connections,
)
from storyflow.core.types import NodeStatus, NodeType


class TestNormalizeConnection:
    """Tests for normalize_connection."""

    def test_from_to_shape(self):
        """Current {id, from, to} shape is accepted."""
        conn = normalize_connection({"id": "c1", "from": "a", "to": "b"})
        assert conn == Connection(id="c1", from_id="a", to_id="b")

    def test_legacy_source_target_shape(self):
        """Legacy {id, source, target} shape is accepted."""
        conn = normalize_connection({"id": "c1", "source": "a", "target": "b"})
        assert conn == Connection(id="c1", from_id="a", to_id="b")

    def test_extra_keys_stripped(self):
        """Unknown keys do not survive normalization."""
        conn = normalize_connection({"id": "c1", "from": "a", "to": "b", "label": "x"})
        assert conn.to_dict() == {"id": "c1", "from": "a", "to": "b"}

    def test_missing_fields_rejected(self):
        """Entries without id, source or target yield None."""
        assert normalize_connection({"from": "a", "to": "b"}) is None
        assert normalize_connection({"id": "c1", "to": "b"}) is None
        assert normalize_connection({"id": "c1", "from": "a"}) is None

    def test_non_mapping_rejected(self):
        assert normalize_connection("c1") is None
        assert normalize_connection(None) is None


class TestValidateConnections:
    """Tests for validate_connections."""

    def test_non_list_yields_empty(self):
        assert validate_connections(None) == []
        assert validate_connections({"id": "c1"}) == []

    def test_invalid_entries_dropped_in_order(self):
        """Valid entries keep their order; invalid ones disappear."""
        conns = validate_connections(
            [
                {"id": "c1", "from": "a", "to": "b"},
                {"id": "bad"},
                {"id": "c2", "source": "b", "target": "c"},
            ]
        )
        assert [c.id for c in conns] == ["c1", "c2"]


class TestNode:
    """Tests for Node."""

    def test_defaults(self):
        node = Node(id="n1", type="task")
        assert node.status == NodeStatus.IDLE
        assert node.error is None
        assert node.children is None
        assert node.config == {}

    def test_has_children(self):
        """has_children requires at least one nested node."""
        assert not Node(id="n1", type="phase").has_children
        assert not Node(id="n1", type="phase", children=Workflow()).has_children
        assert Node(
            id="n1", type="phase", children=Workflow(nodes=[Node(id="s", type="start")])
        ).has_children

    def test_label_falls_back_to_id(self):
        assert Node(id="n1", type="task", title="Write copy").label == "Write copy"
        assert Node(id="n1", type="task").label == "n1"

    def test_reset(self):
        """reset() returns an idle, error-free copy."""
        node = Node(id="n1", type="task", status=NodeStatus.ERROR, error="boom")
        reset = node.reset()
        assert reset.status == NodeStatus.IDLE
        assert reset.error is None
        assert node.status == NodeStatus.ERROR

    def test_from_dict_round_trip(self):
        """Editor JSON survives from_dict/to_dict, unknown fields included."""
        data = {
            "id": "n1",
            "type": "api",
            "title": "Fetch users",
            "x": 120,
            "y": 80,
            "status": "success",
            "config": {"url": "https://example.test/users"},
            "description": "Pull the user list",
            "error": None,
            "color": "teal",
            "children": {"nodes": [{"id": "s", "type": "start"}], "connections": []},
        }
        node = Node.from_dict(data)
        assert node.status == NodeStatus.SUCCESS
        assert node.extra == {"color": "teal"}
        assert node.children.nodes[0].id == "s"

        out = node.to_dict()
        assert out["color"] == "teal"
        assert out["config"] == {"url": "https://example.test/users"}
        assert out["children"]["nodes"][0]["id"] == "s"

    def test_from_dict_minimal(self):
        node = Node.from_dict({"id": "n1", "type": "task"})
        assert node.title == ""
        assert node.status == NodeStatus.IDLE


class TestWorkflow:
    """Tests for Workflow."""

    def test_from_dict_missing_keys(self):
        """Missing nodes/connections deserialize to empty lists."""
        wf = Workflow.from_dict({})
        assert wf.nodes == []
        assert wf.connections == []
        assert wf.is_empty

    def test_from_dict_keeps_extra_fields(self):
        wf = Workflow.from_dict({"nodes": [], "connections": [], "name": "Plan"})
        assert wf.extra == {"name": "Plan"}
        assert wf.to_dict()["name"] == "Plan"

    def test_from_dict_normalizes_connections(self):
        wf = Workflow.from_dict(
            {
                "nodes": [{"id": "a", "type": "start"}, {"id": "b", "type": "end"}],
                "connections": [{"id": "c1", "source": "a", "target": "b"}, {"id": "c2"}],
            }
        )
        assert wf.connections == [Connection(id="c1", from_id="a", to_id="b")]

    def test_get_node(self, build_workflow):
        wf = build_workflow({"start": "start", "end": "end"})
        assert wf.get_node("end").type == NodeType.END.value
        assert wf.get_node("missing") is None
        assert wf.node_ids() == ["start", "end"]


class TestResetWorkflow:
    """Tests for reset_workflow."""

    def test_resets_every_root_node(self, build_workflow):
        wf = build_workflow({"start": "start", "a": "task"})
        wf.nodes[0].status = NodeStatus.SUCCESS
        wf.nodes[1].status = NodeStatus.ERROR
        wf.nodes[1].error = "Parent node failed"

        reset = reset_workflow(wf)
        assert all(n.status == NodeStatus.IDLE for n in reset.nodes)
        assert all(n.error is None for n in reset.nodes)
        assert wf.nodes[1].error == "Parent node failed"

    def test_idempotent(self, build_workflow):
        wf = build_workflow({"start": "start", "a": "task"}, [("start", "a")])
        wf.nodes[1].status = NodeStatus.ERROR
        once = reset_workflow(wf)
        assert reset_workflow(once) == once

    def test_nested_children_untouched(self, nested_root):
        """Only the given level is reset."""
        nested_root.nodes[1].children.nodes[1].status = NodeStatus.SUCCESS
        reset = reset_workflow(nested_root)
        assert reset.nodes[1].children.nodes[1].status == NodeStatus.SUCCESS
