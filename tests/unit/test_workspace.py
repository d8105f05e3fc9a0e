"""Tests for the graph mutation API and its cycle guard."""

import pytest

from scribble.graph import Block, EdgeKind, ProgramGraph, stack_edge
from scribble.workspace import DuplicateBlockError, UnknownBlockError, Workspace


def _make_workspace(*specs):
    """Helper: build a workspace from (id, type) tuples."""
    ws = Workspace()
    for block_id, block_type in specs:
        ws.add_block(Block(id=block_id, type=block_type))
    return ws


def _edges_of(ws, kind):
    return [(e.from_id, e.to_id) for e in ws.edges if e.kind == kind]


class TestAddBlock:
    def test_dict_without_inputs_gets_empty_inputs(self):
        ws = Workspace()
        block = ws.add_block({"id": "a", "type": "say"})
        assert block.inputs == {}

    def test_dict_with_null_inputs_gets_empty_inputs(self):
        ws = Workspace()
        block = ws.add_block({"id": "a", "type": "say", "inputs": None})
        assert block.inputs == {}

    def test_duplicate_id_rejected(self):
        ws = _make_workspace(("a", "say"))
        with pytest.raises(DuplicateBlockError):
            ws.add_block(Block(id="a", type="think"))

    def test_unknown_block_lookup_raises(self):
        ws = Workspace()
        with pytest.raises(UnknownBlockError):
            ws.get_block("missing")


class TestEditBlock:
    def test_move_block_updates_position(self):
        ws = _make_workspace(("a", "say"))
        ws.move_block("a", 40, 12.5)
        block = ws.get_block("a")
        assert (block.x, block.y) == (40, 12.5)

    def test_move_unknown_block_raises(self):
        with pytest.raises(UnknownBlockError):
            Workspace().move_block("ghost", 0, 0)

    def test_update_block_sets_fields(self):
        ws = _make_workspace(("a", "say"))
        block = ws.update_block("a", inputs={"text": "hi"}, w=80)
        assert block.inputs == {"text": "hi"}
        assert ws.get_block("a").w == 80

    def test_update_block_rejects_id_change(self):
        ws = _make_workspace(("a", "say"))
        with pytest.raises(ValueError):
            ws.update_block("a", id="b")
        assert ws.has_block("a")

    def test_update_unknown_block_raises(self):
        with pytest.raises(UnknownBlockError):
            Workspace().update_block("ghost", x=1)


class TestConnectStack:
    def test_creates_edge(self):
        ws = _make_workspace(("a", "start"), ("b", "say"))
        assert ws.connect_stack("a", "b")
        assert _edges_of(ws, EdgeKind.STACK) == [("a", "b")]

    def test_replaces_existing_outgoing_edge(self):
        ws = _make_workspace(("a", "start"), ("b", "say"), ("c", "say"))
        ws.connect_stack("a", "b")
        ws.connect_stack("a", "c")
        assert _edges_of(ws, EdgeKind.STACK) == [("a", "c")]

    def test_replaces_existing_incoming_edge(self):
        ws = _make_workspace(("a", "start"), ("b", "say"), ("c", "say"))
        ws.connect_stack("a", "c")
        ws.connect_stack("b", "c")
        assert _edges_of(ws, EdgeKind.STACK) == [("b", "c")]

    def test_stack_degree_is_at_most_one_each_way(self):
        ws = _make_workspace(*[(f"n{i}", "say") for i in range(5)])
        for above, below in [("n0", "n1"), ("n0", "n2"), ("n3", "n2"), ("n1", "n4"), ("n3", "n4")]:
            ws.connect_stack(above, below)

        stack = _edges_of(ws, EdgeKind.STACK)
        froms = [f for f, _ in stack]
        tos = [t for _, t in stack]
        assert len(froms) == len(set(froms))
        assert len(tos) == len(set(tos))

    def test_unknown_endpoint_rejected(self):
        ws = _make_workspace(("a", "start"))
        assert not ws.connect_stack("a", "ghost")
        assert ws.edges == []


class TestConnectBranch:
    def test_replaces_child_in_same_branch(self):
        ws = _make_workspace(("if", "if_else"), ("x", "say"), ("y", "say"))
        ws.connect_branch("if", "true", "x")
        ws.connect_branch("if", "true", "y")
        assert ws.branch_head("if", "true") == "y"
        assert len(_edges_of(ws, EdgeKind.BRANCH)) == 1

    def test_different_branches_coexist(self):
        ws = _make_workspace(("if", "if_else"), ("x", "say"), ("y", "say"))
        ws.connect_branch("if", "true", "x")
        ws.connect_branch("if", "false", "y")
        assert ws.branch_head("if", "true") == "x"
        assert ws.branch_head("if", "false") == "y"


class TestInputs:
    def test_connect_input_clears_literal(self):
        ws = _make_workspace(("say", "say"), ("v", "variable"))
        ws.set_input_value("say", "text", "hello")
        ws.connect_input("say", "text", "v")
        assert ws.get_block("say").inputs["text"] == ""
        assert ws.input_source("say", "text") == "v"

    def test_set_input_value_removes_connection(self):
        ws = _make_workspace(("say", "say"), ("v", "variable"))
        ws.connect_input("say", "text", "v")
        ws.set_input_value("say", "text", "hi")
        assert ws.input_source("say", "text") is None
        assert ws.get_block("say").inputs["text"] == "hi"

    def test_one_input_edge_per_port(self):
        ws = _make_workspace(("plus", "plus_operator"), ("v1", "variable"), ("v2", "variable"))
        ws.connect_input("plus", "a", "v1")
        ws.connect_input("plus", "a", "v2")
        ws.connect_input("plus", "b", "v1")
        ports = [(e.from_id, e.port) for e in ws.edges if e.kind == EdgeKind.INPUT]
        assert sorted(ports) == [("plus", "a"), ("plus", "b")]
        assert ws.input_source("plus", "a") == "v2"

    def test_set_input_value_on_unknown_block_raises(self):
        ws = Workspace()
        with pytest.raises(UnknownBlockError):
            ws.set_input_value("ghost", "text", "x")


class TestCycleGuard:
    def test_two_node_cycle_detected(self):
        ws = _make_workspace(("a", "say"), ("b", "say"))
        ws.connect_stack("a", "b")
        assert ws.would_create_cycle("b", "a")

    def test_two_node_cycle_rejected_and_graph_unchanged(self):
        ws = _make_workspace(("a", "say"), ("b", "say"))
        ws.connect_stack("a", "b")
        before = ws.snapshot()

        assert not ws.connect_stack("b", "a")
        assert ws.snapshot() == before

    def test_self_edge_is_a_cycle(self):
        ws = _make_workspace(("a", "say"))
        assert ws.would_create_cycle("a", "a")
        assert not ws.connect_stack("a", "a")

    def test_cycle_across_edge_kinds_rejected(self):
        ws = _make_workspace(("if", "if_else"), ("body", "say"), ("cond", "gt_operator"))
        ws.connect_branch("if", "true", "body")
        ws.connect_input("body", "text", "cond")

        assert not ws.connect_input("cond", "a", "if")
        assert ws.input_source("cond", "a") is None

    def test_stop_block_cannot_feed_back_into_its_chain(self):
        ws = _make_workspace(("start", "start"), ("say", "say"), ("stop", "stop"))
        ws.connect_stack("start", "say")
        ws.connect_stack("say", "stop")
        edges_before = ws.edges

        assert not ws.connect_stack("stop", "start")
        assert not ws.connect_branch("stop", "body", "say")
        assert ws.edges == edges_before

    def test_stop_block_has_no_outgoing_connections(self):
        ws = _make_workspace(("stop", "stop"), ("say", "say"), ("v", "variable"))

        assert not ws.connect_stack("stop", "say")
        assert not ws.connect_branch("stop", "body", "say")
        assert not ws.connect_input("stop", "x", "v")
        assert ws.edges == []

    def test_stop_block_accepts_incoming_connection(self):
        ws = _make_workspace(("say", "say"), ("stop", "stop"))
        assert ws.connect_stack("say", "stop")

    def test_acyclic_addition_allowed(self):
        ws = _make_workspace(("a", "say"), ("b", "say"), ("c", "say"))
        ws.connect_stack("a", "b")
        assert not ws.would_create_cycle("a", "c")
        assert not ws.would_create_cycle("c", "a")


class TestDeleteBlock:
    def test_splices_stack_chain(self):
        ws = _make_workspace(("a", "start"), ("b", "say"), ("c", "stop"))
        ws.connect_stack("a", "b")
        ws.connect_stack("b", "c")

        assert ws.delete_block("b")

        assert _edges_of(ws, EdgeKind.STACK) == [("a", "c")]
        assert not ws.has_block("b")

    def test_removes_all_touching_edges(self):
        ws = _make_workspace(("if", "if_else"), ("x", "say"), ("v", "variable"))
        ws.connect_branch("if", "true", "x")
        ws.connect_input("x", "text", "v")

        ws.delete_block("x")

        assert ws.edges == []

    def test_tail_block_deletion_does_not_splice(self):
        ws = _make_workspace(("a", "start"), ("b", "say"))
        ws.connect_stack("a", "b")
        ws.delete_block("b")
        assert ws.edges == []

    def test_unknown_block_is_noop(self):
        ws = Workspace()
        assert not ws.delete_block("ghost")

    def test_disconnect_all_keeps_block(self):
        ws = _make_workspace(("a", "start"), ("b", "say"))
        ws.connect_stack("a", "b")
        ws.disconnect_all_for("a")
        assert ws.edges == []
        assert ws.has_block("a")


class TestConnectEdge:
    def test_dispatches_by_port_name(self):
        ws = _make_workspace(("a", "start"), ("b", "say"), ("if", "if_else"), ("v", "variable"))
        ws.connect_edge("a", "next", "b")
        ws.connect_edge("b", "input:text", "v")
        ws.connect_edge("if", "false", "a")

        assert ws.stack_successor("a") == "b"
        assert ws.input_source("b", "text") == "v"
        assert ws.branch_head("if", "false") == "a"


class TestSnapshot:
    def test_snapshot_is_isolated_from_later_edits(self):
        ws = _make_workspace(("a", "start"), ("b", "say"))
        ws.connect_stack("a", "b")
        snap = ws.snapshot()

        ws.set_input_value("b", "text", "changed")
        ws.delete_block("a")

        assert [b.id for b in snap.blocks] == ["a", "b"]
        assert snap.blocks[1].inputs == {}
        assert snap.edges == [stack_edge("a", "b")]

    def test_workspace_from_graph_keeps_edges(self):
        graph = ProgramGraph.model_validate(
            {
                "blocks": [{"id": "a", "type": "start"}, {"id": "b", "type": "say"}],
                "edges": [{"kind": "stack", "from": "a", "to": "b"}],
            }
        )
        ws = Workspace(graph)
        assert ws.stack_successor("a") == "b"


class TestVariables:
    def test_blank_name_ignored(self):
        ws = Workspace()
        assert ws.create_variable("   ") is None
        assert ws.variables == []

    def test_duplicate_names_get_suffix(self):
        ws = Workspace()
        names = [ws.create_variable("score").name for _ in range(3)]
        assert names == ["score", "score (2)", "score (3)"]

    def test_initial_vars_and_delete(self):
        ws = Workspace()
        keep = ws.create_variable("x", 5)
        drop = ws.create_variable("y", 1)
        ws.delete_variable(drop.id)
        assert ws.initial_vars() == {"x": 5}
        assert keep.to_dict()["name"] == "x"
