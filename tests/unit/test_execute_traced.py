"""Tests for Interpreter.run_traced and execute_traced — traced execution with step snapshots."""

from scribble.api import execute_traced
from scribble.ast_builder import build_ast
from scribble.graph import Block, ProgramGraph, stack_edge
from scribble.interpreter import Interpreter
from scribble.run_types import InterpreterConfig
from scribble.trace_types import ExecutionTrace, TraceStep


def _make_graph(*specs):
    """Helper: build a ProgramGraph from (id, type, inputs) tuples chained in order."""
    blocks = [Block(id=i, type=t, inputs=inputs) for i, t, inputs in specs]
    ids = [b.id for b in blocks]
    return ProgramGraph(blocks=blocks, edges=[stack_edge(a, b) for a, b in zip(ids, ids[1:])])


def _traced(graph, **config):
    interp = Interpreter(build_ast(graph.blocks, graph.edges), InterpreterConfig(**config))
    return interp.run_traced()


class TestRunTracedBasic:
    def test_trace_length_matches_executed_steps(self):
        graph = _make_graph(
            ("s", "start", {}),
            ("v", "set_variable", {"name": "x", "value": "42"}),
            ("a", "say", {"text": "hi"}),
        )

        trace = _traced(graph)

        assert len(trace.steps) == 3
        assert trace.stats.steps == 3

    def test_returns_execution_trace_type(self):
        trace = _traced(_make_graph(("s", "start", {})))
        assert isinstance(trace, ExecutionTrace)
        assert all(isinstance(s, TraceStep) for s in trace.steps)

    def test_step_indices_are_sequential(self):
        graph = _make_graph(("s", "start", {}), ("a", "say", {"text": "1"}), ("b", "say", {"text": "2"}))

        trace = _traced(graph)

        assert [s.step_index for s in trace.steps] == [0, 1, 2]
        assert [s.node_id for s in trace.steps] == ["s", "a", "b"]
        assert [s.node_type for s in trace.steps] == ["start", "say", "say"]


class TestRunTracedSnapshots:
    def test_initial_state_is_before_any_step(self):
        graph = _make_graph(("s", "start", {}), ("v", "set_variable", {"name": "x", "value": "1"}))

        trace = _traced(graph)

        assert trace.initial_state["vars"] == {}
        assert trace.initial_state["current"] == "s"
        assert trace.initial_state["steps"] == 0

    def test_snapshots_are_independent(self):
        graph = _make_graph(
            ("s", "start", {}),
            ("v", "set_variable", {"name": "x", "value": "1"}),
            ("c", "change_variable", {"name": "x", "delta": "1"}),
        )

        trace = _traced(graph)

        assert trace.steps[1].state["vars"] == {"x": 1}
        assert trace.steps[2].state["vars"] == {"x": 2}

    def test_wait_ticks_are_marked(self):
        graph = _make_graph(
            ("s", "start", {}),
            ("w", "wait", {"seconds": "0.05"}),
            ("a", "say", {"text": "done"}),
        )

        trace = _traced(graph, ticks_per_second=60)

        assert [s.node_id for s in trace.steps] == ["s", "w", "w", "w", "a"]
        assert [s.waiting for s in trace.steps] == [False, True, True, False, False]
        assert trace.steps[1].state["waiting"] == {"node_id": "w", "ticks_remaining": 2}
        assert trace.stats.wait_ticks == 3

    def test_final_snapshot_reports_halt(self):
        trace = _traced(_make_graph(("s", "start", {}), ("x", "stop", {})))

        final = trace.steps[-1].state
        assert final["halted"] is True
        assert final["halt_reason"] == "stop_block"
        assert trace.stats.halt_reason == "stop_block"


class TestRunTracedLimits:
    def test_step_limit_truncates_trace(self):
        graph = ProgramGraph.model_validate(
            {
                "blocks": [
                    {"id": "s", "type": "start"},
                    {"id": "loop", "type": "repeat_until", "inputs": {"until": "false"}},
                    {"id": "a", "type": "say", "inputs": {"text": "x"}},
                ],
                "edges": [
                    {"kind": "stack", "from": "s", "to": "loop"},
                    {"kind": "branch", "from": "loop", "to": "a", "branch": "body"},
                ],
            }
        )

        trace = _traced(graph, max_steps=7)

        assert len(trace.steps) == 7
        assert trace.stats.step_limit_exceeded

    def test_final_state_reports_step_limit_halt(self):
        graph = _make_graph(*[(f"n{i}", "say", {"text": str(i)}) for i in range(5)])

        trace = _traced(graph, max_steps=2)

        assert trace.steps[-1].state["halted"] is False
        assert trace.final_state["halted"] is True
        assert trace.final_state["halt_reason"] == "step_limit"

    def test_final_state_matches_last_step_on_normal_halt(self):
        trace = _traced(_make_graph(("s", "start", {}), ("x", "stop", {})))
        assert trace.final_state == trace.steps[-1].state


class TestExecuteTraced:
    def test_runs_from_program_graph(self):
        graph = _make_graph(("s", "start", {}), ("a", "say", {"text": "hi"}))

        trace = execute_traced(graph)

        assert trace.stats.outputs == 1
        assert trace.steps[-1].state["outputs"] == [{"kind": "say", "text": "hi"}]

    def test_max_steps_argument(self):
        graph = _make_graph(*[(f"n{i}", "say", {"text": str(i)}) for i in range(5)])

        trace = execute_traced(graph, max_steps=2)

        assert len(trace.steps) == 2
        assert trace.stats.step_limit_exceeded
