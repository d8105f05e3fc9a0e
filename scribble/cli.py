"""Command-line entry point: run or inspect a block program stored as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from .api import dump_ast, dump_mermaid, execute_traced, graph_stats
from .graph import ProgramGraph
from .run import run, snapshot_of
from .workspace import DuplicateBlockError

DEMO_PROGRAM = {
    "blocks": [
        {"id": "start1", "type": "start"},
        {"id": "setI", "type": "set_variable", "inputs": {"name": "i", "value": "0"}},
        {"id": "rep", "type": "repeat_times", "inputs": {"times": "3"}},
        {"id": "sayI", "type": "say"},
        {"id": "plus", "type": "plus_operator", "inputs": {"a": "i="}},
        {"id": "iVar", "type": "variable", "inputs": {"name": "i"}},
        {"id": "incI", "type": "change_variable", "inputs": {"name": "i", "delta": "1"}},
        {"id": "if1", "type": "if_else"},
        {"id": "gt", "type": "gt_operator", "inputs": {"b": "2"}},
        {"id": "iVar2", "type": "variable", "inputs": {"name": "i"}},
        {"id": "think1", "type": "think", "inputs": {"text": "gt 2"}},
        {"id": "sayNo", "type": "say", "inputs": {"text": "not gt 2"}},
        {"id": "move1", "type": "move", "inputs": {"steps": "10"}},
        {"id": "turn1", "type": "turn_clockwise", "inputs": {"degrees": "90"}},
        {"id": "move2", "type": "move", "inputs": {"steps": "10"}},
        {"id": "wait1", "type": "wait", "inputs": {"seconds": "0.05"}},
        {"id": "sayDone", "type": "say", "inputs": {"text": "done"}},
        {"id": "stop1", "type": "stop"},
    ],
    "edges": [
        {"kind": "stack", "from": "start1", "to": "setI"},
        {"kind": "stack", "from": "setI", "to": "rep"},
        {"kind": "stack", "from": "rep", "to": "if1"},
        {"kind": "branch", "from": "rep", "to": "sayI", "branch": "body"},
        {"kind": "stack", "from": "sayI", "to": "incI"},
        {"kind": "input", "from": "sayI", "to": "plus", "port": "text"},
        {"kind": "input", "from": "plus", "to": "iVar", "port": "b"},
        {"kind": "input", "from": "if1", "to": "gt", "port": "condition"},
        {"kind": "input", "from": "gt", "to": "iVar2", "port": "a"},
        {"kind": "branch", "from": "if1", "to": "think1", "branch": "true"},
        {"kind": "branch", "from": "if1", "to": "sayNo", "branch": "false"},
        {"kind": "stack", "from": "if1", "to": "move1"},
        {"kind": "stack", "from": "move1", "to": "turn1"},
        {"kind": "stack", "from": "turn1", "to": "move2"},
        {"kind": "stack", "from": "move2", "to": "wait1"},
        {"kind": "stack", "from": "wait1", "to": "sayDone"},
        {"kind": "stack", "from": "sayDone", "to": "stop1"},
    ],
}


def _load_graph(path: str | None) -> ProgramGraph:
    if not path:
        print("No file provided. Using built-in demo program.\n")
        return snapshot_of(ProgramGraph.model_validate(DEMO_PROGRAM))
    with open(path) as f:
        return snapshot_of(ProgramGraph.from_json(f.read()))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Block program interpreter")
    parser.add_argument("file", nargs="?", help="Program graph JSON file")
    parser.add_argument(
        "--max-steps",
        "-n",
        type=int,
        default=None,
        help="Maximum interpretation steps (default: 10000)",
    )
    parser.add_argument(
        "--tps",
        type=float,
        default=None,
        help="Ticks per second used to convert wait durations (default: 60)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Print the AST and every step"
    )
    parser.add_argument(
        "--ast-only", action="store_true", help="Only print the AST (no execution)"
    )
    parser.add_argument(
        "--mermaid", action="store_true", help="Only print a Mermaid flowchart"
    )
    parser.add_argument(
        "--stats", action="store_true", help="Only print block/edge statistics"
    )
    parser.add_argument(
        "--trace", action="store_true", help="Print a per-step execution trace"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        graph = _load_graph(args.file)
    except (OSError, ValidationError, DuplicateBlockError) as exc:
        print(f"error: could not load program: {exc}", file=sys.stderr)
        return 2

    if args.ast_only:
        print("═══ AST ═══")
        print(dump_ast(graph))
        return 0

    if args.mermaid:
        print(dump_mermaid(graph))
        return 0

    if args.stats:
        print(json.dumps(graph_stats(graph), indent=2))
        return 0

    if args.trace:
        trace = execute_traced(graph, args.max_steps, args.tps)
        for step in trace.steps:
            tag = " (waiting)" if step.waiting else ""
            print(f"[{step.step_index}] {step.node_type}#{step.node_id}{tag}")
        print("\n═══ Final State ═══")
        print(json.dumps(trace.final_state, indent=2, default=str))
        return 1 if trace.stats.step_limit_exceeded else 0

    state = run(
        graph,
        max_steps=args.max_steps,
        ticks_per_second=args.tps,
        verbose=args.verbose,
        on_output=lambda text, kind: print(f"[{kind}] {text}"),
    )

    print("\n═══ Final State ═══")
    print(json.dumps(state.snapshot(), indent=2, default=str))
    return 1 if state.step_limit_exceeded else 0


if __name__ == "__main__":
    sys.exit(main())
