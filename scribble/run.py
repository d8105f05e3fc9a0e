"""Orchestrator — run() entry point."""

from __future__ import annotations

import logging
import time
from typing import Any, Union

from .ast_builder import AST, build_ast
from .graph import ProgramGraph
from .interpreter import (
    HighlightCallback,
    Interpreter,
    OutputCallback,
    StateCallback,
)
from .interpreter_types import InterpreterState
from .run_types import InterpreterConfig, PipelineStats
from .workspace import Workspace

logger = logging.getLogger(__name__)

GraphSource = Union[Workspace, ProgramGraph]


def snapshot_of(source: GraphSource) -> ProgramGraph:
    """Copy-on-start: an immutable view of the graph for one run.

    A bare program graph is replayed through a workspace first, so its edges
    pass the same uniqueness and cycle rules as editor connections.
    """
    if isinstance(source, Workspace):
        return source.snapshot()
    return Workspace(source).snapshot()


def compile_graph(source: GraphSource) -> AST:
    graph = snapshot_of(source)
    return build_ast(graph.blocks, graph.edges)


def create_interpreter(
    source: GraphSource,
    config: InterpreterConfig = InterpreterConfig(),
    on_highlight: HighlightCallback | None = None,
    on_output: OutputCallback | None = None,
    on_state: StateCallback | None = None,
    initial_vars: dict[str, Any] | None = None,
) -> Interpreter:
    """Compile *source* from a snapshot and return a fresh interpreter.

    When *source* is a workspace, its palette variables seed the run unless
    *initial_vars* is given explicitly.
    """
    if initial_vars is None and isinstance(source, Workspace):
        initial_vars = source.initial_vars()
    return Interpreter(
        compile_graph(source),
        config,
        on_highlight=on_highlight,
        on_output=on_output,
        on_state=on_state,
        initial_vars=initial_vars,
    )


def run(
    source: GraphSource,
    max_steps: int | None = None,
    ticks_per_second: float | None = None,
    verbose: bool = False,
    on_highlight: HighlightCallback | None = None,
    on_output: OutputCallback | None = None,
    on_state: StateCallback | None = None,
) -> InterpreterState:
    """End-to-end: snapshot → build AST → run to completion.

    Args:
        source: A workspace or a program graph.
        max_steps: Step ceiling; defaults to the config default.
        ticks_per_second: Wait conversion rate; defaults to the config default.
        verbose: Print the AST, each step and pipeline statistics.
        on_highlight: Called with the id of each node about to execute.
        on_output: Called with ``(text, kind)`` for say/think.
        on_state: Called with a state snapshot when sprite or vars change.
    """
    defaults = InterpreterConfig()
    config = InterpreterConfig(
        max_steps=defaults.max_steps if max_steps is None else max_steps,
        ticks_per_second=(
            defaults.ticks_per_second if ticks_per_second is None else ticks_per_second
        ),
        verbose=verbose,
    )

    pipeline_start = time.perf_counter()
    stats = PipelineStats()

    # 1. Snapshot
    t0 = time.perf_counter()
    graph = snapshot_of(source)
    stats.snapshot_time = time.perf_counter() - t0
    stats.block_count = len(graph.blocks)
    stats.edge_count = len(graph.edges)

    # 2. Build AST
    t0 = time.perf_counter()
    ast = build_ast(graph.blocks, graph.edges)
    stats.build_time = time.perf_counter() - t0
    stats.ast_node_count = len(ast.nodes)
    stats.root_count = len(ast.roots)
    stats.entry = ast.entry.id if ast.entry else ""
    logger.info(
        "Built AST with %d nodes (%d roots) in %.1fms",
        stats.ast_node_count,
        stats.root_count,
        stats.build_time * 1000,
    )

    if verbose:
        print("═══ AST ═══")
        print(ast)
        print()

    # 3. Execute
    initial_vars = source.initial_vars() if isinstance(source, Workspace) else None
    interpreter = Interpreter(
        ast,
        config,
        on_highlight=on_highlight,
        on_output=on_output,
        on_state=on_state,
        initial_vars=initial_vars,
    )
    t0 = time.perf_counter()
    state = interpreter.run()
    stats.execution_time = time.perf_counter() - t0
    stats.execution_steps = state.steps
    stats.output_count = len(state.outputs)
    stats.halt_reason = state.halt_reason.value if state.halt_reason else ""
    stats.total_time = time.perf_counter() - pipeline_start

    logger.info(
        "Executed %d steps (%s) in %.1fms",
        stats.execution_steps,
        stats.halt_reason,
        stats.execution_time * 1000,
    )

    if verbose:
        print()
        print(stats.report())

    return state
