"""Composable API functions for the block-program pipelines.

Each function corresponds to a CLI workflow (--ast-only, --mermaid, --stats,
--trace) but is callable programmatically without argparse.
"""

from __future__ import annotations

import logging

from .ast_builder import AST, ast_to_dict, ast_to_mermaid
from .graph_stats import count_block_types, count_edge_kinds
from .run import GraphSource, compile_graph, create_interpreter, snapshot_of
from .run_types import InterpreterConfig
from .trace_types import ExecutionTrace

logger = logging.getLogger(__name__)


def build_ast_from_graph(source: GraphSource) -> AST:
    """Snapshot the graph and build its AST.

    Args:
        source: A workspace or a program graph.

    Returns:
        A freshly built AST; later edits to *source* do not affect it.
    """
    logger.info("Building AST from %s", type(source).__name__)
    return compile_graph(source)


def dump_ast(source: GraphSource) -> str:
    """Build the AST and return its text representation."""
    return str(build_ast_from_graph(source))


def dump_ast_dict(source: GraphSource) -> dict:
    """Build the AST and return its debug dictionary form."""
    return ast_to_dict(build_ast_from_graph(source))


def dump_mermaid(source: GraphSource) -> str:
    """Build the AST and return a Mermaid flowchart diagram.

    Args:
        source: A workspace or a program graph.

    Returns:
        A Mermaid flowchart string.
    """
    return ast_to_mermaid(build_ast_from_graph(source))


def graph_stats(source: GraphSource) -> dict[str, dict[str, int]]:
    """Return block-type and edge-kind frequency counts."""
    graph = snapshot_of(source)
    return {
        "blocks": count_block_types(graph.blocks),
        "edges": count_edge_kinds(graph.edges),
    }


def execute_traced(
    source: GraphSource,
    max_steps: int | None = None,
    ticks_per_second: float | None = None,
) -> ExecutionTrace:
    """Snapshot, build the AST and execute with full trace recording.

    Args:
        source: A workspace or a program graph.
        max_steps: Maximum interpretation steps.
        ticks_per_second: Wait conversion rate.

    Returns:
        An ExecutionTrace with initial_state, steps, and stats.
    """
    defaults = InterpreterConfig()
    config = InterpreterConfig(
        max_steps=defaults.max_steps if max_steps is None else max_steps,
        ticks_per_second=(
            defaults.ticks_per_second if ticks_per_second is None else ticks_per_second
        ),
    )
    logger.info(
        "execute_traced: max_steps=%d, ticks_per_second=%s",
        config.max_steps,
        config.ticks_per_second,
    )
    interpreter = create_interpreter(source, config)
    return interpreter.run_traced()
