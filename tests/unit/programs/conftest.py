"""Shared helpers for the end-to-end block program suite."""

from scribble.ast_builder import AST, build_ast
from scribble.graph import Block, Edge, branch_edge, input_edge, stack_edge
from scribble.interpreter import Interpreter
from scribble.run_types import InterpreterConfig


def block(block_id: str, block_type: str, **inputs) -> Block:
    """Build a block whose literal inputs are given as keyword arguments."""
    return Block(id=block_id, type=block_type, inputs=inputs)


def chain(*ids: str) -> list[Edge]:
    """Stack edges linking *ids* in order."""
    return [stack_edge(a, b) for a, b in zip(ids, ids[1:])]


def compile_program(blocks: list[Block], edges: list[Edge]) -> AST:
    return build_ast(blocks, edges)


def run_program(
    blocks: list[Block],
    edges: list[Edge],
    *,
    ticks_per_second: float = 60,
    max_steps: int = 1000,
    **callbacks,
) -> Interpreter:
    """Build, run to completion and return the interpreter for inspection."""
    config = InterpreterConfig(max_steps=max_steps, ticks_per_second=ticks_per_second)
    interp = Interpreter(build_ast(blocks, edges), config, **callbacks)
    interp.run()
    return interp


def counting_loop_program() -> tuple[list[Block], list[Edge]]:
    """start → set i=0 → repeat 3 { say "i="+i → change i by 1 } → if i>2 … → stop."""
    blocks = [
        block("start1", "start"),
        block("setI", "set_variable", name="i", value="0"),
        block("rep", "repeat_times", times="3"),
        block("sayI", "say"),
        block("plus", "plus_operator", a="i="),
        block("iVar", "variable", name="i"),
        block("incI", "change_variable", name="i", delta="1"),
        block("if1", "if_else"),
        block("gt", "gt_operator", b="2"),
        block("iVar2", "variable", name="i"),
        block("think1", "think", text="gt 2"),
        block("sayNo", "say", text="not gt 2"),
        block("stop1", "stop"),
    ]
    edges = [
        *chain("start1", "setI", "rep", "if1", "stop1"),
        branch_edge("rep", "body", "sayI"),
        *chain("sayI", "incI"),
        input_edge("sayI", "text", "plus"),
        input_edge("plus", "b", "iVar"),
        input_edge("if1", "condition", "gt"),
        input_edge("gt", "a", "iVar2"),
        branch_edge("if1", "true", "think1"),
        branch_edge("if1", "false", "sayNo"),
    ]
    return blocks, edges
