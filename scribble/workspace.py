"""Graph mutation API — the editable program graph and its cycle guard.

Every connect primitive keeps the per-slot uniqueness invariants of the
three edge kinds and refuses any edge that would close a directed cycle
across the union of stack, branch and input edges, as well as any edge
leaving a ``stop`` block.  Refusals are a policy,
not an error: the connect call returns ``False`` and the graph is left
untouched.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from . import constants
from .graph import (
    Block,
    Edge,
    EdgeKind,
    ProgramGraph,
    branch_edge,
    input_edge,
    stack_edge,
)

logger = logging.getLogger(__name__)


class UnknownBlockError(KeyError):
    """Raised when an operation names a block id that is not in the workspace."""


class DuplicateBlockError(ValueError):
    """Raised when a block is added under an id that is already taken."""


@dataclass
class Variable:
    """A palette variable — display name plus the value a fresh run starts with."""

    id: str
    name: str
    initial_value: Any = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "initial_value": self.initial_value}


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:10]}"


class Workspace:
    """Mutable program graph owned by the editor.

    Interpreters never read a workspace directly; they compile from
    :meth:`snapshot`, so edits made during a run are not observed.
    """

    def __init__(self, graph: ProgramGraph | None = None):
        self._blocks: dict[str, Block] = {}
        self._edges: list[Edge] = []
        self.variables: list[Variable] = []
        if graph is not None:
            for block in graph.blocks:
                self.add_block(block.model_copy(deep=True))
            for edge in graph.edges:
                self.connect_edge_record(edge)

    # ── read access ───────────────────────────────────────────────

    @property
    def blocks(self) -> list[Block]:
        return list(self._blocks.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    def get_block(self, block_id: str) -> Block:
        block = self._blocks.get(block_id)
        if block is None:
            raise UnknownBlockError(block_id)
        return block

    def has_block(self, block_id: str) -> bool:
        return block_id in self._blocks

    def snapshot(self) -> ProgramGraph:
        """Return a deep copy of the graph, safe to compile while editing continues."""
        return ProgramGraph(
            blocks=[b.model_copy(deep=True) for b in self._blocks.values()],
            edges=[e.model_copy(deep=True) for e in self._edges],
        )

    def stack_successor(self, block_id: str) -> str | None:
        return next(
            (
                e.to_id
                for e in self._edges
                if e.kind == EdgeKind.STACK and e.from_id == block_id
            ),
            None,
        )

    def stack_predecessor(self, block_id: str) -> str | None:
        return next(
            (
                e.from_id
                for e in self._edges
                if e.kind == EdgeKind.STACK and e.to_id == block_id
            ),
            None,
        )

    def branch_head(self, parent_id: str, branch: str) -> str | None:
        return next(
            (
                e.to_id
                for e in self._edges
                if e.kind == EdgeKind.BRANCH
                and e.from_id == parent_id
                and e.slot() == branch
            ),
            None,
        )

    def input_source(self, parent_id: str, port: str) -> str | None:
        return next(
            (
                e.to_id
                for e in self._edges
                if e.kind == EdgeKind.INPUT and e.from_id == parent_id and e.port == port
            ),
            None,
        )

    # ── blocks ────────────────────────────────────────────────────

    def add_block(self, block: Block | dict) -> Block:
        if isinstance(block, dict):
            block = Block.model_validate({**block, "inputs": block.get("inputs") or {}})
        if block.id in self._blocks:
            raise DuplicateBlockError(f"Block id '{block.id}' already exists")
        self._blocks[block.id] = block
        logger.debug("Added block %s", block)
        return block

    def move_block(self, block_id: str, x: float, y: float):
        block = self.get_block(block_id)
        block.x = x
        block.y = y

    def update_block(self, block_id: str, **updates: Any) -> Block:
        block = self.get_block(block_id)
        for name, value in updates.items():
            if name == "id":
                raise ValueError("Block ids are immutable")
            setattr(block, name, value)
        return block

    def delete_block(self, block_id: str) -> bool:
        """Remove a block and every edge touching it, splicing its stack chain."""
        if block_id not in self._blocks:
            return False

        above = self.stack_predecessor(block_id)
        below = self.stack_successor(block_id)

        del self._blocks[block_id]
        self._edges = [e for e in self._edges if not e.touches(block_id)]

        if above and below:
            self._remove_edges(
                lambda e: e.kind == EdgeKind.STACK
                and (e.from_id == above or e.to_id == below)
            )
            self._edges.append(stack_edge(above, below))
            logger.debug("Spliced stack %s -> %s around %s", above, below, block_id)
        return True

    def disconnect_all_for(self, block_id: str):
        self._edges = [e for e in self._edges if not e.touches(block_id)]

    # ── inputs ────────────────────────────────────────────────────

    def set_input_value(self, block_id: str, port: str, value: Any):
        """Store a literal at *port*; a literal and a plugged reporter are exclusive."""
        block = self.get_block(block_id)
        self._remove_edges(
            lambda e: e.kind == EdgeKind.INPUT
            and e.from_id == block_id
            and e.port == port
        )
        block.inputs = {**block.inputs, port: value}

    # ── cycle guard ───────────────────────────────────────────────

    def would_create_cycle(self, from_id: str, to_id: str) -> bool:
        """True iff adding ``from_id -> to_id`` would close a directed cycle.

        All edge kinds count as directed edges.  The proposed edge is added
        to the adjacency, then a depth-first search runs from ``to_id``.
        """
        adjacency: dict[str, list[str]] = {}
        for e in self._edges:
            adjacency.setdefault(e.from_id, []).append(e.to_id)
        adjacency.setdefault(from_id, []).append(to_id)

        seen: set[str] = set()
        stack = [to_id]
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            if node == from_id:
                return True
            seen.add(node)
            stack.extend(adjacency.get(node, []))
        return False

    def _can_connect(self, from_id: str, to_id: str) -> bool:
        missing = [i for i in (from_id, to_id) if i not in self._blocks]
        if missing:
            logger.debug("Rejected edge %s -> %s: unknown %s", from_id, to_id, missing)
            return False
        if self._blocks[from_id].type == constants.STOP_BLOCK_TYPE:
            logger.debug("Rejected edge %s -> %s: stop blocks are terminal", from_id, to_id)
            return False
        if self.would_create_cycle(from_id, to_id):
            logger.debug("Rejected edge %s -> %s: would create a cycle", from_id, to_id)
            return False
        return True

    def _remove_edges(self, predicate: Callable[[Edge], bool]):
        self._edges = [e for e in self._edges if not predicate(e)]

    # ── connections ───────────────────────────────────────────────

    def connect_stack(self, above_id: str, below_id: str) -> bool:
        if not self._can_connect(above_id, below_id):
            return False
        self._remove_edges(
            lambda e: e.kind == EdgeKind.STACK
            and (e.from_id == above_id or e.to_id == below_id)
        )
        self._edges.append(stack_edge(above_id, below_id))
        return True

    def connect_branch(self, parent_id: str, branch: str, child_id: str) -> bool:
        if not self._can_connect(parent_id, child_id):
            return False
        self._remove_edges(
            lambda e: e.kind == EdgeKind.BRANCH
            and e.from_id == parent_id
            and e.slot() == branch
        )
        self._edges.append(branch_edge(parent_id, branch, child_id))
        return True

    def connect_input(self, parent_id: str, port: str, child_id: str) -> bool:
        if not self._can_connect(parent_id, child_id):
            return False
        self._remove_edges(
            lambda e: e.kind == EdgeKind.INPUT
            and e.from_id == parent_id
            and e.port == port
        )
        self._edges.append(input_edge(parent_id, port, child_id))
        parent = self._blocks[parent_id]
        parent.inputs = {**parent.inputs, port: ""}
        return True

    def connect_edge(self, from_id: str, from_port: str, to_id: str) -> bool:
        """Dispatch on an editor port name: ``input:<slot>``, ``next`` or a branch key."""
        port = str(from_port or "")
        if port.startswith(constants.INPUT_PORT_PREFIX):
            return self.connect_input(
                from_id, port[len(constants.INPUT_PORT_PREFIX) :], to_id
            )
        if port == constants.NEXT_PORT:
            return self.connect_stack(from_id, to_id)
        return self.connect_branch(from_id, port, to_id)

    def connect_edge_record(self, edge: Edge) -> bool:
        if edge.kind == EdgeKind.STACK:
            return self.connect_stack(edge.from_id, edge.to_id)
        if edge.kind == EdgeKind.BRANCH:
            return self.connect_branch(edge.from_id, edge.slot(), edge.to_id)
        return self.connect_input(edge.from_id, edge.port or "", edge.to_id)

    # ── variables ─────────────────────────────────────────────────

    def create_variable(self, name: str, initial_value: Any = 0) -> Variable | None:
        clean = (name or "").strip()
        if not clean:
            return None
        taken = {v.name for v in self.variables}
        final_name = clean
        n = 2
        while final_name in taken:
            final_name = f"{clean} ({n})"
            n += 1
        variable = Variable(id=new_id("var_"), name=final_name, initial_value=initial_value)
        self.variables.append(variable)
        return variable

    def delete_variable(self, var_id: str):
        self.variables = [v for v in self.variables if v.id != var_id]

    def initial_vars(self) -> dict[str, Any]:
        return {v.name: v.initial_value for v in self.variables}
