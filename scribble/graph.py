"""Program graph — block and edge records supplied by the editor."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from . import constants


class EdgeKind(str, Enum):
    STACK = "stack"
    BRANCH = "branch"
    INPUT = "input"


class Block(BaseModel):
    """A node in the program graph.

    Only ``id``, ``type`` and ``inputs`` matter to the compiler; position and
    size are carried for the editor, ``data`` holds editor bookkeeping such as
    ender pairing.
    """

    id: str
    type: str
    inputs: dict[str, Any] = {}
    x: float = 0.0
    y: float = 0.0
    w: float | None = None
    h: float | None = None
    data: dict[str, Any] = {}

    def __str__(self) -> str:
        if not self.inputs:
            return f"{self.type}#{self.id}"
        args = ", ".join(f"{k}={v!r}" for k, v in self.inputs.items())
        return f"{self.type}#{self.id}({args})"


class Edge(BaseModel):
    """A typed relation between two blocks.

    ``branch`` is set for branch edges and ``port`` for input edges.  The
    JSON form uses ``from``/``to`` keys.
    """

    model_config = ConfigDict(populate_by_name=True)

    kind: EdgeKind
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    branch: str | None = None
    port: str | None = None

    def slot(self) -> str | None:
        if self.kind == EdgeKind.BRANCH:
            return self.branch or constants.DEFAULT_BRANCH
        if self.kind == EdgeKind.INPUT:
            return self.port
        return None

    def touches(self, block_id: str) -> bool:
        return self.from_id == block_id or self.to_id == block_id

    def __str__(self) -> str:
        slot = self.slot()
        tag = f"[{slot}]" if slot else ""
        return f"{self.from_id} -{self.kind.value}{tag}-> {self.to_id}"


def stack_edge(from_id: str, to_id: str) -> Edge:
    return Edge(kind=EdgeKind.STACK, from_id=from_id, to_id=to_id)


def branch_edge(from_id: str, branch: str, to_id: str) -> Edge:
    return Edge(kind=EdgeKind.BRANCH, from_id=from_id, to_id=to_id, branch=branch)


def input_edge(from_id: str, port: str, to_id: str) -> Edge:
    return Edge(kind=EdgeKind.INPUT, from_id=from_id, to_id=to_id, port=port)


class ProgramGraph(BaseModel):
    """Blocks plus edges — the only input the compiler reads."""

    blocks: list[Block] = []
    edges: list[Edge] = []

    @classmethod
    def from_json(cls, text: str) -> ProgramGraph:
        return cls.model_validate_json(text)

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent, by_alias=True)
