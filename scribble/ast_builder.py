"""AST builder — projects the flat block/edge graph into a linked node tree."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from . import constants
from .graph import Block, Edge, EdgeKind

_NUMERIC_RE = re.compile(constants.NUMERIC_LITERAL_PATTERN)


@dataclass(frozen=True)
class InputRef:
    """An input slot fed by the reporter block ``block_id``."""

    block_id: str

    def __str__(self) -> str:
        return f"&{self.block_id}"


@dataclass(eq=False)
class ASTNode:
    id: str
    type: str
    inputs: dict[str, Any] = field(default_factory=dict)
    next: ASTNode | None = field(default=None, repr=False)
    branches: dict[str, ASTNode] = field(default_factory=dict, repr=False)
    data: dict[str, Any] = field(default_factory=dict, repr=False)

    def branch(self, key: str) -> ASTNode | None:
        return self.branches.get(key)


@dataclass
class AST:
    nodes: dict[str, ASTNode] = field(default_factory=dict)
    roots: list[ASTNode] = field(default_factory=list)
    entry: ASTNode | None = None

    def get(self, node_id: str) -> ASTNode | None:
        return self.nodes.get(node_id)

    def __str__(self) -> str:
        lines = []
        for node_id, node in self.nodes.items():
            marker = " (entry)" if self.entry is node else ""
            nxt = node.next.id if node.next else "(none)"
            lines.append(f"[{node_id}] {node.type}{marker}  next={nxt}")
            for key, child in node.branches.items():
                lines.append(f"  {key} -> {child.id}")
            for port, value in node.inputs.items():
                lines.append(f"  {port} = {value if isinstance(value, InputRef) else repr(value)}")
        return "\n".join(lines)


def parse_literal(raw: Any) -> Any:
    """Coerce a typed-in literal into a runtime value.

    Strings are trimmed before inspection: empty stays ``""``, ``true`` and
    ``false`` (any case) become booleans, integer and decimal forms become
    numbers.  Anything else is returned unchanged.
    """
    if raw is None or isinstance(raw, (bool, int, float)):
        return raw
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if text == "":
        return ""
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    match = _NUMERIC_RE.match(text)
    if match:
        try:
            return float(text) if match.group(1) else int(text)
        except ValueError:
            # digit strings past the interpreter's int conversion limit
            return raw
    return raw


def _parse_input(port: str, raw: Any) -> Any:
    """Variable names keep their typed text (trimmed); other slots are coerced."""
    if port == constants.VARIABLE_NAME_PORT and isinstance(raw, str):
        return raw.strip()
    return parse_literal(raw)


def _as_block(b: Block | dict) -> Block:
    return b if isinstance(b, Block) else Block.model_validate(b)


def _as_edge(e: Edge | dict) -> Edge:
    return e if isinstance(e, Edge) else Edge.model_validate(e)


def build_ast(blocks: Iterable[Block | dict], edges: Iterable[Edge | dict]) -> AST:
    """Project a flat block/edge graph into a linked node tree.

    Edges whose endpoints are unknown are skipped, so malformed graphs yield
    nodes with absent links rather than errors.  Inputs are never mutated.
    """
    block_list = [_as_block(b) for b in blocks]
    edge_list = [_as_edge(e) for e in edges]
    ast = AST()

    # Phase 1: one node per block
    for b in block_list:
        ast.nodes[b.id] = ASTNode(
            id=b.id,
            type=b.type,
            inputs={port: _parse_input(port, v) for port, v in (b.inputs or {}).items()},
            data=dict(b.data),
        )

    def _endpoints(e: Edge) -> tuple[ASTNode, ASTNode] | None:
        src = ast.nodes.get(e.from_id)
        dst = ast.nodes.get(e.to_id)
        return (src, dst) if src and dst else None

    # Phase 2: wire stack, branch and input edges
    incoming: set[str] = set()
    for e in edge_list:
        pair = _endpoints(e)
        if pair is None:
            continue
        src, dst = pair
        if e.kind == EdgeKind.STACK:
            src.next = dst
            incoming.add(dst.id)
        elif e.kind == EdgeKind.BRANCH:
            src.branches[e.slot()] = dst
        elif e.kind == EdgeKind.INPUT and e.port is not None:
            src.inputs[e.port] = InputRef(dst.id)

    # Phase 3: roots and entry
    ast.roots = [ast.nodes[b.id] for b in block_list if b.id not in incoming]
    ast.entry = next(
        (r for r in ast.roots if r.type == constants.START_BLOCK_TYPE),
        ast.roots[0] if ast.roots else None,
    )
    return ast


def ast_to_dict(ast: AST) -> dict:
    """Flatten an AST into plain JSON-friendly data for debugging views."""

    def _slot(value: Any) -> dict:
        if isinstance(value, InputRef):
            return {"ref": value.block_id}
        return {"lit": value}

    branch_keys = (constants.BRANCH_TRUE, constants.BRANCH_FALSE, constants.BRANCH_BODY)
    return {
        "entry": ast.entry.id if ast.entry else None,
        "roots": [r.id for r in ast.roots],
        "nodes": {
            node_id: {
                "id": node_id,
                "type": node.type,
                "next": node.next.id if node.next else None,
                "branches": {
                    key: (node.branches[key].id if key in node.branches else None)
                    for key in sorted(set(branch_keys) | set(node.branches))
                },
                "inputs": {port: _slot(v) for port, v in node.inputs.items()},
            }
            for node_id, node in ast.nodes.items()
        },
    }


def _escape_mermaid(text: str) -> str:
    """Escape characters that break Mermaid node labels."""
    return text.replace('"', "#quot;").replace("<", "#lt;").replace(">", "#gt;")


def _node_id(block_id: str) -> str:
    """Sanitise a block id into a valid Mermaid node ID."""
    return re.sub(r"[^A-Za-z0-9_]", "_", block_id)


def _node_label(node: ASTNode, max_len: int = constants.MERMAID_MAX_LABEL_LEN) -> str:
    literals = ", ".join(
        f"{port}={v!r}" for port, v in node.inputs.items() if not isinstance(v, InputRef)
    )
    if len(literals) > max_len:
        literals = literals[:max_len] + "..."
    body = f"<b>{_escape_mermaid(node.type)}</b>"
    return f"{body}<br/>{_escape_mermaid(literals)}" if literals else body


_BRANCH_LABELS = {
    constants.BRANCH_TRUE: "T",
    constants.BRANCH_FALSE: "F",
    constants.BRANCH_BODY: "body",
}


def ast_to_mermaid(ast: AST) -> str:
    """Convert an AST to a Mermaid flowchart TD diagram."""
    lines: list[str] = ["flowchart TD"]

    for node_id, node in ast.nodes.items():
        nid = _node_id(node_id)
        if node.branches:
            lines.append(f'    {nid}{{"{_node_label(node)}"}}')
        else:
            lines.append(f'    {nid}["{_node_label(node)}"]')

    for node_id, node in ast.nodes.items():
        src = _node_id(node_id)
        if node.next:
            lines.append(f"    {src} --> {_node_id(node.next.id)}")
        for key, child in node.branches.items():
            label = _BRANCH_LABELS.get(key, key)
            lines.append(f'    {src} -->|"{label}"| {_node_id(child.id)}')
        for port, value in node.inputs.items():
            if isinstance(value, InputRef) and value.block_id in ast.nodes:
                lines.append(f'    {_node_id(value.block_id)} -.->|"{port}"| {src}')

    if ast.entry:
        lines.append(f"    style {_node_id(ast.entry.id)} fill:#28a745,color:#fff")

    return "\n".join(lines)
