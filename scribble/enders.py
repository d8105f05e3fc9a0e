"""Visual ender blocks paired with if/repeat blocks.

Enders close the arms of an ``if_else`` or the body of a repeat in the
editor.  They never take part in execution; this module only keeps them
paired one-to-one with their owner through ``data["pair_with"]``.
"""

from __future__ import annotations

import logging

from . import constants
from .graph import Block, Edge, EdgeKind
from .workspace import Workspace, new_id

logger = logging.getLogger(__name__)

_REPEAT_TYPES: frozenset[str] = frozenset({"repeat_times", "repeat_until"})


def last_in_stack(start_id: str | None, edges: list[Edge]) -> str | None:
    """Walk stack edges from *start_id* and return the id of the chain's tail."""
    if not start_id:
        return None
    successors = {e.from_id: e.to_id for e in edges if e.kind == EdgeKind.STACK}
    current = start_id
    seen = {current}
    while current in successors and successors[current] not in seen:
        current = successors[current]
        seen.add(current)
    return current


def stack_length(start_id: str | None, edges: list[Edge]) -> int:
    if not start_id:
        return 0
    successors = {e.from_id: e.to_id for e in edges if e.kind == EdgeKind.STACK}
    count = 1
    current = start_id
    seen = {current}
    while current in successors and successors[current] not in seen:
        current = successors[current]
        seen.add(current)
        count += 1
    return count


def is_ender_type(block_type: str) -> bool:
    return block_type == constants.IF_ENDER_TYPE or block_type.startswith(
        constants.REPEAT_ENDER_PREFIX
    )


def repeat_ender_type(variant: int) -> str:
    clamped = max(0, min(constants.REPEAT_ENDER_MAX_VARIANT, int(variant)))
    return f"{constants.REPEAT_ENDER_PREFIX}_{clamped}"


def find_ender(ws: Workspace, owner_id: str) -> Block | None:
    return next(
        (
            b
            for b in ws.blocks
            if is_ender_type(b.type) and b.data.get(constants.ENDER_PAIR_KEY) == owner_id
        ),
        None,
    )


def ensure_if_ender(ws: Workspace, if_id: str) -> Block:
    owner = ws.get_block(if_id)
    existing = find_ender(ws, if_id)
    if existing is not None:
        return existing
    ender = Block(
        id=new_id("ender_"),
        type=constants.IF_ENDER_TYPE,
        x=owner.x + 20,
        y=owner.y + (owner.h or 120) + 80,
        data={constants.ENDER_PAIR_KEY: if_id, "auto": True},
    )
    logger.debug("Created if ender %s for %s", ender.id, if_id)
    return ws.add_block(ender)


def ensure_repeat_ender(ws: Workspace, repeat_id: str) -> Block:
    """Create or refresh the loop ender; its variant tracks the body length (0..7)."""
    owner = ws.get_block(repeat_id)
    body_head = ws.branch_head(repeat_id, constants.BRANCH_BODY)
    wanted = repeat_ender_type(stack_length(body_head, ws.edges))

    existing = find_ender(ws, repeat_id)
    if existing is not None:
        if existing.type != wanted:
            existing.type = wanted
            existing.data = {
                **existing.data,
                constants.ENDER_VARIANT_KEY: int(wanted.rsplit("_", 1)[1]),
            }
        return existing

    ender = Block(
        id=new_id("ender_"),
        type=wanted,
        x=owner.x + 20,
        y=owner.y + (owner.h or 100) + 100,
        data={
            constants.ENDER_PAIR_KEY: repeat_id,
            "auto": True,
            constants.ENDER_VARIANT_KEY: int(wanted.rsplit("_", 1)[1]),
        },
    )
    logger.debug("Created repeat ender %s (%s) for %s", ender.id, wanted, repeat_id)
    return ws.add_block(ender)


def sync_enders(ws: Workspace) -> int:
    """Pair every if/repeat block with an ender and delete orphaned enders.

    Returns the number of orphans removed.
    """
    for block in ws.blocks:
        if block.type == "if_else":
            ensure_if_ender(ws, block.id)
        elif block.type in _REPEAT_TYPES:
            ensure_repeat_ender(ws, block.id)

    orphans = [
        b.id
        for b in ws.blocks
        if is_ender_type(b.type)
        and b.data.get(constants.ENDER_PAIR_KEY)
        and not ws.has_block(b.data[constants.ENDER_PAIR_KEY])
    ]
    for ender_id in orphans:
        ws.delete_block(ender_id)
    return len(orphans)
