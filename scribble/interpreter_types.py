"""Interpreter — data types (pure data, no business logic)."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from . import constants
from .ast_builder import ASTNode


class StatementKind(str, Enum):
    START = "start"
    STOP = "stop"
    # Looks
    SAY = "say"
    THINK = "think"
    CLEAR = "clear"
    # Motion
    MOVE = "move"
    GO_TO = "go_to"
    CHANGE_X_BY = "change_x_by"
    CHANGE_Y_BY = "change_y_by"
    TURN_CLOCKWISE = "turn_clockwise"
    TURN_ANTICLOCKWISE = "turn_anticlockwise"
    POINT_IN = "point_in"
    # Variables
    SET_VARIABLE = "set_variable"
    CHANGE_VARIABLE = "change_variable"
    # Control
    WAIT = "wait"
    IF_ELSE = "if_else"
    REPEAT_TIMES = "repeat_times"
    REPEAT_UNTIL = "repeat_until"
    # Visual-only
    IF_BRANCH_ENDER = "if_branch_ender"
    REPEAT_LOOP_ENDER = "repeat_loop_ender"


class HaltReason(str, Enum):
    STOP_BLOCK = "stop_block"
    END_OF_PROGRAM = "end_of_program"
    STEP_LIMIT = "step_limit"


@dataclass
class SpriteState:
    """Position in screen space (y grows downward); heading in degrees, 0 = +X."""

    x: float = 0.0
    y: float = 0.0
    heading: float = constants.DEFAULT_HEADING

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "heading": self.heading}


@dataclass(frozen=True)
class OutputEvent:
    kind: str
    text: str

    def to_dict(self) -> dict:
        return {"kind": self.kind, "text": self.text}


# ── Control frames ───────────────────────────────────────────────


@dataclass
class IfFrame:
    ret_next: ASTNode | None = None


@dataclass
class RepeatTimesFrame:
    remaining: int
    body: ASTNode | None = None
    ret_next: ASTNode | None = None


@dataclass
class RepeatUntilFrame:
    until: Any = None  # input slot, re-evaluated on every re-entry
    body: ASTNode | None = None
    ret_next: ASTNode | None = None


ControlFrame = Union[IfFrame, RepeatTimesFrame, RepeatUntilFrame]


def _frame_to_dict(frame: ControlFrame) -> dict:
    d: dict[str, Any] = {
        "type": type(frame).__name__,
        "ret_next": frame.ret_next.id if frame.ret_next else None,
    }
    if isinstance(frame, RepeatTimesFrame):
        d["remaining"] = frame.remaining
    if isinstance(frame, (RepeatTimesFrame, RepeatUntilFrame)):
        d["body"] = frame.body.id if frame.body else None
    return d


@dataclass
class WaitState:
    node_id: str
    ticks_remaining: int


@dataclass
class InterpreterState:
    vars: dict[str, Any] = field(default_factory=dict)
    sprite: SpriteState = field(default_factory=SpriteState)
    outputs: list[OutputEvent] = field(default_factory=list)
    halted: bool = False
    halt_reason: HaltReason | None = None
    current: ASTNode | None = None
    call_stack: list[ControlFrame] = field(default_factory=list)
    waiting: WaitState | None = None
    steps: int = 0

    @property
    def step_limit_exceeded(self) -> bool:
        return self.halt_reason == HaltReason.STEP_LIMIT

    def visible_outputs(self) -> list[OutputEvent]:
        """Outputs after the most recent ``clear`` event."""
        last_clear = max(
            (i for i, o in enumerate(self.outputs) if o.kind == constants.OUTPUT_CLEAR),
            default=-1,
        )
        return self.outputs[last_clear + 1 :]

    def snapshot(self) -> dict:
        """Host-facing view: halted flag, vars, sprite and outputs."""
        return {
            "halted": self.halted,
            "halt_reason": self.halt_reason.value if self.halt_reason else None,
            "vars": copy.deepcopy(self.vars),
            "sprite": self.sprite.to_dict(),
            "outputs": [o.to_dict() for o in self.outputs],
        }

    def to_dict(self) -> dict:
        d = self.snapshot()
        d["current"] = self.current.id if self.current else None
        d["call_stack"] = [_frame_to_dict(f) for f in self.call_stack]
        d["waiting"] = (
            {
                "node_id": self.waiting.node_id,
                "ticks_remaining": self.waiting.ticks_remaining,
            }
            if self.waiting
            else None
        )
        d["steps"] = self.steps
        return d


@dataclass(frozen=True)
class StepResult:
    done: bool
    waiting: bool = False
