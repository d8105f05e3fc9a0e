"""Stepwise interpreter — a resumable state machine over an AST.

``step()`` executes at most one statement (or one tick of a ``wait``) and
returns control to the host, which decides the pacing.  Branches and loop
bodies that run out of ``next`` resume the enclosing construct through the
control-frame stack; an empty stack with nowhere to go ends the program.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from . import constants
from .ast_builder import AST, ASTNode
from .evaluator import evaluate, to_bool, to_number, to_text, normalize_number
from .interpreter_types import (
    ControlFrame,
    HaltReason,
    IfFrame,
    InterpreterState,
    OutputEvent,
    RepeatTimesFrame,
    RepeatUntilFrame,
    SpriteState,
    StatementKind,
    StepResult,
    WaitState,
)
from .run_types import ExecutionStats, InterpreterConfig
from .trace_types import ExecutionTrace, TraceStep

logger = logging.getLogger(__name__)

HighlightCallback = Callable[[str], Any]
OutputCallback = Callable[[str, str], Any]
StateCallback = Callable[[dict], Any]

_STATEMENTS_BY_TYPE: dict[str, StatementKind] = {k.value: k for k in StatementKind}


def statement_kind(node_type: str) -> StatementKind | None:
    kind = _STATEMENTS_BY_TYPE.get(node_type)
    if kind is None and node_type.startswith(constants.REPEAT_ENDER_PREFIX):
        return StatementKind.REPEAT_LOOP_ENDER
    return kind


class Interpreter:
    """Executes one AST from its entry node.

    The interpreter owns its state exclusively; several instances may run
    side by side over separate AST snapshots.
    """

    def __init__(
        self,
        ast: AST,
        config: InterpreterConfig = InterpreterConfig(),
        *,
        on_highlight: HighlightCallback | None = None,
        on_output: OutputCallback | None = None,
        on_state: StateCallback | None = None,
        initial_vars: dict[str, Any] | None = None,
    ):
        self.ast = ast
        self.config = config
        self.on_highlight = on_highlight
        self.on_output = on_output
        self.on_state = on_state
        self.state = InterpreterState(
            vars=dict(initial_vars or {}),
            sprite=SpriteState(heading=config.initial_heading),
            current=ast.entry,
        )
        self.wait_ticks = 0
        self.last_node_id: str | None = None
        self._handlers: dict[StatementKind, Callable[[ASTNode], None]] = {
            StatementKind.START: self._exec_passthrough,
            StatementKind.STOP: self._exec_stop,
            StatementKind.SAY: self._exec_say,
            StatementKind.THINK: self._exec_think,
            StatementKind.CLEAR: self._exec_clear,
            StatementKind.MOVE: self._exec_move,
            StatementKind.GO_TO: self._exec_go_to,
            StatementKind.CHANGE_X_BY: self._exec_change_x_by,
            StatementKind.CHANGE_Y_BY: self._exec_change_y_by,
            StatementKind.TURN_CLOCKWISE: self._exec_turn_clockwise,
            StatementKind.TURN_ANTICLOCKWISE: self._exec_turn_anticlockwise,
            StatementKind.POINT_IN: self._exec_point_in,
            StatementKind.SET_VARIABLE: self._exec_set_variable,
            StatementKind.CHANGE_VARIABLE: self._exec_change_variable,
            StatementKind.WAIT: self._exec_wait,
            StatementKind.IF_ELSE: self._exec_if_else,
            StatementKind.REPEAT_TIMES: self._exec_repeat_times,
            StatementKind.REPEAT_UNTIL: self._exec_repeat_until,
            StatementKind.IF_BRANCH_ENDER: self._exec_passthrough,
            StatementKind.REPEAT_LOOP_ENDER: self._exec_passthrough,
        }

    # ── host callbacks ────────────────────────────────────────────

    def _emit(self, callback: Callable[..., Any] | None, *args: Any):
        """Invoke a host callback; its failures are logged and never reach the VM."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Host callback %r failed", callback)

    def _notify_state(self):
        if self.on_state is not None:
            self._emit(self.on_state, self.state.snapshot())

    def _highlight(self, node_id: str):
        self.last_node_id = node_id
        self._emit(self.on_highlight, node_id)

    # ── control surface ───────────────────────────────────────────

    @property
    def halted(self) -> bool:
        return self.state.halted

    def _halt(self, reason: HaltReason):
        if self.state.halted:
            return
        self.state.halted = True
        self.state.halt_reason = reason
        self.state.current = None
        self.state.waiting = None
        if reason == HaltReason.STEP_LIMIT:
            logger.warning(
                "Step limit exceeded after %d steps; program halted", self.state.steps
            )
        else:
            logger.debug("Halted (%s) after %d steps", reason.value, self.state.steps)
        self._notify_state()

    def step(self) -> StepResult:
        """Execute one statement or one wait tick."""
        state = self.state
        self.last_node_id = None
        if state.halted:
            return StepResult(done=True)
        if state.waiting is None and state.current is None:
            self._halt(HaltReason.END_OF_PROGRAM)
            return StepResult(done=True)
        if state.steps >= self.config.max_steps:
            self._halt(HaltReason.STEP_LIMIT)
            return StepResult(done=True)

        state.steps += 1

        if state.waiting is not None:
            return self._tick_wait()

        node = state.current
        self._highlight(node.id)
        if self.config.verbose:
            print(f"[step {state.steps}] {node.type}#{node.id}")

        kind = statement_kind(node.type)
        handler = self._handlers.get(kind, self._exec_passthrough)
        handler(node)

        if state.waiting is not None:
            return StepResult(done=False, waiting=True)
        if not state.halted and state.current is None:
            self._halt(HaltReason.END_OF_PROGRAM)
        return StepResult(done=state.halted)

    def run(self, max_steps: int | None = None) -> InterpreterState:
        """Step until halted; running out of *max_steps* halts with STEP_LIMIT."""
        budget = self.config.max_steps if max_steps is None else max_steps
        taken = 0
        while not self.state.halted and taken < budget:
            self.step()
            taken += 1
        if not self.state.halted:
            self._halt(HaltReason.STEP_LIMIT)
        return self.state

    def run_traced(self, max_steps: int | None = None) -> ExecutionTrace:
        """Like :meth:`run` but records a state snapshot after every step."""
        budget = self.config.max_steps if max_steps is None else max_steps
        initial_state = self.state.to_dict()
        trace_steps: list[TraceStep] = []
        while not self.state.halted and len(trace_steps) < budget:
            result = self.step()
            node = self.ast.get(self.last_node_id) if self.last_node_id else None
            trace_steps.append(
                TraceStep(
                    step_index=len(trace_steps),
                    node_id=self.last_node_id,
                    node_type=node.type if node else None,
                    waiting=result.waiting,
                    state=self.state.to_dict(),
                )
            )
        if not self.state.halted:
            self._halt(HaltReason.STEP_LIMIT)
        return ExecutionTrace(
            steps=trace_steps,
            stats=self.stats(),
            initial_state=initial_state,
            final_state=self.state.to_dict(),
        )

    def stats(self) -> ExecutionStats:
        reason = self.state.halt_reason
        return ExecutionStats(
            steps=self.state.steps,
            outputs=len(self.state.outputs),
            wait_ticks=self.wait_ticks,
            halt_reason=reason.value if reason else "",
            step_limit_exceeded=self.state.step_limit_exceeded,
        )

    # ── frame unwinding ───────────────────────────────────────────

    def _advance(self, node: ASTNode):
        self.state.current = node.next or self._pop_to_next()

    def _pop_to_next(self) -> ASTNode | None:
        """Resume the innermost enclosing construct once a chain runs out."""
        stack = self.state.call_stack
        while stack:
            frame = stack[-1]
            if isinstance(frame, IfFrame):
                stack.pop()
                if frame.ret_next is not None:
                    return frame.ret_next
                continue
            if isinstance(frame, RepeatTimesFrame):
                return self._reenter_repeat_times(frame)
            if isinstance(frame, RepeatUntilFrame):
                return self._reenter_repeat_until(frame)
            stack.pop()
        return None

    def _leave_loop(self, frame: ControlFrame) -> ASTNode | None:
        self.state.call_stack.pop()
        return frame.ret_next or self._pop_to_next()

    def _reenter_repeat_times(self, frame: RepeatTimesFrame) -> ASTNode | None:
        if frame.remaining <= 0 or frame.body is None:
            return self._leave_loop(frame)
        frame.remaining -= 1
        return frame.body

    def _reenter_repeat_until(self, frame: RepeatUntilFrame) -> ASTNode | None:
        if frame.body is None or to_bool(self._eval(frame.until)):
            return self._leave_loop(frame)
        return frame.body

    # ── evaluation helpers ────────────────────────────────────────

    def _eval(self, slot: Any) -> Any:
        return evaluate(slot, self.state, self.ast)

    def _input(self, node: ASTNode, port: str) -> Any:
        return self._eval(node.inputs.get(port))

    def _number(self, node: ASTNode, port: str) -> int | float:
        return to_number(self._input(node, port))

    @staticmethod
    def _loop_body(node: ASTNode) -> ASTNode | None:
        return node.branch(constants.BRANCH_BODY) or node.branch(constants.BRANCH_TRUE)

    # ── statement handlers ────────────────────────────────────────

    def _exec_passthrough(self, node: ASTNode):
        self._advance(node)

    def _exec_stop(self, node: ASTNode):
        self._halt(HaltReason.STOP_BLOCK)

    def _output(self, node: ASTNode, kind: str):
        text = to_text(self._input(node, "text"))
        self.state.outputs.append(OutputEvent(kind=kind, text=text))
        self._emit(self.on_output, text, kind)
        self._advance(node)

    def _exec_say(self, node: ASTNode):
        self._output(node, constants.OUTPUT_SAY)

    def _exec_think(self, node: ASTNode):
        self._output(node, constants.OUTPUT_THINK)

    def _exec_clear(self, node: ASTNode):
        self.state.outputs.append(OutputEvent(kind=constants.OUTPUT_CLEAR, text=""))
        self._notify_state()
        self._advance(node)

    def _exec_move(self, node: ASTNode):
        steps = self._number(node, "steps")
        sprite = self.state.sprite
        rad = math.radians(sprite.heading)
        sprite.x += math.cos(rad) * steps
        sprite.y -= math.sin(rad) * steps
        self._notify_state()
        self._advance(node)

    def _exec_go_to(self, node: ASTNode):
        self.state.sprite.x = self._number(node, "x")
        self.state.sprite.y = self._number(node, "y")
        self._notify_state()
        self._advance(node)

    def _exec_change_x_by(self, node: ASTNode):
        self.state.sprite.x += self._number(node, "dx")
        self._notify_state()
        self._advance(node)

    def _exec_change_y_by(self, node: ASTNode):
        self.state.sprite.y += self._number(node, "dy")
        self._notify_state()
        self._advance(node)

    def _turn_to(self, heading: float, node: ASTNode):
        self.state.sprite.heading = heading % constants.FULL_TURN_DEGREES
        self._notify_state()
        self._advance(node)

    def _exec_turn_clockwise(self, node: ASTNode):
        self._turn_to(self.state.sprite.heading + self._number(node, "degrees"), node)

    def _exec_turn_anticlockwise(self, node: ASTNode):
        self._turn_to(self.state.sprite.heading - self._number(node, "degrees"), node)

    def _exec_point_in(self, node: ASTNode):
        self._turn_to(self._number(node, "degrees"), node)

    def _exec_set_variable(self, node: ASTNode):
        name = to_text(self._input(node, constants.VARIABLE_NAME_PORT))
        value = self._input(node, "value")
        self.state.vars[name] = 0 if value is None else value
        self._notify_state()
        self._advance(node)

    def _exec_change_variable(self, node: ASTNode):
        name = to_text(self._input(node, constants.VARIABLE_NAME_PORT))
        delta = self._number(node, "delta")
        self.state.vars[name] = normalize_number(to_number(self.state.vars.get(name, 0)) + delta)
        self._notify_state()
        self._advance(node)

    def _wait_ticks(self, seconds: float) -> int:
        """Convert a duration to whole ticks, clamped past the step ceiling."""
        ceiling = self.config.max_steps + 1
        raw = float(seconds) * self.config.ticks_per_second
        if not math.isfinite(raw) or raw >= ceiling:
            return ceiling
        # half-up rounding
        return max(1, math.floor(raw + 0.5))

    def _exec_wait(self, node: ASTNode):
        ticks = self._wait_ticks(self._number(node, "seconds"))
        self.wait_ticks += 1
        if ticks == 1:
            self._advance(node)
            return
        self.state.waiting = WaitState(node_id=node.id, ticks_remaining=ticks - 1)

    def _tick_wait(self) -> StepResult:
        waiting = self.state.waiting
        self._highlight(waiting.node_id)
        self.wait_ticks += 1
        waiting.ticks_remaining -= 1
        if waiting.ticks_remaining > 0:
            return StepResult(done=False, waiting=True)

        self.state.waiting = None
        node = self.ast.get(waiting.node_id)
        self.state.current = node.next if node and node.next else self._pop_to_next()
        if self.state.current is None:
            self._halt(HaltReason.END_OF_PROGRAM)
        return StepResult(done=self.state.halted)

    def _exec_if_else(self, node: ASTNode):
        condition = to_bool(self._input(node, "condition"))
        self.state.call_stack.append(IfFrame(ret_next=node.next))
        key = constants.BRANCH_TRUE if condition else constants.BRANCH_FALSE
        self.state.current = node.branch(key) or self._pop_to_next()

    def _exec_repeat_times(self, node: ASTNode):
        times = max(0, math.floor(self._number(node, "times")))
        frame = RepeatTimesFrame(
            remaining=times, body=self._loop_body(node), ret_next=node.next
        )
        self.state.call_stack.append(frame)
        self.state.current = self._reenter_repeat_times(frame)

    def _exec_repeat_until(self, node: ASTNode):
        frame = RepeatUntilFrame(
            until=node.inputs.get("until"),
            body=self._loop_body(node),
            ret_next=node.next,
        )
        self.state.call_stack.append(frame)
        self.state.current = self._reenter_repeat_until(frame)
