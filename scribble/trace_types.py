"""Trace data types for step-by-step execution replay."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .run_types import ExecutionStats


@dataclass(frozen=True)
class TraceStep:
    """A single step in the execution trace.

    Captures the node the step highlighted, whether the step was a wait
    tick, and a plain-data snapshot of the interpreter state after the step.
    """

    step_index: int
    node_id: str | None
    node_type: str | None
    waiting: bool
    state: dict[str, Any]


@dataclass(frozen=True)
class ExecutionTrace:
    """Complete trace of an execution run.

    Contains the initial state (before any step), a list of TraceStep
    snapshots for each step that was actually taken, and the state after the
    run halted (including a step-limit halt, which happens after the last
    recorded step).
    """

    steps: list[TraceStep] = field(default_factory=list)
    stats: ExecutionStats = field(default_factory=ExecutionStats)
    initial_state: dict[str, Any] = field(default_factory=dict)
    final_state: dict[str, Any] = field(default_factory=dict)
