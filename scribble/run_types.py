"""Run pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class InterpreterConfig:
    """Groups interpreter execution configuration."""

    max_steps: int = constants.DEFAULT_MAX_STEPS
    ticks_per_second: float = constants.DEFAULT_TICKS_PER_SECOND
    initial_heading: float = constants.DEFAULT_HEADING
    verbose: bool = False


@dataclass
class ExecutionStats:
    """Returned execution metrics from a run."""

    steps: int = 0
    outputs: int = 0
    wait_ticks: int = 0
    halt_reason: str = ""
    step_limit_exceeded: bool = False


@dataclass
class PipelineStats:
    """Timing and size statistics for each pipeline stage."""

    block_count: int = 0
    edge_count: int = 0

    # Stage timings (seconds)
    snapshot_time: float = 0.0
    build_time: float = 0.0
    execution_time: float = 0.0
    total_time: float = 0.0

    # Output sizes
    ast_node_count: int = 0
    root_count: int = 0
    entry: str = ""

    # Execution stats
    execution_steps: int = 0
    output_count: int = 0
    halt_reason: str = ""

    def report(self) -> str:
        lines = [
            "═══ Pipeline Statistics ═══",
            f"  Graph: {self.block_count} blocks, {self.edge_count} edges",
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]

        stages = [
            ("Snapshot", self.snapshot_time, ""),
            (
                "Build AST",
                self.build_time,
                f"{self.ast_node_count} nodes, {self.root_count} roots",
            ),
            (
                "Execute",
                self.execution_time,
                f"{self.execution_steps} steps, {self.output_count} outputs",
            ),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(f"  Entry: {self.entry or '(none)'}, halted by: {self.halt_reason}")
        return "\n".join(lines)
