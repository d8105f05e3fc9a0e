"""Expression evaluator — values of reporter sub-trees.

Reporters are pure: evaluation never mutates interpreter state, so a node
may be evaluated any number of times within one step.  Runtime anomalies
(non-numeric operands, division by zero, undeclared variables, dangling
references) resolve through coercion and defaults, never exceptions.
"""

from __future__ import annotations

import logging
import math
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from . import constants
from .ast_builder import AST, ASTNode, InputRef

if TYPE_CHECKING:
    from .interpreter_types import InterpreterState

logger = logging.getLogger(__name__)


class ReporterKind(str, Enum):
    VARIABLE = "variable"
    PLUS = "plus_operator"
    MINUS = "minus_operator"
    MULTIPLY = "multiply_operator"
    DIVIDE = "divide_operator"
    MOD = "mod_operator"
    GT = "gt_operator"
    GTE = "gte_operator"
    LT = "lt_operator"
    LTE = "lte_operator"
    EQ = "eq_operator"
    ET = "et_operator"  # legacy spelling of EQ
    AND = "and_operator"
    OR = "or_operator"
    NOT = "not_operator"


_REPORTERS_BY_TYPE: dict[str, ReporterKind] = {k.value: k for k in ReporterKind}


# ── Coercions ────────────────────────────────────────────────────


# whole floats beyond this magnitude stay floats
_EXACT_INT_LIMIT = 2**53
_FLOAT_MAX = sys.float_info.max


def normalize_number(n: float) -> int | float:
    if (
        isinstance(n, float)
        and math.isfinite(n)
        and n.is_integer()
        and abs(n) <= _EXACT_INT_LIMIT
    ):
        return int(n)
    return n


def _maybe_number(x: Any) -> int | float | None:
    """Return *x* as a finite number, or None when it has no numeric reading."""
    if isinstance(x, bool):
        return int(x)
    if isinstance(x, int):
        return x if abs(x) <= _FLOAT_MAX else None
    if isinstance(x, float):
        return x if math.isfinite(x) else None
    if x is None:
        return 0
    if isinstance(x, str):
        text = x.strip()
        if text == "":
            return 0
        if "_" in text:
            return None
        try:
            n = float(text)
        except ValueError:
            return None
        return normalize_number(n) if math.isfinite(n) else None
    return None


def to_number(x: Any) -> int | float:
    """Numeric coercion used by arithmetic and comparisons; non-numeric → 0."""
    n = _maybe_number(x)
    return 0 if n is None else n


def to_bool(x: Any) -> bool:
    return bool(x)


def to_text(x: Any) -> str:
    """String form used for concatenation and output text."""
    if x is None:
        return ""
    if isinstance(x, bool):
        return "true" if x else "false"
    if isinstance(x, float):
        return str(normalize_number(x))
    return str(x)


def add_values(a: Any, b: Any) -> Any:
    """``+`` adds when both sides read as numbers, otherwise concatenates."""
    na = _maybe_number(a)
    nb = _maybe_number(b)
    if na is not None and nb is not None:
        return normalize_number(na + nb)
    return to_text(a) + to_text(b)


def loose_equals(a: Any, b: Any) -> bool:
    """Cross-type equality: numeric when both sides are numeric, else by text.

    ``"3" == 3`` is true.  Empty strings and None are not numeric here, so
    ``"" == 0`` is false.
    """
    na = None if a is None or a == "" else _maybe_number(a)
    nb = None if b is None or b == "" else _maybe_number(b)
    if na is not None and nb is not None:
        return na == nb
    return to_text(a) == to_text(b)


def _safe_div(a: float, b: float) -> int | float:
    return 0 if b == 0 else normalize_number(a / b)


def _safe_mod(a: float, b: float) -> int | float:
    return 0 if b == 0 else normalize_number(a % b)


class Operators:
    """Binary and unary reporter semantics keyed by reporter kind."""

    NUMERIC_TABLE: dict[ReporterKind, Callable[[Any, Any], Any]] = {
        ReporterKind.MINUS: lambda a, b: normalize_number(a - b),
        ReporterKind.MULTIPLY: lambda a, b: normalize_number(a * b),
        ReporterKind.DIVIDE: _safe_div,
        ReporterKind.MOD: _safe_mod,
        ReporterKind.GT: lambda a, b: a > b,
        ReporterKind.GTE: lambda a, b: a >= b,
        ReporterKind.LT: lambda a, b: a < b,
        ReporterKind.LTE: lambda a, b: a <= b,
    }

    RAW_TABLE: dict[ReporterKind, Callable[[Any, Any], Any]] = {
        ReporterKind.PLUS: add_values,
        ReporterKind.EQ: loose_equals,
        ReporterKind.ET: loose_equals,
        ReporterKind.AND: lambda a, b: to_bool(a) and to_bool(b),
        ReporterKind.OR: lambda a, b: to_bool(a) or to_bool(b),
    }

    @classmethod
    def eval_binary(cls, kind: ReporterKind, a: Any, b: Any) -> Any:
        numeric = cls.NUMERIC_TABLE.get(kind)
        if numeric is not None:
            return numeric(to_number(a), to_number(b))
        raw = cls.RAW_TABLE.get(kind)
        if raw is not None:
            return raw(a, b)
        return None


def reporter_kind(node_type: str) -> ReporterKind | None:
    return _REPORTERS_BY_TYPE.get(node_type)


def evaluate(slot: Any, state: InterpreterState, ast: AST) -> Any:
    """Produce the concrete value of an input slot.

    Literals were already coerced by the builder and are returned verbatim;
    an :class:`InputRef` is resolved against *ast* and evaluated.
    """
    return _evaluate(slot, state, ast, frozenset())


def _evaluate(slot: Any, state: InterpreterState, ast: AST, active: frozenset[str]) -> Any:
    if not isinstance(slot, InputRef):
        return slot
    node = ast.get(slot.block_id)
    if node is None or node.id in active:
        logger.debug("Unresolvable reporter reference %s", slot.block_id)
        return None
    return _evaluate_node(node, state, ast, active | {node.id})


def _evaluate_node(
    node: ASTNode, state: InterpreterState, ast: AST, active: frozenset[str]
) -> Any:
    kind = reporter_kind(node.type)
    if kind is None:
        return None

    def operand(port: str) -> Any:
        return _evaluate(node.inputs.get(port), state, ast, active)

    if kind == ReporterKind.VARIABLE:
        name = to_text(operand(constants.VARIABLE_NAME_PORT))
        return state.vars.get(name, 0)
    if kind == ReporterKind.NOT:
        return not to_bool(operand("a"))
    return Operators.eval_binary(kind, operand("a"), operand("b"))
