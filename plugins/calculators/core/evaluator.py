"""Numeric evaluation of calculator formulas."""

from __future__ import annotations

import math
from typing import Mapping

from common.logging import get_logger

from .expression import (
    CONSTANTS,
    FUNCTIONS,
    BinaryOp,
    Call,
    EvaluationError,
    Group,
    Name,
    Node,
    Number,
    UnaryOp,
    parse,
)

logger = get_logger("formulaforge.calculators")

_DECIMALS = 4
_SMALL_MAGNITUDE = 0.0001
# 10 ** exponent underflows to 0 below about 1e-308, so subnormal results are
# shifted into the normal range before the mantissa is taken.
_SUBNORMAL_SHIFT = 300

Scope = Mapping[str, float]


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _power(base: float, exponent: float) -> float:
    try:
        value = base ** exponent
    except OverflowError:
        return math.inf
    except ZeroDivisionError:
        return math.inf
    if isinstance(value, complex):
        return math.nan
    return value


def _call(name: str, args: list[float]) -> float:
    entry = FUNCTIONS.get(name)
    if entry is None:
        raise EvaluationError(f"Unknown function {name}")
    func, min_args, max_args = entry
    if not min_args <= len(args) <= max_args:
        expected = str(min_args) if min_args == max_args else f"{min_args} to {max_args}"
        raise EvaluationError(f"Function {name} expects {expected} argument(s), got {len(args)}")
    try:
        return float(func(*args))
    except OverflowError:
        return math.inf
    except (ValueError, ZeroDivisionError):
        # Domain faults such as sqrt(-1) or log(0) are not syntax problems.
        return math.nan


def _eval_node(node: Node, scope: Scope) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Name):
        if node.name in scope:
            return float(scope[node.name])
        if node.name in CONSTANTS:
            return CONSTANTS[node.name]
        if node.name in FUNCTIONS:
            raise EvaluationError(f"Function {node.name} must be called with arguments")
        raise EvaluationError(f"Undefined symbol {node.name}")
    if isinstance(node, Group):
        return _eval_node(node.body, scope)
    if isinstance(node, UnaryOp):
        operand = _eval_node(node.operand, scope)
        return -operand if node.op == "-" else operand
    if isinstance(node, BinaryOp):
        left = _eval_node(node.left, scope)
        right = _eval_node(node.right, scope)
        if node.op == "+":
            return left + right
        if node.op == "-":
            return left - right
        if node.op == "*":
            return left * right
        if node.op == "/":
            return _divide(left, right)
        if node.op == "^":
            return _power(left, right)
        raise EvaluationError(f"Unsupported operator {node.op}")  # pragma: no cover - parser guards
    if isinstance(node, Call):
        return _call(node.name, [_eval_node(arg, scope) for arg in node.args])
    raise EvaluationError("Unsupported expression element")  # pragma: no cover - parser guards


def _round_half_away(value: float, decimals: int = _DECIMALS) -> float:
    factor = 10 ** decimals
    if abs(value) * factor >= 2 ** 52:
        # Already beyond float precision at this many decimals.
        return value
    return math.copysign(math.floor(abs(value) * factor + 0.5) / factor, value)


def round_result(value: float) -> float:
    """Apply the display rounding policy to a raw result.

    Non-finite values collapse to ``0``. Magnitudes below ``0.0001`` keep
    four decimals of their mantissa; everything else keeps four decimals.
    """

    if not math.isfinite(value):
        return 0.0
    if value == 0:
        return 0.0
    if abs(value) < _SMALL_MAGNITUDE:
        exponent = math.floor(math.log10(abs(value)))
        shift = _SUBNORMAL_SHIFT if exponent < -_SUBNORMAL_SHIFT else 0
        scale = 10.0 ** (exponent + shift)
        mantissa = (value * 10.0 ** shift) / scale
        return _round_half_away(mantissa) * scale / 10.0 ** shift
    return _round_half_away(value)


def evaluate_raw(formula: str, scope: Scope | None = None) -> float:
    """Evaluate ``formula`` and return the unrounded result."""

    tree = parse(formula)
    try:
        return _eval_node(tree, scope or {})
    except RecursionError as exc:
        raise EvaluationError("Formula is nested too deeply") from exc


def evaluate(formula: str, scope: Scope | None = None) -> float:
    """Evaluate ``formula`` against ``scope`` and return the rounded result.

    Syntax problems and unresolved names raise :class:`EvaluationError`.
    Non-finite results are logged and reported as ``0``.
    """

    raw = evaluate_raw(formula, scope)
    if not math.isfinite(raw):
        logger.warning("Formula %r produced a non-finite result (%s); using 0", formula, raw)
        return 0.0
    return round_result(raw)


__all__ = ["EvaluationError", "Scope", "evaluate", "evaluate_raw", "round_result"]
