"""Recalculation passes over a calculator's outputs."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from common.logging import get_logger

from .evaluator import evaluate
from .expression import EvaluationError
from .models import Calculator, InputField

logger = get_logger("formulaforge.calculators")

InputValues = Mapping[str, "float | None"]


class SessionState(enum.Enum):
    IDLE = "idle"
    COMPUTING = "computing"


@dataclass(slots=True)
class PassResult:
    results: dict[str, float] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"results": dict(self.results), "errors": dict(self.errors)}


def _format_bound(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.12g}"


def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def coerce_input_value(item: InputField, raw: Any) -> float | None:
    """Convert a raw form value for ``item`` into a bound number.

    Blank and unparseable values unbind the input.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
        if item.value_type == "select" and item.options:
            allowed = {option.value for option in item.options}
            if raw not in allowed:
                return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


def validate_input(item: InputField, value: float | None) -> str | None:
    """Return a user facing message when ``value`` violates ``item``'s constraints."""

    if _is_missing(value):
        if item.required:
            return "This field is required"
        return None
    if item.min is not None and value < item.min:
        return f"Value must be at least {_format_bound(item.min)}"
    if item.max is not None and value > item.max:
        return f"Value must be at most {_format_bound(item.max)}"
    return None


def run_pass(calculator: Calculator, values: InputValues) -> PassResult:
    """Validate inputs, then evaluate every output in declaration order.

    Each computed output is bound into the scope before the next output is
    evaluated. A failing output reports ``0`` but is never bound, so outputs
    that reference it fail too rather than computing from a placeholder.
    """

    outcome = PassResult()
    for item in calculator.inputs:
        message = validate_input(item, values.get(item.id))
        if message:
            outcome.errors[item.id] = message
    if outcome.errors:
        return outcome

    scope: dict[str, float] = {}
    for item in calculator.inputs:
        value = values.get(item.id)
        if not _is_missing(value):
            scope[item.id] = float(value)
    for output in calculator.outputs:
        try:
            value = evaluate(output.formula, scope)
        except EvaluationError as exc:
            logger.warning("Error calculating %s in %s: %s", output.id, calculator.id, exc)
            # A failed output stays unbound so dependents fail instead of using 0.
            outcome.results[output.id] = 0.0
            continue
        outcome.results[output.id] = value
        scope[output.id] = value
    return outcome


class CalculationSession:
    """Holds the bound input values of one calculator and its latest results.

    Every change to a bound value triggers a complete pass; results from a
    previous pass never survive a pass that fails input validation.
    """

    def __init__(self, calculator: Calculator):
        self.calculator = calculator
        self.values: dict[str, float | None] = {}
        self.results: dict[str, float] = {}
        self.errors: dict[str, str] = {}
        self.state = SessionState.IDLE

    def _check_input(self, input_id: str) -> InputField:
        return self.calculator.input(input_id)

    def update_input_value(self, input_id: str, value: Any) -> PassResult:
        item = self._check_input(input_id)
        self.values[input_id] = coerce_input_value(item, value)
        return self.calculate()

    def set_values(self, values: Mapping[str, Any]) -> PassResult:
        for input_id, value in values.items():
            item = self._check_input(input_id)
            self.values[input_id] = coerce_input_value(item, value)
        return self.calculate()

    def calculate(self) -> PassResult:
        self.state = SessionState.COMPUTING
        try:
            outcome = run_pass(self.calculator, self.values)
        finally:
            self.state = SessionState.IDLE
        self.results = dict(outcome.results)
        self.errors = dict(outcome.errors)
        logger.debug(
            "Calculated %s: %d result(s), %d error(s)",
            self.calculator.id,
            len(self.results),
            len(self.errors),
        )
        return outcome

    def reset(self) -> None:
        self.values.clear()
        self.results.clear()
        self.errors.clear()
        self.state = SessionState.IDLE


__all__ = [
    "CalculationSession",
    "PassResult",
    "SessionState",
    "coerce_input_value",
    "run_pass",
    "validate_input",
]
