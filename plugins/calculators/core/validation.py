"""Whole-calculator validation used before a definition is accepted."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Calculator
from .notation import validate_formula


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()


def validate_calculator(calculator: Calculator) -> ValidationResult:
    errors: list[str] = []

    if not calculator.title.strip():
        errors.append("Title is required")
    if not calculator.description.strip():
        errors.append("Description is required")
    if not calculator.inputs:
        errors.append("At least one input is required")
    if not calculator.outputs:
        errors.append("At least one output is required")

    input_ids: list[str] = []
    for index, item in enumerate(calculator.inputs, start=1):
        prefix = f"Input {index}"
        if not item.id.strip():
            errors.append(f"{prefix}: Id is required")
        elif item.id in input_ids:
            errors.append(f"{prefix}: Duplicate id '{item.id}'")
        input_ids.append(item.id)
        if not item.label.strip():
            errors.append(f"{prefix}: Label is required")
        if not item.symbol.strip():
            errors.append(f"{prefix}: Symbol is required")
        if item.min is not None and item.max is not None and item.min > item.max:
            errors.append(f"{prefix}: Minimum cannot exceed maximum")
        if item.value_type == "select" and not item.options:
            errors.append(f"{prefix}: Select inputs need at least one option")

    preceding: list[str] = []
    for index, output in enumerate(calculator.outputs, start=1):
        prefix = f"Output {index}"
        if not output.id.strip():
            errors.append(f"{prefix}: Id is required")
        elif output.id in preceding:
            errors.append(f"{prefix}: Duplicate id '{output.id}'")
        elif output.id in input_ids:
            errors.append(f"{prefix}: Id '{output.id}' collides with an input")
        if not output.label.strip():
            errors.append(f"{prefix}: Label is required")
        if not output.symbol.strip():
            errors.append(f"{prefix}: Symbol is required")
        if not output.formula.strip():
            errors.append(f"{prefix}: Formula is required")
        else:
            # Only outputs declared earlier are in scope when this one runs.
            check = validate_formula(output.formula, input_ids, known_ids=preceding)
            if not check.is_valid:
                errors.append(f"{prefix}: {', '.join(check.errors)}")
        preceding.append(output.id)

    return ValidationResult(is_valid=not errors, errors=tuple(errors))


__all__ = ["ValidationResult", "validate_calculator"]
