"""Authoring support for new calculator definitions.

Field edits are expressed as small update objects instead of
``(field_name, value)`` pairs, so each edit is checked against the entity it
targets before it is applied.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Sequence, Union

from .documents import generate_field_id, slugify, utc_now
from .models import VALUE_TYPES, Calculator, InputField, OutputField, SelectOption, ValueType
from .notation import generate_notation, notation_symbols, to_display_notation
from .validation import validate_calculator


class BuilderError(ValueError):
    """Raised for an edit that does not apply or a draft that cannot be built."""

    def __init__(self, message: str, *, errors: Sequence[str] = ()):
        super().__init__(message)
        self.errors = tuple(errors)


@dataclass(frozen=True, slots=True)
class SetLabel:
    value: str


@dataclass(frozen=True, slots=True)
class SetSymbol:
    value: str


@dataclass(frozen=True, slots=True)
class SetUnit:
    value: str


@dataclass(frozen=True, slots=True)
class SetValueType:
    value: ValueType


@dataclass(frozen=True, slots=True)
class SetRequired:
    value: bool


@dataclass(frozen=True, slots=True)
class SetBounds:
    min: float | None = None
    max: float | None = None
    step: float | None = None


@dataclass(frozen=True, slots=True)
class SetPlaceholder:
    value: str


@dataclass(frozen=True, slots=True)
class SetOptions:
    options: tuple[SelectOption, ...]


@dataclass(frozen=True, slots=True)
class SetFormula:
    value: str


@dataclass(frozen=True, slots=True)
class SetFormulaDisplay:
    value: str | None


@dataclass(frozen=True, slots=True)
class SetDescription:
    value: str | None


InputUpdate = Union[SetLabel, SetSymbol, SetUnit, SetValueType, SetRequired, SetBounds, SetPlaceholder, SetOptions]
OutputUpdate = Union[SetLabel, SetSymbol, SetUnit, SetFormula, SetFormulaDisplay, SetDescription]

_OPERAND_END_RE = re.compile(r"[A-Za-z0-9_)]$")


def apply_input_update(item: InputField, update: InputUpdate) -> InputField:
    if isinstance(update, SetLabel):
        return replace(item, label=update.value)
    if isinstance(update, SetSymbol):
        return replace(item, symbol=update.value)
    if isinstance(update, SetUnit):
        return replace(item, unit=update.value)
    if isinstance(update, SetValueType):
        if update.value not in VALUE_TYPES:
            raise BuilderError(f"Unknown input type '{update.value}'")
        return replace(item, value_type=update.value)
    if isinstance(update, SetRequired):
        return replace(item, required=bool(update.value))
    if isinstance(update, SetBounds):
        if update.min is not None and update.max is not None and update.min > update.max:
            raise BuilderError("Minimum cannot exceed maximum")
        if update.step is not None and update.step <= 0:
            raise BuilderError("Step must be greater than zero")
        return replace(item, min=update.min, max=update.max, step=update.step)
    if isinstance(update, SetPlaceholder):
        return replace(item, placeholder=update.value)
    if isinstance(update, SetOptions):
        values = [option.value for option in update.options]
        if len(values) != len(set(values)):
            raise BuilderError("Option values must be unique")
        return replace(item, options=tuple(update.options))
    raise BuilderError(f"{type(update).__name__} cannot be applied to an input")


def apply_output_update(output: OutputField, update: OutputUpdate) -> OutputField:
    if isinstance(update, SetLabel):
        return replace(output, label=update.value)
    if isinstance(update, SetSymbol):
        return replace(output, symbol=update.value)
    if isinstance(update, SetUnit):
        return replace(output, unit=update.value)
    if isinstance(update, SetFormula):
        return replace(output, formula=update.value)
    if isinstance(update, SetFormulaDisplay):
        return replace(output, formula_display=update.value or None)
    if isinstance(update, SetDescription):
        return replace(output, description=update.value or None)
    raise BuilderError(f"{type(update).__name__} cannot be applied to an output")


class CalculatorBuilder:
    """Mutable draft behind the calculator authoring form."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.title = ""
        self.description = ""
        self.category: str | None = None
        self.inputs: list[InputField] = []
        self.outputs: list[OutputField] = []
        self.errors: tuple[str, ...] = ()

    def load(self, calculator: Calculator) -> None:
        self.title = calculator.title
        self.description = calculator.description
        self.category = calculator.category
        self.inputs = list(calculator.inputs)
        self.outputs = list(calculator.outputs)
        self.errors = ()

    def _check_index(self, items: list, index: int, kind: str) -> None:
        if not 0 <= index < len(items):
            raise BuilderError(f"No {kind} at position {index}")

    def add_input(self) -> InputField:
        item = InputField(id=generate_field_id("input"), label="", symbol="")
        self.inputs.append(item)
        return item

    def remove_input(self, index: int) -> None:
        self._check_index(self.inputs, index, "input")
        del self.inputs[index]

    def update_input(self, index: int, update: InputUpdate) -> InputField:
        self._check_index(self.inputs, index, "input")
        self.inputs[index] = apply_input_update(self.inputs[index], update)
        return self.inputs[index]

    def add_output(self) -> OutputField:
        output = OutputField(id=generate_field_id("output"), label="", symbol="", formula="")
        self.outputs.append(output)
        return output

    def remove_output(self, index: int) -> None:
        self._check_index(self.outputs, index, "output")
        del self.outputs[index]

    def update_output(self, index: int, update: OutputUpdate) -> OutputField:
        self._check_index(self.outputs, index, "output")
        self.outputs[index] = apply_output_update(self.outputs[index], update)
        return self.outputs[index]

    def append_token_to_formula(self, index: int, token: str) -> OutputField:
        """Append ``token``, joining with ``*`` when the formula ends in an operand."""

        self._check_index(self.outputs, index, "output")
        current = self.outputs[index].formula
        if current and _OPERAND_END_RE.search(current):
            formula = f"{current} * {token}"
        else:
            formula = f"{current}{token}"
        return self.update_output(index, SetFormula(formula))

    def preview_notation(self, index: int) -> str:
        self._check_index(self.outputs, index, "output")
        output = self.outputs[index]
        if not output.formula:
            return ""
        symbols = notation_symbols(self._draft(), output)
        return to_display_notation(output.formula, symbols, output.symbol or f"output_{index}").notation

    def _draft(self) -> Calculator:
        return Calculator(
            id=slugify(self.title),
            title=self.title.strip(),
            description=self.description.strip(),
            category=self.category or None,
            inputs=tuple(self.inputs),
            outputs=tuple(self.outputs),
        )

    def validate(self) -> bool:
        result = validate_calculator(self._draft())
        self.errors = result.errors
        return result.is_valid

    @property
    def is_complete(self) -> bool:
        return bool(self.title.strip() and self.description.strip() and self.inputs and self.outputs)

    def build(self) -> Calculator:
        """Return the finished calculator or raise :class:`BuilderError`."""

        if not self.validate():
            raise BuilderError("Calculator is not valid", errors=self.errors)
        draft = self._draft()
        outputs = []
        for output in draft.outputs:
            if not output.formula_display and output.formula:
                conversion = generate_notation(draft, output)
                if conversion.ok:
                    output = replace(output, formula_display=conversion.notation)
            outputs.append(output)
        now = utc_now()
        return replace(draft, outputs=tuple(outputs), created_at=now, updated_at=now)


__all__ = [
    "BuilderError",
    "CalculatorBuilder",
    "InputUpdate",
    "OutputUpdate",
    "SetBounds",
    "SetDescription",
    "SetFormula",
    "SetFormulaDisplay",
    "SetLabel",
    "SetOptions",
    "SetPlaceholder",
    "SetRequired",
    "SetSymbol",
    "SetUnit",
    "SetValueType",
    "apply_input_update",
    "apply_output_update",
]
