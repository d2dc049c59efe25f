"""Calculator definition types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ValueType = Literal["number", "text", "select"]

VALUE_TYPES: tuple[str, ...] = ("number", "text", "select")
DEFAULT_PLACEHOLDER = "Enter value"


@dataclass(frozen=True, slots=True)
class SelectOption:
    value: str
    label: str


@dataclass(frozen=True, slots=True)
class InputField:
    """A value the user supplies to a calculator."""

    id: str
    label: str
    symbol: str
    unit: str = ""
    value_type: ValueType = "number"
    required: bool = True
    min: float | None = None
    max: float | None = None
    step: float | None = None
    placeholder: str = DEFAULT_PLACEHOLDER
    options: tuple[SelectOption, ...] | None = None

    @property
    def display_symbol(self) -> str:
        return self.symbol or self.id


@dataclass(frozen=True, slots=True)
class OutputField:
    """A value computed from ``formula``."""

    id: str
    label: str
    symbol: str
    formula: str
    unit: str = ""
    formula_display: str | None = None
    description: str | None = None

    @property
    def display_symbol(self) -> str:
        return self.symbol or self.id


@dataclass(frozen=True, slots=True)
class Calculator:
    """A persisted calculator definition.

    Outputs are evaluated in declaration order; an output may reference the
    ids of outputs declared before it.
    """

    id: str
    title: str
    description: str
    inputs: tuple[InputField, ...] = field(default_factory=tuple)
    outputs: tuple[OutputField, ...] = field(default_factory=tuple)
    category: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def input(self, input_id: str) -> InputField:
        for item in self.inputs:
            if item.id == input_id:
                return item
        raise KeyError(f"Unknown input '{input_id}'")

    def output(self, output_id: str) -> OutputField:
        for item in self.outputs:
            if item.id == output_id:
                return item
        raise KeyError(f"Unknown output '{output_id}'")

    @property
    def input_ids(self) -> list[str]:
        return [item.id for item in self.inputs]

    @property
    def output_ids(self) -> list[str]:
        return [item.id for item in self.outputs]


__all__ = [
    "Calculator",
    "DEFAULT_PLACEHOLDER",
    "InputField",
    "OutputField",
    "SelectOption",
    "VALUE_TYPES",
    "ValueType",
]
