"""Alternate renderings of calculator definitions for sharing and listing."""

from __future__ import annotations

import csv
import io
import re
from typing import Any, Literal

import yaml

from .documents import export_calculator, to_document
from .models import Calculator

ExportFormat = Literal["json", "yaml", "csv"]

_MAX_COMPLEXITY = 10
_OPERATOR_RE = re.compile(r"[-+*/^]")
_FUNCTION_RE = re.compile(r"(?:Math\.)?\b(?:sqrt|log|sin|cos|tan|pow|abs|floor|ceil)\s*\(")


class UnsupportedFormatError(ValueError):
    """Raised for an export format that is not offered."""


def to_yaml(calculator: Calculator) -> str:
    return yaml.safe_dump(to_document(calculator), sort_keys=False, allow_unicode=True)


def to_csv(calculator: Calculator) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Type", "Label", "Symbol", "Unit", "Formula", "Formula Display"])
    for item in calculator.inputs:
        writer.writerow(["Input", item.label, item.symbol, item.unit, "", ""])
    for output in calculator.outputs:
        writer.writerow(
            ["Output", output.label, output.symbol, output.unit, output.formula, output.formula_display or ""]
        )
    return buffer.getvalue()


def convert_to_format(calculator: Calculator, fmt: str) -> str:
    if fmt == "json":
        return export_calculator(calculator)
    if fmt == "yaml":
        return to_yaml(calculator)
    if fmt == "csv":
        return to_csv(calculator)
    raise UnsupportedFormatError(f"Unsupported format: {fmt}")


def generate_documentation(calculator: Calculator) -> str:
    """Markdown reference page for a calculator."""

    lines = [f"# {calculator.title}", "", calculator.description, ""]
    if calculator.category:
        lines += [f"**Category:** {calculator.category}", ""]

    lines += ["## Inputs", ""]
    for index, item in enumerate(calculator.inputs, start=1):
        lines.append(f"{index}. **{item.label}** ({item.symbol})")
        lines.append(f"   - Unit: {item.unit}")
        lines.append(f"   - Type: {item.value_type}")
        lines.append(f"   - Required: {'Yes' if item.required else 'No'}")
        if item.min is not None:
            lines.append(f"   - Minimum: {item.min:g}")
        if item.max is not None:
            lines.append(f"   - Maximum: {item.max:g}")
        lines.append("")

    lines += ["## Outputs", ""]
    for index, output in enumerate(calculator.outputs, start=1):
        lines.append(f"{index}. **{output.label}** ({output.symbol})")
        lines.append(f"   - Unit: {output.unit}")
        lines.append(f"   - Formula: `{output.formula}`")
        if output.formula_display:
            lines.append(f"   - Display: ${output.formula_display}$")
        lines.append("")
    return "\n".join(lines)


def calculator_complexity(calculator: Calculator) -> int:
    score = 0
    for output in calculator.outputs:
        score += len(_OPERATOR_RE.findall(output.formula))
        score += len(_FUNCTION_RE.findall(output.formula))
        score += output.formula.count("(") + output.formula.count(")")
    return min(score, _MAX_COMPLEXITY)


def calculator_summary(calculator: Calculator) -> str:
    inputs = ", ".join(item.label for item in calculator.inputs)
    outputs = ", ".join(item.label for item in calculator.outputs)
    return f"Calculate {outputs} from {inputs}"


def calculator_metadata(calculator: Calculator) -> dict[str, Any]:
    return {
        "id": calculator.id,
        "title": calculator.title,
        "description": calculator.description,
        "category": calculator.category,
        "input_count": len(calculator.inputs),
        "output_count": len(calculator.outputs),
        "complexity": calculator_complexity(calculator),
        "summary": calculator_summary(calculator),
        "last_updated": calculator.updated_at,
    }


__all__ = [
    "ExportFormat",
    "UnsupportedFormatError",
    "calculator_complexity",
    "calculator_metadata",
    "calculator_summary",
    "convert_to_format",
    "generate_documentation",
    "to_csv",
    "to_yaml",
]
