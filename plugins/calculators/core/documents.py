"""JSON document form of calculator definitions."""

from __future__ import annotations

import json
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Literal

import pydantic
from pydantic import BaseModel, Field

from .models import DEFAULT_PLACEHOLDER, Calculator, InputField, OutputField, SelectOption
from .notation import generate_notation
from .validation import validate_calculator

REQUIRED_FIELDS: tuple[str, ...] = ("title", "description", "inputs", "outputs")


class CalculatorImportError(ValueError):
    """Raised when a document cannot be turned into a calculator."""


class _Document(BaseModel):
    # Exports carry extra metadata such as ``exported_at``.
    model_config = pydantic.ConfigDict(extra="ignore", str_strip_whitespace=True)


class OptionDocument(_Document):
    value: str
    label: str


class InputDocument(_Document):
    id: str
    label: str = ""
    symbol: str = ""
    unit: str = ""
    type: Literal["number", "text", "select"] = "number"
    required: bool = True
    min: float | None = None
    max: float | None = None
    step: float | None = None
    placeholder: str = DEFAULT_PLACEHOLDER
    options: list[OptionDocument] | None = None


class OutputDocument(_Document):
    id: str
    label: str = ""
    symbol: str = ""
    unit: str = ""
    formula: str = ""
    formula_display: str | None = None
    description: str | None = None


class CalculatorDocument(_Document):
    id: str
    title: str
    description: str
    category: str | None = None
    inputs: list[InputDocument] = Field(default_factory=list)
    outputs: list[OutputDocument] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(title: str) -> str:
    """Derive a calculator id from its title."""

    slug = re.sub(r"\s+", "-", title.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def generate_field_id(prefix: Literal["input", "output"]) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _fill_defaults(data: dict[str, Any]) -> dict[str, Any]:
    data = dict(data)
    if not data.get("id"):
        data["id"] = slugify(str(data["title"]))
    inputs = []
    for raw in data["inputs"]:
        if not isinstance(raw, dict):
            raise CalculatorImportError("Each input must be an object")
        item = dict(raw)
        if not item.get("id"):
            item["id"] = generate_field_id("input")
        if not item.get("type"):
            item["type"] = "number"
        if item.get("required") is None:
            item["required"] = True
        if not item.get("placeholder"):
            item["placeholder"] = DEFAULT_PLACEHOLDER
        inputs.append(item)
    outputs = []
    for raw in data["outputs"]:
        if not isinstance(raw, dict):
            raise CalculatorImportError("Each output must be an object")
        item = dict(raw)
        if not item.get("id"):
            item["id"] = generate_field_id("output")
        if item.get("formula") is None:
            item["formula"] = ""
        outputs.append(item)
    data["inputs"] = inputs
    data["outputs"] = outputs
    return data


def from_document(document: CalculatorDocument) -> Calculator:
    return Calculator(
        id=document.id,
        title=document.title,
        description=document.description,
        category=document.category or None,
        inputs=tuple(
            InputField(
                id=item.id,
                label=item.label,
                symbol=item.symbol,
                unit=item.unit,
                value_type=item.type,
                required=item.required,
                min=item.min,
                max=item.max,
                step=item.step,
                placeholder=item.placeholder,
                options=tuple(SelectOption(value=o.value, label=o.label) for o in item.options)
                if item.options is not None
                else None,
            )
            for item in document.inputs
        ),
        outputs=tuple(
            OutputField(
                id=item.id,
                label=item.label,
                symbol=item.symbol,
                unit=item.unit,
                formula=item.formula,
                formula_display=item.formula_display or None,
                description=item.description,
            )
            for item in document.outputs
        ),
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


def to_document(calculator: Calculator) -> dict[str, Any]:
    """Plain ``dict`` form using the persisted JSON field names."""

    inputs = []
    for item in calculator.inputs:
        entry: dict[str, Any] = {
            "id": item.id,
            "label": item.label,
            "symbol": item.symbol,
            "unit": item.unit,
            "type": item.value_type,
            "required": item.required,
            "placeholder": item.placeholder,
        }
        for key in ("min", "max", "step"):
            value = getattr(item, key)
            if value is not None:
                entry[key] = value
        if item.options is not None:
            entry["options"] = [{"value": o.value, "label": o.label} for o in item.options]
        inputs.append(entry)

    outputs = []
    for output in calculator.outputs:
        entry = {
            "id": output.id,
            "label": output.label,
            "symbol": output.symbol,
            "unit": output.unit,
            "formula": output.formula,
        }
        if output.formula_display:
            entry["formula_display"] = output.formula_display
        if output.description:
            entry["description"] = output.description
        outputs.append(entry)

    document: dict[str, Any] = {
        "id": calculator.id,
        "title": calculator.title,
        "description": calculator.description,
        "inputs": inputs,
        "outputs": outputs,
    }
    if calculator.category:
        document["category"] = calculator.category
    if calculator.created_at:
        document["created_at"] = calculator.created_at
    if calculator.updated_at:
        document["updated_at"] = calculator.updated_at
    return document


def calculator_from_data(data: Any, *, validate: bool = True) -> Calculator:
    """Build a calculator from decoded JSON, filling defaults."""

    if not isinstance(data, dict):
        raise CalculatorImportError("Calculator document must be a JSON object")
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise CalculatorImportError(f"Missing required fields: {', '.join(missing)}")
    if not isinstance(data["inputs"], list):
        raise CalculatorImportError("Inputs must be an array")
    if not isinstance(data["outputs"], list):
        raise CalculatorImportError("Outputs must be an array")

    try:
        document = CalculatorDocument.model_validate(_fill_defaults(data))
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise CalculatorImportError(f"Invalid calculator document: {problems}") from exc

    calculator = from_document(document)
    if validate:
        result = validate_calculator(calculator)
        if not result.is_valid:
            raise CalculatorImportError(f"Validation failed: {', '.join(result.errors)}")
    return calculator


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise CalculatorImportError(f"Failed to import calculator: invalid JSON ({exc})") from exc


def import_calculator(text: str) -> Calculator:
    """Parse a single calculator from JSON text."""

    data = _decode(text)
    try:
        return calculator_from_data(data)
    except CalculatorImportError as exc:
        raise CalculatorImportError(f"Failed to import calculator: {exc}") from exc


def import_many(text: str) -> list[Calculator]:
    """Parse one document or an array of documents; any failure rejects all."""

    data = _decode(text)
    items = data if isinstance(data, list) else [data]
    calculators: list[Calculator] = []
    for index, item in enumerate(items, start=1):
        try:
            calculators.append(calculator_from_data(item))
        except CalculatorImportError as exc:
            prefix = f"Calculator {index}: " if len(items) > 1 else ""
            raise CalculatorImportError(f"Failed to import calculator: {prefix}{exc}") from exc
    return calculators


def export_calculator(calculator: Calculator) -> str:
    """Serialize ``calculator`` for sharing.

    Outputs without an authored ``formula_display`` get a generated one.
    """

    document = to_document(calculator)
    document["exported_at"] = utc_now()
    for entry, output in zip(document["outputs"], calculator.outputs):
        if not entry.get("formula_display"):
            entry["formula_display"] = generate_notation(calculator, output).notation
    return json.dumps(document, indent=2, ensure_ascii=False)


def dump_documents(calculators: Iterable[Calculator]) -> str:
    return json.dumps([to_document(item) for item in calculators], indent=2, ensure_ascii=False)


__all__ = [
    "CalculatorDocument",
    "CalculatorImportError",
    "InputDocument",
    "OptionDocument",
    "OutputDocument",
    "REQUIRED_FIELDS",
    "calculator_from_data",
    "dump_documents",
    "export_calculator",
    "from_document",
    "generate_field_id",
    "import_calculator",
    "import_many",
    "slugify",
    "to_document",
    "utc_now",
]
