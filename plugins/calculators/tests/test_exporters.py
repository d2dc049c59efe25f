import csv
import io
import json
from dataclasses import replace

import pytest
import yaml

from plugins.calculators.core import (
    OutputField,
    UnsupportedFormatError,
    calculator_metadata,
    calculator_summary,
    convert_to_format,
    generate_documentation,
)
from plugins.calculators.core.exporters import calculator_complexity


def test_json_export_includes_display_notation(ohms_law):
    document = json.loads(convert_to_format(ohms_law, "json"))
    assert document["id"] == "ohms-law"
    assert document["outputs"][1]["formula_display"] == "P = V \\cdot I"


def test_yaml_export_preserves_field_order(ohms_law):
    text = convert_to_format(ohms_law, "yaml")
    document = yaml.safe_load(text)
    assert list(document)[:3] == ["id", "title", "description"]
    assert document["outputs"][0]["unit"] == "Ω"


def test_csv_export_has_one_row_per_field(ohms_law):
    rows = list(csv.reader(io.StringIO(convert_to_format(ohms_law, "csv"))))
    assert rows[0] == ["Type", "Label", "Symbol", "Unit", "Formula", "Formula Display"]
    assert [row[0] for row in rows[1:]] == ["Input", "Input", "Output", "Output", "Output"]
    assert rows[3][4] == "v/i"


def test_unknown_format_is_rejected(ohms_law):
    with pytest.raises(UnsupportedFormatError, match="Unsupported format: xml"):
        convert_to_format(ohms_law, "xml")


def test_documentation_lists_inputs_and_outputs(ohms_law):
    markdown = generate_documentation(ohms_law)
    assert markdown.startswith("# Ohm's Law")
    assert "**Category:** Electronics" in markdown
    assert "   - Maximum: 100" in markdown
    assert "   - Formula: `power*2`" in markdown


def test_metadata_summarizes_calculator(ohms_law):
    metadata = calculator_metadata(ohms_law)
    assert metadata["input_count"] == 2
    assert metadata["output_count"] == 3
    assert metadata["summary"] == "Calculate Resistance, Power, Double power from Voltage, Current"
    assert calculator_summary(ohms_law) == metadata["summary"]
    assert metadata["complexity"] == 3


def test_complexity_is_capped(ohms_law):
    busy = OutputField(id="x", label="X", symbol="X", formula="sqrt(v) + sqrt(i) + abs(v - i) * (v + i) / 2")
    assert calculator_complexity(replace(ohms_law, outputs=(busy,))) == 10
