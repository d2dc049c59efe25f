import logging
from dataclasses import replace

import pytest

from plugins.calculators.core import (
    CalculationSession,
    InputField,
    OutputField,
    SelectOption,
    SessionState,
    coerce_input_value,
    run_pass,
)
from plugins.calculators.core.session import validate_input


def test_outputs_can_reference_earlier_outputs(ohms_law):
    outcome = run_pass(ohms_law, {"v": 10, "i": 2})
    assert outcome.errors == {}
    assert outcome.results == {"resistance": 5, "power": 20, "doublePower": 40}


def test_results_follow_declaration_order(ohms_law):
    outcome = run_pass(ohms_law, {"v": 1, "i": 3})
    assert list(outcome.results) == ["resistance", "power", "doublePower"]
    assert outcome.results["resistance"] == 0.3333


def test_out_of_order_reference_fails_only_that_output(ohms_law, caplog):
    reordered = replace(ohms_law, outputs=(ohms_law.outputs[2],) + ohms_law.outputs[:2])
    with caplog.at_level(logging.WARNING, logger="formulaforge"):
        outcome = run_pass(reordered, {"v": 10, "i": 2})
    assert outcome.results == {"doublePower": 0, "resistance": 5, "power": 20}
    assert "doublePower" in caplog.text


def test_non_finite_output_is_zero_and_later_outputs_still_run(ohms_law):
    outcome = run_pass(ohms_law, {"v": 10, "i": 0})
    assert outcome.results == {"resistance": 0, "power": 0, "doublePower": 0}


def test_input_errors_block_all_outputs(ohms_law):
    outcome = run_pass(ohms_law, {"v": -1, "i": 500})
    assert outcome.results == {}
    assert outcome.errors == {
        "v": "Value must be at least 0",
        "i": "Value must be at most 100",
    }


def test_missing_required_input(ohms_law):
    outcome = run_pass(ohms_law, {"v": 1})
    assert outcome.errors == {"i": "This field is required"}


def test_optional_input_may_be_missing(ohms_law):
    optional = replace(ohms_law.inputs[1], required=False)
    calc = replace(
        ohms_law,
        inputs=(ohms_law.inputs[0], optional),
        outputs=(OutputField(id="double", label="Double", symbol="D", formula="v * 2"),),
    )
    assert run_pass(calc, {"v": 4}).results == {"double": 8}


def test_validate_input_formats_fractional_bounds():
    item = InputField(id="x", label="X", symbol="x", min=0.5, max=2.25)
    assert validate_input(item, 0.1) == "Value must be at least 0.5"
    assert validate_input(item, 3) == "Value must be at most 2.25"
    assert validate_input(item, 1) is None


def test_coerce_input_value_handles_form_text():
    number = InputField(id="x", label="X", symbol="x")
    assert coerce_input_value(number, "12.5") == 12.5
    assert coerce_input_value(number, "  ") is None
    assert coerce_input_value(number, "abc") is None
    assert coerce_input_value(number, float("nan")) is None
    assert coerce_input_value(number, 3) == 3.0


def test_coerce_input_value_restricts_select_options():
    choice = InputField(
        id="k",
        label="Material",
        symbol="k",
        value_type="select",
        options=(SelectOption(value="0.5", label="Wood"), SelectOption(value="205", label="Steel")),
    )
    assert coerce_input_value(choice, "205") == 205.0
    assert coerce_input_value(choice, "7") is None


def test_session_recalculates_on_every_change(ohms_law):
    session = CalculationSession(ohms_law)
    first = session.update_input_value("v", 10)
    assert first.errors == {"i": "This field is required"}
    assert session.results == {}

    second = session.update_input_value("i", "2")
    assert second.errors == {}
    assert session.results["doublePower"] == 40
    assert session.state is SessionState.IDLE


def test_failed_validation_clears_stale_results(ohms_law):
    session = CalculationSession(ohms_law)
    session.set_values({"v": 10, "i": 2})
    assert session.results
    session.update_input_value("i", "")
    assert session.results == {}
    assert session.errors == {"i": "This field is required"}


def test_session_rejects_unknown_inputs(ohms_law):
    session = CalculationSession(ohms_law)
    with pytest.raises(KeyError):
        session.update_input_value("resistance", 1)


def test_reset_returns_to_idle(ohms_law):
    session = CalculationSession(ohms_law)
    session.set_values({"v": 10, "i": 2})
    session.reset()
    assert session.values == {}
    assert session.results == {}
    assert session.errors == {}
    assert session.state is SessionState.IDLE


def test_failed_output_is_not_bound_for_dependents(ohms_law):
    calc = replace(
        ohms_law,
        outputs=(
            OutputField(id="broken", label="Broken", symbol="B", formula="v + ("),
            OutputField(id="shifted", label="Shifted", symbol="S", formula="broken + 5"),
            OutputField(id="power", label="Power", symbol="P", formula="v * i"),
        ),
    )
    outcome = run_pass(calc, {"v": 1, "i": 2})
    assert outcome.results == {"broken": 0, "shifted": 0, "power": 2}


def test_overly_long_formula_fails_only_its_output(ohms_law, caplog):
    calc = replace(
        ohms_law,
        outputs=(
            OutputField(id="total", label="Total", symbol="T", formula="+".join(["v"] * 1000)),
            OutputField(id="power", label="Power", symbol="P", formula="v * i"),
        ),
    )
    with caplog.at_level(logging.WARNING, logger="formulaforge"):
        outcome = run_pass(calc, {"v": 1, "i": 2})
    assert outcome.results == {"total": 0, "power": 2}
    assert "nested too deeply" in caplog.text
