"""Exports for the calculators core."""

from .builder import (
    BuilderError,
    CalculatorBuilder,
    SetBounds,
    SetDescription,
    SetFormula,
    SetFormulaDisplay,
    SetLabel,
    SetOptions,
    SetPlaceholder,
    SetRequired,
    SetSymbol,
    SetUnit,
    SetValueType,
)
from .documents import (
    CalculatorImportError,
    calculator_from_data,
    export_calculator,
    import_calculator,
    import_many,
    to_document,
)
from .evaluator import evaluate, evaluate_raw, round_result
from .exporters import (
    UnsupportedFormatError,
    calculator_metadata,
    calculator_summary,
    convert_to_format,
    generate_documentation,
)
from .expression import WHITELIST, EvaluationError, parse, referenced_names
from .models import Calculator, InputField, OutputField, SelectOption
from .notation import (
    FormulaValidation,
    NotationResult,
    notation_templates,
    output_notation,
    to_display_notation,
    validate_formula,
)
from .session import CalculationSession, PassResult, SessionState, coerce_input_value, run_pass
from .store import CalculatorNotFoundError, CalculatorStore, DuplicateCalculatorError
from .validation import ValidationResult, validate_calculator

__all__ = [
    "BuilderError",
    "CalculationSession",
    "Calculator",
    "CalculatorBuilder",
    "CalculatorImportError",
    "CalculatorNotFoundError",
    "CalculatorStore",
    "DuplicateCalculatorError",
    "EvaluationError",
    "FormulaValidation",
    "InputField",
    "NotationResult",
    "OutputField",
    "PassResult",
    "SelectOption",
    "SessionState",
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
    "UnsupportedFormatError",
    "ValidationResult",
    "WHITELIST",
    "calculator_from_data",
    "calculator_metadata",
    "calculator_summary",
    "coerce_input_value",
    "convert_to_format",
    "evaluate",
    "evaluate_raw",
    "export_calculator",
    "generate_documentation",
    "import_calculator",
    "import_many",
    "notation_templates",
    "output_notation",
    "parse",
    "referenced_names",
    "round_result",
    "run_pass",
    "to_display_notation",
    "to_document",
    "validate_calculator",
    "validate_formula",
]
