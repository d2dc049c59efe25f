"""Display notation for formulas and formula validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from common.logging import get_logger

from .evaluator import evaluate_raw
from .expression import (
    WHITELIST,
    BinaryOp,
    Call,
    EvaluationError,
    Group,
    Name,
    Node,
    Number,
    UnaryOp,
    iter_identifiers,
    parse,
)
from .models import Calculator, OutputField

logger = get_logger("formulaforge.calculators")

_SCIENTIFIC_RE = re.compile(r"^(?P<mantissa>\d*\.?\d*)[eE](?P<exponent>[+-]?\d+)$")

_SAMPLE_VALUE = 1.0


@dataclass(frozen=True, slots=True)
class NotationResult:
    notation: str
    ok: bool
    errors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FormulaValidation:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)


class _Renderer:
    def __init__(self, symbols: Mapping[str, str]):
        self._symbols = symbols

    def render(self, node: Node) -> str:
        if isinstance(node, Number):
            return self._number(node)
        if isinstance(node, Name):
            return self._symbols.get(node.name) or node.name
        if isinstance(node, Group):
            return f"({self.render(node.body)})"
        if isinstance(node, UnaryOp):
            return f"{node.op}{self.render(node.operand)}"
        if isinstance(node, BinaryOp):
            return self._binary(node)
        if isinstance(node, Call):
            return self._call(node)
        raise EvaluationError("Unsupported expression element")

    def _number(self, node: Number) -> str:
        match = _SCIENTIFIC_RE.match(node.text)
        if match is None:
            return node.text
        exponent = match.group("exponent").lstrip("+")
        return f"{match.group('mantissa')} \\times 10^{{{exponent}}}"

    def _unwrap(self, node: Node) -> str:
        if isinstance(node, Group):
            return self.render(node.body)
        return self.render(node)

    def _binary(self, node: BinaryOp) -> str:
        if node.op == "/":
            return self._division(node)
        if node.op == "*":
            return f"{self.render(node.left)} \\cdot {self.render(node.right)}"
        if node.op == "^":
            return f"{self.render(node.left)}^{{{self._unwrap(node.right)}}}"
        return f"{self.render(node.left)} {node.op} {self.render(node.right)}"

    def _division(self, node: BinaryOp) -> str:
        atoms = (Name, Number)
        if isinstance(node.left, atoms) and isinstance(node.right, atoms):
            return f"\\frac{{{self.render(node.left)}}}{{{self.render(node.right)}}}"
        if isinstance(node.left, Group) and isinstance(node.right, Group):
            return f"\\frac{{{self._unwrap(node.left)}}}{{{self._unwrap(node.right)}}}"
        # Mixed operands stay as slash notation.
        return f"{self.render(node.left)} / {self.render(node.right)}"

    def _call(self, node: Call) -> str:
        args = [self._unwrap(arg) if len(node.args) == 1 else self.render(arg) for arg in node.args]
        name = node.name
        if name == "sqrt" and len(args) == 1:
            return f"\\sqrt{{{args[0]}}}"
        if name == "log" and len(args) == 1:
            return f"\\ln({args[0]})"
        if name == "log" and len(args) == 2:
            return f"\\log_{{{args[1]}}}({args[0]})"
        if name in {"sin", "cos", "tan"} and len(args) == 1:
            return f"\\{name}({args[0]})"
        if name == "abs" and len(args) == 1:
            return f"\\left|{args[0]}\\right|"
        if name == "floor" and len(args) == 1:
            return f"\\lfloor {args[0]} \\rfloor"
        if name == "ceil" and len(args) == 1:
            return f"\\lceil {args[0]} \\rceil"
        return f"\\text{{{name}}}({', '.join(args)})"


def _fallback(formula: str, output_symbol: str, exc: Exception) -> NotationResult:
    return NotationResult(
        notation=f"{output_symbol} = {formula}",
        ok=False,
        errors=(f"Notation conversion error: {exc}",),
    )


def to_display_notation(
    formula: str,
    input_symbols: Mapping[str, str],
    output_symbol: str,
) -> NotationResult:
    """Render ``formula`` as display notation prefixed with ``output_symbol``.

    Identifiers present in ``input_symbols`` are replaced by their symbol;
    an empty symbol keeps the identifier. When the formula cannot be
    converted the raw formula is returned with ``ok`` set to ``False``.
    """

    try:
        tree = parse(formula)
        notation = _Renderer(input_symbols).render(tree)
    except (EvaluationError, RecursionError) as exc:
        logger.warning("Notation conversion failed for %r: %s", formula, exc)
        return _fallback(formula, output_symbol, exc)
    except Exception as exc:
        logger.exception("Unexpected notation conversion failure for %r", formula)
        return _fallback(formula, output_symbol, exc)
    return NotationResult(notation=f"{output_symbol} = {notation}", ok=True)


def notation_symbols(calculator: Calculator, output: OutputField) -> dict[str, str]:
    """Symbols visible to ``output``: every input plus the outputs declared before it."""

    symbols = {item.id: item.display_symbol for item in calculator.inputs}
    for previous in calculator.outputs:
        if previous.id == output.id:
            break
        symbols[previous.id] = previous.display_symbol
    return symbols


def generate_notation(calculator: Calculator, output: OutputField) -> NotationResult:
    return to_display_notation(output.formula, notation_symbols(calculator, output), output.display_symbol)


def output_notation(calculator: Calculator, output: OutputField) -> str:
    """Return the authored ``formula_display`` or a generated notation."""

    if output.formula_display:
        return output.formula_display
    return generate_notation(calculator, output).notation


def validate_formula(
    formula: str,
    input_ids: Iterable[str],
    known_ids: Iterable[str] = (),
) -> FormulaValidation:
    """Check ``formula`` against the declared identifiers.

    Undefined identifiers and trial-evaluation failures are both reported.
    The trial binds every identifier to ``1``.
    """

    if not formula or not formula.strip():
        return FormulaValidation(is_valid=False, errors=("Formula cannot be empty",))

    allowed = list(input_ids) + list(known_ids)
    errors: list[str] = []

    undefined: dict[str, None] = {}
    for name in iter_identifiers(formula):
        if name not in allowed and name not in WHITELIST:
            undefined.setdefault(name, None)
    if undefined:
        errors.append(f"Undefined variables: {', '.join(undefined)}")

    # Undefined names are already reported above.
    sample_scope = {name: _SAMPLE_VALUE for name in [*allowed, *undefined]}
    try:
        evaluate_raw(formula, sample_scope)
    except EvaluationError as exc:
        errors.append(f"Formula syntax error: {exc}")

    return FormulaValidation(is_valid=not errors, errors=tuple(errors))


def notation_templates() -> list[dict[str, str]]:
    """Snippets offered to formula authors."""

    return [
        {"name": "Fraction", "template": "\\frac{numerator}{denominator}", "description": "Create a fraction"},
        {"name": "Square Root", "template": "\\sqrt{expression}", "description": "Square root"},
        {"name": "Natural Log", "template": "\\ln(expression)", "description": "Natural logarithm"},
        {"name": "Power", "template": "base^{exponent}", "description": "Exponentiation"},
        {"name": "Multiplication", "template": "a \\cdot b", "description": "Multiplication dot"},
        {"name": "Scientific Notation", "template": "1.23 \\times 10^{-4}", "description": "Scientific notation"},
        {"name": "Parentheses", "template": "\\left( expression \\right)", "description": "Scaled parentheses"},
        {"name": "Greek Alpha", "template": "\\alpha", "description": "Greek letter alpha"},
        {"name": "Greek Beta", "template": "\\beta", "description": "Greek letter beta"},
        {"name": "Greek Epsilon", "template": "\\varepsilon", "description": "Greek letter epsilon"},
        {"name": "Sum", "template": "\\sum_{i=1}^{n} expression", "description": "Summation"},
        {"name": "Integral", "template": "\\int_{a}^{b} expression \\, dx", "description": "Integral"},
    ]


__all__ = [
    "FormulaValidation",
    "NotationResult",
    "generate_notation",
    "notation_symbols",
    "notation_templates",
    "output_notation",
    "to_display_notation",
    "validate_formula",
]
