"""Tokenizer and recursive-descent parser for calculator formulas.

The same tree is consumed by the evaluator, the notation converter and the
formula validator, so every consumer agrees on what a formula means.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Iterator, Union


class EvaluationError(ValueError):
    """Raised when a formula cannot be parsed or evaluated."""


_MAX_FORMULA_LENGTH = 2048

# Authors frequently write JavaScript style ``Math.sqrt(x)``; the namespace is dropped.
_NAMESPACE_PREFIX = "Math."

_TOKEN_RE = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>(?:Math\.)?[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>\*\*|[-+*/^(),])
  | (?P<space>\s+)
    """,
    re.VERBOSE,
)


def _safe_log(value: float, base: float | None = None) -> float:
    if base is None:
        return math.log(value)
    return math.log(value, base)


# name -> (callable, minimum args, maximum args)
FUNCTIONS: dict[str, tuple[Callable[..., float], int, int]] = {
    "sqrt": (math.sqrt, 1, 1),
    "log": (_safe_log, 1, 2),
    "sin": (math.sin, 1, 1),
    "cos": (math.cos, 1, 1),
    "tan": (math.tan, 1, 1),
    "pow": (math.pow, 2, 2),
    "abs": (abs, 1, 1),
    "floor": (math.floor, 1, 1),
    "ceil": (math.ceil, 1, 1),
}

CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e}

WHITELIST = frozenset(FUNCTIONS) | frozenset(CONSTANTS)


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True, slots=True)
class Number:
    value: float
    text: str


@dataclass(frozen=True, slots=True)
class Name:
    name: str


@dataclass(frozen=True, slots=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True, slots=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class Group:
    """Explicit parentheses in the source formula."""

    body: "Node"


Node = Union[Number, Name, UnaryOp, BinaryOp, Call, Group]


def tokenize(formula: str) -> list[Token]:
    """Split ``formula`` into tokens, raising :class:`EvaluationError` on stray characters."""

    tokens: list[Token] = []
    position = 0
    length = len(formula)
    while position < length:
        match = _TOKEN_RE.match(formula, position)
        if match is None:
            raise EvaluationError(f"Unexpected character '{formula[position]}' at position {position}")
        kind = match.lastgroup or ""
        text = match.group()
        if kind == "name" and text.startswith(_NAMESPACE_PREFIX):
            text = text[len(_NAMESPACE_PREFIX):]
        if kind == "op" and text == "**":
            text = "^"
        if kind != "space":
            tokens.append(Token(kind=kind, text=text, position=match.start()))
        position = match.end()
    return tokens


def iter_identifiers(formula: str) -> Iterator[str]:
    """Yield every identifier token in ``formula`` without parsing it.

    Used by the validator so undefined names are reported even when the
    formula as a whole does not parse.
    """

    for match in _TOKEN_RE.finditer(formula):
        if match.lastgroup == "name":
            name = match.group()
            if name.startswith(_NAMESPACE_PREFIX):
                name = name[len(_NAMESPACE_PREFIX):]
            yield name


class _Parser:
    def __init__(self, tokens: list[Token]):
        self._tokens = tokens
        self._index = 0

    def _peek(self) -> Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _accept(self, *texts: str) -> Token | None:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in texts:
            return self._advance()
        return None

    def _expect(self, text: str) -> Token:
        token = self._accept(text)
        if token is None:
            found = self._peek()
            if found is None:
                raise EvaluationError(f"Expected '{text}' but the formula ended")
            raise EvaluationError(
                f"Expected '{text}' but found '{found.text}' at position {found.position}"
            )
        return token

    def parse(self) -> Node:
        if not self._tokens:
            raise EvaluationError("Formula cannot be empty")
        node = self._expression()
        trailing = self._peek()
        if trailing is not None:
            raise EvaluationError(f"Unexpected token '{trailing.text}' at position {trailing.position}")
        return node

    def _expression(self) -> Node:
        node = self._term()
        while True:
            token = self._accept("+", "-")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            token = self._accept("*", "/")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._unary())

    def _unary(self) -> Node:
        token = self._accept("+", "-")
        if token is not None:
            return UnaryOp(token.text, self._unary())
        return self._power()

    def _power(self) -> Node:
        base = self._primary()
        if self._accept("^") is not None:
            # Right associative; the exponent may carry its own sign.
            return BinaryOp("^", base, self._unary())
        return base

    def _primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise EvaluationError("Unexpected end of formula")
        if token.kind == "number":
            self._advance()
            return Number(float(token.text), token.text)
        if token.kind == "name":
            self._advance()
            if self._accept("(") is not None:
                return Call(token.text, self._arguments())
            return Name(token.text)
        if self._accept("(") is not None:
            body = self._expression()
            self._expect(")")
            return Group(body)
        raise EvaluationError(f"Unexpected token '{token.text}' at position {token.position}")

    def _arguments(self) -> tuple[Node, ...]:
        if self._accept(")") is not None:
            return ()
        args = [self._expression()]
        while self._accept(",") is not None:
            args.append(self._expression())
        self._expect(")")
        return tuple(args)


def parse(formula: str) -> Node:
    """Parse ``formula`` into an expression tree."""

    if not isinstance(formula, str) or not formula.strip():
        raise EvaluationError("Formula cannot be empty")
    if len(formula) > _MAX_FORMULA_LENGTH:
        raise EvaluationError("Formula is too long")
    try:
        return _Parser(tokenize(formula)).parse()
    except RecursionError as exc:
        raise EvaluationError("Formula is nested too deeply") from exc


def walk(node: Node) -> Iterator[Node]:
    yield node
    if isinstance(node, UnaryOp):
        yield from walk(node.operand)
    elif isinstance(node, BinaryOp):
        yield from walk(node.left)
        yield from walk(node.right)
    elif isinstance(node, Call):
        for arg in node.args:
            yield from walk(arg)
    elif isinstance(node, Group):
        yield from walk(node.body)


def referenced_names(node: Node) -> list[str]:
    """Return variable names used by ``node`` in first-seen order."""

    seen: dict[str, None] = {}
    for child in walk(node):
        if isinstance(child, Name):
            seen.setdefault(child.name, None)
    return list(seen)


__all__ = [
    "BinaryOp",
    "CONSTANTS",
    "Call",
    "EvaluationError",
    "FUNCTIONS",
    "Group",
    "Name",
    "Node",
    "Number",
    "Token",
    "UnaryOp",
    "WHITELIST",
    "iter_identifiers",
    "parse",
    "referenced_names",
    "tokenize",
    "walk",
]
