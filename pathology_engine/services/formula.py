"""Derived parameters computed from other parameters of the same test.

Formulas are written as ``{Parameter Name}`` references joined by ``+ - * /``
and parentheses, for example ``Globulin = {Total Protein} - {Albumin}``.
Expressions are evaluated by a small recursive-descent parser; nothing is ever
handed to ``eval``.
"""

import logging
import math
import operator
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from pathology_engine.config import settings
from pathology_engine.schemas.report import ResolvedParameter, ResultStatus
from pathology_engine.services.age_units import leading_number

logger = logging.getLogger(__name__)

FORMULA = "formula"

REFERENCE_RE = re.compile(r"\{([^}]+)\}")
ALLOWED_EXPRESSION_RE = re.compile(r"^[0-9+\-*/().\s]+$")
TOKEN_RE = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\S))")
PARENTHESES_RE = re.compile(r"\([^)]*\)")
NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

_OPERATORS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


class FormulaError(Exception):
    """Base class for formulas that cannot produce a value."""


class FormulaSyntaxError(FormulaError):
    pass


class FormulaEvaluationError(FormulaError):
    pass


class UnresolvedReferenceError(FormulaError):
    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(f"Unresolved parameter reference(s): {', '.join(names)}")


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Number | UnaryOp | BinaryOp


@dataclass(frozen=True)
class Token:
    kind: str  # "number" or "op"
    text: str


def tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    position = 0
    stripped = expression.rstrip()
    while position < len(stripped):
        match = TOKEN_RE.match(stripped, position)
        if not match:
            raise FormulaSyntaxError(f"Unexpected input at {position}: {expression!r}")
        number, symbol = match.groups()
        if number is not None:
            tokens.append(Token("number", number))
        elif symbol in _OPERATORS or symbol in "()":
            tokens.append(Token("op", symbol))
        else:
            raise FormulaSyntaxError(f"Unexpected character {symbol!r} in {expression!r}")
        position = match.end()
    return tokens


class _Parser:
    """expr := term (('+'|'-') term)*; term := factor (('*'|'/') factor)*;
    factor := ('+'|'-') factor | number | '(' expr ')'"""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _take(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of expression")
        self.index += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty expression")
        node = self._expression()
        trailing = self._peek()
        if trailing is not None:
            raise FormulaSyntaxError(f"Unexpected token {trailing.text!r}")
        return node

    def _next_is(self, *symbols: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "op" and token.text in symbols

    def _expression(self) -> Node:
        node = self._term()
        while self._next_is("+", "-"):
            op = self._take().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while self._next_is("*", "/"):
            op = self._take().text
            node = BinaryOp(op, node, self._factor())
        return node

    def _factor(self) -> Node:
        token = self._take()
        if token.kind == "number":
            return Number(float(token.text))
        if token.text in ("+", "-"):
            return UnaryOp(token.text, self._factor())
        if token.text == "(":
            node = self._expression()
            closing = self._take()
            if closing.text != ")":
                raise FormulaSyntaxError(f"Expected ')' but found {closing.text!r}")
            return node
        raise FormulaSyntaxError(f"Unexpected token {token.text!r}")


def parse(expression: str) -> Node:
    return _Parser(tokenize(expression)).parse()


def evaluate(node: Node) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, UnaryOp):
        value = evaluate(node.operand)
        return -value if node.op == "-" else value
    left = evaluate(node.left)
    right = evaluate(node.right)
    if node.op == "/" and right == 0:
        raise FormulaEvaluationError("Division by zero")
    result = _OPERATORS[node.op](left, right)
    if not math.isfinite(result):
        raise FormulaEvaluationError(f"Non-finite result {result}")
    return result


def name_keys(name: str) -> tuple[str, str, str, str]:
    """Lookup keys for a parameter name: verbatim, alnum-only, and both without "(...)"."""
    verbatim = str(name or "").strip().lower()
    stripped = PARENTHESES_RE.sub("", verbatim).strip()
    return (
        verbatim,
        NON_ALNUM_RE.sub("", verbatim),
        stripped,
        NON_ALNUM_RE.sub("", stripped),
    )


def build_value_lookup(parameters: Iterable[ResolvedParameter]) -> dict[str, float]:
    lookup: dict[str, float] = {}
    for param in parameters:
        value = leading_number(param.result)
        if value is None:
            continue
        for key in name_keys(param.name):
            lookup[key] = value
    return lookup


def strip_label(expression: str) -> str:
    text = str(expression or "").strip()
    if "=" in text:
        text = text[text.rindex("=") + 1:].strip()
    return text.replace("×", "*").replace("÷", "/")


def plain_number(value: float) -> str:
    """Decimal text of a float; exponent notation is outside the formula grammar."""
    return format(Decimal(repr(value)), "f")


def substitute_references(expression: str, lookup: dict[str, float]) -> tuple[str, list[str]]:
    """Replace every ``{name}`` with its value; return the text and unresolved names."""
    unresolved: list[str] = []

    def replace(match: re.Match) -> str:
        raw = match.group(1).strip()
        for key in name_keys(raw):
            if key in lookup:
                return plain_number(lookup[key])
        constant = leading_number(raw)
        if constant is not None:
            return plain_number(constant)
        unresolved.append(raw)
        return "0"

    return REFERENCE_RE.sub(replace, expression), unresolved


def compute_formula(expression: str, lookup: dict[str, float]) -> float:
    text, unresolved = substitute_references(strip_label(expression), lookup)
    if unresolved:
        raise UnresolvedReferenceError(unresolved)
    if not ALLOWED_EXPRESSION_RE.match(text):
        raise FormulaSyntaxError(f"Expression contains disallowed characters: {text!r}")
    return evaluate(parse(text))


def round_half_up(value: float, places: int = 2) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def is_ratio(param: ResolvedParameter) -> bool:
    return "ratio" in param.unit.lower() or "ratio" in param.name.lower()


def format_result(value: float, param: ResolvedParameter) -> str:
    rounded = round_half_up(value)
    if is_ratio(param):
        return f"{rounded:.2f}"
    if rounded.is_integer():
        return str(int(rounded))
    return repr(rounded)


def _clear(param: ResolvedParameter) -> bool:
    changed = bool(param.result)
    param.result = ""
    param.status = ResultStatus.PENDING
    return changed


def apply_formulas(
    parameters: list[ResolvedParameter],
    on_result: Callable[[ResolvedParameter], None] | None = None,
    max_iterations: int | None = None,
) -> int:
    """Evaluate every formula row until values settle; return the passes run.

    Rows whose formula cannot be evaluated are cleared and left pending.
    ``on_result`` is called for each row that receives a value so the caller
    can refresh its status.
    """
    limit = settings.formula_max_iterations if max_iterations is None else max_iterations
    passes = 0
    for _ in range(limit):
        passes += 1
        lookup = build_value_lookup(parameters)
        changed = False
        for param in parameters:
            if param.result_type.lower() != FORMULA:
                continue
            if not param.formula_expr:
                changed = _clear(param) or changed
                continue
            try:
                value = compute_formula(param.formula_expr, lookup)
            except FormulaError as exc:
                logger.warning("Formula for %r not evaluated: %s", param.name, exc)
                changed = _clear(param) or changed
                continue
            new_result = format_result(value, param)
            logger.debug("Formula %r -> %s", param.name, new_result)
            if param.result != new_result:
                param.result = new_result
                changed = True
            if on_result is not None:
                on_result(param)
        if not changed:
            break
    return passes


def clear_dependent_formulas(parameters: Iterable[ResolvedParameter], changed: ResolvedParameter) -> list[ResolvedParameter]:
    """Blank every formula row whose expression mentions ``changed`` by name."""
    name_key = NON_ALNUM_RE.sub("", changed.name.lower())
    if not name_key:
        return []
    cleared = []
    for param in parameters:
        if param is changed or param.result_type.lower() != FORMULA:
            continue
        expr = param.formula_expr.lower()
        if name_key in expr or name_key in NON_ALNUM_RE.sub("", expr):
            _clear(param)
            cleared.append(param)
    return cleared
