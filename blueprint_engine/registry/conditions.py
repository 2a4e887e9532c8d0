"""Boolean inclusion conditions for blueprint files and dependencies.

A condition is a small immutable expression tree (``Const``, ``Eq``, ``In``,
``Exists``, ``Not``, ``And``, ``Or``) evaluated by a pure interpreter over a
resolved variable map.  Conditions are written in manifests either as text::

    database.driver != "" and auth.type in ["jwt", "session"]
    architecture == "clean" and not exists(auth.type)
    with_examples

or in mapping form::

    {"and": [{"eq": ["architecture", "clean"]}, {"exists": "database.driver"}]}

Both forms parse to the same tree.  A bare identifier means ``name == true``.
"""

from __future__ import annotations

import ast
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


Scalar = str | int | bool


class ConditionSyntaxError(ValueError):
    """Raised when a condition cannot be parsed."""


class UnresolvedReference(LookupError):
    """Raised when a condition names a variable absent from the variable map."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"undefined variable(s): {', '.join(names)}")


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


class Condition:
    """Base node.  ``evaluate`` checks every reference before evaluating."""

    def evaluate(self, variables: Mapping[str, Any]) -> bool:
        missing = sorted(name for name in self.references() if name not in variables)
        if missing:
            raise UnresolvedReference(missing)
        return self._evaluate(variables)

    def references(self) -> frozenset[str]:
        """Names that must be defined for this condition to evaluate."""
        return frozenset()

    def mentions(self) -> frozenset[str]:
        """Every variable name in the tree, ``exists`` operands included."""
        return self.references()

    def to_dict(self) -> Any:
        raise NotImplementedError

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Const(Condition):
    value: bool

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        return self.value

    def to_dict(self) -> Any:
        return self.value

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Eq(Condition):
    name: str
    value: Scalar

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        return _same(variables[self.name], self.value)

    def references(self) -> frozenset[str]:
        return frozenset({self.name})

    def to_dict(self) -> Any:
        return {"eq": [self.name, self.value]}

    def __str__(self) -> str:
        return f"{self.name} == {_literal(self.value)}"


@dataclass(frozen=True)
class In(Condition):
    name: str
    values: tuple[Scalar, ...]

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        actual = variables[self.name]
        return any(_same(actual, candidate) for candidate in self.values)

    def references(self) -> frozenset[str]:
        return frozenset({self.name})

    def to_dict(self) -> Any:
        return {"in": [self.name, list(self.values)]}

    def __str__(self) -> str:
        return f"{self.name} in [{', '.join(_literal(v) for v in self.values)}]"


@dataclass(frozen=True)
class Exists(Condition):
    """True when the variable is defined and neither ``None`` nor ``""``."""

    name: str

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        value = variables.get(self.name)
        return value is not None and value != ""

    def mentions(self) -> frozenset[str]:
        return frozenset({self.name})

    def to_dict(self) -> Any:
        return {"exists": self.name}

    def __str__(self) -> str:
        return f"exists({self.name})"


@dataclass(frozen=True)
class Not(Condition):
    operand: Condition

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        return not self.operand._evaluate(variables)

    def references(self) -> frozenset[str]:
        return self.operand.references()

    def mentions(self) -> frozenset[str]:
        return self.operand.mentions()

    def to_dict(self) -> Any:
        return {"not": self.operand.to_dict()}

    def __str__(self) -> str:
        return f"not ({self.operand})"


@dataclass(frozen=True)
class And(Condition):
    operands: tuple[Condition, ...]

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        return all(op._evaluate(variables) for op in self.operands)

    def references(self) -> frozenset[str]:
        return frozenset().union(*(op.references() for op in self.operands))

    def mentions(self) -> frozenset[str]:
        return frozenset().union(*(op.mentions() for op in self.operands))

    def to_dict(self) -> Any:
        return {"and": [op.to_dict() for op in self.operands]}

    def __str__(self) -> str:
        return " and ".join(f"({op})" for op in self.operands)


@dataclass(frozen=True)
class Or(Condition):
    operands: tuple[Condition, ...]

    def _evaluate(self, variables: Mapping[str, Any]) -> bool:
        return any(op._evaluate(variables) for op in self.operands)

    def references(self) -> frozenset[str]:
        return frozenset().union(*(op.references() for op in self.operands))

    def mentions(self) -> frozenset[str]:
        return frozenset().union(*(op.mentions() for op in self.operands))

    def to_dict(self) -> Any:
        return {"or": [op.to_dict() for op in self.operands]}

    def __str__(self) -> str:
        return " or ".join(f"({op})" for op in self.operands)


ALWAYS = Const(True)


def _same(actual: Any, expected: Scalar) -> bool:
    # bool is an int subclass; True must not equal 1 here.
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    return actual == expected


def _literal(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


# ---------------------------------------------------------------------------
# Text grammar
# ---------------------------------------------------------------------------
#
#   expr     := and_expr ("or" and_expr)*
#   and_expr := not_expr ("and" not_expr)*
#   not_expr := "not" not_expr | atom
#   atom     := "(" expr ")" | "true" | "false" | "exists" "(" NAME ")"
#             | NAME [("==" | "!=") literal | ["not"] "in" list]
#   list     := "[" [literal ("," literal)*] "]"

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<number>-?\d+)
      | (?P<op>==|!=|[()\[\],])
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    )
    """,
    re.VERBOSE,
)

_KEYWORDS = frozenset({"and", "or", "not", "in", "true", "false", "exists"})


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


def _tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    end = len(source.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(source, pos)
        if match is None or match.end() == pos:
            raise ConditionSyntaxError(
                f"unexpected character {source[pos:pos + 1]!r} at offset {pos} in {source!r}"
            )
        kind = match.lastgroup or ""
        text = match.group(kind)
        start = match.start(kind)
        if kind == "name" and text in _KEYWORDS:
            kind = "keyword"
        tokens.append(_Token(kind, text, start))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = _tokenize(source)
        self.index = 0

    # -- token helpers -------------------------------------------------------

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _at(self, kind: str, text: str | None = None) -> bool:
        token = self._peek()
        return token is not None and token.kind == kind and (text is None or token.text == text)

    def _take(self, kind: str, text: str | None = None) -> _Token:
        token = self._peek()
        if token is None or token.kind != kind or (text is not None and token.text != text):
            wanted = text or kind
            found = "end of input" if token is None else repr(token.text)
            raise ConditionSyntaxError(f"expected {wanted}, found {found} in {self.source!r}")
        self.index += 1
        return token

    # -- grammar ---------------------------------------------------------------

    def parse(self) -> Condition:
        if not self.tokens:
            return ALWAYS
        node = self._expr()
        token = self._peek()
        if token is not None:
            raise ConditionSyntaxError(
                f"unexpected {token.text!r} at offset {token.pos} in {self.source!r}"
            )
        return node

    def _expr(self) -> Condition:
        operands = [self._and_expr()]
        while self._at("keyword", "or"):
            self.index += 1
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else Or(tuple(operands))

    def _and_expr(self) -> Condition:
        operands = [self._not_expr()]
        while self._at("keyword", "and"):
            self.index += 1
            operands.append(self._not_expr())
        return operands[0] if len(operands) == 1 else And(tuple(operands))

    def _not_expr(self) -> Condition:
        if self._at("keyword", "not"):
            self.index += 1
            return Not(self._not_expr())
        return self._atom()

    def _atom(self) -> Condition:
        if self._at("op", "("):
            self.index += 1
            node = self._expr()
            self._take("op", ")")
            return node
        if self._at("keyword", "true") or self._at("keyword", "false"):
            return Const(self._take("keyword").text == "true")
        if self._at("keyword", "exists"):
            self.index += 1
            self._take("op", "(")
            name = self._take("name").text
            self._take("op", ")")
            return Exists(name)

        name = self._take("name").text
        if self._at("op", "=="):
            self.index += 1
            return Eq(name, self._literal())
        if self._at("op", "!="):
            self.index += 1
            return Not(Eq(name, self._literal()))
        if self._at("keyword", "in"):
            self.index += 1
            return In(name, self._list())
        if self._at("keyword", "not") and self._next_is("keyword", "in"):
            self.index += 2
            return Not(In(name, self._list()))
        return Eq(name, True)

    def _next_is(self, kind: str, text: str) -> bool:
        nxt = self.index + 1
        return nxt < len(self.tokens) and self.tokens[nxt].kind == kind and self.tokens[nxt].text == text

    def _list(self) -> tuple[Scalar, ...]:
        self._take("op", "[")
        values: list[Scalar] = []
        if not self._at("op", "]"):
            values.append(self._literal())
            while self._at("op", ","):
                self.index += 1
                values.append(self._literal())
        self._take("op", "]")
        return tuple(values)

    def _literal(self) -> Scalar:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError(f"expected a literal, found end of input in {self.source!r}")
        self.index += 1
        if token.kind == "string":
            return ast.literal_eval(token.text)
        if token.kind == "number":
            return int(token.text)
        if token.kind == "keyword" and token.text in ("true", "false"):
            return token.text == "true"
        raise ConditionSyntaxError(f"expected a literal, found {token.text!r} in {self.source!r}")


# ---------------------------------------------------------------------------
# Public parsing API
# ---------------------------------------------------------------------------


def parse_condition(raw: Any) -> Condition:
    """Parse a manifest condition (text, mapping, bool or ``None``) into a tree."""
    if raw is None:
        return ALWAYS
    if isinstance(raw, Condition):
        return raw
    if isinstance(raw, bool):
        return Const(raw)
    if isinstance(raw, str):
        return _Parser(raw).parse()
    if isinstance(raw, Mapping):
        return _from_mapping(raw)
    raise ConditionSyntaxError(f"unsupported condition type {type(raw).__name__}")


def _from_mapping(raw: Mapping[str, Any]) -> Condition:
    if len(raw) != 1:
        raise ConditionSyntaxError(f"condition mapping must have exactly one key, got {sorted(raw)}")
    (op, arg), = raw.items()

    if op in ("eq", "ne"):
        name, value = _pair(op, arg)
        node: Condition = Eq(name, _scalar(op, value))
        return node if op == "eq" else Not(node)
    if op in ("in", "not_in"):
        name, values = _pair(op, arg)
        if not isinstance(values, (list, tuple)):
            raise ConditionSyntaxError(f"'{op}' expects a list of values")
        node = In(name, tuple(_scalar(op, v) for v in values))
        return node if op == "in" else Not(node)
    if op == "exists":
        if not isinstance(arg, str):
            raise ConditionSyntaxError("'exists' expects a variable name")
        return Exists(arg)
    if op == "not":
        return Not(parse_condition(arg))
    if op in ("and", "or"):
        if not isinstance(arg, (list, tuple)) or not arg:
            raise ConditionSyntaxError(f"'{op}' expects a non-empty list of conditions")
        operands = tuple(parse_condition(item) for item in arg)
        return And(operands) if op == "and" else Or(operands)
    raise ConditionSyntaxError(f"unknown condition operator '{op}'")


def _pair(op: str, arg: Any) -> tuple[str, Any]:
    if not isinstance(arg, (list, tuple)) or len(arg) != 2 or not isinstance(arg[0], str):
        raise ConditionSyntaxError(f"'{op}' expects [variable, value]")
    return arg[0], arg[1]


def _scalar(op: str, value: Any) -> Scalar:
    if isinstance(value, (str, int, bool)):
        return value
    raise ConditionSyntaxError(f"'{op}' value must be a string, integer or boolean")
