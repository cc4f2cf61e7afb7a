"""
Formula mini-language — tokenizer, parser and evaluator.

Formulas are stored as strings on formula templates and labor eligibility
rules, e.g.

    ROUNDUP([run_length]/[post_spacing])+1+ROUNDUP(MAX([line_count]-2,0)/2)
    [run_length]*12/[picket.width_inches]*1.025*[picket_multiplier]
    IF(OR(AND([height]<=6,[rail_count]>2),AND([height]>6,[rail_count]>3)),[run_length],0)

Grammar (lowest precedence first):

    expr        := comparison
    comparison  := additive [ ("<"|">"|"<="|">="|"=="|"!=") additive ]
    additive    := term { ("+"|"-") term }
    term        := unary { ("*"|"/") unary }
    unary       := ("-"|"+") unary | primary
    primary     := NUMBER | STRING | TRUE | FALSE
                 | "[" name [ "." attribute ] "]"
                 | NAME "(" [ expr { "," expr } ] ")"
                 | NAME
                 | "(" expr ")"

Nothing here is ever silently coerced: an unresolved variable, a division by
zero or a type mismatch raises EvaluationError. Parsed expressions are
immutable and cached by source text, so evaluating the same formula against
the same variables always gives the same answer.
"""

import math
import re
from functools import lru_cache
from typing import Callable, Mapping, Optional, Union

from .errors import EvaluationError

Value = Union[int, float, bool, str]
AttributeLookup = Union[Mapping[str, Value], Callable[[str, str], Optional[Value]]]

NUMBER = "number"
BOOLEAN = "boolean"
STRING = "string"

_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<number>\d+(?:\.\d*)?|\.\d+)
  | (?P<string>"[^"]*"|'[^']*')
  | (?P<ref>\[[^\[\]]*\])
  | (?P<op><=|>=|==|!=|[-+*/(),<>])
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
""", re.VERBOSE)

_COMPARISON_OPS = ("<", ">", "<=", ">=", "==", "!=")
_ORDERING_OPS = ("<", ">", "<=", ">=")

# ROUNDUP snaps to this many decimals before taking the ceiling so that
# binary float noise (12.000000000000002) does not buy an extra unit.
_CEIL_PRECISION = 9


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_name(value) -> str:
    if isinstance(value, bool):
        return BOOLEAN
    if _is_number(value):
        return NUMBER
    if isinstance(value, str):
        return STRING
    return type(value).__name__


class _Token:
    def __init__(self, kind: str, text: str, position: int):
        self.kind = kind
        self.text = text
        self.position = position

    def __repr__(self):
        return f"_Token({self.kind}, {self.text!r}, {self.position})"


def tokenize(source: str) -> list:
    """Split a formula into tokens. Raises EvaluationError on stray characters."""
    tokens = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if not match:
            raise EvaluationError(f"unexpected character {source[pos]!r}", source, pos)
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(_Token(kind, match.group(kind), pos))
        pos = match.end()
    tokens.append(_Token("end", "", len(source)))
    return tokens


# --- AST nodes ---

class _Scope:
    """Per-evaluation lookup state. Created fresh for every evaluate() call."""

    def __init__(self, source: str, variables: Mapping[str, Value],
                 attributes: Optional[AttributeLookup]):
        self.source = source
        self.variables = variables
        self.attributes = attributes

    def fail(self, message: str, position: Optional[int] = None):
        raise EvaluationError(message, self.source, position)

    def variable(self, name: str, position: int) -> Value:
        try:
            value = self.variables[name]
        except KeyError:
            value = None
        if value is None:
            self.fail(f"unresolved variable [{name}]", position)
        return value

    def attribute(self, component: str, attribute: str, position: int) -> Value:
        value = None
        lookup = self.attributes
        if callable(lookup):
            value = lookup(component, attribute)
        elif lookup is not None:
            key = f"{component}.{attribute}"
            value = lookup.get(key)
            if value is None:
                value = lookup.get(key.lower())
        if value is None:
            self.fail(f"unresolved variable [{component}.{attribute}]", position)
        return value


class _Node:
    position = 0
    static_type = None

    def evaluate(self, scope: _Scope) -> Value:
        raise NotImplementedError

    def references(self):
        return iter(())


class _Literal(_Node):
    def __init__(self, value: Value, position: int):
        self.value = value
        self.position = position
        self.static_type = _type_name(value)

    def evaluate(self, scope):
        return self.value


class _Variable(_Node):
    def __init__(self, name: str, position: int):
        self.name = name
        self.position = position

    def evaluate(self, scope):
        return scope.variable(self.name, self.position)

    def references(self):
        yield self.name


class _Attribute(_Node):
    def __init__(self, component: str, attribute: str, position: int):
        self.component = component
        self.attribute = attribute
        self.position = position

    def evaluate(self, scope):
        return scope.attribute(self.component, self.attribute, self.position)

    def references(self):
        yield f"{self.component}.{self.attribute}"


class _Negate(_Node):
    static_type = NUMBER

    def __init__(self, operand: _Node, position: int):
        self.operand = operand
        self.position = position

    def evaluate(self, scope):
        value = self.operand.evaluate(scope)
        if not _is_number(value):
            scope.fail(f"cannot negate {_type_name(value)}", self.position)
        return -value

    def references(self):
        return self.operand.references()


class _Arithmetic(_Node):
    static_type = NUMBER

    def __init__(self, op: str, left: _Node, right: _Node, position: int):
        self.op = op
        self.left = left
        self.right = right
        self.position = position

    def evaluate(self, scope):
        left = self.left.evaluate(scope)
        right = self.right.evaluate(scope)
        if not (_is_number(left) and _is_number(right)):
            scope.fail(
                f"arithmetic '{self.op}' needs numbers, got "
                f"{_type_name(left)} and {_type_name(right)}",
                self.position,
            )
        if self.op == "+":
            result = left + right
        elif self.op == "-":
            result = left - right
        elif self.op == "*":
            result = left * right
        else:
            if right == 0:
                scope.fail("division by zero", self.position)
            result = left / right
        if not math.isfinite(result):
            scope.fail("result is not a finite number", self.position)
        return result

    def references(self):
        yield from self.left.references()
        yield from self.right.references()


class _Comparison(_Node):
    static_type = BOOLEAN

    def __init__(self, op: str, left: _Node, right: _Node, position: int):
        self.op = op
        self.left = left
        self.right = right
        self.position = position

    def evaluate(self, scope):
        left = self.left.evaluate(scope)
        right = self.right.evaluate(scope)
        left_type, right_type = _type_name(left), _type_name(right)
        if self.op in _ORDERING_OPS:
            if left_type != NUMBER or right_type != NUMBER:
                scope.fail(
                    f"comparison '{self.op}' needs numbers, got {left_type} and {right_type}",
                    self.position,
                )
        elif left_type != right_type:
            scope.fail(
                f"cannot compare {left_type} with {right_type} using '{self.op}'",
                self.position,
            )
        if self.op == "<":
            return left < right
        if self.op == ">":
            return left > right
        if self.op == "<=":
            return left <= right
        if self.op == ">=":
            return left >= right
        if self.op == "==":
            return left == right
        return left != right

    def references(self):
        yield from self.left.references()
        yield from self.right.references()


class _Call(_Node):
    def __init__(self, name: str, args: list, position: int):
        self.name = name
        self.args = args
        self.position = position
        self.function = FUNCTIONS[name]
        self.static_type = self.function.result_type(args)

    def evaluate(self, scope):
        # All arguments are evaluated eagerly, left to right, before dispatch.
        values = [arg.evaluate(scope) for arg in self.args]
        return self.function.apply(values, scope, self.position)

    def references(self):
        for arg in self.args:
            yield from arg.references()


# --- Functions ---

class _Function:
    """A builtin function: arity bounds, argument types and implementation."""

    def __init__(self, name, impl, min_args, max_args=None, arg_type=NUMBER,
                 returns=NUMBER):
        self.name = name
        self.impl = impl
        self.min_args = min_args
        self.max_args = max_args
        self.arg_type = arg_type
        self.returns = returns

    def check_arity(self, count: int, source: str, position: int):
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            if self.max_args == self.min_args:
                expected = str(self.min_args)
            elif self.max_args is None:
                expected = f"at least {self.min_args}"
            else:
                expected = f"{self.min_args} to {self.max_args}"
            raise EvaluationError(
                f"{self.name} takes {expected} argument(s), got {count}", source, position
            )

    def check_static(self, args: list, source: str):
        for expected, arg in zip(self.expected_types(len(args)), args):
            if expected and arg.static_type and arg.static_type != expected:
                raise EvaluationError(
                    f"{self.name} expects {expected} argument, got {arg.static_type}",
                    source, arg.position,
                )

    def expected_types(self, count: int) -> list:
        return [self.arg_type] * count

    def result_type(self, args: list):
        return self.returns

    def apply(self, values: list, scope: _Scope, position: int) -> Value:
        for expected, value in zip(self.expected_types(len(values)), values):
            if expected and _type_name(value) != expected:
                scope.fail(
                    f"{self.name} expects {expected} argument, got {_type_name(value)}",
                    position,
                )
        result = self.impl(*values)
        if _is_number(result) and not math.isfinite(result):
            scope.fail("result is not a finite number", position)
        return result


class _IfFunction(_Function):
    def expected_types(self, count):
        return [BOOLEAN] + [None] * (count - 1)

    def result_type(self, args):
        if len(args) == 3 and args[1].static_type == args[2].static_type:
            return args[1].static_type
        return None


def _roundup(x):
    return math.ceil(round(x, _CEIL_PRECISION))


def _rounddown(x):
    return math.floor(round(x, _CEIL_PRECISION))


def _round(x, digits=0):
    if digits != int(digits):
        raise EvaluationError("ROUND digits must be a whole number")
    factor = 10 ** int(digits)
    rounded = math.floor(x * factor + 0.5) / factor
    return int(rounded) if digits <= 0 else rounded


FUNCTIONS = {
    "ROUNDUP": _Function("ROUNDUP", _roundup, 1, 1),
    "ROUNDDOWN": _Function("ROUNDDOWN", _rounddown, 1, 1),
    "ROUND": _Function("ROUND", _round, 1, 2),
    "MAX": _Function("MAX", lambda *a: max(a), 1),
    "MIN": _Function("MIN", lambda *a: min(a), 1),
    "AND": _Function("AND", lambda *a: all(a), 1, arg_type=BOOLEAN, returns=BOOLEAN),
    "OR": _Function("OR", lambda *a: any(a), 1, arg_type=BOOLEAN, returns=BOOLEAN),
    "IF": _IfFunction("IF", lambda cond, then, other: then if cond else other, 3, 3,
                      returns=None),
}


# --- Parser ---

class _Parser:
    """Recursive-descent parser producing an AST of _Node objects."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.index = 0

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, text: str) -> _Token:
        token = self.current
        if token.text != text or token.kind not in ("op",):
            self.fail(f"expected '{text}'", token)
        return self.advance()

    def fail(self, message: str, token: _Token):
        found = "end of formula" if token.kind == "end" else repr(token.text)
        raise EvaluationError(f"{message}, found {found}", self.source, token.position)

    def parse(self) -> _Node:
        if self.current.kind == "end":
            raise EvaluationError("empty formula", self.source, 0)
        node = self.comparison()
        if self.current.kind != "end":
            self.fail("unexpected token", self.current)
        return node

    def comparison(self) -> _Node:
        left = self.additive()
        token = self.current
        if token.kind == "op" and token.text in _COMPARISON_OPS:
            self.advance()
            right = self.additive()
            self._check_comparison(token, left, right)
            left = _Comparison(token.text, left, right, token.position)
            if self.current.kind == "op" and self.current.text in _COMPARISON_OPS:
                self.fail("chained comparisons are not supported", self.current)
        return left

    def additive(self) -> _Node:
        left = self.term()
        while self.current.kind == "op" and self.current.text in ("+", "-"):
            token = self.advance()
            right = self.term()
            self._check_arithmetic(token, left, right)
            left = _Arithmetic(token.text, left, right, token.position)
        return left

    def term(self) -> _Node:
        left = self.unary()
        while self.current.kind == "op" and self.current.text in ("*", "/"):
            token = self.advance()
            right = self.unary()
            self._check_arithmetic(token, left, right)
            left = _Arithmetic(token.text, left, right, token.position)
        return left

    def unary(self) -> _Node:
        token = self.current
        if token.kind == "op" and token.text in ("-", "+"):
            self.advance()
            operand = self.unary()
            if operand.static_type and operand.static_type != NUMBER:
                raise EvaluationError(
                    f"unary '{token.text}' needs a number, got {operand.static_type}",
                    self.source, token.position,
                )
            if token.text == "+":
                return operand
            return _Negate(operand, token.position)
        return self.primary()

    def primary(self) -> _Node:
        token = self.current
        if token.kind == "number":
            self.advance()
            text = token.text
            value = float(text) if "." in text else int(text)
            return _Literal(value, token.position)
        if token.kind == "string":
            self.advance()
            return _Literal(token.text[1:-1], token.position)
        if token.kind == "ref":
            self.advance()
            return self._reference(token)
        if token.kind == "name":
            self.advance()
            upper = token.text.upper()
            if self.current.kind == "op" and self.current.text == "(":
                return self._call(token, upper)
            if upper == "TRUE":
                return _Literal(True, token.position)
            if upper == "FALSE":
                return _Literal(False, token.position)
            return _Variable(token.text, token.position)
        if token.kind == "op" and token.text == "(":
            self.advance()
            node = self.comparison()
            self.expect(")")
            return node
        self.fail("expected a value", token)

    def _reference(self, token: _Token) -> _Node:
        name = token.text[1:-1].strip()
        if not name:
            raise EvaluationError("empty variable reference []", self.source, token.position)
        if "." in name:
            component, _, attribute = name.partition(".")
            component, attribute = component.strip(), attribute.strip()
            if not component or not attribute or "." in attribute:
                raise EvaluationError(
                    f"malformed attribute reference [{name}]", self.source, token.position
                )
            return _Attribute(component, attribute, token.position)
        return _Variable(name, token.position)

    def _call(self, token: _Token, name: str) -> _Node:
        if name not in FUNCTIONS:
            raise EvaluationError(f"unknown function {token.text}", self.source, token.position)
        self.expect("(")
        args = []
        if not (self.current.kind == "op" and self.current.text == ")"):
            args.append(self.comparison())
            while self.current.kind == "op" and self.current.text == ",":
                self.advance()
                args.append(self.comparison())
        self.expect(")")
        function = FUNCTIONS[name]
        function.check_arity(len(args), self.source, token.position)
        function.check_static(args, self.source)
        return _Call(name, args, token.position)

    def _check_arithmetic(self, token, left, right):
        for side in (left, right):
            if side.static_type and side.static_type != NUMBER:
                raise EvaluationError(
                    f"arithmetic '{token.text}' needs numbers, got {side.static_type}",
                    self.source, token.position,
                )

    def _check_comparison(self, token, left, right):
        lt, rt = left.static_type, right.static_type
        if token.text in _ORDERING_OPS:
            for side_type in (lt, rt):
                if side_type and side_type != NUMBER:
                    raise EvaluationError(
                        f"comparison '{token.text}' needs numbers, got {side_type}",
                        self.source, token.position,
                    )
        elif lt and rt and lt != rt:
            raise EvaluationError(
                f"cannot compare {lt} with {rt} using '{token.text}'",
                self.source, token.position,
            )


# --- Public API ---

class Expression:
    """A parsed, immutable formula. Safe to share between threads."""

    def __init__(self, source: str, root: _Node):
        self.source = source
        self._root = root
        refs = list(root.references())
        self.variables = frozenset(r for r in refs if "." not in r)
        self.attributes = frozenset(r for r in refs if "." in r)

    @property
    def result_type(self) -> Optional[str]:
        return self._root.static_type

    def evaluate(self, variables: Mapping[str, Value],
                 attributes: Optional[AttributeLookup] = None) -> Value:
        scope = _Scope(self.source, variables, attributes)
        try:
            result = self._root.evaluate(scope)
        except EvaluationError as e:
            if e.expression is None:
                raise EvaluationError(e.message, self.source, self._root.position) from e
            raise
        if _is_number(result) and not math.isfinite(result):
            scope.fail("result is not a finite number")
        return result

    def __repr__(self):
        return f"Expression({self.source!r})"


@lru_cache(maxsize=2048)
def parse(source: str) -> Expression:
    """Parse a formula string. Raises EvaluationError if it is malformed."""
    if not isinstance(source, str):
        raise EvaluationError(f"formula must be a string, got {type(source).__name__}")
    return Expression(source, _Parser(source).parse())


def evaluate(source: str, variables: Mapping[str, Value],
             attributes: Optional[AttributeLookup] = None) -> Value:
    """Parse (cached) and evaluate a formula against a variable mapping."""
    return parse(source).evaluate(variables, attributes)


def evaluate_number(source: str, variables: Mapping[str, Value],
                    attributes: Optional[AttributeLookup] = None) -> float:
    """Evaluate a quantity formula; anything other than a number is an error."""
    result = evaluate(source, variables, attributes)
    if not _is_number(result):
        raise EvaluationError(f"formula produced {_type_name(result)}, expected a number", source)
    return result
