"""
Grammar for workflow `if:` expressions.

Supported:
- Literals: 'single' (with '' escape), "double", numbers, true, false, null
- Dotted references: github.ref, steps.set-matrix.outputs.files
- Function calls: startsWith(github.ref, 'refs/tags/')
- Operators, lowest precedence first: ||, &&, == !=, < <= > >=, !
- Parentheses

Expressions are tokenized, parsed into a small AST and evaluated by walking
the tree with an explicit reference resolver and function table. Nothing is
handed to Python's eval.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple


class ExpressionSyntaxError(ValueError):
    """Raised when an expression cannot be tokenized or parsed."""


class ExpressionEvaluationError(ValueError):
    """Raised when a parsed expression references something undefined."""


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Reference:
    path: str


@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple[Any, ...]


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


TOKEN_PATTERN = re.compile(r"""
    (?P<ws>\s+)
  | (?P<string>'(?:[^']|'')*'|"(?:[^"\\]|\\.)*")
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<op>==|!=|<=|>=|&&|\|\||<|>|!)
  | (?P<punct>[(),])
  | (?P<ident>[A-Za-z_][A-Za-z0-9_-]*(?:\.[A-Za-z0-9_*-]+)*)
""", re.VERBOSE)

KEYWORDS = {'true': True, 'false': False, 'null': None}


def tokenize(text: str) -> List[Token]:
    """
    Split expression text into tokens.

    Raises:
        ExpressionSyntaxError: On a character no token can start with
    """
    tokens = []
    position = 0
    while position < len(text):
        match = TOKEN_PATTERN.match(text, position)
        if not match:
            raise ExpressionSyntaxError(
                f"Unexpected character {text[position]!r} at position {position}"
            )
        kind = match.lastgroup
        if kind != 'ws':
            tokens.append(Token(kind, match.group(kind), position))
        position = match.end()
    return tokens


def _unquote(text: str) -> str:
    if text.startswith("'"):
        return text[1:-1].replace("''", "'")
    return re.sub(r'\\(.)', r'\1', text[1:-1])


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise ExpressionSyntaxError("Unexpected end of expression")
        self.index += 1
        return token

    def accept(self, *texts: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.kind in ('op', 'punct') and token.text in texts:
            self.index += 1
            return token
        return None

    def expect(self, text: str) -> Token:
        token = self.accept(text)
        if token is None:
            found = self.peek()
            where = f"'{found.text}' at position {found.position}" if found else "end of expression"
            raise ExpressionSyntaxError(f"Expected '{text}', found {where}")
        return token

    def parse(self):
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression")
        node = self.parse_or()
        if self.peek() is not None:
            token = self.peek()
            raise ExpressionSyntaxError(f"Unexpected '{token.text}' at position {token.position}")
        return node

    def parse_or(self):
        node = self.parse_and()
        while self.accept('||'):
            node = Binary('||', node, self.parse_and())
        return node

    def parse_and(self):
        node = self.parse_equality()
        while self.accept('&&'):
            node = Binary('&&', node, self.parse_equality())
        return node

    def parse_equality(self):
        node = self.parse_comparison()
        while True:
            token = self.accept('==', '!=')
            if token is None:
                return node
            node = Binary(token.text, node, self.parse_comparison())

    def parse_comparison(self):
        node = self.parse_unary()
        while True:
            token = self.accept('<', '<=', '>', '>=')
            if token is None:
                return node
            node = Binary(token.text, node, self.parse_unary())

    def parse_unary(self):
        if self.accept('!'):
            return Unary('!', self.parse_unary())
        return self.parse_primary()

    def parse_primary(self):
        token = self.advance()

        if token.kind == 'punct' and token.text == '(':
            node = self.parse_or()
            self.expect(')')
            return node

        if token.kind == 'string':
            return Literal(_unquote(token.text))

        if token.kind == 'number':
            number = float(token.text)
            return Literal(int(number) if number.is_integer() and '.' not in token.text else number)

        if token.kind == 'ident':
            if token.text in KEYWORDS:
                return Literal(KEYWORDS[token.text])
            if self.accept('('):
                if '.' in token.text:
                    raise ExpressionSyntaxError(f"Invalid function name '{token.text}'")
                args = []
                if not self.accept(')'):
                    args.append(self.parse_or())
                    while self.accept(','):
                        args.append(self.parse_or())
                    self.expect(')')
                return Call(token.text, tuple(args))
            return Reference(token.text)

        raise ExpressionSyntaxError(f"Unexpected '{token.text}' at position {token.position}")


def parse_expression(text: str):
    """
    Parse expression text into an AST.

    Raises:
        ExpressionSyntaxError: If the text is not a valid expression
    """
    return _Parser(tokenize(text)).parse()


def iter_references(node) -> Iterator[str]:
    """Yield the path of every Reference in the tree, left to right."""
    if isinstance(node, Reference):
        yield node.path
    elif isinstance(node, Call):
        for arg in node.args:
            yield from iter_references(arg)
    elif isinstance(node, Unary):
        yield from iter_references(node.operand)
    elif isinstance(node, Binary):
        yield from iter_references(node.left)
        yield from iter_references(node.right)


def is_truthy(value: Any) -> bool:
    """Truthiness: '', 0, NaN, null and false are falsy."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ''
    return True


def to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == '':
            return 0.0
        try:
            return float(stripped)
        except ValueError:
            return math.nan
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Equality with numeric coercion when the operand types differ."""
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if left is None and right is None:
        return True
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return left is right
    return to_number(left) == to_number(right)


def _compare(op: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == '<':
        return a < b
    if op == '<=':
        return a <= b
    if op == '>':
        return a > b
    return a >= b


class ExpressionEvaluator:
    """
    Tree-walking evaluator.

    Args:
        resolve_reference: Called with a dotted path, returns its value or
            raises ExpressionEvaluationError
        functions: Function name -> callable
    """

    def __init__(self, resolve_reference: Callable[[str], Any], functions: Dict[str, Callable]):
        self.resolve_reference = resolve_reference
        self.functions = functions

    def evaluate(self, node) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Reference):
            return self.resolve_reference(node.path)

        if isinstance(node, Call):
            function = self.functions.get(node.name)
            if function is None:
                raise ExpressionEvaluationError(f"Unknown function '{node.name}'")
            return function(*[self.evaluate(arg) for arg in node.args])

        if isinstance(node, Unary):
            return not is_truthy(self.evaluate(node.operand))

        if isinstance(node, Binary):
            if node.op == '&&':
                left = self.evaluate(node.left)
                return self.evaluate(node.right) if is_truthy(left) else left
            if node.op == '||':
                left = self.evaluate(node.left)
                return left if is_truthy(left) else self.evaluate(node.right)

            left = self.evaluate(node.left)
            right = self.evaluate(node.right)
            if node.op == '==':
                return loose_equals(left, right)
            if node.op == '!=':
                return not loose_equals(left, right)
            return _compare(node.op, left, right)

        raise ExpressionEvaluationError(f"Unknown expression node {node!r}")
