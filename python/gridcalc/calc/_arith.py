"""Recursive-descent parser for plain numeric arithmetic.

Accepts numbers, ``+ - * /``, unary sign and parentheses with the usual
precedence, and evaluates as it parses. Used by the evaluator's arithmetic
fallback once cell references have been substituted and the text sanitized.
"""

from __future__ import annotations

import re

_TOKEN_RE = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\S))")


class ArithmeticSyntaxError(ValueError):
    """Raised for text that is not a well-formed arithmetic expression."""


def tokenize(text: str) -> list[str | float]:
    tokens: list[str | float] = []
    for m in _TOKEN_RE.finditer(text):
        number, op = m.groups()
        if number is not None:
            tokens.append(float(number))
        elif op is not None:
            if op not in "+-*/()":
                raise ArithmeticSyntaxError(f"Unexpected character {op!r}")
            tokens.append(op)
    return tokens


class _Parser:
    __slots__ = ("tokens", "pos")

    def __init__(self, tokens: list[str | float]) -> None:
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> str | float | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str | float | None:
        tok = self.peek()
        self.pos += 1
        return tok

    # expr := term (('+' | '-') term)*
    def expr(self) -> float:
        value = self.term()
        while self.peek() in ("+", "-"):
            op = self.take()
            rhs = self.term()
            value = value + rhs if op == "+" else value - rhs
        return value

    # term := factor (('*' | '/') factor)*
    def term(self) -> float:
        value = self.factor()
        while self.peek() in ("*", "/"):
            op = self.take()
            rhs = self.factor()
            if op == "*":
                value *= rhs
            else:
                value /= rhs  # ZeroDivisionError propagates to the caller
        return value

    # factor := ('+' | '-') factor | '(' expr ')' | number
    def factor(self) -> float:
        tok = self.take()
        if tok == "-":
            return -self.factor()
        if tok == "+":
            return self.factor()
        if tok == "(":
            value = self.expr()
            if self.take() != ")":
                raise ArithmeticSyntaxError("Unbalanced parenthesis")
            return value
        if isinstance(tok, float):
            return tok
        raise ArithmeticSyntaxError(f"Unexpected token {tok!r}")


def evaluate_arithmetic(text: str) -> float:
    """Evaluate ``text`` such as ``"(1+2)*-3"``.

    Raises :class:`ArithmeticSyntaxError` for malformed input and
    ``ZeroDivisionError`` for division by zero.
    """
    tokens = tokenize(text)
    if not tokens:
        raise ArithmeticSyntaxError("Empty expression")
    parser = _Parser(tokens)
    value = parser.expr()
    if parser.pos != len(tokens):
        raise ArithmeticSyntaxError(f"Unexpected token {parser.peek()!r}")
    return value
