"""
Parsing and rewriting of Julia type expressions such as `Ptr{Cfloat}` or
`Union{Ptr{T}, CuPtr{T}}`, as written in module option files.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .config import ConfigurationError


_TOKEN_RE = re.compile(r"\s*(?:(?P<name>[A-Za-z_][A-Za-z0-9_!]*(?:\.[A-Za-z_][A-Za-z0-9_!]*)*)"
                       r"|(?P<number>-?\d+)|(?P<punct>[{},]))")


@dataclass(frozen=True)
class TypeExpr:
    """A type name with optional curly-brace parameters"""
    head: str
    params: Optional[tuple["TypeExpr", ...]] = None

    def __str__(self) -> str:
        if self.params is None:
            return self.head
        return f"{self.head}{{{', '.join(str(p) for p in self.params)}}}"

    @property
    def is_name(self) -> bool:
        """True for a bare identifier such as `CUresult`"""
        return self.params is None and not self.head.lstrip("-").isdigit()


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise ConfigurationError(f"Malformed type expression '{text}': unexpected input at offset {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


def parse_type(text: str) -> TypeExpr:
    """Parse a type expression, raising ConfigurationError when malformed"""
    tokens = _tokenize(text)
    if not tokens:
        raise ConfigurationError("Malformed type expression: empty string")

    pos = 0

    def parse_expr() -> TypeExpr:
        nonlocal pos
        if pos >= len(tokens):
            raise ConfigurationError(f"Malformed type expression '{text}': unexpected end")
        kind, value = tokens[pos]
        if kind == "punct":
            raise ConfigurationError(f"Malformed type expression '{text}': unexpected '{value}'")
        pos += 1
        if kind == "number" or pos >= len(tokens) or tokens[pos][1] != "{":
            return TypeExpr(value)

        pos += 1  # consume '{'
        params = [parse_expr()]
        while pos < len(tokens) and tokens[pos][1] == ",":
            pos += 1
            params.append(parse_expr())
        if pos >= len(tokens) or tokens[pos][1] != "}":
            raise ConfigurationError(f"Malformed type expression '{text}': missing '}}'")
        pos += 1
        return TypeExpr(value, tuple(params))

    expr = parse_expr()
    if pos != len(tokens):
        raise ConfigurationError(f"Malformed type expression '{text}': trailing '{tokens[pos][1]}'")
    return expr


def substitute(expr: TypeExpr, replacements: dict[str, str]) -> TypeExpr:
    """Replace whole identifiers anywhere in the expression"""
    head = replacements.get(expr.head, expr.head)
    if expr.params is None:
        return TypeExpr(head)
    return TypeExpr(head, tuple(substitute(p, replacements) for p in expr.params))
