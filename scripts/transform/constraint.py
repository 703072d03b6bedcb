"""Build-constraint comments: ``# attrgen:build <expr>``.

Expressions combine tags with ``!``, ``&&``, ``||`` and parentheses, e.g.
``# attrgen:build linux && !generated``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Union

from .constants import BUILD_COMMENT

BUILD_COMMENT_RE = re.compile(r"^#\s*attrgen:build(?:[ \t]+(?P<expr>.*))?$")
TOKEN_RE = re.compile(r"\s*(?:(?P<op>&&|\|\||!|\(|\))|(?P<tag>[A-Za-z0-9_.]+))")


class ConstraintSyntaxError(ValueError):
    pass


@dataclass(frozen=True)
class TagExpr:
    tag: str

    def eval(self, ok: Callable[[str], bool]) -> bool:
        return ok(self.tag)

    def __str__(self) -> str:
        return self.tag


@dataclass(frozen=True)
class NotExpr:
    x: "Expr"

    def eval(self, ok: Callable[[str], bool]) -> bool:
        return not self.x.eval(ok)

    def __str__(self) -> str:
        inner = str(self.x)
        if isinstance(self.x, (AndExpr, OrExpr)):
            inner = f"({inner})"
        return f"!{inner}"


@dataclass(frozen=True)
class AndExpr:
    x: "Expr"
    y: "Expr"

    def eval(self, ok: Callable[[str], bool]) -> bool:
        # both sides are evaluated so every tag is visited
        left = self.x.eval(ok)
        right = self.y.eval(ok)
        return left and right

    def __str__(self) -> str:
        return f"{_and_arg(self.x)} && {_and_arg(self.y)}"


@dataclass(frozen=True)
class OrExpr:
    x: "Expr"
    y: "Expr"

    def eval(self, ok: Callable[[str], bool]) -> bool:
        left = self.x.eval(ok)
        right = self.y.eval(ok)
        return left or right

    def __str__(self) -> str:
        return f"{_or_arg(self.x)} || {_or_arg(self.y)}"


Expr = Union[TagExpr, NotExpr, AndExpr, OrExpr]


def _and_arg(x: Expr) -> str:
    return f"({x})" if isinstance(x, OrExpr) else str(x)


def _or_arg(x: Expr) -> str:
    return f"({x})" if isinstance(x, AndExpr) else str(x)


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise ConstraintSyntaxError(f"unexpected character at {pos}: {text[pos:]!r}")
        tokens.append(match.group("op") or match.group("tag"))
        pos = match.end()
    return tokens


class _ExprParser:
    def __init__(self, tokens: List[str]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise ConstraintSyntaxError("unexpected end of expression")
        self.pos += 1
        return token

    def parse_or(self) -> Expr:
        expr = self.parse_and()
        while self.peek() == "||":
            self.take()
            expr = OrExpr(expr, self.parse_and())
        return expr

    def parse_and(self) -> Expr:
        expr = self.parse_not()
        while self.peek() == "&&":
            self.take()
            expr = AndExpr(expr, self.parse_not())
        return expr

    def parse_not(self) -> Expr:
        token = self.take()
        if token == "!":
            return NotExpr(self.parse_not())
        if token == "(":
            expr = self.parse_or()
            if self.take() != ")":
                raise ConstraintSyntaxError("missing closing parenthesis")
            return expr
        if token in ("&&", "||", ")"):
            raise ConstraintSyntaxError(f"unexpected operator {token!r}")
        return TagExpr(token)


def parse_expr(text: str) -> Expr:
    tokens = _tokenize(text)
    if not tokens:
        raise ConstraintSyntaxError("empty expression")
    parser = _ExprParser(tokens)
    expr = parser.parse_or()
    if parser.peek() is not None:
        raise ConstraintSyntaxError(f"unexpected token {parser.peek()!r}")
    return expr


def is_build_comment(text: str) -> bool:
    return BUILD_COMMENT_RE.match(text.strip()) is not None


def parse_build_comment(text: str) -> Optional[Expr]:
    """Expression of a build comment; ``None`` for an empty constraint."""
    match = BUILD_COMMENT_RE.match(text.strip())
    if not match:
        raise ConstraintSyntaxError(f"not a build comment: {text!r}")
    body = (match.group("expr") or "").strip()
    if not body:
        return None
    return parse_expr(body)


def render_build_comment(expr: Expr) -> str:
    return f"{BUILD_COMMENT} {expr}"


def references_tag(expr: Expr, should_match: Callable[[str], bool]) -> bool:
    if isinstance(expr, TagExpr):
        return should_match(expr.tag)
    if isinstance(expr, NotExpr):
        return references_tag(expr.x, should_match)
    return references_tag(expr.x, should_match) or references_tag(expr.y, should_match)


def remove_tag(expr: Optional[Expr], should_remove: Callable[[str], bool]) -> Optional[Expr]:
    if expr is None:
        return None
    if isinstance(expr, TagExpr):
        return None if should_remove(expr.tag) else expr
    if isinstance(expr, NotExpr):
        inner = remove_tag(expr.x, should_remove)
        return NotExpr(inner) if inner is not None else None
    left = remove_tag(expr.x, should_remove)
    right = remove_tag(expr.y, should_remove)
    if left is None:
        return right
    if right is None:
        return left
    return type(expr)(left, right)


def tag_matcher(tag: str) -> Callable[[str], bool]:
    return lambda candidate: candidate.lower() == tag.lower()


def file_constraint(source: str) -> Optional[Expr]:
    """Constraint declared in the leading comment block of a file, if any."""
    for raw in source.splitlines():
        line = raw.strip()
        if not line:
            continue
        if not line.startswith("#"):
            break
        if is_build_comment(line):
            try:
                return parse_build_comment(line)
            except ConstraintSyntaxError:
                return None
    return None


def is_active(source: str, tags: Iterable[str]) -> bool:
    expr = file_constraint(source)
    if expr is None:
        return True
    enabled = {tag.lower() for tag in tags}
    return expr.eval(lambda tag: tag.lower() in enabled)
