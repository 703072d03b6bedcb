"""Final pass over a regenerated file.

Build-constraint comments are rewritten so the output is only active when the
generation tag is set; every other comment is dropped.
"""

from __future__ import annotations

from typing import Optional

import libcst as cst

from .constants import GENERATED_TAG
from .constraint import (
    AndExpr,
    ConstraintSyntaxError,
    TagExpr,
    is_build_comment,
    parse_build_comment,
    references_tag,
    remove_tag,
    render_build_comment,
    tag_matcher,
)
from .usages import parse_source


def rewrite_build_comment(text: str, tag: str = GENERATED_TAG) -> Optional[str]:
    """New text for a build comment, or ``None`` when it should be dropped."""
    if not is_build_comment(text):
        return None
    try:
        expr = parse_build_comment(text)
    except ConstraintSyntaxError:
        return None
    is_tag = tag_matcher(tag)
    if expr is not None and expr.eval(is_tag):
        return text.strip()
    if expr is not None and references_tag(expr, is_tag):
        remainder = remove_tag(expr, is_tag)
        if remainder is None:
            return None
        return render_build_comment(remainder)
    if expr is None:
        return render_build_comment(TagExpr(tag))
    return render_build_comment(AndExpr(expr, TagExpr(tag)))


class _CommentCleaner(cst.CSTTransformer):
    def __init__(self, tag: str):
        super().__init__()
        self.tag = tag
        self.constraints = 0

    def leave_EmptyLine(self, original_node: cst.EmptyLine, updated_node: cst.EmptyLine):
        if updated_node.comment is None:
            return updated_node
        text = rewrite_build_comment(updated_node.comment.value, self.tag)
        if text is None:
            return cst.RemoveFromParent()
        self.constraints += 1
        return updated_node.with_changes(comment=cst.Comment(text))

    def leave_TrailingWhitespace(
        self, original_node: cst.TrailingWhitespace, updated_node: cst.TrailingWhitespace
    ) -> cst.TrailingWhitespace:
        if updated_node.comment is None:
            return updated_node
        text = rewrite_build_comment(updated_node.comment.value, self.tag)
        if text is None:
            return updated_node.with_changes(whitespace=cst.SimpleWhitespace(""), comment=None)
        self.constraints += 1
        return updated_node.with_changes(comment=cst.Comment(text))


def cleanup_source(source: str, tag: str = GENERATED_TAG, path: Optional[str] = None) -> str:
    module = parse_source(source, path)
    cleaner = _CommentCleaner(tag)
    module = module.visit(cleaner)
    if cleaner.constraints == 0:
        line = cst.EmptyLine(comment=cst.Comment(render_build_comment(TagExpr(tag))))
        module = module.with_changes(header=[line, *module.header])
    return module.code
