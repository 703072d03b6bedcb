from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Set

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from .constants import ANNOTATION_PREFIX, COMMENT_MARKER
from .constraint import is_build_comment
from .errors import ParseError
from .offsets import line_starts, offset_for
from .parse import AttributeInstruction, parse_attributes


@dataclass
class AttributeUsage:
    anchor_offset: int
    attributes: List[AttributeInstruction]
    applied: bool = False
    dispatched: Set[int] = field(default_factory=set)

    def pending(self) -> List[int]:
        return [idx for idx in range(len(self.attributes)) if idx not in self.dispatched]

    def mark_dispatched(self, index: int) -> None:
        self.dispatched.add(index)
        if len(self.dispatched) >= len(self.attributes):
            self.applied = True

    @property
    def names(self) -> List[str]:
        return [attr.name for attr in self.attributes]


def parse_source(source: str, path: Optional[str] = None) -> cst.Module:
    try:
        return cst.parse_module(source)
    except cst.ParserSyntaxError as exc:
        raise ParseError(f"Failed to parse file: {exc}", path) from exc


def is_line_prefixed(line: str) -> bool:
    """True for ``# @[...]``: one comment marker, optional spaces, the prefix."""
    markers = 0
    for char in line:
        if char == " " or char == "\t":
            continue
        if char == COMMENT_MARKER:
            markers += 1
            continue
        return markers == 1 and char == ANNOTATION_PREFIX
    return False


def extract_comment(text: str, anchor_offset: int) -> Optional[AttributeUsage]:
    if is_build_comment(text):
        return None
    line = text.strip()
    if not is_line_prefixed(line):
        return None
    attributes = parse_attributes(line)
    if not attributes:
        return None
    return AttributeUsage(anchor_offset=anchor_offset, attributes=attributes)


class _CommentCollector(cst.CSTVisitor):
    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, starts: List[int]):
        super().__init__()
        self.starts = starts
        self.usages: List[AttributeUsage] = []

    def visit_Comment(self, node: cst.Comment) -> None:
        position = self.get_metadata(PositionProvider, node)
        usage = extract_comment(node.value, offset_for(self.starts, position.end))
        if usage is not None:
            self.usages.append(usage)


def extract_attribute_usages(source: str, path: Optional[str] = None) -> List[AttributeUsage]:
    module = parse_source(source, path)
    collector = _CommentCollector(line_starts(source))
    MetadataWrapper(module).visit(collector)
    return sorted(collector.usages, key=lambda usage: usage.anchor_offset)
