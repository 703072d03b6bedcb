"""Offset bookkeeping between the original source and the running buffer.

Usage anchors are recorded once, against the original text. Every mutating
usage re-renders the file; the ledger keeps one entry per rewritten region
(in original coordinates) so any original anchor can be translated to the
current buffer with a binary search instead of re-scanning.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import List, Optional, Sequence

from libcst.metadata import CodePosition


def line_starts(text: str) -> List[int]:
    starts = [0]
    for idx, char in enumerate(text):
        if char == "\n":
            starts.append(idx + 1)
    return starts


def offset_for(starts: Sequence[int], position: CodePosition) -> int:
    """Character offset of a libcst (1-based line, 0-based column) position."""
    line = min(max(position.line, 1), len(starts))
    return starts[line - 1] + position.column


@dataclass
class Edit:
    start: int
    end: int
    delta: int
    removed: bool = False


class OffsetLedger:
    def __init__(self) -> None:
        self._edits: List[Edit] = []
        self._ends: List[int] = []
        self._shifts: List[int] = [0]

    def __len__(self) -> int:
        return len(self._edits)

    @property
    def edits(self) -> List[Edit]:
        return list(self._edits)

    def _reindex(self) -> None:
        self._edits.sort(key=lambda edit: (edit.start, edit.end))
        self._ends = [edit.end for edit in self._edits]
        shifts = [0]
        for edit in self._edits:
            shifts.append(shifts[-1] + edit.delta)
        self._shifts = shifts

    def translate(self, offset: int) -> Optional[int]:
        """Current-buffer offset for an original offset.

        Returns ``None`` when the offset falls inside a region whose text was
        removed.
        """
        idx = bisect_right(self._ends, offset)
        shifted = offset + self._shifts[idx]
        if idx < len(self._edits):
            edit = self._edits[idx]
            if edit.start < offset < edit.end and edit.removed:
                return None
        return shifted

    def to_original(self, current: int, *, side: str = "start") -> int:
        """Original offset for a current-buffer offset.

        Offsets inside rewritten text have no exact counterpart; they clamp
        to the start or the end of the rewritten region depending on ``side``.
        """
        shift = 0
        for edit in self._edits:
            cur_start = edit.start + shift
            cur_end = edit.end + shift + edit.delta
            if current < cur_start:
                return current - shift
            if current == cur_start:
                if cur_start == cur_end and side == "end":
                    return edit.end
                return edit.start
            if current < cur_end:
                return edit.start if side == "start" else edit.end
            if current == cur_end:
                return edit.end
            shift += edit.delta
        return current - shift

    def record(self, current_start: int, old_length: int, new_length: int, *, removed: bool = False) -> Edit:
        """Record that ``old_length`` characters at ``current_start`` became ``new_length``."""
        start = self.to_original(current_start, side="start")
        end = self.to_original(current_start + old_length, side="end")
        if end < start:
            end = start
        edit = Edit(start=start, end=end, delta=new_length - old_length, removed=removed)
        kept: List[Edit] = []
        for other in self._edits:
            if _overlaps(edit, other):
                edit = Edit(
                    start=min(edit.start, other.start),
                    end=max(edit.end, other.end),
                    delta=edit.delta + other.delta,
                    removed=edit.removed,
                )
            else:
                kept.append(other)
        kept.append(edit)
        self._edits = kept
        self._reindex()
        return edit


def _overlaps(a: Edit, b: Edit) -> bool:
    if max(a.start, b.start) < min(a.end, b.end):
        return True
    if a.start == a.end:
        return b.start < a.start < b.end
    if b.start == b.end:
        return a.start < b.start < a.end
    return False
