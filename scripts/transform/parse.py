"""Directive parser for annotation comments.

Grammar, scanned in a single forward pass::

    '[' NAME (',' NAME)* ']'
    NAME := IDENT ( '(' ARG (',' ARG)* ')' )?

Arguments are plain strings; there is no quoting and no nesting. Malformed
input never raises: whatever was complete when the input ran out is returned.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import List, TextIO, Tuple, Union

from .builtin import BUILTIN_ATTRIBUTES

ATTRIBUTE_INSTRUCTION = 1 << 0
ALL_INSTRUCTIONS = ATTRIBUTE_INSTRUCTION

LIST_START = "["
LIST_END = "]"
SEPARATOR = ","
PARAMS_START = "("
PARAMS_END = ")"


@dataclass(frozen=True)
class AttributeInstruction:
    name: str
    arguments: Tuple[str, ...] = ()
    is_builtin: bool = False

    @property
    def instruction_type(self) -> int:
        return ATTRIBUTE_INSTRUCTION


Instruction = AttributeInstruction


class InstructionParser:
    def __init__(self, src: Union[str, TextIO], parse_types: int = ALL_INSTRUCTIONS):
        self._src = io.StringIO(src) if isinstance(src, str) else src
        self._parse_types = parse_types
        self.result: List[Instruction] = []

    def parse(self) -> List[Instruction]:
        while True:
            char = self._src.read(1)
            if not char:
                break
            if char == LIST_START and self._parse_types & ATTRIBUTE_INSTRUCTION:
                self._parse_attributes_list()
        return self.result

    def _parse_attributes_list(self) -> None:
        name = ""
        args: List[str] = []
        while True:
            char = self._src.read(1)
            if not char:
                # unterminated list: keep what was already emitted
                return
            if char == PARAMS_END or char.isspace():
                continue
            if char == PARAMS_START:
                args = self._parse_attributes_params()
                continue
            if char in (SEPARATOR, LIST_END):
                if name:
                    self.result.append(
                        AttributeInstruction(
                            name=name,
                            arguments=tuple(args),
                            is_builtin=name in BUILTIN_ATTRIBUTES,
                        )
                    )
                name = ""
                args = []
                if char == LIST_END:
                    return
                continue
            name += char

    def _parse_attributes_params(self) -> List[str]:
        args: List[str] = []
        arg = ""
        while True:
            char = self._src.read(1)
            if not char:
                return args
            if char == PARAMS_END:
                if args or arg.strip():
                    args.append(arg.strip())
                return args
            if char == SEPARATOR:
                args.append(arg.strip())
                arg = ""
                continue
            arg += char


def parse_attributes(line: str) -> List[AttributeInstruction]:
    parser = InstructionParser(line, ATTRIBUTE_INSTRUCTION)
    return [item for item in parser.parse() if item.instruction_type == ATTRIBUTE_INSTRUCTION]
