"""Mutation context handed to every handler.

A context wraps the node an annotation is bound to. Handlers inspect it and
request ``replace``/``delete``/``insert_before``/``insert_after``; the
requests are applied to the module in one keyed transformer pass once every
directive of the usage has run.
"""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import libcst as cst
from libcst.metadata import CodeRange

from .offsets import offset_for

if TYPE_CHECKING:
    from .state import FileState

NodeLike = Union[cst.CSTNode, str]


class DeletedNode:
    """Tombstone returned by ``TransformContext.node()`` after ``delete()``."""

    def __repr__(self) -> str:
        return "DELETED"

    def __bool__(self) -> bool:
        return False


DELETED = DeletedNode()


def _statements(value: NodeLike) -> List[cst.CSTNode]:
    if isinstance(value, str):
        return list(cst.parse_module(textwrap.dedent(value)).body)
    return [value]


def _statement(value: NodeLike) -> cst.CSTNode:
    if isinstance(value, str):
        return cst.parse_statement(textwrap.dedent(value))
    return value


class TransformContext:
    def __init__(
        self,
        node: cst.CSTNode,
        module: cst.Module,
        source: str,
        *,
        positions: Optional[Mapping[cst.CSTNode, CodeRange]] = None,
        line_starts: Optional[Sequence[int]] = None,
        state: Optional["FileState"] = None,
        methods: Optional[Dict[str, Callable[..., Any]]] = None,
    ):
        self._target = node
        self._current: Union[cst.CSTNode, DeletedNode] = node
        self._module = module
        self._source = source
        self._positions = positions or {}
        self._line_starts = line_starts
        self._args: List[str] = []
        self._before: List[cst.CSTNode] = []
        self._after: List[cst.CSTNode] = []
        self._methods = methods if methods is not None else {}
        self.state = state
        self.modified = False

    # -- inspection --------------------------------------------------------

    def node(self) -> Union[cst.CSTNode, DeletedNode]:
        return self._current

    def target(self) -> cst.CSTNode:
        """The node the usage was bound to, before any mutation."""
        return self._target

    def module(self) -> cst.Module:
        return self._module

    def args(self) -> List[str]:
        return list(self._args)

    def set_args(self, args: Sequence[str]) -> None:
        self._args = list(args)

    def file_source(self) -> str:
        return self._source

    def is_deleted(self) -> bool:
        return self._current is DELETED

    def source_range(self, node: Optional[cst.CSTNode] = None) -> Optional[tuple]:
        """(start, end) character offsets of ``node`` in ``file_source()``.

        Decorated functions and classes start at their first decorator.
        """
        node = node if node is not None else self._target
        position = self._positions.get(node)
        if position is None or self._line_starts is None:
            return None
        start = offset_for(self._line_starts, position.start)
        decorators = getattr(node, "decorators", ())
        if decorators:
            first = self._positions.get(decorators[0])
            if first is not None:
                start = min(start, offset_for(self._line_starts, first.start))
        return start, offset_for(self._line_starts, position.end)

    def node_source(self, node: Optional[cst.CSTNode] = None) -> str:
        """Verbatim, dedented source text of ``node``."""
        node = node if node is not None else self._target
        span = self.source_range(node)
        if span is None:
            return self._module.code_for_node(node)
        start, end = span
        line_start = self._source.rfind("\n", 0, start) + 1
        indent = self._source[line_start:start]
        if indent.strip():
            indent = ""
        return textwrap.dedent(indent + self._source[start:end])

    # -- method-class handlers -------------------------------------------

    def method(self, name: str) -> Optional[Callable[..., Any]]:
        return self._methods.get(name)

    def call_method(self, name: str, *args: Any) -> Any:
        fn = self._methods.get(name)
        if fn is None:
            raise KeyError(f"method `{name}` is not loaded")
        return fn(*args)

    # -- mutation ----------------------------------------------------------

    def replace(self, node: NodeLike) -> None:
        self._current = _statement(node)
        self.modified = True

    def delete(self) -> None:
        self._current = DELETED
        self.modified = True

    def insert_before(self, node: NodeLike) -> None:
        self._before.extend(_statements(node))
        self.modified = True

    def insert_after(self, node: NodeLike) -> None:
        self._after[:0] = _statements(node)
        self.modified = True

    def is_removed(self) -> bool:
        """True when applying removes the target together with its leading lines."""
        return self._current is DELETED and not self._before and not self._after

    def result(self) -> Union[cst.CSTNode, cst.FlattenSentinel, cst.RemovalSentinel]:
        nodes: List[cst.CSTNode] = list(self._before)
        if self._current is not DELETED:
            nodes.append(self._current)
        nodes.extend(self._after)
        if not nodes:
            return cst.RemoveFromParent()
        nodes = _keep_leading_lines(self._target, nodes)
        if len(nodes) == 1 and not self._before and not self._after:
            return nodes[0]
        return cst.FlattenSentinel(nodes)

    def apply(self, module: Optional[cst.Module] = None) -> cst.Module:
        module = module if module is not None else self._module
        if not self.modified:
            return module
        return module.visit(_CursorApply(self._target, self))


class _CursorApply(cst.CSTTransformer):
    def __init__(self, target: cst.CSTNode, context: TransformContext):
        super().__init__()
        self._target = target
        self._context = context

    def on_leave(self, original_node, updated_node):
        if original_node is self._target:
            return self._context.result()
        return updated_node


def _keep_leading_lines(target: cst.CSTNode, nodes: List[cst.CSTNode]) -> List[cst.CSTNode]:
    """Move the target's leading blank and comment lines onto the first emitted node.

    Annotation comments of other usages live in those lines and must stay
    where they were.
    """
    leading = getattr(target, "leading_lines", None)
    if leading is None:
        return nodes
    out: List[cst.CSTNode] = []
    for idx, node in enumerate(nodes):
        if idx == 0 and hasattr(node, "leading_lines"):
            node = node.with_changes(leading_lines=leading)
        elif idx > 0 and getattr(node, "leading_lines", None) is leading:
            node = node.with_changes(leading_lines=())
        out.append(node)
    return out
