"""Handlers built into the engine.

``decorator`` and ``method`` lift the marked function into a compiled module
so it can be loaded back as a user handler; ``placeholder`` deletes the
marked node from the generated output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, List

import libcst as cst

from utils import log

from .cache import hash_extracted, is_extracted_modified
from .constants import DECORATORS_DIR, METHODS_DIR
from .errors import HandlerExecutionError
from .extract import collect_imports, extract_as_module, module_path_for

if TYPE_CHECKING:
    from .context import TransformContext

BuiltinAttributeFn = Callable[["TransformContext"], object]


def decorator_attribute(ctx: "TransformContext") -> None:
    _extract_handler(ctx, DECORATORS_DIR)


def method_attribute(ctx: "TransformContext") -> None:
    _extract_handler(ctx, METHODS_DIR)


def placeholder_attribute(ctx: "TransformContext") -> None:
    ctx.delete()


def _extract_handler(ctx: "TransformContext", category: str) -> None:
    state = ctx.state
    if state is None:
        raise HandlerExecutionError("builtin handlers need a file state")
    target = ctx.node()
    if not isinstance(target, cst.FunctionDef):
        state.warnings.append(
            f"{state.path}: `{category}` attribute ignored, target is not a function"
        )
        return

    name = target.name.value
    src = ctx.node_source(target)
    hash_sum = hash_extracted(category, src)
    module_path = module_path_for(state.build_dir, category, name)
    if not is_extracted_modified(state.build_dir, name, hash_sum) and module_path.is_file():
        log("skip extracting unmodified", category, name)
    else:
        extract_as_module(
            name,
            src,
            category,
            collect_imports(ctx.module()),
            hash_sum,
            build_dir=state.build_dir,
            config=state.config,
            tools=state.tools,
            warnings=state.warnings,
            cwd=state.base_dir,
        )

    exported: List[str] = state.exported_decorators if category == DECORATORS_DIR else state.exported_methods
    if name not in exported:
        exported.append(name)


BUILTIN_ATTRIBUTES: Dict[str, BuiltinAttributeFn] = {
    "method": method_attribute,
    "decorator": decorator_attribute,
    "placeholder": placeholder_attribute,
}
