"""Extraction of user handlers into stand-alone compiled modules.

A function marked with a builtin ``decorator``/``method`` attribute is lifted
out of its file together with the file's absolute imports, written to
``<build>/extracted/<name>/extract.py``, formatted, byte-compiled by a
separate interpreter process into ``<build>/<category>/<name>.pyc`` and later
loaded back with ``importlib``.
"""

from __future__ import annotations

import importlib.machinery
import importlib.util
import inspect
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

import libcst as cst

from utils import ToolState, command_output, log, run_cmd

from .cache import write_extract_hash
from .config import TransformConfig
from .constants import COMPILED_SUFFIX, DECORATORS_DIR, EXTRACT_DIR, EXTRACT_SOURCE_FILE
from .errors import BuildError, ExtractionError, LoadError, ModuleOpenError


@dataclass(frozen=True)
class ExtractedArtifact:
    name: str
    category: str
    source_hash: str
    module_path: Path


def module_path_for(build_dir: Path, category: str, name: str) -> Path:
    return build_dir / category / f"{name}{COMPILED_SUFFIX}"


def extracted_source_path(build_dir: Path, name: str) -> Path:
    return build_dir / EXTRACT_DIR / name / EXTRACT_SOURCE_FILE


def collect_imports(module: cst.Module) -> List[str]:
    """Top-level absolute imports of a module, rendered without comments."""
    imports: List[str] = []
    for stmt in module.body:
        if not isinstance(stmt, cst.SimpleStatementLine):
            continue
        if not all(isinstance(item, (cst.Import, cst.ImportFrom)) for item in stmt.body):
            continue
        if any(isinstance(item, cst.ImportFrom) and item.relative for item in stmt.body):
            continue
        bare = stmt.with_changes(leading_lines=(), trailing_whitespace=cst.TrailingWhitespace())
        imports.append(module.code_for_node(bare).strip())
    return imports


def synthesize_module(src: str, imports: List[str]) -> str:
    parts: List[str] = []
    if imports:
        parts.append("\n".join(imports))
    parts.append(src.strip("\n"))
    return "\n\n\n".join(parts) + "\n"


def extract_as_module(
    name: str,
    src: str,
    category: str,
    imports: List[str],
    hash_sum: str,
    *,
    build_dir: Path,
    config: TransformConfig,
    tools: ToolState,
    warnings: List[str],
    cwd: Optional[Path] = None,
) -> ExtractedArtifact:
    source_path = extracted_source_path(build_dir, name)
    module_path = module_path_for(build_dir, category, name)

    try:
        source_path.parent.mkdir(parents=True, exist_ok=True)
        source_path.write_text(synthesize_module(src, imports), encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to write extracted `{name}`: {exc}") from exc

    if config.formatter:
        result = run_cmd([*config.formatter, str(source_path)], cwd=cwd, warnings=warnings, tools=tools)
        if result is not None and result.returncode != 0:
            raise ExtractionError(f"Failed to format extracted `{name}`: {command_output(result)}")

    try:
        module_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"Failed to create {module_path.parent}: {exc}") from exc
    result = run_cmd(
        [*config.compiler, str(source_path), str(module_path)],
        cwd=cwd,
        warnings=warnings,
        tools=tools,
    )
    if result is None:
        raise BuildError(f"Failed to build `{name}`: compiler `{config.compiler[0]}` not found")
    if result.returncode != 0:
        raise BuildError(f"Failed to build `{name}`: {command_output(result)}")

    try:
        write_extract_hash(build_dir, name, hash_sum)
    except OSError as exc:
        raise ExtractionError(f"Failed to record hash for `{name}`: {exc}") from exc

    log("built", category, name, "->", module_path)
    return ExtractedArtifact(name=name, category=category, source_hash=hash_sum, module_path=module_path)


def _accepts_context(fn: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(object())
    except TypeError:
        return False
    return True


def load_extracted_function(path: Path, category: str) -> Callable[..., Any]:
    name = path.name[: -len(COMPILED_SUFFIX)] if path.name.endswith(COMPILED_SUFFIX) else path.stem
    module_name = f"_attrgen_{category}_{name}"
    if not path.is_file():
        raise ModuleOpenError(f"Failed to open module {path}: file not found")

    loader = importlib.machinery.SourcelessFileLoader(module_name, str(path))
    spec = importlib.util.spec_from_loader(module_name, loader)
    if spec is None:
        raise ModuleOpenError(f"Failed to open module {path}: no module spec")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise ModuleOpenError(f"Failed to open module {path}: {exc}") from exc

    fn = getattr(module, name, None)
    if fn is None:
        raise LoadError(f"symbol `{name}` not found in {path}")
    if not callable(fn):
        raise LoadError(f"symbol `{name}` in {path} is not callable")
    if category == DECORATORS_DIR and not _accepts_context(fn):
        raise LoadError(f"decorator `{name}` must accept a single context argument")
    return fn
