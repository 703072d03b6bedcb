from __future__ import annotations

from .builtin import BUILTIN_ATTRIBUTES
from .cache import hash_extracted, hash_text, load_generated_cache, save_generated_cache
from .cleanup import cleanup_source, rewrite_build_comment
from .config import TransformConfig, load_config
from .constants import (
    BUILD_COMMENT,
    BUILD_DIR,
    CONFIG_FILES,
    DECORATORS_DIR,
    GENERATED_SUFFIX,
    GENERATED_TAG,
    METHODS_DIR,
)
from .constraint import (
    ConstraintSyntaxError,
    file_constraint,
    is_active,
    parse_build_comment,
    parse_expr,
    render_build_comment,
)
from .context import DELETED, TransformContext
from .discovery import generated_files, generated_path_for, lookup_source_files
from .errors import (
    BuildError,
    ExtractionError,
    FatalTransformError,
    HandlerExecutionError,
    LoadError,
    ModuleOpenError,
    ParseError,
    TransformError,
)
from .extract import collect_imports, extract_as_module, load_extracted_function, module_path_for
from .offsets import OffsetLedger
from .parse import AttributeInstruction, InstructionParser, parse_attributes
from .pipeline import NodeResolver, TransformReport, Transformer
from .state import FileState
from .usages import AttributeUsage, extract_attribute_usages

__all__ = [
    "BUILD_COMMENT",
    "BUILD_DIR",
    "BUILTIN_ATTRIBUTES",
    "CONFIG_FILES",
    "DECORATORS_DIR",
    "DELETED",
    "GENERATED_SUFFIX",
    "GENERATED_TAG",
    "METHODS_DIR",
    "AttributeInstruction",
    "AttributeUsage",
    "BuildError",
    "ConstraintSyntaxError",
    "ExtractionError",
    "FatalTransformError",
    "FileState",
    "HandlerExecutionError",
    "InstructionParser",
    "LoadError",
    "ModuleOpenError",
    "NodeResolver",
    "OffsetLedger",
    "ParseError",
    "TransformConfig",
    "TransformContext",
    "TransformError",
    "TransformReport",
    "Transformer",
    "cleanup_source",
    "collect_imports",
    "extract_as_module",
    "extract_attribute_usages",
    "file_constraint",
    "generated_files",
    "generated_path_for",
    "hash_extracted",
    "hash_text",
    "is_active",
    "load_config",
    "load_extracted_function",
    "load_generated_cache",
    "lookup_source_files",
    "module_path_for",
    "parse_attributes",
    "parse_build_comment",
    "parse_expr",
    "render_build_comment",
    "rewrite_build_comment",
    "save_generated_cache",
]
