"""Error taxonomy for the transformer.

File-level errors abort the current file and leave the original untouched;
``FatalTransformError`` subclasses stop the whole run.
"""

from __future__ import annotations

from typing import Optional


class TransformError(Exception):
    """Base class for all transformer errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class FatalTransformError(TransformError):
    """The build environment is broken; no further file can be processed."""


class ParseError(TransformError):
    """The source could not be parsed into a syntax tree."""


class ExtractionError(TransformError):
    """An extracted handler module could not be written or formatted."""


class BuildError(TransformError):
    """The compiler failed on an extracted handler module."""


class LoadError(TransformError):
    """A compiled handler is missing its symbol or the symbol has the wrong shape."""


class ModuleOpenError(LoadError, FatalTransformError):
    """A compiled handler module could not be opened or executed."""


class HandlerExecutionError(TransformError):
    """A builtin or user handler failed."""
