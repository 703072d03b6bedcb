"""Per-file transformation pipeline.

Each file goes through: usage scanning, a builtin-only phase (which may
extract and compile user handlers), bootstrapping of the compiled handlers,
a phase dispatching to user decorators, the comment cleanup, and finally a
conditional write of ``<stem>_generated.py``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider, WhitespaceInclusivePositionProvider

from utils import ToolState, command_output, log, progress, run_cmd

from .builtin import BUILTIN_ATTRIBUTES
from .cache import hash_text, load_generated_cache, save_generated_cache
from .cleanup import cleanup_source
from .config import TransformConfig
from .constants import DECORATORS_DIR, METHODS_DIR, TARGET_NODE_TYPES
from .context import TransformContext
from .discovery import generated_path_for, lookup_source_files
from .errors import FatalTransformError, HandlerExecutionError, LoadError, TransformError
from .extract import load_extracted_function, module_path_for
from .offsets import line_starts, offset_for
from .state import FileState
from .usages import AttributeUsage, extract_attribute_usages, parse_source

ExtractedMethod = Callable[..., Any]
ExtractedDecorator = Callable[[TransformContext], Any]

WRITTEN = "written"
UP_TO_DATE = "up-to-date"
UNCHANGED = "unchanged"
NO_ATTRIBUTES = "no-attributes"


@dataclass
class TransformReport:
    written: List[str] = field(default_factory=list)
    up_to_date: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def is_blank_or_comments(text: str) -> bool:
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return False
    return True


class NodeResolver:
    """Parsed view of one buffer, used to bind anchors to target nodes."""

    def __init__(self, source: str, path: Optional[str] = None):
        wrapper = MetadataWrapper(parse_source(source, path))
        self.source = source
        self.module = wrapper.module
        self.positions = wrapper.resolve(PositionProvider)
        self.inclusive = wrapper.resolve(WhitespaceInclusivePositionProvider)
        self.starts = line_starts(source)
        candidates: List[Tuple[int, int, cst.CSTNode]] = []
        for node, position in self.positions.items():
            if type(node).__name__ not in TARGET_NODE_TYPES:
                continue
            start = self.start_of(node)
            end = offset_for(self.starts, position.end)
            candidates.append((start, -end, node))
        candidates.sort(key=lambda item: (item[0], item[1]))
        self.candidates = candidates

    def start_of(self, node: cst.CSTNode) -> int:
        start = offset_for(self.starts, self.positions[node].start)
        decorators = getattr(node, "decorators", ())
        if decorators:
            start = min(start, offset_for(self.starts, self.positions[decorators[0]].start))
        return start

    def inclusive_span(self, node: cst.CSTNode) -> Tuple[int, int]:
        position = self.inclusive[node]
        return offset_for(self.starts, position.start), offset_for(self.starts, position.end)

    def resolve(self, anchor: int) -> Optional[cst.CSTNode]:
        """First target node after ``anchor`` separated only by blank or comment lines."""
        for start, _, node in self.candidates:
            if start < anchor:
                continue
            if is_blank_or_comments(self.source[anchor:start]):
                return node
            # every later candidate is separated by the same content
            return None
        return None


class Transformer:
    def __init__(
        self,
        base_dir: Path,
        config: Optional[TransformConfig] = None,
        *,
        tools: Optional[ToolState] = None,
    ):
        self.base_dir = Path(base_dir)
        self.config = config or TransformConfig()
        self.build_dir = self.config.build_path(self.base_dir)
        self.tools = tools or ToolState()
        self.current_file = ""
        self.methods: Dict[str, ExtractedMethod] = {}
        self.decorators: Dict[str, ExtractedDecorator] = {}
        self.warnings: List[str] = []
        self._generated: Dict[str, str] = {}

    def log(self, *parts: object) -> None:
        log(f"{self.current_file}:", *parts)

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.base_dir).as_posix()
        except ValueError:
            return path.as_posix()

    def execute(self) -> TransformReport:
        report = TransformReport()
        cached = load_generated_cache(self.build_dir).get("files", {})
        self._generated = {str(k): str(v) for k, v in cached.items()}
        try:
            for path in lookup_source_files(self.base_dir, self.config):
                rel = self.relative(path)
                try:
                    outcome = self.transform_file(path)
                except FatalTransformError:
                    raise
                except TransformError as exc:
                    report.failed[rel] = str(exc)
                    progress(f"Failed to transform file `{rel}`: {exc.message}")
                    continue
                if outcome == WRITTEN:
                    report.written.append(rel)
                elif outcome == UP_TO_DATE:
                    report.up_to_date.append(rel)
                elif outcome == UNCHANGED:
                    report.unchanged.append(rel)
        finally:
            save_generated_cache(self.build_dir, self._generated)
        report.warnings = list(self.warnings)
        return report

    def transform_file(self, path: Path) -> str:
        rel = self.relative(path)
        self.current_file = rel
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TransformError(f"Failed to read file: {exc}", rel) from exc

        self.methods.clear()
        self.decorators.clear()
        state = FileState(
            path=path,
            base_dir=self.base_dir,
            build_dir=self.build_dir,
            config=self.config,
            tools=self.tools,
            warnings=self.warnings,
        )

        usages = extract_attribute_usages(source, rel)
        if not usages:
            return NO_ATTRIBUTES

        self.log("Applying builtin only attributes...")
        buffer, builtin_modified = self.process_attribute_transforms(source, usages, state, builtin_only=True)

        self.load_extracted_functions(state)

        self.log("Applying all remaining attributes...")
        buffer, user_modified = self.process_attribute_transforms(buffer, usages, state, builtin_only=False)

        for usage in usages:
            if not usage.applied:
                names = ", ".join(usage.attributes[idx].name for idx in usage.pending())
                self.warnings.append(f"{rel}: unresolved attribute(s) `{names}`")

        if not (builtin_modified or user_modified):
            return UNCHANGED

        self.log("Cleaning up...")
        buffer = cleanup_source(buffer, self.config.generated_tag, rel)
        if buffer == source:
            self.log("No changes detected. Skipping...")
            return UNCHANGED

        return self.write_output(path, buffer)

    def write_output(self, path: Path, buffer: str) -> str:
        target = generated_path_for(path, self.config.generated_suffix)
        key = self.relative(target)
        digest = hash_text(buffer)
        if target.exists() and self._generated.get(key) == digest:
            self.log("Generated file is up to date:", key)
            return UP_TO_DATE

        self.log("Writing to file:", key)
        try:
            target.write_text(buffer, encoding="utf-8")
        except OSError as exc:
            raise TransformError(f"Failed to write {key}: {exc}", self.current_file) from exc
        self._generated[key] = digest

        if self.config.import_fixer:
            self.log("Normalizing imports")
            result = run_cmd(
                [*self.config.import_fixer, str(target)],
                cwd=self.base_dir,
                warnings=self.warnings,
                tools=self.tools,
            )
            if result is not None and result.returncode != 0:
                self.warnings.append(f"{key}: import normalization failed: {command_output(result)}")
        return WRITTEN

    def load_extracted_functions(self, state: FileState) -> None:
        for name in state.exported_methods:
            path = module_path_for(self.build_dir, METHODS_DIR, name)
            try:
                fn = load_extracted_function(path, METHODS_DIR)
            except FatalTransformError:
                raise
            except LoadError as exc:
                self.warnings.append(f"{self.current_file}: Failed to load method `{name}`: {exc}")
                continue
            self.log("Extracted method:", name)
            self.methods[name] = fn

        for name in state.exported_decorators:
            path = module_path_for(self.build_dir, DECORATORS_DIR, name)
            try:
                fn = load_extracted_function(path, DECORATORS_DIR)
            except FatalTransformError:
                raise
            except LoadError as exc:
                raise FatalTransformError(
                    f"Failed to load decorator `{name}`: {exc.message}", self.current_file
                ) from exc
            self.log("Extracted decorator:", name)
            self.decorators[name] = fn

    def process_attribute_transforms(
        self,
        buffer: str,
        usages: List[AttributeUsage],
        state: FileState,
        *,
        builtin_only: bool,
    ) -> Tuple[str, bool]:
        if not any(not usage.applied for usage in usages):
            return buffer, False

        resolver = NodeResolver(buffer, self.current_file)
        modified = False
        for usage in usages:
            if usage.applied:
                continue
            anchor = state.ledger.translate(usage.anchor_offset)
            if anchor is None:
                self.warnings.append(
                    f"{self.current_file}: attribute(s) `{', '.join(usage.names)}` removed with their target"
                )
                usage.applied = True
                continue
            node = resolver.resolve(anchor)
            if node is None:
                if not builtin_only:
                    self.log(f"No declaration attached to `{', '.join(usage.names)}` at position {anchor}")
                continue

            context = TransformContext(
                node,
                resolver.module,
                buffer,
                positions=resolver.positions,
                line_starts=resolver.starts,
                state=state,
                methods=self.methods,
            )
            self.run_attributes(context, usage, anchor, builtin_only=builtin_only)

            if context.is_deleted() and not usage.applied:
                skipped = ", ".join(usage.attributes[idx].name for idx in usage.pending())
                self.warnings.append(f"{self.current_file}: `{skipped}` skipped, target was deleted")
                usage.applied = True

            if not context.modified:
                continue

            self.log(f"Attribute `{usage.attributes[0].name}` modified source")
            start, end = resolver.inclusive_span(node)
            if not context.is_removed():
                # leading lines are carried over to the replacement unchanged
                start = resolver.start_of(node)
            updated = context.apply(resolver.module).code
            delta = len(updated) - len(buffer)
            state.ledger.record(start, end - start, end - start + delta, removed=context.is_deleted())
            buffer = updated
            resolver = NodeResolver(buffer, self.current_file)
            modified = True

        return buffer, modified

    def run_attributes(
        self,
        context: TransformContext,
        usage: AttributeUsage,
        anchor: int,
        *,
        builtin_only: bool,
    ) -> None:
        for index, attribute in enumerate(usage.attributes):
            if index in usage.dispatched:
                continue
            if context.is_deleted():
                break
            if builtin_only:
                handler = BUILTIN_ATTRIBUTES.get(attribute.name)
                kind = "builtin attribute"
            else:
                handler = self.decorators.get(attribute.name)
                kind = "decorator"
            if handler is None:
                continue

            context.set_args(attribute.arguments)
            self.log(f"Executing {kind}: `{attribute.name}` on position {anchor}")
            try:
                outcome = handler(context)
            except TransformError:
                raise
            except Exception as exc:
                raise HandlerExecutionError(
                    f"Failed to execute {kind} `{attribute.name}`: {exc}", self.current_file
                ) from exc
            if outcome is False:
                raise HandlerExecutionError(f"{kind} `{attribute.name}` reported failure", self.current_file)
            usage.mark_dispatched(index)
