#!/usr/bin/env python3
"""attrgen CLI: expand `# @[...]` annotations into `*_generated.py` files."""

from __future__ import annotations

import argparse
import json
import shutil
import sys
from pathlib import Path
from typing import List, Sequence

from transform import (
    FatalTransformError,
    TransformReport,
    Transformer,
    generated_files,
    is_active,
    load_config,
    lookup_source_files,
)
from transform.discovery import relative_paths
from utils import progress, set_verbose
from .config import parse_tags, resolve_base_dir

VERSION = "0.1.0"


def remove_path(path: Path) -> None:
    if not path.exists():
        return
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    else:
        try:
            path.unlink()
        except OSError:
            pass


def build_summary(report: TransformReport, *, max_sample: int = 20) -> str:
    lines: List[str] = []
    lines.append(f"WRITTEN: {len(report.written)}")
    lines.extend(f"  {path}" for path in report.written[:max_sample])
    lines.append(f"UP_TO_DATE: {len(report.up_to_date)}")
    lines.append(f"UNCHANGED: {len(report.unchanged)}")
    if report.failed:
        lines.append(f"FAILED: {len(report.failed)}")
        for path, reason in list(report.failed.items())[:max_sample]:
            lines.append(f"  {path}: {reason}")
    if report.warnings:
        lines.append("WARNINGS:")
        for warning in report.warnings[:max_sample]:
            lines.append(f"  {warning}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Annotation-driven source transformer")
    parser.add_argument("--version", action="version", version=f"attrgen {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Trace every step to stderr")

    subparsers = parser.add_subparsers(dest="command")

    transform_parser = subparsers.add_parser(
        "transform", help="Generate *_generated.py files for annotated sources"
    )
    transform_parser.add_argument("dir", nargs="?", default=".", help="Target directory (default: .)")
    transform_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    transform_parser.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Trace every step to stderr"
    )

    active_parser = subparsers.add_parser(
        "active", help="List source files whose build constraint holds for the given tags"
    )
    active_parser.add_argument("dir", nargs="?", default=".", help="Target directory (default: .)")
    active_parser.add_argument(
        "--tags", default=None, help="Comma list of enabled tags (default: generated)"
    )
    active_parser.add_argument(
        "--include-generated",
        action="store_true",
        help="Also consider *_generated.py files",
    )

    clean_parser = subparsers.add_parser(
        "clean", help="Remove generated files and the build directory"
    )
    clean_parser.add_argument("dir", nargs="?", default=".", help="Target directory (default: .)")
    clean_parser.add_argument(
        "--keep-build", action="store_true", help="Keep the build directory"
    )
    return parser


def run_transform(args: argparse.Namespace) -> int:
    base_dir = resolve_base_dir(args.dir)
    warnings: List[str] = []
    config, config_file = load_config(base_dir, warnings)
    if config_file:
        progress(f"Loaded {config_file}", done=True)

    transformer = Transformer(base_dir, config)
    transformer.warnings.extend(warnings)
    try:
        report = transformer.execute()
    except FatalTransformError as exc:
        print(f"fatal: {exc}", file=sys.stderr)
        return 2

    if args.json:
        payload = {
            "written": report.written,
            "up_to_date": report.up_to_date,
            "unchanged": report.unchanged,
            "failed": report.failed,
            "warnings": report.warnings,
        }
        print(json.dumps(payload, ensure_ascii=True, indent=2))
    else:
        print(build_summary(report))
    progress(f"Transformed {len(report.written)} files", done=True)
    return 0 if report.ok else 1


def active_files(base_dir: Path, tags: Sequence[str], *, include_generated: bool = False) -> List[Path]:
    warnings: List[str] = []
    config, _ = load_config(base_dir, warnings)
    candidates = lookup_source_files(base_dir, config)
    if include_generated:
        candidates = sorted(candidates + generated_files(base_dir, config))
    selected: List[Path] = []
    for path in candidates:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        if is_active(source, tags):
            selected.append(path)
    return selected


def run_active(args: argparse.Namespace) -> int:
    base_dir = resolve_base_dir(args.dir)
    selected = active_files(base_dir, parse_tags(args.tags), include_generated=args.include_generated)
    for path in relative_paths(base_dir, selected):
        print(path)
    return 0


def run_clean(args: argparse.Namespace) -> int:
    base_dir = resolve_base_dir(args.dir)
    warnings: List[str] = []
    config, _ = load_config(base_dir, warnings)
    removed = generated_files(base_dir, config)
    for path in removed:
        remove_path(path)
    if not args.keep_build:
        remove_path(config.build_path(base_dir))
    progress(f"Removed {len(removed)} generated files", done=True)
    return 0


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    set_verbose(args.verbose)

    if args.command == "transform":
        return run_transform(args)

    if args.command == "active":
        return run_active(args)

    if args.command == "clean":
        return run_clean(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
