from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional

from utils import progress

from .config import TransformConfig
from .constants import GENERATED_SUFFIX, SOURCE_EXTENSION


def generated_path_for(path: Path, suffix: str = GENERATED_SUFFIX) -> Path:
    """``pkg/foo.py`` -> ``pkg/foo_generated.py``."""
    return path.with_name(f"{path.stem}{suffix}{path.suffix or SOURCE_EXTENSION}")


def is_generated_file(path: Path, suffix: str = GENERATED_SUFFIX) -> bool:
    return path.stem.endswith(suffix)


def is_test_file(path: Path) -> bool:
    name = path.name.lower()
    return name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py"


def lookup_source_files(base_dir: Path, config: Optional[TransformConfig] = None) -> List[Path]:
    config = config or TransformConfig()
    build_dir = config.build_path(base_dir).resolve()
    excluded = set(config.exclude_dirs)
    files: List[Path] = []
    skipped_symlinks = 0

    for root, dirs, filenames in os.walk(base_dir):
        root_path = Path(root)
        dirs[:] = sorted(
            d
            for d in dirs
            if d not in excluded
            and not d.startswith(".")
            and (root_path / d).resolve() != build_dir
        )
        for filename in sorted(filenames):
            full = root_path / filename
            if full.suffix != SOURCE_EXTENSION:
                continue
            if full.is_symlink():
                skipped_symlinks += 1
                continue
            if is_test_file(full) or is_generated_file(full, config.generated_suffix):
                continue
            files.append(full)

    if skipped_symlinks:
        progress(f"Found {len(files)} source files (skipped {skipped_symlinks} symlinks)", done=True)
    else:
        progress(f"Found {len(files)} source files", done=True)
    return sorted(files)


def generated_files(base_dir: Path, config: Optional[TransformConfig] = None) -> List[Path]:
    config = config or TransformConfig()
    return [
        generated_path_for(path, config.generated_suffix)
        for path in lookup_source_files(base_dir, config)
        if generated_path_for(path, config.generated_suffix).exists()
    ]


def relative_paths(base_dir: Path, paths: Iterable[Path]) -> List[str]:
    out: List[str] = []
    for path in paths:
        try:
            out.append(path.relative_to(base_dir).as_posix())
        except ValueError:
            out.append(path.as_posix())
    return out
