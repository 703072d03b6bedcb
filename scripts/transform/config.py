from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .constants import BUILD_DIR, CONFIG_FILES, EXCLUDE_DIRS, GENERATED_SUFFIX, GENERATED_TAG

COMPILE_SCRIPT = (
    "import py_compile, sys; "
    "py_compile.compile(sys.argv[1], cfile=sys.argv[2], doraise=True)"
)

IMPORT_FIXER = ["ruff", "check", "--fix", "--quiet", "--select", "F401,I"]


def default_compiler() -> List[str]:
    return [sys.executable, "-c", COMPILE_SCRIPT]


@dataclass
class TransformConfig:
    build_dir: str = BUILD_DIR
    generated_tag: str = GENERATED_TAG
    generated_suffix: str = GENERATED_SUFFIX
    # argv prefixes; the target path (and for the compiler the output path) is appended
    formatter: List[str] = field(default_factory=lambda: list(IMPORT_FIXER))
    import_fixer: List[str] = field(default_factory=lambda: list(IMPORT_FIXER))
    compiler: List[str] = field(default_factory=default_compiler)
    exclude_dirs: List[str] = field(default_factory=lambda: sorted(EXCLUDE_DIRS))

    def build_path(self, base_dir: Path) -> Path:
        path = Path(self.build_dir)
        if path.is_absolute():
            return path
        return base_dir / path


def normalize_argv(value: Any) -> Optional[List[str]]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item for item in value if item.strip()]
    return None


def normalize_str_list(value: Any) -> List[str]:
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def load_config(base_dir: Path, warnings: List[str]) -> Tuple[TransformConfig, Optional[str]]:
    config = TransformConfig()
    for filename in CONFIG_FILES:
        path = base_dir / filename
        if not path.exists():
            continue
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            warnings.append(f"Failed to parse {filename}: {exc}")
            return config, filename
        if not isinstance(payload, dict):
            warnings.append(f"Invalid {filename}: expected a JSON object")
            return config, filename

        for key in ("build_dir", "generated_tag", "generated_suffix"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                setattr(config, key, value.strip())
            elif key in payload:
                warnings.append(f"Invalid {filename}: `{key}` must be a non-empty string")

        for key in ("formatter", "import_fixer", "compiler"):
            if key not in payload:
                continue
            argv = normalize_argv(payload.get(key))
            if argv is None:
                warnings.append(f"Invalid {filename}: `{key}` must be a command list")
                continue
            if key == "compiler" and not argv:
                warnings.append(f"Invalid {filename}: `compiler` cannot be empty")
                continue
            setattr(config, key, argv)

        extra_excludes = normalize_str_list(payload.get("exclude_dirs"))
        if extra_excludes:
            config.exclude_dirs = sorted(set(config.exclude_dirs) | set(extra_excludes))
        return config, filename
    return config, None
