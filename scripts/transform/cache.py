from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict

from .constants import (
    EXTRACT_DIR,
    EXTRACT_HASH_FILE,
    GENERATED_CACHE_FILE,
    GENERATED_CACHE_VERSION,
)


def hash_extracted(category: str, src: str) -> str:
    digest = hashlib.sha256()
    digest.update(category.encode("utf-8"))
    digest.update(src.encode("utf-8"))
    return digest.hexdigest()


def hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def extract_hash_path(build_dir: Path, name: str) -> Path:
    return build_dir / EXTRACT_DIR / name / EXTRACT_HASH_FILE


def read_extract_hash(build_dir: Path, name: str) -> str:
    try:
        return extract_hash_path(build_dir, name).read_text(encoding="utf-8").strip()
    except OSError:
        return ""


def is_extracted_modified(build_dir: Path, name: str, hash_sum: str) -> bool:
    return read_extract_hash(build_dir, name) != hash_sum


def write_extract_hash(build_dir: Path, name: str, hash_sum: str) -> None:
    path = extract_hash_path(build_dir, name)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        path.unlink()
    path.write_text(hash_sum, encoding="utf-8")


def load_generated_cache(build_dir: Path) -> Dict[str, Any]:
    path = build_dir / GENERATED_CACHE_FILE
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    if not isinstance(payload, dict):
        return {}
    if payload.get("version") != GENERATED_CACHE_VERSION:
        return {}
    files = payload.get("files")
    if not isinstance(files, dict):
        return {}
    return payload


def save_generated_cache(build_dir: Path, files: Dict[str, str]) -> None:
    payload = {"version": GENERATED_CACHE_VERSION, "files": files}
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
        (build_dir / GENERATED_CACHE_FILE).write_text(
            json.dumps(payload, ensure_ascii=True, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except OSError:
        pass
