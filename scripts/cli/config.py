from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from transform.constants import GENERATED_TAG


def parse_tags(value: Optional[str]) -> List[str]:
    if not value:
        return [GENERATED_TAG]
    return [part.strip() for part in value.split(",") if part.strip()]


def resolve_base_dir(value: Optional[str]) -> Path:
    path = Path(value or ".").expanduser()
    return path.resolve()
