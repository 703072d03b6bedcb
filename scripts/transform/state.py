from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from utils import ToolState

from .config import TransformConfig
from .offsets import OffsetLedger


@dataclass
class FileState:
    """Everything one file's processing shares between its phases.

    A fresh instance is created for every file, so handlers exported while
    walking one file are only bootstrapped for that file.
    """

    path: Path
    base_dir: Path
    build_dir: Path
    config: TransformConfig
    tools: ToolState = field(default_factory=ToolState)
    warnings: List[str] = field(default_factory=list)
    exported_methods: List[str] = field(default_factory=list)
    exported_decorators: List[str] = field(default_factory=list)
    ledger: OffsetLedger = field(default_factory=OffsetLedger)
