from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set

LOG_PREFIX = "@"

_VERBOSE = False


@dataclass
class ToolState:
    missing: Set[str] = field(default_factory=set)
    used: Set[str] = field(default_factory=set)


def set_verbose(enabled: bool) -> None:
    global _VERBOSE
    _VERBOSE = bool(enabled)


def progress(message: str, done: bool = False) -> None:
    """Print a progress message to stderr (doesn't interfere with stdout output)."""
    if done:
        print(f"  [done] {message}", file=sys.stderr)
    else:
        print(f"  [....] {message}", file=sys.stderr)


def log(*parts: object) -> None:
    """Verbose trace line, only printed when verbose mode is on."""
    if not _VERBOSE:
        return
    print(LOG_PREFIX, *parts, file=sys.stderr)


def run_cmd(
    cmd: Sequence[str],
    *,
    cwd: Optional[Path],
    warnings: List[str],
    tools: ToolState,
) -> Optional[subprocess.CompletedProcess]:
    tool = cmd[0]
    if tool in tools.missing:
        return None
    tools.used.add(tool)
    try:
        return subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            check=False,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        tools.missing.add(tool)
        warnings.append(f"Missing tool: {tool}")
        return None


def command_output(result: subprocess.CompletedProcess) -> str:
    parts = [result.stderr or "", result.stdout or ""]
    text = "\n".join(part.strip() for part in parts if part and part.strip())
    return text or f"exit status {result.returncode}"
