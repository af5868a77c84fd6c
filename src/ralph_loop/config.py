from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

STATE_DIR_ENV_VAR = "RALPH_LOOP_STATE_DIR"
STATE_FILE_ENV_VAR = "RALPH_LOOP_STATE_FILE"

DEFAULT_STATE_DIR = ".claude"
DEFAULT_STATE_FILE = "ralph-loop.local.md"


def resolve_state_path(
    cwd: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Return the path of the loop state record.

    Resolution order:
    1. RALPH_LOOP_STATE_DIR (relative values are taken from cwd)
    2. cwd/.claude

    The file name is RALPH_LOOP_STATE_FILE or ``ralph-loop.local.md``.
    Nothing is created here; the initializer creates the directory on write.
    """
    environ = os.environ if env is None else env
    base = cwd or Path.cwd()

    raw_dir = environ.get(STATE_DIR_ENV_VAR, "").strip()
    if raw_dir:
        state_dir = Path(raw_dir).expanduser()
        if not state_dir.is_absolute():
            state_dir = base / state_dir
    else:
        state_dir = base / DEFAULT_STATE_DIR

    name = environ.get(STATE_FILE_ENV_VAR, "").strip() or DEFAULT_STATE_FILE
    if Path(name).name != name:
        raise ValueError(f"{STATE_FILE_ENV_VAR} must be a bare file name, got {name!r}")
    return state_dir / name


def display_path(path: Path, cwd: Path | None = None) -> str:
    base = cwd or Path.cwd()
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return str(path)
