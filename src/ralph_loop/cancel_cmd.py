from __future__ import annotations

import sys
from pathlib import Path

from .config import display_path, resolve_state_path
from .state import StateCorruptedError, delete_state, parse_state, read_state_text


def main(argv: list[str] | None = None, *, state_path: Path | None = None) -> None:
    args = list(argv or [])
    if "-h" in args or "--help" in args:
        print("ralph-loop cancel  delete the active loop state; the next stop ends the session")
        raise SystemExit(0)

    try:
        path = state_path or resolve_state_path()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    text = read_state_text(path)
    if text is None:
        print("No active loop.")
        return

    try:
        state = parse_state(text, path)
    except StateCorruptedError:
        delete_state(path)
        print(f"Removed corrupted loop state at {display_path(path)}.")
        return

    delete_state(path)
    print(f"Cancelled loop at iteration {state.iteration}.")
