"""Stop-hook entry point: ``ralph-loop hook``.

The host pipes the hook payload on stdin and reads a block decision from
stdout. This command always exits 0; a crash would be read by the host as a
hook failure rather than as permission to stop.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from .config import resolve_state_path
from .gate import GateDecision, evaluate
from .ui import output_mode_or_exit, render_help
from .util import eprint, json_dumps_compact


def _print_help() -> None:
    render_help(
        output_mode=output_mode_or_exit(),
        command="ralph-loop hook",
        summary="Stop hook: continue the active loop or allow the session to end",
        usage=("ralph-loop hook < payload.json",),
        sections=(
            (
                "Input",
                (("stdin", "hook payload JSON with a transcript_path"),),
            ),
            (
                "Output",
                (
                    ("block", '{"decision":"block","reason":<prompt>,"systemMessage":...}'),
                    ("stop", "nothing on stdout; diagnostics on stderr"),
                ),
            ),
        ),
        notes=("Exit status is always 0.",),
    )


def _read_payload(stream: TextIO) -> str:
    try:
        return stream.read()
    except (OSError, UnicodeDecodeError, ValueError):
        # An unreadable payload is handled like a malformed one.
        return ""


def run_hook(state_path: Path, stream: TextIO) -> GateDecision:
    return evaluate(state_path, _read_payload(stream))


def emit(decision: GateDecision) -> None:
    if decision.notice:
        eprint(decision.notice)
    if decision.blocks:
        print(json_dumps_compact(decision.to_hook_output()))


def main(
    argv: list[str] | None = None,
    *,
    state_path: Path | None = None,
    stdin: TextIO | None = None,
) -> None:
    args = list(argv or [])
    if "-h" in args or "--help" in args:
        _print_help()
        raise SystemExit(0)

    try:
        path = state_path or resolve_state_path()
    except ValueError as exc:
        eprint(f"ralph-loop: {exc}")
        return

    emit(run_hook(path, stdin or sys.stdin))


if __name__ == "__main__":
    main(sys.argv[1:])
