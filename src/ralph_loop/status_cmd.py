from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import display_path, resolve_state_path
from .state import StateCorruptedError, read_state, summarize_state
from .ui import (
    add_output_mode_argument,
    make_console,
    output_mode_or_exit,
    render_help,
    render_table,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ralph-loop status", add_help=False)
    parser.add_argument("-h", "--help", action="store_true", default=False)
    parser.add_argument("--json", action="store_true", default=False)
    add_output_mode_argument(parser)
    return parser


def _print_help(*, output_mode: str) -> None:
    render_help(
        output_mode="rich" if output_mode == "rich" else "plain",
        command="ralph-loop status",
        summary="show the active loop in this workspace",
        usage=("ralph-loop status [--json] [--output auto|plain|rich]",),
        sections=(
            (
                "Options",
                (
                    ("--json", "print the loop state as JSON"),
                    ("--output MODE", "auto (default), plain, or rich"),
                    ("-h, --help", "show this help"),
                ),
            ),
        ),
        examples=(
            ("ralph-loop status", "current iteration and limits"),
            ("ralph-loop status --json", "machine-readable state"),
        ),
    )


def main(argv: list[str] | None = None, *, state_path: Path | None = None) -> None:
    args = _build_parser().parse_args(argv or [])
    output_mode = output_mode_or_exit(args.output)

    if args.help:
        _print_help(output_mode=output_mode)
        raise SystemExit(0)

    try:
        path = state_path or resolve_state_path()
        state = read_state(path)
    except (StateCorruptedError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.json:
        payload: dict = {"active": False}
        if state is not None:
            payload = state.to_dict()
            payload["state_path"] = str(path)
        json.dump(payload, sys.stdout, indent=2)
        print()
        return

    if state is None:
        print("No active loop.")
        return

    rows = summarize_state(state)
    rows.append(("State file", display_path(path)))
    if output_mode == "rich":
        console = make_console("rich")
        render_table(
            console,
            title="Ralph loop",
            headers=("Field", "Value"),
            rows=rows,
            no_wrap_columns=(0,),
        )
        console.print()
        console.print(state.prompt, markup=False, soft_wrap=True)
        return

    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        print(f"{label.ljust(width)}  {value}")
    print()
    print(state.prompt)
