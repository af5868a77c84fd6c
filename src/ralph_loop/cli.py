"""CLI entry point for ralph-loop."""

from __future__ import annotations

import sys

from rich.text import Text

from . import __version__, cancel_cmd, hook_cmd, start_cmd, status_cmd
from .ui import make_console, output_mode_or_exit, render_help

COMMANDS = {
    "start": start_cmd.main,
    "hook": hook_cmd.main,
    "status": status_cmd.main,
    "cancel": cancel_cmd.main,
}

# These take flags only; a bare word after one means the whole line is a prompt.
FLAG_ONLY_COMMANDS = frozenset({"hook", "status", "cancel"})


def _print_help() -> None:
    render_help(
        output_mode=output_mode_or_exit(),
        command="ralph-loop",
        summary=f"{__version__} - continue-until-done loop for coding assistant sessions",
        usage=(
            "ralph-loop start <prompt...> [--max-iterations N] [--completion-promise TEXT]",
            "ralph-loop <prompt...> [OPTIONS]",
            "ralph-loop hook|status|cancel",
        ),
        sections=(
            (
                "Commands",
                (
                    ("start", "write the loop state and print the task"),
                    ("hook", "Stop hook: re-inject the prompt or allow the stop"),
                    ("status", "show the active loop"),
                    ("cancel", "delete the active loop"),
                ),
            ),
            (
                "Options",
                (
                    ("--version", "show version"),
                    ("-h, --help", "show this help"),
                ),
            ),
        ),
        examples=(
            (
                'ralph-loop start Build a todo API --completion-promise "DONE" --max-iterations 20',
                "start a bounded loop",
            ),
            ("ralph-loop status --json", "inspect the current iteration"),
        ),
        notes=(
            "Any first token that is not a command starts a loop with the",
            "full argument list as the prompt. A prompt may also begin with",
            "hook, status or cancel when a plain word follows it, so",
            "`ralph-loop cancel the old flow` starts a loop. Prefix a prompt",
            "that begins with the word start with `start`:",
            "`ralph-loop start start the server`.",
        ),
    )


def main(argv: list[str] | None = None) -> None:
    raw = list(argv) if argv is not None else sys.argv[1:]

    if raw[:1] == ["--version"]:
        make_console("plain").print(Text(f"ralph-loop {__version__}", style="bold"))
        sys.exit(0)
    if not raw or raw[0] in ("-h", "--help"):
        _print_help()
        sys.exit(0)

    command = COMMANDS.get(raw[0])
    if raw[0] in FLAG_ONLY_COMMANDS and raw[1:2] and not raw[1].startswith("-"):
        command = None
    if command is not None:
        command(raw[1:])
        return

    # Everything else is a prompt for the initializer
    start_cmd.main(raw)


if __name__ == "__main__":
    main()
