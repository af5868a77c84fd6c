from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.panel import Panel
from rich.text import Text

from .config import display_path, resolve_state_path
from .promise import format_promise
from .state import LoopState, summarize_state, write_state
from .ui import OutputMode, make_console, output_mode_or_exit, render_help
from .util import RalphLoopError

HELP_FLAGS = ("-h", "--help")
MAX_ITERATIONS_FLAG = "--max-iterations"
COMPLETION_PROMISE_FLAG = "--completion-promise"

_COUNT_RE = re.compile(r"[0-9]+")

MAX_ITERATIONS_EXAMPLES = (
    "--max-iterations 10",
    "--max-iterations 50",
    "--max-iterations 0  (unlimited)",
)
COMPLETION_PROMISE_EXAMPLES = (
    '--completion-promise "DONE"',
    '--completion-promise "TASK COMPLETE"',
    "multi-word promises must be quoted",
)
PROMPT_EXAMPLES = (
    "ralph-loop start Build a REST API for todos",
    "ralph-loop start Fix the auth bug --max-iterations 20",
    'ralph-loop start --completion-promise "DONE" Refactor code',
)


class StartUsageError(RalphLoopError):
    def __init__(self, message: str, examples: tuple[str, ...] = ()):
        super().__init__(message)
        self.examples = examples


@dataclass(frozen=True)
class StartArgs:
    prompt: str = ""
    max_iterations: int = 0
    completion_promise: str | None = None
    help: bool = False


def _split_flag(token: str) -> tuple[str, str | None]:
    for flag in (MAX_ITERATIONS_FLAG, COMPLETION_PROMISE_FLAG):
        if token.startswith(flag + "="):
            return flag, token[len(flag) + 1 :]
    return token, None


def parse_start_args(tokens: list[str]) -> StartArgs:
    """Parse initializer tokens.

    Recognized flags take a value; every other token, in order, is part of
    the prompt. A help flag anywhere wins over everything else.
    """
    if any(token in HELP_FLAGS for token in tokens):
        return StartArgs(help=True)

    max_iterations = 0
    completion_promise: str | None = None
    prompt_parts: list[str] = []

    idx = 0
    while idx < len(tokens):
        flag, value = _split_flag(tokens[idx])
        if flag in (MAX_ITERATIONS_FLAG, COMPLETION_PROMISE_FLAG) and value is None:
            idx += 1
            value = tokens[idx] if idx < len(tokens) else None

        if flag == MAX_ITERATIONS_FLAG:
            if not value:
                raise StartUsageError(
                    f"{MAX_ITERATIONS_FLAG} requires a number argument",
                    MAX_ITERATIONS_EXAMPLES,
                )
            if not _COUNT_RE.fullmatch(value):
                raise StartUsageError(
                    f"{MAX_ITERATIONS_FLAG} must be a positive integer or 0, got: {value}",
                    MAX_ITERATIONS_EXAMPLES,
                )
            max_iterations = int(value)
        elif flag == COMPLETION_PROMISE_FLAG:
            if not value:
                raise StartUsageError(
                    f"{COMPLETION_PROMISE_FLAG} requires a text argument",
                    COMPLETION_PROMISE_EXAMPLES,
                )
            completion_promise = value
        else:
            prompt_parts.append(tokens[idx])
        idx += 1

    prompt = " ".join(prompt_parts)
    if not prompt.strip():
        raise StartUsageError("no prompt provided", PROMPT_EXAMPLES)

    return StartArgs(
        prompt=prompt,
        max_iterations=max_iterations,
        completion_promise=completion_promise,
    )


def _print_help(*, output_mode: OutputMode) -> None:
    render_help(
        output_mode=output_mode,
        command="ralph-loop start",
        summary="start a self-referential loop in the current session",
        usage=("ralph-loop start [PROMPT...] [OPTIONS]",),
        sections=(
            (
                "Arguments",
                (("PROMPT...", "task prompt; several words need no quotes"),),
            ),
            (
                "Options",
                (
                    (
                        f"{MAX_ITERATIONS_FLAG} <n>",
                        "iterations before auto-stop (default: 0, unlimited)",
                    ),
                    (
                        f"{COMPLETION_PROMISE_FLAG} <text>",
                        "promise phrase that ends the loop (quote multi-word text)",
                    ),
                    ("-h, --help", "show this help"),
                ),
            ),
            (
                "Stopping",
                (
                    ("limit", f"reaching {MAX_ITERATIONS_FLAG}"),
                    ("promise", "outputting <promise>TEXT</promise> with the exact phrase"),
                    ("cancel", "ralph-loop cancel"),
                ),
            ),
        ),
        examples=(
            (
                "ralph-loop start Build a todo API --completion-promise DONE --max-iterations 20",
                "bounded loop with a promise",
            ),
            ("ralph-loop start --max-iterations 10 Fix the auth bug", "bounded loop"),
            ("ralph-loop start Refactor cache layer", "runs until cancelled"),
        ),
        notes=(
            "The Stop hook (`ralph-loop hook`) feeds the SAME prompt back each time",
            "the session tries to end. Inspect progress with `ralph-loop status`.",
        ),
    )


def _print_usage_error(exc: StartUsageError) -> None:
    print(f"error: {exc}", file=sys.stderr)
    if exc.examples:
        print(file=sys.stderr)
        print("  Valid examples:", file=sys.stderr)
        for example in exc.examples:
            print(f"    {example}", file=sys.stderr)
    print(file=sys.stderr)
    print("  For all options: ralph-loop start --help", file=sys.stderr)


def _activation_rows(state: LoopState, state_label: str) -> list[tuple[str, str]]:
    rows = summarize_state(state)
    if state.completion_promise is not None:
        rows = [
            (label, f"{value} (ONLY output when TRUE - do not lie!)")
            if label == "Completion promise"
            else (label, value)
            for label, value in rows
        ]
    rows.append(("State file", state_label))
    return rows


def _promise_rules(promise: str) -> list[str]:
    return [
        "To complete this loop, output this EXACT text:",
        f"  {format_promise(promise)}",
        "",
        "STRICT REQUIREMENTS (DO NOT VIOLATE):",
        "  - Use <promise> tags EXACTLY as shown above",
        "  - The statement MUST be completely and unequivocally TRUE",
        "  - Do NOT output false statements to exit the loop",
        "  - Do NOT lie even if you think you should exit",
        "",
        "IMPORTANT - Do not circumvent the loop:",
        "  Even if you believe you're stuck, the task is impossible,",
        "  or you've been running too long, you MUST NOT output a",
        "  false promise statement. The loop continues until the",
        "  promise is GENUINELY TRUE.",
        "",
        "  If the loop should stop, the promise statement will become",
        "  true naturally. Do not force it by lying.",
    ]


_LOOP_EXPLAINER = (
    "The stop hook is now active. When you try to exit, the SAME PROMPT will be",
    "fed back to you. You'll see your previous work in files, creating a",
    "self-referential loop where you iteratively improve on the same task.",
)

_NO_MANUAL_STOP = (
    "WARNING: this loop only ends at --max-iterations or a matching",
    "--completion-promise (or `ralph-loop cancel` from outside the session).",
)


def _print_plain_activation(state: LoopState, state_label: str) -> None:
    print("Ralph loop activated in this session!")
    print()
    for label, value in _activation_rows(state, state_label):
        print(f"{label}: {value}")
    print()
    for line in _LOOP_EXPLAINER:
        print(line)
    print()
    for line in _NO_MANUAL_STOP:
        print(line)
    print()
    print(state.prompt)

    if state.completion_promise is not None:
        rule = "=" * 63
        print()
        print(rule)
        print("CRITICAL - Ralph Loop Completion Promise")
        print(rule)
        print()
        for line in _promise_rules(state.completion_promise):
            print(line)
        print(rule)


def _print_rich_activation(state: LoopState, state_label: str) -> None:
    console = make_console("rich")
    summary = Text()
    for idx, (label, value) in enumerate(_activation_rows(state, state_label)):
        if idx:
            summary.append("\n")
        summary.append(f"{label}: ", style="bold")
        summary.append(value)
    console.print(Panel(summary, title="Ralph loop activated", style="cyan"))
    console.print(Text("\n".join(_LOOP_EXPLAINER)))
    console.print()
    console.print(Text("\n".join(_NO_MANUAL_STOP), style="yellow"))
    console.print()
    console.print(Text(state.prompt), soft_wrap=True)

    if state.completion_promise is not None:
        console.print()
        console.print(
            Panel(
                Text("\n".join(_promise_rules(state.completion_promise))),
                title="CRITICAL - Ralph Loop Completion Promise",
                style="bold red",
            )
        )


def main(argv: list[str] | None = None, *, state_path: Path | None = None) -> None:
    tokens = list(argv or [])
    try:
        args = parse_start_args(tokens)
    except StartUsageError as exc:
        _print_usage_error(exc)
        raise SystemExit(1) from exc

    output_mode = output_mode_or_exit()
    if args.help:
        _print_help(output_mode=output_mode)
        raise SystemExit(0)

    try:
        path = state_path or resolve_state_path()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    state = LoopState.new(
        args.prompt,
        max_iterations=args.max_iterations,
        completion_promise=args.completion_promise,
    )
    write_state(path, state)

    state_label = display_path(path)
    if output_mode == "rich":
        _print_rich_activation(state, state_label)
    else:
        _print_plain_activation(state, state_label)


if __name__ == "__main__":
    main(sys.argv[1:])
