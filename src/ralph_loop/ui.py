from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Literal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

OUTPUT_ENV_VAR = "RALPH_LOOP_OUTPUT"
OUTPUT_CHOICES = ("auto", "plain", "rich")
OutputMode = Literal["plain", "rich"]

HelpRows = Sequence[tuple[str, str]]


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help=f"Output mode: auto (default), plain, or rich. Env: {OUTPUT_ENV_VAR}.",
    )


def _normalize_choice(raw: str | None, *, source: str) -> str | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if not value:
        return None
    if value not in OUTPUT_CHOICES:
        expected = ", ".join(OUTPUT_CHOICES)
        raise ValueError(f"invalid {source} value {raw!r}; expected one of: {expected}")
    return value


def _stream_is_tty(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    is_tty: bool | None = None,
) -> OutputMode:
    environ = os.environ if env is None else env
    selected = _normalize_choice(requested, source="--output")
    if selected is None:
        selected = _normalize_choice(environ.get(OUTPUT_ENV_VAR), source=OUTPUT_ENV_VAR)
    if selected is None:
        selected = "auto"

    if selected == "auto":
        tty = _stream_is_tty(sys.stdout) if is_tty is None else bool(is_tty)
        return "rich" if tty else "plain"
    return "rich" if selected == "rich" else "plain"


def output_mode_or_exit(requested: str | None = None) -> OutputMode:
    try:
        return resolve_output_mode(requested)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc


def make_console(mode: OutputMode) -> Console:
    return Console(
        file=sys.stdout,
        force_terminal=mode == "rich",
        no_color=mode != "rich",
        highlight=False,
    )


def _cell(value: object) -> Text:
    # Loop prompts and promises are user text; never let rich read them as markup.
    if isinstance(value, Text):
        return value
    return Text("" if value is None else str(value))


def render_table(
    console: Console,
    *,
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    title: str | None = None,
    no_wrap_columns: Sequence[int] = (),
) -> None:
    table = Table(title=title)
    for idx, header in enumerate(headers):
        table.add_column(str(header), no_wrap=idx in no_wrap_columns)
    for row in rows:
        table.add_row(*(_cell(value) for value in row))
    console.print(table)


def render_panel(console: Console, body: str | Text, *, title: str | None = None) -> None:
    console.print(Panel(_cell(body), title=title))


def _print_rows(rows: HelpRows) -> None:
    width = max(len(item) for item, _ in rows)
    for item, description in rows:
        if description:
            print(f"  {item.ljust(width)}  {description}")
        else:
            print(f"  {item}")


def render_plain_help(
    *,
    command: str,
    summary: str,
    usage: Sequence[str],
    sections: Sequence[tuple[str, HelpRows]],
    examples: HelpRows = (),
    notes: Sequence[str] = (),
) -> None:
    print(f"{command}  {summary}")
    print()
    print("Usage")
    for line in usage:
        print(f"  {line}")

    blocks = [(title, rows) for title, rows in sections if rows]
    if examples:
        blocks.append(("Examples", examples))
    for title, rows in blocks:
        print()
        print(title)
        _print_rows(rows)

    if notes:
        print()
        print("Notes")
        for line in notes:
            print(f"  {line}")


def render_rich_help(
    *,
    command: str,
    summary: str,
    usage: Sequence[str],
    sections: Sequence[tuple[str, HelpRows]],
    examples: HelpRows = (),
    notes: Sequence[str] = (),
) -> None:
    console = make_console("rich")
    render_panel(console, summary, title=f"[bold blue]{command}[/bold blue]")
    console.print()
    console.print(Text("Usage", style="bold"))
    for line in usage:
        console.print(Text(f"  {line}"))

    blocks = [(title, ("Item", "Description"), rows) for title, rows in sections if rows]
    if examples:
        blocks.append(("Examples", ("Command", "Purpose"), examples))
    for title, headers, rows in blocks:
        console.print()
        render_table(console, title=title, headers=headers, rows=rows, no_wrap_columns=(0,))

    if notes:
        console.print()
        render_panel(console, "\n".join(notes), title="Notes")


def render_help(*, output_mode: OutputMode, **content) -> None:
    if output_mode == "rich":
        render_rich_help(**content)
    else:
        render_plain_help(**content)
