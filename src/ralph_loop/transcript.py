"""Read the host's JSONL transcript and recover the latest assistant text."""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from pathlib import Path

from .util import RalphLoopError


class TranscriptError(RalphLoopError):
    def __init__(self, path: Path | None, problem: str):
        super().__init__(f"{problem}: {path}")
        self.path = path
        self.problem = problem


def reverse_lines(path: Path, block_size: int = 4096) -> Iterator[str]:
    """Yield non-blank lines from a file, last line first."""
    size = os.path.getsize(path)
    if size == 0:
        return
    with open(path, "rb") as f:
        remainder = b""
        pos = size
        while pos > 0:
            read_size = min(block_size, pos)
            pos -= read_size
            f.seek(pos)
            lines = (f.read(read_size) + remainder).split(b"\n")
            # The first piece may be the tail of a line that starts in an
            # earlier block.
            remainder = lines[0] if pos > 0 else b""
            start = 1 if pos > 0 else 0
            for line in reversed(lines[start:]):
                line = line.strip()
                if line:
                    yield line.decode("utf-8", errors="replace")
        if remainder.strip():
            yield remainder.strip().decode("utf-8", errors="replace")


def iter_entries_reversed(path: Path) -> Iterator[dict]:
    for line in reverse_lines(path):
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            yield entry


def is_assistant_entry(entry: dict) -> bool:
    if entry.get("role") == "assistant" or entry.get("type") == "assistant":
        return True
    message = entry.get("message")
    return isinstance(message, dict) and message.get("role") == "assistant"


def entry_text(entry: dict) -> str:
    message = entry.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts: list[str] = []
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        text = block.get("text")
        parts.append(text if isinstance(text, str) else "")
    return "\n".join(parts)


def last_assistant_text(path: Path | None) -> str:
    if path is None or not path.is_file():
        raise TranscriptError(path, "transcript file not found")

    try:
        for entry in iter_entries_reversed(path):
            if not is_assistant_entry(entry):
                continue
            text = entry_text(entry)
            if not text:
                raise TranscriptError(path, "assistant message contained no text content")
            return text
    except OSError as exc:
        raise TranscriptError(path, f"transcript unreadable ({exc.strerror or exc})") from exc

    raise TranscriptError(path, "no assistant messages found in transcript")
