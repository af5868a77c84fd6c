from __future__ import annotations

import re

PROMISE_RE = re.compile(r"<promise>(.*?)</promise>", re.DOTALL)


def extract_promise(text: str) -> str | None:
    """Return the first ``<promise>`` payload with whitespace runs collapsed."""
    match = PROMISE_RE.search(text)
    if match is None:
        return None
    return " ".join(match.group(1).split())


def promise_fulfilled(text: str, expected: str | None) -> bool:
    # Exact comparison: whitespace is normalized on the transcript side only,
    # case is never folded.
    if not expected:
        return False
    return extract_promise(text) == expected


def format_promise(expected: str) -> str:
    return f"<promise>{expected}</promise>"
