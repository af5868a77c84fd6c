"""Loop state record: a markdown file with YAML frontmatter.

The metadata block carries the counters and the completion promise; the body
after the closing ``---`` line is the task prompt, fed back verbatim on every
iteration.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date, datetime
from pathlib import Path

import yaml

from .util import RalphLoopError, utc_now_iso

FRONTMATTER_RE = re.compile(r"^---[ \t]*\n(.*?)\n---[ \t]*(?:\n|$)", re.DOTALL)
ITERATION_LINE_RE = re.compile(r"^(iteration:[ \t]*)\d+", re.MULTILINE)


class StateCorruptedError(RalphLoopError):
    def __init__(self, path: Path | None, problem: str):
        where = f" ({path})" if path is not None else ""
        super().__init__(f"state file corrupted{where}: {problem}")
        self.path = path
        self.problem = problem


@dataclass(frozen=True)
class LoopState:
    prompt: str
    iteration: int = 1
    max_iterations: int = 0
    completion_promise: str | None = None
    started_at: str = ""
    active: bool = True

    @classmethod
    def new(
        cls,
        prompt: str,
        *,
        max_iterations: int = 0,
        completion_promise: str | None = None,
    ) -> LoopState:
        return cls(
            prompt=prompt,
            iteration=1,
            max_iterations=max_iterations,
            completion_promise=completion_promise or None,
            started_at=utc_now_iso(),
        )

    @property
    def unbounded(self) -> bool:
        return self.max_iterations == 0

    @property
    def limit_reached(self) -> bool:
        return not self.unbounded and self.iteration >= self.max_iterations

    def to_dict(self) -> dict:
        return asdict(self)


def _as_count(value: object) -> int | None:
    # YAML booleans are ints in Python; they are never valid counters.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < 0:
        return None
    return value


def _as_timestamp(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return ""
    return str(value)


def parse_state(text: str, path: Path | None = None) -> LoopState:
    match = FRONTMATTER_RE.match(text)
    if match is None:
        raise StateCorruptedError(path, "no valid frontmatter found")

    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise StateCorruptedError(path, "frontmatter is not valid YAML") from exc
    if not isinstance(meta, dict):
        raise StateCorruptedError(path, "frontmatter is not a key/value block")

    iteration = _as_count(meta.get("iteration"))
    if iteration is None or iteration < 1:
        raise StateCorruptedError(path, "'iteration' field not found or invalid")

    max_iterations = _as_count(meta.get("max_iterations"))
    if max_iterations is None:
        raise StateCorruptedError(path, "'max_iterations' field not found or invalid")

    raw_promise = meta.get("completion_promise")
    promise = None if raw_promise is None else str(raw_promise)

    prompt = text[match.end() :].strip()
    if not prompt:
        raise StateCorruptedError(path, "no prompt text found")

    return LoopState(
        prompt=prompt,
        iteration=iteration,
        max_iterations=max_iterations,
        completion_promise=promise or None,
        started_at=_as_timestamp(meta.get("started_at")),
        active=bool(meta.get("active", True)),
    )


def _quoted_scalar(value: str) -> str:
    # Double-quoted style escapes every character YAML cannot carry raw.
    dumped = yaml.safe_dump(
        value,
        default_style='"',
        allow_unicode=True,
        width=float("inf"),
    )
    return dumped.removesuffix("...\n").rstrip("\n")


def render_state(state: LoopState) -> str:
    if state.completion_promise is None:
        promise = "null"
    else:
        promise = _quoted_scalar(state.completion_promise)
    return (
        "---\n"
        f"active: {'true' if state.active else 'false'}\n"
        f"iteration: {state.iteration}\n"
        f"max_iterations: {state.max_iterations}\n"
        f"completion_promise: {promise}\n"
        f'started_at: "{state.started_at}"\n'
        "---\n"
        "\n"
        f"{state.prompt}\n"
    )


def read_state_text(path: Path) -> str | None:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def read_state(path: Path) -> LoopState | None:
    text = read_state_text(path)
    if text is None:
        return None
    return parse_state(text, path)


def write_state(path: Path, state: LoopState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_state(state), encoding="utf-8")


def bump_iteration(path: Path, text: str, iteration: int) -> str:
    """Rewrite the ``iteration:`` line of the frontmatter and nothing else."""
    match = FRONTMATTER_RE.match(text)
    if match is None:
        raise StateCorruptedError(path, "no valid frontmatter found")
    head, body = text[: match.end()], text[match.end() :]
    head, count = ITERATION_LINE_RE.subn(rf"\g<1>{iteration}", head, count=1)
    if count == 0:
        raise StateCorruptedError(path, "'iteration' field not found or invalid")
    updated = head + body
    path.write_text(updated, encoding="utf-8")
    return updated


def delete_state(path: Path, *, missing_ok: bool = True) -> None:
    path.unlink(missing_ok=missing_ok)


def summarize_state(state: LoopState) -> list[tuple[str, str]]:
    return [
        ("Iteration", str(state.iteration)),
        (
            "Max iterations",
            "unlimited" if state.unbounded else str(state.max_iterations),
        ),
        (
            "Completion promise",
            state.completion_promise
            if state.completion_promise is not None
            else "none (runs forever)",
        ),
        ("Started at", state.started_at or "unknown"),
    ]
