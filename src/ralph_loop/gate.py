"""Stop-hook decision: let the session end or feed the prompt back in.

Every path resolves to a ``GateDecision``. Errors never escape ``evaluate``;
they abandon the loop (delete the state record) and allow the stop, so a bad
record can never trap the host in a loop it cannot exit.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .promise import format_promise, promise_fulfilled
from .state import StateCorruptedError, bump_iteration, delete_state, parse_state
from .transcript import TranscriptError, last_assistant_text
from .util import RalphLoopError

DecisionKind = Literal["stop", "block"]


class HookInputError(RalphLoopError):
    pass


@dataclass(frozen=True)
class GateDecision:
    kind: DecisionKind
    reason: str | None = None
    system_message: str | None = None
    notice: str | None = None
    iteration: int | None = None

    @classmethod
    def stop(cls, notice: str | None = None) -> GateDecision:
        return cls(kind="stop", notice=notice)

    @classmethod
    def block(cls, prompt: str, system_message: str, *, iteration: int) -> GateDecision:
        return cls(
            kind="block",
            reason=prompt,
            system_message=system_message,
            iteration=iteration,
        )

    @property
    def blocks(self) -> bool:
        return self.kind == "block"

    def to_hook_output(self) -> dict:
        if not self.blocks:
            raise ValueError("only block decisions produce hook output")
        return {
            "decision": "block",
            "reason": self.reason,
            "systemMessage": self.system_message,
        }


def transcript_path_from_payload(hook_input: str) -> Path:
    try:
        payload = json.loads(hook_input)
    except json.JSONDecodeError as exc:
        raise HookInputError(f"hook input is not valid JSON ({exc.msg})") from exc
    if not isinstance(payload, dict):
        raise HookInputError("hook input is not a JSON object")
    raw = payload.get("transcript_path")
    if not isinstance(raw, str) or not raw.strip():
        raise HookInputError("hook input has no transcript_path")
    return Path(raw).expanduser()


def status_message(iteration: int, completion_promise: str | None) -> str:
    if completion_promise:
        return (
            f"Ralph iteration {iteration} | To stop: output "
            f"{format_promise(completion_promise)} "
            "(ONLY when statement is TRUE - do not lie to exit!)"
        )
    return f"Ralph iteration {iteration} | No completion promise set - loop runs infinitely"


def _notice(headline: str, *details: str) -> str:
    lines = [f"ralph-loop: {headline}"]
    lines.extend(f"  {detail}" for detail in details)
    return "\n".join(lines)


def _abandon(state_path: Path, notice: str) -> GateDecision:
    delete_state(state_path)
    return GateDecision.stop(notice)


def _discard(state_path: Path) -> None:
    try:
        delete_state(state_path)
    except OSError:
        pass


def _evaluate(state_path: Path, hook_input: str) -> GateDecision:
    if not state_path.exists():
        return GateDecision.stop()

    text = state_path.read_text(encoding="utf-8")
    try:
        state = parse_state(text, state_path)
    except StateCorruptedError as exc:
        return _abandon(
            state_path,
            _notice(
                "state file corrupted",
                f"file: {state_path}",
                f"problem: {exc.problem}",
                "loop stopped; run `ralph-loop start` to begin again",
            ),
        )

    if state.limit_reached:
        return _abandon(
            state_path,
            _notice(f"max iterations ({state.max_iterations}) reached"),
        )

    try:
        transcript_path = transcript_path_from_payload(hook_input)
    except HookInputError as exc:
        return _abandon(
            state_path,
            _notice("failed to read hook input", str(exc), "loop stopped"),
        )

    try:
        last_output = last_assistant_text(transcript_path)
    except TranscriptError as exc:
        return _abandon(
            state_path,
            _notice(exc.problem, f"transcript: {exc.path}", "loop stopped"),
        )

    if promise_fulfilled(last_output, state.completion_promise):
        return _abandon(
            state_path,
            _notice(f"detected {format_promise(state.completion_promise or '')}"),
        )

    next_iteration = state.iteration + 1
    bump_iteration(state_path, text, next_iteration)
    return GateDecision.block(
        state.prompt,
        status_message(next_iteration, state.completion_promise),
        iteration=next_iteration,
    )


def evaluate(state_path: Path, hook_input: str) -> GateDecision:
    """Decide whether the host may stop.

    ``hook_input`` is the raw Stop-hook payload read from stdin.
    """
    try:
        return _evaluate(state_path, hook_input)
    except Exception as exc:
        _discard(state_path)
        return GateDecision.stop(
            _notice("unexpected error", f"error: {exc}", "loop stopped"),
        )
