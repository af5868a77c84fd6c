from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from ralph_loop.config import STATE_DIR_ENV_VAR, STATE_FILE_ENV_VAR
from ralph_loop.ui import OUTPUT_ENV_VAR


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (STATE_DIR_ENV_VAR, STATE_FILE_ENV_VAR, OUTPUT_ENV_VAR):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / ".claude" / "ralph-loop.local.md"


@pytest.fixture
def write_transcript(tmp_path: Path) -> Callable[..., Path]:
    def _write(*entries: dict | str, name: str = "transcript.jsonl") -> Path:
        path = tmp_path / name
        lines = [entry if isinstance(entry, str) else json.dumps(entry) for entry in entries]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
