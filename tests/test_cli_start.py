from __future__ import annotations

from pathlib import Path

import pytest

from ralph_loop import cli
from ralph_loop.start_cmd import StartUsageError, parse_start_args
from ralph_loop.state import read_state
from ralph_loop.ui import OUTPUT_ENV_VAR


@pytest.mark.parametrize(
    ("tokens", "prompt", "max_iterations", "promise"),
    [
        (["Fix", "the", "auth", "bug"], "Fix the auth bug", 0, None),
        (["--max-iterations", "10", "Fix", "the", "bug"], "Fix the bug", 10, None),
        (["Refactor", "--completion-promise", "DONE", "cache"], "Refactor cache", 0, "DONE"),
        (["--max-iterations=3", "--completion-promise=ALL GOOD", "x"], "x", 3, "ALL GOOD"),
        (["Run", "--verbose", "tests"], "Run --verbose tests", 0, None),
        (["--max-iterations", "2", "a", "--max-iterations", "7"], "a", 7, None),
    ],
)
def test_parse_start_args_collects_prompt_in_order(
    tokens: list[str],
    prompt: str,
    max_iterations: int,
    promise: str | None,
) -> None:
    args = parse_start_args(tokens)
    assert args.help is False
    assert args.prompt == prompt
    assert args.max_iterations == max_iterations
    assert args.completion_promise == promise


def test_parse_start_args_help_short_circuits() -> None:
    assert parse_start_args(["--max-iterations", "abc", "--help"]).help is True
    assert parse_start_args(["do", "-h", "things"]).help is True


@pytest.mark.parametrize(
    ("tokens", "message"),
    [
        (["task", "--max-iterations"], "requires a number"),
        (["task", "--max-iterations", ""], "requires a number"),
        (["task", "--max-iterations", "ten"], "got: ten"),
        (["task", "--max-iterations", "-1"], "got: -1"),
        (["task", "--max-iterations", "1.5"], "got: 1.5"),
        (["task", "--completion-promise"], "requires a text"),
        (["task", "--completion-promise", ""], "requires a text"),
        (["--max-iterations", "5"], "no prompt provided"),
        ([], "no prompt provided"),
        (["   "], "no prompt provided"),
    ],
)
def test_parse_start_args_rejects_bad_input(tokens: list[str], message: str) -> None:
    with pytest.raises(StartUsageError, match=message):
        parse_start_args(tokens)


def test_start_writes_initial_state(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    cli.main(
        [
            "start",
            "Build",
            "a",
            "todo",
            "API",
            "--completion-promise",
            "TASK COMPLETE",
            "--max-iterations",
            "5",
        ]
    )

    path = tmp_path / ".claude" / "ralph-loop.local.md"
    text = path.read_text(encoding="utf-8")
    assert "iteration: 1\n" in text
    assert "max_iterations: 5\n" in text
    assert 'completion_promise: "TASK COMPLETE"\n' in text

    state = read_state(path)
    assert state is not None
    assert state.iteration == 1
    assert state.prompt == "Build a todo API"

    out = capsys.readouterr().out
    assert "Ralph loop activated" in out
    assert "Max iterations: 5" in out
    assert "Build a todo API" in out
    assert "CRITICAL - Ralph Loop Completion Promise" in out
    assert "<promise>TASK COMPLETE</promise>" in out


def test_start_without_promise_omits_promise_block(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    cli.main(["Refactor", "cache", "layer"])

    out = capsys.readouterr().out
    assert "Max iterations: unlimited" in out
    assert "Completion promise: none (runs forever)" in out
    assert "CRITICAL" not in out
    state = read_state(tmp_path / ".claude" / "ralph-loop.local.md")
    assert state is not None
    assert state.completion_promise is None
    assert state.max_iterations == 0


def test_start_overwrites_existing_loop(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / ".claude" / "ralph-loop.local.md"
    path.parent.mkdir()
    path.write_text("---\niteration: 9\nmax_iterations: 0\n---\n\nold task\n", encoding="utf-8")

    cli.main(["start", "new", "task"])

    state = read_state(path)
    assert state is not None
    assert state.iteration == 1
    assert state.prompt == "new task"


def test_prompt_starting_with_command_word_starts_loop(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / ".claude" / "ralph-loop.local.md"
    cli.main(["start", "first", "task", "--max-iterations", "3"])
    capsys.readouterr()

    cli.main(["cancel", "the", "old", "subscription", "flow"])

    state = read_state(path)
    assert state is not None
    assert state.prompt == "cancel the old subscription flow"
    assert state.max_iterations == 0
    assert "Ralph loop activated" in capsys.readouterr().out


def test_command_followed_by_flag_still_dispatches(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    cli.main(["start", "task"])
    capsys.readouterr()

    cli.main(["status", "--json"])

    assert '"prompt": "task"' in capsys.readouterr().out


def test_prompt_starting_with_start_needs_explicit_command(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.chdir(tmp_path)

    cli.main(["start", "start", "the", "server"])

    state = read_state(tmp_path / ".claude" / "ralph-loop.local.md")
    assert state is not None
    assert state.prompt == "start the server"


def test_start_usage_error_exits_one_without_state(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as raised:
        cli.main(["start", "task", "--max-iterations", "many"])

    assert raised.value.code == 1
    err = capsys.readouterr().err
    assert "error: --max-iterations must be a positive integer or 0, got: many" in err
    assert "--max-iterations 0  (unlimited)" in err
    assert not (tmp_path / ".claude").exists()


def test_start_without_prompt_exits_one(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as raised:
        cli.main(["start"])

    assert raised.value.code == 1
    assert "no prompt provided" in capsys.readouterr().err


def test_start_help_exits_zero_without_state(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as raised:
        cli.main(["start", "Build", "things", "--help"])

    assert raised.value.code == 0
    out = capsys.readouterr().out
    assert "ralph-loop start" in out
    assert "--completion-promise <text>" in out
    assert not (tmp_path / ".claude").exists()


def test_start_honours_state_dir_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RALPH_LOOP_STATE_DIR", "custom/state")

    cli.main(["start", "task"])

    assert (tmp_path / "custom" / "state" / "ralph-loop.local.md").exists()
    assert not (tmp_path / ".claude").exists()


def test_start_rich_output_mentions_prompt_and_promise(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(OUTPUT_ENV_VAR, "rich")
    monkeypatch.setenv("COLUMNS", "200")

    cli.main(["start", "Ship", "[bold]it[/bold]", "--completion-promise", "DONE"])

    out = capsys.readouterr().out
    assert "Ralph loop activated" in out
    assert "[bold]it[/bold]" in out
    assert "<promise>DONE</promise>" in out
