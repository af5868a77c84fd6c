"""Shared test helpers for ralph_loop."""

from __future__ import annotations

import json
from pathlib import Path


def assistant_entry(*texts: str) -> dict:
    return {
        "role": "assistant",
        "message": {"content": [{"type": "text", "text": text} for text in texts]},
    }


def user_entry(text: str) -> dict:
    return {"role": "user", "message": {"content": [{"type": "text", "text": text}]}}


def hook_payload(transcript: Path | None) -> str:
    payload: dict = {"hook_event_name": "Stop", "session_id": "abc123"}
    if transcript is not None:
        payload["transcript_path"] = str(transcript)
    return json.dumps(payload)
