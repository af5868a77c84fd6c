from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any


class RalphLoopError(RuntimeError):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def json_dumps_compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def eprint(*parts: object) -> None:
    print(*parts, file=sys.stderr)
