from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "GateDecision",
    "LoopState",
    "evaluate",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .gate import GateDecision, evaluate
    from .state import LoopState


def __getattr__(name: str):
    if name == "LoopState":
        from .state import LoopState

        return LoopState
    if name in {"GateDecision", "evaluate"}:
        from .gate import GateDecision, evaluate

        return {"GateDecision": GateDecision, "evaluate": evaluate}[name]
    raise AttributeError(f"module 'ralph_loop' has no attribute {name!r}")
