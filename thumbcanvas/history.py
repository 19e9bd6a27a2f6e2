from __future__ import annotations

import copy
import json
from typing import Any

DEFAULT_HISTORY_SIZE = 50


def _same_state(left: Any, right: Any) -> bool:
    return json.dumps(left, sort_keys=True) == json.dumps(right, sort_keys=True)


class EditHistory:
    """Bounded undo/redo over JSON-compatible snapshots."""

    def __init__(self, initial: Any, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self.max_size = max(1, int(max_size))
        self._past: list[Any] = []
        self._present: Any = copy.deepcopy(initial)
        self._future: list[Any] = []

    @property
    def present(self) -> Any:
        return copy.deepcopy(self._present)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def push(self, state: Any) -> bool:
        """Record ``state`` as the new present. Returns False when nothing changed."""
        if _same_state(state, self._present):
            return False
        self._past.append(self._present)
        if len(self._past) > self.max_size:
            del self._past[: len(self._past) - self.max_size]
        self._present = copy.deepcopy(state)
        self._future.clear()
        return True

    def undo(self) -> Any | None:
        if not self._past:
            return None
        self._future.insert(0, self._present)
        self._present = self._past.pop()
        return self.present

    def redo(self) -> Any | None:
        if not self._future:
            return None
        self._past.append(self._present)
        self._present = self._future.pop(0)
        return self.present

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def reset(self, state: Any) -> None:
        self.clear()
        self._present = copy.deepcopy(state)
