from __future__ import annotations
import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _json_default(o: Any) -> Any:
    if isinstance(o, Mapping):
        return dict(o)
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return {f.name: getattr(o, f.name) for f in dataclasses.fields(o)}
    if isinstance(o, (set, frozenset)):
        return sorted(o, key=repr)
    return repr(o)

def canonical_key(value: Any) -> str:
    """Stable serialized form used for value equality between snapshots."""
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_json_default)

def merge_state(initial: T, override: Any) -> T:
    """`initial` with the fields/keys of `override` replaced."""
    if not override:
        return initial
    merged = getattr(initial, "merged", None)
    if callable(merged):
        return merged(override)
    if isinstance(initial, Mapping):
        return type(initial)({**initial, **dict(override)})  # type: ignore[call-arg]
    if dataclasses.is_dataclass(initial) and not isinstance(initial, type):
        return dataclasses.replace(initial, **dict(override))
    raise TypeError(f"cannot merge an override into {type(initial).__name__}")


class History(Generic[T]):
    """
    Linear undo/redo over immutable snapshots.

    Writing truncates everything after the cursor and appends, so there is never a
    redo branch. A write that is value-equal (same canonical form) to the current
    snapshot is ignored, which keeps repeated slider commits out of the history.
    Full snapshots are stored, not diffs; there is no length cap.
    """

    def __init__(self, initial: T, key: Callable[[Any], Any] = canonical_key):
        self._initial = initial
        self._key = key
        self._snapshots: List[T] = [initial]
        self._cursor = 0

    # ---------------- state ----------------
    @property
    def current(self) -> T:
        return self._snapshots[self._cursor]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def initial(self) -> T:
        return self._initial

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def snapshots(self) -> Tuple[T, ...]:
        return tuple(self._snapshots)

    # ---------------- transitions ----------------
    def _append(self, value: T) -> None:
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(value)
        self._cursor = len(self._snapshots) - 1

    def write(self, value: Union[T, Callable[[T], T]]) -> bool:
        """Record a new snapshot (or `f(current)`). Returns False for a no-op write."""
        if callable(value) and not isinstance(value, type):
            value = value(self.current)
        if self._key(value) == self._key(self.current):
            return False
        self._append(value)  # type: ignore[arg-type]
        logger.debug("history write -> %d/%d", self._cursor, len(self._snapshots))
        return True

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._cursor -= 1
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._cursor += 1
        return True

    def reset(self, override: Optional[Any] = None) -> T:
        """Append the initial state merged with `override`; the old states stay undoable."""
        state = merge_state(self._initial, override)
        self._append(state)
        logger.debug("history reset -> %d/%d", self._cursor, len(self._snapshots))
        return state
