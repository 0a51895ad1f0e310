"""Focus state and navigation between widgets."""

from __future__ import annotations

import threading
from typing import Protocol, Sequence

from griddash.layout import CellRect

DIRECTIONS = ("up", "down", "left", "right")


class FocusReader(Protocol):
    @property
    def focused(self) -> str | None:
        ...


class FocusState:
    """The currently focused widget id.

    Readers only see the ``focused`` property; the one writer is the
    ``FocusManager`` that owns this object.
    """

    def __init__(self) -> None:
        self._focused: str | None = None
        self._lock = threading.Lock()

    @property
    def focused(self) -> str | None:
        with self._lock:
            return self._focused

    def _set(self, widget_id: str | None) -> None:
        with self._lock:
            self._focused = widget_id


class FocusManager:
    def __init__(self, widgets: Sequence[tuple[str, CellRect]], state: FocusState | None = None) -> None:
        self._ids = [widget_id for widget_id, _ in widgets]
        self._rects = dict(widgets)
        self._state = state or FocusState()
        self._state._set(self._ids[0] if self._ids else None)

    @property
    def state(self) -> FocusReader:
        return self._state

    @property
    def focused(self) -> str | None:
        return self._state.focused

    def focus(self, widget_id: str) -> bool:
        if widget_id not in self._rects or widget_id == self.focused:
            return False
        self._state._set(widget_id)
        return True

    def _step(self, offset: int) -> bool:
        if not self._ids:
            return False
        current = self.focused
        idx = self._ids.index(current) if current in self._ids else -offset
        return self.focus(self._ids[(idx + offset) % len(self._ids)])

    def next(self) -> bool:
        return self._step(1)

    def previous(self) -> bool:
        return self._step(-1)

    def move(self, direction: str) -> bool:
        """Focus the nearest widget whose center lies in ``direction``.

        Ties go to the widget declared first. Returns False when nothing
        lies that way.
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"unknown direction: {direction}")
        current = self.focused
        if current is None:
            return self._step(1)

        cx, cy = self._rects[current].center
        best: tuple[float, int] | None = None
        target = None
        for idx, widget_id in enumerate(self._ids):
            if widget_id == current:
                continue
            x, y = self._rects[widget_id].center
            dx, dy = x - cx, y - cy
            ahead = {"up": dy < 0, "down": dy > 0, "left": dx < 0, "right": dx > 0}[direction]
            if not ahead:
                continue
            key = (dx * dx + dy * dy, idx)
            if best is None or key < best:
                best = key
                target = widget_id

        if target is None:
            return False
        return self.focus(target)
