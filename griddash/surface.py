"""Render surface shared by all widgets.

Widget panels are rendered to lines of segments at their character region
and copied onto one canvas. Rendering can happen anywhere; copying onto the
canvas, and reading it back for display, is serialized by the canvas lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from rich.cells import cell_len
from rich.console import Console, ConsoleOptions, RenderResult
from rich.segment import Segment
from rich.style import Style
from rich.text import Text

from griddash.config import BorderColors
from griddash.focus import FocusReader
from griddash.layout import GridSpec, Region, char_geometry, minimum_size
from griddash.panels import placeholder, widget_panel
from griddash.widgets import InstanceSnapshot, WidgetInstance

logger = logging.getLogger(__name__)

Cell = tuple[str, "Style | None"]
BLANK: Cell = (" ", None)


def _line_cells(line: Iterable[Segment]) -> list[Cell]:
    cells: list[Cell] = []
    for segment in line:
        if segment.control:
            continue
        for char in segment.text:
            cells.append((char, segment.style))
            # wide characters occupy a second, empty cell
            if cell_len(char) == 2:
                cells.append(("", segment.style))
    return cells


class Canvas:
    """Character grid that doubles as the rich renderable for the screen."""

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.lock = threading.Lock()
        self.width = 0
        self.height = 0
        self._rows: list[list[Cell]] = []
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        with self.lock:
            self.width = max(0, width)
            self.height = max(0, height)
            self._rows = [[BLANK] * self.width for _ in range(self.height)]

    def blit(self, region: Region, lines: Sequence[Iterable[Segment]]) -> None:
        with self.lock:
            for dy, line in enumerate(lines[: region.height]):
                y = region.y + dy
                if y >= self.height:
                    break
                row = self._rows[y]
                cells = _line_cells(line)[: region.width]
                if cells and cells[-1][0] and cell_len(cells[-1][0]) == 2:
                    # a wide character cut in half at the right edge
                    cells[-1] = (" ", cells[-1][1])
                for dx, cell in enumerate(cells):
                    x = region.x + dx
                    if x >= self.width:
                        break
                    row[x] = cell

    def text(self) -> str:
        with self.lock:
            return "\n".join("".join(char for char, _ in row) for row in self._rows)

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        with self.lock:
            rows = [list(row) for row in self._rows]
        for row in rows:
            text = ""
            style = None
            for char, cell_style in row:
                if cell_style != style and text:
                    yield Segment(text, style)
                    text = ""
                style = cell_style
                text += char
            if text:
                yield Segment(text, style)
            yield Segment.line()


class RenderSurface:
    """Paints widget panels onto the shared canvas.

    ``request_render`` may be called from any thread; ``paint_pending`` runs
    on the UI thread and re-reads focus for every widget it paints.
    """

    def __init__(
        self,
        console: Console,
        grid: GridSpec,
        instances: Sequence[WidgetInstance],
        focus: FocusReader,
        border_colors: BorderColors,
    ) -> None:
        self._console = console
        self._grid = grid
        self._instances = list(instances)
        self._focus = focus
        self._border_colors = border_colors
        self.canvas = Canvas()
        self._size: tuple[int, int] | None = None
        self._regions: dict[str, Region] = {}
        self._covered_by: dict[str, list[str]] = {}
        self._painted: dict[str, tuple[int, bool]] = {}
        self._too_small = False
        self._pending: set[str] = set()
        self._forced: set[str] = set()
        self._pending_lock = threading.Lock()
        self._wake = threading.Event()

    def request_render(self, widget_id: str) -> None:
        with self._pending_lock:
            self._pending.add(widget_id)
        self._wake.set()

    def request_full_repaint(self) -> None:
        with self._pending_lock:
            self._forced.update(instance.id for instance in self._instances)
        self._wake.set()

    def wait_for_work(self, timeout: float | None = None) -> bool:
        fired = self._wake.wait(timeout)
        self._wake.clear()
        return fired

    def relayout(self, width: int, height: int) -> None:
        """Re-resolve every widget's region for a new terminal size."""
        self._size = (width, height)
        min_width, min_height = minimum_size(self._grid)
        self._too_small = width < min_width or height < min_height
        self.canvas.resize(width, height)
        self._regions = {
            instance.id: char_geometry(self._grid, instance.rect, width, height)
            for instance in self._instances
        }
        self._covered_by = {
            instance.id: [
                later.id
                for later in self._instances[idx + 1 :]
                if instance.rect.overlaps(later.rect)
            ]
            for idx, instance in enumerate(self._instances)
        }
        logger.debug("relayout at %dx%d", width, height)
        self.request_full_repaint()

    def compose(self, instance: WidgetInstance, snapshot: InstanceSnapshot, focused: bool):
        widget = instance.widget
        if snapshot.status is not None:
            body = widget.render(snapshot.status, focused)
        elif snapshot.error:
            body = placeholder("No data")
        else:
            body = placeholder("Loading…")
        return widget_panel(widget.title, body, snapshot.error, focused, self._border_colors)

    def paint_pending(self) -> int:
        """Paint every widget with a pending request; returns how many were painted."""
        size = (self._console.size.width, self._console.size.height)
        if size != self._size:
            self.relayout(*size)

        with self._pending_lock:
            pending, self._pending = self._pending, set()
            forced, self._forced = self._forced, set()

        if self._too_small:
            if forced:
                self._paint_too_small()
            return 1 if forced else 0

        focused_id = self._focus.focused
        painted = 0
        # Declaration order, so a later widget always ends up over an earlier one.
        for instance in self._instances:
            widget_id = instance.id
            if widget_id not in pending and widget_id not in forced:
                continue
            snapshot = instance.snapshot()
            focused = widget_id == focused_id
            if widget_id not in forced and self._painted.get(widget_id) == (snapshot.sequence, focused):
                continue

            region = self._regions[widget_id]
            options = self._console.options.update_dimensions(region.width, region.height)
            lines = self._console.render_lines(
                self.compose(instance, snapshot, focused), options, pad=True
            )
            self.canvas.blit(region, lines)
            self._painted[widget_id] = (snapshot.sequence, focused)
            forced.update(self._covered_by.get(widget_id, ()))
            painted += 1
        return painted

    def _paint_too_small(self) -> None:
        width, height = self._size or (0, 0)
        min_width, min_height = minimum_size(self._grid)
        notice = Text(
            f"Terminal too small: {width}x{height}, need at least {min_width}x{min_height}",
            style="bold red",
        )
        self.canvas.resize(width, height)
        options = self._console.options.update_dimensions(width, height)
        self.canvas.blit(Region(0, 0, width, height), self._console.render_lines(notice, options, pad=True))
        self._painted.clear()
