"""Grid model: relative column/row weights resolved into widget rectangles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from griddash.models import LayoutError

if TYPE_CHECKING:
    from griddash.config import WidgetConfig

# Each cell needs room for a panel border on every side.
MIN_CELL_CHARS = 3


@dataclass(frozen=True)
class GridSpec:
    columns: tuple[int, ...]
    rows: tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.columns or not self.rows:
            raise LayoutError("grid needs at least one column and one row")
        for axis, weights in (("columns", self.columns), ("rows", self.rows)):
            for weight in weights:
                if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
                    raise LayoutError(f"grid {axis} must be positive integers, got {weight!r}")

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class CellRect:
    """A widget's rectangle in grid-cell units."""

    top: int
    left: int
    height: int
    width: int

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def center(self) -> tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)

    def overlaps(self, other: CellRect) -> bool:
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )


@dataclass(frozen=True)
class Region:
    """Absolute character region on the terminal surface."""

    x: int
    y: int
    width: int
    height: int


def check_bounds(grid: GridSpec, name: str, rect: CellRect) -> None:
    if rect.height < 1 or rect.width < 1:
        raise LayoutError(f"widget '{name}': height and width must be at least 1")
    if rect.top < 0 or rect.left < 0:
        raise LayoutError(f"widget '{name}': top and left must not be negative")
    if rect.bottom > grid.row_count:
        raise LayoutError(
            f"widget '{name}': top+height={rect.bottom} exceeds the {grid.row_count} grid rows"
        )
    if rect.right > grid.column_count:
        raise LayoutError(
            f"widget '{name}': left+width={rect.right} exceeds the {grid.column_count} grid columns"
        )


def resolve(grid: GridSpec, widgets: Iterable[WidgetConfig]) -> tuple[list[CellRect], list[str]]:
    """Resolve one rectangle per enabled widget, in declaration order.

    Out-of-bounds rectangles raise ``LayoutError``; they are never clamped.
    Overlaps are allowed (the later widget paints over the earlier one) and
    reported as warnings.
    """
    rects: list[CellRect] = []
    names: list[str] = []
    warnings: list[str] = []

    for widget in widgets:
        if not widget.enabled:
            continue
        rect = widget.position
        check_bounds(grid, widget.name, rect)
        for earlier_name, earlier in zip(names, rects):
            if rect.overlaps(earlier):
                warnings.append(
                    f"widget '{widget.name}' overlaps '{earlier_name}' and will paint over it"
                )
        rects.append(rect)
        names.append(widget.name)

    return rects, warnings


def distribute(weights: Sequence[int], total: int) -> list[int]:
    """Split ``total`` characters among ``weights`` using largest-remainder rounding."""
    weight_sum = sum(weights)
    total = max(0, total)
    sizes = [total * weight // weight_sum for weight in weights]
    remainders = [total * weight % weight_sum for weight in weights]
    leftover = total - sum(sizes)
    order = sorted(range(len(weights)), key=lambda idx: (-remainders[idx], idx))
    for idx in order[:leftover]:
        sizes[idx] += 1
    return sizes


def char_geometry(grid: GridSpec, rect: CellRect, width: int, height: int) -> Region:
    col_sizes = distribute(grid.columns, width)
    row_sizes = distribute(grid.rows, height)
    return Region(
        x=sum(col_sizes[: rect.left]),
        y=sum(row_sizes[: rect.top]),
        width=sum(col_sizes[rect.left : rect.right]),
        height=sum(row_sizes[rect.top : rect.bottom]),
    )


def _minimum_length(weights: Sequence[int]) -> int:
    # smallest total that still gives the thinnest weight MIN_CELL_CHARS
    return -(-MIN_CELL_CHARS * sum(weights) // min(weights))


def minimum_size(grid: GridSpec) -> tuple[int, int]:
    return (_minimum_length(grid.columns), _minimum_length(grid.rows))
