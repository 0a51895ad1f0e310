"""Line-oriented panel renderer for file and command output."""

from __future__ import annotations

from rich.table import Table
from rich.text import Text

from griddash.config import RowColors
from griddash.formatting import safe_text
from griddash.models import Status
from griddash.panels import placeholder


def render(status: Status, focused: bool, row_colors: RowColors) -> Table:
    table = Table.grid(expand=True)
    table.add_column(overflow="ellipsis", no_wrap=True)

    if not status.records:
        table.add_row(placeholder("(empty)"))
        return table

    last = len(status.records) - 1
    for idx, record in enumerate(status.records):
        style = row_colors.for_row(idx)
        if focused and idx == last:
            style = f"bold {style}"
        table.add_row(Text(safe_text(record.title), style=style))
    return table
