"""Panel rendering helpers."""

from __future__ import annotations

from rich.console import RenderableType
from rich.panel import Panel
from rich.text import Text

from griddash.config import BorderColors
from griddash.formatting import safe_markup

ERROR_STYLE = "red"
MAX_ERROR_CHARS = 80


def border_for(focused: bool, colors: BorderColors) -> str:
    return colors.focused if focused else colors.normal


def placeholder(message: str = "No data") -> Text:
    return Text(message, style="dim")


def widget_panel(
    title: str,
    body: RenderableType,
    error: str | None,
    focused: bool,
    colors: BorderColors,
) -> Panel:
    """Wrap a widget body in its bordered panel.

    A fetch error only adds an indicator to the title and the message to the
    subtitle; the body keeps showing whatever was last fetched.
    """
    heading = f"[bold]{safe_markup(title)}[/bold]"
    subtitle = None
    if error:
        heading += f" [{ERROR_STYLE}]![/{ERROR_STYLE}]"
        subtitle = f"[{ERROR_STYLE}]{safe_markup(error, MAX_ERROR_CHARS)}[/{ERROR_STYLE}]"
    return Panel(
        body,
        title=heading,
        title_align="left",
        subtitle=subtitle,
        subtitle_align="left",
        border_style=border_for(focused, colors),
        padding=(0, 1),
    )
