"""griddash application entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from rich.console import Console
from rich.live import Live
from rich.markup import escape

from griddash.config import ConfigLoader, DashboardConfig, load_config
from griddash.focus import DIRECTIONS, FocusManager
from griddash.keys import KeyReader
from griddash.logs import LOG_LEVEL_ENV, LOG_LEVELS, configure_logging
from griddash.models import ConfigError
from griddash.scheduler import DEFAULT_FETCH_TIMEOUT, RefreshScheduler
from griddash.surface import RenderSurface
from griddash.widgets import WidgetInstance, build_widgets, settings_by_kind

logger = logging.getLogger(__name__)

POLL_SECONDS = 0.1
ONE_SHOT_TIMEOUT = 15.0

NAVIGATION = {
    "tab": "next",
    "n": "next",
    "shift-tab": "previous",
    "p": "previous",
}
QUIT_KEYS = {"q", "ctrl-c"}


def _print_config_error(console: Console, exc: ConfigError, path: Path) -> None:
    console.print(f"\n[bold]ERROR:[/bold] Could not load '[yellow]{escape(str(path))}[/yellow]'.\n")
    if exc.reason == "missing":
        console.print(
            "Your config file is missing. Create one with [yellow]griddash --init[/yellow] "
            "or point to it with [yellow]--config[/yellow]."
        )
    elif exc.reason == "syntax":
        console.print("Your config file has a syntax error. Run it through a YAML linter to find it.")
    else:
        console.print("Your config file could not be used as written.")
    console.print(f"\nError: [red]{escape(str(exc))}[/red]\n")


def startup(
    config_path: str | None, loader: ConfigLoader
) -> tuple[DashboardConfig, list[WidgetInstance]]:
    """Load and validate everything before any widget runs."""
    if config_path is None:
        try:
            loader.ensure_default_config()
        except OSError as exc:
            raise ConfigError(f"cannot create default config: {exc}", reason="missing") from exc

    config = load_config(config_path, loader, settings_by_kind())
    instances, layout_warnings = build_widgets(config)
    for warning in (*config.warnings, *layout_warnings):
        logger.warning("config: %s", warning)
    logger.info("%d of %d widgets enabled", len(instances), len(config.widgets))
    return config, instances


def handle_key(
    key: str,
    focus: FocusManager,
    scheduler: RefreshScheduler,
    surface: RenderSurface,
) -> bool:
    """Apply one key press; returns False when the dashboard should quit."""
    if key in QUIT_KEYS:
        return False

    previous = focus.focused
    changed = False
    if key in NAVIGATION:
        changed = getattr(focus, NAVIGATION[key])()
    elif key in DIRECTIONS:
        changed = focus.move(key)
    elif key == "r" and previous is not None:
        scheduler.trigger(previous)

    if changed:
        for widget_id in (previous, focus.focused):
            if widget_id is not None:
                surface.request_render(widget_id)
    return True


def handle_keys(
    keys: Iterable[str],
    focus: FocusManager,
    scheduler: RefreshScheduler,
    surface: RenderSurface,
) -> bool:
    """Apply key presses in typing order, stopping at the first quit key."""
    for key in keys:
        if not handle_key(key, focus, scheduler, surface):
            return False
    return True


def _json_output(instances: list[WidgetInstance]) -> str:
    widgets = []
    for instance in instances:
        snapshot = instance.snapshot()
        widgets.append(
            {
                "id": instance.id,
                "kind": instance.widget.kind,
                "position": {
                    "top": instance.rect.top,
                    "left": instance.rect.left,
                    "height": instance.rect.height,
                    "width": instance.rect.width,
                },
                "status": snapshot.status.to_dict() if snapshot.status else None,
                "error": snapshot.error,
            }
        )
    payload = {
        "collected_at": datetime.now(timezone.utc).isoformat(),
        "widgets": widgets,
    }
    return json.dumps(payload, indent=2)


def _run_live(
    console: Console,
    surface: RenderSurface,
    focus: FocusManager,
    scheduler: RefreshScheduler,
) -> int:
    scheduler.start()
    try:
        with KeyReader() as keys, Live(
            surface.canvas, console=console, screen=True, auto_refresh=False
        ) as live:
            surface.paint_pending()
            live.refresh()
            while True:
                if not handle_keys(keys.read_keys(), focus, scheduler, surface):
                    break
                surface.wait_for_work(POLL_SECONDS)
                if surface.paint_pending():
                    live.refresh()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Grid dashboard of independently refreshed widgets")
    parser.add_argument("-l", "--live", action="store_true", help="Run the live dashboard")
    parser.add_argument("--json", action="store_true", help="Refresh every widget once and emit JSON")
    parser.add_argument("--config", help="Config file (default: ~/.config/griddash/config.yml)")
    parser.add_argument("--init", action="store_true", help="Write the default config file and exit")
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        default=DEFAULT_FETCH_TIMEOUT,
        help="Seconds a widget fetch may take",
    )
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        help=f"Log level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"${LOG_LEVEL_ENV} must be one of {', '.join(LOG_LEVELS)}, got {args.log_level!r}")

    configure_logging(args.log_level, args.log_file)
    loader = ConfigLoader()

    if args.init:
        path = loader.ensure_default_config()
        print(path)
        return 0

    try:
        config, instances = startup(args.config, loader)
    except ConfigError as exc:
        path = Path(args.config).expanduser() if args.config else loader.config_path()
        _print_config_error(Console(stderr=True), exc, path)
        return 1

    console = Console()
    focus = FocusManager([(instance.id, instance.rect) for instance in instances])
    surface = RenderSurface(console, config.grid, instances, focus.state, config.border_colors)
    scheduler = RefreshScheduler(
        instances, on_update=surface.request_render, fetch_timeout=args.fetch_timeout
    )

    if args.live:
        return _run_live(console, surface, focus, scheduler)

    pending = scheduler.run_once(ONE_SHOT_TIMEOUT)
    scheduler.stop()
    for widget_id in pending:
        logger.warning("'%s' did not finish refreshing in time", widget_id)

    if args.json:
        print(_json_output(instances))
        return 0

    surface.paint_pending()
    console.print(surface.canvas)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
