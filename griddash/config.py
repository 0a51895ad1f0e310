"""Configuration document loading and validation.

The document is YAML (or JSON when the file ends in ``.json``)::

    griddash:
      colors:
        border: {focused: orange1, normal: grey50}
      grid:
        columns: [40, 40]
        rows: [13, 13, 4]
      refreshInterval: 300
      widgets:
        breaches:
          type: hibp
          enabled: true
          position: {top: 0, left: 0, height: 1, width: 1}
          refreshInterval: 3600
          accounts: [me@example.com]

Everything is parsed once at startup into frozen dataclasses; nothing here is
reloaded while the dashboard runs.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml
from rich.color import Color, ColorParseError

from griddash.layout import CellRect, GridSpec
from griddash.models import ConfigError

logger = logging.getLogger(__name__)

APP_KEY = "griddash"
CONFIG_FILE_NAME = "config.yml"
CONFIG_DIR_ENV = "GRIDDASH_CONFIG_DIR"

DEFAULT_REFRESH_INTERVAL = 300.0
MIN_REFRESH_INTERVAL = 1.0

COMMON_KEYS = frozenset({"type", "enabled", "position", "refreshInterval", "title", "colors"})
POSITION_KEYS = ("top", "left", "height", "width")
# Stands in for the position of a disabled entry that could not be parsed.
DISABLED_POSITION = CellRect(0, 0, 1, 1)

DEFAULT_CONFIG = """\
griddash:
  colors:
    border:
      focused: orange1
      normal: grey50
  grid:
    columns: [40, 40]
    rows: [13, 13, 4]
  refreshInterval: 300
  widgets:
    uptime:
      type: cmdrunner
      enabled: true
      cmd: uptime
      args: []
      position:
        top: 0
        left: 0
        height: 1
        width: 1
      refreshInterval: 30
    config:
      type: textfile
      enabled: true
      filePath: "~/.config/griddash/config.yml"
      colors:
        rows:
          even: cyan
          odd: white
      position:
        top: 0
        left: 1
        height: 2
        width: 1
      refreshInterval: 30
    breaches:
      type: hibp
      enabled: false
      accounts: []
      position:
        top: 1
        left: 0
        height: 1
        width: 1
      refreshInterval: 3600
    disk:
      type: cmdrunner
      enabled: true
      cmd: df
      args: ["-h"]
      position:
        top: 2
        left: 0
        height: 1
        width: 2
      refreshInterval: 60
"""


@dataclass(frozen=True)
class BorderColors:
    focused: str = "orange1"
    normal: str = "grey50"


@dataclass(frozen=True)
class RowColors:
    even: str = "white"
    odd: str = "white"

    def for_row(self, idx: int) -> str:
        return self.even if idx % 2 == 0 else self.odd


@dataclass(frozen=True)
class WidgetConfig:
    name: str
    kind: str
    enabled: bool
    position: CellRect
    refresh_interval: float
    title: str = ""
    row_colors: RowColors = RowColors()
    settings: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class DashboardConfig:
    grid: GridSpec
    refresh_interval: float
    border_colors: BorderColors
    widgets: tuple[WidgetConfig, ...]
    warnings: tuple[str, ...] = ()

    @property
    def enabled_widgets(self) -> list[WidgetConfig]:
        return [widget for widget in self.widgets if widget.enabled]


class ConfigLoader:
    """Locates, creates and reads the configuration document."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir = config_dir

    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        override = os.environ.get(CONFIG_DIR_ENV)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / APP_KEY

    def config_path(self) -> Path:
        return self.config_dir() / CONFIG_FILE_NAME

    def ensure_default_config(self) -> Path:
        """Create the config directory and a starter document if none exists."""
        path = self.config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists() or path.stat().st_size == 0:
            path.write_text(DEFAULT_CONFIG, encoding="utf-8")
            logger.info("wrote default config to %s", path)
        return path

    def load(self, path: str | Path | None = None) -> dict[str, Any]:
        config_path = Path(path).expanduser() if path else self.config_path()
        if not config_path.is_file():
            raise ConfigError(f"config file not found: {config_path}", reason="missing")

        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"config file unreadable: {exc}", reason="missing") from exc

        try:
            if config_path.suffix == ".json":
                document = json.loads(text) if text.strip() else {}
            else:
                document = yaml.safe_load(text) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"invalid syntax in {config_path}: {exc}", reason="syntax") from exc

        if not isinstance(document, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping", reason="syntax")
        return document


def _section(parent: Mapping[str, Any], key: str, where: str) -> Mapping[str, Any]:
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: '{key}' must be a mapping")
    return value


def _color(value: Any, where: str, default: str) -> str:
    if value is None:
        return default
    try:
        Color.parse(str(value))
    except ColorParseError as exc:
        raise ConfigError(f"{where}: unknown color {value!r}") from exc
    return str(value)


def _interval(value: Any, where: str, default: float, warnings: list[str]) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{where}: refreshInterval must be a number of seconds")
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: refreshInterval must be a number of seconds") from exc
    if seconds < MIN_REFRESH_INTERVAL:
        warnings.append(f"{where}: refreshInterval {value!r} raised to {MIN_REFRESH_INTERVAL:g}s")
        return MIN_REFRESH_INTERVAL
    return seconds


def _weights(value: Any, axis: str) -> tuple[int, ...]:
    if not isinstance(value, list):
        raise ConfigError(f"grid.{axis} must be a list of positive integers", reason="layout")
    return tuple(value)


def _position(value: Any, name: str) -> CellRect:
    if not isinstance(value, dict):
        raise ConfigError(f"widget '{name}': position must be a mapping of {', '.join(POSITION_KEYS)}")
    coords = []
    for key in POSITION_KEYS:
        coord = value.get(key)
        if isinstance(coord, bool) or not isinstance(coord, int):
            raise ConfigError(f"widget '{name}': position.{key} must be an integer")
        coords.append(coord)
    return CellRect(*coords)


def _widget(
    name: str,
    entry: Any,
    default_interval: float,
    known_settings: Mapping[str, frozenset[str]] | None,
    warnings: list[str],
) -> WidgetConfig:
    """Parse one widget entry.

    Problems in an enabled entry are configuration errors. A disabled entry
    never runs, so the same problems only produce a warning.
    """
    if not isinstance(entry, dict):
        raise ConfigError(f"widget '{name}': expected a mapping")

    if entry.get("enabled", False):
        return _parse_widget(name, entry, default_interval, known_settings, warnings)

    entry_warnings: list[str] = []
    try:
        widget = _parse_widget(name, entry, default_interval, known_settings, entry_warnings)
    except ConfigError as exc:
        warnings.append(f"{exc} (entry is disabled, ignored)")
        return WidgetConfig(
            name=name,
            kind=str(entry.get("type") or name),
            enabled=False,
            position=DISABLED_POSITION,
            refresh_interval=default_interval,
        )
    warnings.extend(entry_warnings)
    return widget


def _parse_widget(
    name: str,
    entry: dict[str, Any],
    default_interval: float,
    known_settings: Mapping[str, frozenset[str]] | None,
    warnings: list[str],
) -> WidgetConfig:
    where = f"widget '{name}'"
    kind = str(entry.get("type") or name)
    kind_keys: frozenset[str] | None = None
    if known_settings is not None:
        if kind not in known_settings:
            raise ConfigError(f"{where}: unknown widget type '{kind}'")
        kind_keys = known_settings[kind]

    settings: dict[str, Any] = {}
    for key, value in entry.items():
        if key in COMMON_KEYS:
            continue
        if kind_keys is not None and key not in kind_keys:
            warnings.append(f"{where}: unknown setting '{key}' ignored")
            continue
        settings[key] = value

    rows = _section(_section(entry, "colors", where), "rows", where)
    row_colors = RowColors(
        even=_color(rows.get("even"), f"{where} colors.rows.even", RowColors.even),
        odd=_color(rows.get("odd"), f"{where} colors.rows.odd", RowColors.odd),
    )

    return WidgetConfig(
        name=name,
        kind=kind,
        enabled=bool(entry.get("enabled", False)),
        position=_position(entry.get("position"), name),
        refresh_interval=_interval(entry.get("refreshInterval"), where, default_interval, warnings),
        title=str(entry.get("title") or ""),
        row_colors=row_colors,
        settings=MappingProxyType(settings),
    )


def parse_config(
    document: Mapping[str, Any],
    known_settings: Mapping[str, frozenset[str]] | None = None,
) -> DashboardConfig:
    """Validate a parsed document into a ``DashboardConfig``.

    ``known_settings`` maps widget type to its recognised setting keys; when
    given, unknown types are errors and unknown keys are warnings.
    """
    root = document.get(APP_KEY, document)
    if not isinstance(root, dict):
        raise ConfigError(f"'{APP_KEY}' must be a mapping")

    warnings: list[str] = []

    grid_doc = root.get("grid")
    if not isinstance(grid_doc, dict):
        raise ConfigError("grid section with columns and rows is required", reason="layout")
    grid = GridSpec(
        columns=_weights(grid_doc.get("columns"), "columns"),
        rows=_weights(grid_doc.get("rows"), "rows"),
    )

    default_interval = _interval(
        root.get("refreshInterval"), "refreshInterval", DEFAULT_REFRESH_INTERVAL, warnings
    )

    border_doc = _section(_section(root, "colors", "config"), "border", "colors")
    border_colors = BorderColors(
        focused=_color(border_doc.get("focused"), "colors.border.focused", BorderColors.focused),
        normal=_color(border_doc.get("normal"), "colors.border.normal", BorderColors.normal),
    )

    widgets_doc = root.get("widgets") or {}
    if not isinstance(widgets_doc, dict):
        raise ConfigError("widgets must be a mapping of name to widget settings")

    widgets = tuple(
        _widget(str(name), entry, default_interval, known_settings, warnings)
        for name, entry in widgets_doc.items()
    )

    for key in root:
        if key not in {"grid", "refreshInterval", "colors", "widgets"}:
            warnings.append(f"unknown top-level key '{key}' ignored")

    return DashboardConfig(
        grid=grid,
        refresh_interval=default_interval,
        border_colors=border_colors,
        widgets=widgets,
        warnings=tuple(warnings),
    )


def load_config(
    path: str | Path | None = None,
    loader: ConfigLoader | None = None,
    known_settings: Mapping[str, frozenset[str]] | None = None,
) -> DashboardConfig:
    loader = loader or ConfigLoader()
    return parse_config(loader.load(path), known_settings)
