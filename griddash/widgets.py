"""Widget contract, kind registry and runtime widget instances.

Every widget kind implements the same four operations:

``fetch(timeout)``
    External I/O. Raises ``FetchError`` on failure; "no data" is a valid
    empty result, not an error.
``filter(raw)``
    Pure transformation of fetched data into a ``Status``. Never raises.
``render(status, focused)``
    Pure; returns the rich renderable for the panel body.
``identify()``
    Stable key used for focus bookkeeping and logging.

Kinds register themselves with ``@register("name")`` and are looked up by the
``type`` of a widget entry in the configuration.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, ClassVar, TypeVar

from rich.console import RenderableType

from griddash.collectors import filter_since, lines_to_records
from griddash.collectors.cmdrunner import run_command
from griddash.collectors.hibp import HibpClient, breach_records
from griddash.collectors.textfile import read_lines
from griddash.config import DashboardConfig, WidgetConfig
from griddash.formatting import parse_iso_timestamp
from griddash.layout import CellRect, resolve
from griddash.models import ConfigError, Status
from griddash.panels import hibp as hibp_panel
from griddash.panels import lines as lines_panel

logger = logging.getLogger(__name__)

W = TypeVar("W", bound="type[Widget]")


class Widget(ABC):
    kind: ClassVar[str] = ""
    SETTINGS: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, config: WidgetConfig) -> None:
        self.config = config
        self.settings = config.settings

    def identify(self) -> str:
        return self.config.name

    @property
    def title(self) -> str:
        return self.config.title or self.config.name

    @property
    def since(self) -> datetime | None:
        # An unparsable boundary means no date filtering at all.
        return parse_iso_timestamp(self.settings.get("since"))

    @abstractmethod
    def fetch(self, timeout: float) -> Any:
        ...

    @abstractmethod
    def filter(self, raw: Any) -> Status:
        ...

    @abstractmethod
    def render(self, status: Status, focused: bool) -> RenderableType:
        ...


WIDGET_KINDS: dict[str, type[Widget]] = {}


def register(kind: str) -> Callable[[W], W]:
    def decorator(cls: W) -> W:
        cls.kind = kind
        WIDGET_KINDS[kind] = cls
        return cls

    return decorator


def settings_by_kind() -> dict[str, frozenset[str]]:
    return {kind: cls.SETTINGS for kind, cls in WIDGET_KINDS.items()}


def create_widget(config: WidgetConfig) -> Widget:
    try:
        cls = WIDGET_KINDS[config.kind]
    except KeyError as exc:
        raise ConfigError(f"widget '{config.name}': unknown widget type '{config.kind}'") from exc
    return cls(config)


@register("hibp")
class HibpWidget(Widget):
    SETTINGS = frozenset({"accounts", "since"})

    def __init__(self, config: WidgetConfig, client: HibpClient | None = None) -> None:
        super().__init__(config)
        self.client = client or HibpClient()

    @property
    def accounts(self) -> list[str]:
        accounts = self.settings.get("accounts") or []
        if isinstance(accounts, str):
            accounts = [accounts]
        return [str(account).strip() for account in accounts]

    def fetch(self, timeout: float) -> dict[str, list[dict[str, Any]]]:
        # Any configured boundary asks for full bodies, even one that fails to parse.
        truncated = not self.settings.get("since")
        return self.client.fetch(self.accounts, truncated, timeout)

    def filter(self, raw: dict[str, list[dict[str, Any]]]) -> Status:
        records = []
        for account, breaches in raw.items():
            records.extend(breach_records(account, breaches))
        subject = ", ".join(account for account in self.accounts if account)
        return Status(subject=subject, records=filter_since(records, self.since))

    def render(self, status: Status, focused: bool) -> RenderableType:
        return hibp_panel.render(status, self.accounts, focused, self.config.row_colors)


@register("textfile")
class TextFileWidget(Widget):
    SETTINGS = frozenset({"filePath", "since"})

    def fetch(self, timeout: float) -> list[str]:
        return read_lines(str(self.settings.get("filePath") or ""))

    def filter(self, raw: list[str]) -> Status:
        subject = str(self.settings.get("filePath") or "")
        return Status(subject=subject, records=filter_since(lines_to_records(raw, subject), self.since))

    def render(self, status: Status, focused: bool) -> RenderableType:
        return lines_panel.render(status, focused, self.config.row_colors)


@register("cmdrunner")
class CommandWidget(Widget):
    SETTINGS = frozenset({"cmd", "args", "since"})

    @property
    def command(self) -> tuple[str, list[str]]:
        args = self.settings.get("args") or []
        if isinstance(args, str):
            args = args.split()
        return str(self.settings.get("cmd") or ""), [str(arg) for arg in args]

    @property
    def title(self) -> str:
        if self.config.title:
            return self.config.title
        cmd, args = self.command
        return " ".join([cmd, *args]) or self.config.name

    def fetch(self, timeout: float) -> list[str]:
        cmd, args = self.command
        return run_command(cmd, args, timeout).splitlines()

    def filter(self, raw: list[str]) -> Status:
        cmd, args = self.command
        subject = " ".join([cmd, *args])
        return Status(subject=subject, records=filter_since(lines_to_records(raw, subject), self.since))

    def render(self, status: Status, focused: bool) -> RenderableType:
        return lines_panel.render(status, focused, self.config.row_colors)


@dataclass(frozen=True)
class InstanceSnapshot:
    status: Status | None
    error: str | None
    sequence: int


class WidgetInstance:
    """Runtime state for one enabled widget.

    Only the widget's own refresh cycle writes ``status``/``error``; readers
    take a consistent ``snapshot()``. ``sequence`` increases with every
    recorded result so painters can tell a fresh update from a repeat.
    """

    def __init__(self, widget: Widget, rect: CellRect) -> None:
        self.widget = widget
        self.rect = rect
        self._lock = threading.Lock()
        self._status: Status | None = None
        self._error: str | None = None
        self._sequence = 0
        self._in_flight = False

    @property
    def id(self) -> str:
        return self.widget.identify()

    @property
    def interval(self) -> float:
        return self.widget.config.refresh_interval

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def try_begin(self) -> bool:
        """Claim the in-flight slot; False if a cycle is already running."""
        with self._lock:
            if self._in_flight:
                return False
            self._in_flight = True
            return True

    def finish(self) -> None:
        with self._lock:
            self._in_flight = False

    def record_success(self, status: Status) -> None:
        with self._lock:
            self._status = status
            self._error = None
            self._sequence += 1

    def record_failure(self, error: str) -> None:
        with self._lock:
            self._error = error
            self._sequence += 1

    def snapshot(self) -> InstanceSnapshot:
        with self._lock:
            return InstanceSnapshot(self._status, self._error, self._sequence)


def build_widgets(config: DashboardConfig) -> tuple[list[WidgetInstance], list[str]]:
    """Create one instance per enabled widget, in declaration order."""
    rects, warnings = resolve(config.grid, config.widgets)
    instances = []
    for widget_config, rect in zip(config.enabled_widgets, rects):
        instance = WidgetInstance(create_widget(widget_config), rect)
        logger.debug("created %s widget '%s' at %s", widget_config.kind, instance.id, rect)
        instances.append(instance)
    return instances, warnings
