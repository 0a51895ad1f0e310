from __future__ import annotations

import unittest
from datetime import datetime, timezone
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from griddash.collectors import filter_since, lines_to_records  # noqa: E402
from griddash.config import parse_config  # noqa: E402
from griddash.layout import CellRect  # noqa: E402
from griddash.models import ConfigError, LayoutError, Record, Status  # noqa: E402
from griddash.widgets import (  # noqa: E402
    WIDGET_KINDS,
    CommandWidget,
    HibpWidget,
    TextFileWidget,
    WidgetInstance,
    build_widgets,
    create_widget,
    settings_by_kind,
)

SINCE = datetime(2023, 1, 1, tzinfo=timezone.utc)


class FilterSinceTests(unittest.TestCase):
    def test_keeps_only_newer_records(self):
        records = [Record("old", "2022-01-01"), Record("new", "2024-01-01")]
        self.assertEqual([r.title for r in filter_since(records, SINCE)], ["new"])

    def test_boundary_itself_is_not_newer(self):
        self.assertEqual(filter_since([Record("edge", "2023-01-01")], SINCE), ())

    def test_unparsable_or_missing_dates_are_kept(self):
        records = [Record("garbled", "01/02/2019"), Record("missing", None), Record("blank", "")]
        self.assertEqual(len(filter_since(records, SINCE)), 3)

    def test_empty_input_is_empty(self):
        self.assertEqual(filter_since([], SINCE), ())

    def test_no_boundary_keeps_everything(self):
        records = [Record("old", "1999-01-01")]
        self.assertEqual(filter_since(records, None), tuple(records))

    def test_lines_pick_up_timestamps(self):
        records = lines_to_records(
            ["2024-03-01T10:00:00Z started", "", "  no stamp here", "[2021-05-05 09:30:00] old"]
        )
        self.assertEqual([r.timestamp for r in records], ["2024-03-01T10:00:00Z", None, "2021-05-05 09:30:00"])
        self.assertEqual(records[1].title, "  no stamp here")


class RegistryTests(unittest.TestCase):
    def test_builtin_kinds(self):
        self.assertIs(WIDGET_KINDS["hibp"], HibpWidget)
        self.assertIs(WIDGET_KINDS["textfile"], TextFileWidget)
        self.assertIs(WIDGET_KINDS["cmdrunner"], CommandWidget)
        self.assertIn("since", settings_by_kind()["hibp"])

    def test_unknown_kind(self):
        config = parse_config(
            {"grid": {"columns": [1], "rows": [1]},
             "widgets": {"x": {"type": "nope", "enabled": True,
                               "position": {"top": 0, "left": 0, "height": 1, "width": 1}}}}
        )
        with self.assertRaises(ConfigError):
            create_widget(config.widgets[0])


class BuildWidgetsTests(unittest.TestCase):
    def _config(self, widgets: dict):
        return parse_config({"grid": {"columns": [1, 1], "rows": [1]}, "widgets": widgets}, settings_by_kind())

    def test_one_instance_per_enabled_entry_in_order(self):
        pos = {"top": 0, "left": 0, "height": 1, "width": 1}
        config = self._config(
            {
                "b": {"type": "textfile", "enabled": True, "position": pos},
                "skip": {"type": "textfile", "enabled": False, "position": pos},
                "a": {"type": "cmdrunner", "enabled": True, "position": dict(pos, left=1)},
            }
        )
        instances, warnings = build_widgets(config)
        self.assertEqual([i.id for i in instances], ["b", "a"])
        self.assertEqual(instances[1].rect, CellRect(0, 1, 1, 1))
        self.assertIsInstance(instances[1].widget, CommandWidget)
        self.assertEqual(warnings, [])

    def test_out_of_bounds_is_fatal(self):
        config = self._config(
            {"w": {"type": "textfile", "enabled": True,
                   "position": {"top": 0, "left": 1, "height": 1, "width": 2}}}
        )
        with self.assertRaises(LayoutError):
            build_widgets(config)


class WidgetInstanceTests(unittest.TestCase):
    def _instance(self) -> WidgetInstance:
        config = parse_config(
            {"grid": {"columns": [1], "rows": [1]},
             "widgets": {"log": {"type": "textfile", "enabled": True,
                                 "position": {"top": 0, "left": 0, "height": 1, "width": 1}}}}
        )
        return WidgetInstance(TextFileWidget(config.widgets[0]), CellRect(0, 0, 1, 1))

    def test_starts_empty(self):
        snapshot = self._instance().snapshot()
        self.assertIsNone(snapshot.status)
        self.assertIsNone(snapshot.error)
        self.assertEqual(snapshot.sequence, 0)

    def test_failure_keeps_previous_status(self):
        instance = self._instance()
        good = Status("log", (Record("line"),))
        instance.record_success(good)
        instance.record_failure("disk on fire")
        snapshot = instance.snapshot()
        self.assertIs(snapshot.status, good)
        self.assertEqual(snapshot.error, "disk on fire")
        self.assertEqual(snapshot.sequence, 2)

    def test_success_clears_error(self):
        instance = self._instance()
        instance.record_failure("boom")
        instance.record_success(Status("log"))
        self.assertIsNone(instance.snapshot().error)

    def test_in_flight_slot(self):
        instance = self._instance()
        self.assertTrue(instance.try_begin())
        self.assertFalse(instance.try_begin())
        instance.finish()
        self.assertFalse(instance.in_flight)
        self.assertTrue(instance.try_begin())


class CommandWidgetTests(unittest.TestCase):
    def _widget(self, **settings) -> CommandWidget:
        entry = {"type": "cmdrunner", "enabled": True,
                 "position": {"top": 0, "left": 0, "height": 1, "width": 1}}
        entry.update(settings)
        config = parse_config({"grid": {"columns": [1], "rows": [1]}, "widgets": {"cmd": entry}})
        return CommandWidget(config.widgets[0])

    def test_title_defaults_to_command_line(self):
        self.assertEqual(self._widget(cmd="df", args=["-h"]).title, "df -h")
        self.assertEqual(self._widget(cmd="df", args="-h /", title="Disk").title, "Disk")

    def test_fetch_and_filter(self):
        widget = self._widget(cmd=sys.executable, args=["-c", "print('one'); print('two')"])
        status = widget.filter(widget.fetch(timeout=10))
        self.assertEqual([r.title for r in status.records], ["one", "two"])


if __name__ == "__main__":
    unittest.main()
