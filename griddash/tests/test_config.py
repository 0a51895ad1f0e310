from __future__ import annotations

import json
import tempfile
import unittest
from unittest import mock
from pathlib import Path
import sys

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from griddash.config import (  # noqa: E402
    DEFAULT_CONFIG,
    MIN_REFRESH_INTERVAL,
    ConfigLoader,
    load_config,
    parse_config,
)
from griddash.layout import CellRect  # noqa: E402
from griddash.models import ConfigError, LayoutError  # noqa: E402
from griddash.widgets import settings_by_kind  # noqa: E402


def document(widgets: dict, **top) -> dict:
    root = {"grid": {"columns": [1, 1], "rows": [1]}, "widgets": widgets}
    root.update(top)
    return {"griddash": root}


def entry(**extra) -> dict:
    base = {"type": "textfile", "enabled": True, "position": {"top": 0, "left": 0, "height": 1, "width": 1}}
    base.update(extra)
    return base


class ParseConfigTests(unittest.TestCase):
    def test_default_config_is_valid(self):
        config = parse_config(yaml.safe_load(DEFAULT_CONFIG), settings_by_kind())
        self.assertEqual(config.grid.columns, (40, 40))
        self.assertEqual(config.grid.rows, (13, 13, 4))
        self.assertEqual([w.name for w in config.widgets], ["uptime", "config", "breaches", "disk"])
        self.assertEqual([w.name for w in config.enabled_widgets], ["uptime", "config", "disk"])
        self.assertEqual(config.warnings, ())

    def test_widget_fields(self):
        config = parse_config(
            document({"log": entry(refreshInterval=30, title="Log", filePath="/tmp/x.log")}),
            settings_by_kind(),
        )
        widget = config.widgets[0]
        self.assertEqual(widget.kind, "textfile")
        self.assertEqual(widget.position, CellRect(0, 0, 1, 1))
        self.assertEqual(widget.refresh_interval, 30.0)
        self.assertEqual(widget.title, "Log")
        self.assertEqual(dict(widget.settings), {"filePath": "/tmp/x.log"})
        with self.assertRaises(TypeError):
            widget.settings["filePath"] = "/etc/passwd"

    def test_type_defaults_to_entry_name(self):
        raw = entry()
        del raw["type"]
        config = parse_config(document({"hibp": raw}), settings_by_kind())
        self.assertEqual(config.widgets[0].kind, "hibp")

    def test_global_interval_is_the_default(self):
        config = parse_config(document({"log": entry()}, refreshInterval=42))
        self.assertEqual(config.widgets[0].refresh_interval, 42.0)

    def test_zero_and_negative_intervals_are_clamped(self):
        config = parse_config(
            document({"zero": entry(refreshInterval=0), "neg": entry(refreshInterval=-5)}, refreshInterval=-1)
        )
        self.assertEqual(config.refresh_interval, MIN_REFRESH_INTERVAL)
        for widget in config.widgets:
            self.assertEqual(widget.refresh_interval, MIN_REFRESH_INTERVAL)
        self.assertEqual(len(config.warnings), 3)

    def test_non_numeric_interval_is_an_error(self):
        with self.assertRaises(ConfigError):
            parse_config(document({"log": entry(refreshInterval="soon")}))

    def test_unknown_setting_is_a_warning(self):
        config = parse_config(document({"log": entry(filePath="/tmp/a", colour="red")}), settings_by_kind())
        self.assertNotIn("colour", config.widgets[0].settings)
        self.assertTrue(any("unknown setting 'colour'" in w for w in config.warnings))

    def test_unknown_type_is_an_error(self):
        with self.assertRaises(ConfigError):
            parse_config(document({"x": entry(type="weather")}), settings_by_kind())

    def test_broken_disabled_entry_is_only_a_warning(self):
        config = parse_config(
            document(
                {
                    "log": entry(filePath="/tmp/a"),
                    "old": {"type": "gone", "enabled": False},
                    "half": {"type": "textfile", "enabled": False, "position": {"top": "x"}},
                }
            ),
            settings_by_kind(),
        )
        self.assertEqual([w.name for w in config.enabled_widgets], ["log"])
        self.assertEqual([w.name for w in config.widgets], ["log", "old", "half"])
        self.assertTrue(any("unknown widget type 'gone'" in w for w in config.warnings))
        self.assertTrue(any("widget 'half'" in w and "disabled" in w for w in config.warnings))

    def test_same_problem_in_an_enabled_entry_is_fatal(self):
        with self.assertRaises(ConfigError):
            parse_config(document({"old": {"type": "gone", "enabled": True}}), settings_by_kind())

    def test_position_must_be_integers(self):
        with self.assertRaises(ConfigError):
            parse_config(document({"log": entry(position={"top": 0, "left": 0, "height": "1", "width": 1})}))
        with self.assertRaises(ConfigError):
            parse_config(document({"log": entry(position=None)}))

    def test_bad_grid_is_a_layout_error(self):
        doc = document({})
        doc["griddash"]["grid"]["columns"] = [1, 0]
        with self.assertRaises(LayoutError):
            parse_config(doc)

    def test_colors(self):
        config = parse_config(
            document(
                {"log": entry(colors={"rows": {"even": "cyan", "odd": "yellow"}})},
                colors={"border": {"focused": "red", "normal": "blue"}},
            )
        )
        self.assertEqual(config.border_colors.focused, "red")
        self.assertEqual(config.widgets[0].row_colors.for_row(0), "cyan")
        self.assertEqual(config.widgets[0].row_colors.for_row(1), "yellow")
        with self.assertRaises(ConfigError):
            parse_config(document({}, colors={"border": {"focused": "not-a-colour"}}))

    def test_bare_document_without_app_key(self):
        config = parse_config({"grid": {"columns": [1], "rows": [1]}, "widgets": {}})
        self.assertEqual(config.widgets, ())


class ConfigLoaderTests(unittest.TestCase):
    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            loader = ConfigLoader(Path(tmp))
            with self.assertRaises(ConfigError) as ctx:
                loader.load()
            self.assertEqual(ctx.exception.reason, "missing")

    def test_yaml_syntax_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yml"
            path.write_text("griddash:\n  grid: [1, 2\n")
            with self.assertRaises(ConfigError) as ctx:
                ConfigLoader(Path(tmp)).load(path)
            self.assertEqual(ctx.exception.reason, "syntax")

    def test_json_document(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "dash.json"
            path.write_text(json.dumps(document({"log": entry(filePath="/tmp/a")})))
            config = load_config(path, ConfigLoader(Path(tmp)), settings_by_kind())
            self.assertEqual(config.widgets[0].name, "log")

    def test_json_syntax_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "dash.json"
            path.write_text("{nope")
            with self.assertRaises(ConfigError) as ctx:
                ConfigLoader().load(path)
            self.assertEqual(ctx.exception.reason, "syntax")

    def test_ensure_default_config_creates_once(self):
        with tempfile.TemporaryDirectory() as tmp:
            loader = ConfigLoader(Path(tmp) / "griddash")
            path = loader.ensure_default_config()
            self.assertEqual(path, loader.config_path())
            self.assertEqual(path.read_text(), DEFAULT_CONFIG)
            path.write_text("griddash: {}\n")
            loader.ensure_default_config()
            self.assertEqual(path.read_text(), "griddash: {}\n")

    def test_config_dir_from_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.dict("os.environ", {"GRIDDASH_CONFIG_DIR": tmp}):
                self.assertEqual(ConfigLoader().config_dir(), Path(tmp))


if __name__ == "__main__":
    unittest.main()
