from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from griddash.collectors.cmdrunner import run_command  # noqa: E402
from griddash.collectors.textfile import read_lines  # noqa: E402
from griddash.models import FetchError  # noqa: E402


class TextFileTests(unittest.TestCase):
    def test_reads_lines(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "notes.txt"
            path.write_text("first\nsecond\n")
            self.assertEqual(read_lines(str(path)), ["first", "second"])

    def test_empty_file_is_not_an_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.txt"
            path.write_text("")
            self.assertEqual(read_lines(str(path)), [])

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FetchError) as ctx:
                read_lines(str(Path(tmp) / "gone.txt"))
            self.assertIn("file not found", str(ctx.exception))

    def test_no_path_configured(self):
        with self.assertRaises(FetchError):
            read_lines("")

    def test_directory_is_a_read_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FetchError):
                read_lines(tmp)


class CommandTests(unittest.TestCase):
    def test_returns_stdout(self):
        out = run_command(sys.executable, ["-c", "print('hello')"], timeout=10)
        self.assertEqual(out.strip(), "hello")

    def test_non_zero_exit_uses_first_stderr_line(self):
        script = "import sys; sys.stderr.write('bad thing\\nmore\\n'); sys.exit(3)"
        with self.assertRaises(FetchError) as ctx:
            run_command(sys.executable, ["-c", script], timeout=10)
        self.assertIn("bad thing", str(ctx.exception))
        self.assertNotIn("more", str(ctx.exception))

    def test_missing_binary(self):
        with self.assertRaises(FetchError) as ctx:
            run_command("griddash-no-such-binary", [], timeout=5)
        self.assertIn("command not found", str(ctx.exception))

    def test_timeout(self):
        with self.assertRaises(FetchError) as ctx:
            run_command(sys.executable, ["-c", "import time; time.sleep(5)"], timeout=0.2)
        self.assertIn("timed out", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
