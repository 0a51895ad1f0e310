"""Non-blocking keyboard input for the live dashboard.

Uses termios non-canonical mode (ICANON/ECHO off, VMIN=0/VTIME=0) rather
than raw mode so Rich Live's alternate screen keeps working over SSH.
"""

from __future__ import annotations

import os
import select
import sys

ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[Z": "shift-tab",
}

SINGLE_KEYS = {
    "\t": "tab",
    "\x03": "ctrl-c",
    "\x1b": "escape",
    "h": "left",
    "j": "down",
    "k": "up",
    "l": "right",
}


def decode_key(chunk: str) -> str | None:
    if not chunk:
        return None
    if chunk in ESCAPE_SEQUENCES:
        return ESCAPE_SEQUENCES[chunk]
    if chunk in SINGLE_KEYS:
        return SINGLE_KEYS[chunk]
    if chunk.startswith("\x1b"):
        return None
    return chunk[0]


def _token_end(chunk: str, start: int) -> int:
    if chunk[start] != "\x1b" or start + 1 >= len(chunk):
        return start + 1
    intro = chunk[start + 1]
    if intro == "O":
        return min(start + 3, len(chunk))
    if intro != "[":
        # a bare escape followed by an ordinary key
        return start + 1
    idx = start + 2
    while idx < len(chunk) and not "\x40" <= chunk[idx] <= "\x7e":
        idx += 1
    return min(idx + 1, len(chunk))


def split_keys(chunk: str) -> list[str]:
    """Decode a buffer holding any number of key presses, in typing order.

    Unknown escape sequences are dropped without swallowing the keys around them.
    """
    keys = []
    idx = 0
    while idx < len(chunk):
        end = _token_end(chunk, idx)
        key = decode_key(chunk[idx:end])
        if key is not None:
            keys.append(key)
        idx = end
    return keys


class KeyReader:
    """Context manager reading single key presses from stdin without blocking.

    When stdin is not a terminal (or termios is unavailable) ``read_keys`` always
    returns an empty list and the dashboard simply runs without keyboard control.
    """

    def __init__(self, stream=None) -> None:
        self._stream = stream or sys.stdin
        self._fd: int | None = None
        self._old_settings = None

    def __enter__(self) -> KeyReader:
        try:
            import termios
        except ImportError:
            return self

        try:
            fd = self._stream.fileno()
            if not os.isatty(fd):
                return self
            self._old_settings = termios.tcgetattr(fd)
            new = termios.tcgetattr(fd)
            new[3] &= ~(termios.ICANON | termios.ECHO)
            new[6][termios.VMIN] = 0
            new[6][termios.VTIME] = 0
            termios.tcsetattr(fd, termios.TCSADRAIN, new)
            self._fd = fd
        except (termios.error, OSError, ValueError):
            self._fd = None
        return self

    def __exit__(self, *_exc) -> None:
        if self._fd is not None and self._old_settings is not None:
            import termios

            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
        self._fd = None

    def _read_available(self) -> str:
        chunk = b""
        while self._fd is not None:
            ready, _, _ = select.select([self._fd], [], [], 0)
            if not ready:
                break
            data = os.read(self._fd, 16)
            if not data:
                break
            chunk += data
        return chunk.decode("utf-8", errors="ignore")

    def read_keys(self) -> list[str]:
        """Every key pressed since the last call, oldest first."""
        if self._fd is None:
            return []
        try:
            return split_keys(self._read_available())
        except OSError:
            return []
