"""Shell command collector."""

from __future__ import annotations

import subprocess

from griddash.models import FetchError


def run_command(cmd: str, args: list[str], timeout: float) -> str:
    if not cmd:
        raise FetchError("no cmd configured")

    try:
        proc = subprocess.run(
            [cmd, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise FetchError(f"{cmd}: command not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise FetchError(f"{cmd}: timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise FetchError(f"{cmd}: {exc.strerror or exc}") from exc

    if proc.returncode != 0:
        lines = (proc.stderr or proc.stdout or "").strip().splitlines()
        message = lines[0] if lines else f"exit status {proc.returncode}"
        raise FetchError(f"{cmd}: {message}")

    return proc.stdout
