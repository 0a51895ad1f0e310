"""Local text file collector."""

from __future__ import annotations

from griddash.collectors import expand_path
from griddash.models import FetchError


def read_lines(file_path: str) -> list[str]:
    if not file_path:
        raise FetchError("no filePath configured")

    path = expand_path(file_path)
    try:
        return path.read_text(errors="replace").splitlines()
    except FileNotFoundError as exc:
        raise FetchError(f"file not found: {path}") from exc
    except OSError as exc:
        raise FetchError(f"cannot read {path}: {exc.strerror or exc}") from exc
