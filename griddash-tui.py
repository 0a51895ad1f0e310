#!/usr/bin/env python3
"""Run the griddash dashboard straight from a source checkout."""

from __future__ import annotations

from griddash.app import main


if __name__ == "__main__":
    raise SystemExit(main())
