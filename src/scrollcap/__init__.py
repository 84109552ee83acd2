"""scrollcap: record scrolling videos of web pages with consent overlays suppressed."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("scrollcap")
except Exception:
    __version__ = "0.0.0"
