"""Pass-through engine: renders templates exactly as written."""

from __future__ import annotations

from pathlib import Path
from typing import Any

__all__ = ["name", "cache", "render", "render_sync", "render_file"]

name = "noop"

# path -> template source, filled when render_file() is called with cache=True
cache: dict[str, str] = {}


def render_sync(src: str, context: dict[str, Any] | None = None) -> str:
    return src


def render(src: str, context: dict[str, Any] | None, callback) -> None:
    callback(None, src)


def render_file(path: str, context: dict[str, Any] | None, callback) -> None:
    """Read ``path`` and call back with its contents."""
    context = context or {}
    try:
        if context.get("cache"):
            if path not in cache:
                cache[path] = Path(path).read_text(encoding=context.get("encoding", "utf-8"))
            src = cache[path]
        else:
            src = Path(path).read_text(encoding=context.get("encoding", "utf-8"))
    except OSError as exc:
        callback(exc, None)
        return
    render(src, context, callback)
