from typing import Any


def format_ext(ext: Any) -> str:
    """Return ``ext`` with a leading dot, or ``""`` for non-strings."""
    if not isinstance(ext, str) or not ext:
        return ""
    if ext[0] != ".":
        return "." + ext
    return ext


def strip_ext(ext: Any) -> str:
    """Return ``ext`` without its leading dot."""
    if not isinstance(ext, str) or not ext:
        return ""
    if ext[0] == ".":
        return ext[1:]
    return ext

