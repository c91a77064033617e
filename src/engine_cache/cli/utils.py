import asyncio
import importlib
import sys
from pathlib import Path
from typing import Any

from engine_cache.engine import Engine


def load_object_from_path(path_str: str) -> Any:
    """
    Load an object from a string path 'module:object'.

    Args:
        path_str: String in format 'module.submodule:variable_name'

    Returns:
        The object found at the path (an engine definition or a mapping of them)

    Raises:
        ValueError: If path format is incorrect
        ImportError: If module cannot be imported
        AttributeError: If object cannot be found in module
    """
    # Add CWD to sys.path to allow loading local modules if not already there
    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    if ":" not in path_str:
        raise ValueError(
            f"Invalid engine path format '{path_str}'. Expected 'module:object'."
        )

    module_path, object_name = path_str.split(":", 1)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ImportError(f"Could not import module '{module_path}': {e}") from e

    try:
        return getattr(module, object_name)
    except AttributeError:
        raise AttributeError(f"Module '{module_path}' has no attribute '{object_name}'") from None


def parse_variables(pairs: list[str] | None) -> dict[str, str]:
    """Turn ``["name=Ada", "lang=en"]`` into a context dict."""
    context: dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Invalid variable '{pair}'. Expected 'key=value'.")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid variable '{pair}'. Key must not be empty.")
        context[key] = value
    return context


async def render_path(engine: Engine, path: Path, context: dict[str, Any]) -> str:
    """Await ``engine.render_file`` for ``path``."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def _settle(error, content):
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(content)

    def callback(error=None, content=None):
        loop.call_soon_threadsafe(_settle, error, content)

    engine.render_file(path, context, callback)
    return await future
