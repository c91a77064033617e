from collections.abc import Awaitable, Callable, Mapping
from types import ModuleType
from typing import TYPE_CHECKING, Any, TypeGuard

if TYPE_CHECKING:
    from .engine import CompiledTemplate

ENGINE_ATTRIBUTES = ("render", "render_sync", "render_file")

ASYNC_HELPER_MARKER = "__async_helper__"


def is_async_function(func: Callable | Any) -> TypeGuard[Callable[..., Awaitable[Any]]]:
    """
    Type guard to check if a function is async.

    Args:
        func: Function to check

    Returns:
        True if the function is async, narrowing the type
    """
    import inspect

    return inspect.iscoroutinefunction(func)


def is_async_helper(func: Any) -> bool:
    """
    Check whether a helper must be resolved through placeholders.

    Coroutine functions always qualify. Callback-style helpers qualify when
    they were marked with :func:`engine_cache.helpers.async_helper`.
    """
    if not callable(func):
        return False
    return is_async_function(func) or bool(getattr(func, ASYNC_HELPER_MARKER, False))


def is_compiled_template(value: Any) -> TypeGuard["CompiledTemplate"]:
    """
    Type guard separating compiled templates from template source.

    Anything callable is treated as already compiled; strings are source.
    """
    return callable(value) and not isinstance(value, str)


def has_attribute(obj: Any, attr: str) -> bool:
    """
    Attribute or key lookup that works for mappings and plain objects.

    Args:
        obj: Object or mapping to check
        attr: Attribute name

    Returns:
        True if the object carries the attribute (or key)
    """
    if obj is None:
        return False
    if isinstance(obj, Mapping):
        return attr in obj
    if isinstance(obj, ModuleType):
        return attr in vars(obj)
    return hasattr(obj, attr)


def is_engine(value: Any) -> bool:
    """
    Check whether a value looks like an engine definition.

    Callables qualify, as does any mapping or object that carries at least one
    of ``render``, ``render_sync`` or ``render_file``.
    """
    if callable(value) and not isinstance(value, type):
        return True
    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return False
    return any(has_attribute(value, attr) for attr in ENGINE_ATTRIBUTES)
