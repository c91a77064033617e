"""
Canonical engine record and the normalizer that builds it.

Engine definitions arrive in many shapes: a bare render function, an object
or module exposing ``render``/``render_sync``/``compile``/``render_file``, or
a plain mapping of the same. :func:`normalize` inspects the definition once,
collapses it into a :class:`Capabilities` record, and returns an
:class:`Engine` whose public methods are filled in later by
:func:`engine_cache.decorator.decorate`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Protocol

from engine_cache.errors import ConfigurationError, UsageError
from engine_cache.helpers import AsyncHelperStore, HelperStore
from engine_cache.utilities.callbacks import Callback
from engine_cache.utilities.extensions import format_ext, strip_ext

logger = logging.getLogger(__name__)

# ``__express`` is the render-file alias used by engines written against
# Express-style view interfaces.
RENDER_FILE_ALIASES = ("render_file", "__express")

# Keys read from a definition; everything else is preserved as an extra.
_KNOWN_KEYS = frozenset(
    {"render", "render_sync", "compile", "options", "name", *RENDER_FILE_ALIASES}
)

_INVALID_DEFINITION_TYPES = (str, bytes, int, float, bool, list, tuple, set)


class CompiledTemplate(Protocol):
    def __call__(self, context: Mapping[str, Any] | None = None, callback: Callback | None = None) -> Any: ...


RenderFn = Callable[[str, dict[str, Any], Callback], None]
RenderSyncFn = Callable[[str, dict[str, Any]], str]
CompileFn = Callable[[str, dict[str, Any]], Any]
RenderFileFn = Callable[[str, dict[str, Any], Callback], None]


def identity_compile(src: str, settings: Mapping[str, Any] | None = None) -> str:
    """Pass-through compiler for engines without ``compile``."""
    return src


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Raw callables of the underlying library, resolved once."""

    render: RenderFn
    render_sync: RenderSyncFn
    compile: CompileFn = identity_compile
    render_file: RenderFileFn | None = None
    has_compile: bool = False


@dataclass(eq=False)
class Engine:
    """A normalized engine.

    ``render``, ``render_sync``, ``compile``, ``render_file``, ``resolve`` and
    ``render_async`` are installed by :func:`engine_cache.decorator.decorate`.
    Extra attributes carried by the original definition are set directly on
    the instance.
    """

    name: str
    ext: str
    capabilities: Capabilities
    options: dict[str, Any] = field(default_factory=dict)
    helpers: HelperStore = field(default_factory=HelperStore)
    async_helpers: AsyncHelperStore = field(default_factory=AsyncHelperStore)
    definition: Any = field(default=None, repr=False)

    render: Callable[..., None] | None = field(default=None, repr=False)
    render_sync: Callable[..., str] | None = field(default=None, repr=False)
    compile: Callable[..., Any] | None = field(default=None, repr=False)
    render_file: Callable[..., None] | None = field(default=None, repr=False)
    resolve: Callable[..., None] | None = field(default=None, repr=False)
    render_async: Callable[..., Any] | None = field(default=None, repr=False)

    @property
    def decorated(self) -> bool:
        return self.resolve is not None


def _lookup(definition: Any, key: str) -> Any:
    if isinstance(definition, Mapping):
        return definition.get(key)
    if isinstance(definition, ModuleType):
        return vars(definition).get(key)
    return getattr(definition, key, None)


def _extras(definition: Any) -> dict[str, Any]:
    if isinstance(definition, Mapping):
        items = definition.items()
    elif isinstance(definition, ModuleType):
        public = getattr(definition, "__all__", None)
        if public is None:
            return {}
        items = ((name, getattr(definition, name)) for name in public)
    elif hasattr(definition, "__dict__"):
        items = vars(definition).items()
    else:
        return {}
    return {
        key: value
        for key, value in items
        if isinstance(key, str)
        and key not in _KNOWN_KEYS
        and not key.startswith("_")
        and not isinstance(value, ModuleType)
    }


def _function_name(func: Any) -> str | None:
    name = getattr(func, "__name__", None)
    if not name or name == "<lambda>":
        return None
    return name


def _render_from_sync(render_sync: RenderSyncFn) -> RenderFn:
    def render(src: str, context: dict[str, Any], callback: Callback) -> None:
        try:
            content = render_sync(src, context)
        except Exception as exc:
            callback(exc, None)
            return
        callback(None, content)

    render.__name__ = getattr(render_sync, "__name__", "render")
    return render


def _sync_from_render(render: RenderFn, engine_name: str) -> RenderSyncFn:
    def render_sync(src: str, context: dict[str, Any]) -> str:
        outcome: list[tuple[BaseException | None, Any]] = []
        render(src, context, lambda err=None, content=None: outcome.append((err, content)))
        if not outcome:
            raise UsageError(
                f"Engine {engine_name!r} did not call back synchronously; use render() instead"
            )
        error, content = outcome[0]
        if error is not None:
            raise error
        return content

    render_sync.__name__ = getattr(render, "__name__", "render_sync")
    return render_sync


def normalize(ext: str, definition: Any, options: Mapping[str, Any] | None = None) -> Engine:
    """Build a canonical :class:`Engine` from an engine definition.

    Args:
        ext: Extension the engine is registered under, with or without a dot.
        definition: Render function, mapping, object or module.
        options: Caller options; merged over ``definition.options``.

    Raises:
        ConfigurationError: The definition has an unsupported type or no
            ``render``/``render_sync`` capability.
    """
    key = format_ext(ext)
    if not key:
        raise ConfigurationError(f"Engine extension must be a non-empty string, got {ext!r}")

    if definition is None or isinstance(definition, _INVALID_DEFINITION_TYPES):
        raise ConfigurationError(
            f"Engine {key!r} must be defined by a function or an object, got {type(definition).__name__}"
        )

    if options is not None and not isinstance(options, Mapping):
        raise ConfigurationError(
            f"Options for engine {key!r} must be a mapping, got {type(options).__name__}"
        )

    render = _lookup(definition, "render")
    render_sync = _lookup(definition, "render_sync")

    if callable(definition) and not isinstance(definition, type) and render is None and render_sync is None:
        # A bare function is the render method.
        render = definition

    render = render if callable(render) else None
    render_sync = render_sync if callable(render_sync) else None
    if render is None and render_sync is None:
        raise ConfigurationError(
            f"Engine {key!r} is expected to have a `render` or `render_sync` method."
        )

    render_file = None
    for alias in RENDER_FILE_ALIASES:
        candidate = _lookup(definition, alias)
        if callable(candidate):
            render_file = candidate
            break

    compile_fn = _lookup(definition, "compile")
    has_compile = callable(compile_fn)

    opts: dict[str, Any] = {}
    definition_options = _lookup(definition, "options")
    if isinstance(definition_options, Mapping):
        opts.update(definition_options)
    if options:
        opts.update(options)
    opts["ext"] = key

    name = opts.get("name")
    if not isinstance(name, str) or not name:
        name = _lookup(definition, "name")
    if not isinstance(name, str) or not name:
        name = _function_name(render) or _function_name(render_sync) or strip_ext(key)

    if render is None:
        render = _render_from_sync(render_sync)
    if render_sync is None:
        render_sync = _sync_from_render(render, name)

    capabilities = Capabilities(
        render=render,
        render_sync=render_sync,
        compile=compile_fn if has_compile else identity_compile,
        render_file=render_file,
        has_compile=has_compile,
    )

    helpers = HelperStore(opts.get("helpers") or None)
    async_helpers = AsyncHelperStore(opts.get("async_helpers") or None)
    for helper_name, helper in helpers.get_async().items():
        async_helpers.set(helper_name, helper)

    engine = Engine(
        name=name,
        ext=key,
        capabilities=capabilities,
        options=opts,
        helpers=helpers,
        async_helpers=async_helpers,
        definition=definition,
    )
    for attr, value in _extras(definition).items():
        if not hasattr(engine, attr):
            setattr(engine, attr, value)

    logger.debug(
        "Normalized engine %r for %s (compile=%s, render_file=%s)",
        name,
        key,
        has_compile,
        render_file is not None,
    )
    return engine
