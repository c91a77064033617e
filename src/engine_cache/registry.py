"""
CONTEXT: Extension-keyed cache of decorated template engines.
ROLE: Entry point for host applications: register heterogeneous engines under a
      file extension, look them up (with default/wildcard fallback), and reach
      their helper stores.
ARCHITECTURE:
  - register(): normalize -> decorate -> store, never partially applied
  - get(): exact extension, then configured default, then wildcard ``.*``
  - clear()/load()/helpers(): cache administration
KEY EXPORTS: EngineRegistry

THREAD SAFETY:
  - No locking. Registration, lookup and clearing are synchronous and must be
    serialized by the host when used from several threads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import ModuleType
from typing import Any

from pydantic import ValidationError

from engine_cache.config import RegistryConfig
from engine_cache.decorator import decorate
from engine_cache.engine import Engine, normalize
from engine_cache.errors import ConfigurationError, EngineNotFoundError
from engine_cache.helpers import HelperStore
from engine_cache.type_guards import is_engine
from engine_cache.utilities.extensions import format_ext

logger = logging.getLogger(__name__)


class EngineRegistry:
    """A cache of template engines keyed by file extension.

    Usage:
    ```python
    from engine_cache import EngineRegistry
    from engine_cache.defaults import tmpl

    engines = EngineRegistry()
    engines.register("tmpl", tmpl)

    engines.get("tmpl").render_sync("<%= name %>", {"name": "Ada"})
    # => 'Ada'
    ```

    Extensions are accepted with or without a leading dot and are always
    stored with one. Lookups that miss fall back to ``options.default_engine``
    and then to the wildcard engine (``.*``), which :meth:`init` registers
    unless ``load_defaults`` is false.
    """

    def __init__(self, options: RegistryConfig | Mapping[str, Any] | None = None):
        try:
            if isinstance(options, RegistryConfig):
                self.options = options
            else:
                self.options = RegistryConfig.model_validate(dict(options or {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid registry options: {exc}") from exc

        self.cache: dict[str, Engine] = {}
        self._default: Engine | None = None

        if self.options.load_defaults:
            self.init()

    def init(self) -> EngineRegistry:
        """Register the bundled noop engine under the wildcard extension."""
        from engine_cache.defaults import noop

        return self.register(self.options.wildcard, noop)

    def register(self, ext: str, engine: Any, options: Any = None) -> EngineRegistry:
        """Register ``engine`` under ``ext``; returns the registry for chaining.

        ``engine`` and ``options`` may be given in either order: when the third
        argument looks like an engine, the two are swapped.

        Raises:
            ConfigurationError: The definition is invalid. The cache is left
                untouched.
        """
        if options is not None and is_engine(options):
            engine, options = options, engine

        record = decorate(normalize(ext, engine, options))
        replaced = record.ext in self.cache
        self.cache[record.ext] = record
        logger.debug(
            "%s engine %r under %s",
            "Replaced" if replaced else "Registered",
            record.name,
            record.ext,
        )
        return self

    set_engine = register

    def get(self, ext: str | None = None) -> Any:
        """Return the engine for ``ext``, or the whole cache when ``ext`` is None."""
        if ext is None:
            return self.cache

        key = format_ext(ext)
        engine = self.cache.get(key)
        if engine is not None:
            return engine

        fallback = self._fallback()
        if fallback is not None:
            logger.debug("No engine for %s; falling back to %s", key, fallback.ext)
        return fallback

    get_engine = get

    def _fallback(self) -> Engine | None:
        default = self.options.default_engine
        if isinstance(default, str) and default:
            return self.cache.get(format_ext(default))
        if default is not None and not isinstance(default, str):
            if self._default is None:
                self._default = decorate(normalize("default", default))
            return self._default
        return self.cache.get(format_ext(self.options.wildcard))

    def clear(self, ext: str | None = None) -> EngineRegistry:
        """Remove the engine for ``ext``, or every engine when ``ext`` is None."""
        if ext is None:
            self.cache.clear()
            logger.debug("Cleared engine cache")
            return self

        key = format_ext(ext)
        if self.cache.pop(key, None) is not None:
            logger.debug("Removed engine for %s", key)
        return self

    def load(self, engines: Mapping[str, Any] | ModuleType) -> EngineRegistry:
        """Register every engine of a mapping (or module), in order.

        Reserved administrative names such as ``clear_cache`` are skipped.
        For modules, only public attributes that look like engines are
        considered.
        """
        if isinstance(engines, ModuleType):
            items = [
                (name, value)
                for name, value in vars(engines).items()
                if not name.startswith("_") and is_engine(value) and not isinstance(value, (type, ModuleType))
            ]
        elif isinstance(engines, Mapping):
            items = list(engines.items())
        else:
            raise ConfigurationError(
                f"load() expects a mapping of engines, got {type(engines).__name__}"
            )

        for name, definition in items:
            if name in self.options.reserved_names:
                logger.debug("Skipping reserved name %r", name)
                continue
            self.register(name, definition)
        return self

    def helpers(self, ext: str) -> HelperStore:
        """Shorthand for ``get(ext).helpers``."""
        engine = self.get(ext)
        if engine is None:
            raise EngineNotFoundError(format_ext(ext) or repr(ext))
        return engine.helpers

    def extensions(self) -> list[str]:
        return list(self.cache)

    def __contains__(self, ext: object) -> bool:
        return isinstance(ext, str) and format_ext(ext) in self.cache

    def __iter__(self) -> Iterator[str]:
        return iter(self.cache)

    def __len__(self) -> int:
        return len(self.cache)

    def __repr__(self) -> str:
        return f"EngineRegistry({self.extensions()!r})"
