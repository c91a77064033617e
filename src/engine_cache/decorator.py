"""
CONTEXT: Decoration of normalized engines with the uniform render contract.
ROLE: Wrap the raw render/render_sync/compile callables of an underlying library
      so every call merges helpers, accepts source strings or compiled templates,
      and substitutes async helper placeholders before content reaches the caller.
DEPENDENCIES:
  - asyncio: awaitable ``render_async`` built on the callback path
  - logging: debug tracing of compile/render/resolve steps
ARCHITECTURE:
  - compile(): helper merge (async helpers left out) + raw compile, returns a
    CompiledTemplate closure
  - render(): callback continuation (compile -> underlying render -> resolve)
  - render_sync(): same pipeline without a callback; async helpers excluded
  - resolve(): sequential, fail-fast placeholder substitution
  - render_file(): raw render_file when available, else read + render()
KEY EXPORTS: decorate

CONCURRENCY MODEL:
  - The caller's callback runs exactly once, with an error or the final content
  - Placeholders are resolved one at a time, in stash order
  - Tokens handed out during a render leave the stash once that render settles
  - No timeout or cancellation: an engine that never calls back leaves the
    render pending indefinitely

ERROR HANDLING STRATEGY:
  - UsageError raised synchronously for call-shape mistakes detectable up front
    (missing callback, bad ``src`` for render_sync/compile)
  - UsageError for a bad ``src`` inside render() goes through the callback
  - Underlying engine errors reach the caller unchanged (callback or raise)
  - ResolutionError from async helpers aborts the remaining substitutions
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from engine_cache.engine import Engine
from engine_cache.errors import UsageError
from engine_cache.type_guards import is_async_helper, is_compiled_template
from engine_cache.utilities.callbacks import Callback, CallbackOnce

logger = logging.getLogger(__name__)


def _split_callback(context: Any, callback: Any) -> tuple[Any, Any]:
    if callback is None and callable(context) and not isinstance(context, Mapping):
        return None, context
    return context, callback


def _copy_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    if context is None:
        return {}
    if not isinstance(context, Mapping):
        raise UsageError(f"Expected context to be a mapping, got {type(context).__name__}")
    return dict(context)


def merge_helpers(
    engine: Engine,
    options: Mapping[str, Any],
    wrap: bool,
    created: list[str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``options`` whose ``helpers`` holds every helper in scope.

    Engine helpers are overridden by call-site helpers. Async helpers are
    registered with the engine's AsyncHelperStore; they are exposed as
    placeholder-producing wrappers when ``wrap`` is true and left out
    otherwise. Tokens handed out by those wrappers are appended to ``created``.
    """
    settings = dict(options)
    local = settings.get("helpers")
    helpers = engine.helpers.get()
    if isinstance(local, Mapping):
        helpers.update(local)

    merged: dict[str, Any] = {}
    for name, helper in helpers.items():
        if is_async_helper(helper):
            engine.async_helpers.set(name, helper)
        else:
            merged[name] = helper

    if wrap:
        for name, placeholder in engine.async_helpers.get(wrap=True, sink=created).items():
            if name not in merged:
                merged[name] = placeholder

    settings["helpers"] = merged
    return settings


def _make_resolve(engine: Engine):
    store = engine.async_helpers

    def resolve(content: Any, callback: Callback) -> None:
        """Replace every async placeholder in ``content``, then call back."""
        callback = CallbackOnce.wrap(callback, label=f"{engine.name} resolve")
        tokens = store.tokens_in(content)
        if not tokens:
            callback(None, content)
            return

        logger.debug("Resolving %d async placeholder(s) for %s", len(tokens), engine.ext)

        def step(index: int, current: str) -> None:
            if index == len(tokens):
                callback(None, current)
                return
            token = tokens[index]

            def resolved(error: BaseException | None, value: Any = None) -> None:
                if error is not None:
                    store.discard(tokens[index + 1 :])
                    callback(error, None)
                    return
                step(index + 1, current.replace(token, "" if value is None else str(value)))

            store.resolve(token, resolved)

        step(0, content)

    return resolve


def _settle_render(engine: Engine, created: list[str], callback: Callback) -> Callback:
    """Continuation for the underlying render: resolve, then drop this render's tokens."""

    def release(error: BaseException | None, content: Any = None) -> None:
        engine.async_helpers.discard(created)
        callback(error, content)

    def done(error: BaseException | None, content: Any = None) -> None:
        if error is not None:
            release(error, None)
            return
        engine.resolve(content, release)

    return done


def _make_compile(engine: Engine):
    caps = engine.capabilities

    def compile(src: Any, options: Mapping[str, Any] | None = None):
        """Compile ``src`` into a CompiledTemplate; compiled input passes through."""
        if is_compiled_template(src):
            return src
        if not isinstance(src, str):
            raise UsageError(
                f'engine-cache "compile" expected "src" to be a string or compiled function, '
                f"got {type(src).__name__}"
            )

        opts = _copy_context(options)
        settings = merge_helpers(engine, opts, wrap=False)
        intermediate = caps.compile(src, settings)

        def compiled_template(context: Mapping[str, Any] | None = None, callback: Callback | None = None):
            context, callback = _split_callback(context, callback)
            if callback is not None and not callable(callback):
                raise UsageError(
                    f"Expected callback to be callable, got {type(callback).__name__}"
                )
            if callback is None:
                locals_ = merge_helpers(engine, _copy_context(context), wrap=False)
                if is_compiled_template(intermediate):
                    return intermediate(locals_)
                return caps.render_sync(intermediate, locals_)

            created: list[str] = []
            locals_ = merge_helpers(engine, _copy_context(context), wrap=True, created=created)
            callback = CallbackOnce.wrap(callback, label=f"{engine.name} render")
            guarded = CallbackOnce(
                _settle_render(engine, created, callback),
                label=f"{engine.name} underlying render",
            )
            target = intermediate if isinstance(intermediate, str) else src
            try:
                caps.render(target, locals_, guarded)
            except Exception as exc:
                if guarded.called:
                    raise
                guarded(exc, None)
            return None

        compiled_template.__name__ = f"{engine.name}_template"
        compiled_template.__qualname__ = compiled_template.__name__
        return compiled_template

    return compile


def _make_render(engine: Engine):
    def render(src: Any, context: Mapping[str, Any] | None = None, callback: Callback | None = None) -> None:
        """Render ``src`` (source or compiled template) and call ``callback(error, content)``."""
        context, callback = _split_callback(context, callback)
        if not callable(callback):
            raise UsageError('engine-cache "render" expected "callback" to be a function.')
        callback = CallbackOnce.wrap(callback, label=f"{engine.name} render")

        try:
            locals_ = _copy_context(context)
        except UsageError as exc:
            callback(exc, None)
            return

        if is_compiled_template(src):
            src(locals_, callback)
            return

        if isinstance(src, str):
            locals_["async"] = True
            try:
                compiled = engine.compile(src, locals_)
            except Exception as exc:
                callback(exc, None)
                return
            compiled(locals_, callback)
            return

        callback(
            UsageError('engine-cache "render" expected "str" to be a string or compiled function.'),
            None,
        )

    return render


def _make_render_sync(engine: Engine):
    def render_sync(src: Any, context: Mapping[str, Any] | None = None) -> str:
        """Render ``src`` synchronously and return the content."""
        locals_ = _copy_context(context)
        if is_compiled_template(src):
            return src(locals_)
        if isinstance(src, str):
            return engine.compile(src, locals_)(locals_)
        raise UsageError(
            'engine-cache "render_sync" expected "str" to be a string or compiled function.'
        )

    return render_sync


def _make_render_file(engine: Engine):
    caps = engine.capabilities

    def render_file(path: str | Path, context: Mapping[str, Any] | None = None, callback: Callback | None = None) -> None:
        """Render the template at ``path``; call ``callback(error, content)``."""
        context, callback = _split_callback(context, callback)
        if not callable(callback):
            raise UsageError('engine-cache "render_file" expected "callback" to be a function.')
        callback = CallbackOnce.wrap(callback, label=f"{engine.name} render_file")

        try:
            locals_ = _copy_context(context)
        except UsageError as exc:
            callback(exc, None)
            return

        if caps.render_file is None:
            encoding = engine.options.get("encoding", "utf-8")
            try:
                src = Path(path).read_text(encoding=encoding)
            except OSError as exc:
                callback(exc, None)
                return
            engine.render(src, locals_, callback)
            return

        locals_["async"] = True
        created: list[str] = []
        settings = merge_helpers(engine, locals_, wrap=True, created=created)
        guarded = CallbackOnce(
            _settle_render(engine, created, callback),
            label=f"{engine.name} underlying render_file",
        )
        try:
            caps.render_file(str(path), settings, guarded)
        except Exception as exc:
            if guarded.called:
                raise
            guarded(exc, None)

    return render_file


def _make_render_async(engine: Engine):
    async def render_async(src: Any, context: Mapping[str, Any] | None = None) -> str:
        """Awaitable form of ``render``."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def _settle(error: BaseException | None, content: Any) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(content)

        def callback(error: BaseException | None = None, content: Any = None) -> None:
            loop.call_soon_threadsafe(_settle, error, content)

        engine.render(src, context, callback)
        return await future

    return render_async


def decorate(engine: Engine) -> Engine:
    """Install the uniform render contract on ``engine`` and return it.

    The engine is mutated in place so the call can be chained.
    """
    engine.resolve = _make_resolve(engine)
    engine.compile = _make_compile(engine)
    engine.render = _make_render(engine)
    engine.render_sync = _make_render_sync(engine)
    engine.render_file = _make_render_file(engine)
    engine.render_async = _make_render_async(engine)
    return engine
