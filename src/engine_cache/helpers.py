"""
Helper storage for decorated engines.

Every engine owns a ``HelperStore`` (sync and async helpers by name) and an
``AsyncHelperStore`` that turns async helper calls into opaque placeholder
tokens. Tokens land in the rendered output and are swapped for the helper's
eventual result once the underlying engine has finished.

Async helpers come in two shapes:

- coroutine functions (``async def upper(value): ...``), awaited on resolve;
- callback-style functions marked with :func:`async_helper`, called as
  ``helper(*args, callback, **kwargs)`` and expected to invoke
  ``callback(error, result)`` exactly once.
"""

from __future__ import annotations

import asyncio
import functools
import itertools
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ulid import ULID

from engine_cache.errors import ResolutionError
from engine_cache.type_guards import (
    ASYNC_HELPER_MARKER,
    is_async_function,
    is_async_helper,
)
from engine_cache.utilities.callbacks import Callback, CallbackOnce

logger = logging.getLogger(__name__)

Helper = Callable[..., Any]


def async_helper(func: Helper) -> Helper:
    """Mark a callback-style helper as asynchronous.

    Usable as a decorator. Callables that refuse new attributes (builtins,
    bound methods) are wrapped first.
    """
    try:
        setattr(func, ASYNC_HELPER_MARKER, True)
        return func
    except (AttributeError, TypeError):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        setattr(wrapper, ASYNC_HELPER_MARKER, True)
        return wrapper


class HelperStore:
    """Named template helpers, sync and async."""

    def __init__(self, helpers: Mapping[str, Helper] | None = None):
        self._helpers: dict[str, Helper] = {}
        if helpers:
            self.add_all(helpers)

    def add(self, name: str, func: Helper) -> HelperStore:
        if not callable(func):
            raise TypeError(f"Helper {name!r} must be callable, got {type(func).__name__}")
        self._helpers[name] = func
        return self

    def add_async(self, name: str, func: Helper) -> HelperStore:
        """Register ``func`` as an async helper, marking it if needed."""
        if not is_async_function(func):
            func = async_helper(func)
        return self.add(name, func)

    def add_all(self, helpers: Mapping[str, Helper]) -> HelperStore:
        for name, func in helpers.items():
            self.add(name, func)
        return self

    def get(self, name: str | None = None) -> Any:
        """Return one helper by name, or a copy of every helper."""
        if name is None:
            return dict(self._helpers)
        return self._helpers.get(name)

    def get_sync(self) -> dict[str, Helper]:
        return {k: v for k, v in self._helpers.items() if not is_async_helper(v)}

    def get_async(self) -> dict[str, Helper]:
        return {k: v for k, v in self._helpers.items() if is_async_helper(v)}

    def remove(self, name: str) -> None:
        self._helpers.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._helpers

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)

    def __repr__(self) -> str:
        return f"HelperStore({sorted(self._helpers)!r})"


@dataclass(slots=True)
class PendingHelper:
    """A stashed async helper call waiting to be resolved."""

    name: str
    func: Helper
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    def invoke(self, callback: Callback, tasks: set[asyncio.Task] | None = None) -> None:
        if is_async_function(self.func):
            _run_coroutine(self.func(*self.args, **self.kwargs), callback, tasks)
        else:
            self.func(*self.args, callback, **self.kwargs)


def _run_coroutine(coro, callback: Callback, tasks: set[asyncio.Task] | None = None) -> None:
    """Drive ``coro`` to completion and report through ``callback``.

    Inside a running event loop the coroutine becomes a task and the callback
    fires from its done-callback; otherwise it runs to completion here. Tasks
    are held in ``tasks`` until they finish.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is None:
        try:
            result = asyncio.run(coro)
        except Exception as exc:
            callback(exc, None)
            return
        callback(None, result)
        return

    def _done(task: asyncio.Task) -> None:
        if task.cancelled():
            callback(asyncio.CancelledError(), None)
            return
        exc = task.exception()
        if exc is not None:
            callback(exc, None)
        else:
            callback(None, task.result())

    task = loop.create_task(coro)
    if tasks is not None:
        tasks.add(task)
        task.add_done_callback(tasks.discard)
    task.add_done_callback(_done)


class AsyncHelperStore:
    """Registry of async helpers plus the stash of in-flight calls.

    Calling a wrapped helper records the call in :attr:`stash` under a fresh
    token and returns the token instead of a value. :meth:`resolve` later
    runs the real helper and reports its result.
    """

    def __init__(self, helpers: Mapping[str, Helper] | None = None, prefix: str = "__async"):
        self.prefix = f"{prefix}_{ULID()}"
        self.helpers: dict[str, Helper] = {}
        self.stash: dict[str, PendingHelper] = {}
        self._tasks: set[asyncio.Task] = set()
        self._counter = itertools.count()
        if helpers:
            for name, func in helpers.items():
                self.set(name, func)

    def set(self, name: str, func: Helper) -> AsyncHelperStore:
        if not callable(func):
            raise TypeError(f"Async helper {name!r} must be callable, got {type(func).__name__}")
        self.helpers[name] = func
        return self

    def get(self, name: str | None = None, *, wrap: bool = False, sink: list[str] | None = None) -> Any:
        """Return one helper or all of them, optionally token-wrapped.

        Tokens produced by wrapped helpers are appended to ``sink`` when given.
        """
        if name is not None:
            func = self.helpers.get(name)
            if func is None or not wrap:
                return func
            return self.wrap(name, sink)
        if not wrap:
            return dict(self.helpers)
        return {key: self.wrap(key, sink) for key in self.helpers}

    def wrap(self, name: str, sink: list[str] | None = None) -> Helper:
        func = self.helpers[name]

        @functools.wraps(func)
        def placeholder(*args, **kwargs) -> str:
            token = self._next_token()
            self.stash[token] = PendingHelper(name, func, args, kwargs)
            if sink is not None:
                sink.append(token)
            return token

        return placeholder

    def _next_token(self) -> str:
        return f"{self.prefix}_{next(self._counter)}__"

    def has_tokens(self, content: str) -> bool:
        return self.prefix in content

    def tokens_in(self, content: str) -> list[str]:
        """Stash tokens occurring in ``content``, in stash order."""
        if not isinstance(content, str) or not self.has_tokens(content):
            return []
        return [token for token in list(self.stash) if token in content]

    def discard(self, tokens) -> None:
        for token in tokens:
            self.stash.pop(token, None)

    def resolve(self, token: str, callback: Callback) -> None:
        """Run the helper stashed under ``token``; report ``(error, value)``.

        Failures, including an unknown token, reach ``callback`` as a
        :class:`ResolutionError` chained to the original exception.
        """
        callback = CallbackOnce.wrap(callback, label=f"async helper {token}")
        pending = self.stash.pop(token, None)
        if pending is None:
            callback(ResolutionError(f"No pending async helper for token {token!r}", token), None)
            return

        logger.debug("Resolving async helper %r (%s)", pending.name, token)

        def _finish(error: BaseException | None, value: Any = None) -> None:
            if error is not None:
                if not isinstance(error, ResolutionError):
                    wrapped = ResolutionError(
                        f"Async helper {pending.name!r} failed: {error}", token
                    )
                    wrapped.__cause__ = error
                    error = wrapped
                callback(error, None)
                return
            callback(None, value)

        try:
            pending.invoke(_finish, self._tasks)
        except Exception as exc:
            if callback.called:
                raise
            _finish(exc)

    def clear(self) -> None:
        """Drop every pending call."""
        self.stash.clear()

    def __len__(self) -> int:
        return len(self.helpers)

    def __repr__(self) -> str:
        return f"AsyncHelperStore(helpers={sorted(self.helpers)!r}, pending={len(self.stash)})"
