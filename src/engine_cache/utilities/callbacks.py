from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Node-style continuation: ``callback(error, content)``
Callback = Callable[[BaseException | None, Any], Any]


class CallbackOnce:
    """Wrap a callback so that it runs at most once.

    Engines occasionally call back twice (for instance when the caller's own
    callback raises inside the engine's ``try`` block and the engine reports
    that error too). Only the first invocation is forwarded; later ones are
    logged and dropped.
    """

    __slots__ = ("callback", "called", "label")

    def __init__(self, callback: Callback, label: str = "render"):
        self.callback = callback
        self.called = False
        self.label = label

    def __call__(self, error: BaseException | None = None, content: Any = None) -> Any:
        if self.called:
            logger.warning(
                "%s callback invoked more than once; ignoring (error=%r)",
                self.label,
                error,
            )
            return None
        self.called = True
        return self.callback(error, content)

    @classmethod
    def wrap(cls, callback: Callback, label: str = "render") -> CallbackOnce:
        if isinstance(callback, cls):
            return callback
        return cls(callback, label)
