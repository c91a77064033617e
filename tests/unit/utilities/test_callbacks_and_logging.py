"""Tests for utilities/callbacks.py and utilities/logger.py."""

import logging
from typing import Any

from engine_cache.utilities.callbacks import CallbackOnce
from engine_cache.utilities.logger import DEFAULT_FORMAT, configure_library_logging


class TestCallbackOnce:
    def test_forwards_first_call_only(self, caplog):
        calls = []
        once = CallbackOnce(lambda err, content: calls.append((err, content)), label="test")

        once(None, "a")
        with caplog.at_level(logging.WARNING):
            once(None, "b")

        assert calls == [(None, "a")]
        assert once.called is True
        assert "test callback invoked more than once" in caplog.text

    def test_wrap_is_idempotent(self):
        once = CallbackOnce.wrap(lambda err, content: None)
        assert CallbackOnce.wrap(once) is once

    def test_returns_callback_result(self):
        once = CallbackOnce(lambda err, content: content * 2)
        assert once(None, 2) == 4


class TestConfigureLibraryLogging:
    def test_configures_basic_logging_when_no_handlers(self, monkeypatch):
        root_logger = logging.getLogger()
        original_handlers = list(root_logger.handlers)
        root_logger.handlers = []

        captured_kwargs: dict[str, Any] = {}

        def fake_basic_config(**kwargs):
            captured_kwargs.update(kwargs)

        monkeypatch.setattr(logging, "basicConfig", fake_basic_config)

        try:
            configure_library_logging(level=logging.DEBUG)
        finally:
            root_logger.handlers = original_handlers

        assert captured_kwargs == {"level": logging.DEBUG, "format": DEFAULT_FORMAT}

    def test_does_nothing_when_handlers_present(self, monkeypatch):
        root_logger = logging.getLogger()
        handler = logging.NullHandler()
        root_logger.addHandler(handler)

        called = False

        def fake_basic_config(**kwargs):
            nonlocal called
            called = True

        monkeypatch.setattr(logging, "basicConfig", fake_basic_config)

        try:
            configure_library_logging()
        finally:
            root_logger.removeHandler(handler)

        assert called is False
