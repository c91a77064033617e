from pathlib import Path

import pytest

from engine_cache import EngineRegistry
from engine_cache.defaults import jinja, tmpl

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def engines():
    """Registry with the default wildcard engine plus the bundled jinja engines."""
    registry = EngineRegistry()
    registry.register("tmpl", tmpl)
    registry.register("j2", jinja)
    return registry


@pytest.fixture
def collect():
    """Callback that records every ``(error, content)`` it receives."""

    class Collector:
        def __init__(self):
            self.calls = []

        def __call__(self, error=None, content=None):
            self.calls.append((error, content))

        @property
        def error(self):
            assert len(self.calls) == 1, self.calls
            return self.calls[0][0]

        @property
        def content(self):
            assert len(self.calls) == 1, self.calls
            error, content = self.calls[0]
            assert error is None, error
            return content

    return Collector()
