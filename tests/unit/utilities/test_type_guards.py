"""Tests for type_guards.py module."""

import types

from engine_cache.helpers import async_helper
from engine_cache.type_guards import (
    has_attribute,
    is_async_function,
    is_async_helper,
    is_compiled_template,
    is_engine,
)


async def coroutine_fn():
    return None


def plain_fn():
    return None


class TestFunctionGuards:
    def test_is_async_function(self):
        assert is_async_function(coroutine_fn)
        assert not is_async_function(plain_fn)

    def test_is_async_helper(self):
        def marked(value, callback):
            pass

        assert is_async_helper(coroutine_fn)
        assert not is_async_helper(plain_fn)
        assert is_async_helper(async_helper(marked))
        assert not is_async_helper("upper")


class TestEngineGuards:
    def test_functions_are_engines(self):
        assert is_engine(plain_fn)
        assert is_engine(lambda src, context, cb: None)

    def test_mappings_and_objects(self):
        assert is_engine({"render": plain_fn})
        assert is_engine({"render_sync": plain_fn})
        assert is_engine(types.SimpleNamespace(render_file=plain_fn))
        assert not is_engine({"helpers": {}})
        assert not is_engine(types.SimpleNamespace(name="x"))

    def test_scalars_are_not_engines(self):
        for value in (None, "render", b"render", 1, 1.5, True):
            assert not is_engine(value)

    def test_modules(self):
        module = types.ModuleType("m")
        assert not is_engine(module)
        module.render = plain_fn
        assert is_engine(module)

    def test_classes_are_checked_for_attributes(self):
        class NoRender:
            pass

        class WithRender:
            @staticmethod
            def render(src, context, callback):
                pass

        assert not is_engine(NoRender)
        assert is_engine(WithRender)


class TestValueGuards:
    def test_is_compiled_template(self):
        assert is_compiled_template(plain_fn)
        assert not is_compiled_template("<%= name %>")
        assert not is_compiled_template(None)

    def test_has_attribute(self):
        assert has_attribute({"a": 1}, "a")
        assert not has_attribute({"a": 1}, "b")
        assert has_attribute(types.SimpleNamespace(a=1), "a")
        assert not has_attribute(None, "a")
