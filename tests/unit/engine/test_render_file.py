"""Tests for Engine.render_file."""

import pytest

from engine_cache import UsageError
from engine_cache.defaults import noop


class TestRenderFile:
    def test_render_file_with_bundled_engine(self, engines, fixtures_dir, collect):
        engines.get("tmpl").render_file(fixtures_dir / "name.tmpl", {"name": "Lo-Dash"}, collect)
        assert collect.content == "Lo-Dash"

    def test_render_file_falls_back_to_reading(self, engines, fixtures_dir, collect):
        def upper(src, context, callback):
            callback(None, src.upper())

        engines.register("txt", upper)
        engines.get("txt").render_file(str(fixtures_dir / "plain.txt"), collect)
        assert collect.content == "PLAIN TEXT"

    def test_missing_file_goes_to_callback(self, engines, fixtures_dir, collect):
        engines.get("tmpl").render_file(fixtures_dir / "missing.tmpl", {}, collect)
        assert isinstance(collect.error, FileNotFoundError)

    def test_missing_file_without_render_file(self, engines, fixtures_dir, collect):
        engines.register("txt", lambda src, context, cb: cb(None, src))
        engines.get("txt").render_file(fixtures_dir / "missing.txt", collect)
        assert isinstance(collect.error, FileNotFoundError)

    def test_requires_callback(self, engines, fixtures_dir):
        with pytest.raises(UsageError, match="render_file"):
            engines.get("tmpl").render_file(fixtures_dir / "name.tmpl", {"name": "x"})

    def test_express_alias(self, engines, fixtures_dir, collect):
        tmpl = engines.get("tmpl")
        engines.register(
            "tmpl",
            {"render": tmpl.definition.render, "__express": tmpl.definition.render_file},
        )
        engines.get("tmpl").render_file(fixtures_dir / "name.tmpl", {"name": "Lo-Dash"}, collect)
        assert collect.content == "Lo-Dash"

    def test_noop_render_file_cache(self, engines, fixtures_dir, collect):
        path = str(fixtures_dir / "name.tmpl")
        noop.cache.pop(path, None)
        try:
            engines.get("*").render_file(path, {"cache": True}, collect)
            assert collect.content == "<%= name %>"
            assert noop.cache[path] == "<%= name %>"
        finally:
            noop.cache.pop(path, None)

    def test_async_helpers_in_files(self, engines, fixtures_dir, collect):
        async def shout(value):
            return value.upper() + "!"

        engines.helpers("j2").add("shout", shout)
        engines.get("j2").render_file(
            fixtures_dir / "shout.j2",
            {"name": "ada"},
            collect,
        )
        assert collect.content == "Hey ADA!"
        assert engines.get("j2").async_helpers.stash == {}
