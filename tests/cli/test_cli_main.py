import pytest
from typer.testing import CliRunner

from engine_cache.cli.main import app, build_registry

runner = CliRunner()


class TestBuildRegistry:
    def test_bundled_engines_loaded(self):
        registry = build_registry()
        assert {".*", ".jinja", ".j2", ".tmpl"} <= set(registry.cache)

    def test_load_single_engine_with_extension(self):
        registry = build_registry(["md=engine_cache.defaults.jinja:jinja"])
        assert registry.get("md").name == "jinja"

    def test_load_mapping(self):
        registry = build_registry(["engine_cache.defaults:BUNDLED_ENGINES"])
        assert ".tmpl" in registry.cache

    def test_load_single_engine_without_extension(self):
        with pytest.raises(ValueError, match="single engine"):
            build_registry(["engine_cache.defaults:tmpl"])


class TestRenderCommand:
    def test_render_uses_file_suffix(self, fixtures_dir):
        result = runner.invoke(app, ["render", str(fixtures_dir / "name.tmpl"), "--var", "name=Ada"])
        assert result.exit_code == 0, result.output
        assert result.stdout == "Ada"

    def test_render_with_explicit_extension(self, fixtures_dir):
        result = runner.invoke(
            app,
            ["render", str(fixtures_dir / "greeting.j2"), "--ext", "jinja", "-v", "name=Ada"],
        )
        assert result.exit_code == 0, result.output
        assert result.stdout == "Hello Ada!"

    def test_render_unknown_extension_uses_noop(self, fixtures_dir):
        result = runner.invoke(app, ["render", str(fixtures_dir / "plain.txt")])
        assert result.exit_code == 0
        assert result.stdout == "plain text"

    def test_render_writes_output_file(self, fixtures_dir, tmp_path):
        target = tmp_path / "out.txt"
        result = runner.invoke(
            app,
            ["render", str(fixtures_dir / "name.tmpl"), "-v", "name=Ada", "-o", str(target)],
        )
        assert result.exit_code == 0
        assert target.read_text() == "Ada"

    def test_render_engine_error_exit_code(self, fixtures_dir):
        result = runner.invoke(app, ["render", str(fixtures_dir / "name.tmpl")])
        assert result.exit_code == 1

    def test_render_bad_variable_exit_code(self, fixtures_dir):
        result = runner.invoke(app, ["render", str(fixtures_dir / "name.tmpl"), "-v", "name"])
        assert result.exit_code == 2

    def test_render_missing_file(self, fixtures_dir):
        result = runner.invoke(app, ["render", str(fixtures_dir / "nope.tmpl")])
        assert result.exit_code != 0


class TestEnginesCommand:
    def test_lists_engines(self):
        result = runner.invoke(app, ["engines"])
        assert result.exit_code == 0
        assert ".tmpl" in result.stdout
        assert ".j2" in result.stdout
