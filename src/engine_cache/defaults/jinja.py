"""
Bundled engines backed by jinja2.

``jinja`` uses the stock ``{{ }}`` / ``{% %}`` syntax. ``tmpl`` uses ERB-style
delimiters (``<%= value %>``, ``<% for x in xs %>``, ``<%# comment %>``) for
templates written against underscore/lodash-style engines.

Helpers handed over in ``context["helpers"]`` (or ``settings["helpers"]`` at
compile time) are exposed to templates as callable names.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined, Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from engine_cache.errors import EngineError

logger = logging.getLogger(__name__)

ERB_DELIMITERS: dict[str, str] = {
    "variable_start_string": "<%=",
    "variable_end_string": "%>",
    "block_start_string": "<%",
    "block_end_string": "%>",
    "comment_start_string": "<%#",
    "comment_end_string": "%>",
}

# Keys the registry adds to contexts; never template data.
_RESERVED_CONTEXT_KEYS = frozenset({"helpers", "settings", "async"})


def create_environment(
    use_sandbox: bool = True,
    additional_globals: dict[str, Any] | None = None,
    additional_filters: dict[str, Callable] | None = None,
    **config: Any,
) -> Environment:
    """Create a jinja2 environment for template rendering.

    Undefined names raise instead of rendering as empty strings.
    """
    options: dict[str, Any] = {
        "undefined": StrictUndefined,
        "keep_trailing_newline": True,
        "loader": BaseLoader(),
        "autoescape": False,
    }
    options.update(config)

    env_class = SandboxedEnvironment if use_sandbox else Environment
    env = env_class(**options)
    if additional_globals:
        env.globals.update(additional_globals)
    if additional_filters:
        env.filters.update(additional_filters)
    return env


def _split_context(context: Mapping[str, Any] | None) -> tuple[dict[str, Any], dict[str, Any]]:
    context = dict(context or {})
    helpers = context.get("helpers")
    data = {k: v for k, v in context.items() if k not in _RESERVED_CONTEXT_KEYS}
    return (dict(helpers) if isinstance(helpers, Mapping) else {}), data


class JinjaEngine:
    """Engine definition exposing ``compile``/``render``/``render_sync``/``render_file``."""

    def __init__(self, name: str = "jinja", use_sandbox: bool = True, **config: Any):
        self.name = name
        self.environment = create_environment(use_sandbox=use_sandbox, **config)

    def _template(self, src: str, helpers: Mapping[str, Any] | None = None) -> Template:
        try:
            return self.environment.from_string(src, globals=dict(helpers or {}))
        except TemplateError as exc:
            raise EngineError(str(exc)) from exc

    def compile(self, src: str, settings: Mapping[str, Any] | None = None) -> Callable[..., str]:
        """Compile ``src``; compile-time helpers become template globals."""
        compile_helpers, _ = _split_context(settings)
        template = self._template(src, compile_helpers)

        def compiled(context: Mapping[str, Any] | None = None) -> str:
            helpers, data = _split_context(context)
            try:
                return template.render({**helpers, **data})
            except TemplateError as exc:
                raise EngineError(str(exc)) from exc

        return compiled

    def render_sync(self, src: str, context: Mapping[str, Any] | None = None) -> str:
        return self.compile(src, context)(context)

    def render(self, src: str, context: Mapping[str, Any] | None, callback) -> None:
        try:
            content = self.render_sync(src, context)
        except EngineError as exc:
            callback(exc, None)
            return
        callback(None, content)

    def render_file(self, path: str, context: Mapping[str, Any] | None, callback) -> None:
        encoding = (context or {}).get("encoding", "utf-8")
        try:
            src = Path(path).read_text(encoding=encoding)
        except OSError as exc:
            callback(exc, None)
            return
        logger.debug("Rendering %s with %s", path, self.name)
        self.render(src, context, callback)

    def __repr__(self) -> str:
        return f"JinjaEngine(name={self.name!r})"


jinja = JinjaEngine("jinja")
tmpl = JinjaEngine("tmpl", **ERB_DELIMITERS)
