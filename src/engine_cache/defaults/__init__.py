from engine_cache.defaults import noop
from engine_cache.defaults.jinja import (
    ERB_DELIMITERS,
    JinjaEngine,
    create_environment,
    jinja,
    tmpl,
)

# Extension -> definition, loaded by the CLI and handy for hosts.
BUNDLED_ENGINES = {
    "*": noop,
    "jinja": jinja,
    "j2": jinja,
    "tmpl": tmpl,
}

__all__ = [
    "BUNDLED_ENGINES",
    "ERB_DELIMITERS",
    "JinjaEngine",
    "create_environment",
    "jinja",
    "noop",
    "tmpl",
]
