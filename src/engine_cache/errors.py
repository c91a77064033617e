"""Exceptions raised by engine-cache."""


class EngineCacheError(Exception):
    """Base class for every error raised by the registry itself."""


class ConfigurationError(EngineCacheError, ValueError):
    """An engine definition or registry configuration is invalid."""


class UsageError(EngineCacheError, TypeError):
    """A decorated engine method was called with the wrong arguments."""


class EngineError(EngineCacheError):
    """Raised by the bundled engines when a template fails to compile or render.

    Errors coming from third-party engines are never rewrapped in this class;
    they reach the caller unchanged.
    """


class ResolutionError(EngineCacheError):
    """An async helper placeholder could not be resolved."""

    def __init__(self, message: str, token: str | None = None):
        super().__init__(message)
        self.token = token


class EngineNotFoundError(EngineCacheError, LookupError):
    """No engine (and no fallback) is registered for an extension."""

    def __init__(self, ext: str):
        super().__init__(f"No engine registered for {ext!r}")
        self.ext = ext
