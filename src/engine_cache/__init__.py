"""Pluggable template-engine registry.

Register template engines by file extension, look them up, and render through a
uniform callback, synchronous or awaitable interface.
"""

from engine_cache.config import RegistryConfig
from engine_cache.decorator import decorate
from engine_cache.engine import Capabilities, CompiledTemplate, Engine, normalize
from engine_cache.errors import (
    ConfigurationError,
    EngineCacheError,
    EngineError,
    EngineNotFoundError,
    ResolutionError,
    UsageError,
)
from engine_cache.helpers import AsyncHelperStore, HelperStore, async_helper
from engine_cache.registry import EngineRegistry

# Short alias.
Engines = EngineRegistry

__version__ = "0.1.0"

__all__ = [
    "AsyncHelperStore",
    "Capabilities",
    "CompiledTemplate",
    "ConfigurationError",
    "Engine",
    "EngineCacheError",
    "EngineError",
    "EngineNotFoundError",
    "EngineRegistry",
    "Engines",
    "HelperStore",
    "RegistryConfig",
    "ResolutionError",
    "UsageError",
    "async_helper",
    "decorate",
    "normalize",
]
