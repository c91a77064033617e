"""
Registry-wide configuration.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine_cache.type_guards import is_engine

DEFAULT_RESERVED_NAMES = frozenset({"clear_cache", "clearCache"})


class RegistryConfig(BaseModel):
    """Options accepted by :class:`engine_cache.registry.EngineRegistry`."""

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    default_engine: Any = Field(
        default=None,
        description="Extension name or engine definition used when a lookup misses",
    )
    wildcard: str = Field(
        default="*",
        min_length=1,
        description="Extension the bundled noop engine is registered under",
    )
    load_defaults: bool = Field(
        default=True,
        description="Register the bundled noop engine under the wildcard on init",
    )
    reserved_names: frozenset[str] = Field(
        default=DEFAULT_RESERVED_NAMES,
        description="Keys skipped by load(); engine bundles ship these as metadata",
    )

    @field_validator("default_engine")
    @classmethod
    def _check_default_engine(cls, value: Any) -> Any:
        if value is None or isinstance(value, str) or is_engine(value):
            return value
        raise ValueError(
            "default_engine must be an extension name or an engine definition, "
            f"got {type(value).__name__}"
        )
