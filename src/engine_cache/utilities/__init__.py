from engine_cache.utilities.callbacks import Callback, CallbackOnce
from engine_cache.utilities.extensions import format_ext, strip_ext
from engine_cache.utilities.logger import configure_library_logging

__all__ = [
    "Callback",
    "CallbackOnce",
    "format_ext",
    "strip_ext",
    "configure_library_logging",
]
