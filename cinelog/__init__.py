"""CineLog: a personal movie, series and game log with catalog search."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"
__all__ = ["__version__", "app", "create_app", "get_settings"]

# importing cinelog.main builds the app and configures logging
_LAZY_ATTRIBUTES = {
    "app": "cinelog.main",
    "create_app": "cinelog.main",
    "get_settings": "cinelog.config",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_ATTRIBUTES.get(name)
    if module_name is None:
        raise AttributeError(f"module 'cinelog' has no attribute {name}")
    return getattr(import_module(module_name), name)
