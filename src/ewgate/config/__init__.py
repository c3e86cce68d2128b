"""Config module.

  - load_config(defaults, file_path) -> dict  (defaults < file < env < overrides)
  - Settings.from_dict(cfg) -> typed, validated settings
"""

from __future__ import annotations

from .loader import load_config  # noqa: F401
from .providers import (  # noqa: F401
    ConfigManager,
    ConfigProvider,
    DictProvider,
    EnvProvider,
    FileProvider,
)
from .settings import DEFAULTS, Settings  # noqa: F401

__all__ = [
    "load_config",
    "ConfigProvider",
    "ConfigManager",
    "DictProvider",
    "EnvProvider",
    "FileProvider",
    "DEFAULTS",
    "Settings",
]
