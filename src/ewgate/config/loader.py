from __future__ import annotations

from typing import Any, Dict, Optional

from .providers import ConfigManager, DictProvider, EnvProvider, FileProvider


def load_config(
    defaults: Optional[Dict[str, Any]] = None,
    file_path: Optional[str] = None,
    *,
    use_env: bool = True,
    env_prefix: str = "EWGATE_",
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Load layered config: defaults < file < env < overrides.

    A missing file is an error when file_path is given explicitly.
    """
    providers = [DictProvider(data=dict(defaults or {}))]
    if file_path:
        providers.append(FileProvider(path=file_path, optional=False))
    if use_env:
        providers.append(EnvProvider(prefix=env_prefix))
    if overrides:
        providers.append(DictProvider(name="overrides", data=dict(overrides)))
    return ConfigManager(providers).load()
