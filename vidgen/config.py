"""Configuration loading for the vidgen CLI.

Settings come from an optional ``config.yaml``::

    storage:
      registry_file: ~/.vidgen/providers.json
    defaults:
      video:
        resolution: 1080p
        duration: 5
      advanced:
        poll_interval: 3

Provider credentials may also be taken from ``ARK_API_KEY``,
``ARK_ENDPOINT`` and ``ARK_MODEL``.
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from vidgen.models import DEFAULT_ENDPOINT, DEFAULT_MODEL, ProviderConfig

_DEFAULT_CONFIG = "config.yaml"
_DEFAULT_REGISTRY_FILE = Path.home() / ".vidgen" / "providers.json"

DEFAULT_VIDEO_SETTINGS: dict[str, Any] = {
    "resolution": "1080p",
    "duration": 5,
    "ratio": "16:9",
    "camera_fixed": False,
    "watermark": False,
}


def load_config(config_path: str | Path | None = None) -> dict:
    """Load the YAML configuration file.

    Args:
        config_path: Path to config file. When omitted, ./config.yaml is read
            if present, otherwise an empty config is returned.

    Returns:
        The parsed config dict.

    Raises:
        FileNotFoundError: If an explicitly given config file does not exist.
        ValueError: If the file does not contain a mapping.
    """
    if config_path is None:
        path = Path(_DEFAULT_CONFIG)
        if not path.exists():
            return {}
    else:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return config


def get_registry_path(config: dict, override: str | Path | None = None) -> Path:
    """Return the provider registry file, honouring a CLI override."""
    if override:
        return Path(override).expanduser()
    configured = (config.get("storage") or {}).get("registry_file")
    if configured:
        return Path(configured).expanduser()
    return _DEFAULT_REGISTRY_FILE


def env_credentials() -> dict[str, str]:
    """Provider credentials found in the environment."""
    found = {
        "api_key": os.environ.get("ARK_API_KEY", ""),
        "endpoint": os.environ.get("ARK_ENDPOINT", ""),
        "model": os.environ.get("ARK_MODEL", ""),
    }
    return {k: v for k, v in found.items() if v}


def build_provider_config(config: dict, **overrides: Any) -> ProviderConfig:
    """Combine built-in defaults, config.yaml defaults, environment and overrides.

    Overrides whose value is None are ignored. ``video`` and ``advanced``
    overrides are merged key by key.
    """
    defaults = config.get("defaults") or {}
    video = copy.deepcopy(DEFAULT_VIDEO_SETTINGS)
    video.update(defaults.get("video") or {})
    advanced = dict(defaults.get("advanced") or {})

    data: dict[str, Any] = {"endpoint": DEFAULT_ENDPOINT, "model": DEFAULT_MODEL}
    data.update(env_credentials())
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "video":
            video.update({k: v for k, v in value.items() if v is not None})
        elif key == "advanced":
            advanced.update({k: v for k, v in value.items() if v is not None})
        else:
            data[key] = value

    data["video"] = video
    data["advanced"] = advanced
    return ProviderConfig.from_dict(data)

