"""Video provider implementations and the factory that builds them.

Each provider implements the same task pattern:
  create task -> query status (driven by vidgen.poller) -> result URL
"""

from __future__ import annotations

import httpx

from vidgen.errors import UnsupportedProviderType
from vidgen.models import ProviderConfig
from vidgen.providers.base import ProgressCallback, VideoProvider
from vidgen.providers.volcengine import VolcengineProvider

# Provider types the registry knows about, in display order.
PROVIDER_TYPES = ("volcengine", "openai", "runway")

_IMPLEMENTATIONS: dict[str, type] = {
    "volcengine": VolcengineProvider,
}


def supported_provider_types() -> list[str]:
    return list(PROVIDER_TYPES)


def is_provider_implemented(provider_type: str) -> bool:
    return provider_type in _IMPLEMENTATIONS


def create_provider(
    provider_type: str,
    config: ProviderConfig,
    http_client: httpx.AsyncClient | None = None,
) -> VideoProvider:
    """Instantiate the provider registered for ``provider_type``.

    Raises:
        UnsupportedProviderType: If the type is unknown or not implemented yet.
    """
    if provider_type not in PROVIDER_TYPES:
        raise UnsupportedProviderType(provider_type)
    impl = _IMPLEMENTATIONS.get(provider_type)
    if impl is None:
        raise UnsupportedProviderType(
            provider_type, f"Provider type {provider_type} is not implemented yet"
        )
    return impl(config, http_client=http_client)


__all__ = [
    "PROVIDER_TYPES",
    "ProgressCallback",
    "VideoProvider",
    "VolcengineProvider",
    "create_provider",
    "is_provider_implemented",
    "supported_provider_types",
]
