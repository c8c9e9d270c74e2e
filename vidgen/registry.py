"""Registry of configured video providers.

Holds the stored configurations and live provider instances, tracks the
default provider and persists every change through a store.

Usage::

    registry = ProviderRegistry(JsonFileStore("providers.json"))
    provider_id = registry.add("volcengine", ProviderConfig(api_key="..."), "Ark", is_default=True)
    provider = registry.get_default()
"""

from __future__ import annotations

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Protocol

import httpx

from vidgen.errors import (
    DefaultProviderMissing,
    NoDefaultConfigured,
    ProviderNotFound,
    UnsupportedProviderType,
)
from vidgen.models import ProviderConfig, StoredProviderConfig
from vidgen.providers import create_provider, is_provider_implemented
from vidgen.providers.base import VideoProvider

logger = logging.getLogger(__name__)

STORAGE_KEY = "provider_configs"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ConfigStore(Protocol):
    """Persists the serialized provider list."""

    def load(self) -> list[dict[str, Any]] | None:
        ...

    def save(self, records: list[dict[str, Any]]) -> None:
        ...


class MemoryStore:
    """Keeps the serialized provider list in memory as a JSON string."""

    def __init__(self, raw: str | None = None) -> None:
        self.raw = raw

    def load(self) -> list[dict[str, Any]] | None:
        if self.raw is None:
            return None
        return json.loads(self.raw)[STORAGE_KEY]

    def save(self, records: list[dict[str, Any]]) -> None:
        self.raw = json.dumps({STORAGE_KEY: records}, ensure_ascii=False)


class JsonFileStore:
    """Stores the provider list in a JSON file under a fixed key."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[dict[str, Any]] | None:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)[STORAGE_KEY]

    def save(self, records: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({STORAGE_KEY: records}, f, indent=2, ensure_ascii=False)


class ProviderRegistry:
    """Configured providers, keyed by generated ids.

    At most one stored config carries ``is_default=True``. Mutations are
    synchronous and persisted immediately.

    Args:
        store: Persistence backend. Defaults to an empty MemoryStore.
        http_client: Optional client shared by every provider instance.
        clock: Millisecond clock used for ids and timestamps.
    """

    def __init__(
        self,
        store: ConfigStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.store = store if store is not None else MemoryStore()
        self._http = http_client
        self._clock = clock
        self._configs: dict[str, StoredProviderConfig] = {}
        self._providers: dict[str, VideoProvider] = {}
        self._default_id: str | None = None
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Rebuild configs and provider instances from the store.

        Entries whose provider cannot be instantiated keep their config but
        get no live instance. A corrupt store leaves the registry empty.
        """
        self._configs.clear()
        self._providers.clear()
        self._default_id = None

        try:
            records = self.store.load()
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to load provider configs: %s", exc)
            return
        if not records:
            return

        for record in records:
            try:
                stored = StoredProviderConfig.from_dict(record)
            except (KeyError, TypeError, ValueError) as exc:
                logger.error("Skipping malformed provider record %r: %s", record, exc)
                continue
            self._configs[stored.id] = stored
            try:
                self._providers[stored.id] = self._instantiate(stored)
            except UnsupportedProviderType as exc:
                logger.error("Cannot create provider %s (%s): %s", stored.id, stored.type, exc)
            if stored.is_default:
                self._default_id = stored.id

        # A hand-edited store may flag several entries; the last one wins.
        for stored in self._configs.values():
            stored.is_default = stored.id == self._default_id

        logger.info("Loaded %d provider configs (default: %s)", len(self._configs), self._default_id)

    def save(self) -> None:
        self.store.save([stored.to_dict() for stored in self._configs.values()])

    def _instantiate(self, stored: StoredProviderConfig) -> VideoProvider:
        return create_provider(stored.type, stored.config, http_client=self._http)

    def _new_id(self, provider_type: str) -> tuple[str, int]:
        now = self._clock()
        while f"{provider_type}_{now}" in self._configs:
            now += 1
        return f"{provider_type}_{now}", now

    def _mark_default(self, provider_id: str) -> None:
        for stored in self._configs.values():
            stored.is_default = stored.id == provider_id
        self._default_id = provider_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add(
        self,
        provider_type: str,
        config: ProviderConfig,
        name: str,
        is_default: bool = False,
    ) -> str:
        """Register a provider and return its generated id.

        Raises:
            UnsupportedProviderType: If no implementation exists for the type.
        """
        if not is_provider_implemented(provider_type):
            raise UnsupportedProviderType(provider_type)

        provider_id, now = self._new_id(provider_type)
        stored = StoredProviderConfig(
            id=provider_id,
            type=provider_type,
            name=name,
            config=copy.deepcopy(config),
            is_default=False,
            created_at=now,
            updated_at=now,
        )
        provider = self._instantiate(stored)

        self._configs[provider_id] = stored
        self._providers[provider_id] = provider
        if is_default:
            self._mark_default(provider_id)

        self.save()
        logger.info("Provider %s (%s) added as %s", name, provider_type, provider_id)
        return provider_id

    def remove(self, provider_id: str) -> None:
        """Delete a provider. Removing the default leaves no default."""
        if provider_id not in self._configs:
            raise ProviderNotFound(provider_id)
        del self._configs[provider_id]
        self._providers.pop(provider_id, None)
        if self._default_id == provider_id:
            self._default_id = None
        self.save()
        logger.info("Provider %s removed", provider_id)

    def set_default(self, provider_id: str) -> None:
        if provider_id not in self._configs:
            raise ProviderNotFound(provider_id)
        self._mark_default(provider_id)
        self.save()
        logger.info("Default provider set to %s", provider_id)

    def update(self, provider_id: str, partial: dict[str, Any]) -> None:
        """Merge ``partial`` into a provider's config and rebuild its instance.

        ``name`` is accepted alongside config keys. Nothing changes if the
        rebuilt provider cannot be created.
        """
        stored = self._configs.get(provider_id)
        if stored is None:
            raise ProviderNotFound(provider_id)

        partial = dict(partial)
        name = partial.pop("name", stored.name)
        updated = copy.deepcopy(stored)
        updated.name = name
        updated.config = stored.config.merged(partial)
        updated.updated_at = self._clock()

        provider = self._instantiate(updated)
        self._configs[provider_id] = updated
        self._providers[provider_id] = provider
        self.save()
        logger.info("Provider %s updated", provider_id)

    def get(self, provider_id: str) -> VideoProvider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFound(provider_id)
        return provider

    def get_default(self) -> VideoProvider:
        """Return the default provider.

        Raises:
            NoDefaultConfigured: If no provider is flagged as default.
            DefaultProviderMissing: If the default has no live instance.
        """
        if not self._default_id:
            raise NoDefaultConfigured()
        provider = self._providers.get(self._default_id)
        if provider is None:
            raise DefaultProviderMissing(self._default_id)
        return provider

    def get_info(self, provider_id: str) -> StoredProviderConfig:
        stored = self._configs.get(provider_id)
        if stored is None:
            raise ProviderNotFound(provider_id)
        return copy.deepcopy(stored)

    def list(self) -> list[StoredProviderConfig]:
        """Return copies of all stored configs in insertion order."""
        return [copy.deepcopy(stored) for stored in self._configs.values()]

    @property
    def default_id(self) -> str | None:
        return self._default_id

    def clear(self) -> None:
        """Remove every provider and the default setting."""
        self._configs.clear()
        self._providers.clear()
        self._default_id = None
        self.save()
        logger.info("All providers cleared")
