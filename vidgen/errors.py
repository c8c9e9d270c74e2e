"""Exceptions raised by providers, the task poller and the provider registry."""

from __future__ import annotations

from typing import Any


class VidgenError(Exception):
    """Base class for all vidgen errors."""


class ConfigError(VidgenError):
    """Provider credentials are missing or malformed. Never retried."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class NetworkError(VidgenError):
    """The remote endpoint could not be reached."""


class RemoteError(VidgenError):
    """The vendor rejected a request."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class PollingExhausted(VidgenError):
    """Status queries failed too many times in a row."""

    def __init__(self, task_id: str, attempts: int):
        self.task_id = task_id
        self.attempts = attempts
        super().__init__(
            f"Status query for task {task_id} failed {attempts} consecutive times; "
            "check the network connection and provider configuration"
        )


class PollingAborted(VidgenError):
    """Polling was stopped through the abort event."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Polling for task {task_id} was aborted")


class PollingTimeout(VidgenError):
    """The optional overall wait limit elapsed before a terminal status."""

    def __init__(self, task_id: str, max_wait: float, last_status: str | None):
        self.task_id = task_id
        self.max_wait = max_wait
        self.last_status = last_status
        super().__init__(
            f"Task {task_id} did not complete within {max_wait}s. "
            f"Last status: {last_status or 'unknown'}"
        )


class UnsupportedProviderType(VidgenError):
    """No concrete implementation exists for the requested provider type."""

    def __init__(self, provider_type: str, reason: str | None = None):
        self.provider_type = provider_type
        super().__init__(reason or f"Unsupported provider type: {provider_type}")


class ProviderNotFound(VidgenError):
    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider not found: {provider_id}")


class NoDefaultConfigured(VidgenError):
    def __init__(self) -> None:
        super().__init__("No default provider configured")


class DefaultProviderMissing(VidgenError):
    """The default pointer names a provider that has no live instance."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Default provider {provider_id} is not available")
