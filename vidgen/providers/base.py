"""Capability contract shared by all video generation providers."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from vidgen.models import GenerationOptions, ProviderConfig, TaskHandle, TaskSnapshot, ValidationResult

# Called with every snapshot the poller observes. May be sync or async.
ProgressCallback = Callable[[TaskSnapshot], Union[None, Awaitable[Any]]]


@runtime_checkable
class VideoProvider(Protocol):
    """A backend that can create generation tasks and report their status.

    ``create_task`` and ``get_task_status`` raise ``ConfigError`` before any
    network access when ``validate_config`` fails, ``NetworkError`` when the
    endpoint is unreachable and ``RemoteError`` when the vendor rejects the
    request. Neither retries internally.
    """

    name: str
    config: ProviderConfig

    async def create_task(self, options: GenerationOptions) -> TaskHandle:
        ...

    async def get_task_status(self, task_id: str) -> TaskSnapshot:
        ...

    def validate_config(self) -> ValidationResult:
        ...
