"""vidgen — async client for remote video generation tasks."""

from vidgen.errors import (
    ConfigError,
    DefaultProviderMissing,
    NetworkError,
    NoDefaultConfigured,
    PollingAborted,
    PollingExhausted,
    PollingTimeout,
    ProviderNotFound,
    RemoteError,
    UnsupportedProviderType,
    VidgenError,
)
from vidgen.models import (
    AdvancedSettings,
    GenerationOptions,
    ProviderConfig,
    StoredProviderConfig,
    TaskHandle,
    TaskSnapshot,
    ValidationResult,
    VideoSettings,
)
from vidgen.poller import PollState, TaskPoller, poll_task, wait_for_task
from vidgen.providers import VideoProvider, VolcengineProvider, create_provider
from vidgen.registry import JsonFileStore, MemoryStore, ProviderRegistry

__all__ = [
    "AdvancedSettings",
    "ConfigError",
    "DefaultProviderMissing",
    "GenerationOptions",
    "JsonFileStore",
    "MemoryStore",
    "NetworkError",
    "NoDefaultConfigured",
    "PollState",
    "PollingAborted",
    "PollingExhausted",
    "PollingTimeout",
    "ProviderConfig",
    "ProviderNotFound",
    "ProviderRegistry",
    "RemoteError",
    "StoredProviderConfig",
    "TaskHandle",
    "TaskPoller",
    "TaskSnapshot",
    "UnsupportedProviderType",
    "ValidationResult",
    "VideoProvider",
    "VideoSettings",
    "VidgenError",
    "VolcengineProvider",
    "create_provider",
    "poll_task",
    "wait_for_task",
]
