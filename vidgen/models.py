"""Data models for video generation tasks and provider configuration."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_RUNNING = "running"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

TERMINAL_STATUSES = frozenset({STATUS_SUCCEEDED, STATUS_FAILED})

DEFAULT_ENDPOINT = "https://ark.cn-beijing.volces.com/api/v3"
DEFAULT_MODEL = "doubao-seedance-1-0-pro-250528"


@dataclass(frozen=True)
class TaskHandle:
    """Opaque handle for a remote generation task."""
    id: str


@dataclass
class TaskSnapshot:
    """State of a generation task at one point in time.

    Attributes:
        id: Task identifier, same as the TaskHandle that produced it.
        status: Vendor status string. Anything other than "succeeded" or
            "failed" means the task is still in progress.
        video_url: Result URL, only set when status is "succeeded".
        error: Vendor error text, only set when status is "failed".
        created_at: Vendor creation timestamp (advisory).
        updated_at: Vendor update timestamp (advisory).
        metadata: Vendor attributes (resolution, duration, fps, seed, ...).
    """
    id: str
    status: str
    video_url: str | None = None
    error: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        """Whether the task has reached a terminal state."""
        return self.status in TERMINAL_STATUSES

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCEEDED


@dataclass
class GenerationOptions:
    """Parameters for one generation request.

    A request with only one of the frame URLs is accepted as a
    single-frame image-to-video request.
    """
    prompt: str
    first_frame_url: str | None = None
    last_frame_url: str | None = None
    resolution: str | None = None
    duration: int | None = None
    ratio: str | None = None


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class VideoSettings:
    """Per-job defaults applied when a request does not override them."""
    resolution: str | None = None
    duration: int | None = None
    ratio: str | None = None
    camera_fixed: bool | None = None
    watermark: bool | None = None


@dataclass
class AdvancedSettings:
    """Polling and transport tuning.

    Attributes:
        poll_interval: Seconds between status queries.
        max_error_retries: Consecutive failed queries tolerated before giving up.
        max_wait: Overall polling cutoff in seconds. None waits indefinitely.
        request_timeout: Timeout for a single HTTP request in seconds.
    """
    poll_interval: float = 3.0
    max_error_retries: int = 10
    max_wait: float | None = None
    request_timeout: float = 60.0


@dataclass
class ProviderConfig:
    """Credentials, endpoint and defaults for one provider instance."""
    api_key: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    relay_url: str | None = None
    video: VideoSettings = field(default_factory=VideoSettings)
    advanced: AdvancedSettings = field(default_factory=AdvancedSettings)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        """Build a config from a plain dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known and k not in ("video", "advanced")}
        kwargs["video"] = _build(VideoSettings, data.get("video"))
        kwargs["advanced"] = _build(AdvancedSettings, data.get("advanced"))
        return cls(**kwargs)

    def merged(self, partial: dict[str, Any]) -> ProviderConfig:
        """Return a copy with ``partial`` applied; nested sections are merged key by key."""
        updated = copy.deepcopy(self)
        for key, value in partial.items():
            if key == "video" and isinstance(value, dict):
                updated.video = replace(updated.video, **_known(VideoSettings, value))
            elif key == "advanced" and isinstance(value, dict):
                updated.advanced = replace(updated.advanced, **_known(AdvancedSettings, value))
            elif key in {f.name for f in fields(self)}:
                setattr(updated, key, value)
        return updated


@dataclass
class StoredProviderConfig:
    """A provider config plus registry bookkeeping.

    Timestamps are milliseconds since the epoch.
    """
    id: str
    type: str
    name: str
    config: ProviderConfig
    is_default: bool = False
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the persisted record shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "is_default": self.is_default,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        data.update(self.config.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoredProviderConfig:
        return cls(
            id=data["id"],
            type=data["type"],
            name=data.get("name", data["id"]),
            config=ProviderConfig.from_dict(data),
            is_default=bool(data.get("is_default", False)),
            created_at=int(data.get("created_at", 0)),
            updated_at=int(data.get("updated_at", 0)),
        )


def _known(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _build(cls: type, data: dict[str, Any] | None) -> Any:
    if not data:
        return cls()
    return cls(**_known(cls, data))
