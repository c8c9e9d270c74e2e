"""Volcengine Ark (Seedance) video generation provider.

Talks to the Ark content-generation task API directly, or through a
credential-attaching relay when ``relay_url`` is configured.

Usage::

    provider = VolcengineProvider(ProviderConfig(api_key="..."))
    handle = await provider.create_task(GenerationOptions(prompt="A cat on Mars"))
    result = await wait_for_task(provider, handle.id)
"""

from __future__ import annotations

import copy
import logging
from typing import Any

import httpx

from vidgen.errors import ConfigError, NetworkError, RemoteError
from vidgen.models import (
    STATUS_FAILED,
    STATUS_SUCCEEDED,
    GenerationOptions,
    ProviderConfig,
    TaskHandle,
    TaskSnapshot,
    ValidationResult,
)

logger = logging.getLogger(__name__)

_MIN_API_KEY_LENGTH = 10
_TASKS_PATH = "/contents/generations/tasks"
_RELAY_CREATE_PATH = "/api/video/create"
_RELAY_STATUS_PATH = "/api/video/status"
_METADATA_FIELDS = ("resolution", "ratio", "duration", "framespersecond", "seed", "usage")


def _flag(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _extract_error(body: Any) -> str | None:
    """Pull the error text out of a vendor or relay response body."""
    if not isinstance(body, dict):
        return None
    err = body.get("error")
    if isinstance(err, dict):
        return err.get("message") or err.get("code")
    if isinstance(err, str) and err:
        return err
    return None


class VolcengineProvider:
    """Provider for the Volcengine Ark content-generation API.

    Args:
        config: Provider configuration. A private copy is kept.
        http_client: Optional shared client. When omitted, each request
            opens and closes its own client.
    """

    name = "volcengine"

    def __init__(self, config: ProviderConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self.config = copy.deepcopy(config)
        self._http = http_client

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_prompt(self, options: GenerationOptions) -> str:
        """Append the vendor's inline parameter flags to the prompt text."""
        video = self.config.video
        params = [
            ("resolution", options.resolution or video.resolution),
            # Ark also accepts --ratio (aspect ratio) as a text flag.
            ("ratio", options.ratio or video.ratio),
            ("duration", options.duration or video.duration),
            ("camerafixed", video.camera_fixed),
            ("watermark", video.watermark),
        ]
        prompt = options.prompt
        for flag, value in params:
            if value is not None:
                prompt += f" --{flag} {_flag(value)}"
        return prompt

    def build_content(self, options: GenerationOptions) -> list[dict[str, Any]]:
        """Build the ordered content parts: text, first frame, last frame."""
        content: list[dict[str, Any]] = [{"type": "text", "text": self.build_prompt(options)}]
        for url in (options.first_frame_url, options.last_frame_url):
            if url:
                content.append({"type": "image_url", "image_url": {"url": url}})
        return content

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_valid(self) -> None:
        result = self.validate_config()
        if not result.valid:
            raise ConfigError(
                f"[{self.name}] invalid configuration: {'; '.join(result.errors)}",
                errors=result.errors,
            )

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http is not None:
            return await self._http.request(method, url, **kwargs)
        timeout = httpx.Timeout(self.config.advanced.request_timeout, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            NetworkError: On transport failures and timeouts.
            RemoteError: On non-2xx responses or an undecodable body.
        """
        try:
            response = await self._send(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkError(f"[{self.name}] cannot reach {url}: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = _extract_error(body) or f"request failed (HTTP {response.status_code})"
            logger.warning("[%s] %s %s -> %d: %s", self.name, method, url, response.status_code, message)
            raise RemoteError(message, status_code=response.status_code, body=body or response.text)

        if not isinstance(body, dict):
            raise RemoteError(
                f"[{self.name}] unexpected response body: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            )
        return body

    def _parse_task_snapshot(self, data: dict[str, Any], task_id: str) -> TaskSnapshot:
        status = str(data.get("status") or "unknown")

        video_url = None
        content = data.get("content")
        if status == STATUS_SUCCEEDED and isinstance(content, dict):
            video_url = content.get("video_url")

        error = None
        if status == STATUS_FAILED:
            error = _extract_error(data) or "generation failed"

        return TaskSnapshot(
            id=data.get("id") or task_id,
            status=status,
            video_url=video_url,
            error=error,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            metadata={k: data[k] for k in _METADATA_FIELDS if data.get(k) is not None},
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_config(self) -> ValidationResult:
        """Check the structure of the credentials without contacting the vendor."""
        errors: list[str] = []
        api_key = self.config.api_key
        if not api_key:
            errors.append("API key must not be empty")
        elif len(api_key) < _MIN_API_KEY_LENGTH:
            errors.append("API key format is invalid")
        return ValidationResult(valid=not errors, errors=errors)

    async def create_task(self, options: GenerationOptions) -> TaskHandle:
        """Submit a generation task and return its handle."""
        self._ensure_valid()
        content = self.build_content(options)
        endpoint = self.config.endpoint.rstrip("/")

        logger.info(
            "[%s] Creating video task: model=%s, prompt=%r, images=%d",
            self.name, self.config.model, content[0]["text"][:80], len(content) - 1,
        )

        if self.config.relay_url:
            url = f"{self.config.relay_url.rstrip('/')}{_RELAY_CREATE_PATH}"
            body = {
                "apiKey": self.config.api_key,
                "endpoint": endpoint,
                "model": self.config.model,
                "content": content,
            }
            data = await self._request("POST", url, json=body, headers={"Content-Type": "application/json"})
        else:
            body = {"model": self.config.model, "content": content}
            data = await self._request("POST", f"{endpoint}{_TASKS_PATH}", json=body, headers=self._auth_headers())

        task_id = data.get("id")
        if not task_id:
            raise RemoteError(f"[{self.name}] no task id in response: {data}", body=data)

        logger.info("[%s] Video task created: %s", self.name, task_id)
        return TaskHandle(id=str(task_id))

    async def get_task_status(self, task_id: str) -> TaskSnapshot:
        """Read the current state of a task. Does not modify remote state."""
        if not task_id:
            raise ConfigError(f"[{self.name}] task id must not be empty")
        self._ensure_valid()
        endpoint = self.config.endpoint.rstrip("/")

        if self.config.relay_url:
            url = f"{self.config.relay_url.rstrip('/')}{_RELAY_STATUS_PATH}/{task_id}"
            headers = {
                "Content-Type": "application/json",
                "x-api-key": self.config.api_key,
                "x-endpoint": endpoint,
            }
        else:
            url = f"{endpoint}{_TASKS_PATH}/{task_id}"
            headers = self._auth_headers()

        data = await self._request("GET", url, headers=headers)
        snapshot = self._parse_task_snapshot(data, task_id)
        logger.debug("[%s] Task %s: status=%s", self.name, snapshot.id, snapshot.status)
        return snapshot
