"""Shared fixtures: scripted providers and a recording sleep."""

from __future__ import annotations

from typing import Any

import pytest

from vidgen.errors import NetworkError
from vidgen.models import GenerationOptions, ProviderConfig, TaskHandle, TaskSnapshot, ValidationResult

API_KEY = "sk-test-0123456789"


class RecordingSleep:
    """Replaces asyncio.sleep and records the requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class ScriptedProvider:
    """Provider whose status responses come from a script.

    Script items are status strings, TaskSnapshot objects or exceptions.
    """

    name = "scripted"

    def __init__(self, script: list[Any], task_id: str = "t1") -> None:
        self.config = ProviderConfig(api_key=API_KEY)
        self.script = list(script)
        self.task_id = task_id
        self.status_calls: list[str] = []
        self.created: list[GenerationOptions] = []

    def validate_config(self) -> ValidationResult:
        return ValidationResult(valid=True)

    async def create_task(self, options: GenerationOptions) -> TaskHandle:
        self.created.append(options)
        return TaskHandle(id=self.task_id)

    async def get_task_status(self, task_id: str) -> TaskSnapshot:
        self.status_calls.append(task_id)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, TaskSnapshot):
            return item
        return TaskSnapshot(id=task_id, status=item)


def network_errors(count: int) -> list[Exception]:
    return [NetworkError(f"connection reset #{i}") for i in range(count)]


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(api_key=API_KEY, endpoint="https://ark.test/api/v3", model="seedance-test")
