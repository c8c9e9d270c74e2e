"""Vendor-agnostic polling of a generation task until it finishes.

A running task and an unreachable service are handled differently:

* a successful query with a non-terminal status keeps polling, with no limit
  on the number of iterations;
* a failed query (``NetworkError`` or ``RemoteError``) counts toward a
  consecutive-error ceiling, reset by every successful query.

``ConfigError`` is never retried. An overall time limit (``max_wait``) and an
abort event are available but off by default.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
import time
from typing import Awaitable, Callable

from vidgen.errors import NetworkError, PollingAborted, PollingExhausted, PollingTimeout, RemoteError
from vidgen.models import TaskSnapshot
from vidgen.providers.base import ProgressCallback, VideoProvider

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_MAX_ERROR_RETRIES = 10

FetchStatus = Callable[[str], Awaitable[TaskSnapshot]]
Sleep = Callable[[float], Awaitable[object]]


class PollState(str, enum.Enum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"


class TaskPoller:
    """Polls one task through ``fetch_status`` until it reaches a terminal state.

    Args:
        fetch_status: Coroutine function returning a TaskSnapshot for a task id.
        task_id: Task to poll.
        on_progress: Called with every successfully fetched snapshot.
        poll_interval: Seconds to wait between queries.
        max_error_retries: Consecutive failed queries before giving up.
        max_wait: Optional overall limit in seconds.
        abort: Optional event; setting it stops polling at the next suspend point.
        sleep: Sleep coroutine, replaceable in tests.
        clock: Monotonic clock used for ``max_wait``.
    """

    def __init__(
        self,
        fetch_status: FetchStatus,
        task_id: str,
        *,
        on_progress: ProgressCallback | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_error_retries: int = DEFAULT_MAX_ERROR_RETRIES,
        max_wait: float | None = None,
        abort: asyncio.Event | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_error_retries < 1:
            raise ValueError(f"max_error_retries must be >= 1, got {max_error_retries}")
        self.fetch_status = fetch_status
        self.task_id = task_id
        self.on_progress = on_progress
        self.poll_interval = poll_interval
        self.max_error_retries = max_error_retries
        self.max_wait = max_wait
        self.abort = abort
        self._sleep = sleep
        self._clock = clock

        self.state = PollState.POLLING
        self.query_count = 0
        self.error_count = 0
        self.last_snapshot: TaskSnapshot | None = None

    async def run(self) -> TaskSnapshot:
        """Poll until the task succeeds or fails and return the final snapshot.

        Raises:
            PollingExhausted: After ``max_error_retries`` consecutive failed queries.
            PollingTimeout: If ``max_wait`` is set and elapses first.
            PollingAborted: If the abort event is set.
            ConfigError: Immediately, if the provider configuration is invalid.
        """
        started = self._clock()
        logger.info("Polling task %s every %.1fs", self.task_id, self.poll_interval)

        while True:
            self._check_abort()
            self.query_count += 1
            try:
                snapshot = await self.fetch_status(self.task_id)
            except (NetworkError, RemoteError) as exc:
                self.error_count += 1
                logger.warning(
                    "Query %d for task %s failed (%d/%d consecutive): %s",
                    self.query_count, self.task_id, self.error_count, self.max_error_retries, exc,
                )
                if self.error_count >= self.max_error_retries:
                    self.state = PollState.ABORTED
                    raise PollingExhausted(self.task_id, self.error_count) from exc
            else:
                self.error_count = 0
                self.last_snapshot = snapshot
                logger.debug("Query %d for task %s: status=%s", self.query_count, self.task_id, snapshot.status)
                await self._notify(snapshot)

                if snapshot.is_done:
                    self.state = PollState.SUCCEEDED if snapshot.is_success else PollState.FAILED
                    logger.info(
                        "Task %s finished with status %s after %d queries",
                        self.task_id, snapshot.status, self.query_count,
                    )
                    return snapshot

            if self.max_wait is not None and self._clock() - started >= self.max_wait:
                last = self.last_snapshot.status if self.last_snapshot else None
                self.state = PollState.ABORTED
                raise PollingTimeout(self.task_id, self.max_wait, last)

            await self._pause()

    async def _notify(self, snapshot: TaskSnapshot) -> None:
        if self.on_progress is None:
            return
        try:
            result = self.on_progress(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Progress callback failed for task %s", self.task_id)

    def _check_abort(self) -> None:
        if self.abort is not None and self.abort.is_set():
            self.state = PollState.ABORTED
            logger.info("Polling for task %s aborted", self.task_id)
            raise PollingAborted(self.task_id)

    async def _pause(self) -> None:
        if self.abort is None:
            await self._sleep(self.poll_interval)
            return

        sleeper = asyncio.ensure_future(self._sleep(self.poll_interval))
        waiter = asyncio.ensure_future(self.abort.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (sleeper, waiter):
                if not fut.done():
                    fut.cancel()
        self._check_abort()


async def poll_task(
    fetch_status: FetchStatus,
    task_id: str,
    on_progress: ProgressCallback | None = None,
    **kwargs,
) -> TaskSnapshot:
    """Poll ``task_id`` until terminal. See TaskPoller for keyword arguments."""
    return await TaskPoller(fetch_status, task_id, on_progress=on_progress, **kwargs).run()


async def wait_for_task(
    provider: VideoProvider,
    task_id: str,
    on_progress: ProgressCallback | None = None,
    **overrides,
) -> TaskSnapshot:
    """Poll a provider's task using the polling settings from its config.

    Keyword overrides (``poll_interval``, ``max_error_retries``, ``max_wait``,
    ``abort``, ``sleep``, ``clock``) take precedence over the config.
    """
    advanced = provider.config.advanced
    options = {
        "poll_interval": advanced.poll_interval,
        "max_error_retries": advanced.max_error_retries,
        "max_wait": advanced.max_wait,
    }
    options.update(overrides)
    return await poll_task(provider.get_task_status, task_id, on_progress, **options)
