import asyncio

import pytest

from conftest import ScriptedProvider, network_errors
from vidgen.errors import ConfigError, PollingAborted, PollingExhausted, PollingTimeout, RemoteError
from vidgen.models import AdvancedSettings, GenerationOptions, TaskSnapshot
from vidgen.poller import PollState, TaskPoller, poll_task, wait_for_task


@pytest.mark.asyncio
async def test_end_to_end_three_queries_two_sleeps(sleep):
    done = TaskSnapshot(id="t1", status="succeeded", video_url="https://x/video.mp4")
    provider = ScriptedProvider(["pending", "running", done])

    handle = await provider.create_task(GenerationOptions(prompt="a cat running"))
    assert handle.id == "t1"

    result = await wait_for_task(provider, handle.id, sleep=sleep)

    assert result is done
    assert result.video_url == "https://x/video.mp4"
    assert provider.status_calls == ["t1", "t1", "t1"]
    assert sleep.calls == [3.0, 3.0]


@pytest.mark.asyncio
async def test_progress_callback_sees_every_snapshot_then_stops(sleep):
    provider = ScriptedProvider(["pending", "processing", "running", "running", "succeeded"])
    seen = []

    result = await poll_task(provider.get_task_status, "t1", seen.append, sleep=sleep)

    assert result.status == "succeeded"
    assert [s.status for s in seen] == ["pending", "processing", "running", "running", "succeeded"]
    assert provider.script == []


@pytest.mark.asyncio
async def test_failed_status_is_returned_not_raised(sleep):
    failed = TaskSnapshot(id="t1", status="failed", error="content policy violation")
    poller = TaskPoller(ScriptedProvider(["running", failed]).get_task_status, "t1", sleep=sleep)

    result = await poller.run()

    assert result.error == "content policy violation"
    assert poller.state is PollState.FAILED


@pytest.mark.asyncio
async def test_unknown_status_keeps_polling(sleep):
    provider = ScriptedProvider(["queued", "queued", "something_new", "succeeded"])
    poller = TaskPoller(provider.get_task_status, "t1", sleep=sleep)

    result = await poller.run()

    assert result.status == "succeeded"
    assert poller.state is PollState.SUCCEEDED
    assert len(provider.status_calls) == 4


@pytest.mark.asyncio
async def test_ten_consecutive_errors_exhaust_without_eleventh_call(sleep):
    provider = ScriptedProvider(network_errors(10) + ["succeeded"])
    poller = TaskPoller(provider.get_task_status, "t1", sleep=sleep)

    with pytest.raises(PollingExhausted) as info:
        await poller.run()

    assert info.value.attempts == 10
    assert poller.state is PollState.ABORTED
    assert "10" in str(info.value)
    assert len(provider.status_calls) == 10
    assert len(sleep.calls) == 9


@pytest.mark.asyncio
async def test_success_resets_error_counter(sleep):
    script = network_errors(9) + ["running"] + network_errors(9) + ["running", "succeeded"]
    provider = ScriptedProvider(script)
    poller = TaskPoller(provider.get_task_status, "t1", sleep=sleep)

    result = await poller.run()

    assert result.status == "succeeded"
    assert poller.error_count == 0
    assert len(provider.status_calls) == 21


@pytest.mark.asyncio
async def test_remote_errors_count_toward_ceiling(sleep):
    provider = ScriptedProvider([RemoteError("bad gateway", status_code=502)] * 3)

    with pytest.raises(PollingExhausted):
        await poll_task(provider.get_task_status, "t1", sleep=sleep, max_error_retries=3)

    assert len(provider.status_calls) == 3


@pytest.mark.asyncio
async def test_config_error_is_not_retried(sleep):
    provider = ScriptedProvider([ConfigError("API key must not be empty"), "succeeded"])

    with pytest.raises(ConfigError):
        await poll_task(provider.get_task_status, "t1", sleep=sleep)

    assert len(provider.status_calls) == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_callback_errors_do_not_stop_polling(sleep):
    def broken(snapshot):
        raise RuntimeError("display went away")

    provider = ScriptedProvider(["pending", "succeeded"])
    result = await poll_task(provider.get_task_status, "t1", broken, sleep=sleep)

    assert result.status == "succeeded"


@pytest.mark.asyncio
async def test_async_callback_is_awaited(sleep):
    seen = []

    async def record(snapshot):
        seen.append(snapshot.status)

    await poll_task(ScriptedProvider(["running", "succeeded"]).get_task_status, "t1", record, sleep=sleep)

    assert seen == ["running", "succeeded"]


@pytest.mark.asyncio
async def test_wait_for_task_uses_provider_settings(sleep):
    provider = ScriptedProvider(network_errors(2))
    provider.config.advanced = AdvancedSettings(poll_interval=0.5, max_error_retries=2)

    with pytest.raises(PollingExhausted):
        await wait_for_task(provider, "t1", sleep=sleep)

    assert sleep.calls == [0.5]


@pytest.mark.asyncio
async def test_max_wait_raises_timeout(sleep):
    ticks = iter([0.0, 5.0, 11.0])
    provider = ScriptedProvider(["running", "running", "running"])
    poller = TaskPoller(provider.get_task_status, "t1", sleep=sleep, max_wait=10, clock=lambda: next(ticks))

    with pytest.raises(PollingTimeout) as info:
        await poller.run()

    assert poller.state is PollState.ABORTED
    assert info.value.last_status == "running"
    assert len(provider.status_calls) == 2


@pytest.mark.asyncio
async def test_abort_event_stops_polling(sleep):
    abort = asyncio.Event()
    provider = ScriptedProvider(["pending", "running", "succeeded"])

    def on_progress(snapshot):
        if snapshot.status == "running":
            abort.set()

    poller = TaskPoller(provider.get_task_status, "t1", on_progress=on_progress, abort=abort, sleep=sleep)
    with pytest.raises(PollingAborted):
        await poller.run()

    assert poller.state is PollState.ABORTED
    assert len(provider.status_calls) == 2


@pytest.mark.asyncio
async def test_abort_interrupts_sleep():
    abort = asyncio.Event()
    provider = ScriptedProvider(["pending", "succeeded"])
    poller = TaskPoller(provider.get_task_status, "t1", poll_interval=60, abort=abort)

    run = asyncio.ensure_future(poller.run())
    await asyncio.sleep(0.01)
    abort.set()

    with pytest.raises(PollingAborted):
        await asyncio.wait_for(run, timeout=2)
    assert len(provider.status_calls) == 1


def test_rejects_non_positive_error_ceiling():
    with pytest.raises(ValueError):
        TaskPoller(ScriptedProvider([]).get_task_status, "t1", max_error_retries=0)
