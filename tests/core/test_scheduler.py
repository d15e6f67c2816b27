"""Tests for the broadcast scheduler."""

import asyncio
from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio

from broadcaster.core.log_buffer import LogKind
from broadcaster.core.scheduler import RunConfig, Scheduler
from broadcaster.ports.delivery import DeliveryPort, DeliveryResult

__all__ = []

LONG_INTERVAL = 3600


def make_deliver(
    outcomes: dict[str, DeliveryResult | Exception],
    calls: list[str],
    on_call: Callable[[str], None] | None = None,
):
    """Create a fake deliver function answering per destination.

    Args:
        outcomes: Result (or exception to raise) per destination.
        calls: Receives every destination attempted, in order.
        on_call: Optional hook run before answering.

    Returns:
        Async deliver function.
    """

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        calls.append(req.destination)
        if on_call is not None:
            on_call(req.destination)
        outcome = outcomes.get(req.destination, DeliveryResult(200))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return deliver


async def wait_for_cycles(scheduler: Scheduler) -> None:
    """Yield to the loop until no cycle is in flight."""
    for _ in range(1_000):
        if not scheduler.cycles_in_flight:
            return
        await asyncio.sleep(0)
    raise AssertionError("cycles did not finish")


def messages(scheduler: Scheduler) -> list[str]:
    return [e.message for e in scheduler.status().logs]


@pytest_asyncio.fixture
async def closing() -> AsyncIterator[list[Scheduler]]:
    """Close every scheduler registered by a test."""
    schedulers: list[Scheduler] = []
    yield schedulers
    for scheduler in schedulers:
        await scheduler.close()


@pytest.mark.asyncio
async def test_scheduler_starts_stopped() -> None:
    """A new scheduler should be stopped with an empty log."""
    scheduler = Scheduler(make_deliver({}, []))

    status = scheduler.status()

    assert status.is_running is False
    assert status.logs == ()


@pytest.mark.asyncio
async def test_cycle_delivers_to_every_destination_in_order(closing) -> None:
    """One cycle should attempt each destination once, in the given order."""
    calls: list[str] = []
    scheduler = Scheduler(make_deliver({}, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B", "A"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B", "A"]
    assert messages(scheduler) == [
        f"Starting automation. Delay: {LONG_INTERVAL}s. Destinations: 3",
        "Executing cycle...",
        "Sent to A",
        "Sent to B",
        "Sent to A",
    ]
    assert scheduler.is_running is True


@pytest.mark.asyncio
async def test_delivery_carries_credential_and_payload(closing) -> None:
    """Each delivery should carry the run's credential and payload."""
    received: list[DeliveryPort] = []

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        received.append(req)
        return DeliveryResult(204)

    scheduler = Scheduler(deliver, pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("secret", "hello", ["42"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert received == [DeliveryPort(destination="42", credential="secret", payload="hello")]


@pytest.mark.asyncio
async def test_auth_failure_stops_the_run(closing) -> None:
    """A 401 should stop the run and skip the remaining destinations."""
    calls: list[str] = []
    outcomes = {"B": DeliveryResult(401, '{"message": "401: Unauthorized"}')}
    scheduler = Scheduler(make_deliver(outcomes, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B", "C"], 10))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B"]
    assert scheduler.is_running is False
    logs = scheduler.status().logs
    assert [(e.kind, e.message) for e in logs] == [
        (LogKind.INFO, "Starting automation. Delay: 10s. Destinations: 3"),
        (LogKind.INFO, "Executing cycle..."),
        (LogKind.SUCCESS, "Sent to A"),
        (LogKind.ERROR, 'Failed B: 401 - {"message": "401: Unauthorized"}...'),
        (LogKind.ERROR, "Invalid Token. Stopping."),
        (LogKind.INFO, "Automation stopped."),
    ]


@pytest.mark.asyncio
async def test_other_rejection_is_logged_and_skipped(closing) -> None:
    """Non-auth failures should log a truncated body and continue."""
    calls: list[str] = []
    outcomes = {"A": DeliveryResult(403, "x" * 80)}
    scheduler = Scheduler(make_deliver(outcomes, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B"]
    assert scheduler.is_running is True
    assert messages(scheduler)[2:] == [f"Failed A: 403 - {'x' * 50}...", "Sent to B"]


@pytest.mark.asyncio
async def test_transport_error_is_logged_and_skipped(closing) -> None:
    """Exceptions from delivery should be logged as network errors."""
    calls: list[str] = []
    outcomes = {"A": ConnectionError("connection refused"), "B": RuntimeError("boom")}
    scheduler = Scheduler(make_deliver(outcomes, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B", "C"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B", "C"]
    assert messages(scheduler)[2:] == [
        "Network error A: connection refused",
        "Network error B: boom",
        "Sent to C",
    ]
    assert scheduler.is_running is True


@pytest.mark.asyncio
async def test_transport_error_without_message_logs_its_type(closing) -> None:
    """Exceptions with an empty message should be described by their type."""
    calls: list[str] = []
    outcomes = {"A": asyncio.TimeoutError()}
    scheduler = Scheduler(make_deliver(outcomes, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B"]
    assert messages(scheduler)[2:] == ["Network error A: TimeoutError", "Sent to B"]


@pytest.mark.asyncio
async def test_stop_during_cycle_skips_remaining_destinations(closing) -> None:
    """stop() mid-cycle should let the in-flight attempt finish, then halt."""
    calls: list[str] = []

    def stop_on_b(destination: str) -> None:
        if destination == "B":
            scheduler.stop()

    scheduler = Scheduler(make_deliver({}, calls, on_call=stop_on_b), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A", "B", "C", "D"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert calls == ["A", "B"]
    assert scheduler.is_running is False
    assert messages(scheduler)[2:] == ["Sent to A", "Automation stopped.", "Sent to B"]


@pytest.mark.asyncio
async def test_stop_is_idempotent(closing) -> None:
    """A second stop() should not log again."""
    scheduler = Scheduler(make_deliver({}, []), pacing_delay_sec=0)
    closing.append(scheduler)
    scheduler.start(RunConfig.create("T", "hi", ["A"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    scheduler.stop()
    scheduler.stop()

    assert messages(scheduler).count("Automation stopped.") == 1
    assert scheduler.is_running is False


@pytest.mark.asyncio
async def test_stop_when_never_started_is_silent() -> None:
    """stop() on a fresh scheduler should change nothing."""
    scheduler = Scheduler(make_deliver({}, []))

    scheduler.stop()

    assert scheduler.status().logs == ()


@pytest.mark.asyncio
async def test_restart_clears_previous_logs(closing) -> None:
    """start() while running should restart with a fresh log buffer."""
    scheduler = Scheduler(make_deliver({}, []), pacing_delay_sec=0)
    closing.append(scheduler)
    scheduler.start(RunConfig.create("T", "hi", ["A", "B"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["C"], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert scheduler.is_running is True
    assert messages(scheduler) == [
        f"Starting automation. Delay: {LONG_INTERVAL}s. Destinations: 1",
        "Executing cycle...",
        "Sent to C",
    ]


@pytest.mark.asyncio
async def test_stale_cycle_cannot_touch_new_run(closing) -> None:
    """A cycle of a replaced run must neither log into nor stop the new run."""
    release = asyncio.Event()
    calls: list[str] = []

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        calls.append(req.destination)
        if req.destination == "old":
            await release.wait()
            return DeliveryResult(401, "bad token")
        return DeliveryResult(200)

    scheduler = Scheduler(deliver, pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T1", "hi", ["old", "old-2"], LONG_INTERVAL))
    await asyncio.sleep(0)
    scheduler.start(RunConfig.create("T2", "hi", ["new"], LONG_INTERVAL))
    release.set()
    await wait_for_cycles(scheduler)

    assert scheduler.is_running is True
    assert "old-2" not in calls
    assert all("old" not in m for m in messages(scheduler))


@pytest.mark.asyncio
async def test_timer_repeats_cycles(closing) -> None:
    """The timer should start a new cycle every interval."""
    calls: list[str] = []
    scheduler = Scheduler(make_deliver({}, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A"], 0.02))
    await asyncio.sleep(0.15)
    scheduler.stop()
    await wait_for_cycles(scheduler)

    assert len(calls) >= 3
    assert messages(scheduler).count("Executing cycle...") == len(calls)


@pytest.mark.asyncio
async def test_no_cycles_after_stop(closing) -> None:
    """stop() should disarm the timer."""
    calls: list[str] = []
    scheduler = Scheduler(make_deliver({}, calls), pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A"], 0.02))
    await wait_for_cycles(scheduler)
    scheduler.stop()
    await asyncio.sleep(0.1)

    assert calls == ["A"]


@pytest.mark.asyncio
async def test_pacing_delay_between_destinations(closing) -> None:
    """A cycle should wait the pacing delay after each destination."""
    scheduler = Scheduler(make_deliver({}, []), pacing_delay_sec=0.05)
    closing.append(scheduler)
    loop = asyncio.get_running_loop()

    started = loop.time()
    scheduler.start(RunConfig.create("T", "hi", ["A", "B", "C"], LONG_INTERVAL))
    while scheduler.cycles_in_flight:
        await asyncio.sleep(0.01)

    assert loop.time() - started >= 0.1


@pytest.mark.asyncio
async def test_overlapping_cycles_allowed_by_default(closing) -> None:
    """A slow cycle should not prevent the next tick from starting another."""
    release = asyncio.Event()
    calls: list[str] = []

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        calls.append(req.destination)
        await release.wait()
        return DeliveryResult(200)

    scheduler = Scheduler(deliver, pacing_delay_sec=0)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A"], 0.02))
    await asyncio.sleep(0.1)

    assert scheduler.cycles_in_flight > 1
    assert len(calls) > 1
    release.set()


@pytest.mark.asyncio
async def test_serialized_cycles_skip_busy_ticks(closing) -> None:
    """With serialize_cycles, ticks during a running cycle are skipped."""
    release = asyncio.Event()
    calls: list[str] = []

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        calls.append(req.destination)
        await release.wait()
        return DeliveryResult(200)

    scheduler = Scheduler(deliver, pacing_delay_sec=0, serialize_cycles=True)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", ["A"], 0.02))
    await asyncio.sleep(0.1)

    assert scheduler.cycles_in_flight == 1
    assert calls == ["A"]
    release.set()


@pytest.mark.asyncio
async def test_close_cancels_in_flight_cycles() -> None:
    """close() should stop the run and cancel pending cycle tasks."""
    never = asyncio.Event()

    async def deliver(req: DeliveryPort) -> DeliveryResult:
        await never.wait()
        return DeliveryResult(200)

    scheduler = Scheduler(deliver, pacing_delay_sec=0)
    scheduler.start(RunConfig.create("T", "hi", ["A"], LONG_INTERVAL))
    await asyncio.sleep(0)

    await scheduler.close()

    assert scheduler.is_running is False
    assert scheduler.cycles_in_flight == 0


@pytest.mark.asyncio
async def test_log_buffer_capacity_is_honoured(closing) -> None:
    """Long runs should never keep more entries than the capacity."""
    scheduler = Scheduler(make_deliver({}, []), pacing_delay_sec=0, log_capacity=5)
    closing.append(scheduler)

    scheduler.start(RunConfig.create("T", "hi", [str(i) for i in range(20)], LONG_INTERVAL))
    await wait_for_cycles(scheduler)

    assert messages(scheduler) == [f"Sent to {i}" for i in range(15, 20)]


def test_run_config_rejects_non_positive_interval() -> None:
    """RunConfig should require a positive interval."""
    with pytest.raises(ValueError, match="must be positive"):
        RunConfig.create("T", "hi", ["A"], 0)


def test_start_requires_running_loop() -> None:
    """start() outside an event loop should fail without changing state."""
    scheduler = Scheduler(make_deliver({}, []))

    with pytest.raises(RuntimeError):
        scheduler.start(RunConfig.create("T", "hi", ["A"], LONG_INTERVAL))

    assert scheduler.status().logs == ()
