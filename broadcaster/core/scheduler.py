"""Recurring broadcast scheduler: state machine, run-loop and log buffer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from broadcaster.core.log_buffer import DEFAULT_CAPACITY, LogBuffer, LogEntry, LogKind
from broadcaster.ports.delivery import DeliveryPort, DeliveryResult

__all__ = ["RunConfig", "SchedulerStatus", "Scheduler", "DeliverFn", "ERROR_EXCERPT_LEN"]

logger = logging.getLogger(__name__)

DeliverFn = Callable[[DeliveryPort], Awaitable[DeliveryResult]]

# Characters of a rejected response body kept in the log
ERROR_EXCERPT_LEN = 50


@dataclass(slots=True, frozen=True)
class RunConfig:
    """Parameters of one broadcast run, fixed from start() to stop().

    Attributes:
        credential: Secret sent as the authorization header.
        payload: Message text delivered to every destination.
        destinations: Destination identifiers, iterated in this order.
        interval_seconds: Seconds between the starts of two cycles.
    """

    credential: str
    payload: str
    destinations: tuple[str, ...]
    interval_seconds: float

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive (got: {self.interval_seconds})")

    @classmethod
    def create(
        cls,
        credential: str,
        payload: str,
        destinations: Sequence[str],
        interval_seconds: float,
    ) -> RunConfig:
        return cls(credential, payload, tuple(destinations), interval_seconds)


@dataclass(slots=True, frozen=True)
class SchedulerStatus:
    """Read-only view returned by Scheduler.status()."""

    is_running: bool
    logs: tuple[LogEntry, ...]


@dataclass(eq=False)
class _Run:
    """Handle of one start() call; its stopped flag is the cancellation token."""

    config: RunConfig
    stopped: bool = False
    cycles: set[asyncio.Task[None]] = field(default_factory=set)

    @property
    def active(self) -> bool:
        return not self.stopped


class Scheduler:
    """Owns the running/stopped state and drives one cycle per interval tick.

    Cancellation is cooperative: stop() flips the current run's flag, which
    every cycle re-checks before each destination. A delivery already in
    flight is allowed to finish.

    Cycles of the same run may overlap when one outlasts the interval,
    unless serialize_cycles is set, in which case such ticks are skipped.
    """

    def __init__(
        self,
        deliver_fn: DeliverFn,
        *,
        pacing_delay_sec: float = 0.5,
        log_capacity: int = DEFAULT_CAPACITY,
        serialize_cycles: bool = False,
    ) -> None:
        """Initialize a stopped scheduler.

        Args:
            deliver_fn: Async function performing one delivery attempt.
            pacing_delay_sec: Sleep between two destinations of a cycle.
            log_capacity: Maximum entries kept in the log buffer.
            serialize_cycles: Skip ticks while a cycle is still running.
        """
        self._deliver = deliver_fn
        self._pacing_delay_sec = pacing_delay_sec
        self._serialize_cycles = serialize_cycles
        self._logs = LogBuffer(log_capacity)
        self._run: _Run | None = None
        self._timer: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return self._run is not None and self._run.active

    @property
    def cycles_in_flight(self) -> int:
        return len(self._pending)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(is_running=self.is_running, logs=self._logs.snapshot())

    def start(self, config: RunConfig) -> None:
        """Start (or restart) the broadcast run.

        Must be called from within a running event loop. The first cycle is
        scheduled immediately as its own task and is not awaited.

        Args:
            config: Run parameters.
        """
        loop = asyncio.get_running_loop()
        if self.is_running:
            self.stop()

        self._logs.clear()
        self._log(
            LogKind.INFO,
            f"Starting automation. Delay: {config.interval_seconds}s. "
            f"Destinations: {len(config.destinations)}",
        )

        run = _Run(config=config)
        self._run = run
        self._spawn_cycle(run)
        self._timer = loop.create_task(self._tick(run))

    def stop(self) -> None:
        """Stop the current run; a no-op when already stopped."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if not self.is_running:
            return

        assert self._run is not None
        self._run.stopped = True
        self._log(LogKind.INFO, "Automation stopped.")

    async def close(self) -> None:
        """Stop and cancel every task still owned by the scheduler."""
        timer = self._timer
        self.stop()
        tasks = [*self._pending, *([timer] if timer is not None else [])]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _tick(self, run: _Run) -> None:
        """Schedule a new cycle every interval on the loop's monotonic clock."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while run.active:
            next_tick += run.config.interval_seconds
            await asyncio.sleep(max(0, next_tick - loop.time()))
            if not run.active:
                return
            if self._serialize_cycles and run.cycles:
                logger.warning("Previous cycle still in progress, skipping tick")
                continue
            self._spawn_cycle(run)

    def _spawn_cycle(self, run: _Run) -> None:
        task = asyncio.get_running_loop().create_task(self.run_cycle(run))
        self._pending.add(task)
        run.cycles.add(task)

        def _forget(done: asyncio.Task[None]) -> None:
            self._pending.discard(done)
            run.cycles.discard(done)

        task.add_done_callback(_forget)

    async def run_cycle(self, run: _Run) -> None:
        """Deliver the payload once to every destination of the run.

        Entries of a run replaced by a newer start() are dropped, so a
        restarted buffer only ever holds the new run's history.

        Args:
            run: Handle of the run this cycle belongs to.
        """
        if not run.active:
            return

        self._log_for(run, LogKind.INFO, "Executing cycle...")
        config = run.config

        for destination in config.destinations:
            if not run.active:
                break

            request = DeliveryPort(
                destination=destination,
                credential=config.credential,
                payload=config.payload,
            )
            try:
                result = await self._deliver(request)
            except Exception as e:  # noqa: BLE001
                # TimeoutError and friends carry no message
                reason = str(e) or type(e).__name__
                self._log_for(run, LogKind.ERROR, f"Network error {destination}: {reason}")
            else:
                if result.ok:
                    self._log_for(run, LogKind.SUCCESS, f"Sent to {destination}")
                else:
                    excerpt = result.body[:ERROR_EXCERPT_LEN]
                    self._log_for(
                        run,
                        LogKind.ERROR,
                        f"Failed {destination}: {result.status_code} - {excerpt}...",
                    )
                    if result.is_auth_failure:
                        self._log_for(run, LogKind.ERROR, "Invalid Token. Stopping.")
                        self._stop_run(run)
                        return

            await asyncio.sleep(self._pacing_delay_sec)

    def _stop_run(self, run: _Run) -> None:
        # A stale cycle must not stop a run started after it
        if run is self._run:
            self.stop()
        else:
            run.stopped = True

    def _log_for(self, run: _Run, kind: LogKind, message: str) -> None:
        if run is self._run:
            self._log(kind, message)
        else:
            logger.debug(f"Dropped entry of a replaced run: {message}")

    def _log(self, kind: LogKind, message: str) -> None:
        self._logs.append(kind, message)
        level = logging.ERROR if kind is LogKind.ERROR else logging.INFO
        logger.log(level, message)
