"""
Process supervisor: one child process per channel.

A child is STARTING until it sends READY_SIGNAL over its pipe, after which
it is RUNNING. A child that exits non-zero (or never reports ready within
the optional start timeout) is ERRORED; one that exits cleanly or after a
stop request is STOPPED. Other workers keep running either way.

SIGINT/SIGTERM are forwarded to every live child as SIGTERM; the
supervisor does not wait for them to finish.
"""

import multiprocessing
import multiprocessing.connection
import signal
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from gateway.logging_config import get_logger
from gateway.models import TERMINAL_WORKER_STATES, WorkerState
from gateway.workers import READY_SIGNAL, worker_main

logger = get_logger("supervisor")

ALLOWED_TRANSITIONS = {
    WorkerState.STARTING: {WorkerState.READY, WorkerState.ERRORED, WorkerState.STOPPED},
    WorkerState.READY: {WorkerState.RUNNING, WorkerState.ERRORED, WorkerState.STOPPED},
    WorkerState.RUNNING: {WorkerState.ERRORED, WorkerState.STOPPED},
    WorkerState.ERRORED: set(),
    WorkerState.STOPPED: set(),
}


@dataclass
class WorkerHandle:
    channel_name: str
    process: Any
    connection: Any
    state: WorkerState = WorkerState.STARTING
    started_at: float = field(default_factory=time.monotonic)
    exit_code: Optional[int] = None

    @property
    def is_live(self) -> bool:
        return self.state not in TERMINAL_WORKER_STATES

    def transition(self, new_state: WorkerState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"{self.channel_name}: invalid transition {self.state.value} -> {new_state.value}")
        self.state = new_state


class Supervisor:
    def __init__(
        self,
        channels: Iterable[str],
        *,
        target: Callable[..., None] = worker_main,
        context: Optional[Any] = None,
        start_timeout: Optional[float] = None,
        poll_interval: float = 1.0,
        wait: Callable[..., List[Any]] = multiprocessing.connection.wait,
    ):
        self.channels = list(channels)
        self.target = target
        # spawn: each worker gets a fresh interpreter, no inherited event loop state
        self.context = context or multiprocessing.get_context("spawn")
        self.start_timeout = start_timeout
        self.poll_interval = poll_interval
        self._wait = wait
        self.workers: Dict[str, WorkerHandle] = {}
        self.stopping = False

    def spawn(self, channel: str) -> WorkerHandle:
        parent_conn, child_conn = self.context.Pipe(duplex=False)
        process = self.context.Process(
            target=self.target,
            args=(channel, child_conn),
            name=f"gateway-{channel}",
            daemon=True,
        )
        process.start()
        # Parent keeps only the read end, so EOF shows up if the child dies
        child_conn.close()

        logger.info(f"Started {channel} worker (pid={process.pid})")
        return WorkerHandle(channel_name=channel, process=process, connection=parent_conn)

    def start(self) -> None:
        for channel in self.channels:
            if self.stopping:
                logger.info(f"Stop requested during startup, not starting {channel}")
                break
            if channel in self.workers:
                logger.warning(f"Channel {channel} listed twice, starting it once")
                continue
            self.workers[channel] = self.spawn(channel)

        # A signal during spawn() fired before that handle was registered
        if self.stopping:
            self.stop()

    def live_workers(self) -> List[WorkerHandle]:
        return [h for h in self.workers.values() if h.is_live]

    def mark_ready(self, handle: WorkerHandle) -> None:
        handle.transition(WorkerState.READY)
        logger.info(f"✅ {handle.channel_name} worker started successfully")
        handle.transition(WorkerState.RUNNING)
        handle.connection.close()

    def mark_exited(self, handle: WorkerHandle, exit_code: Optional[int]) -> None:
        handle.exit_code = exit_code
        if not handle.is_live:
            return

        if self.stopping or exit_code == 0:
            handle.transition(WorkerState.STOPPED)
            logger.info(f"{handle.channel_name} worker stopped (exit code {exit_code})")
            return

        phase = "failed to start" if handle.state == WorkerState.STARTING else "crashed"
        handle.transition(WorkerState.ERRORED)
        logger.error(f"❌ {handle.channel_name} worker {phase} (exit code {exit_code})")

    def check_start_timeouts(self, now: Optional[float] = None) -> None:
        if self.start_timeout is None:
            return
        now = time.monotonic() if now is None else now
        for handle in self.live_workers():
            if handle.state != WorkerState.STARTING:
                continue
            if now - handle.started_at < self.start_timeout:
                continue
            logger.error(f"❌ {handle.channel_name} worker not ready after {self.start_timeout}s, terminating")
            handle.transition(WorkerState.ERRORED)
            handle.process.terminate()

    def _read_signal(self, handle: WorkerHandle) -> None:
        try:
            message = handle.connection.recv()
        except (EOFError, OSError):
            # Closed without a signal; the exit itself is picked up from the sentinel
            handle.connection.close()
            return

        if message == READY_SIGNAL:
            self.mark_ready(handle)
        else:
            logger.warning(f"Unexpected message from {handle.channel_name} worker: {message!r}")

    def poll(self, timeout: Optional[float] = None) -> None:
        """Wait once for readiness signals and exits, then apply start timeouts."""
        waitables: Dict[Any, WorkerHandle] = {}
        for handle in self.live_workers():
            if handle.state == WorkerState.STARTING and not handle.connection.closed:
                waitables[handle.connection] = handle
            waitables[handle.process.sentinel] = handle

        if waitables:
            for ready in self._wait(list(waitables), timeout):
                handle = waitables[ready]
                if ready is handle.connection:
                    self._read_signal(handle)
                else:
                    handle.process.join()
                    self.mark_exited(handle, handle.process.exitcode)

        self.check_start_timeouts()

    def stop(self) -> None:
        """Ask every live worker to stop. Does not wait for them."""
        if not self.stopping:
            logger.info("🛑 Stopping workers...")
        self.stopping = True
        for handle in self.workers.values():
            if handle.process.is_alive():
                handle.process.terminate()

    def _handle_signal(self, signum, frame) -> None:
        logger.info(f"Received {signal.Signals(signum).name}")
        self.stop()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

    def exit_code(self) -> int:
        return 1 if any(h.state == WorkerState.ERRORED for h in self.workers.values()) else 0

    def run(self) -> int:
        """Start all workers and supervise until a signal arrives or all exit."""
        self.install_signal_handlers()
        self.start()

        while not self.stopping and self.live_workers():
            self.poll(self.poll_interval)

        if not self.stopping:
            logger.warning("All workers have exited")
        return self.exit_code()
