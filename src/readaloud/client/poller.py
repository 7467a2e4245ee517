"""
Long-audio job poller.

Client-side state machine that asks "is job X done?" until it is, then
hands the artifact name to a retriever.

States:
    IDLE ──start()──► PROCESSING ──► COMPLETED
                          │
                          └────────► FAILED

Polling schedule:
    - first wait is ``interval_s``, multiplied by ``backoff_factor`` after
      every non-terminal tick, capped at ``max_interval_s``
    - the whole job is bounded by ``max_wait_s``; past it the poller fails
      with PollTimeoutError
    - transient status-check failures (TransportError with transient=True,
      or a RequestTimeoutError from the provider's status call) are retried
      on the same schedule; more than ``max_transient_errors`` in a row
      fails the poller
    - a provider-reported job error fails it immediately

Once COMPLETED or FAILED the poller is frozen: poll_once() returns the
recorded state without another status query.

cancel() stops run() between ticks. The provider job itself keeps going
and its artifact stays in storage.
"""
from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

from readaloud.core.config import PollingConfig
from readaloud.core.logging import get_logger, info, verbose, warn
from readaloud.services.errors import (
    PollTimeoutError,
    ReadAloudError,
    RequestTimeoutError,
    SynthesisError,
    TransportError,
)
from readaloud.tts.jobs import STATUS_COMPLETED, STATUS_ERROR, JobStatus, SynthesisJob

_LOG = get_logger("readaloud.poller")

CHECK_FAILED_MESSAGE = "Failed to check audio generation status"


class PollState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PollState.COMPLETED, PollState.FAILED)


class JobPoller:
    """
    Drive one long-audio job from submission to retrieval.

    Args:
        check_status: Called with the operation name, returns JobStatus.
        retrieve: Called once with the output file name on completion;
            its return value is kept in ``result``.
        config: Polling schedule and bounds.
        sleep: Wait function, defaults to an interruptible wait on the
            cancel event. Tests pass a fake.
        clock: Monotonic clock for the overall wait limit.
        on_progress: Called with the progress value after every tick.
    """

    def __init__(
        self,
        check_status: Callable[[str], JobStatus],
        retrieve: Optional[Callable[[str], Any]] = None,
        config: Optional[PollingConfig] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Optional[Callable[[float], None]] = None,
    ):
        self._check_status = check_status
        self._retrieve = retrieve
        self._config = config or PollingConfig()
        self._cancelled = threading.Event()
        self._sleep = sleep or self._cancelled.wait
        self._clock = clock
        self._on_progress = on_progress

        self.state = PollState.IDLE
        self.job: Optional[SynthesisJob] = None
        self.progress: float = 0.0
        self.error: Optional[ReadAloudError] = None
        self.result: Any = None
        self.ticks = 0

        self._interval = self._config.interval_s
        self._started_at: Optional[float] = None
        self._consecutive_errors = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def next_interval(self) -> float:
        """Seconds until the next tick, never past the overall deadline."""
        if self._started_at is None:
            return self._interval
        remaining = self._config.max_wait_s - (self._clock() - self._started_at)
        return max(0.0, min(self._interval, remaining))

    def start(self, job: SynthesisJob) -> None:
        """IDLE -> PROCESSING for ``job``."""
        if self.state is not PollState.IDLE:
            raise RuntimeError(f"poller already {self.state.value}")
        self.job = job
        self.state = PollState.PROCESSING
        self._started_at = self._clock()
        self._interval = self._config.interval_s
        info(_LOG, "poll_start", operation=job.operation_name, file_name=job.output_file_name)

    def cancel(self) -> None:
        """Stop run() at the next opportunity. The provider job is not cancelled."""
        self._cancelled.set()
        verbose(_LOG, "poll_cancelled", operation=self.job.operation_name if self.job else None)

    def poll_once(self) -> PollState:
        """
        One status query and the resulting transition.

        Returns:
            The state after this tick. Terminal states are returned as-is.
        """
        if self.state.is_terminal:
            return self.state
        if self.state is PollState.IDLE or self.job is None:
            raise RuntimeError("poller not started")

        elapsed = self._clock() - (self._started_at or 0.0)
        if elapsed >= self._config.max_wait_s:
            return self._fail(PollTimeoutError(
                f"Audio generation did not finish within {self._config.max_wait_s:g} seconds",
                details={"operation_name": self.job.operation_name, "elapsed_s": round(elapsed, 1)},
            ))

        self.ticks += 1
        try:
            status = self._check_status(self.job.operation_name)
        except (TransportError, RequestTimeoutError) as e:
            if isinstance(e, TransportError) and not e.transient:
                return self._fail(e)
            self._consecutive_errors += 1
            warn(
                _LOG,
                "poll_check_failed",
                operation=self.job.operation_name,
                attempt=self._consecutive_errors,
                error=e.message,
            )
            if self._consecutive_errors > self._config.max_transient_errors:
                return self._fail(TransportError(CHECK_FAILED_MESSAGE, details=e.details, transient=False))
            self._backoff()
            return self.state
        except ReadAloudError as e:
            return self._fail(e)

        self._consecutive_errors = 0

        if status.status == STATUS_ERROR:
            return self._fail(SynthesisError(status.error or "Audio generation failed"))

        if status.status == STATUS_COMPLETED:
            return self._complete()

        if status.progress is not None:
            self.progress = float(status.progress)
        if self._on_progress is not None:
            self._on_progress(self.progress)
        verbose(_LOG, "poll_tick", operation=self.job.operation_name, progress=self.progress)
        self._backoff()
        return self.state

    def run(self, job: Optional[SynthesisJob] = None) -> PollState:
        """
        Poll until terminal or cancelled.

        Args:
            job: Started here if given; otherwise start() must have been called.

        Returns:
            The final state (PROCESSING if cancelled).
        """
        if job is not None:
            self.start(job)

        while not self.state.is_terminal:
            if self.cancelled:
                break
            self._sleep(self.next_interval)
            if self.cancelled:
                break
            self.poll_once()

        return self.state

    def _backoff(self) -> None:
        self._interval = min(self._interval * self._config.backoff_factor, self._config.max_interval_s)

    def _complete(self) -> PollState:
        assert self.job is not None
        self.progress = 100.0
        if self._on_progress is not None:
            self._on_progress(self.progress)
        if self._retrieve is not None:
            try:
                self.result = self._retrieve(self.job.output_file_name)
            except ReadAloudError as e:
                return self._fail(e)
        self.state = PollState.COMPLETED
        info(_LOG, "poll_completed", operation=self.job.operation_name, ticks=self.ticks)
        return self.state

    def _fail(self, e: ReadAloudError) -> PollState:
        self.error = e
        self.state = PollState.FAILED
        warn(
            _LOG,
            "poll_failed",
            operation=self.job.operation_name if self.job else None,
            code=e.code,
            error=e.message,
        )
        return self.state
