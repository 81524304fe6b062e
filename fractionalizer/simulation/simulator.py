"""
Tokenization Simulator

Drives the simulated fractionalization step: a run advances by a fixed
step on every tick until it reaches 100, then completes exactly once.

Ticks are produced by an asyncio task owned by the active run. The task
is cancelable and is always canceled when the run is abandoned, so no
periodic callback outlives the step that started it.
"""

import asyncio
from collections.abc import Callable

import structlog

from ..config import FractionalizerSettings, get_settings
from ..models import SimulationRun, SimulationStatus

logger = structlog.get_logger(__name__)


class TokenizationSimulator:
    """
    Time-based progress driver for the fractionalization step.

    With auto_tick enabled, start() must be called from a running event
    loop; the tick task is created on it. With auto_tick disabled, the
    caller advances the run by calling tick() directly.
    """

    def __init__(
        self,
        settings: FractionalizerSettings | None = None,
        interval_seconds: float | None = None,
        step: int | None = None,
        auto_tick: bool = True,
        on_progress: Callable[[int], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.interval_seconds = (
            settings.tick_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.step = settings.tick_step if step is None else step
        if self.step < 1:
            raise ValueError("step must be a positive integer")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")

        self.auto_tick = auto_tick
        self.on_progress = on_progress
        self.on_complete = on_complete

        self._run: SimulationRun | None = None
        self._task: asyncio.Task[None] | None = None
        self._completed = asyncio.Event()
        self._logger = logger.bind(service="simulator")

    # ==================== State ====================

    @property
    def run(self) -> SimulationRun | None:
        """Read-only copy of the active run, if any."""
        return self._run.model_copy() if self._run else None

    @property
    def status(self) -> SimulationStatus:
        return self._run.status if self._run else SimulationStatus.IDLE

    @property
    def has_pending_timer(self) -> bool:
        """Whether a tick task is scheduled and not finished."""
        return self._task is not None and not self._task.done()

    # ==================== Lifecycle ====================

    def start(self) -> SimulationRun:
        """
        Start a new run at progress 0.

        Any previous run is abandoned and its tick task canceled.

        Raises:
            RuntimeError: auto_tick is enabled but no event loop is running;
                the current run is left untouched
        """
        loop = asyncio.get_running_loop() if self.auto_tick else None

        self.cancel()
        self._run = SimulationRun(progress=0, status=SimulationStatus.RUNNING)
        self._completed = asyncio.Event()

        if loop is not None:
            self._task = loop.create_task(
                self._tick_loop(self._run),
                name="fractionalization_ticks",
            )
            self._task.add_done_callback(self._log_task_failure)

        self._logger.info(
            "simulation_started",
            interval_seconds=self.interval_seconds,
            step=self.step,
            auto_tick=self.auto_tick,
        )
        return self._run.model_copy()

    def tick(self) -> SimulationRun | None:
        """
        Advance the active run by one step.

        Progress is clamped at 100. Reaching 100 completes the run and
        fires on_complete once; ticks after completion change nothing.

        Returns:
            Copy of the run after the tick, or None without an active run
        """
        run = self._run
        if run is None:
            return None
        if not run.is_running:
            return run.model_copy()

        completed = run.advance(self.step)
        self._logger.debug("simulation_progress", progress=run.progress)
        if self.on_progress:
            self.on_progress(run.progress)

        if completed:
            self._completed.set()
            self._logger.info("simulation_complete")
            if self.on_complete:
                self.on_complete()

        return run.model_copy()

    def cancel(self) -> bool:
        """
        Cancel the tick task without awaiting it.

        Returns:
            True if a pending task was canceled
        """
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        self._logger.info(
            "simulation_cancelled",
            progress=self._run.progress if self._run else 0,
        )
        return True

    def reset(self) -> None:
        """Cancel the tick task and drop the run."""
        self.cancel()
        self._run = None

    async def aclose(self) -> None:
        """Cancel the tick task and wait for it to finish."""
        task = self._task
        if not self.cancel():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait_complete(self, timeout: float | None = None) -> SimulationRun:
        """
        Wait until the active run completes.

        Raises:
            RuntimeError: No run has been started
            TimeoutError: The run did not complete within timeout seconds
        """
        if self._run is None:
            raise RuntimeError("No simulation run has been started")
        await asyncio.wait_for(self._completed.wait(), timeout)
        return self._run.model_copy()

    async def _tick_loop(self, run: SimulationRun) -> None:
        """Tick the run at a fixed interval until it completes or is abandoned."""
        try:
            while run.is_running:
                await asyncio.sleep(self.interval_seconds)
                if run is not self._run:
                    break
                self.tick()
        except asyncio.CancelledError:
            self._logger.debug("simulation_tick_loop_cancelled", progress=run.progress)
            raise

    def _log_task_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._logger.error(
                "simulation_tick_failed",
                error=str(error),
                error_type=type(error).__name__,
            )
