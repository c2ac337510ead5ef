"""
Watch scheduler - reruns the pipeline when watched files change.

All state transitions happen on the event loop thread. Filesystem
events arrive on the watcher's own thread and are handed over with
``loop.call_soon_threadsafe``.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, Optional

from engine.src.config import get_settings
from engine.src.models.run import PipelineRunResult
from engine.src.models.step import EngineModel
from engine.src.watch.ignore import create_watch_ignore_matcher
from engine.src.watch.watcher import WatchdogWatcher

logger = logging.getLogger(__name__)

Execute = Callable[[], Awaitable[PipelineRunResult]]

class WatchOutcome(EngineModel):
    exit_code: int
    supported: bool = True
    error: Optional[str] = None

class WatchScheduler:
    """
    Debounce and run-lock bookkeeping for one watch session.

    At most one run is active. A request that arrives while a run is
    active only sets ``rerun_pending``; the active run loop then does
    exactly one more pass.
    """

    def __init__(
        self,
        execute: Execute,
        debounce_ms: int = 250,
        on_result: Optional[Callable[[PipelineRunResult], object]] = None,
    ):
        self._execute = execute
        self._debounce_ms = debounce_ms
        self._on_result = on_result
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._active_task: Optional[asyncio.Task] = None

        self.running = False
        self.rerun_pending = False
        self.stopped = False
        self.last_exit_code: Optional[int] = None
        self.run_count = 0

    async def run_initial(self):
        """First run, awaited directly so its errors propagate."""
        self.running = True
        try:
            await self._run_once()
        finally:
            self.running = False

    def notify_change(self):
        """(Re)start the debounce timer."""
        if self.stopped:
            return
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_ms / 1000, self._on_debounce)

    def request_run(self):
        if self.stopped:
            return
        if self.running:
            self.rerun_pending = True
            return
        # Claimed before any await so no second run can slip in.
        self.running = True
        self._active_task = asyncio.get_running_loop().create_task(self._run_loop())

    async def wait_idle(self):
        if self._active_task is not None:
            await asyncio.shield(self._active_task)

    def stop(self):
        self.stopped = True
        self.rerun_pending = False
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _on_debounce(self):
        self._debounce_handle = None
        self.request_run()

    async def _run_loop(self):
        try:
            while True:
                self.rerun_pending = False
                try:
                    await self._run_once()
                except Exception as e:
                    logger.exception(f"Watch rerun failed: {e}")
                if not self.rerun_pending or self.stopped:
                    break
        finally:
            self.running = False

    async def _run_once(self):
        self.run_count += 1
        result = await self._execute()
        self.last_exit_code = result.exit_code
        if self._on_result is not None:
            value = self._on_result(result)
            if inspect.isawaitable(value):
                await value

async def run_watch_loop(
    root: str,
    execute: Execute,
    exclude: Iterable[str] = (),
    stop_event: Optional[asyncio.Event] = None,
    on_change: Optional[Callable[[str], None]] = None,
    on_result: Optional[Callable[[PipelineRunResult], object]] = None,
    on_watch_start: Optional[Callable[[], None]] = None,
    watcher_factory: Callable = WatchdogWatcher,
    debounce_ms: Optional[int] = None,
    health_interval_ms: Optional[int] = None,
) -> WatchOutcome:
    """
    Run once, then rerun on relevant changes under ``root`` until
    ``stop_event`` is set.

    Returns the exit code of the most recently completed run; a run still
    in progress at stop is not awaited. When the
    watcher cannot start or dies, watching stops and the outcome carries
    ``supported=False``.
    """
    settings = get_settings()
    if debounce_ms is None:
        debounce_ms = settings.debounce_ms
    if health_interval_ms is None:
        health_interval_ms = settings.watcher_health_interval_ms
    if stop_event is None:
        stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    should_ignore = create_watch_ignore_matcher(exclude)
    scheduler = WatchScheduler(execute, debounce_ms=debounce_ms, on_result=on_result)

    await scheduler.run_initial()

    def handle_change(path: str):
        if scheduler.stopped or should_ignore(path):
            return
        logger.debug(f"Change detected: {path}")
        if on_change is not None:
            on_change(path)
        scheduler.notify_change()

    def deliver(path: str):
        try:
            loop.call_soon_threadsafe(handle_change, path)
        except RuntimeError:
            pass  # loop already closed during shutdown

    watcher = watcher_factory(root, deliver)
    try:
        watcher.start()
    except OSError as e:
        logger.warning(f"Recursive watch unavailable for {root}: {e}")
        scheduler.stop()
        return WatchOutcome(
            exit_code=_exit_code(scheduler),
            supported=False,
            error=str(e),
        )

    if on_watch_start is not None:
        on_watch_start()

    error = None
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=health_interval_ms / 1000)
        except asyncio.TimeoutError:
            if not watcher.is_alive():
                error = "file watcher stopped unexpectedly"
                break

    scheduler.stop()
    watcher.close()

    if error is not None:
        logger.warning(f"Watch mode disabled: {error}")
        await scheduler.wait_idle()
        return WatchOutcome(exit_code=_exit_code(scheduler), supported=False, error=error)

    logger.info("Watch mode stopped")
    return WatchOutcome(exit_code=_exit_code(scheduler))

def _exit_code(scheduler: WatchScheduler) -> int:
    return scheduler.last_exit_code if scheduler.last_exit_code is not None else 1
