"""Tests for the watch scheduler and watch loop, using an in-memory watcher."""

import asyncio

import pytest

from engine.src.models.run import PipelineRunResult, PipelineSummary
from engine.src.watch.scheduler import WatchScheduler, run_watch_loop

def run_result(exit_code=0):
    summary = PipelineSummary(
        total=1,
        passed=1 - exit_code,
        failed=exit_code,
        skipped=0,
        timed_out=0,
        duration_ms=1,
    )
    return PipelineRunResult(steps=[], summary=summary, exit_code=exit_code, started_at=0, finished_at=1)

class FakeWatcher:
    def __init__(self, root, on_path, fail_start=None):
        self.root = root
        self.on_path = on_path
        self.fail_start = fail_start
        self.started = False
        self.closed = False
        self.alive = True

    def start(self):
        if self.fail_start is not None:
            raise self.fail_start
        self.started = True

    def is_alive(self):
        return self.alive

    def close(self):
        self.closed = True

    def emit(self, path):
        self.on_path(path)

class FakeWatcherFactory:
    def __init__(self, fail_start=None):
        self.fail_start = fail_start
        self.watcher = None

    def __call__(self, root, on_path):
        self.watcher = FakeWatcher(root, on_path, fail_start=self.fail_start)
        return self.watcher

class CountingExecute:
    """Returns scripted exit codes, repeating the last one."""

    def __init__(self, *exit_codes):
        self.exit_codes = list(exit_codes) or [0]
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        index = min(self.calls, len(self.exit_codes)) - 1
        return run_result(self.exit_codes[index])

async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)

def start_loop(execute, factory, stop, **kwargs):
    kwargs.setdefault("debounce_ms", 250)
    kwargs.setdefault("health_interval_ms", 20)
    return asyncio.create_task(
        run_watch_loop("/repo", execute, stop_event=stop, watcher_factory=factory, **kwargs)
    )

@pytest.mark.asyncio
async def test_burst_of_changes_triggers_one_rerun():
    execute = CountingExecute()
    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    task = start_loop(execute, factory, stop)

    await wait_until(lambda: factory.watcher is not None and factory.watcher.started)
    for path in ("src/a.py", "src/b.py", "src/c.py"):
        factory.watcher.emit(path)
        await asyncio.sleep(0.05)
    await asyncio.sleep(0.4)

    assert execute.calls == 2

    stop.set()
    outcome = await task
    assert outcome.supported is True
    assert outcome.exit_code == 0
    assert factory.watcher.closed is True

@pytest.mark.asyncio
async def test_ignored_paths_do_not_trigger_runs():
    execute = CountingExecute()
    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    changes = []
    task = start_loop(execute, factory, stop, exclude=["*.log"], debounce_ms=20, on_change=changes.append)

    await wait_until(lambda: factory.watcher is not None and factory.watcher.started)
    factory.watcher.emit("node_modules/react/index.js")
    factory.watcher.emit("dist/cli.js")
    factory.watcher.emit("logs/dev.log")
    await asyncio.sleep(0.1)

    assert execute.calls == 1
    assert changes == []

    factory.watcher.emit("src/app.py")
    await wait_until(lambda: execute.calls == 2)
    assert changes == ["src/app.py"]

    stop.set()
    await task

@pytest.mark.asyncio
async def test_stop_returns_exit_code_of_last_run():
    execute = CountingExecute(0, 1)
    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    results = []
    task = start_loop(execute, factory, stop, debounce_ms=20, on_result=results.append)

    await wait_until(lambda: factory.watcher is not None and factory.watcher.started)
    factory.watcher.emit("src/app.py")
    await wait_until(lambda: len(results) == 2)

    stop.set()
    outcome = await task

    assert [r.exit_code for r in results] == [0, 1]
    assert outcome.exit_code == 1

@pytest.mark.asyncio
async def test_stop_does_not_wait_for_run_in_progress():
    gate = asyncio.Event()
    calls = []

    async def execute():
        calls.append(1)
        if len(calls) == 1:
            return run_result(0)
        await gate.wait()
        return run_result(1)

    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    task = start_loop(execute, factory, stop, debounce_ms=20)

    await wait_until(lambda: factory.watcher is not None and factory.watcher.started)
    factory.watcher.emit("src/app.py")
    await wait_until(lambda: len(calls) == 2)

    stop.set()
    outcome = await asyncio.wait_for(task, timeout=1)

    assert outcome.exit_code == 0
    assert outcome.supported is True
    assert factory.watcher.closed is True

    gate.set()
    await asyncio.sleep(0.05)
    assert len(calls) == 2

@pytest.mark.asyncio
async def test_watch_start_callback_runs_after_initial_run():
    execute = CountingExecute()
    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    seen = []
    task = start_loop(execute, factory, stop, on_watch_start=lambda: seen.append(execute.calls))

    await wait_until(lambda: seen)
    stop.set()
    await task

    assert seen == [1]

@pytest.mark.asyncio
async def test_watcher_start_failure_falls_back_to_single_run():
    execute = CountingExecute(1)
    factory = FakeWatcherFactory(fail_start=OSError("too many open files"))

    outcome = await run_watch_loop("/repo", execute, watcher_factory=factory, debounce_ms=20)

    assert execute.calls == 1
    assert outcome.supported is False
    assert outcome.exit_code == 1
    assert "too many open files" in outcome.error

@pytest.mark.asyncio
async def test_watcher_dying_at_runtime_ends_watch():
    execute = CountingExecute()
    factory = FakeWatcherFactory()
    stop = asyncio.Event()
    task = start_loop(execute, factory, stop)

    await wait_until(lambda: factory.watcher is not None and factory.watcher.started)
    factory.watcher.alive = False
    outcome = await asyncio.wait_for(task, timeout=2)

    assert outcome.supported is False
    assert outcome.error == "file watcher stopped unexpectedly"
    assert outcome.exit_code == 0
    assert factory.watcher.closed is True

@pytest.mark.asyncio
async def test_initial_run_errors_propagate():
    async def execute():
        raise RuntimeError("config vanished")

    with pytest.raises(RuntimeError, match="config vanished"):
        await run_watch_loop("/repo", execute, watcher_factory=FakeWatcherFactory())

@pytest.mark.asyncio
async def test_requests_during_active_run_collapse_into_one_rerun():
    gate = asyncio.Event()
    calls = []

    async def execute():
        calls.append(len(calls))
        if len(calls) == 1:
            await gate.wait()
        return run_result(0)

    scheduler = WatchScheduler(execute, debounce_ms=10)
    scheduler.request_run()
    await asyncio.sleep(0)

    assert scheduler.running is True
    scheduler.request_run()
    scheduler.request_run()
    scheduler.request_run()
    assert scheduler.rerun_pending is True
    assert len(calls) == 1

    gate.set()
    await scheduler.wait_idle()

    assert len(calls) == 2
    assert scheduler.running is False
    assert scheduler.rerun_pending is False

@pytest.mark.asyncio
async def test_debounce_restarts_on_each_change():
    execute = CountingExecute()
    scheduler = WatchScheduler(execute, debounce_ms=50)

    for _ in range(3):
        scheduler.notify_change()
        await asyncio.sleep(0.02)
    assert execute.calls == 0

    await wait_until(lambda: execute.calls == 1)
    await scheduler.wait_idle()
    assert scheduler.run_count == 1

@pytest.mark.asyncio
async def test_failing_rerun_does_not_break_scheduler():
    attempts = []

    async def execute():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        return run_result(0)

    scheduler = WatchScheduler(execute)
    scheduler.request_run()
    await scheduler.wait_idle()
    assert scheduler.running is False

    scheduler.request_run()
    await scheduler.wait_idle()
    assert scheduler.last_exit_code == 0

@pytest.mark.asyncio
async def test_stopped_scheduler_ignores_changes():
    execute = CountingExecute()
    scheduler = WatchScheduler(execute, debounce_ms=10)

    scheduler.notify_change()
    scheduler.stop()
    await asyncio.sleep(0.05)
    scheduler.request_run()

    assert execute.calls == 0
