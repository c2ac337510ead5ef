"""
Step executor - runs one shell command once and captures its outcome.
"""

import asyncio
import logging
import os
import signal
import time
from typing import Awaitable, Callable, Dict, Mapping, Optional

from engine.src.config import get_settings
from engine.src.models.step import ExecutionOutcome, ExecutionRequest

logger = logging.getLogger(__name__)

CommandExecutor = Callable[[ExecutionRequest], Awaitable[ExecutionOutcome]]

_EXIT = "exit"
_TIMEOUT = "timeout"

def merge_environment(
    base: Mapping[str, str],
    overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Return a new environment map; overrides win on key conflicts."""
    merged = dict(base)
    if overrides:
        merged.update(overrides)
    return merged

class _Latch:
    """One-shot verdict holder. Only the first claim sticks."""

    def __init__(self):
        self.verdict: Optional[str] = None

    def claim(self, verdict: str) -> bool:
        if self.verdict is not None:
            return False
        self.verdict = verdict
        return True

def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)

def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)

def _terminate(process: asyncio.subprocess.Process, force: bool = False):
    """Signal the child's whole process group so shell grandchildren die too."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL if force else signal.SIGTERM)
        elif force:
            process.kill()
        else:
            process.terminate()
    except ProcessLookupError:
        pass  # already gone

async def execute_command(
    request: ExecutionRequest,
    kill_grace_ms: Optional[int] = None,
) -> ExecutionOutcome:
    """
    Run ``request.command`` through the shell exactly once.

    Never raises for command failure: a non-zero exit, a timeout or a
    spawn error are all reported in the returned outcome.
    """
    if kill_grace_ms is None:
        kill_grace_ms = get_settings().kill_grace_ms

    loop = asyncio.get_running_loop()
    started = time.monotonic()
    env = merge_environment(os.environ, request.env)

    try:
        process = await asyncio.create_subprocess_shell(
            request.command,
            cwd=request.cwd,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=hasattr(os, "killpg"),
        )
    except OSError as e:
        logger.warning(f"Failed to start command {request.command!r}: {e}")
        return ExecutionOutcome(
            exit_code=None,
            stderr=f"Failed to start command: {e}",
            successful=False,
            timed_out=False,
            duration_ms=_elapsed_ms(started),
            error=str(e),
        )

    latch = _Latch()
    timers = []

    def on_kill_grace():
        if process.returncode is None:
            logger.info(f"Command {request.command!r} ignored SIGTERM, sending SIGKILL")
            _terminate(process, force=True)

    def on_timeout():
        if not latch.claim(_TIMEOUT):
            return
        logger.info(f"Command {request.command!r} timed out after {request.timeout_ms}ms")
        _terminate(process)
        timers.append(loop.call_later(kill_grace_ms / 1000, on_kill_grace))

    if request.timeout_ms and request.timeout_ms > 0:
        timers.append(loop.call_later(request.timeout_ms / 1000, on_timeout))

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        latch.claim(_EXIT)
        for timer in timers:
            timer.cancel()
        _terminate(process, force=True)
        raise

    latch.claim(_EXIT)
    for timer in timers:
        timer.cancel()

    timed_out = latch.verdict == _TIMEOUT
    returncode = process.returncode
    if returncode is not None and returncode < 0:
        exit_code, signal_name = None, _signal_name(-returncode)
    else:
        exit_code, signal_name = returncode, None

    return ExecutionOutcome(
        exit_code=exit_code,
        signal=signal_name,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        successful=exit_code == 0 and not timed_out,
        timed_out=timed_out,
        duration_ms=_elapsed_ms(started),
    )
