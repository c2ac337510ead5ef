"""
CLI pipeline orchestration: one-shot runs and watch mode.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Callable, Optional, TextIO

from engine.src.models.run import PipelineRunResult
from engine.src.parsers import StepParserRegistry, create_default_step_parsers
from engine.src.services.executor import CommandExecutor, execute_command
from engine.src.services.runner import run_pipeline
from engine.src.watch import WatchdogWatcher, run_watch_loop
from cli.src.models.config import LoadedConfig, OutputFormat
from cli.src.models.run import CliRunOptions
from cli.src.reporters import PrettyReporter, format_pipeline_result_as_json
from cli.src.services.config_loader import PipelineConfigError, load_pipeline_config
from cli.src.services.run_mapping import map_config_to_run

logger = logging.getLogger(__name__)

class CliPipeline:
    """Loaded config plus output settings for one CLI invocation."""

    def __init__(
        self,
        options: CliRunOptions,
        loaded: LoadedConfig,
        executor: CommandExecutor = execute_command,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.options = options
        self.loaded = loaded
        self.executor = executor
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.format = options.format or loaded.config.output.format or OutputFormat.PRETTY
        self.verbose = options.verbose or bool(loaded.config.output.verbose)

    async def execute(self) -> PipelineRunResult:
        mapped = map_config_to_run(
            self.loaded.config,
            self.options.cwd,
            fail_fast=self.options.fail_fast,
            target=self.options.target,
        )

        reporters = []
        if self.format == OutputFormat.PRETTY:
            reporter = PrettyReporter(verbose=self.verbose, stream=self.out)
            reporter.print_excluded(mapped.excluded_steps)
            reporters.append(reporter)

        return await run_pipeline(
            mapped.steps,
            self.executor,
            reporters=reporters,
            parser_resolver=StepParserRegistry(create_default_step_parsers()),
            cwd=mapped.cwd,
            env=mapped.env,
            continue_on_error=mapped.continue_on_error,
        )

    def print_json(self, result: PipelineRunResult):
        if self.format == OutputFormat.JSON:
            self.out.write(format_pipeline_result_as_json(result) + "\n")
            self.out.flush()

    def reload(self):
        """Re-read the config; keep the previous one if it became invalid."""
        try:
            self.loaded = load_pipeline_config(self.options.cwd, self.options.config_path)
        except PipelineConfigError as e:
            logger.warning(f"Config reload failed: {e}")
            self.err.write(f"Config reload failed, using previous config: {e}\n")

    async def watch(
        self,
        watcher_factory: Callable = WatchdogWatcher,
        stop_event: Optional[asyncio.Event] = None,
    ) -> int:
        stop_event = stop_event or asyncio.Event()
        config_path = os.path.relpath(self.loaded.path, self.options.cwd)
        runs = 0

        async def execute() -> PipelineRunResult:
            nonlocal runs
            if runs:
                self.reload()
            runs += 1
            return await self.execute()

        def on_change(path: str):
            suffix = " (config)" if path == config_path else ""
            self.out.write(f"\nChange detected: {path}{suffix}\n")
            self.out.flush()

        def on_watch_start():
            self.out.write("Watch mode enabled. Waiting for file changes...\n")
            self.out.flush()

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
                installed.append(sig)
            except (NotImplementedError, ValueError):
                pass  # no loop signal handlers off the main thread or on Windows

        try:
            outcome = await run_watch_loop(
                self.options.cwd,
                execute,
                exclude=self.loaded.config.watch.exclude,
                stop_event=stop_event,
                on_change=on_change,
                on_result=self.print_json,
                on_watch_start=on_watch_start,
                watcher_factory=watcher_factory,
            )
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

        if not outcome.supported:
            self.out.write(f"Watch mode unavailable ({outcome.error}). Continuing without watch.\n")
        return outcome.exit_code

async def run_cli_pipeline(
    options: CliRunOptions,
    executor: CommandExecutor = execute_command,
    watcher_factory: Callable = WatchdogWatcher,
    stop_event: Optional[asyncio.Event] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> int:
    """
    Execute the configured pipeline and return the process exit code.

    Raises PipelineConfigError when the config cannot be loaded.
    """
    loaded = load_pipeline_config(options.cwd, options.config_path)
    pipeline = CliPipeline(options, loaded, executor=executor, out=out, err=err)

    if not options.watch:
        result = await pipeline.execute()
        pipeline.print_json(result)
        return result.exit_code

    return await pipeline.watch(watcher_factory=watcher_factory, stop_event=stop_event)
