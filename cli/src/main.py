"""
ci-runner - Main entry point.
"""

import asyncio
import logging
import os
import sys
from typing import Optional

import typer

from engine.src.config import get_settings
from cli.src.models.config import OutputFormat, PipelineConfig
from cli.src.models.run import CliRunOptions
from cli.src.services.config_loader import PipelineConfigError, load_pipeline_config
from cli.src.services.pipeline import run_cli_pipeline

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ci-runner",
    help="Run a local CI pipeline of shell steps with retries, timeouts and watch mode.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

def configure_logging():
    # Logs go to stderr so JSON output on stdout stays parseable.
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=settings.log_format,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

def format_target_list(config: PipelineConfig) -> str:
    if not config.targets:
        return "No targets configured."
    lines = []
    for target in config.targets:
        line = f"{target.id}  {target.name}"
        if target.description:
            line += f"  {target.description}"
        lines.append(line)
    return "\n".join(lines)

@app.command()
def run(
    config: Optional[str] = typer.Option(
        None, "--config", help="Config file path (default: ci.config.yml, ci.config.yaml or ci.config.json)"
    ),
    target: Optional[str] = typer.Option(None, "--target", help="Run only the selected target id from config"),
    list_targets: bool = typer.Option(False, "--list-targets", help="Print configured targets and exit"),
    output_format: Optional[OutputFormat] = typer.Option(
        None, "--format", case_sensitive=False, help="Output format (default: pretty)"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show stdout/stderr for successful steps"),
    watch: bool = typer.Option(False, "--watch", help="Re-run on file changes"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop after first non-optional failure"),
    cwd: Optional[str] = typer.Option(None, "--cwd", help="Base working directory"),
):
    """Run the configured pipeline."""
    configure_logging()
    base_cwd = os.path.abspath(cwd) if cwd else os.getcwd()
    logger.info(f"Running pipeline in {base_cwd}")

    try:
        if list_targets:
            loaded = load_pipeline_config(base_cwd, config)
            typer.echo(format_target_list(loaded.config))
            raise typer.Exit(0)

        options = CliRunOptions(
            cwd=base_cwd,
            config_path=config,
            target=target,
            format=output_format,
            verbose=verbose,
            fail_fast=fail_fast,
            watch=watch,
        )
        exit_code = asyncio.run(run_cli_pipeline(options))
    except PipelineConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    raise typer.Exit(exit_code)

def main():
    """Main entry point."""
    app()

if __name__ == "__main__":
    main()
