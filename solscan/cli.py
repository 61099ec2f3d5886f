"""solscan CLI - Describe a .NET solution for a XAML design-time host."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from solscan.config import FALLBACK_TIMEOUT_SECONDS, Manifest, ScanConfig
from solscan.dotnet.toolchain import locate_toolchain
from solscan.errors import DescriptorParseError, InvalidDescriptorError, ToolchainNotFoundError
from solscan.output import manifest_path, serialize_manifest, write_manifest
from solscan.pipeline import run_pipeline

EXIT_INVALID_SOLUTION = 1
EXIT_NO_TOOLCHAIN = 2


def _configure_logging(console: Console, verbose: bool, quiet: bool) -> None:
    """Send solscan's log records to stderr through Rich."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    package_logger = logging.getLogger("solscan")
    package_logger.handlers = [handler]
    package_logger.setLevel(level)


def _run_with_progress(config: ScanConfig, console: Console) -> Manifest:
    """Run the pipeline with a Rich spinner on stderr."""
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Initialising...", total=None)

        def on_phase(name, label):
            progress.update(task, description=label)

        return run_pipeline(config, progress_callback=on_phase, toolchain_locator=locate_toolchain)


def _run_quiet(config: ScanConfig) -> Manifest:
    """Run the pipeline with no progress display."""
    return run_pipeline(config, toolchain_locator=locate_toolchain)


@click.command()
@click.argument("solution", type=click.Path())
@click.option("-o", "--output-dir", default=None, help="Directory for the manifest file (default: temp dir)")
@click.option("-j", "--max-workers", default=None, type=click.IntRange(min=1), help="Maximum parallel project evaluations")
@click.option("--timeout", default=FALLBACK_TIMEOUT_SECONDS, type=float, help="Seconds allowed for each msbuild fallback")
@click.option("--verbose", is_flag=True, help="Show debug diagnostics")
@click.option("--quiet", is_flag=True, help="Suppress all diagnostics except errors")
def cli(
    solution: str,
    output_dir: str | None,
    max_workers: int | None,
    timeout: float,
    verbose: bool,
    quiet: bool,
) -> None:
    """Describe the projects of SOLUTION (.sln, .slnx or a directory) as JSON."""
    console = Console(stderr=True)
    _configure_logging(console, verbose, quiet)

    config = ScanConfig(
        solution_path=solution,
        output_dir=output_dir,
        max_workers=max_workers,
        fallback_timeout=timeout,
        verbose=verbose,
        quiet=quiet,
    )

    try:
        if quiet:
            manifest = _run_quiet(config)
        else:
            manifest = _run_with_progress(config, console)
    except (InvalidDescriptorError, DescriptorParseError) as e:
        console.print(str(e), style="red", markup=False, highlight=False)
        sys.exit(EXIT_INVALID_SOLUTION)
    except ToolchainNotFoundError as e:
        console.print(str(e), style="red", markup=False, highlight=False)
        sys.exit(EXIT_NO_TOOLCHAIN)

    text = serialize_manifest(manifest)
    output = manifest_path(manifest.solution, output_dir)
    write_manifest(text, output)
    click.echo(text)

    if not quiet:
        console.print(f"[green]Manifest written to:[/green] {escape(output)}", highlight=False)


if __name__ == "__main__":
    cli()
