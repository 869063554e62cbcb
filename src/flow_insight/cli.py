"""Command-line interface for Flow Insight"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .api import run
from .config import load_config
from .exceptions import FlowInsightError
from .logging_config import setup_logging

app = typer.Typer(
    name="flow-insight",
    help="Flow Insight - Message Flow Analyzer for .NET repositories",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


@app.command()
def main(
    path: Path = typer.Argument(
        Path("."),
        help="Directory whose sub-directories are the repositories to analyze",
        exists=False,
        file_okay=False,
        dir_okay=True,
    ),
    export_json: bool = typer.Option(
        True,
        "--export-json/--no-export-json",
        help="Write message-flow-analysis.json",
    ),
    export_gremlin: bool = typer.Option(
        False,
        "--export-gremlin",
        help="Write message-flow-tinkerpop.gremlin",
    ),
    export_html: bool = typer.Option(
        False,
        "--export-html",
        help="Write message-flow-analysis.html",
    ),
    export_arango: bool = typer.Option(
        False,
        "--export-arango",
        help="Write message-flow-arango.aql",
    ),
    include_details: bool = typer.Option(
        False,
        "--include-details",
        help="Capture code context and handler bodies",
    ),
    background_jobs_only: bool = typer.Option(
        False,
        "--background-jobs-only",
        "--hangfire-only",
        help="Keep only publishers and consumers running in background jobs",
    ),
    exclude_tests: bool = typer.Option(
        False,
        "--exclude-tests",
        help="Skip test projects, test files and test assemblies",
    ),
    use_bytecode: bool = typer.Option(
        False,
        "--use-bytecode",
        help="Find publishers in compiled IL listings (bin/ or output/)",
    ),
    use_source: bool = typer.Option(
        False,
        "--use-source",
        help="Find publishers in source files (default)",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for exported files (default: the analyzed path)",
        file_okay=False,
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of units scanned in parallel",
        min=1,
        max=32,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file path (TOML format)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress the report and all but ERROR logging",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also append log records to this file",
        dir_okay=False,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
):
    """
    Map integration-event publishers, consumers and subscriptions across repositories.

    [bold cyan]Examples:[/bold cyan]

      flow-insight /path/to/repos

      flow-insight /path/to/repos --exclude-tests --export-gremlin

      flow-insight /path/to/repos --export-html --export-arango -o reports

      flow-insight /path/to/repos --use-bytecode --include-details

      flow-insight . --background-jobs-only --no-export-json
    """
    if version:
        console.print(f"[bold cyan]Flow Insight[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    if verbose and quiet:
        console.print("[red]Error:[/red] --verbose and --quiet are mutually exclusive")
        raise typer.Exit(1)

    if use_bytecode and use_source:
        console.print("[red]Error:[/red] --use-bytecode and --use-source are mutually exclusive")
        raise typer.Exit(1)

    logger = setup_logging(
        verbose=verbose, quiet=quiet, log_file=str(log_file) if log_file else None
    )

    try:
        # Flags left at their defaults do not override config files
        overrides = {
            key: True
            for key, flag in (
                ("export_gremlin", export_gremlin),
                ("export_html", export_html),
                ("export_arango", export_arango),
                ("include_details", include_details),
                ("background_jobs_only", background_jobs_only),
                ("exclude_tests", exclude_tests),
                ("use_bytecode", use_bytecode),
            )
            if flag
        }
        if not export_json:
            overrides["export_json"] = False
        if use_source:
            overrides["use_bytecode"] = False
        if output_dir is not None:
            overrides["output_dir"] = str(output_dir)
        if workers is not None:
            overrides["workers"] = workers
        if verbose:
            overrides["verbose"] = True
        if quiet:
            overrides["quiet"] = True

        settings = load_config(config_file=config, **overrides)
        logger.debug(f"Loaded config: {settings}")

        report, written = run(str(path), config=settings)

        if not quiet:
            for target in written:
                console.print(f"Exported: [blue]{target}[/blue]")
            console.print()
            console.print("[bold green]ANALYSIS COMPLETE[/bold green]")
            console.print()

    except FlowInsightError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    except Exception as e:
        logger.exception("Unexpected error during analysis")
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
