"""Public API for Flow Insight.

Example:
    >>> from flow_insight import analyze
    >>>
    >>> report = analyze("/path/to/repos", exclude_tests=True)
    >>> len(report.events)
    12
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console

from .config import AnalysisConfig, load_config
from .core import FlowAnalyzer
from .formatters import (
    ArangoFormatter,
    BaseFormatter,
    GremlinFormatter,
    HtmlFormatter,
    JsonFormatter,
    RichFormatter,
)
from .logging_config import get_logger
from .models import FlowReport

logger = get_logger(__name__)


def analyze(
    path: str = ".",
    config_file: Optional[Path] = None,
    **overrides,
) -> FlowReport:
    """Extract message-flow facts from every repository under ``path``.

    Args:
        path: Directory whose sub-directories are the repositories
        config_file: Optional explicit config file path
        **overrides: Configuration overrides (e.g., use_bytecode=True)

    Returns:
        The merged FlowReport (background-job filter already applied
        when ``background_jobs_only`` is set)

    Raises:
        FlowInsightError: If configuration is invalid
        InvalidPathError: If path doesn't exist or isn't a directory
    """
    config = load_config(config_file=config_file, **overrides)
    return FlowAnalyzer(path, config).analyze()


def export(report: FlowReport, formatter: BaseFormatter, output_dir: Path) -> Path:
    """Write ``formatter``'s output for ``report`` into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / formatter.export_name
    target.write_text(formatter.format(report), encoding="utf-8")
    logger.info(f"Exported {target}")
    return target


def run(
    path: str = ".",
    config_file: Optional[Path] = None,
    console: Optional[Console] = None,
    config: Optional[AnalysisConfig] = None,
    **overrides,
) -> Tuple[FlowReport, List[Path]]:
    """Analyze, render the console report and write the enabled exports.

    Exports go to ``output_dir`` when configured, else to the analysed root.

    Returns:
        Tuple of (FlowReport, list of written export files)
    """
    if config is None:
        config = load_config(config_file=config_file, **overrides)

    analyzer = FlowAnalyzer(path, config, show_progress=config.verbosity != "quiet")
    report = analyzer.analyze()

    if config.verbosity != "quiet":
        RichFormatter(console=console).render(report)

    output_dir = Path(config.output_dir) if config.output_dir else analyzer.root_dir
    written: List[Path] = []
    if config.export_json:
        written.append(export(report, JsonFormatter(), output_dir))
    if config.export_gremlin:
        written.append(export(report, GremlinFormatter(), output_dir))
    if config.export_html:
        written.append(export(report, HtmlFormatter(), output_dir))
    if config.export_arango:
        written.append(export(report, ArangoFormatter(), output_dir))
    return report, written
