"""Main pipeline orchestrator for Flow Insight.

discover repositories → plan units per repository → run the extractors
over each unit → merge partial results in unit order → apply the
background-job filter once.

Every unit is scanned independently. A unit that cannot be read or
parsed contributes no facts and the run carries on.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from . import discovery
from .bytecode import BytecodePublisherExtractor, ILListingReader
from .config import AnalysisConfig
from .correlate import filter_background_jobs
from .exceptions import FileAccessError, ModuleReadError
from .extractors import (
    ConsumerExtractor,
    EventDefinitionExtractor,
    SourcePublisherExtractor,
    SubscriptionExtractor,
)
from .logging_config import get_logger
from .models import FlowReport, UnitResult
from .scanning import SourceUnit
from .security import read_unit_text, validate_root_directory

logger = get_logger(__name__)
console = Console(stderr=True)

SOURCE = "source"
MODULE = "module"


@dataclass(frozen=True)
class UnitTask:
    """One unit to scan; ``ordinal`` fixes its place in the merged report."""

    ordinal: int
    path: Path
    kind: str
    repository: str
    repo_root: Path
    source_publishers: bool = True


class FlowAnalyzer:
    """Runs extraction over every repository below a root directory."""

    def __init__(
        self,
        root_dir: "Path | str",
        config: Optional[AnalysisConfig] = None,
        show_progress: bool = False,
    ):
        self.root_dir = validate_root_directory(Path(root_dir))
        self.config = config or AnalysisConfig()
        self.show_progress = show_progress
        logger.info(f"Analyzing repositories under: {self.root_dir}")
        logger.debug(
            f"Config: bytecode={self.config.use_bytecode}, "
            f"exclude_tests={self.config.exclude_tests}, workers={self.config.workers}"
        )

        indicators = self.config.indicators
        limits = self.config.limits
        self.events = EventDefinitionExtractor(indicators, limits)
        self.source_publishers = SourcePublisherExtractor(indicators, limits)
        self.bytecode_publishers = BytecodePublisherExtractor(indicators, limits)
        self.consumers = ConsumerExtractor(indicators, limits)
        self.subscriptions = SubscriptionExtractor(indicators, limits)
        self.reader = ILListingReader()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def analyze(self) -> FlowReport:
        report = FlowReport()
        repositories = discovery.discover_repositories(self.root_dir)
        report.repository_count = len(repositories)

        tasks: List[UnitTask] = []
        for repo_root in repositories:
            repo_tasks, projects = self._plan(repo_root, start=len(tasks))
            tasks.extend(repo_tasks)
            report.project_count += projects

        for _, partial in self._run_all(tasks):
            report.merge(partial)

        logger.info(
            f"Found {len(report.events)} events, {len(report.publishers)} publishers, "
            f"{len(report.consumers)} consumers, {len(report.subscriptions)} subscriptions"
        )

        if self.config.background_jobs_only:
            report = filter_background_jobs(report)
        return report

    def _plan(self, repo_root: Path, start: int) -> Tuple[List[UnitTask], int]:
        """Units of one repository, numbered from ``start``, and its project count."""
        markers = self.config.indicators.test_project_markers
        exclude = self.config.exclude_tests
        repository = repo_root.name

        sources = discovery.source_units(repo_root, markers, exclude)
        modules = discovery.module_units(repo_root, markers, exclude) if self.config.use_bytecode else []
        projects = discovery.count_projects(repo_root, markers, exclude)

        if self.config.use_bytecode and not modules:
            logger.info(f"{repository}: no module listings, using source parsing for publishers")
        source_publishers = not modules
        logger.info(
            f"{repository}: {len(sources)} source files, {len(modules)} module listings, "
            f"{projects} projects"
        )

        tasks = [
            UnitTask(start + i, path, SOURCE, repository, repo_root, source_publishers)
            for i, path in enumerate(sources)
        ]
        tasks.extend(
            UnitTask(start + len(sources) + i, path, MODULE, repository, repo_root)
            for i, path in enumerate(modules)
        )
        return tasks, projects

    def _run_all(self, tasks: List[UnitTask]) -> List[Tuple[int, UnitResult]]:
        """Scan every task; results come back sorted by ordinal."""
        results: List[Tuple[int, UnitResult]] = []

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=not self.show_progress,
        ) as progress:
            scan_task = progress.add_task("[cyan]Scanning units...", total=len(tasks))

            if self.config.workers > 1 and len(tasks) > 1:
                with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                    futures = {pool.submit(self.scan_unit, task): task for task in tasks}
                    for future in as_completed(futures):
                        results.append((futures[future].ordinal, future.result()))
                        progress.advance(scan_task)
            else:
                for task in tasks:
                    results.append((task.ordinal, self.scan_unit(task)))
                    progress.advance(scan_task)

        results.sort(key=lambda item: item[0])
        errors = sum(1 for _, r in results if r is _FAILED)
        logger.info(f"Scan complete: {len(results) - errors} units analyzed, {errors} errors")
        return [(ordinal, r) for ordinal, r in results if r is not _FAILED]

    # ------------------------------------------------------------------
    # Per-unit scanning
    # ------------------------------------------------------------------

    def scan_unit(self, task: UnitTask) -> UnitResult:
        """Scan one unit; failures are logged and yield no facts."""
        try:
            if task.kind == MODULE:
                return self._scan_module(task)
            return self._scan_source(task)
        except FileAccessError as e:
            logger.warning(f"Access error for {task.path}: {e.reason}")
        except ModuleReadError as e:
            logger.warning(f"Module read error for {task.path}: {e.reason}")
        except Exception as e:
            logger.error(f"Unexpected error analyzing {task.path}: {e}")
        return _FAILED

    def _scan_source(self, task: UnitTask) -> UnitResult:
        text = read_unit_text(task.path, self.config.max_file_size_bytes)
        unit = SourceUnit(
            path=str(task.path),
            text=text,
            repository=task.repository,
            project=discovery.project_name_for(task.path, task.repo_root),
        )
        return self.scan_source_unit(unit, task.source_publishers)

    def scan_source_unit(self, unit: SourceUnit, with_publishers: bool = True) -> UnitResult:
        details = self.config.include_details
        result = UnitResult(
            events=self.events.extract(unit, details),
            consumers=self.consumers.extract(unit, details),
            subscriptions=self.subscriptions.extract(unit, details),
        )
        if with_publishers:
            result.publishers = self.source_publishers.extract(unit, details)
        logger.debug(f"Analyzed {unit.path}: {result.fact_count} facts")
        return result

    def _scan_module(self, task: UnitTask) -> UnitResult:
        text = read_unit_text(task.path, self.config.max_file_size_bytes)
        module = self.reader.parse(text, str(task.path), default_name=task.path.stem)
        publishers = self.bytecode_publishers.extract(
            module, task.repository, self.config.include_details
        )
        logger.debug(f"Analyzed module {module.name}: {len(publishers)} publishers")
        return UnitResult(publishers=publishers)


# Sentinel for a unit that failed; it is dropped before the merge
_FAILED = UnitResult()
