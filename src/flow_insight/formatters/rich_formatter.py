"""Rich terminal formatter for Flow Insight."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..correlate import background_job_summary, correlate, matrix
from ..models import FlowReport
from .base import BaseFormatter

_JOB_TAG = " [magenta]\\[JOB][/magenta]"


def _job(flag: bool) -> str:
    return _JOB_TAG if flag else ""


class RichFormatter(BaseFormatter):
    """Summary panel, per-event flows, publisher/consumer matrix and job section."""

    def __init__(self, console: Optional[Console] = None, show_matrix: bool = True):
        self.console = console or Console(stderr=True)
        self.show_matrix = show_matrix

    def render(self, report: FlowReport) -> None:
        self._print_summary(report)
        self._print_flows(report)
        if self.show_matrix:
            self._print_matrix(report)
        self._print_background_jobs(report)

    def format(self, report: FlowReport) -> str:
        with self.console.capture() as capture:
            self.render(report)
        return capture.get()

    def _print_summary(self, report: FlowReport) -> None:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column(justify="right")
        table.add_row("Repositories scanned", str(report.repository_count))
        table.add_row("Projects scanned", str(report.project_count))
        table.add_row("Integration events", str(len(report.events)))
        table.add_row("Publishers", str(len(report.publishers)))
        table.add_row("Consumers", str(len(report.consumers)))
        table.add_row("Subscriptions", str(len(report.subscriptions)))

        self.console.print()
        self.console.print(
            Panel(table, title="[bold cyan]MESSAGE FLOW ANALYSIS[/bold cyan]", expand=False)
        )
        self.console.print()

    def _print_flows(self, report: FlowReport) -> None:
        for flow in correlate(report):
            event = flow.event
            self.console.print(f"[bold cyan]\\[EVENT][/bold cyan] [bold]{event.name}[/bold]")
            self.console.print(f"   Repository: {event.repository}")
            self.console.print(f"   Project: {event.project}")
            if event.payload_class_name:
                self.console.print(f"   Message Data Class: {event.payload_class_name}")

            if flow.publishers:
                self.console.print("   [green]Published by:[/green]")
                for p in flow.publishers:
                    self.console.print(
                        f"      - {p.repository}/{p.project} - {p.class_name}.{p.method_name}()"
                        f"{_job(p.is_in_background_job)}"
                    )
            else:
                self.console.print("   [red]Published by: *** NO PUBLISHERS FOUND ***[/red]")

            if flow.consumers:
                self.console.print("   [green]Consumed by:[/green]")
                for c in flow.consumers:
                    handler = c.handler_class_name or "Unknown Handler"
                    self.console.print(
                        f"      - {c.repository}/{c.project} - {handler}{_job(c.is_in_background_job)}"
                    )
            else:
                self.console.print("   [red]Consumed by: *** NO CONSUMERS FOUND ***[/red]")

            if flow.subscriptions:
                self.console.print("   Subscriptions:")
                for s in flow.subscriptions:
                    self.console.print(
                        f"      - {s.repository}/{s.project} - {s.kind.value}"
                        f"{_job(s.is_in_background_job)}"
                    )
            self.console.print()

    def _print_matrix(self, report: FlowReport) -> None:
        rows = [row for row in matrix(report) if not row.is_empty]
        if not rows:
            return

        self.console.print("[bold]PUBLISHER-CONSUMER MATRIX[/bold]")
        self.console.print("[dim]" + "=" * 80 + "[/dim]")
        for row in rows:
            self.console.print(f"\n[bold cyan]\\[FLOW][/bold cyan] {row.event_name}:")

            if row.publishers:
                self.console.print(f"   Publishers ({len(row.publishers)}):")
                for repository in _in_order(p.repository for p in row.publishers):
                    self.console.print(f"      Repository: {repository}")
                    for p in row.publishers:
                        if p.repository == repository:
                            self.console.print(
                                f"         - {p.project}/{p.class_name}.{p.method_name}()"
                                f"{_job(p.is_in_background_job)}"
                            )

            if row.consumers:
                self.console.print(f"   Consumers ({len(row.consumers)}):")
                for repository in _in_order(c.repository for c in row.consumers):
                    self.console.print(f"      Repository: {repository}")
                    for c in row.consumers:
                        if c.repository == repository:
                            handler = c.handler_class_name or "Unknown Handler"
                            self.console.print(
                                f"         - {c.project}/{handler}{_job(c.is_in_background_job)}"
                            )

            if row.orphaned:
                self.console.print("   [yellow]WARNING: No publishers found - orphaned event?[/yellow]")
            if row.dead_letter:
                self.console.print("   [yellow]WARNING: No consumers found - dead letter?[/yellow]")
        self.console.print()

    def _print_background_jobs(self, report: FlowReport) -> None:
        summary = background_job_summary(report)

        self.console.print("[bold]BACKGROUND JOB MESSAGE ANALYSIS[/bold]")
        self.console.print("[dim]" + "=" * 80 + "[/dim]")
        self.console.print(f"Background job publishers: {summary.publisher_count}")
        self.console.print(f"Background job consumers: {summary.consumer_count}")

        if summary.is_empty:
            self.console.print("[dim]No background-job message flows detected[/dim]")
            return

        for event_name, sites in summary.publishers.items():
            self.console.print(f"   Event: {event_name}")
            for p in sites:
                self.console.print(
                    f"      - {p.repository}/{p.project} - {p.background_job_class_name or p.class_name}"
                )
        for event_name, consumers in summary.consumers.items():
            self.console.print(f"   Event: {event_name}")
            for c in consumers:
                self.console.print(
                    f"      - {c.repository}/{c.project} - {c.handler_class_name or 'Unknown Handler'}"
                )


def _in_order(values) -> list:
    """Distinct values in first-seen order."""
    return list(dict.fromkeys(values))
