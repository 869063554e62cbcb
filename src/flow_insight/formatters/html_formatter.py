"""Self-contained HTML report for Flow Insight.

The page carries its own stylesheet and no scripts, so it can be opened
from any local file:// path or attached to a ticket as-is.
"""

from html import escape
from typing import List

from ..correlate import background_job_summary, correlate, matrix
from ..models import FlowReport
from .base import BaseFormatter

_STYLE = """\
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 20px; background-color: #f5f5f5; }
.container { max-width: 1200px; margin: 0 auto; background-color: white; padding: 30px; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
h1 { color: #2c3e50; border-bottom: 3px solid #3498db; padding-bottom: 10px; }
h2 { color: #34495e; border-left: 4px solid #3498db; padding-left: 15px; margin-top: 30px; }
.summary { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 20px; border-radius: 8px; margin: 20px 0; }
.summary-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(160px, 1fr)); gap: 15px; }
.summary-item { text-align: center; }
.summary-number { font-size: 2em; font-weight: bold; display: block; }
.event-card, .flow-item { border: 1px solid #ddd; border-radius: 8px; margin: 15px 0; padding: 20px; background: #fafafa; }
.event-title { font-size: 1.2em; font-weight: bold; color: #2c3e50; margin-bottom: 10px; }
.event-info { margin: 8px 0; color: #555; }
.publishers h4 { color: #27ae60; margin: 10px 0 5px 0; }
.consumers h4 { color: #e74c3c; margin: 10px 0 5px 0; }
.publisher-item, .consumer-item, .subscription-item { background: white; border-left: 4px solid #27ae60; padding: 10px; margin: 5px 0; border-radius: 4px; }
.consumer-item { border-left-color: #e74c3c; }
.subscription-item { border-left-color: #8e44ad; }
.job { background-color: #f39c12; color: white; padding: 2px 8px; border-radius: 4px; font-size: 0.8em; margin-left: 8px; }
.warning { color: #e74c3c; font-weight: bold; padding: 10px; background: #fdf2f2; border-radius: 4px; margin: 10px 0; }
.toc { background: #ecf0f1; padding: 20px; border-radius: 8px; margin: 20px 0; }
.toc a { text-decoration: none; color: #3498db; }
.timestamp { color: #7f8c8d; font-size: 0.9em; text-align: right; margin-top: 20px; }
.repo-title { color: #8e44ad; font-weight: bold; margin: 10px 0 5px 0; }"""

_JOB_TAG = '<span class="job">JOB</span>'


def _job(flag: bool) -> str:
    return _JOB_TAG if flag else ""


def _warning(text: str) -> str:
    return f'<div class="warning">{escape(text)}</div>'


class HtmlFormatter(BaseFormatter):
    """Summary, per-event cards, publisher/consumer matrix and job section as one page."""

    export_name = "message-flow-analysis.html"

    def render(self, report: FlowReport) -> None:
        print(self.format(report))

    def format(self, report: FlowReport) -> str:
        body = "\n".join(
            [
                "<h1>Message Flow Analysis Report</h1>",
                f'<div class="timestamp">Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}</div>',
                self._summary(report),
                '<div class="toc"><h3>Table of Contents</h3><ul>'
                '<li><a href="#events">Integration Events</a></li>'
                '<li><a href="#matrix">Publisher-Consumer Matrix</a></li>'
                '<li><a href="#jobs">Background Job Analysis</a></li>'
                "</ul></div>",
                self._events(report),
                self._matrix(report),
                self._background_jobs(report),
            ]
        )
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Message Flow Analysis Report</title>
<style>
{_STYLE}
</style>
</head>
<body>
<div class="container">
{body}
</div>
</body>
</html>
"""

    @staticmethod
    def _summary(report: FlowReport) -> str:
        counts = [
            (report.repository_count, "Repositories"),
            (report.project_count, "Projects"),
            (len(report.events), "Events"),
            (len(report.publishers), "Publishers"),
            (len(report.consumers), "Consumers"),
            (len(report.subscriptions), "Subscriptions"),
        ]
        items = "".join(
            f'<div class="summary-item"><span class="summary-number">{count}</span>{label}</div>'
            for count, label in counts
        )
        return f'<div class="summary"><h2>Summary</h2><div class="summary-grid">{items}</div></div>'

    @staticmethod
    def _events(report: FlowReport) -> str:
        parts: List[str] = ['<h2 id="events">Integration Events</h2>']
        for flow in correlate(report):
            event = flow.event
            parts.append('<div class="event-card">')
            parts.append(f'<div class="event-title">{escape(event.name)}</div>')
            parts.append(f'<div class="event-info"><strong>Repository:</strong> {escape(event.repository)}</div>')
            parts.append(f'<div class="event-info"><strong>Project:</strong> {escape(event.project)}</div>')
            if event.payload_class_name:
                parts.append(
                    '<div class="event-info"><strong>Message Data Class:</strong> '
                    f"{escape(event.payload_class_name)}</div>"
                )

            parts.append('<div class="publishers">')
            if flow.publishers:
                parts.append(f"<h4>Published by ({len(flow.publishers)})</h4>")
                for p in flow.publishers:
                    parts.append(
                        f'<div class="publisher-item">{escape(p.repository)}/{escape(p.project)} - '
                        f"{escape(p.class_name)}.{escape(p.method_name)}(){_job(p.is_in_background_job)}</div>"
                    )
            else:
                parts.append(_warning("No publishers found"))
            parts.append("</div>")

            parts.append('<div class="consumers">')
            if flow.consumers:
                parts.append(f"<h4>Consumed by ({len(flow.consumers)})</h4>")
                for c in flow.consumers:
                    handler = c.handler_class_name or "Unknown Handler"
                    parts.append(
                        f'<div class="consumer-item">{escape(c.repository)}/{escape(c.project)} - '
                        f"{escape(handler)}{_job(c.is_in_background_job)}</div>"
                    )
            else:
                parts.append(_warning("No consumers found"))
            parts.append("</div>")

            for s in flow.subscriptions:
                parts.append(
                    f'<div class="subscription-item">{escape(s.repository)}/{escape(s.project)} - '
                    f"{s.kind.value}{_job(s.is_in_background_job)}</div>"
                )
            parts.append("</div>")
        return "\n".join(parts)

    @staticmethod
    def _matrix(report: FlowReport) -> str:
        parts: List[str] = ['<h2 id="matrix">Publisher-Consumer Matrix</h2>']
        for row in matrix(report):
            if row.is_empty:
                continue
            parts.append('<div class="flow-item">')
            parts.append(f'<div class="event-title">{escape(row.event_name)}</div>')
            if row.publishers:
                parts.append(f"<h4>Publishers ({len(row.publishers)})</h4>")
                for repository in dict.fromkeys(p.repository for p in row.publishers):
                    parts.append(f'<div class="repo-title">{escape(repository)}</div>')
                    for p in row.publishers:
                        if p.repository == repository:
                            parts.append(
                                f'<div class="publisher-item">{escape(p.project)}/{escape(p.class_name)}.'
                                f"{escape(p.method_name)}(){_job(p.is_in_background_job)}</div>"
                            )
            if row.consumers:
                parts.append(f"<h4>Consumers ({len(row.consumers)})</h4>")
                for repository in dict.fromkeys(c.repository for c in row.consumers):
                    parts.append(f'<div class="repo-title">{escape(repository)}</div>')
                    for c in row.consumers:
                        if c.repository == repository:
                            handler = c.handler_class_name or "Unknown Handler"
                            parts.append(
                                f'<div class="consumer-item">{escape(c.project)}/{escape(handler)}'
                                f"{_job(c.is_in_background_job)}</div>"
                            )
            if row.orphaned:
                parts.append(_warning("No publishers found - orphaned event?"))
            if row.dead_letter:
                parts.append(_warning("No consumers found - dead letter?"))
            parts.append("</div>")
        return "\n".join(parts)

    @staticmethod
    def _background_jobs(report: FlowReport) -> str:
        summary = background_job_summary(report)
        parts: List[str] = [
            '<h2 id="jobs">Background Job Analysis</h2>',
            f'<div class="event-info">Background job publishers: {summary.publisher_count}</div>',
            f'<div class="event-info">Background job consumers: {summary.consumer_count}</div>',
        ]
        if summary.is_empty:
            parts.append('<div class="event-info">No background-job message flows detected</div>')
            return "\n".join(parts)

        for event_name, sites in summary.publishers.items():
            parts.append(f'<div class="repo-title">{escape(event_name)}</div>')
            for p in sites:
                job_class = p.background_job_class_name or p.class_name
                parts.append(
                    f'<div class="publisher-item">{escape(p.repository)}/{escape(p.project)} - '
                    f"{escape(job_class)}</div>"
                )
        for event_name, consumers in summary.consumers.items():
            parts.append(f'<div class="repo-title">{escape(event_name)}</div>')
            for c in consumers:
                parts.append(
                    f'<div class="consumer-item">{escape(c.repository)}/{escape(c.project)} - '
                    f"{escape(c.handler_class_name or 'Unknown Handler')}</div>"
                )
        return "\n".join(parts)
