"""Gremlin (TinkerPop) graph script formatter for Flow Insight.

Emits ``g.addV`` / ``addE`` statements for repositories, services
(projects), events, publishers, consumers and subscriptions, followed by
a block of commented example queries. Every vertex carries a short
``displayName`` for graph viewers.
"""

import re
from typing import List, Tuple

from ..models import FlowReport
from .base import BaseFormatter

_NON_ID = re.compile(r"[^a-zA-Z0-9_]")
_MAX_ID_LENGTH = 250
_CAMEL_BOUNDARY = re.compile(r"(?<=[^A-Z])(?=[A-Z])")

_EXAMPLE_QUERIES = """\
// ===== USEFUL QUERIES =====

// Count all vertices by type
// g.V().groupCount().by(label)

// Show all events with their publishers and consumers
// g.V().hasLabel('IntegrationEvent').as('event')
//   .project('event', 'publishers', 'consumers')
//   .by('displayName')
//   .by(__.in('publishes').values('displayName').fold())
//   .by(__.in('consumes').values('displayName').fold())

// Find orphaned events (no publishers)
// g.V().hasLabel('IntegrationEvent').where(__.not(__.in('publishes'))).values('displayName')

// Find dead letter events (no consumers)
// g.V().hasLabel('IntegrationEvent').where(__.not(__.in('consumes'))).values('displayName')

// Find background-job components
// g.V().has('isBackgroundJob', true).project('type', 'name', 'event')
//   .by(label).by('displayName').by('eventName')
"""


def sanitize_id(value: str) -> str:
    """Vertex id from a free-form name: non-word characters become ``_``."""
    if not value:
        return "unknown"
    sanitized = _NON_ID.sub("_", value).strip("_")
    return sanitized[:_MAX_ID_LENGTH] or "unknown"


def escape(value: str) -> str:
    """Escape a value for a single-quoted Gremlin string."""
    if not value:
        return ""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _strip_prefix(value: str, prefixes: Tuple[str, ...]) -> str:
    lowered = value.lower()
    for prefix in prefixes:
        if lowered.startswith(prefix.lower()):
            return value[len(prefix):]
    return value


def _strip_suffix(value: str, suffixes: Tuple[str, ...]) -> str:
    lowered = value.lower()
    for suffix in suffixes:
        if lowered.endswith(suffix.lower()):
            return value[: len(value) - len(suffix)]
    return value


def split_camel_case(value: str) -> str:
    """``OrderPlaced`` -> ``Order Placed``; runs of capitals stay together."""
    return _CAMEL_BOUNDARY.sub(" ", value)


def repository_label(repository: str) -> str:
    label = _strip_prefix(repository, ("Company.", "Project.", "Repo.", "Repository."))
    if len(label) > 20 and "." in label:
        label = label.rsplit(".", 1)[-1]
    return f"📦 {label}"


def service_label(project: str, kind: str) -> str:
    label = _strip_suffix(project, (".Service", ".API", ".Web", ".Worker", ".Job", ".Background"))
    icon = "⚙️" if kind == "BackgroundService" else "🔧"
    return f"{icon} {label}"


def event_label(event_name: str) -> str:
    label = _strip_suffix(event_name, ("IntegrationEvent", "Event"))
    return f"📨 {split_camel_case(label)}"


def publisher_label(class_name: str, method_name: str, in_job: bool) -> str:
    label = _strip_suffix(class_name, ("Service", "Controller", "Handler", "Job", "Worker"))
    icon = "🔄" if in_job else "📤"
    return f"{icon} {label}.{method_name}()"


def consumer_label(handler_class: str, in_job: bool) -> str:
    label = _strip_suffix(handler_class, ("Handler",)).replace("IntegrationEvent", "")
    icon = "🔄" if in_job else "📥"
    return f"{icon} {label}"


def subscription_label(kind: str, project: str, in_job: bool) -> str:
    label = _strip_suffix(project, (".Service", ".API", ".Web", ".Worker"))
    icon = "🔄" if in_job else "🔗"
    return f"{icon} {label} ({kind})"


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _service_id(repository: str, project: str) -> str:
    return f"{sanitize_id(repository)}_{sanitize_id(project)}"


class GremlinFormatter(BaseFormatter):
    """Render the report as a Gremlin script for a TinkerPop graph database."""

    export_name = "message-flow-tinkerpop.gremlin"

    def render(self, report: FlowReport) -> None:
        print(self.format(report))

    def format(self, report: FlowReport) -> str:
        out: List[str] = [
            "// Message Flow Analysis - TinkerPop Gremlin Script",
            f"// Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}",
            f"// Repositories: {report.repository_count}, Events: {len(report.events)}, "
            f"Publishers: {len(report.publishers)}, Consumers: {len(report.consumers)}, "
            f"Subscriptions: {len(report.subscriptions)}",
            "",
            "// ===== CLEAR EXISTING DATA (OPTIONAL) =====",
            "// g.V().drop().iterate()",
            "",
        ]

        services = self._services(report)
        self._repositories(out, report)
        self._service_vertices(out, report, services)
        self._event_vertices(out, report)
        publisher_ids = self._publisher_vertices(out, report)
        consumer_ids = self._consumer_vertices(out, report)
        subscription_ids = self._subscription_vertices(out, report)

        out.append("// ===== ADD EDGES (RELATIONSHIPS) =====")
        for repository, project in services:
            out.append(self._edge(sanitize_id(repository), "contains", _service_id(repository, project)))
        for event in report.events:
            out.append(
                self._edge(_service_id(event.repository, event.project), "defines", sanitize_id(event.name))
            )
        for site, vertex_id in publisher_ids:
            out.append(self._edge(_service_id(site.repository, site.project), "hasPublisher", vertex_id))
            out.append(self._edge(vertex_id, "publishes", sanitize_id(site.event_name)))
        for site, vertex_id in consumer_ids:
            out.append(self._edge(_service_id(site.repository, site.project), "hasConsumer", vertex_id))
            out.append(self._edge(vertex_id, "consumes", sanitize_id(site.event_name)))
        for record, vertex_id in subscription_ids:
            out.append(
                self._edge(_service_id(record.repository, record.project), "hasSubscription", vertex_id)
            )
            out.append(self._edge(vertex_id, "subscribes", sanitize_id(record.event_name)))
        out.append("")

        out.append(_EXAMPLE_QUERIES)
        return "\n".join(out)

    # ── Vertices ───────────────────────────────────────────────

    @staticmethod
    def _vertex(label: str, vertex_id: str, properties: List[Tuple[str, str]]) -> List[str]:
        lines = [f"g.addV('{label}')", f"  .property(id, '{vertex_id}')"]
        lines.extend(f"  .property('{key}', {value})" for key, value in properties)
        lines.extend(["  .next()", ""])
        return lines

    @staticmethod
    def _edge(source: str, label: str, target: str) -> str:
        return f"g.V('{source}').addE('{label}').to(g.V('{target}')).next()"

    @staticmethod
    def _services(report: FlowReport) -> List[Tuple[str, str]]:
        pairs = {(f.repository, f.project) for f in report.events}
        pairs.update((f.repository, f.project) for f in report.publishers)
        pairs.update((f.repository, f.project) for f in report.consumers)
        pairs.update((f.repository, f.project) for f in report.subscriptions)
        return sorted(pairs)

    def _repositories(self, out: List[str], report: FlowReport) -> None:
        out.append("// ===== ADD REPOSITORY VERTICES =====")
        for repository in sorted({repo for repo, _ in self._services(report)}):
            out.extend(
                self._vertex(
                    "Repository",
                    sanitize_id(repository),
                    [
                        ("name", f"'{escape(repository)}'"),
                        ("displayName", f"'{escape(repository_label(repository))}'"),
                        ("type", "'Repository'"),
                    ],
                )
            )

    def _service_vertices(
        self, out: List[str], report: FlowReport, services: List[Tuple[str, str]]
    ) -> None:
        out.append("// ===== ADD SERVICE VERTICES =====")
        job_services = {(p.repository, p.project) for p in report.publishers if p.is_in_background_job}
        job_services.update((c.repository, c.project) for c in report.consumers if c.is_in_background_job)
        job_services.update(
            (s.repository, s.project) for s in report.subscriptions if s.is_in_background_job
        )

        for repository, project in services:
            kind = "BackgroundService" if (repository, project) in job_services else "Service"
            out.extend(
                self._vertex(
                    "Service",
                    _service_id(repository, project),
                    [
                        ("name", f"'{escape(project)}'"),
                        ("fullName", f"'{escape(repository)}/{escape(project)}'"),
                        ("displayName", f"'{escape(service_label(project, kind))}'"),
                        ("type", f"'{kind}'"),
                        ("repository", f"'{escape(repository)}'"),
                    ],
                )
            )

    def _event_vertices(self, out: List[str], report: FlowReport) -> None:
        out.append("// ===== ADD EVENT VERTICES =====")
        for event in sorted(report.events, key=lambda e: e.name):
            properties = [
                ("name", f"'{escape(event.name)}'"),
                ("fullName", f"'{escape(event.full_name)}'"),
                ("displayName", f"'{escape(event_label(event.name))}'"),
                ("repository", f"'{escape(event.repository)}'"),
                ("project", f"'{escape(event.project)}'"),
            ]
            if event.payload_class_name:
                properties.append(("messageDataClass", f"'{escape(event.payload_class_name)}'"))
            if event.properties:
                joined = ",".join(escape(p) for p in event.properties)
                properties.append(("properties", f"'{joined}'"))
            out.extend(self._vertex("IntegrationEvent", sanitize_id(event.name), properties))

    def _publisher_vertices(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== ADD PUBLISHER VERTICES =====")
        ordered = sorted(report.publishers, key=lambda p: (p.event_name, p.repository, p.class_name))
        ids = []
        for index, site in enumerate(ordered):
            vertex_id = (
                f"pub_{_service_id(site.repository, site.project)}_{sanitize_id(site.class_name)}_"
                f"{sanitize_id(site.method_name)}_{index}"
            )
            label = publisher_label(site.class_name, site.method_name, site.is_in_background_job)
            properties = [
                ("className", f"'{escape(site.class_name)}'"),
                ("methodName", f"'{escape(site.method_name)}'"),
                ("displayName", f"'{escape(label)}'"),
                ("repository", f"'{escape(site.repository)}'"),
                ("project", f"'{escape(site.project)}'"),
                ("lineNumber", str(site.position)),
                ("eventName", f"'{escape(site.event_name)}'"),
                ("isBackgroundJob", _bool(site.is_in_background_job)),
            ]
            if site.background_job_class_name:
                properties.append(("backgroundJobClass", f"'{escape(site.background_job_class_name)}'"))
            out.extend(self._vertex("Publisher", vertex_id, properties))
            ids.append((site, vertex_id))
        return ids

    def _consumer_vertices(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== ADD CONSUMER VERTICES =====")
        ordered = sorted(
            report.consumers, key=lambda c: (c.event_name, c.repository, c.handler_class_name)
        )
        ids = []
        for index, site in enumerate(ordered):
            handler = site.handler_class_name or "UnknownHandler"
            vertex_id = f"cons_{_service_id(site.repository, site.project)}_{sanitize_id(handler)}_{index}"
            label = consumer_label(handler, site.is_in_background_job)
            out.extend(
                self._vertex(
                    "Consumer",
                    vertex_id,
                    [
                        ("handlerClass", f"'{escape(handler)}'"),
                        ("handlerMethod", f"'{escape(site.handler_method_name)}'"),
                        ("displayName", f"'{escape(label)}'"),
                        ("repository", f"'{escape(site.repository)}'"),
                        ("project", f"'{escape(site.project)}'"),
                        ("eventName", f"'{escape(site.event_name)}'"),
                        ("isBackgroundJob", _bool(site.is_in_background_job)),
                    ],
                )
            )
            ids.append((site, vertex_id))
        return ids

    def _subscription_vertices(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== ADD SUBSCRIPTION VERTICES =====")
        ordered = sorted(
            report.subscriptions, key=lambda s: (s.event_name, s.repository, s.kind.value)
        )
        ids = []
        for index, record in enumerate(ordered):
            vertex_id = (
                f"sub_{_service_id(record.repository, record.project)}_"
                f"{sanitize_id(record.kind.value)}_{index}"
            )
            label = subscription_label(record.kind.value, record.project, record.is_in_background_job)
            out.extend(
                self._vertex(
                    "Subscription",
                    vertex_id,
                    [
                        ("subscriptionType", f"'{record.kind.value}'"),
                        ("displayName", f"'{escape(label)}'"),
                        ("repository", f"'{escape(record.repository)}'"),
                        ("project", f"'{escape(record.project)}'"),
                        ("lineNumber", str(record.position)),
                        ("eventName", f"'{escape(record.event_name)}'"),
                        ("isBackgroundJob", _bool(record.is_in_background_job)),
                    ],
                )
            )
            ids.append((record, vertex_id))
        return ids
