"""ArangoDB AQL script formatter for Flow Insight.

Emits collection setup, one ``INSERT ... OPTIONS { overwrite: true }``
document per repository, service, event, publisher, consumer and
subscription, the edge documents between them, and commented example
queries. Document keys follow the same ordering as the Gremlin script so
both exports of one report line up.
"""

import re
from typing import List, Tuple

from ..models import FlowReport
from .base import BaseFormatter

_NON_KEY = re.compile(r"[^a-zA-Z0-9_\-]")
_MAX_KEY_LENGTH = 250

_DOCUMENT_COLLECTIONS = ("repositories", "services", "events", "publishers", "consumers", "subscriptions")

_EDGE_COLLECTIONS = (
    ("contains", "Repository -> Service"),
    ("defines", "Service -> Event"),
    ("publishes", "Publisher -> Event"),
    ("consumes", "Consumer -> Event"),
    ("subscribes", "Subscription -> Event"),
    ("hasPublisher", "Service -> Publisher"),
    ("hasConsumer", "Service -> Consumer"),
    ("hasSubscription", "Service -> Subscription"),
)

_EXAMPLE_QUERIES = """\
// ===== USEFUL QUERIES =====

// Show all events with their publishers and consumers
// FOR event IN events
//     LET publishers = (FOR pub IN publishers FILTER pub.eventName == event.name
//         RETURN CONCAT(pub.className, '.', pub.methodName))
//     LET consumers = (FOR cons IN consumers FILTER cons.eventName == event.name
//         RETURN cons.handlerClass)
//     RETURN { event: event.name, publishers: publishers, consumers: consumers }

// Find message flow paths between services
// FOR publisherService IN services
//     FOR publisher IN 1..1 OUTBOUND publisherService hasPublisher
//         FOR event IN 1..1 OUTBOUND publisher publishes
//             FOR consumer IN 1..1 INBOUND event consumes
//                 FOR consumerService IN 1..1 INBOUND consumer hasConsumer
//                     FILTER publisherService._id != consumerService._id
//                     RETURN { from: publisherService.fullName, event: event.name, to: consumerService.fullName }

// Find orphaned events (no publishers)
// FOR event IN events
//     FILTER LENGTH(FOR pub IN publishers FILTER pub.eventName == event.name RETURN 1) == 0
//     RETURN { orphanedEvent: event.name }

// Find dead letter events (no consumers)
// FOR event IN events
//     FILTER LENGTH(FOR cons IN consumers FILTER cons.eventName == event.name RETURN 1) == 0
//     RETURN { deadLetterEvent: event.name }

// Find background-job components
// FOR doc IN UNION(
//     (FOR pub IN publishers FILTER pub.isBackgroundJob == true RETURN pub),
//     (FOR cons IN consumers FILTER cons.isBackgroundJob == true RETURN cons),
//     (FOR sub IN subscriptions FILTER sub.isBackgroundJob == true RETURN sub)
// )
// RETURN doc

// Create a graph for visualization (run this after all inserts)
// var graph_module = require('@arangodb/general-graph');
// graph_module._create('MessageFlowGraph', [
//   graph_module._relation('contains', ['repositories'], ['services']),
//   graph_module._relation('defines', ['services'], ['events']),
//   graph_module._relation('publishes', ['publishers'], ['events']),
//   graph_module._relation('consumes', ['consumers'], ['events']),
//   graph_module._relation('subscribes', ['subscriptions'], ['events']),
//   graph_module._relation('hasPublisher', ['services'], ['publishers']),
//   graph_module._relation('hasConsumer', ['services'], ['consumers']),
//   graph_module._relation('hasSubscription', ['services'], ['subscriptions'])
// ]);
"""


def sanitize_key(value: str) -> str:
    """Document key: letters, digits, ``_`` and ``-`` only, never digit-led."""
    if not value:
        return "unknown"
    sanitized = _NON_KEY.sub("_", value).strip("_")
    if not sanitized:
        return "unknown"
    if sanitized[0].isdigit():
        sanitized = "k_" + sanitized
    return sanitized[:_MAX_KEY_LENGTH]


def escape(value: str) -> str:
    """Escape a value for a double-quoted AQL string."""
    if not value:
        return ""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _string(value: str) -> str:
    return f'"{escape(value)}"'


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _service_key(repository: str, project: str) -> str:
    return f"{sanitize_key(repository)}_{sanitize_key(project)}"


class ArangoFormatter(BaseFormatter):
    """Render the report as an AQL script for an ArangoDB graph."""

    export_name = "message-flow-arango.aql"

    def render(self, report: FlowReport) -> None:
        print(self.format(report))

    def format(self, report: FlowReport) -> str:
        out: List[str] = [
            "// Message Flow Analysis - ArangoDB AQL Script",
            f"// Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}",
            f"// Repositories: {report.repository_count}, Events: {len(report.events)}, "
            f"Publishers: {len(report.publishers)}, Consumers: {len(report.consumers)}, "
            f"Subscriptions: {len(report.subscriptions)}",
            "",
            "// ===== CREATE COLLECTIONS =====",
        ]
        out.extend(f"db._createDocumentCollection('{name}');" for name in _DOCUMENT_COLLECTIONS)
        out.extend(
            f"db._createEdgeCollection('{name}');  // {note}" for name, note in _EDGE_COLLECTIONS
        )
        out.append("")
        out.append("// ===== CLEAR EXISTING DATA (OPTIONAL) =====")
        names = list(_DOCUMENT_COLLECTIONS) + [name for name, _ in _EDGE_COLLECTIONS]
        out.extend(f"// FOR doc IN {name} REMOVE doc IN {name}" for name in names)
        out.append("")

        services = self._services(report)
        self._repositories(out, services)
        self._service_documents(out, report, services)
        self._event_documents(out, report)
        publisher_keys = self._publisher_documents(out, report)
        consumer_keys = self._consumer_documents(out, report)
        subscription_keys = self._subscription_documents(out, report)

        out.append("// ===== CREATE RELATIONSHIPS (EDGES) =====")
        for repository, project in services:
            out.append(
                self._edge(
                    f"repositories/{sanitize_key(repository)}",
                    "contains",
                    f"services/{_service_key(repository, project)}",
                )
            )
        for event in report.events:
            out.append(
                self._edge(
                    f"services/{_service_key(event.repository, event.project)}",
                    "defines",
                    f"events/{sanitize_key(event.name)}",
                )
            )
        for collection, keyed, service_edge, event_edge in (
            ("publishers", publisher_keys, "hasPublisher", "publishes"),
            ("consumers", consumer_keys, "hasConsumer", "consumes"),
            ("subscriptions", subscription_keys, "hasSubscription", "subscribes"),
        ):
            for fact, key in keyed:
                service = f"services/{_service_key(fact.repository, fact.project)}"
                out.append(self._edge(service, service_edge, f"{collection}/{key}"))
                out.append(
                    self._edge(f"{collection}/{key}", event_edge, f"events/{sanitize_key(fact.event_name)}")
                )
        out.append("")

        out.append(_EXAMPLE_QUERIES)
        return "\n".join(out)

    @staticmethod
    def _document(collection: str, key: str, fields: List[Tuple[str, str]]) -> List[str]:
        body = [f'    _key: "{key}"'] + [f"    {name}: {value}" for name, value in fields]
        return ["INSERT {", ",\n".join(body), f"}} INTO {collection} OPTIONS {{ overwrite: true }};", ""]

    @staticmethod
    def _edge(source: str, collection: str, target: str) -> str:
        return (
            f'INSERT {{ _from: "{source}", _to: "{target}" }} '
            f"INTO {collection} OPTIONS {{ overwrite: true }};"
        )

    @staticmethod
    def _services(report: FlowReport) -> List[Tuple[str, str]]:
        pairs = {(f.repository, f.project) for f in report.events}
        pairs.update((f.repository, f.project) for f in report.publishers)
        pairs.update((f.repository, f.project) for f in report.consumers)
        pairs.update((f.repository, f.project) for f in report.subscriptions)
        return sorted(pairs)

    def _repositories(self, out: List[str], services: List[Tuple[str, str]]) -> None:
        out.append("// ===== INSERT REPOSITORIES =====")
        for repository in sorted({repo for repo, _ in services}):
            out.extend(
                self._document(
                    "repositories",
                    sanitize_key(repository),
                    [("name", _string(repository)), ("type", '"Repository"')],
                )
            )

    def _service_documents(
        self, out: List[str], report: FlowReport, services: List[Tuple[str, str]]
    ) -> None:
        out.append("// ===== INSERT SERVICES =====")
        job_services = {(p.repository, p.project) for p in report.publishers if p.is_in_background_job}
        job_services.update((c.repository, c.project) for c in report.consumers if c.is_in_background_job)
        job_services.update(
            (s.repository, s.project) for s in report.subscriptions if s.is_in_background_job
        )

        for repository, project in services:
            kind = "Background" if (repository, project) in job_services else "Service"
            out.extend(
                self._document(
                    "services",
                    _service_key(repository, project),
                    [
                        ("name", _string(project)),
                        ("fullName", f'"{escape(repository)}/{escape(project)}"'),
                        ("type", f'"{kind}"'),
                        ("repository", _string(repository)),
                    ],
                )
            )

    def _event_documents(self, out: List[str], report: FlowReport) -> None:
        out.append("// ===== INSERT EVENTS =====")
        for event in sorted(report.events, key=lambda e: e.name):
            fields = [
                ("name", _string(event.name)),
                ("fullName", _string(event.full_name)),
                ("repository", _string(event.repository)),
                ("project", _string(event.project)),
                ("type", '"IntegrationEvent"'),
            ]
            if event.payload_class_name:
                fields.append(("messageDataClass", _string(event.payload_class_name)))
            if event.properties:
                fields.append(("properties", "[" + ", ".join(_string(p) for p in event.properties) + "]"))
            out.extend(self._document("events", sanitize_key(event.name), fields))

    def _publisher_documents(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== INSERT PUBLISHERS =====")
        ordered = sorted(report.publishers, key=lambda p: (p.event_name, p.repository, p.class_name))
        keys = []
        for index, site in enumerate(ordered):
            key = (
                f"pub_{_service_key(site.repository, site.project)}_{sanitize_key(site.class_name)}_"
                f"{sanitize_key(site.method_name)}_{index}"
            )
            fields = [
                ("className", _string(site.class_name)),
                ("methodName", _string(site.method_name)),
                ("repository", _string(site.repository)),
                ("project", _string(site.project)),
                ("lineNumber", str(site.position)),
                ("eventName", _string(site.event_name)),
                ("isBackgroundJob", _bool(site.is_in_background_job)),
            ]
            if site.background_job_class_name:
                fields.append(("backgroundJobClass", _string(site.background_job_class_name)))
            out.extend(self._document("publishers", key, fields))
            keys.append((site, key))
        return keys

    def _consumer_documents(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== INSERT CONSUMERS =====")
        ordered = sorted(
            report.consumers, key=lambda c: (c.event_name, c.repository, c.handler_class_name)
        )
        keys = []
        for index, site in enumerate(ordered):
            handler = site.handler_class_name or "UnknownHandler"
            key = f"cons_{_service_key(site.repository, site.project)}_{sanitize_key(handler)}_{index}"
            out.extend(
                self._document(
                    "consumers",
                    key,
                    [
                        ("handlerClass", _string(handler)),
                        ("handlerMethod", _string(site.handler_method_name)),
                        ("repository", _string(site.repository)),
                        ("project", _string(site.project)),
                        ("eventName", _string(site.event_name)),
                        ("isBackgroundJob", _bool(site.is_in_background_job)),
                    ],
                )
            )
            keys.append((site, key))
        return keys

    def _subscription_documents(self, out: List[str], report: FlowReport) -> list:
        out.append("// ===== INSERT SUBSCRIPTIONS =====")
        ordered = sorted(
            report.subscriptions, key=lambda s: (s.event_name, s.repository, s.kind.value)
        )
        keys = []
        for index, record in enumerate(ordered):
            key = (
                f"sub_{_service_key(record.repository, record.project)}_"
                f"{sanitize_key(record.kind.value)}_{index}"
            )
            out.extend(
                self._document(
                    "subscriptions",
                    key,
                    [
                        ("subscriptionType", _string(record.kind.value)),
                        ("repository", _string(record.repository)),
                        ("project", _string(record.project)),
                        ("lineNumber", str(record.position)),
                        ("eventName", _string(record.event_name)),
                        ("isBackgroundJob", _bool(record.is_in_background_job)),
                    ],
                )
            )
            keys.append((record, key))
        return keys
