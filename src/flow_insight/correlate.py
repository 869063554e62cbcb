"""Cross-referencing of extracted facts.

Nothing here mutates a FlowReport. Event names on facts are free-form, so
facts are tied to events by fuzzy name matching at read time:

- definition view: case-insensitive equality, or the fact's name
  containing the definition's name (case-sensitive, one direction only);
- matrix view: case-insensitive containment, for every distinct name seen
  on definitions and facts.

Containment means a definition ``Order`` is matched by a publisher of
``OrderCancelled``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Dict, List

from .models import ConsumeSite, EventDefinition, FlowReport, PublishSite, SubscriptionRecord


def matches_definition(fact_event_name: str, definition_name: str) -> bool:
    """Definition-view match of a fact's event name against an event definition."""
    if fact_event_name.lower() == definition_name.lower():
        return True
    return definition_name in fact_event_name


def matches_name(fact_event_name: str, event_name: str) -> bool:
    """Matrix-view match: case-insensitive containment."""
    return event_name.lower() in fact_event_name.lower()


@dataclass(frozen=True)
class EventFlow:
    """One event definition with the facts that fuzzy-match it."""

    event: EventDefinition
    publishers: tuple[PublishSite, ...] = ()
    consumers: tuple[ConsumeSite, ...] = ()
    subscriptions: tuple[SubscriptionRecord, ...] = ()

    @property
    def orphaned(self) -> bool:
        """No publisher found."""
        return not self.publishers

    @property
    def dead_letter(self) -> bool:
        """No consumer found."""
        return not self.consumers


@dataclass(frozen=True)
class MatrixRow:
    """Publishers and consumers of one distinct event name."""

    event_name: str
    publishers: tuple[PublishSite, ...] = ()
    consumers: tuple[ConsumeSite, ...] = ()

    @property
    def orphaned(self) -> bool:
        return not self.publishers

    @property
    def dead_letter(self) -> bool:
        return not self.consumers

    @property
    def is_empty(self) -> bool:
        return not self.publishers and not self.consumers


def correlate(report: FlowReport) -> List[EventFlow]:
    """Cross-reference every event definition, ordered by event name."""
    flows = []
    for event in sorted(report.events, key=lambda e: e.name):
        flows.append(
            EventFlow(
                event=event,
                publishers=tuple(
                    p for p in report.publishers if matches_definition(p.event_name, event.name)
                ),
                consumers=tuple(
                    c for c in report.consumers if matches_definition(c.event_name, event.name)
                ),
                subscriptions=tuple(
                    s for s in report.subscriptions if matches_definition(s.event_name, event.name)
                ),
            )
        )
    return flows


def orphaned_events(report: FlowReport) -> List[EventDefinition]:
    return [flow.event for flow in correlate(report) if flow.orphaned]


def dead_letter_events(report: FlowReport) -> List[EventDefinition]:
    return [flow.event for flow in correlate(report) if flow.dead_letter]


def event_names(report: FlowReport) -> List[str]:
    """Distinct event names across definitions and all fact kinds, sorted."""
    names = {e.name for e in report.events}
    names.update(p.event_name for p in report.publishers)
    names.update(c.event_name for c in report.consumers)
    names.update(s.event_name for s in report.subscriptions)
    return sorted(names)


def matrix(report: FlowReport) -> List[MatrixRow]:
    """Publisher/consumer cross-reference for every distinct event name.

    Rows with neither publishers nor consumers are included; callers
    that only want flows can skip rows where ``is_empty`` is true.
    """
    return [
        MatrixRow(
            event_name=name,
            publishers=tuple(p for p in report.publishers if matches_name(p.event_name, name)),
            consumers=tuple(c for c in report.consumers if matches_name(c.event_name, name)),
        )
        for name in event_names(report)
    ]


def filter_background_jobs(report: FlowReport) -> FlowReport:
    """Copy of ``report`` keeping only publish and consume sites in job code.

    Event definitions and subscriptions are kept as they are.
    """
    return dataclasses.replace(
        report,
        events=list(report.events),
        publishers=[p for p in report.publishers if p.is_in_background_job],
        consumers=[c for c in report.consumers if c.is_in_background_job],
        subscriptions=list(report.subscriptions),
    )


@dataclass(frozen=True)
class BackgroundJobSummary:
    """Job-code publishers and consumers grouped by event name, in report order."""

    publishers: Dict[str, List[PublishSite]]
    consumers: Dict[str, List[ConsumeSite]]

    @property
    def publisher_count(self) -> int:
        return sum(len(v) for v in self.publishers.values())

    @property
    def consumer_count(self) -> int:
        return sum(len(v) for v in self.consumers.values())

    @property
    def is_empty(self) -> bool:
        return not self.publishers and not self.consumers


def background_job_summary(report: FlowReport) -> BackgroundJobSummary:
    publishers: Dict[str, List[PublishSite]] = {}
    for p in report.publishers:
        if p.is_in_background_job:
            publishers.setdefault(p.event_name, []).append(p)

    consumers: Dict[str, List[ConsumeSite]] = {}
    for c in report.consumers:
        if c.is_in_background_job:
            consumers.setdefault(c.event_name, []).append(c)

    return BackgroundJobSummary(publishers=publishers, consumers=consumers)
