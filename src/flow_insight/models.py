"""Data models for Flow Insight"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SubscriptionKind(Enum):
    """How a subscription wires a handler to an event."""

    DEPENDENCY_REGISTRATION = "DependencyRegistration"
    EVENT_BUS_SUBSCRIPTION = "EventBusSubscription"


@dataclass(frozen=True)
class EventDefinition:
    """A declared event type found in source text"""

    name: str
    full_name: str
    origin_unit: str
    repository: str
    project: str
    properties: tuple[str, ...] = ()
    payload_class_name: Optional[str] = None
    standard_properties: tuple[str, ...] = ()


@dataclass(frozen=True)
class PublishSite:
    """A call that hands an event to a publisher.

    ``event_name`` is best effort and may be a placeholder such as
    ``Unknown(evt)`` or ``Unknown``.
    """

    event_name: str
    repository: str
    project: str
    origin_unit: str
    class_name: str
    method_name: str
    position: int
    context: Optional[str] = None
    is_in_background_job: bool = False
    background_job_class_name: Optional[str] = None


@dataclass(frozen=True)
class ConsumeSite:
    """A class implementing the handler interface for an event"""

    event_name: str
    repository: str
    project: str
    origin_unit: str
    handler_class_name: str
    handler_method_name: str = "Handle"
    is_in_background_job: bool = False
    handler_body: tuple[str, ...] = ()


@dataclass(frozen=True)
class SubscriptionRecord:
    """A registration or event-bus call wiring a handler to an event"""

    event_name: str
    repository: str
    project: str
    origin_unit: str
    kind: SubscriptionKind
    position: int
    context: Optional[str] = None
    is_in_background_job: bool = False


@dataclass
class UnitResult:
    """Facts extracted from a single unit (file or compiled module)."""

    events: list[EventDefinition] = field(default_factory=list)
    publishers: list[PublishSite] = field(default_factory=list)
    consumers: list[ConsumeSite] = field(default_factory=list)
    subscriptions: list[SubscriptionRecord] = field(default_factory=list)

    @property
    def fact_count(self) -> int:
        return len(self.events) + len(self.publishers) + len(self.consumers) + len(self.subscriptions)


@dataclass
class FlowReport:
    """All facts gathered across every scanned repository.

    Facts are appended during the merge and never changed afterwards;
    correlation is computed on read (see ``flow_insight.correlate``).
    """

    events: list[EventDefinition] = field(default_factory=list)
    publishers: list[PublishSite] = field(default_factory=list)
    consumers: list[ConsumeSite] = field(default_factory=list)
    subscriptions: list[SubscriptionRecord] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)
    repository_count: int = 0
    project_count: int = 0

    def merge(self, partial: UnitResult) -> None:
        """Append one unit's facts."""
        self.events.extend(partial.events)
        self.publishers.extend(partial.publishers)
        self.consumers.extend(partial.consumers)
        self.subscriptions.extend(partial.subscriptions)

    def to_dict(self) -> dict:
        return {
            "events": [asdict(e) for e in self.events],
            "publishers": [asdict(p) for p in self.publishers],
            "consumers": [asdict(c) for c in self.consumers],
            "subscriptions": [
                {**asdict(s), "kind": s.kind.value} for s in self.subscriptions
            ],
            "generated_at": self.generated_at.isoformat(),
            "repository_count": self.repository_count,
            "project_count": self.project_count,
        }
