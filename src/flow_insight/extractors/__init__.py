"""Fact extractors for source units"""

from .base import BaseExtractor
from .consumers import ConsumerExtractor
from .events import EventDefinitionExtractor
from .publishers import SourcePublisherExtractor, unresolved_event_name
from .subscriptions import SubscriptionExtractor

__all__ = [
    "BaseExtractor",
    "ConsumerExtractor",
    "EventDefinitionExtractor",
    "SourcePublisherExtractor",
    "SubscriptionExtractor",
    "unresolved_event_name",
]
