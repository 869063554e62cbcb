"""
Flow Insight - Message Flow Analysis for .NET repositories

Extracts integration-event definitions, publish sites, handlers and
subscriptions from source files and compiled IL listings, then
cross-references them to surface orphaned and dead-letter events.
"""

__version__ = "0.1.0"

from .api import analyze
from .correlate import EventFlow, correlate, filter_background_jobs, matrix
from .models import (
    ConsumeSite,
    EventDefinition,
    FlowReport,
    PublishSite,
    SubscriptionKind,
    SubscriptionRecord,
)

__all__ = [
    "analyze",  # Main entry point
    "correlate",
    "matrix",
    "filter_background_jobs",
    "EventFlow",
    "FlowReport",
    "EventDefinition",
    "PublishSite",
    "ConsumeSite",
    "SubscriptionRecord",
    "SubscriptionKind",
]
