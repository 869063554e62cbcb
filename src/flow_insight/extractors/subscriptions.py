"""Subscription extractor: DI registrations and event-bus subscriptions"""

import re
from typing import List

from ..models import SubscriptionKind, SubscriptionRecord
from ..scanning import SourceUnit, code_context, scan_lines
from .base import BaseExtractor


class SubscriptionExtractor(BaseExtractor):
    """Finds calls that wire a handler or listener to an event type."""

    def __init__(self, indicators=None, limits=None):
        super().__init__(indicators, limits)
        ind = self.indicators
        lifetimes = "|".join(re.escape(m) for m in ind.registration_lifetimes)
        subscribes = "|".join(
            re.escape(m) for m in sorted(ind.subscribe_method_names, key=len, reverse=True)
        )

        self._patterns = (
            (
                re.compile(
                    rf"\.(?:{lifetimes})<\s*{re.escape(ind.handler_interface)}<(\w+)>",
                    re.IGNORECASE,
                ),
                SubscriptionKind.DEPENDENCY_REGISTRATION,
            ),
            (
                re.compile(rf"\.(?:{subscribes})<\s*(\w+)\s*[,>]", re.IGNORECASE),
                SubscriptionKind.EVENT_BUS_SUBSCRIPTION,
            ),
        )

    def extract(self, unit: SourceUnit, include_details: bool = False) -> List[SubscriptionRecord]:
        subscriptions: List[SubscriptionRecord] = []
        lines = unit.lines
        in_job = self._is_background_job(unit)

        for i, line, _ in scan_lines(lines):
            for pattern, kind in self._patterns:
                match = pattern.search(line)
                if not match:
                    continue

                context = (
                    code_context(lines, i, self.limits.subscription_context_radius)
                    if include_details
                    else line
                )
                subscriptions.append(
                    SubscriptionRecord(
                        event_name=match.group(1),
                        repository=unit.repository,
                        project=unit.project,
                        origin_unit=unit.path,
                        kind=kind,
                        position=i + 1,
                        context=context,
                        is_in_background_job=in_job,
                    )
                )

        return subscriptions
