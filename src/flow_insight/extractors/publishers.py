"""Source-text publisher extractor"""

import re
from typing import List, Optional

from ..models import PublishSite
from ..scanning import SourceUnit, code_context, lookback, scan_lines
from .base import BaseExtractor


def unresolved_event_name(identifier: str) -> str:
    """Placeholder event name for an identifier whose origin was not found."""
    return f"Unknown({identifier})"


class SourcePublisherExtractor(BaseExtractor):
    """Finds publish calls in source text.

    Two patterns are checked on every line and both are recorded when
    both match:

    * a publish call through a known publisher field whose only argument
      is a bare identifier; the event type is recovered by looking back
      for the line that constructs or assigns that identifier
    * a publish call whose argument constructs an event inline
    """

    def __init__(self, indicators=None, limits=None):
        super().__init__(indicators, limits)
        ind = self.indicators
        methods = "|".join(
            re.escape(m) for m in sorted(ind.publisher_method_names, key=len, reverse=True)
        )
        fields = "|".join(re.escape(f) for f in ind.publisher_field_names)
        suffix = re.escape(ind.event_type_suffix)

        self._via_field = re.compile(
            rf"(?:{fields})\.(?:{methods})\s*\(\s*(\w+)\s*\)", re.IGNORECASE
        )
        self._inline = re.compile(
            rf"\.(?:{methods})\s*\(\s*new\s+(\w+{suffix})\s*\(", re.IGNORECASE
        )
        self._constructed = re.compile(rf"new\s+(\w+{suffix})")

    def extract(self, unit: SourceUnit, include_details: bool = False) -> List[PublishSite]:
        publishers: List[PublishSite] = []
        lines = unit.lines
        in_job = self._is_background_job(unit)

        for i, line, state in scan_lines(lines):
            event_names = []

            via_field = self._via_field.search(line)
            if via_field:
                event_names.append(self.resolve_identifier(lines, i, via_field.group(1)))

            inline = self._inline.search(line)
            if inline:
                event_names.append(inline.group(1))

            if not event_names:
                continue

            context = (
                code_context(lines, i, self.limits.publish_context_radius)
                if include_details
                else line
            )
            for event_name in event_names:
                publishers.append(
                    PublishSite(
                        event_name=event_name,
                        repository=unit.repository,
                        project=unit.project,
                        origin_unit=unit.path,
                        class_name=state.current_class,
                        method_name=state.current_method,
                        position=i + 1,
                        context=context,
                        is_in_background_job=in_job,
                        background_job_class_name=state.current_class if in_job else None,
                    )
                )

        return publishers

    def resolve_identifier(self, lines, index: int, identifier: str) -> str:
        """Name of the event type ``identifier`` holds at line ``index``.

        Looks back over the preceding lines for one that constructs
        something together with the identifier, or assigns to it, and
        takes the constructed event type from that line.
        """

        def origin(_, line: str) -> Optional[str]:
            mentions = "new " in line and identifier in line
            assigns = f"{identifier} =" in line or f"var {identifier}" in line
            if not (mentions or assigns):
                return None
            constructed = self._constructed.search(line)
            return constructed.group(1) if constructed else None

        found = lookback(lines, index, self.limits.lookback_lines, origin)
        return found if found is not None else unresolved_event_name(identifier)
