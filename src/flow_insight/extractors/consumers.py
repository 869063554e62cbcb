"""Consumer (event handler) extractor"""

import re
from typing import List, Optional, Sequence

from ..models import ConsumeSite
from ..scanning import SourceUnit, closes_block, in_registration_context, scan_forward, scan_lines
from .base import BaseExtractor

_CLASS_DECL = re.compile(r"\bclass\s+(\w+)")
_HANDLE_METHOD = re.compile(r"public\s+(?:async\s+)?(?:Task|void)\s+Handle\s*\(")


class ConsumerExtractor(BaseExtractor):
    """Finds classes implementing the generic handler interface.

    The same ``Handler<Event>`` text also shows up inside DI registration
    calls, so matches in startup-like units and matches surrounded by
    registration keywords are dropped; those are picked up by the
    subscription extractor instead.
    """

    def __init__(self, indicators=None, limits=None):
        super().__init__(indicators, limits)
        self._handler = re.compile(
            rf"{re.escape(self.indicators.handler_interface)}<(\w+)>", re.IGNORECASE
        )

    def extract(self, unit: SourceUnit, include_details: bool = False) -> List[ConsumeSite]:
        consumers: List[ConsumeSite] = []

        if self.is_entry_unit(unit.file_name):
            return consumers

        lines = unit.lines
        in_job = self._is_background_job(unit)
        limits = self.limits

        for i, line, state in scan_lines(lines):
            for match in self._handler.finditer(line):
                handler_class = self.find_class_name(lines, i) or state.current_class
                if not handler_class:
                    continue
                if in_registration_context(
                    lines,
                    i,
                    self.indicators.registration_keywords,
                    before=limits.registration_before,
                    after=limits.registration_after,
                ):
                    continue

                body = self.handler_body(lines, i) if include_details else []

                consumers.append(
                    ConsumeSite(
                        event_name=match.group(1),
                        repository=unit.repository,
                        project=unit.project,
                        origin_unit=unit.path,
                        handler_class_name=handler_class,
                        handler_method_name="Handle",
                        is_in_background_job=in_job,
                        handler_body=tuple(body),
                    )
                )

        return consumers

    def is_entry_unit(self, file_name: str) -> bool:
        """True for startup/entry/configuration units, which declare no handlers."""
        lowered = file_name.lower()
        return any(marker in lowered for marker in self.indicators.entry_unit_markers)

    def find_class_name(self, lines: Sequence[str], index: int) -> Optional[str]:
        """Class declared nearest to ``index`` within the search radius.

        On equal distance the declaration above the match wins.
        """
        radius = self.limits.class_search_radius
        for distance in range(radius + 1):
            for j in (index - distance, index + distance):
                if 0 <= j < len(lines):
                    found = _CLASS_DECL.search(lines[j])
                    if found:
                        return found.group(1)
        return None

    def handler_body(self, lines: Sequence[str], index: int) -> List[str]:
        """Non-blank lines following the ``Handle`` signature below ``index``."""
        limits = self.limits

        def signature(j: int, line: str) -> Optional[int]:
            return j if _HANDLE_METHOD.search(line) else None

        start = scan_forward(lines, index, limits.handler_window, signature)
        if start is None:
            return []

        body: List[str] = []
        for raw in lines[start + 1 :]:
            line = raw.strip()
            if closes_block(line):
                break
            if line:
                body.append(line)
                if len(body) >= limits.handler_body_lines:
                    break
        return body
