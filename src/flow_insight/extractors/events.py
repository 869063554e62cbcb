"""Event definition extractor"""

import re
from typing import List, Optional

from ..models import EventDefinition
from ..scanning import SourceUnit, closes_block, scan_lines
from .base import BaseExtractor

_PROPERTY = re.compile(r"public\s+(\w+(?:<.*?>)?)\s+(\w+)\s*{\s*get", re.IGNORECASE)
_CLASS_NAME = re.compile(r"public\s+class\s+(\w+)")


class EventDefinitionExtractor(BaseExtractor):
    """Finds classes deriving from the event base type.

    For every declaration a forward window is read for property
    declarations and a nested payload class (``public class ...Data``).
    The window ends at the first line that closes a block without opening
    one, so properties of a nested class before that point are collected
    too.
    """

    def __init__(self, indicators=None, limits=None):
        super().__init__(indicators, limits)
        self._declaration = re.compile(
            rf"public\s+class\s+(\w+)\s*:\s*{re.escape(self.indicators.event_base_type)}",
            re.IGNORECASE,
        )

    def extract(self, unit: SourceUnit, include_details: bool = False) -> List[EventDefinition]:
        events: List[EventDefinition] = []
        lines = unit.lines

        for i, line, state in scan_lines(lines):
            match = self._declaration.search(line)
            if not match:
                continue

            name = match.group(1)
            window = [line[match.end():]]
            window.extend(lines[i + 1 : i + self.limits.definition_window])
            properties, payload = self._read_body(window)

            events.append(
                EventDefinition(
                    name=name,
                    full_name=f"{state.namespace}.{name}" if state.namespace else name,
                    origin_unit=unit.path,
                    repository=unit.repository,
                    project=unit.project,
                    properties=tuple(properties),
                    payload_class_name=payload,
                    standard_properties=self.indicators.standard_event_properties,
                )
            )

        return events

    def _read_body(self, window: List[str]) -> "tuple[List[str], Optional[str]]":
        """Properties and payload class up to the first line that only closes a block.

        A one-line body such as ``{ }`` opens as well as closes, so it does
        not end the window: an empty event declared on one line picks up the
        properties of whatever class follows it.
        """
        properties: List[str] = []
        payload: Optional[str] = None

        for raw in window:
            line = raw.strip()
            if closes_block(line):
                break

            for prop in _PROPERTY.finditer(line):
                properties.append(f"{prop.group(1)} {prop.group(2)}")

            if "public class" in line and "Data" in line:
                nested = _CLASS_NAME.search(line)
                if nested:
                    payload = nested.group(1)

        return properties, payload
