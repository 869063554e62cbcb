"""JSON formatter for Flow Insight."""

import json
from typing import Any

from ..models import FlowReport
from .base import BaseFormatter

_REPORT_KEYS = {
    "generated_at": "analyzedAt",
    "repository_count": "repositoriesScanned",
    "project_count": "projectsScanned",
}


def camel_case(key: str) -> str:
    """``origin_unit`` -> ``originUnit``"""
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {camel_case(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_camelize(v) for v in value]
    return value


class JsonFormatter(BaseFormatter):
    """Render the report as an indented JSON document with camelCase keys."""

    export_name = "message-flow-analysis.json"

    def render(self, report: FlowReport) -> None:
        print(self.format(report))

    def format(self, report: FlowReport) -> str:
        data = report.to_dict()
        document = {
            _REPORT_KEYS.get(key, camel_case(key)): _camelize(value)
            for key, value in data.items()
        }
        return json.dumps(document, indent=2)
