"""Base formatter interface for Flow Insight output rendering."""

from abc import ABC, abstractmethod

from ..models import FlowReport


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    #: File name used when the output is exported next to the analysed root
    export_name: str = ""

    @abstractmethod
    def render(self, report: FlowReport) -> None:
        """Render the report to stderr/stdout as appropriate."""

    @abstractmethod
    def format(self, report: FlowReport) -> str:
        """Return formatted string representation of the report."""
