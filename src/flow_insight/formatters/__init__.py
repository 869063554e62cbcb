"""Output formatters for Flow Insight."""

from .arango_formatter import ArangoFormatter
from .base import BaseFormatter
from .gremlin_formatter import GremlinFormatter
from .html_formatter import HtmlFormatter
from .json_formatter import JsonFormatter
from .rich_formatter import RichFormatter


def get_formatter(name: str) -> BaseFormatter:
    """Get a formatter instance by name.

    Args:
        name: One of "rich", "json", "gremlin", "html", "arango"

    Returns:
        Formatter instance

    Raises:
        ValueError: If name is not recognized
    """
    formatters = {
        "rich": RichFormatter,
        "json": JsonFormatter,
        "gremlin": GremlinFormatter,
        "html": HtmlFormatter,
        "arango": ArangoFormatter,
    }
    cls = formatters.get(name)
    if cls is None:
        raise ValueError(f"Unknown formatter: {name!r}. Choose from: {', '.join(sorted(formatters))}")
    return cls()


__all__ = [
    "ArangoFormatter",
    "BaseFormatter",
    "GremlinFormatter",
    "HtmlFormatter",
    "JsonFormatter",
    "RichFormatter",
    "get_formatter",
]
