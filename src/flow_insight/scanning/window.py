"""Line-window helpers shared by the source extractors.

The same bounded backward search also drives the instruction trace in
``flow_insight.bytecode.publishers``.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def lookback(
    items: Sequence[T],
    before: int,
    limit: Optional[int],
    match: Callable[[int, T], Optional[R]],
) -> Optional[R]:
    """Search backwards from ``before - 1`` for the first item ``match`` accepts.

    At most ``limit`` items are visited (all of them when ``limit`` is None).
    ``match`` receives the index and the item and returns a value or None;
    the first non-None value is returned.
    """
    stop = 0 if limit is None else max(0, before - limit)
    for i in range(before - 1, stop - 1, -1):
        found = match(i, items[i])
        if found is not None:
            return found
    return None


def scan_forward(
    items: Sequence[T],
    start: int,
    limit: int,
    match: Callable[[int, T], Optional[R]],
) -> Optional[R]:
    """Forward counterpart of :func:`lookback`, visiting ``start`` up to ``start + limit``."""
    for i in range(start, min(len(items), start + limit)):
        found = match(i, items[i])
        if found is not None:
            return found
    return None


def code_context(lines: Sequence[str], center: int, radius: int) -> str:
    """Render the lines around ``center``, marking the center line with ``>>>``."""
    start = max(0, center - radius)
    end = min(len(lines) - 1, center + radius)

    context = []
    for i in range(start, end + 1):
        prefix = ">>> " if i == center else "    "
        context.append(f"{prefix}{lines[i].strip()}")
    return "\n".join(context)


def closes_block(line: str) -> bool:
    """True for a line that closes a block without opening another."""
    stripped = line.strip()
    return stripped.startswith("}") and "{" not in stripped


def in_registration_context(
    lines: Sequence[str],
    index: int,
    keywords: Sequence[str],
    before: int = 10,
    after: int = 3,
) -> bool:
    """True if any line from ``index - before`` to ``index + after`` holds a registration keyword.

    Keywords are compared against the lower-cased line.
    """
    start = max(0, index - before)
    end = min(len(lines) - 1, index + after)
    for i in range(start, end + 1):
        line = lines[i].lower()
        if any(k in line for k in keywords):
            return True
    return False


def is_background_job(text: str, markers: Sequence[str]) -> bool:
    """True if ``text`` contains any background-job marker, ignoring case."""
    lowered = text.lower()
    return any(m.lower() in lowered for m in markers)
