"""Per-unit scan state threaded through a top-to-bottom line scan.

The state is a flat record of the most recent namespace, class and method
declarations. Nothing is reset on scope exit: a value holds until the next
declaration of the same kind overwrites it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterator, Sequence

_NAMESPACE = re.compile(r"namespace\s+([\w.]+)")
_TYPE_DECL = re.compile(
    r"public\s+(?:(?:abstract|sealed|static|partial)\s+)*(?:class|interface)\s+(\w+)"
)
_METHOD_DECL = re.compile(
    r"(?:public|private|protected)\s+(?:(?:static|override|virtual)\s+)*(?:async\s+)?"
    r"(?:Task(?:<.*?>)?|void)\s+(\w+)\s*\("
)


@dataclass(frozen=True)
class ScanState:
    """Most recent declarations seen above the current line."""

    namespace: str = ""
    current_class: str = ""
    current_method: str = ""

    def advance(self, line: str) -> "ScanState":
        """Return the state after reading ``line``."""
        state = self

        ns = _NAMESPACE.search(line)
        if ns:
            state = replace(state, namespace=ns.group(1))

        cls = _TYPE_DECL.search(line)
        if cls:
            state = replace(state, current_class=cls.group(1))

        if "public" in line and ("async" in line or "Task" in line or "void" in line):
            method = _METHOD_DECL.search(line)
            if method:
                state = replace(state, current_method=method.group(1))

        return state


def scan_lines(lines: Sequence[str]) -> Iterator[tuple[int, str, ScanState]]:
    """Yield ``(index, stripped line, state after the line)`` for every line."""
    state = ScanState()
    for i, raw in enumerate(lines):
        line = raw.strip()
        state = state.advance(line)
        yield i, line, state
