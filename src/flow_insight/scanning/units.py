"""Source units handed to the extractors."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class SourceUnit:
    """One source file's text plus where it came from."""

    path: str
    text: str
    repository: str
    project: str = "Unknown"
    lines: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.text.split("\n")) if self.text else ())

    @property
    def file_name(self) -> str:
        return Path(self.path).name
