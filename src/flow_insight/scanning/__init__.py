"""Line-oriented scanning primitives for source units."""

from .state import ScanState, scan_lines
from .units import SourceUnit
from .window import (
    closes_block,
    code_context,
    in_registration_context,
    is_background_job,
    lookback,
    scan_forward,
)

__all__ = [
    "ScanState",
    "SourceUnit",
    "closes_block",
    "code_context",
    "in_registration_context",
    "is_background_job",
    "lookback",
    "scan_forward",
    "scan_lines",
]
