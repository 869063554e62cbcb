"""Exception hierarchy for Flow Insight."""

from .analysis import (
    AnalysisError,
    FileAccessError,
    ModuleReadError,
    TypeResolutionError,
)
from .base import FlowInsightError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
    SecurityError,
)

__all__ = [
    "FlowInsightError",
    "AnalysisError",
    "FileAccessError",
    "ModuleReadError",
    "TypeResolutionError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "SecurityError",
]
