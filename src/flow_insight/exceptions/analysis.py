"""Analysis-related exceptions: unit access, module listings, type resolution."""

from pathlib import Path

from .base import FlowInsightError


class AnalysisError(FlowInsightError):
    """Base class for analysis-related errors."""
    pass


class FileAccessError(AnalysisError):
    """Raised when a source unit cannot be accessed or read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ModuleReadError(AnalysisError):
    """Raised when a compiled-module listing cannot be read or parsed."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot read module: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class TypeResolutionError(AnalysisError):
    """Raised when a type reference cannot be resolved to its definition."""

    def __init__(self, type_name: str, reason: str):
        super().__init__(
            f"Cannot resolve type: {type_name}",
            details={"type": type_name, "reason": reason},
        )
        self.type_name = type_name
        self.reason = reason
