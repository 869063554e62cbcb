"""Base class for the source-text extractors"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..config import DEFAULT_INDICATORS, DEFAULT_LIMITS, IndicatorSets, ScanLimits
from ..scanning import SourceUnit, is_background_job


class BaseExtractor(ABC):
    """Abstract base class for extractors that read one source unit at a time.

    Extractors hold only immutable configuration, so one instance can scan
    any number of units, concurrently or not.
    """

    def __init__(
        self,
        indicators: Optional[IndicatorSets] = None,
        limits: Optional[ScanLimits] = None,
    ):
        self.indicators = indicators or DEFAULT_INDICATORS
        self.limits = limits or DEFAULT_LIMITS

    @abstractmethod
    def extract(self, unit: SourceUnit, include_details: bool = False) -> List:
        """Return the facts found in ``unit``"""
        pass

    def _is_background_job(self, unit: SourceUnit) -> bool:
        return is_background_job(unit.text, self.indicators.background_job_markers)
