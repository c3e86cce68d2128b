"""Prefix analysis memo.

The analysis of prefix [0, i] is a pure function of that prefix, so a
strategy walking one series bar by bar can memoize it by end index. Results
are identical to calling the analyzer directly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable

from ewgate.ew.core.model import AnalysisResult
from ewgate.logging import get_logger

log = get_logger("ewgate.analyzer.cache")


class PrefixAnalysis:
    """analysis_at(i) == analyzer.analyze(series.subseries(0, i + 1)).

    maxsize=0 disables memoization.
    """

    def __init__(self, analyzer: Any, series: Any, maxsize: int = 512):
        if not hasattr(analyzer, "analyze"):
            raise TypeError("analyzer must provide analyze(bars)")
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self.analyzer = analyzer
        self.series = series
        self.maxsize = int(maxsize)
        self._at: Callable[[int], AnalysisResult]
        if self.maxsize > 0:
            self._at = lru_cache(maxsize=self.maxsize)(self._compute)
        else:
            self._at = self._compute

    def _compute(self, index: int) -> AnalysisResult:
        log.debug("analyze prefix", extra={"index": index})
        return self.analyzer.analyze(self.series.subseries(0, index + 1))

    def __call__(self, index: int) -> AnalysisResult:
        if index < 0 or index >= len(self.series):
            raise IndexError(f"bar index {index} outside series of {len(self.series)} bars")
        return self._at(int(index))

    def cache_info(self):
        info = getattr(self._at, "cache_info", None)
        return info() if info is not None else None

    def clear(self) -> None:
        clear = getattr(self._at, "cache_clear", None)
        if clear is not None:
            clear()
