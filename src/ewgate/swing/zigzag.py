"""ZigZag swing extraction.

Detectors report *confirmed* pivots only: a swing high (low) is emitted once
price has reversed from it by the reversal threshold. The last, still-moving
extreme is not a pivot; downstream it becomes the live leg.

API:
- SwingType / SwingPoint
- ZigZagConfig(pct=...) and zigzag_from_close(close, cfg_or_pct)
- ZigZagDetector(pct) / AdaptiveZigZagDetector(atr_period, min_threshold, max_threshold)
- extract_swings(bars_or_df, detector_or_pct)
- normalize_alternation(points)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Protocol, Sequence

import pandas as pd

from ewgate.indicators import atr as _atr
from ewgate.logging import get_logger

log = get_logger("ewgate.zigzag")


class SwingType(str, Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class SwingPoint:
    idx: int
    price: float
    kind: SwingType


class SwingDetector(Protocol):
    def detect(self, bars: Any) -> List[SwingPoint]:
        ...


# -------------------------
# Helpers
# -------------------------
def bars_to_df(bars: Any) -> pd.DataFrame:
    """BarSeries / DataFrame / close Series -> DataFrame with high, low, close (RangeIndex)."""
    if isinstance(bars, pd.Series):
        c = bars.astype(float).reset_index(drop=True)
        return pd.DataFrame({"high": c, "low": c, "close": c})
    if isinstance(bars, pd.DataFrame):
        df = bars
    elif hasattr(bars, "df") and isinstance(getattr(bars, "df"), pd.DataFrame):
        df = bars.df
    else:
        raise TypeError(f"Unsupported bars type: {type(bars)}")
    if "close" not in df.columns:
        raise ValueError("bars must contain a 'close' column")
    close = df["close"].astype(float)
    high = df["high"].astype(float) if "high" in df.columns else close
    low = df["low"].astype(float) if "low" in df.columns else close
    return pd.DataFrame({"high": high.values, "low": low.values, "close": close.values})


def normalize_alternation(points: Iterable[SwingPoint]) -> List[SwingPoint]:
    """Sort by index and collapse runs of the same kind to their most extreme point."""
    out: List[SwingPoint] = []
    for p in sorted(points, key=lambda x: x.idx):
        if out and out[-1].idx == p.idx and out[-1].kind == p.kind:
            continue
        if out and out[-1].kind == p.kind:
            prev = out[-1]
            if p.kind == SwingType.HIGH and p.price > prev.price:
                out[-1] = p
            elif p.kind == SwingType.LOW and p.price < prev.price:
                out[-1] = p
            continue
        out.append(p)
    return out


def _zigzag(highs: Sequence[float], lows: Sequence[float], thresholds: Sequence[float]) -> List[SwingPoint]:
    """Core reversal walk. thresholds[i] is the fractional reversal needed at bar i."""
    n = len(highs)
    if n < 2:
        return []

    out: List[SwingPoint] = []
    trend = 0  # +1 tracking a high, -1 tracking a low
    hi_idx, hi = 0, float(highs[0])
    lo_idx, lo = 0, float(lows[0])

    for i in range(1, n):
        th = float(thresholds[i])
        h = float(highs[i])
        l = float(lows[i])

        if trend == 0:
            if h > hi:
                hi_idx, hi = i, h
            if l < lo:
                lo_idx, lo = i, l
            if hi_idx > lo_idx and hi >= lo * (1.0 + th):
                out.append(SwingPoint(lo_idx, lo, SwingType.LOW))
                trend = 1
            elif lo_idx > hi_idx and lo <= hi * (1.0 - th):
                out.append(SwingPoint(hi_idx, hi, SwingType.HIGH))
                trend = -1
        elif trend == 1:
            if h > hi:
                hi_idx, hi = i, h
            elif l <= hi * (1.0 - th):
                out.append(SwingPoint(hi_idx, hi, SwingType.HIGH))
                trend = -1
                lo_idx, lo = i, l
        else:
            if l < lo:
                lo_idx, lo = i, l
            elif h >= lo * (1.0 + th):
                out.append(SwingPoint(lo_idx, lo, SwingType.LOW))
                trend = 1
                hi_idx, hi = i, h

    return out


# -------------------------
# Fixed-percent zigzag
# -------------------------
@dataclass(frozen=True)
class ZigZagConfig:
    pct: float = 1.0  # percent, 1.0 == 1%


def _get_pct(cfg_or_pct: Any) -> float:
    if isinstance(cfg_or_pct, (int, float)):
        return float(cfg_or_pct)
    if hasattr(cfg_or_pct, "pct"):
        return float(getattr(cfg_or_pct, "pct"))
    return 1.0


def zigzag_from_close(close: pd.Series, cfg_or_pct: Any = None) -> List[SwingPoint]:
    pct = _get_pct(cfg_or_pct) if cfg_or_pct is not None else 1.0
    if pct <= 0:
        raise ValueError("zigzag pct must be > 0")
    c = [float(x) for x in close]
    return _zigzag(c, c, [pct / 100.0] * len(c))


def zigzag_from_hl(high: pd.Series, low: pd.Series, cfg_or_pct: Any = None) -> List[SwingPoint]:
    pct = _get_pct(cfg_or_pct) if cfg_or_pct is not None else 1.0
    if pct <= 0:
        raise ValueError("zigzag pct must be > 0")
    h = [float(x) for x in high]
    l = [float(x) for x in low]
    return _zigzag(h, l, [pct / 100.0] * len(h))


@dataclass(frozen=True)
class ZigZagDetector:
    pct: float = 1.0
    use_high_low: bool = True

    def detect(self, bars: Any) -> List[SwingPoint]:
        df = bars_to_df(bars)
        if self.use_high_low:
            return zigzag_from_hl(df["high"], df["low"], self.pct)
        return zigzag_from_close(df["close"], self.pct)


# -------------------------
# ATR-adaptive zigzag
# -------------------------
@dataclass(frozen=True)
class AdaptiveZigZagDetector:
    """Reversal threshold follows volatility: clamp(ATR / close * multiplier, min, max).

    Thresholds are fractions (0.03 == 3%). Before ATR is stable the minimum applies.
    """

    atr_period: int = 14
    min_threshold: float = 0.03
    max_threshold: float = 0.08
    atr_multiplier: float = 1.0

    def __post_init__(self) -> None:
        if self.atr_period <= 0:
            raise ValueError("atr_period must be > 0")
        if not (0.0 < self.min_threshold <= self.max_threshold):
            raise ValueError("require 0 < min_threshold <= max_threshold")

    def thresholds(self, df: pd.DataFrame) -> List[float]:
        a = _atr(df["high"], df["low"], df["close"], self.atr_period)
        out: List[float] = []
        for v, c in zip(a.tolist(), df["close"].tolist()):
            if pd.isna(v) or c <= 0:
                out.append(self.min_threshold)
                continue
            th = float(v) / float(c) * self.atr_multiplier
            out.append(min(self.max_threshold, max(self.min_threshold, th)))
        return out

    def detect(self, bars: Any) -> List[SwingPoint]:
        df = bars_to_df(bars)
        return _zigzag(df["high"].tolist(), df["low"].tolist(), self.thresholds(df))


# -------------------------
# Adapter API
# -------------------------
def extract_swings(bars_or_df: Any, detector_or_pct: Any = None) -> List[SwingPoint]:
    """Run a detector (or a fixed-percent zigzag for a number/ZigZagConfig) on bars."""
    if detector_or_pct is None or isinstance(detector_or_pct, (int, float, ZigZagConfig)):
        det: SwingDetector = ZigZagDetector(pct=_get_pct(detector_or_pct) if detector_or_pct is not None else 1.0)
    else:
        det = detector_or_pct
    swings = det.detect(bars_or_df)
    log.debug("swings extracted", extra={"detector": type(det).__name__, "swings": len(swings)})
    return swings
