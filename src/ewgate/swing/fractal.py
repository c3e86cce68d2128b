"""Fixed-window fractal swings.

A high fractal at k is the strict maximum of highs over [k - window, k + window];
a low fractal is the strict minimum of lows. A fractal needs `window` bars
after it, so the most recent `window` bars never hold a confirmed pivot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from ewgate.swing.zigzag import SwingPoint, SwingType, bars_to_df, normalize_alternation


@dataclass(frozen=True)
class FractalDetector:
    window: int = 5

    def __post_init__(self) -> None:
        if self.window <= 0:
            raise ValueError("fractal window must be > 0")

    def detect(self, bars: Any) -> List[SwingPoint]:
        df = bars_to_df(bars)
        highs = df["high"].tolist()
        lows = df["low"].tolist()
        w = self.window
        n = len(highs)

        found: List[SwingPoint] = []
        for k in range(w, n - w):
            h = highs[k]
            l = lows[k]
            others_h = highs[k - w:k] + highs[k + 1:k + w + 1]
            others_l = lows[k - w:k] + lows[k + 1:k + w + 1]
            if h > max(others_h):
                found.append(SwingPoint(k, float(h), SwingType.HIGH))
            if l < min(others_l):
                found.append(SwingPoint(k, float(l), SwingType.LOW))
        return normalize_alternation(found)
