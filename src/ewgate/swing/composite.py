"""Logical composition of swing detectors.

mode="all": keep pivots of the first detector that every other detector
            confirms with a same-kind pivot within `tolerance` bars.
mode="any": union of all detectors' pivots.

Both modes return strictly alternating highs and lows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from ewgate.logging import get_logger
from ewgate.swing.zigzag import SwingDetector, SwingPoint, normalize_alternation

log = get_logger("ewgate.swing")

_MODES = ("all", "any")


def _confirmed(p: SwingPoint, others: Sequence[SwingPoint], tolerance: int) -> bool:
    for q in others:
        if q.kind == p.kind and abs(q.idx - p.idx) <= tolerance:
            return True
    return False


@dataclass(frozen=True)
class CompositeDetector:
    detectors: Tuple[SwingDetector, ...]
    mode: str = "all"
    tolerance: int = 2

    def __post_init__(self) -> None:
        if not self.detectors:
            raise ValueError("CompositeDetector needs at least one detector")
        if self.mode not in _MODES:
            raise ValueError(f"mode must be one of {_MODES}, got {self.mode!r}")
        if self.tolerance < 0:
            raise ValueError("tolerance must be >= 0")

    def detect(self, bars: Any) -> List[SwingPoint]:
        per = [d.detect(bars) for d in self.detectors]
        if self.mode == "any":
            merged = [p for pts in per for p in pts]
            out = normalize_alternation(merged)
        else:
            base, rest = per[0], per[1:]
            kept = [p for p in base if all(_confirmed(p, other, self.tolerance) for other in rest)]
            out = normalize_alternation(kept)
        log.debug("composite swings", extra={"mode": self.mode, "inputs": [len(p) for p in per], "swings": len(out)})
        return out
