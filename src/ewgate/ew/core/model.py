"""Canonical Elliott wave models.

A scenario is one interpretation of the most recent price action: the
completed legs of a (possibly unfinished) pattern plus the live leg from the
last confirmed pivot to the current close. The analyzer ranks scenarios; the
top one is the *base* scenario.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ScenarioType(str, Enum):
    IMPULSE = "impulse"
    CORRECTIVE = "corrective"


class ElliottPhase(str, Enum):
    WAVE1 = "wave1"
    WAVE2 = "wave2"
    WAVE3 = "wave3"
    WAVE4 = "wave4"
    WAVE5 = "wave5"
    WAVE_A = "wave_a"
    WAVE_B = "wave_b"
    WAVE_C = "wave_c"

    @staticmethod
    def impulse(n: int) -> "ElliottPhase":
        return (ElliottPhase.WAVE1, ElliottPhase.WAVE2, ElliottPhase.WAVE3, ElliottPhase.WAVE4, ElliottPhase.WAVE5)[n - 1]

    @staticmethod
    def corrective(n: int) -> "ElliottPhase":
        return (ElliottPhase.WAVE_A, ElliottPhase.WAVE_B, ElliottPhase.WAVE_C)[n - 1]

    @property
    def position(self) -> int:
        """1-based wave number within the pattern (A=1, B=2, C=3)."""
        tail = self.value[-1]
        return int(tail) if tail.isdigit() else "abc".index(tail) + 1


@dataclass(frozen=True)
class WaveLeg:
    """A single leg between two points (index + price)."""
    start_idx: int
    end_idx: int
    start_px: float
    end_px: float

    @property
    def direction(self) -> int:
        if self.end_px > self.start_px:
            return 1
        if self.end_px < self.start_px:
            return -1
        return 0

    @property
    def abs_move(self) -> float:
        return abs(self.end_px - self.start_px)

    @property
    def bars(self) -> int:
        return self.end_idx - self.start_idx


@dataclass(frozen=True)
class ElliottScenario:
    type: ScenarioType
    current_phase: ElliottPhase
    direction: int  # +1 up, -1 down (direction of wave 1 / wave A)
    legs: Tuple[WaveLeg, ...]  # completed legs
    live_leg: Optional[WaveLeg]
    confidence: float
    is_high_confidence: bool
    invalidation_price: float
    primary_target: float
    expects_completion: bool = False
    is_invalidated: bool = False
    factors: Dict[str, float] = field(default_factory=dict, compare=False, hash=False)

    @property
    def completed_legs(self) -> int:
        return len(self.legs)

    @property
    def start_idx(self) -> int:
        if self.legs:
            return self.legs[0].start_idx
        return self.live_leg.start_idx if self.live_leg else 0

    @property
    def bias(self) -> int:
        """Expected direction of the next move.

        Odd waves move with the pattern, even waves against it; a finished
        pattern expects a reversal.
        """
        total = 5 if self.type == ScenarioType.IMPULSE else 3
        if self.completed_legs >= total:
            return -self.direction
        return self.direction if self.current_phase.position % 2 else -self.direction

    def agrees_with(self, other: "ElliottScenario") -> bool:
        """Same count at another degree: same pattern, same trend, same next move."""
        return self.type == other.type and self.direction == other.direction and self.bias == other.bias

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "phase": self.current_phase.value,
            "direction": self.direction,
            "confidence": self.confidence,
            "high_confidence": self.is_high_confidence,
            "invalidation": self.invalidation_price,
            "target": self.primary_target,
            "expects_completion": self.expects_completion,
            "invalidated": self.is_invalidated,
            "start_idx": self.start_idx,
            "legs": self.completed_legs,
        }


@dataclass(frozen=True)
class ScenarioSet:
    """Scenarios ranked best first."""
    ranked: Tuple[ElliottScenario, ...] = ()

    @property
    def base(self) -> Optional[ElliottScenario]:
        return self.ranked[0] if self.ranked else None

    @property
    def alternatives(self) -> Tuple[ElliottScenario, ...]:
        return self.ranked[1:]

    def __len__(self) -> int:
        return len(self.ranked)


@dataclass(frozen=True)
class ScenarioSummary:
    scenarios: int = 0
    agreement: float = 0.0  # confidence share agreeing with the base scenario
    has_strong_consensus: bool = False


@dataclass(frozen=True)
class AnalysisResult:
    scenarios: ScenarioSet
    summary: ScenarioSummary
    swings: Tuple[Any, ...] = ()

    @property
    def base(self) -> Optional[ElliottScenario]:
        return self.scenarios.base

    @staticmethod
    def empty(swings: Tuple[Any, ...] = ()) -> "AnalysisResult":
        return AnalysisResult(scenarios=ScenarioSet(), summary=ScenarioSummary(), swings=swings)


def legs_from_points(points: List[Tuple[int, float]]) -> List[WaveLeg]:
    return [WaveLeg(start_idx=i0, end_idx=i1, start_px=p0, end_px=p1) for (i0, p0), (i1, p1) in zip(points[:-1], points[1:])]
