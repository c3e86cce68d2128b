from typing import List, Optional, Sequence, Tuple

import pytest

from ewgate.data.bars import BarSeries
from ewgate.ew.core.model import (
    AnalysisResult,
    ElliottPhase,
    ElliottScenario,
    ScenarioSet,
    ScenarioSummary,
    ScenarioType,
)


def _scenario(
    type: ScenarioType = ScenarioType.IMPULSE,
    phase: ElliottPhase = ElliottPhase.WAVE3,
    high: bool = True,
    invalidation: float = 90.0,
    target: float = 130.0,
    completion: bool = False,
    invalidated: bool = False,
) -> ElliottScenario:
    return ElliottScenario(
        type=type,
        current_phase=phase,
        direction=1,
        legs=(),
        live_leg=None,
        confidence=0.9 if high else 0.3,
        is_high_confidence=high,
        invalidation_price=invalidation,
        primary_target=target,
        expects_completion=completion,
        is_invalidated=invalidated,
    )


@pytest.fixture
def make_result():
    """Build an AnalysisResult; base=False gives a result without a base scenario."""

    def _make(base: bool = True, strong: bool = True, **kw) -> AnalysisResult:
        if not base:
            return AnalysisResult.empty()
        sc = _scenario(**kw)
        return AnalysisResult(
            scenarios=ScenarioSet((sc,)),
            summary=ScenarioSummary(scenarios=1, agreement=1.0 if strong else 0.2, has_strong_consensus=strong),
        )

    return _make


def interpolate(points: Sequence[Tuple[int, float]]) -> List[float]:
    """Closes along straight segments between (index, price) points."""
    out: List[float] = []
    for (i0, p0), (i1, p1) in zip(points[:-1], points[1:]):
        for i in range(i0, i1):
            out.append(p0 + (p1 - p0) * (i - i0) / (i1 - i0))
    out.append(float(points[-1][1]))
    return out


@pytest.fixture
def impulse_closes() -> List[float]:
    # waves: 1 up 100->130, 2 down to 115, 3 up to 175, 4 down to 160, live wave 5 to 170
    return interpolate([(0, 100.0), (10, 130.0), (16, 115.0), (30, 175.0), (36, 160.0), (40, 170.0)])


@pytest.fixture
def series_from_closes():
    def _make(closes: Sequence[float]) -> BarSeries:
        return BarSeries.from_closes(list(closes))

    return _make


class FakeRecord:
    def __init__(self, opened: bool):
        self.opened = opened

    def is_opened(self) -> bool:
        return self.opened


@pytest.fixture
def open_record() -> FakeRecord:
    return FakeRecord(True)


@pytest.fixture
def flat_record() -> FakeRecord:
    return FakeRecord(False)


@pytest.fixture
def no_analysis():
    def _fail(index: int) -> Optional[AnalysisResult]:
        raise AssertionError(f"analysis must not run (index {index})")

    return _fail


@pytest.fixture
def finished_impulse_closes(impulse_closes) -> List[float]:
    # wave 5 tops at 170 on bar 40 and the reversal to 161 confirms it
    return impulse_closes + interpolate([(40, 170.0), (44, 161.0)])[1:]


@pytest.fixture
def clean_impulse_closes() -> List[float]:
    # wave 1 100->160 over 30 bars, wave 2 back to 130, wave 3 runs to 250, then a sharp sell-off
    return interpolate([(0, 100.0), (30, 160.0), (42, 130.0), (72, 250.0), (78, 160.0)])
