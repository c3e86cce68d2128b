"""Strategy wrapper and the high-reward Elliott wave strategy builder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ewgate.ew.core.model import ElliottPhase, ScenarioType
from ewgate.ew.core.options import PatternSet
from ewgate.ew.core.scorer import ConfidenceModel, ConfidenceWeights
from ewgate.ew.detectors.analyzer import AnalyzerSettings, WaveAnalyzer
from ewgate.ew.detectors.cache import PrefixAnalysis
from ewgate.indicators import close_price
from ewgate.logging import get_logger
from ewgate.signals.rules import (
    EXIT_SIGNAL,
    Rule,
    and_rules,
    exit_reason,
    exit_rule,
    impulse_rule,
    is_open,
    momentum_rule,
    trend_rule,
)

log = get_logger("ewgate.strategy")

DEFAULT_NAME = "High-Reward Elliott Wave Strategy"


@dataclass(frozen=True)
class StrategySettings:
    name: str = DEFAULT_NAME
    trend_period: int = 200
    rsi_period: int = 14
    rsi_threshold: float = 50.0
    macd_fast: int = 12
    macd_slow: int = 26
    min_reward_risk: float = 3.0
    tradeable_phases: Tuple[ElliottPhase, ...] = (ElliottPhase.WAVE3, ElliottPhase.WAVE5)
    unstable_bars: Optional[int] = None  # None -> trend_period
    cache_size: int = 512  # 0 disables the prefix analysis memo

    def __post_init__(self) -> None:
        for name in ("trend_period", "rsi_period", "macd_fast", "macd_slow"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be < macd_slow")
        if self.min_reward_risk <= 0:
            raise ValueError("min_reward_risk must be > 0")
        if not self.tradeable_phases:
            raise ValueError("tradeable_phases must not be empty")
        if self.unstable_bars is not None and self.unstable_bars < 0:
            raise ValueError("unstable_bars must be >= 0")
        if self.cache_size < 0:
            raise ValueError("cache_size must be >= 0")

    @property
    def warmup(self) -> int:
        return self.trend_period if self.unstable_bars is None else self.unstable_bars


@dataclass(frozen=True)
class Strategy:
    entry_rule: Rule
    exit_rule: Rule
    unstable_bars: int = 0
    exit_reason: Optional[Callable[[int, Optional[Any]], Optional[str]]] = None

    def is_unstable_at(self, index: int) -> bool:
        return index < self.unstable_bars

    def should_enter(self, index: int, record: Optional[Any] = None) -> bool:
        return not self.is_unstable_at(index) and self.entry_rule(index, record)

    def should_exit(self, index: int, record: Optional[Any] = None) -> bool:
        return not self.is_unstable_at(index) and self.exit_rule(index, record)

    def exit_signal(self, index: int, record: Optional[Any] = None) -> Optional[str]:
        """Exit reason at `index`, or None to hold. Runs the exit logic once."""
        if self.is_unstable_at(index):
            return None
        if self.exit_reason is not None:
            return self.exit_reason(index, record)
        return EXIT_SIGNAL if self.exit_rule(index, record) else None

    def should_operate(self, index: int, record: Optional[Any] = None) -> bool:
        """Enter when flat, exit when open."""
        if is_open(record):
            return self.should_exit(index, record)
        return self.should_enter(index, record)


@dataclass(frozen=True)
class NamedStrategy:
    name: str
    strategy: Strategy

    def should_enter(self, index: int, record: Optional[Any] = None) -> bool:
        return self.strategy.should_enter(index, record)

    def should_exit(self, index: int, record: Optional[Any] = None) -> bool:
        return self.strategy.should_exit(index, record)

    def should_operate(self, index: int, record: Optional[Any] = None) -> bool:
        return self.strategy.should_operate(index, record)

    def exit_reason(self, index: int, record: Optional[Any] = None) -> Optional[str]:
        return self.strategy.exit_signal(index, record)


def high_reward_analyzer_settings() -> AnalyzerSettings:
    """Impulse-only analysis weighted towards Fibonacci fit."""
    model = ConfidenceModel.default_by_scenario_type().with_weight(
        ScenarioType.IMPULSE,
        ConfidenceWeights(fibonacci=0.40, time_proportion=0.20, alternation=0.20, channel=0.10, completeness=0.10),
    )
    return AnalyzerSettings(pattern_set=PatternSet.only(ScenarioType.IMPULSE), confidence_model=model)


def build_high_reward_strategy(
    series: Any,
    settings: Optional[StrategySettings] = None,
    analyzer: Optional[Any] = None,
) -> NamedStrategy:
    """Trend + momentum + impulse reward/risk entry; completion/stop/momentum exit.

    `analyzer` is anything with analyze(bars) -> AnalysisResult; defaults to
    WaveAnalyzer(high_reward_analyzer_settings()).
    """
    s = settings or StrategySettings()
    wave = analyzer if analyzer is not None else WaveAnalyzer(high_reward_analyzer_settings())
    analysis = PrefixAnalysis(wave, series, maxsize=s.cache_size)

    close = close_price(series)
    trend = trend_rule(close, s.trend_period)
    momentum = momentum_rule(close, s.rsi_period, s.rsi_threshold, s.macd_fast, s.macd_slow)
    impulse = impulse_rule(close, analysis, s.min_reward_risk, s.tradeable_phases)

    reason = exit_reason(close, analysis, momentum)
    strategy = Strategy(
        entry_rule=and_rules(trend, momentum, impulse),
        exit_rule=exit_rule(reason),
        unstable_bars=s.warmup,
        exit_reason=reason,
    )
    log.debug("strategy built", extra={"strategy": s.name, "bars": len(series), "warmup": s.warmup, "min_rr": s.min_reward_risk})
    return NamedStrategy(name=s.name, strategy=strategy)
