from dataclasses import replace

import pytest

from ewgate.backtest import run_strategy
from ewgate.data.bars import BarSeries
from ewgate.ew.core.compression import CompressionProfile
from ewgate.ew.core.model import ElliottPhase
from ewgate.ew.detectors import PrefixAnalysis, WaveAnalyzer
from ewgate.signals import (
    DEFAULT_NAME,
    NamedStrategy,
    Strategy,
    StrategySettings,
    and_rules,
    build_high_reward_strategy,
    high_reward_analyzer_settings,
)
from ewgate.swing import ZigZagDetector


class Counting:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self, index, record=None):
        self.calls += 1
        return self.value


class CountingAnalyzer:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def analyze(self, bars):
        self.calls += 1
        return self.result


def test_entry_conjunction_short_circuits():
    trend, momentum, impulse = Counting(False), Counting(True), Counting(True)
    rule = and_rules(trend, momentum, impulse)
    assert not rule(5)
    assert (trend.calls, momentum.calls, impulse.calls) == (1, 0, 0)

    trend.value = True
    assert rule(5)
    assert rule(5)
    assert impulse.calls == 2


def test_strategy_is_silent_during_warmup(open_record, flat_record):
    s = Strategy(entry_rule=Counting(True), exit_rule=Counting(True), unstable_bars=10)
    assert not s.should_enter(9, flat_record)
    assert s.should_enter(10, flat_record)
    assert not s.should_exit(9, open_record)
    assert s.should_operate(10, open_record)


def test_should_operate_dispatches_on_position(open_record, flat_record):
    entry, exit_ = Counting(False), Counting(True)
    s = NamedStrategy(name="x", strategy=Strategy(entry_rule=entry, exit_rule=exit_))
    assert not s.should_operate(0, flat_record)
    assert s.should_operate(0, open_record)
    assert (entry.calls, exit_.calls) == (1, 1)
    assert s.exit_reason(0, open_record) == "exit"
    assert exit_.calls == 2


def test_exit_signal_respects_warmup_and_reason(open_record):
    exit_ = Counting(True)
    s = Strategy(entry_rule=Counting(True), exit_rule=exit_, unstable_bars=10)
    assert s.exit_signal(9, open_record) is None
    assert exit_.calls == 0
    assert s.exit_signal(10, open_record) == "exit"

    reason = Counting("stop_breach")
    labelled = Strategy(entry_rule=Counting(True), exit_rule=exit_, exit_reason=reason)
    assert labelled.exit_signal(3, open_record) == "stop_breach"
    assert (reason.calls, exit_.calls) == (1, 1)


def test_strategy_settings_validation():
    assert StrategySettings().warmup == 200
    assert StrategySettings(unstable_bars=0).warmup == 0
    with pytest.raises(ValueError):
        StrategySettings(macd_fast=26, macd_slow=12)
    with pytest.raises(ValueError):
        StrategySettings(min_reward_risk=0)
    with pytest.raises(ValueError):
        StrategySettings(tradeable_phases=())


def test_prefix_analysis_memoizes(make_result, series_from_closes):
    series = series_from_closes([1.0] * 10)
    analyzer = CountingAnalyzer(make_result())
    cached = PrefixAnalysis(analyzer, series, maxsize=16)
    assert cached(5) == cached(5)
    assert analyzer.calls == 1
    assert cached.cache_info().hits == 1

    uncached = PrefixAnalysis(analyzer, series, maxsize=0)
    uncached(5)
    uncached(5)
    assert analyzer.calls == 3
    assert uncached.cache_info() is None

    with pytest.raises(IndexError):
        cached(10)


def test_prefix_analysis_matches_direct_analysis(impulse_closes):
    series = BarSeries.from_closes(impulse_closes)
    settings = replace(
        high_reward_analyzer_settings(),
        swing_detector=ZigZagDetector(pct=5.0),
        compression=CompressionProfile.by_name("none"),
    )
    analyzer = WaveAnalyzer(settings)
    cached = PrefixAnalysis(analyzer, series)
    for i in (5, 20, 40):
        assert cached(i) == analyzer.analyze(series.subseries(0, i + 1))


class ScriptedAnalyzer:
    """Wave 3 with 6:1 reward/risk up to prefix 230; a finished wave 5 afterwards."""

    def __init__(self, make_result):
        self.make_result = make_result
        self.sizes = []

    def analyze(self, bars):
        n = len(bars)
        self.sizes.append(n)
        px = float(bars.close.iloc[-1])
        if n <= 230:
            return self.make_result(phase=ElliottPhase.WAVE3, invalidation=px * 0.95, target=px * 1.3)
        return self.make_result(phase=ElliottPhase.WAVE5, invalidation=px * 0.95, target=px * 1.01, completion=True)


def test_high_reward_strategy_enters_after_warmup_and_exits_on_completion(make_result):
    series = BarSeries.from_closes([100.0 + i for i in range(260)])
    analyzer = ScriptedAnalyzer(make_result)
    strategy = build_high_reward_strategy(series, analyzer=analyzer)
    assert strategy.name == DEFAULT_NAME

    trades, rep, record = run_strategy(series, strategy)

    assert len(trades) == 1
    t = trades[0]
    assert (t.entry_idx, t.exit_idx) == (200, 230)
    assert t.reason == "scenario_complete"
    assert t.ret == pytest.approx(0.1)
    assert rep.final_equity == pytest.approx(11_000.0)
    assert rep.name == DEFAULT_NAME
    assert record.is_closed()
    # the analyzer never sees a prefix inside the warmup window
    assert min(analyzer.sizes) == 201


def test_high_reward_strategy_without_cache_gives_same_trades(make_result):
    series = BarSeries.from_closes([100.0 + i for i in range(260)])
    cached, _, _ = run_strategy(series, build_high_reward_strategy(series, analyzer=ScriptedAnalyzer(make_result)))
    plain, _, _ = run_strategy(
        series,
        build_high_reward_strategy(series, StrategySettings(cache_size=0), analyzer=ScriptedAnalyzer(make_result)),
    )
    assert cached == plain


def test_exit_logic_runs_once_per_open_bar(make_result):
    series = BarSeries.from_closes([100.0 + i for i in range(260)])
    analyzer = ScriptedAnalyzer(make_result)
    strategy = build_high_reward_strategy(series, StrategySettings(cache_size=0), analyzer=analyzer)

    trades, _, _ = run_strategy(series, strategy)

    assert [(t.entry_idx, t.exit_idx) for t in trades] == [(200, 230)]
    # one analysis per bar while holding, including the exit bar
    assert analyzer.sizes.count(216) == 1
    assert analyzer.sizes.count(231) == 1


def test_high_reward_strategy_trades_a_clean_impulse(clean_impulse_closes):
    series = BarSeries.from_closes(clean_impulse_closes)
    analyzer = WaveAnalyzer(
        replace(
            high_reward_analyzer_settings(),
            swing_detector=ZigZagDetector(pct=5.0),
            compression=CompressionProfile.by_name("none"),
        )
    )
    strategy = build_high_reward_strategy(series, StrategySettings(trend_period=20), analyzer=analyzer)

    trades, rep, _ = run_strategy(series, strategy)

    # enters early in wave 3 (stop 130, target 227.08) and leaves when RSI drops under 50 in the sell-off
    assert len(trades) == 1
    t = trades[0]
    assert (t.entry_idx, t.exit_idx) == (46, 75)
    assert (t.entry_px, t.exit_px) == pytest.approx((146.0, 205.0))
    assert t.reason == "momentum_reversal"
    assert rep.final_equity == pytest.approx(10_000.0 * 205.0 / 146.0)

    entry = analyzer.analyze(series.subseries(0, 47))
    assert entry.base.current_phase == ElliottPhase.WAVE3
    assert entry.base.invalidation_price == 130.0
    assert entry.summary.has_strong_consensus
