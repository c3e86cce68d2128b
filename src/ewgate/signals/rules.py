"""Trading rules and the entry/exit decision logic.

A rule is any callable (index, record) -> bool. Rules close over indicator
series and the prefix analysis; they hold no state of their own, so
evaluating a rule twice for the same index gives the same answer.

Entry:  trend and momentum and impulse (short-circuit, cheapest first)
Exit:   only while a position is open, first match wins:
        scenario complete/invalidated -> stop breached -> momentum reversal
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

import pandas as pd

from ewgate.ew.core.model import AnalysisResult, ElliottPhase, ScenarioType
from ewgate.indicators import macd, rsi, sma, value_at
from ewgate.logging import get_logger

log = get_logger("ewgate.rules")

Rule = Callable[[int, Optional[Any]], bool]
Analysis = Callable[[int], AnalysisResult]

EXIT_SCENARIO_COMPLETE = "scenario_complete"
EXIT_SCENARIO_INVALIDATED = "scenario_invalidated"
EXIT_STOP_BREACH = "stop_breach"
EXIT_MOMENTUM_REVERSAL = "momentum_reversal"
EXIT_SIGNAL = "exit"  # exit rule fired without a reason


def is_open(record: Optional[Any]) -> bool:
    return record is not None and bool(record.is_opened())


# -------------------------
# Combinators
# -------------------------
def over_indicator_rule(first: pd.Series, second: pd.Series) -> Rule:
    """first[i] > second[i]; false while either value is unstable."""

    def rule(index: int, record: Optional[Any] = None) -> bool:
        a = value_at(first, index)
        b = value_at(second, index)
        return a is not None and b is not None and a > b

    return rule


def over_threshold_rule(indicator: pd.Series, threshold: float) -> Rule:
    def rule(index: int, record: Optional[Any] = None) -> bool:
        v = value_at(indicator, index)
        return v is not None and v > threshold

    return rule


def and_rules(*rules: Rule) -> Rule:
    """Left-to-right conjunction, stops at the first false rule."""

    def rule(index: int, record: Optional[Any] = None) -> bool:
        return all(r(index, record) for r in rules)

    return rule


def or_rules(*rules: Rule) -> Rule:
    def rule(index: int, record: Optional[Any] = None) -> bool:
        return any(r(index, record) for r in rules)

    return rule


def not_rule(inner: Rule) -> Rule:
    def rule(index: int, record: Optional[Any] = None) -> bool:
        return not inner(index, record)

    return rule


# -------------------------
# Conditions
# -------------------------
def trend_rule(close: pd.Series, period: int = 200) -> Rule:
    """Close above its simple moving average."""
    return over_indicator_rule(close, sma(close, period))


def momentum_rule(
    close: pd.Series,
    rsi_period: int = 14,
    rsi_threshold: float = 50.0,
    macd_fast: int = 12,
    macd_slow: int = 26,
) -> Rule:
    """RSI above threshold and MACD line above zero."""
    return and_rules(
        over_threshold_rule(rsi(close, rsi_period), rsi_threshold),
        over_threshold_rule(macd(close, macd_fast, macd_slow), 0.0),
    )


def reward_risk_ratio(close: float, invalidation: float, target: float) -> Optional[float]:
    """reward / risk for a long at `close`, or None when the trade has no valid shape.

    None when the close is at/below invalidation, at/above target, or risk <= 0.
    """
    if close <= invalidation or close >= target:
        return None
    risk = close - invalidation
    reward = target - close
    if risk <= 0:
        return None
    return reward / risk


def impulse_rule(
    close: pd.Series,
    analysis: Analysis,
    min_reward_risk: float = 3.0,
    phases: Iterable[ElliottPhase] = (ElliottPhase.WAVE3, ElliottPhase.WAVE5),
) -> Rule:
    """High-confidence, strong-consensus impulse in a tradeable phase with reward/risk >= min."""
    tradeable = frozenset(phases)

    def rule(index: int, record: Optional[Any] = None) -> bool:
        result = analysis(index)
        base = result.scenarios.base
        if base is None or base.type != ScenarioType.IMPULSE:
            return False
        if base.current_phase not in tradeable:
            return False
        if not base.is_high_confidence or not result.summary.has_strong_consensus:
            return False
        px = value_at(close, index)
        if px is None:
            return False
        rr = reward_risk_ratio(px, base.invalidation_price, base.primary_target)
        if rr is None:
            return False
        ok = rr >= min_reward_risk
        log.debug(
            "impulse gate",
            extra={"index": index, "phase": base.current_phase.value, "close": px, "rr": rr, "ok": ok},
        )
        return ok

    return rule


def exit_reason(
    close: pd.Series,
    analysis: Analysis,
    momentum: Rule,
) -> Callable[[int, Optional[Any]], Optional[str]]:
    """Why an open position should be closed at index, or None to hold.

    Flat positions never exit and never trigger an analysis. Without a base
    scenario only the momentum check applies.
    """

    def reason(index: int, record: Optional[Any] = None) -> Optional[str]:
        if not is_open(record):
            return None
        base = analysis(index).scenarios.base
        if base is not None:
            if base.expects_completion:
                return EXIT_SCENARIO_COMPLETE
            if base.is_invalidated:
                return EXIT_SCENARIO_INVALIDATED
            px = value_at(close, index)
            if px is not None and px <= base.invalidation_price:
                return EXIT_STOP_BREACH
        if not momentum(index, record):
            return EXIT_MOMENTUM_REVERSAL
        return None

    return reason


def exit_rule(reason: Callable[[int, Optional[Any]], Optional[str]]) -> Rule:
    def rule(index: int, record: Optional[Any] = None) -> bool:
        why = reason(index, record)
        if why is not None:
            log.debug("exit signal", extra={"index": index, "reason": why})
        return why is not None

    return rule
