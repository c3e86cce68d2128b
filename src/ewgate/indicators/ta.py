"""Causal price indicators on pandas Series.

Every indicator is aligned to bar index and depends only on bars 0..i.
Bars without enough history are NaN (the unstable sentinel); rules treat
NaN as "not satisfied" via value_at().
"""

from __future__ import annotations

import math
from typing import Any, Optional

import pandas as pd


def _as_float_series(x: Any) -> pd.Series:
    if isinstance(x, pd.Series):
        return x.astype(float).reset_index(drop=True)
    return pd.Series(list(x), dtype=float)


def close_price(series: Any) -> pd.Series:
    """Close prices of a BarSeries (or anything with a .close Series), index 0..n-1."""
    close = getattr(series, "close", series)
    return _as_float_series(close)


def sma(close: pd.Series, period: int) -> pd.Series:
    if period <= 0:
        raise ValueError("sma period must be > 0")
    return _as_float_series(close).rolling(window=period, min_periods=period).mean()


def ema(close: pd.Series, span: int) -> pd.Series:
    if span <= 0:
        raise ValueError("ema span must be > 0")
    return _as_float_series(close).ewm(span=span, adjust=False, min_periods=span).mean()


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """Wilder RSI. 100 when there are gains and no losses, 50 on a flat window."""
    if period <= 0:
        raise ValueError("rsi period must be > 0")
    c = _as_float_series(close)
    delta = c.diff()
    gains = delta.clip(lower=0.0)
    losses = -delta.clip(upper=0.0)
    alpha = 1.0 / period
    avg_gain = gains.ewm(alpha=alpha, adjust=False, min_periods=period).mean()
    avg_loss = losses.ewm(alpha=alpha, adjust=False, min_periods=period).mean()

    rs = avg_gain / avg_loss.where(avg_loss > 0.0)
    out = 100.0 - 100.0 / (1.0 + rs)
    flat = (avg_loss == 0.0) & avg_gain.notna()
    out = out.mask(flat & (avg_gain > 0.0), 100.0)
    out = out.mask(flat & (avg_gain == 0.0), 50.0)
    return out


def macd(close: pd.Series, fast: int = 12, slow: int = 26) -> pd.Series:
    """MACD line: EMA(fast) - EMA(slow)."""
    if fast >= slow:
        raise ValueError("macd fast period must be < slow period")
    return ema(close, fast) - ema(close, slow)


def atr(high: pd.Series, low: pd.Series, close: pd.Series, period: int = 14) -> pd.Series:
    """Wilder average true range."""
    if period <= 0:
        raise ValueError("atr period must be > 0")
    h = _as_float_series(high)
    lo = _as_float_series(low)
    c = _as_float_series(close)
    prev = c.shift(1)
    tr = pd.concat([h - lo, (h - prev).abs(), (lo - prev).abs()], axis=1).max(axis=1)
    return tr.ewm(alpha=1.0 / period, adjust=False, min_periods=period).mean()


def value_at(series: pd.Series, index: int) -> Optional[float]:
    """Indicator value at bar index, or None when out of range or unstable."""
    if index < 0 or index >= len(series):
        return None
    v = series.iloc[index]
    if v is None or pd.isna(v):
        return None
    v = float(v)
    if math.isinf(v):
        return None
    return v
