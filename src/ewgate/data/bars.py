"""OHLCV bar models.

The strategy reads a BarSeries bar by bar:
- bars: list[Bar] (append-only, indexed from 0)
- df: pandas DataFrame (DatetimeIndex UTC), built lazily
- subseries(start, end) for prefix views handed to the wave analyzer
- from_frame / from_csv / from_closes constructors
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional

import pandas as pd

_REQUIRED = ("open", "high", "low", "close")


@dataclass(frozen=True)
class Bar:
    ts: int  # milliseconds since epoch (UTC)
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class BarSeries:
    def __init__(self, bars: List[Bar]):
        self.bars: List[Bar] = list(bars)
        self._df: Optional[pd.DataFrame] = None

    @staticmethod
    def from_frame(df: pd.DataFrame) -> "BarSeries":
        """Build a series from a DataFrame with open/high/low/close[/volume].

        Timestamps come from a `ts` column (epoch ms) when present, otherwise
        from a DatetimeIndex. A plain RangeIndex gets synthetic one-minute stamps.
        """
        missing = [c for c in _REQUIRED if c not in df.columns]
        if missing:
            raise ValueError(f"BarSeries missing columns: {missing}")

        if "ts" in df.columns:
            ts = [int(x) for x in df["ts"].tolist()]
        elif isinstance(df.index, pd.DatetimeIndex):
            idx = df.index.tz_localize("UTC") if df.index.tz is None else df.index.tz_convert("UTC")
            ts = [int(x.value // 1_000_000) for x in idx]
        else:
            ts = [i * 60_000 for i in range(len(df))]

        vol = df["volume"].tolist() if "volume" in df.columns else [0.0] * len(df)
        bars = [
            Bar(ts=t, open=float(o), high=float(h), low=float(lo), close=float(c), volume=float(v or 0.0))
            for t, o, h, lo, c, v in zip(ts, df["open"], df["high"], df["low"], df["close"], vol)
        ]
        return BarSeries(bars)

    @staticmethod
    def from_csv(path: str) -> "BarSeries":
        """Load bars from CSV. Accepts a `ts` (epoch ms) or a `time`/`date` column."""
        df = pd.read_csv(path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        if "ts" not in df.columns:
            for col in ("time", "date", "timestamp", "datetime"):
                if col in df.columns:
                    df = df.set_index(pd.to_datetime(df[col], utc=True)).drop(columns=[col])
                    break
        return BarSeries.from_frame(df)

    @staticmethod
    def from_closes(closes: List[float], start_ms: int = 0, step_ms: int = 60_000) -> "BarSeries":
        """Flat bars (open=high=low=close) from a list of closes."""
        bars = [
            Bar(ts=start_ms + i * step_ms, open=float(c), high=float(c), low=float(c), close=float(c))
            for i, c in enumerate(closes)
        ]
        return BarSeries(bars)

    def __len__(self) -> int:
        return len(self.bars)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self.bars)

    def __getitem__(self, i: int) -> Bar:
        return self.bars[i]

    def subseries(self, start: int, end: int) -> "BarSeries":
        """Bars [start, end). The prefix ending at index i is subseries(0, i + 1)."""
        if start < 0 or end < start:
            raise ValueError(f"invalid subseries range [{start}, {end})")
        return BarSeries(self.bars[start:end])

    @property
    def df(self) -> pd.DataFrame:
        if self._df is None:
            idx = pd.to_datetime([int(b.ts) for b in self.bars], unit="ms", utc=True)
            self._df = pd.DataFrame(
                {
                    "ts": [int(b.ts) for b in self.bars],
                    "open": [float(b.open) for b in self.bars],
                    "high": [float(b.high) for b in self.bars],
                    "low": [float(b.low) for b in self.bars],
                    "close": [float(b.close) for b in self.bars],
                    "volume": [float(b.volume) for b in self.bars],
                },
                index=idx,
            )
        return self._df

    @property
    def close(self) -> pd.Series:
        return self.df["close"]

    @property
    def start_time(self):
        if not self.bars:
            return None
        return pd.to_datetime(int(self.bars[0].ts), unit="ms", utc=True)

    @property
    def end_time(self):
        if not self.bars:
            return None
        return pd.to_datetime(int(self.bars[-1].ts), unit="ms", utc=True)
