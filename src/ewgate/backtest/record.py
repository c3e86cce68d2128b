"""Trading record: the harness-owned position state the exit rule queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Position:
    entry_idx: int
    entry_px: float
    amount: float = 1.0
    exit_idx: Optional[int] = None
    exit_px: Optional[float] = None
    exit_reason: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.exit_idx is not None

    @property
    def gross_return(self) -> Optional[float]:
        if self.exit_px is None or self.entry_px <= 0:
            return None
        return (self.exit_px - self.entry_px) / self.entry_px


@dataclass
class TradingRecord:
    positions: List[Position] = field(default_factory=list)

    def is_opened(self) -> bool:
        return bool(self.positions) and not self.positions[-1].is_closed

    def is_closed(self) -> bool:
        return not self.is_opened()

    @property
    def current_position(self) -> Optional[Position]:
        return self.positions[-1] if self.is_opened() else None

    @property
    def closed_positions(self) -> List[Position]:
        return [p for p in self.positions if p.is_closed]

    @property
    def last_entry(self) -> Optional[int]:
        return self.positions[-1].entry_idx if self.positions else None

    def enter(self, index: int, price: float, amount: float = 1.0) -> Position:
        if self.is_opened():
            raise ValueError(f"cannot enter at {index}: a position is already open")
        if amount <= 0:
            raise ValueError("amount must be > 0")
        pos = Position(entry_idx=int(index), entry_px=float(price), amount=float(amount))
        self.positions.append(pos)
        return pos

    def exit(self, index: int, price: float, reason: Optional[str] = None) -> Position:
        pos = self.current_position
        if pos is None:
            raise ValueError(f"cannot exit at {index}: no open position")
        if index < pos.entry_idx:
            raise ValueError("exit index precedes entry index")
        pos.exit_idx = int(index)
        pos.exit_px = float(price)
        pos.exit_reason = reason
        return pos
