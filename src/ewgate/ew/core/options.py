"""Pattern set: which scenario types the analyzer generates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable

from ewgate.ew.core.model import ScenarioType


@dataclass(frozen=True)
class PatternSet:
    types: FrozenSet[ScenarioType] = frozenset(ScenarioType)

    @staticmethod
    def only(*types: ScenarioType) -> "PatternSet":
        if not types:
            raise ValueError("PatternSet.only needs at least one scenario type")
        return PatternSet(types=frozenset(types))

    @staticmethod
    def all() -> "PatternSet":
        return PatternSet()

    @staticmethod
    def from_names(names: Iterable[str]) -> "PatternSet":
        return PatternSet.only(*[ScenarioType(str(n).strip().lower()) for n in names])

    def allows(self, t: ScenarioType) -> bool:
        return t in self.types
