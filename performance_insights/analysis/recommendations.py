"""Recommendation records shared by the multivariate analyzer and the planner."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class RecommendationType(Enum):
    """What a recommendation asks for."""
    OPTIMIZE = "optimize"
    MAINTAIN = "maintain"
    AVOID = "avoid"
    EXPERIMENT = "experiment"


class Timeframe(Enum):
    """Horizon over which a recommendation is expected to pay off."""
    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


class Difficulty(Enum):
    EASY = "easy"
    MODERATE = "moderate"
    CHALLENGING = "challenging"


@dataclass(frozen=True)
class Recommendation:
    """A single recommended action.

    ``source_id`` identifies where the recommendation came from and doubles as
    the final tie-breaker when ranking.
    """
    type: RecommendationType
    action: str
    expected_improvement: float  # percentage
    confidence: float  # 0-100
    timeframe: Timeframe
    difficulty: Difficulty
    source_id: str

    def rank_key(self) -> Tuple[float, float, str, str]:
        return (-self.expected_improvement, -self.confidence, self.action, self.source_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'action': self.action,
            'expected_improvement': float(round(self.expected_improvement, 2)),
            'confidence': float(round(self.confidence, 2)),
            'timeframe': self.timeframe.value,
            'difficulty': self.difficulty.value,
            'source_id': self.source_id,
        }
