"""
Lag-aware cause/effect screening over a curated list of metric pairs.

Each candidate pair is tested by shifting the effect series forward by the
expected lag and correlating it with the cause series. The resulting links are
heuristic leading-indicator hints; the templated mechanism text is a label, not
a validated causal claim.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..config import config
from .correlation_analyzer import heuristic_confidence, pearson_correlation

MIN_CAUSAL_SAMPLES = 5
MAX_EVIDENCE = 3


@dataclass(frozen=True)
class CausalPair:
    """A candidate cause/effect pair with the expected delay in days."""
    cause: str
    effect: str
    lag: int = 0

    def __post_init__(self):
        if self.lag < 0:
            raise ValueError(f"Lag must be non-negative, got {self.lag}")


DEFAULT_CAUSAL_PAIRS = (
    CausalPair('energy_level', 'productivity_score', 0),
    CausalPair('break_time', 'energy_level', 1),
    CausalPair('distraction_events', 'focus_time', 0),
    CausalPair('work_duration', 'quality_score', 0),
    CausalPair('focus_time', 'tasks_completed', 0),
)


@dataclass(frozen=True)
class CausalEvidence:
    """One aligned observation supporting a link."""
    day_index: int  # index of the effect day
    cause_value: float
    effect_value: float
    day: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day_index': self.day_index,
            'date': self.day.isoformat() if self.day else None,
            'cause_value': float(self.cause_value),
            'effect_value': float(self.effect_value),
        }


@dataclass(frozen=True)
class CausalLink:
    cause: str
    effect: str
    lag: int  # days
    coefficient: float
    strength: float  # |r| x 100
    heuristic_confidence: float
    mechanism: str
    evidence: Tuple[CausalEvidence, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cause': self.cause,
            'effect': self.effect,
            'lag': self.lag,
            'coefficient': float(round(self.coefficient, 4)),
            'strength': float(round(self.strength, 2)),
            'heuristic_confidence': float(round(self.heuristic_confidence, 2)),
            'mechanism': self.mechanism,
            'evidence': [e.to_dict() for e in self.evidence],
        }


def shift_pair(cause: Sequence[float], effect: Sequence[float], lag: int) -> Tuple[np.ndarray, np.ndarray]:
    """Pair cause[0..N-lag] with effect[lag..N]."""
    cause = np.asarray(cause, dtype=float)
    effect = np.asarray(effect, dtype=float)
    if lag == 0:
        return cause, effect
    if lag >= len(cause):
        return cause[:0], effect[:0]
    return cause[:-lag], effect[lag:]


def _label(metric: str) -> str:
    return metric.replace('_', ' ')


class CausalAnalyzer:
    """Screens curated cause/effect pairs for lagged association."""

    def __init__(
        self,
        pairs: Sequence[CausalPair] = DEFAULT_CAUSAL_PAIRS,
        pair_min_strength: float = None,
        min_strength: float = None,
    ):
        self.pairs = tuple(pairs)
        self.pair_min_strength = (
            pair_min_strength if pair_min_strength is not None else config.CAUSAL_PAIR_MIN_STRENGTH
        )
        self.min_strength = min_strength if min_strength is not None else config.CAUSAL_MIN_STRENGTH
        self.logger = logging.getLogger(__name__)

    def analyze(
        self,
        series: Mapping[str, Sequence[float]],
        dates: Optional[Sequence[date]] = None,
    ) -> List[CausalLink]:
        """
        Analyze all configured pairs.

        Args:
            series: Metric name -> aligned daily values
            dates: Optional calendar day for each index, used to date evidence

        Returns:
            Links with strength at or above the output floor, strongest first
        """
        links = []
        for pair in self.pairs:
            cause_data = series.get(pair.cause)
            effect_data = series.get(pair.effect)
            if cause_data is None or effect_data is None or len(cause_data) < MIN_CAUSAL_SAMPLES:
                continue
            link = self.analyze_pair(pair, cause_data, effect_data, dates)
            if link is not None and link.strength >= self.min_strength:
                links.append(link)

        links.sort(key=lambda link: (-link.strength, link.cause, link.effect, link.lag))
        self.logger.info(f"Retained {len(links)}/{len(self.pairs)} causal links")
        return links

    def analyze_pair(
        self,
        pair: CausalPair,
        cause_data: Sequence[float],
        effect_data: Sequence[float],
        dates: Optional[Sequence[date]] = None,
    ) -> Optional[CausalLink]:
        """Correlate the lag-shifted pair; None when lengths differ or strength is below the pair floor."""
        if len(cause_data) != len(effect_data):
            return None

        cause, effect = shift_pair(cause_data, effect_data, pair.lag)
        coefficient = pearson_correlation(cause, effect)
        strength = abs(coefficient) * 100
        if strength < self.pair_min_strength:
            self.logger.debug(f"{pair.cause}->{pair.effect} too weak ({strength:.1f})")
            return None

        return CausalLink(
            cause=pair.cause,
            effect=pair.effect,
            lag=pair.lag,
            coefficient=coefficient,
            strength=strength,
            heuristic_confidence=heuristic_confidence(len(cause), coefficient),
            mechanism=self._mechanism(pair.cause, pair.effect, coefficient),
            evidence=self._evidence(cause, effect, pair.lag, dates),
        )

    @staticmethod
    def _mechanism(cause: str, effect: str, coefficient: float) -> str:
        direction = "increases" if coefficient > 0 else "decreases"
        return (
            f"Higher {_label(cause)} {direction} {_label(effect)} through direct performance impact "
            f"(heuristic, not a validated causal claim)"
        )

    @staticmethod
    def _evidence(
        cause: np.ndarray,
        effect: np.ndarray,
        lag: int,
        dates: Optional[Sequence[date]],
    ) -> Tuple[CausalEvidence, ...]:
        """Most recent aligned observations first."""
        samples = []
        for i in range(len(cause) - 1, max(-1, len(cause) - 1 - MAX_EVIDENCE), -1):
            effect_index = i + lag
            day = dates[effect_index] if dates is not None and effect_index < len(dates) else None
            samples.append(CausalEvidence(
                day_index=effect_index,
                cause_value=float(cause[i]),
                effect_value=float(effect[i]),
                day=day,
            ))
        return tuple(samples)
