"""
Recurring performance pattern detection.

A pattern is a named set of threshold conditions over daily metrics together
with the outcomes it is expected to produce. By default a day matches only when
every condition holds; condition weights are carried for reporting. A weighted
mode, where a day matches once the weight share of satisfied conditions reaches
a threshold, is available as an explicit opt-in.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..config import config
from .conditions import Condition

MATCH_MODES = ("all", "weighted")
IMPACT_LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class ExpectedOutcome:
    """What a pattern is expected to produce on matching days."""
    metric: str
    expected_value: float
    variance: float
    impact_level: str  # 'low', 'medium', 'high'

    def __post_init__(self):
        if self.impact_level not in IMPACT_LEVELS:
            raise ValueError(f"Unknown impact level '{self.impact_level}'")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metric': self.metric,
            'expected_value': float(self.expected_value),
            'variance': float(self.variance),
            'impact_level': self.impact_level,
        }


@dataclass(frozen=True)
class PatternDefinition:
    """A named conjunction of weighted conditions with expected outcomes."""
    pattern_id: str
    name: str
    conditions: Tuple[Condition, ...]
    outcomes: Tuple[ExpectedOutcome, ...]

    def __post_init__(self):
        if not self.conditions:
            raise ValueError(f"Pattern '{self.pattern_id}' needs at least one condition")

    @property
    def metrics(self) -> List[str]:
        return [c.metric for c in self.conditions]

    def describe(self) -> str:
        return ' AND '.join(c.describe() for c in self.conditions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pattern_id': self.pattern_id,
            'name': self.name,
            'conditions': [c.to_dict() for c in self.conditions],
            'outcomes': [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class PatternMatch:
    """A pattern observed often enough in the analysis window."""
    definition: PatternDefinition
    matched_days: Tuple[int, ...]
    frequency: float  # 0-1
    predictive_accuracy: float  # 0-100
    description: str
    insights: Tuple[str, ...]

    @property
    def pattern_id(self) -> str:
        return self.definition.pattern_id

    @property
    def name(self) -> str:
        return self.definition.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pattern_id': self.pattern_id,
            'name': self.name,
            'description': self.description,
            'matched_days': list(self.matched_days),
            'frequency': float(round(self.frequency, 4)),
            'predictive_accuracy': float(round(self.predictive_accuracy, 2)),
            'conditions': [c.to_dict() for c in self.definition.conditions],
            'outcomes': [o.to_dict() for o in self.definition.outcomes],
            'insights': list(self.insights),
        }


CANONICAL_PATTERNS = (
    PatternDefinition(
        pattern_id='high_energy_high_productivity',
        name='High Energy Leading to High Productivity',
        conditions=(
            Condition('energy_level', 'greater_than', 70, weight=0.6),
            Condition('focus_time', 'greater_than', 120, weight=0.4),
        ),
        outcomes=(
            ExpectedOutcome('productivity_score', 85, 10, 'high'),
            ExpectedOutcome('quality_score', 80, 15, 'medium'),
        ),
    ),
    PatternDefinition(
        pattern_id='optimal_break_pattern',
        name='Optimal Break Time for Sustained Performance',
        conditions=(
            Condition('break_time', 'between', (30, 90), weight=0.5),
            Condition('work_duration', 'between', (240, 480), weight=0.5),
        ),
        outcomes=(
            ExpectedOutcome('time_efficiency', 78, 12, 'medium'),
            ExpectedOutcome('distraction_events', 5, 3, 'low'),
        ),
    ),
    PatternDefinition(
        pattern_id='morning_peak_performance',
        name='Morning Peak Performance Pattern',
        conditions=(
            Condition('hour_of_day', 'between', (8, 11), weight=0.7),
            Condition('energy_level', 'greater_than', 65, weight=0.3),
        ),
        outcomes=(
            ExpectedOutcome('productivity_score', 82, 8, 'high'),
            ExpectedOutcome('tasks_completed', 4, 2, 'medium'),
        ),
    ),
    PatternDefinition(
        pattern_id='complexity_balance',
        name='Optimal Task Complexity Balance',
        conditions=(
            Condition('task_complexity', 'between', (2, 4), weight=0.6),
            Condition('task_variety', 'greater_than', 2, weight=0.4),
        ),
        outcomes=(
            ExpectedOutcome('quality_score', 85, 10, 'high'),
            ExpectedOutcome('time_efficiency', 75, 12, 'medium'),
        ),
    ),
    PatternDefinition(
        pattern_id='low_distraction_focus',
        name='Low Distraction Periods Drive Focus',
        conditions=(
            Condition('distraction_events', 'less_than', 3, weight=0.7),
            Condition('context_switches', 'less_than', 5, weight=0.3),
        ),
        outcomes=(
            ExpectedOutcome('focus_time', 180, 30, 'high'),
            ExpectedOutcome('productivity_score', 80, 12, 'medium'),
        ),
    ),
)


def _label(metric: str) -> str:
    return metric.replace('_', ' ')


class PatternMatcher:
    """Evaluates pattern definitions against aligned daily metric series."""

    def __init__(
        self,
        patterns: Sequence[PatternDefinition] = CANONICAL_PATTERNS,
        min_frequency: float = None,
        match_mode: str = None,
        weighted_threshold: float = None,
    ):
        self.patterns = tuple(patterns)
        self.min_frequency = min_frequency if min_frequency is not None else config.PATTERN_MIN_FREQUENCY
        self.match_mode = match_mode or config.PATTERN_MATCH_MODE
        if self.match_mode not in MATCH_MODES:
            raise ValueError(f"Unknown match mode '{self.match_mode}', expected one of {MATCH_MODES}")
        self.weighted_threshold = (
            weighted_threshold if weighted_threshold is not None else config.PATTERN_WEIGHTED_THRESHOLD
        )
        self.logger = logging.getLogger(__name__)

    def analyze(self, series: Mapping[str, Sequence[float]]) -> List[PatternMatch]:
        """Evaluate every pattern; rare or unevaluable patterns are left out."""
        matches = []
        for pattern in self.patterns:
            match = self.evaluate(pattern, series)
            if match is not None:
                matches.append(match)

        self.logger.info(f"{len(matches)}/{len(self.patterns)} patterns retained")
        return matches

    def matching_days(self, pattern: PatternDefinition, series: Mapping[str, Sequence[float]]) -> Optional[np.ndarray]:
        """Indices of matching days, or None when a referenced metric is absent."""
        lengths = {len(series[m]) for m in pattern.metrics if m in series}
        if len(lengths) != 1 or any(m not in series for m in pattern.metrics):
            return None

        masks = [c.evaluate_series(series[c.metric]) for c in pattern.conditions]
        if self.match_mode == "all":
            mask = np.logical_and.reduce(masks)
        else:
            weights = np.asarray([c.weight for c in pattern.conditions], dtype=float)
            total = weights.sum()
            if total <= 0:
                return None
            satisfied = np.sum([w * m for w, m in zip(weights, masks)], axis=0)
            mask = satisfied / total >= self.weighted_threshold

        return np.flatnonzero(mask)

    def evaluate(self, pattern: PatternDefinition, series: Mapping[str, Sequence[float]]) -> Optional[PatternMatch]:
        """Match one pattern; None when absent metrics, empty data or below the frequency floor."""
        indices = self.matching_days(pattern, series)
        if indices is None:
            self.logger.debug(f"Pattern {pattern.pattern_id} references a missing metric")
            return None

        total_days = len(series[pattern.conditions[0].metric])
        if total_days == 0:
            return None

        frequency = len(indices) / total_days
        if frequency < self.min_frequency or len(indices) == 0:
            self.logger.debug(f"Pattern {pattern.pattern_id} discarded at frequency {frequency:.3f}")
            return None

        return PatternMatch(
            definition=pattern,
            matched_days=tuple(int(i) for i in indices),
            frequency=frequency,
            predictive_accuracy=self.predictive_accuracy(indices, pattern.outcomes, series, total_days),
            description=f"{pattern.describe()}: occurs {frequency * 100:.1f}% of the time",
            insights=tuple(self._insights(pattern, frequency)),
        )

    @staticmethod
    def predictive_accuracy(
        indices: Sequence[int],
        outcomes: Sequence[ExpectedOutcome],
        series: Mapping[str, Sequence[float]],
        total_days: Optional[int] = None,
    ) -> float:
        """
        Mean closeness (0-100) of matched-day averages to the expected outcomes.

        Outcomes whose metric is absent, or whose series length differs from
        ``total_days`` or does not cover the matched days, are skipped. An
        expected value of zero scores 100 on an exact hit and 0 otherwise.
        """
        if len(indices) == 0:
            return 0.0

        accuracies = []
        for outcome in outcomes:
            data = series.get(outcome.metric)
            if data is None:
                continue
            if total_days is not None and len(data) != total_days:
                continue
            if len(data) <= max(indices):
                continue
            actual = float(np.mean(np.asarray(data, dtype=float)[list(indices)]))
            if outcome.expected_value == 0:
                accuracies.append(100.0 if actual == 0 else 0.0)
                continue
            error = abs(actual - outcome.expected_value) / abs(outcome.expected_value) * 100
            accuracies.append(max(0.0, 100.0 - error))

        return float(np.mean(accuracies)) if accuracies else 0.0

    @staticmethod
    def _insights(pattern: PatternDefinition, frequency: float) -> List[str]:
        insights = [f"This pattern occurs {frequency * 100:.1f}% of the time"]

        key_condition = max(pattern.conditions, key=lambda c: c.weight)
        insights.append(f"Key factor: {_label(key_condition.metric)}")

        if pattern.outcomes:
            primary = next(
                (o for o in pattern.outcomes if o.impact_level == 'high'),
                pattern.outcomes[0],
            )
            insights.append(f"Primary benefit: improved {_label(primary.metric)}")

        return insights
