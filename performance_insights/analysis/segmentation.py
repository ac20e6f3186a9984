"""Threshold-based segmentation of analysis days."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .conditions import Condition


@dataclass(frozen=True)
class SegmentDefinition:
    segment_id: str
    name: str
    criterion: Condition
    optimization_opportunities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Segment:
    """Days sharing one metric-threshold property."""
    segment_id: str
    name: str
    criterion: Condition
    member_days: Tuple[int, ...]
    averages: Dict[str, float]
    characteristics: Tuple[str, ...]
    optimization_opportunities: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.member_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'segment_id': self.segment_id,
            'name': self.name,
            'criterion': self.criterion.to_dict(),
            'member_days': list(self.member_days),
            'size': self.size,
            'averages': {k: float(round(v, 2)) for k, v in self.averages.items()},
            'characteristics': list(self.characteristics),
            'optimization_opportunities': list(self.optimization_opportunities),
        }


CANONICAL_SEGMENTS = (
    SegmentDefinition(
        segment_id='high_performers',
        name='High Performance Days',
        criterion=Condition('productivity_score', 'greater_than', 80),
        optimization_opportunities=(
            'Replicate conditions that lead to high performance',
            'Maintain consistency in successful patterns',
            'Scale successful approaches to other days',
        ),
    ),
    SegmentDefinition(
        segment_id='low_energy_days',
        name='Low Energy Days',
        criterion=Condition('energy_level', 'less_than', 50),
        optimization_opportunities=(
            'Implement energy restoration strategies',
            'Schedule lighter tasks during low energy periods',
            'Identify root causes of energy depletion',
        ),
    ),
    SegmentDefinition(
        segment_id='high_focus_days',
        name='High Focus Days',
        criterion=Condition('focus_time', 'greater_than', 180),
        optimization_opportunities=(
            'Understand what enables extended focus sessions',
            'Replicate focus-conducive conditions',
            'Protect and prioritize focus time',
        ),
    ),
)

# Conditions on the segment mean of a metric and the label they earn
CHARACTERISTIC_RULES = (
    (Condition('focus_time', 'greater_than', 120), 'Extended focus sessions'),
    (Condition('break_time', 'greater_than', 60), 'Adequate break time'),
    (Condition('distraction_events', 'less_than', 5), 'Low distraction environment'),
)


class SegmentationEngine:
    """Partitions days by single-metric thresholds and profiles each group.

    Segments may overlap; segments without members are omitted.
    """

    def __init__(self, definitions: Sequence[SegmentDefinition] = CANONICAL_SEGMENTS):
        self.definitions = tuple(definitions)
        self.logger = logging.getLogger(__name__)

    def analyze(self, series: Mapping[str, Sequence[float]]) -> List[Segment]:
        segments = []
        for definition in self.definitions:
            segment = self.build_segment(definition, series)
            if segment is not None:
                segments.append(segment)

        self.logger.info(f"Built {len(segments)} non-empty segments")
        return segments

    def build_segment(self, definition: SegmentDefinition, series: Mapping[str, Sequence[float]]) -> Optional[Segment]:
        data = series.get(definition.criterion.metric)
        if data is None or len(data) == 0:
            return None

        members = np.flatnonzero(definition.criterion.evaluate_series(data))
        if members.size == 0:
            return None

        averages = self.segment_averages(members, series, len(data))
        return Segment(
            segment_id=definition.segment_id,
            name=definition.name,
            criterion=definition.criterion,
            member_days=tuple(int(i) for i in members),
            averages=averages,
            characteristics=tuple(self.characteristics(averages)),
            optimization_opportunities=definition.optimization_opportunities,
        )

    @staticmethod
    def segment_averages(
        members: np.ndarray,
        series: Mapping[str, Sequence[float]],
        length: int,
    ) -> Dict[str, float]:
        """Mean of every aligned metric over the member days, ignoring NaN values."""
        averages = {}
        for metric, data in series.items():
            values = np.asarray(data, dtype=float)
            if len(values) != length:
                continue
            member_values = values[members]
            member_values = member_values[np.isfinite(member_values)]
            averages[metric] = float(member_values.mean()) if member_values.size else 0.0
        return averages

    @staticmethod
    def characteristics(averages: Mapping[str, float]) -> List[str]:
        return [
            label for rule, label in CHARACTERISTIC_RULES
            if rule.metric in averages and rule.evaluate(averages[rule.metric])
        ]
