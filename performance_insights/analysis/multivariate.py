"""
Multivariate contributor analysis.

For each target metric, every other metric is scored by how strongly it moves
with the target. The scores are correlation-based contribution estimates, and
the summed "model accuracy" is a rough explained-variance proxy rather than a
fitted R².
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..config import config
from .correlation_analyzer import pearson_correlation
from .recommendations import Difficulty, Recommendation, RecommendationType, Timeframe

DEFAULT_TARGET_METRICS = ('productivity_score', 'time_efficiency', 'quality_score', 'energy_level')

MIN_TARGET_SAMPLES = 5
MAX_CONTRIBUTORS = 8
MAX_INTERACTIONS = 3
INTERACTION_THRESHOLD = 0.3
RECOMMENDATION_CANDIDATES = 5
RECOMMENDATION_MIN_CONTRIBUTION = 10


@dataclass(frozen=True)
class FactorContribution:
    """How much one predictor moves with a target metric."""
    factor: str
    contribution: float  # |r| x 100
    direction: str  # 'positive' or 'negative'
    importance: float  # 0-100
    interacts_with: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'factor': self.factor,
            'contribution': float(round(self.contribution, 2)),
            'direction': self.direction,
            'importance': float(round(self.importance, 2)),
            'interacts_with': list(self.interacts_with),
        }


@dataclass(frozen=True)
class MultivariateAnalysis:
    """Ranked contributors to one target metric."""
    target_metric: str
    contributing_factors: Tuple[FactorContribution, ...]
    heuristic_model_accuracy: float  # 0-100, explained-variance proxy
    explanation: str
    recommendations: Tuple[Recommendation, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_metric': self.target_metric,
            'contributing_factors': [f.to_dict() for f in self.contributing_factors],
            'heuristic_model_accuracy': float(round(self.heuristic_model_accuracy, 2)),
            'explanation': self.explanation,
            'recommendations': [r.to_dict() for r in self.recommendations],
        }


def _label(metric: str) -> str:
    return metric.replace('_', ' ')


class MultivariateAnalyzer:
    """Per-target decomposition of contributing factors."""

    def __init__(
        self,
        target_metrics: Sequence[str] = DEFAULT_TARGET_METRICS,
        min_contribution: float = None,
    ):
        self.target_metrics = tuple(target_metrics)
        self.min_contribution = (
            min_contribution if min_contribution is not None else config.MULTIVARIATE_MIN_CONTRIBUTION
        )
        self.logger = logging.getLogger(__name__)

    def analyze(self, series: Mapping[str, Sequence[float]]) -> List[MultivariateAnalysis]:
        """
        Analyze each configured target present in ``series``.

        Targets that are absent or have fewer than five samples are skipped.
        """
        analyses = []
        for target in self.target_metrics:
            target_data = series.get(target)
            if target_data is None or len(target_data) < MIN_TARGET_SAMPLES:
                self.logger.debug(f"Skipping target {target}: missing or too short")
                continue
            analyses.append(self.analyze_target(target, series))

        self.logger.info(f"Built {len(analyses)} multivariate analyses")
        return analyses

    def analyze_target(self, target: str, series: Mapping[str, Sequence[float]]) -> MultivariateAnalysis:
        target_data = series[target]
        n = len(target_data)
        predictors = [
            name for name, data in series.items()
            if name != target and len(data) == n
        ]

        contributions = []
        for predictor in predictors:
            correlation = pearson_correlation(target_data, series[predictor])
            contribution = abs(correlation) * 100
            if contribution < self.min_contribution:
                continue

            contributions.append(FactorContribution(
                factor=predictor,
                contribution=contribution,
                direction="positive" if correlation > 0 else "negative",
                importance=min(100.0, abs(correlation) * 100 + min(20, n)),
                interacts_with=self._interacting_factors(predictor, predictors, series),
            ))

        contributions.sort(key=lambda f: (-f.contribution, f.factor))
        total = sum(f.contribution for f in contributions)

        return MultivariateAnalysis(
            target_metric=target,
            contributing_factors=tuple(contributions[:MAX_CONTRIBUTORS]),
            heuristic_model_accuracy=min(100.0, total),
            explanation=self._explanation(target, contributions, total),
            recommendations=tuple(self._recommendations(target, contributions)),
        )

    @staticmethod
    def _interacting_factors(
        predictor: str,
        predictors: Sequence[str],
        series: Mapping[str, Sequence[float]],
    ) -> Tuple[str, ...]:
        """Other predictors moving with this one (|r| > 0.3), strongest first."""
        scored = []
        for other in predictors:
            if other == predictor:
                continue
            r = abs(pearson_correlation(series[predictor], series[other]))
            if r > INTERACTION_THRESHOLD:
                scored.append((-r, other))
        scored.sort()
        return tuple(name for _, name in scored[:MAX_INTERACTIONS])

    @staticmethod
    def _explanation(target: str, contributions: List[FactorContribution], total: float) -> str:
        if not contributions:
            return f"No meaningful contributors to {_label(target)} were found."

        names = ', '.join(_label(f.factor) for f in contributions[:3])
        return (
            f"{_label(target).capitalize()} is primarily associated with {names}. "
            f"Together, these factors account for roughly {total:.1f}% of the variation (heuristic estimate)."
        )

    @staticmethod
    def _recommendations(target: str, contributions: List[FactorContribution]) -> List[Recommendation]:
        recommendations = []
        for factor in contributions[:RECOMMENDATION_CANDIDATES]:
            if factor.contribution <= RECOMMENDATION_MIN_CONTRIBUTION:
                continue

            positive = factor.direction == "positive"
            recommendations.append(Recommendation(
                type=RecommendationType.OPTIMIZE if positive else RecommendationType.AVOID,
                action=f"{'Increase' if positive else 'Reduce'} {_label(factor.factor)}",
                expected_improvement=factor.contribution,
                confidence=factor.importance,
                timeframe=Timeframe.IMMEDIATE if factor.contribution > 20 else Timeframe.SHORT_TERM,
                difficulty=Difficulty.EASY if factor.importance > 70 else Difficulty.MODERATE,
                source_id=f"multivariate:{target}:{factor.factor}",
            ))
        return recommendations
