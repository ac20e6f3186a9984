"""
Insight & optimization planning.

Merges correlation, multivariate, pattern and causal results into key insights
and a time-horizon-bucketed optimization plan. Ordering is fully deterministic:
every ranking ends on a stable identifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..config import config
from .causal_analyzer import CausalLink
from .correlation_analyzer import CorrelationResult
from .multivariate import MultivariateAnalysis
from .pattern_matcher import PatternMatch
from .recommendations import Difficulty, Recommendation, RecommendationType, Timeframe

PATTERN_MIN_FREQUENCY = 0.3
PATTERN_MIN_ACCURACY = 70
PATTERN_CONFIDENCE = 80
CAUSAL_MIN_STRENGTH = 60
SURPRISING_MIN_COEFFICIENT = 0.6
SURPRISING_MAX_SIGNIFICANCE = 0.05

TOP_CORRELATIONS = 3
MAX_SURPRISING_FINDINGS = 3
TAKEAWAY_PATTERNS = 3
MAX_TAKEAWAYS = 5


@dataclass(frozen=True)
class KeyInsights:
    strongest_positive: Tuple[CorrelationResult, ...] = ()
    strongest_negative: Tuple[CorrelationResult, ...] = ()
    surprising_findings: Tuple[str, ...] = ()
    actionable_takeaways: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strongest_positive': [c.to_dict() for c in self.strongest_positive],
            'strongest_negative': [c.to_dict() for c in self.strongest_negative],
            'surprising_findings': list(self.surprising_findings),
            'actionable_takeaways': list(self.actionable_takeaways),
        }


@dataclass(frozen=True)
class OptimizationPlan:
    quick_wins: Tuple[Recommendation, ...] = field(default_factory=tuple)
    long_term_strategy: Tuple[Recommendation, ...] = field(default_factory=tuple)
    experiments_to_try: Tuple[Recommendation, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quick_wins': [r.to_dict() for r in self.quick_wins],
            'long_term_strategy': [r.to_dict() for r in self.long_term_strategy],
            'experiments_to_try': [r.to_dict() for r in self.experiments_to_try],
        }


def _label(metric: str) -> str:
    return metric.replace('_', ' ')


def _correlation_key(corr: CorrelationResult):
    return (-abs(corr.coefficient), corr.factor1, corr.factor2)


class OptimizationPlanner:
    """Turns analysis results into ranked recommendations."""

    def __init__(
        self,
        quick_wins_limit: int = None,
        long_term_limit: int = None,
        experiments_limit: int = None,
    ):
        limits = config.get_plan_limits()
        self.quick_wins_limit = quick_wins_limit if quick_wins_limit is not None else limits['quick_wins']
        self.long_term_limit = long_term_limit if long_term_limit is not None else limits['long_term_strategy']
        self.experiments_limit = (
            experiments_limit if experiments_limit is not None else limits['experiments_to_try']
        )
        self.logger = logging.getLogger(__name__)

    def key_insights(
        self,
        correlations: Sequence[CorrelationResult],
        patterns: Sequence[PatternMatch],
    ) -> KeyInsights:
        ranked = sorted(correlations, key=_correlation_key)

        surprising = [
            f"Unexpected {corr.strength.replace('_', ' ')} {corr.direction} correlation between "
            f"{_label(corr.factor1)} and {_label(corr.factor2)}"
            for corr in ranked
            if abs(corr.coefficient) > SURPRISING_MIN_COEFFICIENT
            and corr.heuristic_significance < SURPRISING_MAX_SIGNIFICANCE
        ]

        takeaways = []
        for pattern in list(patterns)[:TAKEAWAY_PATTERNS]:
            takeaways.extend(pattern.insights)

        return KeyInsights(
            strongest_positive=tuple(c for c in ranked if c.direction == "positive")[:TOP_CORRELATIONS],
            strongest_negative=tuple(c for c in ranked if c.direction == "negative")[:TOP_CORRELATIONS],
            surprising_findings=tuple(surprising[:MAX_SURPRISING_FINDINGS]),
            actionable_takeaways=tuple(takeaways[:MAX_TAKEAWAYS]),
        )

    def build_plan(
        self,
        multivariate: Sequence[MultivariateAnalysis],
        patterns: Sequence[PatternMatch],
        causal: Sequence[CausalLink],
    ) -> OptimizationPlan:
        """
        Bucket every candidate recommendation by timeframe and cap each bucket.

        Immediate recommendations become quick wins, long-term ones the
        long-term strategy, and short-term ones experiments to try.
        """
        buckets: Dict[Timeframe, List[Recommendation]] = {
            Timeframe.IMMEDIATE: [],
            Timeframe.LONG_TERM: [],
            Timeframe.SHORT_TERM: [],
        }

        candidates = list(self._multivariate_candidates(multivariate))
        candidates.extend(self._pattern_candidates(patterns))
        candidates.extend(self._causal_candidates(causal))

        for recommendation in self._deduplicate(candidates):
            buckets[recommendation.timeframe].append(recommendation)

        plan = OptimizationPlan(
            quick_wins=tuple(buckets[Timeframe.IMMEDIATE][:self.quick_wins_limit]),
            long_term_strategy=tuple(buckets[Timeframe.LONG_TERM][:self.long_term_limit]),
            experiments_to_try=tuple(buckets[Timeframe.SHORT_TERM][:self.experiments_limit]),
        )
        self.logger.info(
            f"Plan from {len(candidates)} candidates: {len(plan.quick_wins)} quick wins, "
            f"{len(plan.long_term_strategy)} long-term, {len(plan.experiments_to_try)} experiments"
        )
        return plan

    @staticmethod
    def _multivariate_candidates(analyses: Iterable[MultivariateAnalysis]) -> Iterable[Recommendation]:
        for analysis in analyses:
            yield from analysis.recommendations

    @staticmethod
    def _pattern_candidates(patterns: Iterable[PatternMatch]) -> Iterable[Recommendation]:
        for pattern in patterns:
            if pattern.frequency > PATTERN_MIN_FREQUENCY and pattern.predictive_accuracy > PATTERN_MIN_ACCURACY:
                yield Recommendation(
                    type=RecommendationType.OPTIMIZE,
                    action=f"Replicate conditions from {pattern.name}",
                    expected_improvement=pattern.predictive_accuracy,
                    confidence=PATTERN_CONFIDENCE,
                    timeframe=Timeframe.IMMEDIATE,
                    difficulty=Difficulty.MODERATE,
                    source_id=f"pattern:{pattern.pattern_id}",
                )

    @staticmethod
    def _causal_candidates(links: Iterable[CausalLink]) -> Iterable[Recommendation]:
        for link in links:
            if link.strength <= CAUSAL_MIN_STRENGTH:
                continue
            verb = "increasing" if link.coefficient > 0 else "reducing"
            yield Recommendation(
                type=RecommendationType.OPTIMIZE,
                action=f"Focus on {verb} {_label(link.cause)} to enhance {_label(link.effect)}",
                expected_improvement=link.strength,
                confidence=link.heuristic_confidence,
                timeframe=Timeframe.LONG_TERM,
                difficulty=Difficulty.MODERATE,
                source_id=f"causal:{link.cause}:{link.effect}:{link.lag}",
            )

    @staticmethod
    def _deduplicate(candidates: Iterable[Recommendation]) -> List[Recommendation]:
        """Rank candidates and keep the best one per (action, timeframe)."""
        seen = set()
        unique = []
        for recommendation in sorted(candidates, key=lambda r: r.rank_key()):
            key = (recommendation.action, recommendation.timeframe)
            if key in seen:
                continue
            seen.add(key)
            unique.append(recommendation)
        return unique
