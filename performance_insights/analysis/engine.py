"""
Analysis session orchestrating the full pipeline.

normalize -> correlations, multivariate contributors, patterns, segments,
causal links -> key insights and optimization plan.

Every stage is a pure function of the normalized series. The only state is the
session-owned productivity cache, which is cleared at the start of each run.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .causal_analyzer import CausalAnalyzer, CausalLink, CausalPair, DEFAULT_CAUSAL_PAIRS
from .correlation_analyzer import CorrelationAnalyzer, CorrelationResult
from .multivariate import MultivariateAnalysis, MultivariateAnalyzer
from .normalizer import EnergyInput, MetricNormalizer, NormalizationReport, ProductivityCache
from .optimization_planner import KeyInsights, OptimizationPlan, OptimizationPlanner
from .pattern_matcher import CANONICAL_PATTERNS, PatternDefinition, PatternMatch, PatternMatcher
from .segmentation import CANONICAL_SEGMENTS, Segment, SegmentDefinition, SegmentationEngine


@dataclass(frozen=True)
class AnalysisReport:
    """Everything one analysis run produced."""
    dates: List[date]
    metric_names: List[str]
    correlations: List[CorrelationResult]
    multivariate: List[MultivariateAnalysis]
    patterns: List[PatternMatch]
    segments: List[Segment]
    causal_links: List[CausalLink]
    key_insights: KeyInsights
    plan: OptimizationPlan
    normalization: Optional[NormalizationReport] = None
    series: Dict[str, List[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'analysis_period': {
                'start_date': self.dates[0].isoformat() if self.dates else None,
                'end_date': self.dates[-1].isoformat() if self.dates else None,
                'days': len(self.dates),
            },
            'metrics': list(self.metric_names),
            'normalization': self.normalization.to_dict() if self.normalization else None,
            'correlations': [c.to_dict() for c in self.correlations],
            'multivariate': [m.to_dict() for m in self.multivariate],
            'patterns': [p.to_dict() for p in self.patterns],
            'segments': [s.to_dict() for s in self.segments],
            'causal_links': [c.to_dict() for c in self.causal_links],
            'key_insights': self.key_insights.to_dict(),
            'optimization_plan': self.plan.to_dict(),
        }


class AnalysisSession:
    """
    One analysis session over a user's events, tasks and energy estimates.

    Sessions are synchronous and single-threaded; any concurrent fetching of
    inputs has to finish before ``run`` is called.
    """

    def __init__(
        self,
        window_days: int = None,
        infer_energy: bool = False,
        match_mode: str = None,
        patterns: Sequence[PatternDefinition] = CANONICAL_PATTERNS,
        segments: Sequence[SegmentDefinition] = CANONICAL_SEGMENTS,
        causal_pairs: Sequence[CausalPair] = DEFAULT_CAUSAL_PAIRS,
    ):
        self.cache = ProductivityCache()
        self.infer_energy = infer_energy
        self.normalizer = MetricNormalizer(window_days=window_days, cache=self.cache)
        self.correlation_analyzer = CorrelationAnalyzer()
        self.multivariate_analyzer = MultivariateAnalyzer()
        self.pattern_matcher = PatternMatcher(patterns=patterns, match_mode=match_mode)
        self.segmentation_engine = SegmentationEngine(definitions=segments)
        self.causal_analyzer = CausalAnalyzer(pairs=causal_pairs)
        self.planner = OptimizationPlanner()
        self.logger = logging.getLogger(__name__)

    def run(
        self,
        events: Iterable[Any],
        tasks: Iterable[Any],
        end_date,
        energy: EnergyInput = None,
    ) -> AnalysisReport:
        """
        Normalize raw inputs and run every analysis stage.

        Args:
            events: Action events for (at least) the analysis window
            tasks: Task records
            end_date: Last day of the analysis window
            energy: Optional daily energy estimate

        Returns:
            AnalysisReport
        """
        self.cache.clear()
        self.logger.info(f"Starting performance analysis ({self.normalizer.window_days} days to {end_date})")

        metrics = self.normalizer.normalize(
            events, tasks, end_date, energy=energy, infer_energy=self.infer_energy
        )
        return self.analyze_series(metrics.series(), dates=metrics.dates, normalization=metrics.report)

    def analyze_series(
        self,
        series: Mapping[str, Sequence[float]],
        dates: Optional[Sequence[date]] = None,
        normalization: Optional[NormalizationReport] = None,
    ) -> AnalysisReport:
        """Run every analysis stage over already aligned series."""
        correlations = self.correlation_analyzer.analyze(series)
        multivariate = self.multivariate_analyzer.analyze(series)
        patterns = self.pattern_matcher.analyze(series)
        segments = self.segmentation_engine.analyze(series)
        causal_links = self.causal_analyzer.analyze(series, dates=dates)

        key_insights = self.planner.key_insights(correlations, patterns)
        plan = self.planner.build_plan(multivariate, patterns, causal_links)

        self.logger.info(
            f"Analysis complete: {len(correlations)} correlations, {len(patterns)} patterns, "
            f"{len(segments)} segments, {len(causal_links)} causal links"
        )
        return AnalysisReport(
            dates=list(dates or []),
            metric_names=list(series.keys()),
            correlations=correlations,
            multivariate=multivariate,
            patterns=patterns,
            segments=segments,
            causal_links=causal_links,
            key_insights=key_insights,
            plan=plan,
            normalization=normalization,
            series={name: [float(v) for v in values] for name, values in series.items()},
        )


def analyze_performance(
    events: Iterable[Any],
    tasks: Iterable[Any],
    end_date,
    energy: EnergyInput = None,
    window_days: int = None,
    infer_energy: bool = False,
) -> Dict[str, Any]:
    """Convenience function for one-off analysis returning a JSON-ready report."""
    session = AnalysisSession(window_days=window_days, infer_energy=infer_energy)
    return session.run(events, tasks, end_date, energy=energy).to_dict()
