"""
Pairwise Correlation Analysis between daily performance metrics

This module implements:
1. Pearson correlation for every unordered pair of equal-length metric series
2. Strength and direction classification
3. Heuristic confidence and significance scores
4. A visualization-ready correlation matrix

The confidence and significance figures are rough heuristics meant for ranking
and display. They are not p-values and carry no inferential guarantee.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

# Lower bounds of each strength bucket on |r|
STRENGTH_THRESHOLDS = {
    'moderate': 0.3,
    'strong': 0.5,
    'very_strong': 0.7,
}

NEUTRAL_BAND = 0.05
MIN_SIGNIFICANCE = 0.001


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson's r between two equal-length series.

    Equivalent to (N·ΣXY − ΣX·ΣY) / √((N·ΣX² − (ΣX)²)(N·ΣY² − (ΣY)²)) computed
    on mean-centred values. Mismatched lengths, fewer than two points, constant
    series and non-finite results all map to 0.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if x.shape != y.shape or x.size < 2:
        return 0.0
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return 0.0
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0

    r = float(np.dot(dx, dy)) / denominator
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def correlation_strength(coefficient: float) -> str:
    """Interpret correlation strength from |r|."""
    abs_corr = abs(coefficient)
    if abs_corr >= STRENGTH_THRESHOLDS['very_strong']:
        return "very_strong"
    elif abs_corr >= STRENGTH_THRESHOLDS['strong']:
        return "strong"
    elif abs_corr >= STRENGTH_THRESHOLDS['moderate']:
        return "moderate"
    else:
        return "weak"


def correlation_direction(coefficient: float) -> str:
    """Direction of correlation, neutral inside ±0.05."""
    if coefficient > NEUTRAL_BAND:
        return "positive"
    elif coefficient < -NEUTRAL_BAND:
        return "negative"
    return "neutral"


def heuristic_confidence(sample_size: int, coefficient: float) -> float:
    """Ad hoc 0-100 confidence: grows with sample size, with a bonus for |r|."""
    base = min(90.0, sample_size * 5.0)
    return min(100.0, base + abs(coefficient) * 20.0)


def heuristic_significance(coefficient: float, sample_size: int) -> float:
    """
    Rough p-value stand-in: 1 / (1 + t²) with t = |r|·√((N−2)/(1−r²)).

    Clamped to [0.001, 1]. Smaller means "less likely to be noise" only in a
    loose, ranking sense.
    """
    if sample_size < 3:
        return 1.0

    remainder = 1.0 - coefficient * coefficient
    if remainder <= 0:
        return MIN_SIGNIFICANCE

    t_stat = abs(coefficient) * math.sqrt((sample_size - 2) / remainder)
    return max(MIN_SIGNIFICANCE, min(1.0, 1.0 / (1.0 + t_stat * t_stat)))


@dataclass(frozen=True)
class CorrelationResult:
    """Represents a correlation between two metrics."""
    factor1: str
    factor2: str
    coefficient: float  # Pearson correlation coefficient
    sample_size: int
    heuristic_confidence: float  # 0-100, not a statistical confidence level
    heuristic_significance: float  # p-value-like heuristic, not a p-value

    @property
    def strength(self) -> str:
        return correlation_strength(self.coefficient)

    @property
    def direction(self) -> str:
        return correlation_direction(self.coefficient)

    def involves(self, metric: str) -> bool:
        return metric in (self.factor1, self.factor2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'factor1': self.factor1,
            'factor2': self.factor2,
            'coefficient': float(round(self.coefficient, 4)),
            'strength': self.strength,
            'direction': self.direction,
            'heuristic_confidence': float(round(self.heuristic_confidence, 2)),
            'sample_size': int(self.sample_size),
            'heuristic_significance': float(round(self.heuristic_significance, 4)),
        }


class CorrelationAnalyzer:
    """Bi-variate correlation analysis across all metric series."""

    def __init__(self, min_samples: int = 3):
        self.min_samples = min_samples
        self.logger = logging.getLogger(__name__)

    def correlate(self, name1: str, data1: Sequence[float], name2: str, data2: Sequence[float]) -> CorrelationResult:
        """Correlate two series regardless of length checks."""
        coefficient = pearson_correlation(data1, data2)
        n = len(data1)
        return CorrelationResult(
            factor1=name1,
            factor2=name2,
            coefficient=coefficient,
            sample_size=n,
            heuristic_confidence=heuristic_confidence(n, coefficient),
            heuristic_significance=heuristic_significance(coefficient, n),
        )

    def analyze(self, series: Mapping[str, Sequence[float]]) -> List[CorrelationResult]:
        """
        Correlate every unordered pair of metrics.

        Args:
            series: Metric name -> values, one per day

        Returns:
            Results sorted by |r| descending, ties broken by factor names
        """
        names = list(series.keys())
        results = []

        for i, name1 in enumerate(names):
            data1 = series[name1]
            for name2 in names[i + 1:]:
                data2 = series[name2]
                if len(data1) != len(data2) or len(data1) < self.min_samples:
                    self.logger.debug(f"Skipping {name1}/{name2}: lengths {len(data1)}/{len(data2)}")
                    continue
                results.append(self.correlate(name1, data1, name2, data2))

        results.sort(key=lambda r: (-abs(r.coefficient), r.factor1, r.factor2))
        self.logger.info(f"Computed {len(results)} pairwise correlations across {len(names)} metrics")
        return results

    def build_correlation_matrix(self, series: Mapping[str, Sequence[float]]) -> pd.DataFrame:
        """Symmetric matrix of r for all metrics, 1.0 on the diagonal for non-constant series."""
        names = list(series.keys())
        matrix = pd.DataFrame(np.zeros((len(names), len(names))), index=names, columns=names)

        for i, name1 in enumerate(names):
            for j, name2 in enumerate(names):
                if j < i:
                    matrix.iloc[i, j] = matrix.iloc[j, i]
                    continue
                data1, data2 = series[name1], series[name2]
                if len(data1) != len(data2) or len(data1) < self.min_samples:
                    continue
                matrix.iloc[i, j] = pearson_correlation(data1, data2)

        return matrix
