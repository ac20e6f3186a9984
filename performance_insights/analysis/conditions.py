"""Threshold conditions shared by the pattern matcher and segmentation engine."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

import numpy as np

OPERATORS = ("greater_than", "less_than", "equals", "between")

# Tolerance for the "equals" operator
EQUALS_EPSILON = 0.01

Threshold = Union[float, Tuple[float, float]]


@dataclass(frozen=True)
class Condition:
    """A single threshold test on one metric.

    ``weight`` is reporting metadata; it only affects matching when a pattern
    matcher runs in weighted mode.
    """
    metric: str
    operator: str
    threshold: Threshold
    weight: float = 1.0

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown operator '{self.operator}', expected one of {OPERATORS}")
        if self.operator == "between":
            if not isinstance(self.threshold, (tuple, list)) or len(self.threshold) != 2:
                raise ValueError("'between' conditions need a (low, high) threshold")
            low, high = self.threshold
            object.__setattr__(self, "threshold", (float(low), float(high)))
        elif isinstance(self.threshold, (tuple, list)):
            raise ValueError(f"'{self.operator}' conditions need a scalar threshold")
        else:
            object.__setattr__(self, "threshold", float(self.threshold))

    def evaluate(self, value: float) -> bool:
        """Check a single value against this condition."""
        return bool(self.evaluate_series(np.asarray([value], dtype=float))[0])

    def evaluate_series(self, values: np.ndarray) -> np.ndarray:
        """Vectorised check returning a boolean mask."""
        values = np.asarray(values, dtype=float)
        if self.operator == "greater_than":
            return values > self.threshold
        if self.operator == "less_than":
            return values < self.threshold
        if self.operator == "equals":
            return np.abs(values - self.threshold) < EQUALS_EPSILON
        low, high = self.threshold
        return (values >= low) & (values <= high)

    def describe(self) -> str:
        metric = self.metric.replace("_", " ")
        if self.operator == "greater_than":
            return f"{metric} > {self.threshold:g}"
        if self.operator == "less_than":
            return f"{metric} < {self.threshold:g}"
        if self.operator == "equals":
            return f"{metric} = {self.threshold:g}"
        low, high = self.threshold
        return f"{low:g} <= {metric} <= {high:g}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metric': self.metric,
            'operator': self.operator,
            'threshold': list(self.threshold) if isinstance(self.threshold, tuple) else float(self.threshold),
            'weight': float(self.weight),
        }
