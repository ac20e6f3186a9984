"""Inferred daily energy estimate from behavioral events."""

import logging
from datetime import date, timedelta
from typing import Dict, List, Sequence

import numpy as np

from ..config import config

# Multipliers applied to the baseline by time of day
TIME_OF_DAY_MULTIPLIERS = {
    'early_morning': 0.7,
    'morning': 1.0,
    'late_morning': 0.95,
    'afternoon': 0.8,
    'evening': 0.6,
    'night': 0.4,
}

WORKLOAD_ADJUSTMENTS = {
    'light': 5,
    'moderate': 0,
    'heavy': -10,
    'overwhelming': -25,
}


def time_of_day(hour: int) -> str:
    """Map an hour (0-23) to a time-of-day bucket."""
    if 5 <= hour < 8:
        return 'early_morning'
    elif 8 <= hour < 11:
        return 'morning'
    elif 11 <= hour < 14:
        return 'late_morning'
    elif 14 <= hour < 18:
        return 'afternoon'
    elif 18 <= hour < 22:
        return 'evening'
    return 'night'


def workload_level(events_nearby: int) -> str:
    """Classify workload from the number of events within two hours."""
    if events_nearby > 15:
        return 'overwhelming'
    elif events_nearby > 10:
        return 'heavy'
    elif events_nearby > 5:
        return 'moderate'
    return 'light'


class EnergyEstimator:
    """
    Heuristic energy estimate used when the caller supplies none.

    Each work event gets an energy reading (0-100) from the time of day, the
    surrounding workload and how many work events preceded it within the last
    hour; the daily estimate is the mean of those readings.
    """

    def __init__(self, baseline: float = None):
        self.baseline = baseline if baseline is not None else config.ENERGY_BASELINE
        self.logger = logging.getLogger(__name__)

    def estimate_daily(self, events_by_day: Dict[date, Sequence], days: List[date]) -> List[float]:
        """Daily mean inferred energy, baseline on days without work events."""
        estimates = []
        for day in days:
            day_events = events_by_day.get(day, [])
            work_events = [e for e in day_events if e.action_kind in config.WORK_ACTIONS]
            if not work_events:
                estimates.append(float(self.baseline))
                continue
            readings = [self.infer_level(event.timestamp, day_events) for event in work_events]
            estimates.append(float(np.mean(readings)))

        self.logger.debug(f"Inferred energy for {len(days)} days")
        return estimates

    def infer_level(self, timestamp, events: Sequence) -> float:
        """Energy reading at ``timestamp`` given the events of that day."""
        energy = self.baseline * TIME_OF_DAY_MULTIPLIERS[time_of_day(timestamp.hour)]

        nearby = sum(1 for e in events if abs(e.timestamp - timestamp) < timedelta(hours=2))
        energy += WORKLOAD_ADJUSTMENTS[workload_level(nearby)]

        consecutive = sum(
            1 for e in events
            if e.action_kind in config.WORK_ACTIONS
            and timedelta(0) <= timestamp - e.timestamp <= timedelta(hours=1)
        )
        energy -= consecutive * 5

        within_hour = sum(1 for e in events if abs(e.timestamp - timestamp) < timedelta(hours=1))
        if within_hour > 10:
            energy -= 10
        elif within_hour < 2:
            # Too little activity reads as low energy
            energy -= 5

        return max(0.0, min(100.0, energy))
