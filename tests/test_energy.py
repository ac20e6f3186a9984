"""Tests for inferred energy estimates."""

from datetime import date, datetime, timedelta

import pytest

from performance_insights.analysis.energy import EnergyEstimator, time_of_day, workload_level
from performance_insights.analysis.normalizer import ActionEvent


def work_event(ts, kind="edit"):
    return ActionEvent(timestamp=ts, action_kind=kind)


class TestEnergyBuckets:

    def test_time_of_day(self):
        assert time_of_day(6) == 'early_morning'
        assert time_of_day(9) == 'morning'
        assert time_of_day(12) == 'late_morning'
        assert time_of_day(15) == 'afternoon'
        assert time_of_day(20) == 'evening'
        assert time_of_day(23) == 'night'
        assert time_of_day(3) == 'night'

    def test_workload_level(self):
        assert workload_level(16) == 'overwhelming'
        assert workload_level(11) == 'heavy'
        assert workload_level(6) == 'moderate'
        assert workload_level(5) == 'light'


class TestEnergyEstimator:

    def setup_method(self):
        self.estimator = EnergyEstimator(baseline=70)

    def test_single_morning_event(self):
        ts = datetime(2024, 1, 10, 9, 0)
        # 70 x 1.0, +5 light workload, -5 for itself, -5 for sparse activity
        assert self.estimator.infer_level(ts, [work_event(ts)]) == pytest.approx(65.0)

    def test_evening_is_lower_than_morning(self):
        morning = datetime(2024, 1, 10, 9, 0)
        evening = datetime(2024, 1, 10, 19, 0)
        assert (
            self.estimator.infer_level(evening, [work_event(evening)])
            < self.estimator.infer_level(morning, [work_event(morning)])
        )

    def test_dense_work_drains_energy_to_floor(self):
        start = datetime(2024, 1, 10, 23, 0)
        events = [work_event(start + timedelta(minutes=m)) for m in range(0, 60, 3)]
        assert self.estimator.infer_level(events[-1].timestamp, events) == 0.0

    def test_daily_estimate_uses_baseline_without_work(self):
        day = date(2024, 1, 10)
        idle = date(2024, 1, 9)
        events_by_day = {
            day: [work_event(datetime(2024, 1, 10, 9, 0))],
            idle: [ActionEvent(timestamp=datetime(2024, 1, 9, 9, 0), action_kind="view")],
        }

        estimates = self.estimator.estimate_daily(events_by_day, [idle, day])
        assert estimates == [70.0, pytest.approx(65.0)]
