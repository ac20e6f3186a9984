"""Tests for the event & metric normalizer."""

from datetime import date, datetime, timedelta, timezone

import pandas as pd
import pytest

from performance_insights.analysis.normalizer import (
    METRIC_ORDER,
    ActionEvent,
    MetricNormalizer,
    ProductivityCache,
    TaskRecord,
    coerce_events,
    coerce_tasks,
)


def event(ts, kind, entity_kind=None, entity_id=None, duration=None):
    return ActionEvent(
        timestamp=datetime.fromisoformat(ts),
        action_kind=kind,
        entity_kind=entity_kind,
        entity_id=entity_id,
        duration_seconds=duration,
    )


class TestFocusAndBreakTime:
    """Focus span and break time derivation."""

    def setup_method(self):
        self.normalizer = MetricNormalizer(window_days=3)

    def test_gap_over_threshold_closes_span(self):
        events = [
            event("2024-01-10T09:00", "create"),
            event("2024-01-10T09:10", "edit"),
            event("2024-01-10T09:20", "complete"),
            event("2024-01-10T10:00", "edit"),
            event("2024-01-10T10:05", "create"),
        ]
        # 09:00-09:20 and 10:00-10:05
        assert self.normalizer.calculate_focus_time(events) == 25

    def test_gap_at_threshold_keeps_span_open(self):
        events = [
            event("2024-01-10T09:00", "create"),
            event("2024-01-10T09:15", "edit"),
            event("2024-01-10T09:30", "edit"),
        ]
        assert self.normalizer.calculate_focus_time(events) == 30

    def test_distractions_do_not_count_as_focus(self):
        events = [
            event("2024-01-10T09:00", "view"),
            event("2024-01-10T09:05", "search"),
            event("2024-01-10T09:10", "navigate"),
        ]
        assert self.normalizer.calculate_focus_time(events) == 0

    def test_work_times(self):
        events = [
            event("2024-01-10T09:00", "create"),
            event("2024-01-10T09:10", "edit"),
            event("2024-01-10T09:20", "complete"),
            event("2024-01-10T10:00", "edit"),
            event("2024-01-10T10:05", "create"),
        ]
        active, break_time, start_hour = self.normalizer.calculate_work_times(events)

        assert active == 25  # 5 actions x 5 minutes
        assert break_time == 40  # 65 minutes elapsed
        assert start_hour == 9

    def test_break_time_floored_at_zero(self):
        events = [
            event("2024-01-10T09:00", "create"),
            event("2024-01-10T09:01", "edit"),
        ]
        _, break_time, _ = self.normalizer.calculate_work_times(events)
        assert break_time == 0

    def test_context_switches(self):
        events = [
            event("2024-01-10T09:00", "edit", "task", "a"),
            event("2024-01-10T09:05", "edit", "task", "a"),
            event("2024-01-10T09:10", "view", "client", "c"),
            event("2024-01-10T09:15", "edit", "task", "b"),
            event("2024-01-10T09:20", "edit", "task", "a"),
        ]
        assert MetricNormalizer.count_context_switches(events) == 2


    def test_zero_focus_threshold_is_respected(self):
        normalizer = MetricNormalizer(window_days=3, focus_break_threshold_minutes=0)
        assert normalizer.focus_break_threshold == timedelta(0)

        events = [
            event("2024-01-10T09:00", "create"),
            event("2024-01-10T09:10", "edit"),
        ]
        assert normalizer.calculate_focus_time(events) == 0


class TestNormalize:
    """Calendar-day alignment of events, tasks and energy."""

    def setup_method(self):
        self.normalizer = MetricNormalizer(window_days=3)
        self.end_date = date(2024, 1, 10)

    def test_zero_event_days_get_defaults(self):
        metrics = self.normalizer.normalize([], [], self.end_date)

        assert metrics.length == 3
        assert metrics.dates == [date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)]
        assert list(metrics.frame.columns) == [m for m in METRIC_ORDER if m != 'energy_level']

        series = metrics.series()
        assert list(series['productivity_score']) == [0, 0, 0]
        assert list(series['focus_time']) == [0, 0, 0]
        assert list(series['hour_of_day']) == [9, 9, 9]
        assert list(series['task_complexity']) == [2, 2, 2]
        assert list(series['day_of_week']) == [0, 1, 2]  # Monday first

    def test_all_series_share_window_length(self, sample_events, sample_tasks):
        normalizer = MetricNormalizer(window_days=14)
        metrics = normalizer.normalize(sample_events, sample_tasks, "2024-01-14")

        lengths = {len(values) for values in metrics.series().values()}
        assert lengths == {14}
        assert isinstance(metrics.frame.index, pd.DatetimeIndex)

    def test_completed_task_scores(self):
        events = [
            event("2024-01-10T09:00", "edit"),
            event("2024-01-10T09:10", "complete", duration=3600),
        ]
        tasks = [TaskRecord(
            id="t1", name="Quote", status="done",
            start_date=date(2024, 1, 10), end_date=date(2024, 1, 10),
            duration_estimate_days=1, category_id="c1",
        )]
        series = self.normalizer.normalize(events, tasks, self.end_date).series()

        assert series['tasks_completed'][-1] == 1
        assert series['time_efficiency'][-1] == pytest.approx(100.0)
        assert series['quality_score'][-1] == pytest.approx(80.0)
        # 0.3*25 + 0.25*100 + 0.2*80 + 0.15*(10/240*100)
        assert series['productivity_score'][-1] == pytest.approx(49.125)
        assert series['task_complexity'][-1] == pytest.approx(1.0)
        assert series['task_variety'][-1] == 1
        assert series['tasks_completed'][0] == 0

    def test_events_outside_window_ignored(self):
        events = [event("2024-01-01T09:00", "create"), event("2024-01-11T09:00", "create")]
        series = self.normalizer.normalize(events, [], self.end_date).series()
        assert series['action_frequency'].sum() == 0

    def test_malformed_events_dropped_and_counted(self):
        raw = [
            {'timestamp': 'not a date', 'action_kind': 'create'},
            {'timestamp': '2024-01-10T09:00:00', 'action_kind': None},
            'garbage',
            {'timestamp': '2024-01-10T09:00:00', 'action_kind': 'create'},
        ]
        metrics = self.normalizer.normalize(raw, [], self.end_date)

        assert metrics.report.dropped_events == 3
        assert metrics.series()['action_frequency'][-1] == 1

    def test_list_timestamp_dropped_and_counted(self):
        raw = [
            {'timestamp': ['2024-01-10T09:00', '2024-01-10T10:00'], 'action_kind': 'create'},
            {'timestamp': '2024-01-10T09:00', 'action_kind': 'edit'},
        ]
        metrics = self.normalizer.normalize(raw, [], self.end_date)

        assert metrics.report.dropped_events == 1
        assert metrics.series()['action_frequency'][-1] == 1

    def test_aware_and_naive_events_mix(self):
        raw = [
            ActionEvent(timestamp=datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc), action_kind="create"),
            {'timestamp': '2024-01-10T09:10', 'action_kind': 'edit'},
        ]
        metrics = self.normalizer.normalize(raw, [], self.end_date)

        assert metrics.report.dropped_events == 0
        assert metrics.series()['action_frequency'][-1] == 2
        assert metrics.series()['focus_time'][-1] == 10

    def test_unreadable_end_date_raises(self):
        with pytest.raises(ValueError):
            self.normalizer.normalize([], [], "someday")

    def test_empty_window(self):
        metrics = MetricNormalizer(window_days=0).normalize([], [], self.end_date)
        assert metrics.length == 0
        assert metrics.report.days == 0

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            MetricNormalizer(window_days=-1)


class TestEnergyAlignment:
    """Explicit and undated energy estimates."""

    def setup_method(self):
        self.normalizer = MetricNormalizer(window_days=5, energy_baseline=70)
        self.end_date = date(2024, 1, 10)

    def test_missing_energy_leaves_metric_absent(self):
        metrics = self.normalizer.normalize([], [], self.end_date)
        assert 'energy_level' not in metrics.series()
        assert metrics.report.energy_source == "none"

    def test_dated_energy_fills_missing_days_with_baseline(self):
        energy = {"2024-01-08": 40, date(2024, 1, 10): 150}
        metrics = self.normalizer.normalize([], [], self.end_date, energy=energy)

        assert list(metrics.series()['energy_level']) == [70, 70, 40, 70, 100]
        assert metrics.report.energy_source == "explicit"

    def test_short_undated_series_repeats_last_value(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy=[60, 70, 80])

        assert list(metrics.series()['energy_level']) == [60, 70, 80, 80, 80]
        assert metrics.report.reconciled_metrics == ['energy_level']

    def test_long_undated_series_keeps_most_recent(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy=[10, 20, 30, 40, 50, 60, 70])
        assert list(metrics.series()['energy_level']) == [30, 40, 50, 60, 70]

    def test_malformed_energy_values_dropped(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy={"2024-01-09": "n/a", "bad": 50})
        assert 'energy_level' not in metrics.series()
        assert metrics.report.dropped_energy == 2

    def test_malformed_undated_value_keeps_its_day(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy=[10, "n/a", 30, 40, 50])

        assert list(metrics.series()['energy_level']) == [10, 10, 30, 40, 50]
        assert metrics.report.dropped_energy == 1
        assert metrics.report.reconciled_metrics == []

    def test_leading_malformed_undated_value_uses_baseline(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy=[None, 20, 30, 40, 50])
        assert list(metrics.series()['energy_level']) == [70, 20, 30, 40, 50]

    def test_inferred_energy(self):
        events = [event("2024-01-10T09:00", "create")]
        metrics = self.normalizer.normalize(events, [], self.end_date, infer_energy=True)

        energy = metrics.series()['energy_level']
        assert metrics.report.energy_source == "inferred"
        assert list(energy[:4]) == [70, 70, 70, 70]
        assert energy[-1] == pytest.approx(65.0)

    def test_explicit_energy_wins_over_inference(self):
        metrics = self.normalizer.normalize([], [], self.end_date, energy=[50] * 5, infer_energy=True)
        assert metrics.report.energy_source == "explicit"
        assert list(metrics.series()['energy_level']) == [50] * 5


class TestProductivityCache:
    """Session-scoped memoization of daily productivity."""

    def test_owned_cache_is_cleared_every_run(self):
        normalizer = MetricNormalizer(window_days=4)
        normalizer.normalize([], [], date(2024, 1, 10))
        normalizer.normalize([], [], date(2024, 1, 10))

        assert normalizer.cache.hits == 0
        assert normalizer.cache.misses == 4

    def test_shared_cache_is_left_to_its_owner(self):
        cache = ProductivityCache()
        normalizer = MetricNormalizer(window_days=4, cache=cache)
        normalizer.normalize([], [], date(2024, 1, 10))
        normalizer.normalize([], [], date(2024, 1, 10))

        assert len(cache) == 4
        assert cache.hits == 4

        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0


class TestCoercion:
    """Raw record conversion."""

    def test_coerce_events_normalizes_kind(self):
        events, dropped = coerce_events([
            {'timestamp': '2024-01-10T09:00:00Z', 'action_kind': ' Create ', 'entity_id': 12},
        ])
        assert dropped == 0
        assert events[0].action_kind == "create"
        assert events[0].entity_id == "12"
        assert events[0].timestamp.tzinfo is None

    def test_coerce_tasks_drops_bad_records(self):
        tasks, dropped = coerce_tasks([
            {'id': 't1', 'status': 'done', 'end_date': '2024-01-10'},
            {'id': 't2', 'status': 'archived'},
            {'status': 'todo'},
            {'id': 't3', 'status': 'todo', 'start_date': 'soon'},
        ])
        assert [t.id for t in tasks] == ['t1']
        assert dropped == 3
        assert tasks[0].completion_date == date(2024, 1, 10)

    def test_task_activity(self):
        task = TaskRecord(id='t', name='', status='inprogress',
                          start_date=date(2024, 1, 8), deadline=date(2024, 1, 9))
        assert task.is_active_on(date(2024, 1, 8))
        assert task.is_active_on(date(2024, 1, 9))
        assert not task.is_active_on(date(2024, 1, 10))
        assert not task.is_active_on(date(2024, 1, 7))
