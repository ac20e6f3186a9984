"""
Event & Metric Normalizer

Aligns heterogeneous inputs (behavioral action events, task records and an
optional daily energy estimate) into one calendar-day frame with a single
numeric column per metric. Every column has exactly one value per day in the
analysis window, ascending, so all downstream analyzers can rely on equal-length
series.

Default-fill policy:
- count metrics and derived scores: 0 on days without activity
- hour_of_day: configured work start hour when no work event happened
- task_complexity: configured default when no task is active
- energy_level: configured baseline for undated days; undated raw series shorter
  than the window are padded by repeating the last known value, longer ones keep
  the most recent values
"""

import math
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..config import config
from .energy import EnergyEstimator

TASK_STATUSES = ("todo", "inprogress", "done")

# Column order of the normalized frame
METRIC_ORDER = [
    'productivity_score',
    'tasks_completed',
    'time_efficiency',
    'quality_score',
    'focus_time',
    'distraction_events',
    'energy_level',
    'action_frequency',
    'context_switches',
    'work_duration',
    'break_time',
    'task_complexity',
    'task_variety',
    'day_of_week',
    'hour_of_day',
]


@dataclass(frozen=True)
class ActionEvent:
    """A single user action recorded by the host application."""
    timestamp: datetime
    action_kind: str
    entity_kind: Optional[str] = None
    entity_id: Optional[str] = None
    duration_seconds: Optional[float] = None


@dataclass(frozen=True)
class TaskRecord:
    """A task as stored by the host application."""
    id: str
    name: str
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    deadline: Optional[date] = None
    duration_estimate_days: Optional[float] = None
    category_id: Optional[str] = None

    @property
    def completion_date(self) -> Optional[date]:
        if self.status != "done":
            return None
        return self.end_date or self.start_date

    def is_active_on(self, day: date) -> bool:
        """Whether the task is being worked on during ``day``."""
        if self.start_date is None or self.start_date > day:
            return False
        end = self.end_date or self.deadline
        if end is None:
            return self.status != "done" or self.start_date == day
        return day <= end


@dataclass(frozen=True)
class DailyProductivity:
    """Productivity figures derived for one calendar day."""
    day: date
    productivity_score: float
    tasks_completed: int
    time_efficiency: float
    quality_score: float
    focus_time: int  # minutes
    distraction_events: int
    work_duration: float  # minutes
    break_time: float  # minutes
    work_start_hour: Optional[int] = None


class ProductivityCache:
    """Per-day productivity memo owned by one analysis session.

    The owning session clears it at the start of every run.
    """

    def __init__(self):
        self._scores: Dict[date, DailyProductivity] = {}
        self.hits = 0
        self.misses = 0

    def get(self, day: date) -> Optional[DailyProductivity]:
        score = self._scores.get(day)
        if score is None:
            self.misses += 1
        else:
            self.hits += 1
        return score

    def put(self, score: DailyProductivity) -> None:
        self._scores[score.day] = score

    def clear(self) -> None:
        self._scores.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._scores)


@dataclass
class NormalizationReport:
    """Bookkeeping of what happened at the normalization boundary."""
    window_start: Optional[date]
    window_end: Optional[date]
    days: int
    dropped_events: int = 0
    dropped_tasks: int = 0
    dropped_energy: int = 0
    reconciled_metrics: List[str] = field(default_factory=list)
    energy_source: str = "none"  # 'none', 'explicit' or 'inferred'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'window_start': self.window_start.isoformat() if self.window_start else None,
            'window_end': self.window_end.isoformat() if self.window_end else None,
            'days': self.days,
            'dropped_events': self.dropped_events,
            'dropped_tasks': self.dropped_tasks,
            'dropped_energy': self.dropped_energy,
            'reconciled_metrics': list(self.reconciled_metrics),
            'energy_source': self.energy_source,
        }


@dataclass
class NormalizedMetrics:
    """Daily metric frame plus the report describing how it was built."""
    frame: pd.DataFrame
    report: NormalizationReport

    @property
    def dates(self) -> List[date]:
        return [ts.date() for ts in self.frame.index]

    @property
    def length(self) -> int:
        return len(self.frame)

    def series(self) -> Dict[str, np.ndarray]:
        """Metric name -> float array, in column order."""
        return {
            column: self.frame[column].to_numpy(dtype=float)
            for column in self.frame.columns
        }


EnergyInput = Union[None, Mapping[Any, float], Sequence[float], pd.Series]


def _to_datetime(value: Any) -> Optional[datetime]:
    """Parse a timestamp, returning None when it cannot be read."""
    if value is None or not pd.api.types.is_scalar(value):
        return None
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, pd.Timestamp):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed.to_pydatetime()


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = _to_datetime(value)
    return parsed.date() if parsed else None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def coerce_events(raw_events: Iterable[Any]) -> Tuple[List[ActionEvent], int]:
    """Convert raw event records to ``ActionEvent`` objects.

    Records with unparsable timestamps or no action kind are dropped and
    counted, never raised.
    """
    events = []
    dropped = 0

    for raw in raw_events or []:
        if isinstance(raw, ActionEvent):
            timestamp = _to_datetime(raw.timestamp)
            if timestamp is None:
                dropped += 1
                continue
            events.append(replace(raw, timestamp=timestamp))
            continue

        if not isinstance(raw, Mapping):
            dropped += 1
            continue

        timestamp = _to_datetime(raw.get('timestamp'))
        action_kind = raw.get('action_kind')
        if timestamp is None or _is_missing(action_kind) or not str(action_kind).strip():
            dropped += 1
            continue

        duration = raw.get('duration_seconds')
        try:
            duration = None if _is_missing(duration) else float(duration)
        except (TypeError, ValueError):
            duration = None

        entity_kind = raw.get('entity_kind')
        entity_id = raw.get('entity_id')
        events.append(ActionEvent(
            timestamp=timestamp,
            action_kind=str(action_kind).strip().lower(),
            entity_kind=None if _is_missing(entity_kind) else str(entity_kind),
            entity_id=None if _is_missing(entity_id) else str(entity_id),
            duration_seconds=duration,
        ))

    return events, dropped


def coerce_tasks(raw_tasks: Iterable[Any]) -> Tuple[List[TaskRecord], int]:
    """Convert raw task records to ``TaskRecord`` objects, dropping malformed ones."""
    tasks = []
    dropped = 0

    for raw in raw_tasks or []:
        if isinstance(raw, TaskRecord):
            tasks.append(raw)
            continue

        if not isinstance(raw, Mapping) or _is_missing(raw.get('id')):
            dropped += 1
            continue

        status = str(raw.get('status', '')).strip().lower()
        if status not in TASK_STATUSES:
            dropped += 1
            continue

        dates = {}
        malformed = False
        for key in ('start_date', 'end_date', 'deadline'):
            value = raw.get(key)
            if _is_missing(value):
                dates[key] = None
                continue
            dates[key] = _to_date(value)
            if dates[key] is None:
                malformed = True
        if malformed:
            dropped += 1
            continue

        estimate = raw.get('duration_estimate_days')
        try:
            estimate = None if _is_missing(estimate) else float(estimate)
        except (TypeError, ValueError):
            estimate = None

        category = raw.get('category_id')
        tasks.append(TaskRecord(
            id=str(raw['id']),
            name=str(raw.get('name') or ''),
            status=status,
            duration_estimate_days=estimate,
            category_id=None if _is_missing(category) else str(category),
            **dates,
        ))

    return tasks, dropped


class MetricNormalizer:
    """Builds the aligned per-day metric frame for one analysis window."""

    def __init__(
        self,
        window_days: int = None,
        focus_break_threshold_minutes: float = None,
        active_minutes_per_action: float = None,
        energy_baseline: float = None,
        cache: Optional[ProductivityCache] = None,
    ):
        self.window_days = window_days if window_days is not None else config.ANALYSIS_WINDOW_DAYS
        if self.window_days < 0:
            raise ValueError("window_days cannot be negative")
        self.focus_break_threshold = timedelta(
            minutes=(
                focus_break_threshold_minutes if focus_break_threshold_minutes is not None
                else config.FOCUS_BREAK_THRESHOLD_MINUTES
            )
        )
        self.active_minutes_per_action = (
            active_minutes_per_action if active_minutes_per_action is not None
            else config.ACTIVE_MINUTES_PER_ACTION
        )
        self.energy_baseline = energy_baseline if energy_baseline is not None else config.ENERGY_BASELINE
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else ProductivityCache()
        self.logger = logging.getLogger(__name__)

    def window(self, end_date: date) -> List[date]:
        """Calendar days of the analysis window, ascending and ending at ``end_date``."""
        return [end_date - timedelta(days=offset) for offset in range(self.window_days - 1, -1, -1)]

    def normalize(
        self,
        events: Iterable[Any],
        tasks: Iterable[Any],
        end_date: Union[date, datetime, str],
        energy: EnergyInput = None,
        infer_energy: bool = False,
    ) -> NormalizedMetrics:
        """
        Align events, tasks and energy into one per-day metric frame.

        Args:
            events: Action events (``ActionEvent`` or mappings)
            tasks: Task records (``TaskRecord`` or mappings)
            end_date: Last day of the window; the only notion of "now" used
            energy: Optional energy estimate, dated mapping/Series or undated sequence
            infer_energy: Estimate energy from events when none is supplied

        Returns:
            NormalizedMetrics with a frame indexed by day
        """
        end_day = _to_date(end_date)
        if end_day is None:
            raise ValueError(f"Unreadable end date: {end_date!r}")

        if self._owns_cache:
            self.cache.clear()

        action_events, dropped_events = coerce_events(events)
        task_records, dropped_tasks = coerce_tasks(tasks)
        days = self.window(end_day)

        report = NormalizationReport(
            window_start=days[0] if days else None,
            window_end=days[-1] if days else None,
            days=len(days),
            dropped_events=dropped_events,
            dropped_tasks=dropped_tasks,
        )
        if dropped_events or dropped_tasks:
            self.logger.warning(
                f"Dropped {dropped_events} malformed events and {dropped_tasks} malformed tasks"
            )

        if not days:
            return NormalizedMetrics(frame=pd.DataFrame(columns=METRIC_ORDER), report=report)

        events_by_day: Dict[date, List[ActionEvent]] = {day: [] for day in days}
        for event in sorted(action_events, key=lambda e: e.timestamp):
            bucket = events_by_day.get(event.timestamp.date())
            if bucket is not None:
                bucket.append(event)

        columns: Dict[str, List[float]] = {name: [] for name in METRIC_ORDER}
        for day in days:
            day_events = events_by_day[day]
            productivity = self.daily_productivity(day, day_events, task_records)
            active_tasks = [task for task in task_records if task.is_active_on(day)]

            columns['productivity_score'].append(productivity.productivity_score)
            columns['tasks_completed'].append(productivity.tasks_completed)
            columns['time_efficiency'].append(productivity.time_efficiency)
            columns['quality_score'].append(productivity.quality_score)
            columns['focus_time'].append(productivity.focus_time)
            columns['distraction_events'].append(productivity.distraction_events)
            columns['action_frequency'].append(len(day_events))
            columns['context_switches'].append(self.count_context_switches(day_events))
            columns['work_duration'].append(productivity.work_duration)
            columns['break_time'].append(productivity.break_time)
            columns['task_complexity'].append(self._task_complexity(active_tasks))
            columns['task_variety'].append(
                len({task.category_id for task in active_tasks if task.category_id is not None})
            )
            columns['day_of_week'].append(day.weekday())
            columns['hour_of_day'].append(
                productivity.work_start_hour
                if productivity.work_start_hour is not None
                else config.DEFAULT_WORK_START_HOUR
            )

        energy_values = self._align_energy(energy, days, report)
        if energy_values is None and infer_energy:
            estimator = EnergyEstimator(baseline=self.energy_baseline)
            energy_values = estimator.estimate_daily(events_by_day, days)
            report.energy_source = "inferred"

        if energy_values is None:
            del columns['energy_level']
        else:
            columns['energy_level'] = energy_values

        frame = pd.DataFrame(
            {name: np.asarray(values, dtype=float) for name, values in columns.items()},
            index=pd.DatetimeIndex(pd.to_datetime(days), name='date'),
        )

        self.logger.info(
            f"Normalized {len(action_events)} events and {len(task_records)} tasks "
            f"into {len(frame.columns)} metrics over {len(days)} days"
        )
        return NormalizedMetrics(frame=frame, report=report)

    def daily_productivity(
        self,
        day: date,
        day_events: List[ActionEvent],
        tasks: List[TaskRecord],
    ) -> DailyProductivity:
        """Derive (or fetch from the session cache) one day's productivity figures."""
        cached = self.cache.get(day)
        if cached is not None:
            return cached

        completed = [task for task in tasks if task.completion_date == day]
        work_duration, break_time, start_hour = self.calculate_work_times(day_events)
        focus_time = self.calculate_focus_time(day_events)
        distractions = sum(1 for e in day_events if e.action_kind in config.DISTRACTION_ACTIONS)
        efficiency = self._time_efficiency(day_events, completed)
        quality = self._quality_score(day_events, completed)

        score = DailyProductivity(
            day=day,
            productivity_score=self._overall_score(
                len(completed), efficiency, quality, focus_time, distractions
            ),
            tasks_completed=len(completed),
            time_efficiency=efficiency,
            quality_score=quality,
            focus_time=focus_time,
            distraction_events=distractions,
            work_duration=work_duration,
            break_time=break_time,
            work_start_hour=start_hour,
        )
        self.cache.put(score)
        return score

    def calculate_focus_time(self, events: List[ActionEvent]) -> int:
        """
        Sum of continuous work spans in minutes.

        A span stays open while consecutive work events are no further apart than
        the inactivity threshold; a longer gap closes it at the last event.
        """
        work_events = sorted(
            (e for e in events if e.action_kind in config.WORK_ACTIONS),
            key=lambda e: e.timestamp,
        )
        if not work_events:
            return 0

        focus = timedelta()
        span_start = work_events[0].timestamp
        for current, following in zip(work_events, work_events[1:]):
            if following.timestamp - current.timestamp > self.focus_break_threshold:
                focus += current.timestamp - span_start
                span_start = following.timestamp
        focus += work_events[-1].timestamp - span_start

        return _round_half_up(focus.total_seconds() / 60)

    def calculate_work_times(self, events: List[ActionEvent]) -> Tuple[float, float, Optional[int]]:
        """Return (active work minutes, break minutes, hour of first work event)."""
        work_events = [e for e in events if e.action_kind in config.WORK_ACTIONS]
        if not work_events:
            return 0.0, 0.0, None

        start = min(e.timestamp for e in work_events)
        end = max(e.timestamp for e in work_events)
        active = len(work_events) * self.active_minutes_per_action
        elapsed = (end - start).total_seconds() / 60
        return float(active), max(0.0, elapsed - active), start.hour

    @staticmethod
    def count_context_switches(events: List[ActionEvent]) -> int:
        """Number of times consecutive task events refer to a different task."""
        switches = 0
        last_entity = None
        for event in sorted(events, key=lambda e: e.timestamp):
            if event.entity_kind != "task":
                continue
            if last_entity is not None and event.entity_id != last_entity:
                switches += 1
            last_entity = event.entity_id
        return switches

    def _time_efficiency(self, events: List[ActionEvent], completed: List[TaskRecord]) -> float:
        if not completed:
            return 0.0

        spent = sum(
            (e.duration_seconds / 60) if e.duration_seconds is not None else config.DEFAULT_COMPLETION_MINUTES
            for e in events if e.action_kind == "complete"
        )
        per_task = spent / len(completed)

        estimates = [
            task.duration_estimate_days * config.ESTIMATE_MINUTES_PER_DAY
            for task in completed if task.duration_estimate_days
        ]
        if not estimates:
            return config.DEFAULT_TIME_EFFICIENCY

        estimated = sum(estimates) / len(estimates)
        if estimated <= 0:
            return config.DEFAULT_TIME_EFFICIENCY
        efficiency = max(0.0, 100 - abs(per_task - estimated) / estimated * 100)
        return min(100.0, efficiency)

    @staticmethod
    def _quality_score(events: List[ActionEvent], completed: List[TaskRecord]) -> float:
        if not completed:
            return 0.0

        edits = sum(1 for e in events if e.action_kind == "edit")
        completions = sum(1 for e in events if e.action_kind == "complete")
        edit_ratio = edits / completions if completions > 0 else 0.0
        return min(100.0, max(0.0, 100 - edit_ratio * 20))

    @staticmethod
    def _overall_score(
        tasks_completed: int,
        efficiency: float,
        quality: float,
        focus_time: float,
        distractions: int,
    ) -> float:
        weights = {
            'tasks': 0.3,
            'efficiency': 0.25,
            'quality': 0.2,
            'focus': 0.15,
            'distractions': 0.1,
        }

        # Four completed tasks and four focused hours count as a full day
        task_score = min(100.0, tasks_completed / 4 * 100)
        focus_score = min(100.0, focus_time / 240 * 100)
        distraction_penalty = min(50.0, distractions * 5)

        score = (
            task_score * weights['tasks']
            + efficiency * weights['efficiency']
            + quality * weights['quality']
            + focus_score * weights['focus']
        ) - distraction_penalty * weights['distractions']
        return max(0.0, min(100.0, score))

    @staticmethod
    def _task_complexity(active_tasks: List[TaskRecord]) -> float:
        if not active_tasks:
            return config.DEFAULT_TASK_COMPLEXITY
        levels = [
            min(5.0, max(1.0, task.duration_estimate_days or 1.0))
            for task in active_tasks
        ]
        return sum(levels) / len(levels)

    def _align_energy(
        self,
        energy: EnergyInput,
        days: List[date],
        report: NormalizationReport,
    ) -> Optional[List[float]]:
        """Align an explicit energy estimate to the window, or None when absent."""
        if energy is None:
            return None

        if isinstance(energy, pd.Series) and not isinstance(energy.index, pd.RangeIndex):
            energy = energy.to_dict()

        if isinstance(energy, Mapping):
            by_day: Dict[date, float] = {}
            for key, value in energy.items():
                day = _to_date(key)
                level = self._energy_value(value)
                if day is None or level is None:
                    report.dropped_energy += 1
                    continue
                by_day[day] = level
            if not by_day:
                return None
            report.energy_source = "explicit"
            if report.dropped_energy:
                self.logger.warning(f"Dropped {report.dropped_energy} malformed energy estimates")
            return [by_day.get(day, self.energy_baseline) for day in days]

        # Malformed entries keep their day, filled with the previous valid level
        values = []
        previous = None
        for value in list(energy):
            level = self._energy_value(value)
            if level is None:
                report.dropped_energy += 1
                values.append(previous if previous is not None else self.energy_baseline)
                continue
            previous = level
            values.append(level)
        if previous is None:
            return None
        if report.dropped_energy:
            self.logger.warning(f"Filled {report.dropped_energy} malformed energy estimates")

        report.energy_source = "explicit"
        if len(values) != len(days):
            report.reconciled_metrics.append('energy_level')
            self.logger.warning(
                f"Energy series has {len(values)} values for a {len(days)}-day window, reconciling"
            )
        if len(values) > len(days):
            return values[len(values) - len(days):]
        return values + [values[-1]] * (len(days) - len(values))

    @staticmethod
    def _energy_value(value: Any) -> Optional[float]:
        try:
            level = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(level):
            return None
        return min(100.0, max(0.0, level))
