"""Shared fixtures: a small synthetic activity log."""

from datetime import date, datetime, timedelta

import pytest

END_DATE = date(2024, 1, 14)
WINDOW_DAYS = 14


def build_events(end_date=END_DATE, days=WINDOW_DAYS):
    """Work bursts of varying length each morning plus a few afternoon distractions."""
    events = []
    for offset in range(days):
        day = end_date - timedelta(days=days - 1 - offset)
        start = datetime.combine(day, datetime.min.time()) + timedelta(hours=8 + offset % 3)
        work_count = 3 + offset % 5
        for k in range(work_count):
            kind = 'complete' if k == work_count - 1 else ('create' if k == 0 else 'edit')
            events.append({
                'timestamp': (start + timedelta(minutes=10 * k)).isoformat(),
                'action_kind': kind,
                'entity_kind': 'task',
                'entity_id': f"task-{offset}-{k % 2}",
                'duration_seconds': 1800 if kind == 'complete' else None,
            })
        for k in range(offset % 4):
            events.append({
                'timestamp': (start + timedelta(hours=6, minutes=5 * k)).isoformat(),
                'action_kind': 'view',
                'entity_kind': 'client',
                'entity_id': 'client-1',
            })
    return events


def build_tasks(end_date=END_DATE, days=WINDOW_DAYS):
    tasks = []
    for offset in range(days):
        day = end_date - timedelta(days=days - 1 - offset)
        tasks.append({
            'id': f"task-{offset}",
            'name': f"Task {offset}",
            'status': 'done' if offset % 2 == 0 else 'inprogress',
            'start_date': (day - timedelta(days=1)).isoformat(),
            'end_date': day.isoformat() if offset % 2 == 0 else None,
            'deadline': (day + timedelta(days=2)).isoformat(),
            'duration_estimate_days': 0.5 + offset % 3,
            'category_id': f"cat-{offset % 4}",
        })
    return tasks


@pytest.fixture
def sample_events():
    return build_events()


@pytest.fixture
def sample_tasks():
    return build_tasks()


@pytest.fixture
def sample_energy():
    return {
        (END_DATE - timedelta(days=WINDOW_DAYS - 1 - offset)).isoformat(): 40 + (offset * 7) % 55
        for offset in range(WINDOW_DAYS)
    }
