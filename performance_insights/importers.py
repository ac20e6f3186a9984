"""
JSON and CSV import of analysis inputs exported by the host application.

Records are returned raw; timestamps and dates are parsed (and malformed
records dropped) at the normalization boundary.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".csv")

EVENT_COLUMN_ALIASES = {
    'actiontype': 'action_kind',
    'action_type': 'action_kind',
    'action': 'action_kind',
    'entitytype': 'entity_kind',
    'entity_type': 'entity_kind',
    'entityid': 'entity_id',
    'duration': 'duration_seconds',
    'time': 'timestamp',
}

TASK_COLUMN_ALIASES = {
    'startdate': 'start_date',
    'enddate': 'end_date',
    'duration': 'duration_estimate_days',
    'duration_days': 'duration_estimate_days',
    'categoryid': 'category_id',
    'category': 'category_id',
}


class DataSourceError(ValueError):
    """Raised when an input file cannot be read."""


def _check_path(path: Union[str, Path]) -> Path:
    path = Path(path)
    if not path.exists():
        raise DataSourceError(f"Input file not found: {path}")
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise DataSourceError(
            f"Unsupported input format '{path.suffix}' for {path.name}, expected one of {SUPPORTED_SUFFIXES}"
        )
    return path


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as e:
        raise DataSourceError(f"Invalid JSON in {path.name}: {e}") from e


def _read_csv(path: Path) -> pd.DataFrame:
    try:
        df = pd.read_csv(path, encoding="utf-8")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataSourceError(f"Unreadable CSV {path.name}: {e}") from e
    df.columns = df.columns.str.strip()
    return df


def _clean_value(value: Any) -> Any:
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def _rename(record: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    renamed = {}
    for key, value in record.items():
        name = str(key).strip()
        canonical = aliases.get(name.lower(), name.lower())
        # An explicit canonical column wins over an alias
        if canonical in renamed and name.lower() != canonical:
            continue
        renamed[canonical] = _clean_value(value)
    return renamed


def _load_records(path: Union[str, Path], collection_key: str, aliases: Dict[str, str]) -> List[Dict[str, Any]]:
    path = _check_path(path)

    if path.suffix.lower() == ".csv":
        rows = _read_csv(path).to_dict(orient="records")
    else:
        data = _read_json(path)
        if isinstance(data, dict):
            data = data.get(collection_key, [])
        if not isinstance(data, list):
            raise DataSourceError(f"Expected a list of {collection_key} in {path.name}")
        rows = data

    records = [_rename(row, aliases) if isinstance(row, dict) else row for row in rows]
    logger.info(f"Loaded {len(records)} {collection_key} from {path.name}")
    return records


def load_events(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load action events from a JSON list (or {"events": [...]}) or CSV file."""
    return _load_records(path, "events", EVENT_COLUMN_ALIASES)


def load_tasks(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load task records from a JSON list (or {"tasks": [...]}) or CSV file."""
    return _load_records(path, "tasks", TASK_COLUMN_ALIASES)


def load_energy(path: Union[str, Path]) -> Optional[Union[Dict[str, float], List[float]]]:
    """
    Load a daily energy estimate.

    Supported shapes:
    - CSV with a ``date`` column and a ``level`` (or ``energy_level``) column
    - CSV with only a level column (undated series)
    - JSON mapping of date -> level, list of numbers, or list of {date, level}

    Returns:
        Dated mapping, undated list, or None when the file holds no values
    """
    path = _check_path(path)

    if path.suffix.lower() == ".csv":
        df = _read_csv(path)
        df.columns = df.columns.str.lower()
        level_column = next((c for c in ('level', 'energy_level', 'energy') if c in df.columns), None)
        if level_column is None:
            raise DataSourceError(f"No energy level column in {path.name}")
        if 'date' in df.columns:
            energy = {str(row['date']): row[level_column] for _, row in df.iterrows()}
        else:
            energy = df[level_column].tolist()
    else:
        data = _read_json(path)
        if isinstance(data, dict):
            energy = data.get('energy', data)
        else:
            energy = data
        if isinstance(energy, list) and energy and isinstance(energy[0], dict):
            energy = {
                str(item.get('date')): item.get('level', item.get('energy_level'))
                for item in energy if isinstance(item, dict)
            }
        if not isinstance(energy, (dict, list)):
            raise DataSourceError(f"Unsupported energy layout in {path.name}")

    if not energy:
        return None
    logger.info(f"Loaded {len(energy)} energy estimates from {path.name}")
    return energy
