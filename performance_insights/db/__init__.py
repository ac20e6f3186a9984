"""Database module for reading performance analysis inputs."""

from .database import Database, DatabaseSource
from .models import ActionLog, Task, EnergyEstimate

__all__ = ["Database", "DatabaseSource", "ActionLog", "Task", "EnergyEstimate"]
