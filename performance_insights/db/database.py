"""Database connection and read-only input source."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Generator, Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, or_
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import config
from .models import Base, ActionLog, Task, EnergyEstimate


class Database:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database connection."""
        self.database_url = database_url or config.DATABASE_URL

        # Special handling for SQLite to avoid threading issues
        if "sqlite" in self.database_url:
            self.engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        else:
            self.engine = create_engine(self.database_url, echo=False)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close database connection."""
        self.engine.dispose()


class DatabaseSource:
    """Reads analysis inputs from the host application's store."""

    def __init__(self, db: Database, user_id: str = "default"):
        self.db = db
        self.user_id = user_id
        self.logger = logging.getLogger(__name__)

    def fetch_inputs(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Load events, tasks and energy estimates overlapping [start_date, end_date].

        Returns:
            Dictionary with 'events', 'tasks' (lists of raw records) and
            'energy' (date -> level, or None when no estimates exist)
        """
        window_start = datetime.combine(start_date, time.min)
        window_end = datetime.combine(end_date + timedelta(days=1), time.min)

        with self.db.get_session() as session:
            events = [
                row.to_record() for row in session.query(ActionLog).filter(
                    ActionLog.user_id == self.user_id,
                    ActionLog.timestamp >= window_start,
                    ActionLog.timestamp < window_end,
                ).order_by(ActionLog.timestamp, ActionLog.id).all()
            ]

            tasks = [
                row.to_record() for row in session.query(Task).filter(
                    Task.user_id == self.user_id,
                    or_(Task.start_date.is_(None), Task.start_date <= end_date),
                    or_(Task.end_date.is_(None), Task.end_date >= start_date),
                ).order_by(Task.id).all()
            ]

            energy_rows = session.query(EnergyEstimate).filter(
                EnergyEstimate.user_id == self.user_id,
                EnergyEstimate.date >= start_date,
                EnergyEstimate.date <= end_date,
            ).order_by(EnergyEstimate.date).all()
            energy = {row.date: row.level for row in energy_rows} or None

        self.logger.info(
            f"Loaded {len(events)} events, {len(tasks)} tasks and "
            f"{len(energy or {})} energy estimates for {start_date} to {end_date}"
        )
        return {'events': events, 'tasks': tasks, 'energy': energy}
