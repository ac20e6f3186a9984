"""Database models for the host application's action log, tasks and energy estimates."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Date, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ActionLog(Base):
    """A recorded user action."""

    __tablename__ = "action_log"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", index=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    action_kind = Column(String(50), nullable=False)  # create, edit, complete, view, ...
    entity_kind = Column(String(50))  # task, client, quote, ...
    entity_id = Column(String(100))
    duration_seconds = Column(Float)
    raw_data = Column(Text)  # JSON string for additional data
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_record(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'action_kind': self.action_kind,
            'entity_kind': self.entity_kind,
            'entity_id': self.entity_id,
            'duration_seconds': self.duration_seconds,
        }

    def __repr__(self):
        return f"<ActionLog(action_kind={self.action_kind}, timestamp={self.timestamp})>"


class Task(Base):
    """A task tracked by the host application."""

    __tablename__ = "tasks"

    id = Column(String(100), primary_key=True)
    user_id = Column(String(50), default="default", index=True)
    name = Column(String(255))
    status = Column(String(20), nullable=False)  # todo, inprogress, done
    start_date = Column(Date)
    end_date = Column(Date)
    deadline = Column(Date)
    duration_estimate_days = Column(Float)
    category_id = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_record(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'deadline': self.deadline,
            'duration_estimate_days': self.duration_estimate_days,
            'category_id': self.category_id,
        }

    def __repr__(self):
        return f"<Task(id={self.id}, name={self.name}, status={self.status})>"


class EnergyEstimate(Base):
    """A precomputed daily energy estimate (0-100)."""

    __tablename__ = "energy_estimates"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", index=True)
    date = Column(Date, nullable=False)
    level = Column(Float, nullable=False)
    source = Column(String(20), default="explicit")  # explicit, inferred

    def __repr__(self):
        return f"<EnergyEstimate(date={self.date}, level={self.level:.1f})>"
