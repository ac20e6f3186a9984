"""Configuration management for the performance insights engine."""

import os
from typing import Dict
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database (read-only source of events and tasks)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./performance_insights.db")

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Analysis window
    ANALYSIS_WINDOW_DAYS: int = int(os.getenv("ANALYSIS_WINDOW_DAYS", "30"))

    # Daily metric derivation
    FOCUS_BREAK_THRESHOLD_MINUTES: float = float(os.getenv("FOCUS_BREAK_THRESHOLD_MINUTES", "15"))
    ACTIVE_MINUTES_PER_ACTION: float = float(os.getenv("ACTIVE_MINUTES_PER_ACTION", "5"))
    DEFAULT_COMPLETION_MINUTES: float = float(os.getenv("DEFAULT_COMPLETION_MINUTES", "30"))
    ESTIMATE_MINUTES_PER_DAY: float = float(os.getenv("ESTIMATE_MINUTES_PER_DAY", "60"))
    DEFAULT_TIME_EFFICIENCY: float = float(os.getenv("DEFAULT_TIME_EFFICIENCY", "70"))
    DEFAULT_WORK_START_HOUR: int = int(os.getenv("DEFAULT_WORK_START_HOUR", "9"))
    DEFAULT_TASK_COMPLEXITY: float = float(os.getenv("DEFAULT_TASK_COMPLEXITY", "2"))

    # Energy
    ENERGY_BASELINE: float = float(os.getenv("ENERGY_BASELINE", "70"))

    # Pattern matching
    PATTERN_MIN_FREQUENCY: float = float(os.getenv("PATTERN_MIN_FREQUENCY", "0.05"))
    PATTERN_MATCH_MODE: str = os.getenv("PATTERN_MATCH_MODE", "all")
    PATTERN_WEIGHTED_THRESHOLD: float = float(os.getenv("PATTERN_WEIGHTED_THRESHOLD", "0.7"))

    # Multivariate contributors
    MULTIVARIATE_MIN_CONTRIBUTION: float = float(os.getenv("MULTIVARIATE_MIN_CONTRIBUTION", "5"))

    # Causal links
    CAUSAL_PAIR_MIN_STRENGTH: float = float(os.getenv("CAUSAL_PAIR_MIN_STRENGTH", "20"))
    CAUSAL_MIN_STRENGTH: float = float(os.getenv("CAUSAL_MIN_STRENGTH", "30"))

    # Optimization plan bucket caps
    PLAN_QUICK_WINS_LIMIT: int = int(os.getenv("PLAN_QUICK_WINS_LIMIT", "5"))
    PLAN_LONG_TERM_LIMIT: int = int(os.getenv("PLAN_LONG_TERM_LIMIT", "5"))
    PLAN_EXPERIMENTS_LIMIT: int = int(os.getenv("PLAN_EXPERIMENTS_LIMIT", "3"))

    # Event classification
    WORK_ACTIONS = ("create", "edit", "complete")
    DISTRACTION_ACTIONS = ("navigate", "search", "view")

    @classmethod
    def get_plan_limits(cls) -> Dict[str, int]:
        """Get the optimization plan bucket caps."""
        return {
            "quick_wins": cls.PLAN_QUICK_WINS_LIMIT,
            "long_term_strategy": cls.PLAN_LONG_TERM_LIMIT,
            "experiments_to_try": cls.PLAN_EXPERIMENTS_LIMIT,
        }

    @classmethod
    def validate(cls) -> bool:
        """Validate tunables."""
        if cls.ANALYSIS_WINDOW_DAYS < 1:
            raise ValueError("ANALYSIS_WINDOW_DAYS must be at least 1")
        if cls.FOCUS_BREAK_THRESHOLD_MINUTES <= 0:
            raise ValueError("FOCUS_BREAK_THRESHOLD_MINUTES must be positive")
        if not 0 <= cls.PATTERN_MIN_FREQUENCY <= 1:
            raise ValueError("PATTERN_MIN_FREQUENCY must be within [0, 1]")
        if cls.PATTERN_MATCH_MODE not in ("all", "weighted"):
            raise ValueError(
                f"Unknown PATTERN_MATCH_MODE '{cls.PATTERN_MATCH_MODE}', expected 'all' or 'weighted'"
            )
        if not 0 < cls.PATTERN_WEIGHTED_THRESHOLD <= 1:
            raise ValueError("PATTERN_WEIGHTED_THRESHOLD must be within (0, 1]")
        if min(cls.get_plan_limits().values()) < 0:
            raise ValueError("Plan bucket limits cannot be negative")
        return True


config = Config()
