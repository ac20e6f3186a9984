"""Tests for recurring pattern detection."""

import pytest

from performance_insights.analysis.conditions import Condition
from performance_insights.analysis.pattern_matcher import (
    CANONICAL_PATTERNS,
    ExpectedOutcome,
    PatternDefinition,
    PatternMatcher,
)


def energy_focus_pattern(**overrides):
    fields = dict(
        pattern_id='energy_focus',
        name='Energy and Focus',
        conditions=(
            Condition('energy_level', 'greater_than', 70, weight=0.6),
            Condition('focus_time', 'greater_than', 120, weight=0.4),
        ),
        outcomes=(ExpectedOutcome('productivity_score', 85, 10, 'high'),),
    )
    fields.update(overrides)
    return PatternDefinition(**fields)


class TestPatternMatcher:
    """Conjunctive matching, frequency floor and predictive accuracy."""

    def setup_method(self):
        self.series = {
            'energy_level': [80, 80, 80, 80, 50, 50, 50, 50, 50, 50],
            'focus_time': [150, 150, 150, 100, 150, 100, 100, 100, 100, 100],
            'productivity_score': [85, 85, 85, 60, 60, 60, 60, 60, 60, 60],
        }

    def test_conjunction_frequency(self):
        matcher = PatternMatcher(patterns=[energy_focus_pattern()])
        matches = matcher.analyze(self.series)

        assert len(matches) == 1
        match = matches[0]
        assert match.matched_days == (0, 1, 2)
        assert match.frequency == pytest.approx(0.3)
        assert match.predictive_accuracy == pytest.approx(100.0)

    def test_weights_do_not_affect_default_matching(self):
        heavy = energy_focus_pattern(conditions=(
            Condition('energy_level', 'greater_than', 70, weight=0.99),
            Condition('focus_time', 'greater_than', 120, weight=0.01),
        ))
        match = PatternMatcher(patterns=[heavy]).analyze(self.series)[0]
        assert match.matched_days == (0, 1, 2)

    def test_zero_match_pattern_omitted(self):
        never = energy_focus_pattern(conditions=(Condition('energy_level', 'greater_than', 95),))
        assert PatternMatcher(patterns=[never]).analyze(self.series) == []

    def test_missing_metric_omits_pattern(self):
        unknown = energy_focus_pattern(conditions=(Condition('sleep_hours', 'greater_than', 7),))
        assert PatternMatcher(patterns=[unknown]).analyze(self.series) == []

    def test_frequency_floor(self):
        pattern = energy_focus_pattern(conditions=(Condition('energy_level', 'greater_than', 70),))
        matcher = PatternMatcher(patterns=[pattern])

        # 1 of 20 days is exactly 5%
        kept = matcher.analyze({'energy_level': [80] + [50] * 19, 'productivity_score': [85] * 20})
        assert len(kept) == 1
        assert kept[0].frequency == pytest.approx(0.05)

        dropped = matcher.analyze({'energy_level': [80] + [50] * 20, 'productivity_score': [85] * 21})
        assert dropped == []

    def test_frequency_is_a_fraction(self):
        for match in PatternMatcher().analyze(self.series):
            assert 0.05 <= match.frequency <= 1.0

    def test_weighted_mode(self):
        matcher = PatternMatcher(
            patterns=[energy_focus_pattern()],
            match_mode="weighted",
            weighted_threshold=0.6,
        )
        match = matcher.analyze(self.series)[0]

        # Day 3 satisfies only the 0.6-weight energy condition; day 4 only the 0.4-weight one
        assert match.matched_days == (0, 1, 2, 3)
        assert match.frequency == pytest.approx(0.4)

    def test_unknown_match_mode_rejected(self):
        with pytest.raises(ValueError):
            PatternMatcher(match_mode="any")

    def test_predictive_accuracy_per_outcome(self):
        outcomes = (
            ExpectedOutcome('productivity_score', 80, 10, 'high'),
            ExpectedOutcome('distraction_events', 0, 1, 'low'),
        )
        series = {'productivity_score': [60, 100], 'distraction_events': [0, 0]}

        # |80 - 80| -> 100, exact zero hit -> 100
        assert PatternMatcher.predictive_accuracy([0, 1], outcomes, series) == pytest.approx(100.0)

        series['productivity_score'] = [40, 40]
        series['distraction_events'] = [2, 2]
        # 100 - 50 = 50, missed zero -> 0
        assert PatternMatcher.predictive_accuracy([0, 1], outcomes, series) == pytest.approx(25.0)

    def test_accuracy_skips_absent_outcome_metrics(self):
        outcomes = (
            ExpectedOutcome('productivity_score', 80, 10, 'high'),
            ExpectedOutcome('quality_score', 80, 10, 'medium'),
        )
        accuracy = PatternMatcher.predictive_accuracy([0], outcomes, {'productivity_score': [80]})
        assert accuracy == pytest.approx(100.0)

    def test_mismatched_outcome_series_skipped(self):
        self.series['productivity_score'] = [85, 85]
        match = PatternMatcher(patterns=[energy_focus_pattern()]).analyze(self.series)[0]

        assert match.matched_days == (0, 1, 2)
        assert match.predictive_accuracy == 0.0

        outcomes = (ExpectedOutcome('productivity_score', 80, 10, 'high'),)
        assert PatternMatcher.predictive_accuracy([0, 5], outcomes, {'productivity_score': [80, 80]}) == 0.0

    def test_description_and_insights(self):
        match = PatternMatcher(patterns=[energy_focus_pattern()]).analyze(self.series)[0]

        assert match.description == "energy level > 70 AND focus time > 120: occurs 30.0% of the time"
        assert match.insights == (
            "This pattern occurs 30.0% of the time",
            "Key factor: energy level",
            "Primary benefit: improved productivity score",
        )
        assert match.to_dict()['pattern_id'] == 'energy_focus'


class TestCanonicalPatterns:

    def test_five_canonical_patterns(self):
        assert [p.pattern_id for p in CANONICAL_PATTERNS] == [
            'high_energy_high_productivity',
            'optimal_break_pattern',
            'morning_peak_performance',
            'complexity_balance',
            'low_distraction_focus',
        ]

    def test_energy_patterns_need_energy(self):
        series = {
            'focus_time': [200] * 10,
            'hour_of_day': [9] * 10,
            'distraction_events': [1] * 10,
            'context_switches': [2] * 10,
            'productivity_score': [80] * 10,
        }
        ids = [m.pattern_id for m in PatternMatcher().analyze(series)]

        assert 'high_energy_high_productivity' not in ids
        assert 'morning_peak_performance' not in ids
        assert 'low_distraction_focus' in ids

    def test_pattern_needs_a_condition(self):
        with pytest.raises(ValueError):
            PatternDefinition('empty', 'Empty', conditions=(), outcomes=())
