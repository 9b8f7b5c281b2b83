"""
Unit tests for DifficultyCalibrator.

Tests:
- Advance / retreat / hold rules and their priority
- Streaks restart on level change
- Anchor category gate from level 3 upward
- Level bounds and sparse history
"""

import pytest

from src.adaptive.calibrator import (
    CalibrationAction,
    CalibrationConfig,
    DifficultyCalibrator,
)

ANCHORS_OK = {"access-control": 0.8, "injection": 1.0, "crypto": 0.5}


@pytest.fixture
def calibrator():
    return DifficultyCalibrator()


def strong(level, per_category_recall=None):
    return {"level": level, "f1": 0.90, "precision": 0.80, "per_category_recall": per_category_recall}


def weak(level):
    return {"level": level, "f1": 0.10, "precision": 0.10}


class TestAdvance:
    def test_three_strong_rounds_advance(self, calibrator, make_history):
        history = make_history(strong(2), strong(2), strong(2))
        assert calibrator.next_difficulty(history, 2) == 3

    def test_precision_floor_blocks_advance(self, calibrator, make_history):
        history = make_history(*[{"level": 2, "f1": 0.90, "precision": 0.59}] * 3)
        assert calibrator.next_difficulty(history, 2) == 2

    def test_f1_threshold_is_inclusive(self, calibrator, make_history):
        history = make_history(*[{"level": 1, "f1": 0.75, "precision": 0.60}] * 3)
        assert calibrator.decide(history, 1).action == CalibrationAction.ADVANCE

    def test_one_weak_round_in_window_holds(self, calibrator, make_history):
        history = make_history(strong(2), {"level": 2, "f1": 0.5, "precision": 0.8}, strong(2))
        assert calibrator.next_difficulty(history, 2) == 2

    def test_streak_restarts_after_level_change(self, calibrator, make_history):
        history = make_history(strong(1), strong(2), strong(2))
        assert calibrator.next_difficulty(history, 2) == 2

    def test_only_most_recent_rounds_count(self, calibrator, make_history):
        history = make_history(strong(2), strong(2), strong(2), weak(2))
        assert calibrator.next_difficulty(history, 2) == 2


class TestAnchorGate:
    def test_missing_anchor_blocks_advance_from_level_3(self, calibrator, make_history):
        low_crypto = {"access-control": 0.8, "injection": 1.0, "crypto": 0.20}
        history = make_history(*[strong(3, low_crypto)] * 3)

        decision = calibrator.decide(history, 3)

        assert decision.action == CalibrationAction.HOLD
        assert decision.level == 3
        assert "crypto" in decision.reason

    def test_anchor_never_seen_blocks_advance(self, calibrator, make_history):
        history = make_history(*[strong(3, {"access-control": 1.0, "injection": 1.0})] * 3)
        assert calibrator.next_difficulty(history, 3) == 3

    def test_anchors_demonstrated_once_is_enough(self, calibrator, make_history):
        history = make_history(
            strong(3, {"access-control": 0.6}),
            strong(3, {"injection": 0.5}),
            strong(3, {"crypto": 1.0, "injection": 0.0}),
        )
        assert calibrator.next_difficulty(history, 3) == 4

    def test_anchors_not_required_below_gate(self, calibrator, make_history):
        history = make_history(*[strong(2)] * 3)
        assert calibrator.next_difficulty(history, 2) == 3

    def test_missing_anchors_lists_each_gap(self, calibrator, make_history):
        history = make_history(strong(3, {"injection": 0.9}))
        assert calibrator.missing_anchors(history.all()) == ["access-control", "crypto"]


class TestRetreat:
    def test_two_weak_rounds_retreat(self, calibrator, make_history):
        history = make_history(weak(3), weak(3))
        assert calibrator.next_difficulty(history, 3) == 2

    def test_retreat_threshold_is_exclusive(self, calibrator, make_history):
        history = make_history(*[{"level": 3, "f1": 0.30, "precision": 0.3}] * 2)
        assert calibrator.next_difficulty(history, 3) == 3

    def test_mixed_levels_do_not_retreat(self, calibrator, make_history):
        history = make_history(weak(2), weak(3))
        assert calibrator.next_difficulty(history, 3) == 3


class TestBounds:
    def test_hold_at_max_level(self, calibrator, make_history):
        history = make_history(*[strong(5, ANCHORS_OK)] * 3)
        decision = calibrator.decide(history, 5)
        assert decision.action == CalibrationAction.HOLD
        assert decision.level == 5

    def test_hold_at_min_level(self, calibrator, make_history):
        history = make_history(weak(1), weak(1))
        assert calibrator.next_difficulty(history, 1) == 1

    def test_out_of_range_current_is_clamped(self, calibrator, make_history):
        assert calibrator.next_difficulty(make_history(), 9) == 5
        assert calibrator.next_difficulty(make_history(), 0) == 1

    @pytest.mark.parametrize("rounds", [0, 1, 2])
    def test_sparse_history_holds(self, calibrator, make_history, rounds):
        history = make_history(*[strong(2)] * rounds)
        assert calibrator.next_difficulty(history, 2) == 2

    def test_single_weak_round_holds(self, calibrator, make_history):
        assert calibrator.next_difficulty(make_history(weak(2)), 2) == 2

    def test_level_moves_by_at_most_one(self, calibrator, make_history):
        for current in range(1, 6):
            up = calibrator.next_difficulty(make_history(*[strong(current, ANCHORS_OK)] * 3), current)
            down = calibrator.next_difficulty(make_history(weak(current), weak(current)), current)
            assert abs(up - current) <= 1
            assert abs(down - current) <= 1


class TestConfig:
    def test_custom_thresholds(self, make_history):
        calibrator = DifficultyCalibrator(CalibrationConfig(advance_window=2, anchor_categories=()))
        history = make_history(strong(4), strong(4))
        assert calibrator.next_difficulty(history, 4) == 5


class TestSealedRounds:
    def test_editing_a_sealed_scorecard_cannot_change_the_decision(self, calibrator, make_history):
        low_crypto = {"access-control": 0.8, "injection": 1.0, "crypto": 0.0}
        history = make_history(*[strong(3, low_crypto)] * 3)
        assert calibrator.next_difficulty(history, 3) == 3

        with pytest.raises(TypeError):
            history.all()[0].scorecard.per_category_recall["crypto"] = 1.0

        assert calibrator.next_difficulty(history, 3) == 3
