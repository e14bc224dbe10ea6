"""
Tests for the movement confirmation engine.

Covers:
- No movement for constant readings
- Confirmation after sustained deviation, timestamped at the first deviating snapshot
- Jitter cancellation, ambiguous-band hold and confirmation-window expiry
- Re-baselining after confirmation
- Degenerate baselines and malformed input
"""

from datetime import timedelta

import pytest

from bedwatch.config import PostureAnalysisConfig
from bedwatch.exceptions import EmptySnapshotSequenceError
from bedwatch.services.movement_detector import MovementConfirmationEngine, max_relative_change

BASELINE = {1: 1000.0, 2: 1000.0, 3: 1000.0, 4: 1000.0}
REST = [1000.0, 1000.0, 1000.0, 1000.0]
SHIFTED = [1150.0, 1000.0, 1000.0, 1000.0]  # 15% on sensor 1
AMBIGUOUS = [1070.0, 1000.0, 1000.0, 1000.0]  # 7%: between stability and change thresholds
NEAR_REST = [1030.0, 1000.0, 1000.0, 1000.0]  # 3%: within stability threshold


@pytest.fixture
def engine() -> MovementConfirmationEngine:
    return MovementConfirmationEngine(PostureAnalysisConfig())


class TestMaxRelativeChange:
    def test_largest_ratio_wins(self) -> None:
        assert max_relative_change({1: 1100.0, 2: 800.0}, {1: 1000.0, 2: 1000.0}) == pytest.approx(
            0.2
        )

    def test_zero_baseline_sensor_is_skipped(self) -> None:
        assert max_relative_change({1: 500.0, 2: 1000.0}, {1: 0.0, 2: 1000.0}) == 0.0

    def test_sensor_missing_from_baseline_is_ignored(self) -> None:
        assert max_relative_change({1: 1000.0, 5: 9999.0}, {1: 1000.0}) == 0.0

    def test_nothing_comparable_is_no_change(self) -> None:
        assert max_relative_change({}, {1: 1000.0}) == 0.0


class TestMovementConfirmation:
    def test_constant_readings_never_confirm(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([REST] * 120)

        analysis = engine.analyze(snapshots, BASELINE)

        assert analysis.last_confirmed_at is None
        assert analysis.confirmed_movements == []
        assert analysis.final_baseline == BASELINE

    def test_three_sustained_deviations_confirm_at_first(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([REST] * 5 + [SHIFTED] * 3)

        last_move = engine.find_last_confirmed_movement(snapshots, BASELINE)

        assert last_move == snapshots[5].timestamp

    def test_two_deviations_are_not_enough(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([REST] * 5 + [SHIFTED] * 2)

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) is None

    def test_single_spike_reverting_is_cancelled(self, engine, make_snapshots) -> None:
        # Without cancellation the two later spikes would complete a streak of three
        snapshots = make_snapshots([SHIFTED, NEAR_REST, SHIFTED, SHIFTED])

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) is None

    def test_spike_reverting_to_exact_baseline_is_cancelled(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([SHIFTED, REST, SHIFTED, SHIFTED, REST])

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) is None

    def test_ambiguous_band_holds_candidate(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([SHIFTED, AMBIGUOUS, AMBIGUOUS, SHIFTED, SHIFTED])

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) == snapshots[0].timestamp

    def test_deviation_at_window_edge_still_counts(self, engine, make_snapshots) -> None:
        rows = [SHIFTED, SHIFTED] + [AMBIGUOUS] * 13 + [SHIFTED]
        snapshots = make_snapshots(rows)
        assert snapshots[15].timestamp - snapshots[0].timestamp == timedelta(minutes=15)

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) == snapshots[0].timestamp

    def test_candidate_restarts_after_window_expires(self, engine, make_snapshots) -> None:
        rows = [SHIFTED, SHIFTED] + [AMBIGUOUS] * 15 + [SHIFTED, SHIFTED, SHIFTED]
        snapshots = make_snapshots(rows)

        analysis = engine.analyze(snapshots, BASELINE)

        assert analysis.last_confirmed_at == snapshots[17].timestamp
        assert analysis.confirmed_movements == [snapshots[17].timestamp]

    def test_sparse_deviations_outside_window_never_confirm(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([SHIFTED] * 4, step_minutes=20)

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) is None


class TestRebaselining:
    def test_baseline_becomes_confirming_snapshot(self, engine, make_snapshots) -> None:
        third_shift = [1160.0, 990.0, 1000.0, 1000.0]
        snapshots = make_snapshots([REST, SHIFTED, SHIFTED, third_shift])

        analysis = engine.analyze(snapshots, BASELINE)

        assert analysis.final_baseline == {1: 1160.0, 2: 990.0, 3: 1000.0, 4: 1000.0}

    def test_new_resting_position_is_not_detected_again(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([REST] * 3 + [SHIFTED] * 30)

        analysis = engine.analyze(snapshots, BASELINE)

        assert analysis.confirmed_movements == [snapshots[3].timestamp]

    def test_short_return_after_movement_keeps_first_confirmation(
        self, engine, make_snapshots
    ) -> None:
        snapshots = make_snapshots([REST] * 5 + [SHIFTED] * 3 + [REST] * 2)

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) == snapshots[5].timestamp

    def test_sustained_return_is_a_second_movement(self, engine, make_snapshots) -> None:
        # Back at 1000 is a 13% change against the re-baselined 1150
        snapshots = make_snapshots([REST] * 5 + [SHIFTED] * 3 + [REST] * 5)

        analysis = engine.analyze(snapshots, BASELINE)

        assert analysis.confirmed_movements == [snapshots[5].timestamp, snapshots[8].timestamp]
        assert analysis.last_confirmed_at == snapshots[8].timestamp
        assert analysis.final_baseline == BASELINE

    def test_input_baseline_is_not_mutated(self, engine, make_snapshots) -> None:
        baseline = dict(BASELINE)
        engine.analyze(make_snapshots([SHIFTED] * 3), baseline)

        assert baseline == BASELINE


class TestEngineEdgeCases:
    def test_empty_sequence_raises(self, engine) -> None:
        with pytest.raises(EmptySnapshotSequenceError):
            engine.analyze([], BASELINE)

    def test_empty_sequence_error_is_value_error(self, engine) -> None:
        with pytest.raises(ValueError, match="without snapshots"):
            engine.find_last_confirmed_movement([], BASELINE)

    def test_zero_baseline_sensor_cannot_trigger_movement(self, engine, make_snapshots) -> None:
        baseline = {1: 0.0, 2: 1000.0}
        snapshots = make_snapshots([[400.0, 1000.0]] * 5)

        assert engine.find_last_confirmed_movement(snapshots, baseline) is None

    def test_custom_thresholds_are_honoured(self, make_snapshots) -> None:
        config = PostureAnalysisConfig(
            change_threshold=0.2, stability_threshold=0.05, confirmation_count=2
        )
        engine = MovementConfirmationEngine(config)

        # 15% is below the raised threshold
        assert engine.find_last_confirmed_movement(make_snapshots([SHIFTED] * 5), BASELINE) is None

        big_shift = make_snapshots([[1250.0, 1000.0, 1000.0, 1000.0]] * 2)
        assert engine.find_last_confirmed_movement(big_shift, BASELINE) == big_shift[0].timestamp

    def test_single_confirmation_count_confirms_immediately(self, make_snapshots) -> None:
        engine = MovementConfirmationEngine(PostureAnalysisConfig(confirmation_count=1))
        snapshots = make_snapshots([REST, SHIFTED])

        assert engine.find_last_confirmed_movement(snapshots, BASELINE) == snapshots[1].timestamp

    def test_repeated_runs_are_identical(self, engine, make_snapshots) -> None:
        snapshots = make_snapshots([REST] * 5 + [SHIFTED] * 3 + [AMBIGUOUS, REST] * 4)

        first = engine.analyze(snapshots, BASELINE)
        second = engine.analyze(snapshots, BASELINE)

        assert first == second
