"""Tests for PuzzleCoordinator validation, completion, reset and timing."""
import pytest

from puzzle_system import (
    CoordinationMode,
    ElementKind,
    ElementState,
    FailureReason,
    OrderedMatch,
    PuzzleSignal,
    RewardHookSet,
    RewardTarget,
    ScoreBoard,
)


def switches(make_element, *names, **kwargs):
    return [make_element(name, ElementKind.SWITCH, **kwargs) for name in names]


class TestMembership:
    def test_ordered_modes_sort_by_sequence_order(self, sequence_room):
        coordinator, a, b, c = sequence_room
        assert coordinator.member_ids == ["A", "B", "C"]
        assert coordinator.expected_element() is a

    def test_stable_sort_keeps_configuration_order_for_equal_ranks(self, make_element, make_coordinator):
        x = make_element("x", ElementKind.SEQUENCE_NODE, sequence_order=1)
        y = make_element("y", ElementKind.SEQUENCE_NODE, sequence_order=1)
        coordinator = make_coordinator("p", CoordinationMode.SEQUENTIAL, [y, x])
        assert coordinator.member_ids == ["y", "x"]

    def test_unordered_modes_keep_configuration_order(self, make_element, make_coordinator):
        a = make_element("a", sequence_order=3)
        b = make_element("b", sequence_order=1)
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b])
        assert coordinator.member_ids == ["a", "b"]

    def test_null_and_duplicate_members_dropped(self, make_element, make_coordinator):
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, None, a, b])
        assert coordinator.member_ids == ["a", "b"]
        assert set(coordinator.activation_record) == {"a", "b"}

    def test_members_are_attached(self, sequence_room):
        coordinator, a, b, c = sequence_room
        assert all(e.coordinator is coordinator for e in (a, b, c))
        assert not a.is_misconfigured

    def test_empty_coordinator_is_misconfigured(self, make_element, make_coordinator, recorder):
        coordinator = make_coordinator("empty", CoordinationMode.ANY, [])
        assert coordinator.is_misconfigured
        assert not coordinator.check_completion()
        assert coordinator.progress_percentage() == 0.0

        outsider = make_element("outsider")
        assert coordinator.validate_step(outsider) is False
        failure = recorder.of(PuzzleSignal.FAILED, "empty")[0]
        assert failure.reason is FailureReason.CONFIGURATION_ERROR

        coordinator.update(1.0)
        assert not coordinator.is_solved()

    def test_non_member_is_rejected(self, make_element, make_coordinator, recorder):
        a, b = switches(make_element, "a", "b")
        outsider = make_element("outsider")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b])

        assert coordinator.validate_step(outsider) is False
        assert coordinator.activation_history == []
        assert "outsider" not in coordinator.activation_record
        assert recorder.of(PuzzleSignal.FAILED, "p")[0].detail == "outsider"


class TestSequential:
    def test_wrong_step_resets_sequence(self, sequence_room, recorder):
        coordinator, a, b, c = sequence_room
        a.interaction_start()
        assert coordinator.sequence_cursor == 1

        result = c.interaction_start()
        assert result.reason is FailureReason.INVALID_ACTIVATION
        assert coordinator.sequence_cursor == 0
        assert coordinator.activation_history == []
        assert c.state is ElementState.INACTIVE
        # Records survive a sequence-only reset
        assert coordinator.activation_record["A"] is True

    def test_wrong_step_keeps_progress_when_flag_off(self, make_element, make_coordinator):
        a = make_element("A", ElementKind.SEQUENCE_NODE, sequence_order=1)
        b = make_element("B", ElementKind.SEQUENCE_NODE, sequence_order=2)
        c = make_element("C", ElementKind.SEQUENCE_NODE, sequence_order=3)
        coordinator = make_coordinator("vault", CoordinationMode.SEQUENTIAL, [a, b, c],
                                       reset_sequence_on_wrong_step=False)
        a.interaction_start()
        c.interaction_start()
        assert coordinator.sequence_cursor == 1
        assert coordinator.activation_history == ["A"]

        b.interaction_start()
        c.interaction_start()
        assert coordinator.is_solved()

    def test_plain_switches_work_in_sequential_mode(self, make_element, make_coordinator):
        first = make_element("first", sequence_order=1)
        second = make_element("second", sequence_order=2)
        coordinator = make_coordinator("p", CoordinationMode.SEQUENTIAL, [second, first])

        second.interaction_start()
        assert coordinator.sequence_cursor == 0
        second.interaction_start()  # toggle back off, not a step
        first.interaction_start()
        second.interaction_start()
        assert coordinator.is_solved()
        assert first.state is ElementState.SOLVED
        assert second.state is ElementState.SOLVED

    def test_wrong_step_reports_one_failure(self, sequence_room, recorder):
        coordinator, a, b, c = sequence_room
        b.interaction_start()
        failures = recorder.of(PuzzleSignal.FAILED)
        assert len(failures) == 1
        assert failures[0].source_id == "vault"
        assert failures[0].detail == "B"
        assert failures[0].reason is FailureReason.INVALID_ACTIVATION

    def test_correct_step_events_carry_member_id(self, sequence_room, recorder):
        coordinator, a, b, c = sequence_room
        a.interaction_start()
        steps = recorder.of(PuzzleSignal.CORRECT_STEP, "vault")
        assert [e.detail for e in steps] == ["A"]

    def test_solved_puzzle_refuses_steps(self, sequence_room):
        coordinator, a, b, c = sequence_room
        coordinator.solve()
        assert coordinator.validate_step(a) is False


class TestUnorderedModes:
    def test_any_mode_solves_when_every_member_recorded(self, make_element, make_coordinator):
        a, b, c = switches(make_element, "a", "b", "c")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b, c])

        c.interaction_start()
        c.interaction_start()  # off again, record stays
        a.interaction_start()
        assert not coordinator.is_solved()
        assert coordinator.progress_percentage() == pytest.approx(200 / 3)

        b.interaction_start()
        assert coordinator.is_solved()
        assert {m.state for m in (a, b, c)} == {ElementState.SOLVED}

    def test_final_member_events_precede_puzzle_solved(self, make_element, make_coordinator, recorder):
        a, b = switches(make_element, "a", "b")
        make_coordinator("p", CoordinationMode.ANY, [a, b])
        a.interaction_start()
        recorder.clear()

        b.interaction_start()
        assert recorder.signals("b") == [
            PuzzleSignal.STATE_CHANGED,
            PuzzleSignal.ACTIVATED,
            PuzzleSignal.STATE_CHANGED,
            PuzzleSignal.SOLVED,
        ]
        last = recorder.events[-1]
        assert (last.signal, last.source_id) == (PuzzleSignal.SOLVED, "p")
        activated = recorder.of(PuzzleSignal.ACTIVATED, "b")[0]
        assert recorder.events.index(activated) < recorder.events.index(last)

    def test_simultaneous_requires_all_active_at_once(self, make_element, make_coordinator):
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator("p", CoordinationMode.SIMULTANEOUS, [a, b])

        a.interaction_start()
        a.interaction_start()
        b.interaction_start()
        assert not coordinator.is_solved()
        assert "Currently active: 1/2" in coordinator.hint()

        a.interaction_start()
        assert coordinator.is_solved()

    def test_pattern_set_match_is_default(self, make_element, make_coordinator):
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator("p", CoordinationMode.PATTERN, [a, b])
        a.interaction_start()
        assert not coordinator.is_solved()
        b.interaction_start()
        assert coordinator.is_solved()

    def test_pattern_ordered_match_uses_tail_of_history(self, make_element, make_coordinator):
        x, y, z = switches(make_element, "x", "y", "z", is_toggle=False)
        coordinator = make_coordinator("p", CoordinationMode.PATTERN, [x, y, z],
                                       pattern_matcher=OrderedMatch(["x", "z"]))
        y.interaction_start()
        x.interaction_start()
        assert not coordinator.is_solved()
        assert coordinator.hint() == "Find the correct pattern. Progress: 50%"

        z.interaction_start()
        assert coordinator.is_solved()
        assert coordinator.activation_history == ["y", "x", "z"]


class TestSolveAndReset:
    @pytest.fixture
    def rewarded(self, make_element, make_coordinator):
        door = RewardTarget("door")
        barrier = RewardTarget("barrier")
        board = ScoreBoard(total_puzzles=1)
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator(
            "p", CoordinationMode.ANY, [a, b],
            completion_points=300,
            reward_hooks=RewardHookSet([door], [barrier]),
            score_keeper=board,
        )
        return coordinator, door, barrier, board, a, b

    def test_default_reward_configuration(self, rewarded):
        coordinator, door, barrier, board, a, b = rewarded
        assert door.active is False
        assert barrier.active is True

    def test_solve_is_idempotent(self, rewarded, recorder):
        coordinator, door, barrier, board, a, b = rewarded
        assert coordinator.solve() is True
        assert coordinator.solve() is False
        assert coordinator.debug_solve() is False

        assert door.active is True
        assert barrier.active is False
        assert coordinator.reward_hooks.activation_count == 1
        assert board.score == 300
        assert board.puzzles_solved == 1
        solved = recorder.of(PuzzleSignal.SOLVED, "p")
        assert len(solved) == 1
        assert solved[0].points == 300

    def test_steps_reach_score_keeper(self, rewarded):
        coordinator, door, barrier, board, a, b = rewarded
        a.interaction_start()
        assert board.step_counts["p"] == 1

    def test_reset_refused_after_solve_without_allow_reset(self, rewarded):
        coordinator, door, barrier, board, a, b = rewarded
        coordinator.solve()
        assert coordinator.reset() is False
        assert coordinator.is_solved()
        assert door.active is True

    def test_reset_before_solve_is_allowed(self, rewarded, recorder):
        coordinator, door, barrier, board, a, b = rewarded
        a.interaction_start()
        assert coordinator.reset() is True
        assert coordinator.activation_record == {"a": False, "b": False}
        assert a.state is ElementState.INACTIVE
        assert coordinator.activation_history == []
        assert recorder.of(PuzzleSignal.RESET, "p")

    def test_full_reset_with_allow_reset(self, make_element, make_coordinator):
        door = RewardTarget("door")
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b], allow_reset=True,
                                       reward_hooks=RewardHookSet([door]))
        coordinator.debug_solve()
        assert coordinator.reset() is True
        assert not coordinator.is_solved()
        assert door.active is False
        assert coordinator.reward_hooks.restore_count == 1
        assert a.state is ElementState.INACTIVE

        # Member resets are not counted as steps
        assert coordinator.activation_history == []

        a.interaction_start()
        b.interaction_start()
        assert coordinator.is_solved()

    def test_member_can_reset_asymmetry(self, make_element, make_coordinator):
        a = make_element("a", can_reset=False)
        b = make_element("b")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b], allow_reset=True)
        coordinator.solve()

        assert coordinator.reset() is True
        assert not coordinator.is_solved()
        assert a.state is ElementState.SOLVED
        assert b.state is ElementState.INACTIVE


class TestTimed:
    def build(self, make_element, make_coordinator, **kwargs):
        a = make_element("A", ElementKind.SEQUENCE_NODE, sequence_order=1)
        b = make_element("B", ElementKind.SEQUENCE_NODE, sequence_order=2)
        c = make_element("C", ElementKind.SEQUENCE_NODE, sequence_order=3)
        coordinator = make_coordinator("timed", CoordinationMode.TIMED, [a, b, c], **kwargs)
        return coordinator, a, b, c

    def test_no_timeout_before_first_step(self, make_element, make_coordinator, recorder):
        coordinator, a, b, c = self.build(make_element, make_coordinator, timeout_window=1.0)
        coordinator.update(5.0)
        assert recorder.of(PuzzleSignal.FAILED) == []
        assert coordinator.time_since_last_step() is None

    def test_zero_window_never_expires(self, make_element, make_coordinator, recorder):
        coordinator, a, b, c = self.build(make_element, make_coordinator, timeout_window=0.0)
        a.interaction_start()
        coordinator.update(1000.0)
        assert coordinator.sequence_cursor == 1
        assert recorder.of(PuzzleSignal.FAILED) == []

    def test_timeout_reported_once_when_not_resetting(self, make_element, make_coordinator, recorder):
        coordinator, a, b, c = self.build(make_element, make_coordinator, timeout_window=2.0,
                                          reset_sequence_on_timeout=False)
        a.interaction_start()
        for _ in range(10):
            coordinator.update(0.5)

        timeouts = [e for e in recorder.of(PuzzleSignal.FAILED, "timed")
                    if e.reason is FailureReason.TIMEOUT_EXPIRED]
        assert len(timeouts) == 1
        assert coordinator.sequence_cursor == 1

        b.interaction_start()
        assert coordinator.sequence_cursor == 2
        assert coordinator.time_since_last_step() == 0.0

    def test_steps_within_window_complete(self, make_element, make_coordinator):
        coordinator, a, b, c = self.build(make_element, make_coordinator, timeout_window=2.0)
        a.interaction_start()
        coordinator.update(1.5)
        b.interaction_start()
        coordinator.update(1.5)
        c.interaction_start()
        assert coordinator.is_solved()


class TestInspection:
    def test_progress_hint_and_describe(self, sequence_room):
        coordinator, a, b, c = sequence_room
        assert coordinator.hint() == "Try activating: A"
        a.interaction_start()

        assert coordinator.progress_percentage() == pytest.approx(100 / 3)
        assert coordinator.hint() == "Try activating: B"
        text = coordinator.describe()
        assert "========== PUZZLE INFO ==========" in text
        assert "Puzzle ID: vault" in text
        assert "1. A [x]" in text
        assert "2. B [ ]" in text

        b.interaction_start()
        c.interaction_start()
        assert coordinator.hint() == "Puzzle already solved!"
        assert coordinator.progress_percentage() == pytest.approx(100.0)

    def test_any_hint_reports_progress(self, make_element, make_coordinator):
        a, b = switches(make_element, "a", "b")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b])
        a.interaction_start()
        assert coordinator.hint().endswith("Progress: 1/2")

    def test_str(self, sequence_room):
        coordinator = sequence_room[0]
        assert str(coordinator) == "PuzzleCoordinator(vault, mode=sequential, cursor=0/3, solved=False)"


class TestReentrancy:
    def test_observer_cannot_validate_during_validation(self, sequence_room, channel):
        coordinator, a, b, c = sequence_room
        results = []

        def meddler(event):
            if event.signal is PuzzleSignal.CORRECT_STEP and event.detail == "A":
                results.append(coordinator.validate_step(b))

        channel.subscribe(meddler)
        a.interaction_start()

        assert results == [False]
        assert coordinator.sequence_cursor == 1
        assert coordinator.activation_history == ["A"]
