"""End-to-end puzzle scenarios and cross-cutting invariants."""
from puzzle_system import (
    CoordinationMode,
    ElementKind,
    ElementState,
    FailureReason,
    PuzzleSignal,
)


def tick(dt, elements, coordinators=()):
    """Elements first, then coordinators; steps are stamped with the previous clock"""
    for element in elements:
        element.update(dt)
    for coordinator in coordinators:
        coordinator.update(dt)


class TestSequentialVault:
    def test_wrong_first_step_then_correct_order(self, sequence_room, recorder):
        coordinator, a, b, c = sequence_room

        result = b.interaction_start()
        assert result.reason is FailureReason.INVALID_ACTIVATION
        assert coordinator.sequence_cursor == 0
        assert coordinator.activation_history == []
        assert b.state is ElementState.INACTIVE

        a.interaction_start()
        assert coordinator.sequence_cursor == 1
        b.interaction_start()
        assert coordinator.sequence_cursor == 2
        c.interaction_start()
        assert coordinator.sequence_cursor == 3

        assert coordinator.is_solved()
        assert [e.state for e in (a, b, c)] == [ElementState.SOLVED] * 3
        assert len(recorder.of(PuzzleSignal.SOLVED, "vault")) == 1


class TestTimedExpiry:
    def test_timeout_clears_sequence_only(self, make_element, make_coordinator, recorder):
        a = make_element("A", ElementKind.SEQUENCE_NODE, sequence_order=1)
        b = make_element("B", ElementKind.SEQUENCE_NODE, sequence_order=2)
        coordinator = make_coordinator("runes", CoordinationMode.TIMED, [a, b], timeout_window=10.0)

        a.interaction_start()
        assert coordinator.last_step_time == 0.0

        for _ in range(20):
            tick(0.5, (a, b), (coordinator,))
        assert recorder.of(PuzzleSignal.FAILED, "runes") == []

        tick(0.5, (a, b), (coordinator,))
        failures = recorder.of(PuzzleSignal.FAILED, "runes")
        assert len(failures) == 1
        assert failures[0].reason is FailureReason.TIMEOUT_EXPIRED

        assert coordinator.sequence_cursor == 0
        assert coordinator.activation_history == []
        assert coordinator.activation_record == {"A": True, "B": False}
        assert a.state is ElementState.ACTIVE
        assert b.state is ElementState.INACTIVE


class TestSimultaneousMomentary:
    def test_early_member_reverts_before_others_arrive(self, make_element, make_coordinator):
        a = make_element("a", ElementKind.PRESSURE_PLATE, is_toggle=False, presentation_duration=1.0)
        b = make_element("b", ElementKind.PRESSURE_PLATE, is_toggle=False, presentation_duration=3.0)
        c = make_element("c", ElementKind.PRESSURE_PLATE, is_toggle=False, presentation_duration=3.0)
        coordinator = make_coordinator("plates", CoordinationMode.SIMULTANEOUS, [a, b, c])
        elements = (a, b, c)

        a.interaction_start()
        tick(1.0, elements, (coordinator,))
        assert a.state is ElementState.INACTIVE

        b.interaction_start()
        c.interaction_start()
        tick(0.5, elements, (coordinator,))
        assert not coordinator.is_solved()

        a.interaction_start()
        assert coordinator.is_solved()
        assert [e.state for e in elements] == [ElementState.SOLVED] * 3

        # Solved members no longer revert
        tick(5.0, elements, (coordinator,))
        assert [e.state for e in elements] == [ElementState.SOLVED] * 3


class TestHoldCancellation:
    def test_early_release_then_full_hold(self, make_element):
        lever = make_element("lever", ElementKind.LEVER, hold_threshold=2.0)

        lever.interaction_start()
        lever.update(1.0)
        lever.update(0.25)
        lever.interaction_end()
        assert lever.attempt_count == 0
        assert lever.hold_progress == 0.0

        lever.interaction_start()
        lever.update(1.0)
        lever.update(1.0)
        assert lever.attempt_count == 1
        assert lever.state is ElementState.ACTIVE


class TestRotationWithoutCoordinator:
    def test_dial_within_tolerance_solves_itself(self, make_element, recorder):
        dial = make_element("dial", ElementKind.ROTATION_LOCK, rotation_target=90.0, rotation_tolerance=5.0)
        dial.set_orientation(88.0)

        dial.interaction_start()
        assert dial.state is ElementState.SOLVED
        assert dial.coordinator is None
        assert recorder.signals("dial")[-1] is PuzzleSignal.SOLVED


class TestInvariants:
    def test_solved_is_terminal_for_input(self, sequence_room):
        coordinator, a, b, c = sequence_room
        coordinator.solve()
        for element in (a, b, c):
            element.interaction_start()
            element.lock()
            element.unlock()
            element.update(10.0)
            assert element.state is ElementState.SOLVED

    def test_cursor_never_exceeds_member_count(self, sequence_room):
        coordinator, a, b, c = sequence_room
        for element in (a, b, c, a, b, c):
            element.interaction_start()
            assert 0 <= coordinator.sequence_cursor <= len(coordinator.members)

    def test_records_only_grow_between_resets(self, make_element, make_coordinator):
        a = make_element("a", is_toggle=False, presentation_duration=0.5)
        b = make_element("b")
        coordinator = make_coordinator("p", CoordinationMode.ANY, [a, b])

        a.interaction_start()
        tick(1.0, (a, b), (coordinator,))
        assert a.state is ElementState.INACTIVE
        assert coordinator.activation_record["a"] is True

    def test_failure_reasons_are_values_not_exceptions(self, make_element):
        node = make_element("orphan", ElementKind.SEQUENCE_NODE)
        node.lock()
        assert node.interaction_start().reason is FailureReason.INVALID_ACTIVATION
        node.unlock()
        assert node.interaction_start().reason is FailureReason.CONFIGURATION_ERROR
