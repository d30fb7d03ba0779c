"""
Puzzle coordinator - validates and aggregates member activations
"""

from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from .events import EventChannel
from .matchers import ActivationMatcher, OrderedMatch, SetMatch
from .rewards import RewardHookSet
from .types import (
    CoordinationMode,
    ElementKind,
    ElementState,
    FailureReason,
    PuzzleEvent,
    PuzzleSignal,
)
from puzzle_utils import get_default_class_logger

if TYPE_CHECKING:
    from puzzle_utils import ClassLogger
    from .element import PuzzleElement
    from .interfaces import IScoreKeeper


class PuzzleCoordinator:
    """
    Coordinates a fixed set of elements under one coordination mode.

    Responsibilities:
    - Validate steps reported by members (validate_step)
    - Track sequence cursor, activation history and activation record
    - Detect completion per mode and run the solve action once per episode
    - Expire Timed sequences from update(dt)

    Example:
        a, b, c = (PuzzleElement(n, ElementKind.SEQUENCE_NODE, sequence_order=i)
                   for i, n in enumerate("abc", start=1))
        vault = PuzzleCoordinator("vault", CoordinationMode.SEQUENTIAL, [a, b, c])
        a.interaction_start(); b.interaction_start(); c.interaction_start()
        vault.is_solved()  # True
    """

    def __init__(self,
                 puzzle_id: str,
                 mode: CoordinationMode,
                 members: Iterable[Optional['PuzzleElement']],
                 timeout_window: float = 10.0,
                 allow_reset: bool = False,
                 reset_sequence_on_timeout: bool = True,
                 reset_sequence_on_wrong_step: bool = True,
                 completion_points: int = 500,
                 pattern_matcher: Optional[ActivationMatcher] = None,
                 reward_hooks: Optional[RewardHookSet] = None,
                 score_keeper: Optional['IScoreKeeper'] = None,
                 events: Optional[EventChannel] = None,
                 logger: Optional['ClassLogger'] = None):
        """
        Initialize the coordinator and attach it to its members.

        Args:
            puzzle_id: Unique puzzle identifier
            mode: Coordination mode
            members: Elements in this puzzle (None and duplicates are dropped)
            timeout_window: Max seconds between Timed steps (0 = unlimited)
            allow_reset: Allow a full reset after the puzzle is solved
            reset_sequence_on_timeout: Clear sequence progress when a Timed step expires
            reset_sequence_on_wrong_step: Clear sequence progress on a wrong Sequential/Timed step
            completion_points: Points reported to the score keeper on solve
            pattern_matcher: Completion matcher for Pattern mode (default: every member recorded)
            reward_hooks: Targets switched on solve and restored on reset
            score_keeper: Scoring collaborator
            events: Outbound event channel
            logger: ClassLogger instance
        """
        self.puzzle_id = puzzle_id
        self.mode = mode
        self.timeout_window = max(0.0, float(timeout_window))
        self.allow_reset = allow_reset
        self.reset_sequence_on_timeout = reset_sequence_on_timeout
        self.reset_sequence_on_wrong_step = reset_sequence_on_wrong_step
        self.completion_points = completion_points
        self.pattern_matcher: ActivationMatcher = pattern_matcher or SetMatch()
        self.reward_hooks = reward_hooks if reward_hooks is not None else RewardHookSet()
        self.score_keeper = score_keeper
        self.events = events if events is not None else EventChannel()
        self.logger = logger or get_default_class_logger("PuzzleCoordinator")

        self.members: List['PuzzleElement'] = self._normalize_members(members)
        if self.mode.is_ordered:
            # Stable sort keeps configuration order for equal ranks
            self.members.sort(key=lambda element: element.sequence_order)

        self.activation_record: Dict[str, bool] = {m.element_id: False for m in self.members}
        self.sequence_cursor = 0
        self.activation_history: List[str] = []
        self.last_step_time = 0.0
        self.resolved = False

        # Coordinator-local clock, advanced by update(dt)
        self.clock = 0.0
        self._validating = False
        self._timeout_reported = False

        if not self.members:
            self.logger.error(f"PuzzleCoordinator '{self.puzzle_id}': no puzzle elements assigned!")

        for member in self.members:
            member.attach_coordinator(self)

        self.logger.info(
            f"PuzzleCoordinator initialized: {self.puzzle_id} "
            f"(mode={self.mode.value}, elements={len(self.members)})"
        )

    def _normalize_members(self, members: Iterable[Optional['PuzzleElement']]) -> List['PuzzleElement']:
        result: List['PuzzleElement'] = []
        seen_ids = set()
        for member in members or []:
            if member is None:
                self.logger.warning(f"{self.puzzle_id}: dropping null member")
                continue
            if member.element_id in seen_ids:
                self.logger.warning(f"{self.puzzle_id}: dropping duplicate member {member.element_id}")
                continue
            seen_ids.add(member.element_id)
            result.append(member)
        return result

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_misconfigured(self) -> bool:
        return not self.members

    @property
    def member_ids(self) -> List[str]:
        return [member.element_id for member in self.members]

    def is_solved(self) -> bool:
        return self.resolved

    def is_member(self, element: 'PuzzleElement') -> bool:
        return any(member is element for member in self.members)

    def expected_element(self) -> Optional['PuzzleElement']:
        """Next expected member under ordered modes (None when not applicable)"""
        if not self.mode.is_ordered or self.sequence_cursor >= len(self.members):
            return None
        return self.members[self.sequence_cursor]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_step(self, element: 'PuzzleElement') -> bool:
        """
        Validate an activation reported by a member.

        Args:
            element: The member being activated

        Returns:
            True if the step was accepted
        """
        if self.resolved:
            self.logger.debug(f"Puzzle already solved: {self.puzzle_id}")
            self._emit_rejection(element)
            return False

        if self.is_misconfigured:
            self.logger.error(f"{self.puzzle_id}: cannot validate, puzzle has no elements")
            self.events.emit(PuzzleEvent(PuzzleSignal.FAILED, self.puzzle_id,
                                         reason=FailureReason.CONFIGURATION_ERROR,
                                         detail="no members"))
            return False

        if self._validating:
            self.logger.warning(f"{self.puzzle_id}: reentrant validation of {element.element_id} refused")
            self._emit_rejection(element)
            return False

        if not self.is_member(element):
            self.logger.warning(f"{self.puzzle_id}: {element.element_id} is not a member")
            self._reject(element)
            return False

        self._validating = True
        try:
            accepted = self._validate_for_mode(element)
            if accepted:
                self._accept(element)
            else:
                self._reject(element)
        finally:
            self._validating = False

        if accepted:
            self._check_and_solve()
        return accepted

    def _validate_for_mode(self, element: 'PuzzleElement') -> bool:
        if self.mode.is_ordered:
            expected = self.expected_element()
            if expected is None:
                return False
            if expected is element:
                self.sequence_cursor += 1
                return True
            return False

        # SIMULTANEOUS / ANY / PATTERN accept every member; completion is checked separately
        return True

    def _accept(self, element: 'PuzzleElement') -> None:
        self.activation_record[element.element_id] = True
        self.activation_history.append(element.element_id)
        self.last_step_time = self.clock
        self._timeout_reported = False

        self.events.emit(PuzzleEvent(PuzzleSignal.CORRECT_STEP, self.puzzle_id,
                                     detail=element.element_id))
        if self.score_keeper is not None:
            self.score_keeper.on_correct_step(self.puzzle_id)

        if self.mode.is_ordered:
            self.logger.info(
                f"Correct step: {element.element_id} (step {self.sequence_cursor}/{len(self.members)})"
            )
        else:
            self.logger.info(f"Correct step: {element.element_id} ({len(self.activation_history)} accepted)")

    def _emit_rejection(self, element: 'PuzzleElement') -> None:
        self.events.emit(PuzzleEvent(PuzzleSignal.FAILED, self.puzzle_id,
                                     reason=FailureReason.INVALID_ACTIVATION,
                                     detail=element.element_id))

    def _reject(self, element: 'PuzzleElement') -> None:
        self.logger.info(f"Incorrect step: {element.element_id}")
        self._emit_rejection(element)
        if self.mode.is_ordered and self.reset_sequence_on_wrong_step:
            self.logger.info("Wrong sequence element activated. Resetting sequence...")
            self.reset_sequence()

    def on_member_state_changed(self, element: 'PuzzleElement', previous: ElementState) -> None:
        """
        Notification from a member after any state transition.

        Plain kinds (switches, levers, plates, dials, combinations) report
        their steps here on the rising edge to ACTIVE; sequence nodes have
        already validated. Completion is re-evaluated afterwards since the
        Simultaneous condition is level-triggered.
        """
        if self.resolved or self._validating or self.is_misconfigured:
            return

        rising = element.state is ElementState.ACTIVE and previous is not ElementState.ACTIVE
        if rising and element.kind is not ElementKind.SEQUENCE_NODE:
            # validate_step runs the completion check itself
            self.validate_step(element)
            return

        self._check_and_solve()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def check_completion(self) -> bool:
        """Mode-specific completion test (no side effects)"""
        if self.is_misconfigured:
            return False

        if self.mode.is_ordered:
            return self.sequence_cursor >= len(self.members)

        if self.mode is CoordinationMode.SIMULTANEOUS:
            return self.all_members_active()

        if self.mode is CoordinationMode.ANY:
            return all(self.activation_record.values())

        return self.pattern_matcher.matches(self.activation_history, self.member_ids, self.activation_record)

    def all_members_active(self) -> bool:
        """Level-triggered: every member is ACTIVE right now"""
        return all(member.state is ElementState.ACTIVE for member in self.members)

    def _check_and_solve(self) -> None:
        if not self.resolved and self.check_completion():
            self.solve()

    def solve(self) -> bool:
        """
        Solve action: mark resolved, force members to SOLVED, fire rewards.

        Idempotent - a second call within the same episode does nothing.

        Returns:
            True if this call solved the puzzle
        """
        if self.resolved:
            return False

        self.resolved = True
        self.logger.info(f"PUZZLE SOLVED: {self.puzzle_id}")

        for member in self.members:
            member.force_solve()

        self.reward_hooks.activate_all()

        if self.score_keeper is not None:
            self.score_keeper.on_puzzle_solved(self.puzzle_id, self.completion_points)

        self.events.emit(PuzzleEvent(PuzzleSignal.SOLVED, self.puzzle_id,
                                     points=self.completion_points))
        return True

    def debug_solve(self) -> bool:
        """Force-solve for testing and level debugging"""
        solved = self.solve()
        if solved:
            self.logger.info(f"Puzzle force-solved: {self.puzzle_id}")
        return solved

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> bool:
        """
        Full reset to a fresh unsolved episode.

        Refused when the puzzle is solved and allow_reset is False.
        Members reset according to their own can_reset.

        Returns:
            True if the reset happened
        """
        if self.resolved and not self.allow_reset:
            self.logger.info(f"Puzzle {self.puzzle_id} cannot be reset (allow_reset is False)")
            return False

        self.resolved = False
        self.sequence_cursor = 0
        self.last_step_time = 0.0
        self.activation_history.clear()
        self._timeout_reported = False
        for element_id in self.activation_record:
            self.activation_record[element_id] = False

        # Member resets notify us; keep them from counting as steps
        self._validating = True
        try:
            for member in self.members:
                member.reset()
        finally:
            self._validating = False

        self.reward_hooks.deactivate_all()
        self.events.emit(PuzzleEvent(PuzzleSignal.RESET, self.puzzle_id))
        self.logger.info(f"Puzzle reset: {self.puzzle_id}")
        return True

    def reset_sequence(self) -> None:
        """Sequence-only reset: cursor, history and step time. Records and member states are untouched."""
        self.sequence_cursor = 0
        self.last_step_time = 0.0
        self.activation_history.clear()
        self._timeout_reported = False
        self.logger.debug(f"Sequence reset: {self.puzzle_id}")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        """
        Advance the coordinator clock and run periodic checks.

        Args:
            dt: Seconds since last tick
        """
        self.advance_clock(dt)
        self.evaluate()

    def advance_clock(self, dt: float) -> None:
        """Move the local clock forward without running checks"""
        if dt > 0:
            self.clock += dt

    def evaluate(self) -> None:
        """Periodic checks: Timed expiry and Simultaneous completion"""
        if self.resolved or self.is_misconfigured:
            return

        if self.mode is CoordinationMode.TIMED:
            self._check_timeout()
        elif self.mode is CoordinationMode.SIMULTANEOUS:
            self._check_and_solve()

    def time_since_last_step(self) -> Optional[float]:
        """Seconds since the last accepted step, None before the first step of a sequence"""
        if self.mode.is_ordered and self.sequence_cursor == 0:
            return None
        if not self.activation_history:
            return None
        return self.clock - self.last_step_time

    def _check_timeout(self) -> None:
        if self.sequence_cursor <= 0 or self.timeout_window <= 0 or self._timeout_reported:
            return
        if self.clock - self.last_step_time <= self.timeout_window:
            return

        # Reported once per expiry; cleared by the next accepted step or a reset
        self._timeout_reported = True
        self.logger.info(f"Puzzle sequence timed out! ({self.timeout_window}s exceeded)")
        self.events.emit(PuzzleEvent(PuzzleSignal.FAILED, self.puzzle_id,
                                     reason=FailureReason.TIMEOUT_EXPIRED))
        if self.reset_sequence_on_timeout:
            self.reset_sequence()

    # ------------------------------------------------------------------
    # Progress & hints
    # ------------------------------------------------------------------

    def progress_percentage(self) -> float:
        """Percent of members validly activated at least once (0-100)"""
        if not self.members:
            return 0.0
        completed = sum(1 for value in self.activation_record.values() if value)
        return completed / len(self.members) * 100.0

    def hint(self) -> str:
        """Hint text for the next step, depending on mode and progress"""
        if self.resolved:
            return "Puzzle already solved!"

        if self.mode.is_ordered:
            expected = self.expected_element()
            if expected is not None:
                return f"Try activating: {expected.element_id}"
        elif self.mode is CoordinationMode.SIMULTANEOUS:
            active = sum(1 for member in self.members if member.state is ElementState.ACTIVE)
            return f"Need all elements active simultaneously. Currently active: {active}/{len(self.members)}"
        elif self.mode is CoordinationMode.ANY:
            completed = sum(1 for value in self.activation_record.values() if value)
            return f"Activate all elements in any order. Progress: {completed}/{len(self.members)}"
        elif self.mode is CoordinationMode.PATTERN:
            if isinstance(self.pattern_matcher, OrderedMatch):
                matched = self.pattern_matcher.progress(self.activation_history)
                return f"Find the correct pattern. Progress: {matched * 100:.0f}%"
            return "Find the correct pattern or sequence."

        return "No hints available."

    def describe(self) -> str:
        """Multi-line status summary"""
        lines = [
            "========== PUZZLE INFO ==========",
            f"Puzzle ID: {self.puzzle_id}",
            f"Mode: {self.mode.value}",
            f"Elements: {len(self.members)}",
            f"Solved: {self.resolved}",
            f"Progress: {self.progress_percentage():.1f}%",
            f"Current Step: {self.sequence_cursor}/{len(self.members)}",
        ]
        if self.mode.is_ordered:
            lines.append("Sequence Order:")
            for index, member in enumerate(self.members):
                mark = "[x]" if index < self.sequence_cursor else "[ ]"
                lines.append(f"  {index + 1}. {member.element_id} {mark}")
        lines.append("=================================")
        return "\n".join(lines)

    def __str__(self) -> str:
        return (
            f"PuzzleCoordinator({self.puzzle_id}, mode={self.mode.value}, "
            f"cursor={self.sequence_cursor}/{len(self.members)}, solved={self.resolved})"
        )
