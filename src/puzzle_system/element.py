"""
Puzzle element - a single interactive node with its own state machine
"""

import itertools
from typing import Optional, TYPE_CHECKING

from .events import EventChannel
from .matchers import ActivationMatcher, MomentaryAccept
from .types import (
    ElementKind,
    ElementState,
    FailureReason,
    InteractionOutcome,
    InteractionResult,
    PuzzleEvent,
    PuzzleSignal,
)
from puzzle_utils import get_default_class_logger

if TYPE_CHECKING:
    from puzzle_utils import ClassLogger
    from .coordinator import PuzzleCoordinator
    from .interfaces import IOrientationProvider

# Tolerance for accumulated float time compared against thresholds
_TIME_EPSILON = 1e-9

_id_counter = itertools.count(1)


def angular_distance(a: float, b: float) -> float:
    """Smallest circular distance between two angles in degrees (0-180)"""
    return abs(((a - b + 180.0) % 360.0) - 180.0)


class PuzzleElement:
    """
    Interactive puzzle node (button, lever, plate, dial, sequence node, combination).

    States: INACTIVE (initial) → ACTIVE ↔ INACTIVE, LOCKED on demand,
    SOLVED when the local rule is terminal or the owning coordinator
    completes. All timing is tick driven through update(dt).

    Example:
        lever = PuzzleElement("gate_lever", ElementKind.LEVER, cooldown_window=0.0)
        lever.interaction_start()      # INACTIVE → ACTIVE
        lever.update(0.02)             # advance timers
    """

    def __init__(self,
                 element_id: str,
                 kind: ElementKind = ElementKind.SWITCH,
                 is_toggle: bool = True,
                 can_reset: bool = True,
                 hold_threshold: float = 0.0,
                 cooldown_window: float = 0.5,
                 sequence_order: int = 1,
                 rotation_target: float = 90.0,
                 rotation_tolerance: float = 5.0,
                 presentation_duration: float = 1.0,
                 auto_check_rotation: bool = False,
                 combination_predicate: Optional[ActivationMatcher] = None,
                 orientation_provider: Optional['IOrientationProvider'] = None,
                 events: Optional[EventChannel] = None,
                 logger: Optional['ClassLogger'] = None):
        """
        Initialize the element.

        Args:
            element_id: Stable id, unique within a coordinator (generated if empty)
            kind: Decides the local activation rule
            is_toggle: True stays Active until pressed again, False auto-reverts
            can_reset: Whether external reset is permitted
            hold_threshold: Seconds the interaction must be held (0 = instant)
            cooldown_window: Seconds after an activation during which new interactions are ignored
            sequence_order: Rank inside ordered coordinators
            rotation_target: Target angle in degrees (ROTATION_LOCK)
            rotation_tolerance: Allowed angular error in degrees (ROTATION_LOCK)
            presentation_duration: Seconds a momentary element stays Active
            auto_check_rotation: ROTATION_LOCK solves on the next tick once within tolerance
            combination_predicate: Matcher used by the COMBINATION rule
            orientation_provider: Ambient angle source, overrides set_orientation()
            events: Outbound event channel (a private one is created if omitted)
            logger: ClassLogger instance
        """
        if not element_id:
            element_id = f"{kind.value}_{next(_id_counter)}"
        self.element_id = element_id
        self.kind = kind
        self.is_toggle = is_toggle
        self.can_reset = can_reset
        self.hold_threshold = max(0.0, float(hold_threshold))
        self.cooldown_window = max(0.0, float(cooldown_window))
        self.sequence_order = sequence_order
        self.rotation_target = rotation_target
        self.rotation_tolerance = rotation_tolerance
        self.presentation_duration = presentation_duration
        self.auto_check_rotation = auto_check_rotation
        self.combination_predicate: ActivationMatcher = combination_predicate or MomentaryAccept()
        self.orientation_provider = orientation_provider
        self.events = events if events is not None else EventChannel()
        self.logger = logger or get_default_class_logger("PuzzleElement")

        self.state = ElementState.INACTIVE
        self.orientation: float = 0.0

        # Runtime-only
        self._is_interacting = False
        self._hold_elapsed = 0.0
        self._cooldown_remaining = 0.0
        self._revert_remaining: Optional[float] = None
        self._coordinator: Optional['PuzzleCoordinator'] = None

        self.attempt_count = 0

        self.logger.debug(f"PuzzleElement initialized: {self.element_id} (kind={self.kind.value})")

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach_coordinator(self, coordinator: 'PuzzleCoordinator') -> None:
        """Register the owning coordinator (called by the coordinator itself)"""
        if self._coordinator is not None and self._coordinator is not coordinator:
            self.logger.error(
                f"{self.element_id}: already owned by {self._coordinator.puzzle_id}, "
                f"steps now go to {coordinator.puzzle_id} only"
            )
        self._coordinator = coordinator

    @property
    def coordinator(self) -> Optional['PuzzleCoordinator']:
        return self._coordinator

    @property
    def is_misconfigured(self) -> bool:
        """A sequence node with no coordinator can never validate"""
        return self.kind is ElementKind.SEQUENCE_NODE and self._coordinator is None

    # ------------------------------------------------------------------
    # Runtime inspection
    # ------------------------------------------------------------------

    @property
    def is_interacting(self) -> bool:
        return self._is_interacting

    @property
    def hold_progress(self) -> float:
        """Seconds accumulated toward hold_threshold"""
        return self._hold_elapsed

    @property
    def cooldown_remaining(self) -> float:
        return self._cooldown_remaining

    def is_on_cooldown(self) -> bool:
        return self._cooldown_remaining > _TIME_EPSILON

    # ------------------------------------------------------------------
    # Input events
    # ------------------------------------------------------------------

    def interaction_start(self) -> InteractionResult:
        """
        Player begins interacting (press, grab, step on).

        Returns:
            InteractionResult describing whether the element activated,
            started a hold, or rejected the attempt
        """
        if self.state in (ElementState.LOCKED, ElementState.SOLVED):
            self.logger.info(f"Cannot interact with {self.element_id}: element is {self.state.value}")
            self._emit_failure(FailureReason.INVALID_ACTIVATION, f"element is {self.state.value}")
            return InteractionResult.rejected(FailureReason.INVALID_ACTIVATION)

        if self.is_on_cooldown():
            # Silent at this layer - no failure signal
            self.logger.debug(
                f"Cannot interact with {self.element_id}: on cooldown ({self._cooldown_remaining:.2f}s remaining)"
            )
            return InteractionResult.rejected(FailureReason.COOLDOWN_ACTIVE)

        if self.hold_threshold <= 0.0:
            return self._attempt_activation()

        self._is_interacting = True
        self._hold_elapsed = 0.0
        self.logger.debug(f"{self.element_id}: hold started ({self.hold_threshold:.2f}s required)")
        return InteractionResult(InteractionOutcome.HOLD_STARTED)

    def interaction_end(self) -> bool:
        """
        Player releases the element.

        Cancels a hold that has not reached its threshold. Safe to call at
        any time; it never changes state or emits events.

        Returns:
            True if a pending hold was cancelled
        """
        if not self._is_interacting:
            return False
        self.logger.debug(
            f"Interaction released early on {self.element_id} "
            f"({self._hold_elapsed:.2f}s / {self.hold_threshold:.2f}s)"
        )
        self._cancel_hold()
        return True

    def lock(self) -> bool:
        """Lock a non-terminal element. Returns True if the state changed."""
        if self.state in (ElementState.SOLVED, ElementState.LOCKED):
            return False
        self._cancel_hold()
        self._revert_remaining = None
        self._set_state(ElementState.LOCKED)
        self.logger.info(f"Puzzle element locked: {self.element_id}")
        return True

    def unlock(self) -> bool:
        """Unlock a locked element back to INACTIVE. Returns True if the state changed."""
        if self.state is not ElementState.LOCKED:
            return False
        self._set_state(ElementState.INACTIVE)
        self.logger.info(f"Puzzle element unlocked: {self.element_id}")
        return True

    def reset(self) -> bool:
        """
        Return to INACTIVE and clear all timers, if can_reset allows it.

        The emitted RESET event tells the presentation layer to restore the
        default position/orientation.

        Returns:
            True if the element was reset
        """
        if not self.can_reset:
            self.logger.debug(f"Reset refused for {self.element_id} (can_reset is False)")
            return False

        self._cancel_hold()
        self._cooldown_remaining = 0.0
        self._revert_remaining = None
        if self.state is not ElementState.INACTIVE:
            self._set_state(ElementState.INACTIVE)
        self.events.emit(PuzzleEvent(PuzzleSignal.RESET, self.element_id, state=self.state))
        self.logger.info(f"Puzzle element reset: {self.element_id}")
        return True

    def force_solve(self) -> bool:
        """
        Mark SOLVED regardless of kind (coordinator completion).

        Returns:
            False if the element was already solved
        """
        if self.state is ElementState.SOLVED:
            return False
        self._cancel_hold()
        self._revert_remaining = None
        self.logger.info(f"Puzzle solved: {self.element_id}")
        self._set_state(ElementState.SOLVED, PuzzleSignal.SOLVED)
        return True

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def set_orientation(self, angle: float) -> None:
        """Ambient orientation reported by the presentation layer"""
        self.orientation = float(angle)

    def current_angle(self) -> float:
        if self.orientation_provider is not None:
            return float(self.orientation_provider.get_angle(self.element_id))
        return self.orientation

    def check_rotation(self) -> bool:
        """True if the current angle is within tolerance of the target"""
        return angular_distance(self.current_angle(), self.rotation_target) <= self.rotation_tolerance

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        """
        Advance cooldown, hold and momentary timers.

        Args:
            dt: Seconds since last tick
        """
        if dt < 0:
            return

        if self._cooldown_remaining > 0.0:
            self._cooldown_remaining = max(0.0, self._cooldown_remaining - dt)

        # Revert before the hold so a presentation armed this tick runs in full
        if self._revert_remaining is not None:
            self._revert_remaining -= dt
            if self._revert_remaining <= _TIME_EPSILON:
                self._revert_remaining = None
                self._auto_revert()

        if self._is_interacting:
            self._hold_elapsed += dt
            if self._hold_elapsed + _TIME_EPSILON >= self.hold_threshold:
                self._cancel_hold()
                self._attempt_activation()

        if (self.auto_check_rotation
                and self.kind is ElementKind.ROTATION_LOCK
                and self.state in (ElementState.INACTIVE, ElementState.ACTIVE)
                and self.check_rotation()):
            self.logger.info(
                f"Rotation lock aligned: {self.element_id} at {self.current_angle():.1f}° "
                f"(target {self.rotation_target}°)"
            )
            self._activate()

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def _attempt_activation(self) -> InteractionResult:
        self.attempt_count += 1

        # State may have changed during a hold
        if self.state in (ElementState.LOCKED, ElementState.SOLVED):
            self._emit_failure(FailureReason.INVALID_ACTIVATION, f"element is {self.state.value}")
            return InteractionResult.rejected(FailureReason.INVALID_ACTIVATION)

        failure = self._local_rule()
        if failure is not None:
            # A rejected sequence step is reported once, by the coordinator
            if not (self.kind is ElementKind.SEQUENCE_NODE and failure is FailureReason.INVALID_ACTIVATION):
                self._emit_failure(failure)
            self.logger.info(f"Activation failed for {self.element_id} ({failure.value})")
            return InteractionResult.rejected(failure)

        self._activate()
        return InteractionResult(InteractionOutcome.ACTIVATED)

    def _local_rule(self) -> Optional[FailureReason]:
        """Run the kind-specific rule. Returns None on success."""
        if self.kind in (ElementKind.SWITCH, ElementKind.LEVER, ElementKind.PRESSURE_PLATE):
            return None

        if self.kind is ElementKind.ROTATION_LOCK:
            if self.check_rotation():
                return None
            self.logger.debug(
                f"{self.element_id}: angle {self.current_angle():.1f}° outside "
                f"{self.rotation_target}°±{self.rotation_tolerance}°"
            )
            return FailureReason.INVALID_ACTIVATION

        if self.kind is ElementKind.SEQUENCE_NODE:
            if self._coordinator is None:
                self.logger.error(f"PuzzleElement '{self.element_id}': sequence node has no coordinator")
                return FailureReason.CONFIGURATION_ERROR
            if self._coordinator.validate_step(self):
                return None
            return FailureReason.INVALID_ACTIVATION

        # COMBINATION
        if self.combination_predicate.matches([self.element_id], [self.element_id], {self.element_id: True}):
            return None
        return FailureReason.INVALID_ACTIVATION

    def _activate(self) -> None:
        """Apply a successful activation"""
        self._cooldown_remaining = self.cooldown_window

        # The owning coordinator may have solved the whole puzzle during validation
        if self.state is ElementState.SOLVED:
            return

        if self.is_toggle and self.state is ElementState.ACTIVE:
            self._revert_remaining = None
            self.logger.info(f"Puzzle element deactivated: {self.element_id}")
            self._set_state(ElementState.INACTIVE, PuzzleSignal.DEACTIVATED)
            return

        self.logger.info(f"Puzzle element activated: {self.element_id}")
        if self.state is ElementState.ACTIVE:
            # Momentary re-press while still presented
            self.events.emit(PuzzleEvent(PuzzleSignal.ACTIVATED, self.element_id, state=self.state))
        else:
            self._set_state(ElementState.ACTIVE, PuzzleSignal.ACTIVATED)

        # Completing the puzzle forces this element to SOLVED
        if self.state is not ElementState.ACTIVE:
            return

        if self.kind.is_self_solving:
            # Solved by its own rule; no coordinator involvement
            self.force_solve()
            return

        if not self.is_toggle:
            self._revert_remaining = self.presentation_duration

    def _auto_revert(self) -> None:
        """Momentary reversion - pure state change, no re-validation"""
        if self.is_toggle or self.state is not ElementState.ACTIVE:
            return
        self.logger.debug(f"Momentary element reverted: {self.element_id}")
        self._set_state(ElementState.INACTIVE, PuzzleSignal.DEACTIVATED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cancel_hold(self) -> None:
        self._is_interacting = False
        self._hold_elapsed = 0.0

    def _set_state(self, new_state: ElementState, signal: Optional[PuzzleSignal] = None) -> None:
        """
        Change state, emit STATE_CHANGED plus an optional signal, then notify the coordinator.

        The coordinator is told last so every event about this transition
        precedes any completion it triggers.
        """
        previous = self.state
        if previous is new_state:
            return
        self.state = new_state
        self.events.emit(PuzzleEvent(PuzzleSignal.STATE_CHANGED, self.element_id, state=new_state))
        if signal is not None:
            self.events.emit(PuzzleEvent(signal, self.element_id, state=new_state))
        if self._coordinator is not None:
            self._coordinator.on_member_state_changed(self, previous)

    def _emit_failure(self, reason: FailureReason, detail: str = "") -> None:
        self.events.emit(PuzzleEvent(PuzzleSignal.FAILED, self.element_id,
                                     state=self.state, reason=reason, detail=detail))

    def __repr__(self) -> str:
        return f"PuzzleElement({self.element_id!r}, kind={self.kind.value}, state={self.state.value})"
