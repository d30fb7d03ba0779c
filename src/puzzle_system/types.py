"""
Puzzle system types - enums and event data shared by every component
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ElementKind(Enum):
    """Kind of interactive node; decides the local activation rule only"""
    SWITCH = "switch"                  # Momentary or toggle button
    LEVER = "lever"
    PRESSURE_PLATE = "pressure_plate"
    ROTATION_LOCK = "rotation_lock"    # Rotate to target angle
    SEQUENCE_NODE = "sequence_node"    # Validated by owning coordinator
    COMBINATION = "combination"        # Pluggable predicate

    @property
    def is_self_solving(self) -> bool:
        """Kinds whose local rule is terminal (solve on successful activation)"""
        return self in (ElementKind.ROTATION_LOCK, ElementKind.COMBINATION)

    @classmethod
    def from_name(cls, name: str) -> "ElementKind":
        """Parse a configuration name such as 'lever' or 'ROTATION_LOCK'"""
        key = name.strip().lower()
        for member in cls:
            if member.value == key or member.name.lower() == key:
                return member
        raise ValueError(f"Unknown element kind: {name!r}")


class ElementState(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    LOCKED = "locked"
    SOLVED = "solved"


class CoordinationMode(Enum):
    """Rule family combining member activations into a solved puzzle"""
    SEQUENTIAL = "sequential"      # Specific order
    SIMULTANEOUS = "simultaneous"  # All Active at the same instant
    ANY = "any"                    # All activated at least once, any order
    PATTERN = "pattern"            # Pluggable matcher over history
    TIMED = "timed"                # Sequential with a step timeout

    @property
    def is_ordered(self) -> bool:
        return self in (CoordinationMode.SEQUENTIAL, CoordinationMode.TIMED)

    @classmethod
    def from_name(cls, name: str) -> "CoordinationMode":
        key = name.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown coordination mode: {name!r}")


class PuzzleSignal(Enum):
    """Tag of an outbound PuzzleEvent"""
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    SOLVED = "solved"
    FAILED = "failed"
    RESET = "reset"
    CORRECT_STEP = "correct_step"
    STATE_CHANGED = "state_changed"


class FailureReason(Enum):
    """Logical error taxonomy. Carried in events and results, never raised."""
    INVALID_ACTIVATION = "invalid_activation"
    COOLDOWN_ACTIVE = "cooldown_active"
    TIMEOUT_EXPIRED = "timeout_expired"
    CONFIGURATION_ERROR = "configuration_error"


class ConfigurationError(ValueError):
    """Malformed puzzle configuration detected by validate()"""


@dataclass(frozen=True)
class PuzzleEvent:
    """
    Single outbound notification from an element or coordinator.

    Usage:
        event = PuzzleEvent(PuzzleSignal.FAILED, "door_lever", reason=FailureReason.INVALID_ACTIVATION)
        if event.signal is PuzzleSignal.FAILED:
            play_buzzer()
    """
    signal: PuzzleSignal
    source_id: str
    state: Optional[ElementState] = None
    reason: Optional[FailureReason] = None
    points: int = 0
    detail: str = ""

    def __str__(self) -> str:
        parts = [f"{self.signal.value}", f"source={self.source_id}"]
        if self.state is not None:
            parts.append(f"state={self.state.value}")
        if self.reason is not None:
            parts.append(f"reason={self.reason.value}")
        if self.points:
            parts.append(f"points={self.points}")
        return f"PuzzleEvent({', '.join(parts)})"


class InteractionOutcome(Enum):
    """What an interaction-start did"""
    ACTIVATED = "activated"        # Local rule ran and succeeded
    HOLD_STARTED = "hold_started"  # Waiting for hold threshold
    REJECTED = "rejected"          # See InteractionResult.reason


@dataclass(frozen=True)
class InteractionResult:
    outcome: InteractionOutcome
    reason: Optional[FailureReason] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is not InteractionOutcome.REJECTED

    @classmethod
    def rejected(cls, reason: FailureReason) -> "InteractionResult":
        return cls(InteractionOutcome.REJECTED, reason)
