"""
Puzzle System - event-driven state machine for multi-step interactive puzzles

Elements (buttons, levers, plates, dials, sequence nodes, combinations)
run their own activation rules; coordinators validate combinations of
member activations under Sequential, Simultaneous, Any, Pattern and Timed
modes and fire reward hooks on completion.
"""

from .types import (
    ElementKind,
    ElementState,
    CoordinationMode,
    PuzzleSignal,
    FailureReason,
    ConfigurationError,
    PuzzleEvent,
    InteractionOutcome,
    InteractionResult,
)
from .interfaces import IPuzzleObserver, IRewardTarget, IScoreKeeper, IOrientationProvider
from .events import EventChannel
from .matchers import ActivationMatcher, MomentaryAccept, OrderedMatch, SetMatch, CustomMatch, build_matcher
from .rewards import RewardTarget, RewardHookSet
from .element import PuzzleElement, angular_distance
from .coordinator import PuzzleCoordinator
from .scoring import ScoreBoard
from .config import ElementConfig, CoordinatorConfig, SessionConfig, PuzzleConfig
from .session import PuzzleSession, build_session

__all__ = [
    # Types
    "ElementKind",
    "ElementState",
    "CoordinationMode",
    "PuzzleSignal",
    "FailureReason",
    "ConfigurationError",
    "PuzzleEvent",
    "InteractionOutcome",
    "InteractionResult",
    # Interfaces
    "IPuzzleObserver",
    "IRewardTarget",
    "IScoreKeeper",
    "IOrientationProvider",
    # Core
    "EventChannel",
    "PuzzleElement",
    "PuzzleCoordinator",
    "angular_distance",
    # Matchers
    "ActivationMatcher",
    "MomentaryAccept",
    "OrderedMatch",
    "SetMatch",
    "CustomMatch",
    "build_matcher",
    # Collaborators
    "RewardTarget",
    "RewardHookSet",
    "ScoreBoard",
    # Configuration
    "ElementConfig",
    "CoordinatorConfig",
    "SessionConfig",
    "PuzzleConfig",
    "PuzzleSession",
    "build_session",
]
