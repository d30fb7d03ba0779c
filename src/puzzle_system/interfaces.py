"""
Abstract interfaces for the collaborators around the puzzle core
"""

from abc import ABC, abstractmethod

from .types import PuzzleEvent


class IPuzzleObserver(ABC):
    """
    Consumer of puzzle events (presentation, audio, scoring adapters).

    Observers receive notifications only. They must never call back into
    coordinator validation from on_puzzle_event().
    """

    @abstractmethod
    def on_puzzle_event(self, event: PuzzleEvent) -> None:
        """
        Handle one outbound event.

        Args:
            event: Tagged event with its payload
        """
        pass


class IRewardTarget(ABC):
    """Something a solved puzzle switches on or off (door, platform, light)"""

    @abstractmethod
    def set_active(self, active: bool) -> None:
        pass


class IScoreKeeper(ABC):
    """
    Scoring/progress collaborator.

    The core reports steps and solves; it never stores cumulative score.
    """

    @abstractmethod
    def on_correct_step(self, puzzle_id: str) -> None:
        """Called once per accepted validation step"""
        pass

    @abstractmethod
    def on_puzzle_solved(self, puzzle_id: str, points: int) -> None:
        """Called once per solve episode"""
        pass


class IOrientationProvider(ABC):
    """Ambient orientation source for rotation locks (owned by the presentation layer)"""

    @abstractmethod
    def get_angle(self, element_id: str) -> float:
        """
        Current angle of an element.

        Returns:
            Angle in degrees (any range, compared circularly)
        """
        pass
