"""
Mock Sound Feedback - No-op implementation for running without audio hardware
"""

from typing import Iterable, List

from puzzle_system.interfaces import IPuzzleObserver
from puzzle_system.types import PuzzleEvent
from .sound_feedback import PuzzleSounds, sound_for_event


class MockSoundFeedback(IPuzzleObserver):
    """
    Mock implementation of SoundFeedback that performs no audio operations.

    Records which sounds would have played so headless runs and tests can
    inspect them.
    """

    def __init__(self, logger, puzzle_ids: Iterable[str] = ()):
        self.logger = logger
        self.puzzle_ids = set(puzzle_ids)
        self.played: List[PuzzleSounds] = []
        self.logger.info("MockSoundFeedback initialized (audio disabled)")

    def on_puzzle_event(self, event: PuzzleEvent) -> None:
        sound = sound_for_event(event, self.puzzle_ids)
        if sound is not None:
            self.played.append(sound)
            self.logger.debug(f"Mock: {sound.name} for {event}")

    def cleanup(self) -> None:
        """Mock: nothing to release"""
        pass
