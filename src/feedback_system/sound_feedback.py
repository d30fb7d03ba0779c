"""
Sound Feedback - plays sound effects for puzzle events
"""

import enum
import os
import random
from typing import Dict, Iterable, Optional

import pygame

from puzzle_system.interfaces import IPuzzleObserver
from puzzle_system.types import PuzzleEvent, PuzzleSignal


# Constants
SOUNDS_FOLDER = "sounds/"


class PuzzleSounds(enum.Enum):
    """Puzzle sound effects - stores file names, loads sounds when needed"""
    ACTIVATION_SOUND = "activate.wav"
    DEACTIVATION_SOUND = "deactivate.wav"
    ELEMENT_SOLVED_SOUND = "element_solved.wav"
    CORRECT_STEP_SOUND = "correct_step.wav"
    COMPLETION_SOUND = "completion.wav"

    # Individual fail sounds
    FAIL_SOUND_1 = "fail1.wav"
    FAIL_SOUND_2 = "fail2.wav"

    def get_sound_path(self, folder: str = SOUNDS_FOLDER) -> str:
        """Get the full path to the sound file"""
        return os.path.join(folder, self.value)


FAIL_SOUNDS = (PuzzleSounds.FAIL_SOUND_1, PuzzleSounds.FAIL_SOUND_2)


def sound_for_event(event: PuzzleEvent, puzzle_ids: Iterable[str] = ()) -> Optional[PuzzleSounds]:
    """
    Pick the sound effect for an event.

    Args:
        event: Event from the puzzle channel
        puzzle_ids: Ids of coordinators (their SOLVED uses the completion sound)

    Returns:
        Sound to play, or None for silent events
    """
    if event.signal is PuzzleSignal.ACTIVATED:
        return PuzzleSounds.ACTIVATION_SOUND
    if event.signal is PuzzleSignal.DEACTIVATED:
        return PuzzleSounds.DEACTIVATION_SOUND
    if event.signal is PuzzleSignal.CORRECT_STEP:
        return PuzzleSounds.CORRECT_STEP_SOUND
    if event.signal is PuzzleSignal.SOLVED:
        if event.source_id in set(puzzle_ids):
            return PuzzleSounds.COMPLETION_SOUND
        return PuzzleSounds.ELEMENT_SOLVED_SOUND
    if event.signal is PuzzleSignal.FAILED:
        return random.choice(FAIL_SOUNDS)
    return None


class SoundFeedback(IPuzzleObserver):
    """
    Presentation-side observer playing a sound per puzzle event.

    Subscribe it to the session's EventChannel. Never calls back into the
    puzzle core.
    """

    def __init__(self,
                 logger,
                 puzzle_ids: Iterable[str] = (),
                 sounds_folder: str = SOUNDS_FOLDER,
                 volume: float = 1.0):
        """
        Initialize pygame mixer and validate sound files.

        Args:
            logger: ClassLogger instance for logging
            puzzle_ids: Coordinator ids (for completion vs element sounds)
            sounds_folder: Folder holding PuzzleSounds files
            volume: Effect volume (0.0 to 1.0)

        Raises:
            FileNotFoundError: If any required sound files are missing
            pygame.error: If sound files fail to load
        """
        self.logger = logger
        self.puzzle_ids = set(puzzle_ids)
        self.sounds_folder = sounds_folder
        self.volume = volume

        self.mixer = pygame.mixer
        self.mixer.init()

        self._sound_objects: Dict[PuzzleSounds, pygame.mixer.Sound] = {}
        self._load_and_validate_sounds()
        self.logger.info(f"SoundFeedback initialized ({len(self._sound_objects)} sounds)")

    def _load_and_validate_sounds(self) -> None:
        missing_files = [
            sound.get_sound_path(self.sounds_folder)
            for sound in PuzzleSounds
            if not os.path.exists(sound.get_sound_path(self.sounds_folder))
        ]
        if missing_files:
            raise FileNotFoundError(f"Required sound files not found: {missing_files}")

        for sound in PuzzleSounds:
            sound_path = sound.get_sound_path(self.sounds_folder)
            try:
                self._sound_objects[sound] = pygame.mixer.Sound(sound_path)
            except pygame.error as e:
                raise pygame.error(f"Failed to load sound {sound.name} from {sound_path}: {e}")

    def on_puzzle_event(self, event: PuzzleEvent) -> None:
        sound = sound_for_event(event, self.puzzle_ids)
        if sound is not None:
            self.play_sound_with_volume(sound, self.volume)

    def play_sound_with_volume(self, sound: PuzzleSounds, volume: float) -> Optional[pygame.mixer.Channel]:
        """
        Play a puzzle sound with specified volume and return the channel.

        Args:
            sound: PuzzleSounds enum value to play
            volume: Volume level (0.0 to 1.0)
        """
        sound_obj = self._sound_objects[sound]
        sound_obj.set_volume(volume)
        return sound_obj.play()

    def cleanup(self) -> None:
        """Release the audio device"""
        self.mixer.quit()
        self.logger.info("SoundFeedback cleaned up")
