"""
Feedback System Module

Presentation-side observers that turn puzzle events into sound effects.
"""

from .sound_feedback import SoundFeedback, PuzzleSounds, sound_for_event
from .mock_sound_feedback import MockSoundFeedback

__all__ = [
    'SoundFeedback',
    'PuzzleSounds',
    'sound_for_event',
    'MockSoundFeedback'
]
