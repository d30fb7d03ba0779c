import logging
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from puzzle_system import (
    CoordinationMode,
    ElementKind,
    EventChannel,
    PuzzleCoordinator,
    PuzzleElement,
)
from puzzle_utils import HybridLogger


class RecordingObserver:
    """Collects every event emitted on a channel"""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def signals(self, source_id=None):
        return [e.signal for e in self.events if source_id is None or e.source_id == source_id]

    def of(self, signal, source_id=None):
        return [e for e in self.events
                if e.signal is signal and (source_id is None or e.source_id == source_id)]

    def clear(self):
        self.events.clear()


@pytest.fixture
def quiet_logger():
    main_logger = HybridLogger("puzzle-tests", log_to_file=False)
    yield main_logger.get_class_logger("Test", logging.CRITICAL + 10)
    main_logger.cleanup()


@pytest.fixture
def channel():
    return EventChannel()


@pytest.fixture
def recorder(channel):
    observer = RecordingObserver()
    channel.subscribe(observer)
    return observer


@pytest.fixture
def make_element(channel, quiet_logger):
    def _make(element_id, kind=ElementKind.SWITCH, **kwargs):
        kwargs.setdefault("cooldown_window", 0.0)
        return PuzzleElement(element_id, kind, events=channel, logger=quiet_logger, **kwargs)
    return _make


@pytest.fixture
def make_coordinator(channel, quiet_logger):
    def _make(puzzle_id, mode, members, **kwargs):
        return PuzzleCoordinator(puzzle_id, mode, members, events=channel, logger=quiet_logger, **kwargs)
    return _make


@pytest.fixture
def sequence_room(make_element, make_coordinator):
    """Three sequence nodes A(1), B(2), C(3) under a Sequential coordinator"""
    a = make_element("A", ElementKind.SEQUENCE_NODE, sequence_order=1)
    b = make_element("B", ElementKind.SEQUENCE_NODE, sequence_order=2)
    c = make_element("C", ElementKind.SEQUENCE_NODE, sequence_order=3)
    coordinator = make_coordinator("vault", CoordinationMode.SEQUENTIAL, [c, a, b])
    return coordinator, a, b, c
