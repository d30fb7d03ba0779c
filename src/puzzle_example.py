#!/usr/bin/env python3
"""
Puzzle System Integration Example

Builds a small puzzle room from configuration and drives it with a
scripted list of input events through the session loop.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Tuple

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from puzzle_system import PuzzleConfig, PuzzleSession, build_session
from puzzle_utils import HybridLogger
from feedback_system import MockSoundFeedback


def create_default_config() -> PuzzleConfig:
    """Create default room configuration for development/testing"""
    return PuzzleConfig.from_dict({
        "elements": [
            {"id": "rune_1", "kind": "sequence_node", "sequence_order": 1, "cooldown_window": 0.2},
            {"id": "rune_2", "kind": "sequence_node", "sequence_order": 2, "cooldown_window": 0.2},
            {"id": "rune_3", "kind": "sequence_node", "sequence_order": 3, "cooldown_window": 0.2},
            {"id": "plate_left", "kind": "pressure_plate", "is_toggle": False, "presentation_duration": 1.5},
            {"id": "plate_right", "kind": "pressure_plate", "is_toggle": False, "presentation_duration": 1.5},
            {"id": "vault_dial", "kind": "rotation_lock", "rotation_target": 270.0, "rotation_tolerance": 5.0},
            {"id": "heavy_lever", "kind": "lever", "hold_threshold": 1.0},
        ],
        "coordinators": [
            {"id": "rune_door", "mode": "timed", "members": ["rune_1", "rune_2", "rune_3"],
             "timeout_window": 5.0, "completion_points": 300, "rewards_activate": ["rune_door_open"]},
            {"id": "twin_plates", "mode": "simultaneous", "members": ["plate_left", "plate_right"],
             "completion_points": 200, "rewards_activate": ["bridge"], "rewards_deactivate": ["barrier"]},
        ],
        "session": {"frame_duration_ms": 20},
    })


# (time in seconds, action, target id, argument)
DEMO_SCRIPT: List[Tuple[float, str, str, float]] = [
    (0.2, "start", "rune_2", 0.0),     # wrong first step
    (0.6, "start", "rune_1", 0.0),
    (1.0, "start", "rune_2", 0.0),
    (1.4, "start", "rune_3", 0.0),
    (1.8, "start", "plate_left", 0.0),
    (2.0, "start", "plate_right", 0.0),
    (2.4, "rotate", "vault_dial", 268.0),
    (2.5, "start", "vault_dial", 0.0),
    (2.8, "start", "heavy_lever", 0.0),
    (3.2, "end", "heavy_lever", 0.0),  # released too early
    (3.4, "start", "heavy_lever", 0.0),
]


class ScriptedInput:
    """Replays DEMO_SCRIPT against the session as simulated time passes"""

    def __init__(self, script: List[Tuple[float, str, str, float]], frame_seconds: float):
        self.script = sorted(script)
        self.frame_seconds = frame_seconds
        self.elapsed = 0.0
        self._index = 0

    def __call__(self, session: PuzzleSession) -> None:
        while self._index < len(self.script) and self.script[self._index][0] <= self.elapsed:
            _, action, target, argument = self.script[self._index]
            self._index += 1
            if action == "start":
                session.interaction_start(target)
            elif action == "end":
                session.interaction_end(target)
            elif action == "rotate":
                session.set_orientation(target, argument)
        self.elapsed += self.frame_seconds

    @property
    def finished(self) -> bool:
        return self._index >= len(self.script)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a scripted puzzle room demo")
    parser.add_argument("--config", type=Path, help="JSON room configuration (defaults to the built-in room)")
    parser.add_argument("--seconds", type=float, default=6.0, help="How long to run the loop")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    main_logger = HybridLogger("PuzzleRoom", log_to_file=False)
    level = logging.DEBUG if args.debug else logging.INFO
    logger = main_logger.get_class_logger("PuzzleSession", level)

    try:
        if args.config:
            config = PuzzleConfig.from_dict(json.loads(args.config.read_text(encoding="utf-8")))
        else:
            config = create_default_config()

        session = build_session(config, logger=logger)
        session.events.subscribe(MockSoundFeedback(
            main_logger.get_class_logger("MockSoundFeedback", level),
            puzzle_ids=session.coordinators.keys(),
        ))

        frame_seconds = config.session.frame_duration_ms / 1000.0
        script = ScriptedInput(DEMO_SCRIPT if not args.config else [], frame_seconds)
        session.run_loop(
            input_hook=script,
            max_frames=int(args.seconds / frame_seconds),
            stop_when_solved=True,
        )

        session.log_status()
        logger.info(f"Final score: {session.score_board}")
        return 0
    finally:
        main_logger.cleanup()


if __name__ == "__main__":
    sys.exit(main())
