"""
Score board - scoring/progress collaborator fed by coordinators
"""

from collections import Counter
from typing import List, Optional, TYPE_CHECKING

from .interfaces import IScoreKeeper
from puzzle_utils import get_default_class_logger

if TYPE_CHECKING:
    from puzzle_utils import ClassLogger


class ScoreBoard(IScoreKeeper):
    """
    Keeps cumulative score and solve counts for a session.

    Coordinators call on_correct_step() per accepted step and
    on_puzzle_solved() once per solve episode.
    """

    def __init__(self,
                 total_puzzles: int = 0,
                 score_multiplier: float = 1.0,
                 logger: Optional['ClassLogger'] = None):
        self.total_puzzles = total_puzzles
        self.score_multiplier = score_multiplier
        self.logger = logger or get_default_class_logger("ScoreBoard")

        self.score = 0
        self.puzzles_solved = 0
        self.solved_ids: List[str] = []
        self.step_counts: Counter = Counter()

    def on_correct_step(self, puzzle_id: str) -> None:
        self.step_counts[puzzle_id] += 1

    def on_puzzle_solved(self, puzzle_id: str, points: int) -> None:
        awarded = int(points * self.score_multiplier)
        self.score += awarded
        self.puzzles_solved += 1
        self.solved_ids.append(puzzle_id)
        self.logger.info(
            f"Puzzle solved: {puzzle_id} (+{awarded} points) - "
            f"{self.puzzles_solved}/{self.total_puzzles} puzzles, score {self.score}"
        )
        if self.all_solved:
            self.logger.info("All puzzles solved!")

    @property
    def all_solved(self) -> bool:
        return self.total_puzzles > 0 and self.puzzles_solved >= self.total_puzzles

    def completion_percentage(self) -> float:
        if self.total_puzzles <= 0:
            return 0.0
        return min(100.0, self.puzzles_solved / self.total_puzzles * 100.0)

    def __str__(self) -> str:
        return f"ScoreBoard(score={self.score}, solved={self.puzzles_solved}/{self.total_puzzles})"
