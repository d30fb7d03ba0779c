"""
Puzzle session - routes input events by id and drives the tick loop
"""

import time
from typing import Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

import psutil

from .config import PuzzleConfig
from .coordinator import PuzzleCoordinator
from .element import PuzzleElement
from .events import EventChannel
from .matchers import build_matcher
from .rewards import RewardHookSet, RewardTarget
from .scoring import ScoreBoard
from .types import ElementKind, InteractionResult
from puzzle_utils import OnceInMs, get_default_class_logger

if TYPE_CHECKING:
    from puzzle_utils import ClassLogger
    from .interfaces import IOrientationProvider, IRewardTarget


class PuzzleSession:
    """
    Owns every element and coordinator of a puzzle room.

    Responsibilities:
    - Resolve elements/coordinators by id once, at construction
    - Route input-layer events (start, end, lock, unlock, reset) to elements
    - Tick elements then coordinators with a consistent frame duration
    """

    def __init__(self,
                 elements: Iterable[PuzzleElement],
                 coordinators: Iterable[PuzzleCoordinator],
                 events: EventChannel,
                 score_board: Optional[ScoreBoard] = None,
                 logger: Optional['ClassLogger'] = None,
                 frame_duration_ms: float = 20.0,
                 usage_log_interval_ms: int = 60000,
                 reward_targets: Optional[Dict[str, 'IRewardTarget']] = None):
        """
        Initialize the session.

        Args:
            elements: All elements in the room
            coordinators: All coordinated puzzles
            events: Shared outbound event channel
            score_board: Scoring collaborator (also wired into coordinators by build_session)
            logger: ClassLogger for the session
            frame_duration_ms: Target frame duration for run_loop()
            usage_log_interval_ms: How often run_loop() logs process memory/CPU
            reward_targets: Reward targets by name (for inspection)
        """
        self.logger = logger or get_default_class_logger("PuzzleSession")
        self.events = events
        self.score_board = score_board
        self.reward_targets: Dict[str, 'IRewardTarget'] = dict(reward_targets or {})
        self.target_frame_duration = frame_duration_ms / 1000.0
        self.running = False
        self.frame_count = 0

        self.elements: Dict[str, PuzzleElement] = {}
        for element in elements:
            if element.element_id in self.elements:
                self.logger.warning(f"Duplicate element id ignored: {element.element_id}")
                continue
            self.elements[element.element_id] = element

        self.coordinators: Dict[str, PuzzleCoordinator] = {}
        for coordinator in coordinators:
            self.coordinators[coordinator.puzzle_id] = coordinator

        for element in self.elements.values():
            if element.kind is ElementKind.SEQUENCE_NODE and element.coordinator is None:
                self.logger.error(
                    f"Sequence node '{element.element_id}' has no coordinator - it will reject every activation"
                )

        # Resource monitoring
        self._usage_monitor = OnceInMs(usage_log_interval_ms)
        self._process = psutil.Process()

        self.logger.info(
            f"PuzzleSession initialized: {len(self.elements)} elements, "
            f"{len(self.coordinators)} puzzles, {frame_duration_ms}ms frame duration"
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_element(self, element_id: str) -> Optional[PuzzleElement]:
        element = self.elements.get(element_id)
        if element is None:
            self.logger.warning(f"Unknown element id: {element_id}")
        return element

    def get_coordinator(self, puzzle_id: str) -> Optional[PuzzleCoordinator]:
        coordinator = self.coordinators.get(puzzle_id)
        if coordinator is None:
            self.logger.warning(f"Unknown puzzle id: {puzzle_id}")
        return coordinator

    # ------------------------------------------------------------------
    # Input events
    # ------------------------------------------------------------------

    def interaction_start(self, element_id: str) -> Optional[InteractionResult]:
        element = self.get_element(element_id)
        if element is None:
            return None
        return element.interaction_start()

    def interaction_end(self, element_id: str) -> bool:
        element = self.get_element(element_id)
        return element.interaction_end() if element is not None else False

    def lock(self, element_id: str) -> bool:
        element = self.get_element(element_id)
        return element.lock() if element is not None else False

    def unlock(self, element_id: str) -> bool:
        element = self.get_element(element_id)
        return element.unlock() if element is not None else False

    def reset_element(self, element_id: str) -> bool:
        element = self.get_element(element_id)
        return element.reset() if element is not None else False

    def reset_puzzle(self, puzzle_id: str) -> bool:
        coordinator = self.get_coordinator(puzzle_id)
        return coordinator.reset() if coordinator is not None else False

    def set_orientation(self, element_id: str, angle: float) -> bool:
        element = self.get_element(element_id)
        if element is None:
            return False
        element.set_orientation(angle)
        return True

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def total_puzzles(self) -> int:
        return len(self.coordinators)

    def solved_count(self) -> int:
        return sum(1 for c in self.coordinators.values() if c.is_solved())

    def all_solved(self) -> bool:
        return bool(self.coordinators) and self.solved_count() == self.total_puzzles()

    def log_status(self) -> None:
        """Log describe() output of every coordinator"""
        for coordinator in self.coordinators.values():
            self.logger.info("\n" + coordinator.describe())

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def update(self,
               dt: float,
               input_hook: Optional[Callable[['PuzzleSession'], None]] = None) -> None:
        """
        Advance one frame.

        Coordinator clocks move first so steps accepted during the frame
        (input events or completed holds) are stamped with this frame's time.
        Then input events, element timers, and finally coordinator checks.

        Args:
            dt: Seconds since last frame
            input_hook: Called after the clocks advance to deliver input events
        """
        for coordinator in self.coordinators.values():
            coordinator.advance_clock(dt)
        if input_hook is not None:
            input_hook(self)
        for element in self.elements.values():
            element.update(dt)
        for coordinator in self.coordinators.values():
            coordinator.evaluate()
        self.frame_count += 1

    def run_loop(self,
                 input_hook: Optional[Callable[['PuzzleSession'], None]] = None,
                 max_frames: Optional[int] = None,
                 stop_when_solved: bool = False) -> None:
        """
        Run the puzzle loop with automatic frame duration limiting.

        Args:
            input_hook: Called at the start of every frame to deliver input events
            max_frames: Stop after this many frames (None = until stop())
            stop_when_solved: Stop once every puzzle is solved
        """
        self.logger.info(f"Starting puzzle loop with {int(self.target_frame_duration * 1000)}ms frame duration")
        self.running = True
        frames = 0
        last_frame = time.time()

        try:
            while self.running:
                frame_start = time.time()

                if self._usage_monitor.should_execute():
                    self._log_usage()

                self.update(frame_start - last_frame, input_hook)
                last_frame = frame_start
                frames += 1

                if max_frames is not None and frames >= max_frames:
                    break
                if stop_when_solved and self.all_solved():
                    self.logger.info("All puzzles solved - stopping loop")
                    break

                # Frame duration limiting
                frame_duration = time.time() - frame_start
                sleep_time = self.target_frame_duration - frame_duration
                if sleep_time > 0:
                    time.sleep(sleep_time)

        except KeyboardInterrupt:
            self.logger.info("Puzzle loop stopped by user (Ctrl+C)")
        except Exception as e:
            self.logger.error(f"Puzzle loop error: {e}", exception=e)
            self.logger.flush()
            raise
        finally:
            self.stop()

    def stop(self) -> None:
        self.running = False
        self.logger.info(f"Puzzle loop stopped after {self.frame_count} frames")

    def _log_usage(self) -> None:
        """Log current memory and CPU usage (process and system)"""
        try:
            process_mb = self._process.memory_info().rss / 1024 / 1024
            process_cpu_percent = self._process.cpu_percent(interval=None)
            sys_mem = psutil.virtual_memory()
            self.logger.info(
                f"Memory - Process: {process_mb:.1f}MB | "
                f"System: {sys_mem.used / 1024 / 1024:.0f}/{sys_mem.total / 1024 / 1024:.0f}MB "
                f"({sys_mem.percent:.1f}%) | CPU - Process: {process_cpu_percent:.1f}%"
            )
        except psutil.Error as e:
            self.logger.warning(f"Failed to log system usage: {e}")


def build_session(config: PuzzleConfig,
                  logger: Optional['ClassLogger'] = None,
                  orientation_provider: Optional['IOrientationProvider'] = None,
                  reward_targets: Optional[Dict[str, 'IRewardTarget']] = None,
                  events: Optional[EventChannel] = None) -> PuzzleSession:
    """
    Validate a PuzzleConfig and build the object graph.

    Args:
        config: Room configuration
        logger: Session logger; element/coordinator loggers derive from it
        orientation_provider: Angle source shared by rotation locks
        reward_targets: Existing targets by name; missing names get a RewardTarget
        events: Shared channel (created if omitted)

    Raises:
        ConfigurationError: Invalid configuration values or references
    """
    config.validate()

    logger = logger or get_default_class_logger("PuzzleSession")
    events = events if events is not None else EventChannel()
    targets: Dict[str, 'IRewardTarget'] = dict(reward_targets or {})

    element_logger = logger.create_class_logger("PuzzleElement")
    coordinator_logger = logger.create_class_logger("PuzzleCoordinator")

    elements: Dict[str, PuzzleElement] = {}
    for element_config in config.elements:
        elements[element_config.element_id] = PuzzleElement(
            element_id=element_config.element_id,
            kind=element_config.kind,
            is_toggle=element_config.is_toggle,
            can_reset=element_config.can_reset,
            hold_threshold=element_config.hold_threshold,
            cooldown_window=element_config.cooldown_window,
            sequence_order=element_config.sequence_order,
            rotation_target=element_config.rotation_target,
            rotation_tolerance=element_config.rotation_tolerance,
            presentation_duration=element_config.presentation_duration,
            auto_check_rotation=element_config.auto_check_rotation,
            orientation_provider=orientation_provider,
            events=events,
            logger=element_logger,
        )

    score_board = ScoreBoard(
        total_puzzles=config.puzzle_count,
        score_multiplier=config.session.score_multiplier,
        logger=logger.create_class_logger("ScoreBoard"),
    )

    def _targets(names: List[str]) -> List['IRewardTarget']:
        for name in names:
            if name not in targets:
                targets[name] = RewardTarget(name)
        return [targets[name] for name in names]

    coordinators: List[PuzzleCoordinator] = []
    for coordinator_config in config.coordinators:
        coordinators.append(PuzzleCoordinator(
            puzzle_id=coordinator_config.puzzle_id,
            mode=coordinator_config.mode,
            members=[elements[element_id] for element_id in coordinator_config.members],
            timeout_window=coordinator_config.timeout_window,
            allow_reset=coordinator_config.allow_reset,
            reset_sequence_on_timeout=coordinator_config.reset_sequence_on_timeout,
            reset_sequence_on_wrong_step=coordinator_config.reset_sequence_on_wrong_step,
            completion_points=coordinator_config.completion_points,
            pattern_matcher=build_matcher(coordinator_config.pattern, coordinator_config.pattern_sequence),
            reward_hooks=RewardHookSet(
                to_activate=_targets(coordinator_config.rewards_activate),
                to_deactivate=_targets(coordinator_config.rewards_deactivate),
            ),
            score_keeper=score_board,
            events=events,
            logger=coordinator_logger,
        ))

    return PuzzleSession(
        elements=elements.values(),
        coordinators=coordinators,
        events=events,
        score_board=score_board,
        logger=logger,
        frame_duration_ms=config.session.frame_duration_ms,
        usage_log_interval_ms=config.session.usage_log_interval_ms,
        reward_targets=targets,
    )
