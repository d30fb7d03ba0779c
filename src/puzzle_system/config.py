"""
Puzzle system configuration
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .matchers import MATCHER_NAMES
from .types import ConfigurationError, CoordinationMode, ElementKind


def _construct(config_cls, values: Dict[str, Any]):
    """Build a config dataclass, reporting unknown or missing keys as ConfigurationError"""
    try:
        return config_cls(**values)
    except TypeError as e:
        raise ConfigurationError(f"{config_cls.__name__}: {e}") from e


@dataclass
class ElementConfig:
    """Configuration for a single puzzle element"""
    element_id: str
    kind: ElementKind = ElementKind.SWITCH
    is_toggle: bool = True
    can_reset: bool = True
    hold_threshold: float = 0.0     # seconds, 0 = instant
    cooldown_window: float = 0.5    # seconds
    sequence_order: int = 1
    rotation_target: float = 90.0   # degrees
    rotation_tolerance: float = 5.0 # degrees
    presentation_duration: float = 1.0
    auto_check_rotation: bool = False

    def validate(self) -> None:
        if not self.element_id:
            raise ConfigurationError("Element id must not be empty")
        if self.hold_threshold < 0:
            raise ConfigurationError(f"{self.element_id}: hold_threshold must be >= 0, got {self.hold_threshold}")
        if self.cooldown_window < 0:
            raise ConfigurationError(f"{self.element_id}: cooldown_window must be >= 0, got {self.cooldown_window}")
        if self.presentation_duration < 0:
            raise ConfigurationError(
                f"{self.element_id}: presentation_duration must be >= 0, got {self.presentation_duration}"
            )
        if not (0 <= self.rotation_tolerance <= 180):
            raise ConfigurationError(
                f"{self.element_id}: rotation_tolerance must be 0-180, got {self.rotation_tolerance}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ElementConfig":
        values = dict(data)
        if "id" in values and "element_id" not in values:
            values["element_id"] = values.pop("id")
        kind = values.get("kind", ElementKind.SWITCH)
        if isinstance(kind, str):
            try:
                values["kind"] = ElementKind.from_name(kind)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return _construct(cls, values)


@dataclass
class CoordinatorConfig:
    """Configuration for one coordinated puzzle"""
    puzzle_id: str
    mode: CoordinationMode
    members: List[str]                        # element ids
    timeout_window: float = 10.0              # seconds, 0 = unlimited
    allow_reset: bool = False
    reset_sequence_on_timeout: bool = True
    reset_sequence_on_wrong_step: bool = True
    completion_points: int = 500
    pattern: str = "set"                      # matcher name for Pattern mode
    pattern_sequence: List[str] = field(default_factory=list)
    rewards_activate: List[str] = field(default_factory=list)
    rewards_deactivate: List[str] = field(default_factory=list)

    def validate(self, known_element_ids: Optional[set] = None) -> None:
        if not self.puzzle_id:
            raise ConfigurationError("Puzzle id must not be empty")
        if self.timeout_window < 0:
            raise ConfigurationError(f"{self.puzzle_id}: timeout_window must be >= 0, got {self.timeout_window}")
        if self.pattern not in MATCHER_NAMES:
            raise ConfigurationError(
                f"{self.puzzle_id}: unknown pattern matcher {self.pattern!r} (expected one of {MATCHER_NAMES})"
            )
        if self.pattern == "ordered" and not self.pattern_sequence:
            raise ConfigurationError(f"{self.puzzle_id}: 'ordered' pattern requires pattern_sequence")
        if len(set(self.members)) != len(self.members):
            raise ConfigurationError(f"{self.puzzle_id}: duplicate member ids")
        if known_element_ids is not None:
            unknown = [m for m in self.members if m not in known_element_ids]
            if unknown:
                raise ConfigurationError(f"{self.puzzle_id}: unknown member ids {unknown}")
            unknown_pattern = [m for m in self.pattern_sequence if m not in self.members]
            if unknown_pattern:
                raise ConfigurationError(f"{self.puzzle_id}: pattern references non-members {unknown_pattern}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CoordinatorConfig":
        values = dict(data)
        if "id" in values and "puzzle_id" not in values:
            values["puzzle_id"] = values.pop("id")
        mode = values.get("mode", CoordinationMode.SEQUENTIAL)
        if isinstance(mode, str):
            try:
                values["mode"] = CoordinationMode.from_name(mode)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        else:
            values["mode"] = mode
        values["members"] = list(values.get("members", []))
        return _construct(cls, values)


@dataclass
class SessionConfig:
    """Loop timing and scoring options"""
    frame_duration_ms: float = 20.0   # 50 FPS
    usage_log_interval_ms: int = 60000
    score_multiplier: float = 1.0

    @property
    def target_fps(self) -> float:
        return 1000.0 / self.frame_duration_ms

    def validate(self) -> None:
        if self.frame_duration_ms <= 0:
            raise ConfigurationError("Frame duration must be positive")
        if self.usage_log_interval_ms <= 0:
            raise ConfigurationError("Usage log interval must be positive")
        if self.score_multiplier < 0:
            raise ConfigurationError(f"Score multiplier must be >= 0, got {self.score_multiplier}")


@dataclass
class PuzzleConfig:
    """Complete puzzle room configuration"""
    elements: List[ElementConfig]
    coordinators: List[CoordinatorConfig] = field(default_factory=list)
    session: SessionConfig = field(default_factory=SessionConfig)

    @property
    def element_count(self) -> int:
        return len(self.elements)

    @property
    def puzzle_count(self) -> int:
        return len(self.coordinators)

    @property
    def element_ids(self) -> List[str]:
        return [element.element_id for element in self.elements]

    def validate(self) -> None:
        """Check values and cross references. Raises ConfigurationError."""
        ids = self.element_ids
        if len(set(ids)) != len(ids):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            raise ConfigurationError(f"Duplicate element ids: {duplicates}")

        for element in self.elements:
            element.validate()

        puzzle_ids = [c.puzzle_id for c in self.coordinators]
        if len(set(puzzle_ids)) != len(puzzle_ids):
            raise ConfigurationError("Duplicate puzzle ids")
        if set(puzzle_ids) & set(ids):
            raise ConfigurationError(f"Puzzle ids collide with element ids: {sorted(set(puzzle_ids) & set(ids))}")

        known = set(ids)
        owners: Dict[str, str] = {}
        for coordinator in self.coordinators:
            coordinator.validate(known)
            # An element reports its steps to exactly one coordinator
            for member in coordinator.members:
                if member in owners:
                    raise ConfigurationError(
                        f"Element {member!r} belongs to both {owners[member]!r} and {coordinator.puzzle_id!r}"
                    )
                owners[member] = coordinator.puzzle_id

        self.session.validate()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PuzzleConfig":
        """
        Build from plain mappings (e.g. parsed JSON).

        Example:
            PuzzleConfig.from_dict({
                "elements": [{"id": "a", "kind": "sequence_node", "sequence_order": 1}],
                "coordinators": [{"id": "door", "mode": "sequential", "members": ["a"]}],
            })
        """
        elements = [ElementConfig.from_dict(e) for e in data.get("elements", [])]
        coordinators = [CoordinatorConfig.from_dict(c) for c in data.get("coordinators", [])]
        session_data: Dict[str, Any] = dict(data.get("session", {}))
        return cls(elements=elements, coordinators=coordinators, session=_construct(SessionConfig, session_data))
