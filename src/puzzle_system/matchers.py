"""
Pluggable activation matchers.

A matcher decides whether a run of activations satisfies a rule. The
coordinator uses one for Pattern-mode completion and elements of the
COMBINATION kind use one as their local predicate.
"""

from abc import ABC, abstractmethod
from typing import Callable, Mapping, Optional, Sequence


class ActivationMatcher(ABC):
    """
    Abstract matcher over an activation history.

    Args passed to matches():
        history: Member ids in accepted order (oldest first)
        member_ids: Ids of every member, in coordinator order
        record: Member id -> "has been validly activated at least once"
    """

    name = "matcher"

    @abstractmethod
    def matches(self,
                history: Sequence[str],
                member_ids: Sequence[str],
                record: Mapping[str, bool]) -> bool:
        pass

    def __str__(self) -> str:
        return self.name


class MomentaryAccept(ActivationMatcher):
    """Accepts everything"""

    name = "momentary"

    def matches(self, history, member_ids, record) -> bool:
        return True


class OrderedMatch(ActivationMatcher):
    """
    History must end with an expected id sequence.

    Example:
        matcher = OrderedMatch(["up", "up", "down"])
        matcher.matches(["left", "up", "up", "down"], ...)  # True
    """

    name = "ordered"

    def __init__(self, expected_ids: Sequence[str]):
        self.expected_ids = list(expected_ids)

    def matches(self, history, member_ids, record) -> bool:
        if not self.expected_ids:
            return True
        if len(history) < len(self.expected_ids):
            return False
        return list(history[-len(self.expected_ids):]) == self.expected_ids

    def progress(self, history: Sequence[str]) -> float:
        """Longest expected prefix currently sitting at the end of history, as 0.0-1.0"""
        if not self.expected_ids:
            return 0.0
        for length in range(min(len(history), len(self.expected_ids)), 0, -1):
            if list(history[-length:]) == self.expected_ids[:length]:
                return length / len(self.expected_ids)
        return 0.0


class SetMatch(ActivationMatcher):
    """Every member has been recorded at least once, in any order"""

    name = "set"

    def matches(self, history, member_ids, record) -> bool:
        if not member_ids:
            return False
        return all(record.get(member_id, False) for member_id in member_ids)


class CustomMatch(ActivationMatcher):
    """Wraps a plain callable with the matches() signature"""

    name = "custom"

    def __init__(self, predicate: Callable[[Sequence[str], Sequence[str], Mapping[str, bool]], bool]):
        self._predicate = predicate

    def matches(self, history, member_ids, record) -> bool:
        return bool(self._predicate(history, member_ids, record))


MATCHER_NAMES = ("momentary", "ordered", "set")


def build_matcher(name: str, expected_ids: Optional[Sequence[str]] = None) -> ActivationMatcher:
    """
    Select a matcher by configuration name.

    Args:
        name: One of MATCHER_NAMES
        expected_ids: Required id sequence for "ordered"

    Raises:
        ValueError: Unknown name
    """
    key = name.strip().lower()
    if key == "momentary":
        return MomentaryAccept()
    if key == "ordered":
        return OrderedMatch(expected_ids or [])
    if key == "set":
        return SetMatch()
    raise ValueError(f"Unknown matcher: {name!r} (expected one of {', '.join(MATCHER_NAMES)})")
