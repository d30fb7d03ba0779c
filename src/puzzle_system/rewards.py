"""
Reward hook set - targets switched when a puzzle is solved or reset
"""

from typing import Iterable, List, Optional

from .interfaces import IRewardTarget


class RewardTarget(IRewardTarget):
    """
    Named on/off target (door, platform, light) that remembers its flag.

    Presentation code can subclass this or pass any IRewardTarget instead.
    """

    def __init__(self, name: str, active: bool = False):
        self.name = name
        self.active = active
        self.switch_count = 0

    def set_active(self, active: bool) -> None:
        if active != self.active:
            self.switch_count += 1
        self.active = active

    def __repr__(self) -> str:
        return f"RewardTarget({self.name!r}, active={self.active})"


class RewardHookSet:
    """
    Activate/deactivate lists triggered by a coordinator.

    Default (pre-solve) configuration: every `to_activate` target off and
    every `to_deactivate` target on. It is applied at construction and
    restored by deactivate_all().
    """

    def __init__(self,
                 to_activate: Optional[Iterable[IRewardTarget]] = None,
                 to_deactivate: Optional[Iterable[IRewardTarget]] = None):
        self.to_activate: List[IRewardTarget] = [t for t in (to_activate or []) if t is not None]
        self.to_deactivate: List[IRewardTarget] = [t for t in (to_deactivate or []) if t is not None]
        self.activation_count = 0
        self.restore_count = 0
        self._apply(solved=False)

    def activate_all(self) -> None:
        """Switch to the solved configuration"""
        self.activation_count += 1
        self._apply(solved=True)

    def deactivate_all(self) -> None:
        """Restore the default (pre-solve) configuration"""
        self.restore_count += 1
        self._apply(solved=False)

    def _apply(self, solved: bool) -> None:
        for target in self.to_activate:
            target.set_active(solved)
        for target in self.to_deactivate:
            target.set_active(not solved)

    def __len__(self) -> int:
        return len(self.to_activate) + len(self.to_deactivate)
