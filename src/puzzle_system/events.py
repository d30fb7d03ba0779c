"""
Outbound event channel for puzzle signals
"""

from typing import Callable, List, Union

from .interfaces import IPuzzleObserver
from .types import PuzzleEvent

ObserverLike = Union[IPuzzleObserver, Callable[[PuzzleEvent], None]]


class EventChannel:
    """
    Single outbound channel carrying tagged PuzzleEvents.

    Elements and coordinators emit into a channel; presentation, audio and
    scoring adapters subscribe to it. Observers are called synchronously in
    subscription order.

    Example:
        channel = EventChannel()
        channel.subscribe(lambda event: print(event))
        channel.emit(PuzzleEvent(PuzzleSignal.SOLVED, "vault"))
    """

    def __init__(self):
        self._observers: List[ObserverLike] = []

    def subscribe(self, observer: ObserverLike) -> None:
        """Register an IPuzzleObserver or a plain callable (ignored if already registered)"""
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: ObserverLike) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(self, event: PuzzleEvent) -> None:
        # Copy so observers may unsubscribe while being notified
        for observer in list(self._observers):
            if isinstance(observer, IPuzzleObserver):
                observer.on_puzzle_event(event)
            else:
                observer(event)

    @property
    def observer_count(self) -> int:
        return len(self._observers)
