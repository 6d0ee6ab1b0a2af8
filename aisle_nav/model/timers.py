"""Clock-driven cooperative timers for the navigation engine."""

import heapq
import logging
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class _Timer:
    __slots__ = ('name', 'due', 'callback', 'repeat', 'cancelled')

    def __init__(self, name: str, due: float, callback: Callable[[], None],
                 repeat: Optional[float]):
        self.name = name
        self.due = due
        self.callback = callback
        self.repeat = repeat
        self.cancelled = False


class TimerQueue:
    """
    Named one-shot and repeating timers fired from `run_due`.

    Nothing runs on its own thread: the engine calls `run_due` with its
    clock on every tick. Scheduling a name that is already pending replaces
    the old timer.
    """

    def __init__(self):
        self._heap: List[Tuple[float, int, _Timer]] = []
        self._by_name: Dict[str, _Timer] = {}
        self._counter = 0

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def schedule(self, name: str, now: float, delay: float,
                 callback: Callable[[], None], repeat: Optional[float] = None) -> None:
        if repeat is not None and repeat <= 0:
            raise ValueError("Repeat interval must be positive")
        self.cancel(name)
        timer = _Timer(name, now + delay, callback, repeat)
        self._by_name[name] = timer
        self._push(timer)

    def _push(self, timer: _Timer) -> None:
        heapq.heappush(self._heap, (timer.due, self._counter, timer))
        self._counter += 1

    def cancel(self, name: str) -> bool:
        timer = self._by_name.pop(name, None)
        if timer is None:
            return False
        timer.cancelled = True
        return True

    def cancel_all(self) -> None:
        for timer in self._by_name.values():
            timer.cancelled = True
        self._by_name.clear()
        self._heap.clear()

    def run_due(self, now: float) -> int:
        """Fire every timer due at or before `now`, in due order. Returns the count fired."""
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            if timer.repeat is not None:
                timer.due += timer.repeat
                self._push(timer)
            else:
                self._by_name.pop(timer.name, None)
            timer.callback()
            fired += 1
        return fired
