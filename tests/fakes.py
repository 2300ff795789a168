"""Deterministic stand-ins for the host page's clock, timers and streams."""

import itertools
from typing import Any, Callable, Dict, Optional, Tuple

from divergence.page import Element, Rect


class ManualClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ManualTimers:
    """setTimeout/setInterval driven by ``advance``; ``lag_ms`` delays every firing."""

    def __init__(self, clock: ManualClock, lag_ms: float = 0.0) -> None:
        self.clock = clock
        self.lag_ms = lag_ms
        self._ids = itertools.count(1)
        self._due: Dict[int, Tuple[float, Callable[..., Any], tuple, Optional[float]]] = {}

    def set_timeout(self, callback: Callable[..., Any], delay: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)
        self._due[timer_id] = (self.clock() + float(delay or 0) + self.lag_ms, callback, args, None)
        return timer_id

    def set_interval(self, callback: Callable[..., Any], delay: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)
        period = float(delay or 0)
        self._due[timer_id] = (self.clock() + period + self.lag_ms, callback, args, period)
        return timer_id

    def clear(self, timer_id: Any = None) -> None:
        self._due.pop(timer_id, None)

    def pending(self) -> int:
        return len(self._due)

    def advance(self, ms: float) -> None:
        target = self.clock() + ms
        while True:
            ready = [(due, tid) for tid, (due, *_rest) in self._due.items() if due <= target]
            if not ready:
                break
            due, timer_id = min(ready)
            _due, callback, args, period = self._due.pop(timer_id)
            self.clock.now = due
            if period is not None:
                self._due[timer_id] = (due + max(period, 1.0) + self.lag_ms, callback, args, period)
            callback(*args)
        self.clock.now = target

    def install(self, scope: Dict[str, Any]) -> None:
        scope["setTimeout"] = self.set_timeout
        scope["setInterval"] = self.set_interval
        scope["clearTimeout"] = self.clear
        scope["clearInterval"] = self.clear


class FakeMonitor:
    def __init__(self, monitor_id: int, top: float, height: float = 200, element: Optional[Element] = None) -> None:
        self.id = monitor_id
        self.element = element or Element("img", f"liveStream{monitor_id}", box=Rect(top, 0, top + height, 300))

    def get_element(self) -> Optional[Element]:
        return self.element


def make_stream_class(clock: Optional[ManualClock] = None, start_cost_ms: float = 0.0) -> type:
    """A fresh MonitorStream-like class per test so class patches never leak."""

    class FakeStream:
        def __init__(self, stream_id: int) -> None:
            self.id = stream_id
            self.player = "mjpeg"
            self.started = False
            self.activePlayer = None

        def start(self, delay: int = 0) -> str:
            if clock is not None:
                clock.advance(start_cost_ms)
            self.started = True
            self.activePlayer = self.player
            return f"started-{self.id}-{delay}"

        def stop(self) -> bool:
            self.started = False
            return True

    return FakeStream
