"""Timer wrapper: setTimeout/setInterval drift and firing-rate observation."""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from divergence.event_log import Category, EventLog
from divergence.instrument.intercept import InterceptHandle, install

JSON = Dict[str, Any]

INTERVAL_LOG_EVERY = 10


class TimerTracker:
    def __init__(
        self,
        log: EventLog,
        *,
        clock: Callable[[], float],
        verbose: bool = True,
        interval_log_every: int = INTERVAL_LOG_EVERY,
    ) -> None:
        self.log = log
        self.verbose = verbose
        self.interval_log_every = interval_log_every
        self._clock = clock
        self.timers: Dict[Any, JSON] = {}
        self.intervals: Dict[Any, JSON] = {}
        self.handles: List[InterceptHandle] = []

    def wrap_set_timeout(self, original: Callable[..., Any]) -> Callable[..., Any]:
        tracker = self

        @functools.wraps(original)
        def set_timeout(callback: Callable[..., Any], delay: float = 0, *args: Any) -> Any:
            scheduled_at = tracker._clock()
            timer_id = None

            def fire(*cb_args: Any) -> Any:
                if tracker.verbose:
                    tracker.log.append(Category.TIMER, "setTimeout fired", {
                        "delay": delay,
                        "actualDelay": round(tracker._clock() - scheduled_at, 2),
                    })
                tracker.timers.pop(timer_id, None)
                return callback(*cb_args)

            timer_id = original(fire, delay, *args)
            tracker.timers[timer_id] = {"type": "timeout", "delay": delay, "startTime": scheduled_at}
            return timer_id

        return set_timeout

    def wrap_set_interval(self, original: Callable[..., Any]) -> Callable[..., Any]:
        tracker = self

        @functools.wraps(original)
        def set_interval(callback: Callable[..., Any], delay: float = 0, *args: Any) -> Any:
            state = {"count": 0}

            def fire(*cb_args: Any) -> Any:
                state["count"] += 1
                count = state["count"]
                info = tracker.intervals.get(interval_id)
                if info is not None:
                    info["count"] = count
                if tracker.verbose and count % tracker.interval_log_every == 0:
                    tracker.log.append(Category.TIMER, f"setInterval fired ({count} times)", {
                        "delay": delay,
                        "count": count,
                    })
                return callback(*cb_args)

            interval_id = original(fire, delay, *args)
            tracker.intervals[interval_id] = {
                "type": "interval",
                "delay": delay,
                "startTime": tracker._clock(),
                "count": 0,
            }
            return interval_id

        return set_interval

    def wrap_clear(self, original: Callable[..., Any]) -> Callable[..., Any]:
        tracker = self

        @functools.wraps(original)
        def clear(timer_id: Any = None) -> Any:
            tracker.timers.pop(timer_id, None)
            tracker.intervals.pop(timer_id, None)
            return original(timer_id)

        return clear

    def install(self, scope: MutableMapping[str, Any]) -> List[InterceptHandle]:
        factories = {
            "setTimeout": self.wrap_set_timeout,
            "setInterval": self.wrap_set_interval,
            "clearTimeout": self.wrap_clear,
            "clearInterval": self.wrap_clear,
        }
        for name, factory in factories.items():
            handle = install(scope, name, factory)
            if handle is not None and handle not in self.handles:
                self.handles.append(handle)
        self.log.append(Category.TIMER, "Timer tracking initialized")
        return list(self.handles)

    def pending(self) -> int:
        return len(self.timers)

    def uninstall(self) -> None:
        for handle in self.handles:
            handle.uninstall()
        self.handles = []


def timer_summary(tracker: Optional[TimerTracker]) -> JSON:
    if tracker is None:
        return {"pendingTimeouts": 0, "activeIntervals": 0}
    return {"pendingTimeouts": len(tracker.timers), "activeIntervals": len(tracker.intervals)}
