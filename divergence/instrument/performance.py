"""PERFORMANCE marks and measures."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from divergence.event_log import Category, EventLog


class PerformanceMonitor:
    def __init__(self, log: EventLog, *, clock: Callable[[], float]) -> None:
        self.log = log
        self._clock = clock
        self.marks: Dict[str, float] = {}

    def mark(self, name: str) -> float:
        at = self._clock()
        self.marks[name] = at
        self.log.append(Category.PERFORMANCE, f"Mark: {name}", {"time": f"{at:.2f}"})
        return at

    def measure(self, name: str, start_mark: str) -> Optional[float]:
        end = self._clock()
        start = self.marks.get(start_mark)
        if start is None:
            return None
        duration = end - start
        self.log.append(Category.PERFORMANCE, f"Measure: {name}", {
            "duration": f"{duration:.2f}ms",
            "start": f"{start:.2f}",
            "end": f"{end:.2f}",
        })
        return duration
