#!/usr/bin/env python3
"""
Derived per-environment reports built from a capture.

- timing report: completed stream start durations and their stats
- event report: per-category counts, timer drift, scroll end method
- bug report: elements visible before a scroll-and-return cycle but not after
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from divergence.capture import Capture
from divergence.environment import EnvironmentDescriptor
from divergence.event_log import Category, EventEntry

JSON = Dict[str, Any]

DRIFT_THRESHOLD_MS = 50.0

_DURATION_RE = re.compile(r"(-?\d+\.?\d*)ms")
_MONITOR_RE = re.compile(r"Monitor (\S+)")


@dataclass(frozen=True)
class TimingStat:
    average: float
    min: float
    max: float
    count: int

    def to_json(self) -> JSON:
        return asdict(self)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def entry_duration(entry: EventEntry) -> Optional[float]:
    numeric = _number(entry.data.get("durationMs"))
    if numeric is not None:
        return numeric
    raw = entry.data.get("duration")
    if isinstance(raw, str):
        match = _DURATION_RE.search(raw)
        return float(match.group(1)) if match else None
    return _number(raw)


def loading_times(entries: Iterable[EventEntry]) -> List[float]:
    times = []
    for entry in entries:
        if entry.category != Category.VIDEO or "start completed" not in entry.message:
            continue
        duration = entry_duration(entry)
        if duration is not None:
            times.append(duration)
    return times


def timing_stats(values: Sequence[float]) -> Optional[TimingStat]:
    if not values:
        return None
    return TimingStat(
        average=sum(values) / len(values),
        min=min(values),
        max=max(values),
        count=len(values),
    )


def build_timing_report(browser: str, capture: Capture) -> Optional[JSON]:
    times = loading_times(capture.log)
    stats = timing_stats(times)
    if stats is None:
        return None
    return {"browser": browser, "loadingTimes": times, "stats": stats.to_json()}


def is_drift_event(delay: Any, actual_delay: Any, threshold: float = DRIFT_THRESHOLD_MS) -> bool:
    requested = _number(delay)
    actual = _number(actual_delay)
    if requested is None or actual is None:
        return False
    return actual - requested > threshold


def timer_drift(entry: EventEntry) -> Optional[float]:
    requested = _number(entry.data.get("delay"))
    actual = _number(entry.data.get("actualDelay"))
    if requested is None or actual is None:
        return None
    return actual - requested


def drift_entries(entries: Iterable[EventEntry], threshold: float = DRIFT_THRESHOLD_MS) -> List[EventEntry]:
    return [
        e for e in entries
        if e.category == Category.TIMER and is_drift_event(e.data.get("delay"), e.data.get("actualDelay"), threshold)
    ]


def scroll_end_method(descriptor: Optional[EnvironmentDescriptor]) -> str:
    if descriptor is None:
        return "unknown"
    return "native" if descriptor.supports("scrollEndEvent") else "fallback"


def count_by_category(entries: Iterable[EventEntry]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for entry in entries:
        counts[entry.category.value] = counts.get(entry.category.value, 0) + 1
    return counts


def build_event_report(browser: str, capture: Capture, threshold: float = DRIFT_THRESHOLD_MS) -> JSON:
    counts = count_by_category(capture.log)
    drifts = drift_entries(capture.log, threshold)
    return {
        "browser": browser,
        "browserInfo": capture.descriptor.to_json() if capture.descriptor else None,
        "events": {
            "timer": counts.get(Category.TIMER.value, 0),
            "timerDrift": len(drifts),
            "scroll": counts.get(Category.SCROLL.value, 0),
            "scrollEndMethod": scroll_end_method(capture.descriptor),
            "viewport": counts.get(Category.VIEWPORT.value, 0),
        },
        "timerDriftDetails": [
            dict(e.to_json(), drift=round(timer_drift(e) or 0.0, 2)) for e in drifts
        ],
    }


def visibility_regressions(initial: Sequence[Any], final: Sequence[Any]) -> List[Any]:
    final_set = set(final)
    missing: List[Any] = []
    for element_id in initial:
        if element_id not in final_set and element_id not in missing:
            missing.append(element_id)
    return missing


def build_bug_report(
    browser: str,
    initial_visible: Sequence[Any],
    final_visible: Sequence[Any],
    capture: Optional[Capture] = None,
) -> Optional[JSON]:
    missing = visibility_regressions(initial_visible, final_visible)
    if not missing:
        return None
    report: JSON = {
        "browser": browser,
        "issue": "Monitors disappeared after scrolling",
        "missingMonitors": missing,
        "initialVisible": list(initial_visible),
        "finalVisible": list(final_visible),
    }
    if capture is not None:
        report["debugLogs"] = capture.to_json()
    return report


def monitor_id(message: str) -> Optional[str]:
    match = _MONITOR_RE.search(message)
    return match.group(1) if match else None


def stuck_streams(entries: Iterable[EventEntry]) -> List[str]:
    """Streams that logged 'starting' but never 'start completed'."""
    started: List[str] = []
    completed = set()
    for entry in entries:
        if entry.category != Category.VIDEO:
            continue
        stream = monitor_id(entry.message)
        if stream is None:
            continue
        if "start completed" in entry.message:
            completed.add(stream)
        elif entry.message.endswith("starting") and stream not in started:
            started.append(stream)
    return [s for s in started if s not in completed]


def stopped_monitors(initial_running: Sequence[Any], final_running: Sequence[Any]) -> List[Any]:
    return visibility_regressions(initial_running, final_running)
