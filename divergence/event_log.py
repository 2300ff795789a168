"""
Bounded, timestamped event log shared by every instrumentation wrapper.

Entries are appended on the host page's single thread, so ordering is insertion
order and sequence times are monotonic. The log is a FIFO ring buffer: when it
is full the oldest entry is evicted, so the most recent behavior is always
retained.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]

MAX_LOG_ENTRIES = 1000


class Category(str, Enum):
    SCROLL = "SCROLL"
    VIDEO = "VIDEO"
    TIMER = "TIMER"
    EVENT = "EVENT"
    VIEWPORT = "VIEWPORT"
    BROWSER = "BROWSER"
    PERFORMANCE = "PERFORMANCE"
    ERROR = "ERROR"
    WARNING = "WARNING"


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


def as_data(data: Any) -> JSON:
    """Entry payload as a fresh dict; non-mapping payloads land under ``value``."""
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    return {"value": data}


@dataclass(frozen=True)
class EventEntry:
    sequence_time: float
    category: Category
    message: str
    data: JSON = field(default_factory=dict)
    environment_label: str = "Other"

    def to_json(self, user_agent: str = "") -> JSON:
        return {
            "timestamp": round(self.sequence_time, 2),
            "category": self.category.value,
            "message": self.message,
            "data": dict(self.data),
            "browser": self.environment_label,
            "userAgent": user_agent,
        }

    @classmethod
    def from_json(cls, raw: JSON) -> Optional["EventEntry"]:
        if not isinstance(raw, dict):
            return None
        try:
            category = Category(str(raw.get("category", "")).upper())
        except ValueError:
            return None
        try:
            sequence_time = float(raw.get("timestamp", 0) or 0)
        except (TypeError, ValueError):
            sequence_time = 0.0
        data = raw.get("data")
        return cls(
            sequence_time=sequence_time,
            category=category,
            message=str(raw.get("message", "")),
            data=data if isinstance(data, dict) else {},
            environment_label=str(raw.get("browser") or "Other"),
        )


# Receives a snapshot after every append; may raise (e.g. storage quota).
ExportSink = Callable[[List[EventEntry]], None]


class EventLog:
    def __init__(
        self,
        max_entries: int = MAX_LOG_ENTRIES,
        *,
        clock: Callable[[], float] = monotonic_ms,
        environment_label: str = "Other",
        sink: Optional[ExportSink] = None,
        enabled: bool = True,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.environment_label = environment_label
        self.enabled = enabled
        self._clock = clock
        self._start = clock()
        self._entries: Deque[EventEntry] = deque(maxlen=max_entries)
        self._sink = sink
        self._evicted = 0

    @property
    def start_time(self) -> float:
        return self._start

    @property
    def evicted(self) -> int:
        return self._evicted

    def set_sink(self, sink: Optional[ExportSink]) -> None:
        self._sink = sink

    def elapsed(self) -> float:
        return self._clock() - self._start

    def append(self, category: Category, message: str, data: Any = None) -> Optional[EventEntry]:
        if not self.enabled:
            return None
        data = as_data(data)
        try:
            category = Category(category)
        except ValueError:
            data["category"] = str(category)
            category = Category.EVENT
        entry = self._record(category, message, data)
        if self._sink is not None:
            try:
                self._sink(self.snapshot())
            except Exception as exc:
                self._record(Category.WARNING, "Failed to export logs to storage", {"error": str(exc)})
        return replace(entry, data=dict(entry.data))

    def _record(self, category: Category, message: str, data: Optional[JSON]) -> EventEntry:
        entry = EventEntry(
            sequence_time=self.elapsed(),
            category=category,
            message=message,
            data=as_data(data),
            environment_label=self.environment_label,
        )
        if len(self._entries) == self.max_entries:
            self._evicted += 1
        self._entries.append(entry)
        logger.debug("[%.2fms] [%s] %s %s", entry.sequence_time, category.value, message, entry.data)
        return entry

    def snapshot(self) -> List[EventEntry]:
        # Entries are frozen but their payload dicts are not; hand out copies.
        return [replace(e, data=dict(e.data)) for e in self._entries]

    def entries_for(self, category: Category) -> List[EventEntry]:
        return [e for e in self.snapshot() if e.category == category]

    def clear(self) -> None:
        self._entries.clear()
        self._evicted = 0

    def __len__(self) -> int:
        return len(self._entries)
