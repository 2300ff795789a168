#!/usr/bin/env python3
"""
Capture export: {browserInfo, logs, exportTime} artifacts.

Persistence never raises. Writers return an error string and loaders return a
``(value, error)`` pair so callers can degrade to "insufficient data".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from divergence.environment import EnvironmentDescriptor, descriptor_from_json
from divergence.event_log import EventEntry, EventLog

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]


class StorageQuotaExceeded(Exception):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _json_default(value: Any) -> Any:
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


@dataclass(frozen=True)
class Capture:
    descriptor: Optional[EnvironmentDescriptor]
    log: Tuple[EventEntry, ...]
    export_time: str

    @property
    def empty(self) -> bool:
        return not self.log

    def to_json(self) -> JSON:
        return capture_to_json(self)


def export_capture(descriptor: EnvironmentDescriptor, log: EventLog, now: Optional[str] = None) -> Capture:
    return Capture(descriptor=descriptor, log=tuple(log.snapshot()), export_time=now or _now())


def entries_to_json(entries: Sequence[EventEntry], user_agent: str = "") -> List[JSON]:
    return [entry.to_json(user_agent) for entry in entries]


def capture_to_json(capture: Capture) -> JSON:
    user_agent = capture.descriptor.user_agent if capture.descriptor else ""
    return {
        "browserInfo": capture.descriptor.to_json() if capture.descriptor else None,
        "logs": entries_to_json(capture.log, user_agent),
        "exportTime": capture.export_time,
    }


def dumps(payload: Any, *, indent: Optional[int] = 2) -> str:
    return json.dumps(payload, indent=indent, default=_json_default)


def capture_from_json(payload: Any) -> Tuple[Optional[Capture], Optional[str]]:
    if not isinstance(payload, dict):
        return None, "capture was not a JSON object"
    logs = payload.get("logs")
    if logs is None:
        logs = []
    if not isinstance(logs, list):
        return None, "capture logs must be a list"
    entries = []
    skipped = 0
    for raw in logs:
        entry = EventEntry.from_json(raw)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)
    if skipped:
        logger.warning("Skipped %d malformed log entries", skipped)
    export_time = payload.get("exportTime") or payload.get("timestamp") or ""
    return Capture(
        descriptor=descriptor_from_json(payload.get("browserInfo")),
        log=tuple(entries),
        export_time=str(export_time),
    ), None


def load_json(path: Path) -> Tuple[Optional[Any], Optional[str]]:
    if not path.exists():
        return None, f"missing file: {path.name}"
    try:
        return json.loads(path.read_text(encoding="utf-8")), None
    except Exception as exc:
        return None, f"failed to parse JSON: {exc}"


def load_capture(path: Path) -> Tuple[Optional[Capture], Optional[str]]:
    payload, err = load_json(path)
    if err:
        return None, err
    return capture_from_json(payload)


def loads_capture(text: Optional[str]) -> Tuple[Optional[Capture], Optional[str]]:
    if text is None:
        return None, "no capture provided"
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        return None, f"failed to parse capture JSON: {exc}"
    return capture_from_json(payload)


def persist(capture: Capture, destination: Path) -> Optional[str]:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(dumps(capture_to_json(capture)), encoding="utf-8")
    except Exception as exc:
        logger.warning("Failed to persist capture to %s: %s", destination, exc)
        return f"failed to persist capture: {exc}"
    return None


def download_filename(descriptor: Optional[EnvironmentDescriptor], now_ms: int) -> str:
    browser = "safari" if descriptor is not None and descriptor.is_safari_like else "chrome"
    return f"divergence-{browser}-{now_ms}.json"


class MemoryStore:
    """Key/value storage with an optional byte quota."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None and len(value.encode("utf-8")) > self.quota_bytes:
            raise StorageQuotaExceeded(f"quota of {self.quota_bytes} bytes exceeded")
        self._items[key] = value

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)


class FileStore:
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")
