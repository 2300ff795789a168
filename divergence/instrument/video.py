"""Stream lifecycle wrapper and media element listeners."""

from __future__ import annotations

import weakref
from typing import Any, Callable, Dict, Iterable, List, Optional

from divergence.event_log import Category, EventLog
from divergence.instrument.intercept import InterceptHandle, install, intercept
from divergence.page import Document, Element, Event

JSON = Dict[str, Any]

MEDIA_TAGS = {"VIDEO", "VIDEO-STREAM", "IMG"}

MEDIA_EVENTS = [
    "loadstart",
    "loadeddata",
    "loadedmetadata",
    "canplay",
    "canplaythrough",
    "play",
    "pause",
    "error",
    "stalled",
    "waiting",
    "playing",
]

STREAM_STATE_FIELDS = ("player", "started", "Go2RTCEnabled", "RTSP2WebEnabled", "janusEnabled")


def format_duration(duration_ms: float) -> str:
    return f"{duration_ms:.2f}ms"


class VideoTracker:
    def __init__(self, log: EventLog, *, clock: Callable[[], float]) -> None:
        self.log = log
        self._clock = clock
        self.handles: List[InterceptHandle] = []
        self._tracked: "weakref.WeakSet[Element]" = weakref.WeakSet()
        self._disconnect: Optional[Callable[[], None]] = None

    def wrap_start(self, original: Callable[..., Any]) -> Callable[..., Any]:
        log = self.log
        clock = self._clock

        def before(args: tuple, kwargs: dict) -> float:
            stream = args[0]
            log.append(Category.VIDEO, f"Monitor {getattr(stream, 'id', '?')} starting", {
                field: getattr(stream, field, None) for field in STREAM_STATE_FIELDS
            })
            return clock()

        def after(started_at: float, args: tuple, result: Any) -> None:
            stream = args[0]
            duration = clock() - started_at
            log.append(Category.VIDEO, f"Monitor {getattr(stream, 'id', '?')} start completed", {
                "duration": format_duration(duration),
                "durationMs": round(duration, 2),
                "activePlayer": getattr(stream, "activePlayer", None),
            })

        def on_error(started_at: float, args: tuple, exc: BaseException) -> None:
            stream = args[0]
            log.append(Category.ERROR, f"Monitor {getattr(stream, 'id', '?')} start failed", {
                "error": repr(exc),
                "duration": format_duration(clock() - started_at),
            })

        return intercept(original, before=before, after=after, on_error=on_error)

    def wrap_stop(self, original: Callable[..., Any]) -> Callable[..., Any]:
        log = self.log

        def before(args: tuple, kwargs: dict) -> None:
            stream = args[0]
            log.append(Category.VIDEO, f"Monitor {getattr(stream, 'id', '?')} stopping", {
                "activePlayer": getattr(stream, "activePlayer", None),
            })

        def after(token: Any, args: tuple, result: Any) -> None:
            log.append(Category.VIDEO, f"Monitor {getattr(args[0], 'id', '?')} stopped")

        def on_error(token: Any, args: tuple, exc: BaseException) -> None:
            log.append(Category.ERROR, f"Monitor {getattr(args[0], 'id', '?')} stop failed", {"error": repr(exc)})

        return intercept(original, before=before, after=after, on_error=on_error)

    def wrap_stream_class(self, stream_cls: Any) -> List[InterceptHandle]:
        for name, factory in (("start", self.wrap_start), ("stop", self.wrap_stop)):
            handle = install(stream_cls, name, factory)
            if handle is not None and handle not in self.handles:
                self.handles.append(handle)
        self.log.append(Category.VIDEO, "MonitorStream methods wrapped successfully")
        return list(self.handles)

    def observe(self, document: Document) -> None:
        if self._disconnect is not None:
            return
        self._disconnect = document.observe_mutations(self.on_inserted)

    def on_inserted(self, nodes: Iterable[Any]) -> None:
        for node in nodes:
            if isinstance(node, Element) and node.tag_name in MEDIA_TAGS:
                self.track_element(node)

    def track_element(self, element: Element) -> bool:
        if element in self._tracked:
            return False
        self._tracked.add(element)
        self.log.append(Category.VIDEO, f"New {element.tag_name} element added", {
            "id": element.id,
            "src": element.src,
            "tagName": element.tag_name,
        })
        for name in MEDIA_EVENTS:
            element.add_event_listener(name, self._listener_for(name, element))
        return True

    def _listener_for(self, name: str, element: Element) -> Callable[[Event], None]:
        log = self.log

        def listener(event: Event) -> None:
            log.append(Category.VIDEO, f"Video event: {name}", {
                "id": element.id,
                "currentTime": element.current_time,
                "readyState": element.ready_state,
            })

        return listener

    def tracked_count(self) -> int:
        return len(self._tracked)

    def uninstall(self) -> None:
        for handle in self.handles:
            handle.uninstall()
        self.handles = []
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None
