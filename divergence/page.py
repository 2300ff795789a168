"""
In-process model of the host page the instrumentation runs against.

The page exposes a globals namespace (``Window.scope``) holding the platform
primitives by their page-level names (``setTimeout``, ``isOutOfViewport``,
``MonitorStream``, ...), a document that reports inserted elements to mutation
observers, and elements with viewport-relative bounding rectangles.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, MutableMapping, Optional

JSON = Dict[str, Any]

Listener = Callable[["Event"], Any]
MutationCallback = Callable[[List["Element"]], None]


@dataclass
class Event:
    type: str
    target: Any = None
    detail: JSON = field(default_factory=dict)


@dataclass(frozen=True)
class Rect:
    top: float
    left: float
    bottom: float
    right: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def shifted(self, dy: float) -> "Rect":
        return Rect(self.top - dy, self.left, self.bottom - dy, self.right)

    def intersects_viewport(self, width: float, height: float) -> bool:
        return self.top < height and self.bottom > 0 and self.left < width and self.right > 0

    def to_json(self) -> JSON:
        return {"top": self.top, "left": self.left, "bottom": self.bottom, "right": self.right}


class EventTarget:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def add_event_listener(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(name, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_event_listener(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def dispatch_event(self, name: str, **detail: Any) -> Event:
        event = Event(type=name, target=self, detail=detail)
        for listener in list(self._listeners.get(name, [])):
            listener(event)
        return event


class Element(EventTarget):
    def __init__(
        self,
        tag_name: str,
        id: str = "",
        *,
        box: Optional[Rect] = None,
        src: str = "",
        current_time: float = 0.0,
        ready_state: int = 0,
    ) -> None:
        super().__init__()
        self.tag_name = tag_name.upper()
        self.id = id
        self.src = src
        self.box = box or Rect(0, 0, 0, 0)
        self.current_time = current_time
        self.ready_state = ready_state
        self.document: Optional["Document"] = None

    def get_bounding_client_rect(self) -> Rect:
        scroll_y = self.document.scroll_y if self.document is not None else 0.0
        return self.box.shifted(scroll_y)

    def __repr__(self) -> str:
        return f"<{self.tag_name} id={self.id!r}>"


class Document(EventTarget):
    def __init__(self) -> None:
        super().__init__()
        self.scroll_y = 0.0
        self._elements: List[Element] = []
        self._observers: List[MutationCallback] = []

    def observe_mutations(self, callback: MutationCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    def append_child(self, *elements: Element) -> None:
        for element in elements:
            element.document = self
            self._elements.append(element)
        for observer in list(self._observers):
            observer(list(elements))

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for element in self._elements:
            if element.id == element_id:
                return element
        return None

    @property
    def elements(self) -> List[Element]:
        return list(self._elements)


class Window(EventTarget):
    def __init__(
        self,
        *,
        user_agent: str = "",
        inner_width: float = 1280,
        inner_height: float = 720,
        features: Iterable[str] = (),
        scope: Optional[MutableMapping[str, Any]] = None,
        timers: Optional[AsyncioTimers] = None,
    ) -> None:
        super().__init__()
        self.user_agent = user_agent
        self.inner_width = inner_width
        self.inner_height = inner_height
        self.document = Document()
        self.scope: MutableMapping[str, Any] = scope if scope is not None else {}
        for name in features:
            self.scope.setdefault(name, True)
        self.timers = timers
        if timers is not None:
            timers.install(self.scope)

    @property
    def scroll_y(self) -> float:
        return self.document.scroll_y

    def scroll_to(self, y: float, *, target: Optional[EventTarget] = None) -> None:
        self.document.scroll_y = max(0.0, y)
        (target or self.document).dispatch_event("scroll", scrollY=self.document.scroll_y)

    def scroll_by(self, dy: float, *, target: Optional[EventTarget] = None) -> None:
        self.scroll_to(self.document.scroll_y + dy, target=target)

    def resize(self, width: float, height: float) -> None:
        self.inner_width = width
        self.inner_height = height
        self.dispatch_event("resize", width=width, height=height)


class AsyncioTimers:
    """setTimeout/setInterval semantics on an asyncio event loop (delays in ms)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._ids = itertools.count(1)
        self._handles: Dict[int, asyncio.TimerHandle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def set_timeout(self, callback: Callable[..., Any], delay: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)

        def run() -> None:
            self._handles.pop(timer_id, None)
            callback(*args)

        self._handles[timer_id] = self.loop.call_later(max(float(delay or 0), 0.0) / 1000.0, run)
        return timer_id

    def set_interval(self, callback: Callable[..., Any], delay: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)
        period = max(float(delay or 0), 0.0) / 1000.0

        def run() -> None:
            self._handles[timer_id] = self.loop.call_later(period, run)
            callback(*args)

        self._handles[timer_id] = self.loop.call_later(period, run)
        return timer_id

    def clear(self, timer_id: Optional[int]) -> None:
        handle = self._handles.pop(timer_id, None) if timer_id is not None else None
        if handle is not None:
            handle.cancel()

    def pending(self) -> int:
        return len(self._handles)

    def install(self, scope: MutableMapping[str, Any]) -> None:
        scope["setTimeout"] = self.set_timeout
        scope["setInterval"] = self.set_interval
        scope["clearTimeout"] = self.clear
        scope["clearInterval"] = self.clear
