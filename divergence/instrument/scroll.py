"""
Scroll tracker: a two-state machine (IDLE, SCROLLING) fed by scroll
notifications and one of two end-of-scroll inputs.

When the environment supports a native end-of-scroll event the tracker
subscribes to it. Otherwise each scroll notification re-arms a debounce timer
and its expiry stands in for the end signal. Entering IDLE records which
monitored elements intersect the viewport.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from divergence.environment import EnvironmentDescriptor
from divergence.event_log import Category, EventLog
from divergence.page import Event, EventTarget, Window

JSON = Dict[str, Any]

SCROLL_DEBOUNCE_MS = 150.0

# (set_timeout, clear_timeout) used for the debounce fallback.
Scheduler = Tuple[Callable[..., Any], Callable[[Any], Any]]


class ScrollState(str, Enum):
    IDLE = "IDLE"
    SCROLLING = "SCROLLING"


class ScrollSignal(str, Enum):
    SCROLL_NOTIFICATION = "scrollNotification"
    SCROLL_END = "scrollEndSignal"
    DEBOUNCE_EXPIRED = "debounceExpired"


def transition(state: ScrollState, signal: ScrollSignal) -> ScrollState:
    if signal == ScrollSignal.SCROLL_NOTIFICATION:
        return ScrollState.SCROLLING
    return ScrollState.IDLE


def visibility_partition(monitors: Iterable[Any], width: float, height: float) -> Tuple[List[Any], List[Any]]:
    visible: List[Any] = []
    hidden: List[Any] = []
    for monitor in monitors:
        element = monitor.get_element()
        if element is None:
            continue
        rect = element.get_bounding_client_rect()
        if rect.intersects_viewport(width, height):
            visible.append(monitor.id)
        else:
            hidden.append(monitor.id)
    return visible, hidden


class ScrollTracker:
    def __init__(
        self,
        log: EventLog,
        descriptor: EnvironmentDescriptor,
        window: Window,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        debounce_ms: float = SCROLL_DEBOUNCE_MS,
        verbose: bool = True,
        monitors: Optional[Callable[[], Optional[Iterable[Any]]]] = None,
    ) -> None:
        self.log = log
        self.window = window
        self.native = descriptor.supports("scrollEndEvent")
        self.debounce_ms = debounce_ms
        self.verbose = verbose
        self.state = ScrollState.IDLE
        self.scroll_count = 0
        self.last_scroll_time = 0.0
        self._scheduler = scheduler
        self._clock = clock or log.elapsed
        self._monitors = monitors or (lambda: window.scope.get("monitors"))
        self._debounce_id: Any = None
        self._subscriptions: List[Tuple[EventTarget, str, Callable[[Event], Any]]] = []

    @property
    def end_method(self) -> str:
        return "native" if self.native else "fallback"

    def attach(self) -> None:
        if self._subscriptions:
            return
        self.log.append(Category.SCROLL, "Scroll tracker initialized", {"hasScrollEnd": self.native})
        document = self.window.document
        content = document.get_element_by_id("content")
        targets: List[EventTarget] = [document] + ([content] if content is not None else [])
        if self.native:
            self._subscribe(document, "scrollend", lambda e: self._on_native_end("document"))
            if content is not None:
                self._subscribe(content, "scrollend", lambda e: self._on_native_end("#content"))
        else:
            self.log.append(Category.WARNING, "scrollend event not supported - using fallback")
        for target in targets:
            self._subscribe(target, "scroll", self.on_scroll)
        self._subscribe(self.window, "resize", self._on_resize)

    def detach(self) -> None:
        for target, name, listener in self._subscriptions:
            target.remove_event_listener(name, listener)
        self._subscriptions = []
        self._cancel_debounce()

    def _subscribe(self, target: EventTarget, name: str, listener: Callable[[Event], Any]) -> None:
        target.add_event_listener(name, listener)
        self._subscriptions.append((target, name, listener))

    def on_scroll(self, event: Optional[Event] = None) -> None:
        self.last_scroll_time = self._clock()
        self.scroll_count += 1
        if self.verbose:
            self.log.append(Category.SCROLL, "Scroll event", {
                "scrollY": self.window.scroll_y,
                "deltaTime": round(self.last_scroll_time, 2),
                "eventType": event.type if event is not None else "scroll",
            })
        self.feed(ScrollSignal.SCROLL_NOTIFICATION)

    def _on_native_end(self, source: str) -> None:
        suffix = "" if source == "document" else f" on {source}"
        self.log.append(Category.SCROLL, f"Native scrollend event fired{suffix}")
        self.feed(ScrollSignal.SCROLL_END)

    def _on_debounce(self) -> None:
        self._debounce_id = None
        self.feed(ScrollSignal.DEBOUNCE_EXPIRED)

    def _on_resize(self, event: Event) -> None:
        self.log.append(Category.EVENT, "Window resized", {
            "width": self.window.inner_width,
            "height": self.window.inner_height,
        })

    def feed(self, signal: ScrollSignal) -> ScrollState:
        previous = self.state
        if previous == ScrollState.IDLE and signal != ScrollSignal.SCROLL_NOTIFICATION:
            return previous
        self.state = transition(previous, signal)
        if signal == ScrollSignal.SCROLL_NOTIFICATION:
            if previous == ScrollState.IDLE:
                self.log.append(Category.SCROLL, "Scroll started", {
                    "scrollY": self.window.scroll_y,
                    "timestamp": round(self._clock(), 2),
                })
            if not self.native:
                self._arm_debounce()
        else:
            self._cancel_debounce()
            self._enter_idle(signal)
        return self.state

    def _arm_debounce(self) -> None:
        if self._scheduler is None:
            return
        set_timeout, clear_timeout = self._scheduler
        if self._debounce_id is not None:
            clear_timeout(self._debounce_id)
        self._debounce_id = set_timeout(self._on_debounce, self.debounce_ms)

    def _cancel_debounce(self) -> None:
        if self._debounce_id is not None and self._scheduler is not None:
            self._scheduler[1](self._debounce_id)
        self._debounce_id = None

    def _enter_idle(self, signal: ScrollSignal) -> None:
        self.log.append(Category.SCROLL, "Scroll ended", {
            "finalScrollY": self.window.scroll_y,
            "totalScrollEvents": self.scroll_count,
            "timestamp": round(self._clock(), 2),
            "method": "native" if signal == ScrollSignal.SCROLL_END else "fallback",
        })
        self.log_visible_monitors()

    def log_visible_monitors(self) -> Optional[JSON]:
        monitors = self._monitors()
        if monitors is None:
            return None
        visible, hidden = visibility_partition(monitors, self.window.inner_width, self.window.inner_height)
        data = {"visible": visible, "hidden": hidden}
        self.log.append(Category.VIEWPORT, "Monitor visibility after scroll", data)
        return data
