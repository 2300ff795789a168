"""Viewport check wrapper."""

from __future__ import annotations

from typing import Any, Callable, MutableMapping, Optional

from divergence.event_log import Category, EventLog
from divergence.instrument.intercept import InterceptHandle, install, intercept

VIEWPORT_SYMBOL = "isOutOfViewport"


def _rect_of(elem: Any) -> Any:
    get_rect = getattr(elem, "get_bounding_client_rect", None)
    if get_rect is None:
        return None
    rect = get_rect()
    return rect.to_json() if hasattr(rect, "to_json") else rect


class ViewportMonitor:
    def __init__(self, log: EventLog, *, verbose: bool = True) -> None:
        self.log = log
        self.verbose = verbose
        self.handle: Optional[InterceptHandle] = None

    def wrap(self, original: Callable[..., Any]) -> Callable[..., Any]:
        def after(token: Any, args: tuple, result: Any) -> None:
            if not self.verbose:
                return
            elem = args[0] if args else None
            self.log.append(Category.VIEWPORT, "isOutOfViewport check", {
                "elementId": getattr(elem, "id", None),
                "result": result,
                "rect": _rect_of(elem),
            })

        return intercept(original, after=after)

    def install(self, scope: MutableMapping[str, Any]) -> Optional[InterceptHandle]:
        self.handle = install(scope, VIEWPORT_SYMBOL, self.wrap)
        if self.handle is not None:
            self.log.append(Category.VIEWPORT, "isOutOfViewport function wrapped")
        return self.handle

    def uninstall(self) -> None:
        if self.handle is not None:
            self.handle.uninstall()
            self.handle = None
