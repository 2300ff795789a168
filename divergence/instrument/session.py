#!/usr/bin/env python3
"""
Instrumentation session: one per page lifetime.

The session owns the event log, the environment descriptor (probed once at
construction) and the handles of every installed wrapper. The driver talks to
it through ``append_event``, ``export_capture``, ``download_capture`` and
``get_stored_capture``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from divergence import capture as capture_lib
from divergence.config import InstrumentationConfig
from divergence.environment import EnvironmentDescriptor, detect_environment
from divergence.event_log import Category, EventEntry, EventLog, monotonic_ms
from divergence.instrument.intercept import Readiness, RetryPolicy, wait_until_available
from divergence.instrument.performance import PerformanceMonitor
from divergence.instrument.scroll import ScrollTracker
from divergence.instrument.timers import TimerTracker, timer_summary
from divergence.instrument.video import VideoTracker
from divergence.instrument.viewport import VIEWPORT_SYMBOL, ViewportMonitor
from divergence.page import Window

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]

STREAM_SYMBOL = "MonitorStream"


class InstrumentationSession:
    def __init__(
        self,
        window: Window,
        config: Optional[InstrumentationConfig] = None,
        *,
        clock: Callable[[], float] = monotonic_ms,
        store: Optional[Any] = None,
    ) -> None:
        self.window = window
        self.config = config or InstrumentationConfig()
        self.descriptor: EnvironmentDescriptor = detect_environment(window.user_agent, window.scope)
        self.store = store if store is not None else capture_lib.MemoryStore()
        self._clock = clock
        self.log = EventLog(
            self.config.max_log_entries,
            clock=clock,
            environment_label=self.descriptor.label,
            enabled=self.config.enable_logging,
        )
        if self.config.export_logs:
            self.log.set_sink(self._export_to_storage)
        self.performance: Optional[PerformanceMonitor] = None
        if self.config.enable_timing:
            self.performance = PerformanceMonitor(self.log, clock=self.log.elapsed)
        self.timers: Optional[TimerTracker] = None
        self.scroll: Optional[ScrollTracker] = None
        self.video: Optional[VideoTracker] = None
        self.viewport: Optional[ViewportMonitor] = None
        self.readiness: Dict[str, Readiness] = {}
        self.started = False

    @property
    def policy(self) -> RetryPolicy:
        return RetryPolicy(interval_ms=self.config.poll_interval_ms, timeout_ms=self.config.poll_timeout_ms)

    def start(self) -> "InstrumentationSession":
        """Install the wrappers whose primitives exist at page load."""
        if self.started:
            return self
        self.started = True
        self.log.append(Category.BROWSER, "Divergence instrumentation initialized", {
            "browserInfo": self.descriptor.to_json(),
            "config": self.config.to_json(),
        })
        scope = self.window.scope
        raw_scheduler = None
        if scope.get("setTimeout") is not None and scope.get("clearTimeout") is not None:
            raw_scheduler = (scope["setTimeout"], scope["clearTimeout"])

        if self.config.enable_scroll_tracking:
            self.scroll = ScrollTracker(
                self.log,
                self.descriptor,
                self.window,
                scheduler=raw_scheduler,
                clock=self.log.elapsed,
                debounce_ms=self.config.scroll_debounce_ms,
                verbose=self.config.log_verbose,
            )
            self.scroll.attach()

        if self.config.enable_video_tracking:
            self.video = VideoTracker(self.log, clock=self._clock)
            self.log.append(Category.VIDEO, "Video tracker initialized")
            self.video.observe(self.window.document)

        if self.config.enable_timer_tracking:
            if raw_scheduler is None:
                self.log.append(Category.WARNING, "Timer primitives unavailable - timer tracking disabled")
            else:
                self.timers = TimerTracker(
                    self.log,
                    clock=self._clock,
                    verbose=self.config.log_verbose,
                    interval_log_every=self.config.interval_log_every,
                )
                self.timers.install(scope)

        self.viewport = ViewportMonitor(self.log, verbose=self.config.log_verbose)
        self.log.append(Category.BROWSER, "Debug API exposed to driver")
        return self

    async def install_deferred(self) -> Dict[str, Readiness]:
        """Wait for late-defined primitives and wrap the ones that appear in time."""
        if not self.started:
            self.start()
        waits: Dict[str, Any] = {}
        if self.video is not None:
            waits[STREAM_SYMBOL] = self._await_and_wrap(STREAM_SYMBOL, self._wrap_stream)
        if self.viewport is not None:
            waits[VIEWPORT_SYMBOL] = self._await_and_wrap(VIEWPORT_SYMBOL, self._wrap_viewport)
        results = await asyncio.gather(*waits.values())
        self.readiness.update(dict(zip(waits.keys(), results)))
        return dict(self.readiness)

    async def _await_and_wrap(self, symbol: str, wrap: Callable[[Any], None]) -> Readiness:
        readiness = await wait_until_available(self.window.scope, symbol, self.policy)
        if readiness.ready:
            wrap(readiness.value)
        else:
            self.log.append(Category.WARNING, f"{symbol} not available - wrapper abandoned", {
                "attempts": readiness.attempts,
                "waitedMs": readiness.waited_ms,
            })
            logger.warning("%s never appeared within %.0fms", symbol, readiness.waited_ms)
        return readiness

    def _wrap_stream(self, stream_cls: Any) -> None:
        if self.video is not None:
            self.video.wrap_stream_class(stream_cls)

    def _wrap_viewport(self, _fn: Any) -> None:
        if self.viewport is not None:
            self.viewport.install(self.window.scope)

    def stop(self) -> None:
        for tracker in (self.timers, self.video, self.viewport):
            if tracker is not None:
                tracker.uninstall()
        if self.scroll is not None:
            self.scroll.detach()
        self.started = False

    def _export_to_storage(self, entries: List[EventEntry]) -> None:
        payload = capture_lib.capture_to_json(capture_lib.Capture(
            descriptor=self.descriptor,
            log=tuple(entries),
            export_time=capture_lib._now(),
        ))
        self.store.set_item(self.config.storage_key, capture_lib.dumps(payload, indent=None))

    # Driver-facing API.

    def append_event(self, category: Any, message: str, data: Optional[JSON] = None) -> Optional[EventEntry]:
        return self.log.append(category, message, data)

    def export_capture(self) -> capture_lib.Capture:
        return capture_lib.export_capture(self.descriptor, self.log)

    def download_capture(self, directory: Path) -> Optional[Path]:
        capture = self.export_capture()
        path = Path(directory) / capture_lib.download_filename(self.descriptor, int(time.time() * 1000))
        err = capture_lib.persist(capture, path)
        if err:
            self.log.append(Category.WARNING, "Capture download failed", {"error": err})
            return None
        return path

    def get_stored_capture(self) -> Optional[str]:
        return self.store.get_item(self.config.storage_key)

    def compare_logs(self, reference_json: Optional[str], candidate_json: Optional[str]) -> JSON:
        from divergence.compare_results import compare_unique_messages

        reference, ref_err = capture_lib.loads_capture(reference_json)
        candidate, cand_err = capture_lib.loads_capture(candidate_json)
        section = compare_unique_messages(reference, candidate)
        section["errors"] = {"reference": ref_err, "candidate": cand_err}
        return section

    def mark(self, name: str) -> Optional[float]:
        if self.performance is None:
            return None
        return self.performance.mark(name)

    def measure(self, name: str, start_mark: str) -> Optional[float]:
        if self.performance is None:
            return None
        return self.performance.measure(name, start_mark)

    def stats(self) -> JSON:
        return {
            "entries": len(self.log),
            "evicted": self.log.evicted,
            "scrollState": self.scroll.state.value if self.scroll else None,
            "scrollEndMethod": self.scroll.end_method if self.scroll else None,
            "trackedMediaElements": self.video.tracked_count() if self.video else 0,
            "timers": timer_summary(self.timers),
            "readiness": {name: r.state.value for name, r in self.readiness.items()},
        }
