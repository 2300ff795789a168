"""
Interceptors for page primitives.

``intercept`` turns an original callable into a wrapper that forwards arguments,
return value and exceptions unchanged and only adds observation hooks.
``install`` places such a wrapper on a page scope (mapping) or a class and
returns a handle; installing over an already wrapped primitive returns the
existing handle instead of stacking a second layer.

``wait_until_available`` is the readiness future used for primitives that the
page defines asynchronously after load.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

HANDLE_ATTR = "__divergence_handle__"

Before = Callable[[Tuple[Any, ...], dict], Any]
After = Callable[[Any, Tuple[Any, ...], Any], None]
OnError = Callable[[Any, Tuple[Any, ...], BaseException], None]


def _run_hook(hook: Callable[..., Any], stage: str, original: Callable[..., Any], *args: Any) -> Any:
    try:
        return hook(*args)
    except Exception as exc:
        name = getattr(original, "__name__", repr(original))
        logger.warning("%s hook for %s failed: %s", stage, name, exc)
        return None


def intercept(
    original: Callable[..., Any],
    *,
    before: Optional[Before] = None,
    after: Optional[After] = None,
    on_error: Optional[OnError] = None,
) -> Callable[..., Any]:
    # Hook failures are logged and dropped; the caller only ever sees the original's outcome.
    @functools.wraps(original)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        token = _run_hook(before, "before", original, args, kwargs) if before is not None else None
        try:
            result = original(*args, **kwargs)
        except Exception as exc:
            if on_error is not None:
                _run_hook(on_error, "on_error", original, token, args, exc)
            raise
        if after is not None:
            _run_hook(after, "after", original, token, args, result)
        return result

    return wrapper


def _lookup(owner: Any, name: str) -> Any:
    if isinstance(owner, Mapping):
        return owner.get(name)
    return getattr(owner, name, None)


def handle_of(fn: Any) -> Optional["InterceptHandle"]:
    handle = getattr(fn, HANDLE_ATTR, None)
    return handle if isinstance(handle, InterceptHandle) else None


def is_wrapped(fn: Any) -> bool:
    return handle_of(fn) is not None


class InterceptHandle:
    def __init__(self, owner: Any, name: str, original: Callable[..., Any], wrapped: Callable[..., Any]) -> None:
        self.owner = owner
        self.name = name
        self.original = original
        self.wrapped = wrapped
        self._owned_attr = not isinstance(owner, Mapping) and name in vars(owner)

    @property
    def installed(self) -> bool:
        return _lookup(self.owner, self.name) is self.wrapped

    def uninstall(self) -> bool:
        if not self.installed:
            return False
        if isinstance(self.owner, Mapping):
            self.owner[self.name] = self.original
        elif self._owned_attr:
            setattr(self.owner, self.name, self.original)
        else:
            delattr(self.owner, self.name)
        return True

    def __repr__(self) -> str:
        state = "installed" if self.installed else "detached"
        return f"<InterceptHandle {self.name} {state}>"


def install(
    owner: Any,
    name: str,
    factory: Callable[[Callable[..., Any]], Callable[..., Any]],
) -> Optional[InterceptHandle]:
    """Wrap ``owner[name]`` (or ``owner.name``) with ``factory(original)``.

    Returns ``None`` when the primitive does not exist yet.
    """
    current = _lookup(owner, name)
    if current is None:
        return None
    existing = handle_of(current)
    if existing is not None:
        return existing
    wrapped = factory(current)
    handle = InterceptHandle(owner, name, current, wrapped)
    setattr(wrapped, HANDLE_ATTR, handle)
    if isinstance(owner, Mapping):
        owner[name] = wrapped
    else:
        setattr(owner, name, wrapped)
    return handle


class ReadinessState(str, Enum):
    READY = "ready"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class Readiness:
    name: str
    state: ReadinessState
    value: Any = None
    attempts: int = 0
    waited_ms: float = 0.0

    @property
    def ready(self) -> bool:
        return self.state == ReadinessState.READY


@dataclass(frozen=True)
class RetryPolicy:
    interval_ms: float = 100.0
    timeout_ms: float = 10000.0
    backoff: float = 1.0
    max_interval_ms: float = 1000.0

    def delays(self) -> Iterator[float]:
        waited = 0.0
        interval = self.interval_ms
        while waited < self.timeout_ms:
            delay = min(interval, self.timeout_ms - waited)
            waited += delay
            yield delay
            interval = min(interval * self.backoff, max(self.max_interval_ms, self.interval_ms))


async def wait_until_available(
    scope: Mapping[str, Any],
    name: str,
    policy: RetryPolicy = RetryPolicy(),
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Readiness:
    attempts = 1
    waited = 0.0
    if scope.get(name) is not None:
        return Readiness(name, ReadinessState.READY, scope[name], attempts, waited)
    for delay in policy.delays():
        await sleep(delay / 1000.0)
        waited += delay
        attempts += 1
        value = scope.get(name)
        if value is not None:
            return Readiness(name, ReadinessState.READY, value, attempts, waited)
    return Readiness(name, ReadinessState.ABANDONED, None, attempts, waited)
