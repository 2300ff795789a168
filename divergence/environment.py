"""Static feature/capability snapshot of the execution environment."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

JSON = Dict[str, Any]

# FeatureName -> global symbol probed in the page scope.
FEATURE_PROBES = {
    "scrollEndEvent": "onscrollend",
    "resizeObserver": "ResizeObserver",
    "intersectionObserver": "IntersectionObserver",
    "requestIdleCallback": "requestIdleCallback",
    "boundingRectSupport": "getBoundingClientRect",
}

FEATURE_ALIASES = {"getBoundingClientRect": "boundingRectSupport"}

_SAFARI_RE = re.compile(r"^((?!chrome|android).)*safari", re.IGNORECASE)
_CHROME_RE = re.compile(r"chrome", re.IGNORECASE)
_EDGE_RE = re.compile(r"edge", re.IGNORECASE)
_FIREFOX_RE = re.compile(r"firefox", re.IGNORECASE)
_SAFARI_VERSION_RE = re.compile(r"Version/(\d+\.\d+)")


@dataclass(frozen=True)
class EnvironmentDescriptor:
    is_safari_like: bool
    is_chromium_like: bool
    user_agent: str
    feature_support: Mapping[str, bool] = field(default_factory=dict)
    is_firefox: bool = False
    is_edge: bool = False
    safari_version: Optional[float] = None

    @property
    def label(self) -> str:
        if self.is_safari_like:
            return "Safari"
        if self.is_chromium_like:
            return "Chrome"
        return "Other"

    def supports(self, feature: str) -> bool:
        return bool(self.feature_support.get(feature, False))

    def to_json(self) -> JSON:
        return {
            "isSafari": self.is_safari_like,
            "isChrome": self.is_chromium_like,
            "isFirefox": self.is_firefox,
            "isEdge": self.is_edge,
            "safariVersion": self.safari_version,
            "userAgent": self.user_agent,
            "features": dict(self.feature_support),
        }


def detect_environment(user_agent: str, scope: Mapping[str, Any]) -> EnvironmentDescriptor:
    ua = user_agent or ""
    is_safari = bool(_SAFARI_RE.search(ua))
    safari_version = None
    if is_safari:
        match = _SAFARI_VERSION_RE.search(ua)
        safari_version = float(match.group(1)) if match else None
    features = {name: symbol in scope for name, symbol in FEATURE_PROBES.items()}
    return EnvironmentDescriptor(
        is_safari_like=is_safari,
        is_chromium_like=bool(_CHROME_RE.search(ua)) and not _EDGE_RE.search(ua),
        user_agent=ua,
        feature_support=features,
        is_firefox=bool(_FIREFOX_RE.search(ua)),
        is_edge=bool(_EDGE_RE.search(ua)),
        safari_version=safari_version,
    )


def descriptor_from_json(raw: Any) -> Optional[EnvironmentDescriptor]:
    if not isinstance(raw, dict):
        return None
    features_raw = raw.get("features")
    features: Dict[str, bool] = {}
    if isinstance(features_raw, dict):
        for name, value in features_raw.items():
            features[FEATURE_ALIASES.get(name, name)] = bool(value)
    version = raw.get("safariVersion")
    return EnvironmentDescriptor(
        is_safari_like=bool(raw.get("isSafari")),
        is_chromium_like=bool(raw.get("isChrome")),
        user_agent=str(raw.get("userAgent") or ""),
        feature_support=features,
        is_firefox=bool(raw.get("isFirefox")),
        is_edge=bool(raw.get("isEdge")),
        safari_version=float(version) if isinstance(version, (int, float)) else None,
    )
