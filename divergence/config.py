#!/usr/bin/env python3
"""Instrumentation config and comparison thresholds (YAML or JSON)."""

from __future__ import annotations

import json
import logging
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]

STORAGE_KEY = "divergence_debug_logs"


class ConfigError(ValueError):
    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class InstrumentationConfig:
    enable_logging: bool = True
    enable_timing: bool = True
    enable_scroll_tracking: bool = True
    enable_video_tracking: bool = True
    enable_timer_tracking: bool = True
    log_verbose: bool = True
    export_logs: bool = True
    max_log_entries: int = 1000
    interval_log_every: int = 10
    scroll_debounce_ms: float = 150.0
    poll_interval_ms: float = 100.0
    poll_timeout_ms: float = 10000.0
    storage_key: str = STORAGE_KEY

    def to_json(self) -> JSON:
        return asdict(self)


@dataclass(frozen=True)
class ComparisonThresholds:
    category_delta: int = 5
    timing_abs_delta_ms: float = 100.0
    ratio_critical: float = 2.0
    ratio_high: float = 1.5
    drift_ms: float = 50.0
    drift_count: int = 5
    reference_label: str = "chromium"
    candidate_label: str = "webkit"

    def to_json(self) -> JSON:
        return asdict(self)


def load_config(path: str) -> JSON:
    config_path = Path(path)
    raw = config_path.read_text(encoding="utf-8")
    if config_path.suffix.lower() in {".json"}:
        return json.loads(raw) or {}
    return yaml.safe_load(raw) or {}


def _normalize(cls: type, payload: JSON) -> JSON:
    normalized = asdict(cls())
    names = set(normalized)
    for key, value in (payload or {}).items():
        if key not in names:
            warnings.warn(f"Unknown {cls.__name__} key ignored: {key!r}")
            continue
        normalized[key] = value
    return normalized


def normalize_instrumentation(payload: JSON) -> JSON:
    return _normalize(InstrumentationConfig, payload)


def normalize_thresholds(payload: JSON) -> JSON:
    return _normalize(ComparisonThresholds, payload)


def validate_instrumentation(payload: JSON) -> List[str]:
    errors: List[str] = []
    if not isinstance(payload, dict):
        return ["instrumentation must be a mapping/object."]
    for key in ("max_log_entries", "interval_log_every"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
            errors.append(f"{key} must be a positive integer")
    for key in ("scroll_debounce_ms", "poll_interval_ms", "poll_timeout_ms"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0):
            errors.append(f"{key} must be a positive number")
    storage_key = payload.get("storage_key")
    if storage_key is not None and not (isinstance(storage_key, str) and storage_key):
        errors.append("storage_key must be a non-empty string")
    return errors


def validate_thresholds(payload: JSON) -> List[str]:
    errors: List[str] = []
    if not isinstance(payload, dict):
        return ["thresholds must be a mapping/object."]
    for key in ("category_delta", "drift_count"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            errors.append(f"{key} must be a non-negative integer")
    for key in ("timing_abs_delta_ms", "ratio_critical", "ratio_high", "drift_ms"):
        value = payload.get(key)
        if value is not None and (not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0):
            errors.append(f"{key} must be a non-negative number")
    critical = payload.get("ratio_critical", ComparisonThresholds.ratio_critical)
    high = payload.get("ratio_high", ComparisonThresholds.ratio_high)
    if isinstance(critical, (int, float)) and isinstance(high, (int, float)) and high > critical:
        errors.append("ratio_high must not exceed ratio_critical")
    for key in ("reference_label", "candidate_label"):
        value = payload.get(key)
        if value is not None and not (isinstance(value, str) and value):
            errors.append(f"{key} must be a non-empty string")
    if payload.get("reference_label") and payload.get("reference_label") == payload.get("candidate_label"):
        errors.append("reference_label and candidate_label must differ")
    return errors


def build_instrumentation(payload: JSON) -> InstrumentationConfig:
    errors = validate_instrumentation(payload or {})
    if errors:
        raise ConfigError(errors)
    return InstrumentationConfig(**normalize_instrumentation(payload))


def build_thresholds(payload: JSON) -> ComparisonThresholds:
    errors = validate_thresholds(payload or {})
    if errors:
        raise ConfigError(errors)
    return ComparisonThresholds(**normalize_thresholds(payload))


def load_and_validate(path: str) -> Tuple[JSON, List[str]]:
    """Load a config file holding ``instrumentation`` and/or ``thresholds`` sections.

    A file without either section is treated as a bare thresholds mapping.
    """
    raw = load_config(path)
    if not isinstance(raw, dict):
        return {}, ["config must be a mapping/object."]
    if "instrumentation" not in raw and "thresholds" not in raw:
        raw = {"thresholds": raw}
    instrumentation = raw.get("instrumentation") or {}
    thresholds = raw.get("thresholds") or {}
    errors = validate_instrumentation(instrumentation) + validate_thresholds(thresholds)
    if errors:
        return {"instrumentation": instrumentation, "thresholds": thresholds}, errors
    return {
        "instrumentation": normalize_instrumentation(instrumentation),
        "thresholds": normalize_thresholds(thresholds),
    }, []


def load_thresholds(path: Path) -> ComparisonThresholds:
    """Thresholds from ``path`` if it exists, defaults otherwise."""
    if not path.exists():
        return ComparisonThresholds()
    try:
        normalized, errors = load_and_validate(str(path))
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError([f"could not parse {path.name}: {exc}"]) from exc
    if errors:
        raise ConfigError(errors)
    logger.info("Loaded thresholds from %s", path)
    return build_thresholds(normalized["thresholds"])
