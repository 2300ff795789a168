#!/usr/bin/env python3
"""
Compare captures from a reference and a candidate environment.

Both environments run the same scripted interaction and write their artifacts
into one results directory:

- <label>-initial-load-logs.json   capture after page load
- <label>-scroll-test-logs.json    capture after the scroll-and-return cycle
- <label>-timing-report.json       stream start durations
- <label>-event-report.json        timer/scroll/viewport counts
- *BUG-REPORT*.json                elements that disappeared after scrolling

Every check degrades to an explicit "insufficient data" section when one of its
inputs is missing or unparsable; the comparison itself never aborts.

Usage: python -m divergence.compare_results
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

if __package__ in (None, "") and __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from divergence import reports
from divergence.capture import Capture, load_capture, load_json
from divergence.config import ComparisonThresholds, ConfigError, load_thresholds
from divergence.event_log import Category

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]

INSUFFICIENT = "insufficient data"
RESULTS_ENV = "DIVERGENCE_RESULTS_DIR"
DEFAULT_RESULTS_DIR = "results"
THRESHOLDS_FILE = "thresholds.yaml"
REPORT_JSON = "divergence_report.json"
REPORT_MD = "divergence_report.md"

SEVERITIES = ("critical", "high", "medium", "info")
TIMING_METRICS = ("average", "min", "max")
EVENT_TYPES = ("timer", "timerDrift", "scroll", "viewport")

COLORS = {
    "reset": "\x1b[0m",
    "bright": "\x1b[1m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
}


@dataclass(frozen=True)
class Finding:
    severity: str
    message: str
    recommendation: str
    check: str = ""

    def to_json(self) -> JSON:
        return asdict(self)


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _section(check: str, **extra: Any) -> JSON:
    section: JSON = {"check": check, "status": "ok", "rows": [], "findings": []}
    section.update(extra)
    return section


def _missing(check: str, **errors: Optional[str]) -> JSON:
    return {
        "check": check,
        "status": "missing",
        "reason": INSUFFICIENT,
        "errors": {k: v for k, v in errors.items() if v},
        "rows": [],
        "findings": [],
    }


def _num(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _title(label: str) -> str:
    return {"chromium": "Chromium", "webkit": "WebKit"}.get(label, label.capitalize())


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def compare_features(
    reference: Optional[Capture],
    candidate: Optional[Capture],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "features"
    if reference is None or candidate is None or reference.descriptor is None or candidate.descriptor is None:
        return _missing(check)
    ref_features = reference.descriptor.feature_support
    cand_features = candidate.descriptor.feature_support
    section = _section(check)
    candidate_name = _title(t.candidate_label)
    for feature in sorted(set(ref_features) | set(cand_features)):
        ref_value = ref_features.get(feature)
        cand_value = cand_features.get(feature)
        mismatch = bool(ref_value) != bool(cand_value)
        section["rows"].append({
            "feature": feature,
            "reference": bool(ref_value),
            "candidate": bool(cand_value),
            "mismatch": mismatch,
        })
        if feature == "scrollEndEvent" and cand_value is False:
            section["findings"].append(Finding(
                "high",
                f"{candidate_name} does not support native scrollend event",
                "Verify the debounce fallback (scroll silence timeout) ends scrolling and restarts streams",
                check,
            ))
        elif mismatch:
            section["findings"].append(Finding(
                "info",
                f"Feature {feature} differs: {_title(t.reference_label)}={bool(ref_value)}, {candidate_name}={bool(cand_value)}",
                f"Check code paths that depend on {feature}",
                check,
            ))
    return section


def group_by_category(capture: Capture) -> Dict[str, int]:
    return reports.count_by_category(capture.log)


def _category_order(name: str) -> Tuple[int, str]:
    names = [c.value for c in Category]
    return (names.index(name) if name in names else len(names), name)


def compare_categories(
    reference: Optional[Capture],
    candidate: Optional[Capture],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "categories"
    if reference is None or candidate is None or reference.empty or candidate.empty:
        return _missing(check)
    ref_counts = group_by_category(reference)
    cand_counts = group_by_category(candidate)
    section = _section(check)
    for category in sorted(set(ref_counts) | set(cand_counts), key=_category_order):
        ref_count = ref_counts.get(category, 0)
        cand_count = cand_counts.get(category, 0)
        delta = cand_count - ref_count
        flagged = abs(delta) > t.category_delta
        section["rows"].append({
            "category": category,
            "reference": ref_count,
            "candidate": cand_count,
            "delta": delta,
            "flagged": flagged,
        })
        if flagged:
            section["findings"].append(Finding(
                "info",
                f"{category} event count differs by {delta:+d} in {_title(t.candidate_label)}",
                f"Review {category} entries for missing or repeated transitions",
                check,
            ))
    return section


def message_keys(capture: Capture) -> set:
    return {f"{e.category.value}:{e.message}" for e in capture.log}


def compare_unique_messages(
    reference: Optional[Capture],
    candidate: Optional[Capture],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "unique_messages"
    if reference is None or candidate is None or reference.empty or candidate.empty:
        return _missing(check)
    ref_keys = message_keys(reference)
    cand_keys = message_keys(candidate)
    only_ref = sorted(ref_keys - cand_keys)
    only_cand = sorted(cand_keys - ref_keys)
    section = _section(check, only_in_reference=only_ref, only_in_candidate=only_cand)
    if only_ref:
        section["findings"].append(Finding(
            "info",
            f"{len(only_ref)} event message(s) seen only in {_title(t.reference_label)}",
            f"Look for lifecycle transitions that never happen in {_title(t.candidate_label)}",
            check,
        ))
    if only_cand:
        section["findings"].append(Finding(
            "info",
            f"{len(only_cand)} event message(s) seen only in {_title(t.candidate_label)}",
            "Look for warnings or fallback paths specific to the candidate environment",
            check,
        ))
    return section


def _timing_stats(report: Optional[JSON]) -> Optional[JSON]:
    if not isinstance(report, dict):
        return None
    stats = report.get("stats")
    if not isinstance(stats, dict) or not stats:
        return None
    return stats


def compare_timing(
    reference_report: Optional[JSON],
    candidate_report: Optional[JSON],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "timing"
    ref_stats = _timing_stats(reference_report)
    cand_stats = _timing_stats(candidate_report)
    if ref_stats is None or cand_stats is None:
        return _missing(check)
    section = _section(check)
    for metric in TIMING_METRICS:
        ref_value = _num(ref_stats.get(metric))
        cand_value = _num(cand_stats.get(metric))
        diff = cand_value - ref_value
        section["rows"].append({
            "metric": metric,
            "reference": ref_value,
            "candidate": cand_value,
            "diff": diff,
            "flagged": abs(diff) > t.timing_abs_delta_ms,
        })
    ref_avg = _num(ref_stats.get("average"))
    cand_avg = _num(cand_stats.get("average"))
    ratio = cand_avg / ref_avg if ref_avg > 0 else None
    section["ratio"] = ratio
    candidate_name = _title(t.candidate_label)
    if ratio is None:
        section["verdict"] = "undefined"
    elif ratio > t.ratio_critical:
        section["verdict"] = "critical"
        section["findings"].append(Finding(
            "critical",
            f"Video loading is {ratio:.1f}x slower in {candidate_name}",
            "Investigate MonitorStream.start() - possible async/await issue",
            check,
        ))
    elif ratio > t.ratio_high:
        section["verdict"] = "high"
        section["findings"].append(Finding(
            "high",
            f"{candidate_name} video loading is significantly slower ({ratio:.1f}x)",
            "Profile stream start in the candidate environment",
            check,
        ))
    else:
        section["verdict"] = "comparable"
    return section


def _event_counts(report: Optional[JSON]) -> Optional[JSON]:
    if not isinstance(report, dict) or not isinstance(report.get("events"), dict):
        return None
    return report["events"]


def compare_event_reports(
    reference_report: Optional[JSON],
    candidate_report: Optional[JSON],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "events"
    ref_events = _event_counts(reference_report)
    cand_events = _event_counts(candidate_report)
    if ref_events is None or cand_events is None:
        return _missing(check)
    section = _section(check)
    for event_type in EVENT_TYPES:
        ref_count = int(_num(ref_events.get(event_type)))
        cand_count = int(_num(cand_events.get(event_type)))
        section["rows"].append({
            "type": event_type,
            "reference": ref_count,
            "candidate": cand_count,
            "differs": ref_count != cand_count,
        })
    ref_method = ref_events.get("scrollEndMethod") or "unknown"
    cand_method = cand_events.get("scrollEndMethod") or "unknown"
    section["scroll_end_method"] = {"reference": ref_method, "candidate": cand_method}
    candidate_name = _title(t.candidate_label)
    if ref_method != cand_method:
        recommendation = "Compare scroll end handling between environments"
        if cand_method == "fallback":
            recommendation = f"{candidate_name} uses the fallback timeout (no native scrollend support)"
        section["findings"].append(Finding("info", "Different scroll end methods detected", recommendation, check))

    drift_diff = int(_num(cand_events.get("timerDrift"))) - int(_num(ref_events.get("timerDrift")))
    section["drift_diff"] = drift_diff
    if drift_diff > t.drift_count:
        section["findings"].append(Finding(
            "medium",
            f"{candidate_name} has {drift_diff} more timer drift events",
            f"{candidate_name} may be throttling timers - consider adjusting intervals",
            check,
        ))
    return section


def visibility_finding(browser: str, initial: Sequence[Any], final: Sequence[Any]) -> Optional[Finding]:
    return disappeared_finding(browser, reports.visibility_regressions(initial, final))


def disappeared_finding(browser: str, missing: Sequence[Any]) -> Optional[Finding]:
    if not missing:
        return None
    ids = ", ".join(str(m) for m in missing)
    return Finding(
        "high",
        f"Elements disappeared after scrolling in {browser}: {ids}",
        "Check that streams restart for elements re-entering the viewport after scroll end",
        "visibility",
    )


def check_visibility(bug_reports: Sequence[Tuple[str, Optional[JSON], Optional[str]]]) -> JSON:
    check = "visibility"
    section = _section(check)
    for name, report, err in bug_reports:
        if err or not isinstance(report, dict):
            section["rows"].append({"file": name, "error": err or "bug report was not a JSON object"})
            continue
        initial = report.get("initialVisible") if isinstance(report.get("initialVisible"), list) else []
        final = report.get("finalVisible") if isinstance(report.get("finalVisible"), list) else []
        missing = report.get("missingMonitors")
        if not isinstance(missing, list):
            missing = reports.visibility_regressions(initial, final)
        browser = str(report.get("browser") or name)
        section["rows"].append({
            "file": name,
            "browser": browser,
            "issue": report.get("issue"),
            "missing": missing,
            "initialVisible": initial,
            "finalVisible": final,
        })
        finding = disappeared_finding(browser, missing)
        if finding is not None:
            section["findings"].append(finding)
    return section


def check_stuck_streams(
    reference: Optional[Capture],
    candidate: Optional[Capture],
    t: ComparisonThresholds = ComparisonThresholds(),
) -> JSON:
    check = "stuck_streams"
    if reference is None and candidate is None:
        return _missing(check)
    section = _section(check)
    for label, capture in ((t.reference_label, reference), (t.candidate_label, candidate)):
        if capture is None:
            continue
        stuck = reports.stuck_streams(capture.log)
        section["rows"].append({"browser": label, "stuck": stuck})
        if stuck:
            section["findings"].append(Finding(
                "medium",
                f"{len(stuck)} stream(s) started but never completed in {_title(label)}: {', '.join(stuck)}",
                "Check MonitorStream.start() for promises that never settle",
                check,
            ))
    return section


# ---------------------------------------------------------------------------
# Loading + assembly
# ---------------------------------------------------------------------------


def _load_report(path: Path) -> Tuple[Optional[JSON], Optional[str]]:
    payload, err = load_json(path)
    if err:
        return None, err
    if not isinstance(payload, dict):
        return None, "report was not a JSON object"
    return payload, None


def artifact_names(label: str) -> JSON:
    return {
        "initial": f"{label}-initial-load-logs.json",
        "scroll": f"{label}-scroll-test-logs.json",
        "timing": f"{label}-timing-report.json",
        "events": f"{label}-event-report.json",
    }


def load_side(results_dir: Path, label: str) -> JSON:
    names = artifact_names(label)
    side: JSON = {"errors": {}}
    for key in ("initial", "scroll"):
        side[key], err = load_capture(results_dir / names[key])
        side["errors"][names[key]] = err
    for key in ("timing", "events"):
        side[key], err = _load_report(results_dir / names[key])
        side["errors"][names[key]] = err
    return side


def load_bug_reports(results_dir: Path) -> List[Tuple[str, Optional[JSON], Optional[str]]]:
    found = []
    for path in sorted(results_dir.iterdir()):
        if path.is_file() and "BUG-REPORT" in path.name:
            payload, err = _load_report(path)
            found.append((path.name, payload, err))
    return found


def _derived_timing(report: Optional[JSON], capture: Optional[Capture], label: str) -> Optional[JSON]:
    if report is not None or capture is None:
        return report
    return reports.build_timing_report(label, capture)


def _derived_events(report: Optional[JSON], capture: Optional[Capture], label: str, t: ComparisonThresholds) -> Optional[JSON]:
    if report is not None or capture is None or capture.empty:
        return report
    return reports.build_event_report(label, capture, t.drift_ms)


def compare_results(results_dir: Path, t: ComparisonThresholds = ComparisonThresholds()) -> JSON:
    ref = load_side(results_dir, t.reference_label)
    cand = load_side(results_dir, t.candidate_label)

    sections: JSON = {
        "features": compare_features(ref["initial"], cand["initial"], t),
        "categories": compare_categories(ref["scroll"], cand["scroll"], t),
        "unique_messages": compare_unique_messages(ref["scroll"], cand["scroll"], t),
        "timing": compare_timing(
            _derived_timing(ref["timing"], ref["initial"], t.reference_label),
            _derived_timing(cand["timing"], cand["initial"], t.candidate_label),
            t,
        ),
        "events": compare_event_reports(
            _derived_events(ref["events"], ref["scroll"], t.reference_label, t),
            _derived_events(cand["events"], cand["scroll"], t.candidate_label, t),
            t,
        ),
        "visibility": check_visibility(load_bug_reports(results_dir)),
        "stuck_streams": check_stuck_streams(ref["initial"], cand["initial"], t),
    }

    findings: List[Finding] = []
    for section in sections.values():
        findings.extend(section["findings"])

    by_severity = {severity: 0 for severity in SEVERITIES}
    for finding in findings:
        by_severity[finding.severity] = by_severity.get(finding.severity, 0) + 1

    return {
        "generated": _now(),
        "results_dir": str(results_dir),
        "labels": {"reference": t.reference_label, "candidate": t.candidate_label},
        "thresholds": t.to_json(),
        "inputs": {**ref["errors"], **cand["errors"]},
        "sections": sections,
        "findings": findings,
        "summary": {
            "findings": len(findings),
            "by_severity": by_severity,
            "missing_sections": [name for name, s in sections.items() if s["status"] == "missing"],
        },
    }


def report_to_json(report: JSON) -> JSON:
    return json.loads(json.dumps(report, default=lambda v: v.to_json() if hasattr(v, "to_json") else str(v)))


def write_report(report: JSON, results_dir: Path) -> Optional[str]:
    try:
        (results_dir / REPORT_JSON).write_text(json.dumps(report_to_json(report), indent=2), encoding="utf-8")
        (results_dir / REPORT_MD).write_text(build_markdown_report(report), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write report files: %s", exc)
        return str(exc)
    return None


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------


class _Painter:
    def __init__(self, color: bool) -> None:
        self.color = color

    def __call__(self, text: str, *names: str) -> str:
        if not self.color or not names:
            return text
        return "".join(COLORS[n] for n in names) + text + COLORS["reset"]


def _table(headers: Sequence[str], widths: Sequence[int], rows: Sequence[Tuple[Sequence[str], Optional[str]]], paint: _Painter) -> List[str]:
    def line(left: str, mid: str, right: str) -> str:
        return left + mid.join("─" * (w + 2) for w in widths) + right

    def cells(values: Sequence[str]) -> str:
        return "│" + "│".join(f" {str(v)[:w].ljust(w)} " for v, w in zip(values, widths)) + "│"

    out = [line("┌", "┬", "┐"), cells(headers), line("├", "┼", "┤")]
    for values, color in rows:
        out.append(paint(cells(values), color) if color else cells(values))
    out.append(line("└", "┴", "┘"))
    return out


def _header(text: str, paint: _Painter) -> List[str]:
    return ["", paint("=" * 80, "bright", "cyan"), paint("  " + text, "bright", "cyan"), paint("=" * 80, "bright", "cyan"), ""]


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def render_report(report: JSON, *, color: bool = True) -> List[str]:
    paint = _Painter(color)
    labels = report.get("labels", {})
    ref = _title(labels.get("reference", "reference"))
    cand = _title(labels.get("candidate", "candidate"))
    sections = report.get("sections", {})
    out: List[str] = [paint("🔍 Browser Divergence Comparison", "bright", "magenta")]

    def missing(section: JSON, what: str) -> bool:
        if section.get("status", "missing") != "missing":
            return False
        out.append(paint(f"❌ {what}: {INSUFFICIENT}", "red"))
        return True

    features = sections.get("features", {})
    out += _header("BROWSER FEATURE COMPARISON", paint)
    if not missing(features, "Missing browser logs"):
        rows = [
            ((r["feature"], _yes_no(r["reference"]), _yes_no(r["candidate"])), "yellow" if r["mismatch"] else None)
            for r in features["rows"]
        ]
        out += _table(("Feature", ref, cand), (26, 8, 8), rows, paint)

    categories = sections.get("categories", {})
    out += _header("EVENT LOG COMPARISON", paint)
    if not missing(categories, "Missing event logs"):
        rows = [
            ((r["category"], str(r["reference"]), str(r["candidate"]), f"{r['delta']:+d}"), "yellow" if r["flagged"] else None)
            for r in categories["rows"]
        ]
        out += _table(("Category", ref, cand, "Diff"), (14, 8, 8, 8), rows, paint)

    unique = sections.get("unique_messages", {})
    if unique.get("status") == "ok":
        out.append("")
        out.append(paint("─── Unique Event Messages ───", "bright", "blue"))
        for label, key, tone in ((ref, "only_in_reference", "green"), (cand, "only_in_candidate", "yellow")):
            messages = unique.get(key, [])
            if not messages:
                continue
            out.append(paint(f"Events only in {label} ({len(messages)}):", tone))
            out += [f"   - {m}" for m in messages[:10]]
            if len(messages) > 10:
                out.append(f"   ... and {len(messages) - 10} more")

    timing = sections.get("timing", {})
    out += _header("VIDEO LOADING TIMING COMPARISON", paint)
    if not missing(timing, "Missing timing reports from one or both environments"):
        rows = [
            ((r["metric"], f"{r['reference']:.1f}ms", f"{r['candidate']:.1f}ms", f"{r['diff']:+.1f}ms"), "red" if r["flagged"] else None)
            for r in timing["rows"]
        ]
        out += _table(("Metric", ref, cand, "Diff"), (11, 9, 9, 9), rows, paint)
        verdict = timing.get("verdict")
        if verdict == "critical":
            out.append(paint(f"🐛 CRITICAL: {cand} is more than 2x slower than {ref}!", "red"))
        elif verdict == "high":
            out.append(paint(f"⚠️  WARNING: {cand} is significantly slower than {ref}", "yellow"))
        elif verdict == "comparable":
            out.append(paint("✅ Loading times are comparable", "green"))
        else:
            out.append(paint("⚠️  Reference average is zero; ratio undefined", "yellow"))

    events = sections.get("events", {})
    out += _header("TIMER & EVENT BEHAVIOR COMPARISON", paint)
    if not missing(events, "Missing event reports from one or both environments"):
        rows = [
            ((r["type"], str(r["reference"]), str(r["candidate"])), "yellow" if r["differs"] else None)
            for r in events["rows"]
        ]
        out += _table(("Event Type", ref, cand), (18, 8, 8), rows, paint)
        methods = events.get("scroll_end_method", {})
        out.append("Scroll End Detection:")
        out.append(f"  {ref}: {methods.get('reference')}")
        out.append(f"  {cand}: {methods.get('candidate')}")

    visibility = sections.get("visibility", {})
    out += _header("BUG REPORTS", paint)
    if not visibility.get("rows"):
        out.append(paint("✅ No bug reports found", "green"))
    for row in visibility.get("rows", []):
        out.append(f"  File: {row['file']}")
        if row.get("error"):
            out.append(paint(f"  Unreadable: {row['error']}", "red"))
            continue
        out.append(f"  Browser: {row.get('browser')}")
        out.append(f"  Issue: {row.get('issue')}")
        out.append(f"  Missing Monitors: {', '.join(str(m) for m in row.get('missing', []))}")

    out += _header("SUMMARY & RECOMMENDATIONS", paint)
    findings = report.get("findings", [])
    if not findings:
        out.append(paint("✅ No major issues detected!", "green"))
    tones = {"critical": "red", "high": "yellow", "medium": "blue", "info": "cyan"}
    for finding in findings:
        out.append(paint(f"[{finding.severity.upper()}] {finding.message}", tones.get(finding.severity, "reset")))
        out.append(f"  → {finding.recommendation}")
    skipped = report.get("summary", {}).get("missing_sections", [])
    if skipped:
        out.append(paint(f"Sections with {INSUFFICIENT}: {', '.join(skipped)}", "yellow"))
    out.append(paint("=" * 80, "bright", "cyan"))
    return out


def build_markdown_report(report: JSON) -> str:
    lines: List[str] = []
    labels = report.get("labels", {})
    summary = report.get("summary", {})
    lines.append("# Browser Divergence Comparison")
    lines.append("")
    lines.append(f"**Generated:** {report.get('generated')}")
    lines.append(f"**Reference:** {labels.get('reference')}")
    lines.append(f"**Candidate:** {labels.get('candidate')}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Findings: {summary.get('findings')}")
    for severity, count in (summary.get("by_severity") or {}).items():
        lines.append(f"- {severity}: {count}")
    missing = summary.get("missing_sections") or []
    if missing:
        lines.append(f"- Sections with {INSUFFICIENT}: {', '.join(missing)}")
    lines.append("")
    findings = report.get("findings", [])
    if findings:
        lines.append("## Findings")
        lines.append("")
        for finding in findings:
            lines.append(f"- **{finding.severity}** ({finding.check}) {finding.message}")
            lines.append(f"  - {finding.recommendation}")
        lines.append("")
    return "\n".join(lines)


def results_dir_from_env() -> Path:
    return Path(os.environ.get(RESULTS_ENV) or DEFAULT_RESULTS_DIR)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Compare reference and candidate captures in the results directory "
        f"(set {RESULTS_ENV} to override ./{DEFAULT_RESULTS_DIR})"
    )
    parser.parse_args()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [DIVERGENCE] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    paint = _Painter(sys.stdout.isatty())

    results_dir = results_dir_from_env()
    if not results_dir.is_dir():
        print(paint("❌ Results directory not found. Run the capture driver first!", "red"))
        print(paint(f"   Looked in: {results_dir}", "yellow"))
        return 1

    try:
        thresholds = load_thresholds(results_dir / THRESHOLDS_FILE)
    except (ConfigError, OSError, ValueError) as exc:
        logger.warning("Ignoring invalid %s: %s", THRESHOLDS_FILE, exc)
        thresholds = ComparisonThresholds()

    report = compare_results(results_dir, thresholds)
    for line in render_report(report, color=paint.color):
        print(line)
    write_report(report, results_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
