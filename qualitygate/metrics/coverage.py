"""Per-component coverage: extraction from coverage tools and threshold aggregation."""

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from qualitygate.errors import ExtractionAmbiguityError
from qualitygate.utils.helpers import normalize_path
from qualitygate.utils.logging import logger

from .extract import UNKNOWN, MetricSample, is_unknown

ROOT_COMPONENT = "(root)"

# tarpaulin stdout: "|| crates/core/src/lib.rs: 12/20 +0.00%"
TARPAULIN_LINE = re.compile(
    r"^\|\|\s+(?P<path>[^\s:][^:]*):\s+(?P<covered>\d+)/(?P<total>\d+)", re.MULTILINE
)


class ThresholdStatus(Enum):
    """Where a coverage percentage falls relative to the two thresholds."""

    BELOW_MINIMUM = "below-minimum"
    BELOW_IDEAL = "below-ideal"
    MEETS_IDEAL = "meets-ideal"
    NOT_APPLICABLE = "not-applicable"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return {
            ThresholdStatus.BELOW_MINIMUM: "below-minimum",
            ThresholdStatus.BELOW_IDEAL: "below-ideal, at-or-above-minimum",
            ThresholdStatus.MEETS_IDEAL: "at-or-above-ideal",
            ThresholdStatus.NOT_APPLICABLE: "not-applicable (no coverable lines)",
            ThresholdStatus.UNKNOWN: "unknown",
        }[self]


@dataclass(frozen=True)
class Thresholds:
    minimum: float = 60.0
    ideal: float = 80.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "Thresholds":
        section = config["thresholds"]
        return cls(minimum=float(section["minimum"]), ideal=float(section["ideal"]))


@dataclass(frozen=True)
class ComponentSample:
    """Line counts for one component (or one file of it), possibly UNKNOWN."""

    component: str
    total: Any
    covered: Any


@dataclass(frozen=True)
class ComponentCoverage:
    component: str
    total: Any
    covered: Any
    percentage: Any
    status: ThresholdStatus


@dataclass
class CoverageReport:
    """Aggregated coverage model. Built once, then only read by renderers."""

    components: list[ComponentCoverage]
    overall_percentage: Any
    total_lines: int
    covered_lines: int
    overall_status: ThresholdStatus
    below_minimum: list[str]
    below_ideal: list[str]
    thresholds: Thresholds
    footnotes: list[str] = field(default_factory=list)
    generated_at: str = field(
        default_factory=lambda: datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    )


def component_for_path(path: str) -> str:
    """Map a project-relative file path to its component.

    crates/<name>/... -> <name>; <dir>/... -> <dir>; file at root -> (root)
    """
    parts = [p for p in path.split("/") if p]
    if "crates" in parts:
        idx = parts.index("crates")
        if idx + 2 < len(parts):
            return parts[idx + 1]
    if len(parts) > 1:
        return parts[0]
    return ROOT_COMPONENT


def classify_percentage(percentage: Any, thresholds: Thresholds) -> ThresholdStatus:
    if is_unknown(percentage):
        return ThresholdStatus.UNKNOWN
    if percentage < thresholds.minimum:
        return ThresholdStatus.BELOW_MINIMUM
    if percentage < thresholds.ideal:
        return ThresholdStatus.BELOW_IDEAL
    return ThresholdStatus.MEETS_IDEAL


def _count(record: Mapping, key: str) -> int:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ExtractionAmbiguityError(key, f"expected non-negative integer, got {value!r}")
    return value


def _tarpaulin_files(payload: Mapping, root: Path | None) -> list[ComponentSample]:
    samples = []
    for record in payload["files"]:
        raw_path = record.get("path")
        if isinstance(raw_path, list):
            raw_path = Path(*raw_path).as_posix() if raw_path else ""
        if not isinstance(raw_path, str) or not raw_path:
            raise ExtractionAmbiguityError("path", f"unusable file path {raw_path!r}")

        if "coverable" in record and "covered" in record:
            total = _count(record, "coverable")
            covered = _count(record, "covered")
        else:
            # Fall back to the per-line trace records
            traces = record.get("traces")
            if not isinstance(traces, list):
                raise ExtractionAmbiguityError("traces", f"no counts or traces for {raw_path}")
            total = len(traces)
            covered = sum(1 for t in traces if _trace_hits(t) > 0)

        path = normalize_path(raw_path, root)
        samples.append(ComponentSample(component_for_path(path), total, covered))
    return samples


def _trace_hits(trace: Any) -> int:
    stats = trace.get("stats", {}) if isinstance(trace, dict) else {}
    hits = stats.get("Line", 0) if isinstance(stats, dict) else 0
    return hits if isinstance(hits, int) else 0


def _llvm_cov_files(payload: Mapping, root: Path | None) -> list[ComponentSample]:
    samples = []
    for export in payload["data"]:
        for record in export.get("files", []):
            filename = record.get("filename")
            lines = record.get("summary", {}).get("lines")
            if not isinstance(filename, str) or not isinstance(lines, dict):
                raise ExtractionAmbiguityError("files", f"malformed llvm-cov record {filename!r}")
            path = normalize_path(filename, root)
            samples.append(
                ComponentSample(component_for_path(path), _count(lines, "count"), _count(lines, "covered"))
            )
    return samples


def _structured_samples(raw: str, root: Path | None) -> list[ComponentSample]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ExtractionAmbiguityError("coverage", f"structured payload is not JSON: {e}") from e

    if isinstance(payload, dict) and isinstance(payload.get("files"), list):
        return _tarpaulin_files(payload, root)
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return _llvm_cov_files(payload, root)
    raise ExtractionAmbiguityError("coverage", "unrecognized structured coverage format")


def _text_samples(text: str, root: Path | None) -> list[ComponentSample]:
    per_file: dict[str, tuple[int, int]] = {}
    for match in TARPAULIN_LINE.finditer(text):
        path = normalize_path(match.group("path").strip(), root)
        per_file[path] = (int(match.group("total")), int(match.group("covered")))
    if not per_file:
        raise ExtractionAmbiguityError("coverage", "no per-file coverage lines matched")
    return [
        ComponentSample(component_for_path(path), total, covered)
        for path, (total, covered) in sorted(per_file.items())
    ]


def extract_component_samples(
    sample: MetricSample, root: Path | None = None
) -> tuple[list[ComponentSample], list[str]]:
    """Per-file coverage samples from a coverage tool's output.

    Prefers the structured per-unit trace records; falls back to the
    textual per-file summary. Never raises.

    Returns:
        (samples, footnotes). Samples are empty when nothing could be read.
    """
    footnotes = []

    if sample.structured is not None:
        try:
            return _structured_samples(sample.structured, root), footnotes
        except ExtractionAmbiguityError as e:
            footnotes.append(f"Structured coverage from {sample.source} unusable: {e.detail}")
        except (KeyError, TypeError, AttributeError) as e:
            footnotes.append(f"Structured coverage from {sample.source} malformed: {e}")

    try:
        samples = _text_samples(sample.text, root)
    except ExtractionAmbiguityError as e:
        footnotes.append(f"Per-component coverage could not be determined from {sample.source} output: {e.detail}")
        logger.debug(footnotes[-1])
        return [], footnotes

    return samples, footnotes


def _as_sample(item: ComponentSample | Mapping, index: int) -> ComponentSample:
    if isinstance(item, ComponentSample):
        return item
    name = item.get("component") or item.get("name") or f"component-{index + 1}"
    return ComponentSample(str(name), item.get("total", UNKNOWN), item.get("covered", UNKNOWN))


def _valid_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def aggregate(
    component_samples: Iterable[ComponentSample | Mapping],
    thresholds: Thresholds | None = None,
    footnotes: Iterable[str] = (),
) -> CoverageReport:
    """Aggregate samples into per-component coverage classified against thresholds.

    Samples for the same component are summed. A component with total == 0
    is not-applicable (never 0%). Invalid counts (covered > total, negative,
    non-integer, UNKNOWN) make that component unknown and add a footnote.

    Args:
        component_samples: ComponentSample objects or mappings with
            total/covered (and optionally component/name)
        thresholds: Minimum and ideal bars
        footnotes: Notes carried over from extraction

    Returns:
        CoverageReport with components sorted by name and below_minimum
        ordered by severity (lowest percentage first)
    """
    thresholds = thresholds or Thresholds()
    notes = list(footnotes)

    totals: dict[str, list[int]] = {}
    invalid: set[str] = set()
    for index, item in enumerate(component_samples):
        sample = _as_sample(item, index)
        bucket = totals.setdefault(sample.component, [0, 0])
        if not (_valid_count(sample.total) and _valid_count(sample.covered)):
            invalid.add(sample.component)
            continue
        bucket[0] += sample.total
        bucket[1] += sample.covered

    components = []
    for name in sorted(totals):
        total, covered = totals[name]
        if name in invalid:
            notes.append(f"Coverage counts for {name} are incomplete - reported as unknown")
            components.append(
                ComponentCoverage(name, UNKNOWN, UNKNOWN, UNKNOWN, ThresholdStatus.UNKNOWN)
            )
        elif covered > total:
            notes.append(f"Coverage for {name} reports {covered} covered of {total} lines - reported as unknown")
            invalid.add(name)
            components.append(
                ComponentCoverage(name, total, covered, UNKNOWN, ThresholdStatus.UNKNOWN)
            )
        elif total == 0:
            components.append(
                ComponentCoverage(name, 0, 0, UNKNOWN, ThresholdStatus.NOT_APPLICABLE)
            )
        else:
            percentage = round(covered * 100.0 / total, 2)
            components.append(
                ComponentCoverage(
                    name, total, covered, percentage, classify_percentage(percentage, thresholds)
                )
            )

    measured = [
        c
        for c in components
        if c.status not in (ThresholdStatus.UNKNOWN, ThresholdStatus.NOT_APPLICABLE)
    ]
    total_lines = sum(c.total for c in measured)
    covered_lines = sum(c.covered for c in measured)
    overall_status = None
    if total_lines > 0:
        overall = round(covered_lines * 100.0 / total_lines, 2)
    else:
        overall = UNKNOWN
        if components and all(c.status is ThresholdStatus.NOT_APPLICABLE for c in components):
            overall_status = ThresholdStatus.NOT_APPLICABLE
        elif components:
            notes.append("Overall coverage could not be determined - no measurable components")

    below_minimum = [
        c.component
        for c in sorted(
            (c for c in measured if c.status is ThresholdStatus.BELOW_MINIMUM),
            key=lambda c: (c.percentage, c.component),
        )
    ]
    below_ideal = [
        c.component
        for c in sorted(
            (c for c in measured if c.status is ThresholdStatus.BELOW_IDEAL),
            key=lambda c: (c.percentage, c.component),
        )
    ]

    return CoverageReport(
        components=components,
        overall_percentage=overall,
        total_lines=total_lines,
        covered_lines=covered_lines,
        overall_status=overall_status or classify_percentage(overall, thresholds),
        below_minimum=below_minimum,
        below_ideal=below_ideal,
        thresholds=thresholds,
        footnotes=notes,
    )
