"""Metric extraction - structured payloads first, phrase templates second.

COURIER PHILOSOPHY (inherited from the linter parsers):
- We translate tool output into normalized metrics
- We never invent values: a miss is UNKNOWN, never 0
- Free-text scraping lives only in this module's text path
"""

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from qualitygate.errors import ExtractionAmbiguityError
from qualitygate.utils.logging import logger


class MetricKind(Enum):
    """What a normalized metric measures."""

    COUNT = "count"
    PERCENTAGE = "percentage"
    DURATION = "duration"


class _Unknown:
    """Sentinel for 'could not be determined'. Distinct from zero."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


def is_unknown(value: Any) -> bool:
    return value is UNKNOWN


@dataclass(frozen=True)
class MetricSample:
    """Raw output of one tool invocation.

    structured holds the contents of a machine-readable artifact (a JSON
    report file or a JSON stdout) when the tool produced one.
    """

    source: str
    stdout: str = ""
    stderr: str = ""
    structured: str | None = None

    @property
    def text(self) -> str:
        return f"{self.stdout}\n{self.stderr}"


@dataclass(frozen=True)
class NormalizedMetric:
    """One metric value or UNKNOWN, with where it came from."""

    name: str
    kind: MetricKind
    value: Any
    origin: str | None = None
    note: str | None = None

    @property
    def known(self) -> bool:
        return not is_unknown(self.value)

    def to_json(self) -> int | float | None:
        return None if is_unknown(self.value) else self.value

    def __str__(self) -> str:
        if is_unknown(self.value):
            return "unknown"
        if self.kind is MetricKind.PERCENTAGE:
            return f"{self.value:.2f}%"
        if self.kind is MetricKind.DURATION:
            return f"{self.value:.2f}s"
        return str(self.value)


@dataclass(frozen=True)
class MetricSchema:
    """Where to look for one metric.

    Attributes:
        name: Metric name
        kind: count, percentage or duration
        field_path: Key path into the structured payload
        phrases: Regex templates with a named group 'value' (and optionally
            'minutes' for durations such as '1m 05s')
        combine: 'sum' adds every phrase match (one per test binary / crate),
            'last' keeps the final one
    """

    name: str
    kind: MetricKind
    field_path: tuple[str, ...] = ()
    phrases: tuple[re.Pattern, ...] = field(default_factory=tuple)
    combine: str = "last"


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.MULTILINE) for p in patterns)


# Documented phrase templates
TESTS_PASSED = MetricSchema(
    "tests_passed",
    MetricKind.COUNT,
    field_path=("passed",),
    phrases=_compile(r"test result: \w+\. (?P<value>\d+) passed"),
    combine="sum",
)
TESTS_FAILED = MetricSchema(
    "tests_failed",
    MetricKind.COUNT,
    field_path=("failed",),
    phrases=_compile(r"test result: \w+\. \d+ passed; (?P<value>\d+) failed"),
    combine="sum",
)
TESTS_IGNORED = MetricSchema(
    "tests_ignored",
    MetricKind.COUNT,
    field_path=("ignored",),
    phrases=_compile(r"test result: \w+\. \d+ passed; \d+ failed; (?P<value>\d+) ignored"),
    combine="sum",
)
TEST_DURATION = MetricSchema(
    "test_duration",
    MetricKind.DURATION,
    field_path=("exec_time",),
    phrases=_compile(r"finished in (?:(?P<minutes>\d+)m\s*)?(?P<value>\d+(?:\.\d+)?)s"),
    combine="sum",
)
LINT_WARNINGS = MetricSchema(
    "lint_warnings",
    MetricKind.COUNT,
    phrases=_compile(
        r"generated (?P<value>\d+) warnings?",
        r"^(?P<value>0) warnings",
    ),
    combine="sum",
)
BUILD_DURATION = MetricSchema(
    "build_duration",
    MetricKind.DURATION,
    phrases=_compile(
        r"Finished .*? in (?:(?P<minutes>\d+)m\s*)?(?P<value>\d+(?:\.\d+)?)s",
    ),
)
COVERAGE_PERCENT = MetricSchema(
    "coverage_percent",
    MetricKind.PERCENTAGE,
    field_path=("coverage",),
    phrases=_compile(r"(?P<value>\d+(?:\.\d+)?)% coverage"),
)
LINK_ERRORS = MetricSchema(
    "link_errors",
    MetricKind.COUNT,
    field_path=("errors",),
    phrases=_compile(r"(?P<value>\d+) Errors?\b"),
)
TODO_MARKERS = MetricSchema(
    "todo_markers",
    MetricKind.COUNT,
    phrases=_compile(r"^(?P<value>\d+) TODO markers"),
)

TEST_SCHEMAS = (TESTS_PASSED, TESTS_FAILED, TESTS_IGNORED, TEST_DURATION)


def _lookup(payload: Any, path: tuple[str, ...]) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise ExtractionAmbiguityError(".".join(path), "field not present in payload")
        node = node[key]
    return node


def _coerce(value: Any, schema: MetricSchema) -> int | float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ExtractionAmbiguityError(schema.name, f"non-numeric value {value!r}")
    return _check_range(value, schema)


def _check_range(value: int | float, schema: MetricSchema) -> int | float:
    if isinstance(value, float) and not math.isfinite(value):
        raise ExtractionAmbiguityError(schema.name, f"non-finite value {value}")
    if value < 0:
        raise ExtractionAmbiguityError(schema.name, f"negative value {value}")
    if schema.kind is MetricKind.PERCENTAGE and value > 100:
        raise ExtractionAmbiguityError(schema.name, f"percentage {value} out of range")
    if schema.kind is MetricKind.COUNT:
        if isinstance(value, float) and not value.is_integer():
            raise ExtractionAmbiguityError(schema.name, f"fractional count {value}")
        return int(value)
    try:
        return float(value)
    except OverflowError as e:
        raise ExtractionAmbiguityError(schema.name, f"value out of range: {e}") from e


def _from_structured(raw: str, schema: MetricSchema) -> int | float:
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise ExtractionAmbiguityError(schema.name, f"structured payload is not JSON: {e}") from e
    return _coerce(_lookup(payload, schema.field_path), schema)


def _match_value(match: re.Match) -> int | float:
    raw = match.group("value")
    value = float(raw) if "." in raw else int(raw)
    minutes = match.groupdict().get("minutes")
    if minutes:
        value += int(minutes) * 60
    return value


def _from_text(text: str, schema: MetricSchema) -> int | float:
    values = []
    try:
        for phrase in schema.phrases:
            values.extend(_match_value(m) for m in phrase.finditer(text))
        if not values:
            raise ExtractionAmbiguityError(schema.name, "no phrase template matched")
        value = sum(values) if schema.combine == "sum" else values[-1]
    except (ValueError, OverflowError) as e:
        raise ExtractionAmbiguityError(schema.name, f"unreadable number: {e}") from e
    return _check_range(value, schema)


def extract(sample: MetricSample, schema: MetricSchema) -> NormalizedMetric:
    """Extract one metric from a tool sample.

    Structured payload is tried first when present and the schema names a
    field; phrase templates are the fallback. Never raises: any miss is
    returned as UNKNOWN with a note explaining why.

    Args:
        sample: Raw tool output
        schema: What to look for

    Returns:
        NormalizedMetric whose value is a number or UNKNOWN
    """
    notes = []

    if sample.structured is not None and schema.field_path:
        try:
            value = _from_structured(sample.structured, schema)
            return NormalizedMetric(schema.name, schema.kind, value, origin="structured")
        except ExtractionAmbiguityError as e:
            notes.append(f"structured: {e.detail}")

    if schema.phrases:
        try:
            value = _from_text(sample.text, schema)
            return NormalizedMetric(schema.name, schema.kind, value, origin="text")
        except ExtractionAmbiguityError as e:
            notes.append(f"text: {e.detail}")

    note = f"{schema.name} could not be determined from {sample.source} output"
    if notes:
        note += f" ({'; '.join(notes)})"
    logger.debug(note)
    return NormalizedMetric(schema.name, schema.kind, UNKNOWN, note=note)


def extract_all(
    sample: MetricSample, schemas: tuple[MetricSchema, ...] | list[MetricSchema]
) -> tuple[dict[str, NormalizedMetric], list[str]]:
    """Extract several metrics, collecting notes for the unknown ones."""
    metrics = {}
    footnotes = []
    for schema in schemas:
        metric = extract(sample, schema)
        metrics[schema.name] = metric
        if not metric.known and metric.note:
            footnotes.append(metric.note)
    return metrics, footnotes
