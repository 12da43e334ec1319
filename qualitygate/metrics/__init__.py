"""Metric extraction and coverage aggregation."""

from .coverage import (
    ComponentCoverage,
    ComponentSample,
    CoverageReport,
    Thresholds,
    ThresholdStatus,
    aggregate,
    classify_percentage,
    component_for_path,
    extract_component_samples,
)
from .extract import (
    UNKNOWN,
    MetricKind,
    MetricSample,
    MetricSchema,
    NormalizedMetric,
    extract,
    extract_all,
    is_unknown,
)
from .report import recommendations, render, render_table, write_report

__all__ = [
    "UNKNOWN",
    "ComponentCoverage",
    "ComponentSample",
    "CoverageReport",
    "MetricKind",
    "MetricSample",
    "MetricSchema",
    "NormalizedMetric",
    "ThresholdStatus",
    "Thresholds",
    "aggregate",
    "classify_percentage",
    "component_for_path",
    "extract",
    "extract_all",
    "extract_component_samples",
    "is_unknown",
    "recommendations",
    "render",
    "render_table",
    "write_report",
]
