"""Tests for per-component coverage aggregation and extraction."""

import json

import pytest

from qualitygate.metrics.coverage import (
    ComponentSample,
    Thresholds,
    ThresholdStatus,
    aggregate,
    classify_percentage,
    component_for_path,
    extract_component_samples,
)
from qualitygate.metrics.extract import UNKNOWN, MetricSample, is_unknown


class TestAggregate:
    def test_sixty_percent_is_below_ideal(self):
        report = aggregate([{"total": 100, "covered": 60}])
        component = report.components[0]
        assert component.percentage == 60.0
        assert component.status is ThresholdStatus.BELOW_IDEAL
        assert "at-or-above-minimum" in component.status.description
        assert report.overall_percentage == 60.0
        assert report.below_minimum == []

    def test_zero_total_is_not_applicable(self):
        report = aggregate([{"total": 0, "covered": 0}])
        component = report.components[0]
        assert component.status is ThresholdStatus.NOT_APPLICABLE
        assert is_unknown(component.percentage)
        assert is_unknown(report.overall_percentage)

    def test_all_empty_components_not_applicable_overall(self):
        report = aggregate([ComponentSample("core", 0, 0), ComponentSample("cli", 0, 0)])
        assert report.overall_status is ThresholdStatus.NOT_APPLICABLE
        assert report.footnotes == []

    def test_empty_and_unknown_components_unknown_overall(self):
        report = aggregate([ComponentSample("core", 0, 0), ComponentSample("cli", 5, 9)])
        assert report.overall_status is ThresholdStatus.UNKNOWN

    def test_covered_above_total_is_unknown_with_footnote(self):
        report = aggregate([ComponentSample("core", 10, 12)])
        assert report.components[0].status is ThresholdStatus.UNKNOWN
        assert any("core" in note for note in report.footnotes)

    def test_negative_or_unknown_counts_are_unknown(self):
        report = aggregate([ComponentSample("core", -1, 0), ComponentSample("cli", UNKNOWN, 3)])
        assert [c.status for c in report.components] == [
            ThresholdStatus.UNKNOWN,
            ThresholdStatus.UNKNOWN,
        ]
        assert len(report.footnotes) >= 2

    def test_samples_for_one_component_are_summed(self):
        report = aggregate(
            [ComponentSample("core", 50, 40), ComponentSample("core", 50, 30)]
        )
        assert len(report.components) == 1
        assert report.components[0].percentage == 70.0

    def test_below_minimum_ordered_by_severity(self):
        report = aggregate(
            [
                ComponentSample("alpha", 100, 50),
                ComponentSample("beta", 100, 10),
                ComponentSample("gamma", 100, 30),
                ComponentSample("delta", 100, 90),
            ]
        )
        assert report.below_minimum == ["beta", "gamma", "alpha"]
        assert [c.component for c in report.components] == ["alpha", "beta", "delta", "gamma"]

    def test_overall_excludes_unmeasurable_components(self):
        report = aggregate(
            [
                ComponentSample("core", 100, 80),
                ComponentSample("empty", 0, 0),
                ComponentSample("broken", 5, 9),
            ]
        )
        assert report.total_lines == 100
        assert report.covered_lines == 80
        assert report.overall_percentage == 80.0
        assert report.overall_status is ThresholdStatus.MEETS_IDEAL

    def test_custom_thresholds(self):
        report = aggregate([ComponentSample("core", 100, 75)], Thresholds(minimum=80, ideal=90))
        assert report.below_minimum == ["core"]


class TestClassifyPercentage:
    @pytest.mark.parametrize(
        "percentage, expected",
        [
            (0.0, ThresholdStatus.BELOW_MINIMUM),
            (59.99, ThresholdStatus.BELOW_MINIMUM),
            (60.0, ThresholdStatus.BELOW_IDEAL),
            (79.99, ThresholdStatus.BELOW_IDEAL),
            (80.0, ThresholdStatus.MEETS_IDEAL),
            (100.0, ThresholdStatus.MEETS_IDEAL),
            (UNKNOWN, ThresholdStatus.UNKNOWN),
        ],
    )
    def test_boundaries(self, percentage, expected):
        assert classify_percentage(percentage, Thresholds()) is expected


class TestComponentForPath:
    @pytest.mark.parametrize(
        "path, component",
        [
            ("crates/prtip-core/src/lib.rs", "prtip-core"),
            ("crates/prtip-scanner/src/syn/mod.rs", "prtip-scanner"),
            ("src/main.rs", "src"),
            ("build.rs", "(root)"),
        ],
    )
    def test_grouping(self, path, component):
        assert component_for_path(path) == component


class TestExtractComponentSamples:
    def test_tarpaulin_json(self):
        payload = {
            "files": [
                {
                    "path": ["/work", "crates", "core", "src", "lib.rs"],
                    "covered": 6,
                    "coverable": 10,
                    "traces": [],
                },
                {
                    "path": ["/work", "crates", "cli", "src", "main.rs"],
                    "covered": 1,
                    "coverable": 4,
                    "traces": [],
                },
            ]
        }
        sample = MetricSample("coverage", structured=json.dumps(payload))
        samples, footnotes = extract_component_samples(sample, "/work")
        assert samples == [ComponentSample("core", 10, 6), ComponentSample("cli", 4, 1)]
        assert footnotes == []

    def test_tarpaulin_traces_when_counts_missing(self):
        payload = {
            "files": [
                {
                    "path": ["crates", "core", "src", "lib.rs"],
                    "traces": [
                        {"line": 1, "stats": {"Line": 3}},
                        {"line": 2, "stats": {"Line": 0}},
                        {"line": 3, "stats": {"Line": 1}},
                    ],
                }
            ]
        }
        samples, _ = extract_component_samples(MetricSample("coverage", structured=json.dumps(payload)))
        assert samples == [ComponentSample("core", 3, 2)]

    def test_llvm_cov_export(self):
        payload = {
            "data": [
                {
                    "files": [
                        {
                            "filename": "/w/crates/cli/src/main.rs",
                            "summary": {"lines": {"count": 20, "covered": 5}},
                        }
                    ]
                }
            ]
        }
        samples, _ = extract_component_samples(
            MetricSample("coverage", structured=json.dumps(payload)), "/w"
        )
        assert samples == [ComponentSample("cli", 20, 5)]

    def test_text_fallback(self):
        stdout = (
            "|| Tested/Total Lines:\n"
            "|| crates/core/src/lib.rs: 12/20 +0.00%\n"
            "|| crates/cli/src/main.rs: 0/5\n"
            "|| \n"
            "48.00% coverage, 12/25 lines covered\n"
        )
        samples, footnotes = extract_component_samples(MetricSample("coverage", stdout=stdout))
        assert sorted(samples, key=lambda s: s.component) == [
            ComponentSample("cli", 5, 0),
            ComponentSample("core", 20, 12),
        ]
        assert footnotes == []

    def test_malformed_structured_falls_back_with_footnote(self):
        sample = MetricSample(
            "coverage",
            stdout="|| crates/core/src/lib.rs: 1/2\n",
            structured=json.dumps({"files": [{"path": ["crates", "core"], "covered": -1, "coverable": 2}]}),
        )
        samples, footnotes = extract_component_samples(sample)
        assert samples == [ComponentSample("core", 2, 1)]
        assert len(footnotes) == 1
        assert "unusable" in footnotes[0]

    def test_nothing_readable(self):
        samples, footnotes = extract_component_samples(MetricSample("coverage", stdout="error"))
        assert samples == []
        assert "could not be determined" in footnotes[0]
