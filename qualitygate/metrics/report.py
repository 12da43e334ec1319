"""Coverage report rendering: artifact dict, console table, recommendations."""

from pathlib import Path
from typing import Any

from rich.table import Table

from qualitygate.utils.helpers import save_json_file

from .coverage import CoverageReport, ThresholdStatus
from .extract import is_unknown


def _json_value(value: Any) -> Any:
    return None if is_unknown(value) else value


def recommendations(report: CoverageReport) -> list[str]:
    """Select recommendations by overall tier, plus one per below-minimum component."""
    thresholds = report.thresholds
    overall = report.overall_status
    recs = []

    if overall is ThresholdStatus.BELOW_MINIMUM:
        recs.append(
            f"Overall coverage is below the {thresholds.minimum:g}% minimum - "
            "add tests before release"
        )
    elif overall is ThresholdStatus.BELOW_IDEAL:
        recs.append(
            f"Overall coverage meets the {thresholds.minimum:g}% minimum but not the "
            f"{thresholds.ideal:g}% ideal - target the lowest components first"
        )
    elif overall is ThresholdStatus.MEETS_IDEAL:
        recs.append(
            f"Overall coverage meets the {thresholds.ideal:g}% ideal - keep new code covered"
        )
    elif overall is ThresholdStatus.NOT_APPLICABLE:
        recs.append("No coverable lines were reported - nothing to measure")
    else:
        recs.append("Overall coverage could not be determined - check the coverage tool output")

    by_name = {c.component: c for c in report.components}
    for name in report.below_minimum:
        component = by_name[name]
        recs.append(
            f"Raise coverage of {name} from {component.percentage:.2f}% "
            f"to at least {thresholds.minimum:g}%"
        )

    return recs


def render(report: CoverageReport) -> dict[str, Any]:
    """Produce the coverage artifact dict. Unknown values serialize as null."""
    return {
        "generatedAt": report.generated_at,
        "overallPercentage": _json_value(report.overall_percentage),
        "totalLines": report.total_lines,
        "coveredLines": report.covered_lines,
        "perComponent": [
            {
                "name": c.component,
                "percentage": _json_value(c.percentage),
                "status": c.status.value,
            }
            for c in report.components
        ],
        "belowThreshold": list(report.below_minimum),
        "recommendations": recommendations(report),
        "footnotes": list(report.footnotes),
    }


_STATUS_STYLE = {
    ThresholdStatus.BELOW_MINIMUM.value: "error",
    ThresholdStatus.BELOW_IDEAL.value: "warning",
    ThresholdStatus.MEETS_IDEAL.value: "success",
}


def render_table(artifact: dict[str, Any]) -> Table:
    """Build a rich Table from a rendered artifact dict.

    Works from the dict rather than the model so `qg report` can re-render a
    saved artifact.
    """
    overall = artifact.get("overallPercentage")
    title = "Coverage" if overall is None else f"Coverage ({overall:.2f}% overall)"
    table = Table(title=title, expand=False)
    table.add_column("Component", style="cyan", no_wrap=True)
    table.add_column("Coverage", justify="right")
    table.add_column("Status")

    for entry in artifact.get("perComponent", []):
        percentage = entry.get("percentage")
        status = entry.get("status", "unknown")
        style = _STATUS_STYLE.get(status, "dim")
        table.add_row(
            entry["name"],
            "-" if percentage is None else f"{percentage:.2f}%",
            f"[{style}]{status}[/{style}]",
        )
    return table


def write_report(report: CoverageReport, path: Path) -> dict[str, Any]:
    artifact = render(report)
    save_json_file(artifact, path)
    return artifact
