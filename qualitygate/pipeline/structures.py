"""Data contracts for pipeline execution."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from qualitygate.errors import PhaseTransitionError
from qualitygate.metrics.extract import MetricSchema, NormalizedMetric
from qualitygate.tools.base import Tool, ToolResult


class PhaseStatus(Enum):
    """Status of a pipeline phase."""

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


# Monotonic: nothing returns to pending, terminal states are final
_TRANSITIONS = {
    PhaseStatus.PENDING: {PhaseStatus.RUNNING, PhaseStatus.SKIPPED},
    PhaseStatus.RUNNING: {PhaseStatus.PASSED, PhaseStatus.FAILED},
    PhaseStatus.PASSED: set(),
    PhaseStatus.FAILED: set(),
    PhaseStatus.SKIPPED: set(),
}


class PhasePolicy(Enum):
    """What a phase failure means for the rest of the run."""

    ABORT = "abort_on_failure"
    CONTINUE = "continue_on_failure"
    GATE = "confirmation_gate"


class OverallStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    FAILED_WITH_WARNINGS = "failed-with-warnings"


class ChangeClass(Enum):
    """What kind of changes the working tree holds."""

    DOCS_ONLY = "docs-only"
    CODE = "code"
    UNKNOWN = "unknown"


@dataclass
class SubCheck:
    """One tool invocation owned by a phase.

    Attributes:
        name: Check name used in diagnostics
        tool: Collaborator that runs argv
        argv: Discrete argument tokens
        timeout: Seconds before the invocation counts as failed
        retryable: Read-only check that may be retried once
        artifact: Structured output file the tool writes, if any
        schemas: Metrics to extract from the output
    """

    name: str
    tool: Tool
    argv: tuple[str, ...]
    timeout: float
    retryable: bool = False
    artifact: Path | None = None
    schemas: tuple[MetricSchema, ...] = ()


@dataclass
class Phase:
    """One ordered pipeline unit with its own failure policy."""

    name: str
    order: int
    policy: PhasePolicy
    checks: list[SubCheck] = field(default_factory=list)
    skip_when: frozenset[str] = frozenset()
    disabled_reason: str | None = None
    concurrent: bool = False
    status: PhaseStatus = PhaseStatus.PENDING

    def transition(self, new_status: PhaseStatus) -> None:
        """Move to new_status.

        Raises:
            PhaseTransitionError: If the move is not allowed from the current status
        """
        if new_status not in _TRANSITIONS[self.status]:
            raise PhaseTransitionError(self.name, self.status.value, new_status.value)
        self.status = new_status

    def skip_reason(self, change_class: ChangeClass) -> str | None:
        if self.disabled_reason:
            return self.disabled_reason
        if change_class.value in self.skip_when:
            return f"{change_class.value} changes"
        return None


@dataclass
class CheckResult:
    """Outcome of one sub-check, including retries."""

    name: str
    result: ToolResult
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.result.success

    def diagnostic(self) -> str:
        if self.result.timed_out:
            return f"{self.name} timed out after {self.result.duration:.1f}s"
        detail = (self.result.stderr or self.result.stdout).strip().splitlines()
        summary = detail[-1] if detail else ""
        text = f"{self.name} exited with code {self.result.exit_code}"
        return f"{text}: {summary}" if summary else text

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "exit_code": self.result.exit_code,
            "duration": round(self.result.duration, 3),
            "timed_out": self.result.timed_out,
            "attempts": self.attempts,
        }


@dataclass
class PhaseResult:
    """Result of a single pipeline phase execution.

    JSON-serializable through to_dict for the run report.
    """

    name: str
    status: PhaseStatus
    elapsed: float = 0.0
    checks: list[CheckResult] = field(default_factory=list)
    diagnostic: str | None = None
    warning: bool = False
    skip_reason: str | None = None
    declined: bool = False

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        d["checks"] = [c.to_dict() for c in self.checks]
        d["elapsed"] = round(self.elapsed, 3)
        return d

    @property
    def success(self) -> bool:
        return self.status == PhaseStatus.PASSED


@dataclass
class RunContext:
    """State of one pipeline run.

    Threaded explicitly through phase execution. Only the orchestrator and
    the gate write to it; renderers read it.
    """

    root: Path
    mode: str
    config: dict[str, Any]
    pattern: str | None = None
    change_class: ChangeClass = ChangeClass.UNKNOWN
    changed_paths: list[str] = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)
    results: dict[str, PhaseResult] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    footnotes: list[str] = field(default_factory=list)
    metrics: dict[str, NormalizedMetric] = field(default_factory=dict)
    samples: dict[str, Any] = field(default_factory=dict)
    coverage: dict[str, Any] | None = None
    dispatch: dict[str, Any] | None = None
    exit_code: int | None = None

    @property
    def overall_status(self) -> OverallStatus:
        for phase in self.phases:
            if phase.status is not PhaseStatus.FAILED:
                continue
            if phase.policy is PhasePolicy.ABORT:
                return OverallStatus.FAILED
            result = self.results.get(phase.name)
            if phase.policy is PhasePolicy.GATE and not (result and result.declined):
                return OverallStatus.FAILED
        if self.warnings:
            return OverallStatus.FAILED_WITH_WARNINGS
        return OverallStatus.PASSED

    def phase(self, name: str) -> Phase:
        for phase in self.phases:
            if phase.name == name:
                return phase
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "pattern": self.pattern,
            "changeClass": self.change_class.value,
            "overallStatus": self.overall_status.value,
            "exitCode": self.exit_code,
            "dispatch": self.dispatch,
            "phases": [
                self.results[p.name].to_dict()
                if p.name in self.results
                else {"name": p.name, "status": p.status.value}
                for p in self.phases
            ],
            "metrics": {name: m.to_json() for name, m in sorted(self.metrics.items())},
            "warnings": list(self.warnings),
            "footnotes": list(self.footnotes),
        }
