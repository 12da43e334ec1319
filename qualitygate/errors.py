"""Error taxonomy for a quality gate run.

Each error maps to one disposition in the pipeline:

- InputValidationError: rejected before any side effect; exit code 1.
- ToolInvocationError: a collaborator exited non-zero or timed out; the
  owning sub-check fails, the orchestrator keeps going.
- ExtractionAmbiguityError: a metric could not be located; absorbed into
  the UNKNOWN sentinel plus a report footnote.
- PipelinePolicyAbort: an abort-on-failure phase failed; exit code 2.
- UserDeclinedError: the confirmation gate was declined; exit code 3.
"""


class QualityGateError(Exception):
    """Base class for all qualitygate errors."""


class InputValidationError(QualityGateError):
    """Targeting input contained forbidden content."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Rejected pattern {pattern!r}: {reason}")


# Name used by the dispatch contract
InvalidInputError = InputValidationError


class ToolInvocationError(QualityGateError):
    """A tool collaborator failed (non-zero exit or timeout)."""

    def __init__(self, check: str, exit_code: int, detail: str = "", timed_out: bool = False):
        self.check = check
        self.exit_code = exit_code
        self.detail = detail
        self.timed_out = timed_out
        if timed_out:
            message = f"{check} timed out"
        else:
            message = f"{check} exited with code {exit_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ExtractionAmbiguityError(QualityGateError):
    """Expected field or phrase missing or contradictory in tool output."""

    def __init__(self, metric: str, detail: str):
        self.metric = metric
        self.detail = detail
        super().__init__(f"{metric}: {detail}")


class PipelinePolicyAbort(QualityGateError):
    """An abort-on-failure phase failed and the run halted."""

    def __init__(self, phase: str, check: str | None, diagnostic: str):
        self.phase = phase
        self.check = check
        self.diagnostic = diagnostic
        where = f"{phase}/{check}" if check else phase
        super().__init__(f"Phase '{where}' failed: {diagnostic}")


class UserDeclinedError(QualityGateError):
    """The confirmation gate did not receive an affirmative answer."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Confirmation declined - '{action}' not performed")


class ConfigError(QualityGateError):
    """Configuration values are present but unusable."""


class PhaseTransitionError(QualityGateError):
    """A phase was moved to a status its current status cannot reach."""

    def __init__(self, phase: str, current: str, requested: str):
        self.phase = phase
        self.current = current
        self.requested = requested
        super().__init__(f"Phase '{phase}' cannot move from {current} to {requested}")
