"""Phase orchestrator.

AsyncIO execution model:
- Phases run strictly in declared order
- Sub-checks of a concurrent phase run under a semaphore of max_workers
- A phase transitions only after every sub-check has reported (join barrier)
- An abort-on-failure phase cancels its remaining siblings and waits at
  most grace_period seconds for them
"""

import asyncio
import time

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from qualitygate.errors import PipelinePolicyAbort, ToolInvocationError
from qualitygate.events import PipelineObserver
from qualitygate.metrics.extract import MetricSample, extract_all
from qualitygate.tools.base import TIMEOUT_EXIT_CODE, ToolResult
from qualitygate.utils.logging import logger

from .structures import (
    CheckResult,
    Phase,
    PhasePolicy,
    PhaseResult,
    PhaseStatus,
    RunContext,
    SubCheck,
)

CANCELLED_DIAGNOSTIC = "cancelled after a sibling check failed"


class Orchestrator:
    """Runs the gating phases of a RunContext and records their results."""

    def __init__(self, context: RunContext, observer: PipelineObserver | None = None):
        limits = context.config["limits"]
        self.context = context
        self.observer = observer
        self.max_workers = max(1, int(limits["max_workers"]))
        self.grace_period = float(limits["grace_period"])
        self.retry_backoff = float(limits["retry_backoff"])

    def _emit(self, event: str, *args) -> None:
        if self.observer is not None:
            getattr(self.observer, event)(*args)

    async def run(self) -> None:
        """Run phases in order up to the confirmation gate.

        Raises:
            PipelinePolicyAbort: When an abort-on-failure phase fails. Later
                phases stay pending.
        """
        total = len(self.context.phases)
        for phase in self.context.phases:
            if phase.policy is PhasePolicy.GATE:
                return

            result = await self.run_phase(phase, total)
            self.context.results[phase.name] = result

            if result.status is not PhaseStatus.FAILED:
                continue

            if phase.policy is PhasePolicy.ABORT:
                failing = next((c for c in result.checks if not c.success), None)
                raise PipelinePolicyAbort(
                    phase.name,
                    failing.name if failing else None,
                    result.diagnostic or "failed",
                )

            self.context.warnings.append(f"{phase.name}: {result.diagnostic}")

    async def run_phase(self, phase: Phase, total: int) -> PhaseResult:
        reason = phase.skip_reason(self.context.change_class)
        if reason:
            phase.transition(PhaseStatus.SKIPPED)
            logger.info(f"Skipping phase {phase.name}: {reason}")
            self._emit("on_phase_skipped", phase.name, reason)
            return PhaseResult(phase.name, PhaseStatus.SKIPPED, skip_reason=reason)

        phase.transition(PhaseStatus.RUNNING)
        self._emit("on_phase_start", phase.name, phase.order, total)
        start_time = time.time()

        if phase.concurrent and len(phase.checks) > 1:
            checks = await self._run_concurrent(phase)
        else:
            checks = await self._run_sequential(phase)

        elapsed = time.time() - start_time
        failed = [c for c in checks if not c.success]

        if not failed:
            phase.transition(PhaseStatus.PASSED)
            self._emit("on_phase_complete", phase.name, elapsed)
            return PhaseResult(phase.name, PhaseStatus.PASSED, elapsed, checks)

        phase.transition(PhaseStatus.FAILED)
        diagnostic = failed[0].diagnostic()
        aborting = phase.policy is PhasePolicy.ABORT
        self._emit("on_phase_failed", phase.name, diagnostic, failed[0].result.exit_code, aborting)
        return PhaseResult(
            phase.name,
            PhaseStatus.FAILED,
            elapsed,
            checks,
            diagnostic=diagnostic,
            warning=not aborting,
        )

    async def _run_sequential(self, phase: Phase) -> list[CheckResult]:
        results = []
        for check in phase.checks:
            result = await self.run_check(phase, check)
            results.append(result)
            if not result.success and phase.policy is PhasePolicy.ABORT:
                break
        return results

    async def _run_concurrent(self, phase: Phase) -> list[CheckResult]:
        semaphore = asyncio.Semaphore(self.max_workers)

        async def guarded(check: SubCheck) -> CheckResult:
            async with semaphore:
                self._emit("on_check_start", phase.name, check.name)
                result = await self.run_check(phase, check)
                self._emit(
                    "on_check_complete",
                    phase.name,
                    check.name,
                    result.success,
                    result.result.duration,
                )
                return result

        tasks = {
            asyncio.create_task(guarded(check), name=f"{phase.name}/{check.name}"): check
            for check in phase.checks
        }
        pending = set(tasks)

        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            sibling_failed = any(not t.result().success for t in done)
            if sibling_failed and phase.policy is PhasePolicy.ABORT and pending:
                for task in pending:
                    task.cancel()
                _, stuck = await asyncio.wait(pending, timeout=self.grace_period)
                if stuck:
                    logger.warning(
                        f"{len(stuck)} check(s) in {phase.name} did not stop within "
                        f"{self.grace_period}s of cancellation"
                    )
                break

        results = []
        for task, check in tasks.items():
            if task.done() and not task.cancelled():
                results.append(task.result())
            else:
                results.append(
                    CheckResult(
                        check.name,
                        ToolResult(TIMEOUT_EXIT_CODE, "", CANCELLED_DIAGNOSTIC, 0.0),
                        attempts=0,
                    )
                )
        return results

    async def run_check(self, phase: Phase, check: SubCheck) -> CheckResult:
        """Invoke one sub-check, retrying once if it is marked retryable."""
        if check.artifact is not None and check.artifact.exists():
            # Never read a previous run's artifact
            check.artifact.unlink()

        attempts = 0
        last: ToolResult | None = None

        async def attempt() -> ToolResult:
            nonlocal attempts, last
            attempts += 1
            last = await check.tool.invoke(check.argv, check.timeout)
            if not last.success:
                raise ToolInvocationError(
                    check.name, last.exit_code, last.stderr.strip()[:200], last.timed_out
                )
            return last

        if check.retryable:
            call = retry(
                stop=stop_after_attempt(2),
                wait=wait_exponential(
                    multiplier=self.retry_backoff,
                    min=self.retry_backoff,
                    max=self.retry_backoff * 4,
                ),
                retry=retry_if_exception_type(ToolInvocationError),
                reraise=True,
            )(attempt)
        else:
            call = attempt

        try:
            await call()
        except ToolInvocationError as e:
            logger.warning(f"[{phase.name}] {e}")

        self._collect_metrics(check, last)
        return CheckResult(check.name, last, attempts)

    def _collect_metrics(self, check: SubCheck, result: ToolResult) -> None:
        structured = None
        if check.artifact is not None and check.artifact.is_file():
            structured = check.artifact.read_text(encoding="utf-8", errors="replace")

        sample = MetricSample(
            source=check.name,
            stdout=result.stdout,
            stderr=result.stderr,
            structured=structured,
        )
        self.context.samples[check.name] = sample

        if check.schemas:
            metrics, footnotes = extract_all(sample, check.schemas)
            self.context.metrics.update(metrics)
            self.context.footnotes.extend(footnotes)
