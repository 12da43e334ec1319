"""Confirmation gate and terminal action."""

import time
from collections.abc import Callable
from pathlib import Path

import click

from qualitygate.errors import PipelinePolicyAbort, UserDeclinedError
from qualitygate.tools.base import Tool
from qualitygate.utils.logging import logger

from .structures import CheckResult, Phase, PhaseResult, PhaseStatus, RunContext

Confirm = Callable[[str], bool]


def prompt_confirm(prompt: str) -> bool:
    """Ask on the terminal. EOF and Ctrl-C count as 'no'."""
    try:
        return click.confirm(prompt, default=False)
    except click.Abort:
        click.echo()
        return False


def ensure_commit_message(path: Path, context: RunContext) -> bool:
    """Write a summary commit message unless one was prepared already.

    Returns:
        True if the message was generated for this run
    """
    if path.exists():
        return False
    lines = [f"chore: quality gate {context.overall_status.value}", ""]
    for phase in context.phases:
        if phase.name in context.results:
            lines.append(f"- {phase.name}: {context.results[phase.name].status.value}")
    if context.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"- {w}" for w in context.warnings)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return True


async def run_gate(
    context: RunContext,
    phase: Phase,
    tool: Tool,
    terminal_argv: tuple[str, ...],
    timeout: float,
    confirm: Confirm = prompt_confirm,
    yes: bool = False,
) -> PhaseResult:
    """Require explicit approval, then perform the terminal action.

    Side effects of earlier phases are never undone here.

    Raises:
        UserDeclinedError: If approval was not given; the action is not run
        PipelinePolicyAbort: If the terminal action itself fails
    """
    phase.transition(PhaseStatus.RUNNING)
    start_time = time.time()
    action = " ".join(terminal_argv)

    approved = yes or confirm(f"Continue with '{action}'?")
    if not approved:
        phase.transition(PhaseStatus.FAILED)
        logger.info(f"Confirmation declined - '{action}' not performed")
        context.results[phase.name] = PhaseResult(
            phase.name,
            PhaseStatus.FAILED,
            time.time() - start_time,
            diagnostic="confirmation declined",
            declined=True,
        )
        raise UserDeclinedError(action)

    result = await tool.invoke(terminal_argv, timeout)
    check = CheckResult("terminal-action", result)
    elapsed = time.time() - start_time

    if not result.success:
        phase.transition(PhaseStatus.FAILED)
        diagnostic = check.diagnostic()
        context.results[phase.name] = PhaseResult(
            phase.name, PhaseStatus.FAILED, elapsed, [check], diagnostic=diagnostic
        )
        raise PipelinePolicyAbort(phase.name, check.name, diagnostic)

    phase.transition(PhaseStatus.PASSED)
    phase_result = PhaseResult(phase.name, PhaseStatus.PASSED, elapsed, [check])
    context.results[phase.name] = phase_result
    return phase_result
