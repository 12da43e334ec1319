"""Pipeline entry point for qualitygate.

AsyncIO + memory pipes:
- No shell, no temp files for subprocess IPC
- Phases sequential, sub-checks of a concurrent phase via asyncio tasks
- One RunContext per run, passed explicitly
"""

import asyncio
import time
from pathlib import Path

from rich.markup import escape

from qualitygate.config_runtime import load_runtime_config, resolve_path
from qualitygate.dispatch import dispatch, known_components
from qualitygate.errors import (
    ConfigError,
    InputValidationError,
    PipelinePolicyAbort,
    UserDeclinedError,
)
from qualitygate.events import PipelineObserver
from qualitygate.metrics.coverage import Thresholds, aggregate, extract_component_samples
from qualitygate.metrics.report import render_table, write_report
from qualitygate.pipeline.changes import detect_changes
from qualitygate.pipeline.gate import Confirm, ensure_commit_message, prompt_confirm, run_gate
from qualitygate.pipeline.orchestrator import Orchestrator
from qualitygate.pipeline.phases import ToolFactory, build_phases, default_tool_factory
from qualitygate.pipeline.renderer import RichRenderer
from qualitygate.pipeline.structures import (
    OverallStatus,
    PhasePolicy,
    RunContext,
)
from qualitygate.pipeline.ui import console, print_header, print_status_panel, print_warning
from qualitygate.utils.exit_codes import ExitCodes
from qualitygate.utils.helpers import prepare_artifact_dir, save_json_file
from qualitygate.utils.logging import configure_file_logging, logger

MODES = ("targeted", "full")


def _aggregate_coverage(context: RunContext) -> None:
    sample = context.samples.get("coverage")
    if sample is None:
        return

    samples, footnotes = extract_component_samples(sample, context.root)
    report = aggregate(samples, Thresholds.from_config(context.config), footnotes)
    path = resolve_path(context.config, context.root, "coverage_report")
    context.coverage = write_report(report, path)
    context.footnotes.extend(report.footnotes)
    logger.info(f"Coverage report written to {path}")


def _check_test_count(context: RunContext) -> None:
    expected = context.config["limits"]["expected_test_count"]
    metric = context.metrics.get("tests_passed")
    if not expected or metric is None or not metric.known:
        return
    if metric.value < expected:
        context.warnings.append(
            f"test: {metric.value} tests passed, fewer than the expected {expected}"
        )


def _print_summary(context: RunContext) -> None:
    print_header("RUN SUMMARY")
    if context.coverage is not None:
        console.print(render_table(context.coverage))
        for note in context.coverage.get("recommendations", []):
            console.print(f"  - {note}")

    status = context.overall_status
    if status is OverallStatus.FAILED:
        failed = [r for r in context.results.values() if r.diagnostic and not r.warning]
        detail = failed[0].diagnostic if failed else "see .qg/pipeline.log"
        print_status_panel("ABORTED", "A gating phase failed.", detail, level="error")
    elif status is OverallStatus.FAILED_WITH_WARNINGS:
        print_status_panel(
            "WARNINGS",
            f"{len(context.warnings)} non-gating check(s) failed.",
            "Details in .qg/run_report.json",
            level="warning",
        )
    else:
        print_status_panel("PASSED", "All gating phases passed.", f"Mode: {context.mode}", level="success")

    for warning in context.warnings:
        print_warning(escape(warning))
    for note in context.footnotes:
        console.print(f"[dim]* {escape(note)}[/dim]")


async def run_async(
    pattern: str | None,
    mode: str = "targeted",
    root: str | Path = ".",
    yes: bool = False,
    fix: bool = False,
    skip_build: bool = False,
    quiet: bool = False,
    confirm: Confirm | None = None,
    observer: PipelineObserver | None = None,
    tool_factory: ToolFactory | None = None,
) -> int:
    """Run the quality gate.

    Args:
        pattern: Targeting input (required in targeted mode)
        mode: 'targeted' (format, lint, scoped tests) or 'full' (all phases
            and the confirmation gate)
        root: Project root
        yes: Pre-approve the confirmation gate
        fix: Let the formatter and linter rewrite files
        skip_build: Skip the build phase
        quiet: Minimal console output
        confirm: Prompt callable for the gate (default: terminal prompt)
        observer: Progress observer (default: live RichRenderer)
        tool_factory: Check name -> Tool (default: real commands)

    Returns:
        Exit code from ExitCodes
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r}; expected one of {MODES}")

    root = Path(root).resolve()
    try:
        config = load_runtime_config(root)
    except ConfigError as e:
        logger.error(str(e))
        return ExitCodes.INVALID_INPUT

    # Validation happens before anything touches the filesystem or a tool
    request = None
    try:
        if pattern is not None or mode == "targeted":
            request = dispatch(pattern, config, known_components(config, root))
    except InputValidationError as e:
        logger.error(str(e))
        if observer is not None:
            observer.on_log(str(e), is_error=True)
        return ExitCodes.INVALID_INPUT

    factory = tool_factory or default_tool_factory(root)
    context = RunContext(
        root=root,
        mode=mode,
        config=config,
        pattern=pattern,
        dispatch=request.to_dict() if request else None,
    )
    context.phases = build_phases(
        config,
        root,
        mode,
        test_argv=request.argv if request else None,
        fix=fix,
        skip_build=skip_build,
        tool_factory=factory,
    )

    qg_dir = prepare_artifact_dir(resolve_path(config, root, "qg_dir"))
    try:
        ignored_dirs = (qg_dir.relative_to(root).as_posix(),)
    except ValueError:
        ignored_dirs = ()
    log_handler = configure_file_logging(qg_dir)
    renderer = None
    if observer is None:
        renderer = RichRenderer(quiet=quiet, log_file=resolve_path(config, root, "pipeline_log"))
        observer = renderer

    start_time = time.time()
    exit_code = ExitCodes.SUCCESS
    logger.info(f"Starting {mode} run in {root}" + (f" for pattern {pattern!r}" if pattern else ""))

    try:
        if mode == "full":
            context.change_class, context.changed_paths = await detect_changes(
                factory("git"),
                config["docs_patterns"],
                float(config["timeouts"]["git"]),
                ignored_dirs,
            )
            observer.on_log(f"Change classification: {context.change_class.value}")

        if renderer is not None:
            renderer.start()

        try:
            await Orchestrator(context, observer).run()
        except PipelinePolicyAbort as e:
            logger.error(str(e))
            observer.on_log(str(e), is_error=True)
            exit_code = ExitCodes.PHASE_ABORT

        _check_test_count(context)
        _aggregate_coverage(context)

        if renderer is not None:
            renderer.stop()
        if not quiet:
            _print_summary(context)

        gate = next((p for p in context.phases if p.policy is PhasePolicy.GATE), None)
        if gate is not None and exit_code == ExitCodes.SUCCESS:
            terminal_argv = tuple(config["terminal_action"])
            message_path = resolve_path(config, root, "commit_message")
            generated = ensure_commit_message(message_path, context)
            committed = False
            try:
                await run_gate(
                    context,
                    gate,
                    factory("terminal-action"),
                    terminal_argv,
                    float(config["timeouts"]["terminal"]),
                    confirm=confirm or prompt_confirm,
                    yes=yes,
                )
                observer.on_log(f"[OK] {' '.join(terminal_argv)}")
                committed = True
            except UserDeclinedError as e:
                observer.on_log(str(e))
                exit_code = ExitCodes.GATE_DECLINED
            except PipelinePolicyAbort as e:
                logger.error(str(e))
                observer.on_log(str(e), is_error=True)
                exit_code = ExitCodes.PHASE_ABORT
            finally:
                # A consumed or generated message must not leak into the next run
                if committed or generated:
                    message_path.unlink(missing_ok=True)
    finally:
        if renderer is not None:
            renderer.close()
        context.exit_code = exit_code
        report = context.to_dict()
        report["elapsed"] = round(time.time() - start_time, 3)
        report["changedPaths"] = context.changed_paths
        save_json_file(report, resolve_path(config, root, "run_report"))
        logger.remove(log_handler)

    logger.info(
        f"Run finished: {context.overall_status.value}, exit code {exit_code} "
        f"({ExitCodes.get_description(exit_code)})"
    )
    return exit_code


def run(pattern: str | None, mode: str = "targeted", **options) -> int:
    """Synchronous wrapper around run_async for the CLI and scripts."""
    return asyncio.run(run_async(pattern, mode, **options))
