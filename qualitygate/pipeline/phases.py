"""Default phase table.

Order and policy are fixed here; argv, timeouts and skip classes come from
configuration.

    #  phase      policy     notes
    1  preflight  continue   version consistency + git status (native), concurrent
    2  format     abort
    3  lint       abort
    4  build      abort      disabled by --skip-build
    5  test       abort      dispatch argv when a pattern is given
    6  coverage   continue   writes the structured coverage artifact
    7  audit      continue
    8  docs       continue   link check + TODO markers, concurrent
    9  stage      abort
    10 confirm    gate       terminal action after approval
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

from qualitygate.metrics.extract import (
    BUILD_DURATION,
    COVERAGE_PERCENT,
    LINK_ERRORS,
    LINT_WARNINGS,
    TEST_SCHEMAS,
    TODO_MARKERS,
)
from qualitygate.tools import NATIVE_CHECKS, CommandTool, NativeTool, Tool

from .structures import Phase, PhasePolicy, SubCheck

ToolFactory = Callable[[str], Tool]

TARGETED_PHASES = ("format", "lint", "test")
FULL_PHASES = (
    "preflight",
    "format",
    "lint",
    "build",
    "test",
    "coverage",
    "audit",
    "docs",
    "stage",
    "confirm",
)


def default_tool_factory(root: Path) -> ToolFactory:
    """Map a check name to its collaborator: native checks in-process, the rest as commands."""
    command = CommandTool(root)

    def factory(check_name: str) -> Tool:
        if check_name in NATIVE_CHECKS:
            return NativeTool(root, check_name, NATIVE_CHECKS[check_name])
        return command

    return factory


def _relative(config: dict[str, Any], key: str) -> str:
    value = config["paths"][key]
    return value[2:] if value.startswith("./") else value


def build_phases(
    config: dict[str, Any],
    root: Path,
    mode: str,
    test_argv: tuple[str, ...] | None = None,
    fix: bool = False,
    skip_build: bool = False,
    tool_factory: ToolFactory | None = None,
) -> list[Phase]:
    """Build the ordered phase list for a run.

    Args:
        config: Runtime configuration
        root: Project root
        mode: 'targeted' or 'full'
        test_argv: Dispatched test invocation; defaults to the configured test command
        fix: Run the formatter and linter in fix mode
        skip_build: Disable the build phase
        tool_factory: Check name -> Tool; defaults to default_tool_factory(root)

    Returns:
        Phases in execution order, all pending
    """
    tools = config["tools"]
    timeouts = config["timeouts"]
    skip_when = config["skip_when"]
    factory = tool_factory or default_tool_factory(root)

    def check(name: str, argv, timeout_key: str, **kwargs) -> SubCheck:
        return SubCheck(
            name=name,
            tool=factory(name),
            argv=tuple(argv),
            timeout=float(timeouts[timeout_key]),
            **kwargs,
        )

    table = {
        "preflight": (
            PhasePolicy.CONTINUE,
            [
                check("version-consistency", [_relative(config, "manifest")], "preflight"),
                check("git-status", [config["release_branch"]], "preflight"),
            ],
            True,
        ),
        "format": (
            PhasePolicy.ABORT,
            [check("rustfmt", tools["format_fix"] if fix else tools["format"], "format")],
            False,
        ),
        "lint": (
            PhasePolicy.ABORT,
            [
                check(
                    "clippy",
                    tools["lint_fix"] if fix else tools["lint"],
                    "lint",
                    schemas=(LINT_WARNINGS,),
                )
            ],
            False,
        ),
        "build": (
            PhasePolicy.ABORT,
            [check("build", tools["build"], "build", schemas=(BUILD_DURATION,))],
            False,
        ),
        "test": (
            PhasePolicy.ABORT,
            [check("test", test_argv or tools["test"], "test", schemas=TEST_SCHEMAS)],
            False,
        ),
        "coverage": (
            PhasePolicy.CONTINUE,
            [
                check(
                    "coverage",
                    tools["coverage"],
                    "coverage",
                    artifact=(root / config["paths"]["coverage_artifact"]),
                    schemas=(COVERAGE_PERCENT,),
                )
            ],
            False,
        ),
        "audit": (
            PhasePolicy.CONTINUE,
            [check("audit", tools["audit"], "audit")],
            False,
        ),
        "docs": (
            PhasePolicy.CONTINUE,
            [
                check(
                    "link-check",
                    tools["link_check"],
                    "docs",
                    retryable=True,
                    schemas=(LINK_ERRORS,),
                ),
                check("todo-markers", [], "docs", schemas=(TODO_MARKERS,)),
            ],
            True,
        ),
        "stage": (
            PhasePolicy.ABORT,
            [check("stage", tools["stage"], "stage")],
            False,
        ),
        "confirm": (PhasePolicy.GATE, [], False),
    }

    names = TARGETED_PHASES if mode == "targeted" else FULL_PHASES
    phases = []
    for order, name in enumerate(names, 1):
        policy, checks, concurrent = table[name]
        phase = Phase(
            name=name,
            order=order,
            policy=policy,
            checks=checks,
            skip_when=frozenset(skip_when.get(name, ())),
            concurrent=concurrent,
        )
        if name == "build" and skip_build:
            phase.disabled_reason = "--skip-build"
        phases.append(phase)
    return phases
