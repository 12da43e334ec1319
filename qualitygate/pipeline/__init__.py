"""Pipeline execution infrastructure."""
from .changes import classify_paths, detect_changes
from .gate import ensure_commit_message, prompt_confirm, run_gate
from .orchestrator import Orchestrator
from .phases import FULL_PHASES, TARGETED_PHASES, build_phases, default_tool_factory
from .renderer import RichRenderer
from .structures import (
    ChangeClass,
    CheckResult,
    OverallStatus,
    Phase,
    PhasePolicy,
    PhaseResult,
    PhaseStatus,
    RunContext,
    SubCheck,
)
from .ui import console, print_error, print_header, print_status_panel, print_warning

__all__ = [
    "ChangeClass", "CheckResult", "OverallStatus", "Phase", "PhasePolicy", "PhaseResult",
    "PhaseStatus", "RunContext", "SubCheck", "Orchestrator", "RichRenderer",
    "FULL_PHASES", "TARGETED_PHASES", "build_phases", "default_tool_factory",
    "classify_paths", "detect_changes", "ensure_commit_message", "prompt_confirm", "run_gate",
    "console", "print_header", "print_error", "print_warning", "print_status_panel",
]
