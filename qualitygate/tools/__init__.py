"""Tool collaborators - the only code that touches external programs.

This package provides:
- Tool: ABC every collaborator implements (invoke(argv, timeout))
- ToolResult: normalized outcome of an invocation
- CommandTool / NativeTool: the two tool variants
- NATIVE_CHECKS: in-process checks available to phases
"""

from .base import CommandTool, NativeTool, Tool, ToolResult
from .native import (
    NATIVE_CHECKS,
    check_git_status,
    check_todo_markers,
    check_version_consistency,
)

__all__ = [
    "CommandTool",
    "NATIVE_CHECKS",
    "NativeTool",
    "Tool",
    "ToolResult",
    "check_git_status",
    "check_todo_markers",
    "check_version_consistency",
]
