"""Working-tree change classification (docs-only vs code)."""

from fnmatch import fnmatch

from qualitygate.tools.base import Tool
from qualitygate.utils.logging import logger

from .structures import ChangeClass

DIFF_ARGV = ("git", "diff", "--name-only", "HEAD")
UNTRACKED_ARGV = ("git", "ls-files", "--others", "--exclude-standard")


def classify_paths(paths: list[str], docs_patterns: list[str]) -> ChangeClass:
    """docs-only iff there are changes and every path matches a docs pattern."""
    if paths and all(any(fnmatch(p, pat) for pat in docs_patterns) for p in paths):
        return ChangeClass.DOCS_ONLY
    return ChangeClass.CODE


def _is_ignored(path: str, ignored_dirs: tuple[str, ...]) -> bool:
    return any(path == d or path.startswith(d.rstrip("/") + "/") for d in ignored_dirs)


async def detect_changes(
    tool: Tool,
    docs_patterns: list[str],
    timeout: float,
    ignored_dirs: tuple[str, ...] = (),
) -> tuple[ChangeClass, list[str]]:
    """Ask git for changed and untracked files and classify them.

    Paths at or below any of ignored_dirs (POSIX, relative to the repository
    root) are not counted; qg writes its own artifacts there.

    Returns:
        (change class, sorted changed paths). UNKNOWN when git is unavailable,
        in which case no phase is skipped on change grounds.
    """
    paths: set[str] = set()
    for argv in (DIFF_ARGV, UNTRACKED_ARGV):
        result = await tool.invoke(argv, timeout)
        if not result.success:
            logger.warning(
                f"Change detection failed ({' '.join(argv)}): "
                f"{result.stderr.strip() or result.exit_code}"
            )
            return ChangeClass.UNKNOWN, []
        paths.update(line.strip() for line in result.stdout.splitlines() if line.strip())

    changed = sorted(p for p in paths if not _is_ignored(p, ignored_dirs))
    change_class = classify_paths(changed, docs_patterns)
    logger.debug(f"{len(changed)} changed paths classified as {change_class.value}")
    return change_class, changed
