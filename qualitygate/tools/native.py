"""In-process checks: version consistency, git status and leftover TODO markers."""

import re
import subprocess
import tomllib
from pathlib import Path

from qualitygate.utils.logging import logger

from .base import ToolResult, tool_env

TODO_PATTERN = re.compile(r"\b(TODO|FIXME|XXX)\b")
SOURCE_SUFFIXES = (".rs", ".py", ".toml")
SKIP_DIRS = {"target", ".git", ".qg", "node_modules", ".venv", "__pycache__"}
GIT_TIMEOUT = 10


def read_manifest_version(manifest: Path) -> str | None:
    """Return the workspace or package version declared in a Cargo manifest."""
    try:
        with open(manifest, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.debug(f"Cannot read manifest {manifest}: {e}")
        return None

    workspace_version = data.get("workspace", {}).get("package", {}).get("version")
    if isinstance(workspace_version, str):
        return workspace_version
    package_version = data.get("package", {}).get("version")
    if isinstance(package_version, str):
        return package_version
    return None


def check_version_consistency(root: Path, argv: tuple[str, ...]) -> ToolResult:
    """Verify README and CHANGELOG mention the manifest version.

    argv[0], when given, overrides the manifest path.
    """
    manifest = root / (argv[0] if argv else "Cargo.toml")
    version = read_manifest_version(manifest)
    if version is None:
        return ToolResult(1, "", f"No version found in {manifest.name}", 0.0)

    lines = [f"Manifest version: {version}"]
    problems = []

    readme = root / "README.md"
    if readme.is_file():
        text = readme.read_text(encoding="utf-8", errors="replace")
        if re.search(rf"[Vv]ersion.*{re.escape(version)}", text):
            lines.append("README.md version matches")
        else:
            problems.append(f"README.md version mismatch (expected: {version})")
    else:
        problems.append("README.md not found")

    changelog = root / "CHANGELOG.md"
    if changelog.is_file():
        text = changelog.read_text(encoding="utf-8", errors="replace")
        heading = rf"^##\s+\[?v?{re.escape(version)}\]?"
        if re.search(heading, text, flags=re.MULTILINE):
            lines.append(f"CHANGELOG.md has entry for {version}")
        else:
            problems.append(f"CHANGELOG.md missing entry for v{version}")
    else:
        problems.append("CHANGELOG.md not found")

    return ToolResult(1 if problems else 0, "\n".join(lines), "\n".join(problems), 0.0)


def _git(root: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=root,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        env=tool_env(),
        timeout=GIT_TIMEOUT,
    )


def check_git_status(root: Path, argv: tuple[str, ...]) -> ToolResult:
    """Check the release branch and its position against the upstream.

    argv[0], when given, names the release branch (default: main). Being on
    another branch or behind the upstream fails the check; being ahead or
    having no upstream is only reported.
    """
    expected = argv[0] if argv else "main"
    try:
        branch = _git(root, "branch", "--show-current")
        if branch.returncode != 0:
            return ToolResult(1, "", f"Not a git repository: {branch.stderr.strip()}", 0.0)

        current = branch.stdout.strip()
        lines = []
        problems = []
        if not current:
            problems.append(f"Detached HEAD (expected branch: {expected})")
        elif current != expected:
            problems.append(f"Not on {expected} branch (current: {current})")
        else:
            lines.append(f"On {expected} branch")

        if _git(root, "rev-parse", "--abbrev-ref", "@{u}").returncode != 0:
            lines.append("No remote tracking branch configured")
        else:
            ahead = _git(root, "rev-list", "--count", "@{u}..HEAD").stdout.strip()
            behind = _git(root, "rev-list", "--count", "HEAD..@{u}").stdout.strip()
            if ahead.isdigit() and int(ahead) > 0:
                lines.append(f"Ahead of remote by {ahead} commits")
            if behind.isdigit() and int(behind) > 0:
                problems.append(f"Behind remote by {behind} commits")
            if ahead == "0" and behind == "0":
                lines.append("Up to date with remote")
    except FileNotFoundError:
        return ToolResult(127, "", "git not available", 0.0)
    except subprocess.TimeoutExpired as e:
        return ToolResult(1, "", f"git timed out after {e.timeout}s", 0.0)

    return ToolResult(1 if problems else 0, "\n".join(lines), "\n".join(problems), 0.0)


def check_todo_markers(root: Path, argv: tuple[str, ...]) -> ToolResult:
    """Count TODO/FIXME/XXX markers in source files.

    argv lists directories to scan relative to root (default: crates, src).
    Fails when any marker is found, so a continue-on-failure phase turns it
    into a warning.
    """
    directories = argv or ("crates", "src")
    hits = []
    for directory in directories:
        base = root / directory
        if not base.is_dir():
            continue
        for path in sorted(base.rglob("*")):
            if not path.is_file() or path.suffix not in SOURCE_SUFFIXES:
                continue
            if SKIP_DIRS.intersection(path.relative_to(root).parts):
                continue
            text = path.read_text(encoding="utf-8", errors="replace")
            for lineno, line in enumerate(text.splitlines(), 1):
                if TODO_PATTERN.search(line):
                    hits.append(f"{path.relative_to(root).as_posix()}:{lineno}: {line.strip()}")

    summary = f"{len(hits)} TODO markers"
    if not hits:
        return ToolResult(0, summary, "", 0.0)
    shown = hits[:5]
    if len(hits) > 5:
        shown.append(f"... ({len(hits) - 5} more)")
    return ToolResult(1, summary + "\n" + "\n".join(shown), "TODO/FIXME markers found in code", 0.0)


NATIVE_CHECKS = {
    "version-consistency": check_version_consistency,
    "git-status": check_git_status,
    "todo-markers": check_todo_markers,
}
