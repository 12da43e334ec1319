"""Pytest configuration and fixtures."""

import asyncio
import shutil
import subprocess
from pathlib import Path

import pytest

from qualitygate.config_runtime import load_runtime_config
from qualitygate.events import ConsoleLogger
from qualitygate.tools.base import Tool, ToolResult


def ok(stdout: str = "", stderr: str = "") -> ToolResult:
    return ToolResult(0, stdout, stderr, 0.01)


def fail(exit_code: int = 1, stderr: str = "boom", stdout: str = "") -> ToolResult:
    return ToolResult(exit_code, stdout, stderr, 0.01)


class FakeTool(Tool):
    """Scripted tool: returns queued results in order, the last one repeatedly."""

    def __init__(self, name: str = "fake", results=None, delay: float = 0.0):
        super().__init__(Path("."))
        self._name = name
        self.results = list(results or [])
        self.delay = delay
        self.calls: list[tuple[str, ...]] = []
        self.cancelled = False

    @property
    def name(self) -> str:
        return self._name

    async def invoke(self, argv, timeout):
        self.calls.append(tuple(argv))
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if not self.results:
            result = ok()
        elif len(self.results) > 1:
            result = self.results.pop(0)
        else:
            result = self.results[0]
        return ToolResult(result.exit_code, result.stdout, result.stderr, result.duration, result.timed_out)


class FakeToolbox:
    """Tool factory handing out one FakeTool per check name."""

    def __init__(self):
        self.tools: dict[str, FakeTool] = {}

    def __call__(self, check_name: str) -> FakeTool:
        return self.tools.setdefault(check_name, FakeTool(check_name))

    def script(self, check_name: str, *results: ToolResult, delay: float = 0.0) -> FakeTool:
        tool = FakeTool(check_name, results, delay)
        self.tools[check_name] = tool
        return tool

    def calls(self, check_name: str) -> list[tuple[str, ...]]:
        tool = self.tools.get(check_name)
        return tool.calls if tool else []


@pytest.fixture
def toolbox():
    return FakeToolbox()


@pytest.fixture
def quiet_observer():
    return ConsoleLogger(quiet=True)


@pytest.fixture
def workspace(tmp_path):
    """Minimal Cargo workspace with two member crates."""
    (tmp_path / "Cargo.toml").write_text(
        '[workspace]\nmembers = ["crates/*"]\n\n[workspace.package]\nversion = "0.5.2"\n'
    )
    for crate in ("core", "cli"):
        crate_dir = tmp_path / "crates" / crate
        (crate_dir / "src").mkdir(parents=True)
        (crate_dir / "Cargo.toml").write_text(f'[package]\nname = "{crate}"\n')
        (crate_dir / "src" / "lib.rs").write_text("pub fn answer() -> u32 { 42 }\n")
    (tmp_path / "README.md").write_text("# Project\n\n**Version:** v0.5.2\n")
    (tmp_path / "CHANGELOG.md").write_text("# Changelog\n\n## [0.5.2] - 2025-01-01\n\n- Fixes\n")
    return tmp_path


@pytest.fixture
def config(tmp_path):
    """Default runtime configuration with instant retries."""
    cfg = load_runtime_config(tmp_path)
    cfg["limits"]["retry_backoff"] = 0.0
    cfg["limits"]["grace_period"] = 1.0
    return cfg


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return its stdout; fails the test on a non-zero exit."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout


def init_repo(path: Path) -> Path:
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.email", "dev@example.com")
    git(path, "config", "user.name", "Dev")
    git(path, "config", "commit.gpgsign", "false")
    return path


@pytest.fixture
def git_workspace(workspace):
    """The Cargo workspace as a git repository on main with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    init_repo(workspace)
    git(workspace, "add", "--all")
    git(workspace, "commit", "-q", "-m", "initial")
    return workspace
