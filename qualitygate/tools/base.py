"""Tool collaborator contract.

A closed set of tool variants, each implementing one capability:

    invoke(argv, timeout) -> ToolResult

CommandTool runs an external program (never through a shell). NativeTool
runs an in-process Python check. The orchestrator only sees ToolResult.
"""

import asyncio
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from qualitygate.utils.logging import logger

# Exit code reported for timeouts and launch failures
TIMEOUT_EXIT_CODE = -1
NOT_FOUND_EXIT_CODE = 127

# Uncolored output, so phrase templates match what the tool printed
PLAIN_OUTPUT_ENV = {"CARGO_TERM_COLOR": "never", "NO_COLOR": "1"}


def tool_env() -> dict[str, str]:
    env = os.environ.copy()
    env.update(PLAIN_OUTPUT_ENV)
    return env


@dataclass
class ToolResult:
    """Outcome of one tool invocation."""

    exit_code: int
    stdout: str
    stderr: str
    duration: float
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Tool(ABC):
    """Base class for tool collaborators."""

    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name for logging."""

    @abstractmethod
    async def invoke(self, argv: tuple[str, ...] | list[str], timeout: float) -> ToolResult:
        """Run the tool. Must not raise for tool failures or timeouts."""


class CommandTool(Tool):
    """External program executed with asyncio memory pipes."""

    @property
    def name(self) -> str:
        return "command"

    async def invoke(self, argv: tuple[str, ...] | list[str], timeout: float) -> ToolResult:
        """Execute argv in the project root.

        Args:
            argv: Discrete argument tokens; argv[0] is the program
            timeout: Maximum execution time in seconds

        Returns:
            ToolResult; timeouts and missing programs are reported as failures
        """
        start_time = time.time()
        argv = [str(token) for token in argv]

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.root),
                env=tool_env(),
            )
        except FileNotFoundError:
            logger.warning(f"[{argv[0]}] not found on PATH")
            return ToolResult(
                exit_code=NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=f"{argv[0]}: command not found",
                duration=time.time() - start_time,
            )
        except OSError as e:
            return ToolResult(
                exit_code=NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=f"{argv[0]}: could not start: {e}",
                duration=time.time() - start_time,
            )

        try:
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except TimeoutError:
            logger.error(f"[{argv[0]}] timed out after {timeout}s")
            await _kill(process)
            return ToolResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr=f"Command timed out after {timeout}s",
                duration=time.time() - start_time,
                timed_out=True,
            )
        except asyncio.CancelledError:
            await _kill(process)
            raise

        return ToolResult(
            exit_code=process.returncode,
            stdout=stdout_data.decode("utf-8", errors="replace"),
            stderr=stderr_data.decode("utf-8", errors="replace"),
            duration=time.time() - start_time,
        )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


NativeCheck = Callable[[Path, tuple[str, ...]], ToolResult]


class NativeTool(Tool):
    """In-process check satisfying the same contract as CommandTool.

    The check function runs in a worker thread so it shares the timeout
    handling of external tools.
    """

    def __init__(self, root: Path, check_name: str, check: NativeCheck):
        super().__init__(root)
        self._check_name = check_name
        self._check = check

    @property
    def name(self) -> str:
        return self._check_name

    async def invoke(self, argv: tuple[str, ...] | list[str], timeout: float) -> ToolResult:
        start_time = time.time()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self._check, self.root, tuple(argv)), timeout=timeout
            )
        except TimeoutError:
            return ToolResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr=f"{self.name} timed out after {timeout}s",
                duration=time.time() - start_time,
                timed_out=True,
            )
        except OSError as e:
            return ToolResult(
                exit_code=1,
                stdout="",
                stderr=f"{self.name}: {e}",
                duration=time.time() - start_time,
            )
        result.duration = time.time() - start_time
        return result
