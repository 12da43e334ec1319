"""Tests for the tool collaborators."""

import asyncio
import sys
import time
from pathlib import Path

from qualitygate.tools.base import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandTool,
    NativeTool,
    ToolResult,
)


class TestCommandTool:
    def test_captures_output(self, tmp_path):
        tool = CommandTool(tmp_path)
        result = asyncio.run(tool.invoke([sys.executable, "-c", "print('hi')"], timeout=30))
        assert result.success
        assert result.stdout.strip() == "hi"
        assert result.duration >= 0

    def test_non_zero_exit(self, tmp_path):
        tool = CommandTool(tmp_path)
        code = "import sys; sys.stderr.write('bad'); sys.exit(3)"
        result = asyncio.run(tool.invoke([sys.executable, "-c", code], timeout=30))
        assert result.exit_code == 3
        assert not result.success
        assert result.stderr == "bad"

    def test_runs_in_root(self, tmp_path):
        tool = CommandTool(tmp_path)
        code = "import os; print(os.getcwd())"
        result = asyncio.run(tool.invoke([sys.executable, "-c", code], timeout=30))
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_tokens_are_not_shell_interpreted(self, tmp_path):
        tool = CommandTool(tmp_path)
        code = "import sys; print(sys.argv[1])"
        result = asyncio.run(tool.invoke([sys.executable, "-c", code, "a;echo b|c"], timeout=30))
        assert result.stdout.strip() == "a;echo b|c"

    def test_timeout_is_a_failure_not_a_crash(self, tmp_path):
        tool = CommandTool(tmp_path)
        result = asyncio.run(
            tool.invoke([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.3)
        )
        assert result.timed_out
        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert not result.success

    def test_missing_program(self, tmp_path):
        tool = CommandTool(tmp_path)
        result = asyncio.run(tool.invoke(["qg-definitely-not-installed"], timeout=5))
        assert result.exit_code == NOT_FOUND_EXIT_CODE
        assert "not found" in result.stderr

    def test_child_output_uncolored(self, tmp_path):
        tool = CommandTool(tmp_path)
        code = "import os; print(os.environ.get('CARGO_TERM_COLOR', ''))"
        result = asyncio.run(tool.invoke([sys.executable, "-c", code], timeout=30))
        assert result.stdout.strip() == "never"


class TestNativeTool:
    def test_runs_check_with_root_and_argv(self, tmp_path):
        seen = {}

        def check(root, argv):
            seen["root"] = root
            seen["argv"] = argv
            return ToolResult(0, "fine", "", 0.0)

        tool = NativeTool(tmp_path, "demo", check)
        result = asyncio.run(tool.invoke(["x"], timeout=5))
        assert tool.name == "demo"
        assert result.success
        assert seen == {"root": tmp_path, "argv": ("x",)}

    def test_timeout(self, tmp_path):
        def slow(root, argv):
            time.sleep(0.5)
            return ToolResult(0, "", "", 0.0)

        result = asyncio.run(NativeTool(tmp_path, "slow", slow).invoke([], timeout=0.05))
        assert result.timed_out
        assert result.exit_code == TIMEOUT_EXIT_CODE


def test_tool_result_to_dict():
    result = ToolResult(0, "out", "", 1.5)
    assert result.to_dict() == {
        "exit_code": 0,
        "stdout": "out",
        "stderr": "",
        "duration": 1.5,
        "timed_out": False,
    }
