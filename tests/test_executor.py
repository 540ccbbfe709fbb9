"""
Tests for hapticode/executor.py
Runs real user code through the current interpreter (sys.executable).
"""

import os
import time

import pytest

from hapticode.executor import (
    NO_ISSUES,
    NO_OUTPUT,
    TRUNCATED_MARKER,
    ExecutionResult,
    run_code,
    run_debug,
)


class TestExecutionResult:
    """Display-string precedence."""

    def test_stdout_wins(self):
        assert ExecutionResult(stdout="out\n", stderr="err").display_text() == "out"

    def test_stderr_when_no_stdout(self):
        assert ExecutionResult(stdout="  ", stderr="err\n").display_text() == "err"

    def test_placeholder_when_empty(self):
        assert ExecutionResult().display_text() == NO_OUTPUT
        assert ExecutionResult().display_text("nothing") == "nothing"

    def test_ok(self):
        assert ExecutionResult(returncode=0).ok
        assert not ExecutionResult(returncode=1).ok
        assert not ExecutionResult(returncode=0, timed_out=True).ok


# =============================================================================
# execute_code path
# =============================================================================

class TestRunCode:

    @pytest.mark.asyncio
    async def test_prints_hi(self, execution_settings):
        assert await run_code('print("hi")', execution_settings) == "hi"

    @pytest.mark.asyncio
    async def test_no_output(self, execution_settings):
        assert await run_code("x = 1 + 1", execution_settings) == NO_OUTPUT

    @pytest.mark.asyncio
    async def test_stderr_only_success(self, execution_settings):
        code = "import sys\nsys.stderr.write('just a warning')\n"
        assert await run_code(code, execution_settings) == "just a warning"

    @pytest.mark.asyncio
    async def test_exception_reported_as_error(self, execution_settings):
        out = await run_code("raise ValueError('boom')", execution_settings)
        assert out.startswith("Error:\n")
        assert "ValueError: boom" in out

    @pytest.mark.asyncio
    async def test_syntax_error(self, execution_settings):
        out = await run_code("def broken(:\n    pass", execution_settings)
        assert out.startswith("Error:\n")
        assert "SyntaxError" in out

    @pytest.mark.asyncio
    async def test_silent_nonzero_exit(self, execution_settings):
        out = await run_code("import sys\nsys.exit(3)", execution_settings)
        assert out == "Error:\nProcess exited with code 3"

    @pytest.mark.asyncio
    async def test_unicode_output(self, execution_settings):
        assert await run_code("print('héllo ✓')", execution_settings) == "héllo ✓"

    @pytest.mark.asyncio
    async def test_timeout_does_not_hang(self, execution_settings):
        execution_settings.timeout_seconds = 0.5
        started = time.monotonic()
        out = await run_code("import time\ntime.sleep(30)", execution_settings)

        assert out == "Error:\nExecution timed out after 0.5 seconds."
        assert time.monotonic() - started < 10

    @pytest.mark.asyncio
    async def test_output_is_capped(self, execution_settings):
        execution_settings.max_output_bytes = 100
        out = await run_code("print('x' * 5000)", execution_settings)

        assert out.endswith(TRUNCATED_MARKER.strip())
        assert out.count("x") == 100

    @pytest.mark.asyncio
    async def test_missing_interpreter(self, execution_settings):
        execution_settings.python_command = "definitely-not-a-python-binary"
        out = await run_code("print(1)", execution_settings)
        assert out.startswith("Error:\n")

    @pytest.mark.asyncio
    async def test_source_is_not_shell_interpreted(self, execution_settings):
        code = 'print("$HOME `whoami` \\"quoted\\" ; echo nope")'
        out = await run_code(code, execution_settings)
        assert out == '$HOME `whoami` "quoted" ; echo nope'


class TestTempFileCleanup:
    """Temp files never outlive the request."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code",
        ["print('ok')", "raise RuntimeError('fail')", "import time\ntime.sleep(30)"],
        ids=["success", "failure", "timeout"],
    )
    async def test_run_code_leaves_nothing(self, execution_settings, workdir, code):
        execution_settings.timeout_seconds = 1
        await run_code(code, execution_settings)
        assert os.listdir(workdir) == []

    @pytest.mark.asyncio
    async def test_unencodable_source_leaves_nothing(self, execution_settings, workdir):
        code = 'print("\ud800")'
        out = await run_code(code, execution_settings)
        assert out.startswith("Error:\n")
        assert "surrogates not allowed" in out
        assert os.listdir(workdir) == []

        out = await run_debug(code, [1], execution_settings)
        assert out.startswith("Debug error:")
        assert os.listdir(workdir) == []

    @pytest.mark.asyncio
    async def test_launch_failure_leaves_nothing(self, execution_settings, workdir):
        execution_settings.python_command = "definitely-not-a-python-binary"
        await run_code("print(1)", execution_settings)
        await run_debug("print(1)", [1], execution_settings)
        assert os.listdir(workdir) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code",
        ["x = 1\nprint(x)", "1 / 0", "while True:\n    pass"],
        ids=["success", "failure", "timeout"],
    )
    async def test_run_debug_leaves_nothing(self, execution_settings, workdir, code):
        execution_settings.timeout_seconds = 1
        await run_debug(code, [1], execution_settings)
        assert os.listdir(workdir) == []


# =============================================================================
# debug path
# =============================================================================

class TestRunDebug:

    @pytest.mark.asyncio
    async def test_no_breakpoints_no_output(self, execution_settings):
        assert await run_debug("x = 41 + 1", [], execution_settings) == NO_ISSUES

    @pytest.mark.asyncio
    async def test_program_output_without_breakpoints(self, execution_settings):
        assert await run_debug("print('plain')", [], execution_settings) == "plain"

    @pytest.mark.asyncio
    async def test_breakpoint_reports_locals(self, execution_settings):
        code = "x = 1\ny = x + 1\nprint(y)\n"
        out = await run_debug(code, [3], execution_settings)

        lines = out.splitlines()
        assert lines[0] == "Breakpoint hit at line 3"
        assert "    x = 1" in lines
        assert "    y = 2" in lines
        assert lines[-1] == "2"
        assert "__name__" not in out

    @pytest.mark.asyncio
    async def test_breakpoint_inside_function(self, execution_settings):
        code = "def double(a):\n    b = a * 2\n    return b\n\nprint(double(3))\n"
        out = await run_debug(code, [3], execution_settings)

        assert "Breakpoint hit at line 3" in out
        assert "    a = 3" in out
        assert "    b = 6" in out
        assert out.splitlines()[-1] == "6"

    @pytest.mark.asyncio
    async def test_breakpoint_in_loop_hits_each_time(self, execution_settings):
        code = "total = 0\nfor i in range(3):\n    total += i\n"
        out = await run_debug(code, [3], execution_settings)
        assert out.count("Breakpoint hit at line 3") == 3

    @pytest.mark.asyncio
    async def test_argv_matches_plain_run(self, execution_settings):
        code = "import os, sys\nprint(len(sys.argv), os.path.basename(sys.argv[0]).startswith('debug_'))"
        assert await run_debug(code, [], execution_settings) == "1 True"
        plain = await run_code(code.replace("debug_", "code_"), execution_settings)
        assert plain == "1 True"

    @pytest.mark.asyncio
    async def test_unreached_breakpoint(self, execution_settings):
        out = await run_debug("x = 1", [99], execution_settings)
        assert out == NO_ISSUES

    @pytest.mark.asyncio
    async def test_quotes_in_source_are_not_spliced(self, execution_settings):
        code = 'print("""triple""" + \'single\' + "\\\\n".strip())'
        out = await run_debug(code, [1], execution_settings)
        assert out.splitlines()[-1] == "triplesingle\\n"

    @pytest.mark.asyncio
    async def test_user_error_surfaces_traceback(self, execution_settings):
        out = await run_debug("1 / 0", [], execution_settings)
        assert "ZeroDivisionError" in out

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, execution_settings):
        execution_settings.timeout_seconds = 0.5
        out = await run_debug("while True:\n    pass", [], execution_settings)
        assert out == "Debug error: Execution timed out after 0.5 seconds."

    @pytest.mark.asyncio
    async def test_missing_interpreter(self, execution_settings):
        execution_settings.python_command = "definitely-not-a-python-binary"
        out = await run_debug("print(1)", [], execution_settings)
        assert out.startswith("Debug error:")
